import heapq
import logging
from collections import namedtuple
from itertools import count as sequence_counter

import settings

logger = logging.getLogger(__name__)

# symbol: byte value 0-255, count: number of occurrences (>= 1)
FrequencyRecord = namedtuple("FrequencyRecord", ["symbol", "count"])


### HUFFMAN NODE CLASSES ###
class Leaf:
    """A tree node carrying one byte value and its frequency."""
    __slots__ = ("symbol", "count")

    def __init__(self, symbol, count):
        self.symbol = symbol
        self.count = count

    def __repr__(self):
        return f"Leaf({self.symbol!r}, {self.count})"


class Internal:
    """A merged node; its count is the sum of its two children's counts."""
    __slots__ = ("count", "left", "right")

    def __init__(self, left, right):
        self.count = left.count + right.count
        self.left = left
        self.right = right

    def __repr__(self):
        return f"Internal({self.count}, {self.left!r}, {self.right!r})"


### FREQUENCY COUNTING ###
def analyze_frequencies(stream, chunk_size=None):
    """Counts every byte in a binary stream, keeping first-seen order."""
    chunk_size = chunk_size or settings.CHUNK_SIZE
    # dict keeps insertion order, so records come out in first-seen order
    frequency = {}

    chunk = stream.read(chunk_size)
    while chunk:
        for byte_int in chunk:
            frequency[byte_int] = frequency.get(byte_int, 0) + 1
        chunk = stream.read(chunk_size)

    return [FrequencyRecord(symbol, count) for symbol, count in frequency.items()]


### TREE GENERATION ###
def build_tree(records):
    """
    Builds the Huffman tree from an ordered list of FrequencyRecord.

    The priority queue is keyed on (count, sequence). The sequence number grows
    with every push (leaves first, in record order, then each merged node), so
    equal counts leave the queue in FIFO order. Encoder and decoder feed the same
    ordered list and therefore always get the same tree.

    Returns None for no records and the lone Leaf for a single record.
    """
    sequence = sequence_counter()
    priority_queue = []
    for record in records:
        heapq.heappush(priority_queue, (record.count, next(sequence), Leaf(record.symbol, record.count)))

    if not priority_queue:
        return None

    # Repeatedly merge the two lowest frequency nodes
    while len(priority_queue) > 1:
        _, _, left = heapq.heappop(priority_queue)
        _, _, right = heapq.heappop(priority_queue)
        parent = Internal(left, right)
        heapq.heappush(priority_queue, (parent.count, next(sequence), parent))

    root = priority_queue[0][2]
    logger.debug("Built Huffman tree over %d symbols, weight %d", len(records), root.count)
    return root


def is_degenerate(root):
    """True when the tree is a single Leaf (only one distinct byte in the input)."""
    return isinstance(root, Leaf)


### CODE GENERATION ###
def generate_codes(root):
    """
    Maps each symbol to its path from the root: '0' for left, '1' for right.

    A degenerate tree maps its only symbol to the empty code; no payload bits are
    needed because the decoder repeats that symbol `count` times.
    """
    huffman_codes = {}
    if root is None:
        return huffman_codes

    def generate_codes_recursive(node, current_code):
        if isinstance(node, Leaf):
            huffman_codes[node.symbol] = current_code
            return
        generate_codes_recursive(node.left, current_code + "0")
        generate_codes_recursive(node.right, current_code + "1")

    generate_codes_recursive(root, "")
    return huffman_codes
