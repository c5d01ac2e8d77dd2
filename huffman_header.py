"""
Frequency-table header written in front of the Huffman payload.

Two layouts are supported, selected by settings.HEADER_FORMAT or per call:

"delimited" (original text layout):

    Header := "%%" Entry* "--"
    Entry  := SymbolByte "!!" Digit+ "%%"

    e.g. records [(97, 3), (98, 1)] -> b"%%a!!3%%b!!1%%--"

    The delimiters are literal bytes with no escaping, no magic number and no
    length field. The reader below is positional (the symbol is always the byte
    right after "%%"), so all 256 byte values survive a round trip, but any data
    that happens to start with "%%" and a well-formed entry list is accepted as
    a header, and delimiter-scanning readers misparse symbols such as '%', '!',
    '-' or digits. Kept as the default for compatibility with existing files.

"length_prefixed" (hardened binary layout):

    Header := b"HUF1" EntryCount:uint16be (Symbol:uint8 Count:uint64be)*

Both readers consume exactly the header bytes and report that length, so the
payload starts at bit header_length * 8 of the same stream.
"""
import logging
import struct

import settings
from huffman import FrequencyRecord
from huffman_errors import FormatError

logger = logging.getLogger(__name__)

ENTRY_MARK = b"%%"
COUNT_MARK = b"!!"
END_MARK = b"--"

MAGIC = b"HUF1"
PREFIX = struct.Struct(">4sH")
ENTRY = struct.Struct(">BQ")
MAX_ENTRIES = 256


def _check_records(records):
    seen = set()
    for record in records:
        if not 0 <= record.symbol <= 255:
            raise ValueError(f"Symbol out of byte range: {record.symbol!r}")
        if record.count < 1:
            raise ValueError(f"Count must be positive for symbol {record.symbol}: {record.count}")
        if record.symbol in seen:
            raise ValueError(f"Duplicate symbol in frequency table: {record.symbol}")
        seen.add(record.symbol)


### WRITING ###
def write_header(stream, records, header_format=None):
    """Writes the records in their given order. Returns the number of bytes written."""
    header_format = settings.resolve_header_format(header_format)
    _check_records(records)

    if header_format == settings.LENGTH_PREFIXED:
        header = _encode_length_prefixed(records)
    else:
        header = _encode_delimited(records)

    stream.write(header)
    logger.debug("Wrote %s header: %d entries, %d bytes", header_format, len(records), len(header))
    return len(header)


def _encode_delimited(records):
    header = bytearray(ENTRY_MARK)  # mark start
    for record in records:
        header.append(record.symbol)
        header += COUNT_MARK
        header += str(record.count).encode("ascii")
        header += ENTRY_MARK  # end of entry, aka the start of the next
    header += END_MARK
    return bytes(header)


def _encode_length_prefixed(records):
    if len(records) > MAX_ENTRIES:
        raise ValueError(f"Too many entries for a byte alphabet: {len(records)}")
    header = bytearray(PREFIX.pack(MAGIC, len(records)))
    for record in records:
        header += ENTRY.pack(record.symbol, record.count)
    return bytes(header)


### READING ###
def read_header(stream, header_format=None):
    """
    Parses a header from the current position of a binary stream.

    Returns (records, header_length). Raises FormatError when the bytes do not
    form a header of the requested format.
    """
    header_format = settings.resolve_header_format(header_format)
    if header_format == settings.LENGTH_PREFIXED:
        records, header_length = _decode_length_prefixed(stream)
    else:
        records, header_length = _decode_delimited(stream)

    logger.debug("Read %s header: %d entries, %d bytes", header_format, len(records), header_length)
    return records, header_length


class _ByteSource:
    """Reads one byte at a time and counts how many were consumed."""

    def __init__(self, stream):
        self.stream = stream
        self.consumed = 0

    def next(self):
        byte = self.stream.read(1)
        if not byte:
            raise FormatError(f"Header truncated after {self.consumed} bytes")
        self.consumed += 1
        return byte[0]

    def expect(self, marker, what):
        for expected in marker:
            value = self.next()
            if value != expected:
                raise FormatError(
                    f"Expected {what} at header byte {self.consumed - 1}, found {value!r}"
                )


def _decode_delimited(stream):
    source = _ByteSource(stream)
    source.expect(ENTRY_MARK, "'%%' header start")

    records = []
    seen = set()
    dash = END_MARK[0]
    bang = COUNT_MARK[0]
    while True:
        first = source.next()
        second = source.next()
        if first == dash and second == dash:
            break

        # first is the symbol, second must open the "!!" marker
        if second != bang:
            raise FormatError(
                f"Expected '!!' after symbol at header byte {source.consumed - 1}, found {second!r}"
            )
        source.expect(COUNT_MARK[1:], "'!!' count marker")

        digits = bytearray()
        value = source.next()
        while 0x30 <= value <= 0x39:
            digits.append(value)
            value = source.next()
        if not digits:
            raise FormatError(f"Missing count for symbol {first} at header byte {source.consumed - 1}")
        if value != ENTRY_MARK[0]:
            raise FormatError(
                f"Expected '%%' after count at header byte {source.consumed - 1}, found {value!r}"
            )
        source.expect(ENTRY_MARK[1:], "'%%' entry end")

        records.append(_make_record(first, int(digits.decode("ascii")), seen))

    return records, source.consumed


def _decode_length_prefixed(stream):
    prefix = stream.read(PREFIX.size)
    if len(prefix) < PREFIX.size:
        raise FormatError("Header truncated before entry count")
    magic, entry_count = PREFIX.unpack(prefix)
    if magic != MAGIC:
        raise FormatError(f"Bad header magic {magic!r}")
    if entry_count > MAX_ENTRIES:
        raise FormatError(f"Header declares {entry_count} entries; a byte alphabet has at most 256")

    records = []
    seen = set()
    for index in range(entry_count):
        entry = stream.read(ENTRY.size)
        if len(entry) < ENTRY.size:
            raise FormatError(f"Header truncated in entry {index}")
        symbol, count = ENTRY.unpack(entry)
        records.append(_make_record(symbol, count, seen))

    return records, PREFIX.size + ENTRY.size * entry_count


def _make_record(symbol, count, seen):
    if count < 1:
        raise FormatError(f"Zero count for symbol {symbol}")
    if symbol in seen:
        raise FormatError(f"Symbol {symbol} listed twice in header")
    seen.add(symbol)
    return FrequencyRecord(symbol, count)
