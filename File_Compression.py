import argparse
import io
import logging
import os
import sys
import tempfile
from contextlib import contextmanager

import settings
from bitstream import EOF, BitReader, BitWriter
from huffman import Leaf, analyze_frequencies, build_tree, generate_codes, is_degenerate
from huffman_errors import (
    FormatError,
    HuffmanError,
    InternalConsistencyError,
    OutputLimitError,
    StorageError,
)
from huffman_header import read_header, write_header

logger = logging.getLogger(__name__)


@contextmanager
def _stage(name):
    """Reports OSErrors raised inside the block as a StorageError for that pass."""
    try:
        yield
    except HuffmanError:
        raise
    except OSError as e:
        raise StorageError(name, str(e)) from e


@contextmanager
def _replace_on_success(output_path, stage):
    """
    Yields a temporary file beside `output_path`.

    The temporary file replaces `output_path` only when the block completes;
    on any failure it is removed and an existing `output_path` is left untouched.
    """
    directory = os.path.dirname(os.path.abspath(output_path))
    with _stage(stage):
        temp_file = tempfile.NamedTemporaryFile(
            dir=directory, prefix=".", suffix=".part", delete=False
        )
    try:
        with temp_file:
            yield temp_file
        with _stage(stage):
            os.replace(temp_file.name, output_path)
    except BaseException:
        _discard(temp_file.name)
        raise


### COMPRESSION ###

def compress_stream(open_source, sink, header_format=None, chunk_size=None):
    """
    Compresses the input into `sink` using the classic two-pass scheme.

    `open_source` is a zero-argument callable returning a fresh binary stream
    over the input; it is called once per pass. Returns a dict of size stats.
    """
    header_format = settings.resolve_header_format(header_format)
    chunk_size = chunk_size or settings.CHUNK_SIZE

    # --- PASS 1: Frequency analysis ---
    with _stage("analysis"):
        with open_source() as source:
            records = analyze_frequencies(source, chunk_size)

    root = build_tree(records)
    huffman_codes = generate_codes(root)
    original_size = sum(record.count for record in records)

    # --- Header, in first-seen order ---
    with _stage("header"):
        header_length = write_header(sink, records, header_format)

    # --- PASS 2: Emit codes ---
    # Empty input has no payload; a single distinct byte is fully described by its count.
    payload_length = 0
    with _stage("payload"):
        if root is None or is_degenerate(root):
            sink.flush()
        else:
            with open_source() as source, BitWriter(sink) as writer:
                _encode_payload(source, writer, huffman_codes, original_size, chunk_size)
            payload_length = (writer.bits_written + 7) // 8

    return {
        "original_size": original_size,
        "compressed_size": header_length + payload_length,
        "header_length": header_length,
        "symbols": len(records),
        "header_format": header_format,
    }


def _encode_payload(source, writer, huffman_codes, expected_size, chunk_size):
    encoded = 0
    chunk = source.read(chunk_size)
    while chunk:
        for byte_int in chunk:
            code = huffman_codes.get(byte_int)
            if code is None:
                raise InternalConsistencyError(f"Code table has no entry for byte {byte_int}")
            writer.write_code(code)
        encoded += len(chunk)
        chunk = source.read(chunk_size)

    if encoded != expected_size:
        raise InternalConsistencyError(
            f"Input changed between passes: analyzed {expected_size} bytes, encoded {encoded}"
        )


def compress(data, header_format=None):
    """Compresses a bytes object and returns the compressed bytes."""
    sink = io.BytesIO()
    compress_stream(lambda: io.BytesIO(data), sink, header_format)
    return sink.getvalue()


def compress_file(input_path, output_path=None, header_format=None):
    """
    Compresses `input_path` into `output_path` (default: input_path + '.huff').

    Returns the output path. On failure an existing output file is left as it was.
    """
    if output_path is None:
        output_path = input_path + settings.COMPRESSED_SUFFIX

    with _replace_on_success(output_path, "header") as output_file:
        stats = compress_stream(lambda: open(input_path, "rb"), output_file, header_format)

    logger.info(
        "Compressed %s to %s (%d -> %d bytes, %d symbols, %s header)",
        input_path, output_path, stats["original_size"], stats["compressed_size"],
        stats["symbols"], stats["header_format"],
    )
    return output_path


### DECOMPRESSION ###

def decompress_stream(open_source, sink, header_format=None, chunk_size=None, max_output_size=None):
    """
    Decompresses the input into `sink`.

    The header is parsed from one view of the input; the payload is read from a
    second view after skipping header_length * 8 bits. Decoding stops once the
    total count recorded in the header has been emitted, so the zero padding of
    the last byte is never decoded. Returns a dict of size stats.

    When `max_output_size` is set, a header declaring more bytes than that raises
    OutputLimitError before anything is written.
    """
    header_format = settings.resolve_header_format(header_format)
    chunk_size = chunk_size or settings.CHUNK_SIZE

    # --- PHASE 1: Read and reconstruct header data ---
    with _stage("header"):
        with open_source() as source:
            records, header_length = read_header(source, header_format)

    root = build_tree(records)
    total_size = sum(record.count for record in records)
    if max_output_size is not None and total_size > max_output_size:
        raise OutputLimitError(total_size, max_output_size)

    # --- PHASE 2: Bit unpacking and decoding ---
    with _stage("payload"):
        if is_degenerate(root):
            _write_repeated(sink, root.symbol, root.count, chunk_size)
        elif root is not None:
            with open_source() as source:
                reader = BitReader(source)
                header_bits = header_length * 8
                if reader.skip_bits(header_bits) < header_bits:
                    raise FormatError("Stream is shorter than its own header")
                _decode_payload(reader, root, total_size, sink, chunk_size)
        sink.flush()

    return {
        "original_size": total_size,
        "header_length": header_length,
        "symbols": len(records),
        "header_format": header_format,
    }


def _decode_payload(reader, root, total_size, sink, chunk_size):
    decoded = bytearray()
    decoded_byte_count = 0
    current_node = root

    while decoded_byte_count < total_size:
        bit = reader.read_bit()
        if bit == EOF:
            raise FormatError(
                f"Payload truncated: decoded {decoded_byte_count} of {total_size} bytes"
            )

        current_node = current_node.right if bit else current_node.left

        # Check for leaf node
        if isinstance(current_node, Leaf):
            decoded.append(current_node.symbol)
            decoded_byte_count += 1
            current_node = root
            if len(decoded) >= chunk_size:
                sink.write(bytes(decoded))
                decoded.clear()

    sink.write(bytes(decoded))


def _write_repeated(sink, symbol, count, chunk_size):
    block = bytes((symbol,)) * min(count, chunk_size)
    remaining = count
    while remaining > 0:
        step = min(remaining, len(block))
        sink.write(block[:step])
        remaining -= step


def decompress(data, header_format=None, max_output_size=None):
    """Decompresses a bytes object produced by compress()."""
    sink = io.BytesIO()
    decompress_stream(lambda: io.BytesIO(data), sink, header_format, max_output_size=max_output_size)
    return sink.getvalue()


def decompress_file(compressed_path, output_path=None, header_format=None, max_output_size=None):
    """
    Decompresses `compressed_path` into `output_path`.

    The default output path strips a trailing '.huff', or appends '.out' otherwise.
    Returns the output path. On failure an existing output file is left as it was.
    """
    if output_path is None:
        if compressed_path.endswith(settings.COMPRESSED_SUFFIX):
            output_path = compressed_path[: -len(settings.COMPRESSED_SUFFIX)]
        else:
            output_path = compressed_path + settings.DECOMPRESSED_SUFFIX

    with _replace_on_success(output_path, "payload") as output_file:
        stats = decompress_stream(
            lambda: open(compressed_path, "rb"), output_file, header_format,
            max_output_size=max_output_size,
        )

    logger.info(
        "Decompressed %s to %s (%d bytes, %d symbols, %s header)",
        compressed_path, output_path, stats["original_size"], stats["symbols"],
        stats["header_format"],
    )
    return output_path


def _discard(path):
    if os.path.isfile(path):
        os.remove(path)


### COMMAND LINE ###

def build_parser():
    parser = argparse.ArgumentParser(
        prog="huffman-codec",
        description="Compress or decompress a file with byte-level Huffman coding.",
    )
    parser.add_argument(
        "--header-format",
        choices=settings.HEADER_FORMATS,
        default=None,
        help=f"header layout (default: {settings.HEADER_FORMAT})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug details")

    commands = parser.add_subparsers(dest="command", required=True)
    compress_cmd = commands.add_parser("compress", help="compress INPUT to INPUT.huff")
    compress_cmd.add_argument("input")
    compress_cmd.add_argument("-o", "--output", default=None)

    decompress_cmd = commands.add_parser("decompress", help="restore the original file")
    decompress_cmd.add_argument("input")
    decompress_cmd.add_argument("-o", "--output", default=None)
    decompress_cmd.add_argument(
        "--max-output-mb",
        type=int,
        default=None,
        help="refuse files that would decompress to more than this many megabytes",
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.LOG_LEVEL,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "compress":
            output_path = compress_file(args.input, args.output, args.header_format)
            original_size = os.path.getsize(args.input)
            compressed_size = os.path.getsize(output_path)
            print(f"Successfully compressed {args.input} to {output_path}.")
            if original_size > 0:
                ratio = 100 * (1 - compressed_size / original_size)
                print(f"Compression achieved: {ratio:.2f}% reduction.")
        else:
            max_output_size = args.max_output_mb * 1024 * 1024 if args.max_output_mb else None
            output_path = decompress_file(
                args.input, args.output, args.header_format, max_output_size=max_output_size
            )
            print(f"Successfully decompressed {args.input} to {output_path}.")
    except FormatError as e:
        print(f"{args.input}: not a recognized compressed file ({e})", file=sys.stderr)
        return 2
    except HuffmanError as e:
        print(f"{args.input}: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        # e.g. an unknown HUFFMAN_HEADER_FORMAT in the environment
        print(f"configuration error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
