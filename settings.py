import os

# -----------------------------------------------------------
# CODEC CONFIGURATION
# -----------------------------------------------------------
DELIMITED = "delimited"
LENGTH_PREFIXED = "length_prefixed"
HEADER_FORMATS = (DELIMITED, LENGTH_PREFIXED)

# "delimited" keeps the original %%...!!...%%-- text header readable by older
# tools; "length_prefixed" is the hardened binary header.
HEADER_FORMAT = os.environ.get("HUFFMAN_HEADER_FORMAT", DELIMITED)

# Read size used by the analysis and encode passes.
CHUNK_SIZE = int(os.environ.get("HUFFMAN_CHUNK_SIZE", 64 * 1024))

COMPRESSED_SUFFIX = ".huff"
DECOMPRESSED_SUFFIX = ".out"

# -----------------------------------------------------------
# SERVICE CONFIGURATION
# -----------------------------------------------------------
BASE_DIR = os.path.abspath(os.path.dirname(__file__))
DATA_DIR = os.environ.get("HUFFMAN_DATA_DIR", os.path.join(BASE_DIR, "data"))
MAX_UPLOAD_MB = int(os.environ.get("HUFFMAN_MAX_UPLOAD_MB", 64))
# Largest decompressed file the service will produce for one upload.
MAX_OUTPUT_MB = int(os.environ.get("HUFFMAN_MAX_OUTPUT_MB", 1024))
LOG_LEVEL = os.environ.get("HUFFMAN_LOG_LEVEL", "INFO")


def resolve_header_format(header_format=None):
    """Return a validated header format name, falling back to HEADER_FORMAT."""
    name = header_format or HEADER_FORMAT
    if name not in HEADER_FORMATS:
        raise ValueError(
            f"Unknown header format {name!r}; expected one of {', '.join(HEADER_FORMATS)}"
        )
    return name
