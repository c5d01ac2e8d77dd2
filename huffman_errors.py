### ERROR KINDS ###

class HuffmanError(Exception):
    """Base class for every failure raised by the Huffman codec."""


class FormatError(HuffmanError, ValueError):
    """The input is not a recognized compressed stream (bad header or truncated payload)."""


class InternalConsistencyError(HuffmanError):
    """The code table has no entry for a byte seen during analysis."""


class StorageError(HuffmanError, OSError):
    """Reading or writing the underlying storage failed.

    `stage` names the pass that failed: "analysis", "header" or "payload".
    """

    def __init__(self, stage, message):
        super().__init__(f"{stage} failed: {message}")
        self.stage = stage


class OutputLimitError(HuffmanError):
    """The header declares more output than the caller allows."""

    def __init__(self, declared_size, limit):
        super().__init__(f"Header declares {declared_size} bytes, limit is {limit}")
        self.declared_size = declared_size
        self.limit = limit
