"""Bit-level writer and reader over binary streams, packing bits MSB-first."""

EOF = -1


class BitWriter:
    """Buffers single bits into bytes and writes them to a binary stream.

    The final partial byte is padded with zero bits on flush/close.
    Use as a context manager so buffered bits reach the stream on every exit path.
    """

    def __init__(self, stream, chunk_size=4096):
        self.stream = stream
        self.chunk_size = chunk_size
        self.packed = bytearray()
        self.buffer = 0
        self.bit_count = 0
        self.bits_written = 0
        self.closed = False

    def write_bit(self, bit):
        self.buffer = (self.buffer << 1) | (1 if bit else 0)
        self.bit_count += 1
        self.bits_written += 1
        if self.bit_count == 8:
            self.packed.append(self.buffer)
            self.buffer = 0
            self.bit_count = 0
            if len(self.packed) >= self.chunk_size:
                self.stream.write(bytes(self.packed))
                self.packed.clear()

    def write_code(self, code):
        """Write a code given as a string of '0'/'1' characters."""
        for bit in code:
            self.write_bit(bit == "1")

    def flush(self):
        if self.bit_count > 0:
            # Shift buffer left to insert padding zeros
            padding_bits = 8 - self.bit_count
            self.packed.append(self.buffer << padding_bits)
            self.buffer = 0
            self.bit_count = 0
        if self.packed:
            self.stream.write(bytes(self.packed))
            self.packed.clear()
        self.stream.flush()

    def close(self):
        if self.closed:
            return
        self.closed = True
        self.flush()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class BitReader:
    """Reads a binary stream one bit at a time.

    `read_bit` returns 0, 1 or EOF. Reading past the end keeps returning EOF;
    callers decide how many bits are meaningful.
    """

    def __init__(self, stream, chunk_size=4096):
        self.stream = stream
        self.chunk_size = chunk_size
        self.chunk = b""
        self.position = 0
        self.bit_index = 8
        self.current = 0
        self.exhausted = False

    def _next_byte(self):
        if self.position >= len(self.chunk):
            if self.exhausted:
                return None
            self.chunk = self.stream.read(self.chunk_size)
            self.position = 0
            if not self.chunk:
                self.exhausted = True
                return None
        value = self.chunk[self.position]
        self.position += 1
        return value

    def read_bit(self):
        if self.bit_index == 8:
            value = self._next_byte()
            if value is None:
                return EOF
            self.current = value
            self.bit_index = 0
        bit = (self.current >> (7 - self.bit_index)) & 1
        self.bit_index += 1
        return bit

    def skip_bits(self, count):
        """Discard `count` bits. Returns the number actually skipped."""
        skipped = 0
        # Drain the partially consumed byte first, then skip whole bytes.
        while skipped < count and self.bit_index != 8:
            self.read_bit()
            skipped += 1
        while count - skipped >= 8:
            if self._next_byte() is None:
                return skipped
            skipped += 8
        while skipped < count:
            if self.read_bit() == EOF:
                return skipped
            skipped += 1
        return skipped

