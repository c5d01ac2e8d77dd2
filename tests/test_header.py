import io
import struct

import pytest

from huffman import FrequencyRecord
from huffman_errors import FormatError
from huffman_header import read_header, write_header

DELIMITER_HEAVY = [
    FrequencyRecord(ord("%"), 2),
    FrequencyRecord(ord("!"), 10),
    FrequencyRecord(ord("-"), 1),
    FrequencyRecord(ord("5"), 123),
    FrequencyRecord(0, 7),
    FrequencyRecord(255, 4294967296),
]


def _write(records, header_format):
    stream = io.BytesIO()
    length = write_header(stream, records, header_format)
    return stream.getvalue(), length


def _read(data, header_format="delimited"):
    return read_header(io.BytesIO(data), header_format)


def test_delimited_layout():
    header, length = _write([FrequencyRecord(97, 3), FrequencyRecord(98, 1)], "delimited")
    assert header == b"%%a!!3%%b!!1%%--"
    assert length == len(header)


def test_delimited_empty_table():
    header, length = _write([], "delimited")
    assert header == b"%%--"
    assert _read(header) == ([], 4)


@pytest.mark.parametrize("header_format", ["delimited", "length_prefixed"])
def test_round_trip_keeps_order_and_reports_length(header_format):
    header, length = _write(DELIMITER_HEAVY, header_format)
    stream = io.BytesIO(header + b"\x25\x25\x2d\x2d payload")

    records, header_length = read_header(stream, header_format)

    assert records == DELIMITER_HEAVY
    assert header_length == length == len(header)
    # nothing past the header is consumed
    assert stream.tell() == header_length


@pytest.mark.parametrize("header_format", ["delimited", "length_prefixed"])
def test_round_trip_every_byte_value(header_format):
    records = [FrequencyRecord(symbol, symbol + 1) for symbol in reversed(range(256))]
    header, length = _write(records, header_format)
    assert _read(header, header_format) == (records, length)


def test_length_prefixed_layout():
    header, length = _write([FrequencyRecord(97, 3)], "length_prefixed")
    assert header == b"HUF1\x00\x01a" + (3).to_bytes(8, "big")
    assert length == 6 + 9


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"%",
        b"XYa!!3%%--",
        b"%%a!?3%%--",
        b"%%a?!3%%--",
        b"%%a!!x%%--",
        b"%%a!!%%--",
        b"%%a!!3x%%--",
        b"%%a!!3%x--",
        b"%%a!!3--",
        b"%%a!!3%%",
        b"%%a!!3%%b!!1%%",
        b"%%a!!3%%b!!1%%\xe0",
        b"%%a!!0%%--",
        b"%%a!!3%%a!!1%%--",
    ],
)
def test_malformed_delimited_headers(data):
    with pytest.raises(FormatError):
        _read(data)


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"HUF1\x00",
        b"HUF2\x00\x00",
        b"HUF1\x00\x01a",
        b"HUF1\x01\x01" + b"a" + (1).to_bytes(8, "big"),
        b"HUF1\x00\x01" + struct.pack(">BQ", 97, 0),
        b"HUF1\x00\x02" + struct.pack(">BQ", 97, 1) * 2,
        b"%%a!!3%%--",
    ],
)
def test_malformed_length_prefixed_headers(data):
    with pytest.raises(FormatError):
        _read(data, "length_prefixed")


def test_unknown_format_is_rejected():
    with pytest.raises(ValueError):
        _write([FrequencyRecord(97, 1)], "zip")
    with pytest.raises(ValueError):
        _read(b"%%--", "zip")


def test_writer_rejects_invalid_records():
    with pytest.raises(ValueError):
        _write([FrequencyRecord(97, 0)], "delimited")
    with pytest.raises(ValueError):
        _write([FrequencyRecord(256, 1)], "delimited")
    with pytest.raises(ValueError):
        _write([FrequencyRecord(97, 1), FrequencyRecord(97, 2)], "length_prefixed")
