import os

import pytest

from tncbridge.kiss import (
    CMD_DATA,
    FEND,
    FESC,
    MAX_PAYLOAD,
    TFEND,
    TFESC,
    KissDecoder,
    encode_frame,
    write_frame,
)


def test_encode_escapes_special_bytes():
    encoded = encode_frame(bytes([FEND, FESC]))
    assert encoded == bytes([FEND, CMD_DATA, FESC, TFEND, FESC, TFESC, FEND])


def test_encode_plain_payload():
    assert encode_frame(b"abc") == b"\xc0\x00abc\xc0"


@pytest.mark.parametrize(
    "payload",
    [b"hello", bytes(range(256)), b"\xc0\xc0\xdb\xdb", b"\xdb\xdc\xdd"],
)
def test_round_trip(payload):
    decoder = KissDecoder()
    assert decoder.feed(encode_frame(payload)) == [payload]


def test_encoded_body_contains_no_raw_fend():
    encoded = encode_frame(bytes(range(256)) * 2)
    assert FEND not in encoded[1:-1]


def test_feed_byte_returns_frame_only_on_closing_fend():
    decoder = KissDecoder()
    results = [decoder.feed_byte(b) for b in encode_frame(b"xy")]
    assert results[:-1] == [None] * (len(results) - 1)
    assert results[-1] == b"xy"


def test_port_nibble_is_stripped():
    decoder = KissDecoder()
    assert decoder.feed(b"\xc0\x10data\xc0") == [b"data"]


def test_non_data_command_is_ignored():
    decoder = KissDecoder()
    assert decoder.feed(b"\xc0\x01\x20\xc0") == []


def test_bytes_outside_frame_are_ignored():
    decoder = KissDecoder()
    assert decoder.feed(b"noise" + encode_frame(b"ok")) == [b"ok"]


def test_separate_frames_decoded_in_order():
    decoder = KissDecoder()
    frames = decoder.feed(encode_frame(b"one") + encode_frame(b"two"))
    assert frames == [b"one", b"two"]


def test_split_input_across_calls():
    decoder = KissDecoder()
    encoded = encode_frame(b"\xc0split\xdb")
    assert decoder.feed(encoded[:4]) == []
    assert decoder.feed(encoded[4:]) == [b"\xc0split\xdb"]


def test_payload_exactly_max_is_delivered():
    decoder = KissDecoder()
    payload = b"b" * MAX_PAYLOAD
    assert decoder.feed(encode_frame(payload)) == [payload]


def test_empty_data_frame():
    decoder = KissDecoder()
    assert decoder.feed(b"\xc0\x00\xc0") == [b""]


def test_write_frame_writes_encoded_bytes():
    read_fd, write_fd = os.pipe()
    try:
        written = write_frame(write_fd, b"\xc0payload")
        data = os.read(read_fd, 1024)
    finally:
        os.close(read_fd)
        os.close(write_fd)
    assert data == encode_frame(b"\xc0payload")
    assert written == len(data)