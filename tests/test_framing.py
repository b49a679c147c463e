"""Tests for the virtual sensor frame builder."""

import logging

import pytest

from octo_virtual_sensors.protocol.framing import (
    CHECKSUM_OFFSET,
    FRAME_SIZE,
    HEADER_BYTE,
    SENSOR_COUNT,
    SENSOR_UNSET,
    TRAILER,
    FrameBuilder,
    decode_frame,
    encode_sensor_value,
    verify_frame,
)
from octo_virtual_sensors.utils.crc import crc16_usb

REFERENCE_FRAME = bytes([
    4, 0, 100, 0, 200, 1, 44, 1, 144, 1, 244, 2, 88, 2, 188, 3, 32, 3, 132, 3, 232, 4, 76,
    4, 176, 5, 20, 5, 120, 5, 220, 6, 64, 0, 0, 0, 0, 3, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0,
    218, 118,
])


def _stored_checksum(frame: bytes) -> int:
    return int.from_bytes(frame[CHECKSUM_OFFSET:], "big")


def test_template_before_encode():
    """A fresh builder holds the header, unset slots, trailer and a placeholder checksum."""
    frame = FrameBuilder().frame
    assert len(frame) == FRAME_SIZE
    assert frame[0] == HEADER_BYTE
    assert frame[1:33] == b"\x7f\xff" * SENSOR_COUNT
    assert frame[33:49] == TRAILER
    assert frame[49:] == b"\xff\xff"


def test_reference_frame_one_to_sixteen():
    """Sensors 1..16 must encode to the known device frame."""
    frame = FrameBuilder().encode(range(1, 17))
    assert frame == REFERENCE_FRAME


@pytest.mark.parametrize("count", range(0, SENSOR_COUNT + 1))
def test_frame_size_and_header(count):
    """Every encode yields 51 bytes starting with the header, for 0..16 values."""
    frame = FrameBuilder().encode(list(range(count)))
    assert len(frame) == FRAME_SIZE
    assert frame[0] == HEADER_BYTE


@pytest.mark.parametrize("count", [0, 1, 7, 16])
def test_checksum_matches_payload(count):
    """Bytes 49-50 hold the CRC-16/USB of bytes 1-48."""
    frame = FrameBuilder().encode([20 + i for i in range(count)])
    assert _stored_checksum(frame) == crc16_usb(frame[1:49])
    assert verify_frame(frame)


def test_empty_input_all_unset():
    """No values leaves every slot at the sentinel, still checksummed."""
    frame = FrameBuilder().encode([])
    assert frame[1:33] == b"\x7f\xff" * SENSOR_COUNT
    assert frame[33:49] == TRAILER
    assert _stored_checksum(frame) == crc16_usb(b"\x7f\xff" * SENSOR_COUNT + TRAILER)
    assert decode_frame(frame) == [None] * SENSOR_COUNT


def test_missing_slots_are_unset():
    """Slots beyond the supplied values are 0x7F 0xFF."""
    frame = FrameBuilder().encode([30, 40, 50])
    for index in range(3, SENSOR_COUNT):
        offset = 1 + 2 * index
        assert frame[offset : offset + 2] == b"\x7f\xff"


def test_encode_is_idempotent():
    """Encoding the same input twice gives identical frames."""
    builder = FrameBuilder()
    first = builder.encode([25, 31, 47])
    second = builder.encode([25, 31, 47])
    assert first == second


def test_shorter_update_resets_previous_values():
    """A later, shorter update resets slots the earlier one had set."""
    builder = FrameBuilder()
    builder.encode(range(1, 17))
    frame = builder.encode([5])
    assert frame == FrameBuilder().encode([5])
    assert decode_frame(frame) == [500] + [None] * 15


def test_extra_values_ignored():
    """Only the first sixteen values are used."""
    builder = FrameBuilder()
    assert builder.encode(range(1, 30)) == REFERENCE_FRAME


def test_encode_accepts_generator():
    """Any iterable works, and only sixteen items are consumed."""
    consumed = []

    def values():
        for v in range(1, 100):
            consumed.append(v)
            yield v

    frame = FrameBuilder().encode(values())
    assert frame == REFERENCE_FRAME
    assert len(consumed) == SENSOR_COUNT


def test_frame_snapshot_is_immutable():
    """The exposed frame is a bytes copy, not the live buffer."""
    builder = FrameBuilder()
    before = builder.frame
    builder.encode([99])
    assert isinstance(before, bytes)
    assert before != builder.frame


def test_encode_sensor_value_in_range():
    """Whole degrees scale to hundredths."""
    assert encode_sensor_value(0) == 0
    assert encode_sensor_value(1) == 100
    assert encode_sensor_value(655) == 65500


def test_wraparound_at_656(caplog):
    """656 * 100 = 65600 wraps to 64 (bytes 00 40) and is logged."""
    with caplog.at_level(logging.WARNING):
        frame = FrameBuilder().encode([656])
    assert frame[1:3] == b"\x00\x40"
    assert verify_frame(frame)
    assert "wraps" in caplog.text


def test_wraparound_large_value():
    """Wraparound is plain modulo 2**16."""
    assert encode_sensor_value(1000) == (1000 * 100) % 0x10000


def test_value_equal_to_sentinel_not_possible_in_range():
    """No in-range value encodes to the unset sentinel."""
    assert all(encode_sensor_value(v) != SENSOR_UNSET for v in range(656))


def test_verify_frame_rejects_bad_checksum():
    """Corrupting the checksum must fail verification."""
    frame = bytearray(FrameBuilder().encode([10]))
    frame[49] ^= 0xFF
    assert not verify_frame(bytes(frame))


def test_verify_frame_rejects_bad_header_and_size():
    """A wrong header or a truncated frame fails verification."""
    frame = bytearray(FrameBuilder().encode([10]))
    frame[0] = 5
    assert not verify_frame(bytes(frame))
    assert not verify_frame(REFERENCE_FRAME[:-1])


def test_decode_frame_reference():
    """Decoding the reference frame yields the raw hundredths."""
    assert decode_frame(REFERENCE_FRAME) == [v * 100 for v in range(1, 17)]


def test_decode_frame_wrong_size():
    """Decoding rejects frames that are not 51 bytes."""
    with pytest.raises(ValueError):
        decode_frame(b"\x04")
