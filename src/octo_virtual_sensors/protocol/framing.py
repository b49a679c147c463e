"""Virtual sensor frame builder for the Aquacomputer Octo.

Frame layout (51 bytes)::

    +--------+----------------------------+-------------------+----------+
    | Header |   Sensor slots 1..16       |  Trailer          | Checksum |
    | 1 byte |   16 x 2 bytes, big-endian |  16 bytes, opaque | 2 bytes  |
    +--------+----------------------------+-------------------+----------+

- Header: always 0x04
- Sensor slot: temperature in hundredths of a degree, or 0x7FFF when unset
- Trailer: fixed configuration bytes, sent verbatim
- Checksum: CRC-16/USB over slots + trailer, big-endian
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from itertools import islice

from ..utils.crc import crc16_usb

logger = logging.getLogger(__name__)

FRAME_SIZE = 51
HEADER_BYTE = 0x04
HEADER_SIZE = 1
SENSOR_COUNT = 16
SENSOR_SLOT_SIZE = 2
SENSOR_UNSET = 0x7FFF  # 32767
SENSOR_SCALE = 100
CHECKSUM_OFFSET = 49
CHECKSUM_SIZE = 2
TRAILER = bytes([0, 0, 0, 0, 3, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0])

SENSOR_OFFSET = HEADER_SIZE
TRAILER_OFFSET = SENSOR_OFFSET + SENSOR_COUNT * SENSOR_SLOT_SIZE  # 33


def _template() -> bytearray:
    unset = SENSOR_UNSET.to_bytes(SENSOR_SLOT_SIZE, "big")
    frame = bytearray([HEADER_BYTE])
    frame += unset * SENSOR_COUNT
    frame += TRAILER
    frame += b"\xFF\xFF"  # placeholder until the first encode
    return frame


def encode_sensor_value(value: int) -> int:
    """Scale a temperature to hundredths of a degree as an unsigned 16-bit int.

    Products above 0xFFFF wrap around, so 656 encodes as 64. Inputs in
    ``0..655`` are exact.
    """
    encoded = value * SENSOR_SCALE
    if not 0 <= encoded <= 0xFFFF:
        logger.warning(
            "Sensor value %d out of range, wraps to %d", value, encoded & 0xFFFF
        )
    return encoded & 0xFFFF


def checksum(data: bytes) -> int:
    """CRC-16/USB over the sensor and trailer area (frame bytes 1..48)."""
    return crc16_usb(data)


def verify_frame(frame: bytes) -> bool:
    """Check the size, header and checksum of a complete frame."""
    if len(frame) != FRAME_SIZE or frame[0] != HEADER_BYTE:
        return False
    expected = int.from_bytes(
        frame[CHECKSUM_OFFSET : CHECKSUM_OFFSET + CHECKSUM_SIZE], "big"
    )
    return checksum(frame[HEADER_SIZE:CHECKSUM_OFFSET]) == expected


def decode_frame(frame: bytes) -> list[int | None]:
    """Return the raw encoded slot values of a frame, ``None`` for unset slots.

    Values are in hundredths of a degree as they appear on the wire.
    """
    if len(frame) != FRAME_SIZE:
        raise ValueError(f"Frame must be {FRAME_SIZE} bytes, got {len(frame)}")

    slots: list[int | None] = []
    for index in range(SENSOR_COUNT):
        offset = SENSOR_OFFSET + SENSOR_SLOT_SIZE * index
        raw = int.from_bytes(frame[offset : offset + SENSOR_SLOT_SIZE], "big")
        slots.append(None if raw == SENSOR_UNSET else raw)
    return slots


class FrameBuilder:
    """Owns the 51-byte frame and rewrites it in place on every encode.

    Usage::

        builder = FrameBuilder()
        frame = builder.encode([35, 42])
    """

    def __init__(self) -> None:
        self._buffer = _template()

    @property
    def frame(self) -> bytes:
        """Immutable snapshot of the current frame."""
        return bytes(self._buffer)

    def encode(self, values: Iterable[int]) -> bytes:
        """Write up to 16 sensor values into the frame and reseal it.

        Slots without a value are reset to unset, so the same input
        always gives the same frame. Values past the 16th are ignored.

        Args:
            values: Temperatures in whole degrees; ``values[i]`` drives
                virtual sensor ``i + 1``.

        Returns:
            The updated frame.
        """
        given = list(islice(values, SENSOR_COUNT))

        for index in range(SENSOR_COUNT):
            if index < len(given):
                encoded = encode_sensor_value(given[index])
            else:
                encoded = SENSOR_UNSET
            offset = SENSOR_OFFSET + SENSOR_SLOT_SIZE * index
            self._buffer[offset : offset + SENSOR_SLOT_SIZE] = encoded.to_bytes(
                SENSOR_SLOT_SIZE, "big"
            )

        crc = checksum(bytes(self._buffer[HEADER_SIZE:CHECKSUM_OFFSET]))
        self._buffer[CHECKSUM_OFFSET : CHECKSUM_OFFSET + CHECKSUM_SIZE] = crc.to_bytes(
            CHECKSUM_SIZE, "big"
        )
        return self.frame
