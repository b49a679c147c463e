"""CRC-16/USB checksum used to seal the virtual sensor frame.

Parameters: poly 0x8005 (reflected 0xA001), init 0xFFFF, reflected
input/output, final XOR 0xFFFF. Check value for ``b"123456789"`` is 0xB4C8.
"""

from __future__ import annotations

CRC16_USB_POLY = 0xA001
CRC16_USB_INIT = 0xFFFF
CRC16_USB_XOROUT = 0xFFFF


def _build_table() -> tuple[int, ...]:
    table = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            crc = (crc >> 1) ^ CRC16_USB_POLY if crc & 1 else crc >> 1
        table.append(crc)
    return tuple(table)


_CRC16_TABLE = _build_table()


def crc16_usb(data: bytes) -> int:
    """Calculate the CRC-16/USB of ``data``.

    Args:
        data: Bytes to checksum.

    Returns:
        16-bit checksum as an int.
    """
    crc = CRC16_USB_INIT
    for b in data:
        crc = (crc >> 8) ^ _CRC16_TABLE[(crc ^ b) & 0xFF]
    return crc ^ CRC16_USB_XOROUT
