"""Shared helpers."""

from .crc import crc16_usb
