"""Exceptions raised while locating, opening, and writing to the Octo.

Every error carries a ``stage`` so callers can tell discovery failures
apart from open and transfer failures without string matching.
"""

from __future__ import annotations

STAGE_DISCOVERY = "discovery"
STAGE_OPEN = "open"
STAGE_TRANSFER = "transfer"


class OctoError(Exception):
    """Base class for all Octo errors."""

    stage: str = ""


class DiscoveryError(OctoError, ConnectionError):
    """The device could not be located on the USB bus."""

    stage = STAGE_DISCOVERY


class DeviceNotFound(DiscoveryError):
    """No attached device matched the vendor/product id pair."""


class DescriptorReadError(DiscoveryError):
    """A device descriptor could not be read while scanning the bus."""


class EnumerationError(DiscoveryError):
    """The list of attached USB devices could not be obtained."""


class DeviceOpenError(OctoError, ConnectionError):
    """The device is present but could not be opened or claimed."""

    stage = STAGE_OPEN


class TransferError(OctoError, IOError):
    """The bulk write failed or timed out."""

    stage = STAGE_TRANSFER

    def __init__(self, message: str, timed_out: bool = False) -> None:
        super().__init__(message)
        self.timed_out = timed_out
