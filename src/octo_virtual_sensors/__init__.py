"""Set the virtual temperature sensors of an Aquacomputer Octo over USB."""

from .exceptions import (
    DescriptorReadError,
    DeviceNotFound,
    DeviceOpenError,
    DiscoveryError,
    EnumerationError,
    OctoError,
    TransferError,
)
from .octo import Octo

__version__ = "0.1.0"
