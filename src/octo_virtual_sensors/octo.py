"""Controller for the Octo's virtual temperature sensors.

Usage::

    octo = Octo()
    octo.update_virtual_sensors([35, 42, 28])

Not thread-safe: callers sharing one ``Octo`` must serialize calls.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .protocol.framing import FrameBuilder
from .transport.usb_connection import (
    EP_OUT,
    PRODUCT_ID,
    VENDOR_ID,
    WRITE_TIMEOUT_MS,
    DeviceInfo,
    USBTransport,
    find_device,
)

logger = logging.getLogger(__name__)


class Octo:
    """Owns one Octo device and the frame that drives its virtual sensors."""

    def __init__(
        self,
        vendor_id: int = VENDOR_ID,
        product_id: int = PRODUCT_ID,
        device=None,
        endpoint: int = EP_OUT,
        timeout_ms: int = WRITE_TIMEOUT_MS,
    ) -> None:
        """Locate the device and prepare the frame template.

        Args:
            vendor_id: USB vendor id to match.
            product_id: USB product id to match.
            device: An already located pyusb device; skips discovery.
            endpoint: Bulk OUT endpoint address.
            timeout_ms: Write timeout in milliseconds.

        Raises:
            DiscoveryError: If the device cannot be located.
        """
        if device is None:
            device = find_device(vendor_id, product_id)
        self._transport = USBTransport(device, endpoint=endpoint, timeout_ms=timeout_ms)
        self._builder = FrameBuilder()
        self._device_info = DeviceInfo.from_device(device)

    @property
    def device_info(self) -> DeviceInfo:
        return self._device_info

    @property
    def frame(self) -> bytes:
        """The frame as last encoded (or the template before any update)."""
        return self._builder.frame

    def update_virtual_sensors(self, values: Iterable[int]) -> int:
        """Set the virtual sensors and send them to the device.

        ``values[i]`` drives virtual sensor ``i + 1``; sensors without a
        value are reset to unset.

        Returns:
            Number of bytes written.

        Raises:
            DeviceOpenError: If the device cannot be claimed.
            TransferError: If the bulk write fails or times out.
        """
        frame = self._builder.encode(values)
        return self._transport.send(frame)
