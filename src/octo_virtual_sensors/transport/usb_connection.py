"""USB bulk connection to the Aquacomputer Octo.

Uses ``pyusb`` with the libusb backend. The device is located once by its
vendor/product id; every write claims the interface that owns bulk OUT
endpoint 0x02, sends one frame, and releases it again so no handle is
held between updates.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import usb.core
import usb.util

from ..exceptions import (
    DescriptorReadError,
    DeviceNotFound,
    DeviceOpenError,
    EnumerationError,
    TransferError,
)
from ..protocol.framing import FRAME_SIZE

logger = logging.getLogger(__name__)

VENDOR_ID = 0x0C70  # 3184
PRODUCT_ID = 0xF011  # 61457
EP_OUT = 0x02
WRITE_TIMEOUT_MS = 1000


@dataclass
class DeviceInfo:
    """Basic device identification from USB descriptors."""

    vendor_id: int
    product_id: int
    bus: int | None = None
    address: int | None = None

    @classmethod
    def from_device(cls, device) -> DeviceInfo:
        return cls(
            vendor_id=device.idVendor,
            product_id=device.idProduct,
            bus=getattr(device, "bus", None),
            address=getattr(device, "address", None),
        )

    def to_dict(self) -> dict:
        return {
            "vendor_id": f"{self.vendor_id:#06x}",
            "product_id": f"{self.product_id:#06x}",
            "bus": self.bus,
            "address": self.address,
        }


def _scan() -> Iterator[tuple[object, int, int]]:
    """Yield ``(device, vendor_id, product_id)`` for every attached device.

    A descriptor that cannot be read aborts the whole scan.
    """
    try:
        devices = usb.core.find(find_all=True)
    except (usb.core.NoBackendError, usb.core.USBError) as e:
        raise EnumerationError(f"Could not list USB devices: {e}") from e

    try:
        for device in devices:
            yield device, device.idVendor, device.idProduct
    except usb.core.USBError as e:
        logger.debug("Descriptor read failed during scan: %s", e)
        raise DescriptorReadError(f"Could not read USB device descriptor: {e}") from e


def iter_devices() -> Iterator[DeviceInfo]:
    """Describe every attached USB device."""
    for device, _, _ in _scan():
        yield DeviceInfo.from_device(device)


def find_device(vendor_id: int = VENDOR_ID, product_id: int = PRODUCT_ID):
    """Return the first attached device matching ``vendor_id:product_id``.

    Raises:
        EnumerationError: If the device list cannot be obtained.
        DescriptorReadError: If any scanned device's descriptor is unreadable.
        DeviceNotFound: If no attached device matches.
    """
    for device, vid, pid in _scan():
        logger.debug("Scanned %04x:%04x", vid, pid)
        if vid == vendor_id and pid == product_id:
            logger.info(
                "Found Octo %04x:%04x on bus %s address %s",
                vid,
                pid,
                getattr(device, "bus", "?"),
                getattr(device, "address", "?"),
            )
            return device

    raise DeviceNotFound(
        f"Could not find Aquacomputer Octo ({vendor_id:#06x}:{product_id:#06x}). "
        f"Ensure the device is connected."
    )


class USBTransport:
    """Writes frames to one located device, claiming it only for each write.

    Usage::

        transport = USBTransport(find_device())
        transport.send(frame_bytes)
    """

    def __init__(
        self,
        device,
        endpoint: int = EP_OUT,
        timeout_ms: int = WRITE_TIMEOUT_MS,
    ) -> None:
        self._device = device
        self._endpoint = endpoint
        self._timeout_ms = timeout_ms

    def _find_interface(self) -> int:
        """Return the number of the interface that owns the OUT endpoint."""
        config = self._device.get_active_configuration()
        for interface in config:
            endpoint = usb.util.find_descriptor(
                interface, bEndpointAddress=self._endpoint
            )
            if endpoint is not None:
                return interface.bInterfaceNumber
        raise DeviceOpenError(
            f"No interface exposes endpoint {self._endpoint:#04x}"
        )

    def _detach_kernel_driver(self, interface: int) -> bool:
        try:
            active = self._device.is_kernel_driver_active(interface)
        except NotImplementedError:
            return False
        if active:
            self._device.detach_kernel_driver(interface)
            logger.debug("Detached kernel driver from interface %d", interface)
        return active

    def _close(self, interface: int | None, reattach: bool) -> None:
        # Reattaching reopens the handle, so resources are disposed last
        if interface is not None:
            try:
                usb.util.release_interface(self._device, interface)
            except usb.core.USBError as e:
                logger.warning("Error releasing device: %s", e)

        if reattach:
            try:
                self._device.attach_kernel_driver(interface)
            except usb.core.USBError as e:
                logger.warning("Could not reattach kernel driver: %s", e)

        try:
            usb.util.dispose_resources(self._device)
        except usb.core.USBError as e:
            logger.warning("Error releasing device: %s", e)

    @contextmanager
    def session(self) -> Iterator[object]:
        """Claim the device for the duration of the ``with`` block.

        Raises:
            DeviceOpenError: If the device is gone, busy, or access is denied.
        """
        interface = None
        reattach = False
        try:
            interface = self._find_interface()
            reattach = self._detach_kernel_driver(interface)
            usb.util.claim_interface(self._device, interface)
        except usb.core.USBError as e:
            self._close(interface, reattach)
            raise DeviceOpenError(
                f"Could not open Octo. Ensure you have permissions. Last error: {e}"
            ) from e
        except DeviceOpenError:
            self._close(interface, reattach)
            raise

        try:
            yield self._device
        finally:
            self._close(interface, reattach)

    def send(self, frame: bytes) -> int:
        """Write one frame to the OUT endpoint.

        Args:
            frame: A complete 51-byte frame. It is not modified.

        Returns:
            Number of bytes written.

        Raises:
            ValueError: If the frame has the wrong size.
            DeviceOpenError: If the device cannot be claimed.
            TransferError: If the write fails or times out.
        """
        if len(frame) != FRAME_SIZE:
            raise ValueError(f"Frame must be {FRAME_SIZE} bytes, got {len(frame)}")

        with self.session() as device:
            try:
                written = device.write(
                    self._endpoint, bytes(frame), timeout=self._timeout_ms
                )
            except usb.core.USBTimeoutError as e:
                raise TransferError(
                    f"Bulk write to Octo timed out after {self._timeout_ms} ms",
                    timed_out=True,
                ) from e
            except usb.core.USBError as e:
                raise TransferError(f"Bulk write to Octo failed: {e}") from e

        if written != len(frame):
            logger.warning("Short write: %d of %d bytes", written, len(frame))
        logger.debug("Sent %d bytes: %s", written, bytes(frame).hex(" "))
        return written
