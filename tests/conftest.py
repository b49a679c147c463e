"""Shared fixtures: fake pyusb devices so no real hardware is needed."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from octo_virtual_sensors.protocol.framing import FRAME_SIZE
from octo_virtual_sensors.transport.usb_connection import PRODUCT_ID, VENDOR_ID


class FakeInterface(list):
    """An interface descriptor: iterable over its endpoints."""

    def __init__(self, number: int, endpoints: list) -> None:
        super().__init__(endpoints)
        self.bInterfaceNumber = number


def _make_device(
    vendor_id: int = VENDOR_ID,
    product_id: int = PRODUCT_ID,
    bus: int = 1,
    address: int = 5,
) -> MagicMock:
    device = MagicMock()
    device.idVendor = vendor_id
    device.idProduct = product_id
    device.bus = bus
    device.address = address
    device.get_active_configuration.return_value = [
        FakeInterface(0, [SimpleNamespace(bEndpointAddress=0x81)]),
        FakeInterface(
            1,
            [
                SimpleNamespace(bEndpointAddress=0x02),
                SimpleNamespace(bEndpointAddress=0x82),
            ],
        ),
    ]
    device.is_kernel_driver_active.return_value = False
    device.write.return_value = FRAME_SIZE
    return device


@pytest.fixture
def make_device():
    """Factory for fake pyusb devices whose OUT endpoint 0x02 is on interface 1."""
    return _make_device


@pytest.fixture
def usb_util():
    """Patch the pyusb claim/release helpers."""
    with patch("usb.util.claim_interface") as claim, patch(
        "usb.util.release_interface"
    ) as release, patch("usb.util.dispose_resources") as dispose:
        yield SimpleNamespace(claim=claim, release=release, dispose=dispose)
