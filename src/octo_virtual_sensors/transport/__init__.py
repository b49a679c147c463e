"""Transport layer: USB discovery and bulk writes."""

from .usb_connection import DeviceInfo, USBTransport, find_device, iter_devices
