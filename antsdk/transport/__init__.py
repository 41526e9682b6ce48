"""Transport layer: byte-stream endpoints for ANT dongles."""

from .base import Endpoint
from .serial import SerialEndpoint
from .usb import UsbEndpoint

__all__ = ["Endpoint", "SerialEndpoint", "UsbEndpoint"]
