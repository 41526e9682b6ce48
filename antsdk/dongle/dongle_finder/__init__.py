from .core import (
    DongleInfo,
    SERIAL_DEVICES,
    USB_DEVICES,
    find_dongles,
    find_single_dongle,
    is_matching_dongle,
)
from .errors import DongleNotFoundError, MultipleDonglesError

__all__ = [
    "DongleInfo",
    "SERIAL_DEVICES",
    "USB_DEVICES",
    "find_dongles",
    "find_single_dongle",
    "is_matching_dongle",
    "DongleNotFoundError",
    "MultipleDonglesError",
]
