from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import usb.core
import usb.util
from serial.tools import list_ports

from ...transport.base import Endpoint
from ...transport.serial import SerialEndpoint
from ...transport.usb import ANT_VID, USB2_PID, USB_M_PID, UsbEndpoint
from .errors import DongleNotFoundError, MultipleDonglesError

logger = logging.getLogger(__name__)

USB1_PID = 0x1004

# Sticks driven through libusb bulk endpoints
USB_DEVICES: Tuple[Tuple[int, int], ...] = (
    (ANT_VID, USB2_PID),   # Dynastream ANTUSB2
    (ANT_VID, USB_M_PID),  # Garmin ANT+ USB-m
)

# Sticks behind a CP210x USB serial bridge
SERIAL_DEVICES: Tuple[Tuple[int, int], ...] = (
    (ANT_VID, USB1_PID),   # Dynastream ANTUSB (USB1)
)

KIND_USB = "usb"
KIND_SERIAL = "serial"


@dataclass(frozen=True)
class DongleInfo:
    """
    Representation of one ANT stick found on this machine.

    Attributes:
        kind: 'usb' for bulk-endpoint sticks, 'serial' for USB1 serial sticks.
        vid: USB Vendor ID.
        pid: USB Product ID.
        location: Serial port name, or 'bus:address' for bulk sticks.
        serial_number: USB serial string, if available.
        product: USB product string, if available.
        device: The pyusb device object for bulk sticks (None for serial).
    """
    kind: str
    vid: int
    pid: int
    location: str
    serial_number: Optional[str] = None
    product: Optional[str] = None
    device: Optional[object] = None

    @property
    def device_id(self) -> str:
        """
        OS-agnostic identifier for the dongle.

        Prefer the USB serial_number; fall back to the location.
        """
        if self.serial_number:
            return self.serial_number
        return self.location

    def create_endpoint(self) -> Endpoint:
        """Build the endpoint that talks to this stick (not yet opened)."""
        if self.kind == KIND_SERIAL:
            return SerialEndpoint(port=self.location)
        return UsbEndpoint(vid=self.vid, pid=self.pid, device=self.device)


def _usb_string(device, index) -> Optional[str]:
    if not index:
        return None
    try:
        return usb.util.get_string(device, index)
    except (usb.core.USBError, ValueError, NotImplementedError):
        # Reading strings needs access rights the process may not have
        return None


def _usb_to_info(device) -> DongleInfo:
    """Convert a pyusb device to DongleInfo."""
    return DongleInfo(
        kind=KIND_USB,
        vid=device.idVendor,
        pid=device.idProduct,
        location=f"{device.bus}:{device.address}",
        serial_number=_usb_string(device, device.iSerialNumber),
        product=_usb_string(device, device.iProduct),
        device=device,
    )


def _port_to_info(port) -> DongleInfo:
    """Convert pyserial's ListPortInfo to DongleInfo."""
    return DongleInfo(
        kind=KIND_SERIAL,
        vid=port.vid,
        pid=port.pid,
        location=port.device,
        serial_number=port.serial_number,
        product=port.product,
    )


def is_matching_dongle(
    info: DongleInfo,
    *,
    expected_vid: Optional[int] = None,
    expected_pid: Optional[int] = None,
    serial_prefix: Optional[str] = None,
) -> bool:
    """
    Decide whether a given DongleInfo describes a stick we want.

    All checks are AND-combined; if a criterion is None, it is ignored.
    Without any criteria, every known ANT stick matches.
    """
    if (info.vid, info.pid) not in USB_DEVICES + SERIAL_DEVICES:
        return False

    if expected_vid is not None and info.vid != expected_vid:
        return False

    if expected_pid is not None and info.pid != expected_pid:
        return False

    if serial_prefix is not None:
        if not info.serial_number:
            return False
        if not info.serial_number.startswith(serial_prefix):
            return False

    return True


def _enumerate() -> List[DongleInfo]:
    found: List[DongleInfo] = []

    for device in usb.core.find(
        find_all=True,
        custom_match=lambda d: (d.idVendor, d.idProduct) in USB_DEVICES,
    ):
        found.append(_usb_to_info(device))

    for port in list_ports.comports():
        if (port.vid, port.pid) in SERIAL_DEVICES:
            found.append(_port_to_info(port))

    return found


def find_dongles(
    *,
    matcher: Optional[Callable[[DongleInfo], bool]] = None,
    expected_vid: Optional[int] = None,
    expected_pid: Optional[int] = None,
    serial_prefix: Optional[str] = None,
) -> List[DongleInfo]:
    """
    Find all ANT sticks connected to this machine.

    You can either pass a custom `matcher(info) -> bool` or use the
    built-in criteria (expected_vid / expected_pid / serial_prefix).

    Returns:
        List of DongleInfo objects.
    """
    results: List[DongleInfo] = []

    for info in _enumerate():
        if matcher is not None:
            if matcher(info):
                results.append(info)
        elif is_matching_dongle(
            info,
            expected_vid=expected_vid,
            expected_pid=expected_pid,
            serial_prefix=serial_prefix,
        ):
            results.append(info)

    return results


def find_single_dongle(
    *,
    matcher: Optional[Callable[[DongleInfo], bool]] = None,
    expected_vid: Optional[int] = None,
    expected_pid: Optional[int] = None,
    serial_prefix: Optional[str] = None,
) -> DongleInfo:
    """
    Find exactly one ANT stick.

    Behaviour:
        - 0 matches  -> DongleNotFoundError
        - 1 match    -> return it
        - >1 matches -> log error and raise MultipleDonglesError
    """
    matches = find_dongles(
        matcher=matcher,
        expected_vid=expected_vid,
        expected_pid=expected_pid,
        serial_prefix=serial_prefix,
    )

    if not matches:
        raise DongleNotFoundError("No ANT dongle found")

    if len(matches) > 1:
        logger.error(
            "Multiple ANT dongles found; refusing to choose automatically. "
            "Devices: %s",
            matches,
        )
        raise MultipleDonglesError(
            f"Multiple ANT dongles found ({len(matches)} devices)",
            devices=matches,
        )

    return matches[0]
