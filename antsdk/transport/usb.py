"""USB bulk endpoint for ANT USB2-class sticks.

The stick exposes one vendor interface with a bulk OUT endpoint (0x01) and a
bulk IN endpoint (0x81). Access goes through pyusb/libusb.
"""
from __future__ import annotations

import logging
from typing import Optional

import usb.core
import usb.util

from ..errors import TransportError
from .base import Endpoint

logger = logging.getLogger(__name__)

ANT_VID = 0x0FCF
USB2_PID = 0x1008
USB_M_PID = 0x1009

INTERFACE = 0
EP_OUT = 0x01
EP_IN = 0x81


def _to_ms(timeout: float) -> int:
    # pyusb treats 0 as "wait forever"
    return max(1, int(timeout * 1000))


class UsbEndpoint(Endpoint):
    """Bulk endpoint pair of an ANT stick.

    Example:
        >>> endpoint = UsbEndpoint(vid=0x0FCF, pid=0x1008)
        >>> endpoint.open()
        >>> endpoint.write(b"\\xa4\\x01\\x4a\\x00\\xef", timeout=0.1)
        5
        >>> endpoint.close()
    """

    def __init__(self,
                 vid: int = ANT_VID,
                 pid: int = USB2_PID,
                 device: Optional[usb.core.Device] = None,
                 interface: int = INTERFACE,
                 ep_out: int = EP_OUT,
                 ep_in: int = EP_IN):
        """Initialize the endpoint.

        Args:
            vid: USB vendor id to look for when device is None
            pid: USB product id to look for when device is None
            device: Already enumerated pyusb device, or None to search
            interface: Interface number to claim
            ep_out: Bulk OUT endpoint address
            ep_in: Bulk IN endpoint address
        """
        self._vid = vid
        self._pid = pid
        self._device = device
        self._interface = interface
        self._ep_out = ep_out
        self._ep_in = ep_in
        self._claimed = False

    def open(self) -> None:
        if self._claimed:
            return

        if self._device is None:
            self._device = usb.core.find(idVendor=self._vid, idProduct=self._pid)
            if self._device is None:
                raise TransportError(f"USB device {self._vid:04X}:{self._pid:04X} not found")

        dev = self._device
        try:
            try:
                if dev.is_kernel_driver_active(self._interface):
                    dev.detach_kernel_driver(self._interface)
            except NotImplementedError:
                # Not supported by every backend (e.g. on Windows)
                pass
            dev.set_configuration()
            usb.util.claim_interface(dev, self._interface)
        except usb.core.USBError as e:
            raise TransportError(f"Unable to claim USB interface: {e}") from e

        self._claimed = True
        logger.info(f"Claimed USB device {self._vid:04X}:{self._pid:04X} interface {self._interface}")

    def close(self) -> None:
        if not self._claimed:
            return
        self._claimed = False

        try:
            usb.util.release_interface(self._device, self._interface)
        except usb.core.USBError as e:
            logger.error(f"Error releasing USB interface: {e}")
        finally:
            usb.util.dispose_resources(self._device)
        logger.info("Released USB device")

    def is_open(self) -> bool:
        return self._claimed

    def write(self, data: bytes, timeout: float) -> int:
        if not self._claimed:
            raise TransportError("Endpoint is not open")
        try:
            return self._device.write(self._ep_out, data, timeout=_to_ms(timeout))
        except usb.core.USBTimeoutError:
            return 0
        except usb.core.USBError as e:
            raise TransportError(f"USB write failed: {e}") from e

    def read(self, size: int, timeout: float) -> bytes:
        if not self._claimed:
            raise TransportError("Endpoint is not open")
        try:
            return bytes(self._device.read(self._ep_in, size, timeout=_to_ms(timeout)))
        except usb.core.USBTimeoutError:
            return b""
        except usb.core.USBError as e:
            raise TransportError(f"USB read failed: {e}") from e
