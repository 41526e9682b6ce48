"""Serial endpoint for ANT USB1-class sticks.

Older sticks (VID=0x0FCF, PID=0x1004) carry the ANT serial protocol over a
CP210x USB-UART bridge, so they show up as a serial port rather than a raw
bulk device. Access goes through pyserial.
"""
from __future__ import annotations

import logging
from typing import Optional

import serial

from ..errors import TransportError
from .base import Endpoint

logger = logging.getLogger(__name__)

CONNECTION_BAUD = 115_200


class SerialEndpoint(Endpoint):
    """ANT stick behind a USB serial bridge.

    Example:
        >>> endpoint = SerialEndpoint(port="/dev/ttyUSB0")
        >>> endpoint.open()
        >>> endpoint.read(64, timeout=0.1)
        b''
        >>> endpoint.close()
    """

    def __init__(self, port: str, baudrate: int = CONNECTION_BAUD):
        """Initialize serial endpoint.

        Args:
            port: Serial port path (e.g. '/dev/ttyUSB0', 'COM3')
            baudrate: Serial baud rate (default 115200)
        """
        self._port = port
        self._baudrate = baudrate
        self._serial: Optional[serial.Serial] = None

    def open(self) -> None:
        if self._serial is not None:
            return

        try:
            self._serial = serial.Serial(
                port=self._port,
                baudrate=self._baudrate,
                timeout=0,
                write_timeout=0.1,
            )
            self._serial.reset_input_buffer()
            self._serial.reset_output_buffer()
        except serial.SerialException as e:
            self._serial = None
            raise TransportError(f"Failed to open {self._port}: {e}") from e

        logger.info(f"Opened {self._port} @ {self._baudrate} baud")

    def close(self) -> None:
        if self._serial is None:
            return

        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.error(f"Error closing serial port: {e}")
        finally:
            self._serial = None
        logger.info(f"Closed {self._port}")

    def is_open(self) -> bool:
        return self._serial is not None

    def write(self, data: bytes, timeout: float) -> int:
        port = self._require_open()
        try:
            port.write_timeout = timeout
            written = port.write(data)
            port.flush()
            return written or 0
        except serial.SerialTimeoutException:
            return 0
        except serial.SerialException as e:
            raise TransportError(f"Serial write failed: {e}") from e

    def read(self, size: int, timeout: float) -> bytes:
        port = self._require_open()
        try:
            # Block for the first byte only, then take what is already buffered
            port.timeout = timeout
            data = port.read(1)
            if not data:
                return b""
            waiting = min(port.in_waiting, size - 1)
            if waiting > 0:
                data += port.read(waiting)
            return data
        except serial.SerialException as e:
            raise TransportError(f"Serial read failed: {e}") from e

    def _require_open(self) -> serial.Serial:
        if self._serial is None:
            raise TransportError("Endpoint is not open")
        return self._serial
