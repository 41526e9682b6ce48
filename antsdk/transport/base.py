"""Abstract base class for the byte-stream link to an ANT dongle.

The Endpoint interface hides how bytes reach the dongle. Implementations
can be USB bulk endpoints, a USB serial bridge, or a scripted fake in tests.

Key principles:
- Raw bytes only (framing belongs to the protocol layer)
- Bounded reads: read() never blocks past its timeout
- Explicit lifecycle: open() claims the device, close() releases it
"""
from __future__ import annotations

from abc import ABC, abstractmethod


class Endpoint(ABC):
    """Abstract byte-stream endpoint.

    Endpoints are responsible for:
    1. Claiming and releasing the underlying device
    2. Writing raw bytes and reporting how many were accepted
    3. Reading whatever bytes arrive within a timeout

    Implementations raise TransportError for unrecoverable link failures.
    """

    @abstractmethod
    def open(self) -> None:
        """Claim the device. Calling open() on an open endpoint is a no-op."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the device.

        Should be safe to call multiple times.
        """
        pass

    @abstractmethod
    def is_open(self) -> bool:
        pass

    @abstractmethod
    def write(self, data: bytes, timeout: float) -> int:
        """Write raw bytes to the dongle.

        Args:
            data: Bytes to send
            timeout: Seconds to wait for the device to accept the data

        Returns:
            Number of bytes written
        """
        pass

    @abstractmethod
    def read(self, size: int, timeout: float) -> bytes:
        """Read up to size bytes.

        Args:
            size: Maximum number of bytes to return
            timeout: Seconds to wait for data

        Returns:
            0..size bytes; b"" if nothing arrived before the timeout
        """
        pass

    def __enter__(self) -> Endpoint:
        """Context manager support - open on enter."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager support - close on exit."""
        self.close()
