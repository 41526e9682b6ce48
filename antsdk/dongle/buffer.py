"""Stream buffer implementation for the Dongle layer.

Provides a thread-safe byte buffer that reassembles frames from USB reads,
with drop-oldest behavior on overflow.
"""
import logging
import threading
from typing import List

from ..protocol.frame import split_frames

logger = logging.getLogger(__name__)


class StreamBuffer:
    """Thread-safe byte buffer that hands out complete raw frames."""

    def __init__(self, max_size: int = 64 * 1024):
        """Initialize buffer.

        Args:
            max_size: Maximum buffer size in bytes. If exceeded, oldest data is dropped.
        """
        self._max_size = max_size
        self._buffer = bytearray()
        self._lock = threading.Lock()
        self._overflow_count = 0

    def write(self, data: bytes) -> None:
        """Append data read from the device.

        If the buffer becomes full, oldest data is dropped to make room.
        """
        if not data:
            return

        with self._lock:
            if len(data) >= self._max_size:
                self._buffer = bytearray(data[-self._max_size:])
                self._overflow_count += 1
                logger.warning("Buffer overflow: Input chunk larger than buffer, data lost.")
                return

            new_len = len(self._buffer) + len(data)
            if new_len > self._max_size:
                drop_count = new_len - self._max_size
                del self._buffer[:drop_count]
                self._overflow_count += 1
                if self._overflow_count % 100 == 1:
                    logger.warning(f"Buffer overflow: Dropped {drop_count} bytes of old data.")

            self._buffer.extend(data)

    def prepend(self, data: bytes) -> None:
        """Put bytes back in front of the buffer (e.g. a frame read too early)."""
        if not data:
            return
        with self._lock:
            self._buffer[:0] = data

    def read_frames(self) -> List[bytes]:
        """Remove and return every complete raw frame in the buffer.

        An incomplete trailing frame stays buffered until more bytes arrive.

        Returns:
            Raw frames in arrival order (not yet validated).
        """
        with self._lock:
            if not self._buffer:
                return []
            frames, remainder = split_frames(bytes(self._buffer))
            self._buffer = bytearray(remainder)
            return frames

    @property
    def size(self) -> int:
        """Current number of bytes in buffer."""
        with self._lock:
            return len(self._buffer)

    @property
    def overflow_count(self) -> int:
        return self._overflow_count

    def clear(self) -> None:
        """Clear buffer."""
        with self._lock:
            self._buffer.clear()
