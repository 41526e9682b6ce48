"""Binary frame codec for the ANT USB link.

Wire format::

    SYNC(0xA4) | length L | message id | payload (L bytes) | checksum

The checksum is the XOR of every preceding byte (sync, length, id, payload).
Pure functions with no side effects.
"""
from __future__ import annotations

import logging
import operator
from dataclasses import dataclass
from functools import reduce
from typing import List, Optional, Tuple

from ..errors import (
    BadSyncError,
    ChecksumMismatchError,
    PayloadTooLargeError,
    TruncatedFrameError,
    UnknownTypeError,
)
from ..models import MessageId

logger = logging.getLogger(__name__)

SYNC = 0xA4
SYNC_BYTE = bytes((SYNC,))
HEADER_SIZE = 3
OVERHEAD = HEADER_SIZE + 1  # header + checksum
MAX_PAYLOAD = 0xFF


def checksum(data: bytes) -> int:
    """XOR of all bytes in data."""
    return reduce(operator.xor, data, 0)


@dataclass(frozen=True)
class Frame:
    """One complete ANT message.

    Attributes:
        message_id: Message type id
        payload: Message payload (0..255 bytes)
    """
    message_id: MessageId
    payload: bytes = b""

    @classmethod
    def create(cls, message_id: int, payload: bytes = b"") -> Frame:
        """Build an outbound frame.

        Raises:
            PayloadTooLargeError: payload does not fit the one byte length field
            UnknownTypeError: message_id is not a recognised type
        """
        payload = bytes(payload)
        if len(payload) > MAX_PAYLOAD:
            raise PayloadTooLargeError(
                f"Payload of {len(payload)} bytes exceeds {MAX_PAYLOAD}"
            )
        try:
            message_id = MessageId(message_id)
        except ValueError:
            raise UnknownTypeError(f"Unknown message id 0x{message_id:02X}") from None
        return cls(message_id=message_id, payload=payload)

    @classmethod
    def decode(cls, raw: bytes) -> Frame:
        """Parse a raw frame received from the wire.

        Bytes past the declared length are ignored.

        Raises:
            BadSyncError: first byte is not SYNC
            UnknownTypeError: message id is not recognised
            TruncatedFrameError: fewer bytes than the length field requires
            ChecksumMismatchError: trailing byte is not the XOR of the others
        """
        raw = bytes(raw)
        if not raw or raw[0] != SYNC:
            raise BadSyncError("Frame does not start with SYNC byte")
        if len(raw) < HEADER_SIZE:
            raise TruncatedFrameError(f"Frame header incomplete ({len(raw)} bytes)")

        try:
            message_id = MessageId(raw[2])
        except ValueError:
            raise UnknownTypeError(f"Unknown message id 0x{raw[2]:02X}") from None

        length = raw[1]
        frame_size = length + OVERHEAD
        if len(raw) < frame_size:
            raise TruncatedFrameError(
                f"Frame declares {length} payload bytes but only {len(raw)} bytes present"
            )

        raw = raw[:frame_size]
        expected = checksum(raw[:-1])
        if raw[-1] != expected:
            raise ChecksumMismatchError(
                f"Checksum 0x{raw[-1]:02X} does not match computed 0x{expected:02X}"
            )

        return cls(message_id=message_id, payload=raw[HEADER_SIZE:-1])

    def to_bytes(self) -> bytes:
        header = bytes((SYNC, len(self.payload), int(self.message_id)))
        body = header + self.payload
        return body + bytes((checksum(body),))

    def __bytes__(self) -> bytes:
        return self.to_bytes()

    def __len__(self) -> int:
        return len(self.payload) + OVERHEAD


_KNOWN_IDS = frozenset(int(m) for m in MessageId)


def _frame_size_at(data: bytes, pos: int) -> Optional[int]:
    """Size of the valid frame starting at pos.

    Returns 0 while the frame is still incomplete and None if the bytes at pos
    cannot start a valid frame (unknown type or bad checksum).
    """
    available = len(data) - pos
    if available < HEADER_SIZE:
        return 0
    if data[pos + 2] not in _KNOWN_IDS:
        return None
    size = data[pos + 1] + OVERHEAD
    if available < size:
        return 0
    if checksum(data[pos:pos + size - 1]) != data[pos + size - 1]:
        return None
    return size


def _next_complete_frame(data: bytes, start: int) -> Optional[int]:
    """Position of the first complete, valid frame at or after start."""
    pos = data.find(SYNC_BYTE, start)
    while pos != -1:
        if _frame_size_at(data, pos):
            return pos
        pos = data.find(SYNC_BYTE, pos + 1)
    return None


def split_frames(data: bytes) -> Tuple[List[bytes], bytes]:
    """Slice a byte stream into validated raw frames.

    A single USB read may hold zero, one or several frames back to back.
    A SYNC byte only starts a frame if the type byte is known and the
    checksum matches; otherwise that one byte is skipped and the scan resumes
    at the next SYNC. An incomplete candidate is held back for more bytes
    unless a complete valid frame follows it, in which case the candidate
    was noise.

    Args:
        data: Bytes read from the device, possibly ending mid-frame

    Returns:
        (frames, remainder) where remainder is an incomplete trailing frame
    """
    frames: List[bytes] = []
    pos = 0
    end = len(data)
    skipped = 0

    while pos < end:
        if data[pos] != SYNC:
            nxt = data.find(SYNC_BYTE, pos)
            if nxt == -1:
                skipped += end - pos
                pos = end
                break
            skipped += nxt - pos
            pos = nxt
            continue

        size = _frame_size_at(data, pos)
        if size is None:
            skipped += 1
            pos += 1
            continue
        if size == 0:
            resync = _next_complete_frame(data, pos + 1)
            if resync is None:
                break
            skipped += resync - pos
            pos = resync
            continue

        frames.append(bytes(data[pos:pos + size]))
        pos += size

    if skipped:
        logger.warning(f"Skipped {skipped} bytes of noise while looking for frames")

    return frames, bytes(data[pos:])
