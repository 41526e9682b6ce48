"""Protocol layer: frame codec and message catalog for the ANT USB link."""

from .frame import Frame, SYNC, checksum, split_frames
from .parser import MessageParser
from .serializer import MessageSerializer

__all__ = [
    "Frame",
    "SYNC",
    "checksum",
    "split_frames",
    "MessageParser",
    "MessageSerializer",
]
