"""ANT SDK - host driver for ANT USB radio sticks."""

from .errors import (
    AntError,
    ChannelStateError,
    DeviceClosedError,
    DeviceRejectedError,
    FrameError,
    ResponseTimeoutError,
    TransportError,
)
from .models import (
    BroadcastData,
    Capabilities,
    ChannelId,
    ChannelResponseEvent,
    ChannelType,
    MessageCode,
    MessageId,
    MessageType,
)
from .dongle import Channel, ChannelState, Dongle

__all__ = [
    "BroadcastData",
    "Capabilities",
    "ChannelId",
    "ChannelResponseEvent",
    "ChannelType",
    "MessageCode",
    "MessageId",
    "MessageType",
    "Channel",
    "ChannelState",
    "Dongle",
    "AntError",
    "ChannelStateError",
    "DeviceClosedError",
    "DeviceRejectedError",
    "FrameError",
    "ResponseTimeoutError",
    "TransportError",
]
