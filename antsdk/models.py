"""Immutable data models for ANT messages.

All models are frozen dataclasses so they can be handed from the reader
thread to application threads without copying. Numeric fields keep the raw
values from the wire; the enums here are used for naming and comparison.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Type, TypeVar, Union

# Value of the message id field of a channel event (as opposed to a response)
EVENT_MESSAGE_ID = 0x01


class MessageId(IntEnum):
    """Message type ids understood by the driver."""
    # Configuration
    UNASSIGN_CHANNEL = 0x41
    ASSIGN_CHANNEL = 0x42
    CHANNEL_ID = 0x51
    CHANNEL_PERIOD = 0x43
    CHANNEL_SEARCH_TIMEOUT = 0x44
    CHANNEL_RF_FREQUENCY = 0x45
    SET_NETWORK_KEY = 0x46
    LOW_PRIORITY_SEARCH_TIMEOUT = 0x63

    # Notification
    STARTUP = 0x6F

    # Control
    RESET = 0x4A
    OPEN_CHANNEL = 0x4B
    CLOSE_CHANNEL = 0x4C
    REQUEST = 0x4D

    # Data
    BROADCAST_DATA = 0x4E

    # Channel
    CHANNEL_RESPONSE_EVENT = 0x40

    # Request/response
    CAPABILITIES = 0x54


class ChannelType(IntEnum):
    RECEIVE = 0x00
    TRANSMIT = 0x10
    SHARED_RECEIVE = 0x20
    SHARED_TRANSMIT = 0x30
    RECEIVE_ONLY = 0x40
    TRANSMIT_ONLY = 0x50


class MessageCode(IntEnum):
    """Response and event codes reported in channel response/event messages."""
    RESPONSE_NO_ERROR = 0x00
    EVENT_RX_SEARCH_TIMEOUT = 0x01
    EVENT_RX_FAIL = 0x02
    EVENT_TX = 0x03
    EVENT_TRANSFER_RX_FAILED = 0x04
    EVENT_TRANSFER_TX_COMPLETED = 0x05
    EVENT_TRANSFER_TX_FAILED = 0x06
    EVENT_CHANNEL_CLOSED = 0x07
    EVENT_RX_FAIL_GO_TO_SEARCH = 0x08
    EVENT_CHANNEL_COLLISION = 0x09
    EVENT_TRANSFER_TX_START = 0x0A
    EVENT_TRANSFER_NEXT_DATA_BLOCK = 0x11
    CHANNEL_IN_WRONG_STATE = 0x15
    CHANNEL_NOT_OPENED = 0x16
    CHANNEL_ID_NOT_SET = 0x18
    CLOSE_ALL_CHANNELS = 0x19
    TRANSFER_IN_PROGRESS = 0x1F
    TRANSFER_SEQUENCE_NUMBER_ERROR = 0x20
    TRANSFER_IN_ERROR = 0x21
    MESSAGE_SIZE_EXCEEDS_LIMIT = 0x27
    INVALID_MESSAGE = 0x28
    INVALID_NETWORK_NUMBER = 0x29
    INVALID_LIST_ID = 0x30
    INVALID_SCAN_TX_CHANNEL = 0x31
    INVALID_PARAMETER_PROVIDED = 0x33
    EVENT_SERIAL_QUE_OVERFLOW = 0x34
    EVENT_QUE_OVERFLOW = 0x35
    ENCRYPT_NEGOTIATION_SUCCESS = 0x38
    ENCRYPT_NEGOTIATION_FAIL = 0x39
    NVM_FULL_ERROR = 0x40
    NVM_WRITE_ERROR = 0x41
    USB_STRING_WRITE_FAIL = 0x70
    MESG_SERIAL_ERROR_ID = 0xAE
    INVALID = 0xFF


class MessageType(Enum):
    """Whether a channel message reports on a command or is unsolicited."""
    EVENT = "event"
    RESPONSE = "response"


E = TypeVar("E", bound=IntEnum)


def lookup(enum_cls: Type[E], value: int) -> Union[E, int]:
    """Return the enum member for value, or value itself if it is unknown."""
    try:
        return enum_cls(value)
    except ValueError:
        return value


def describe_code(code: int) -> str:
    member = lookup(MessageCode, code)
    if isinstance(member, MessageCode):
        return f"{member.name} (0x{code:02X})"
    return f"0x{code:02X}"


def describe_message_id(message_id: int) -> str:
    member = lookup(MessageId, message_id)
    if isinstance(member, MessageId):
        return f"{member.name} (0x{message_id:02X})"
    return f"0x{message_id:02X}"


@dataclass(frozen=True)
class Capabilities:
    """Device limits reported once at initialization.

    Attributes:
        max_channels: Number of logical channels on the dongle
        max_networks: Number of network key slots
        standard_options: Standard options bitfield
        advanced_options: Advanced options bitfield
        advanced_options2: Advanced options 2 bitfield
        max_sensrcore_channels: Number of SensRcore channels
        advanced_options3: Advanced options 3 bitfield (0 if not reported)
        advanced_options4: Advanced options 4 bitfield (0 if not reported)
    """
    max_channels: int
    max_networks: int
    standard_options: int = 0
    advanced_options: int = 0
    advanced_options2: int = 0
    max_sensrcore_channels: int = 0
    advanced_options3: int = 0
    advanced_options4: int = 0


@dataclass(frozen=True)
class ChannelId:
    """Identity of the peer a channel is paired with.

    Attributes:
        device_number: 16-bit device number (0 matches any device)
        device_type: 7-bit device type
        pairing_request: Pairing bit (top bit of the device type byte)
        transmission_type: Transmission type byte
    """
    device_number: int
    device_type: int
    pairing_request: bool = False
    transmission_type: int = 0


@dataclass(frozen=True)
class ChannelResponseEvent:
    """A channel response (to a command) or a channel event.

    Attributes:
        channel: Channel number the message belongs to
        message_id: Id of the command this responds to, or EVENT_MESSAGE_ID
        code: Raw response/event code (see MessageCode)
    """
    channel: int
    message_id: int
    code: int

    @property
    def message_type(self) -> MessageType:
        if self.message_id == EVENT_MESSAGE_ID:
            return MessageType.EVENT
        return MessageType.RESPONSE

    @property
    def is_event(self) -> bool:
        return self.message_type is MessageType.EVENT

    @property
    def is_success(self) -> bool:
        return self.code == MessageCode.RESPONSE_NO_ERROR

    @property
    def status(self) -> Union[MessageCode, int]:
        """Code as a MessageCode member, or the raw int if it is not in the table."""
        return lookup(MessageCode, self.code)


@dataclass(frozen=True)
class BroadcastData:
    """Broadcast payload received on a channel.

    Attributes:
        channel: Channel number
        data: The 8 byte data page
        extended_data: Extra bytes after the data page, or None
    """
    channel: int
    data: bytes
    extended_data: Optional[bytes] = None
