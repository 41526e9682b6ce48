"""Message parser for inbound ANT frames.

Turns decoded frames into typed models. Pure functions with no side effects.
"""
from __future__ import annotations

import struct

from ..errors import MalformedPayloadError, WrongFrameTypeError
from ..models import (
    BroadcastData,
    Capabilities,
    ChannelId,
    ChannelResponseEvent,
    MessageId,
)
from .frame import Frame

CAPABILITIES_MIN_SIZE = 6
CHANNEL_EVENT_SIZE = 3
CHANNEL_ID_SIZE = 5
BROADCAST_DATA_SIZE = 8
BROADCAST_MIN_SIZE = BROADCAST_DATA_SIZE + 1

DEVICE_TYPE_MASK = 0x7F
PAIRING_BIT = 0x80


def _expect(frame: Frame, message_id: MessageId, min_size: int) -> bytes:
    if frame.message_id != message_id:
        raise WrongFrameTypeError(
            f"Expected {message_id.name} frame, got 0x{int(frame.message_id):02X}"
        )
    if len(frame.payload) < min_size:
        raise MalformedPayloadError(
            f"{message_id.name} payload needs {min_size} bytes, got {len(frame.payload)}"
        )
    return frame.payload


class MessageParser:
    """Parses inbound frames into models.

    Handles four shapes:
    - CAPABILITIES: device limits and option bitfields
    - CHANNEL_RESPONSE_EVENT: command responses and channel events
    - BROADCAST_DATA: 8 byte data page plus optional extended data
    - CHANNEL_ID: id of the device a channel is paired with
    """

    @staticmethod
    def parse_capabilities(frame: Frame) -> Capabilities:
        """Parse a capabilities reply.

        The last two option bytes are optional; firmware that omits them
        sends a 6 or 7 byte payload and the missing fields default to 0.
        """
        payload = _expect(frame, MessageId.CAPABILITIES, CAPABILITIES_MIN_SIZE)
        return Capabilities(
            max_channels=payload[0],
            max_networks=payload[1],
            standard_options=payload[2],
            advanced_options=payload[3],
            advanced_options2=payload[4],
            max_sensrcore_channels=payload[5],
            advanced_options3=payload[6] if len(payload) > 6 else 0,
            advanced_options4=payload[7] if len(payload) > 7 else 0,
        )

    @staticmethod
    def parse_channel_event(frame: Frame) -> ChannelResponseEvent:
        payload = _expect(frame, MessageId.CHANNEL_RESPONSE_EVENT, CHANNEL_EVENT_SIZE)
        return ChannelResponseEvent(
            channel=payload[0],
            message_id=payload[1],
            code=payload[2],
        )

    @staticmethod
    def parse_broadcast_data(frame: Frame) -> BroadcastData:
        payload = _expect(frame, MessageId.BROADCAST_DATA, BROADCAST_MIN_SIZE)
        extended = payload[BROADCAST_MIN_SIZE:]
        return BroadcastData(
            channel=payload[0],
            data=payload[1:BROADCAST_MIN_SIZE],
            extended_data=extended or None,
        )

    @staticmethod
    def parse_channel_id(frame: Frame) -> ChannelId:
        payload = _expect(frame, MessageId.CHANNEL_ID, CHANNEL_ID_SIZE)
        _, device_number, type_byte, transmission_type = struct.unpack_from("<BHBB", payload)
        return ChannelId(
            device_number=device_number,
            device_type=type_byte & DEVICE_TYPE_MASK,
            pairing_request=bool(type_byte & PAIRING_BIT),
            transmission_type=transmission_type,
        )

    @staticmethod
    def channel_number(frame: Frame) -> int:
        """Channel number carried in the first payload byte of channel messages."""
        if not frame.payload:
            raise MalformedPayloadError("Channel message without payload")
        return frame.payload[0]
