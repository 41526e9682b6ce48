"""Message serializer for ANT commands.

Renders typed command arguments into frames the dongle understands.
Pure functions with no side effects.
"""
from __future__ import annotations

import struct

from ..models import ChannelType, MessageId
from .frame import Frame

NETWORK_KEY_SIZE = 8
MAX_DEVICE_TYPE = 0x7F
MAX_RF_FREQUENCY = 124
PAIRING_BIT = 0x80


def _check_byte(name: str, value: int) -> int:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"{name} must be between 0 and 255, got {value}")
    return value


def _check_word(name: str, value: int) -> int:
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"{name} must be between 0 and 65535, got {value}")
    return value


class MessageSerializer:
    """Builds outbound command frames.

    Every method validates its arguments and raises ValueError before any
    bytes are produced.
    """

    @staticmethod
    def reset() -> Frame:
        return Frame.create(MessageId.RESET, b"\x00")

    @staticmethod
    def request(channel: int, message_id: int) -> Frame:
        """Ask the dongle to send a message of the given type.

        Examples:
            >>> MessageSerializer.request(0, MessageId.CAPABILITIES).payload
            b'\\x00T'
        """
        return Frame.create(
            MessageId.REQUEST,
            bytes((_check_byte("channel", channel), _check_byte("message_id", int(message_id)))),
        )

    @staticmethod
    def set_network_key(network: int, key: bytes) -> Frame:
        key = bytes(key)
        if len(key) != NETWORK_KEY_SIZE:
            raise ValueError(f"Network key must be {NETWORK_KEY_SIZE} bytes, got {len(key)}")
        return Frame.create(
            MessageId.SET_NETWORK_KEY,
            bytes((_check_byte("network", network),)) + key,
        )

    @staticmethod
    def open_channel(channel: int) -> Frame:
        return Frame.create(MessageId.OPEN_CHANNEL, bytes((_check_byte("channel", channel),)))

    @staticmethod
    def close_channel(channel: int) -> Frame:
        return Frame.create(MessageId.CLOSE_CHANNEL, bytes((_check_byte("channel", channel),)))

    @staticmethod
    def unassign_channel(channel: int) -> Frame:
        return Frame.create(MessageId.UNASSIGN_CHANNEL, bytes((_check_byte("channel", channel),)))

    @staticmethod
    def assign_channel(channel: int, channel_type: ChannelType, network: int) -> Frame:
        channel_type = ChannelType(channel_type)
        return Frame.create(
            MessageId.ASSIGN_CHANNEL,
            bytes((
                _check_byte("channel", channel),
                int(channel_type),
                _check_byte("network", network),
            )),
        )

    @staticmethod
    def channel_id(
        channel: int,
        device_number: int,
        device_type: int,
        pairing_request: bool = False,
        transmission_type: int = 0,
    ) -> Frame:
        """Set the channel id filter.

        Protocol: channel | device number (LE16) | device type (+pairing bit) | transmission type
        """
        if not 0 <= device_type <= MAX_DEVICE_TYPE:
            raise ValueError(f"Device type must be between 0 and {MAX_DEVICE_TYPE}, got {device_type}")
        type_byte = device_type | PAIRING_BIT if pairing_request else device_type
        payload = struct.pack(
            "<BHBB",
            _check_byte("channel", channel),
            _check_word("device_number", device_number),
            type_byte,
            _check_byte("transmission_type", transmission_type),
        )
        return Frame.create(MessageId.CHANNEL_ID, payload)

    @staticmethod
    def channel_period(channel: int, period: int) -> Frame:
        """Messaging period in units of 1/32768 s."""
        payload = struct.pack(
            "<BH",
            _check_byte("channel", channel),
            _check_word("period", period),
        )
        return Frame.create(MessageId.CHANNEL_PERIOD, payload)

    @staticmethod
    def channel_rf_frequency(channel: int, frequency: int) -> Frame:
        """RF frequency as an offset in MHz from 2400 MHz."""
        if not 0 <= frequency <= MAX_RF_FREQUENCY:
            raise ValueError(
                f"Channel frequency must be between 0 and {MAX_RF_FREQUENCY}, got {frequency}"
            )
        return Frame.create(
            MessageId.CHANNEL_RF_FREQUENCY,
            bytes((_check_byte("channel", channel), frequency)),
        )

    @staticmethod
    def channel_search_timeout(channel: int, timeout: int) -> Frame:
        """High priority search timeout in counts of 2.5 s."""
        return Frame.create(
            MessageId.CHANNEL_SEARCH_TIMEOUT,
            bytes((_check_byte("channel", channel), _check_byte("timeout", timeout))),
        )

    @staticmethod
    def low_priority_search_timeout(channel: int, timeout: int) -> Frame:
        """Low priority search timeout in counts of 2.5 s."""
        return Frame.create(
            MessageId.LOW_PRIORITY_SEARCH_TIMEOUT,
            bytes((_check_byte("channel", channel), _check_byte("timeout", timeout))),
        )
