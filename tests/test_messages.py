"""Tests for the message catalog (serializer and parser)."""
import unittest

from antsdk.errors import (
    DeviceRejectedError,
    KeySetupFailedError,
    MalformedPayloadError,
    WrongFrameTypeError,
)
from antsdk.models import (
    EVENT_MESSAGE_ID,
    ChannelResponseEvent,
    ChannelType,
    MessageCode,
    MessageId,
    MessageType,
)
from antsdk.protocol import Frame, MessageParser, MessageSerializer

ANT_PLUS_KEY = bytes((0xB9, 0xA5, 0x21, 0xFB, 0xBD, 0x72, 0xC3, 0x45))


class TestMessageSerializer(unittest.TestCase):
    """Test command encoding."""

    def test_set_network_key(self):
        frame = MessageSerializer.set_network_key(1, ANT_PLUS_KEY)
        data = frame.to_bytes()
        self.assertEqual(frame.message_id, 0x46)
        self.assertEqual(data[1], 0x09)
        self.assertEqual(frame.payload, bytes((0x01, 0xB9, 0xA5, 0x21, 0xFB, 0xBD, 0x72, 0xC3, 0x45)))
        self.assertEqual(data[-1], 0x65)

    def test_set_network_key_wrong_size(self):
        with self.assertRaises(ValueError):
            MessageSerializer.set_network_key(1, b"\x00" * 7)

    def test_reset(self):
        self.assertEqual(MessageSerializer.reset().to_bytes(), bytes((0xA4, 0x01, 0x4A, 0x00, 0xEF)))

    def test_request(self):
        frame = MessageSerializer.request(2, MessageId.CHANNEL_ID)
        self.assertEqual(frame.message_id, MessageId.REQUEST)
        self.assertEqual(frame.payload, bytes((0x02, 0x51)))

    def test_assign_channel(self):
        frame = MessageSerializer.assign_channel(0, ChannelType.TRANSMIT, 1)
        self.assertEqual(frame.message_id, MessageId.ASSIGN_CHANNEL)
        self.assertEqual(frame.payload, bytes((0x00, 0x10, 0x01)))

    def test_assign_channel_invalid_type(self):
        with self.assertRaises(ValueError):
            MessageSerializer.assign_channel(0, 0x11, 1)

    def test_channel_id_little_endian(self):
        frame = MessageSerializer.channel_id(1, 0x1234, 120, transmission_type=5)
        self.assertEqual(frame.payload, bytes((0x01, 0x34, 0x12, 0x78, 0x05)))

    def test_channel_id_pairing_bit(self):
        frame = MessageSerializer.channel_id(0, 0, 0x78, pairing_request=True)
        self.assertEqual(frame.payload[3], 0xF8)

    def test_channel_id_device_type_out_of_range(self):
        with self.assertRaises(ValueError):
            MessageSerializer.channel_id(0, 0, 128)

    def test_channel_id_device_number_out_of_range(self):
        with self.assertRaises(ValueError):
            MessageSerializer.channel_id(0, 0x10000, 1)

    def test_channel_period(self):
        frame = MessageSerializer.channel_period(0, 8070)
        self.assertEqual(frame.payload, bytes((0x00, 0x86, 0x1F)))

    def test_rf_frequency(self):
        frame = MessageSerializer.channel_rf_frequency(3, 57)
        self.assertEqual(frame.message_id, MessageId.CHANNEL_RF_FREQUENCY)
        self.assertEqual(frame.payload, bytes((0x03, 57)))

    def test_rf_frequency_limit(self):
        MessageSerializer.channel_rf_frequency(0, 124)
        with self.assertRaises(ValueError):
            MessageSerializer.channel_rf_frequency(0, 125)

    def test_search_timeouts(self):
        self.assertEqual(MessageSerializer.channel_search_timeout(1, 12).payload, bytes((1, 12)))
        frame = MessageSerializer.low_priority_search_timeout(1, 4)
        self.assertEqual(frame.message_id, MessageId.LOW_PRIORITY_SEARCH_TIMEOUT)
        self.assertEqual(frame.payload, bytes((1, 4)))

    def test_single_channel_commands(self):
        self.assertEqual(MessageSerializer.open_channel(4).to_bytes()[2:4], bytes((0x4B, 4)))
        self.assertEqual(MessageSerializer.close_channel(4).to_bytes()[2:4], bytes((0x4C, 4)))
        self.assertEqual(MessageSerializer.unassign_channel(4).to_bytes()[2:4], bytes((0x41, 4)))

    def test_channel_out_of_range(self):
        with self.assertRaises(ValueError):
            MessageSerializer.open_channel(256)


class TestMessageParser(unittest.TestCase):
    """Test inbound message parsing."""

    def test_capabilities_six_bytes(self):
        frame = Frame.create(MessageId.CAPABILITIES, bytes((8, 3, 0x01, 0x02, 0x03, 0x04)))
        caps = MessageParser.parse_capabilities(frame)
        self.assertEqual(caps.max_channels, 8)
        self.assertEqual(caps.max_networks, 3)
        self.assertEqual(caps.standard_options, 0x01)
        self.assertEqual(caps.advanced_options, 0x02)
        self.assertEqual(caps.advanced_options2, 0x03)
        self.assertEqual(caps.max_sensrcore_channels, 0x04)
        self.assertEqual(caps.advanced_options3, 0)
        self.assertEqual(caps.advanced_options4, 0)

    def test_capabilities_seven_bytes(self):
        frame = Frame.create(MessageId.CAPABILITIES, bytes((8, 3, 0, 0, 0, 0, 0x05)))
        caps = MessageParser.parse_capabilities(frame)
        self.assertEqual(caps.advanced_options3, 0x05)
        self.assertEqual(caps.advanced_options4, 0)

    def test_capabilities_eight_bytes(self):
        frame = Frame.create(MessageId.CAPABILITIES, bytes((8, 3, 0, 0, 0, 0, 0x05, 0x06)))
        caps = MessageParser.parse_capabilities(frame)
        self.assertEqual(caps.advanced_options3, 0x05)
        self.assertEqual(caps.advanced_options4, 0x06)

    def test_capabilities_too_short(self):
        with self.assertRaises(MalformedPayloadError):
            MessageParser.parse_capabilities(Frame.create(MessageId.CAPABILITIES, bytes(5)))

    def test_wrong_frame_type(self):
        with self.assertRaises(WrongFrameTypeError):
            MessageParser.parse_capabilities(Frame.create(MessageId.STARTUP, bytes(8)))

    def test_channel_response(self):
        frame = Frame.create(MessageId.CHANNEL_RESPONSE_EVENT, bytes((2, 0x42, 0x00)))
        message = MessageParser.parse_channel_event(frame)
        self.assertEqual(message, ChannelResponseEvent(2, 0x42, 0x00))
        self.assertIs(message.message_type, MessageType.RESPONSE)
        self.assertTrue(message.is_success)
        self.assertFalse(message.is_event)

    def test_channel_event(self):
        frame = Frame.create(MessageId.CHANNEL_RESPONSE_EVENT, bytes((0, EVENT_MESSAGE_ID, 0x07)))
        message = MessageParser.parse_channel_event(frame)
        self.assertTrue(message.is_event)
        self.assertIs(message.status, MessageCode.EVENT_CHANNEL_CLOSED)

    def test_unknown_code_kept_raw(self):
        frame = Frame.create(MessageId.CHANNEL_RESPONSE_EVENT, bytes((0, 0x4B, 0x5A)))
        message = MessageParser.parse_channel_event(frame)
        self.assertEqual(message.status, 0x5A)
        self.assertFalse(message.is_success)

    def test_broadcast_without_extended_data(self):
        payload = bytes((1,)) + bytes(range(8))
        message = MessageParser.parse_broadcast_data(Frame.create(MessageId.BROADCAST_DATA, payload))
        self.assertEqual(message.channel, 1)
        self.assertEqual(message.data, bytes(range(8)))
        self.assertIsNone(message.extended_data)

    def test_broadcast_with_extended_data(self):
        payload = bytes((1,)) + bytes(range(8)) + b"\x80\x01\x02\x03"
        message = MessageParser.parse_broadcast_data(Frame.create(MessageId.BROADCAST_DATA, payload))
        self.assertEqual(len(message.data), 8)
        self.assertEqual(message.extended_data, b"\x80\x01\x02\x03")

    def test_broadcast_too_short(self):
        with self.assertRaises(MalformedPayloadError):
            MessageParser.parse_broadcast_data(Frame.create(MessageId.BROADCAST_DATA, bytes(8)))

    def test_channel_id(self):
        frame = Frame.create(MessageId.CHANNEL_ID, bytes((0, 0x34, 0x12, 0xF8, 0x01)))
        channel_id = MessageParser.parse_channel_id(frame)
        self.assertEqual(channel_id.device_number, 0x1234)
        self.assertEqual(channel_id.device_type, 0x78)
        self.assertTrue(channel_id.pairing_request)
        self.assertEqual(channel_id.transmission_type, 1)
        self.assertEqual(MessageParser.channel_number(frame), 0)

    def test_channel_id_without_pairing_bit(self):
        frame = Frame.create(MessageId.CHANNEL_ID, bytes((0, 0x01, 0x00, 0x78, 0x01)))
        channel_id = MessageParser.parse_channel_id(frame)
        self.assertEqual(channel_id.device_type, 0x78)
        self.assertFalse(channel_id.pairing_request)


class TestDeviceRejectedError(unittest.TestCase):
    """Test error messages built from the code table."""

    def test_message_names_code_and_command(self):
        error = DeviceRejectedError(MessageCode.CHANNEL_IN_WRONG_STATE, MessageId.OPEN_CHANNEL, 3)
        text = str(error)
        self.assertIn("CHANNEL_IN_WRONG_STATE", text)
        self.assertIn("OPEN_CHANNEL", text)
        self.assertIn("channel 3", text)
        self.assertEqual(error.code, 0x15)

    def test_unknown_code(self):
        self.assertIn("0x5A", str(DeviceRejectedError(0x5A)))

    def test_key_setup_names_network(self):
        error = KeySetupFailedError(MessageCode.INVALID_NETWORK_NUMBER, 2)
        self.assertEqual(error.network, 2)
        self.assertEqual(error.message_id, MessageId.SET_NETWORK_KEY)
        self.assertIsNone(error.channel)
        self.assertTrue(str(error).endswith("for network 2"))


if __name__ == '__main__':
    unittest.main()
