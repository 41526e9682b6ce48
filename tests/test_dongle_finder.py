"""Tests for the dongle_finder package."""
import unittest
from unittest.mock import MagicMock, patch

from antsdk.dongle.dongle_finder import (
    DongleInfo,
    DongleNotFoundError,
    MultipleDonglesError,
    find_dongles,
    find_single_dongle,
    is_matching_dongle,
)
from antsdk.transport import SerialEndpoint, UsbEndpoint


def _usb_device(pid=0x1008, bus=1, address=4):
    device = MagicMock()
    device.idVendor = 0x0FCF
    device.idProduct = pid
    device.bus = bus
    device.address = address
    device.iSerialNumber = 0
    device.iProduct = 0
    return device


def _port(device="/dev/ttyUSB0", vid=0x0FCF, pid=0x1004, serial_number="ANT1"):
    port = MagicMock()
    port.device = device
    port.vid = vid
    port.pid = pid
    port.serial_number = serial_number
    port.product = "ANTUSB Stick"
    return port


class DongleFinderTestCase(unittest.TestCase):

    def setUp(self):
        self.find_patcher = patch('antsdk.dongle.dongle_finder.core.usb.core.find')
        self.ports_patcher = patch('antsdk.dongle.dongle_finder.core.list_ports.comports')
        self.mock_find = self.find_patcher.start()
        self.mock_comports = self.ports_patcher.start()
        self.mock_find.return_value = []
        self.mock_comports.return_value = []

    def tearDown(self):
        self.find_patcher.stop()
        self.ports_patcher.stop()


class TestFindDongles(DongleFinderTestCase):
    """Test enumeration across pyusb and pyserial."""

    def test_nothing_connected(self):
        self.assertEqual(find_dongles(), [])

    def test_usb_stick(self):
        self.mock_find.return_value = [_usb_device()]
        found = find_dongles()
        self.assertEqual(len(found), 1)
        self.assertEqual(found[0].kind, "usb")
        self.assertEqual(found[0].location, "1:4")
        self.assertEqual(found[0].device_id, "1:4")

    def test_serial_stick(self):
        self.mock_comports.return_value = [_port(), _port(device="/dev/ttyS0", vid=None, pid=None)]
        found = find_dongles()
        self.assertEqual(len(found), 1)
        self.assertEqual(found[0].kind, "serial")
        self.assertEqual(found[0].device_id, "ANT1")

    def test_filter_by_pid(self):
        self.mock_find.return_value = [_usb_device(pid=0x1008), _usb_device(pid=0x1009, address=5)]
        found = find_dongles(expected_pid=0x1009)
        self.assertEqual([info.pid for info in found], [0x1009])

    def test_custom_matcher(self):
        self.mock_find.return_value = [_usb_device(address=4), _usb_device(address=5)]
        found = find_dongles(matcher=lambda info: info.location.endswith(":5"))
        self.assertEqual([info.location for info in found], ["1:5"])


class TestFindSingleDongle(DongleFinderTestCase):
    """Test find_single_dongle behaviour."""

    def test_none(self):
        with self.assertRaises(DongleNotFoundError):
            find_single_dongle()

    def test_one(self):
        self.mock_comports.return_value = [_port()]
        self.assertEqual(find_single_dongle().location, "/dev/ttyUSB0")

    def test_many(self):
        self.mock_find.return_value = [_usb_device()]
        self.mock_comports.return_value = [_port()]
        with self.assertRaises(MultipleDonglesError) as ctx:
            find_single_dongle()
        self.assertEqual(len(ctx.exception.devices), 2)


class TestDongleInfo(unittest.TestCase):
    """Test matching and endpoint creation."""

    def test_is_matching_dongle(self):
        info = DongleInfo(kind="usb", vid=0x0FCF, pid=0x1008, location="1:4", serial_number="1234")
        self.assertTrue(is_matching_dongle(info))
        self.assertTrue(is_matching_dongle(info, serial_prefix="12"))
        self.assertFalse(is_matching_dongle(info, serial_prefix="99"))
        self.assertFalse(is_matching_dongle(info, expected_pid=0x1009))

    def test_unknown_stick_never_matches(self):
        info = DongleInfo(kind="usb", vid=0x1234, pid=0x5678, location="1:4")
        self.assertFalse(is_matching_dongle(info))

    def test_create_endpoint(self):
        usb_info = DongleInfo(kind="usb", vid=0x0FCF, pid=0x1008, location="1:4", device=MagicMock())
        serial_info = DongleInfo(kind="serial", vid=0x0FCF, pid=0x1004, location="/dev/ttyUSB0")
        self.assertIsInstance(usb_info.create_endpoint(), UsbEndpoint)
        self.assertIsInstance(serial_info.create_endpoint(), SerialEndpoint)


if __name__ == '__main__':
    unittest.main()
