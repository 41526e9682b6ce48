#!/usr/bin/env python3
"""
Interactive ANT Channel Test Script.

This script demonstrates the high-level Dongle API.
Run it to reset a stick, open a receive channel and print broadcast pages
from the first heart-rate strap that is found.
"""

import sys
import time
import logging
from pathlib import Path

# Add SDK to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from antsdk import ChannelType, Dongle
from antsdk.errors import AntError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)

# ANT+ heart rate monitor profile
HRM_DEVICE_TYPE = 120
HRM_PERIOD = 8070
ANT_PLUS_FREQUENCY = 57


def on_broadcast(message):
    # Byte 7 of every HRM data page is the computed heart rate
    print(f"[ch {message.channel}] {message.data.hex()}  heart rate: {message.data[7]} bpm")


def on_event(event):
    print(f"[ch {event.channel}] event {event.status!r}")


def main():
    print("Initializing Dongle (auto-detect)...")
    try:
        dongle = Dongle()
        dongle.initialize()
    except AntError as e:
        print(f"Failed to initialize: {e}")
        return

    caps = dongle.capabilities
    print(f"Ready: {caps.max_channels} channels, {caps.max_networks} networks")

    channel = dongle.channels[0]
    try:
        channel.assign(ChannelType.RECEIVE, network=1)
        channel.set_id(0, HRM_DEVICE_TYPE)
        channel.set_message_period(HRM_PERIOD)
        channel.set_frequency(ANT_PLUS_FREQUENCY)
        channel.subscribe_broadcast(on_broadcast)
        channel.subscribe_events(on_event)
        channel.open()

        print("\nListening for 30 seconds (Ctrl+C to stop)...")
        time.sleep(5)
        try:
            print(f"Paired with: {channel.get_channel_id()}")
        except AntError as e:
            print(f"No pairing yet: {e}")
        time.sleep(25)

    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    except AntError as e:
        print(f"Channel error: {e}")
    finally:
        print("\nClosing...")
        try:
            channel.close()
            channel.unassign()
        except AntError as e:
            print(f"Close failed: {e}")
        dongle.close()
        print("Done.")

if __name__ == "__main__":
    main()
