"""Dongle layer for ANT USB sticks.

This module provides:
- Device orchestration: reset, capabilities, network key (Dongle)
- Logical radio channels with correlated command replies (Channel)
- The background reader that routes frames to channels (TransportLoop)
- Frame reassembly from USB reads (StreamBuffer)
- Device discovery utilities (find_single_dongle, find_dongles)
"""

from .buffer import StreamBuffer
from .channel import Channel, ChannelState, DispatchMode
from .manager import ANT_PLUS_NETWORK_KEY, Dongle
from .transport_loop import TransportLoop
from .dongle_finder import (
    DongleInfo,
    DongleNotFoundError,
    MultipleDonglesError,
    find_dongles,
    find_single_dongle,
    is_matching_dongle,
)

__all__ = [
    # Device
    'Dongle',
    'ANT_PLUS_NETWORK_KEY',

    # Channels
    'Channel',
    'ChannelState',
    'DispatchMode',

    # Reader
    'TransportLoop',
    'StreamBuffer',

    # Finder
    'DongleInfo',
    'DongleNotFoundError',
    'MultipleDonglesError',
    'find_dongles',
    'find_single_dongle',
    'is_matching_dongle',
]
