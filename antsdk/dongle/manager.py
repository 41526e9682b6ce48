"""Dongle orchestration.

Brings an ANT stick from power-on to operational: reset, capability
discovery, network key provisioning, channel allocation and the reader
thread. Owns the endpoint and the write lock.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Tuple

from ..errors import (
    DeviceClosedError,
    FrameError,
    KeySetupFailedError,
    NoResponseError,
    ResetFailedError,
    ShortWriteError,
    TransportError,
)
from ..models import Capabilities, MessageId
from ..protocol.frame import Frame
from ..protocol.parser import MessageParser
from ..protocol.serializer import MessageSerializer
from ..transport.base import Endpoint
from .buffer import StreamBuffer
from .channel import RESPONSE_TIMEOUT, Channel
from .dongle_finder import find_single_dongle
from .transport_loop import LOOP_READ_TIMEOUT, READ_CHUNK_SIZE, TransportLoop

logger = logging.getLogger(__name__)

# Public ANT+ network key
ANT_PLUS_NETWORK_KEY = bytes((0xB9, 0xA5, 0x21, 0xFB, 0xBD, 0x72, 0xC3, 0x45))
DEFAULT_NETWORK = 1

WRITE_TIMEOUT = 0.1  # seconds
INIT_READ_TIMEOUT = 0.5  # seconds, per reply during initialize()
DRAIN_READ_TIMEOUT = 0.1  # seconds
DRAIN_LIMIT = 2.0  # seconds
DONGLE_MAX_BUFFER_SIZE = 64 * 1024  # 64KB


class Dongle:
    """High-level interface to an ANT USB stick.

    This class acts as a facade, managing:
    1. The endpoint (USB bulk or serial)
    2. Device reset, capabilities and the network key
    3. The channel array
    4. The reader thread (TransportLoop)

    Example:
        >>> with Dongle() as dongle:
        ...     channel = dongle.channels[0]
        ...     channel.assign(ChannelType.RECEIVE, network=1)
        ...     ...
    """

    def __init__(self,
                 endpoint: Optional[Endpoint] = None,
                 *,
                 network_key: bytes = ANT_PLUS_NETWORK_KEY,
                 network: int = DEFAULT_NETWORK,
                 response_timeout: float = RESPONSE_TIMEOUT,
                 init_timeout: float = INIT_READ_TIMEOUT,
                 read_timeout: float = LOOP_READ_TIMEOUT,
                 strict_dispatch: bool = False):
        """Initialize Dongle manager.

        Args:
            endpoint: Endpoint to use, or None to auto-detect on initialize()
            network_key: 8 byte key provisioned on initialize()
            network: Network slot the key is written to
            response_timeout: Default seconds channels wait for responses
            init_timeout: Seconds to wait for each reply during initialize()
            read_timeout: Reader thread read timeout in seconds
            strict_dispatch: Stop the reader on unhandled message types
        """
        self._endpoint = endpoint
        self._network_key = bytes(network_key)
        self._network = network
        self._response_timeout = response_timeout
        self._init_timeout = init_timeout
        self._read_timeout = read_timeout
        self._strict_dispatch = strict_dispatch

        self._buffer = StreamBuffer(max_size=DONGLE_MAX_BUFFER_SIZE)
        self._write_lock = threading.Lock()
        self._channels: Tuple[Channel, ...] = ()
        self._capabilities: Optional[Capabilities] = None
        self._loop: Optional[TransportLoop] = None
        self._failure: Optional[Exception] = None

    # --- Lifecycle ---

    def initialize(self) -> None:
        """Reset the dongle and start the reader.

        Raises:
            ResetFailedError: no Startup message after reset
            NoResponseError: capabilities or key reply missing
            KeySetupFailedError: the dongle rejected the network key
            TransportError: endpoint failure
        """
        if self.is_running:
            raise TransportError("Dongle is already initialized")

        if self._endpoint is None:
            info = find_single_dongle()
            logger.info(f"Auto-detected ANT dongle {info.device_id} ({info.kind})")
            self._endpoint = info.create_endpoint()
        self._endpoint.open()
        self._failure = None

        self._drain()

        # Reset the device and expect a Startup message
        self.write_message(MessageSerializer.reset())
        startup = self._read_frame()
        if startup is None or startup.message_id != MessageId.STARTUP:
            raise ResetFailedError("Dongle reset failed")

        self.write_message(MessageSerializer.request(0, MessageId.CAPABILITIES))
        reply = self._read_frame()
        if reply is None:
            raise NoResponseError("No capabilities reply")
        self._capabilities = MessageParser.parse_capabilities(reply)
        logger.info(
            f"Capabilities: {self._capabilities.max_channels} channels, "
            f"{self._capabilities.max_networks} networks"
        )

        self._channels = tuple(
            Channel(self, number, response_timeout=self._response_timeout)
            for number in range(self._capabilities.max_channels)
        )

        self.write_message(MessageSerializer.set_network_key(self._network, self._network_key))
        reply = self._read_frame()
        if reply is None:
            raise NoResponseError("No reply to network key setup")
        response = MessageParser.parse_channel_event(reply)
        if not response.is_success:
            raise KeySetupFailedError(response.code, self._network)

        self._loop = TransportLoop(
            self._endpoint,
            self._channels,
            buffer=self._buffer,
            read_timeout=self._read_timeout,
            chunk_size=READ_CHUNK_SIZE,
            strict=self._strict_dispatch,
            on_failure=self._on_transport_failure,
        )
        self._loop.start()
        logger.info("Dongle initialized")

    def close(self) -> None:
        """Stop the reader, fail pending waits and release the endpoint.

        Safe to call multiple times.
        """
        if self._loop is not None:
            self._loop.stop()
            self._loop = None

        for channel in self._channels:
            channel.detach(DeviceClosedError("Dongle closed"))

        if self._endpoint is not None and self._endpoint.is_open():
            self._endpoint.close()
            logger.info("Dongle closed")

    def __enter__(self) -> Dongle:
        try:
            self.initialize()
        except Exception:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # --- Writing ---

    def write_message(self, frame: Frame, timeout: float = WRITE_TIMEOUT) -> None:
        """Write one frame to the dongle.

        Writes from several threads are serialized.

        Raises:
            ShortWriteError: the endpoint accepted fewer bytes than the frame
            TransportError: the endpoint is closed or the reader has failed
        """
        if self._failure is not None:
            raise TransportError(f"Dongle is unusable, reinitialize: {self._failure}")
        if self._endpoint is None or not self._endpoint.is_open():
            raise TransportError("Dongle is not open")

        data = frame.to_bytes()
        with self._write_lock:
            logger.debug(f"SEND {frame.message_id.name}: {frame.payload.hex()}")
            written = self._endpoint.write(data, timeout)
        if written != len(data):
            raise ShortWriteError(len(data), written)

    # --- Status ---

    @property
    def channels(self) -> Tuple[Channel, ...]:
        return self._channels

    @property
    def capabilities(self) -> Optional[Capabilities]:
        return self._capabilities

    @property
    def max_networks(self) -> int:
        return self._capabilities.max_networks if self._capabilities else 0

    @property
    def is_running(self) -> bool:
        return self._loop is not None and self._loop.is_running

    @property
    def failure(self) -> Optional[Exception]:
        """The transport error that stopped the reader, if any."""
        return self._failure

    # --- Internal ---

    def _drain(self) -> None:
        """Discard bytes left over from a previous session."""
        deadline = time.monotonic() + DRAIN_LIMIT
        drained = 0
        while time.monotonic() < deadline:
            chunk = self._endpoint.read(READ_CHUNK_SIZE, DRAIN_READ_TIMEOUT)
            if not chunk:
                break
            drained += len(chunk)
        self._buffer.clear()
        if drained:
            logger.debug(f"Drained {drained} stale bytes")

    def _read_frame(self) -> Optional[Frame]:
        """Read the next valid frame before the reader thread is started.

        Frames beyond the first one stay buffered for the reader.
        """
        deadline = time.monotonic() + self._init_timeout
        pending = []
        while True:
            pending.extend(self._buffer.read_frames())
            while pending:
                raw = pending.pop(0)
                try:
                    frame = Frame.decode(raw)
                except FrameError as e:
                    logger.warning(f"Dropping malformed frame during initialize: {e}")
                    continue
                # Put back what we did not consume
                for leftover in reversed(pending):
                    self._unread(leftover)
                return frame

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            self._buffer.write(self._endpoint.read(READ_CHUNK_SIZE, min(remaining, INIT_READ_TIMEOUT)))

    def _unread(self, raw: bytes) -> None:
        self._buffer.prepend(raw)

    def _on_transport_failure(self, error: Exception) -> None:
        self._failure = error
        for channel in self._channels:
            channel.detach(error)
