"""Background reader that turns USB bytes into channel dispatches.

One TransportLoop runs per dongle. It is the only reader of the endpoint
once the dongle is initialized: each iteration performs a short bounded
read, reassembles frames and routes each one to its channel.

Frames that fail validation are logged and dropped. A failing endpoint
stops the loop and is reported through the on_failure callback.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Sequence

from ..errors import FrameError, TransportError, UnhandledMessageError
from ..models import MessageId
from ..protocol.frame import Frame
from ..protocol.parser import MessageParser
from ..transport.base import Endpoint
from .buffer import StreamBuffer
from .channel import Channel

logger = logging.getLogger(__name__)

LOOP_READ_TIMEOUT = 0.01  # seconds
READ_CHUNK_SIZE = 512  # bytes
STOP_JOIN_TIMEOUT = 1.0  # seconds


class TransportLoop:
    """Reader thread for one dongle.

    Responsibilities:
    - Read raw bytes from the endpoint with a short timeout
    - Split reads into frames (a read may hold several)
    - Route channel responses, broadcasts and channel ids to their channel
    - Survive malformed frames; stop on transport failure

    Unhandled message types (valid frames the driver has no route for) are
    logged and skipped, unless strict=True, in which case they stop the loop
    with UnhandledMessageError.
    """

    def __init__(self,
                 endpoint: Endpoint,
                 channels: Sequence[Channel],
                 buffer: Optional[StreamBuffer] = None,
                 read_timeout: float = LOOP_READ_TIMEOUT,
                 chunk_size: int = READ_CHUNK_SIZE,
                 strict: bool = False,
                 on_failure: Optional[Callable[[Exception], None]] = None):
        """Initialize the loop.

        Args:
            endpoint: Open endpoint to read from
            channels: Channel array indexed by channel number
            buffer: Reassembly buffer (may already hold bytes read earlier)
            read_timeout: Seconds per read; bounds how quickly stop() takes effect
            chunk_size: Maximum bytes per read
            strict: Treat unhandled message types as fatal
            on_failure: Called with the error that terminated the loop
        """
        self._endpoint = endpoint
        self._channels = channels
        self._buffer = buffer or StreamBuffer()
        self._read_timeout = read_timeout
        self._chunk_size = chunk_size
        self._strict = strict
        self._on_failure = on_failure

        self._active = False
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[Exception] = None

        self._routes = {
            MessageId.CHANNEL_RESPONSE_EVENT: self._route_channel_event,
            MessageId.BROADCAST_DATA: self._route_broadcast,
            MessageId.CHANNEL_ID: self._route_channel_id,
        }

    @property
    def is_running(self) -> bool:
        return self._active and self._thread is not None and self._thread.is_alive()

    @property
    def error(self) -> Optional[Exception]:
        """The error that terminated the loop, if any."""
        return self._error

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._active = True
        self._error = None
        self._thread = threading.Thread(
            target=self._reader_loop,
            daemon=True,
            name="AntReader",
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the reader and wait for it to exit."""
        self._active = False
        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=STOP_JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning("Reader thread did not stop in time")
        self._thread = None

    def process(self, data: bytes) -> None:
        """Feed bytes through reassembly and dispatch.

        Called by the reader thread for every non-empty read.

        Raises:
            UnhandledMessageError: strict mode and a frame has no route
        """
        self._buffer.write(data)
        for raw in self._buffer.read_frames():
            self._handle_frame(raw)

    # Internal methods

    def _reader_loop(self) -> None:
        logger.debug("Reader thread started")

        while self._active:
            try:
                chunk = self._endpoint.read(self._chunk_size, self._read_timeout)
                if chunk:
                    self.process(chunk)
            except TransportError as e:
                if self._active:
                    self._fail(e)
                break

        logger.debug("Reader thread exiting")

    def _handle_frame(self, raw: bytes) -> None:
        try:
            frame = Frame.decode(raw)
        except FrameError as e:
            logger.warning(f"Dropping malformed frame {raw.hex()}: {e}")
            return

        logger.debug(f"RECV {frame.message_id.name}: {frame.payload.hex()}")

        route = self._routes.get(frame.message_id)
        if route is None:
            if self._strict:
                raise UnhandledMessageError(f"Unhandled message received: {frame.message_id.name}")
            logger.warning(f"Skipping unhandled message {frame.message_id.name}: {frame.payload.hex()}")
            return

        try:
            route(frame)
        except FrameError as e:
            logger.warning(f"Dropping {frame.message_id.name} frame: {e}")

    def _channel(self, number: int) -> Optional[Channel]:
        if 0 <= number < len(self._channels):
            return self._channels[number]
        logger.warning(f"Dropping message for unknown channel {number}")
        return None

    def _route_channel_event(self, frame: Frame) -> None:
        message = MessageParser.parse_channel_event(frame)
        channel = self._channel(message.channel)
        if channel is not None:
            channel.dispatch(message)

    def _route_broadcast(self, frame: Frame) -> None:
        message = MessageParser.parse_broadcast_data(frame)
        channel = self._channel(message.channel)
        if channel is not None:
            channel.dispatch_broadcast(message)

    def _route_channel_id(self, frame: Frame) -> None:
        channel_id = MessageParser.parse_channel_id(frame)
        channel = self._channel(MessageParser.channel_number(frame))
        if channel is not None:
            channel.set_last_channel_id(channel_id)

    def _fail(self, error: Exception) -> None:
        logger.error(f"Transport loop stopped: {error}")
        self._error = error
        self._active = False
        if self._on_failure is not None:
            try:
                self._on_failure(error)
            except Exception as e:
                logger.error(f"Error in failure handler: {e}")
