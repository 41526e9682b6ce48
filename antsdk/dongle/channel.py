"""Logical ANT channel.

A Channel issues configuration commands through its dongle and waits for the
matching channel response. Responses arrive from the reader thread through
dispatch(); they are matched by command id, not by arrival order.

Channel events and broadcast data are delivered to subscribers through
notifiers so the reader thread is never blocked by application code.

State machine::

    UNASSIGNED --assign--> ASSIGNED --open--> OPEN --close--> CLOSING --> ASSIGNED
        ^                      |
        +------unassign--------+

An unsolicited EVENT_CHANNEL_CLOSED (search timeout) also moves an OPEN
channel back to ASSIGNED.
"""
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Callable, List, Optional

from ..errors import (
    ChannelIdTimeoutError,
    ChannelStateError,
    DeviceRejectedError,
    NoClosingEventError,
    NoResponseError,
)
from ..models import (
    BroadcastData,
    ChannelId,
    ChannelResponseEvent,
    ChannelType,
    MessageCode,
    MessageId,
)
from ..protocol.frame import Frame
from ..protocol.serializer import MessageSerializer
from .mailbox import LatestValue, ReplyQueue
from .notifier import Notifier

if TYPE_CHECKING:
    from .manager import Dongle

logger = logging.getLogger(__name__)

RESPONSE_TIMEOUT = 0.5  # seconds

DEFAULT_MESSAGE_PERIOD = 8192  # 4 Hz, units of 1/32768 s
DEFAULT_RF_FREQUENCY = 66  # 2466 MHz
DEFAULT_SEARCH_TIMEOUT = 10  # 25 s, units of 2.5 s
DEFAULT_LOW_PRIORITY_SEARCH_TIMEOUT = 2  # 5 s, units of 2.5 s


class ChannelState(Enum):
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"
    OPEN = "open"
    CLOSING = "closing"


class DispatchMode(Enum):
    """How dispatch() routes channel events.

    NORMAL: events go to the event subscribers.
    CLOSING_AWAIT: events are queued for the running close() to consume.
    """
    NORMAL = "normal"
    CLOSING_AWAIT = "closing_await"


class Channel:
    """One logical radio channel of a dongle.

    Example:
        >>> channel = dongle.channels[0]
        >>> channel.assign(ChannelType.RECEIVE, network=1)
        >>> channel.set_id(0, 120)              # any heart-rate sensor
        >>> channel.set_message_period(8070)
        >>> channel.set_frequency(57)
        >>> unsub = channel.subscribe_broadcast(lambda msg: print(msg.data.hex()))
        >>> channel.open()
        >>> ...
        >>> channel.close()
        >>> channel.unassign()
    """

    def __init__(self, device: Dongle, number: int, response_timeout: float = RESPONSE_TIMEOUT):
        """Initialize channel.

        Args:
            device: Dongle used to write command frames
            number: Channel number on the dongle
            response_timeout: Default seconds to wait for a command response
        """
        self._device = device
        self._number = number
        self._response_timeout = response_timeout

        self._state = ChannelState.UNASSIGNED
        self._mode = DispatchMode.NORMAL
        self._id_set = False

        # Guards state/mode against the reader thread
        self._state_lock = threading.Lock()
        # One command at a time per channel
        self._command_lock = threading.RLock()

        self._responses: ReplyQueue[ChannelResponseEvent] = ReplyQueue()
        self._last_channel_id: LatestValue[ChannelId] = LatestValue()

        self._events: Notifier[ChannelResponseEvent] = Notifier(f"ChannelEvents-{number}")
        self._broadcasts: Notifier[BroadcastData] = Notifier(f"ChannelBroadcast-{number}")

    @property
    def number(self) -> int:
        return self._number

    @property
    def state(self) -> ChannelState:
        with self._state_lock:
            return self._state

    @property
    def mode(self) -> DispatchMode:
        with self._state_lock:
            return self._mode

    @property
    def id_set(self) -> bool:
        with self._state_lock:
            return self._id_set

    @property
    def pending_responses(self) -> int:
        """Number of received responses not yet consumed by a command."""
        return len(self._responses)

    # --- Subscriptions ---

    def subscribe_events(self, callback: Callable[[ChannelResponseEvent], None]) -> Callable[[], None]:
        """Subscribe to unsolicited channel events (search timeout, rx fail, ...).

        Returns:
            Unsubscribe function
        """
        return self._events.subscribe(callback)

    def subscribe_broadcast(self, callback: Callable[[BroadcastData], None]) -> Callable[[], None]:
        """Subscribe to broadcast data received on this channel.

        Returns:
            Unsubscribe function
        """
        return self._broadcasts.subscribe(callback)

    # --- Configuration ---

    def assign(self, channel_type: ChannelType, network: int, timeout: Optional[float] = None) -> None:
        with self._command_lock:
            self._require(ChannelState.UNASSIGNED, "assign")
            frame = MessageSerializer.assign_channel(self._number, channel_type, network)
            self._execute(frame, timeout)
            with self._state_lock:
                self._state = ChannelState.ASSIGNED
                self._id_set = False
            logger.debug(f"Channel {self._number} assigned ({ChannelType(channel_type).name}, network {network})")

    def unassign(self, timeout: Optional[float] = None) -> None:
        with self._command_lock:
            state = self.state
            if state in (ChannelState.OPEN, ChannelState.CLOSING):
                raise ChannelStateError(f"Cannot unassign channel {self._number} while {state.value}")
            self._execute(MessageSerializer.unassign_channel(self._number), timeout)
            with self._state_lock:
                self._state = ChannelState.UNASSIGNED
                self._id_set = False
            logger.debug(f"Channel {self._number} unassigned")

    def set_id(self,
               device_number: int,
               device_type: int,
               pairing_request: bool = False,
               transmission_type: int = 0,
               timeout: Optional[float] = None) -> None:
        """Set the id of the device to pair with (0 fields act as wildcards).

        Raises:
            ValueError: device_type outside 0..127
        """
        with self._command_lock:
            frame = MessageSerializer.channel_id(
                self._number, device_number, device_type, pairing_request, transmission_type
            )
            self._execute(frame, timeout)
            with self._state_lock:
                self._id_set = True

    def set_message_period(self, period: int = DEFAULT_MESSAGE_PERIOD, timeout: Optional[float] = None) -> None:
        """Set the messaging period in units of 1/32768 s."""
        with self._command_lock:
            self._execute(MessageSerializer.channel_period(self._number, period), timeout)

    def set_frequency(self, offset: int = DEFAULT_RF_FREQUENCY, timeout: Optional[float] = None) -> None:
        """Set the RF frequency to 2400 MHz + offset MHz.

        Raises:
            ValueError: offset outside 0..124
        """
        with self._command_lock:
            self._execute(MessageSerializer.channel_rf_frequency(self._number, offset), timeout)

    def set_search_timeout(self, search_timeout: int = DEFAULT_SEARCH_TIMEOUT, timeout: Optional[float] = None) -> None:
        """Set the search timeout in counts of 2.5 s."""
        with self._command_lock:
            self._execute(MessageSerializer.channel_search_timeout(self._number, search_timeout), timeout)

    def set_low_priority_search_timeout(self,
                                        search_timeout: int = DEFAULT_LOW_PRIORITY_SEARCH_TIMEOUT,
                                        timeout: Optional[float] = None) -> None:
        """Set the low priority search timeout in counts of 2.5 s."""
        with self._command_lock:
            self._execute(
                MessageSerializer.low_priority_search_timeout(self._number, search_timeout), timeout
            )

    # --- Control ---

    def open(self, timeout: Optional[float] = None) -> None:
        with self._command_lock:
            self._require(ChannelState.ASSIGNED, "open")
            if not self.id_set:
                raise ChannelStateError(f"Channel {self._number} has no channel id set")
            self._execute(MessageSerializer.open_channel(self._number), timeout)
            with self._state_lock:
                self._state = ChannelState.OPEN
            logger.debug(f"Channel {self._number} open")

    def close(self, timeout: Optional[float] = None) -> None:
        """Close the channel and wait until the dongle reports it closed.

        Channel events received while closing are held back and delivered to
        the event subscribers once close() returns.

        Raises:
            ChannelStateError: channel is not open
            NoResponseError / DeviceRejectedError: close command failed
            NoClosingEventError: EVENT_CHANNEL_CLOSED did not arrive
        """
        timeout = self._response_timeout if timeout is None else timeout
        with self._command_lock:
            with self._state_lock:
                if self._state is not ChannelState.OPEN:
                    raise ChannelStateError(
                        f"Cannot close channel {self._number} while {self._state.value}"
                    )
                self._state = ChannelState.CLOSING
                self._mode = DispatchMode.CLOSING_AWAIT
            final_state = ChannelState.OPEN

            try:
                self._execute(MessageSerializer.close_channel(self._number), timeout)
                # The dongle accepted the close; the channel is no longer open
                final_state = ChannelState.ASSIGNED
                closed = self._responses.take(
                    lambda m: m.is_event and m.code == MessageCode.EVENT_CHANNEL_CLOSED,
                    timeout,
                )
                if closed is None:
                    raise NoClosingEventError(f"No closing event received on channel {self._number}")
                logger.debug(f"Channel {self._number} closed")
            finally:
                self._finish_close(final_state)

    def get_channel_id(self, timeout: float = RESPONSE_TIMEOUT) -> ChannelId:
        """Ask the dongle for the id of the device this channel is paired with.

        Raises:
            ChannelIdTimeoutError: no channel id arrived in time
        """
        with self._command_lock:
            self._last_channel_id.clear()
            self._device.write_message(MessageSerializer.request(self._number, MessageId.CHANNEL_ID))
            channel_id = self._last_channel_id.take(timeout)
            if channel_id is None:
                raise ChannelIdTimeoutError(f"No channel id received on channel {self._number}")
            return channel_id

    # --- Called by the reader thread ---

    def dispatch(self, message: ChannelResponseEvent) -> None:
        """Route a channel response or event received from the dongle."""
        if not message.is_event:
            self._responses.put(message)
            return

        with self._state_lock:
            if self._mode is DispatchMode.CLOSING_AWAIT:
                self._responses.put(message)
                return
            if message.code == MessageCode.EVENT_CHANNEL_CLOSED and self._state is ChannelState.OPEN:
                self._state = ChannelState.ASSIGNED
                logger.info(f"Channel {self._number} closed by the dongle")

        logger.debug(f"Channel {self._number} event: {message.status!r}")
        self._events.publish(message)

    def dispatch_broadcast(self, message: BroadcastData) -> None:
        self._broadcasts.publish(message)

    def set_last_channel_id(self, channel_id: ChannelId) -> None:
        self._last_channel_id.set(channel_id)

    # --- Lifecycle ---

    def detach(self, error: BaseException) -> None:
        """Fail waiting commands with error and stop the notifiers."""
        self._responses.cancel(error)
        self._last_channel_id.cancel(error)
        self._events.stop()
        self._broadcasts.stop()

    # --- Internal ---

    def _require(self, expected: ChannelState, operation: str) -> None:
        state = self.state
        if state is not expected:
            raise ChannelStateError(
                f"Cannot {operation} channel {self._number} while {state.value}"
            )

    def _execute(self, frame: Frame, timeout: Optional[float]) -> ChannelResponseEvent:
        """Send a command frame and wait for its channel response."""
        timeout = self._response_timeout if timeout is None else timeout
        message_id = int(frame.message_id)
        stale = self._responses.discard(lambda m: m.message_id == message_id)
        if stale:
            logger.debug(f"Channel {self._number}: discarded {len(stale)} stale responses")

        self._device.write_message(frame)

        response = self._responses.take(lambda m: m.message_id == message_id, timeout)
        if response is None:
            raise NoResponseError(
                f"No response from device for {frame.message_id.name} on channel {self._number}"
            )
        if not response.is_success:
            raise DeviceRejectedError(response.code, message_id, self._number)
        return response

    def _finish_close(self, final_state: ChannelState) -> None:
        leftover: List[ChannelResponseEvent]
        with self._state_lock:
            leftover = self._responses.discard(lambda m: m.is_event)
            if any(m.code == MessageCode.EVENT_CHANNEL_CLOSED for m in leftover):
                final_state = ChannelState.ASSIGNED
            self._state = final_state
            self._mode = DispatchMode.NORMAL
        for event in leftover:
            self._events.publish(event)
