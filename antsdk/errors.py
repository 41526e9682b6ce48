"""Exception hierarchy for the ANT dongle driver.

Framing errors are raised by the codec and parsers and are recovered locally
by the transport loop. Protocol and timeout errors propagate to the caller of
a channel or dongle operation. Transport errors stop the reader loop.
"""
from __future__ import annotations

from typing import Optional

from .models import MessageId, describe_code, describe_message_id


class AntError(RuntimeError):
    """Base class for all driver errors."""
    pass


# Framing

class FrameError(AntError):
    """A byte sequence is not a valid frame."""
    pass


class BadSyncError(FrameError):
    pass


class UnknownTypeError(FrameError):
    pass


class TruncatedFrameError(FrameError):
    pass


class ChecksumMismatchError(FrameError):
    pass


class PayloadTooLargeError(FrameError, ValueError):
    pass


class WrongFrameTypeError(FrameError):
    """A frame was handed to a parser for a different message type."""
    pass


class MalformedPayloadError(FrameError):
    """Payload is shorter than the fixed layout of its message type."""
    pass


# Timeouts

class ResponseTimeoutError(AntError, TimeoutError):
    """No matching reply arrived within the time budget."""
    pass


class NoResponseError(ResponseTimeoutError):
    pass


class NoClosingEventError(ResponseTimeoutError):
    pass


class ChannelIdTimeoutError(ResponseTimeoutError):
    pass


# Protocol

class DeviceRejectedError(AntError):
    """The dongle answered a command with a non-success status code."""

    def __init__(self, code: int, message_id: Optional[int] = None, channel: Optional[int] = None):
        self.code = code
        self.message_id = message_id
        self.channel = channel
        super().__init__(self._describe())

    def _describe(self) -> str:
        text = f"Device rejected command: {describe_code(self.code)}"
        if self.message_id is not None:
            text += f" (command {describe_message_id(self.message_id)}"
            if self.channel is not None:
                text += f", channel {self.channel}"
            text += ")"
        return text


class KeySetupFailedError(DeviceRejectedError):
    """The dongle rejected the network key for a network number."""

    def __init__(self, code: int, network: int):
        self.network = network
        super().__init__(code, MessageId.SET_NETWORK_KEY)

    def _describe(self) -> str:
        return f"{super()._describe()} for network {self.network}"


class ResetFailedError(AntError):
    pass


class ChannelStateError(AntError):
    """Operation is not valid in the channel's current state."""
    pass


# Transport

class TransportError(AntError):
    """The USB link failed or delivered something the driver cannot handle."""
    pass


class ShortWriteError(TransportError):
    def __init__(self, expected: int, written: int):
        self.expected = expected
        self.written = written
        super().__init__(f"Short write: {written} of {expected} bytes")


class UnhandledMessageError(TransportError):
    pass


class DeviceClosedError(AntError):
    """The dongle was shut down while an operation was waiting."""
    pass
