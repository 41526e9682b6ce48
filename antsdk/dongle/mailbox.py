"""Thread-safe containers shared by the reader thread and application threads.

ReplyQueue holds channel responses until a command picks up the one it is
waiting for. LatestValue holds the most recent channel id reply.
"""
from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Deque, Generic, List, Optional, TypeVar

T = TypeVar("T")


class ReplyQueue(Generic[T]):
    """Ordered queue scanned by predicate.

    take() removes the oldest item that matches and leaves every other item
    in place, so replies for other concerns are not lost.
    """

    def __init__(self):
        self._items: Deque[T] = deque()
        self._cond = threading.Condition()
        self._cancelled: Optional[BaseException] = None

    def put(self, item: T) -> None:
        with self._cond:
            self._items.append(item)
            self._cond.notify_all()

    def take(self, predicate: Callable[[T], bool], timeout: float) -> Optional[T]:
        """Wait for an item matching predicate.

        Args:
            predicate: Match function
            timeout: Seconds to wait; 0 checks once without waiting

        Returns:
            The matching item, or None if the timeout expired.

        Raises:
            The exception given to cancel(), if the queue was cancelled.
        """
        deadline = time.monotonic() + max(timeout, 0.0)
        with self._cond:
            while True:
                if self._cancelled is not None:
                    raise self._cancelled
                for item in self._items:
                    if predicate(item):
                        self._items.remove(item)
                        return item
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._cond.wait(remaining)

    def discard(self, predicate: Callable[[T], bool]) -> List[T]:
        """Remove and return every item matching predicate."""
        with self._cond:
            matched = [item for item in self._items if predicate(item)]
            for item in matched:
                self._items.remove(item)
            return matched

    def cancel(self, error: BaseException) -> None:
        """Make current and future take() calls raise error."""
        with self._cond:
            self._cancelled = error
            self._cond.notify_all()

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)


class LatestValue(Generic[T]):
    """Single slot where the last write wins.

    At most one value is pending. take() empties the slot.
    """

    def __init__(self):
        self._value: Optional[T] = None
        self._cond = threading.Condition()
        self._cancelled: Optional[BaseException] = None

    def set(self, value: T) -> None:
        with self._cond:
            self._value = value
            self._cond.notify_all()

    def clear(self) -> None:
        with self._cond:
            self._value = None

    def take(self, timeout: float) -> Optional[T]:
        """Wait until a value is present, then remove and return it.

        Returns:
            The value, or None if the timeout expired.
        """
        deadline = time.monotonic() + max(timeout, 0.0)
        with self._cond:
            while True:
                if self._cancelled is not None:
                    raise self._cancelled
                if self._value is not None:
                    value, self._value = self._value, None
                    return value
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._cond.wait(remaining)

    def cancel(self, error: BaseException) -> None:
        with self._cond:
            self._cancelled = error
            self._cond.notify_all()
