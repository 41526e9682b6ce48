"""Asynchronous fan-out of channel notifications.

The reader thread must never wait on application code, so publish() only
enqueues. A dedicated worker thread per notifier delivers items to the
subscribers in arrival order.
"""
from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STOP = object()


class Notifier(Generic[T]):
    """Publishes items to subscriber callbacks on a worker thread.

    Example:
        >>> notifier = Notifier("ChannelEvents-0")
        >>> unsubscribe = notifier.subscribe(lambda item: print(item))
        >>> notifier.publish("hello")   # returns immediately
        >>> unsubscribe()
        >>> notifier.stop()
    """

    def __init__(self, name: str):
        self._name = name
        self._subscribers: List[Callable[[T], None]] = []
        self._subscriber_lock = threading.Lock()
        self._queue: queue.Queue = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._thread_lock = threading.Lock()
        self._stopped = False

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register a callback.

        Callbacks run on the notifier's worker thread. A slow callback delays
        later items of this notifier only.

        Returns:
            Unsubscribe function to remove this callback
        """
        with self._subscriber_lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._subscriber_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def has_subscribers(self) -> bool:
        with self._subscriber_lock:
            return bool(self._subscribers)

    def publish(self, item: T) -> None:
        """Queue item for delivery. Never blocks on subscribers."""
        with self._thread_lock:
            if self._stopped:
                logger.debug(f"{self._name}: dropped item published after stop")
                return
            self._ensure_worker()
            self._queue.put(item)

    def stop(self, timeout: float = 1.0) -> None:
        """Deliver what is already queued, then stop the worker thread."""
        with self._thread_lock:
            self._stopped = True
            thread = self._thread
            self._thread = None
            if thread is None:
                return
            self._queue.put(_STOP)
        if thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def _ensure_worker(self) -> None:
        # Caller holds _thread_lock
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._worker_loop,
            daemon=True,
            name=self._name,
        )
        self._thread.start()

    def _worker_loop(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                break

            with self._subscriber_lock:
                callbacks = list(self._subscribers)

            for callback in callbacks:
                try:
                    callback(item)
                except Exception as e:
                    logger.error(f"{self._name}: error in subscriber callback: {e}", exc_info=True)
