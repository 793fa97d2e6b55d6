"""Unbuffered handoff queue used for the watcher's public outputs."""

import queue
import threading
import time
from typing import Generic, Iterator, Optional, TypeVar

from .exceptions import QueueClosedError

T = TypeVar("T")


class HandoffQueue(Generic[T]):
    """
    Zero-capacity queue between one or more producers and a consumer.

    Features:
    - put() returns only once a consumer has taken the item
    - close() wakes every blocked producer and consumer
    - Items not yet taken when the queue closes are dropped
    - Iteration ends when the queue is closed
    - Thread-safe operations
    """

    def __init__(self, name: str = "queue"):
        """
        Initialize the queue.

        Args:
            name: Label used in error messages
        """
        self.name = name
        self._cond = threading.Condition(threading.Lock())
        self._item: Optional[T] = None
        self._has_item = False
        self._put_count = 0
        self._taken_count = 0
        self._closed = False

    def put(self, item: T, timeout: Optional[float] = None) -> None:
        """
        Hand an item to a consumer, blocking until it is taken.

        Args:
            item: Item to deliver
            timeout: Maximum seconds for the whole handoff, covering both
                the wait for the slot and the wait for a consumer; None
                waits until a consumer takes the item or the queue closes

        Raises:
            QueueClosedError: If the queue closed before the item was taken
            queue.Full: If no consumer took the item within timeout; the
                item is withdrawn
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        def remaining() -> Optional[float]:
            if deadline is None:
                return None
            return max(0.0, deadline - time.monotonic())

        with self._cond:
            if not self._cond.wait_for(lambda: self._closed or not self._has_item, remaining()):
                raise queue.Full
            if self._closed:
                raise QueueClosedError(f"{self.name} is closed")

            self._item = item
            self._has_item = True
            self._put_count += 1
            ticket = self._put_count
            self._cond.notify_all()

            self._cond.wait_for(
                lambda: self._closed or self._taken_count >= ticket, remaining()
            )
            if self._taken_count >= ticket:
                return
            if not self._closed:
                # Timed out with the item still in the slot.
                self._item = None
                self._has_item = False
                self._put_count -= 1
                self._cond.notify_all()
                raise queue.Full
            raise QueueClosedError(f"{self.name} closed before item was taken")

    def get(self, timeout: Optional[float] = None) -> T:
        """
        Take the next item, blocking until a producer offers one.

        Args:
            timeout: Maximum seconds to wait; None waits indefinitely

        Returns:
            The item handed over by a producer

        Raises:
            QueueClosedError: If the queue is closed
            queue.Empty: If nothing arrived within timeout
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._closed or self._has_item, timeout):
                raise queue.Empty
            if self._closed:
                raise QueueClosedError(f"{self.name} is closed")

            item = self._item
            self._item = None
            self._has_item = False
            self._taken_count += 1
            self._cond.notify_all()
            return item

    def close(self) -> None:
        """Close the queue and wake all waiters. Safe to call repeatedly."""
        with self._cond:
            if self._closed:
                return

            self._closed = True
            self._item = None
            self._has_item = False
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        """Check if the queue has been closed."""
        with self._cond:
            return self._closed

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.get()
            except QueueClosedError:
                return

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
