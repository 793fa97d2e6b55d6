"""Dispatch loop turning raw backend output into FileEvents."""

import logging
import queue
import threading
from pathlib import Path
from typing import Callable, Set

from .backend import END_OF_STREAM, NativeStream
from .exceptions import QueueClosedError
from .models import FileEvent, RawChangeRecord
from .queue import HandoffQueue

logger = logging.getLogger(__name__)


class EventDispatcher:
    """
    Drains a native stream and republishes normalized events.

    run() is the watcher's dispatch thread. Every native backend fires a
    "created" record for each watched root when its subscription starts;
    the first such record per root is dropped, later ones (a root deleted
    and recreated) are delivered.

    Backend errors are buffered and handed to the error queue by
    forward_errors() on a second thread, so a caller that never reads
    errors() still receives events.
    """

    def __init__(
        self,
        stream: NativeStream,
        events: HandoffQueue[FileEvent],
        errors: HandoffQueue[Exception],
        stop_event: threading.Event,
        is_tracking_path: Callable[[Path], bool],
        poll_interval: float = 0.1,
    ):
        """
        Initialize the dispatcher.

        Args:
            stream: Native stream to drain
            events: Output queue for normalized events
            errors: Output queue for backend runtime errors
            stop_event: Set when the watcher closes
            is_tracking_path: Exact-match query against the registered roots
            poll_interval: Seconds to wait for backend output between stop checks
        """
        self.stream = stream
        self.events = events
        self.errors = errors
        self.stop_event = stop_event
        self.is_tracking_path = is_tracking_path
        self.poll_interval = poll_interval
        self._suppressed: Set[Path] = set()
        self._pending_errors: "queue.Queue[Exception]" = queue.Queue()

    def is_spurious(self, record: RawChangeRecord, path: Path) -> bool:
        """
        Check, and record, whether this is a root's startup "created" event.

        Args:
            record: Raw record from the backend
            path: Normalized path of the record

        Returns:
            True if the record should be dropped
        """
        if not record.is_created or path in self._suppressed:
            return False
        if not self.is_tracking_path(path):
            return False

        self._suppressed.add(path)
        return True

    def _send(self, output: HandoffQueue, item) -> bool:
        """Hand an item to the caller; False once the watcher is closing."""
        if self.stop_event.is_set():
            return False
        try:
            output.put(item)
            return True
        except QueueClosedError:
            return False

    def dispatch(self, records) -> bool:
        """
        Filter and publish one batch of raw records.

        Args:
            records: Batch from the native stream

        Returns:
            False if the watcher closed while sending
        """
        for record in records:
            event = FileEvent.from_record(record)

            if self.is_spurious(record, event.path):
                logger.debug(f"Suppressed startup event for {event.path}")
                continue

            if not self._send(self.events, event):
                return False
        return True

    def run(self) -> None:
        """Worker loop; returns on stop, queue closure, or end of stream."""
        logger.debug("Dispatch loop started")
        self._suppressed = set()

        while not self.stop_event.is_set():
            try:
                item = self.stream.next_item(timeout=self.poll_interval)
            except queue.Empty:
                continue

            if item is END_OF_STREAM:
                break

            if isinstance(item, Exception):
                logger.debug(f"Backend error queued: {item}")
                self._pending_errors.put(item)
                continue

            if not self.dispatch(item):
                break

        logger.debug("Dispatch loop stopped")

    def forward_errors(self) -> None:
        """Error worker loop; hands buffered backend errors to the error queue."""
        while not self.stop_event.is_set():
            try:
                error = self._pending_errors.get(timeout=self.poll_interval)
            except queue.Empty:
                continue

            if not self._send(self.errors, error):
                break
