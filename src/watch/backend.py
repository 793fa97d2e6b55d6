"""
Native backend contract.

A native stream watches a list of root paths and publishes batches of
raw change records (or runtime errors) on an internal output queue that
the dispatch loop drains.
"""

import logging
import queue
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

from .models import RawChangeRecord

logger = logging.getLogger(__name__)

END_OF_STREAM = None

BackendItem = Union[List[RawChangeRecord], Exception, None]


class NativeStream(ABC):
    """
    Abstract base class for native change-notification backends.

    The owner sets ``paths`` before calling start() or restart(); the
    stream itself never changes the list.
    """

    def __init__(self, latency: float = 0.05, recursive: bool = True):
        """
        Initialize the stream (not started).

        Args:
            latency: Seconds the backend may batch changes before reporting
            recursive: Whether each root is watched with its whole subtree
        """
        self.paths: List[Path] = []
        self.latency = latency
        self.recursive = recursive
        self._output: "queue.Queue[BackendItem]" = queue.Queue()

    @abstractmethod
    def start(self) -> None:
        """
        Begin watching ``paths``.

        Raises:
            BackendStartError: If the backend cannot watch the paths
        """
        pass

    @abstractmethod
    def restart(self) -> None:
        """
        Re-subscribe to the current ``paths`` while running.

        Raises:
            BackendStartError: If the backend cannot watch the paths
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """
        Stop watching and end the output stream.

        Implementations must call close_output() even when stopping fails.

        Raises:
            BackendStopError: If the backend did not stop cleanly
        """
        pass

    def publish(self, records: List[RawChangeRecord]) -> None:
        """Publish a batch of raw records to the dispatch loop."""
        if records:
            self._output.put(list(records))

    def report_error(self, error: Exception) -> None:
        """Publish a runtime failure to be surfaced on the watcher's error queue."""
        logger.debug(f"Backend error reported: {error}")
        self._output.put(error)

    def close_output(self) -> None:
        """Mark the output stream as exhausted."""
        self._output.put(END_OF_STREAM)

    def next_item(self, timeout: Optional[float] = None) -> BackendItem:
        """
        Take the next batch, error, or END_OF_STREAM from the output.

        Args:
            timeout: Maximum seconds to wait

        Raises:
            queue.Empty: If nothing was published within timeout
        """
        return self._output.get(timeout=timeout)
