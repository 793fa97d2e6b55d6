"""Watcher contract and its implementation over recursive native streams."""

import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

from .backend import NativeStream
from .config import WatcherConfig
from .event_processor import EventDispatcher
from .exceptions import InvalidPathError, WatcherClosedError
from .fs_watcher import WatchdogStream
from .models import FileEvent, StreamState
from .queue import HandoffQueue
from .root_manager import PathRegistry

logger = logging.getLogger(__name__)

JOIN_TIMEOUT = 5.0


class Watcher(ABC):
    """
    Uniform interface over a native change-notification facility.

    Callers register directories with add(), read FileEvents from
    events() and backend failures from errors(), and finish with close().
    """

    @abstractmethod
    def add(self, path: Union[str, Path]) -> None:
        """
        Start watching a directory and everything below it.

        Args:
            path: Absolute directory path

        Raises:
            InvalidPathError: If the path is not absolute
            WatcherClosedError: If the watcher has been closed
            BackendStartError: If the native backend refuses the path
        """
        pass

    @abstractmethod
    def events(self) -> HandoffQueue[FileEvent]:
        """Return the queue of normalized change events."""
        pass

    @abstractmethod
    def errors(self) -> HandoffQueue[Exception]:
        """Return the queue of native backend runtime errors."""
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Stop the native backend and close both output queues.

        Raises:
            BackendStopError: If the backend did not stop cleanly
        """
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class RecursiveWatcher(Watcher):
    """
    Watcher for backends whose watches cover whole subtrees.

    The first add() spawns the dispatch loop and its error forwarder,
    then starts the stream; each later add() of an uncovered path
    restarts the stream with the enlarged path list. One re-entrant
    lock guards the path registry and every start/restart/stop decision.
    """

    def __init__(self, stream: NativeStream, config: Optional[WatcherConfig] = None):
        """
        Initialize the watcher (stream configured, not started).

        Args:
            stream: Native stream to control
            config: Watcher configuration
        """
        self.config = config or WatcherConfig()
        self._stream = stream
        self._lock = threading.RLock()
        self._registry = PathRegistry(self._lock)
        self._events: HandoffQueue[FileEvent] = HandoffQueue("events")
        self._errors: HandoffQueue[Exception] = HandoffQueue("errors")
        self._stop_event = threading.Event()
        self._state = StreamState.UNSTARTED
        self._thread: Optional[threading.Thread] = None
        self._error_thread: Optional[threading.Thread] = None

        self._dispatcher = EventDispatcher(
            stream,
            self._events,
            self._errors,
            self._stop_event,
            self._registry.is_tracking_path,
            poll_interval=self.config.poll_interval,
        )

    @staticmethod
    def _check_path(path: Union[str, Path]) -> Path:
        raw = os.fspath(path)
        if not os.path.isabs(raw):
            raise InvalidPathError(f"Watch path must be absolute: {raw}")
        return Path(os.path.normpath(raw))

    def _start_stream(self) -> None:
        if self._thread is None:
            self._thread = threading.Thread(
                target=self._dispatcher.run,
                name="EventDispatcher",
                daemon=True,
            )
            self._thread.start()

            self._error_thread = threading.Thread(
                target=self._dispatcher.forward_errors,
                name="ErrorForwarder",
                daemon=True,
            )
            self._error_thread.start()

        self._stream.start()
        self._state = StreamState.RUNNING

    def add(self, path: Union[str, Path]) -> None:
        path = self._check_path(path)

        with self._lock:
            if self._state is StreamState.STOPPED:
                raise WatcherClosedError("Watcher is closed")

            previous = self._registry.get_paths()
            if not self._registry.add(path):
                logger.debug(f"Already covered by a watched root: {path}")
                return

            self._stream.paths = self._registry.get_paths()
            try:
                if self._state is StreamState.UNSTARTED:
                    self._start_stream()
                else:
                    self._stream.restart()
            except Exception:
                # Keep the registry in step with what the backend accepted.
                self._registry.restore(previous)
                self._stream.paths = self._registry.get_paths()
                raise

            logger.info(f"Watching {path}")

    def events(self) -> HandoffQueue[FileEvent]:
        return self._events

    def errors(self) -> HandoffQueue[Exception]:
        return self._errors

    def close(self) -> None:
        with self._lock:
            if self._state is StreamState.STOPPED:
                return
            self._state = StreamState.STOPPED

            try:
                self._stream.stop()
            finally:
                self._stop_event.set()
                self._events.close()
                self._errors.close()
                threads = [self._thread, self._error_thread]

        for thread in threads:
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout=JOIN_TIMEOUT)

    def get_paths(self) -> List[Path]:
        """
        Get the currently watched roots.

        Returns:
            List of root paths in the order they were added
        """
        return self._registry.get_paths()

    @property
    def state(self) -> StreamState:
        """Current lifecycle state of the native stream."""
        with self._lock:
            return self._state


def new_watcher(
    config: Optional[WatcherConfig] = None,
    stream: Optional[NativeStream] = None,
) -> Watcher:
    """
    Create an unstarted watcher.

    Args:
        config: Watcher configuration (defaults to WatcherConfig())
        stream: Native stream to use; a WatchdogStream for the host OS
            is built from config if None

    Returns:
        A watcher with no paths and no background thread yet

    Raises:
        WatcherConfigError: If no backend can be built from config
    """
    config = config or WatcherConfig()
    config.validate()
    if stream is None:
        stream = WatchdogStream(config)
    return RecursiveWatcher(stream, config)
