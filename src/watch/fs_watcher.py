"""Native stream backed by the watchdog library."""

import logging
import os
from pathlib import Path
from typing import List, Optional

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver

from .backend import NativeStream
from .config import WatcherConfig
from .exceptions import BackendStartError, BackendStopError
from .models import ChangeFlag, RawChangeRecord

logger = logging.getLogger(__name__)

# watchdog polls its emitter queue with this timeout; zero would spin.
MIN_OBSERVER_TIMEOUT = 0.001
JOIN_TIMEOUT = 5.0

EVENT_FLAGS = {
    EVENT_TYPE_CREATED: ChangeFlag.ITEM_CREATED,
    EVENT_TYPE_DELETED: ChangeFlag.ITEM_REMOVED,
    EVENT_TYPE_MODIFIED: ChangeFlag.ITEM_MODIFIED,
    EVENT_TYPE_MOVED: ChangeFlag.ITEM_RENAMED,
}


class RawEventHandler(FileSystemEventHandler):
    """Handler that converts watchdog events to RawChangeRecord batches."""

    def __init__(self, stream: "WatchdogStream", config: WatcherConfig):
        super().__init__()
        self.stream = stream
        self.config = config

    def _should_ignore(self, path: str) -> bool:
        """Check if the path should be ignored."""
        return self.config.should_ignore(Path(path))

    def _flags_for(self, event: FileSystemEvent, path: str) -> ChangeFlag:
        flags = EVENT_FLAGS[event.event_type]
        flags |= ChangeFlag.ITEM_IS_DIR if event.is_directory else ChangeFlag.ITEM_IS_FILE
        if event.event_type != EVENT_TYPE_CREATED and Path(path) in self.stream.paths:
            flags |= ChangeFlag.ROOT_CHANGED
        return flags

    def to_records(self, event: FileSystemEvent) -> List[RawChangeRecord]:
        """
        Convert one watchdog event to raw records.

        Moves yield one record for the source and one for the destination.
        Open/close notifications are not changes and yield nothing.
        """
        if event.event_type not in EVENT_FLAGS:
            return []

        paths = [os.fsdecode(event.src_path)]
        if event.event_type == EVENT_TYPE_MOVED and event.dest_path:
            paths.append(os.fsdecode(event.dest_path))

        return [
            RawChangeRecord(path=path, flags=self._flags_for(event, path))
            for path in paths
            if not self._should_ignore(path)
        ]

    def on_any_event(self, event: FileSystemEvent) -> None:
        try:
            records = self.to_records(event)
        except (OSError, ValueError) as e:
            self.stream.report_error(e)
            return
        self.stream.publish(records)


class WatchdogStream(NativeStream):
    """
    Native stream over a single watchdog observer.

    The observer is the host OS facility chosen by watchdog (inotify,
    FSEvents, kqueue, ReadDirectoryChangesW), or the polling observer
    when configured. Restart reschedules every root on the same
    running observer.
    """

    def __init__(self, config: Optional[WatcherConfig] = None):
        """
        Initialize the stream.

        Args:
            config: Watcher configuration

        Raises:
            WatcherConfigError: If the configuration is invalid
        """
        self.config = config or WatcherConfig()
        self.config.validate()
        super().__init__(latency=self.config.latency, recursive=self.config.recursive)

        self._handler = RawEventHandler(self, self.config)
        self._observer = self._create_observer()
        self._started = False

    def _create_observer(self) -> BaseObserver:
        timeout = max(self.latency, MIN_OBSERVER_TIMEOUT)
        if self.config.backend == "polling":
            return PollingObserver(timeout=timeout)
        return Observer(timeout=timeout)

    def _check_paths(self) -> None:
        for path in self.paths:
            if not Path(path).is_dir():
                raise BackendStartError(f"Watch path is not a directory: {path}")

    def _schedule_all(self) -> None:
        for path in self.paths:
            self._observer.schedule(self._handler, str(path), recursive=self.recursive)

    def start(self) -> None:
        self._check_paths()
        try:
            self._schedule_all()
            self._observer.start()
        except OSError as e:
            self._observer.unschedule_all()
            raise BackendStartError(f"Failed to start watching {self.paths}: {e}") from e

        self._started = True
        logger.info(f"Started watching {len(self.paths)} path(s)")

    def restart(self) -> None:
        self._check_paths()
        self._observer.unschedule_all()
        try:
            self._schedule_all()
        except OSError as e:
            raise BackendStartError(f"Failed to restart watching {self.paths}: {e}") from e

        logger.info(f"Restarted watching {len(self.paths)} path(s)")

    def stop(self) -> None:
        try:
            self._observer.stop()
            if self._started:
                self._observer.join(timeout=JOIN_TIMEOUT)
                if self._observer.is_alive():
                    raise BackendStopError(
                        f"Observer did not stop within {JOIN_TIMEOUT}s"
                    )
        finally:
            self.close_output()

        logger.info("Stopped watching")

    @property
    def is_running(self) -> bool:
        """Check if the observer thread is alive."""
        return self._started and self._observer.is_alive()
