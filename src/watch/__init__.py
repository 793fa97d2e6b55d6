"""
Watch Package

A recursive filesystem change watcher that wraps the host OS notification
facility (via watchdog) behind a small interface: add directories, read
change events and backend errors from handoff queues, and close.

Features:
- Parent/child containment: nested paths need no extra watch
- One dispatch thread per watcher, restart-in-place as roots are added
- Suppression of the spurious "root created" event fired on subscription
- Unbuffered event delivery with close-safe cancellation
"""

from .models import (
    ChangeFlag,
    FileEvent,
    RawChangeRecord,
    StreamState,
    normalize_path,
)

from .config import WatcherConfig

from .exceptions import (
    WatcherError,
    WatcherConfigError,
    InvalidPathError,
    WatcherClosedError,
    BackendError,
    BackendStartError,
    BackendStopError,
    QueueError,
    QueueClosedError,
)

from .queue import HandoffQueue
from .root_manager import PathRegistry, path_is_child_of
from .backend import NativeStream, END_OF_STREAM
from .fs_watcher import WatchdogStream, RawEventHandler
from .event_processor import EventDispatcher
from .watcher import Watcher, RecursiveWatcher, new_watcher


__all__ = [
    # Models
    "ChangeFlag",
    "FileEvent",
    "RawChangeRecord",
    "StreamState",
    "normalize_path",
    # Config
    "WatcherConfig",
    # Exceptions
    "WatcherError",
    "WatcherConfigError",
    "InvalidPathError",
    "WatcherClosedError",
    "BackendError",
    "BackendStartError",
    "BackendStopError",
    "QueueError",
    "QueueClosedError",
    # Components
    "HandoffQueue",
    "PathRegistry",
    "path_is_child_of",
    "NativeStream",
    "END_OF_STREAM",
    "WatchdogStream",
    "RawEventHandler",
    "EventDispatcher",
    # Watcher
    "Watcher",
    "RecursiveWatcher",
    "new_watcher",
]

__version__ = "0.1.0"
