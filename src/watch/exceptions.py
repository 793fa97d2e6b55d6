"""Custom exceptions for the watch package."""


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class WatcherConfigError(WatcherError, ValueError):
    """The native backend cannot be built from the given configuration."""
    pass


class InvalidPathError(WatcherError, ValueError):
    """A watch path is not an absolute path."""
    pass


class WatcherClosedError(WatcherError):
    """Operation attempted on a watcher that has been closed."""
    pass


class BackendError(WatcherError):
    """Error reported by the native notification backend."""
    pass


class BackendStartError(BackendError):
    """The native backend refused to start or restart."""
    pass


class BackendStopError(BackendError):
    """The native backend failed to stop cleanly."""
    pass


class QueueError(WatcherError):
    """Error related to a handoff queue."""
    pass


class QueueClosedError(QueueError):
    """Queue has been closed; nothing more will be delivered."""
    pass
