"""Registry of watched root paths with parent/child containment."""

import os
import threading
from pathlib import Path
from typing import List, Optional, Union

PathLike = Union[str, Path]


def path_is_child_of(path: PathLike, parent: PathLike) -> bool:
    """
    Check if a path is equal to, or nested below, a parent directory.

    Comparison is by path component, so "/a/bc" is not a child of "/a/b".

    Args:
        path: Candidate child path
        parent: Candidate ancestor path

    Returns:
        True if path lies inside parent
    """
    path = Path(os.path.normpath(os.fspath(path)))
    parent = Path(os.path.normpath(os.fspath(parent)))
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


class PathRegistry:
    """
    Ordered list of root paths registered with the native backend.

    No two entries are ancestor and descendant of each other: native
    watches are recursive, so a nested path is already covered.

    The registry does not own its lock. The watcher passes in the same
    mutex that guards its start/restart decisions so both are updated
    together.
    """

    def __init__(self, lock: Optional[threading.RLock] = None):
        """
        Initialize the registry.

        Args:
            lock: Mutex shared with the owner; a private one is created if None
        """
        self._paths: List[Path] = []
        self._lock = lock if lock is not None else threading.RLock()

    def covers(self, path: PathLike) -> bool:
        """
        Check if a path is equal to, or below, any registered root.

        Args:
            path: Path to check

        Returns:
            True if an existing root already watches this path
        """
        with self._lock:
            return any(path_is_child_of(path, root) for root in self._paths)

    def add(self, path: PathLike) -> bool:
        """
        Register a root path unless it is already covered.

        Roots nested below the new path are dropped, since the new
        recursive watch covers them.

        Args:
            path: Absolute directory path

        Returns:
            True if the path was appended, False if it was already covered
        """
        path = Path(path)
        with self._lock:
            if self.covers(path):
                return False

            self._paths = [p for p in self._paths if not path_is_child_of(p, path)]
            self._paths.append(path)
            return True

    def restore(self, paths: List[PathLike]) -> None:
        """
        Replace the roots with an earlier snapshot, used to undo an add
        the backend refused.

        Args:
            paths: List previously returned by get_paths()
        """
        with self._lock:
            self._paths = [Path(p) for p in paths]

    def is_tracking_path(self, path: PathLike) -> bool:
        """
        Check if a path is literally one of the registered roots.

        This is an exact match, not a containment query.

        Args:
            path: Path to check

        Returns:
            True if the path is a registered root
        """
        path = Path(path)
        with self._lock:
            return path in self._paths

    def get_paths(self) -> List[Path]:
        """
        Get a snapshot of the registered roots in insertion order.

        Returns:
            List of root paths
        """
        with self._lock:
            return list(self._paths)

    def __len__(self) -> int:
        """Return the number of registered roots."""
        with self._lock:
            return len(self._paths)

    def __contains__(self, path: PathLike) -> bool:
        """Check if a path is a registered root."""
        return self.is_tracking_path(path)
