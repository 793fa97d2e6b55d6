"""Configuration for the watch package."""

import fnmatch
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from .exceptions import WatcherConfigError

BACKENDS = ("auto", "polling")


@dataclass
class WatcherConfig:
    """
    Configuration options for the watcher.

    Attributes:
        latency: Seconds the native backend may batch changes before reporting
        recursive: Whether native watches cover whole subtrees
        backend: Native backend flavour, "auto" or "polling"
        ignore_patterns: Glob patterns for paths the backend should drop
        poll_interval: Seconds the dispatch loop waits for backend output
            before re-checking the stop signal
    """
    latency: float = 0.05
    recursive: bool = True
    backend: str = "auto"
    ignore_patterns: List[str] = field(default_factory=list)
    poll_interval: float = 0.1

    def validate(self) -> None:
        """
        Check that a backend can be built from this configuration.

        Raises:
            WatcherConfigError: If any option is out of range
        """
        if self.backend not in BACKENDS:
            raise WatcherConfigError(
                f"Unknown backend '{self.backend}', expected one of {', '.join(BACKENDS)}"
            )
        if self.latency < 0:
            raise WatcherConfigError(f"latency must not be negative: {self.latency}")
        if self.poll_interval <= 0:
            raise WatcherConfigError(f"poll_interval must be positive: {self.poll_interval}")

    def should_ignore(self, path: Path) -> bool:
        """
        Check if a path should be ignored based on ignore patterns.

        Args:
            path: Path to check

        Returns:
            True if the path should be ignored
        """
        path_str = str(path)
        name = path.name

        for pattern in self.ignore_patterns:
            if fnmatch.fnmatch(name, pattern):
                return True
            if fnmatch.fnmatch(path_str, f"*/{pattern}"):
                return True
            if fnmatch.fnmatch(path_str, pattern):
                return True

        return False

    @classmethod
    def from_env(cls) -> "WatcherConfig":
        """
        Build a configuration from WATCH_* environment variables.

        Unset variables keep their defaults.

        Raises:
            WatcherConfigError: If a numeric variable cannot be parsed
        """
        config = cls()

        latency = os.environ.get("WATCH_LATENCY")
        if latency:
            try:
                config.latency = float(latency)
            except ValueError as e:
                raise WatcherConfigError(f"WATCH_LATENCY is not a number: {latency}") from e

        backend = os.environ.get("WATCH_BACKEND")
        if backend:
            config.backend = backend.strip().lower()

        ignore = os.environ.get("WATCH_IGNORE")
        if ignore:
            config.ignore_patterns = [p.strip() for p in ignore.split(",") if p.strip()]

        return config
