"""Data models for the watch package."""

import os
from dataclasses import dataclass
from enum import Enum, IntFlag
from pathlib import Path
from typing import Union


class ChangeFlag(IntFlag):
    """Bit flags describing a raw change record."""
    NONE = 0
    ITEM_CREATED = 0x01
    ITEM_REMOVED = 0x02
    ITEM_MODIFIED = 0x04
    ITEM_RENAMED = 0x08
    ITEM_IS_FILE = 0x10
    ITEM_IS_DIR = 0x20
    ROOT_CHANGED = 0x40


class StreamState(Enum):
    """Lifecycle of the native stream owned by a watcher."""
    UNSTARTED = "unstarted"
    RUNNING = "running"
    STOPPED = "stopped"


def normalize_path(raw: Union[str, Path]) -> Path:
    """
    Join a raw backend path against the filesystem root.

    Backends may report paths with or without the leading separator;
    the result is always absolute and free of ``.`` components.

    Args:
        raw: Path as reported by the backend

    Returns:
        Absolute, normalized path
    """
    joined = os.path.join(os.sep, os.fspath(raw))
    return Path(os.path.normpath(joined))


@dataclass
class RawChangeRecord:
    """
    Raw change notification produced by the native backend.

    Attributes:
        path: Path as reported by the backend (may be root-relative)
        flags: Change flags for this record
    """
    path: str
    flags: ChangeFlag = ChangeFlag.NONE

    @property
    def is_created(self) -> bool:
        return bool(self.flags & ChangeFlag.ITEM_CREATED)


@dataclass(frozen=True)
class FileEvent:
    """
    Normalized change event delivered to the caller.

    Attributes:
        path: Absolute path of the changed item
        flags: Change flags copied from the raw record
    """
    path: Path
    flags: ChangeFlag = ChangeFlag.NONE

    def __post_init__(self):
        if not self.path.is_absolute():
            raise ValueError(f"path must be absolute: {self.path}")

    @classmethod
    def from_record(cls, record: RawChangeRecord) -> "FileEvent":
        """Create from a raw record, normalizing its path."""
        return cls(path=normalize_path(record.path), flags=record.flags)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "path": str(self.path),
            "flags": [flag.name for flag in ChangeFlag if flag and flag in self.flags],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileEvent":
        """Create from dictionary."""
        flags = ChangeFlag.NONE
        for name in data.get("flags", []):
            flags |= ChangeFlag[name]
        return cls(path=Path(data["path"]), flags=flags)
