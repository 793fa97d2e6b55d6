"""Pytest configuration and fixtures."""

import sys
import threading
from pathlib import Path
from typing import List, Tuple

import pytest

# Add project root to Python path so `src.watch` imports without installing
root_path = Path(__file__).parent.parent
sys.path.insert(0, str(root_path))

from src.watch.backend import NativeStream
from src.watch.exceptions import BackendStartError, BackendStopError
from src.watch.models import ChangeFlag, RawChangeRecord


class RecordingStream(NativeStream):
    """In-memory native stream that records every start/restart/stop call."""

    def __init__(self, fail_start=False, fail_restart=False, fail_stop=False):
        super().__init__(latency=0.001)
        self.calls: List[Tuple[str, List[Path]]] = []
        self.fail_start = fail_start
        self.fail_restart = fail_restart
        self.fail_stop = fail_stop
        self._calls_lock = threading.Lock()

    def _record(self, name: str) -> None:
        with self._calls_lock:
            self.calls.append((name, list(self.paths)))

    def start(self) -> None:
        self._record("start")
        if self.fail_start:
            raise BackendStartError("start refused")

    def restart(self) -> None:
        self._record("restart")
        if self.fail_restart:
            raise BackendStartError("restart refused")

    def stop(self) -> None:
        self._record("stop")
        self.close_output()
        if self.fail_stop:
            raise BackendStopError("stop failed")

    def call_names(self) -> List[str]:
        with self._calls_lock:
            return [name for name, _ in self.calls]

    def emit(self, path, flags=ChangeFlag.ITEM_MODIFIED) -> None:
        self.publish([RawChangeRecord(path=str(path), flags=flags)])


@pytest.fixture
def stream():
    return RecordingStream()
