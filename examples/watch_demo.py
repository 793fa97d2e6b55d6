#!/usr/bin/env python3
"""
Watcher demo.

This example demonstrates:
1. Adding a root, then a nested path (absorbed) and a sibling root (restart)
2. Consuming events on a separate thread
3. Closing the watcher while the consumer is still waiting

Usage:
    python examples/watch_demo.py
"""

import shutil
import sys
import tempfile
import threading
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.watch import new_watcher


def consume(watcher) -> None:
    """Print every event until the watcher closes."""
    for event in watcher.events():
        flags = "|".join(event.to_dict()["flags"])
        print(f"[EVENT] {flags:<30} {event.path}")
    print("[EVENT] Event queue closed")


def main() -> None:
    base = Path(tempfile.mkdtemp(prefix="watch_demo_")).resolve()
    docs = base / "docs"
    notes = base / "notes"
    docs.mkdir()
    notes.mkdir()
    (docs / "drafts").mkdir()

    print(f"[DEMO] Working in {base}")

    watcher = new_watcher()
    consumer = threading.Thread(target=consume, args=(watcher,), daemon=True)
    consumer.start()

    try:
        watcher.add(docs)
        watcher.add(docs / "drafts")
        watcher.add(notes)
        print(f"[DEMO] Watched roots: {[str(p) for p in watcher.get_paths()]}")
        time.sleep(0.5)

        (docs / "readme.txt").write_text("hello")
        (docs / "drafts" / "plan.txt").write_text("step 1")
        (notes / "todo.txt").write_text("buy milk")
        (docs / "readme.txt").rename(docs / "README.txt")
        (notes / "todo.txt").unlink()

        time.sleep(1.0)
    finally:
        watcher.close()
        consumer.join(timeout=2.0)
        shutil.rmtree(base, ignore_errors=True)

    print("[DEMO] Done")


if __name__ == "__main__":
    main()
