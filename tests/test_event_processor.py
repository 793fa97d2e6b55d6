"""Tests for the dispatch loop."""

import pytest
import queue
import threading
import time
from pathlib import Path

from src.watch.event_processor import EventDispatcher
from src.watch.exceptions import QueueClosedError
from src.watch.models import ChangeFlag, FileEvent, RawChangeRecord
from src.watch.queue import HandoffQueue


@pytest.fixture
def roots():
    return {Path("/a")}


@pytest.fixture
def dispatcher(stream, roots):
    return EventDispatcher(
        stream,
        HandoffQueue("events"),
        HandoffQueue("errors"),
        threading.Event(),
        lambda path: path in roots,
        poll_interval=0.02,
    )


@pytest.fixture
def running(dispatcher):
    threads = [
        threading.Thread(target=dispatcher.run, daemon=True),
        threading.Thread(target=dispatcher.forward_errors, daemon=True),
    ]
    for thread in threads:
        thread.start()
    yield dispatcher
    dispatcher.stop_event.set()
    dispatcher.events.close()
    dispatcher.errors.close()
    for thread in threads:
        thread.join(timeout=2.0)


class TestIsSpurious:
    """Tests for startup-event suppression."""

    def test_first_created_for_root_is_spurious(self, dispatcher):
        record = RawChangeRecord("/a", ChangeFlag.ITEM_CREATED)
        assert dispatcher.is_spurious(record, Path("/a")) is True

    def test_second_created_for_root_is_delivered(self, dispatcher):
        record = RawChangeRecord("/a", ChangeFlag.ITEM_CREATED)
        dispatcher.is_spurious(record, Path("/a"))
        assert dispatcher.is_spurious(record, Path("/a")) is False

    def test_created_for_non_root_is_delivered(self, dispatcher):
        record = RawChangeRecord("/a/file.txt", ChangeFlag.ITEM_CREATED)
        assert dispatcher.is_spurious(record, Path("/a/file.txt")) is False

    def test_non_created_for_root_is_delivered(self, dispatcher):
        record = RawChangeRecord("/a", ChangeFlag.ITEM_MODIFIED)
        assert dispatcher.is_spurious(record, Path("/a")) is False

    def test_non_created_does_not_consume_suppression(self, dispatcher):
        dispatcher.is_spurious(RawChangeRecord("/a", ChangeFlag.ITEM_MODIFIED), Path("/a"))
        created = RawChangeRecord("/a", ChangeFlag.ITEM_CREATED)
        assert dispatcher.is_spurious(created, Path("/a")) is True


class TestEventDispatcher:
    """Tests for EventDispatcher running in a thread."""

    def test_startup_scenario(self, stream, running):
        stream.emit("/a", ChangeFlag.ITEM_CREATED | ChangeFlag.ITEM_IS_DIR)
        stream.emit("/a/file.txt", ChangeFlag.ITEM_CREATED | ChangeFlag.ITEM_IS_FILE)

        event = running.events.get(timeout=2.0)

        assert event == FileEvent(
            path=Path("/a/file.txt"),
            flags=ChangeFlag.ITEM_CREATED | ChangeFlag.ITEM_IS_FILE,
        )
        with pytest.raises(queue.Empty):
            running.events.get(timeout=0.1)

    def test_root_recreated_later_is_delivered(self, stream, running):
        stream.emit("/a", ChangeFlag.ITEM_CREATED)
        stream.emit("/a", ChangeFlag.ITEM_REMOVED)
        stream.emit("/a", ChangeFlag.ITEM_CREATED)

        first = running.events.get(timeout=2.0)
        second = running.events.get(timeout=2.0)

        assert first.flags == ChangeFlag.ITEM_REMOVED
        assert second.path == Path("/a")
        assert second.flags == ChangeFlag.ITEM_CREATED

    def test_paths_joined_to_root(self, stream, running):
        stream.emit("foo/bar")

        event = running.events.get(timeout=2.0)

        assert event.path == Path("/foo/bar")
        assert event.path.is_absolute()

    def test_relative_root_created_is_suppressed(self, stream, running):
        stream.emit("a", ChangeFlag.ITEM_CREATED)
        stream.emit("a/x")

        assert running.events.get(timeout=2.0).path == Path("/a/x")

    def test_batch_order_preserved(self, stream, running):
        stream.publish([
            RawChangeRecord("/a/1", ChangeFlag.ITEM_MODIFIED),
            RawChangeRecord("/a/2", ChangeFlag.ITEM_MODIFIED),
            RawChangeRecord("/a/3", ChangeFlag.ITEM_MODIFIED),
        ])

        paths = [running.events.get(timeout=2.0).path for _ in range(3)]

        assert paths == [Path("/a/1"), Path("/a/2"), Path("/a/3")]

    def test_backend_error_forwarded(self, stream, running):
        error = RuntimeError("kernel dropped events")
        stream.report_error(error)

        assert running.errors.get(timeout=2.0) is error

    def test_loop_survives_backend_error(self, stream, running):
        stream.report_error(RuntimeError("boom"))
        running.errors.get(timeout=2.0)

        stream.emit("/a/after.txt")

        assert running.events.get(timeout=2.0).path == Path("/a/after.txt")

    def test_unread_error_does_not_block_events(self, stream, running):
        stream.report_error(RuntimeError("nobody reads this"))
        stream.emit("/a/after.txt")

        assert running.events.get(timeout=2.0).path == Path("/a/after.txt")

    def test_close_releases_blocked_error_send(self, stream, dispatcher):
        threads = [
            threading.Thread(target=dispatcher.run, daemon=True),
            threading.Thread(target=dispatcher.forward_errors, daemon=True),
        ]
        for thread in threads:
            thread.start()

        stream.report_error(RuntimeError("never read"))
        time.sleep(0.1)
        assert all(t.is_alive() for t in threads)

        dispatcher.stop_event.set()
        dispatcher.errors.close()
        for thread in threads:
            thread.join(timeout=2.0)

        assert not any(t.is_alive() for t in threads)

    def test_end_of_stream_terminates(self, stream, dispatcher):
        thread = threading.Thread(target=dispatcher.run, daemon=True)
        thread.start()

        stream.close_output()
        thread.join(timeout=2.0)

        assert not thread.is_alive()

    def test_stop_event_terminates(self, dispatcher):
        thread = threading.Thread(target=dispatcher.run, daemon=True)
        thread.start()

        dispatcher.stop_event.set()
        thread.join(timeout=2.0)

        assert not thread.is_alive()

    def test_closing_queue_releases_blocked_send(self, stream, dispatcher):
        thread = threading.Thread(target=dispatcher.run, daemon=True)
        thread.start()

        stream.emit("/a/unread.txt")
        time.sleep(0.1)
        # Nobody reads; the loop is blocked handing the event over.
        assert thread.is_alive()

        dispatcher.stop_event.set()
        dispatcher.events.close()
        thread.join(timeout=2.0)

        assert not thread.is_alive()
        with pytest.raises(QueueClosedError):
            dispatcher.events.get(timeout=0.1)

    def test_no_send_after_stop(self, stream, dispatcher):
        dispatcher.stop_event.set()

        assert dispatcher.dispatch([RawChangeRecord("/a/x", ChangeFlag.ITEM_MODIFIED)]) is False
