"""
Unit tests for the background push worker.

Uses an in-memory remote client; flush() synchronizes with the worker
thread so assertions never race it.
"""

import threading
from unittest.mock import Mock

from paperlingo.remote.client import RemoteStoreError
from paperlingo.remote.push_service import PushWorker


class TestSubmission:
    """Tests for queueing pushes."""

    def test_upsert_and_delete_are_sent(self, fake_remote):
        worker = PushWorker(fake_remote)

        worker.submit_upsert("flashcards", "learner", {"id": "c1", "term": "x"})
        worker.submit_delete("decks", "learner", "d1")

        assert worker.flush(timeout=5) is True
        assert fake_remote.upserts == [("flashcards", "learner", {"id": "c1", "term": "x"})]
        assert fake_remote.deletes == [("decks", "learner", "d1")]
        assert worker.status.pushed == 2
        worker.stop()

    def test_no_identity_is_noop(self, fake_remote):
        worker = PushWorker(fake_remote)

        worker.submit_upsert("flashcards", None, {"id": "c1"})
        worker.submit_delete("flashcards", "", "c1")

        assert worker.status.is_running is False
        assert fake_remote.upserts == []

    def test_disabled_client_is_noop(self, fake_remote):
        fake_remote.enabled = False
        worker = PushWorker(fake_remote)

        worker.submit_upsert("flashcards", "learner", {"id": "c1"})

        assert worker.status.is_running is False


class TestFailures:
    """Failed pushes are logged and dropped, never retried."""

    def test_remote_error_is_swallowed(self):
        client = Mock(enabled=True)
        client.upsert.side_effect = [RemoteStoreError("503"), None]
        worker = PushWorker(client)

        worker.submit_upsert("flashcards", "learner", {"id": "c1"})
        worker.submit_upsert("flashcards", "learner", {"id": "c2"})
        worker.flush(timeout=5)

        assert client.upsert.call_count == 2
        assert worker.status.failed == 1
        assert worker.status.pushed == 1
        assert worker.status.last_error == "503"
        worker.stop()

    def test_unexpected_error_does_not_kill_worker(self):
        client = Mock(enabled=True)
        client.delete.side_effect = [KeyError("boom"), None]
        worker = PushWorker(client)

        worker.submit_delete("logs", "learner", "l1")
        worker.submit_delete("logs", "learner", "l2")
        worker.flush(timeout=5)

        assert client.delete.call_count == 2
        assert worker.status.failed == 1
        worker.stop()


class TestLifecycle:
    def test_start_is_idempotent(self, fake_remote):
        worker = PushWorker(fake_remote)
        worker.start()
        first = worker._thread
        worker.start()

        assert worker._thread is first
        worker.stop()
        assert worker.status.is_running is False

    def test_flush_with_empty_queue(self, fake_remote):
        assert PushWorker(fake_remote).flush(timeout=1) is True

    def test_timed_out_flush_leaves_no_threads_behind(self):
        release = threading.Event()
        client = Mock(enabled=True)
        client.upsert.side_effect = lambda *args: release.wait(5)
        worker = PushWorker(client)

        worker.submit_upsert("flashcards", "learner", {"id": "c1"})
        threads_before = threading.active_count()

        for _ in range(3):
            assert worker.flush(timeout=0.05) is False

        assert threading.active_count() == threads_before

        release.set()
        assert worker.flush(timeout=5) is True
        worker.stop()
        assert client.upsert.call_count == 1
