"""
Background push worker for paperlingo.

Mirrors local writes to the remote store without blocking the learner:
- Upserts and deletes are queued and sent from a daemon thread
- Failures are logged and dropped (no retry); the local write is already
  durable and the next activation reconciles
- flush() lets the CLI wait for pending pushes before exiting
"""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Literal

from loguru import logger

from paperlingo.remote.client import RemoteStoreClient, RemoteStoreError

FLUSH_POLL_INTERVAL = 0.05


@dataclass(frozen=True)
class PushOperation:
    action: Literal["upsert", "delete"]
    kind: str
    identity: str
    record_id: str
    record: dict[str, Any] | None = None


@dataclass
class PushStatus:
    """Counters for the status line."""

    is_running: bool = False
    pushed: int = 0
    failed: int = 0
    last_error: str | None = None


@dataclass
class PushWorker:
    """
    Fire-and-forget push queue.

    Usage:
        worker = PushWorker(client)
        worker.start()
        worker.submit_upsert("flashcards", identity, record)
        worker.flush()
        worker.stop()
    """

    client: RemoteStoreClient
    _status: PushStatus = field(default_factory=PushStatus)
    _queue: queue.Queue = field(default_factory=queue.Queue, repr=False)
    _thread: threading.Thread | None = field(default=None, repr=False)
    _stop_event: threading.Event = field(default_factory=threading.Event, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def status(self) -> PushStatus:
        return self._status

    def start(self) -> None:
        """Start the worker thread (idempotent)."""
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                name="remote-push",
                daemon=True,
            )
            self._thread.start()
            self._status.is_running = True
        logger.debug("Remote push worker started")

    def stop(self, timeout: float = 5.0) -> None:
        """Drain pending pushes (bounded by timeout) and stop."""
        if not self._status.is_running:
            return
        self.flush(timeout)
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._status.is_running = False
        logger.debug("Remote push worker stopped")

    # ========================================
    # Submission
    # ========================================

    def submit_upsert(self, kind: str, identity: str | None, record: dict[str, Any]) -> None:
        if not identity or not self.client.enabled:
            return
        self._enqueue(PushOperation("upsert", kind, identity, str(record["id"]), record))

    def submit_delete(self, kind: str, identity: str | None, record_id: str) -> None:
        if not identity or not self.client.enabled:
            return
        self._enqueue(PushOperation("delete", kind, identity, record_id))

    def _enqueue(self, operation: PushOperation) -> None:
        self.start()
        self._queue.put(operation)

    def flush(self, timeout: float | None = None) -> bool:
        """
        Wait until every queued push has been attempted.

        Returns:
            False if the timeout expired first
        """
        if timeout is None:
            self._queue.join()
            return True

        deadline = time.monotonic() + timeout
        while self._queue.unfinished_tasks:
            if time.monotonic() >= deadline:
                return False
            time.sleep(FLUSH_POLL_INTERVAL)
        return True

    # ========================================
    # Worker loop
    # ========================================

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                operation = self._queue.get(timeout=0.2)
            except queue.Empty:
                continue
            try:
                self._send(operation)
            finally:
                self._queue.task_done()

    def _send(self, operation: PushOperation) -> None:
        try:
            if operation.action == "upsert":
                self.client.upsert(operation.kind, operation.identity, operation.record or {})
            else:
                self.client.delete(operation.kind, operation.identity, operation.record_id)
            self._status.pushed += 1
            logger.debug("Pushed {} {}/{}", operation.action, operation.kind, operation.record_id)
        except RemoteStoreError as exc:
            self._status.failed += 1
            self._status.last_error = str(exc)
            logger.warning("Push of {}/{} failed: {}", operation.kind, operation.record_id, exc)
        except Exception as exc:  # Worker must survive anything a push raises
            self._status.failed += 1
            self._status.last_error = str(exc)
            logger.error("Unexpected push error for {}/{}: {}", operation.kind, operation.record_id, exc)
