"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from paperlingo.config import get_settings  # noqa: E402
from paperlingo.delivery.state_store import CardStore  # noqa: E402
from paperlingo.remote.client import RemoteStoreError  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Point settings at a throwaway database and no remote store."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'settings.db'}")
    monkeypatch.setenv("REMOTE_BASE_URL", "")
    monkeypatch.delenv("SYNC_IDENTITY", raising=False)
    monkeypatch.delenv("DAILY_LIMIT_DEFAULT", raising=False)
    monkeypatch.delenv("LEARNING_STEPS_MINUTES", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def store(tmp_path):
    """A fresh SQLite card store."""
    card_store = CardStore(database_url=f"sqlite:///{tmp_path / 'cards.db'}")
    yield card_store
    card_store.close()


class FixedClock:
    """Settable clock; call it to read the current time."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock():
    """Local-time clock fixed at noon, far from midnight."""
    return FixedClock(datetime(2024, 3, 12, 12, 0).astimezone())


class FakeRemoteClient:
    """In-memory stand-in for RemoteStoreClient."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.data: dict[tuple[str, str], dict[str, dict]] = {}
        self.failing_kinds: set[str] = set()
        self.upserts: list[tuple[str, str, dict]] = []
        self.deletes: list[tuple[str, str, str]] = []
        self.fetch_hooks = {}
        self.closed = False

    def seed(self, kind: str, identity: str, *records: dict) -> None:
        bucket = self.data.setdefault((identity, kind), {})
        for record in records:
            bucket[record["id"]] = record

    def fetch_all(self, kind, identity):
        if not identity or not self.enabled:
            return []
        if kind in self.fetch_hooks:
            self.fetch_hooks[kind]()
        if kind in self.failing_kinds:
            raise RemoteStoreError(f"GET {kind} failed: 503")
        return list(self.data.get((identity, kind), {}).values())

    def upsert(self, kind, identity, record):
        self.upserts.append((kind, identity, record))
        self.data.setdefault((identity, kind), {})[record["id"]] = record

    def delete(self, kind, identity, record_id):
        self.deletes.append((kind, identity, record_id))
        self.data.get((identity, kind), {}).pop(record_id, None)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_remote():
    return FakeRemoteClient()
