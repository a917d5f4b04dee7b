"""
Remote replication.

Components:
- RemoteStoreClient: HTTP adapter for the keyed remote store
- PushWorker: Fire-and-forget background push queue
- SyncEngine: Activation-time merge and write mirroring
"""

from .client import RemoteStoreClient, RemoteStoreError
from .push_service import PushStatus, PushWorker
from .sync_engine import ActivationReport, SyncEngine, resolve_conflict

__all__ = [
    # Transport
    "RemoteStoreClient",
    "RemoteStoreError",
    # Push
    "PushWorker",
    "PushStatus",
    # Sync
    "SyncEngine",
    "ActivationReport",
    "resolve_conflict",
]
