"""
Sync Engine for paperlingo.

Reconciles the local card store with the remote store for one login.

Activation (once per login):
1. Discard all local cards, decks and review logs, so switching identities
   never blends two learners
2. Fetch remote cards, decks and review logs for the identity
3. Adopt remote cards; when a local card with the same id exists, keep the
   replica with more progress (repetitions + interval_days), remote wins
   ties, and re-push the local replica if it won
4. Adopt remote decks and review logs verbatim

After activation every local write is mirrored with a best-effort push.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from paperlingo.delivery.models import Card
from paperlingo.delivery.state_store import CardStore
from paperlingo.remote.client import RemoteStoreClient, RemoteStoreError
from paperlingo.remote.push_service import PushWorker
from paperlingo.remote.records import (
    KIND_CARDS,
    KIND_DECKS,
    KIND_LOGS,
    Entity,
    MalformedRecordError,
    card_from_record,
    card_to_record,
    deck_from_record,
    kind_of,
    log_from_record,
    to_record,
)


@dataclass
class ActivationReport:
    """Outcome of one activation pass."""

    identity: str | None
    cards_adopted: int = 0
    cards_replaced: int = 0
    cards_kept_local: int = 0
    decks_adopted: int = 0
    logs_adopted: int = 0
    skipped_records: int = 0
    errors: list[str] = field(default_factory=list)
    finished_at: datetime | None = None

    @property
    def success(self) -> bool:
        return not self.errors


def resolve_conflict(local: Card, remote: Card) -> tuple[Card, bool]:
    """
    Pick the replica to keep when both sides hold the same card id.

    Returns:
        (winner, local_won); ties go to the remote replica
    """
    if local.progress > remote.progress:
        return local, True
    return remote, False


class SyncEngine:
    """
    Per-session replication between the local store and the remote store.

    One instance per active login; the activated identity is instance state.
    """

    def __init__(
        self,
        store: CardStore,
        client: RemoteStoreClient | None = None,
        worker: PushWorker | None = None,
    ):
        """
        Initialize the sync engine.

        Args:
            store: Local card store
            client: Remote store client (default: from settings)
            worker: Push worker (default: new worker on the same client)
        """
        self.store = store
        self.client = client or RemoteStoreClient()
        self.worker = worker or PushWorker(self.client)
        self.identity: str | None = None
        self.activated = False
        self.last_report: ActivationReport | None = None

    @property
    def is_remote(self) -> bool:
        """True when writes are being mirrored remotely."""
        return bool(self.identity) and self.client.enabled

    # =========================================================================
    # Activation
    # =========================================================================

    def activate(self, identity: str | None) -> ActivationReport:
        """
        Replace local state with the identity's remote partition.

        Safe to call again: activating the same identity twice yields the
        same local state. Without an identity or an enabled remote store the
        engine stays local-only and nothing is discarded.

        Args:
            identity: Sync identity for this login

        Returns:
            ActivationReport (errors list non-empty on partial failure)
        """
        identity = identity.strip() if identity else None

        if not identity or not self.client.enabled:
            logger.info("No sync identity or remote store - operating on local data only")
            report = ActivationReport(identity=None)
            self.identity = None
            self.activated = True
            self.last_report = report
            return report

        report = ActivationReport(identity=identity)
        self.identity = identity
        logger.info("Activating sync for identity {}", identity)

        self.store.clear_all()
        self.store.set_active_identity(identity)

        remote_cards = self._fetch(KIND_CARDS, report)
        if remote_cards is not None:
            self._merge_cards(remote_cards, report)

        remote_decks = self._fetch(KIND_DECKS, report)
        if remote_decks is not None:
            for record in remote_decks:
                deck = self._decode(deck_from_record, record, report)
                if deck is not None:
                    self.store.put_deck(deck)
                    report.decks_adopted += 1

        remote_logs = self._fetch(KIND_LOGS, report)
        if remote_logs is not None:
            for record in remote_logs:
                log = self._decode(log_from_record, record, report)
                if log is not None:
                    self.store.put_log(log)
                    report.logs_adopted += 1

        report.finished_at = datetime.now().astimezone()
        self.activated = True
        self.last_report = report

        logger.info(
            "Activation complete: cards={} (+{} replaced, {} kept local), decks={}, logs={}, skipped={}, errors={}",
            report.cards_adopted,
            report.cards_replaced,
            report.cards_kept_local,
            report.decks_adopted,
            report.logs_adopted,
            report.skipped_records,
            len(report.errors),
        )
        return report

    def resume(self, identity: str | None) -> bool:
        """
        Continue a login activated earlier, without re-fetching.

        Local state is left untouched. Writes are mirrored for ``identity``
        only if it is the identity the local data was last activated from.

        Returns:
            False when ``identity`` differs from the activated one; the
            engine then stays local-only until the next activation
        """
        identity = identity.strip() if identity else None
        self.activated = True

        if identity and self.client.enabled:
            active = self.store.get_active_identity()
            if identity != active:
                logger.warning(
                    "Local data belongs to {}, not {} - run login before syncing",
                    active or "no identity",
                    identity,
                )
                self.identity = None
                return False

        self.identity = identity
        return True

    def _fetch(self, kind: str, report: ActivationReport) -> list[dict] | None:
        try:
            return self.client.fetch_all(kind, self.identity)
        except RemoteStoreError as exc:
            logger.warning("Fetching remote {} failed: {}", kind, exc)
            report.errors.append(f"{kind}: {exc}")
            return None

    @staticmethod
    def _decode(decoder, record: dict, report: ActivationReport):
        try:
            return decoder(record)
        except MalformedRecordError as exc:
            logger.warning("Skipping malformed remote record: {}", exc)
            report.skipped_records += 1
            return None

    def _merge_cards(self, records: list[dict], report: ActivationReport) -> None:
        local_by_id = {card.id: card for card in self.store.get_all_cards()}

        for record in records:
            remote = self._decode(card_from_record, record, report)
            if remote is None:
                continue

            local = local_by_id.get(remote.id)
            if local is None:
                self.store.put_card(remote)
                report.cards_adopted += 1
                continue

            winner, local_won = resolve_conflict(local, remote)
            if local_won:
                report.cards_kept_local += 1
                logger.debug(
                    "Card {} kept local replica (progress {:.2f} > {:.2f})",
                    local.id,
                    local.progress,
                    remote.progress,
                )
                self.worker.submit_upsert(KIND_CARDS, self.identity, card_to_record(winner))
            else:
                self.store.put_card(winner)
                report.cards_replaced += 1

    # =========================================================================
    # Push
    # =========================================================================

    def push(self, entity: Entity) -> None:
        """Mirror a local write remotely (fire-and-forget)."""
        if not self.is_remote:
            return
        self.worker.submit_upsert(kind_of(entity), self.identity, to_record(entity))

    def push_delete(self, kind: str, record_id: str) -> None:
        """Mirror a local delete remotely (fire-and-forget)."""
        if not self.is_remote:
            return
        self.worker.submit_delete(kind, self.identity, record_id)

    def flush(self, timeout: float | None = 10.0) -> bool:
        """Wait for pending pushes."""
        return self.worker.flush(timeout)

    def close(self) -> None:
        self.worker.stop()
        self.client.close()
