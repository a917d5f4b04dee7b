"""
SQLite Card Store for paperlingo.

Provides durable keyed storage for:
- Cards (content + scheduling state)
- Decks
- The immutable review log
- Device-local settings (daily review limit)

Every write runs in its own transaction, so a concurrent reader sees either
the previous or the new version of a record, never a partial one.

Database location: ~/.paperlingo/state.db
"""

from __future__ import annotations

from datetime import datetime

from loguru import logger
from sqlalchemy import Engine, delete, func, select

from paperlingo.config import get_settings
from paperlingo.db.database import create_store_engine, init_db, make_session_factory, session_scope
from paperlingo.db.models import CardRow, DeckRow, LocalSettingRow, ReviewLogRow
from paperlingo.delivery.models import (
    Card,
    Deck,
    Rating,
    ReviewLog,
    from_millis,
    to_millis,
)

DAILY_LIMIT_KEY = "daily_limit"
ACTIVE_IDENTITY_KEY = "active_identity"


# =============================================================================
# Row Mapping
# =============================================================================


def _card_to_row(card: Card) -> CardRow:
    return CardRow(
        id=card.id,
        term=card.term,
        meaning=card.meaning,
        explanation=card.explanation,
        phonetic=card.phonetic,
        deck_id=card.deck_id,
        created_at=to_millis(card.created_at),
        updated_at=to_millis(card.updated_at),
        interval_days=card.interval_days,
        ease_factor=card.ease_factor,
        repetitions=card.repetitions,
        step=card.step,
        next_review_at=to_millis(card.next_review_at),
    )


def _row_to_card(row: CardRow) -> Card:
    return Card(
        id=row.id,
        term=row.term,
        meaning=row.meaning,
        explanation=row.explanation,
        phonetic=row.phonetic,
        deck_id=row.deck_id,
        created_at=from_millis(row.created_at),
        updated_at=from_millis(row.updated_at),
        interval_days=row.interval_days,
        ease_factor=row.ease_factor,
        repetitions=row.repetitions,
        step=row.step,
        next_review_at=from_millis(row.next_review_at),
    )


def _row_to_deck(row: DeckRow) -> Deck:
    return Deck(
        id=row.id,
        name=row.name,
        description=row.description,
        created_at=from_millis(row.created_at),
    )


def _row_to_log(row: ReviewLogRow) -> ReviewLog:
    return ReviewLog(
        id=row.id,
        card_id=row.card_id,
        rating=Rating(row.rating),
        timestamp=from_millis(row.timestamp),
    )


# =============================================================================
# Card Store
# =============================================================================


class CardStore:
    """
    SQLAlchemy-backed local store, the authoritative copy of all entities.

    Handles:
    - get_all/put/delete for Card, Deck and ReviewLog, keyed by id
    - Case-insensitive term lookup for duplicate detection
    - Cascading deck deletion
    - The persisted daily limit
    """

    def __init__(self, database_url: str | None = None, engine: Engine | None = None):
        """
        Initialize the card store.

        Args:
            database_url: SQLAlchemy URL (defaults to settings.database_url)
            engine: Pre-built engine, takes precedence over database_url
        """
        self.engine = engine or create_store_engine(database_url)
        self._sessions = make_session_factory(self.engine)
        init_db(self.engine)

        logger.info(f"CardStore initialized at {self.engine.url}")

    # =========================================================================
    # Cards
    # =========================================================================

    def get_all_cards(self) -> list[Card]:
        with session_scope(self._sessions) as session:
            rows = session.scalars(select(CardRow).order_by(CardRow.created_at)).all()
            return [_row_to_card(row) for row in rows]

    def get_card(self, card_id: str) -> Card | None:
        with session_scope(self._sessions) as session:
            row = session.get(CardRow, card_id)
            return _row_to_card(row) if row else None

    def put_card(self, card: Card) -> None:
        """Insert or replace a card by id."""
        with session_scope(self._sessions) as session:
            session.merge(_card_to_row(card))
        logger.debug("Stored card {} ({})", card.id, card.term)

    def delete_card(self, card_id: str) -> bool:
        with session_scope(self._sessions) as session:
            result = session.execute(delete(CardRow).where(CardRow.id == card_id))
            return result.rowcount > 0

    def find_card_by_term(self, term: str, deck_id: str | None) -> Card | None:
        """
        Find a card with the same term (case-insensitive) in the same deck.

        Args:
            term: Term to look up; surrounding whitespace is ignored
            deck_id: Deck scope, None for uncategorized cards

        Returns:
            The existing Card, or None
        """
        deck_clause = CardRow.deck_id.is_(None) if deck_id is None else CardRow.deck_id == deck_id
        with session_scope(self._sessions) as session:
            row = session.scalars(
                select(CardRow)
                .where(deck_clause)
                .where(func.lower(func.trim(CardRow.term)) == term.strip().lower())
                .limit(1)
            ).first()
            return _row_to_card(row) if row else None

    # =========================================================================
    # Decks
    # =========================================================================

    def get_all_decks(self) -> list[Deck]:
        with session_scope(self._sessions) as session:
            rows = session.scalars(select(DeckRow).order_by(DeckRow.created_at)).all()
            return [_row_to_deck(row) for row in rows]

    def get_deck(self, deck_id: str) -> Deck | None:
        with session_scope(self._sessions) as session:
            row = session.get(DeckRow, deck_id)
            return _row_to_deck(row) if row else None

    def put_deck(self, deck: Deck) -> None:
        with session_scope(self._sessions) as session:
            session.merge(
                DeckRow(
                    id=deck.id,
                    name=deck.name,
                    description=deck.description,
                    created_at=to_millis(deck.created_at),
                )
            )
        logger.debug("Stored deck {} ({})", deck.id, deck.name)

    def delete_deck(self, deck_id: str) -> bool:
        with session_scope(self._sessions) as session:
            result = session.execute(delete(DeckRow).where(DeckRow.id == deck_id))
            return result.rowcount > 0

    def delete_deck_cascade(self, deck_id: str) -> list[str]:
        """
        Delete a deck and every card assigned to it in one transaction.

        Cards without a deck are never touched.

        Returns:
            Ids of the deleted cards
        """
        with session_scope(self._sessions) as session:
            card_ids = list(session.scalars(select(CardRow.id).where(CardRow.deck_id == deck_id)))
            if card_ids:
                session.execute(delete(CardRow).where(CardRow.deck_id == deck_id))
            session.execute(delete(DeckRow).where(DeckRow.id == deck_id))

        logger.info("Deleted deck {} with {} cards", deck_id, len(card_ids))
        return card_ids

    # =========================================================================
    # Review Log
    # =========================================================================

    def get_all_logs(self, since: datetime | None = None) -> list[ReviewLog]:
        """
        Get review log entries, oldest first.

        Args:
            since: Only entries at or after this instant
        """
        query = select(ReviewLogRow).order_by(ReviewLogRow.timestamp)
        if since is not None:
            query = query.where(ReviewLogRow.timestamp >= to_millis(since))
        with session_scope(self._sessions) as session:
            return [_row_to_log(row) for row in session.scalars(query).all()]

    def put_log(self, log: ReviewLog) -> None:
        """Append a review log entry. Re-putting an existing id is a no-op overwrite."""
        with session_scope(self._sessions) as session:
            session.merge(
                ReviewLogRow(
                    id=log.id,
                    card_id=log.card_id,
                    rating=log.rating.value,
                    timestamp=to_millis(log.timestamp),
                )
            )

    def delete_log(self, log_id: str) -> bool:
        with session_scope(self._sessions) as session:
            result = session.execute(delete(ReviewLogRow).where(ReviewLogRow.id == log_id))
            return result.rowcount > 0

    def count_logs_since(self, since: datetime) -> int:
        with session_scope(self._sessions) as session:
            return session.scalar(
                select(func.count()).select_from(ReviewLogRow).where(
                    ReviewLogRow.timestamp >= to_millis(since)
                )
            ) or 0

    # =========================================================================
    # Local Settings
    # =========================================================================

    def get_daily_limit(self) -> int:
        """Persisted daily review cap, or the configured default."""
        with session_scope(self._sessions) as session:
            row = session.get(LocalSettingRow, DAILY_LIMIT_KEY)
            if row is None:
                return get_settings().daily_limit_default
            return int(row.value)

    def set_daily_limit(self, value: int) -> bool:
        """
        Persist a new daily review cap.

        Args:
            value: New limit, must be a positive integer

        Returns:
            False (prior value retained) if the value was rejected
        """
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            logger.warning("Rejected daily limit {!r}; keeping {}", value, self.get_daily_limit())
            return False

        with session_scope(self._sessions) as session:
            session.merge(LocalSettingRow(key=DAILY_LIMIT_KEY, value=str(value)))
        logger.info("Daily limit set to {}", value)
        return True

    def get_active_identity(self) -> str | None:
        """Sync identity whose remote partition the local data was last activated from."""
        with session_scope(self._sessions) as session:
            row = session.get(LocalSettingRow, ACTIVE_IDENTITY_KEY)
            return row.value if row else None

    def set_active_identity(self, identity: str | None) -> None:
        with session_scope(self._sessions) as session:
            if identity is None:
                session.execute(delete(LocalSettingRow).where(LocalSettingRow.key == ACTIVE_IDENTITY_KEY))
            else:
                session.merge(LocalSettingRow(key=ACTIVE_IDENTITY_KEY, value=identity))

    # =========================================================================
    # Maintenance
    # =========================================================================

    def clear_all(self) -> None:
        """Discard all cards, decks and review logs. Local settings survive."""
        with session_scope(self._sessions) as session:
            session.execute(delete(CardRow))
            session.execute(delete(DeckRow))
            session.execute(delete(ReviewLogRow))
        logger.info("Cleared local cards, decks and review logs")

    def get_stats(self) -> dict:
        """Record counts, for status displays."""
        with session_scope(self._sessions) as session:
            return {
                "cards": session.scalar(select(func.count()).select_from(CardRow)) or 0,
                "decks": session.scalar(select(func.count()).select_from(DeckRow)) or 0,
                "review_logs": session.scalar(select(func.count()).select_from(ReviewLogRow)) or 0,
            }

    def close(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
