"""
Vocabulary Service for paperlingo.

Provides high-level operations for the CLI:
- Save looked-up words as cards (duplicates rejected per deck)
- Submit reviews (schedule, log, mirror remotely)
- Deck management with cascading deletion
- Daily limit configuration
- Bulk import from CSV with per-row reporting
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable

from loguru import logger

from paperlingo.config import get_settings
from paperlingo.delivery.due_selector import DueSelector, StudyQueue
from paperlingo.delivery.models import Card, Deck, Rating, ReviewLog, local_now
from paperlingo.delivery.scheduler import Scheduler, SchedulerConfig
from paperlingo.delivery.state_store import CardStore
from paperlingo.delivery.statistics import StatisticsEngine
from paperlingo.remote.records import KIND_CARDS, KIND_DECKS
from paperlingo.remote.sync_engine import SyncEngine


class CardNotFoundError(LookupError):
    """No card with the requested id."""


@dataclass
class SaveResult:
    """Outcome of saving a card."""

    added: bool
    card: Card | None = None
    reason: str | None = None  # "duplicate" / "empty_term"


@dataclass
class ImportReport:
    """Outcome of a bulk import; errors are (row_number, message)."""

    added: int = 0
    duplicates: int = 0
    errors: list[tuple[int, str]] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return self.added + self.duplicates + len(self.errors)


class VocabularyService:
    """
    Composition root for one learner session.

    Owns the card store, scheduler, due selector and statistics engine, and
    optionally a sync engine that mirrors every write.
    """

    def __init__(
        self,
        store: CardStore,
        scheduler: Scheduler | None = None,
        sync: SyncEngine | None = None,
        now: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the service.

        Args:
            store: Local card store
            scheduler: Scheduler (default: configured from settings)
            sync: Sync engine; None keeps everything local
            now: Clock (defaults to local wall time)
        """
        self.store = store
        self.scheduler = scheduler or Scheduler(SchedulerConfig.from_settings())
        self.sync = sync
        self._now = now or local_now
        self.selector = DueSelector(store, now=self._now)
        self.statistics = StatisticsEngine(store, now=self._now)

    # ========================================
    # Cards
    # ========================================

    def save_card(
        self,
        term: str,
        meaning: str,
        explanation: str = "",
        phonetic: str = "",
        deck_id: str | None = None,
    ) -> SaveResult:
        """
        Save a looked-up word as a new card.

        Returns:
            SaveResult(added=False, reason="duplicate") when a card with the
            same term (case-insensitive) already exists in the same deck
        """
        if not term or not term.strip():
            return SaveResult(added=False, reason="empty_term")

        existing = self.store.find_card_by_term(term, deck_id)
        if existing is not None:
            logger.info("Not adding '{}': already saved as {}", term.strip(), existing.id)
            return SaveResult(added=False, card=existing, reason="duplicate")

        card = Card.new(
            term=term,
            meaning=meaning,
            explanation=explanation,
            phonetic=phonetic,
            deck_id=deck_id,
            ease_factor=get_settings().starting_ease,
            now=self._now(),
        )
        self.store.put_card(card)
        self._push(card)

        logger.info("Saved card '{}' ({})", card.term, card.id)
        return SaveResult(added=True, card=card)

    def get_card(self, card_id: str) -> Card:
        card = self.store.get_card(card_id)
        if card is None:
            raise CardNotFoundError(card_id)
        return card

    def list_cards(self, deck_id: str | None = None) -> list[Card]:
        cards = self.store.get_all_cards()
        if deck_id is None:
            return cards
        return [card for card in cards if card.deck_id == deck_id]

    # ========================================
    # Reviews
    # ========================================

    def submit_review(self, card_id: str, rating: Rating | str) -> Card:
        """
        Record a rating for the presented card.

        Args:
            card_id: The reviewed card
            rating: again / hard / good / easy

        Returns:
            The updated card

        Raises:
            ValueError: Rating outside the four-word vocabulary
            CardNotFoundError: Unknown card id
        """
        rating = Rating.parse(rating)
        card = self.get_card(card_id)
        now = self._now()

        updated = self.scheduler.review(card, rating, now)
        log = ReviewLog.new(card_id=card.id, rating=rating, now=now)

        self.store.put_card(updated)
        self.store.put_log(log)
        self._push(updated)
        self._push(log)

        return updated

    def preview(self, card_id: str) -> dict[Rating, str]:
        return self.scheduler.preview(self.get_card(card_id), self._now())

    def due_cards(self, deck_id: str | None = None) -> list[Card]:
        return self.selector.due_cards(deck_id)

    def study_queue(self, deck_id: str | None = None) -> StudyQueue:
        return self.selector.build_queue(deck_id)

    # ========================================
    # Daily limit
    # ========================================

    def get_daily_limit(self) -> int:
        return self.store.get_daily_limit()

    def set_daily_limit(self, value: int) -> bool:
        return self.store.set_daily_limit(value)

    # ========================================
    # Decks
    # ========================================

    def create_deck(self, name: str, description: str | None = None) -> Deck:
        if not name or not name.strip():
            raise ValueError("Deck name must not be empty")
        deck = Deck.new(name, description, now=self._now())
        self.store.put_deck(deck)
        self._push(deck)
        logger.info("Created deck '{}' ({})", deck.name, deck.id)
        return deck

    def list_decks(self) -> list[Deck]:
        return self.store.get_all_decks()

    def find_deck(self, name_or_id: str) -> Deck | None:
        """Look a deck up by id, then by case-insensitive name."""
        decks = self.store.get_all_decks()
        for deck in decks:
            if deck.id == name_or_id:
                return deck
        wanted = name_or_id.strip().lower()
        for deck in decks:
            if deck.name.lower() == wanted:
                return deck
        return None

    def delete_deck(self, deck_id: str) -> int:
        """
        Delete a deck and all of its cards, locally and remotely.

        Returns:
            Number of cards removed
        """
        card_ids = self.store.delete_deck_cascade(deck_id)
        if self.sync is not None:
            for card_id in card_ids:
                self.sync.push_delete(KIND_CARDS, card_id)
            self.sync.push_delete(KIND_DECKS, deck_id)
        return len(card_ids)

    # ========================================
    # Bulk import
    # ========================================

    def import_rows(self, rows: Iterable[Sequence[str]], deck_id: str | None = None) -> ImportReport:
        """
        Import term/meaning rows, continuing past bad rows.

        Each row is: term, meaning[, explanation[, phonetic]]. Rows starting
        with "#" and blank rows are ignored.

        Returns:
            ImportReport with per-row errors (1-based row numbers)
        """
        report = ImportReport()

        for row_number, row in enumerate(rows, start=1):
            cells = [cell.strip() for cell in row]
            if not any(cells) or cells[0].startswith("#"):
                continue
            if len(cells) < 2 or not cells[0] or not cells[1]:
                report.errors.append((row_number, "expected at least a term and a meaning"))
                continue
            if len(cells) > 4:
                report.errors.append((row_number, f"too many columns ({len(cells)})"))
                continue

            explanation = cells[2] if len(cells) > 2 else ""
            phonetic = cells[3] if len(cells) > 3 else ""
            result = self.save_card(cells[0], cells[1], explanation, phonetic, deck_id)
            if result.added:
                report.added += 1
            else:
                report.duplicates += 1

        logger.info(
            "Import finished: added={}, duplicates={}, errors={}",
            report.added,
            report.duplicates,
            len(report.errors),
        )
        return report

    def import_csv(self, path: Path, deck_id: str | None = None) -> ImportReport:
        with open(path, encoding="utf-8", newline="") as handle:
            return self.import_rows(csv.reader(handle), deck_id)

    # ========================================
    # Sync
    # ========================================

    def _push(self, entity: Card | Deck | ReviewLog) -> None:
        if self.sync is not None:
            self.sync.push(entity)
