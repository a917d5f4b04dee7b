"""
Due Selector: turns the card universe into today's study queue.

Key principles:
1. Mastered cards never come back
2. Only cards whose next_review_at has passed are due
3. Learning-phase cards always precede review-phase cards, so short
   relearning cycles are not starved by the daily cap
4. Within a phase, most overdue first
5. The daily cap is global: reviews logged today count against it even
   when only one deck is being studied
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from loguru import logger

from paperlingo.delivery.models import Card, Phase, local_midnight, local_now, phase_of
from paperlingo.delivery.state_store import CardStore


@dataclass
class StudyQueue:
    """A prepared study queue."""

    cards: list[Card] = field(default_factory=list)
    due_total: int = 0
    studied_today: int = 0
    daily_limit: int = 0

    @property
    def remaining_quota(self) -> int:
        return max(0, self.daily_limit - self.studied_today)

    @property
    def backlog(self) -> int:
        """Due cards hidden by the daily cap."""
        return self.due_total - len(self.cards)


def order_due(cards: list[Card], now: datetime, deck_id: str | None = None) -> list[Card]:
    """
    Filter and sort due cards, without applying the cap.

    Args:
        cards: All known cards
        now: Reference time
        deck_id: Restrict to one deck (None = all decks)

    Returns:
        Learning cards first, then review cards, each by ascending due time
    """
    due = [
        card
        for card in cards
        if phase_of(card) is not Phase.MASTERED
        and (deck_id is None or card.deck_id == deck_id)
        and card.is_due(now)
    ]
    due.sort(key=lambda card: (phase_of(card) is not Phase.LEARNING, card.next_review_at))
    return due


class DueSelector:
    """
    Builds the bounded, ordered "study now" queue.

    Reads the card store only; never mutates it.
    """

    def __init__(self, store: CardStore, now: Callable[[], datetime] | None = None):
        """
        Initialize the selector.

        Args:
            store: Local card store
            now: Clock (defaults to local wall time)
        """
        self.store = store
        self._now = now or local_now

    def studied_today(self, now: datetime | None = None) -> int:
        """Review log entries since local midnight."""
        now = now or self._now()
        return self.store.count_logs_since(local_midnight(now))

    def build_queue(self, deck_id: str | None = None) -> StudyQueue:
        """
        Build the study queue for right now.

        Args:
            deck_id: Optional deck filter

        Returns:
            StudyQueue with the capped card list and backlog figures
        """
        now = self._now()
        due = order_due(self.store.get_all_cards(), now, deck_id)

        queue = StudyQueue(
            due_total=len(due),
            studied_today=self.studied_today(now),
            daily_limit=self.store.get_daily_limit(),
        )
        queue.cards = due[: queue.remaining_quota]

        logger.debug(
            "Queue built: {} of {} due (studied today {}/{}), deck={}",
            len(queue.cards),
            queue.due_total,
            queue.studied_today,
            queue.daily_limit,
            deck_id or "all",
        )
        return queue

    def due_cards(self, deck_id: str | None = None) -> list[Card]:
        """Ordered due cards, bounded by the remaining daily quota."""
        return self.build_queue(deck_id).cards
