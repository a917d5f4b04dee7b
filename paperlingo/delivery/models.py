"""
Domain records for the vocabulary retention engine.

Card, Deck and ReviewLog are plain dataclasses shared by the card store,
scheduler, due selector, statistics engine and sync engine. Scheduling phase
is encoded in ``Card.interval_days``; every phase test goes through
:func:`phase_of`.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum

# Thresholds on interval_days
MASTERED_INTERVAL = 10000.0  # ~27 years out, effectively retired
MAX_INTERVAL = 36500.0
MATURE_INTERVAL = 21.0
DEFAULT_EASE = 2.5
EASE_FLOOR = 1.3


class Rating(str, Enum):
    """Learner's self-assessed recall quality."""

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @classmethod
    def parse(cls, value: Rating | str) -> Rating:
        """
        Parse a rating from its name.

        Raises:
            ValueError: For anything outside again/hard/good/easy
        """
        if isinstance(value, Rating):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Invalid rating: {value!r}")
        return cls(value.strip().lower())


class Phase(str, Enum):
    LEARNING = "learning"
    REVIEW = "review"
    MASTERED = "mastered"


# =============================================================================
# Time helpers
# =============================================================================


def local_now() -> datetime:
    """Current time as an aware datetime in the local timezone."""
    return datetime.now(timezone.utc).astimezone()


def to_millis(value: datetime | None) -> int | None:
    """Convert an aware datetime to epoch milliseconds."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.astimezone()
    return int(round(value.timestamp() * 1000))


def from_millis(value: int | float | None) -> datetime | None:
    """Convert epoch milliseconds to an aware local datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc).astimezone()


def local_midnight(now: datetime) -> datetime:
    """Start of the learner's local day containing ``now``."""
    local = now.astimezone()
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def new_id() -> str:
    return uuid.uuid4().hex


# =============================================================================
# Records
# =============================================================================


@dataclass
class Card:
    """A vocabulary item with its own scheduling state."""

    id: str
    term: str
    meaning: str
    explanation: str = ""
    phonetic: str = ""
    deck_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Scheduling
    interval_days: float = 0.0  # <1 = learning ladder, >=10000 = mastered
    ease_factor: float = DEFAULT_EASE
    repetitions: int = 0
    step: int = 0
    next_review_at: datetime | None = None

    @classmethod
    def new(
        cls,
        term: str,
        meaning: str,
        explanation: str = "",
        phonetic: str = "",
        deck_id: str | None = None,
        ease_factor: float = DEFAULT_EASE,
        now: datetime | None = None,
    ) -> Card:
        """Create a fresh card, due immediately."""
        created = now or local_now()
        return cls(
            id=new_id(),
            term=term.strip(),
            meaning=meaning.strip(),
            explanation=explanation,
            phonetic=phonetic,
            deck_id=deck_id,
            created_at=created,
            updated_at=created,
            ease_factor=ease_factor,
            next_review_at=created,
        )

    @property
    def phase(self) -> Phase:
        return phase_of(self)

    @property
    def progress(self) -> float:
        """Accumulated progress used to pick a winner between two replicas."""
        return self.repetitions + self.interval_days

    @property
    def is_new(self) -> bool:
        return self.repetitions == 0 and self.interval_days == 0

    def is_due(self, now: datetime) -> bool:
        if self.next_review_at is None:
            return False
        return self.next_review_at <= now

    def with_schedule(
        self,
        *,
        interval_days: float,
        ease_factor: float,
        repetitions: int,
        step: int,
        next_review_at: datetime,
        updated_at: datetime,
    ) -> Card:
        return replace(
            self,
            interval_days=interval_days,
            ease_factor=ease_factor,
            repetitions=repetitions,
            step=step,
            next_review_at=next_review_at,
            updated_at=updated_at,
        )


@dataclass
class Deck:
    """A named collection of cards."""

    id: str
    name: str
    description: str | None = None
    created_at: datetime | None = None

    @classmethod
    def new(cls, name: str, description: str | None = None, now: datetime | None = None) -> Deck:
        return cls(id=new_id(), name=name.strip(), description=description, created_at=now or local_now())


@dataclass(frozen=True)
class ReviewLog:
    """Immutable record of one rating submission."""

    id: str
    card_id: str
    rating: Rating
    timestamp: datetime

    @classmethod
    def new(cls, card_id: str, rating: Rating, now: datetime | None = None) -> ReviewLog:
        return cls(id=new_id(), card_id=card_id, rating=rating, timestamp=now or local_now())


# =============================================================================
# Phase accessor
# =============================================================================


def phase_of(card: Card) -> Phase:
    """Scheduling phase of a card, derived from its interval."""
    if card.interval_days >= MASTERED_INTERVAL:
        return Phase.MASTERED
    if card.interval_days < 1:
        return Phase.LEARNING
    return Phase.REVIEW


def is_mastered(card: Card) -> bool:
    return phase_of(card) is Phase.MASTERED


def is_mature(card: Card) -> bool:
    return card.interval_days >= MATURE_INTERVAL
