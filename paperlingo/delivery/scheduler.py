"""
Learning-ladder Spaced Repetition Scheduler.

Implements:
- Sub-day learning ladder (minutes) for new and lapsed cards
- SM-2 style ease growth once a card graduates to day intervals
- An "easy" escape that retires a card as mastered
- Button previews ("what will this rating do")

Phases (derived from interval_days, see models.phase_of):
    learning  - interval < 1 day, walks the ladder
    review    - 1 <= interval < 10000 days
    mastered  - interval >= 10000 days, only reachable via "easy"

Rating Scale:
    again - forgot; restart the ladder (lapse when reviewing)
    hard  - recalled with difficulty
    good  - recalled
    easy  - never ask again
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from loguru import logger

from paperlingo.config import get_settings
from paperlingo.delivery.models import (
    EASE_FLOOR,
    MASTERED_INTERVAL,
    MAX_INTERVAL,
    Card,
    Phase,
    Rating,
    local_now,
    phase_of,
)

MINUTES_PER_DAY = 24 * 60

# =============================================================================
# Configuration
# =============================================================================


@dataclass
class SchedulerConfig:
    """Configuration for the ladder scheduler."""

    learning_steps_minutes: tuple[int, ...] = (1, 10)
    hard_step_minutes: int = 6  # Fixed repeat delay for "hard" while learning
    graduating_interval_days: float = 1.0
    ease_floor: float = EASE_FLOOR
    lapse_ease_penalty: float = 0.2
    hard_ease_penalty: float = 0.15
    hard_multiplier: float = 1.2

    def __post_init__(self) -> None:
        self.learning_steps_minutes = tuple(self.learning_steps_minutes)
        if not self.learning_steps_minutes:
            raise ValueError("Learning ladder needs at least one step")

    @classmethod
    def from_settings(cls) -> SchedulerConfig:
        settings = get_settings()
        return cls(
            learning_steps_minutes=tuple(settings.learning_steps_minutes),
            hard_step_minutes=settings.hard_step_minutes,
        )

    @property
    def ladder_days(self) -> tuple[float, ...]:
        return tuple(minutes / MINUTES_PER_DAY for minutes in self.learning_steps_minutes)

    @property
    def lapse_step(self) -> int:
        """Ladder index a lapsed review card drops to (the second step)."""
        return min(1, len(self.learning_steps_minutes) - 1)


@dataclass(frozen=True)
class ScheduleResult:
    """New scheduling fields for a card."""

    next_review_at: datetime
    interval_days: float
    ease_factor: float
    repetitions: int
    step: int


# =============================================================================
# Scheduler
# =============================================================================


@dataclass
class Scheduler:
    """
    Pure per-rating transition function.

    compute_next() only reads the card's fields and the rating; the clock is
    consulted solely to anchor next_review_at = now + interval.
    """

    config: SchedulerConfig = field(default_factory=SchedulerConfig)

    def compute_next(
        self,
        card: Card,
        rating: Rating | str,
        now: datetime | None = None,
    ) -> ScheduleResult:
        """
        Calculate the card's next scheduling state.

        Args:
            card: Current card
            rating: again / hard / good / easy
            now: Anchor for next_review_at (defaults to the current time)

        Returns:
            ScheduleResult with interval, ease, repetitions, step and due time
        """
        rating = Rating.parse(rating)
        now = now or local_now()
        phase = phase_of(card)
        ladder = self.config.ladder_days

        interval = card.interval_days
        ease = card.ease_factor
        repetitions = card.repetitions
        step = card.step

        if rating is Rating.EASY:
            interval = MASTERED_INTERVAL
            step = 0
        elif phase is Phase.LEARNING:
            if rating is Rating.AGAIN:
                step = 0
                interval = ladder[0]
            elif rating is Rating.HARD:
                interval = self.config.hard_step_minutes / MINUTES_PER_DAY
            else:
                current = min(max(step, 0), len(ladder) - 1)
                if current >= len(ladder) - 1:
                    interval = self.config.graduating_interval_days
                    step = 0
                else:
                    step = current + 1
                    interval = ladder[step]
        else:
            # Review, and mastered cards rated anything but "easy"
            if rating is Rating.AGAIN:
                step = self.config.lapse_step
                interval = ladder[step]
                ease -= self.config.lapse_ease_penalty
                repetitions = 0
            elif rating is Rating.HARD:
                interval *= self.config.hard_multiplier
                ease -= self.config.hard_ease_penalty
            else:
                interval *= ease

        if rating is not Rating.AGAIN:
            repetitions += 1

        ease = max(self.config.ease_floor, ease)
        interval = min(max(interval, 0.0), MAX_INTERVAL)

        return ScheduleResult(
            next_review_at=now + timedelta(days=interval),
            interval_days=interval,
            ease_factor=ease,
            repetitions=repetitions,
            step=step,
        )

    def review(self, card: Card, rating: Rating | str, now: datetime | None = None) -> Card:
        """
        Apply a rating and return the updated card.

        Args:
            card: The reviewed card
            rating: again / hard / good / easy
            now: Review time

        Returns:
            Updated copy of the card (the input is not modified)
        """
        now = now or local_now()
        result = self.compute_next(card, rating, now)

        logger.debug(
            "Scheduled {} ({}): rating={}, interval={:.4f}d, ease={:.2f}, step={}",
            card.id,
            card.term,
            Rating.parse(rating).value,
            result.interval_days,
            result.ease_factor,
            result.step,
        )

        return self.apply(card, result, now)

    @staticmethod
    def apply(card: Card, result: ScheduleResult, now: datetime | None = None) -> Card:
        """Copy of ``card`` carrying the scheduling fields of ``result``."""
        return card.with_schedule(
            interval_days=result.interval_days,
            ease_factor=result.ease_factor,
            repetitions=result.repetitions,
            step=result.step,
            next_review_at=result.next_review_at,
            updated_at=now or local_now(),
        )

    def preview(self, card: Card, now: datetime | None = None) -> dict[Rating, str]:
        """
        Human-readable interval each rating would produce.

        Returns:
            Mapping rating -> label like "10m", "3d", "27.4y"
        """
        now = now or local_now()
        return {
            rating: format_interval(self.compute_next(card, rating, now).interval_days)
            for rating in Rating
        }


def format_interval(days: float) -> str:
    """
    Format an interval for button labels.

    Minutes below one day, days below a year, years beyond.
    """
    if days <= 0:
        return "<1m"
    if days < 1:
        minutes = round(days * MINUTES_PER_DAY)
        return "<1m" if minutes < 1 else f"{minutes}m"
    if days < 365:
        return f"{round(days)}d"
    return f"{days / 365:.1f}y"
