"""
Statistics Engine: read-only aggregate views for display.

All views are recomputed on demand from the card store and review log:
- Today: studied count against the daily limit, again vs. passed
- Counts: new / learning / young / mature cards
- Forecast: reviews due per day over the next year, split young/mature
- Interval histogram
- Study history chart (week / month / year)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Literal

from paperlingo.delivery.due_selector import order_due
from paperlingo.delivery.models import (
    Card,
    Phase,
    Rating,
    ReviewLog,
    is_mature,
    local_midnight,
    local_now,
    phase_of,
)
from paperlingo.delivery.state_store import CardStore

FORECAST_DAYS = 365

# (label, inclusive upper bound in days)
INTERVAL_BUCKETS: tuple[tuple[str, float], ...] = (
    ("0-1d", 1),
    ("2-7d", 7),
    ("8-30d", 30),
    ("31-90d", 90),
    ("91-180d", 180),
    ("181-365d", 365),
    (">365d", float("inf")),
)

HistoryRange = Literal["week", "month", "year"]


@dataclass
class TodayStats:
    studied: int
    limit: int
    again_count: int
    pass_count: int
    due: int = 0
    backlog: int = 0


@dataclass
class CardCounts:
    new: int = 0
    learning: int = 0
    young: int = 0
    mature: int = 0
    mastered: int = 0  # subset of mature
    total: int = 0


@dataclass
class Forecast:
    """Reviews due per day; index 0 is today including overdue backlog."""

    young: list[int] = field(default_factory=list)
    mature: list[int] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)

    @property
    def totals(self) -> list[int]:
        return [y + m for y, m in zip(self.young, self.mature)]

    @property
    def max_total(self) -> int:
        return max(self.totals, default=0)


@dataclass
class IntervalHistogram:
    labels: list[str]
    data: list[int]


@dataclass
class ChartPoint:
    label: str
    value: int


@dataclass
class StatsSnapshot:
    today: TodayStats
    counts: CardCounts
    forecast: Forecast
    intervals: IntervalHistogram


class StatisticsEngine:
    """Derives display statistics from the card store. Never mutates it."""

    def __init__(self, store: CardStore, now: Callable[[], datetime] | None = None):
        self.store = store
        self._now = now or local_now

    # =========================================================================
    # Views
    # =========================================================================

    def today(self, cards: list[Card] | None = None) -> TodayStats:
        now = self._now()
        logs = self.store.get_all_logs(since=local_midnight(now))
        again = sum(1 for log in logs if log.rating is Rating.AGAIN)
        limit = self.store.get_daily_limit()

        cards = self.store.get_all_cards() if cards is None else cards
        due = len(order_due(cards, now))
        quota = max(0, limit - len(logs))

        return TodayStats(
            studied=len(logs),
            limit=limit,
            again_count=again,
            pass_count=len(logs) - again,
            due=due,
            backlog=max(0, due - quota),
        )

    def counts(self, cards: list[Card] | None = None) -> CardCounts:
        """
        Count cards per category.

        Categories are exclusive and checked in order: new, learning,
        young (1-21 days), mature (>= 21 days, includes mastered).
        """
        cards = self.store.get_all_cards() if cards is None else cards
        counts = CardCounts(total=len(cards))

        for card in cards:
            if card.is_new:
                counts.new += 1
            elif phase_of(card) is Phase.LEARNING:
                counts.learning += 1
            elif is_mature(card):
                counts.mature += 1
                if phase_of(card) is Phase.MASTERED:
                    counts.mastered += 1
            else:
                counts.young += 1

        return counts

    def forecast(self, days: int = FORECAST_DAYS, cards: list[Card] | None = None) -> Forecast:
        """
        Due-review forecast.

        Args:
            days: Horizon; the result has days + 1 buckets
            cards: Pre-fetched cards (optional)

        Returns:
            Forecast where overdue cards land in bucket 0 and anything past
            the horizon lands in the last bucket
        """
        cards = self.store.get_all_cards() if cards is None else cards
        today = self._now().astimezone().date()

        forecast = Forecast(
            young=[0] * (days + 1),
            mature=[0] * (days + 1),
            labels=[_forecast_label(offset) for offset in range(days + 1)],
        )
        if days >= 1:
            forecast.labels[-1] = f"{days}d+"

        for card in cards:
            if phase_of(card) is Phase.MASTERED or card.next_review_at is None:
                continue
            offset = (card.next_review_at.astimezone().date() - today).days
            offset = min(max(offset, 0), days)
            if is_mature(card):
                forecast.mature[offset] += 1
            else:
                forecast.young[offset] += 1

        return forecast

    def interval_histogram(self, cards: list[Card] | None = None) -> IntervalHistogram:
        """Non-mastered cards bucketed by interval."""
        cards = self.store.get_all_cards() if cards is None else cards
        data = [0] * len(INTERVAL_BUCKETS)

        for card in cards:
            if phase_of(card) is Phase.MASTERED:
                continue
            for index, (_label, upper) in enumerate(INTERVAL_BUCKETS):
                if card.interval_days <= upper:
                    data[index] += 1
                    break

        return IntervalHistogram(labels=[label for label, _ in INTERVAL_BUCKETS], data=data)

    def study_history(self, range_: HistoryRange = "week") -> list[ChartPoint]:
        """
        Reviews per period for the study history chart.

        Args:
            range_: "week" (7 days), "month" (30 days) or "year" (12 months)

        Returns:
            Oldest-first chart points, the current period last
        """
        now = self._now()
        today = now.astimezone().date()

        if range_ == "year":
            months = [_shift_month(today.replace(day=1), -offset) for offset in range(11, -1, -1)]
            since = local_midnight(now).replace(year=months[0].year, month=months[0].month, day=1)
            buckets = {(m.year, m.month): 0 for m in months}
            for log in self.store.get_all_logs(since=since):
                stamp = log.timestamp.astimezone()
                key = (stamp.year, stamp.month)
                if key in buckets:
                    buckets[key] += 1
            return [ChartPoint(label=m.strftime("%b"), value=buckets[(m.year, m.month)]) for m in months]

        if range_ not in ("week", "month"):
            raise ValueError(f"Unknown history range: {range_!r}")

        span = 7 if range_ == "week" else 30
        first = today - timedelta(days=span - 1)
        since = local_midnight(now) - timedelta(days=span - 1)
        buckets = _count_by_day(self.store.get_all_logs(since=since))

        points = []
        for offset in range(span):
            day = first + timedelta(days=offset)
            label = day.strftime("%a") if range_ == "week" else day.strftime("%d/%m")
            points.append(ChartPoint(label=label, value=buckets.get(day, 0)))
        return points

    def snapshot(self) -> StatsSnapshot:
        """All views from a single read of the card store."""
        cards = self.store.get_all_cards()
        return StatsSnapshot(
            today=self.today(cards),
            counts=self.counts(cards),
            forecast=self.forecast(cards=cards),
            intervals=self.interval_histogram(cards),
        )


# =============================================================================
# Helpers
# =============================================================================


def _forecast_label(offset: int) -> str:
    if offset == 0:
        return "Today"
    if offset == 1:
        return "Tomorrow"
    return f"+{offset}d"


def _count_by_day(logs: Iterable[ReviewLog]) -> dict[date, int]:
    counts: dict[date, int] = {}
    for log in logs:
        day = log.timestamp.astimezone().date()
        counts[day] = counts.get(day, 0) + 1
    return counts


def _shift_month(first_of_month: date, delta: int) -> date:
    month_index = first_of_month.year * 12 + (first_of_month.month - 1) + delta
    return date(month_index // 12, month_index % 12 + 1, 1)
