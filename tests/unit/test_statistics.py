"""
Unit tests for the statistics engine.
"""

from datetime import timedelta

import pytest

from paperlingo.delivery.models import MASTERED_INTERVAL, Card, Rating, ReviewLog, local_midnight
from paperlingo.delivery.statistics import FORECAST_DAYS, StatisticsEngine


def make_card(card_id, interval, repetitions=1, due=None) -> Card:
    return Card(
        id=card_id,
        term=card_id,
        meaning="-",
        interval_days=interval,
        repetitions=repetitions,
        next_review_at=due,
    )


@pytest.fixture
def engine(store, clock):
    return StatisticsEngine(store, now=clock)


class TestToday:
    """Tests for today's figures."""

    def test_counts_logs_since_midnight(self, store, clock, engine):
        now = clock()
        store.put_log(ReviewLog.new("a", Rating.AGAIN, now=now))
        store.put_log(ReviewLog.new("a", Rating.GOOD, now=now))
        store.put_log(ReviewLog.new("b", Rating.EASY, now=now))
        store.put_log(ReviewLog.new("c", Rating.AGAIN, now=local_midnight(now) - timedelta(seconds=1)))
        store.set_daily_limit(2)
        store.put_card(make_card("due1", 3, due=now - timedelta(hours=1)))
        store.put_card(make_card("due2", 3, due=now - timedelta(hours=2)))

        today = engine.today()

        assert today.studied == 3
        assert today.limit == 2
        assert today.again_count == 1
        assert today.pass_count == 2
        assert today.due == 2
        assert today.backlog == 2


class TestCounts:
    """Tests for card category counts."""

    def test_exclusive_categories(self, engine):
        cards = [
            make_card("new", 0, repetitions=0),
            make_card("learning", 0.005, repetitions=1),
            make_card("young", 1),
            make_card("young2", 20.9),
            make_card("mature", 21),
            make_card("mastered", MASTERED_INTERVAL),
        ]

        counts = engine.counts(cards)

        assert counts.new == 1
        assert counts.learning == 1
        assert counts.young == 2
        assert counts.mature == 2
        assert counts.mastered == 1
        assert counts.total == 6
        assert counts.new + counts.learning + counts.young + counts.mature == counts.total

    def test_reads_store_when_no_cards_given(self, store, engine):
        store.put_card(make_card("x", 0, repetitions=0))
        assert engine.counts().new == 1


class TestForecast:
    """Tests for the due forecast."""

    def test_buckets_and_backlog(self, clock, engine):
        now = clock()
        cards = [
            make_card("overdue", 3, due=now - timedelta(days=4)),
            make_card("today", 3, due=now + timedelta(hours=2)),
            make_card("tomorrow", 30, due=now + timedelta(days=1)),
            make_card("far", 400, due=now + timedelta(days=500)),
            make_card("mastered", MASTERED_INTERVAL, due=now + timedelta(days=2)),
            make_card("undated", 3, due=None),
        ]

        forecast = engine.forecast(cards=cards)

        assert len(forecast.young) == FORECAST_DAYS + 1
        assert forecast.young[0] == 2
        assert forecast.mature[1] == 1
        assert forecast.mature[-1] == 1
        assert forecast.labels[0] == "Today"
        assert forecast.labels[1] == "Tomorrow"
        assert forecast.labels[-1] == "365d+"

    def test_sum_equals_non_mastered_with_due_time(self, clock, engine):
        now = clock()
        cards = [make_card(f"c{offset}", 1 + offset % 40, due=now + timedelta(days=offset - 5)) for offset in range(60)]
        cards.append(make_card("m", MASTERED_INTERVAL, due=now))

        forecast = engine.forecast(cards=cards)

        assert sum(forecast.totals) == 60
        assert forecast.max_total >= 1

    def test_custom_horizon(self, clock, engine):
        now = clock()
        cards = [make_card("a", 2, due=now + timedelta(days=10))]

        forecast = engine.forecast(days=7, cards=cards)

        assert len(forecast.totals) == 8
        assert forecast.totals[-1] == 1


class TestIntervalHistogram:
    """Tests for interval buckets."""

    def test_bucket_edges(self, engine):
        cards = [
            make_card("a", 0.5),
            make_card("b", 1),
            make_card("c", 2),
            make_card("d", 7),
            make_card("e", 30),
            make_card("f", 90),
            make_card("g", 180),
            make_card("h", 365),
            make_card("i", 366),
            make_card("m", MASTERED_INTERVAL),
        ]

        histogram = engine.interval_histogram(cards)

        assert histogram.labels == ["0-1d", "2-7d", "8-30d", "31-90d", "91-180d", "181-365d", ">365d"]
        assert histogram.data == [2, 2, 1, 1, 1, 1, 1]


class TestStudyHistory:
    """Tests for the study history chart."""

    def test_week_has_seven_points_today_last(self, store, clock, engine):
        now = clock()
        store.put_log(ReviewLog.new("a", Rating.GOOD, now=now))
        store.put_log(ReviewLog.new("a", Rating.GOOD, now=now - timedelta(days=1)))
        store.put_log(ReviewLog.new("a", Rating.GOOD, now=now - timedelta(days=1)))
        store.put_log(ReviewLog.new("a", Rating.GOOD, now=now - timedelta(days=9)))

        points = engine.study_history("week")

        assert len(points) == 7
        assert [point.value for point in points] == [0, 0, 0, 0, 0, 2, 1]
        assert points[-1].label == now.strftime("%a")

    def test_month_has_thirty_points(self, store, clock, engine):
        store.put_log(ReviewLog.new("a", Rating.GOOD, now=clock() - timedelta(days=29)))

        points = engine.study_history("month")

        assert len(points) == 30
        assert points[0].value == 1

    def test_year_groups_by_month(self, store, clock, engine):
        now = clock()
        store.put_log(ReviewLog.new("a", Rating.GOOD, now=now))
        store.put_log(ReviewLog.new("a", Rating.GOOD, now=now - timedelta(days=40)))

        points = engine.study_history("year")

        assert len(points) == 12
        assert points[-1].label == now.strftime("%b")
        assert points[-1].value == 1
        assert sum(point.value for point in points) == 2

    def test_unknown_range(self, engine):
        with pytest.raises(ValueError):
            engine.study_history("decade")


class TestSnapshot:
    def test_snapshot_bundles_views(self, store, clock, engine):
        store.put_card(make_card("x", 0, repetitions=0, due=clock()))

        snapshot = engine.snapshot()

        assert snapshot.counts.new == 1
        assert snapshot.today.due == 1
        assert sum(snapshot.forecast.totals) == 1
        assert sum(snapshot.intervals.data) == 1
