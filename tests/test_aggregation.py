"""Tests for period and model aggregation."""

import logging
from datetime import datetime, timezone

import pytest
from src.tps.models import MetricPoint, SessionSummary
from src.tps.processing.aggregation import (
    DAY_ORDER,
    PERIODS,
    aggregate_by_model,
    aggregate_by_period,
    period_key,
    points_for_model,
    sessions_for_model,
)

UTC = timezone.utc


def point(ts: datetime, tps: float = 10.0, tokens: int = 100, model: str = 'm1', session: str = 's1') -> MetricPoint:
    return MetricPoint(
        session_id=session,
        timestamp=ts,
        tps=tps,
        itps=tps / 2,
        otps=tps / 2,
        total_tokens=tokens,
        input_tokens=tokens // 2,
        output_tokens=tokens - tokens // 2,
        duration_seconds=tokens / tps,
        model=model,
        models=[model],
    )


@pytest.fixture
def points():
    """Points spread over hours, weekdays, days and months."""
    return [
        point(datetime(2024, 1, 1, 9, tzinfo=UTC), tps=10, session='b'),    # Monday
        point(datetime(2024, 1, 1, 13, tzinfo=UTC), tps=20, session='a'),   # Monday
        point(datetime(2024, 1, 7, 9, tzinfo=UTC), tps=30, session='b'),    # Sunday
        point(datetime(2024, 2, 3, 23, tzinfo=UTC), tps=40, session='c'),   # Saturday
        point(datetime(2023, 12, 31, 2, tzinfo=UTC), tps=50, session='a'),  # Sunday
    ]


class TestPeriodKey:
    """Tests for period_key function."""

    def test_hour(self):
        assert period_key(point(datetime(2024, 1, 1, 13, tzinfo=UTC)), 'hour', UTC) == (13, 13)

    def test_day_of_week(self):
        assert period_key(point(datetime(2024, 1, 7, tzinfo=UTC)), 'dayOfWeek', UTC) == ('Sunday', 'Sunday')

    def test_month(self):
        """Test month sort key is year*12 + zero-based month."""
        label, sort_key = period_key(point(datetime(2024, 2, 3, tzinfo=UTC)), 'month', UTC)
        assert label == 'Feb 2024'
        assert sort_key == 2024 * 12 + 1

    def test_day(self):
        ts = datetime(2024, 2, 3, 23, tzinfo=UTC)
        assert period_key(point(ts), 'day', UTC) == ('2024-02-03', int(ts.timestamp() * 1000))

    def test_date_hour(self):
        label, _ = period_key(point(datetime(2024, 2, 3, 7, tzinfo=UTC)), 'dateHour', UTC)
        assert label == '2024-02-03 07:00'

    def test_timezone_shifts_labels(self):
        """Test labels follow the requested timezone."""
        from zoneinfo import ZoneInfo
        p = point(datetime(2024, 1, 1, 2, tzinfo=UTC))
        label, _ = period_key(p, 'day', ZoneInfo('America/New_York'))
        assert label == '2023-12-31'

    def test_session(self):
        assert period_key(point(datetime(2024, 1, 1, tzinfo=UTC), session='xyz'), 'session', UTC) == ('xyz', 'xyz')


class TestAggregateByPeriod:
    """Tests for aggregate_by_period function."""

    @pytest.mark.parametrize('period', PERIODS)
    def test_counts_sum_to_input(self, points, period):
        """Test every point lands in exactly one bucket."""
        buckets = aggregate_by_period(points, period, tz=UTC)
        assert sum(b.count for b in buckets) == len(points)

    def test_hour_sorted_numerically(self, points):
        buckets = aggregate_by_period(points, 'hour', tz=UTC)
        assert [b.label for b in buckets] == [2, 9, 13, 23]
        nine = buckets[1]
        assert nine.count == 2
        assert nine.average_tps == 20
        assert nine.total_tokens == 200

    def test_day_of_week_canonical_order(self, points):
        buckets = aggregate_by_period(points, 'dayOfWeek', tz=UTC)
        labels = [b.label for b in buckets]
        assert labels == ['Sunday', 'Monday', 'Saturday']
        assert labels == sorted(labels, key=DAY_ORDER.index)

    def test_day_of_month_numeric(self, points):
        buckets = aggregate_by_period(points, 'dayOfMonth', tz=UTC)
        assert [b.label for b in buckets] == [1, 3, 7, 31]

    def test_month_chronological(self, points):
        """Test months sort by date, not label text."""
        buckets = aggregate_by_period(points, 'month', tz=UTC)
        assert [b.label for b in buckets] == ['Dec 2023', 'Jan 2024', 'Feb 2024']
        assert buckets[1].count == 3

    def test_day_chronological(self, points):
        buckets = aggregate_by_period(points, 'day', tz=UTC)
        assert [b.label for b in buckets] == ['2023-12-31', '2024-01-01', '2024-01-07', '2024-02-03']

    def test_session_lexical(self, points):
        buckets = aggregate_by_period(points, 'session', tz=UTC)
        assert [b.label for b in buckets] == ['a', 'b', 'c']

    def test_unknown_period_falls_back_to_session(self, points, caplog):
        with caplog.at_level(logging.WARNING, logger='tps.pipeline'):
            buckets = aggregate_by_period(points, 'fortnight', tz=UTC)
        assert [b.label for b in buckets] == ['a', 'b', 'c']
        assert 'fortnight' in caplog.text

    def test_percentiles_per_bucket(self, points):
        buckets = aggregate_by_period(points, 'session', tz=UTC)
        a = buckets[0]
        assert a.tps_percentiles.p50 == 20
        assert a.tps_percentiles.p_max == 50
        assert a.itps_percentiles.p_max == 25

    def test_empty_input(self):
        assert aggregate_by_period([], 'day', tz=UTC) == []

    def test_serialized_shape(self, points):
        data = aggregate_by_period(points, 'hour', tz=UTC)[0].model_dump(by_alias=True)
        assert {'label', 'sortKey', 'count', 'totalTokens', 'averageTPS', 'averageITPS',
                'averageOTPS', 'tpsPercentiles', 'itpsPercentiles', 'otpsPercentiles'} <= set(data)


class TestAggregateByModel:
    """Tests for aggregate_by_model function."""

    def test_sorted_by_total_tokens_desc(self):
        ts = datetime(2024, 1, 1, tzinfo=UTC)
        points = [
            point(ts, tokens=100, model='small'),
            point(ts, tokens=500, model='big'),
            point(ts, tokens=300, model='mid'),
            point(ts, tokens=300, model='big'),
        ]
        stats = aggregate_by_model(points)

        assert [s.model for s in stats] == ['big', 'mid', 'small']
        totals = [s.total_tokens for s in stats]
        assert totals == sorted(totals, reverse=True)

    def test_accumulates_fields(self):
        ts = datetime(2024, 1, 1, tzinfo=UTC)
        stats = aggregate_by_model([point(ts, tps=10, tokens=100), point(ts, tps=20, tokens=200)])

        assert len(stats) == 1
        s = stats[0]
        assert s.turn_count == 2
        assert s.total_tokens == 300
        assert s.total_input_tokens == 150
        assert s.total_output_tokens == 150
        assert s.total_duration == 20
        assert s.average_tps == 15
        assert s.tps_percentiles.p_max == 20

    def test_empty_model_is_unknown(self):
        stats = aggregate_by_model([point(datetime(2024, 1, 1, tzinfo=UTC), model='')])
        assert stats[0].model == 'unknown'

    def test_empty_input(self):
        assert aggregate_by_model([]) == []


def session(session_id: str, ts: datetime, models: list[str]) -> SessionSummary:
    return SessionSummary(
        id=session_id,
        filename=f"{session_id}.jsonl",
        turn_count=1,
        total_tokens=100,
        input_tokens=50,
        output_tokens=50,
        average_tps=10,
        average_itps=5,
        average_otps=5,
        timestamp=ts,
        models=models,
    )


class TestModelFilter:
    """Tests for points_for_model and sessions_for_model."""

    def test_points_filtered_by_primary_model(self):
        ts = datetime(2024, 1, 1, tzinfo=UTC)
        points = [point(ts, model='opus'), point(ts, model='haiku'), point(ts, model='opus')]

        assert [p.model for p in points_for_model(points, 'opus')] == ['opus', 'opus']

    def test_no_model_keeps_all_points(self):
        ts = datetime(2024, 1, 1, tzinfo=UTC)
        points = [point(ts, model='opus'), point(ts, model='haiku')]

        assert points_for_model(points) == points
        assert points_for_model(points, '') == points

    def test_filtered_points_feed_period_stats(self):
        points = [
            point(datetime(2024, 1, 1, 9, tzinfo=UTC), model='opus'),
            point(datetime(2024, 1, 1, 9, tzinfo=UTC), model='haiku'),
            point(datetime(2024, 1, 1, 10, tzinfo=UTC), model='haiku'),
        ]

        buckets = aggregate_by_period(points_for_model(points, 'opus'), 'hour', tz=UTC)

        assert [(b.label, b.count) for b in buckets] == [(9, 1)]

    def test_sessions_newest_first(self):
        sessions = [
            session('old', datetime(2024, 1, 1, tzinfo=UTC), ['opus']),
            session('new', datetime(2024, 3, 1, tzinfo=UTC), ['haiku']),
            session('mid', datetime(2024, 2, 1, tzinfo=UTC), ['opus']),
        ]

        assert [s.id for s in sessions_for_model(sessions)] == ['new', 'mid', 'old']

    def test_sessions_filtered_by_any_model(self):
        sessions = [
            session('a', datetime(2024, 1, 1, tzinfo=UTC), ['haiku', 'opus']),
            session('b', datetime(2024, 2, 1, tzinfo=UTC), ['haiku']),
            session('c', datetime(2024, 3, 1, tzinfo=UTC), ['opus']),
        ]

        assert [s.id for s in sessions_for_model(sessions, 'opus')] == ['c', 'a']

    def test_unknown_model_matches_nothing(self):
        sessions = [session('a', datetime(2024, 1, 1, tzinfo=UTC), ['opus'])]
        assert sessions_for_model(sessions, 'sonnet') == []
