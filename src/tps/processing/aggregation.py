"""Aggregation of turn metrics by time period and by model."""

from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

from ..config import DISPLAY_TIMEZONE, UNKNOWN_MODEL
from ..logging_config import get_logger
from ..models import AggregationBucket, MetricPoint, ModelStats, SessionSummary
from ..utils import epoch_millis
from .percentiles import calculate_percentiles

logger = get_logger(__name__, namespace='pipeline')

PERIODS = ('session', 'hour', 'dayOfWeek', 'dayOfMonth', 'month', 'day', 'dateHour')

# Fixed English names so labels do not depend on the host locale
DAY_ORDER = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']
MONTH_NAMES = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
               'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']

Label = Union[int, str]
SortKey = Union[int, float, str]


@dataclass
class RateAccumulator:
    """Running sums and raw series for one group."""
    count: int = 0
    total_tps: float = 0
    total_itps: float = 0
    total_otps: float = 0
    total_tokens: int = 0
    tps_values: list[float] = field(default_factory=list)
    itps_values: list[float] = field(default_factory=list)
    otps_values: list[float] = field(default_factory=list)

    def add(self, point: MetricPoint):
        self.count += 1
        self.total_tps += point.tps
        self.total_itps += point.itps
        self.total_otps += point.otps
        self.total_tokens += point.total_tokens
        self.tps_values.append(point.tps)
        self.itps_values.append(point.itps)
        self.otps_values.append(point.otps)

    def rate_fields(self) -> dict:
        """Averages and percentiles, keyed by model field name."""
        return {
            'average_tps': self.total_tps / self.count,
            'average_itps': self.total_itps / self.count,
            'average_otps': self.total_otps / self.count,
            'tps_percentiles': calculate_percentiles(self.tps_values),
            'itps_percentiles': calculate_percentiles(self.itps_values),
            'otps_percentiles': calculate_percentiles(self.otps_values),
        }


@dataclass
class PeriodAccumulator(RateAccumulator):
    sort_key: SortKey = ''


@dataclass
class ModelAccumulator(RateAccumulator):
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_duration: float = 0

    def add(self, point: MetricPoint):
        super().add(point)
        self.total_input_tokens += point.input_tokens
        self.total_output_tokens += point.output_tokens
        self.total_duration += point.duration_seconds


def resolve_timezone(tz: Optional[tzinfo] = None) -> Optional[tzinfo]:
    """Timezone used for period labels; None means host local time."""
    if tz is not None:
        return tz
    if DISPLAY_TIMEZONE:
        return ZoneInfo(DISPLAY_TIMEZONE)
    return None


def period_key(point: MetricPoint, period: str, tz: Optional[tzinfo] = None) -> tuple[Label, SortKey]:
    """Derive (label, sort_key) for a point under a period selector.

    Unknown selectors group by session.
    """
    local = point.timestamp.astimezone(tz)

    if period == 'hour':
        return local.hour, local.hour
    if period == 'dayOfWeek':
        # isoweekday(): Monday=1 .. Sunday=7
        name = DAY_ORDER[local.isoweekday() % 7]
        return name, name
    if period == 'dayOfMonth':
        return local.day, local.day
    if period == 'month':
        return f"{MONTH_NAMES[local.month - 1]} {local.year}", local.year * 12 + (local.month - 1)
    if period == 'day':
        return local.strftime('%Y-%m-%d'), epoch_millis(point.timestamp)
    if period == 'dateHour':
        return f"{local.strftime('%Y-%m-%d')} {local.hour:02d}:00", epoch_millis(point.timestamp)
    return point.session_id, point.session_id


def _sort_buckets(buckets: list[AggregationBucket], period: str) -> list[AggregationBucket]:
    if period in ('hour', 'dayOfMonth'):
        return sorted(buckets, key=lambda b: int(b.label))
    if period == 'dayOfWeek':
        return sorted(buckets, key=lambda b: DAY_ORDER.index(b.label))
    if period in ('day', 'month', 'dateHour'):
        return sorted(buckets, key=lambda b: b.sort_key)
    return sorted(buckets, key=lambda b: str(b.label))


def aggregate_by_period(
    points: list[MetricPoint],
    period: str,
    tz: Optional[tzinfo] = None,
) -> list[AggregationBucket]:
    """Aggregate turn metrics by time period.

    Args:
        points: All metric points of the run
        period: One of PERIODS; anything else groups by session
        tz: Timezone for labels (default: TPS_TIMEZONE, else local time)

    Returns:
        One bucket per distinct key, sorted for the selector
    """
    if period not in PERIODS:
        logger.warning("Unknown period %r, grouping by session", period)
        period = 'session'

    zone = resolve_timezone(tz)
    groups: dict[Label, PeriodAccumulator] = {}

    for point in points:
        label, sort_key = period_key(point, period, zone)
        if label not in groups:
            groups[label] = PeriodAccumulator(sort_key=sort_key)
        groups[label].add(point)

    buckets = [
        AggregationBucket(
            label=label,
            sort_key=acc.sort_key,
            count=acc.count,
            total_tokens=acc.total_tokens,
            **acc.rate_fields(),
        )
        for label, acc in groups.items()
    ]
    return _sort_buckets(buckets, period)


def aggregate_by_model(points: list[MetricPoint]) -> list[ModelStats]:
    """Aggregate turn metrics by primary model, heaviest token user first."""
    groups: dict[str, ModelAccumulator] = {}

    for point in points:
        model = point.model or UNKNOWN_MODEL
        if model not in groups:
            groups[model] = ModelAccumulator()
        groups[model].add(point)

    stats = [
        ModelStats(
            model=model,
            turn_count=acc.count,
            total_tokens=acc.total_tokens,
            total_input_tokens=acc.total_input_tokens,
            total_output_tokens=acc.total_output_tokens,
            total_duration=acc.total_duration,
            **acc.rate_fields(),
        )
        for model, acc in groups.items()
    ]
    return sorted(stats, key=lambda s: s.total_tokens, reverse=True)


def points_for_model(points: list[MetricPoint], model: Optional[str] = None) -> list[MetricPoint]:
    """Points whose primary model is `model`; all points when no model is given."""
    if not model:
        return list(points)
    return [p for p in points if p.model == model]


def sessions_for_model(sessions: list[SessionSummary], model: Optional[str] = None) -> list[SessionSummary]:
    """Sessions newest first, keeping those that used `model` when one is given."""
    ordered = sorted(sessions, key=lambda s: s.timestamp, reverse=True)
    if not model:
        return ordered
    return [s for s in ordered if model in s.models]
