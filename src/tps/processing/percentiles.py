"""Nearest-rank percentiles.

Index is ceil(p/100 * n) - 1 on the sorted sample, clamped into range.
No interpolation, so results always come from the sample itself and match
values already stored in the result cache.
"""

import math
from typing import Iterable

from ..config import PERCENTILE_LEVELS
from ..models import Percentiles


def nearest_rank(sorted_values: list[float], p: float) -> float:
    """Value at percentile p of an ascending, non-empty list."""
    index = math.ceil((p / 100) * len(sorted_values)) - 1
    return sorted_values[max(0, min(index, len(sorted_values) - 1))]


def calculate_percentiles(values: Iterable[float]) -> Percentiles:
    """Calculate p50/p75/p95/pMax; all zero for an empty sample."""
    ordered = sorted(values)
    if not ordered:
        return Percentiles()

    p50, p75, p95 = (nearest_rank(ordered, p) for p in PERCENTILE_LEVELS)
    return Percentiles(p50=p50, p75=p75, p95=p95, p_max=ordered[-1])
