"""Tests for nearest-rank percentiles."""

import pytest
from src.tps.models import Percentiles
from src.tps.processing.percentiles import calculate_percentiles, nearest_rank


class TestCalculatePercentiles:
    """Tests for calculate_percentiles function."""

    def test_empty(self):
        """Test empty input is all zeros."""
        assert calculate_percentiles([]) == Percentiles(p50=0, p75=0, p95=0, p_max=0)

    def test_single_value(self):
        """Test a single sample fills every percentile."""
        result = calculate_percentiles([10])
        assert (result.p50, result.p75, result.p95, result.p_max) == (10, 10, 10, 10)

    def test_four_values(self):
        """Test ceil indexing on [1, 2, 3, 4]."""
        result = calculate_percentiles([1, 2, 3, 4])
        assert result.p50 == 2
        assert result.p75 == 3
        assert result.p95 == 4
        assert result.p_max == 4

    def test_unsorted_input(self):
        """Test input order does not matter."""
        assert calculate_percentiles([4, 1, 3, 2]) == calculate_percentiles([1, 2, 3, 4])

    def test_does_not_mutate_input(self):
        """Test the caller's list is left alone."""
        values = [3, 1, 2]
        calculate_percentiles(values)
        assert values == [3, 1, 2]

    def test_twenty_values(self):
        """Test p95 of 1..20 is 19, not interpolated."""
        result = calculate_percentiles(range(1, 21))
        assert result.p50 == 10
        assert result.p75 == 15
        assert result.p95 == 19
        assert result.p_max == 20

    @pytest.mark.parametrize('values', [
        [5.5, 1.25, 9.0],
        [0.0, 0.0, 1.0, 100.0, 3.3],
        list(range(37)),
    ])
    def test_ordering(self, values):
        """Test p50 <= p75 <= p95 <= pMax."""
        result = calculate_percentiles(values)
        assert result.p50 <= result.p75 <= result.p95 <= result.p_max

    def test_serialized_keys(self):
        """Test wire format uses pMax."""
        assert calculate_percentiles([1]).model_dump(by_alias=True) == {
            'p50': 1, 'p75': 1, 'p95': 1, 'pMax': 1,
        }


class TestNearestRank:
    """Tests for nearest_rank helper."""

    def test_clamps_low(self):
        """Test p=0 clamps to the first element."""
        assert nearest_rank([1, 2, 3], 0) == 1

    def test_clamps_high(self):
        """Test p>100 clamps to the last element."""
        assert nearest_rank([1, 2, 3], 150) == 3
