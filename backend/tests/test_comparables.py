"""Tests for market-comparable land value statistics."""

from __future__ import annotations

import pytest

from app.feasibility.comparables import (
    REASON_NOT_ENOUGH_SAMPLES,
    REASON_OK,
    REASON_SOURCE_ERROR,
    ComparableSale,
    department_prefix,
    estimate_market_value,
    median,
    price_per_m2_ratios,
    unavailable_estimate,
)


def _sales(count: int, start: float = 100.0, step: float = 10.0, area: float = 1000.0):
    """`count` sales of `area` m² at start, start+step, ... €/m²."""
    return [
        ComparableSale(price=(start + i * step) * area, terrain_area_m2=area)
        for i in range(count)
    ]


class TestMedian:
    def test_odd_count(self):
        assert median([100, 200, 300]) == 200

    def test_even_count_interpolates(self):
        assert median([100, 200, 300, 400]) == 250

    def test_unsorted_input(self):
        assert median([300, 100, 400, 200]) == 250

    def test_single_value(self):
        assert median([42]) == 42

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            median([])


class TestDepartmentPrefix:
    @pytest.mark.parametrize("commune,expected", [
        ("64024", "64"),
        ("75056", "75"),
        ("2A004", "2A"),
        ("97411", "974"),
        ("98735", "987"),
        (" 33063 ", "33"),
    ])
    def test_prefix(self, commune, expected):
        assert department_prefix(commune) == expected


class TestRatios:
    def test_sanity_band_bounds_inclusive(self):
        sales = [
            ComparableSale(price=50 * 100, terrain_area_m2=100),       # 50 €/m², kept
            ComparableSale(price=20000 * 100, terrain_area_m2=100),    # 20000 €/m², kept
            ComparableSale(price=49 * 100, terrain_area_m2=100),       # dropped
            ComparableSale(price=20001 * 100, terrain_area_m2=100),    # dropped
        ]
        assert price_per_m2_ratios(sales) == [50, 20000]

    def test_unusable_records_dropped(self):
        sales = [
            ComparableSale(price=0, terrain_area_m2=100),
            ComparableSale(price=-5000, terrain_area_m2=100),
            ComparableSale(price=100_000, terrain_area_m2=0),
            ComparableSale(price=100_000, terrain_area_m2=6000),
            ComparableSale(price=100_000, terrain_area_m2=500),
        ]
        assert price_per_m2_ratios(sales) == [200]

    def test_terrain_area_upper_bound_inclusive(self):
        sales = [ComparableSale(price=500_000, terrain_area_m2=5000)]
        assert price_per_m2_ratios(sales) == [100]


class TestEstimateMarketValue:
    def test_resolves_with_enough_samples(self):
        estimate = estimate_market_value(_sales(30), terrain_area_m2=500, area_prefix="64")
        assert estimate.resolved is True
        assert estimate.reason == REASON_OK
        assert estimate.sample_count == 30
        # ratios 100..390, median of 30 = (240 + 250) / 2
        assert estimate.median_price_per_m2 == pytest.approx(245)
        assert estimate.value == pytest.approx(245 * 500)
        assert estimate.area_prefix == "64"

    def test_29_samples_unresolved(self):
        estimate = estimate_market_value(_sales(29), terrain_area_m2=500)
        assert estimate.resolved is False
        assert estimate.reason == REASON_NOT_ENOUGH_SAMPLES
        assert estimate.sample_count == 29
        assert estimate.value is None

    def test_threshold_counts_surviving_ratios(self):
        sales = _sales(30) + [ComparableSale(price=10, terrain_area_m2=1000)]
        estimate = estimate_market_value(sales[1:], terrain_area_m2=500)
        assert estimate.records_received == 30
        assert estimate.sample_count == 29
        assert estimate.resolved is False

    def test_schema(self):
        meta = estimate_market_value(_sales(31), terrain_area_m2=500).to_schema()
        assert meta.reason == REASON_OK
        assert meta.sample_count == 31
        assert meta.min_samples == 30
        assert meta.median_price_per_m2 == 250

    def test_unavailable(self):
        estimate = unavailable_estimate("64")
        assert estimate.resolved is False
        assert estimate.reason == REASON_SOURCE_ERROR
