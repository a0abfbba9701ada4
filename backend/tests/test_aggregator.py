"""Tests for margin computation, appreciation bands and land-value detail."""

from __future__ import annotations

import pytest

from app.feasibility.aggregator import (
    BAND_COMFORTABLE,
    BAND_LOW,
    BAND_TIGHT,
    BAND_UNKNOWN,
    BAND_VERY_COMFORTABLE,
    appreciation_band,
    build_land_value_detail,
    compute_margin,
)
from app.feasibility.comparables import MarketEstimate
from app.feasibility.land_value import resolve_land_value
from app.models.schemas import LandValueMode, LandValueRequest

T = 0.12


class TestAppreciationBand:
    def test_at_target_is_comfortable(self):
        assert appreciation_band(T, T) == BAND_COMFORTABLE

    def test_at_target_minus_three_points_is_tight(self):
        assert appreciation_band(T - 0.03, T) == BAND_TIGHT
        assert appreciation_band(0.09, T) == BAND_TIGHT

    def test_just_below_tight_is_low(self):
        assert appreciation_band(T - 0.03 - 1e-6, T) == BAND_LOW
        assert appreciation_band(0.0899, T) == BAND_LOW

    def test_float_noise_below_tight_threshold_is_tight(self):
        assert appreciation_band(T - 0.03 - 1e-10, T) == BAND_TIGHT

    def test_at_target_plus_five_points_is_very_comfortable(self):
        assert appreciation_band(T + 0.05, T) == BAND_VERY_COMFORTABLE
        assert appreciation_band(0.17, T) == BAND_VERY_COMFORTABLE

    def test_just_below_very_comfortable(self):
        assert appreciation_band(0.1699, T) == BAND_COMFORTABLE

    def test_just_below_target_is_tight(self):
        assert appreciation_band(0.1199, T) == BAND_TIGHT

    def test_negative_margin(self):
        assert appreciation_band(-0.2, T) == BAND_LOW

    def test_no_ratio(self):
        assert appreciation_band(None, T) == BAND_UNKNOWN

    def test_follows_target(self):
        assert appreciation_band(0.12, 0.15) == BAND_TIGHT


class TestComputeMargin:
    def test_amount_and_ratio(self):
        margin = compute_margin(1_000_000, 700_000, 100_000)
        assert margin.cost_total == 800_000
        assert margin.amount == 200_000
        assert margin.ratio == pytest.approx(0.2)

    def test_zero_revenue_has_no_ratio(self):
        margin = compute_margin(0, 500_000, 0)
        assert margin.ratio is None
        assert margin.amount == -500_000


class TestLandValueDetail:
    def test_declared_vs_residual_delta(self):
        res = resolve_land_value(
            LandValueRequest(mode=LandValueMode.DECLARED, declared_value=3_000_000), 2_556_375,
        )
        detail = build_land_value_detail(
            res, 2_556_375, floor_area_m2=1275, terrain_area_m2=500, declared_value=3_000_000,
        )
        assert detail.delta_declared_vs_residual == 443_625
        assert detail.delta_declared_vs_residual_pct == 17.4
        assert detail.per_m2_floor_area.residual == 2005
        assert detail.per_m2_terrain.residual == 5113
        assert detail.per_m2_terrain.used == 6000
        assert detail.market_sample is None

    def test_zero_residual_has_no_pct(self):
        res = resolve_land_value(
            LandValueRequest(mode=LandValueMode.DECLARED, declared_value=100_000), 0.0,
        )
        detail = build_land_value_detail(
            res, 0.0, floor_area_m2=100, terrain_area_m2=100, declared_value=100_000,
        )
        assert detail.delta_declared_vs_residual == 100_000
        assert detail.delta_declared_vs_residual_pct is None

    def test_no_declared_value_no_delta(self):
        res = resolve_land_value(LandValueRequest(mode=LandValueMode.RESIDUAL), 1_000.0)
        detail = build_land_value_detail(res, 1_000.0, floor_area_m2=10, terrain_area_m2=10)
        assert detail.delta_declared_vs_residual is None
        assert detail.delta_declared_vs_residual_pct is None

    def test_fallback_is_recorded(self):
        market = MarketEstimate(resolved=False, reason="not_enough_samples", sample_count=29)
        res = resolve_land_value(LandValueRequest(mode=LandValueMode.MARKET), 1_000_000.0, market)
        detail = build_land_value_detail(
            res, 1_000_000.0, floor_area_m2=1000, terrain_area_m2=500, market=market,
        )
        assert detail.mode_requested == LandValueMode.MARKET
        assert detail.mode_used == LandValueMode.RESIDUAL
        assert detail.fallback is True
        assert detail.value_used == 1_000_000
        assert detail.market_value is None
        assert detail.market_sample.sample_count == 29
        assert detail.message is not None

    def test_market_delta(self):
        market = MarketEstimate(resolved=True, reason="ok", value=1_200_000, sample_count=35)
        res = resolve_land_value(LandValueRequest(mode=LandValueMode.MARKET), 1_000_000.0, market)
        detail = build_land_value_detail(
            res, 1_000_000.0, floor_area_m2=1000, terrain_area_m2=500, market=market,
        )
        assert detail.mode_used == LandValueMode.MARKET
        assert detail.fallback is False
        assert detail.market_value == 1_200_000
        assert detail.delta_market_vs_residual == 200_000
        assert detail.delta_market_vs_residual_pct == 20.0
        assert detail.message is None

    def test_halves_round_up(self):
        res = resolve_land_value(LandValueRequest(mode=LandValueMode.RESIDUAL), 1_000.5)
        detail = build_land_value_detail(res, 1_000.5, floor_area_m2=10, terrain_area_m2=10)
        assert detail.residual_value == 1_001
        assert detail.value_used == 1_001
