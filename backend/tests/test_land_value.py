"""Tests for land value resolution and the market → residual fallback."""

from __future__ import annotations

import pytest

from app.feasibility.comparables import (
    REASON_NOT_ENOUGH_SAMPLES,
    MarketEstimate,
    unavailable_estimate,
)
from app.feasibility.exceptions import LandValueTransitionError
from app.feasibility.land_value import (
    REASON_NOT_QUERIED,
    LandValueResolution,
    LandValueState,
    requires_comparables,
    residual_land_value,
    resolve_land_value,
)
from app.models.schemas import LandValueMode, LandValueRequest

RESIDUAL = 2_556_375.0


def _market(resolved: bool, value: float | None = None) -> MarketEstimate:
    return MarketEstimate(
        resolved=resolved,
        reason="ok" if resolved else REASON_NOT_ENOUGH_SAMPLES,
        value=value,
        sample_count=40 if resolved else 29,
    )


class TestResidualLandValue:
    def test_reference_arithmetic(self):
        value = residual_land_value(7_650_000, 0.12, 4_175_625)
        assert value == pytest.approx(7_650_000 * 0.88 - 4_175_625)
        assert value == pytest.approx(2_556_375)

    def test_idempotent(self):
        args = (7_650_000, 0.12, 4_175_625)
        assert residual_land_value(*args) == residual_land_value(*args)

    def test_can_be_negative(self):
        assert residual_land_value(1_000_000, 0.12, 2_000_000) < 0


class TestRequiresComparables:
    @pytest.mark.parametrize("mode", [
        LandValueMode.DECLARED, LandValueMode.RESIDUAL, LandValueMode.NONE,
    ])
    def test_only_market_queries(self, mode):
        request = LandValueRequest(mode=mode, declared_value=1000)
        assert requires_comparables(request) is False

    def test_market(self):
        assert requires_comparables(LandValueRequest(mode=LandValueMode.MARKET)) is True

    def test_missing_request(self):
        assert requires_comparables(None) is False


class TestResolveLandValue:
    def test_none(self):
        res = resolve_land_value(LandValueRequest(mode=LandValueMode.NONE), RESIDUAL)
        assert res.mode_used == LandValueMode.NONE
        assert res.land_cost == 0

    def test_missing_request_is_none(self):
        res = resolve_land_value(None, RESIDUAL)
        assert res.mode_requested == LandValueMode.NONE
        assert res.land_cost == 0

    def test_declared_as_is(self):
        res = resolve_land_value(
            LandValueRequest(mode=LandValueMode.DECLARED, declared_value=3_000_000), RESIDUAL,
        )
        assert res.mode_used == LandValueMode.DECLARED
        assert res.land_cost == 3_000_000
        assert res.fallback is False

    def test_residual(self):
        res = resolve_land_value(LandValueRequest(mode=LandValueMode.RESIDUAL), RESIDUAL)
        assert res.mode_used == LandValueMode.RESIDUAL
        assert res.land_cost == RESIDUAL

    def test_negative_residual_books_zero(self):
        res = resolve_land_value(LandValueRequest(mode=LandValueMode.RESIDUAL), -50_000)
        assert res.value == -50_000
        assert res.land_cost == 0

    def test_market_resolved(self):
        res = resolve_land_value(
            LandValueRequest(mode=LandValueMode.MARKET), RESIDUAL, _market(True, 1_800_000),
        )
        assert res.mode_used == LandValueMode.MARKET
        assert res.fallback is False
        assert res.land_cost == 1_800_000

    def test_market_too_few_samples_falls_back(self):
        res = resolve_land_value(
            LandValueRequest(mode=LandValueMode.MARKET), RESIDUAL, _market(False),
        )
        assert res.mode_requested == LandValueMode.MARKET
        assert res.mode_used == LandValueMode.RESIDUAL
        assert res.fallback is True
        assert res.fallback_reason == REASON_NOT_ENOUGH_SAMPLES
        assert res.land_cost == RESIDUAL
        assert res.state == LandValueState.RESOLVED
        assert len(res.transitions) == 2
        assert "fallback[residual]" in res.transitions[0]

    def test_market_source_error_falls_back(self):
        res = resolve_land_value(
            LandValueRequest(mode=LandValueMode.MARKET), RESIDUAL, unavailable_estimate("64"),
        )
        assert res.mode_used == LandValueMode.RESIDUAL
        assert res.fallback_reason == "source_error"

    def test_market_not_queried_falls_back(self):
        res = resolve_land_value(LandValueRequest(mode=LandValueMode.MARKET), RESIDUAL, None)
        assert res.mode_used == LandValueMode.RESIDUAL
        assert res.fallback_reason == REASON_NOT_QUERIED


class TestStateMachine:
    def test_cannot_resolve_twice(self):
        res = LandValueResolution(mode_requested=LandValueMode.RESIDUAL)
        res.resolve(LandValueMode.RESIDUAL, 10.0)
        with pytest.raises(LandValueTransitionError):
            res.resolve(LandValueMode.RESIDUAL, 20.0)

    def test_cannot_disguise_residual_as_market(self):
        res = LandValueResolution(mode_requested=LandValueMode.MARKET)
        with pytest.raises(LandValueTransitionError):
            res.resolve(LandValueMode.RESIDUAL, 10.0)

    def test_only_market_can_fall_back(self):
        res = LandValueResolution(mode_requested=LandValueMode.DECLARED)
        with pytest.raises(LandValueTransitionError):
            res.fall_back_to_residual(10.0, "whatever")

    def test_land_cost_requires_resolution(self):
        res = LandValueResolution(mode_requested=LandValueMode.NONE)
        with pytest.raises(LandValueTransitionError):
            res.land_cost
