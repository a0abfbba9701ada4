"""End-to-end tests for the synchronous feasibility engine.

Reference case: 500 m² terrain, unknown zoning rules (defaults 0.6 / 15 m),
residential at 6000 €/m² sale and 2500 €/m² construction, default fees.
  floor area   1275 m²
  revenue      7 650 000
  non-land     4 175 625
  residual     2 556 375
"""

from __future__ import annotations

import pytest

from app.feasibility import FeasibilityEngine, FeasibilityInputs
from app.feasibility.comparables import ComparableSale
from app.feasibility.profiles import resolve_financing_profile
from app.models.schemas import (
    LandValueMode, LandValueRequest, ProjectScenario, UseType, ZoningEnvelope,
)

OVERRIDES = {
    "sale_prices": {"residential": 6000},
    "construction_costs": {"residential": 2500},
}


def _inputs(mode=LandValueMode.NONE, declared=None, use=UseType.RESIDENTIAL, **kwargs):
    return FeasibilityInputs(
        terrain_area_m2=500,
        zoning=ZoningEnvelope(),
        project=ProjectScenario(use=use),
        profile=resolve_financing_profile(None, overrides=OVERRIDES),
        land_value=LandValueRequest(mode=mode, declared_value=declared),
        **kwargs,
    )


def _sales(count: int) -> list[ComparableSale]:
    return [ComparableSale(price=(100 + i * 10) * 1000, terrain_area_m2=1000) for i in range(count)]


@pytest.fixture
def engine():
    return FeasibilityEngine()


class TestReferenceParcel:
    def test_envelope_and_revenue(self, engine):
        result = engine.compute(_inputs())
        assert result.envelope.total_floor_area_m2 == pytest.approx(1275)
        assert result.bilan.revenue.total == 7_650_000

    def test_cost_stack(self, engine):
        costs = engine.compute(_inputs()).bilan.costs
        assert costs.construction == 3_187_500
        assert costs.honoraria == 159_375
        assert costs.design == 63_750
        assert costs.commercial == 229_500
        assert costs.financing == 306_000
        assert costs.tax == 229_500
        assert costs.total_excluding_land == 4_175_625

    def test_residual_value(self, engine):
        result = engine.compute(_inputs())
        assert result.residual_value == pytest.approx(2_556_375)
        assert result.bilan.land_value.residual_value == 2_556_375

    def test_none_mode(self, engine):
        bilan = engine.compute(_inputs()).bilan
        assert bilan.costs.land == 0
        assert bilan.margin.amount == 3_474_375
        assert bilan.margin.band == "very_comfortable"

    def test_residual_mode_hits_target_exactly(self, engine):
        bilan = engine.compute(_inputs(LandValueMode.RESIDUAL)).bilan
        assert bilan.costs.land == 2_556_375
        assert bilan.margin.amount == 918_000
        assert bilan.margin.ratio == 0.12
        assert bilan.margin.band == "comfortable"

    def test_declared_mode(self, engine):
        bilan = engine.compute(_inputs(LandValueMode.DECLARED, declared=3_000_000)).bilan
        assert bilan.costs.land == 3_000_000
        assert bilan.margin.ratio == pytest.approx(0.062, abs=1e-4)
        assert bilan.margin.band == "low"
        detail = bilan.land_value
        assert detail.delta_declared_vs_residual == 443_625
        assert detail.delta_declared_vs_residual_pct == 17.4
        assert detail.per_m2_floor_area.residual == 2005
        assert detail.per_m2_terrain.residual == 5113

    def test_identical_inputs_identical_output(self, engine):
        a = engine.compute(_inputs(LandValueMode.RESIDUAL)).bilan
        b = engine.compute(_inputs(LandValueMode.RESIDUAL)).bilan
        assert a == b


class TestMixedUse:
    def test_ground_floor_commercial(self, engine):
        result = engine.compute(_inputs(use=UseType.MIXED))
        by_use = result.bilan.revenue.by_use
        assert by_use["commercial"].area_m2 == 255
        assert by_use["commercial"].price_per_m2 == 8000
        assert by_use["residential"].area_m2 == 1020
        assert result.bilan.revenue.total == 255 * 8000 + 1020 * 6000


class TestMarketMode:
    def test_market_resolved(self, engine):
        result = engine.compute(_inputs(
            LandValueMode.MARKET, comparable_sales=_sales(30), comparables_prefix="64",
        ))
        detail = result.bilan.land_value
        assert detail.mode_used == LandValueMode.MARKET
        assert detail.fallback is False
        assert detail.market_value == 245 * 500
        assert result.bilan.costs.land == 245 * 500
        assert detail.market_sample.area_prefix == "64"

    def test_too_few_sales_falls_back_to_residual(self, engine):
        result = engine.compute(_inputs(LandValueMode.MARKET, comparable_sales=_sales(29)))
        detail = result.bilan.land_value
        assert detail.mode_requested == LandValueMode.MARKET
        assert detail.mode_used == LandValueMode.RESIDUAL
        assert detail.fallback is True
        assert detail.fallback_reason == "not_enough_samples"
        assert detail.market_sample.sample_count == 29
        assert result.bilan.costs.land == 2_556_375

    def test_source_failure_falls_back(self, engine):
        result = engine.compute(_inputs(LandValueMode.MARKET, comparables_failed=True))
        detail = result.bilan.land_value
        assert detail.mode_used == LandValueMode.RESIDUAL
        assert detail.fallback_reason == "source_error"

    def test_sales_ignored_outside_market_mode(self, engine):
        result = engine.compute(_inputs(LandValueMode.RESIDUAL, comparable_sales=_sales(40)))
        assert result.market is None
        assert result.bilan.land_value.market_sample is None


class TestNegativeResidual:
    def test_land_cost_floored_at_zero(self, engine):
        inputs = _inputs(LandValueMode.RESIDUAL)
        inputs.profile = resolve_financing_profile(None, overrides={
            "sale_prices": {"residential": 2000},
            "construction_costs": {"residential": 2500},
        })
        result = engine.compute(inputs)
        assert result.residual_value < 0
        assert result.bilan.land_value.residual_value < 0
        assert result.bilan.costs.land == 0
        assert result.bilan.margin.band == "low"
