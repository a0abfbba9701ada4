"""
Bilan aggregation: land cost + cost stack → margin and appreciation band.

Bands, relative to the target margin T:

  ratio ≥ T + 0.05   very_comfortable
  ratio ≥ T          comfortable
  ratio ≥ T − 0.03   tight
  otherwise          low

No revenue means no ratio, and the band is "unknown".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from app.feasibility.comparables import MarketEstimate
from app.feasibility.defaults import ENGINE_DEFAULTS, EngineDefaults
from app.feasibility.land_value import LandValueResolution
from app.feasibility.revenue import RevenueCostResult
from app.feasibility.rounding import round_half_up, round_money, round_ratio
from app.models.schemas import (
    CostBreakdown, FeasibilityBilan, LandValueDetail, LandValueMode,
    LandValuePerM2, MarginResult,
)

BAND_VERY_COMFORTABLE = "very_comfortable"
BAND_COMFORTABLE = "comfortable"
BAND_TIGHT = "tight"
BAND_LOW = "low"
BAND_UNKNOWN = "unknown"

# Ratios are derived from float arithmetic; a boundary hit must not flip band.
_BAND_TOLERANCE = 1e-9


@dataclass
class MarginFigures:
    cost_total: float
    amount: float
    ratio: Optional[float]


def compute_margin(
    total_revenue: float,
    cost_excluding_land: float,
    land_cost: float,
) -> MarginFigures:
    cost_total = cost_excluding_land + land_cost
    amount = total_revenue - cost_total
    ratio = amount / total_revenue if total_revenue > 0 else None
    return MarginFigures(cost_total=cost_total, amount=amount, ratio=ratio)


def appreciation_band(
    margin_ratio: Optional[float],
    target_ratio: float,
    defaults: EngineDefaults = ENGINE_DEFAULTS,
) -> str:
    """Band of a margin ratio relative to the target ratio T.

    Each threshold is inclusive and widened by 1e-9 to absorb float noise:
    a ratio r is "tight" when r ≥ T − 0.03 − 1e-9, so T − 0.03 − 1e-10 is
    still tight and T − 0.03 − 1e-6 is low. The other two thresholds
    behave the same way.
    """
    if margin_ratio is None:
        return BAND_UNKNOWN
    if margin_ratio >= target_ratio + defaults.very_comfortable_spread - _BAND_TOLERANCE:
        return BAND_VERY_COMFORTABLE
    if margin_ratio >= target_ratio - _BAND_TOLERANCE:
        return BAND_COMFORTABLE
    if margin_ratio >= target_ratio - defaults.tight_spread - _BAND_TOLERANCE:
        return BAND_TIGHT
    return BAND_LOW


def _per_m2(value: Optional[float], area: float) -> Optional[float]:
    if value is None or area <= 0:
        return None
    return round_money(value / area)


def _delta(value: Optional[float], residual: float) -> tuple[Optional[float], Optional[float]]:
    """Absolute delta vs residual, and the same as a percentage of the residual."""
    if value is None:
        return None, None
    delta = value - residual
    pct = round_half_up(delta / residual * 100, 1) if residual != 0 else None
    return round_money(delta), pct


def _land_value_message(resolution: LandValueResolution) -> Optional[str]:
    if not resolution.fallback:
        return None
    return (
        "Not enough comparable bare-land sales to estimate a market land price "
        f"({resolution.fallback_reason}). The residual land value, derived from "
        "the target margin, was used instead."
    )


def build_land_value_detail(
    resolution: LandValueResolution,
    residual_value: float,
    floor_area_m2: float,
    terrain_area_m2: float,
    declared_value: Optional[float] = None,
    market: Optional[MarketEstimate] = None,
) -> LandValueDetail:
    market_value = market.value if market is not None and market.resolved else None
    declared_delta, declared_pct = _delta(declared_value, residual_value)
    market_delta, market_pct = _delta(market_value, residual_value)
    land_cost = resolution.land_cost

    return LandValueDetail(
        mode_requested=resolution.mode_requested,
        mode_used=resolution.mode_used,
        fallback=resolution.fallback,
        fallback_reason=resolution.fallback_reason,
        value_used=round_money(land_cost),
        declared_value=round_money(declared_value),
        residual_value=round_money(residual_value),
        market_value=round_money(market_value),
        per_m2_floor_area=LandValuePerM2(
            residual=_per_m2(residual_value, floor_area_m2),
            used=_per_m2(land_cost, floor_area_m2),
        ),
        per_m2_terrain=LandValuePerM2(
            residual=_per_m2(residual_value, terrain_area_m2),
            used=_per_m2(land_cost, terrain_area_m2),
        ),
        delta_declared_vs_residual=declared_delta,
        delta_declared_vs_residual_pct=declared_pct,
        delta_market_vs_residual=market_delta,
        delta_market_vs_residual_pct=market_pct,
        market_sample=(
            market.to_schema()
            if market is not None and resolution.mode_requested == LandValueMode.MARKET
            else None
        ),
        transitions=list(resolution.transitions),
        message=_land_value_message(resolution),
    )


def aggregate_bilan(
    costs: RevenueCostResult,
    resolution: LandValueResolution,
    residual_value: float,
    target_margin_ratio: float,
    terrain_area_m2: float,
    declared_value: Optional[float] = None,
    market: Optional[MarketEstimate] = None,
    defaults: EngineDefaults = ENGINE_DEFAULTS,
) -> FeasibilityBilan:
    land_cost = resolution.land_cost
    margin = compute_margin(costs.total_revenue, costs.cost_excluding_land, land_cost)

    return FeasibilityBilan(
        revenue=costs.revenue_schema(),
        costs=CostBreakdown(
            construction=round_money(costs.construction_total),
            honoraria=round_money(costs.honoraria),
            design=round_money(costs.design),
            commercial=round_money(costs.commercial_fees),
            financing=round_money(costs.financing_fees),
            tax=round_money(costs.tax),
            land=round_money(land_cost),
            total_excluding_land=round_money(costs.cost_excluding_land),
            total=round_money(margin.cost_total),
        ),
        margin=MarginResult(
            amount=round_money(margin.amount),
            ratio=round_ratio(margin.ratio),
            target_ratio=target_margin_ratio,
            band=appreciation_band(margin.ratio, target_margin_ratio, defaults),
        ),
        land_value=build_land_value_detail(
            resolution,
            residual_value,
            floor_area_m2=costs.floor_area_m2,
            terrain_area_m2=terrain_area_m2,
            declared_value=declared_value,
            market=market,
        ),
    )
