"""
Feasibility engine: envelope → revenue/cost → land value → bilan.

Synchronous and stateless. Every collaborator lookup (zoning ruleset,
financing profile, terrain area, comparable sales) has already been
performed by the caller; the engine only computes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from app.feasibility.aggregator import aggregate_bilan
from app.feasibility.comparables import (
    ComparableSale, MarketEstimate, estimate_market_value, unavailable_estimate,
)
from app.feasibility.defaults import ENGINE_DEFAULTS, EngineDefaults
from app.feasibility.envelope import BuildableEnvelope, compute_buildable_envelope
from app.feasibility.land_value import (
    LandValueResolution, requires_comparables, residual_land_value, resolve_land_value,
)
from app.feasibility.profiles import ResolvedProfile, resolve_financing_profile
from app.feasibility.revenue import RevenueCostResult, compute_revenue_and_costs
from app.models.schemas import (
    FeasibilityBilan, LandValueRequest, ProjectScenario, ZoningEnvelope,
)

logger = logging.getLogger(__name__)


@dataclass
class FeasibilityInputs:
    terrain_area_m2: float
    zoning: ZoningEnvelope
    project: ProjectScenario
    profile: Optional[ResolvedProfile] = None
    land_value: Optional[LandValueRequest] = None
    # Comparable sales for the market mode. None with comparables_failed
    # False means the source was not queried.
    comparable_sales: Optional[list[ComparableSale]] = None
    comparables_prefix: Optional[str] = None
    comparables_failed: bool = False


@dataclass
class FeasibilityResult:
    envelope: BuildableEnvelope
    profile: ResolvedProfile
    costs: RevenueCostResult
    residual_value: float
    market: Optional[MarketEstimate]
    land_value: LandValueResolution
    bilan: FeasibilityBilan


class FeasibilityEngine:
    """Computes the buildable envelope and the developer's bilan."""

    def __init__(self, defaults: EngineDefaults = ENGINE_DEFAULTS):
        self.defaults = defaults

    def envelope(
        self,
        terrain_area_m2: float,
        zoning: ZoningEnvelope | None,
        project: ProjectScenario | None = None,
    ) -> BuildableEnvelope:
        return compute_buildable_envelope(terrain_area_m2, zoning, project, self.defaults)

    def market_estimate(self, inputs: FeasibilityInputs) -> Optional[MarketEstimate]:
        if not requires_comparables(inputs.land_value):
            return None
        if inputs.comparables_failed:
            return unavailable_estimate(inputs.comparables_prefix, self.defaults)
        if inputs.comparable_sales is None:
            return None
        return estimate_market_value(
            inputs.comparable_sales,
            inputs.terrain_area_m2,
            area_prefix=inputs.comparables_prefix,
            defaults=self.defaults,
        )

    def compute(self, inputs: FeasibilityInputs) -> FeasibilityResult:
        envelope = self.envelope(inputs.terrain_area_m2, inputs.zoning, inputs.project)
        profile = inputs.profile or resolve_financing_profile(None)

        costs = compute_revenue_and_costs(envelope.floor_area_by_use, profile.profile)
        residual = residual_land_value(
            costs.total_revenue, profile.target_margin_ratio, costs.cost_excluding_land,
        )

        market = self.market_estimate(inputs)
        resolution = resolve_land_value(inputs.land_value, residual, market)
        if resolution.fallback:
            logger.info(
                "Market land value unresolved (%s), using residual %.0f",
                resolution.fallback_reason, residual,
            )

        declared = inputs.land_value.declared_value if inputs.land_value else None
        bilan = aggregate_bilan(
            costs,
            resolution,
            residual_value=residual,
            target_margin_ratio=profile.target_margin_ratio,
            terrain_area_m2=inputs.terrain_area_m2,
            declared_value=declared,
            market=market,
            defaults=self.defaults,
        )

        return FeasibilityResult(
            envelope=envelope,
            profile=profile,
            costs=costs,
            residual_value=residual,
            market=market,
            land_value=resolution,
            bilan=bilan,
        )
