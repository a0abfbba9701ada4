"""
Engine constants and the built-in financing profile.

Every conservative default the engine falls back to lives here so the
values are asserted directly by tests and tuned in one place.

The target margin is deliberately a single value: it is both the default
profile margin and the reference of the appreciation bands (the band
threshold follows the *resolved* profile margin).
"""

from __future__ import annotations

from dataclasses import dataclass

from app.models.schemas import FeeRatios, FinancingProfile, PerUseRates


@dataclass(frozen=True)
class EngineDefaults:
    # ── Envelope ──
    footprint_ratio: float = 0.6      # share of terrain when the zone sets no ratio
    max_height_m: float = 15.0        # height when the zone sets no limit
    floor_height_m: float = 3.0
    efficiency_ratio: float = 0.85    # usable / gross per level (circulation, structure)

    # ── Margin ──
    target_margin_ratio: float = 0.12
    very_comfortable_spread: float = 0.05
    tight_spread: float = 0.03

    # ── Market comparables ──
    comparables_max_terrain_m2: float = 5000.0
    comparables_min_price_per_m2: float = 50.0
    comparables_max_price_per_m2: float = 20000.0
    comparables_min_samples: int = 30
    comparables_query_limit: int = 1000


ENGINE_DEFAULTS = EngineDefaults()

DEFAULT_PROFILE_CODE = "DEFAULT"

# €/m² of floor area, fee ratios as fractions
DEFAULT_FINANCING_PROFILE = FinancingProfile(
    sale_prices=PerUseRates(residential=7000, commercial=8000, office=7500),
    construction_costs=PerUseRates(residential=2300, commercial=2200, office=2400),
    fees=FeeRatios(
        honoraria=0.05,
        design=0.02,
        commercial=0.03,
        financing=0.04,
        tax=0.03,
    ),
    target_margin_ratio=ENGINE_DEFAULTS.target_margin_ratio,
)
