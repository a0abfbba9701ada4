"""
Market-comparable land value from bare-land sales.

Records come from the transaction source already restricted to pure land
sales in the parcel's department. Each record yields a €/m² ratio; ratios
outside the sanity band are dropped, and the median of the survivors is
applied to the subject terrain area. Below the minimum sample size the
method is unresolved and the caller falls back to the residual value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from app.feasibility.defaults import ENGINE_DEFAULTS, EngineDefaults
from app.feasibility.rounding import round_area
from app.models.schemas import MarketSampleMeta

REASON_OK = "ok"
REASON_NOT_ENOUGH_SAMPLES = "not_enough_samples"
REASON_SOURCE_ERROR = "source_error"


@dataclass(frozen=True)
class ComparableSale:
    price: float
    terrain_area_m2: float


@dataclass
class MarketEstimate:
    resolved: bool
    reason: str
    value: Optional[float] = None
    median_price_per_m2: Optional[float] = None
    sample_count: int = 0
    records_received: int = 0
    area_prefix: Optional[str] = None
    min_samples: int = ENGINE_DEFAULTS.comparables_min_samples

    def to_schema(self) -> MarketSampleMeta:
        return MarketSampleMeta(
            area_prefix=self.area_prefix,
            reason=self.reason,
            sample_count=self.sample_count,
            records_received=self.records_received,
            median_price_per_m2=(
                round_area(self.median_price_per_m2)
                if self.median_price_per_m2 is not None else None
            ),
            min_samples=self.min_samples,
        )


def department_prefix(commune_code: str) -> str:
    """Administrative-area prefix used to query comparables.

    Overseas communes (97x, 98x) use a three-character department code.
    """
    code = commune_code.strip()
    if code.startswith(("97", "98")):
        return code[:3]
    return code[:2]


def median(values: Iterable[float]) -> float:
    """Median with even-count interpolation. Raises ValueError when empty."""
    ordered = sorted(values)
    if not ordered:
        raise ValueError("median() of an empty sample")
    mid = len(ordered) // 2
    if len(ordered) % 2 == 1:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def is_usable_sale(sale: ComparableSale, defaults: EngineDefaults = ENGINE_DEFAULTS) -> bool:
    return (
        sale.price is not None
        and sale.terrain_area_m2 is not None
        and sale.price > 0
        and 0 < sale.terrain_area_m2 <= defaults.comparables_max_terrain_m2
    )


def price_per_m2_ratios(
    sales: Iterable[ComparableSale],
    defaults: EngineDefaults = ENGINE_DEFAULTS,
) -> list[float]:
    """€/m² for each usable sale, keeping only those inside the sanity band."""
    ratios: list[float] = []
    for sale in sales:
        if not is_usable_sale(sale, defaults):
            continue
        ratio = sale.price / sale.terrain_area_m2
        if defaults.comparables_min_price_per_m2 <= ratio <= defaults.comparables_max_price_per_m2:
            ratios.append(ratio)
    return ratios


def estimate_market_value(
    sales: list[ComparableSale],
    terrain_area_m2: float,
    area_prefix: Optional[str] = None,
    defaults: EngineDefaults = ENGINE_DEFAULTS,
) -> MarketEstimate:
    ratios = price_per_m2_ratios(sales, defaults)

    if len(ratios) < defaults.comparables_min_samples:
        return MarketEstimate(
            resolved=False,
            reason=REASON_NOT_ENOUGH_SAMPLES,
            sample_count=len(ratios),
            records_received=len(sales),
            area_prefix=area_prefix,
            min_samples=defaults.comparables_min_samples,
        )

    med = median(ratios)
    return MarketEstimate(
        resolved=True,
        reason=REASON_OK,
        value=med * terrain_area_m2,
        median_price_per_m2=med,
        sample_count=len(ratios),
        records_received=len(sales),
        area_prefix=area_prefix,
        min_samples=defaults.comparables_min_samples,
    )


def unavailable_estimate(
    area_prefix: Optional[str] = None,
    defaults: EngineDefaults = ENGINE_DEFAULTS,
) -> MarketEstimate:
    """Estimate for a transaction source that could not be queried."""
    return MarketEstimate(
        resolved=False,
        reason=REASON_SOURCE_ERROR,
        area_prefix=area_prefix,
        min_samples=defaults.comparables_min_samples,
    )
