"""
Revenue and non-land cost stack for a floor-area split.

Fee bases are fixed: honoraria and design apply to construction cost;
commercial, financing and tax fees apply to total revenue.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from app.feasibility.rounding import round_area, round_money
from app.models.schemas import FinancingProfile, RevenueBreakdown, UseRevenue


@dataclass
class RevenueCostResult:
    floor_area_m2: float
    revenue_by_use: dict[str, float] = field(default_factory=dict)
    area_by_use: dict[str, float] = field(default_factory=dict)
    price_by_use: dict[str, float] = field(default_factory=dict)
    total_revenue: float = 0.0
    construction_by_use: dict[str, float] = field(default_factory=dict)
    construction_total: float = 0.0
    honoraria: float = 0.0
    design: float = 0.0
    commercial_fees: float = 0.0
    financing_fees: float = 0.0
    tax: float = 0.0

    @property
    def fees_total(self) -> float:
        return (
            self.honoraria + self.design
            + self.commercial_fees + self.financing_fees + self.tax
        )

    @property
    def cost_excluding_land(self) -> float:
        return self.construction_total + self.fees_total

    def revenue_schema(self) -> RevenueBreakdown:
        return RevenueBreakdown(
            by_use={
                use: UseRevenue(
                    area_m2=round_area(self.area_by_use[use]),
                    price_per_m2=round_money(self.price_by_use[use]),
                    revenue=round_money(self.revenue_by_use[use]),
                )
                for use in self.revenue_by_use
            },
            total=round_money(self.total_revenue),
        )


def compute_revenue_and_costs(
    area_by_use: dict[str, float],
    profile: FinancingProfile,
) -> RevenueCostResult:
    """Pure revenue/cost model; safe to re-run for what-if comparisons."""
    prices = profile.sale_prices.model_dump()
    costs = profile.construction_costs.model_dump()

    result = RevenueCostResult(floor_area_m2=sum(max(a, 0.0) for a in area_by_use.values()))

    for use, area in area_by_use.items():
        if use not in prices:
            raise ValueError(f"Unknown use '{use}' in floor-area split")
        area = max(area, 0.0)
        result.area_by_use[use] = area
        result.price_by_use[use] = prices[use]
        result.revenue_by_use[use] = area * prices[use]
        result.construction_by_use[use] = area * costs[use]

    result.total_revenue = sum(result.revenue_by_use.values())
    result.construction_total = sum(result.construction_by_use.values())

    fees = profile.fees
    result.honoraria = result.construction_total * fees.honoraria
    result.design = result.construction_total * fees.design
    result.commercial_fees = result.total_revenue * fees.commercial
    result.financing_fees = result.total_revenue * fees.financing
    result.tax = result.total_revenue * fees.tax

    return result
