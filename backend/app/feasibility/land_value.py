"""
Land value resolution.

Modes:
  declared  the caller's figure, as-is
  residual  revenue × (1 − target margin) − non-land cost
  market    median €/m² of comparable bare-land sales × terrain area
  none      no land cost

Resolution is a two-state machine, RESOLVING → RESOLVED{mode}. A market
request whose sample is too small (or whose source failed) moves through
an explicit fallback transition to RESOLVED{residual}; `mode_used` is
"market" only when the market estimate actually resolved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from app.feasibility.comparables import MarketEstimate
from app.feasibility.exceptions import LandValueTransitionError
from app.models.schemas import LandValueMode, LandValueRequest

REASON_NOT_QUERIED = "not_queried"


class LandValueState(str, Enum):
    RESOLVING = "resolving"
    RESOLVED = "resolved"


def residual_land_value(
    total_revenue: float,
    target_margin_ratio: float,
    cost_excluding_land: float,
) -> float:
    """Land price implied by the target margin. May be negative."""
    return total_revenue * (1 - target_margin_ratio) - cost_excluding_land


def requires_comparables(request: Optional[LandValueRequest]) -> bool:
    """Only the market mode consults the transaction source."""
    return request is not None and request.mode == LandValueMode.MARKET


@dataclass
class LandValueResolution:
    mode_requested: LandValueMode
    state: LandValueState = LandValueState.RESOLVING
    mode_used: Optional[LandValueMode] = None
    value: Optional[float] = None
    fallback: bool = False
    fallback_reason: Optional[str] = None
    transitions: list[str] = field(default_factory=list)

    def resolve(self, mode: LandValueMode, value: float) -> None:
        if self.state == LandValueState.RESOLVED:
            raise LandValueTransitionError(
                f"Land value already resolved as {self.mode_used.value}"
            )
        if mode != self.mode_requested and not (
            self.fallback and mode == LandValueMode.RESIDUAL
        ):
            raise LandValueTransitionError(
                f"Cannot resolve {self.mode_requested.value} request as {mode.value}"
            )
        self.state = LandValueState.RESOLVED
        self.mode_used = mode
        self.value = value
        self.transitions.append(f"resolving -> resolved[{mode.value}]")

    def fall_back_to_residual(self, residual_value: float, reason: str) -> None:
        if self.mode_requested != LandValueMode.MARKET:
            raise LandValueTransitionError(
                f"Only market requests fall back, got {self.mode_requested.value}"
            )
        self.fallback = True
        self.fallback_reason = reason
        self.transitions.append(f"resolving[market] -> fallback[residual] ({reason})")
        self.resolve(LandValueMode.RESIDUAL, residual_value)

    @property
    def land_cost(self) -> float:
        """Amount booked in the cost stack. A negative residual books nothing."""
        if self.state != LandValueState.RESOLVED:
            raise LandValueTransitionError("Land value is not resolved yet")
        if self.mode_used == LandValueMode.RESIDUAL:
            return max(self.value, 0.0)
        return self.value


def resolve_land_value(
    request: Optional[LandValueRequest],
    residual_value: float,
    market: Optional[MarketEstimate] = None,
) -> LandValueResolution:
    request = request or LandValueRequest()
    resolution = LandValueResolution(mode_requested=request.mode)

    if request.mode == LandValueMode.NONE:
        resolution.resolve(LandValueMode.NONE, 0.0)
    elif request.mode == LandValueMode.DECLARED:
        resolution.resolve(LandValueMode.DECLARED, request.declared_value)
    elif request.mode == LandValueMode.RESIDUAL:
        resolution.resolve(LandValueMode.RESIDUAL, residual_value)
    elif market is not None and market.resolved:
        resolution.resolve(LandValueMode.MARKET, market.value)
    else:
        reason = market.reason if market is not None else REASON_NOT_QUERIED
        resolution.fall_back_to_residual(residual_value, reason)

    return resolution
