from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class UseType(str, Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    OFFICE = "office"
    MIXED = "mixed"


class ScenarioTag(str, Enum):
    GROUND_AND_UPPER = "ground_and_upper"
    PER_LEVEL = "per_level"


class LandValueMode(str, Enum):
    DECLARED = "declared"
    RESIDUAL = "residual"
    MARKET = "market"
    NONE = "none"


# ──────────────────────────────────────────────────────────────────
# ZONING ENVELOPE (binding rules for one zone)
# ──────────────────────────────────────────────────────────────────

class Setbacks(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    street_m: Optional[float] = Field(default=None, ge=0)
    rear_m: Optional[float] = Field(default=None, ge=0)
    sides_m: Optional[float] = Field(default=None, ge=0)


class FootprintRules(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    max_ratio: Optional[float] = Field(default=None, gt=0, le=1)
    max_m2: Optional[float] = Field(default=None, ge=0)


class HeightRules(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    max_m: Optional[float] = Field(default=None, gt=0)
    min_m: Optional[float] = Field(default=None, ge=0)
    comment: Optional[str] = None


class DensityRules(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    coefficient_exists: Optional[bool] = None
    max_floor_area_ratio: Optional[float] = Field(default=None, ge=0)


class ZoningEnvelope(BaseModel):
    """Zoning rules for a zone. Any field may be unknown."""
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    setbacks: Setbacks = Field(default_factory=Setbacks)
    footprint: FootprintRules = Field(default_factory=FootprintRules)
    height: HeightRules = Field(default_factory=HeightRules)
    density: DensityRules = Field(default_factory=DensityRules)


# ──────────────────────────────────────────────────────────────────
# FINANCING PROFILE
# ──────────────────────────────────────────────────────────────────

class PerUseRates(BaseModel):
    """€/m² for each use (sale price or construction cost)."""
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    residential: float = Field(ge=0)
    commercial: float = Field(ge=0)
    office: float = Field(ge=0)


class FeeRatios(BaseModel):
    """Honoraria and design apply to construction cost; the rest to revenue."""
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    honoraria: float = Field(ge=0, le=1)
    design: float = Field(ge=0, le=1)
    commercial: float = Field(ge=0, le=1)
    financing: float = Field(ge=0, le=1)
    tax: float = Field(ge=0, le=1)


class FinancingProfile(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    sale_prices: PerUseRates
    construction_costs: PerUseRates
    fees: FeeRatios
    target_margin_ratio: float = Field(ge=0, lt=1)


class PerUseRatesOverride(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    residential: Optional[float] = Field(default=None, ge=0)
    commercial: Optional[float] = Field(default=None, ge=0)
    office: Optional[float] = Field(default=None, ge=0)


class FeeRatiosOverride(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    honoraria: Optional[float] = Field(default=None, ge=0, le=1)
    design: Optional[float] = Field(default=None, ge=0, le=1)
    commercial: Optional[float] = Field(default=None, ge=0, le=1)
    financing: Optional[float] = Field(default=None, ge=0, le=1)
    tax: Optional[float] = Field(default=None, ge=0, le=1)


class FinancingOverrides(BaseModel):
    """Partial profile. Unknown keys are rejected so typos surface."""
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    sale_prices: Optional[PerUseRatesOverride] = None
    construction_costs: Optional[PerUseRatesOverride] = None
    fees: Optional[FeeRatiosOverride] = None
    target_margin_ratio: Optional[float] = Field(default=None, ge=0, lt=1)


# ──────────────────────────────────────────────────────────────────
# REQUEST
# ──────────────────────────────────────────────────────────────────

class ParcelInput(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    id: str = Field(min_length=1)
    terrain_area_m2: Optional[float] = None


class ZoningInput(BaseModel):
    commune_code: str = Field(min_length=2)
    zone_code: Optional[str] = Field(default=None, min_length=1)  # None: resolved from the parcel
    envelope: Optional[ZoningEnvelope] = None  # manual override of the stored ruleset
    source: Optional[dict] = None


class ProjectScenario(BaseModel):
    use: UseType = UseType.RESIDENTIAL
    scenario: ScenarioTag = ScenarioTag.GROUND_AND_UPPER


class FinancingRequest(BaseModel):
    profile_id: Optional[str] = None
    overrides: Optional[FinancingOverrides] = None


class LandValueRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    mode: LandValueMode = LandValueMode.NONE
    declared_value: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _declared_needs_value(self) -> "LandValueRequest":
        if self.mode == LandValueMode.DECLARED and self.declared_value is None:
            raise ValueError("declared_value is required when mode is 'declared'")
        return self


class FeasibilityRequest(BaseModel):
    parcel: ParcelInput
    zoning: ZoningInput
    project: ProjectScenario
    financing: Optional[FinancingRequest] = None
    land_value: Optional[LandValueRequest] = None


class EnvelopeRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    terrain_area_m2: float
    envelope: ZoningEnvelope = Field(default_factory=ZoningEnvelope)
    project: ProjectScenario = Field(default_factory=ProjectScenario)


# ──────────────────────────────────────────────────────────────────
# RESPONSE
# ──────────────────────────────────────────────────────────────────

class LevelAllocation(BaseModel):
    label: str  # "ground", "upper", "level_3", ...
    levels: int
    use: str
    area_m2: float


class EnvelopeAssumptions(BaseModel):
    footprint_ratio: float
    footprint_ratio_defaulted: bool
    max_height_m: float
    height_defaulted: bool
    floor_height_m: float
    efficiency_ratio: float
    scenario: str


class BuildableEnvelopeResult(BaseModel):
    terrain_area_m2: float
    footprint_m2: float
    levels: int
    level_area_m2: float
    total_floor_area_m2: float
    floor_area_by_use: dict[str, float] = {}
    distribution: list[LevelAllocation] = []
    setbacks: Setbacks
    max_height_m: float
    assumptions: EnvelopeAssumptions


class UseRevenue(BaseModel):
    area_m2: float
    price_per_m2: float
    revenue: float


class RevenueBreakdown(BaseModel):
    by_use: dict[str, UseRevenue] = {}
    total: float


class CostBreakdown(BaseModel):
    construction: float
    honoraria: float
    design: float
    commercial: float
    financing: float
    tax: float
    land: float
    total_excluding_land: float
    total: float


class MarginResult(BaseModel):
    amount: float
    ratio: Optional[float] = None
    target_ratio: float
    band: str


class MarketSampleMeta(BaseModel):
    source: str = "land_transactions"
    area_prefix: Optional[str] = None
    reason: str  # ok | not_enough_samples | source_error | not_queried
    sample_count: int = 0
    records_received: int = 0
    median_price_per_m2: Optional[float] = None
    min_samples: int


class LandValuePerM2(BaseModel):
    residual: Optional[float] = None
    used: Optional[float] = None


class LandValueDetail(BaseModel):
    mode_requested: LandValueMode
    mode_used: LandValueMode
    fallback: bool = False
    fallback_reason: Optional[str] = None
    value_used: float
    declared_value: Optional[float] = None
    residual_value: float
    market_value: Optional[float] = None
    per_m2_floor_area: LandValuePerM2
    per_m2_terrain: LandValuePerM2
    delta_declared_vs_residual: Optional[float] = None
    delta_declared_vs_residual_pct: Optional[float] = None
    delta_market_vs_residual: Optional[float] = None
    delta_market_vs_residual_pct: Optional[float] = None
    market_sample: Optional[MarketSampleMeta] = None
    transitions: list[str] = []
    message: Optional[str] = None


class FeasibilityBilan(BaseModel):
    revenue: RevenueBreakdown
    costs: CostBreakdown
    margin: MarginResult
    land_value: LandValueDetail


class ResolvedProfileInfo(BaseModel):
    code: str
    source: str  # lookup | default
    requested_code: Optional[str] = None
    overrides_applied: bool = False
    params: FinancingProfile


class FeasibilityResponse(BaseModel):
    version: str
    inputs: FeasibilityRequest
    terrain_area_source: str  # request | lookup
    zoning_source: Optional[dict] = None
    zoning_envelope: ZoningEnvelope
    envelope: BuildableEnvelopeResult
    financing_profile: ResolvedProfileInfo
    bilan: FeasibilityBilan
