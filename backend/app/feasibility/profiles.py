"""
Financing profile resolution and override merging.

A profile is resolved by code (or defaulted), then the caller's overrides
are deep-merged onto it:

  - composite sections (sale_prices, construction_costs, fees) merge
    field by field,
  - leaves take the override's value,
  - fields the override does not set keep the resolved value.

Overrides are typed (`FinancingOverrides` forbids unknown keys), so a
misspelled field is a validation error rather than a silent no-op.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from pydantic import BaseModel, ValidationError

from app.feasibility.defaults import DEFAULT_FINANCING_PROFILE, DEFAULT_PROFILE_CODE
from app.models.schemas import FinancingOverrides, FinancingProfile, ResolvedProfileInfo

logger = logging.getLogger(__name__)


@dataclass
class ResolvedProfile:
    code: str
    source: str  # "lookup" | "default"
    profile: FinancingProfile
    requested_code: Optional[str] = None
    overrides_applied: bool = False

    @property
    def target_margin_ratio(self) -> float:
        return self.profile.target_margin_ratio

    def to_schema(self) -> ResolvedProfileInfo:
        return ResolvedProfileInfo(
            code=self.code,
            source=self.source,
            requested_code=self.requested_code,
            overrides_applied=self.overrides_applied,
            params=self.profile,
        )


def _merge_model(base: BaseModel, override: BaseModel) -> dict:
    merged = base.model_dump()
    for name in override.model_fields_set:
        value = getattr(override, name)
        if value is None:
            continue
        current = getattr(base, name)
        if isinstance(current, BaseModel) and isinstance(value, BaseModel):
            merged[name] = _merge_model(current, value)
        else:
            merged[name] = value
    return merged


def merge_profile(
    base: FinancingProfile,
    overrides: Union[FinancingOverrides, dict, None],
) -> FinancingProfile:
    """Deep-merge overrides onto a profile and return a new profile.

    Raises pydantic.ValidationError when a dict override names an unknown
    field or carries an out-of-range value.
    """
    if overrides is None:
        return base
    if isinstance(overrides, dict):
        overrides = FinancingOverrides.model_validate(overrides)
    return FinancingProfile.model_validate(_merge_model(base, overrides))


def profile_from_params(params: dict) -> FinancingProfile:
    """Build a profile from stored parameters, completing gaps from the defaults."""
    return merge_profile(DEFAULT_FINANCING_PROFILE, FinancingOverrides.model_validate(params))


def resolve_financing_profile(
    requested_code: Optional[str],
    stored_params: Optional[dict] = None,
    overrides: Union[FinancingOverrides, dict, None] = None,
) -> ResolvedProfile:
    """Resolve the profile to use for a computation.

    `stored_params` is what the profile-by-code lookup returned (None on a
    miss). A miss, or stored parameters that do not validate, falls back
    to the built-in defaults; this is never an error.
    """
    base = DEFAULT_FINANCING_PROFILE
    code = requested_code or DEFAULT_PROFILE_CODE
    source = "default"

    if requested_code and stored_params is not None:
        try:
            base = profile_from_params(stored_params)
            source = "lookup"
        except ValidationError as exc:
            logger.warning(
                "Stored financing profile %s is invalid, using defaults: %s",
                requested_code, exc,
            )
    elif requested_code:
        logger.info("Financing profile %s not found, using defaults", requested_code)

    return ResolvedProfile(
        code=code,
        source=source,
        profile=merge_profile(base, overrides),
        requested_code=requested_code,
        overrides_applied=overrides is not None,
    )
