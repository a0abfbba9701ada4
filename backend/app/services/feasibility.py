"""
Feasibility orchestration: collaborator lookups around the pure engine.

Steps:
  1. Terrain area (request, else cadastre lookup) and zoning ruleset
     (manual envelope, else stored ruleset of the zone, else of the zone
     recorded for the parcel). Both are required.
  2. Financing profile by code and, for the market mode only, comparable
     land sales, issued concurrently. Both are optional: a failure degrades
     to the default profile / residual fallback and is logged.
  3. Engine computation and response assembly.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Optional, Protocol

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.feasibility.comparables import ComparableSale, department_prefix
from app.feasibility.engine import FeasibilityEngine, FeasibilityInputs
from app.feasibility.exceptions import InvalidFeasibilityRequest, ZoningNotFound
from app.feasibility.land_value import requires_comparables
from app.feasibility.profiles import resolve_financing_profile
from app.models.schemas import (
    FeasibilityRequest, FeasibilityResponse, FinancingRequest, LandValueRequest,
    ZoningEnvelope,
)
from app.services.cadastre import fetch_terrain_area
from app.services.profiles import fetch_financing_profile_params
from app.services.transactions import fetch_comparable_land_sales
from app.services.zoning_rules import fetch_zoning_for_parcel, fetch_zoning_ruleset

logger = logging.getLogger(__name__)

VERSION = "feasibility-v1"

# Lookup failures that degrade an optional collaborator instead of failing
DEGRADABLE_ERRORS = (SQLAlchemyError, httpx.HTTPError, OSError, asyncio.TimeoutError)


class FeasibilityLookups(Protocol):
    async def terrain_area(self, parcel_id: str) -> Optional[float]: ...

    async def zoning_ruleset(
        self, commune_code: str, zone_code: str,
    ) -> tuple[Optional[ZoningEnvelope], Optional[dict]]: ...

    async def zoning_for_parcel(
        self, parcel_id: str,
    ) -> tuple[Optional[ZoningEnvelope], Optional[dict]]: ...

    async def financing_profile(self, code: str) -> Optional[dict]: ...

    async def comparable_sales(self, area_prefix: str) -> list[ComparableSale]: ...


class DatabaseLookups:
    """Lookups backed by the platform database; one session per lookup."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def terrain_area(self, parcel_id: str) -> Optional[float]:
        async with self._session_factory() as session:
            return await fetch_terrain_area(session, parcel_id)

    async def zoning_ruleset(self, commune_code: str, zone_code: str):
        async with self._session_factory() as session:
            return await fetch_zoning_ruleset(session, commune_code, zone_code)

    async def zoning_for_parcel(self, parcel_id: str):
        async with self._session_factory() as session:
            return await fetch_zoning_for_parcel(session, parcel_id)

    async def financing_profile(self, code: str) -> Optional[dict]:
        async with self._session_factory() as session:
            return await fetch_financing_profile_params(session, code)

    async def comparable_sales(self, area_prefix: str) -> list[ComparableSale]:
        async with self._session_factory() as session:
            return await fetch_comparable_land_sales(session, area_prefix)


# ──────────────────────────────────────────────────────────────────
# REQUIRED INPUTS
# ──────────────────────────────────────────────────────────────────

async def resolve_terrain_area(
    request: FeasibilityRequest, lookups: FeasibilityLookups,
) -> tuple[float, str]:
    """Return (terrain area, "request" | "lookup")."""
    parcel = request.parcel
    if parcel.terrain_area_m2 is not None:
        area, source = parcel.terrain_area_m2, "request"
    else:
        area, source = await lookups.terrain_area(parcel.id), "lookup"

    if area is None:
        raise InvalidFeasibilityRequest(
            "Unable to determine the terrain area: provide terrain_area_m2 or a "
            "parcel id known to the cadastre.",
            details={"parcel_id": parcel.id},
        )
    if not math.isfinite(area) or area <= 0:
        raise InvalidFeasibilityRequest(
            "Terrain area must be a positive, finite number of m².",
            details={"parcel_id": parcel.id, "terrain_area_m2": str(area)},
        )
    return area, source


async def _override_provenance(
    request: FeasibilityRequest, lookups: FeasibilityLookups,
) -> dict:
    """Source of a manual envelope: stored ruleset metadata, then the caller's."""
    zoning = request.zoning
    stored: Optional[dict] = None
    if zoning.zone_code:
        try:
            _, stored = await lookups.zoning_ruleset(zoning.commune_code, zoning.zone_code)
        except DEGRADABLE_ERRORS as exc:
            logger.warning(
                "Ruleset metadata lookup failed for %s/%s: %s",
                zoning.commune_code, zoning.zone_code, exc,
            )

    source: dict = {}
    if stored:
        source.update(stored)
        source["ruleset_source_type"] = stored.get("source_type")
    source["source_type"] = "override"
    source.update(zoning.source or {})
    return source


async def resolve_zoning(
    request: FeasibilityRequest, lookups: FeasibilityLookups,
) -> tuple[ZoningEnvelope, Optional[dict]]:
    """Manual envelope, else the zone's stored ruleset, else the parcel's zone."""
    zoning = request.zoning
    if zoning.envelope is not None:
        return zoning.envelope, await _override_provenance(request, lookups)

    if zoning.zone_code:
        envelope, source = await lookups.zoning_ruleset(zoning.commune_code, zoning.zone_code)
    else:
        envelope, source = await lookups.zoning_for_parcel(request.parcel.id)

    if envelope is None:
        raise ZoningNotFound(zoning.commune_code, zoning.zone_code, request.parcel.id)
    return envelope, source


# ──────────────────────────────────────────────────────────────────
# OPTIONAL LOOKUPS
# ──────────────────────────────────────────────────────────────────

async def _lookup_profile(lookups: FeasibilityLookups, code: Optional[str]) -> Optional[dict]:
    if not code:
        return None
    try:
        return await lookups.financing_profile(code)
    except DEGRADABLE_ERRORS as exc:
        logger.warning("Financing profile lookup failed for %s, using defaults: %s", code, exc)
        return None


async def _lookup_comparables(
    lookups: FeasibilityLookups, area_prefix: str,
) -> tuple[Optional[list[ComparableSale]], bool]:
    """Return (sales, failed)."""
    try:
        return await lookups.comparable_sales(area_prefix), False
    except DEGRADABLE_ERRORS as exc:
        logger.warning("Comparable sales lookup failed for %s: %s", area_prefix, exc)
        return None, True


async def _skip_comparables() -> tuple[Optional[list[ComparableSale]], bool]:
    return None, False


# ──────────────────────────────────────────────────────────────────
# ENTRY POINT
# ──────────────────────────────────────────────────────────────────

async def run_feasibility(
    request: FeasibilityRequest,
    lookups: FeasibilityLookups,
    engine: Optional[FeasibilityEngine] = None,
) -> FeasibilityResponse:
    engine = engine or FeasibilityEngine()
    financing = request.financing or FinancingRequest()
    land_request = request.land_value or LandValueRequest()

    try:
        (terrain_area, area_source), (zoning, zoning_source) = await asyncio.gather(
            resolve_terrain_area(request, lookups),
            resolve_zoning(request, lookups),
        )

        area_prefix = department_prefix(request.zoning.commune_code)
        comparables = (
            _lookup_comparables(lookups, area_prefix)
            if requires_comparables(land_request)
            else _skip_comparables()
        )
        stored_params, (sales, sales_failed) = await asyncio.gather(
            _lookup_profile(lookups, financing.profile_id),
            comparables,
        )

        profile = resolve_financing_profile(
            financing.profile_id, stored_params, financing.overrides,
        )
        result = engine.compute(FeasibilityInputs(
            terrain_area_m2=terrain_area,
            zoning=zoning,
            project=request.project,
            profile=profile,
            land_value=land_request,
            comparable_sales=sales,
            comparables_prefix=area_prefix,
            comparables_failed=sales_failed,
        ))
    except (InvalidFeasibilityRequest, ZoningNotFound):
        raise
    except Exception:
        logger.exception(
            "Feasibility computation failed (parcel=%s, zone=%s/%s, land_value_mode=%s)",
            request.parcel.id,
            request.zoning.commune_code,
            request.zoning.zone_code,
            land_request.mode.value,
        )
        raise

    return FeasibilityResponse(
        version=VERSION,
        inputs=request,
        terrain_area_source=area_source,
        zoning_source=zoning_source,
        zoning_envelope=zoning,
        envelope=result.envelope.to_schema(),
        financing_profile=result.profile.to_schema(),
        bilan=result.bilan,
    )
