from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from app.database import get_session_factory
from app.feasibility.defaults import DEFAULT_FINANCING_PROFILE, ENGINE_DEFAULTS
from app.feasibility.engine import FeasibilityEngine
from app.feasibility.exceptions import InvalidFeasibilityRequest, ZoningNotFound
from app.models.schemas import (
    BuildableEnvelopeResult, EnvelopeRequest, FeasibilityRequest, FeasibilityResponse,
    FinancingProfile,
)
from app.services.feasibility import DatabaseLookups, FeasibilityLookups, run_feasibility

router = APIRouter(prefix="/api/v1", tags=["feasibility"])
engine = FeasibilityEngine()


def get_lookups() -> FeasibilityLookups:
    return DatabaseLookups(get_session_factory())


@router.post("/feasibility", response_model=FeasibilityResponse)
async def compute_feasibility(
    request: FeasibilityRequest,
    lookups: FeasibilityLookups = Depends(get_lookups),
):
    """Buildable envelope and developer bilan for a parcel."""
    try:
        return await run_feasibility(request, lookups, engine)
    except InvalidFeasibilityRequest as e:
        raise HTTPException(status_code=400, detail={"error": str(e), **e.details})
    except ZoningNotFound as e:
        raise HTTPException(
            status_code=404,
            detail={
                "error": str(e),
                "commune_code": e.commune_code,
                "zone_code": e.zone_code,
                "parcel_id": e.parcel_id,
            },
        )
    except Exception:
        # Already logged with parcel / zone / mode context
        raise HTTPException(status_code=500, detail="Internal feasibility error")


@router.post("/envelope", response_model=BuildableEnvelopeResult)
async def compute_envelope(request: EnvelopeRequest):
    """Buildable envelope only, from a supplied terrain area and ruleset."""
    try:
        result = engine.envelope(request.terrain_area_m2, request.envelope, request.project)
    except InvalidFeasibilityRequest as e:
        raise HTTPException(status_code=400, detail={"error": str(e), **e.details})
    return result.to_schema()


@router.get("/financing-profiles/default", response_model=FinancingProfile)
async def default_financing_profile():
    return DEFAULT_FINANCING_PROFILE


@router.get("/engine-defaults")
async def engine_defaults():
    """Conservative constants applied when a zoning field is unknown."""
    return asdict(ENGINE_DEFAULTS)
