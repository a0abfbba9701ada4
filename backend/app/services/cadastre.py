"""
Terrain area lookup by cadastral parcel id.

Sources (in order of priority):
  1. Redis cache
  2. cadastre_parcels table (stored area, then `contenance` in props)
  3. IGN API Carto cadastre endpoint (when settings.cadastre_api_enabled)

Parcel ids follow the national 14-character format:
  commune INSEE (5) + absorbed-commune prefix (3) + section (2) + number (4)
  e.g. "64024000AB0123"
"""

from __future__ import annotations

import logging
import re
from typing import Optional

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.cadastre_parcel import CadastreParcel
from app.services.cache import get_cached_terrain_area, set_cached_terrain_area

logger = logging.getLogger(__name__)

_PARCEL_ID_RE = re.compile(r"^(\d[\dAB]\d{3})(\d{3})([0-9A-Z]{2})(\d{4})$")

_AREA_KEYS = ("terrain_area_m2", "contenance", "surface_m2", "surface", "superficie")


def parse_parcel_id(parcel_id: str) -> dict | None:
    """Split a 14-character parcel id into its cadastral parts."""
    cleaned = parcel_id.strip().upper().replace(" ", "")
    match = _PARCEL_ID_RE.match(cleaned)
    if not match:
        return None
    code_insee, com_abs, section, numero = match.groups()
    return {
        "code_insee": code_insee,
        "com_abs": com_abs,
        "section": section,
        "numero": numero,
    }


def area_from_props(props: Optional[dict]) -> Optional[float]:
    """First positive area found among the usual cadastral property names."""
    if not props:
        return None
    for key in _AREA_KEYS:
        val = props.get(key)
        if val is None:
            continue
        try:
            area = float(val)
        except (ValueError, TypeError):
            continue
        if area > 0:
            return area
    return None


async def _terrain_area_from_db(session: AsyncSession, parcel_id: str) -> Optional[float]:
    stmt = select(CadastreParcel).where(CadastreParcel.id == parcel_id).limit(1)
    record = (await session.execute(stmt)).scalars().first()
    if record is None:
        return None
    if record.terrain_area_m2 and record.terrain_area_m2 > 0:
        return float(record.terrain_area_m2)
    return area_from_props(record.props)


async def fetch_terrain_area_from_api(parcel_id: str) -> Optional[float]:
    """Query IGN API Carto for the parcel's declared area (contenance)."""
    parts = parse_parcel_id(parcel_id)
    if not parts:
        logger.info("Parcel id %s is not a cadastral id, skipping API Carto", parcel_id)
        return None

    params = {
        "code_insee": parts["code_insee"],
        "section": parts["section"],
        "numero": parts["numero"],
    }
    if parts["com_abs"] != "000":
        params["com_abs"] = parts["com_abs"]

    try:
        async with httpx.AsyncClient(timeout=settings.cadastre_api_timeout) as client:
            resp = await client.get(settings.cadastre_api_url, params=params)
            resp.raise_for_status()
            data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("API Carto lookup failed for %s: %s", parcel_id, exc)
        return None

    for feature in data.get("features") or []:
        area = area_from_props(feature.get("properties"))
        if area:
            return area
    return None


async def fetch_terrain_area(session: AsyncSession, parcel_id: str) -> Optional[float]:
    """Resolve a parcel's terrain area in m², or None when no source knows it."""
    cached = await get_cached_terrain_area(parcel_id)
    if cached:
        return cached

    area = await _terrain_area_from_db(session, parcel_id)
    if area is None and settings.cadastre_api_enabled:
        area = await fetch_terrain_area_from_api(parcel_id)

    if area is not None:
        await set_cached_terrain_area(parcel_id, area)
    return area
