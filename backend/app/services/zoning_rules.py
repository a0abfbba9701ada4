"""
Zoning ruleset lookup by (commune, zone), or by parcel through the zone
recorded on the cadastre parcel.

Rulesets are stored as JSONB produced by the extraction pipeline. Only the
sections and fields the engine knows are read; anything else in the
stored document is ignored here (the document is free-form upstream).
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.cadastre_parcel import CadastreParcel
from app.models.schemas import ZoningEnvelope
from app.models.zoning_ruleset import ZoningRuleset
from app.services.cadastre import parse_parcel_id

logger = logging.getLogger(__name__)

# section -> fields read from a stored ruleset
RULESET_FIELDS: dict[str, tuple[str, ...]] = {
    "setbacks": ("street_m", "rear_m", "sides_m"),
    "footprint": ("max_ratio", "max_m2"),
    "height": ("max_m", "min_m", "comment"),
    "density": ("coefficient_exists", "max_floor_area_ratio"),
}


def parse_ruleset(raw: Optional[dict]) -> ZoningEnvelope:
    """Project a stored ruleset document onto the typed envelope."""
    raw = raw or {}
    data: dict[str, dict] = {}
    for section, fields in RULESET_FIELDS.items():
        values = raw.get(section) or {}
        if not isinstance(values, dict):
            logger.debug("Ruleset section %s is not an object, ignored", section)
            continue
        data[section] = {f: values[f] for f in fields if values.get(f) is not None}
    return ZoningEnvelope.model_validate(data)


def ruleset_source(record: ZoningRuleset) -> dict:
    return {
        "id": str(record.id),
        "commune_code": record.commune_code,
        "commune_name": record.commune_name,
        "zone_code": record.zone_code,
        "version_label": record.version_label,
        "source_type": record.source_type,
        "source_url": record.source_url,
        "source_page_range": record.source_page_range,
    }


async def fetch_zoning_ruleset(
    session: AsyncSession,
    commune_code: str,
    zone_code: str,
) -> tuple[Optional[ZoningEnvelope], Optional[dict]]:
    """Return (envelope, source metadata) for the active ruleset, or (None, None)."""
    stmt = (
        select(ZoningRuleset)
        .where(ZoningRuleset.commune_code == commune_code)
        .where(ZoningRuleset.zone_code == zone_code)
        .where(ZoningRuleset.is_active.is_(True))
        .limit(1)
    )
    record = (await session.execute(stmt)).scalars().first()
    if record is None:
        return None, None
    return parse_ruleset(record.ruleset), ruleset_source(record)


# ──────────────────────────────────────────────────────────────────
# ZONE BY PARCEL
# ──────────────────────────────────────────────────────────────────

_ZONE_PROP_KEYS = ("zone_code", "zone", "libelle")


def zone_from_parcel(record: CadastreParcel) -> Optional[str]:
    """Zone code stored on the parcel, else the first one found in its props."""
    if record.zone_code:
        return record.zone_code.strip()
    props = record.props or {}
    for key in _ZONE_PROP_KEYS:
        val = props.get(key)
        if isinstance(val, str) and val.strip():
            return val.strip()
    return None


async def fetch_parcel_zone(
    session: AsyncSession, parcel_id: str,
) -> tuple[Optional[str], Optional[str]]:
    """Return (commune code, zone code) recorded for a parcel."""
    stmt = select(CadastreParcel).where(CadastreParcel.id == parcel_id).limit(1)
    record = (await session.execute(stmt)).scalars().first()
    if record is None:
        return None, None

    commune_code = record.commune_code
    if not commune_code:
        parts = parse_parcel_id(parcel_id)
        commune_code = parts["code_insee"] if parts else None
    return commune_code, zone_from_parcel(record)


async def fetch_zoning_for_parcel(
    session: AsyncSession, parcel_id: str,
) -> tuple[Optional[ZoningEnvelope], Optional[dict]]:
    """Active ruleset of the zone a parcel lies in, or (None, None)."""
    commune_code, zone_code = await fetch_parcel_zone(session, parcel_id)
    if not commune_code or not zone_code:
        logger.info("No zone recorded for parcel %s", parcel_id)
        return None, None

    envelope, source = await fetch_zoning_ruleset(session, commune_code, zone_code)
    if envelope is None:
        return None, None
    source["resolved_from_parcel"] = parcel_id
    return envelope, source
