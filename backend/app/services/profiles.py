"""Financing profile lookup by code."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.financing_profile import FinancingProfileRecord


async def fetch_financing_profile_params(
    session: AsyncSession, code: str,
) -> Optional[dict]:
    """Stored parameters of an active profile, or None when unknown."""
    stmt = (
        select(FinancingProfileRecord.params)
        .where(FinancingProfileRecord.code == code)
        .where(FinancingProfileRecord.is_active.is_(True))
        .limit(1)
    )
    params = (await session.execute(stmt)).scalars().first()
    if params is None:
        return None
    return dict(params)
