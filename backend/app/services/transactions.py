"""
Comparable bare-land sales for the market land-value method.

The query keeps pure land sales only: a "Vente" mutation with no local
type and no built surface, a declared terrain area in (0, 5000] m² and a
positive price. Results are cached per department prefix.
"""

from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.feasibility.comparables import ComparableSale
from app.feasibility.defaults import ENGINE_DEFAULTS
from app.models.land_transaction import LandTransaction
from app.services.cache import get_cached_comparables, set_cached_comparables

logger = logging.getLogger(__name__)

SALE_MUTATION = "Vente"


def comparable_sales_query(area_prefix: str, limit: int = ENGINE_DEFAULTS.comparables_query_limit):
    return (
        select(LandTransaction.property_price, LandTransaction.terrain_area_m2)
        .where(LandTransaction.commune_code.like(f"{area_prefix}%"))
        .where(LandTransaction.mutation_nature == SALE_MUTATION)
        .where(LandTransaction.local_type.is_(None))
        .where(or_(LandTransaction.built_area_m2.is_(None), LandTransaction.built_area_m2 == 0))
        .where(LandTransaction.terrain_area_m2 > 0)
        .where(LandTransaction.terrain_area_m2 <= ENGINE_DEFAULTS.comparables_max_terrain_m2)
        .where(LandTransaction.property_price > 0)
        .limit(limit)
    )


async def fetch_comparable_land_sales(
    session: AsyncSession,
    area_prefix: str,
) -> list[ComparableSale]:
    cached = await get_cached_comparables(area_prefix)
    if cached is not None:
        return [ComparableSale(price=p, terrain_area_m2=a) for p, a in cached]

    rows = (await session.execute(comparable_sales_query(area_prefix))).all()
    sales = [
        ComparableSale(price=float(price), terrain_area_m2=float(area))
        for price, area in rows
        if price is not None and area is not None
    ]
    logger.debug("Fetched %d comparable land sales for prefix %s", len(sales), area_prefix)

    await set_cached_comparables(
        area_prefix, [[s.price, s.terrain_area_m2] for s in sales],
    )
    return sales
