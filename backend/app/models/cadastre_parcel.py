from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, String
from sqlalchemy.dialects.postgresql import JSONB

from app.database import Base


class CadastreParcel(Base):
    __tablename__ = "cadastre_parcels"

    id = Column(String(14), primary_key=True)  # e.g. 64024000AB0123
    commune_code = Column(String(5), index=True)
    zone_code = Column(String(20), nullable=True)  # zoning zone the parcel lies in
    terrain_area_m2 = Column(Float, nullable=True)
    props = Column(JSONB, default={})
    last_updated = Column(DateTime, default=datetime.utcnow)
