from __future__ import annotations

from sqlalchemy import Column, Date, Float, Integer, String

from app.database import Base


class LandTransaction(Base):
    """One line of the land-registry sales feed (DVF)."""
    __tablename__ = "land_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    mutation_date = Column(Date, nullable=True)
    mutation_nature = Column(String(64), index=True)  # "Vente", "Echange", ...
    commune_code = Column(String(5), index=True)
    property_price = Column(Float, nullable=True)
    local_type = Column(String(64), nullable=True)  # NULL for bare land
    built_area_m2 = Column(Float, nullable=True)
    terrain_area_m2 = Column(Float, nullable=True)
