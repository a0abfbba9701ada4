from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from app.database import Base


class FinancingProfileRecord(Base):
    __tablename__ = "financing_profiles"

    code = Column(String(64), primary_key=True)
    label = Column(Text, nullable=True)
    params = Column(JSONB, default={})
    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow)
