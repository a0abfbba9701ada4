from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID

from app.database import Base


class ZoningRuleset(Base):
    __tablename__ = "zoning_rulesets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    commune_code = Column(String(5), index=True, nullable=False)
    commune_name = Column(Text, nullable=True)
    zone_code = Column(String(20), index=True, nullable=False)
    version_label = Column(Text, nullable=True)
    source_type = Column(String(32), nullable=True)
    source_url = Column(Text, nullable=True)
    source_page_range = Column(String(32), nullable=True)
    ruleset = Column(JSONB, default={})
    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow)
