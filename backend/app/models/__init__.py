from __future__ import annotations

from app.models.cadastre_parcel import CadastreParcel
from app.models.financing_profile import FinancingProfileRecord
from app.models.land_transaction import LandTransaction
from app.models.zoning_ruleset import ZoningRuleset

__all__ = ["CadastreParcel", "FinancingProfileRecord", "LandTransaction", "ZoningRuleset"]
