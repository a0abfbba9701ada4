"""Domain errors raised by the feasibility engine and its lookups."""

from __future__ import annotations


class InvalidFeasibilityRequest(ValueError):
    """The request cannot be computed (e.g. no positive terrain area)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ZoningNotFound(LookupError):
    """No zoning ruleset for the zone and no manual envelope supplied."""

    def __init__(
        self,
        commune_code: str,
        zone_code: str | None,
        parcel_id: str | None = None,
    ):
        if zone_code is None:
            where = f"parcel {parcel_id} (no zone recorded or no ruleset for its zone)"
        else:
            where = f"commune {commune_code} / zone {zone_code}"
        super().__init__(
            f"No zoning ruleset found for {where} and no manual envelope supplied."
        )
        self.commune_code = commune_code
        self.zone_code = zone_code
        self.parcel_id = parcel_id


class LandValueTransitionError(RuntimeError):
    """Illegal move in the land-value resolution state machine."""
