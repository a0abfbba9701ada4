from __future__ import annotations

from app.feasibility.engine import FeasibilityEngine, FeasibilityInputs

__all__ = ["FeasibilityEngine", "FeasibilityInputs"]
