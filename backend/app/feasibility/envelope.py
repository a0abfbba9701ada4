"""
Buildable envelope: footprint, level count and usable floor area.

The zoning ruleset of a zone is turned into a concrete volume on a given
terrain:

  footprint   = min(cap, terrain × ratio)          ratio defaults to 0.6
  levels      = max(1, floor(height / 3 m))        height defaults to 15 m
  level area  = footprint × 0.85                   efficiency deduction
  floor area  = level area × levels

The project scenario only decides how that total is reported across
levels; it never changes the total.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from app.feasibility.defaults import ENGINE_DEFAULTS, EngineDefaults
from app.feasibility.exceptions import InvalidFeasibilityRequest
from app.feasibility.rounding import round_area
from app.models.schemas import (
    BuildableEnvelopeResult, EnvelopeAssumptions, LevelAllocation,
    ProjectScenario, ScenarioTag, UseType, ZoningEnvelope,
)


@dataclass
class BuildableEnvelope:
    """Unrounded envelope figures; `to_schema` applies response rounding."""
    terrain_area_m2: float
    footprint_ratio: float
    footprint_ratio_defaulted: bool
    footprint_m2: float
    max_height_m: float
    height_defaulted: bool
    floor_height_m: float
    efficiency_ratio: float
    levels: int
    level_area_m2: float
    total_floor_area_m2: float
    floor_area_by_use: dict[str, float] = field(default_factory=dict)
    distribution: list[dict] = field(default_factory=list)
    zoning: ZoningEnvelope = field(default_factory=ZoningEnvelope)
    project: ProjectScenario = field(default_factory=ProjectScenario)

    def to_schema(self) -> BuildableEnvelopeResult:
        return BuildableEnvelopeResult(
            terrain_area_m2=round_area(self.terrain_area_m2),
            footprint_m2=round_area(self.footprint_m2),
            levels=self.levels,
            level_area_m2=round_area(self.level_area_m2),
            total_floor_area_m2=round_area(self.total_floor_area_m2),
            floor_area_by_use={
                use: round_area(area) for use, area in self.floor_area_by_use.items()
            },
            distribution=[
                LevelAllocation(
                    label=row["label"], levels=row["levels"],
                    use=row["use"], area_m2=round_area(row["area_m2"]),
                )
                for row in self.distribution
            ],
            setbacks=self.zoning.setbacks,
            max_height_m=self.max_height_m,
            assumptions=EnvelopeAssumptions(
                footprint_ratio=self.footprint_ratio,
                footprint_ratio_defaulted=self.footprint_ratio_defaulted,
                max_height_m=self.max_height_m,
                height_defaulted=self.height_defaulted,
                floor_height_m=self.floor_height_m,
                efficiency_ratio=self.efficiency_ratio,
                scenario=self.project.scenario.value,
            ),
        )


# ──────────────────────────────────────────────────────────────────
# USE ALLOCATION
# ──────────────────────────────────────────────────────────────────

def level_uses(use: UseType) -> tuple[str, str]:
    """Return (ground level use, upper levels use) for a dominant use."""
    if use == UseType.MIXED:
        return UseType.COMMERCIAL.value, UseType.RESIDENTIAL.value
    return use.value, use.value


def split_floor_area_by_use(
    use: UseType, levels: int, level_area_m2: float,
) -> dict[str, float]:
    """Floor area per use. Mixed projects put the ground level in commercial."""
    ground_use, upper_use = level_uses(use)
    split: dict[str, float] = {}
    split[ground_use] = split.get(ground_use, 0.0) + level_area_m2
    if levels > 1:
        split[upper_use] = split.get(upper_use, 0.0) + level_area_m2 * (levels - 1)
    return split


def distribute_levels(
    scenario: ScenarioTag, use: UseType, levels: int, level_area_m2: float,
) -> list[dict]:
    """Per-level reporting rows. The sum always equals the total floor area."""
    ground_use, upper_use = level_uses(use)

    if scenario == ScenarioTag.PER_LEVEL:
        return [
            {
                "label": f"level_{i}",
                "levels": 1,
                "use": ground_use if i == 0 else upper_use,
                "area_m2": level_area_m2,
            }
            for i in range(levels)
        ]

    rows = [{"label": "ground", "levels": 1, "use": ground_use, "area_m2": level_area_m2}]
    if levels > 1:
        rows.append({
            "label": "upper",
            "levels": levels - 1,
            "use": upper_use,
            "area_m2": level_area_m2 * (levels - 1),
        })
    return rows


# ──────────────────────────────────────────────────────────────────
# ENVELOPE
# ──────────────────────────────────────────────────────────────────

def compute_footprint(
    terrain_area_m2: float,
    ratio: float,
    cap_m2: float | None = None,
) -> float:
    """Footprint from a ratio of terrain, bounded by an optional absolute cap."""
    footprint = terrain_area_m2 * ratio
    if cap_m2 is not None:
        footprint = min(cap_m2, footprint)
    return max(0.0, min(footprint, terrain_area_m2))


def compute_levels(max_height_m: float, floor_height_m: float) -> int:
    """Whole levels that fit under the height limit, never fewer than one."""
    return max(1, math.floor(max_height_m / floor_height_m))


def compute_buildable_envelope(
    terrain_area_m2: float,
    zoning: ZoningEnvelope | None,
    project: ProjectScenario | None = None,
    defaults: EngineDefaults = ENGINE_DEFAULTS,
) -> BuildableEnvelope:
    """Turn a zoning ruleset and a terrain area into a buildable volume.

    Raises InvalidFeasibilityRequest when the terrain area is not a positive,
    finite number.
    """
    if (
        terrain_area_m2 is None
        or not math.isfinite(terrain_area_m2)
        or terrain_area_m2 <= 0
    ):
        raise InvalidFeasibilityRequest(
            "Terrain area must be a positive, finite number of m².",
            details={"terrain_area_m2": str(terrain_area_m2)},
        )

    zoning = zoning or ZoningEnvelope()
    project = project or ProjectScenario()

    ratio = zoning.footprint.max_ratio
    ratio_defaulted = ratio is None
    if ratio_defaulted:
        ratio = defaults.footprint_ratio

    footprint = compute_footprint(terrain_area_m2, ratio, zoning.footprint.max_m2)

    height = zoning.height.max_m
    height_defaulted = height is None
    if height_defaulted:
        height = defaults.max_height_m

    levels = compute_levels(height, defaults.floor_height_m)
    level_area = footprint * defaults.efficiency_ratio
    total = level_area * levels

    return BuildableEnvelope(
        terrain_area_m2=terrain_area_m2,
        footprint_ratio=ratio,
        footprint_ratio_defaulted=ratio_defaulted,
        footprint_m2=footprint,
        max_height_m=height,
        height_defaulted=height_defaulted,
        floor_height_m=defaults.floor_height_m,
        efficiency_ratio=defaults.efficiency_ratio,
        levels=levels,
        level_area_m2=level_area,
        total_floor_area_m2=total,
        floor_area_by_use=split_floor_area_by_use(project.use, levels, level_area),
        distribution=distribute_levels(project.scenario, project.use, levels, level_area),
        zoning=zoning,
        project=project,
    )
