#!/usr/bin/env python3
"""
Run sample feasibility scenarios and print the bilan for manual review.

Can be run against the live API or by importing the engine directly. In
direct mode nothing is looked up: every scenario carries its terrain area
and a manual zoning envelope, and the market mode falls back to residual.

Usage:
    # Against live API:
    python3 scripts/run_scenarios.py --api http://localhost:8000

    # Direct import (no server, no database):
    python3 scripts/run_scenarios.py
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from datetime import datetime

# Add backend to path for direct import mode
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.join(os.path.dirname(SCRIPT_DIR), "backend")
sys.path.insert(0, BACKEND_DIR)

# ──────────────────────────────────────────────────────────────────
# SCENARIOS
# ──────────────────────────────────────────────────────────────────

REFERENCE_ZONING = {
    "commune_code": "64024",
    "zone_code": "UB",
    "envelope": {"footprint": {"max_ratio": 0.6}, "height": {"max_m": 15}},
}

REFERENCE_FINANCING = {
    "overrides": {
        "sale_prices": {"residential": 6000},
        "construction_costs": {"residential": 2500},
    },
}

SCENARIOS = [
    {
        "name": "Reference parcel, residual land value",
        "request": {
            "parcel": {"id": "64024000AB0123", "terrain_area_m2": 500},
            "zoning": REFERENCE_ZONING,
            "project": {"use": "residential"},
            "financing": REFERENCE_FINANCING,
            "land_value": {"mode": "residual"},
        },
        "verify": [
            "1275 m² floor area",
            "Margin ratio 0.12, band comfortable",
        ],
    },
    {
        "name": "Reference parcel, declared land price above residual",
        "request": {
            "parcel": {"id": "64024000AB0123", "terrain_area_m2": 500},
            "zoning": REFERENCE_ZONING,
            "project": {"use": "residential"},
            "financing": REFERENCE_FINANCING,
            "land_value": {"mode": "declared", "declared_value": 3_000_000},
        },
        "verify": [
            "Delta vs residual +443 625 (+17.4%)",
            "Band low",
        ],
    },
    {
        "name": "Reference parcel, market land value",
        "request": {
            "parcel": {"id": "64024000AB0123", "terrain_area_m2": 500},
            "zoning": REFERENCE_ZONING,
            "project": {"use": "residential"},
            "financing": REFERENCE_FINANCING,
            "land_value": {"mode": "market"},
        },
        "verify": [
            "Direct mode: fallback to residual is reported",
            "API mode: market value if 30+ comparable sales in department 64",
        ],
    },
    {
        "name": "Mixed use, unknown zoning rules",
        "request": {
            "parcel": {"id": "33063000KL0045", "terrain_area_m2": 820},
            "zoning": {"commune_code": "33063", "zone_code": "UM", "envelope": {}},
            "project": {"use": "mixed", "scenario": "per_level"},
            "land_value": {"mode": "none"},
        },
        "verify": [
            "Default footprint ratio and height flagged",
            "Ground level commercial, upper levels residential",
        ],
    },
]


# ──────────────────────────────────────────────────────────────────
# DIRECT ENGINE MODE (no server needed)
# ──────────────────────────────────────────────────────────────────

class OfflineLookups:
    """Every collaborator answers "not found"."""

    async def terrain_area(self, parcel_id):
        return None

    async def zoning_ruleset(self, commune_code, zone_code):
        return None, None

    async def zoning_for_parcel(self, parcel_id):
        return None, None

    async def financing_profile(self, code):
        return None

    async def comparable_sales(self, area_prefix):
        return []


async def run_direct(request: dict) -> dict:
    from app.models.schemas import FeasibilityRequest
    from app.services.feasibility import run_feasibility

    response = await run_feasibility(
        FeasibilityRequest.model_validate(request), OfflineLookups(),
    )
    return response.model_dump(mode="json")


# ──────────────────────────────────────────────────────────────────
# API MODE
# ──────────────────────────────────────────────────────────────────

async def run_api(request: dict, base_url: str) -> dict:
    import httpx

    async with httpx.AsyncClient(timeout=60) as client:
        resp = await client.post(f"{base_url}/api/v1/feasibility", json=request)
        if resp.status_code != 200:
            return {"error": f"HTTP {resp.status_code}: {resp.text[:300]}"}
        return resp.json()


# ──────────────────────────────────────────────────────────────────
# OUTPUT
# ──────────────────────────────────────────────────────────────────

def format_result(scenario: dict, result: dict) -> str:
    lines = [f"\n{'=' * 70}", f"  {scenario['name']}", f"{'=' * 70}"]

    if "error" in result:
        lines.append(f"  ERROR: {result['error']}")
        return "\n".join(lines)

    env = result["envelope"]
    assumptions = env["assumptions"]
    lines.append(f"  Terrain:   {env['terrain_area_m2']:,.0f} m²")
    lines.append(
        f"  Footprint: {env['footprint_m2']:,.0f} m² "
        f"(ratio {assumptions['footprint_ratio']}"
        f"{', default' if assumptions['footprint_ratio_defaulted'] else ''})"
    )
    lines.append(
        f"  Levels:    {env['levels']} × {env['level_area_m2']:,.0f} m² "
        f"= {env['total_floor_area_m2']:,.0f} m²"
    )
    for row in env["distribution"]:
        lines.append(f"    {row['label']:<10} {row['use']:<12} {row['area_m2']:,.0f} m²")

    bilan = result["bilan"]
    costs = bilan["costs"]
    margin = bilan["margin"]
    land = bilan["land_value"]
    lines.append(f"\n  Revenue:   {bilan['revenue']['total']:,.0f} €")
    lines.append(f"  Non-land:  {costs['total_excluding_land']:,.0f} €")
    lines.append(f"  Land:      {costs['land']:,.0f} € ({land['mode_used']})")
    if land["fallback"]:
        lines.append(f"    fallback from {land['mode_requested']}: {land['fallback_reason']}")
    lines.append(f"  Residual:  {land['residual_value']:,.0f} €")
    if land["delta_declared_vs_residual"] is not None:
        pct = land["delta_declared_vs_residual_pct"]
        lines.append(
            f"  Declared vs residual: {land['delta_declared_vs_residual']:+,.0f} €"
            + (f" ({pct:+.1f}%)" if pct is not None else "")
        )
    ratio = margin["ratio"]
    lines.append(
        f"  Margin:    {margin['amount']:,.0f} € "
        f"({ratio:.2%} vs target {margin['target_ratio']:.0%}) → {margin['band']}"
        if ratio is not None else
        f"  Margin:    {margin['amount']:,.0f} € → {margin['band']}"
    )

    lines.append("\n  VERIFY:")
    for v in scenario.get("verify", []):
        lines.append(f"    [ ] {v}")

    return "\n".join(lines)


# ──────────────────────────────────────────────────────────────────
# MAIN
# ──────────────────────────────────────────────────────────────────

async def main():
    parser = argparse.ArgumentParser(description="Run sample feasibility scenarios")
    parser.add_argument("--api", default=None, help="API base URL (e.g., http://localhost:8000)")
    parser.add_argument("--scenarios", nargs="*", type=int, help="Run specific scenarios (1-indexed)")
    args = parser.parse_args()

    print("\nDevelopment Feasibility Scenarios")
    print(f"Date: {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    print(f"Mode: {'API' if args.api else 'Direct Import'}")
    if args.api:
        print(f"API:  {args.api}")

    to_run = SCENARIOS
    if args.scenarios:
        to_run = [SCENARIOS[i - 1] for i in args.scenarios if 1 <= i <= len(SCENARIOS)]

    results = []
    for i, scenario in enumerate(to_run, 1):
        print(f"\n>>> Running scenario {i}/{len(to_run)}: {scenario['name']}...")
        try:
            if args.api:
                result = await run_api(scenario["request"], args.api)
            else:
                result = await run_direct(scenario["request"])
            print(format_result(scenario, result))
            results.append({"name": scenario["name"], "status": "ok"})
        except Exception as e:
            print(f"\n  FAILED: {e}")
            import traceback
            traceback.print_exc()
            results.append({"name": scenario["name"], "status": "error", "error": str(e)})

    print(f"\n{'=' * 70}")
    print("SUMMARY")
    print(f"{'=' * 70}")
    ok = sum(1 for r in results if r["status"] == "ok")
    print(f"  Passed: {ok}/{len(results)}")
    for r in results:
        if r["status"] == "error":
            print(f"    - {r['name']}: {r.get('error', 'unknown')}")
    print()


if __name__ == "__main__":
    asyncio.run(main())
