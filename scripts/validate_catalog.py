#!/usr/bin/env python3
"""Validator for the budget reference data (catalog + base percentages).

Loads the JSON tables, runs the structural checks done at catalog load time
and then generates a proposal for every band, sub-band, mode and planning
level combination to make sure each one sums to 100%.
"""

from __future__ import annotations

import itertools
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from family_budget.pages.lib.budgets.catalog import SUB_BAND_POSITIONS, Catalog, reload_catalog
from family_budget.pages.lib.budgets.errors import CatalogError
from family_budget.pages.lib.budgets.pipeline import OnboardingProfile, build_proposal


def check_generation(catalog: Catalog) -> Tuple[List[str], List[str]]:
    """Generate every profile combination.

    Returns:
        (problems, notes); clamped buffers are notes, not failures
    """
    problems = []
    notes = []
    combos = itertools.product(
        catalog.bands,
        SUB_BAND_POSITIONS,
        catalog.modes,
        catalog.planning_levels,
        (False, True),
        (False, True),
    )
    for band, position, mode, level, has_pets, has_dependents in combos:
        profile = OnboardingProfile(
            income_band_id=band.id,
            sub_band_position=position,
            has_pets=has_pets,
            has_dependents=has_dependents,
            budget_mode=mode.id,
            non_monthly_planning_level=level.id,
            income_anchor=band.sub_band(position).midpoint,
        )
        label = f"{band.id}/{position}/{mode.id}/{level.id}/pets={has_pets}/deps={has_dependents}"
        proposal = build_proposal(profile, catalog=catalog)
        total = proposal.allocation.total_percentage
        if abs(total - 100.0) > catalog.constants.sum_epsilon_percent:
            problems.append(f"{label}: total {total:.4f}%")
        if proposal.was_clamped:
            notes.append(f"{label}: IF clamped at the generation floor")
    return problems, notes


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if args:
        os.environ["FAMILY_BUDGET_CATALOG_DIR"] = str(Path(args[0]).resolve())

    try:
        catalog = reload_catalog()
    except (CatalogError, FileNotFoundError, ValueError) as exc:
        print(f"Catalog validation failed: {exc}")
        return 1

    problems, notes = check_generation(catalog)
    for message in notes:
        print(f"  note: {message}")
    if problems:
        print("Catalog generation check failed:")
        for message in problems:
            print(f"  - {message}")
        return 1

    print(f"Catalog v{catalog.version} validated successfully ({len(catalog.bands)} bands).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
