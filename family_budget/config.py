"""Configuration management for the family budget engine.

This module centralizes paths and environment variable overrides. Budget
reference data (bands, prefixes, base percentages) lives as JSON under
``pages/config`` and is loaded through :mod:`family_budget.pages.config`.
"""

from __future__ import annotations

import os
from pathlib import Path

# Base project root - assumes this file is in family_budget/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("FAMILY_BUDGET_DATA_DIR", _PROJECT_ROOT / "data"))
ALLOCATIONS_DIR = DATA_DIR / "allocations"

# Reference data (catalog + base percentage table)
CATALOG_DIR = Path(
    os.getenv("FAMILY_BUDGET_CATALOG_DIR", Path(__file__).parent / "pages" / "config")
).resolve()


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, ALLOCATIONS_DIR]:
        directory.mkdir(parents=True, exist_ok=True)


def get_catalog_dir() -> Path:
    """Return the catalog directory, honouring a late environment override."""
    override = os.getenv("FAMILY_BUDGET_CATALOG_DIR")
    return Path(override).resolve() if override else CATALOG_DIR
