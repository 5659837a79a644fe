"""Configuration loader for the budget reference data."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from ...config import get_catalog_dir


def load_config(config_name: str, config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Load a configuration file by name.

    Args:
        config_name: Name of the config file (without .json extension)
        config_dir: Optional directory to read from. Defaults to the catalog
            directory from :mod:`family_budget.config`.

    Returns:
        Dictionary containing the configuration

    Raises:
        FileNotFoundError: If the configuration file doesn't exist
        json.JSONDecodeError: If the configuration file is invalid JSON

    Example:
        >>> config = load_config('catalog')
        >>> config['constants']['buffer_code']
        'IF'
    """
    config_path = (config_dir or get_catalog_dir()) / f"{config_name}.json"

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def get_catalog_config(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Get the catalog configuration (bands, prefixes, modes, constants)."""
    return load_config('catalog', config_dir)


def get_base_percentages_config(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Get the base percentage table keyed by income band id."""
    return load_config('base_percentages', config_dir)


def get_config_value(config_name: str, *keys: str, default: Any = None) -> Any:
    """Get a nested configuration value by key path.

    Args:
        config_name: Name of the config file
        *keys: Path to the nested value (e.g., 'constants', 'buffer_code')
        default: Default value if key path doesn't exist

    Returns:
        The configuration value at the specified path, or default if not found

    Example:
        >>> get_config_value('catalog', 'constants', 'max_category_percentage')
        50.0
    """
    try:
        config = load_config(config_name)
        value = config
        for key in keys:
            value = value[key]
        return value
    except (KeyError, FileNotFoundError):
        return default
