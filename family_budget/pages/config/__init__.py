"""Reference data files and loaders.

Income bands, budget line prefixes, sub-band adjustments, budget modes and
the base percentage table are stored as JSON files in this directory so the
numbers can be reviewed and versioned without touching the engine code.
"""

from .defaults import (
    load_config,
    get_catalog_config,
    get_base_percentages_config,
    get_config_value,
)

__all__ = [
    'load_config',
    'get_catalog_config',
    'get_base_percentages_config',
    'get_config_value',
]
