"""Common utilities shared across all page files.

This module provides formatting and file operation helpers that are used by
the budget library and the Streamlit pages.
"""

from .formatting import format_currency, format_percent
from .file_operations import ensure_directory, safe_filename

__all__ = [
    'format_currency',
    'format_percent',
    'ensure_directory',
    'safe_filename',
]
