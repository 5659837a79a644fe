"""File operation utilities for safe filename handling and path management."""

from __future__ import annotations

import unicodedata
from pathlib import Path
from typing import Optional


def safe_filename(name: str, default: str = 'file', max_length: Optional[int] = None) -> str:
    """Create a safe filename from a user-provided name.

    Accents are folded to plain ASCII, then only alphanumeric characters,
    spaces, underscores and hyphens are kept. Spaces become underscores.

    Args:
        name: The original filename or name to sanitize
        default: Default name to use if sanitization results in empty string
        max_length: Optional maximum length for the filename (truncates if provided)

    Returns:
        Sanitized filename safe for use in file systems

    Example:
        >>> safe_filename("Família Souza!")
        'Familia_Souza'
        >>> safe_filename("", default="allocation")
        'allocation'
    """
    if not name:
        return default

    folded = unicodedata.normalize('NFKD', name).encode('ascii', 'ignore').decode('ascii')
    cleaned = ''.join(c for c in folded if c.isalnum() or c in {' ', '_', '-'})
    cleaned = cleaned.strip().replace(' ', '_')

    while '__' in cleaned:
        cleaned = cleaned.replace('__', '_')

    if max_length is not None and len(cleaned) > max_length:
        cleaned = cleaned[:max_length]

    cleaned = cleaned.rstrip('_')

    return cleaned if cleaned else default


def ensure_directory(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary.

    Returns:
        The path object (for chaining)

    Raises:
        OSError: If the directory cannot be created
    """
    path.mkdir(parents=True, exist_ok=True)
    return path
