"""Allocation storage and file I/O operations.

This module is the persistence collaborator for confirmed allocations: one
JSON file per household, holding the items, their subcategories and whether
the proposal was accepted as-is or adjusted by hand.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from ..common.file_operations import safe_filename, ensure_directory
from ....config import ALLOCATIONS_DIR, ensure_data_directories
from .models import Allocation

logger = logging.getLogger(__name__)

STORAGE_VERSION = 1


class AllocationStorage:
    """Handles allocation file storage operations."""

    def __init__(self, allocations_dir: Optional[Path] = None):
        """Initialize allocation storage.

        Args:
            allocations_dir: Optional custom directory for allocation files.
                        Defaults to ALLOCATIONS_DIR from config.
        """
        if allocations_dir is None:
            ensure_data_directories()
        self.allocations_dir = allocations_dir or ALLOCATIONS_DIR
        ensure_directory(self.allocations_dir)

    def get_path(self, name: str) -> Path:
        """Get the file path for a household allocation by name."""
        return self.allocations_dir / f"{safe_filename(name, default='allocation')}.json"

    def load(self, name: str) -> Optional[Dict[str, Any]]:
        """Load one saved allocation.

        Returns:
            Dictionary with ``allocation`` (:class:`Allocation`), ``adjusted``,
            ``saved_at`` and ``version``; None if nothing is stored
        """
        return self._read(self.get_path(name))

    def load_all(self) -> Dict[str, Dict[str, Any]]:
        """Load all saved allocations from disk.

        Note:
            Files with invalid or missing data are skipped with a warning.
        """
        allocations: Dict[str, Dict[str, Any]] = {}

        if not self.allocations_dir.exists():
            return allocations

        for allocation_file in sorted(self.allocations_dir.glob('*.json')):
            entry = self._read(allocation_file)
            if entry is not None:
                allocations[entry['name']] = entry
        return allocations

    def save(self, name: str, allocation: Allocation, adjusted: bool) -> Path:
        """Save a confirmed allocation to disk.

        Args:
            name: Household name
            allocation: Final allocation
            adjusted: False when the generated proposal was accepted as-is

        Returns:
            Path of the written file

        Raises:
            ValueError: If the name is empty
            OSError: If file cannot be written
        """
        if not name or not name.strip():
            raise ValueError("Allocation name cannot be empty")

        if not adjusted:
            allocation = allocation.mark_all_unedited()

        payload = {
            'name': name.strip(),
            'adjusted': bool(adjusted),
            'allocation': allocation.to_dict(),
            'saved_at': datetime.now(timezone.utc).isoformat(),
            'version': STORAGE_VERSION,
        }

        target = self.get_path(name)
        ensure_directory(target.parent)

        try:
            with target.open('w', encoding='utf-8') as handle:
                json.dump(payload, handle, indent=2, sort_keys=True, ensure_ascii=False)
        except OSError as e:
            raise OSError(f"Failed to save allocation to {target}: {e}") from e
        logger.info("Saved allocation '%s' (%d lines, adjusted=%s)", name.strip(), len(allocation.items), adjusted)
        return target

    def delete(self, name: str) -> None:
        """Delete an allocation file; missing files are ignored.

        Raises:
            ValueError: If the name is empty
            OSError: If file cannot be deleted
        """
        if not name or not name.strip():
            raise ValueError("Allocation name cannot be empty")

        target = self.get_path(name)

        if not target.exists():
            return

        try:
            target.unlink()
        except OSError as e:
            raise OSError(f"Failed to delete allocation file {target}: {e}") from e

    def _read(self, path: Path) -> Optional[Dict[str, Any]]:
        if not path.exists():
            return None
        try:
            with path.open('r', encoding='utf-8') as handle:
                data = json.load(handle)
            if not isinstance(data, dict) or not isinstance(data.get('allocation'), dict):
                logger.warning("Skipping allocation file %s: unexpected layout", path.name)
                return None
            return {
                'name': data.get('name') or path.stem,
                'allocation': Allocation.from_dict(data['allocation']),
                'adjusted': bool(data.get('adjusted', False)),
                'saved_at': data.get('saved_at'),
                'version': data.get('version', STORAGE_VERSION),
            }
        except (json.JSONDecodeError, OSError, KeyError, ValueError, TypeError) as e:
            logger.warning("Could not load allocation '%s': %s", path.stem, e)
            return None


# Convenience functions using the default storage location

_default_storage: Optional[AllocationStorage] = None


def _storage() -> AllocationStorage:
    global _default_storage
    if _default_storage is None:
        _default_storage = AllocationStorage()
    return _default_storage


def get_allocation_path(name: str) -> Path:
    return _storage().get_path(name)


def load_saved_allocations() -> Dict[str, Dict[str, Any]]:
    """Load all saved allocations from the default data directory."""
    return _storage().load_all()


def save_allocation(name: str, allocation: Allocation, adjusted: bool) -> Path:
    """Save an allocation to the default data directory.

    Raises:
        ValueError: If the name is empty
        OSError: If file cannot be written
    """
    return _storage().save(name, allocation, adjusted)


def delete_allocation(name: str) -> None:
    _storage().delete(name)
