"""Income band catalog and base percentage table.

This module turns the JSON reference data in ``pages/config`` into typed,
read-only objects: income bands and their low/mid/high sub-bands, the
``PrefixConfig`` table describing every budget line, budget modes,
non-monthly planning levels, the fixed financial expense floors and the
base percentage table. The catalog is loaded once and cached.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ...config import get_base_percentages_config, get_catalog_config
from .errors import CatalogError


class PrefixCode(str, Enum):
    """Short identifier of a budget line."""

    C = 'C'
    A = 'A'
    T = 'T'
    VS = 'V & S'
    EF = 'E & F'
    L = 'L'
    RE = 'R & E'
    F = 'F'
    PET = 'PET'
    DF = 'DF'
    DIV = 'DIV'
    E = 'E'
    IF = 'IF'
    R = 'R'
    DESC = 'DESC'
    PGTO = 'PGTO'
    CA = 'CA'
    OBJ = 'OBJ'

    def __str__(self) -> str:
        return self.value


BUFFER_CODE = PrefixCode.IF
SUB_BAND_POSITIONS = ('low', 'mid', 'high')
CONDITIONS = ('has_pets', 'has_dependents')

PercentageMap = Dict[PrefixCode, float]


def to_prefix_code(value: Any) -> PrefixCode:
    """Coerce a string (or code) to :class:`PrefixCode`."""
    if isinstance(value, PrefixCode):
        return value
    try:
        return PrefixCode(str(value))
    except ValueError as exc:
        raise CatalogError(f"Unknown prefix code: {value!r}") from exc


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SubBand:
    id: str
    band_id: str
    label: str
    position: str
    lower: float
    upper: Optional[float]
    midpoint: float

    def contains(self, income: float) -> bool:
        above_lower = income > self.lower or (self.lower == 0 and income >= 0)
        return above_lower and (self.upper is None or income <= self.upper)


@dataclass(frozen=True)
class IncomeBand:
    id: str
    label: str
    lower: float
    upper: Optional[float]
    sub_bands: Tuple[SubBand, ...]

    def sub_band(self, position: str) -> SubBand:
        for sub_band in self.sub_bands:
            if sub_band.position == position:
                return sub_band
        raise CatalogError(f"Band '{self.id}' has no '{position}' sub-band")


@dataclass(frozen=True)
class PrefixConfig:
    code: PrefixCode
    name: str
    category_id: str
    is_budgetable: bool
    conditional_on: Optional[str] = None
    default_subcategory_weights: Mapping[str, float] = field(default_factory=dict)

    def is_active(self, has_pets: bool, has_dependents: bool) -> bool:
        if not self.is_budgetable:
            return False
        if self.conditional_on == 'has_pets' and not has_pets:
            return False
        if self.conditional_on == 'has_dependents' and not has_dependents:
            return False
        return True


@dataclass(frozen=True)
class BudgetMode:
    id: str
    label: str
    description: str
    multipliers: Mapping[PrefixCode, float]
    redistribution_priority: Tuple[PrefixCode, ...]


@dataclass(frozen=True)
class PlanningLevel:
    id: str
    label: str
    shift_to_e: float


@dataclass(frozen=True)
class EngineConstants:
    sum_tolerance_percent: float = 0.5
    sum_epsilon_percent: float = 1e-3
    internal_epsilon: float = 1e-6
    max_category_percentage: float = 50.0
    generation_buffer_floor: float = 0.0001
    min_planning_buffer: float = 0.01
    subcategory_tolerance: float = 1.0
    buffer_exhausted_percentage: float = 0.1
    buffer_warning_percentage: float = 3.0
    buffer_healthy_percentage: float = 8.0


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class Catalog:
    """Read-only view over the budget reference data."""

    def __init__(self, raw: Dict[str, Any], base_percentages: Dict[str, Any]) -> None:
        self.version = raw.get('version', 1)
        self.currency = raw.get('currency', '')
        self.constants = self._parse_constants(raw.get('constants') or {})
        self.bands: Tuple[IncomeBand, ...] = tuple(
            self._parse_band(entry) for entry in raw.get('income_bands', [])
        )
        self.prefixes: Tuple[PrefixConfig, ...] = tuple(
            self._parse_prefix(entry) for entry in raw.get('prefixes', [])
        )
        self.sub_band_adjustments: Dict[str, PercentageMap] = {
            position: self._parse_code_map(raw.get('sub_band_adjustments', {}).get(position) or {})
            for position in SUB_BAND_POSITIONS
        }
        self.modes: Tuple[BudgetMode, ...] = tuple(
            self._parse_mode(entry) for entry in raw.get('budget_modes', [])
        )
        self.planning_levels: Tuple[PlanningLevel, ...] = tuple(
            PlanningLevel(
                id=entry['id'],
                label=entry.get('label', entry['id']),
                shift_to_e=float(entry.get('shift_to_e', 0.0)),
            )
            for entry in raw.get('non_monthly_planning_levels', [])
        )
        self.fixed_financial_expenses: Dict[str, float] = {
            band_id: float(amount)
            for band_id, amount in (raw.get('fixed_financial_expenses') or {}).items()
        }
        self.base_percentages: Dict[str, PercentageMap] = {
            band_id: self._parse_code_map(table)
            for band_id, table in base_percentages.items()
        }
        self._validate()

    # Public API -------------------------------------------------------------

    def get_band(self, band_id: str) -> IncomeBand:
        for band in self.bands:
            if band.id == band_id:
                return band
        raise CatalogError(f"Unknown income band: {band_id!r}")

    def get_sub_band(self, band_id: str, position: str) -> SubBand:
        return self.get_band(band_id).sub_band(position)

    def find_band_for_income(self, income: float) -> Tuple[IncomeBand, SubBand]:
        if income < 0:
            raise CatalogError(f"Income cannot be negative: {income}")
        for band in self.bands:
            for sub_band in band.sub_bands:
                if sub_band.contains(income):
                    return band, sub_band
        raise CatalogError(f"No income band covers {income}")

    def get_prefix_config(self, code: Any) -> PrefixConfig:
        code = to_prefix_code(code)
        for prefix in self.prefixes:
            if prefix.code is code:
                return prefix
        raise CatalogError(f"Prefix '{code}' is not configured")

    def budgetable_prefixes(
        self, has_pets: bool = True, has_dependents: bool = True
    ) -> List[PrefixConfig]:
        return [p for p in self.prefixes if p.is_active(has_pets, has_dependents)]

    def budgetable_codes(self) -> List[PrefixCode]:
        return [p.code for p in self.prefixes if p.is_budgetable]

    def get_budget_mode(self, mode_id: str) -> BudgetMode:
        for mode in self.modes:
            if mode.id == mode_id:
                return mode
        raise CatalogError(f"Unknown budget mode: {mode_id!r}")

    def get_planning_level(self, level_id: str) -> PlanningLevel:
        for level in self.planning_levels:
            if level.id == level_id:
                return level
        raise CatalogError(f"Unknown non-monthly planning level: {level_id!r}")

    def fixed_financial_expense(self, band_id: str) -> float:
        self.get_band(band_id)
        return self.fixed_financial_expenses.get(band_id, 0.0)

    def base_percentages_for(self, band_id: str) -> PercentageMap:
        self.get_band(band_id)
        try:
            return self.complete(self.base_percentages[band_id])
        except KeyError as exc:
            raise CatalogError(f"No base percentages for band {band_id!r}") from exc

    def complete(self, mapping: Mapping[Any, float]) -> PercentageMap:
        """Return a map covering every budgetable code, missing keys as 0.0."""
        budgetable = self.budgetable_codes()
        result: PercentageMap = {code: 0.0 for code in budgetable}
        for key, value in mapping.items():
            code = to_prefix_code(key)
            if code not in result:
                raise CatalogError(f"Prefix '{code}' is not budgetable")
            result[code] = float(value)
        return result

    # Internal ----------------------------------------------------------------

    @staticmethod
    def _parse_constants(raw: Dict[str, Any]) -> EngineConstants:
        buffer_code = raw.get('buffer_code', BUFFER_CODE.value)
        if buffer_code != BUFFER_CODE.value:
            raise CatalogError(f"Buffer line must be '{BUFFER_CODE}', got {buffer_code!r}")
        known = EngineConstants.__dataclass_fields__
        return EngineConstants(**{k: float(v) for k, v in raw.items() if k in known})

    @staticmethod
    def _parse_code_map(raw: Mapping[str, Any]) -> PercentageMap:
        return {to_prefix_code(code): float(value) for code, value in raw.items()}

    @staticmethod
    def _parse_band(raw: Dict[str, Any]) -> IncomeBand:
        band_id = raw['id']
        sub_bands = []
        for entry in raw.get('sub_bands', []):
            lower = float(entry['lower'])
            upper = None if entry.get('upper') is None else float(entry['upper'])
            if 'midpoint' in entry:
                midpoint = float(entry['midpoint'])
            elif upper is None:
                raise CatalogError(
                    f"Open-ended sub-band '{band_id}_{entry.get('position')}' needs an explicit midpoint"
                )
            else:
                midpoint = (lower + upper) / 2
            sub_bands.append(SubBand(
                id=f"{band_id}_{entry['position']}",
                band_id=band_id,
                label=entry.get('label', ''),
                position=entry['position'],
                lower=lower,
                upper=upper,
                midpoint=midpoint,
            ))
        return IncomeBand(
            id=band_id,
            label=raw.get('label', band_id),
            lower=float(raw['lower']),
            upper=None if raw.get('upper') is None else float(raw['upper']),
            sub_bands=tuple(sub_bands),
        )

    @staticmethod
    def _parse_prefix(raw: Dict[str, Any]) -> PrefixConfig:
        conditional_on = raw.get('conditional_on')
        if conditional_on is not None and conditional_on not in CONDITIONS:
            raise CatalogError(f"Unknown condition {conditional_on!r} on prefix {raw.get('code')!r}")
        return PrefixConfig(
            code=to_prefix_code(raw['code']),
            name=raw.get('name', raw['code']),
            category_id=raw.get('category_id', ''),
            is_budgetable=bool(raw.get('is_budgetable', False)),
            conditional_on=conditional_on,
            default_subcategory_weights={
                name: float(weight)
                for name, weight in (raw.get('default_subcategory_weights') or {}).items()
            },
        )

    @staticmethod
    def _parse_mode(raw: Dict[str, Any]) -> BudgetMode:
        return BudgetMode(
            id=raw['id'],
            label=raw.get('label', raw['id']),
            description=raw.get('description', ''),
            multipliers={
                to_prefix_code(code): float(value)
                for code, value in (raw.get('multipliers') or {}).items()
            },
            redistribution_priority=tuple(
                to_prefix_code(code) for code in raw.get('redistribution_priority', [])
            ),
        )

    def _validate(self) -> None:
        codes = [p.code for p in self.prefixes]
        if len(codes) != len(set(codes)):
            raise CatalogError("Duplicate prefix codes in catalog")
        buffer = next((p for p in self.prefixes if p.code is BUFFER_CODE), None)
        if buffer is None or not buffer.is_budgetable or buffer.conditional_on:
            raise CatalogError("The IF buffer line must be present, budgetable and unconditional")

        for band in self.bands:
            positions = tuple(sb.position for sb in band.sub_bands)
            if positions != SUB_BAND_POSITIONS:
                raise CatalogError(
                    f"Band '{band.id}' must have low/mid/high sub-bands, got {positions}"
                )

        budgetable = set(self.budgetable_codes())
        for band_id, table in self.base_percentages.items():
            self.get_band(band_id)
            unknown = set(table) - budgetable
            if unknown:
                raise CatalogError(f"Band '{band_id}' references non-budgetable prefixes {sorted(unknown)}")
            total = math.fsum(table.values())
            if abs(total - 1.0) > 1e-3:
                raise CatalogError(f"Base percentages for '{band_id}' sum to {total:.4f}, expected 1.0")


@lru_cache(maxsize=4)
def _load_catalog(config_dir: Optional[str]) -> Catalog:
    directory = Path(config_dir) if config_dir else None
    return Catalog(get_catalog_config(directory), get_base_percentages_config(directory))


def get_catalog(config_dir: Optional[Path] = None) -> Catalog:
    """Return the cached catalog, loading it on first use."""
    return _load_catalog(str(config_dir) if config_dir else None)


# Convenience functions using the default catalog


def get_band(band_id: str) -> IncomeBand:
    return get_catalog().get_band(band_id)


def get_sub_band(band_id: str, position: str) -> SubBand:
    return get_catalog().get_sub_band(band_id, position)


def find_band_for_income(income: float) -> Tuple[IncomeBand, SubBand]:
    """Locate the band and sub-band an income figure falls into.

    Lower bounds are exclusive and upper bounds inclusive, so 5000 belongs
    to ``band_0_5k`` and 5001 to ``band_5k_8k``.
    """
    return get_catalog().find_band_for_income(income)


def get_prefix_config(code: Any) -> PrefixConfig:
    return get_catalog().get_prefix_config(code)


def budgetable_prefixes(has_pets: bool = True, has_dependents: bool = True) -> List[PrefixConfig]:
    return get_catalog().budgetable_prefixes(has_pets, has_dependents)


def get_budget_mode(mode_id: str) -> BudgetMode:
    return get_catalog().get_budget_mode(mode_id)


def get_planning_level(level_id: str) -> PlanningLevel:
    return get_catalog().get_planning_level(level_id)


def fixed_financial_expense(band_id: str) -> float:
    return get_catalog().fixed_financial_expense(band_id)


def base_percentages(band_id: str) -> PercentageMap:
    return get_catalog().base_percentages_for(band_id)


def complete_percentages(mapping: Mapping[Any, float]) -> PercentageMap:
    return get_catalog().complete(mapping)


def engine_constants() -> EngineConstants:
    return get_catalog().constants


def round_half_up(value: float) -> int:
    """Round to the nearest whole currency unit, halves away from zero."""
    if value < 0:
        return -int(math.floor(-value + 0.5))
    return int(math.floor(value + 0.5))


def calculate_budget_amounts(income: float, fractions: Mapping[Any, float]) -> Dict[PrefixCode, int]:
    """Convert fractional percentages into whole-unit amounts.

    Example:
        >>> calculate_budget_amounts(20000, {'C': 0.25, 'A': 0.12})
        {<PrefixCode.C: 'C'>: 5000, <PrefixCode.A: 'A'>: 2400}
    """
    return {
        to_prefix_code(code): round_half_up(income * fraction)
        for code, fraction in fractions.items()
    }


def subcategory_distribution(code: Any, total_amount: float) -> Dict[str, int]:
    """Split a category amount across its default subcategory weights."""
    weights = get_prefix_config(code).default_subcategory_weights
    total_weight = math.fsum(weights.values())
    if not weights or total_weight <= 0:
        return {}
    return {
        name: round_half_up(weight / total_weight * total_amount)
        for name, weight in weights.items()
    }


def reload_catalog() -> Catalog:
    """Drop the cached catalog and load it again from disk."""
    _load_catalog.cache_clear()
    return get_catalog()
