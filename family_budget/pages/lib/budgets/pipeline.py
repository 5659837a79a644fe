"""Budget generation pipeline.

Turns an onboarding profile into a proposed allocation. The steps run in a
fixed order and each one hands the next a percentage map summing to 1.0:

1. base percentages for the income band
2. budget mode multipliers
3. sub-band deltas
4. removal of inactive conditional lines (pets, dependents) and
   redistribution of their share through a pluggable policy
5. non-monthly planning shift between ``E`` and ``IF``
6. fixed financial expense (``DF``) correction against ``IF``
7. final normalization
8. materialization into :class:`~.models.Allocation` items

Generation is best effort: when the ``DF`` floor needs more than ``IF`` can
give, ``IF`` is clamped to a small positive floor and a
``GENERATION_FLOOR_CLAMP`` warning is attached to the proposal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from .catalog import (
    BUFFER_CODE,
    Catalog,
    PercentageMap,
    PrefixCode,
    get_catalog,
)
from .errors import CatalogError, WarningKind
from .models import Allocation

logger = logging.getLogger(__name__)

RedistributionPolicy = Callable[[PercentageMap, float, Tuple[PrefixCode, ...], str], PercentageMap]


@dataclass(frozen=True)
class OnboardingProfile:
    """Answers collected by the onboarding wizard."""

    income_band_id: str
    sub_band_position: str
    has_pets: bool
    has_dependents: bool
    budget_mode: str
    non_monthly_planning_level: str
    income_anchor: float


@dataclass(frozen=True)
class GenerationWarning:
    kind: WarningKind
    message: str


@dataclass(frozen=True)
class BudgetProposal:
    allocation: Allocation
    fractions: PercentageMap
    estimated_income: float
    warnings: Tuple[GenerationWarning, ...] = field(default_factory=tuple)

    @property
    def was_clamped(self) -> bool:
        return any(w.kind is WarningKind.GENERATION_FLOOR_CLAMP for w in self.warnings)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def normalize(percentages: PercentageMap) -> PercentageMap:
    """Scale every share so the map sums to exactly 1.0."""
    codes = list(percentages)
    values = np.array([percentages[c] for c in codes], dtype=float)
    total = values.sum()
    if total <= 0:
        raise CatalogError("Cannot normalize an allocation whose total is zero")
    return dict(zip(codes, (values / total).tolist()))


def _active_codes(percentages: PercentageMap) -> List[PrefixCode]:
    return [code for code, value in percentages.items() if value > 0]


# ---------------------------------------------------------------------------
# Redistribution policies
# ---------------------------------------------------------------------------


def redistribute_proportionally(
    percentages: PercentageMap,
    freed: float,
    removed: Tuple[PrefixCode, ...],
    mode_id: str,
) -> PercentageMap:
    """Fold the freed share into every remaining active line by current share.

    ``IF`` takes part like any other active line; it is not preferred.
    """
    result = dict(percentages)
    receivers = [code for code in _active_codes(result) if code not in removed]
    receiving_total = sum(result[code] for code in receivers)
    if freed <= 0 or receiving_total <= 0:
        return result
    for code in receivers:
        result[code] += result[code] / receiving_total * freed
    return result


def redistribute_by_mode_priority(
    percentages: PercentageMap,
    freed: float,
    removed: Tuple[PrefixCode, ...],
    mode_id: str,
) -> PercentageMap:
    """Give the freed share to the budget mode's priority lines.

    Falls back to :func:`redistribute_proportionally` when none of the
    priority lines is active.
    """
    mode = get_catalog().get_budget_mode(mode_id)
    result = dict(percentages)
    receivers = [
        code for code in mode.redistribution_priority
        if result.get(code, 0.0) > 0 and code not in removed
    ]
    priority_total = sum(result[code] for code in receivers)
    if freed <= 0 or priority_total <= 0:
        return redistribute_proportionally(percentages, freed, removed, mode_id)
    for code in receivers:
        result[code] += result[code] / priority_total * freed
    return result


REDISTRIBUTION_POLICIES: Dict[str, RedistributionPolicy] = {
    'proportional': redistribute_proportionally,
    'mode_priority': redistribute_by_mode_priority,
}


# ---------------------------------------------------------------------------
# Pipeline steps
# ---------------------------------------------------------------------------


def apply_mode_adjustment(percentages: PercentageMap, mode_id: str, catalog: Optional[Catalog] = None) -> PercentageMap:
    mode = (catalog or get_catalog()).get_budget_mode(mode_id)
    adjusted = {
        code: value * mode.multipliers.get(code, 1.0)
        for code, value in percentages.items()
    }
    return normalize(adjusted)


def apply_sub_band_adjustment(percentages: PercentageMap, position: str, catalog: Optional[Catalog] = None) -> PercentageMap:
    catalog = catalog or get_catalog()
    if position not in catalog.sub_band_adjustments:
        raise CatalogError(f"Unknown sub-band position: {position!r}")
    adjusted = dict(percentages)
    for code, delta in catalog.sub_band_adjustments[position].items():
        if adjusted.get(code, 0.0) > 0:
            adjusted[code] = max(0.0, adjusted[code] + delta)
    return normalize(adjusted)


def remove_inactive_lines(
    percentages: PercentageMap,
    has_pets: bool,
    has_dependents: bool,
    mode_id: str,
    policy: RedistributionPolicy = redistribute_proportionally,
    catalog: Optional[Catalog] = None,
) -> PercentageMap:
    catalog = catalog or get_catalog()
    removed = tuple(
        prefix.code for prefix in catalog.prefixes
        if prefix.is_budgetable
        and not prefix.is_active(has_pets, has_dependents)
        and percentages.get(prefix.code, 0.0) > 0
    )
    if not removed:
        return percentages
    freed = sum(percentages[code] for code in removed)
    remaining = dict(percentages)
    for code in removed:
        remaining[code] = 0.0
    redistributed = policy(remaining, freed, removed, mode_id)
    for code in removed:
        redistributed[code] = 0.0
    return normalize(redistributed)


def apply_planning_shift(percentages: PercentageMap, level_id: str, catalog: Optional[Catalog] = None) -> PercentageMap:
    """Move the planning level's share from ``IF`` into ``E`` (or back)."""
    catalog = catalog or get_catalog()
    shift = catalog.get_planning_level(level_id).shift_to_e
    if shift == 0:
        return percentages
    adjusted = dict(percentages)
    adjusted[PrefixCode.E] = max(0.0, adjusted.get(PrefixCode.E, 0.0) + shift)
    adjusted[BUFFER_CODE] = max(
        catalog.constants.min_planning_buffer,
        adjusted.get(BUFFER_CODE, 0.0) - shift,
    )
    return normalize(adjusted)


def apply_fixed_expense_correction(
    percentages: PercentageMap,
    band_id: str,
    income_anchor: float,
    catalog: Optional[Catalog] = None,
) -> Tuple[PercentageMap, Optional[GenerationWarning]]:
    """Pin ``DF`` to its band floor and settle the difference with ``IF``."""
    catalog = catalog or get_catalog()
    floor_share = catalog.fixed_financial_expense(band_id) / income_anchor
    adjusted = dict(percentages)
    difference = adjusted.get(PrefixCode.DF, 0.0) - floor_share
    adjusted[PrefixCode.DF] = floor_share
    new_buffer = adjusted.get(BUFFER_CODE, 0.0) + difference

    warning = None
    if new_buffer < 0:
        buffer_floor = catalog.constants.generation_buffer_floor
        warning = GenerationWarning(
            kind=WarningKind.GENERATION_FLOOR_CLAMP,
            message=(
                f"Fixed financial expenses for {band_id} need {-difference:.2%} of income "
                f"but IF only had {adjusted.get(BUFFER_CODE, 0.0):.2%}; IF clamped to {buffer_floor:.2%}"
            ),
        )
        logger.warning(warning.message)
        new_buffer = buffer_floor
    adjusted[BUFFER_CODE] = new_buffer
    return adjusted, warning


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def build_proposal(
    profile: OnboardingProfile,
    redistribution_policy: RedistributionPolicy = redistribute_proportionally,
    catalog: Optional[Catalog] = None,
) -> BudgetProposal:
    """Run the full pipeline and return the proposal with its warnings.

    Raises:
        CatalogError: If the band, sub-band, mode or planning level is unknown
        ValueError: If the income anchor is not positive
    """
    catalog = catalog or get_catalog()
    if profile.income_anchor <= 0:
        raise ValueError(f"Income anchor must be positive, got {profile.income_anchor}")
    sub_band = catalog.get_sub_band(profile.income_band_id, profile.sub_band_position)

    percentages = catalog.base_percentages_for(profile.income_band_id)
    percentages = apply_mode_adjustment(percentages, profile.budget_mode, catalog)
    percentages = apply_sub_band_adjustment(percentages, profile.sub_band_position, catalog)
    percentages = remove_inactive_lines(
        percentages,
        profile.has_pets,
        profile.has_dependents,
        profile.budget_mode,
        redistribution_policy,
        catalog,
    )
    percentages = apply_planning_shift(percentages, profile.non_monthly_planning_level, catalog)
    percentages, warning = apply_fixed_expense_correction(
        percentages, profile.income_band_id, profile.income_anchor, catalog
    )
    percentages = normalize(percentages)

    allocation = Allocation.from_percentages(profile.income_anchor, {
        code: value for code, value in percentages.items()
        if catalog.get_prefix_config(code).is_active(profile.has_pets, profile.has_dependents)
    })
    return BudgetProposal(
        allocation=allocation,
        fractions=percentages,
        estimated_income=sub_band.midpoint,
        warnings=(warning,) if warning else (),
    )


def generate(
    band_id: str,
    sub_band_position: str,
    has_pets: bool,
    has_dependents: bool,
    mode: str,
    non_monthly_planning_level: str,
    income_anchor: float,
    redistribution_policy: RedistributionPolicy = redistribute_proportionally,
) -> Allocation:
    """Generate the initial allocation for an onboarding profile.

    Example:
        >>> allocation = generate('band_15k_30k', 'mid', False, False,
        ...                       'comfort', 'most', 22500)
        >>> round(allocation.total_percentage, 6)
        100.0
    """
    profile = OnboardingProfile(
        income_band_id=band_id,
        sub_band_position=sub_band_position,
        has_pets=has_pets,
        has_dependents=has_dependents,
        budget_mode=mode,
        non_monthly_planning_level=non_monthly_planning_level,
        income_anchor=income_anchor,
    )
    return build_proposal(profile, redistribution_policy).allocation
