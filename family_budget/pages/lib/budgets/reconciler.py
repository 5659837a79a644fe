"""Subcategory reconciliation.

A category may be split into user-defined subcategories whose amounts are
expected to add up to the category amount. A mismatch is a visible state,
never silently corrected: :func:`reconcile_status` reports it and the caller
chooses to shrink the category (surplus goes back to ``IF``) or grow it
(paid for by ``IF``). Both resolutions go through the zero-sum controller.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from itertools import count
from typing import Any, Iterable, List

from .allocation import EditResult, apply_percentage_change
from .catalog import engine_constants, subcategory_distribution, to_prefix_code
from .errors import RejectionReason
from .models import Allocation, BudgetCategoryItem, SubcategoryBudget, recompute_subcategory_shares

STATUS_OK = 'ok'
STATUS_UNDER = 'under'
STATUS_OVER = 'over'


@dataclass(frozen=True)
class ReconcileReport:
    prefix_code: str
    subcategory_total: float
    category_amount: float
    difference: float  # subcategory total minus category amount
    status: str

    @property
    def needs_buffer(self) -> float:
        """Amount the buffer has to cover to grow the category to match."""
        return max(0.0, self.difference)


def reconcile_status(item: BudgetCategoryItem) -> ReconcileReport:
    """Compare a category's amount with the sum of its subcategories.

    Categories without subcategories are always ``ok``.
    """
    tolerance = engine_constants().subcategory_tolerance
    total = item.subcategory_total
    difference = total - item.amount if item.subcategories else 0.0
    if difference > tolerance:
        status = STATUS_OVER
    elif difference < -tolerance:
        status = STATUS_UNDER
    else:
        status = STATUS_OK
    return ReconcileReport(
        prefix_code=item.prefix_code.value,
        subcategory_total=total,
        category_amount=float(item.amount),
        difference=difference,
        status=status,
    )


def reconcile_all(allocation: Allocation) -> List[ReconcileReport]:
    return [reconcile_status(item) for item in allocation.items if item.subcategories]


def set_subcategories(
    allocation: Allocation,
    category_code: Any,
    subcategories: Iterable[SubcategoryBudget],
) -> Allocation:
    """Replace a category's subcategories without touching any percentage.

    Raises:
        UnknownPrefixError: If the category is not part of the allocation
        ValueError: If subcategory ids repeat or an amount is negative
    """
    item = allocation.item(category_code)
    subs = tuple(subcategories)
    ids = [sub.id for sub in subs]
    if len(ids) != len(set(ids)):
        raise ValueError(f"Duplicate subcategory ids for category '{item.prefix_code}'")
    if any(sub.amount < 0 for sub in subs):
        raise ValueError("Subcategory amounts cannot be negative")
    updated = replace(item, subcategories=recompute_subcategory_shares(subs, item.amount))
    return allocation.replace_items(updated)


def _resize_to_subcategories(allocation: Allocation, item: BudgetCategoryItem) -> EditResult:
    target_total = item.subcategory_total
    result = apply_percentage_change(
        allocation, item.prefix_code, target_total / allocation.income * 100
    )
    if not result.accepted:
        return result
    resized = result.allocation.item(item.prefix_code)
    resized = replace(
        resized,
        subcategories=recompute_subcategory_shares(resized.subcategories, resized.amount),
    )
    return EditResult(allocation=result.allocation.replace_items(resized), accepted=True)


def shrink_category_to_match(allocation: Allocation, category_code: Any) -> EditResult:
    """Lower the category to its subcategory total; the surplus returns to ``IF``."""
    item = allocation.item(category_code)
    if reconcile_status(item).status != STATUS_UNDER:
        return EditResult(allocation, False, RejectionReason.NOTHING_TO_RECONCILE)
    return _resize_to_subcategories(allocation, item)


def grow_category_to_match(allocation: Allocation, category_code: Any) -> EditResult:
    """Raise the category to its subcategory total, funded by ``IF``.

    Rejected with ``INSUFFICIENT_BUFFER`` when ``IF`` cannot cover the gap.
    """
    item = allocation.item(category_code)
    if reconcile_status(item).status != STATUS_OVER:
        return EditResult(allocation, False, RejectionReason.NOTHING_TO_RECONCILE)
    return _resize_to_subcategories(allocation, item)


def update_subcategory_amount(
    allocation: Allocation,
    category_code: Any,
    subcategory_id: str,
    new_amount: float,
) -> EditResult:
    """Edit one subcategory, growing the category through ``IF`` if needed.

    When the new subcategory total still fits in the category only the
    subcategory changes. Otherwise the category is raised to the new total;
    if ``IF`` cannot fund that the edit is rejected as a whole.
    """
    if not math.isfinite(new_amount) or new_amount < 0:
        return EditResult(allocation, False, RejectionReason.INVALID_AMOUNT)
    item = allocation.item(category_code)
    item.subcategory(subcategory_id)
    subs = tuple(
        replace(sub, amount=float(new_amount)) if sub.id == subcategory_id else sub
        for sub in item.subcategories
    )
    edited = replace(item, is_edited=True, subcategories=recompute_subcategory_shares(subs, item.amount))
    staged = allocation.replace_items(edited)

    if edited.subcategory_total <= item.amount:
        return EditResult(allocation=staged, accepted=True)

    result = _resize_to_subcategories(staged, edited)
    if not result.accepted:
        return EditResult(allocation, False, result.reason)
    return result


def seed_subcategories(allocation: Allocation, category_code: Any) -> Allocation:
    """Fill a category with its default subcategory split."""
    item = allocation.item(category_code)
    ids = count(1)
    subs = [
        SubcategoryBudget(id=f"{item.prefix_code.value}-{next(ids)}", name=name, amount=float(amount))
        for name, amount in subcategory_distribution(to_prefix_code(category_code), item.amount).items()
    ]
    return set_subcategories(allocation, category_code, subs)
