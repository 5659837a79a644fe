"""Value types for a live budget allocation.

An :class:`Allocation` is an immutable snapshot: every edit returns a new
instance in which only the touched items differ. Percentages (0-100 scale)
are the source of truth; amounts are always derived from them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .catalog import (
    BUFFER_CODE,
    PrefixCode,
    get_catalog,
    round_half_up,
    to_prefix_code,
)
from .errors import AllocationError, UnknownPrefixError, UnknownSubcategoryError


def derive_amount(income: float, percentage: float) -> int:
    """Amount for ``percentage`` (0-100 scale) of ``income``, in whole units."""
    return round_half_up(income * percentage / 100)


@dataclass(frozen=True)
class SubcategoryBudget:
    id: str
    name: str
    amount: float
    percentage: float = 0.0  # share of the parent category amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'amount': self.amount,
            'percentage': self.percentage,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'SubcategoryBudget':
        return cls(
            id=str(data['id']),
            name=str(data.get('name', data['id'])),
            amount=float(data.get('amount', 0.0)),
            percentage=float(data.get('percentage', 0.0)),
        )


@dataclass(frozen=True)
class BudgetCategoryItem:
    prefix_code: PrefixCode
    name: str
    category_id: str
    percentage: float
    amount: int
    is_edited: bool = False
    subcategories: Tuple[SubcategoryBudget, ...] = ()

    @property
    def subcategory_total(self) -> float:
        return math.fsum(sub.amount for sub in self.subcategories)

    def subcategory(self, subcategory_id: str) -> SubcategoryBudget:
        for sub in self.subcategories:
            if sub.id == subcategory_id:
                return sub
        raise UnknownSubcategoryError(
            f"Subcategory '{subcategory_id}' not found in category '{self.prefix_code}'"
        )

    def with_percentage(self, income: float, percentage: float, *, edited: Optional[bool] = None) -> 'BudgetCategoryItem':
        amount = derive_amount(income, percentage)
        return replace(
            self,
            percentage=percentage,
            amount=amount,
            is_edited=self.is_edited if edited is None else edited,
            subcategories=recompute_subcategory_shares(self.subcategories, amount),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'prefix_code': self.prefix_code.value,
            'name': self.name,
            'category_id': self.category_id,
            'percentage': self.percentage,
            'amount': self.amount,
            'is_edited': self.is_edited,
            'subcategories': [sub.to_dict() for sub in self.subcategories],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'BudgetCategoryItem':
        return cls(
            prefix_code=to_prefix_code(data['prefix_code']),
            name=str(data.get('name', data['prefix_code'])),
            category_id=str(data.get('category_id', '')),
            percentage=float(data['percentage']),
            amount=int(data['amount']),
            is_edited=bool(data.get('is_edited', False)),
            subcategories=tuple(
                SubcategoryBudget.from_dict(sub) for sub in data.get('subcategories') or []
            ),
        )


@dataclass(frozen=True)
class Allocation:
    """A complete set of budget lines for one household income."""

    income: float
    items: Tuple[BudgetCategoryItem, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.income <= 0:
            raise AllocationError(f"Income must be positive, got {self.income}")
        codes = [item.prefix_code for item in self.items]
        if len(codes) != len(set(codes)):
            raise AllocationError("Allocation contains duplicate prefix codes")
        if BUFFER_CODE not in codes:
            raise AllocationError("Allocation has no IF buffer line")

    # Lookups ----------------------------------------------------------------

    def item(self, code: Any) -> BudgetCategoryItem:
        code = to_prefix_code(code)
        for item in self.items:
            if item.prefix_code is code:
                return item
        raise UnknownPrefixError(f"Prefix '{code}' is not part of this allocation")

    def has(self, code: Any) -> bool:
        return to_prefix_code(code) in self.codes

    @property
    def codes(self) -> List[PrefixCode]:
        return [item.prefix_code for item in self.items]

    @property
    def buffer(self) -> BudgetCategoryItem:
        return self.item(BUFFER_CODE)

    @property
    def total_percentage(self) -> float:
        return math.fsum(item.percentage for item in self.items)

    @property
    def total_amount(self) -> int:
        return sum(item.amount for item in self.items)

    def percentages(self) -> Dict[PrefixCode, float]:
        return {item.prefix_code: item.percentage for item in self.items}

    # Updates ----------------------------------------------------------------

    def replace_items(self, *updated: BudgetCategoryItem) -> 'Allocation':
        """Return a copy where only the given items (matched by code) differ."""
        by_code = {item.prefix_code: item for item in updated}
        missing = set(by_code) - set(self.codes)
        if missing:
            raise UnknownPrefixError(
                f"Prefixes {sorted(c.value for c in missing)} are not part of this allocation"
            )
        return replace(self, items=tuple(by_code.get(item.prefix_code, item) for item in self.items))

    def mark_all_unedited(self) -> 'Allocation':
        return replace(self, items=tuple(replace(item, is_edited=False) for item in self.items))

    # Construction -----------------------------------------------------------

    @classmethod
    def from_percentages(
        cls,
        income: float,
        fractions: Mapping[Any, float],
        *,
        normalize: bool = False,
    ) -> 'Allocation':
        """Build an allocation from fractional percentages (0-1 scale).

        Lines are emitted in catalog order and only for budgetable prefixes
        with a positive share; ``IF`` is always emitted. Used both by the
        generation pipeline and to adopt an externally produced proposal.
        """
        catalog = get_catalog()
        shares = {to_prefix_code(code): float(value) for code, value in fractions.items()}
        if normalize:
            total = math.fsum(shares.values())
            if total <= 0:
                raise AllocationError("Cannot normalize an empty proposal")
            shares = {code: value / total for code, value in shares.items()}

        items = []
        for prefix in catalog.prefixes:
            share = shares.get(prefix.code, 0.0)
            if not prefix.is_budgetable:
                continue
            if share <= 0 and prefix.code is not BUFFER_CODE:
                continue
            percentage = share * 100
            items.append(BudgetCategoryItem(
                prefix_code=prefix.code,
                name=prefix.name,
                category_id=prefix.category_id,
                percentage=percentage,
                amount=derive_amount(income, percentage),
            ))
        return cls(income=income, items=tuple(items))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'income': self.income,
            'items': [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Allocation':
        return cls(
            income=float(data['income']),
            items=tuple(BudgetCategoryItem.from_dict(item) for item in data.get('items') or []),
        )


def recompute_subcategory_shares(
    subcategories: Iterable[SubcategoryBudget], category_amount: float
) -> Tuple[SubcategoryBudget, ...]:
    """Recalculate each subcategory's percentage of its parent amount."""
    return tuple(
        replace(sub, percentage=(sub.amount / category_amount * 100) if category_amount > 0 else 0.0)
        for sub in subcategories
    )
