import pytest

from family_budget.pages.lib.budgets.errors import ErrorKind
from family_budget.pages.lib.budgets.models import Allocation, SubcategoryBudget
from family_budget.pages.lib.budgets.pipeline import generate
from family_budget.pages.lib.budgets.reconciler import set_subcategories
from family_budget.pages.lib.budgets.validation import validate


def _allocation(buffer=0.015):
    shares = {'C': 0.10, 'A': 0.30, 'T': 0.20, 'L': 0.20 - buffer, 'E': 0.20, 'IF': buffer}
    return Allocation.from_percentages(10000, shares)


def test_generated_allocation_is_valid():
    result = validate(generate('band_30k_50k', 'high', True, True, 'optimization', 'some', 45000))
    assert result.valid
    assert result.errors == ()


def test_sum_mismatch_detected():
    allocation = Allocation.from_percentages(10000, {'C': 0.5, 'A': 0.3, 'IF': 0.1})
    result = validate(allocation)
    assert not result.valid
    assert result.errors == (ErrorKind.SUM_MISMATCH,)
    assert result.total_percentage == pytest.approx(90.0)


def test_small_drift_is_tolerated():
    allocation = Allocation.from_percentages(10000, {'C': 0.5, 'A': 0.298, 'IF': 0.2})
    assert validate(allocation).valid


def test_negative_buffer_reported_with_other_errors():
    allocation = _allocation()
    allocation = allocation.replace_items(allocation.buffer.with_percentage(allocation.income, -2))
    result = validate(allocation)
    assert result.has(ErrorKind.NEGATIVE_BUFFER)
    assert result.has(ErrorKind.SUM_MISMATCH)


def test_subcategory_over_blocks_confirmation():
    allocation = set_subcategories(_allocation(), 'C', [SubcategoryBudget('rent', 'Rent', 1200)])
    result = validate(allocation)
    assert not result.valid
    assert result.errors == (ErrorKind.SUBCATEGORY_OVER,)
    assert result.over_categories == ('C',)


def test_subcategory_over_can_be_non_blocking():
    allocation = set_subcategories(_allocation(), 'C', [SubcategoryBudget('rent', 'Rent', 1200)])
    result = validate(allocation, block_on_subcategory_over=False)
    assert result.valid
    assert result.over_categories == ('C',)


def test_subcategory_under_does_not_block():
    allocation = set_subcategories(_allocation(), 'C', [SubcategoryBudget('rent', 'Rent', 200)])
    assert validate(allocation).valid
