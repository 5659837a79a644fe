import math
import random

import pytest

from family_budget.pages.lib.budgets.allocation import (
    apply_amount_change,
    apply_percentage_change,
    buffer_status,
    is_buffer_exhausted,
    max_percentage,
)
from family_budget.pages.lib.budgets.catalog import round_half_up
from family_budget.pages.lib.budgets.errors import AllocationError, RejectionReason, UnknownPrefixError
from family_budget.pages.lib.budgets.models import Allocation, BudgetCategoryItem, SubcategoryBudget
from family_budget.pages.lib.budgets.reconciler import set_subcategories
from family_budget.pages.lib.budgets.pipeline import generate


def _allocation(buffer=0.03, income=10000):
    shares = {'C': 0.30, 'A': 0.20, 'T': 0.17, 'L': 0.10, 'E': 0.23 - buffer, 'IF': buffer}
    return Allocation.from_percentages(income, shares)


def test_raise_beyond_buffer_is_rejected():
    allocation = _allocation(buffer=0.03)
    result = apply_percentage_change(allocation, 'L', allocation.item('L').percentage + 5)

    assert not result.accepted
    assert result.reason is RejectionReason.INSUFFICIENT_BUFFER
    assert 'Insufficient buffer' in result.message
    assert result.allocation is allocation


def test_raise_within_buffer_is_accepted():
    allocation = _allocation(buffer=0.03)
    before = allocation.item('L').percentage
    result = apply_percentage_change(allocation, 'L', before + 2)

    assert result.accepted
    assert result.allocation.item('L').percentage == pytest.approx(before + 2)
    assert result.allocation.item('L').is_edited
    assert result.allocation.buffer.percentage == pytest.approx(1.0)
    assert result.allocation.buffer.amount == 100


def test_only_target_and_buffer_change():
    allocation = _allocation()
    result = apply_percentage_change(allocation, 'C', 25)

    for before, after in zip(allocation.items, result.allocation.items):
        if before.prefix_code.value in ('C', 'IF'):
            continue
        assert after is before


def test_lowering_returns_share_to_buffer():
    allocation = _allocation(buffer=0.03)
    result = apply_percentage_change(allocation, 'A', 15)
    assert result.accepted
    assert result.allocation.buffer.percentage == pytest.approx(8.0)


def test_draining_buffer_exactly_is_allowed():
    allocation = _allocation(buffer=0.03)
    result = apply_percentage_change(allocation, 'L', allocation.item('L').percentage + 3)
    assert result.accepted
    assert result.allocation.buffer.percentage == 0.0
    assert buffer_status(result.allocation) == 'critical'


def test_buffer_cannot_be_set_directly():
    allocation = _allocation()
    result = apply_percentage_change(allocation, 'IF', 10)
    assert result.reason is RejectionReason.BUFFER_NOT_EDITABLE
    assert result.allocation is allocation


def test_negative_percentage_rejected():
    allocation = _allocation()
    result = apply_percentage_change(allocation, 'C', -1)
    assert result.reason is RejectionReason.INVALID_PERCENTAGE


def test_unknown_prefix_raises():
    allocation = _allocation()
    with pytest.raises(UnknownPrefixError):
        apply_percentage_change(allocation, 'PET', 1)


def test_amount_change_converts_to_percentage():
    allocation = _allocation(buffer=0.05)
    result = apply_amount_change(allocation, 'T', 1800)
    assert result.accepted
    assert result.allocation.item('T').percentage == pytest.approx(18.0)
    assert result.allocation.item('T').amount == 1800
    assert result.allocation.buffer.percentage == pytest.approx(4.0)


def test_rejected_edit_is_idempotent():
    allocation = _allocation(buffer=0.01)
    first = apply_percentage_change(allocation, 'C', 40)
    second = apply_percentage_change(first.allocation, 'C', 40)
    assert not first.accepted and not second.accepted
    assert second.allocation == allocation


def test_max_percentage_is_capped():
    allocation = _allocation(buffer=0.03)
    assert max_percentage(allocation, 'L') == pytest.approx(13.0)
    assert max_percentage(allocation, 'C') == pytest.approx(33.0)

    roomy = Allocation.from_percentages(10000, {'C': 0.45, 'A': 0.15, 'IF': 0.40})
    assert max_percentage(roomy, 'C') == 50


def test_buffer_status_levels():
    assert buffer_status(_allocation(buffer=0.02)) == 'warning'
    assert buffer_status(_allocation(buffer=0.05)) == 'healthy'
    assert buffer_status(_allocation(buffer=0.10)) == 'excellent'
    assert not is_buffer_exhausted(_allocation(buffer=0.02))
    assert is_buffer_exhausted(_allocation(buffer=0.0005))


def test_random_edits_keep_invariants():
    rng = random.Random(7)
    allocation = generate('band_15k_30k', 'mid', True, True, 'quality', 'some', 22500)
    codes = [code for code in allocation.codes if code.value != 'IF']

    for _ in range(300):
        code = rng.choice(codes)
        current = allocation.item(code).percentage
        result = apply_percentage_change(allocation, code, max(0.0, current + rng.uniform(-4, 4)))
        allocation = result.allocation

        assert allocation.total_percentage == pytest.approx(100.0, abs=1e-3)
        assert allocation.buffer.percentage >= 0
        for item in allocation.items:
            assert item.amount == round_half_up(allocation.income * item.percentage / 100)


def test_allocation_requires_buffer_and_positive_income():
    item = BudgetCategoryItem(prefix_code='C', name='Casa', category_id='casa', percentage=100, amount=100)
    with pytest.raises(AllocationError):
        Allocation(income=100, items=(item,))
    with pytest.raises(AllocationError):
        Allocation.from_percentages(0, {'IF': 1.0})


def test_from_percentages_skips_inactive_and_non_budgetable():
    allocation = Allocation.from_percentages(10000, {'C': 0.6, 'PET': 0.0, 'R': 0.1, 'IF': 0.3})
    assert [code.value for code in allocation.codes] == ['C', 'IF']


def test_from_percentages_can_normalize_external_proposal():
    allocation = Allocation.from_percentages(10000, {'C': 3, 'A': 1, 'IF': 1}, normalize=True)
    assert allocation.item('C').percentage == pytest.approx(60.0)
    assert allocation.total_percentage == pytest.approx(100.0)


def test_dict_round_trip_preserves_edits():
    allocation = apply_percentage_change(_allocation(), 'C', 28).allocation
    restored = Allocation.from_dict(allocation.to_dict())
    assert restored == allocation
    assert restored.item('C').is_edited


def test_editing_split_category_refreshes_subcategory_shares():
    allocation = Allocation.from_percentages(10000, {'C': 0.10, 'A': 0.30, 'T': 0.20, 'L': 0.15, 'E': 0.20, 'IF': 0.05})
    allocation = set_subcategories(
        allocation, 'C', [SubcategoryBudget('rent', 'Rent', 500), SubcategoryBudget('power', 'Power', 500)]
    )
    result = apply_percentage_change(allocation, 'C', 12)

    item = result.allocation.item('C')
    assert item.amount == 1200
    assert [sub.amount for sub in item.subcategories] == [500, 500]
    assert [sub.percentage for sub in item.subcategories] == pytest.approx([500 / 12, 500 / 12])


def test_non_finite_percentage_rejected():
    allocation = _allocation()
    for value in (math.nan, math.inf):
        result = apply_percentage_change(allocation, 'C', value)
        assert not result.accepted
        assert result.reason is RejectionReason.INVALID_PERCENTAGE
        assert result.allocation is allocation

    assert apply_amount_change(allocation, 'C', math.nan).reason is RejectionReason.INVALID_PERCENTAGE
