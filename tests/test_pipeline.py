import logging
import itertools

import pytest

from family_budget.pages.lib.budgets.catalog import BUFFER_CODE, PrefixCode, get_catalog, round_half_up
from family_budget.pages.lib.budgets.errors import CatalogError, WarningKind
from family_budget.pages.lib.budgets.pipeline import (
    OnboardingProfile,
    apply_planning_shift,
    build_proposal,
    generate,
    normalize,
    redistribute_by_mode_priority,
    redistribute_proportionally,
    remove_inactive_lines,
)


def _profile(**overrides):
    values = dict(
        income_band_id='band_15k_30k',
        sub_band_position='mid',
        has_pets=False,
        has_dependents=False,
        budget_mode='comfort',
        non_monthly_planning_level='most',
        income_anchor=22500,
    )
    values.update(overrides)
    return OnboardingProfile(**values)


def test_generate_sums_to_hundred_for_every_mode_and_level():
    catalog = get_catalog()
    for mode, level in itertools.product(catalog.modes, catalog.planning_levels):
        allocation = generate('band_15k_30k', 'mid', True, True, mode.id, level.id, 22500)
        assert allocation.total_percentage == pytest.approx(100.0, abs=1e-3)
        assert allocation.buffer.percentage >= 0


def test_generated_items_are_unedited_and_derived():
    allocation = generate('band_8k_15k', 'low', True, False, 'security', 'some', 9000)
    for item in allocation.items:
        assert item.is_edited is False
        assert item.amount == round_half_up(9000 * item.percentage / 100)
        assert item.percentage > 0


def test_conditional_lines_excluded():
    allocation = generate('band_15k_30k', 'mid', False, False, 'comfort', 'most', 22500)
    assert not allocation.has('PET')
    assert not allocation.has('F')

    with_pets = generate('band_15k_30k', 'mid', True, False, 'comfort', 'most', 22500)
    assert with_pets.item('PET').percentage > 0
    assert not with_pets.has('F')


def test_items_follow_catalog_order():
    allocation = generate('band_15k_30k', 'mid', True, True, 'quality', 'most', 22500)
    order = [p.code for p in get_catalog().prefixes if p.is_budgetable]
    assert allocation.codes == [code for code in order if allocation.has(code)]


def test_fixed_expense_floor_is_pinned():
    proposal = build_proposal(_profile())
    assert proposal.allocation.item('DF').percentage == pytest.approx(160 / 22500 * 100)
    assert not proposal.warnings


def test_income_anchor_only_changes_amounts_of_the_same_band():
    low_anchor = generate('band_15k_30k', 'mid', False, False, 'comfort', 'most', 22500)
    high_anchor = generate('band_15k_30k', 'mid', False, False, 'comfort', 'most', 22500 * 2)
    # DF floor is an absolute amount so its share halves with a doubled anchor
    assert high_anchor.item('DF').percentage == pytest.approx(low_anchor.item('DF').percentage / 2)
    assert high_anchor.item('A').amount > low_anchor.item('A').amount


def test_buffer_clamped_when_fixed_expenses_exceed_it(caplog):
    profile = _profile(
        income_band_id='band_0_5k',
        sub_band_position='low',
        budget_mode='comfort',
        non_monthly_planning_level='never',
        income_anchor=200,
    )
    with caplog.at_level(logging.WARNING):
        proposal = build_proposal(profile)

    assert proposal.was_clamped
    assert proposal.warnings[0].kind is WarningKind.GENERATION_FLOOR_CLAMP
    assert proposal.allocation.buffer.percentage > 0
    assert proposal.allocation.buffer.percentage < 0.1
    assert proposal.allocation.total_percentage == pytest.approx(100.0, abs=1e-3)
    assert 'IF clamped' in caplog.text


def test_planning_shift_moves_share_from_buffer_to_e():
    most = build_proposal(_profile(non_monthly_planning_level='most')).fractions
    never = build_proposal(_profile(non_monthly_planning_level='never')).fractions
    assert never[PrefixCode.E] > most[PrefixCode.E]
    assert never[BUFFER_CODE] < most[BUFFER_CODE]


def test_planning_shift_keeps_buffer_floor():
    shares = normalize({PrefixCode.C: 0.97, PrefixCode.E: 0.02, BUFFER_CODE: 0.01})
    shifted = apply_planning_shift(shares, 'never')
    assert shifted[BUFFER_CODE] > 0
    assert sum(shifted.values()) == pytest.approx(1.0)


def test_proportional_redistribution_keeps_relative_shares():
    shares = normalize({PrefixCode.C: 0.5, PrefixCode.A: 0.25, PrefixCode.PET: 0.05, BUFFER_CODE: 0.2})
    result = remove_inactive_lines(shares, has_pets=False, has_dependents=True, mode_id='comfort')
    assert result[PrefixCode.PET] == 0
    assert sum(result.values()) == pytest.approx(1.0)
    assert result[PrefixCode.C] / result[PrefixCode.A] == pytest.approx(2.0)
    assert result[BUFFER_CODE] > shares[BUFFER_CODE]


def test_mode_priority_redistribution_only_feeds_priority_lines():
    proportional = build_proposal(_profile(), redistribute_proportionally).allocation
    prioritized = build_proposal(_profile(), redistribute_by_mode_priority).allocation
    # comfort prioritizes C, L, DIV and A
    assert prioritized.item('C').percentage > proportional.item('C').percentage
    assert prioritized.item('T').percentage < proportional.item('T').percentage
    assert prioritized.total_percentage == pytest.approx(100.0, abs=1e-3)


def test_unknown_inputs_raise():
    with pytest.raises(CatalogError):
        build_proposal(_profile(budget_mode='yolo'))
    with pytest.raises(CatalogError):
        build_proposal(_profile(non_monthly_planning_level='sometimes'))
    with pytest.raises(CatalogError):
        build_proposal(_profile(income_band_id='band_x'))


def test_non_positive_anchor_rejected():
    with pytest.raises(ValueError):
        build_proposal(_profile(income_anchor=0))


def test_proposal_reports_estimated_income():
    assert build_proposal(_profile()).estimated_income == 22500
