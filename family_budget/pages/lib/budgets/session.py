"""Onboarding session state machine.

The session owns the in-memory allocation between generation and
persistence::

    wizard -> acceptance -> accept  -> persisted
                         -> adjust  -> adjustment -> confirm -> persisted

Going back to the wizard discards the generated allocation; it is rebuilt
on the next forward pass. Once adjustment has started the session cannot
return to acceptance. Edits are only allowed during adjustment and are
applied one at a time, each starting from the allocation the previous one
committed.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Iterable, Optional, Protocol, Tuple

from . import allocation as controller
from . import reconciler
from .allocation import EditResult
from .errors import SessionStateError
from .models import Allocation, SubcategoryBudget
from .pipeline import (
    BudgetProposal,
    GenerationWarning,
    OnboardingProfile,
    RedistributionPolicy,
    build_proposal,
    redistribute_proportionally,
)
from .validation import ValidationResult, validate

logger = logging.getLogger(__name__)


class AllocationSink(Protocol):
    """Anything able to persist a confirmed allocation."""

    def save(self, name: str, allocation: Allocation, adjusted: bool) -> Any:
        ...


class Stage(str, Enum):
    WIZARD = 'wizard'
    ACCEPTANCE = 'acceptance'
    ADJUSTMENT = 'adjustment'
    PERSISTED = 'persisted'


class OnboardingSession:
    """Drive one household from wizard answers to a persisted allocation.

    Args:
        name: Household name handed to the persistence collaborator
        sink: Persistence collaborator (e.g. :class:`~.storage.AllocationStorage`)
        redistribution_policy: Policy used for inactive conditional lines
        block_on_subcategory_over: Passed through to :func:`~.validation.validate`
    """

    def __init__(
        self,
        name: str,
        sink: AllocationSink,
        redistribution_policy: RedistributionPolicy = redistribute_proportionally,
        block_on_subcategory_over: bool = True,
    ) -> None:
        self.name = name
        self.sink = sink
        self.redistribution_policy = redistribution_policy
        self.block_on_subcategory_over = block_on_subcategory_over
        self.stage = Stage.WIZARD
        self.profile: Optional[OnboardingProfile] = None
        self.proposal: Optional[BudgetProposal] = None
        self.allocation: Optional[Allocation] = None
        self.adjusted = False
        self.saved: Any = None

    # Transitions ------------------------------------------------------------

    def _require(self, *stages: Stage) -> None:
        if self.stage not in stages:
            allowed = ', '.join(s.value for s in stages)
            raise SessionStateError(f"Action not allowed in stage '{self.stage.value}' (expected {allowed})")

    def submit_profile(self, profile: OnboardingProfile) -> BudgetProposal:
        """Generate the proposal from wizard answers and move to acceptance."""
        self._require(Stage.WIZARD)
        proposal = build_proposal(profile, self.redistribution_policy)
        self.profile = profile
        self.proposal = proposal
        self.allocation = proposal.allocation
        self.stage = Stage.ACCEPTANCE
        logger.info(
            "Generated proposal for '%s' (%s/%s, %d lines)",
            self.name, profile.income_band_id, profile.sub_band_position, len(proposal.allocation.items),
        )
        return proposal

    def back_to_wizard(self) -> None:
        """Return to the wizard, discarding the generated allocation."""
        self._require(Stage.ACCEPTANCE, Stage.ADJUSTMENT)
        self.proposal = None
        self.allocation = None
        self.adjusted = False
        self.stage = Stage.WIZARD

    def accept(self) -> ValidationResult:
        """Persist the proposal as-is; every line is stored as not edited.

        Goes through the same validation gate as :meth:`confirm`; the
        session stays in acceptance when it fails.
        """
        self._require(Stage.ACCEPTANCE)
        result = self.validate()
        if not result.valid:
            logger.info("Accept blocked for '%s': %s", self.name, [e.value for e in result.errors])
            return result
        final = self.allocation.mark_all_unedited()
        self.saved = self.sink.save(self.name, final, False)
        self.allocation = final
        self.adjusted = False
        self.stage = Stage.PERSISTED
        return result

    def adjust(self) -> Allocation:
        """Enter interactive adjustment of the proposal."""
        self._require(Stage.ACCEPTANCE)
        self.adjusted = True
        self.stage = Stage.ADJUSTMENT
        return self.allocation

    def confirm(self) -> ValidationResult:
        """Validate the adjusted allocation and persist it when valid.

        The session stays in adjustment when validation fails.
        """
        self._require(Stage.ADJUSTMENT)
        result = self.validate()
        if not result.valid:
            logger.info("Confirm blocked for '%s': %s", self.name, [e.value for e in result.errors])
            return result
        self.saved = self.sink.save(self.name, self.allocation, True)
        self.stage = Stage.PERSISTED
        return result

    # Editing ----------------------------------------------------------------

    def _commit(self, result: EditResult) -> EditResult:
        if result.accepted:
            self.allocation = result.allocation
        return result

    def set_percentage(self, prefix_code: Any, new_percentage: float) -> EditResult:
        self._require(Stage.ADJUSTMENT)
        return self._commit(controller.apply_percentage_change(self.allocation, prefix_code, new_percentage))

    def set_amount(self, prefix_code: Any, new_amount: float) -> EditResult:
        self._require(Stage.ADJUSTMENT)
        return self._commit(controller.apply_amount_change(self.allocation, prefix_code, new_amount))

    def set_subcategories(self, prefix_code: Any, subcategories: Iterable[SubcategoryBudget]) -> Allocation:
        self._require(Stage.ADJUSTMENT)
        self.allocation = reconciler.set_subcategories(self.allocation, prefix_code, subcategories)
        return self.allocation

    def seed_subcategories(self, prefix_code: Any) -> Allocation:
        self._require(Stage.ADJUSTMENT)
        self.allocation = reconciler.seed_subcategories(self.allocation, prefix_code)
        return self.allocation

    def update_subcategory(self, prefix_code: Any, subcategory_id: str, new_amount: float) -> EditResult:
        self._require(Stage.ADJUSTMENT)
        return self._commit(
            reconciler.update_subcategory_amount(self.allocation, prefix_code, subcategory_id, new_amount)
        )

    def shrink_to_subcategories(self, prefix_code: Any) -> EditResult:
        self._require(Stage.ADJUSTMENT)
        return self._commit(reconciler.shrink_category_to_match(self.allocation, prefix_code))

    def grow_to_subcategories(self, prefix_code: Any) -> EditResult:
        self._require(Stage.ADJUSTMENT)
        return self._commit(reconciler.grow_category_to_match(self.allocation, prefix_code))

    # Read-only helpers ------------------------------------------------------

    def validate(self) -> ValidationResult:
        self._require(Stage.ACCEPTANCE, Stage.ADJUSTMENT, Stage.PERSISTED)
        return validate(self.allocation, block_on_subcategory_over=self.block_on_subcategory_over)

    @property
    def warnings(self) -> Tuple[GenerationWarning, ...]:
        return self.proposal.warnings if self.proposal else ()
