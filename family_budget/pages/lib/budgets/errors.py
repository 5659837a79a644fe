"""Error taxonomy for the budget engine.

Expected outcomes (a rejected edit, a failed validation) are reported as
values carrying one of the codes below. Exceptions are reserved for states
that indicate a caller or integration bug.
"""

from __future__ import annotations

from enum import Enum


class BudgetEngineError(Exception):
    """Common base class for budget engine exceptions."""


class CatalogError(BudgetEngineError, ValueError):
    """Reference data is malformed or a lookup key does not exist."""


class AllocationError(BudgetEngineError, ValueError):
    """An allocation was built in a structurally invalid way."""


class UnknownPrefixError(BudgetEngineError, KeyError):
    """A prefix code is not part of the allocation being edited."""


class UnknownSubcategoryError(BudgetEngineError, KeyError):
    """A subcategory id is not part of the category being edited."""


class SessionStateError(BudgetEngineError, RuntimeError):
    """An onboarding action was issued in a stage that does not allow it."""


class RejectionReason(str, Enum):
    """Why an edit was refused. The allocation is left untouched."""

    INSUFFICIENT_BUFFER = 'INSUFFICIENT_BUFFER'
    BUFFER_NOT_EDITABLE = 'BUFFER_NOT_EDITABLE'
    INVALID_PERCENTAGE = 'INVALID_PERCENTAGE'
    INVALID_AMOUNT = 'INVALID_AMOUNT'
    NOTHING_TO_RECONCILE = 'NOTHING_TO_RECONCILE'

    @property
    def message(self) -> str:
        return REJECTION_MESSAGES[self]


REJECTION_MESSAGES = {
    RejectionReason.INSUFFICIENT_BUFFER: (
        'Insufficient buffer: reduce another category or increase income.'
    ),
    RejectionReason.BUFFER_NOT_EDITABLE: (
        'The financial independence buffer is adjusted automatically and cannot be set directly.'
    ),
    RejectionReason.INVALID_PERCENTAGE: 'A category percentage must be a finite number of zero or more.',
    RejectionReason.INVALID_AMOUNT: 'A subcategory amount must be a finite number of zero or more.',
    RejectionReason.NOTHING_TO_RECONCILE: 'Subcategories already match the category total.',
}


class ErrorKind(str, Enum):
    """Problems reported by the validation gate."""

    SUM_MISMATCH = 'SUM_MISMATCH'
    NEGATIVE_BUFFER = 'NEGATIVE_BUFFER'
    SUBCATEGORY_OVER = 'SUBCATEGORY_OVER'


class WarningKind(str, Enum):
    """Informational, non-blocking notices raised during generation."""

    GENERATION_FLOOR_CLAMP = 'GENERATION_FLOOR_CLAMP'
