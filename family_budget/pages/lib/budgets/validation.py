"""Pre-commit validation gate.

Every check runs independently so all problems can be shown together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from .catalog import engine_constants
from .errors import ErrorKind
from .models import Allocation
from .reconciler import STATUS_OVER, reconcile_all


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: Tuple[ErrorKind, ...] = field(default_factory=tuple)
    over_categories: Tuple[str, ...] = field(default_factory=tuple)
    total_percentage: float = 100.0

    def has(self, kind: ErrorKind) -> bool:
        return kind in self.errors


def validate(allocation: Allocation, *, block_on_subcategory_over: bool = True) -> ValidationResult:
    """Check an allocation before it is handed to persistence.

    Args:
        allocation: Allocation to check
        block_on_subcategory_over: When False, categories whose
            subcategories exceed them are still listed in
            ``over_categories`` but do not make the result invalid

    Returns:
        ValidationResult; ``valid`` is False while any blocking error exists
    """
    constants = engine_constants()
    errors = []

    total = allocation.total_percentage
    if abs(total - 100.0) > constants.sum_tolerance_percent:
        errors.append(ErrorKind.SUM_MISMATCH)

    if allocation.buffer.percentage < 0:
        errors.append(ErrorKind.NEGATIVE_BUFFER)

    over = tuple(report.prefix_code for report in reconcile_all(allocation) if report.status == STATUS_OVER)
    if over and block_on_subcategory_over:
        errors.append(ErrorKind.SUBCATEGORY_OVER)

    return ValidationResult(
        valid=not errors,
        errors=tuple(errors),
        over_categories=over,
        total_percentage=total,
    )
