"""Zero-sum allocation controller.

Every category change is paid for by the ``IF`` buffer line: raising a
category consumes buffer, lowering it returns the difference. An edit that
would push the buffer below zero is rejected and the allocation is returned
unchanged. Only the edited category and ``IF`` ever change in one call.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from .catalog import BUFFER_CODE, engine_constants, to_prefix_code
from .errors import RejectionReason
from .models import Allocation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditResult:
    allocation: Allocation
    accepted: bool
    reason: Optional[RejectionReason] = None

    @property
    def message(self) -> str:
        return self.reason.message if self.reason else ''


def _reject(allocation: Allocation, reason: RejectionReason) -> EditResult:
    logger.debug("Edit rejected: %s", reason.value)
    return EditResult(allocation=allocation, accepted=False, reason=reason)


def apply_percentage_change(allocation: Allocation, prefix_code: Any, new_percentage: float) -> EditResult:
    """Set one category to ``new_percentage`` and compensate through ``IF``.

    Args:
        allocation: Current allocation (left untouched)
        prefix_code: Category to edit; ``IF`` itself is never settable
        new_percentage: Target percentage on the 0-100 scale

    Returns:
        EditResult with the new allocation when accepted, or the original
        allocation plus a rejection reason

    Raises:
        UnknownPrefixError: If the category is not part of the allocation
    """
    code = to_prefix_code(prefix_code)
    if code is BUFFER_CODE:
        return _reject(allocation, RejectionReason.BUFFER_NOT_EDITABLE)

    target = allocation.item(code)
    buffer = allocation.buffer
    if not math.isfinite(new_percentage) or new_percentage < 0:
        return _reject(allocation, RejectionReason.INVALID_PERCENTAGE)

    delta = new_percentage - target.percentage
    new_buffer = buffer.percentage - delta
    if new_buffer < 0:
        # within epsilon of zero counts as draining the buffer exactly
        if new_buffer < -engine_constants().internal_epsilon:
            return _reject(allocation, RejectionReason.INSUFFICIENT_BUFFER)
        new_buffer = 0.0

    updated = allocation.replace_items(
        target.with_percentage(allocation.income, new_percentage, edited=True),
        buffer.with_percentage(allocation.income, new_buffer),
    )
    logger.debug(
        "Edit accepted: %s %.4f -> %.4f, IF %.4f -> %.4f",
        code, target.percentage, new_percentage, buffer.percentage, new_buffer,
    )
    return EditResult(allocation=updated, accepted=True)


def apply_amount_change(allocation: Allocation, prefix_code: Any, new_amount: float) -> EditResult:
    """Currency-denominated variant of :func:`apply_percentage_change`."""
    return apply_percentage_change(allocation, prefix_code, new_amount / allocation.income * 100)


def max_percentage(allocation: Allocation, prefix_code: Any) -> float:
    """Upper editing bound for a category: its share plus the buffer, capped."""
    cap = engine_constants().max_category_percentage
    code = to_prefix_code(prefix_code)
    if code is BUFFER_CODE:
        return allocation.buffer.percentage
    return min(cap, allocation.item(code).percentage + allocation.buffer.percentage)


def buffer_status(allocation: Allocation) -> str:
    """Health label for the buffer: critical, warning, healthy or excellent."""
    constants = engine_constants()
    percentage = allocation.buffer.percentage
    if percentage <= 0:
        return 'critical'
    if percentage < constants.buffer_warning_percentage:
        return 'warning'
    if percentage < constants.buffer_healthy_percentage:
        return 'healthy'
    return 'excellent'


def is_buffer_exhausted(allocation: Allocation) -> bool:
    """True when the buffer is too small to fund any meaningful increase."""
    return allocation.buffer.percentage <= engine_constants().buffer_exhausted_percentage
