"""Allocation analytics dataframes.

This module flattens an :class:`~.models.Allocation` into pandas frames
for display and reporting: one row per budget line, the largest spending
lines and a one-row summary of the allocation's health.
"""

from __future__ import annotations

import pandas as pd

from .allocation import buffer_status, is_buffer_exhausted
from .catalog import BUFFER_CODE
from .models import Allocation
from .reconciler import reconcile_status

FRAME_COLUMNS = [
    'Code', 'Category', 'CategoryId', 'Percent', 'Amount',
    'Edited', 'SubcategoryTotal', 'Status',
]


def allocation_frame(allocation: Allocation) -> pd.DataFrame:
    """Create one row per budget line.

    Args:
        allocation: Allocation to flatten

    Returns:
        DataFrame with columns: Code, Category, CategoryId, Percent, Amount,
        Edited, SubcategoryTotal, Status. ``Status`` is the reconcile status
        (ok/under/over); lines without subcategories are ``ok``.

    Example:
        >>> df = allocation_frame(allocation)
        >>> df.loc[df['Code'] == 'IF', 'Percent'].iloc[0]
        6.0
    """
    rows = []
    for item in allocation.items:
        rows.append({
            'Code': item.prefix_code.value,
            'Category': item.name,
            'CategoryId': item.category_id,
            'Percent': item.percentage,
            'Amount': item.amount,
            'Edited': item.is_edited,
            'SubcategoryTotal': item.subcategory_total if item.subcategories else None,
            'Status': reconcile_status(item).status,
        })
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def top_categories(allocation: Allocation, n: int = 5) -> pd.DataFrame:
    """Return the ``n`` largest spending lines by amount; ``IF`` is excluded."""
    df = allocation_frame(allocation)
    df = df[df['Code'] != BUFFER_CODE.value]
    return df.sort_values(['Amount', 'Code'], ascending=[False, True]).head(n).reset_index(drop=True)


def allocation_summary(allocation: Allocation) -> pd.DataFrame:
    """Create a one-row summary of the allocation.

    Returns:
        DataFrame with columns: Income, TotalPercent, TotalAmount, Buffer,
        BufferAmount, BufferStatus, BufferExhausted, EditedLines,
        UnreconciledLines
    """
    df = allocation_frame(allocation)
    buffer = allocation.buffer
    return pd.DataFrame([{
        'Income': allocation.income,
        'TotalPercent': round(allocation.total_percentage, 4),
        'TotalAmount': allocation.total_amount,
        'Buffer': buffer.percentage,
        'BufferAmount': buffer.amount,
        'BufferStatus': buffer_status(allocation),
        'BufferExhausted': is_buffer_exhausted(allocation),
        'EditedLines': int(df['Edited'].sum()),
        'UnreconciledLines': int((df['Status'] != 'ok').sum()),
    }])
