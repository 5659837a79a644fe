"""Formatting utilities for currency and percentage display."""

from __future__ import annotations

from typing import Union


def format_currency(amount: Union[float, int], symbol: str = 'R$', decimals: int = 0) -> str:
    """Format a currency amount using Brazilian separators.

    Args:
        amount: The amount to format
        symbol: Currency symbol to prefix; pass an empty string to omit it
        decimals: Number of decimal places

    Returns:
        Formatted currency string (e.g., "R$ 22.500" or "1.234,56")

    Example:
        >>> format_currency(22500)
        'R$ 22.500'
        >>> format_currency(1234.56, symbol='', decimals=2)
        '1.234,56'
        >>> format_currency(-90)
        '-R$ 90'
    """
    formatted = f"{abs(amount):,.{decimals}f}"
    # swap US separators for pt-BR ones
    formatted = formatted.replace(',', '\x00').replace('.', ',').replace('\x00', '.')
    sign = '-' if amount < 0 else ''
    return f"{sign}{symbol} {formatted}" if symbol else f"{sign}{formatted}"


def format_percent(value: float, decimals: int = 1) -> str:
    """Format a 0-100 percentage.

    Example:
        >>> format_percent(12.345)
        '12.3%'
    """
    return f"{value:.{decimals}f}%"
