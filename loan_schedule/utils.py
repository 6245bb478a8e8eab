"""Utility functions for the loan schedule.

This module provides helpers for parsing user input into Python data types,
for handling dates (adding months, parsing and formatting payment dates) and
for the cent-level truncation and currency formatting used throughout the
engine and the renderers.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import ROUND_DOWN, Decimal, getcontext

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

CENT = Decimal("0.01")

# Tried in order; formats without a day resolve to the first of the month.
PAYMENT_DATE_FORMATS = (
    "%B %d %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%m/%d/%Y",
    "%B %Y",
    "%b %Y",
    "%m/%Y",
)


def parse_payment_date(value: str) -> date:
    """Parse a human-readable payment date such as ``"September 9 2019"``.

    Month/day/year and month/year forms are accepted, with full or
    abbreviated month names or numeric months (``"09/09/2019"``).

    Raises
    ------
    ValueError
        If the string matches none of the supported formats.
    """
    text = " ".join(value.split())
    for fmt in PAYMENT_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid payment date: {value!r} (expected e.g. 'September 9 2019')")


def format_payment_date(dt: date) -> str:
    """Format a date the way payment dates are written, e.g. ``"March 9 2020"``."""
    return f"{dt:%B} {dt.day} {dt.year}"


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The string is parsed at its full textual precision. Thousands separators
    are stripped. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.strip().replace(",", "")
        result = Decimal(cleaned)
    except Exception as exc:
        raise ValueError(f"Invalid numeric value: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value!r}")
    return result


def truncate_cents(amount: Decimal) -> Decimal:
    """Drop everything below the cent, rounding toward zero."""
    return amount.quantize(CENT, rounding=ROUND_DOWN)


def format_currency(amount: Decimal, symbol: str = "$") -> str:
    """Format an amount with thousands separators and two decimals."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"
