"""Errors raised while building a lump-sum ledger or generating a schedule.

Every error is an input validation failure: none of them is transient, so
callers are expected to report them and stop rather than retry.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .data_models import LumpSumPayment, PaymentPeriod


class AmortizationError(Exception):
    """Base class for all loan schedule errors."""

    pass


class InvalidInputError(AmortizationError, ValueError):
    """Loan terms are out of range or the start date cannot be parsed."""

    pass


class MalformedRecordError(AmortizationError):
    """A lump-sum record could not be parsed."""

    def __init__(self, message: str, line: int, record: Sequence[str]) -> None:
        details = f" (record: {list(record)})" if record else ""
        super().__init__(f"line {line}: {message}{details}")
        self.line = line
        self.record = list(record)


class DuplicateLumpSumError(AmortizationError):
    """Two lump-sum records fall into the same payment period."""

    def __init__(self, period: PaymentPeriod, line: int) -> None:
        super().__init__(
            f"line {line}: a lump sum is already recorded for the period "
            f"{period.year}-{period.month:02d}-{period.day:02d}"
        )
        self.period = period
        self.line = line


class MisalignedLumpSumError(AmortizationError):
    """A lump sum is not dated on its period's contractual payment date."""

    def __init__(self, lump_sum: LumpSumPayment, expected_date: date) -> None:
        super().__init__(
            f"lump sum of {lump_sum.amount} paid on {lump_sum.paid_on.isoformat()} "
            f"must be paid on the contractual payment date {expected_date.isoformat()}"
        )
        self.lump_sum = lump_sum
        self.expected_date = expected_date
