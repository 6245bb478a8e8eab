"""Data models for the loan schedule.

This module defines dataclasses representing the entities the engine works
with: the loan terms, the payment periods lump sums are keyed on, the lump
sums themselves and the rows of the computed schedule. All of them are frozen
so they can be shared freely once built.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from .exceptions import InvalidInputError
from .utils import decimal_from_str, parse_payment_date


@dataclass(frozen=True)
class PaymentPeriod:
    """A recurring payment slot of the loan.

    ``day`` is always the loan's contractual payment day, which is why lump
    sums are normalized onto it before they are looked up.
    """

    year: int
    month: int
    day: int


@dataclass(frozen=True)
class LumpSumPayment:
    """An extra payment applied to the principal.

    Attributes
    ----------
    period: PaymentPeriod
        The normalized period the payment settles.
    paid_on: date
        The actual payment date, as supplied.
    amount: Decimal
        The amount applied to the balance, already in the loan's currency.
    original_amount, original_currency, exchange_rate, exchange_rate_date
        Conversion bookkeeping, present only when the payment was made in
        another currency. They are kept for reporting and never used in the
        arithmetic.
    """

    period: PaymentPeriod
    paid_on: date
    amount: Decimal
    original_amount: Optional[Decimal] = None
    original_currency: Optional[str] = None
    exchange_rate: Optional[Decimal] = None
    exchange_rate_date: Optional[date] = None

    @property
    def converted(self) -> bool:
        return self.original_amount is not None and self.original_currency is not None


class RowKind(enum.Enum):
    LOAN_PAYMENT = "Loan payment"
    LUMP_SUM = "Lump sum"


@dataclass(frozen=True)
class ScheduleRow:
    """One line of the amortization schedule.

    Period 0 is the opening row carrying the initial balance. Every later
    period has one ``LOAN_PAYMENT`` row, followed by a ``LUMP_SUM`` row when
    an extra payment was made in that period.
    """

    period: int
    date: date
    kind: RowKind
    interest: Decimal
    principal: Decimal
    payment: Decimal
    balance: Decimal


@dataclass(frozen=True)
class LoanTerms:
    """Configuration of a loan.

    The terms are built once from user input and passed to the engine, so a
    schedule only ever depends on its arguments.
    """

    principal: Decimal
    annual_rate: Decimal  # annual nominal interest rate in percent
    years: int
    start_date: date  # first date of the repayment calendar

    @classmethod
    def create(
        cls,
        principal: Union[Decimal, str, int],
        annual_rate: Union[Decimal, str, int],
        years: int,
        start_date: Union[date, str],
    ) -> "LoanTerms":
        """Validate raw inputs and return the corresponding terms.

        Raises
        ------
        InvalidInputError
            If the principal or term is not positive, the rate is negative or
            the start date cannot be parsed.
        """
        try:
            principal_value = principal if isinstance(principal, Decimal) else decimal_from_str(str(principal))
            rate_value = annual_rate if isinstance(annual_rate, Decimal) else decimal_from_str(str(annual_rate))
            start = start_date if isinstance(start_date, date) else parse_payment_date(start_date)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc
        if principal_value <= 0:
            raise InvalidInputError(f"Principal must be positive; got {principal_value}")
        if rate_value < 0:
            raise InvalidInputError(f"Interest rate cannot be negative; got {rate_value}")
        if years <= 0:
            raise InvalidInputError(f"Term must be a positive number of years; got {years}")
        return cls(principal=principal_value, annual_rate=rate_value, years=years, start_date=start)

    @property
    def monthly_rate(self) -> Decimal:
        return self.annual_rate / Decimal(100) / Decimal(12)

    @property
    def payment_count(self) -> int:
        return self.years * 12

    @property
    def payment_day(self) -> int:
        return self.start_date.day
