"""Lump-sum ledger.

The ledger turns raw extra-payment records (as read from a CSV file) into an
immutable mapping from :class:`PaymentPeriod` to :class:`LumpSumPayment`. The
schedule generator consults it once per period.

A record is either ``date,amount`` or
``date,amount,original amount,currency,exchange rate,exchange rate date``.
The first record may be a header row; it is skipped when its date or amount
does not parse.
"""

from __future__ import annotations

import calendar
import csv
import io
import logging
from collections.abc import Mapping
from datetime import date
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from .data_models import LumpSumPayment, PaymentPeriod
from .exceptions import DuplicateLumpSumError, MalformedRecordError
from .utils import decimal_from_str, parse_payment_date

logger = logging.getLogger(__name__)

SHORT_RECORD_LENGTH = 2
CONVERTED_RECORD_LENGTH = 6


def read_lump_sum_records(path: Path) -> List[List[str]]:
    """Read every record of a lump-sum CSV file.

    Raises
    ------
    MalformedRecordError
        If the file is not UTF-8 text; the error names the first line that
        does not decode.
    """
    data = path.read_bytes()
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        line = data.count(b"\n", 0, exc.start) + 1
        raise MalformedRecordError("not valid UTF-8 text", line, []) from exc
    return [[field.strip() for field in row] for row in csv.reader(io.StringIO(text, newline=""))]


def normalize_period(paid_on: date, payment_day: int) -> PaymentPeriod:
    """Return the payment period settled by a payment made on ``paid_on``.

    A payment made before the contractual day of its month settles the
    previous month's period. In months shorter than the contractual day,
    the last day of the month is the payment day.
    """
    due_day = min(payment_day, calendar.monthrange(paid_on.year, paid_on.month)[1])
    if paid_on.day < due_day:
        if paid_on.month == 1:
            return PaymentPeriod(paid_on.year - 1, 12, payment_day)
        return PaymentPeriod(paid_on.year, paid_on.month - 1, payment_day)
    return PaymentPeriod(paid_on.year, paid_on.month, payment_day)


class LumpSumLedger(Mapping):
    """Immutable mapping of payment periods to the lump sum paid in them."""

    def __init__(self, payments: Optional[Dict[PaymentPeriod, LumpSumPayment]] = None) -> None:
        self._payments = MappingProxyType(dict(payments or {}))

    @classmethod
    def from_records(cls, records: Iterable[Sequence[str]], payment_day: int) -> "LumpSumLedger":
        """Build a ledger from raw records.

        Parameters
        ----------
        records: Iterable[Sequence[str]]
            Records in file order. Empty records are ignored.
        payment_day: int
            The loan's contractual day of month.

        Raises
        ------
        MalformedRecordError
            If a record (other than a leading header) does not parse.
        DuplicateLumpSumError
            If two records settle the same period.
        """
        payments: Dict[PaymentPeriod, LumpSumPayment] = {}
        first = True
        for index, record in enumerate(records):
            line = index + 1
            if not record or all(not field.strip() for field in record):
                continue
            payment = _parse_record(record, line, payment_day, header_allowed=first)
            first = False
            if payment is None:
                continue
            if payment.period in payments:
                raise DuplicateLumpSumError(payment.period, line)
            payments[payment.period] = payment
            logger.debug(
                "Lump sum of %s paid on %s settles period %s",
                payment.amount,
                payment.paid_on.isoformat(),
                payment.period,
            )
        return cls(payments)

    def __getitem__(self, period: PaymentPeriod) -> LumpSumPayment:
        return self._payments[period]

    def __iter__(self) -> Iterator[PaymentPeriod]:
        return iter(self._payments)

    def __len__(self) -> int:
        return len(self._payments)

    def __repr__(self) -> str:
        return f"LumpSumLedger({dict(self._payments)!r})"

    def payments(self) -> List[LumpSumPayment]:
        """Return the lump sums ordered by payment date."""
        return sorted(self._payments.values(), key=lambda p: p.paid_on)


def _parse_record(record: Sequence[str], line: int, payment_day: int, header_allowed: bool) -> Optional[LumpSumPayment]:
    if len(record) not in (SHORT_RECORD_LENGTH, CONVERTED_RECORD_LENGTH):
        raise MalformedRecordError(
            "expected 'date,amount' or 'date,amount,original amount,currency,exchange rate,exchange rate date'",
            line,
            record,
        )

    try:
        paid_on = parse_payment_date(record[0])
    except ValueError as exc:
        if header_allowed:
            logger.info("Skipping what looks like a header row: %s", list(record))
            return None
        raise MalformedRecordError(f"invalid payment date: {exc}", line, record) from exc

    try:
        amount = decimal_from_str(record[1])
    except ValueError as exc:
        if header_allowed:
            logger.info("Skipping what looks like a header row: %s", list(record))
            return None
        raise MalformedRecordError(f"invalid payment amount: {exc}", line, record) from exc
    if amount <= 0:
        raise MalformedRecordError(f"payment amount must be positive; got {amount}", line, record)

    period = normalize_period(paid_on, payment_day)
    if len(record) == SHORT_RECORD_LENGTH:
        return LumpSumPayment(period=period, paid_on=paid_on, amount=amount)

    original_amount_text, currency, rate_text, rate_date_text = record[2:]
    try:
        original_amount = decimal_from_str(original_amount_text)
        exchange_rate = decimal_from_str(rate_text)
        exchange_rate_date = parse_payment_date(rate_date_text)
    except ValueError as exc:
        raise MalformedRecordError(f"invalid currency conversion details: {exc}", line, record) from exc
    currency = currency.strip().upper()
    if not currency:
        raise MalformedRecordError("missing original currency code", line, record)
    if exchange_rate <= 0:
        raise MalformedRecordError(f"exchange rate must be positive; got {exchange_rate}", line, record)

    return LumpSumPayment(
        period=period,
        paid_on=paid_on,
        amount=amount,
        original_amount=original_amount,
        original_currency=currency,
        exchange_rate=exchange_rate,
        exchange_rate_date=exchange_rate_date,
    )
