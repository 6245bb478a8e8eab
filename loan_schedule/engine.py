"""Core calculation engine for the loan schedule.

This module implements the financial logic required to build the amortization
schedule of a fixed-rate loan. Every amount that changes the balance is
truncated to the cent as soon as it is computed, so the schedule never
accumulates sub-cent drift. Lump sums from a :class:`LumpSumLedger` are applied
after the regular payment of their period. A summary of the schedule, with an
optional comparison against a baseline without lump sums, is also provided.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from .data_models import LoanTerms, PaymentPeriod, RowKind, ScheduleRow
from .exceptions import InvalidInputError, MisalignedLumpSumError
from .ledger import LumpSumLedger
from .utils import add_months, format_payment_date, truncate_cents

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def calculate_periodic_payment(monthly_rate: Decimal, principal: Decimal, payment_count: int) -> Decimal:
    """Return the fixed monthly payment that amortizes a loan over its term.

    The formula is:

        payment = i * P / (1 - (1 + i)^-n)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``. The result is not rounded.
    """
    if payment_count <= 0:
        raise InvalidInputError(f"Payment count must be positive; got {payment_count}")
    if principal <= 0:
        raise InvalidInputError(f"Principal must be positive; got {principal}")
    if monthly_rate < 0:
        raise InvalidInputError(f"Monthly rate cannot be negative; got {monthly_rate}")
    if monthly_rate == 0:
        return principal / Decimal(payment_count)
    discount = (1 + monthly_rate) ** -payment_count
    return monthly_rate * principal / (1 - discount)


def generate_schedule(terms: LoanTerms, ledger: Optional[LumpSumLedger] = None) -> List[ScheduleRow]:
    """Compute the amortization schedule of a loan.

    Parameters
    ----------
    terms: LoanTerms
        The loan terms.
    ledger: LumpSumLedger, optional
        Extra payments, keyed by the period they settle.

    Returns
    -------
    List[ScheduleRow]
        The opening row (period 0) followed by one loan payment row per
        period and a lump sum row after it for every period with an extra
        payment. Generation stops early once the balance reaches zero, and
        the last scheduled payment clears whatever balance is left.

    Raises
    ------
    MisalignedLumpSumError
        If a lump sum for a period is not dated on the period's payment date.
    """
    ledger = ledger if ledger is not None else LumpSumLedger()
    monthly_rate = terms.monthly_rate
    fixed_payment = calculate_periodic_payment(monthly_rate, terms.principal, terms.payment_count)
    logger.debug(
        "Number of payments is %d, monthly interest rate is %s and monthly payment is %s",
        terms.payment_count,
        monthly_rate,
        fixed_payment,
    )

    balance = truncate_cents(terms.principal)
    schedule: List[ScheduleRow] = [
        ScheduleRow(
            period=0,
            date=terms.start_date,
            kind=RowKind.LOAN_PAYMENT,
            interest=ZERO,
            principal=ZERO,
            payment=ZERO,
            balance=balance,
        )
    ]
    applied = set()

    period = 1
    while period <= terms.payment_count and balance > 0:
        current_date = add_months(terms.start_date, period)
        interest = truncate_cents(balance * monthly_rate)
        if period == terms.payment_count:
            # Last scheduled payment settles the truncation residue.
            principal = balance
            payment = interest + principal
        else:
            principal = truncate_cents(min(fixed_payment - interest, balance))
            payment = min(fixed_payment, interest + principal)
        balance = truncate_cents(balance - principal)
        schedule.append(
            ScheduleRow(
                period=period,
                date=current_date,
                kind=RowKind.LOAN_PAYMENT,
                interest=interest,
                principal=principal,
                payment=payment,
                balance=balance,
            )
        )

        key = PaymentPeriod(current_date.year, current_date.month, terms.payment_day)
        lump_sum = ledger.get(key)
        if lump_sum is not None:
            if lump_sum.paid_on != current_date:
                raise MisalignedLumpSumError(lump_sum, current_date)
            amount = lump_sum.amount
            if amount > balance:
                logger.warning(
                    "Lump sum of %s on %s exceeds the remaining balance of %s; only the balance is applied",
                    amount,
                    format_payment_date(current_date),
                    balance,
                )
                amount = balance
            balance = truncate_cents(balance - amount)
            schedule.append(
                ScheduleRow(
                    period=period,
                    date=current_date,
                    kind=RowKind.LUMP_SUM,
                    interest=ZERO,
                    principal=amount,
                    payment=amount,
                    balance=balance,
                )
            )
            applied.add(key)

        period += 1

    for key, lump_sum in ledger.items():
        if key not in applied:
            logger.warning(
                "Lump sum of %s paid on %s was never applied: its period is outside the repayment schedule",
                lump_sum.amount,
                format_payment_date(lump_sum.paid_on),
            )

    return schedule


def summarize(
    terms: LoanTerms,
    schedule: List[ScheduleRow],
    baseline: Optional[List[ScheduleRow]] = None,
) -> Dict[str, object]:
    """Compute aggregate metrics of a schedule.

    When ``baseline`` (typically the same loan without lump sums) is given, the
    summary also includes a ``comparison`` entry with the interest and the
    number of months saved.
    """
    regular = [row for row in schedule if row.kind is RowKind.LOAN_PAYMENT and row.period > 0]
    lump_sums = [row for row in schedule if row.kind is RowKind.LUMP_SUM]
    total_interest = sum((row.interest for row in regular), ZERO)
    total_principal = sum((row.principal for row in schedule), ZERO)
    total_lump_sums = sum((row.principal for row in lump_sums), ZERO)
    final_balance = schedule[-1].balance if schedule else truncate_cents(terms.principal)
    payoff_date: date = schedule[-1].date if schedule else terms.start_date

    summary: Dict[str, object] = {
        "principal": truncate_cents(terms.principal),
        "monthly_payment": calculate_periodic_payment(terms.monthly_rate, terms.principal, terms.payment_count),
        "total_interest": total_interest,
        "total_principal": total_principal,
        "total_lump_sums": total_lump_sums,
        "total_paid": total_interest + total_principal,
        "payments_made": len(regular),
        "lump_sums_applied": len(lump_sums),
        "final_balance": final_balance,
        "scheduled_end_date": add_months(terms.start_date, terms.payment_count),
        "payoff_date": payoff_date,
    }

    if baseline is not None:
        baseline_summary = summarize(terms, baseline)
        summary["comparison"] = {
            "baseline_total_interest": baseline_summary["total_interest"],
            "interest_saved": baseline_summary["total_interest"] - total_interest,
            "months_saved": baseline_summary["payments_made"] - len(regular),
        }

    return summary
