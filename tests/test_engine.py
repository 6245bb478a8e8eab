"""Unit tests for the periodic payment calculator and the schedule generator"""

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

import pytest

from loan_schedule.data_models import LoanTerms, RowKind
from loan_schedule.engine import calculate_periodic_payment, generate_schedule, summarize
from loan_schedule.exceptions import InvalidInputError, MisalignedLumpSumError
from loan_schedule.ledger import LumpSumLedger


def _ledger(*records, payment_day=9):
    return LumpSumLedger.from_records([list(r) for r in records], payment_day)


def _rows_for(schedule, period):
    return [row for row in schedule if row.period == period]


def test_periodic_payment_matches_annuity_formula(terms):
    payment = calculate_periodic_payment(terms.monthly_rate, terms.principal, terms.payment_count)
    assert payment.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP) == Decimal("1325.82")


def test_periodic_payment_with_zero_rate_divides_principal():
    payment = calculate_periodic_payment(Decimal("0"), Decimal("1200"), 12)
    assert payment == Decimal("100")


@pytest.mark.parametrize(
    "rate,principal,count",
    [
        (Decimal("-0.01"), Decimal("1000"), 12),
        (Decimal("0.01"), Decimal("0"), 12),
        (Decimal("0.01"), Decimal("-5"), 12),
        (Decimal("0.01"), Decimal("1000"), 0),
    ],
)
def test_periodic_payment_rejects_invalid_input(rate, principal, count):
    with pytest.raises(InvalidInputError):
        calculate_periodic_payment(rate, principal, count)


def test_opening_row_establishes_starting_balance(terms):
    opening = generate_schedule(terms)[0]

    assert opening.period == 0
    assert opening.date == date(2019, 9, 9)
    assert opening.kind is RowKind.LOAN_PAYMENT
    assert opening.interest == opening.principal == opening.payment == Decimal("0")
    assert opening.balance == Decimal("125000.00")


def test_first_period_is_truncated_to_the_cent(terms):
    first = generate_schedule(terms)[1]

    assert first.period == 1
    assert first.date == date(2019, 10, 9)
    assert first.interest == Decimal("520.83")
    assert first.principal == Decimal("804.98")
    assert first.payment == Decimal("1325.81")
    assert first.balance == Decimal("124195.02")


@pytest.mark.parametrize(
    "principal,rate,years",
    [
        ("125000.00", "5", 10),
        ("200000", "3.75", 30),
        ("300000", "7", 30),
        ("10000", "12", 1),
        ("5000", "0", 2),
    ],
)
def test_schedule_without_lump_sums_pays_off_loan_at_term(principal, rate, years):
    loan = LoanTerms.create(principal=principal, annual_rate=rate, years=years, start_date=date(2020, 1, 15))
    schedule = generate_schedule(loan)

    assert len(schedule) == loan.payment_count + 1
    assert schedule[-1].period == loan.payment_count
    assert schedule[-1].balance == Decimal("0")


def test_last_payment_settles_truncation_residue():
    loan = LoanTerms.create(principal="300000", annual_rate="7", years=30, start_date=date(2020, 1, 15))
    schedule = generate_schedule(loan)

    before_last, last = schedule[-2], schedule[-1]
    assert last.principal == before_last.balance
    assert last.payment == last.interest + last.principal
    assert sum(row.principal for row in schedule) == Decimal("300000.00")


def test_balance_is_non_increasing_without_lump_sums(terms):
    balances = [row.balance for row in generate_schedule(terms)]
    assert all(later <= earlier for earlier, later in zip(balances, balances[1:]))


def test_every_amount_has_at_most_two_decimals(terms):
    for row in generate_schedule(terms):
        for amount in (row.interest, row.principal, row.payment, row.balance):
            assert amount == amount.quantize(Decimal("0.01"))


def test_lump_sum_on_contractual_date_adds_second_row(terms):
    baseline = generate_schedule(terms)
    schedule = generate_schedule(terms, _ledger(("March 9 2020", "5000.00")))

    regular, lump = _rows_for(schedule, 6)
    assert regular == _rows_for(baseline, 6)[0]
    assert regular.date == date(2020, 3, 9)
    assert lump.kind is RowKind.LUMP_SUM
    assert lump.interest == Decimal("0")
    assert lump.principal == lump.payment == Decimal("5000.00")
    assert lump.balance == regular.balance - Decimal("5000.00")


def test_lump_sum_lowers_balance_for_the_rest_of_the_schedule(terms):
    baseline = generate_schedule(terms)
    schedule = generate_schedule(terms, _ledger(("March 9 2020", "5000.00")))

    baseline_balances = {row.period: row.balance for row in baseline}
    for row in schedule:
        if row.period > 6 and row.kind is RowKind.LOAN_PAYMENT and row.period in baseline_balances:
            assert row.balance < baseline_balances[row.period]
    assert schedule[-1].balance == Decimal("0")
    assert schedule[-1].period < terms.payment_count


def test_lump_sum_larger_than_balance_is_capped(caplog):
    loan = LoanTerms.create(principal="1000", annual_rate="12", years=1, start_date="January 20 2021")
    ledger = _ledger(("March 20 2021", "5000"), payment_day=20)

    with caplog.at_level(logging.WARNING, logger="loan_schedule.engine"):
        schedule = generate_schedule(loan, ledger)

    lump = schedule[-1]
    assert lump.kind is RowKind.LUMP_SUM
    assert lump.period == 2
    assert lump.principal == schedule[-2].balance
    assert lump.balance == Decimal("0")
    assert all(row.balance >= 0 and row.principal >= 0 for row in schedule)
    assert "exceeds the remaining balance" in caplog.text


def test_lump_sum_paid_later_in_the_month_is_misaligned(terms):
    ledger = _ledger(("March 15 2020", "1000"))

    with pytest.raises(MisalignedLumpSumError) as exc_info:
        generate_schedule(terms, ledger)

    assert exc_info.value.expected_date == date(2020, 3, 9)
    assert exc_info.value.lump_sum.paid_on == date(2020, 3, 15)
    assert "must be paid on the contractual payment date 2020-03-09" in str(exc_info.value)


def test_lump_sum_paid_before_due_day_is_checked_against_previous_period(terms):
    ledger = _ledger(("March 5 2020", "1000"))

    with pytest.raises(MisalignedLumpSumError) as exc_info:
        generate_schedule(terms, ledger)

    assert exc_info.value.expected_date == date(2020, 2, 9)


def test_lump_sum_outside_schedule_is_reported(terms, caplog):
    ledger = _ledger(("March 9 2035", "1000"))

    with caplog.at_level(logging.WARNING, logger="loan_schedule.engine"):
        schedule = generate_schedule(terms, ledger)

    assert all(row.kind is RowKind.LOAN_PAYMENT for row in schedule)
    assert "was never applied" in caplog.text


def test_summary_totals(terms):
    schedule = generate_schedule(terms)
    summary = summarize(terms, schedule)

    assert summary["payments_made"] == 120
    assert summary["lump_sums_applied"] == 0
    assert summary["total_principal"] + summary["final_balance"] == Decimal("125000.00")
    assert summary["total_interest"] == sum(row.interest for row in schedule)
    assert summary["scheduled_end_date"] == date(2029, 9, 9)
    assert "comparison" not in summary


def test_summary_compares_against_baseline(terms):
    schedule = generate_schedule(terms, _ledger(("March 9 2020", "5000.00")))
    summary = summarize(terms, schedule, baseline=generate_schedule(terms))

    assert summary["total_lump_sums"] == Decimal("5000.00")
    assert summary["comparison"]["interest_saved"] > 0
    assert summary["comparison"]["months_saved"] > 0
    assert summary["payoff_date"] < summary["scheduled_end_date"]


def test_lump_sum_on_short_month_end_payment_date_is_applied():
    loan = LoanTerms.create(principal="12000", annual_rate="6", years=1, start_date=date(2024, 1, 31))
    ledger = _ledger(("April 30 2024", "500"), payment_day=31)

    schedule = generate_schedule(loan, ledger)

    regular, lump = _rows_for(schedule, 3)
    assert regular.date == date(2024, 4, 30)
    assert lump.kind is RowKind.LUMP_SUM
    assert lump.date == date(2024, 4, 30)
    assert lump.balance == regular.balance - Decimal("500")
