"""Command‑line interface for the loan schedule.

This module uses the ``click`` library to implement a multi‑command interface.
Users can print the full amortization schedule of a loan (as CSV, Markdown or
HTML) with optional lump-sum payments read from a CSV file, or view a summary
comparing the loan with and without those lump sums. Loan options can also be
supplied through ``LOAN_SCHEDULE_*`` environment variables.
"""

from __future__ import annotations

import logging
import sys
from functools import wraps
from pathlib import Path
from typing import Callable, Optional

import click

from .data_models import LoanTerms
from .engine import generate_schedule, summarize
from .exceptions import AmortizationError
from .formatter import render, render_summary
from .ledger import LumpSumLedger, read_lump_sum_records

VERSION = "1.0.0"
OUTPUT_FORMATS = ("csv", "markdown", "html")

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def loan_options(command: Callable) -> Callable:
    """Attach the options describing the loan and the lump-sum file."""
    options = [
        click.argument(
            "lump_sums",
            required=False,
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
        ),
        click.option("--loan-amount", "-a", "loan_amount", required=True, envvar="LOAN_SCHEDULE_LOAN_AMOUNT", help="Initial loan amount"),
        click.option("--interest", "-i", "interest", required=True, envvar="LOAN_SCHEDULE_INTEREST", help="Annual interest rate (i.e. 5 for 5%)"),
        click.option("--years", "-y", "years", required=True, type=int, envvar="LOAN_SCHEDULE_YEARS", help="The term in number of years"),
        click.option(
            "--start-date",
            "-s",
            "start_date",
            required=True,
            envvar="LOAN_SCHEDULE_START_DATE",
            help="Start date of loan repayment (e.g. 'September 9 2019')",
        ),
    ]
    for option in reversed(options):
        command = option(command)
    return command


def handle_errors(command: Callable) -> Callable:
    """Report schedule errors as click errors instead of tracebacks."""

    @wraps(command)
    def wrapper(*args, **kwargs):
        try:
            return command(*args, **kwargs)
        except AmortizationError as exc:
            raise click.ClickException(str(exc)) from exc

    return wrapper


def build_terms(loan_amount: str, interest: str, years: int, start_date: str) -> LoanTerms:
    terms = LoanTerms.create(principal=loan_amount, annual_rate=interest, years=years, start_date=start_date)
    logger.debug(
        "Loan of %s at %s%% over %d years starting %s",
        terms.principal,
        terms.annual_rate,
        terms.years,
        terms.start_date.isoformat(),
    )
    return terms


def load_ledger(path: Optional[Path], payment_day: int) -> LumpSumLedger:
    if path is None:
        return LumpSumLedger()
    ledger = LumpSumLedger.from_records(read_lump_sum_records(path), payment_day)
    logger.debug("Read %d lump sums from %s", len(ledger), path)
    return ledger


@click.group()
@click.version_option(VERSION)
@click.option("--verbose", "-v", is_flag=True, help="Verbose mode.")
def cli(verbose: bool) -> None:
    """Fixed-rate loan amortization schedules with lump-sum payments."""
    configure_logging(verbose)


@cli.command()
@loan_options
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(OUTPUT_FORMATS),
    default="csv",
    show_default=True,
    help="The output format",
)
@click.option("--output", "-o", "output", type=click.Path(dir_okay=False, path_type=Path), help="Output file path")
@handle_errors
def schedule(
    lump_sums: Optional[Path],
    loan_amount: str,
    interest: str,
    years: int,
    start_date: str,
    output_format: str,
    output: Optional[Path],
) -> None:
    """Compute and print the full amortization schedule.

    LUMP_SUMS is an optional CSV file of extra payments, one per line, in the
    format 'date,amount' or 'date,amount,original amount,currency,exchange
    rate,exchange rate date'.
    """
    terms = build_terms(loan_amount, interest, years, start_date)
    ledger = load_ledger(lump_sums, terms.payment_day)
    rows = generate_schedule(terms, ledger)
    logger.debug("Output mode: %s", output_format)
    document = render(output_format, rows, ledger)
    if output:
        output.write_text(document, encoding="utf-8")
        click.echo(f"Schedule exported to {output}")
    else:
        click.echo(document, nl=False)


@cli.command()
@loan_options
@handle_errors
def summary(
    lump_sums: Optional[Path],
    loan_amount: str,
    interest: str,
    years: int,
    start_date: str,
) -> None:
    """Compute and print only the summary metrics for a loan.

    When a lump-sum file is given, the summary is compared with the same loan
    repaid without lump sums.
    """
    terms = build_terms(loan_amount, interest, years, start_date)
    ledger = load_ledger(lump_sums, terms.payment_day)
    rows = generate_schedule(terms, ledger)
    baseline = generate_schedule(terms) if ledger else None
    click.echo(render_summary(summarize(terms, rows, baseline)), nl=False)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
