"""Output helpers for the loan schedule.

This module renders computed schedules as CSV, as a Markdown document or as a
styled HTML page, and renders the summary as plain text. Rendering works on
already computed rows: amounts are formatted as currency strings and nothing
is recalculated here. The HTML page is produced from a Jinja2 template shipped
with the package.
"""

from __future__ import annotations

import csv
import io
from decimal import Decimal
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .data_models import LumpSumPayment, RowKind, ScheduleRow
from .ledger import LumpSumLedger
from .utils import format_currency, format_payment_date

HEADER = ["Date", "Type", "Interest", "Principal", "Payment", "Balance"]
REPORT_TITLE = "Amortization Report"
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

_environment = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


def schedule_to_records(schedule: Iterable[ScheduleRow]) -> List[List[str]]:
    """Convert schedule rows into text records, header first."""
    records = [list(HEADER)]
    for row in schedule:
        records.append(
            [
                format_payment_date(row.date),
                row.kind.value,
                format_currency(row.interest),
                format_currency(row.principal),
                format_currency(row.payment),
                format_currency(row.balance),
            ]
        )
    return records


def describe_lump_sum(payment: LumpSumPayment) -> str:
    line = f"{format_payment_date(payment.paid_on)}: {format_currency(payment.amount)}"
    if payment.converted:
        line += f" ({payment.original_amount:,.2f} {payment.original_currency}"
        if payment.exchange_rate is not None:
            line += f" at {payment.exchange_rate}"
        if payment.exchange_rate_date is not None:
            line += f" on {format_payment_date(payment.exchange_rate_date)}"
        line += ")"
    return line


def describe_lump_sums(ledger: Optional[LumpSumLedger]) -> List[str]:
    """Return one line per lump sum, in payment date order."""
    if not ledger:
        return []
    return [describe_lump_sum(payment) for payment in ledger.payments()]


def render_csv(schedule: Iterable[ScheduleRow]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(schedule_to_records(schedule))
    return buffer.getvalue()


def render_markdown(schedule: Iterable[ScheduleRow], ledger: Optional[LumpSumLedger] = None) -> str:
    """Render the schedule as a Markdown table.

    Text columns are left aligned and amount columns right aligned. When the
    ledger holds lump sums, they are listed in a section after the table.
    """
    records = schedule_to_records(schedule)
    widths = [max(len(record[i]) for record in records) for i in range(len(HEADER))]

    def cell(value: str, i: int) -> str:
        return value.ljust(widths[i]) if i < 2 else value.rjust(widths[i])

    lines = ["| " + " | ".join(cell(value, i) for i, value in enumerate(records[0])) + " |"]
    separators = []
    for i, width in enumerate(widths):
        dashes = "-" * max(width, 3)
        separators.append(dashes if i < 2 else dashes[:-1] + ":")
    lines.append("| " + " | ".join(separators) + " |")
    for record in records[1:]:
        lines.append("| " + " | ".join(cell(value, i) for i, value in enumerate(record)) + " |")

    lump_sums = describe_lump_sums(ledger)
    if lump_sums:
        lines.append("")
        lines.append("## Lump sums")
        lines.append("")
        lines.extend(f"- {line}" for line in lump_sums)
    return "\n".join(lines) + "\n"


def render_html(schedule: Iterable[ScheduleRow], ledger: Optional[LumpSumLedger] = None) -> str:
    """Render the schedule as a complete, styled HTML page."""
    schedule = list(schedule)
    records = schedule_to_records(schedule)
    rows = [
        {"fields": fields, "lump_sum": row.kind is RowKind.LUMP_SUM}
        for row, fields in zip(schedule, records[1:])
    ]
    template = _environment.get_template("report.html")
    return template.render(
        title=REPORT_TITLE,
        header=records[0],
        rows=rows,
        lump_sums=describe_lump_sums(ledger),
    )


RENDERERS = {
    "csv": lambda schedule, ledger: render_csv(schedule),
    "markdown": render_markdown,
    "html": render_html,
}


def render(output_format: str, schedule: List[ScheduleRow], ledger: Optional[LumpSumLedger] = None) -> str:
    try:
        renderer = RENDERERS[output_format]
    except KeyError:
        raise ValueError(f"Unsupported output format: {output_format}") from None
    return renderer(schedule, ledger)


def render_summary(summary: Dict[str, object]) -> str:
    """Render loan metrics in a human-readable format."""
    lines = [
        "Summary",
        "-" * 72,
        f"Principal          : {format_currency(summary['principal'])}",
        f"Monthly payment    : {format_currency(summary['monthly_payment'])}",
        f"Total interest     : {format_currency(summary['total_interest'])}",
    ]
    if summary.get("total_lump_sums"):
        lines.append(f"Total lump sums    : {format_currency(summary['total_lump_sums'])}")
    lines.extend(
        [
            f"Total paid         : {format_currency(summary['total_paid'])}",
            f"Payments made      : {summary['payments_made']}",
            f"Scheduled end date : {format_payment_date(summary['scheduled_end_date'])}",
            f"Payoff date        : {format_payment_date(summary['payoff_date'])}",
        ]
    )
    if summary.get("final_balance", Decimal("0")) > 0:
        lines.append(f"Remaining balance  : {format_currency(summary['final_balance'])}")
    comparison = summary.get("comparison")
    if comparison:
        lines.append(f"Baseline interest  : {format_currency(comparison['baseline_total_interest'])}")
        lines.append(f"Interest saved     : {format_currency(comparison['interest_saved'])}")
        if comparison.get("months_saved"):
            lines.append(f"Term reduction     : {int(comparison['months_saved'])} months")
    lines.append("-" * 72)
    return "\n".join(lines) + "\n"
