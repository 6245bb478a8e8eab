"""Pytest fixtures shared by the loan schedule tests"""

from datetime import date
from decimal import Decimal

import pytest

from loan_schedule.data_models import LoanTerms


@pytest.fixture
def terms() -> LoanTerms:
    """125,000.00 at 5% over 10 years, repaid on the 9th of each month"""
    return LoanTerms.create(
        principal=Decimal("125000.00"),
        annual_rate=Decimal("5"),
        years=10,
        start_date=date(2019, 9, 9),
    )


@pytest.fixture
def lump_sum_file(tmp_path):
    path = tmp_path / "lump_sums.csv"
    path.write_text(
        "Payment date,Amount\n"
        "March 9 2020,5000.00\n"
        '"September 9, 2021","4,444.44",4000.00,eur,1.1111,September 2 2021\n',
        encoding="utf-8",
    )
    return path
