"""Shared pytest fixtures for the tax engine tests."""

from decimal import Decimal

import pytest

from taxengine.core.config import settings
from taxengine.federal.models import FilingParameters, IncomeRecord, WithholdingRecord


@pytest.fixture(autouse=True)
def default_tax_year():
    """Pin the configured default year so tests do not depend on the environment."""
    original = settings.default_tax_year
    settings.default_tax_year = 2025
    try:
        yield 2025
    finally:
        settings.default_tax_year = original


@pytest.fixture
def no_withholdings() -> WithholdingRecord:
    """A withholding record with nothing withheld."""
    return WithholdingRecord()


@pytest.fixture
def single_2023() -> FilingParameters:
    """Single filer, tax year 2023, standard deduction."""
    return FilingParameters(filing_status="single", tax_year=2023)


@pytest.fixture
def wages_50k() -> IncomeRecord:
    """$50,000 of W-2 wages and nothing else."""
    return IncomeRecord(wages=Decimal("50000"))
