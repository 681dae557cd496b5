"""Tax year-specific constants and thresholds.

This module centralizes tax year-specific values like wage bases, deduction
amounts, rate thresholds and the federal bracket schedules so no calculator
hardcodes them. Each configuration is keyed by the IRS tax year whose
revenue procedure published the numbers.

Example:
    >>> from taxengine.tax.year_config import get_tax_year_config
    >>> config = get_tax_year_config(2024)
    >>> print(f"SS wage base: {config.ss_wage_base}")
    SS wage base: 168600
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from taxengine.errors import InvalidInputError
from taxengine.tax.filing_status import FilingStatus

# (upper_bound, rate) pairs in ascending order; None marks the top bracket.
BracketBounds = tuple[tuple[Decimal | None, Decimal], ...]

FEDERAL_RATES: tuple[Decimal, ...] = (
    Decimal("0.10"),
    Decimal("0.12"),
    Decimal("0.22"),
    Decimal("0.24"),
    Decimal("0.32"),
    Decimal("0.35"),
    Decimal("0.37"),
)


def _schedule(*upper_bounds: int) -> BracketBounds:
    """Pair the six federal bracket ceilings with the seven statutory rates."""
    if len(upper_bounds) != len(FEDERAL_RATES) - 1:
        raise ValueError("Federal schedules need exactly six bracket ceilings")
    uppers: list[Decimal | None] = [Decimal(bound) for bound in upper_bounds]
    uppers.append(None)
    return tuple(zip(uppers, FEDERAL_RATES))


@dataclass(frozen=True)
class TaxYearConfig:
    """Tax year-specific constants and thresholds.

    All monetary values are Decimal for precision in tax calculations.
    This dataclass is frozen to prevent accidental modification.

    Attributes:
        tax_year: The tax year these values apply to.
        ss_wage_base: Social Security wage base limit.
        se_ss_rate: Combined Social Security rate on SE earnings (12.4%).
        se_medicare_rate: Combined Medicare rate on SE earnings (2.9%).
        se_net_earnings_factor: Share of net SE income subject to SE tax.
        additional_medicare_threshold_*: Additional Medicare thresholds.
        additional_medicare_rate: Additional Medicare rate (0.9%).
        standard_deduction_*: Standard deduction per filing status.
        brackets_*: Ordinary income bracket schedule per filing status.
    """

    tax_year: int

    # Social Security / Medicare
    ss_wage_base: Decimal
    additional_medicare_threshold_single: Decimal = Decimal("200000")
    additional_medicare_threshold_mfj: Decimal = Decimal("250000")
    additional_medicare_threshold_mfs: Decimal = Decimal("125000")
    additional_medicare_threshold_hoh: Decimal = Decimal("200000")
    additional_medicare_threshold_qw: Decimal = Decimal("200000")
    additional_medicare_rate: Decimal = Decimal("0.009")

    # Self-employment tax (combined employer + employee rates)
    se_ss_rate: Decimal = Decimal("0.124")  # 12.4% (6.2% x 2)
    se_medicare_rate: Decimal = Decimal("0.029")  # 2.9% (1.45% x 2)
    se_net_earnings_factor: Decimal = Decimal("0.9235")  # 92.35% of net SE income

    # Standard deductions
    standard_deduction_single: Decimal = Decimal("0")
    standard_deduction_mfj: Decimal = Decimal("0")
    standard_deduction_mfs: Decimal = Decimal("0")
    standard_deduction_hoh: Decimal = Decimal("0")
    standard_deduction_qw: Decimal = Decimal("0")

    # Ordinary income brackets
    brackets_single: BracketBounds = ()
    brackets_mfj: BracketBounds = ()
    brackets_mfs: BracketBounds = ()
    brackets_hoh: BracketBounds = ()
    brackets_qw: BracketBounds = ()

    @property
    def se_tax_deduction_rate(self) -> Decimal:
        """Deductible portion of SE tax (50%)."""
        return Decimal("0.5")

    def standard_deduction(self, status: FilingStatus) -> Decimal:
        """Standard deduction for a filing status."""
        return getattr(self, f"standard_deduction_{_SUFFIX[status]}")

    def additional_medicare_threshold(self, status: FilingStatus) -> Decimal:
        """Earnings level above which Additional Medicare tax applies."""
        return getattr(self, f"additional_medicare_threshold_{_SUFFIX[status]}")

    def brackets(self, status: FilingStatus) -> BracketBounds:
        """Ordinary income bracket bounds for a filing status."""
        return getattr(self, f"brackets_{_SUFFIX[status]}")


_SUFFIX: dict[FilingStatus, str] = {
    FilingStatus.SINGLE: "single",
    FilingStatus.MARRIED_FILING_JOINTLY: "mfj",
    FilingStatus.MARRIED_FILING_SEPARATELY: "mfs",
    FilingStatus.HEAD_OF_HOUSEHOLD: "hoh",
    FilingStatus.QUALIFYING_WIDOW: "qw",
}


# 2023 Configuration - Rev. Proc. 2022-38
TAX_YEAR_2023 = TaxYearConfig(
    tax_year=2023,
    ss_wage_base=Decimal("160200"),
    standard_deduction_single=Decimal("13850"),
    standard_deduction_mfj=Decimal("27700"),
    standard_deduction_mfs=Decimal("13850"),
    standard_deduction_hoh=Decimal("20800"),
    standard_deduction_qw=Decimal("27700"),
    brackets_single=_schedule(11000, 44725, 95375, 182100, 231250, 578125),
    brackets_mfj=_schedule(22000, 89450, 190750, 364200, 462500, 693750),
    brackets_mfs=_schedule(11000, 44725, 95375, 182100, 231250, 346875),
    brackets_hoh=_schedule(15700, 59850, 95350, 182100, 231250, 578100),
    brackets_qw=_schedule(22000, 89450, 190750, 364200, 462500, 693750),
)

# 2024 Configuration - Rev. Proc. 2023-34
TAX_YEAR_2024 = TaxYearConfig(
    tax_year=2024,
    ss_wage_base=Decimal("168600"),
    standard_deduction_single=Decimal("14600"),
    standard_deduction_mfj=Decimal("29200"),
    standard_deduction_mfs=Decimal("14600"),
    standard_deduction_hoh=Decimal("21900"),
    standard_deduction_qw=Decimal("29200"),
    brackets_single=_schedule(11600, 47150, 100525, 191950, 243725, 609350),
    brackets_mfj=_schedule(23200, 94300, 201050, 383900, 487450, 731200),
    brackets_mfs=_schedule(11600, 47150, 100525, 191950, 243725, 365600),
    brackets_hoh=_schedule(16550, 63100, 100500, 191950, 243700, 609350),
    brackets_qw=_schedule(23200, 94300, 201050, 383900, 487450, 731200),
)

# 2025 Configuration - Rev. Proc. 2024-40 brackets, standard deductions as
# amended by Pub. L. 119-21
TAX_YEAR_2025 = TaxYearConfig(
    tax_year=2025,
    ss_wage_base=Decimal("176100"),
    standard_deduction_single=Decimal("15750"),
    standard_deduction_mfj=Decimal("31500"),
    standard_deduction_mfs=Decimal("15750"),
    standard_deduction_hoh=Decimal("23625"),
    standard_deduction_qw=Decimal("31500"),
    brackets_single=_schedule(11925, 48475, 103350, 197300, 250525, 626350),
    brackets_mfj=_schedule(23850, 96950, 206700, 394600, 501050, 751600),
    brackets_mfs=_schedule(11925, 48475, 103350, 197300, 250525, 375800),
    brackets_hoh=_schedule(17000, 64850, 103350, 197300, 250500, 626350),
    brackets_qw=_schedule(23850, 96950, 206700, 394600, 501050, 751600),
)

# Registry of available tax year configurations
TAX_YEAR_CONFIGS: dict[int, TaxYearConfig] = {
    2023: TAX_YEAR_2023,
    2024: TAX_YEAR_2024,
    2025: TAX_YEAR_2025,
}


def get_tax_year_config(year: int) -> TaxYearConfig:
    """Get configuration for a specific tax year.

    Args:
        year: The tax year (e.g., 2024).

    Returns:
        TaxYearConfig for the specified year.

    Raises:
        InvalidInputError: If no configuration exists for the requested year.

    Example:
        >>> config = get_tax_year_config(2024)
        >>> print(config.ss_wage_base)
        168600
    """
    if year not in TAX_YEAR_CONFIGS:
        available = sorted(TAX_YEAR_CONFIGS.keys())
        raise InvalidInputError(
            f"tax_year: no tax configuration for year {year}. Available years: {available}"
        )
    return TAX_YEAR_CONFIGS[year]
