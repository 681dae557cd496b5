"""Federal pipeline inputs and per-phase results.

Inputs are frozen value objects supplied by the caller. Every phase of the
pipeline produces its own frozen result; ComprehensiveTaxResult owns them all
together with a summary and metadata block. Nothing here is mutated after
construction, so results can be shared freely.

All monetary values use Decimal.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum

from taxengine.tax.brackets import BracketBreakdown
from taxengine.tax.filing_status import FilingStatus


def _zero() -> Decimal:
    return Decimal("0")


# =============================================================================
# Inputs
# =============================================================================


@dataclass(frozen=True)
class IncomeRecord:
    """Raw income categories for one return.

    Attributes:
        wages: W-2 box 1 wages.
        interest: Taxable interest.
        dividends: Ordinary dividends.
        non_employee_compensation: 1099-NEC self-employment income.
        miscellaneous_income: 1099-MISC other income.
        rental_royalties: Rents and royalties.
        other: Any other ordinary income.
    """

    wages: Decimal = field(default_factory=_zero)
    interest: Decimal = field(default_factory=_zero)
    dividends: Decimal = field(default_factory=_zero)
    non_employee_compensation: Decimal = field(default_factory=_zero)
    miscellaneous_income: Decimal = field(default_factory=_zero)
    rental_royalties: Decimal = field(default_factory=_zero)
    other: Decimal = field(default_factory=_zero)

    def amounts(self) -> dict[str, Decimal]:
        """Field name to amount, in declaration order."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class WithholdingRecord:
    """Tax already withheld during the year.

    Attributes:
        federal_tax: Federal income tax withheld.
        state_tax: State income tax withheld.
        social_security_tax: Social Security tax withheld.
        medicare_tax: Medicare tax withheld.
    """

    federal_tax: Decimal = field(default_factory=_zero)
    state_tax: Decimal = field(default_factory=_zero)
    social_security_tax: Decimal = field(default_factory=_zero)
    medicare_tax: Decimal = field(default_factory=_zero)

    def amounts(self) -> dict[str, Decimal]:
        """Field name to amount, in declaration order."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class FilingParameters:
    """Filing election for one return.

    Attributes:
        filing_status: FilingStatus or any alias FilingStatus.parse accepts.
        use_itemized_deduction: Caller's election to itemize.
        itemized_deduction_amount: Itemized total, already capped upstream.
        estimated_tax_payments: Federal estimated tax paid for the year.
        tax_year: Tax year; None uses the configured default.
    """

    filing_status: FilingStatus | str = FilingStatus.SINGLE
    use_itemized_deduction: bool = False
    itemized_deduction_amount: Decimal = field(default_factory=_zero)
    estimated_tax_payments: Decimal = field(default_factory=_zero)
    tax_year: int | None = None


# =============================================================================
# Phase Results
# =============================================================================


@dataclass(frozen=True)
class IncomeCollection:
    """Phase 1: income as reported, by category."""

    wages: Decimal
    interest: Decimal
    dividends: Decimal
    non_employee_compensation: Decimal
    miscellaneous_income: Decimal
    rental_royalties: Decimal
    other_income: Decimal


@dataclass(frozen=True)
class IncomeAggregation:
    """Phase 2: income totals.

    Every category this engine accepts is taxed as ordinary income, so the
    preferential and tax-exempt totals are always zero.
    """

    total_ordinary_income: Decimal
    total_preferential_income: Decimal = field(default_factory=_zero)
    total_tax_exempt_income: Decimal = field(default_factory=_zero)


@dataclass(frozen=True)
class AdjustedGrossIncome:
    """Phase 3: total income less above-the-line deductions."""

    total_income: Decimal
    above_the_line_deductions: Decimal
    adjusted_gross_income: Decimal


@dataclass(frozen=True)
class DeductionDetermination:
    """Phase 4: deduction applied against AGI.

    Attributes:
        standard_deduction: Standard deduction for the status and year.
        itemized_deductions: Itemized amount the caller supplied.
        selected_deduction: Amount actually subtracted.
        use_standard_deduction: True unless an itemized election won.
    """

    standard_deduction: Decimal
    itemized_deductions: Decimal
    selected_deduction: Decimal
    use_standard_deduction: bool


@dataclass(frozen=True)
class DeductionRecommendation:
    """Larger-of comparison for display. The pipeline never reads this."""

    recommended_mode: str
    standard_deduction: Decimal
    itemized_deduction: Decimal
    difference: Decimal


@dataclass(frozen=True)
class TaxableIncome:
    """Phase 5: AGI less the selected deduction, floored at zero."""

    agi: Decimal
    deduction: Decimal
    taxable_income: Decimal


@dataclass(frozen=True)
class RegularTax:
    """Phase 6: ordinary income tax from the bracket engine."""

    ordinary_income_tax: Decimal
    bracket_breakdown: tuple[BracketBreakdown, ...]
    marginal_rate: Decimal


@dataclass(frozen=True)
class SelfEmploymentTax:
    """Phase 7: self-employment tax and its deductible half.

    Attributes:
        total_se_income: Net self-employment income before the 92.35% factor.
        net_se_income: Earnings subject to SE tax (income x 92.35%).
        social_security_tax: 12.4% portion, capped at the wage base.
        medicare_tax: 2.9% portion.
        additional_medicare_tax: 0.9% over the filing status threshold.
        total_se_tax: Sum of the three rounded components.
        se_deduction: Half of total_se_tax, deducted above the line.
    """

    total_se_income: Decimal = field(default_factory=_zero)
    net_se_income: Decimal = field(default_factory=_zero)
    social_security_tax: Decimal = field(default_factory=_zero)
    medicare_tax: Decimal = field(default_factory=_zero)
    additional_medicare_tax: Decimal = field(default_factory=_zero)
    total_se_tax: Decimal = field(default_factory=_zero)
    se_deduction: Decimal = field(default_factory=_zero)


@dataclass(frozen=True)
class TotalTaxLiability:
    """Phase 8: regular tax plus SE tax, with the derived rates."""

    regular_tax: Decimal
    self_employment_tax: Decimal
    total_tax: Decimal
    effective_tax_rate: Decimal
    marginal_tax_rate: Decimal


@dataclass(frozen=True)
class Withholdings:
    """Phase 9: everything withheld, reported for display.

    Only federal_income_tax offsets the federal balance. The Social
    Security, Medicare and state amounts are informational here.
    """

    federal_income_tax: Decimal
    social_security_tax: Decimal
    medicare_tax: Decimal
    state_tax: Decimal
    total_withholdings: Decimal


class BalanceStatus(str, Enum):
    """Outcome of the federal reconciliation."""

    REFUND = "refund"
    OWED = "owed"
    EVEN = "even"


@dataclass(frozen=True)
class FinalBalance:
    """Phase 10: federal balance after withholding and estimated payments.

    Attributes:
        total_tax_liability: Total federal liability.
        total_withholdings: Federal income tax withheld.
        estimated_tax_payments: Estimated payments made.
        total_payments: total_withholdings + estimated_tax_payments.
        balance: Liability less payments; negative means refund.
        balance_due: Positive balance, else 0.
        refund_amount: Magnitude of a negative balance, else 0.
        final_status: refund, owed or even.
    """

    total_tax_liability: Decimal
    total_withholdings: Decimal
    estimated_tax_payments: Decimal
    total_payments: Decimal
    balance: Decimal
    balance_due: Decimal
    refund_amount: Decimal
    final_status: BalanceStatus


# =============================================================================
# Comprehensive Result
# =============================================================================


@dataclass(frozen=True)
class TaxPhases:
    """All phase results of one federal computation, in pipeline order."""

    income_collection: IncomeCollection
    income_aggregation: IncomeAggregation
    adjusted_gross_income: AdjustedGrossIncome
    deduction_determination: DeductionDetermination
    taxable_income: TaxableIncome
    regular_tax: RegularTax
    self_employment_tax: SelfEmploymentTax
    total_tax_liability: TotalTaxLiability
    withholdings: Withholdings
    final_balance: FinalBalance


@dataclass(frozen=True)
class TaxSummary:
    """Headline figures for display."""

    adjusted_gross_income: Decimal
    taxable_income: Decimal
    total_tax_liability: Decimal
    total_withholdings: Decimal
    total_payments: Decimal
    final_balance: Decimal
    effective_tax_rate: Decimal
    marginal_tax_rate: Decimal
    after_tax_income: Decimal


@dataclass(frozen=True)
class TaxMetadata:
    """What the computation was run against."""

    tax_year: int
    filing_status: FilingStatus
    standard_deduction_used: bool
    deduction_mode: str


@dataclass(frozen=True)
class ComprehensiveTaxResult:
    """Full federal computation: every phase, a summary and metadata."""

    phases: TaxPhases
    summary: TaxSummary
    metadata: TaxMetadata


@dataclass(frozen=True)
class TaxEstimate:
    """Quick estimate from a single income figure.

    Rates are percentages rounded to two places, e.g. Decimal("12.00").
    """

    total_income: Decimal
    standard_deduction: Decimal
    taxable_income: Decimal
    estimated_tax: Decimal
    effective_tax_rate: Decimal
    marginal_tax_rate: Decimal
