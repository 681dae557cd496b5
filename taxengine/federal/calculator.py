"""Federal phase calculations.

Each function computes one phase of the federal pipeline from plain values
and returns that phase's frozen result. The functions are pure: they read the
tax year tables and their arguments and nothing else. Input validation lives
in validate_inputs and runs once, before any phase; the phases themselves
assume valid, non-negative amounts.

This module handles:
- Input validation at the pipeline boundary
- Income collection and aggregation
- Self-employment tax and its above-the-line deduction
- AGI and taxable income
- Standard vs itemized deduction per the caller's election
- Regular tax through the bracket engine
- Total liability and rates
- Withholding summary and federal balance reconciliation

All monetary values use Decimal.
"""

from __future__ import annotations

from decimal import Decimal

from taxengine.core.money import ZERO, round_cents
from taxengine.errors import InvalidInputError
from taxengine.federal.models import (
    AdjustedGrossIncome,
    BalanceStatus,
    DeductionDetermination,
    DeductionRecommendation,
    FilingParameters,
    FinalBalance,
    IncomeAggregation,
    IncomeCollection,
    IncomeRecord,
    RegularTax,
    SelfEmploymentTax,
    TaxableIncome,
    TotalTaxLiability,
    WithholdingRecord,
    Withholdings,
)
from taxengine.tax.brackets import compute_bracket_tax, get_bracket_table
from taxengine.tax.filing_status import FilingStatus
from taxengine.tax.year_config import TaxYearConfig, get_tax_year_config


# =============================================================================
# Input Validation
# =============================================================================


def _check_amount(name: str, value: object, errors: list[str]) -> None:
    if isinstance(value, bool) or not isinstance(value, (Decimal, int)):
        errors.append(f"{name}: expected a Decimal amount, got {type(value).__name__}")
    elif not Decimal(value).is_finite():
        errors.append(f"{name}: must be a finite amount, got {value}")
    elif value < 0:
        errors.append(f"{name}: must be non-negative, got {value}")


def validate_inputs(
    income: IncomeRecord,
    withholdings: WithholdingRecord,
    params: FilingParameters,
    default_tax_year: int,
) -> tuple[FilingStatus, TaxYearConfig]:
    """Reject invalid input before any phase runs.

    Every problem is collected so the caller can fix them in one pass.

    Args:
        income: Income categories.
        withholdings: Amounts withheld.
        params: Filing election.
        default_tax_year: Year to use when params.tax_year is None.

    Returns:
        Tuple of (resolved filing status, tax year configuration).

    Raises:
        InvalidInputError: Listing every offending field.
    """
    errors: list[str] = []

    for name, value in income.amounts().items():
        _check_amount(f"income.{name}", value, errors)
    for name, value in withholdings.amounts().items():
        _check_amount(f"withholdings.{name}", value, errors)
    _check_amount("itemized_deduction_amount", params.itemized_deduction_amount, errors)
    _check_amount("estimated_tax_payments", params.estimated_tax_payments, errors)

    status: FilingStatus | None = None
    try:
        status = FilingStatus.parse(params.filing_status)
    except InvalidInputError as exc:
        errors.extend(exc.errors)

    config: TaxYearConfig | None = None
    year = params.tax_year if params.tax_year is not None else default_tax_year
    try:
        config = get_tax_year_config(year)
    except InvalidInputError as exc:
        errors.extend(exc.errors)

    if errors or status is None or config is None:
        raise InvalidInputError(errors)
    return status, config


# =============================================================================
# Income Collection and Aggregation
# =============================================================================


def collect_income(income: IncomeRecord) -> IncomeCollection:
    """Phase 1: carry the reported categories into the result."""
    return IncomeCollection(
        wages=Decimal(income.wages),
        interest=Decimal(income.interest),
        dividends=Decimal(income.dividends),
        non_employee_compensation=Decimal(income.non_employee_compensation),
        miscellaneous_income=Decimal(income.miscellaneous_income),
        rental_royalties=Decimal(income.rental_royalties),
        other_income=Decimal(income.other),
    )


def aggregate_income(collection: IncomeCollection) -> IncomeAggregation:
    """Phase 2: sum every category into total ordinary income.

    Example:
        >>> c = collect_income(IncomeRecord(wages=Decimal("50000"), interest=Decimal("125")))
        >>> aggregate_income(c).total_ordinary_income
        Decimal('50125')
    """
    total = (
        collection.wages
        + collection.interest
        + collection.dividends
        + collection.non_employee_compensation
        + collection.miscellaneous_income
        + collection.rental_royalties
        + collection.other_income
    )
    return IncomeAggregation(total_ordinary_income=total)


# =============================================================================
# Self-Employment Tax
# =============================================================================


def compute_se_tax(
    net_se_income: Decimal,
    filing_status: FilingStatus,
    config: TaxYearConfig,
) -> SelfEmploymentTax:
    """Compute SE tax and its deductible half.

    The SE base is 92.35% of net self-employment income. Social Security
    applies up to the year's wage base, Medicare applies to the whole base,
    and Additional Medicare applies above the filing status threshold. Each
    component is rounded to the cent and the total is their sum, so the
    components always add up to the total.

    Args:
        net_se_income: Net self-employment income (1099-NEC).
        filing_status: Filing status, for the Additional Medicare threshold.
        config: Tax year configuration.

    Returns:
        SelfEmploymentTax; all zeros when net_se_income <= 0.

    Example:
        >>> from taxengine.tax.year_config import TAX_YEAR_2025
        >>> se = compute_se_tax(Decimal("20000"), FilingStatus.SINGLE, TAX_YEAR_2025)
        >>> se.social_security_tax, se.medicare_tax, se.se_deduction
        (Decimal('2290.28'), Decimal('535.63'), Decimal('1412.96'))
    """
    if net_se_income <= ZERO:
        return SelfEmploymentTax()

    base = net_se_income * config.se_net_earnings_factor
    ss_tax = round_cents(min(base, config.ss_wage_base) * config.se_ss_rate)
    medicare_tax = round_cents(base * config.se_medicare_rate)

    threshold = config.additional_medicare_threshold(filing_status)
    additional_medicare = round_cents(
        max(ZERO, base - threshold) * config.additional_medicare_rate
    )

    total = ss_tax + medicare_tax + additional_medicare
    return SelfEmploymentTax(
        total_se_income=net_se_income,
        net_se_income=round_cents(base),
        social_security_tax=ss_tax,
        medicare_tax=medicare_tax,
        additional_medicare_tax=additional_medicare,
        total_se_tax=total,
        se_deduction=round_cents(total * config.se_tax_deduction_rate),
    )


# =============================================================================
# AGI, Deduction, Taxable Income
# =============================================================================


def compute_adjusted_gross_income(
    total_income: Decimal, se_deduction: Decimal
) -> AdjustedGrossIncome:
    """Phase 3: AGI is total income less the SE deduction, floored at 0."""
    return AdjustedGrossIncome(
        total_income=total_income,
        above_the_line_deductions=se_deduction,
        adjusted_gross_income=max(ZERO, total_income - se_deduction),
    )


def select_deduction(
    filing_status: FilingStatus,
    use_itemized: bool,
    itemized_amount: Decimal,
    config: TaxYearConfig,
) -> DeductionDetermination:
    """Resolve the deduction from the caller's explicit election.

    Without an itemized election the standard deduction applies even when
    the itemized amount is larger. With one, the itemized amount applies
    only when it exceeds the standard deduction; a tie stays standard.
    Itemized caps such as SALT are expected to be applied by the caller.

    Args:
        filing_status: Filing status.
        use_itemized: Caller elected to itemize.
        itemized_amount: Pre-capped itemized total.
        config: Tax year configuration.

    Returns:
        DeductionDetermination with the selected amount.
    """
    standard = config.standard_deduction(filing_status)
    itemized_wins = use_itemized and itemized_amount > standard
    return DeductionDetermination(
        standard_deduction=standard,
        itemized_deductions=itemized_amount,
        selected_deduction=itemized_amount if itemized_wins else standard,
        use_standard_deduction=not itemized_wins,
    )


def recommend_deduction(
    filing_status: FilingStatus,
    itemized_amount: Decimal,
    config: TaxYearConfig,
) -> DeductionRecommendation:
    """Suggest the larger deduction for display.

    This is advice for the caller's UI. select_deduction never consults it.
    """
    standard = config.standard_deduction(filing_status)
    mode = "itemized" if itemized_amount > standard else "standard"
    return DeductionRecommendation(
        recommended_mode=mode,
        standard_deduction=standard,
        itemized_deduction=itemized_amount,
        difference=abs(itemized_amount - standard),
    )


def compute_taxable_income(agi: Decimal, deduction: Decimal) -> TaxableIncome:
    """Phase 5: taxable income is AGI less the deduction, floored at 0."""
    return TaxableIncome(
        agi=agi,
        deduction=deduction,
        taxable_income=max(ZERO, agi - deduction),
    )


# =============================================================================
# Tax and Liability
# =============================================================================


def compute_regular_tax(
    taxable_income: Decimal, filing_status: FilingStatus, tax_year: int
) -> RegularTax:
    """Phase 6: ordinary income tax from the federal bracket table."""
    result = compute_bracket_tax(taxable_income, get_bracket_table(filing_status, tax_year))
    return RegularTax(
        ordinary_income_tax=result.tax,
        bracket_breakdown=result.breakdown,
        marginal_rate=result.marginal_rate,
    )


def aggregate_liability(
    regular_tax: RegularTax,
    se_tax: SelfEmploymentTax,
    agi: Decimal,
) -> TotalTaxLiability:
    """Combine regular and SE tax and derive the rates.

    Args:
        regular_tax: Phase 6 result.
        se_tax: Phase 7 result.
        agi: Adjusted gross income.

    Returns:
        TotalTaxLiability; effective rate is total / AGI, or 0 when AGI is 0.
    """
    total = regular_tax.ordinary_income_tax + se_tax.total_se_tax
    effective = total / agi if agi > ZERO else ZERO
    return TotalTaxLiability(
        regular_tax=regular_tax.ordinary_income_tax,
        self_employment_tax=se_tax.total_se_tax,
        total_tax=total,
        effective_tax_rate=effective,
        marginal_tax_rate=regular_tax.marginal_rate,
    )


# =============================================================================
# Withholdings and Balance
# =============================================================================


def summarize_withholdings(withholdings: WithholdingRecord) -> Withholdings:
    """Report every withheld amount. Only the federal figure is reconciled."""
    federal = Decimal(withholdings.federal_tax)
    social_security = Decimal(withholdings.social_security_tax)
    medicare = Decimal(withholdings.medicare_tax)
    state = Decimal(withholdings.state_tax)
    return Withholdings(
        federal_income_tax=federal,
        social_security_tax=social_security,
        medicare_tax=medicare,
        state_tax=state,
        total_withholdings=federal + social_security + medicare + state,
    )


def reconcile(
    total_tax_liability: Decimal,
    federal_withholding: Decimal,
    estimated_payments: Decimal,
) -> FinalBalance:
    """Compute the federal balance.

    Only federal income tax withheld and estimated payments count as
    payments. Social Security, Medicare and state withholding are never
    passed in here.

    Args:
        total_tax_liability: Total federal liability.
        federal_withholding: Federal income tax withheld.
        estimated_payments: Estimated tax payments.

    Returns:
        FinalBalance with a signed balance; negative means refund.
    """
    payments = federal_withholding + estimated_payments
    balance = total_tax_liability - payments

    if balance > ZERO:
        status = BalanceStatus.OWED
    elif balance < ZERO:
        status = BalanceStatus.REFUND
    else:
        status = BalanceStatus.EVEN

    return FinalBalance(
        total_tax_liability=total_tax_liability,
        total_withholdings=federal_withholding,
        estimated_tax_payments=estimated_payments,
        total_payments=payments,
        balance=balance,
        balance_due=balance if balance > ZERO else ZERO,
        refund_amount=-balance if balance < ZERO else ZERO,
        final_status=status,
    )
