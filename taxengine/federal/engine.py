"""Federal tax pipeline.

Runs the federal phases in order over validated input:

    income collection -> aggregation -> SE tax -> AGI -> deduction
    -> taxable income -> regular tax -> total liability
    -> withholdings -> final balance

SE tax is computed ahead of AGI because its deductible half is an
above-the-line deduction. The state computation is independent and lives in
taxengine.state; callers combine the two results themselves.

Example:
    >>> from decimal import Decimal
    >>> result = calculate_comprehensive_tax(
    ...     IncomeRecord(wages=Decimal("50000")),
    ...     WithholdingRecord(federal_tax=Decimal("5000")),
    ...     FilingParameters(filing_status="single", tax_year=2023),
    ... )
    >>> result.summary.total_tax_liability
    Decimal('4118.00')
"""

from __future__ import annotations

from decimal import Decimal

from taxengine.core.config import settings
from taxengine.core.logging import calculation_context, get_logger
from taxengine.core.money import ZERO, rate_to_percent
from taxengine.errors import InvalidInputError
from taxengine.federal.calculator import (
    aggregate_income,
    aggregate_liability,
    collect_income,
    compute_adjusted_gross_income,
    compute_regular_tax,
    compute_se_tax,
    compute_taxable_income,
    reconcile,
    select_deduction,
    summarize_withholdings,
    validate_inputs,
)
from taxengine.federal.models import (
    ComprehensiveTaxResult,
    FilingParameters,
    IncomeRecord,
    TaxEstimate,
    TaxMetadata,
    TaxPhases,
    TaxSummary,
    WithholdingRecord,
)
from taxengine.tax.brackets import compute_bracket_tax, get_bracket_table
from taxengine.tax.filing_status import FilingStatus
from taxengine.tax.year_config import get_tax_year_config

logger = get_logger(__name__)


def calculate_comprehensive_tax(
    income: IncomeRecord,
    withholdings: WithholdingRecord,
    params: FilingParameters,
) -> ComprehensiveTaxResult:
    """Run the full federal computation.

    Every log event of the run carries one calculation_id.

    Args:
        income: Income categories for the return.
        withholdings: Amounts withheld during the year.
        params: Filing status, deduction election, estimated payments, year.

    Returns:
        ComprehensiveTaxResult holding every phase result, a summary and
        metadata. A fresh object is returned on every call.

    Raises:
        InvalidInputError: If any amount is negative or not a finite Decimal,
            the filing status is unrecognized, or the tax year has no tables.
    """
    with calculation_context():
        return _run_phases(income, withholdings, params)


def _run_phases(
    income: IncomeRecord,
    withholdings: WithholdingRecord,
    params: FilingParameters,
) -> ComprehensiveTaxResult:
    try:
        status, config = validate_inputs(
            income, withholdings, params, settings.default_tax_year
        )
    except InvalidInputError as exc:
        logger.warning("federal_input_rejected", errors=exc.errors)
        raise

    collection = collect_income(income)
    aggregation = aggregate_income(collection)
    logger.debug(
        "phase_complete",
        phase="income_aggregation",
        total_ordinary_income=aggregation.total_ordinary_income,
    )

    se_tax = compute_se_tax(collection.non_employee_compensation, status, config)
    agi = compute_adjusted_gross_income(
        aggregation.total_ordinary_income, se_tax.se_deduction
    )
    logger.debug(
        "phase_complete",
        phase="adjusted_gross_income",
        agi=agi.adjusted_gross_income,
        se_deduction=se_tax.se_deduction,
    )

    deduction = select_deduction(
        status,
        params.use_itemized_deduction,
        Decimal(params.itemized_deduction_amount),
        config,
    )
    taxable = compute_taxable_income(
        agi.adjusted_gross_income, deduction.selected_deduction
    )
    logger.debug(
        "phase_complete",
        phase="taxable_income",
        deduction=deduction.selected_deduction,
        standard=deduction.use_standard_deduction,
        taxable_income=taxable.taxable_income,
    )

    regular = compute_regular_tax(taxable.taxable_income, status, config.tax_year)
    liability = aggregate_liability(regular, se_tax, agi.adjusted_gross_income)
    logger.debug(
        "phase_complete",
        phase="total_tax_liability",
        regular_tax=liability.regular_tax,
        se_tax=liability.self_employment_tax,
        total_tax=liability.total_tax,
    )

    withheld = summarize_withholdings(withholdings)
    balance = reconcile(
        liability.total_tax,
        withheld.federal_income_tax,
        Decimal(params.estimated_tax_payments),
    )

    logger.info(
        "federal_tax_calculated",
        tax_year=config.tax_year,
        filing_status=status.value,
        total_tax=liability.total_tax,
        final_status=balance.final_status.value,
    )

    return ComprehensiveTaxResult(
        phases=TaxPhases(
            income_collection=collection,
            income_aggregation=aggregation,
            adjusted_gross_income=agi,
            deduction_determination=deduction,
            taxable_income=taxable,
            regular_tax=regular,
            self_employment_tax=se_tax,
            total_tax_liability=liability,
            withholdings=withheld,
            final_balance=balance,
        ),
        summary=TaxSummary(
            adjusted_gross_income=agi.adjusted_gross_income,
            taxable_income=taxable.taxable_income,
            total_tax_liability=liability.total_tax,
            total_withholdings=balance.total_withholdings,
            total_payments=balance.total_payments,
            final_balance=balance.balance,
            effective_tax_rate=liability.effective_tax_rate,
            marginal_tax_rate=liability.marginal_tax_rate,
            after_tax_income=agi.adjusted_gross_income - liability.total_tax,
        ),
        metadata=TaxMetadata(
            tax_year=config.tax_year,
            filing_status=status,
            standard_deduction_used=deduction.use_standard_deduction,
            deduction_mode="standard" if deduction.use_standard_deduction else "itemized",
        ),
    )


def estimate_tax(
    total_income: Decimal,
    filing_status: FilingStatus | str,
    tax_year: int | None = None,
) -> TaxEstimate:
    """Quick income tax estimate from one income figure.

    Treats all income as wages and applies the standard deduction. Rates in
    the result are percentages rounded to two places.

    Args:
        total_income: Total income.
        filing_status: FilingStatus or alias.
        tax_year: Tax year; None uses the configured default.

    Returns:
        TaxEstimate.

    Raises:
        InvalidInputError: If income is negative, or status or year is invalid.
    """
    if total_income < ZERO:
        raise InvalidInputError(f"total_income: must be non-negative, got {total_income}")
    status = FilingStatus.parse(filing_status)
    config = get_tax_year_config(tax_year if tax_year is not None else settings.default_tax_year)

    standard = config.standard_deduction(status)
    taxable = max(ZERO, total_income - standard)
    result = compute_bracket_tax(taxable, get_bracket_table(status, config.tax_year))
    effective = result.tax / total_income if total_income > ZERO else ZERO

    return TaxEstimate(
        total_income=total_income,
        standard_deduction=standard,
        taxable_income=taxable,
        estimated_tax=result.tax,
        effective_tax_rate=rate_to_percent(effective),
        marginal_tax_rate=rate_to_percent(result.marginal_rate),
    )
