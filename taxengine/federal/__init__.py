"""Federal income tax pipeline."""

from taxengine.federal.calculator import (
    aggregate_income,
    aggregate_liability,
    collect_income,
    compute_adjusted_gross_income,
    compute_regular_tax,
    compute_se_tax,
    compute_taxable_income,
    recommend_deduction,
    reconcile,
    select_deduction,
    summarize_withholdings,
    validate_inputs,
)
from taxengine.federal.engine import calculate_comprehensive_tax, estimate_tax
from taxengine.federal.models import (
    BalanceStatus,
    ComprehensiveTaxResult,
    FilingParameters,
    IncomeRecord,
    TaxEstimate,
    WithholdingRecord,
)

__all__ = [
    "BalanceStatus",
    "ComprehensiveTaxResult",
    "FilingParameters",
    "IncomeRecord",
    "TaxEstimate",
    "WithholdingRecord",
    "aggregate_income",
    "aggregate_liability",
    "calculate_comprehensive_tax",
    "collect_income",
    "compute_adjusted_gross_income",
    "compute_regular_tax",
    "compute_se_tax",
    "compute_taxable_income",
    "estimate_tax",
    "recommend_deduction",
    "reconcile",
    "select_deduction",
    "summarize_withholdings",
    "validate_inputs",
]
