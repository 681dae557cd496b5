"""Combine federal and state results for display.

This sits outside both engines. The federal pipeline reconciles only federal
withholding; here state withholding is reconciled against the state result
and the two balances are added for a single figure. When no state rule
exists the state side is reported as unavailable, never as a zero tax.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from taxengine.core.logging import calculation_context, get_logger
from taxengine.errors import UnsupportedStateError
from taxengine.federal.engine import calculate_comprehensive_tax
from taxengine.federal.models import (
    ComprehensiveTaxResult,
    FilingParameters,
    IncomeRecord,
    WithholdingRecord,
)
from taxengine.state.calculator import calculate_state_tax
from taxengine.state.models import StateTaxInput, StateTaxResult

logger = get_logger(__name__)


@dataclass(frozen=True)
class CombinedSummary:
    """Federal and state figures side by side.

    Attributes:
        federal_tax: Total federal liability.
        federal_balance: Federal balance; negative means refund.
        state_available: False when the state had no rule.
        state_code: State that was requested, if any.
        state_tax: State tax, None when unavailable.
        state_withholding: State income tax withheld.
        state_balance: State tax less state withholding, None when unavailable.
        total_tax: Federal plus state tax (federal only when unavailable).
        combined_balance: Federal plus state balance.
        notes: Messages for the caller, e.g. an unavailable state.
    """

    federal_tax: Decimal
    federal_balance: Decimal
    state_available: bool
    state_code: str | None
    state_tax: Decimal | None
    state_withholding: Decimal
    state_balance: Decimal | None
    total_tax: Decimal
    combined_balance: Decimal
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class UnifiedTaxResult:
    """Both engine results plus the combined summary."""

    federal: ComprehensiveTaxResult
    state: StateTaxResult | None
    summary: CombinedSummary


def combine_results(
    federal: ComprehensiveTaxResult,
    state: StateTaxResult | None,
    withholdings: WithholdingRecord,
    state_code: str | None = None,
    notes: tuple[str, ...] = (),
) -> CombinedSummary:
    """Build the combined summary from independent results.

    Args:
        federal: Federal result.
        state: State result, or None when no state was computed.
        withholdings: Withholding record, for the state withholding.
        state_code: Requested state, reported when state is None.
        notes: Extra notes to carry through.

    Returns:
        CombinedSummary.
    """
    federal_tax = federal.summary.total_tax_liability
    federal_balance = federal.summary.final_balance
    state_withholding = Decimal(withholdings.state_tax)

    if state is None:
        return CombinedSummary(
            federal_tax=federal_tax,
            federal_balance=federal_balance,
            state_available=False,
            state_code=state_code,
            state_tax=None,
            state_withholding=state_withholding,
            state_balance=None,
            total_tax=federal_tax,
            combined_balance=federal_balance,
            notes=notes,
        )

    state_balance = state.state_tax - state_withholding
    return CombinedSummary(
        federal_tax=federal_tax,
        federal_balance=federal_balance,
        state_available=True,
        state_code=state.state,
        state_tax=state.state_tax,
        state_withholding=state_withholding,
        state_balance=state_balance,
        total_tax=federal_tax + state.state_tax,
        combined_balance=federal_balance + state_balance,
        notes=notes,
    )


def calculate_unified_tax(
    income: IncomeRecord,
    withholdings: WithholdingRecord,
    params: FilingParameters,
    state_input: StateTaxInput | None = None,
) -> UnifiedTaxResult:
    """Run the federal pipeline, then the state dispatcher on its AGI.

    The state input's AGI, filing status, dividends and interest are taken
    from the federal side; its other fields (dependents, ages, capital gains)
    are used as given. When the federal return itemizes and the state input
    carries no itemized total of its own, the federal itemized amount is used
    for the state as well. Both runs log under one calculation_id.

    Args:
        income: Income categories.
        withholdings: Amounts withheld.
        params: Federal filing election.
        state_input: State details, or None for a federal-only run.

    Returns:
        UnifiedTaxResult. An unsupported state yields state=None and a note.
    """
    with calculation_context():
        federal = calculate_comprehensive_tax(income, withholdings, params)
        if state_input is None:
            return UnifiedTaxResult(
                federal=federal,
                state=None,
                summary=combine_results(federal, None, withholdings),
            )

        try:
            state = calculate_state_tax(
                _state_data(federal, income, params, state_input),
                federal.metadata.tax_year,
            )
        except UnsupportedStateError as exc:
            logger.warning("state_tax_unavailable", state=exc.state, tax_year=exc.tax_year)
            return UnifiedTaxResult(
                federal=federal,
                state=None,
                summary=combine_results(
                    federal,
                    None,
                    withholdings,
                    state_code=exc.state,
                    notes=(f"State tax unavailable for {exc.state}",),
                ),
            )

        return UnifiedTaxResult(
            federal=federal,
            state=state,
            summary=combine_results(federal, state, withholdings),
        )


def _state_data(
    federal: ComprehensiveTaxResult,
    income: IncomeRecord,
    params: FilingParameters,
    state_input: StateTaxInput,
) -> StateTaxInput:
    itemized = state_input.itemized_deductions
    if not itemized and params.use_itemized_deduction:
        itemized = Decimal(params.itemized_deduction_amount)

    return replace(
        state_input,
        filing_status=federal.metadata.filing_status,
        federal_agi=federal.summary.adjusted_gross_income,
        itemized_deductions=itemized,
        dividends=Decimal(income.dividends),
        interest=Decimal(income.interest),
    )
