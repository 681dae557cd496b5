"""State income tax dispatcher.

Resolves a state code to its rule and evaluates it in one pass:

    lookup rule -> deduction and exemptions -> base tax -> credits -> floor

Federal AGI is the conformity base for every state that taxes income. The
federal pipeline is never called from here; callers pass AGI in and combine
the two results themselves.

All arithmetic uses Decimal. No floating point.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from decimal import Decimal

from taxengine.core.config import settings
from taxengine.core.logging import get_logger, state_code_ctx
from taxengine.core.money import (
    ZERO,
    format_currency,
    format_percent,
    round_cents,
    to_decimal,
)
from taxengine.errors import InvalidInputError, StateRulesLoadError, UnsupportedStateError
from taxengine.state.loader import load_state_rules
from taxengine.state.models import (
    BracketScheduleRule,
    CreditCondition,
    FlatRateRule,
    IncomeTaxRule,
    InvestmentCategory,
    InvestmentIncomeRule,
    NoIncomeTaxRule,
    PhaseOut,
    StateBracketLine,
    StateCredit,
    StateCreditRule,
    StateInfo,
    StateRule,
    StateRuleSet,
    StateTaxInput,
    StateTaxResult,
)
from taxengine.tax.brackets import compute_bracket_tax
from taxengine.tax.filing_status import FilingStatus

logger = get_logger(__name__)

NO_TAX_NOTE = "This state does not impose a personal income tax."

_INVESTMENT_SUBJECTS: dict[InvestmentCategory, str] = {
    InvestmentCategory.DIVIDENDS_INTEREST: "dividends and interest",
    InvestmentCategory.CAPITAL_GAINS: "capital gains",
}


# =============================================================================
# State Code Normalization
# =============================================================================

STATE_NAMES: dict[str, str] = {
    "ALABAMA": "AL", "ALASKA": "AK", "ARIZONA": "AZ", "ARKANSAS": "AR",
    "CALIFORNIA": "CA", "COLORADO": "CO", "CONNECTICUT": "CT", "DELAWARE": "DE",
    "DISTRICT OF COLUMBIA": "DC", "FLORIDA": "FL", "GEORGIA": "GA", "HAWAII": "HI",
    "IDAHO": "ID", "ILLINOIS": "IL", "INDIANA": "IN", "IOWA": "IA", "KANSAS": "KS",
    "KENTUCKY": "KY", "LOUISIANA": "LA", "MAINE": "ME", "MARYLAND": "MD",
    "MASSACHUSETTS": "MA", "MICHIGAN": "MI", "MINNESOTA": "MN", "MISSISSIPPI": "MS",
    "MISSOURI": "MO", "MONTANA": "MT", "NEBRASKA": "NE", "NEVADA": "NV",
    "NEW HAMPSHIRE": "NH", "NEW JERSEY": "NJ", "NEW MEXICO": "NM", "NEW YORK": "NY",
    "NORTH CAROLINA": "NC", "NORTH DAKOTA": "ND", "OHIO": "OH", "OKLAHOMA": "OK",
    "OREGON": "OR", "PENNSYLVANIA": "PA", "RHODE ISLAND": "RI", "SOUTH CAROLINA": "SC",
    "SOUTH DAKOTA": "SD", "TENNESSEE": "TN", "TEXAS": "TX", "UTAH": "UT",
    "VERMONT": "VT", "VIRGINIA": "VA", "WASHINGTON": "WA", "WEST VIRGINIA": "WV",
    "WISCONSIN": "WI", "WYOMING": "WY",
}  # fmt: skip

STATE_VARIATIONS: dict[str, str] = {
    "CALIF": "CA",
    "CAL": "CA",
    "CALI": "CA",
    "FLA": "FL",
    "FLOR": "FL",
    "TEX": "TX",
    "NYC": "NY",
    "PENN": "PA",
    "PENNA": "PA",
    "WASHINGTON DC": "DC",
    "WASHINGTON D.C.": "DC",
    "D.C.": "DC",
}


def normalize_state(raw: str) -> str:
    """Resolve a state name, abbreviation or common variant to its postal code.

    Unknown input is returned trimmed and upper-cased, so the lookup that
    follows can name it in the error.

    Example:
        >>> normalize_state(" california ")
        'CA'
        >>> normalize_state("Penna")
        'PA'
    """
    text = " ".join(raw.split()).upper()
    if text in STATE_NAMES:
        return STATE_NAMES[text]
    return STATE_VARIATIONS.get(text, text)


# =============================================================================
# Rule Lookup
# =============================================================================


def _resolve_year(tax_year: int | None) -> int:
    return tax_year if tax_year is not None else settings.default_tax_year


def _rules_for_year(tax_year: int) -> StateRuleSet | None:
    """Rule set for a year, or None when the year has no rule file."""
    try:
        return load_state_rules(tax_year)
    except StateRulesLoadError as exc:
        if isinstance(exc.__cause__, FileNotFoundError):
            return None
        raise


def _get_rule(code: str, tax_year: int) -> StateRule:
    rules = _rules_for_year(tax_year)
    if rules is None:
        logger.warning("state_rules_year_unsupported", state=code, tax_year=tax_year)
        raise UnsupportedStateError(code, tax_year=tax_year)

    rule = rules.states.get(code)
    if rule is None:
        logger.warning("state_unsupported", state=code, tax_year=tax_year)
        raise UnsupportedStateError(code)
    return rule


def list_states(tax_year: int | None = None) -> list[str]:
    """Postal codes with a rule for the tax year, sorted."""
    rules = _rules_for_year(_resolve_year(tax_year))
    return sorted(rules.states) if rules is not None else []


# =============================================================================
# Deductions, Exemptions, Credits
# =============================================================================


def _phase_out_reduction(phase_out: PhaseOut | None, agi: Decimal) -> Decimal:
    if phase_out is None or agi <= phase_out.start_income:
        return ZERO
    return (agi - phase_out.start_income) * phase_out.rate


def state_standard_deduction(
    rule: IncomeTaxRule, status: FilingStatus, data: StateTaxInput
) -> Decimal:
    """State standard deduction including age 65+ and blindness additions.

    Additions apply only where the state has a standard deduction. Spouse
    additions apply on joint returns.
    """
    if rule.standard_deduction is None:
        return ZERO

    deduction = rule.standard_deduction_for(status)
    elderly = [data.age]
    blind = [data.is_blind]
    if status.is_joint:
        elderly.append(data.spouse_age)
        blind.append(data.spouse_is_blind)

    deduction += rule.additional_deduction_65_plus * sum(1 for age in elderly if age >= 65)
    deduction += rule.additional_deduction_blind * sum(1 for flag in blind if flag)
    return deduction


def state_personal_exemption(
    rule: IncomeTaxRule, status: FilingStatus, dependents: int, agi: Decimal
) -> Decimal:
    """Taxpayer, spouse and dependent exemptions less any phase-out, floored at 0."""
    exemption = rule.personal_exemption
    if exemption is None:
        return ZERO

    total = exemption.taxpayer + exemption.dependent * dependents
    if status.is_joint:
        total += exemption.spouse
    total -= min(total, _phase_out_reduction(exemption.phase_out, agi))
    return max(ZERO, total)


def _credit_amount(credit: StateCreditRule, status: FilingStatus, data: StateTaxInput) -> Decimal:
    if credit.condition is CreditCondition.DEPENDENT:
        amount = credit.amount * data.dependents
    elif credit.condition is CreditCondition.DEPENDENT_UNDER_17:
        amount = credit.amount * data.dependents_under_17
    elif credit.condition is CreditCondition.DEPENDENT_17_AND_OVER:
        amount = credit.amount * data.dependents_over_17
    elif credit.filing_status is None or credit.filing_status is status:
        amount = credit.amount
    else:
        amount = ZERO

    amount -= _phase_out_reduction(credit.phase_out, data.federal_agi)
    return round_cents(max(ZERO, amount))


def apply_credits(
    tax: Decimal,
    credits: Sequence[StateCreditRule],
    status: FilingStatus,
    data: StateTaxInput,
) -> tuple[Decimal, tuple[StateCredit, ...]]:
    """Subtract credits in table order; tax never goes below zero.

    Each reported credit is the amount actually used against the remaining
    tax, so the credits always add up to the reduction.

    Returns:
        Tuple of (tax after credits, allowed credits).
    """
    allowed: list[StateCredit] = []
    remaining = tax
    for credit in credits:
        used = min(_credit_amount(credit, status, data), remaining)
        if used <= ZERO:
            continue
        allowed.append(StateCredit(name=credit.name, amount=used))
        remaining -= used
    return remaining, tuple(allowed)


# =============================================================================
# Rule Evaluation
# =============================================================================


def _bracket_description(rate: Decimal, lower: Decimal, upper: Decimal | None) -> str:
    if upper is None:
        return f"{format_percent(rate)} on income {format_currency(lower)} and above"
    return (
        f"{format_percent(rate)} on income {format_currency(lower)} - "
        f"{format_currency(upper - 1)}"
    )


def _no_tax(code: str, rule: NoIncomeTaxRule) -> StateTaxResult:
    return StateTaxResult(
        state=code,
        state_name=rule.name,
        tax_type="No State Income Tax",
        notes=tuple(rule.notes) or (NO_TAX_NOTE,),
    )


def _investment_income(
    code: str, rule: InvestmentIncomeRule, data: StateTaxInput
) -> StateTaxResult:
    if rule.category is InvestmentCategory.DIVIDENDS_INTEREST:
        income = data.dividends + data.interest
        tax_type = "Dividends & Interest Tax"
    else:
        income = data.capital_gains
        tax_type = "Capital Gains Tax"

    subject = _INVESTMENT_SUBJECTS[rule.category]
    taxable = max(ZERO, income - rule.exemption)
    raw_tax = taxable * rule.rate
    tax = round_cents(raw_tax)
    breakdown: tuple[StateBracketLine, ...] = ()
    if taxable > ZERO:
        breakdown = (
            StateBracketLine(
                bracket=(
                    f"{format_percent(rule.rate)} on {subject} over "
                    f"{format_currency(rule.exemption)}"
                ),
                taxable_amount=taxable,
                rate=rule.rate,
                tax=raw_tax,
            ),
        )

    return StateTaxResult(
        state=code,
        state_name=rule.name,
        tax_type=tax_type,
        state_tax=tax,
        effective_rate=tax / income if income > ZERO else ZERO,
        marginal_rate=rule.rate if taxable > ZERO else ZERO,
        taxable_income=taxable,
        tax_before_credits=tax,
        breakdown=breakdown,
        notes=tuple(rule.notes),
    )


def _income_tax(
    code: str,
    rule: FlatRateRule | BracketScheduleRule,
    status: FilingStatus,
    data: StateTaxInput,
) -> StateTaxResult:
    agi = data.federal_agi
    standard = state_standard_deduction(rule, status, data)
    deduction = standard
    if rule.allows_itemization and data.itemized_deductions > standard:
        deduction = data.itemized_deductions

    exemption = state_personal_exemption(rule, status, data.dependents, agi)
    taxable = max(ZERO, max(ZERO, agi - deduction) - exemption)

    if isinstance(rule, FlatRateRule):
        tax_type = "Flat Rate"
        raw_tax = taxable * rule.rate
        base_tax = round_cents(raw_tax)
        marginal = rule.rate if taxable > ZERO else ZERO
        breakdown: tuple[StateBracketLine, ...] = ()
        if taxable > ZERO:
            breakdown = (
                StateBracketLine(
                    bracket=f"{format_percent(rule.rate)} on income over $0",
                    taxable_amount=taxable,
                    rate=rule.rate,
                    tax=raw_tax,
                ),
            )
    else:
        tax_type = "Progressive"
        table = rule.table_for(status)
        result = compute_bracket_tax(taxable, table)
        base_tax = result.tax
        marginal = result.marginal_rate
        bands = [b for b in table.brackets if b.lower < taxable]
        breakdown = tuple(
            StateBracketLine(
                bracket=_bracket_description(band.rate, band.lower, band.upper),
                taxable_amount=line.taxable_in_this_bracket,
                rate=line.rate,
                tax=line.tax_from_this_bracket,
            )
            for band, line in zip(bands, result.breakdown)
        )

    state_tax, credits = apply_credits(base_tax, rule.credits, status, data)

    return StateTaxResult(
        state=code,
        state_name=rule.name,
        tax_type=tax_type,
        state_tax=state_tax,
        effective_rate=state_tax / agi if agi > ZERO else ZERO,
        marginal_rate=marginal,
        taxable_income=taxable,
        standard_deduction=standard,
        deduction=deduction,
        personal_exemption=exemption,
        tax_before_credits=base_tax,
        credits=credits,
        breakdown=breakdown,
        notes=tuple(rule.notes),
    )


_AMOUNT_FIELDS = ("federal_agi", "itemized_deductions", "dividends", "interest", "capital_gains")
_COUNT_FIELDS = ("dependents", "dependents_under_17", "dependents_over_17", "age", "spouse_age")


def _validate(data: StateTaxInput) -> tuple[FilingStatus, StateTaxInput]:
    """Check one state input and fill in what the caller left out.

    Missing amounts and counts (None) become 0. Amounts may be Decimal, int
    or a numeric string.

    Returns:
        Tuple of (filing status, input with every amount a finite Decimal).

    Raises:
        InvalidInputError: Listing every offending field.
    """
    errors: list[str] = []
    values: dict[str, object] = {}

    for name in _AMOUNT_FIELDS:
        try:
            amount = to_decimal(getattr(data, name))
        except (TypeError, ValueError) as exc:
            errors.append(f"{name}: {exc}")
            continue
        if not amount.is_finite():
            errors.append(f"{name}: must be a finite amount, got {amount}")
        elif amount < 0:
            errors.append(f"{name}: must be non-negative, got {amount}")
        else:
            values[name] = amount

    for name in _COUNT_FIELDS:
        count = getattr(data, name)
        if count is None:
            count = 0
        if isinstance(count, bool) or not isinstance(count, int):
            errors.append(f"{name}: expected a whole number, got {type(count).__name__}")
        elif count < 0:
            errors.append(f"{name}: must be non-negative, got {count}")
        else:
            values[name] = count

    values["is_blind"] = bool(data.is_blind)
    values["spouse_is_blind"] = bool(data.spouse_is_blind)

    status: FilingStatus | None = None
    try:
        status = FilingStatus.parse(data.filing_status)
    except InvalidInputError as exc:
        errors.extend(exc.errors)

    if errors or status is None:
        raise InvalidInputError(errors)
    return status, replace(data, filing_status=status, **values)


def calculate_state_tax(data: StateTaxInput, tax_year: int | None = None) -> StateTaxResult:
    """Compute state income tax for one return.

    Args:
        data: State input; federal_agi is the conformity base.
        tax_year: Tax year; None uses the configured default.

    Returns:
        StateTaxResult. No-tax states return a zero tax with a note.

    Raises:
        UnsupportedStateError: If the state or the tax year has no rule.
        InvalidInputError: If an amount is negative or not finite, or the
            status is unknown.
    """
    code = normalize_state(data.state)
    year = _resolve_year(tax_year)
    token = state_code_ctx.set(code)
    try:
        rule = _get_rule(code, year)
        status, data = _validate(data)

        if isinstance(rule, NoIncomeTaxRule):
            result = _no_tax(code, rule)
        elif isinstance(rule, InvestmentIncomeRule):
            result = _investment_income(code, rule, data)
        else:
            result = _income_tax(code, rule, status, data)

        logger.debug(
            "state_tax_calculated",
            tax_year=year,
            tax_type=result.tax_type,
            taxable_income=result.taxable_income,
            state_tax=result.state_tax,
        )
        return result
    finally:
        state_code_ctx.reset(token)


def get_state_info(state: str, tax_year: int | None = None) -> StateInfo:
    """Describe a state's rule: type, rate range and what it allows.

    Raises:
        UnsupportedStateError: If the state or the tax year has no rule.
    """
    code = normalize_state(state)
    rule = _get_rule(code, _resolve_year(tax_year))

    if isinstance(rule, NoIncomeTaxRule):
        return StateInfo(
            state=code,
            name=rule.name,
            tax_type="no_tax",
            rates="No state income tax",
            has_standard_deduction=False,
            has_personal_exemption=False,
            notes=tuple(rule.notes),
        )
    if isinstance(rule, InvestmentIncomeRule):
        return StateInfo(
            state=code,
            name=rule.name,
            tax_type="investment_income",
            rates=f"{format_percent(rule.rate)} on {_INVESTMENT_SUBJECTS[rule.category]}",
            has_standard_deduction=False,
            has_personal_exemption=False,
            notes=tuple(rule.notes),
        )

    if isinstance(rule, FlatRateRule):
        rates = f"Flat rate: {format_percent(rule.rate)}"
    else:
        table = rule.table_for(FilingStatus.SINGLE)
        rates = f"{format_percent(table.brackets[0].rate)} - {format_percent(table.top_rate)}"

    return StateInfo(
        state=code,
        name=rule.name,
        tax_type=rule.type,
        rates=rates,
        has_standard_deduction=rule.standard_deduction is not None,
        has_personal_exemption=rule.personal_exemption is not None,
        notes=tuple(rule.notes),
    )
