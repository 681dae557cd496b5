"""State tax rule models and per-call value objects.

Rule files are YAML documents validated into the Pydantic models below. Each
state maps to exactly one rule variant, selected by its ``type`` field:

- ``no_tax``: no personal income tax
- ``flat``: one rate on taxable income
- ``progressive``: a bracket schedule per filing status
- ``investment_income``: one category of investment income above an exemption

StateTaxInput and StateTaxResult are plain frozen dataclasses, like the
federal inputs and results.

A loaded rule set is shared by every caller, so its containers are tuples and
read-only mappings.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from taxengine.tax.brackets import BracketTable
from taxengine.tax.filing_status import FilingStatus


def _zero() -> Decimal:
    return Decimal("0")


def _for_status(values: Mapping[FilingStatus, object], status: FilingStatus) -> object | None:
    """Pick a per-status value, falling back the way state tables do.

    Qualifying widow uses the joint entry when a state has none of its own;
    any other missing status uses the single entry.
    """
    if status in values:
        return values[status]
    if (
        status is FilingStatus.QUALIFYING_WIDOW
        and FilingStatus.MARRIED_FILING_JOINTLY in values
    ):
        return values[FilingStatus.MARRIED_FILING_JOINTLY]
    return values.get(FilingStatus.SINGLE)


# =============================================================================
# Rule Components
# =============================================================================


class _RuleModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class PhaseOut(_RuleModel):
    """Income-based reduction of an exemption or credit."""

    start_income: Decimal = Field(..., ge=0, description="AGI where the phase-out begins")
    rate: Decimal = Field(..., ge=0, description="Reduction per dollar of AGI over the start")


class PersonalExemption(_RuleModel):
    """Per-person exemption amounts."""

    taxpayer: Decimal = Field(default_factory=_zero, ge=0)
    spouse: Decimal = Field(default_factory=_zero, ge=0, description="Joint returns only")
    dependent: Decimal = Field(default_factory=_zero, ge=0, description="Per dependent")
    phase_out: PhaseOut | None = None


class CreditCondition(str, Enum):
    """What a flat credit is multiplied by."""

    DEPENDENT = "dependent"
    DEPENDENT_UNDER_17 = "dependent_under_17"
    DEPENDENT_17_AND_OVER = "dependent_17_and_over"


class StateCreditRule(_RuleModel):
    """Flat credit subtracted from state tax.

    With a condition the amount is per qualifying dependent. Without one the
    credit applies once, limited to ``filing_status`` when that is set.
    """

    name: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0)
    condition: CreditCondition | None = None
    filing_status: FilingStatus | None = None
    phase_out: PhaseOut | None = None


class InvestmentCategory(str, Enum):
    """Income category taxed by an investment-income-only state."""

    DIVIDENDS_INTEREST = "dividends_interest"
    CAPITAL_GAINS = "capital_gains"


# =============================================================================
# Rule Variants
# =============================================================================


class NoIncomeTaxRule(_RuleModel):
    """State with no personal income tax."""

    type: Literal["no_tax"]
    name: str
    notes: tuple[str, ...] = ()


class IncomeTaxRule(_RuleModel):
    """Fields shared by the rules that tax AGI."""

    name: str
    notes: tuple[str, ...] = ()
    standard_deduction: Decimal | Mapping[FilingStatus, Decimal] | None = None
    personal_exemption: PersonalExemption | None = None
    credits: tuple[StateCreditRule, ...] = ()
    allows_itemization: bool = False
    additional_deduction_65_plus: Decimal = Field(default_factory=_zero, ge=0)
    additional_deduction_blind: Decimal = Field(default_factory=_zero, ge=0)

    @field_validator("standard_deduction")
    @classmethod
    def validate_standard_deduction(
        cls, v: Decimal | Mapping[FilingStatus, Decimal] | None
    ) -> Decimal | Mapping[FilingStatus, Decimal] | None:
        """Ensure deduction amounts are non-negative; per-status tables are read-only."""
        if v is None or isinstance(v, Decimal):
            if v is not None and v < 0:
                raise ValueError("standard_deduction must be non-negative")
            return v
        if any(amount < 0 for amount in v.values()):
            raise ValueError("standard_deduction amounts must be non-negative")
        return MappingProxyType(dict(v))

    def standard_deduction_for(self, status: FilingStatus) -> Decimal:
        """Base standard deduction for a filing status, before age or blindness."""
        if self.standard_deduction is None:
            return Decimal("0")
        if isinstance(self.standard_deduction, Decimal):
            return self.standard_deduction
        value = _for_status(self.standard_deduction, status)
        return value if isinstance(value, Decimal) else Decimal("0")


class FlatRateRule(IncomeTaxRule):
    """One rate on taxable income."""

    type: Literal["flat"]
    rate: Decimal = Field(..., ge=0, le=1)


class BracketScheduleRule(IncomeTaxRule):
    """Progressive schedule of ``[threshold, rate]`` pairs per filing status."""

    type: Literal["progressive"]
    brackets: Mapping[FilingStatus, tuple[tuple[Decimal, Decimal], ...]]

    @field_validator("brackets")
    @classmethod
    def freeze_brackets(
        cls, v: Mapping[FilingStatus, tuple[tuple[Decimal, Decimal], ...]]
    ) -> Mapping[FilingStatus, tuple[tuple[Decimal, Decimal], ...]]:
        return MappingProxyType(dict(v))

    @model_validator(mode="after")
    def validate_brackets(self) -> BracketScheduleRule:
        """Every schedule must form a valid bracket table."""
        if FilingStatus.SINGLE not in self.brackets:
            raise ValueError("progressive rules need at least a single schedule")
        for status, pairs in self.brackets.items():
            try:
                BracketTable.from_thresholds(pairs)
            except ValueError as e:
                raise ValueError(f"{status.value} brackets: {e}") from e
        return self

    def table_for(self, status: FilingStatus) -> BracketTable:
        """Bracket table for a filing status, with the usual fallback."""
        pairs = _for_status(self.brackets, status)
        return BracketTable.from_thresholds(pairs)  # type: ignore[arg-type]


class InvestmentIncomeRule(_RuleModel):
    """Tax on one investment income category above an exemption."""

    type: Literal["investment_income"]
    name: str
    category: InvestmentCategory
    rate: Decimal = Field(..., ge=0, le=1)
    exemption: Decimal = Field(default_factory=_zero, ge=0)
    notes: tuple[str, ...] = ()


StateRule = Annotated[
    Union[NoIncomeTaxRule, FlatRateRule, BracketScheduleRule, InvestmentIncomeRule],
    Field(discriminator="type"),
]


class StateRuleSet(_RuleModel):
    """All state rules for one tax year."""

    tax_year: int = Field(..., ge=2000, le=2100)
    states: Mapping[str, StateRule]

    @field_validator("states")
    @classmethod
    def validate_codes(cls, v: Mapping[str, StateRule]) -> Mapping[str, StateRule]:
        """State codes are two upper-case letters. The mapping is read-only."""
        for code in v:
            if len(code) != 2 or not code.isalpha() or not code.isupper():
                raise ValueError(f"invalid state code: {code!r}")
        return MappingProxyType(dict(v))


# =============================================================================
# Per-call Values
# =============================================================================


@dataclass(frozen=True)
class StateTaxInput:
    """Input for one state computation.

    Amounts not supplied default to 0 so partial, running estimates work. An
    amount or count passed as None is treated the same way.

    Attributes:
        state: Postal code or state name.
        filing_status: FilingStatus or alias.
        federal_agi: Federal AGI, the conformity base.
        itemized_deductions: State itemized total, used where allowed.
        dependents: Number of dependents.
        dependents_under_17: Dependents under 17, for age-based credits.
        dependents_over_17: Dependents 17 and older.
        age: Taxpayer age.
        is_blind: Taxpayer is blind.
        spouse_age: Spouse age, joint returns.
        spouse_is_blind: Spouse is blind, joint returns.
        dividends: Dividend income, for investment-income states.
        interest: Interest income, for investment-income states.
        capital_gains: Capital gains, for investment-income states.
    """

    state: str
    filing_status: FilingStatus | str = FilingStatus.SINGLE
    federal_agi: Decimal = field(default_factory=_zero)
    itemized_deductions: Decimal = field(default_factory=_zero)
    dependents: int = 0
    dependents_under_17: int = 0
    dependents_over_17: int = 0
    age: int = 0
    is_blind: bool = False
    spouse_age: int = 0
    spouse_is_blind: bool = False
    dividends: Decimal = field(default_factory=_zero)
    interest: Decimal = field(default_factory=_zero)
    capital_gains: Decimal = field(default_factory=_zero)


@dataclass(frozen=True)
class StateCredit:
    """A credit actually allowed against state tax."""

    name: str
    amount: Decimal


@dataclass(frozen=True)
class StateBracketLine:
    """One line of the state tax audit trail.

    Attributes:
        bracket: Description such as ``5.00% on income $3,000 - $16,999``.
        taxable_amount: Income taxed on this line.
        rate: Rate applied.
        tax: Unrounded tax from this line.
    """

    bracket: str
    taxable_amount: Decimal
    rate: Decimal
    tax: Decimal


@dataclass(frozen=True)
class StateTaxResult:
    """Result of one state computation.

    Attributes:
        state: Postal code.
        state_name: Full name.
        tax_type: "No State Income Tax", "Flat Rate", "Progressive",
            "Capital Gains Tax" or "Dividends & Interest Tax".
        state_tax: Tax after credits, rounded to the cent, never negative.
        effective_rate: state_tax / federal AGI as a fraction.
        marginal_rate: Rate of the top bracket reached.
        taxable_income: Income the rate schedule was applied to.
        standard_deduction: State standard deduction incl. age and blindness.
        deduction: Deduction actually applied (standard or itemized).
        personal_exemption: Exemptions after any phase-out.
        tax_before_credits: Tax from the schedule, rounded to the cent.
        credits: Credits allowed, in table order.
        breakdown: Audit trail lines.
        notes: Explanatory notes from the rule table.
    """

    state: str
    state_name: str
    tax_type: str
    state_tax: Decimal = field(default_factory=_zero)
    effective_rate: Decimal = field(default_factory=_zero)
    marginal_rate: Decimal = field(default_factory=_zero)
    taxable_income: Decimal = field(default_factory=_zero)
    standard_deduction: Decimal = field(default_factory=_zero)
    deduction: Decimal = field(default_factory=_zero)
    personal_exemption: Decimal = field(default_factory=_zero)
    tax_before_credits: Decimal = field(default_factory=_zero)
    credits: tuple[StateCredit, ...] = ()
    breakdown: tuple[StateBracketLine, ...] = ()
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class StateInfo:
    """Summary of a state's rule for display."""

    state: str
    name: str
    tax_type: str
    rates: str
    has_standard_deduction: bool
    has_personal_exemption: bool
    notes: tuple[str, ...] = ()
