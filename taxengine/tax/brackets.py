"""Progressive bracket tables and the bracket tax engine.

A bracket table is an ordered run of contiguous income bands, each taxed at
its own rate. Federal tables are built from the per-year configuration; state
tables are built from the rule files in the same shape. The engine walks the
bands once, keeps every per-band amount exact, and rounds only the total.

All arithmetic uses Decimal. No floating point.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache

from taxengine.core.money import ZERO, format_currency, round_cents
from taxengine.errors import InvalidInputError
from taxengine.tax.filing_status import FilingStatus
from taxengine.tax.year_config import get_tax_year_config


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class Bracket:
    """One income band.

    Attributes:
        lower: First dollar of the band (inclusive).
        upper: End of the band, or None for the top bracket.
        rate: Fractional rate applied to income inside the band.
    """

    lower: Decimal
    upper: Decimal | None
    rate: Decimal

    @property
    def label(self) -> str:
        """Range label such as ``$11,000 - $44,725`` or ``$578,125+``."""
        if self.upper is None:
            return f"{format_currency(self.lower)}+"
        return f"{format_currency(self.lower)} - {format_currency(self.upper)}"


@dataclass(frozen=True)
class BracketTable:
    """Ordered, validated bracket schedule.

    Raises:
        ValueError: If the bands do not start at 0, are not contiguous and
            strictly increasing, have decreasing or out-of-range rates, or
            the final band is bounded.
    """

    brackets: tuple[Bracket, ...]

    def __post_init__(self) -> None:
        if not self.brackets:
            raise ValueError("Bracket table must have at least one bracket")
        if self.brackets[0].lower != ZERO:
            raise ValueError("First bracket must start at 0")
        if self.brackets[-1].upper is not None:
            raise ValueError("Final bracket must be unbounded")

        previous: Bracket | None = None
        for bracket in self.brackets:
            if not ZERO <= bracket.rate <= Decimal("1"):
                raise ValueError(f"Bracket rate out of range: {bracket.rate}")
            if bracket.upper is not None and bracket.upper <= bracket.lower:
                raise ValueError(
                    f"Bracket thresholds must increase: {bracket.lower} >= {bracket.upper}"
                )
            if previous is not None:
                if previous.upper != bracket.lower:
                    raise ValueError(
                        f"Brackets must be contiguous: {previous.upper} != {bracket.lower}"
                    )
                if bracket.rate < previous.rate:
                    raise ValueError(
                        f"Bracket rates must not decrease: {previous.rate} > {bracket.rate}"
                    )
            previous = bracket

    @classmethod
    def from_upper_bounds(
        cls, bounds: Iterable[tuple[Decimal | None, Decimal]]
    ) -> BracketTable:
        """Build from ``(upper_bound, rate)`` pairs, the federal table shape."""
        brackets: list[Bracket] = []
        lower = ZERO
        for upper, rate in bounds:
            brackets.append(Bracket(lower=lower, upper=upper, rate=rate))
            if upper is None:
                break
            lower = upper
        return cls(brackets=tuple(brackets))

    @classmethod
    def from_thresholds(cls, thresholds: Iterable[tuple[Decimal, Decimal]]) -> BracketTable:
        """Build from ``(threshold_low, rate)`` pairs, the state table shape.

        Each band ends where the next one starts; the last band is open.
        """
        pairs = list(thresholds)
        brackets = [
            Bracket(
                lower=low,
                upper=pairs[index + 1][0] if index + 1 < len(pairs) else None,
                rate=rate,
            )
            for index, (low, rate) in enumerate(pairs)
        ]
        return cls(brackets=tuple(brackets))

    @property
    def top_rate(self) -> Decimal:
        return self.brackets[-1].rate


@dataclass(frozen=True)
class BracketBreakdown:
    """Audit trail entry for one band that received income.

    Attributes:
        bracket_range: Human-readable band label.
        rate: Rate applied in the band.
        taxable_in_this_bracket: Income that fell inside the band.
        tax_from_this_bracket: Unrounded tax from the band.
        cumulative_tax: Unrounded running total through this band.
    """

    bracket_range: str
    rate: Decimal
    taxable_in_this_bracket: Decimal
    tax_from_this_bracket: Decimal
    cumulative_tax: Decimal


@dataclass(frozen=True)
class BracketTaxResult:
    """Tax computed against a bracket table.

    Attributes:
        tax: Total tax, rounded half-up to the cent once.
        breakdown: One entry per band that received income.
        marginal_rate: Rate of the band holding the last taxed dollar.
    """

    tax: Decimal
    breakdown: tuple[BracketBreakdown, ...]
    marginal_rate: Decimal


# =============================================================================
# Lookup
# =============================================================================


@lru_cache(maxsize=None)
def get_bracket_table(filing_status: FilingStatus, tax_year: int) -> BracketTable:
    """Federal ordinary income bracket table for a status and year.

    Args:
        filing_status: Filing status of the return.
        tax_year: Tax year whose schedule applies.

    Returns:
        The validated, shared bracket table.

    Raises:
        InvalidInputError: If the tax year has no configuration.
    """
    config = get_tax_year_config(tax_year)
    return BracketTable.from_upper_bounds(config.brackets(filing_status))


# =============================================================================
# Engine
# =============================================================================


def compute_bracket_tax(taxable_income: Decimal, table: BracketTable) -> BracketTaxResult:
    """Apply a progressive bracket table to taxable income.

    Each band taxes only the income inside it. Per-band contributions stay
    exact; the total is rounded half-up to the cent at the end.

    Args:
        taxable_income: Non-negative taxable income.
        table: Bracket table to apply.

    Returns:
        BracketTaxResult with the rounded tax, the per-band audit trail and
        the marginal rate.

    Raises:
        InvalidInputError: If taxable_income is negative.

    Example:
        >>> table = get_bracket_table(FilingStatus.SINGLE, 2023)
        >>> compute_bracket_tax(Decimal("36150"), table).tax
        Decimal('4118.00')
    """
    if taxable_income < ZERO:
        raise InvalidInputError(f"taxable_income: must be non-negative, got {taxable_income}")

    breakdown: list[BracketBreakdown] = []
    cumulative = ZERO
    marginal_rate = ZERO

    for bracket in table.brackets:
        if taxable_income <= bracket.lower:
            break
        ceiling = taxable_income if bracket.upper is None else min(taxable_income, bracket.upper)
        in_bracket = ceiling - bracket.lower
        if in_bracket <= ZERO:
            continue

        contribution = in_bracket * bracket.rate
        cumulative += contribution
        marginal_rate = bracket.rate
        breakdown.append(
            BracketBreakdown(
                bracket_range=bracket.label,
                rate=bracket.rate,
                taxable_in_this_bracket=in_bracket,
                tax_from_this_bracket=contribution,
                cumulative_tax=cumulative,
            )
        )

    return BracketTaxResult(
        tax=round_cents(cumulative),
        breakdown=tuple(breakdown),
        marginal_rate=marginal_rate,
    )
