"""Tests for bracket tables and the progressive bracket engine.

Covers:
1. Table validation (start at 0, contiguous, non-decreasing rates, open top)
2. Per-band allocation and the audit trail
3. Single rounding of the total
4. Monotonicity and marginal rate

All arithmetic is Decimal. No floating point allowed.
"""

from decimal import Decimal

import pytest

from taxengine.core.money import round_cents
from taxengine.errors import InvalidInputError
from taxengine.tax.brackets import (
    Bracket,
    BracketTable,
    compute_bracket_tax,
    get_bracket_table,
)
from taxengine.tax.filing_status import FilingStatus


# =============================================================================
# Helpers
# =============================================================================

D = Decimal


def _single(year: int = 2023) -> BracketTable:
    return get_bracket_table(FilingStatus.SINGLE, year)


# =============================================================================
# Table validation
# =============================================================================


class TestBracketTableValidation:
    """Malformed schedules are rejected at construction."""

    def test_empty_table_rejected(self) -> None:
        with pytest.raises(ValueError, match="at least one"):
            BracketTable(brackets=())

    def test_must_start_at_zero(self) -> None:
        with pytest.raises(ValueError, match="start at 0"):
            BracketTable.from_thresholds([(D("100"), D("0.01"))])

    def test_final_bracket_must_be_open(self) -> None:
        with pytest.raises(ValueError, match="unbounded"):
            BracketTable.from_upper_bounds([(D("100"), D("0.10"))])

    def test_rates_must_not_decrease(self) -> None:
        with pytest.raises(ValueError, match="must not decrease"):
            BracketTable.from_thresholds([(D("0"), D("0.05")), (D("1000"), D("0.04"))])

    def test_thresholds_must_increase(self) -> None:
        with pytest.raises(ValueError, match="must increase"):
            BracketTable.from_thresholds([(D("0"), D("0.01")), (D("0"), D("0.02"))])

    def test_rate_above_one_rejected(self) -> None:
        with pytest.raises(ValueError, match="out of range"):
            BracketTable.from_thresholds([(D("0"), D("1.5"))])

    def test_gap_between_brackets_rejected(self) -> None:
        with pytest.raises(ValueError, match="contiguous"):
            BracketTable(
                brackets=(
                    Bracket(lower=D("0"), upper=D("100"), rate=D("0.01")),
                    Bracket(lower=D("200"), upper=None, rate=D("0.02")),
                )
            )

    def test_zero_rate_first_bracket_allowed(self) -> None:
        table = BracketTable.from_thresholds([(D("0"), D("0")), (D("26050"), D("0.02765"))])
        assert table.brackets[0].rate == D("0")
        assert table.top_rate == D("0.02765")

    def test_from_thresholds_chains_bounds(self) -> None:
        table = BracketTable.from_thresholds(
            [(D("0"), D("0.02")), (D("3000"), D("0.03")), (D("5000"), D("0.05"))]
        )
        assert [(b.lower, b.upper) for b in table.brackets] == [
            (D("0"), D("3000")),
            (D("3000"), D("5000")),
            (D("5000"), None),
        ]

    def test_table_is_frozen(self) -> None:
        with pytest.raises(AttributeError):
            _single().brackets = ()  # type: ignore[misc]


class TestBracketLabels:
    """Range labels in the audit trail."""

    def test_bounded_label(self) -> None:
        assert Bracket(lower=D("11000"), upper=D("44725"), rate=D("0.12")).label == (
            "$11,000 - $44,725"
        )

    def test_open_label(self) -> None:
        assert Bracket(lower=D("578125"), upper=None, rate=D("0.37")).label == "$578,125+"


class TestGetBracketTable:
    """Federal tables built from the year configuration."""

    def test_tables_are_shared(self) -> None:
        assert get_bracket_table(FilingStatus.SINGLE, 2025) is get_bracket_table(
            FilingStatus.SINGLE, 2025
        )

    def test_unknown_year_raises(self) -> None:
        with pytest.raises(InvalidInputError):
            get_bracket_table(FilingStatus.SINGLE, 2010)

    def test_2025_single_top_bracket(self) -> None:
        top = get_bracket_table(FilingStatus.SINGLE, 2025).brackets[-1]
        assert top.lower == D("626350")
        assert top.rate == D("0.37")


# =============================================================================
# Engine
# =============================================================================


class TestComputeBracketTax:
    """Progressive allocation of taxable income across bands."""

    def test_two_bracket_example(self) -> None:
        result = compute_bracket_tax(D("36150"), _single(2023))

        assert result.tax == D("4118.00")
        assert result.marginal_rate == D("0.12")
        assert len(result.breakdown) == 2

        first, second = result.breakdown
        assert first.bracket_range == "$0 - $11,000"
        assert first.taxable_in_this_bracket == D("11000")
        assert first.tax_from_this_bracket == D("1100.00")
        assert second.bracket_range == "$11,000 - $44,725"
        assert second.taxable_in_this_bracket == D("25150")
        assert second.tax_from_this_bracket == D("3018.00")
        assert second.cumulative_tax == D("4118.00")

    def test_zero_income_has_empty_breakdown(self) -> None:
        result = compute_bracket_tax(D("0"), _single())
        assert result.tax == D("0")
        assert result.breakdown == ()
        assert result.marginal_rate == D("0")

    def test_negative_income_rejected(self) -> None:
        with pytest.raises(InvalidInputError, match="non-negative"):
            compute_bracket_tax(D("-1"), _single())

    def test_income_at_threshold_stays_in_lower_band(self) -> None:
        result = compute_bracket_tax(D("11000"), _single(2023))
        assert len(result.breakdown) == 1
        assert result.marginal_rate == D("0.10")
        assert result.tax == D("1100.00")

    def test_first_dollar_over_threshold_enters_next_band(self) -> None:
        result = compute_bracket_tax(D("11001"), _single(2023))
        assert len(result.breakdown) == 2
        assert result.marginal_rate == D("0.12")
        assert result.breakdown[1].taxable_in_this_bracket == D("1")

    def test_top_bracket_reached(self) -> None:
        result = compute_bracket_tax(D("1000000"), _single(2025))
        assert len(result.breakdown) == 7
        assert result.marginal_rate == D("0.37")
        assert result.breakdown[-1].bracket_range == "$626,350+"

    @pytest.mark.parametrize(
        "income", ["0.01", "999.99", "11000", "44725", "95376", "250000", "1234567.89"]
    )
    def test_breakdown_accounts_for_all_income(self, income: str) -> None:
        result = compute_bracket_tax(D(income), _single(2023))
        assert sum(line.taxable_in_this_bracket for line in result.breakdown) == D(income)

    def test_breakdown_sums_to_total_before_rounding(self) -> None:
        result = compute_bracket_tax(D("123456.78"), _single(2024))
        raw = sum(line.tax_from_this_bracket for line in result.breakdown)
        assert raw == result.breakdown[-1].cumulative_tax
        assert result.tax == round_cents(raw)

    def test_total_rounded_once(self) -> None:
        """Three sub-cent contributions add up to a cent."""
        table = BracketTable.from_upper_bounds(
            [(D("1"), D("0.004")), (D("2"), D("0.004")), (None, D("0.004"))]
        )
        result = compute_bracket_tax(D("3"), table)
        assert [line.tax_from_this_bracket for line in result.breakdown] == [
            D("0.004"),
            D("0.004"),
            D("0.004"),
        ]
        assert result.tax == D("0.01")

    def test_tax_is_monotonic_in_income(self) -> None:
        table = _single(2025)
        incomes = [D(n) for n in range(0, 800001, 12500)]
        taxes = [compute_bracket_tax(income, table).tax for income in incomes]
        assert taxes == sorted(taxes)

    @pytest.mark.parametrize("status", list(FilingStatus))
    def test_marginal_rate_never_exceeds_top_rate(self, status: FilingStatus) -> None:
        table = get_bracket_table(status, 2025)
        for income in (D("0"), D("50000"), D("500000"), D("5000000")):
            assert compute_bracket_tax(income, table).marginal_rate <= table.top_rate

    def test_deterministic(self) -> None:
        table = _single(2024)
        assert compute_bracket_tax(D("87654.32"), table) == compute_bracket_tax(
            D("87654.32"), table
        )
