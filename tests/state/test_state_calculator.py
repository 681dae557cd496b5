"""Tests for the state income tax dispatcher.

Covers:
1. No-tax, flat, progressive and investment-income rules
2. Standard deductions, personal exemptions and their phase-outs
3. Credits, capped at the remaining tax
4. State code normalization and unsupported states

All arithmetic is Decimal. No floating point allowed.
"""

from decimal import Decimal
from pathlib import Path

import pytest

from taxengine.core.config import settings
from taxengine.errors import InvalidInputError, StateRulesLoadError, UnsupportedStateError
from taxengine.state.calculator import (
    NO_TAX_NOTE,
    apply_credits,
    calculate_state_tax,
    get_state_info,
    list_states,
    normalize_state,
    state_personal_exemption,
    state_standard_deduction,
)
from taxengine.state.models import (
    CreditCondition,
    FlatRateRule,
    PersonalExemption,
    PhaseOut,
    StateCredit,
    StateCreditRule,
    StateTaxInput,
)
from taxengine.tax.filing_status import FilingStatus


# =============================================================================
# Helpers
# =============================================================================

D = Decimal

SINGLE = FilingStatus.SINGLE
MFJ = FilingStatus.MARRIED_FILING_JOINTLY

CUSTOM_CA_YAML = """\
tax_year: 2025
states:
  CA:
    name: California
    type: progressive
    brackets:
      single: [[0, "0.10"]]
"""


def _inputs(state: str, agi: str = "0", **kwargs) -> StateTaxInput:
    """Build StateTaxInput with sensible defaults (single, all zeros)."""
    return StateTaxInput(state=state, federal_agi=D(agi), **kwargs)


def _flat_rule(**kwargs) -> FlatRateRule:
    """A hypothetical 5% flat-rate state."""
    defaults = {"type": "flat", "name": "Testland", "rate": D("0.05")}
    defaults.update(kwargs)
    return FlatRateRule(**defaults)


# =============================================================================
# Normalization and lookup
# =============================================================================


class TestNormalizeState:
    """Names, abbreviations and common variants resolve to postal codes."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("CA", "CA"),
            (" tx ", "TX"),
            ("california", "CA"),
            ("Calif", "CA"),
            ("Penna", "PA"),
            ("nyc", "NY"),
            ("New  Mexico", "NM"),
            ("District of Columbia", "DC"),
            ("d.c.", "DC"),
            ("zz", "ZZ"),
        ],
    )
    def test_variants(self, raw: str, expected: str) -> None:
        assert normalize_state(raw) == expected


class TestUnsupported:
    """Unknown states and years raise instead of returning zero."""

    def test_unknown_state(self) -> None:
        with pytest.raises(UnsupportedStateError) as exc_info:
            calculate_state_tax(_inputs("ZZ", "50000"))
        assert exc_info.value.state == "ZZ"
        assert exc_info.value.tax_year is None

    def test_blank_state(self) -> None:
        with pytest.raises(UnsupportedStateError):
            calculate_state_tax(_inputs("  ", "50000"))

    def test_year_without_rules(self) -> None:
        with pytest.raises(UnsupportedStateError) as exc_info:
            calculate_state_tax(_inputs("CA", "50000"), tax_year=2023)
        assert exc_info.value.tax_year == 2023
        assert "tax year 2023" in str(exc_info.value)

    def test_state_info_for_unknown_state(self) -> None:
        with pytest.raises(UnsupportedStateError):
            get_state_info("Atlantis")


class TestListStates:
    """Every jurisdiction with a rule, sorted."""

    def test_default_year(self) -> None:
        states = list_states()
        assert len(states) == 51
        assert states == sorted(states)
        assert {"DC", "NM", "TX", "WA"} <= set(states)

    def test_year_without_rules(self) -> None:
        assert list_states(2019) == []


class TestRuleSource:
    """Rules come from the configured directory and are read once."""

    def test_warm_calls_stay_off_disk(self, monkeypatch) -> None:
        calculate_state_tax(_inputs("CA", "50000"))
        list_states()

        def _touched(*args, **kwargs):
            raise AssertionError("rule directory read after the first load")

        monkeypatch.setattr(Path, "glob", _touched)
        monkeypatch.setattr(Path, "open", _touched)

        for _ in range(3):
            assert calculate_state_tax(_inputs("CA", "50000")).state_tax > D("0")
        assert len(list_states()) == 51
        assert get_state_info("CA").tax_type == "progressive"

    def test_switching_directory_switches_schedule(self, tmp_path, monkeypatch) -> None:
        packaged = calculate_state_tax(_inputs("CA", "50000"))
        (tmp_path / "2025.yaml").write_text(CUSTOM_CA_YAML, encoding="utf-8")

        monkeypatch.setattr(settings, "state_rules_dir", tmp_path)
        custom = calculate_state_tax(_inputs("CA", "50000"))

        assert custom.state_tax == D("5000.00")
        assert custom.state_tax != packaged.state_tax
        assert list_states() == ["CA"]

    def test_directory_without_the_year(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setattr(settings, "state_rules_dir", tmp_path)
        with pytest.raises(UnsupportedStateError) as exc_info:
            calculate_state_tax(_inputs("CA", "50000"))
        assert exc_info.value.tax_year == 2025
        assert list_states() == []

    def test_broken_rule_file_is_not_hidden(self, tmp_path, monkeypatch) -> None:
        (tmp_path / "2025.yaml").write_text("states: [unclosed\n", encoding="utf-8")
        monkeypatch.setattr(settings, "state_rules_dir", tmp_path)
        with pytest.raises(StateRulesLoadError, match="Failed to parse YAML"):
            calculate_state_tax(_inputs("CA", "50000"))


# =============================================================================
# Rule types
# =============================================================================


class TestNoTaxStates:
    """No-tax states return zero with an explanatory note."""

    def test_texas(self) -> None:
        result = calculate_state_tax(_inputs("TX", "250000"))
        assert result.state == "TX"
        assert result.state_name == "Texas"
        assert result.tax_type == "No State Income Tax"
        assert result.state_tax == D("0")
        assert result.taxable_income == D("0")
        assert result.notes == (NO_TAX_NOTE,)

    def test_rule_notes_replace_default_note(self) -> None:
        result = calculate_state_tax(_inputs("NH", "100000", interest=D("5000")))
        assert result.state_tax == D("0")
        assert result.notes == ("New Hampshire eliminated the dividends and interest tax in 2025",)


class TestFlatRate:
    """One rate on AGI less deductions and exemptions."""

    def test_pennsylvania(self) -> None:
        result = calculate_state_tax(_inputs("PA", "50000"))
        assert result.tax_type == "Flat Rate"
        assert result.taxable_income == D("50000")
        assert result.state_tax == D("1535.00")
        assert result.effective_rate == D("0.0307")
        assert result.marginal_rate == D("0.0307")
        assert len(result.breakdown) == 1
        assert result.breakdown[0].bracket == "3.07% on income over $0"

    def test_illinois_exemptions(self) -> None:
        result = calculate_state_tax(
            _inputs("IL", "60000", filing_status=MFJ, dependents=2)
        )
        assert result.personal_exemption == D("11400")
        assert result.taxable_income == D("48600")
        assert result.state_tax == D("2405.70")

    def test_georgia_deduction_and_exemptions(self) -> None:
        result = calculate_state_tax(
            _inputs("GA", "100000", filing_status="mfj", dependents=1)
        )
        assert result.standard_deduction == D("24800")
        assert result.personal_exemption == D("9300")
        assert result.taxable_income == D("65900")
        assert result.state_tax == D("3617.91")

    def test_taxable_income_round_trip(self) -> None:
        data = _inputs("GA", "87500", filing_status=SINGLE, dependents=3)
        result = calculate_state_tax(data)
        assert result.taxable_income == (
            data.federal_agi - result.deduction - result.personal_exemption
        )

    def test_itemization_where_allowed(self) -> None:
        result = calculate_state_tax(
            _inputs("UT", "100000", itemized_deductions=D("20000"))
        )
        assert result.standard_deduction == D("15000")
        assert result.deduction == D("20000")
        assert result.state_tax == D("3960.00")

    def test_itemization_ignored_elsewhere(self) -> None:
        result = calculate_state_tax(
            _inputs("CO", "100000", itemized_deductions=D("20000"))
        )
        assert result.deduction == D("15000")
        assert result.state_tax == D("3740.00")

    def test_income_below_deduction(self) -> None:
        result = calculate_state_tax(_inputs("CO", "9000"))
        assert result.taxable_income == D("0")
        assert result.state_tax == D("0")
        assert result.marginal_rate == D("0")
        assert result.breakdown == ()

    def test_zero_agi_effective_rate(self) -> None:
        result = calculate_state_tax(_inputs("PA", "0"))
        assert result.effective_rate == D("0")


class TestProgressive:
    """Bracket schedules per filing status."""

    def test_virginia(self) -> None:
        result = calculate_state_tax(_inputs("VA", "50000"))

        assert result.tax_type == "Progressive"
        assert result.deduction == D("4500")
        assert result.personal_exemption == D("930")
        assert result.taxable_income == D("44570")
        assert result.state_tax == D("2305.28")
        assert result.marginal_rate == D("0.0575")
        assert [line.bracket for line in result.breakdown] == [
            "2.00% on income $0 - $2,999",
            "3.00% on income $3,000 - $4,999",
            "5.00% on income $5,000 - $16,999",
            "5.75% on income $17,000 and above",
        ]
        assert sum(line.taxable_amount for line in result.breakdown) == D("44570")

    def test_zero_rate_first_bracket(self) -> None:
        result = calculate_state_tax(_inputs("OH", "20000"))
        assert result.state_tax == D("0")
        assert result.marginal_rate == D("0")
        assert len(result.breakdown) == 1

    def test_ohio_above_zero_bracket(self) -> None:
        result = calculate_state_tax(_inputs("OH", "50000"))
        assert result.state_tax == D("680.20")
        assert result.marginal_rate == D("0.03226")
        assert len(result.breakdown) == 3

    def test_new_mexico(self) -> None:
        result = calculate_state_tax(_inputs("NM", "60000"))
        assert result.deduction == D("15000")
        assert result.taxable_income == D("45000")
        assert result.state_tax == D("1706.00")
        assert result.marginal_rate == D("0.047")

    def test_state_name_input(self) -> None:
        by_name = calculate_state_tax(_inputs("Virginia", "50000"))
        by_code = calculate_state_tax(_inputs("VA", "50000"))
        assert by_name == by_code

    def test_repeated_calls_are_equal(self) -> None:
        data = _inputs("CA", "123456", filing_status="head_of_household", dependents=2)
        assert calculate_state_tax(data) == calculate_state_tax(data)


class TestInvestmentIncome:
    """Washington taxes only capital gains above the exemption."""

    def test_gains_above_exemption(self) -> None:
        result = calculate_state_tax(
            _inputs("WA", "400000", capital_gains=D("300000"))
        )
        assert result.tax_type == "Capital Gains Tax"
        assert result.taxable_income == D("37500")
        assert result.state_tax == D("2625.00")
        assert result.effective_rate == D("0.00875")
        assert result.marginal_rate == D("0.07")
        assert result.breakdown[0].bracket == "7.00% on capital gains over $262,500"

    def test_gains_below_exemption(self) -> None:
        result = calculate_state_tax(
            _inputs("WA", "400000", capital_gains=D("100000"))
        )
        assert result.state_tax == D("0")
        assert result.marginal_rate == D("0")
        assert result.breakdown == ()

    def test_wages_alone_are_not_taxed(self) -> None:
        assert calculate_state_tax(_inputs("WA", "900000")).state_tax == D("0")


# =============================================================================
# Credits
# =============================================================================


class TestCredits:
    """Credits are applied in order and never push tax below zero."""

    def test_arizona_dependent_credits(self) -> None:
        result = calculate_state_tax(
            _inputs("AZ", "40000", dependents_under_17=2, dependents_over_17=1)
        )
        assert result.tax_before_credits == D("625.00")
        assert result.credits == (
            StateCredit(name="Dependent Credit (Under 17)", amount=D("200.00")),
            StateCredit(name="Dependent Credit (17 and Over)", amount=D("25.00")),
        )
        assert result.state_tax == D("400.00")

    def test_credit_capped_at_tax(self) -> None:
        result = calculate_state_tax(_inputs("AZ", "16000", dependents_under_17=2))
        assert result.tax_before_credits == D("25.00")
        assert result.credits == (
            StateCredit(name="Dependent Credit (Under 17)", amount=D("25.00")),
        )
        assert result.state_tax == D("0")

    def test_filing_status_restricted_credit(self) -> None:
        credit = StateCreditRule(name="Joint credit", amount=D("50"), filing_status=MFJ)
        data = _inputs("XX", "40000")

        assert apply_credits(D("100"), [credit], SINGLE, data) == (D("100"), ())
        assert apply_credits(D("100"), [credit], MFJ, data) == (
            D("50.00"),
            (StateCredit(name="Joint credit", amount=D("50.00")),),
        )

    def test_credit_phase_out(self) -> None:
        credit = StateCreditRule(
            name="Family credit",
            amount=D("100"),
            condition=CreditCondition.DEPENDENT,
            phase_out=PhaseOut(start_income=D("50000"), rate=D("0.01")),
        )
        data = _inputs("XX", "60000", dependents=2)
        remaining, allowed = apply_credits(D("500"), [credit], SINGLE, data)
        assert allowed == (StateCredit(name="Family credit", amount=D("100.00")),)
        assert remaining == D("400.00")


# =============================================================================
# Deductions and exemptions
# =============================================================================


class TestDeductionAdditions:
    """Age 65+ and blindness add to the standard deduction."""

    def test_joint_return_counts_spouse(self) -> None:
        rule = _flat_rule(
            standard_deduction=D("1000"),
            additional_deduction_65_plus=D("500"),
            additional_deduction_blind=D("300"),
        )
        data = _inputs("XX", filing_status=MFJ, age=70, spouse_age=66, spouse_is_blind=True)
        assert state_standard_deduction(rule, MFJ, data) == D("2300")

    def test_single_return_ignores_spouse(self) -> None:
        rule = _flat_rule(
            standard_deduction=D("1000"),
            additional_deduction_65_plus=D("500"),
            additional_deduction_blind=D("300"),
        )
        data = _inputs("XX", age=70, spouse_age=80, spouse_is_blind=True)
        assert state_standard_deduction(rule, SINGLE, data) == D("1500")

    def test_no_standard_deduction_means_no_additions(self) -> None:
        rule = _flat_rule(additional_deduction_65_plus=D("500"))
        data = _inputs("XX", age=70)
        assert state_standard_deduction(rule, SINGLE, data) == D("0")


class TestExemptionPhaseOut:
    """Exemptions shrink above the phase-out start and floor at zero."""

    @pytest.mark.parametrize(
        ("agi", "expected"),
        [("90000", "2000"), ("150000", "1000"), ("300000", "0")],
    )
    def test_phase_out(self, agi: str, expected: str) -> None:
        rule = _flat_rule(
            personal_exemption=PersonalExemption(
                taxpayer=D("1000"),
                dependent=D("500"),
                phase_out=PhaseOut(start_income=D("100000"), rate=D("0.02")),
            )
        )
        assert state_personal_exemption(rule, SINGLE, 2, D(agi)) == D(expected)

    def test_no_exemption_rule(self) -> None:
        assert state_personal_exemption(_flat_rule(), MFJ, 3, D("50000")) == D("0")


# =============================================================================
# Validation
# =============================================================================


class TestInvalidInput:
    """Bad amounts and statuses raise InvalidInputError."""

    def test_negative_agi(self) -> None:
        with pytest.raises(InvalidInputError, match="federal_agi"):
            calculate_state_tax(_inputs("PA", "-1"))

    def test_negative_dependents(self) -> None:
        with pytest.raises(InvalidInputError, match="dependents"):
            calculate_state_tax(_inputs("PA", "1000", dependents=-1))

    def test_unknown_status(self) -> None:
        with pytest.raises(InvalidInputError, match="filing_status"):
            calculate_state_tax(_inputs("PA", "1000", filing_status="married"))

    @pytest.mark.parametrize("amount", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_agi(self, amount: str) -> None:
        with pytest.raises(InvalidInputError, match="federal_agi: must be a finite amount"):
            calculate_state_tax(_inputs("CA", amount))

    def test_non_finite_investment_income(self) -> None:
        with pytest.raises(InvalidInputError, match="capital_gains"):
            calculate_state_tax(_inputs("WA", capital_gains=D("NaN")))

    def test_float_amount(self) -> None:
        with pytest.raises(InvalidInputError, match="federal_agi: Expected Decimal"):
            calculate_state_tax(
                StateTaxInput(state="PA", federal_agi=50000.0)  # type: ignore[arg-type]
            )

    def test_fractional_dependents(self) -> None:
        with pytest.raises(InvalidInputError, match="dependents: expected a whole number"):
            calculate_state_tax(_inputs("PA", "1000", dependents=1.5))

    def test_every_error_reported(self) -> None:
        with pytest.raises(InvalidInputError) as exc_info:
            calculate_state_tax(
                _inputs("PA", "-1", interest=D("NaN"), age=-3, filing_status="married")
            )
        assert len(exc_info.value.errors) == 4


class TestPartialInput:
    """Fields left as None count as zero."""

    def test_none_fields_match_defaults(self) -> None:
        partial = StateTaxInput(
            state="CA",
            federal_agi=D("50000"),
            dividends=None,  # type: ignore[arg-type]
            dependents=None,  # type: ignore[arg-type]
            spouse_age=None,  # type: ignore[arg-type]
        )
        assert calculate_state_tax(partial) == calculate_state_tax(_inputs("CA", "50000"))

    def test_missing_agi_is_zero(self) -> None:
        partial = StateTaxInput(state="PA", federal_agi=None)  # type: ignore[arg-type]
        result = calculate_state_tax(partial)
        assert result.state_tax == D("0")
        assert result.taxable_income == D("0")

    def test_numeric_strings_accepted(self) -> None:
        text = StateTaxInput(state="PA", federal_agi="$50,000")  # type: ignore[arg-type]
        result = calculate_state_tax(text)
        assert result.state_tax == D("1535.00")

    def test_unparseable_string_rejected(self) -> None:
        with pytest.raises(InvalidInputError, match="federal_agi: Not a valid amount"):
            calculate_state_tax(
                StateTaxInput(state="PA", federal_agi="lots")  # type: ignore[arg-type]
            )


# =============================================================================
# State info
# =============================================================================


class TestGetStateInfo:
    """Display summary of each rule type."""

    def test_no_tax(self) -> None:
        info = get_state_info("TX")
        assert info.tax_type == "no_tax"
        assert info.rates == "No state income tax"

    def test_flat(self) -> None:
        info = get_state_info("Illinois")
        assert info.state == "IL"
        assert info.tax_type == "flat"
        assert info.rates == "Flat rate: 4.95%"
        assert info.has_personal_exemption is True
        assert info.has_standard_deduction is False

    def test_progressive(self) -> None:
        info = get_state_info("CA")
        assert info.tax_type == "progressive"
        assert info.rates == "1.00% - 13.30%"

    def test_investment_income(self) -> None:
        info = get_state_info("WA")
        assert info.tax_type == "investment_income"
        assert info.rates == "7.00% on capital gains"
