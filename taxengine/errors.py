"""Error types raised by the tax engine."""

from __future__ import annotations

from collections.abc import Iterable


class TaxEngineError(Exception):
    """Base class for all engine errors."""


class InvalidInputError(TaxEngineError, ValueError):
    """Raised when caller input is rejected before any phase runs.

    Attributes:
        errors: One message per offending field.
    """

    def __init__(self, errors: Iterable[str] | str) -> None:
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("Invalid tax input: " + "; ".join(self.errors))


class UnsupportedStateError(TaxEngineError):
    """Raised when no state rule exists for a jurisdiction.

    Attributes:
        state: The state code (or raw input) that could not be resolved.
        tax_year: Tax year that was requested, when the year is the cause.
    """

    def __init__(self, state: str, tax_year: int | None = None) -> None:
        self.state = state
        self.tax_year = tax_year
        if tax_year is None:
            message = f"No state tax rules for '{state}'"
        else:
            message = f"No state tax rules for '{state}' in tax year {tax_year}"
        super().__init__(message)


class StateRulesLoadError(TaxEngineError):
    """Raised when a state rule file cannot be read or validated.

    Attributes:
        path: Path to the rule file, when known.
        errors: Validation messages, when the file parsed but was invalid.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        errors: list[str] | None = None,
    ) -> None:
        self.path = path
        self.errors = errors or []
        super().__init__(message)
