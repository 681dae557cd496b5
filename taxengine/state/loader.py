"""State rule file loader with YAML parsing and validation.

Rule files live in a directory as ``<tax_year>.yaml``. By default that is
the ``rules`` directory shipped inside this package; ``STATE_RULES_DIR``
points the engine at another directory. Each file is parsed once per
process and the validated, frozen rule set is shared by every caller.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML

from taxengine.core.config import settings
from taxengine.core.logging import get_logger
from taxengine.errors import StateRulesLoadError
from taxengine.state.models import StateRuleSet

logger = get_logger(__name__)

PACKAGED_RULES_DIR = Path(__file__).parent / "rules"


def rules_directory() -> Path:
    """Directory rule files are read from."""
    return settings.state_rules_dir or PACKAGED_RULES_DIR


def _parse_yaml(path: Path) -> dict[str, Any]:
    """Parse a YAML file and return its contents as a dictionary.

    Args:
        path: Path to the YAML file

    Returns:
        Dictionary containing the parsed YAML content

    Raises:
        StateRulesLoadError: If the file cannot be read or parsed
    """
    yaml = YAML(typ="safe", pure=True)

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
    except FileNotFoundError as e:
        raise StateRulesLoadError(f"State rule file not found: {path}", path=str(path)) from e
    except Exception as e:
        raise StateRulesLoadError(f"Failed to parse YAML: {e}", path=str(path)) from e

    if data is None:
        raise StateRulesLoadError("Empty state rule file", path=str(path))

    if not isinstance(data, dict):
        raise StateRulesLoadError(
            f"State rule file must be a YAML mapping, got {type(data).__name__}",
            path=str(path),
        )

    return dict(data)


def load_state_rules_from_dict(
    data: dict[str, Any], path: Path | None = None
) -> StateRuleSet:
    """Validate parsed rule data.

    Args:
        data: Dictionary containing the rule set
        path: Optional path for error reporting

    Returns:
        Validated StateRuleSet

    Raises:
        StateRulesLoadError: If validation fails
    """
    try:
        return StateRuleSet.model_validate(data)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        raise StateRulesLoadError(
            f"Invalid state rules: {errors[0]}",
            path=str(path) if path else None,
            errors=errors,
        ) from e


def load_state_rules_from_yaml(path: str | Path) -> StateRuleSet:
    """Load and validate a rule file.

    Raises:
        StateRulesLoadError: If the file cannot be loaded or validation fails
    """
    path = Path(path)
    return load_state_rules_from_dict(_parse_yaml(path), path=path)


@lru_cache(maxsize=None)
def _load_cached(path: Path, tax_year: int) -> StateRuleSet:
    rules = load_state_rules_from_yaml(path)
    if rules.tax_year != tax_year:
        raise StateRulesLoadError(
            f"Rule file declares tax_year {rules.tax_year}, expected {tax_year}",
            path=str(path),
        )
    logger.info(
        "state_rules_loaded",
        tax_year=tax_year,
        path=str(path),
        state_count=len(rules.states),
    )
    return rules


def available_rule_years(directory: Path | None = None) -> list[int]:
    """Tax years with a rule file, ascending."""
    directory = directory or rules_directory()
    if not directory.is_dir():
        return []
    return sorted(int(p.stem) for p in directory.glob("*.yaml") if p.stem.isdigit())


def load_state_rules(tax_year: int, directory: Path | None = None) -> StateRuleSet:
    """Load the rule set for a tax year, parsing each file only once.

    Args:
        tax_year: Tax year to load.
        directory: Rule directory; defaults to rules_directory().

    Returns:
        Shared, frozen StateRuleSet.

    Raises:
        StateRulesLoadError: If the file is missing, unreadable or invalid.
    """
    directory = directory or rules_directory()
    return _load_cached(directory / f"{tax_year}.yaml", tax_year)
