"""State income tax rules and dispatcher."""

from taxengine.state.calculator import (
    calculate_state_tax,
    get_state_info,
    list_states,
    normalize_state,
)
from taxengine.state.loader import available_rule_years, load_state_rules
from taxengine.state.models import (
    StateBracketLine,
    StateCredit,
    StateInfo,
    StateRuleSet,
    StateTaxInput,
    StateTaxResult,
)

__all__ = [
    "StateBracketLine",
    "StateCredit",
    "StateInfo",
    "StateRuleSet",
    "StateTaxInput",
    "StateTaxResult",
    "available_rule_years",
    "calculate_state_tax",
    "get_state_info",
    "list_states",
    "load_state_rules",
    "normalize_state",
]
