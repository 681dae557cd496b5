"""US federal and state individual income tax engine."""

from taxengine.errors import (
    InvalidInputError,
    StateRulesLoadError,
    TaxEngineError,
    UnsupportedStateError,
)
from taxengine.federal import (
    ComprehensiveTaxResult,
    FilingParameters,
    IncomeRecord,
    WithholdingRecord,
    calculate_comprehensive_tax,
    estimate_tax,
)
from taxengine.state import StateTaxInput, StateTaxResult, calculate_state_tax
from taxengine.summary import calculate_unified_tax, combine_results
from taxengine.tax import FilingStatus

__all__ = [
    "ComprehensiveTaxResult",
    "FilingParameters",
    "FilingStatus",
    "IncomeRecord",
    "InvalidInputError",
    "StateRulesLoadError",
    "StateTaxInput",
    "StateTaxResult",
    "TaxEngineError",
    "UnsupportedStateError",
    "WithholdingRecord",
    "calculate_comprehensive_tax",
    "calculate_state_tax",
    "calculate_unified_tax",
    "combine_results",
    "estimate_tax",
]
