"""Tax tables, filing status and the progressive bracket engine."""

from taxengine.tax.brackets import (
    Bracket,
    BracketBreakdown,
    BracketTable,
    BracketTaxResult,
    compute_bracket_tax,
    get_bracket_table,
)
from taxengine.tax.filing_status import FilingStatus
from taxengine.tax.year_config import (
    TAX_YEAR_2023,
    TAX_YEAR_2024,
    TAX_YEAR_2025,
    TAX_YEAR_CONFIGS,
    TaxYearConfig,
    get_tax_year_config,
)

__all__ = [
    "Bracket",
    "BracketBreakdown",
    "BracketTable",
    "BracketTaxResult",
    "FilingStatus",
    "TaxYearConfig",
    "TAX_YEAR_2023",
    "TAX_YEAR_2024",
    "TAX_YEAR_2025",
    "TAX_YEAR_CONFIGS",
    "compute_bracket_tax",
    "get_bracket_table",
    "get_tax_year_config",
]
