"""Filing status enumeration shared by the federal and state calculators."""

from __future__ import annotations

import re
from enum import Enum

from taxengine.errors import InvalidInputError


class FilingStatus(str, Enum):
    """IRS filing status."""

    SINGLE = "single"
    MARRIED_FILING_JOINTLY = "married_filing_jointly"
    MARRIED_FILING_SEPARATELY = "married_filing_separately"
    HEAD_OF_HOUSEHOLD = "head_of_household"
    QUALIFYING_WIDOW = "qualifying_widow"

    @classmethod
    def parse(cls, value: FilingStatus | str) -> FilingStatus:
        """Resolve a filing status from its value or a common alias.

        Accepts enum values ("married_filing_jointly"), camelCase
        ("marriedFilingJointly"), hyphenated form labels ("married-jointly")
        and short codes ("mfj", "hoh", "qss").

        Raises:
            InvalidInputError: If the value is not a recognized status.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidInputError(f"filing_status: unrecognized value {value!r}")
        key = re.sub(r"[^a-z]", "", value.lower())
        status = _ALIASES.get(key)
        if status is None:
            raise InvalidInputError(f"filing_status: unrecognized value {value!r}")
        return status

    @property
    def is_joint(self) -> bool:
        """True when a spouse's exemptions and additions apply."""
        return self is FilingStatus.MARRIED_FILING_JOINTLY


_ALIASES: dict[str, FilingStatus] = {
    "single": FilingStatus.SINGLE,
    "s": FilingStatus.SINGLE,
    "marriedfilingjointly": FilingStatus.MARRIED_FILING_JOINTLY,
    "marriedjointly": FilingStatus.MARRIED_FILING_JOINTLY,
    "mfj": FilingStatus.MARRIED_FILING_JOINTLY,
    "joint": FilingStatus.MARRIED_FILING_JOINTLY,
    "marriedfilingseparately": FilingStatus.MARRIED_FILING_SEPARATELY,
    "marriedseparately": FilingStatus.MARRIED_FILING_SEPARATELY,
    "mfs": FilingStatus.MARRIED_FILING_SEPARATELY,
    "headofhousehold": FilingStatus.HEAD_OF_HOUSEHOLD,
    "hoh": FilingStatus.HEAD_OF_HOUSEHOLD,
    "qualifyingwidow": FilingStatus.QUALIFYING_WIDOW,
    "qualifyingwidower": FilingStatus.QUALIFYING_WIDOW,
    "qualifyingsurvivingspouse": FilingStatus.QUALIFYING_WIDOW,
    "qw": FilingStatus.QUALIFYING_WIDOW,
    "qss": FilingStatus.QUALIFYING_WIDOW,
}
