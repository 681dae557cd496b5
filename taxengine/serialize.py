"""JSON serialization of engine results.

Results are frozen dataclasses holding Decimals, enums and tuples. Decimals
are written as strings so no precision is lost on the way to a UI or a form
filler.
"""

from __future__ import annotations

import dataclasses
from decimal import Decimal
from enum import Enum
from typing import Any

import orjson


def to_primitive(value: Any) -> Any:
    """Convert a result object into JSON-ready primitives.

    Example:
        >>> to_primitive(StateCredit(name="Dependent Credit", amount=Decimal("100")))
        {'name': 'Dependent Credit', 'amount': '100'}
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_primitive(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {str(to_primitive(k)): to_primitive(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_primitive(item) for item in value]
    return value


def dumps(value: Any, *, indent: bool = False) -> bytes:
    """Serialize a result object to JSON bytes with orjson."""
    option = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(to_primitive(value), option=option)
