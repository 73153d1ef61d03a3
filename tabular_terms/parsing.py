"""Best-effort parsing of cell text into typed values.

Every parser returns ``None`` instead of raising when the text cannot be
interpreted.
"""

from __future__ import annotations

import math
import re
from types import MappingProxyType
from typing import Optional, Union

BOOLEAN_VALUES = MappingProxyType(
    {
        "true": True,
        "yes": True,
        "y": True,
        "t": True,
        "1": True,
        "false": False,
        "no": False,
        "n": False,
        "f": False,
        "0": False,
    }
)

# Base-10 only: no "0x"/"0b" prefixes, no digit-group underscores.
INTEGER_RE = re.compile(r"^[+-]?\d+$")
FLOAT_RE = re.compile(
    r"^[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|nan|inf|infinity)$",
    re.IGNORECASE,
)


def parse_boolean(text: Optional[str]) -> Optional[bool]:
    """
    Map text onto the boolean vocabulary, ignoring case and surrounding space.

    ``"true", "yes", "y", "t", "1"`` -> True
    ``"false", "no", "n", "f", "0"`` -> False
    anything else -> None
    """
    if text is None:
        return None
    return BOOLEAN_VALUES.get(text.strip().lower())


def parse_int(text: Optional[str]) -> Optional[int]:
    if text is None:
        return None
    text = text.strip()
    if not INTEGER_RE.match(text):
        return None
    return int(text)


def parse_float(text: Optional[str]) -> Optional[float]:
    if text is None:
        return None
    text = text.strip()
    if not FLOAT_RE.match(text):
        return None
    return float(text)


def number_to_boolean(value: Union[int, float]) -> Optional[bool]:
    if value == 0:
        return False
    if value == 1:
        return True
    return None


def number_to_int(value: Union[int, float]) -> Optional[int]:
    """Truncate toward zero; NaN and infinities have no integer value."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


def format_number(value: Union[int, float]) -> str:
    """Render a stored number as text, dropping a redundant ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
