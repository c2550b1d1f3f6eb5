"""
Tolerant cell parsing helpers.

Spreadsheet cells arrive as whatever the reader produced: str, int, float,
NaN, None. Money parsing never raises; an unreadable cell is worth zero.
"""

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

ZERO = Decimal("0")

_MONEY_NOISE = re.compile(r"[,$\s]")
_NUMBER_NOISE = re.compile(r"[,$%\s]")
_NON_ALNUM = re.compile(r"[^a-z0-9]")

TRUE_STRINGS = {"true", "yes", "y", "1", "x"}


def is_blank(value: Any) -> bool:
    """True for None, NaN and whitespace-only strings"""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def _to_decimal(value: Any, noise: "re.Pattern") -> Optional[Decimal]:
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isinf(value):
            return None
        return Decimal(str(value))

    text = noise.sub("", str(value))
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return -number if negative else number


def parse_money(value: Any) -> Decimal:
    """Parse a money cell, stripping thousands separators and '$'. Failure -> 0"""
    number = _to_decimal(value, _MONEY_NOISE)
    return number if number is not None else ZERO


def parse_number(value: Any) -> Optional[Decimal]:
    """Parse a numeric cell (also strips '%'); None when the cell is not a number"""
    return _to_decimal(value, _NUMBER_NOISE)


def parse_flag(value: Any) -> bool:
    """Interpret yes/true/1/x style flags; positive numbers count as set"""
    if is_blank(value):
        return False
    if isinstance(value, bool):
        return value
    number = parse_number(value)
    if number is not None:
        return number > 0
    return str(value).strip().lower() in TRUE_STRINGS


def parse_rate(value: Any) -> Optional[Decimal]:
    """Parse a rate given as a fraction (0.04) or a percent (4, '4%')"""
    number = parse_number(value)
    if number is None or number < 0:
        return None
    if number > 1:
        return number / Decimal("100")
    return number


def normalize_label(text: Any) -> str:
    """Lower-case and strip every non-alphanumeric character"""
    if is_blank(text):
        return ""
    return _NON_ALNUM.sub("", str(text).lower())


def cell_text(value: Any) -> str:
    if is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def column_letter(col_index: int) -> str:
    """Zero-based column index to spreadsheet letters (0 -> 'A', 26 -> 'AA')"""
    letters = ""
    col = col_index + 1
    while col > 0:
        col, remainder = divmod(col - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters


def cell_reference(row_index: int, col_index: int) -> str:
    """Zero-based (row, col) to an A1-style reference"""
    return f"{column_letter(col_index)}{row_index + 1}"
