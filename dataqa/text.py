"""
Text normalization and cell-value helpers.

Both execution strategies and the profiler share these rules, so a value
counts as blank, numeric or equal the same way everywhere.
"""

import math
import re
from typing import Any, List, Optional

# Cell values treated as absent
BLANK_LIKE = frozenset({"", "-", "null", "nan", "n/a"})

# A numeric token after commas are stripped. Mirrored in SQL by the push-down strategy.
NUMERIC_PATTERN = r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?"
_NUMERIC_RE = re.compile(NUMERIC_PATTERN)

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def normalize_text(text: str) -> str:
    """Lowercase, collapse every non-alphanumeric run to one space, trim."""
    return _NON_ALNUM_RE.sub(" ", str(text or "").lower()).strip()


def tokenize(normalized: str) -> List[str]:
    return [t for t in normalized.split(" ") if t]


def cell_to_text(value: Any) -> Optional[str]:
    """Render a raw JSON cell value as text (None for JSON null)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def is_blank_like(value: Any) -> bool:
    text = cell_to_text(value)
    if text is None:
        return True
    return text.strip().lower() in BLANK_LIKE


def normalize_cell_value(value: Any) -> str:
    """Trimmed text of a cell, or "" when blank-like."""
    if is_blank_like(value):
        return ""
    return cell_to_text(value).strip()


def is_numeric_token(text: str) -> bool:
    return bool(_NUMERIC_RE.fullmatch(text.replace(",", "")))


def parse_numeric_value(value: Any) -> Optional[float]:
    """
    Parse a cell as a number.

    Blank-like values and non-numeric text give None. Commas are treated
    as thousands separators.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = float(value)
        return number if math.isfinite(number) else None

    normalized = normalize_cell_value(value)
    if not normalized:
        return None

    stripped = normalized.replace(",", "")
    if not _NUMERIC_RE.fullmatch(stripped):
        return None

    number = float(stripped)
    return number if math.isfinite(number) else None


def format_number(value: Any) -> str:
    """Thousands separators, up to 2 decimal places, no trailing zeros."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return "0"
    if not math.isfinite(number):
        return "0"

    text = f"{number:,.2f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def preview_list(names: List[str], limit: int = 8) -> str:
    """`a, b, c` with an `and N more` suffix past the limit."""
    preview = names[:limit]
    extra = len(names) - len(preview)
    text = ", ".join(preview)
    if extra > 0:
        text += f" and {extra} more"
    return text
