"""
Clause extraction: filters, group-by and compare targets.

Column names are tried longest first so a short name never matches
inside a longer one ("Country" vs "Country Code").
"""

import re
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .columns import ColumnResolver
from .text import normalize_text
from .types import FileProfile, Filter

logger = logging.getLogger(__name__)

FILTER_OPERATORS = (" =", " is", ":", " equals")
FILTER_STOP_RE = re.compile(r"\band\b|\bor\b|,|\.|;", re.IGNORECASE)

COMPARE_PATTERNS = [
    re.compile(r"\bcompare\s+(.+?)\s+(?:and|vs|versus)\s+(.+?)(?:\s+\bby\b|\s+\bper\b|$)"),
    re.compile(r"\b(.+?)\s+(?:vs|versus)\s+(.+?)(?:\s+\bby\b|\s+\bper\b|$)"),
]


def _longest_first(columns: Sequence[str]) -> List[str]:
    return sorted(columns, key=len, reverse=True)


def find_filter(question: str, columns: Sequence[str]) -> Optional[Filter]:
    """
    Find a `<col> = value` style clause.

    Recognizes `<col> =`, `<col> is`, `<col>:` and `<col> equals`. The value
    runs to the first and/or/comma/period/semicolon, quotes stripped.
    """
    lower = (question or "").lower()

    for col in _longest_first(columns):
        col_lower = col.lower()
        for op in FILTER_OPERATORS:
            idx = lower.find(col_lower + op)
            if idx < 0:
                continue
            after = lower[idx + len(col_lower) + len(op):].strip()
            raw_value = FILTER_STOP_RE.split(after, maxsplit=1)[0].strip()
            value = re.sub(r"^[\"']|[\"']$", "", raw_value).strip()
            if value:
                return Filter(column=col, value=value)
    return None


def find_group_by_column(question: str, columns: Sequence[str]) -> Optional[str]:
    """Column named in `group by <col>`, `by <col>` or `per <col>`."""
    lower = (question or "").lower()

    for col in _longest_first(columns):
        escaped = re.escape(col.lower())
        patterns = (
            rf"\bgroup\s+by\s+{escaped}\b",
            rf"\bby\s+{escaped}\b",
            rf"\bper\s+{escaped}\b",
        )
        if any(re.search(p, lower) for p in patterns):
            return col
    return None


def parse_compare_hints(question: str) -> Optional[Dict[str, str]]:
    """Left/right phrases from "compare A and B [by C]" or "A vs B [by C]"."""
    lower = (question or "").lower()
    for pattern in COMPARE_PATTERNS:
        match = pattern.search(lower)
        if match and match.group(1).strip() and match.group(2).strip():
            return {"left": match.group(1).strip(), "right": match.group(2).strip()}
    return None


@dataclass
class CompareColumns:
    left: Optional[str] = None
    right: Optional[str] = None
    group_by: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.left and self.right and self.group_by)


class CompareResolver:
    """Resolves the two measures and the grouping column of a comparison."""

    def __init__(self, resolver: ColumnResolver):
        self.resolver = resolver

    def resolve(self,
                question: str,
                columns: Sequence[str],
                rows: Sequence[Dict[str, Any]] = (),
                profile: Optional[FileProfile] = None) -> CompareColumns:
        """
        Args:
            question: Raw question text
            columns: File columns in order
            rows: Sampled rows for ad hoc type inference
            profile: Cached profile, if any

        Returns:
            CompareColumns; check is_complete before executing
        """
        numeric, categorical = self.resolver.typed_columns(columns, rows, profile)
        question_norm = normalize_text(question)

        hints = parse_compare_hints(question)
        left = self.resolver.pick(normalize_text(hints["left"]), columns) if hints else None
        right = self.resolver.pick(normalize_text(hints["right"]), columns) if hints else None
        if right and right == left:
            right = None

        ranked = self.resolver.rank(question_norm, columns)
        if not left:
            left = next((c for c in ranked if c in numeric and c != right), None)
        if not right:
            right = next((c for c in ranked if c in numeric and c != left), None)

        group_by = find_group_by_column(question, columns)
        if group_by in (left, right):
            group_by = None
        if not group_by:
            group_by = next((c for c in categorical if c not in (left, right)), None)
        if not group_by:
            group_by = next((c for c in columns if c not in (left, right)), None)

        resolved = CompareColumns(left=left, right=right, group_by=group_by)
        logger.debug(f"[RESOLVER] Compare columns: {resolved}")
        return resolved
