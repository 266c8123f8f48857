"""
Column Resolver
===============

Decides which column a question is about.

Resolution chain (first hit wins):
1. Direct match    - substring/token score of the column name against the question
2. Typed fallback  - numeric intents take the first numeric column, top/distinct
                     take the first categorical column (FileProfile, or ad hoc
                     inference over sampled rows when no profile exists)
3. Value inference - COUNT only: "how many X" finds the column whose cells
                     equal X most often, and synthesizes a filter

Scoring:
    +4   normalized column name is a substring of the normalized question
    +2   every column token appears in the question tokens
    +0.7 per matching token
A column is accepted at score >= 0.7. Ties keep the earlier column.

Author: DataQA Team
"""

import re
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import QAConfig
from .text import normalize_text, tokenize, normalize_cell_value, is_blank_like, parse_numeric_value
from .types import (
    ColumnMatch,
    FileProfile,
    Filter,
    IntentType,
    NUMERIC_INTENTS,
    CATEGORICAL_INTENTS,
)

logger = logging.getLogger(__name__)

# "how many X" / "count X" / "number of X" on normalized text
VALUE_HINT_PATTERNS = [
    re.compile(r"\bhow many\s+([a-z0-9_-]+)\b"),
    re.compile(r"\bcount\s+([a-z0-9_-]+)\b"),
    re.compile(r"\bnumber of\s+([a-z0-9_-]+)\b"),
]

GENERIC_NOUNS = frozenset({
    "row", "rows", "record", "records", "column", "columns",
    "field", "fields", "header", "headers",
})


def score_column(question_norm: str, column: str) -> float:
    """Relevance of one column name to a normalized question."""
    col_norm = normalize_text(column)
    if not col_norm:
        return 0.0

    score = 0.0
    if col_norm in question_norm:
        score += 4

    question_tokens = set(tokenize(question_norm))
    col_tokens = tokenize(col_norm)
    hits = sum(1 for token in col_tokens if token in question_tokens)
    if hits and hits == len(col_tokens):
        score += 2
    score += hits * 0.7

    return score


class ColumnResolver:
    """Scores, picks and infers columns for a question."""

    def __init__(self, config: Optional[QAConfig] = None):
        self.config = config or QAConfig()

    # =========================================================================
    # DIRECT MATCHING
    # =========================================================================

    def best_match(self, question_norm: str, columns: Sequence[str]) -> Optional[ColumnMatch]:
        """Highest scoring column, or None below the acceptance threshold."""
        best: Optional[ColumnMatch] = None
        for col in columns:
            score = score_column(question_norm, col)
            if best is None or score > best.score:
                best = ColumnMatch(col, score)

        if best is None or best.score < self.config.min_column_score:
            return None
        return best

    def pick(self, question_norm: str, columns: Sequence[str]) -> Optional[str]:
        match = self.best_match(question_norm, columns)
        return match.column if match else None

    def rank(self, question_norm: str, columns: Sequence[str]) -> List[str]:
        """All columns by descending score; ties keep column order."""
        scored = [(col, score_column(question_norm, col)) for col in columns]
        return [col for col, _ in sorted(scored, key=lambda item: -item[1])]

    # =========================================================================
    # TYPE CLASSIFICATION
    # =========================================================================

    def infer_column_types(self, columns: Sequence[str],
                           rows: Sequence[Dict[str, Any]]) -> Tuple[List[str], List[str]]:
        """
        Ad hoc numeric/categorical split over the first sampled rows.

        Uses the same thresholds as FileProfile construction.
        """
        sampled = rows[: self.config.type_inference_rows]
        numeric: List[str] = []
        categorical: List[str] = []

        for col in columns:
            non_blank = 0
            numeric_hits = 0
            for row in sampled:
                raw = row.get(col) if isinstance(row, dict) else None
                if is_blank_like(raw):
                    continue
                non_blank += 1
                if parse_numeric_value(raw) is not None:
                    numeric_hits += 1

            if non_blank == 0:
                continue
            ratio = numeric_hits / non_blank
            if ratio >= self.config.numeric_threshold:
                numeric.append(col)
            if ratio <= self.config.categorical_threshold:
                categorical.append(col)

        return numeric, categorical

    def typed_columns(self, columns: Sequence[str], rows: Sequence[Dict[str, Any]],
                      profile: Optional[FileProfile]) -> Tuple[List[str], List[str]]:
        """Numeric and categorical candidates from the profile, else ad hoc."""
        if profile is not None:
            numeric = [c for c in profile.numeric_columns if c in columns]
            categorical = [c for c in profile.categorical_columns if c in columns]
            return numeric, categorical
        return self.infer_column_types(columns, rows)

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    def resolve(self,
                question_norm: str,
                columns: Sequence[str],
                intent: IntentType,
                profile: Optional[FileProfile] = None,
                rows: Sequence[Dict[str, Any]] = ()) -> Optional[str]:
        """
        Direct match, then the typed fallback for intents with a type preference.

        Returns None for COUNT (and untyped intents) when nothing matches
        directly; callers then try value inference.
        """
        direct = self.pick(question_norm, columns)
        if direct:
            return direct

        prefer_numeric = intent in NUMERIC_INTENTS or intent == IntentType.COMPARE
        prefer_categorical = intent in CATEGORICAL_INTENTS
        if not (prefer_numeric or prefer_categorical) or not columns:
            return None

        numeric, categorical = self.typed_columns(columns, rows, profile)
        preferred = numeric if prefer_numeric else categorical
        if preferred:
            logger.debug(f"[RESOLVER] Typed fallback for {intent.value}: {preferred[0]}")
            return preferred[0]

        first = profile.first_column() if profile is not None else None
        return first if first in columns else columns[0]

    # =========================================================================
    # VALUE-DRIVEN INFERENCE
    # =========================================================================

    def extract_value_hint(self, question: str) -> str:
        """Noun after "how many" / "count" / "number of", unless generic."""
        normalized = normalize_text(question)
        for pattern in VALUE_HINT_PATTERNS:
            match = pattern.search(normalized)
            if match:
                value = match.group(1).strip()
                if value and value not in GENERIC_NOUNS:
                    return value
        return ""

    def infer_column_by_value(self, columns: Sequence[str],
                              rows: Sequence[Dict[str, Any]],
                              raw_value: str) -> Optional[Filter]:
        """
        Find the column whose cells equal `raw_value` (case-insensitive) most often.

        Scans at most value_scan_rows rows and value_scan_max_columns columns.
        """
        target = (raw_value or "").strip().lower()
        if not target:
            return None

        inspected = list(columns)[: self.config.value_scan_max_columns]
        counts: Dict[str, int] = {}
        for row in rows[: self.config.value_scan_rows]:
            if not isinstance(row, dict):
                continue
            for col in inspected:
                value = normalize_cell_value(row.get(col)).lower()
                if value and value == target:
                    counts[col] = counts.get(col, 0) + 1

        best_col = ""
        best_count = 0
        for col, count in counts.items():
            if count > best_count:
                best_col, best_count = col, count

        if not best_col:
            return None

        logger.info(f"[RESOLVER] Value '{raw_value}' found {best_count}x in '{best_col}'")
        return Filter(column=best_col, value=raw_value)
