"""
File Profiler
=============

Builds a FileProfile from a sample of a file's rows.

One accumulator per column collects null/non-null counts, distinct values,
samples, value frequencies and numeric stats in a single pass. Date
detection runs afterwards per column with pandas over the non-numeric
values.

Classification (share of non-blank sampled values):
- numeric      : parse as numbers >= numeric_threshold
- date         : parse as dates >= 0.6 (and not numeric)
- categorical  : parse as numbers <= categorical_threshold (and not date)
- high-cardinality: distinct ratio >= 0.8 with at least 30 non-null values

Author: DataQA Team
"""

import re
import logging
import warnings
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Set

import pandas as pd

from .config import QAConfig
from .text import is_blank_like, normalize_cell_value, parse_numeric_value
from .types import ColumnProfile, FileProfile

logger = logging.getLogger(__name__)

MAX_DISTINCT_TRACKED = 4000
MAX_TOP_VALUES = 8
MAX_SAMPLES = 6

DATE_RATIO = 0.6
BOOLEAN_RATIO = 0.8
HIGH_CARDINALITY_RATIO = 0.8
HIGH_CARDINALITY_MIN_VALUES = 30

BOOLEAN_LIKE = frozenset({"true", "false", "yes", "no", "0", "1"})

# Date candidates must carry at least one digit ("2024-01-05", "5 Jan 2024")
_DATE_HINT_RE = re.compile(r"\d")


@dataclass
class _ColumnAccumulator:
    name: str
    non_null_count: int = 0
    null_count: int = 0
    distinct: Set[str] = field(default_factory=set)
    samples: List[str] = field(default_factory=list)
    freq: Dict[str, int] = field(default_factory=dict)
    numeric_count: int = 0
    numeric_sum: float = 0.0
    numeric_min: Optional[float] = None
    numeric_max: Optional[float] = None
    bool_count: int = 0
    date_candidates: List[str] = field(default_factory=list)

    def add(self, raw: Any) -> None:
        if is_blank_like(raw):
            self.null_count += 1
            return

        value = normalize_cell_value(raw)
        self.non_null_count += 1

        if len(self.samples) < MAX_SAMPLES and value not in self.samples:
            self.samples.append(value)
        self.freq[value] = self.freq.get(value, 0) + 1
        if len(self.distinct) < MAX_DISTINCT_TRACKED:
            self.distinct.add(value)

        if value.lower() in BOOLEAN_LIKE:
            self.bool_count += 1

        number = parse_numeric_value(raw)
        if number is not None:
            self.numeric_count += 1
            self.numeric_sum += number
            self.numeric_min = number if self.numeric_min is None else min(self.numeric_min, number)
            self.numeric_max = number if self.numeric_max is None else max(self.numeric_max, number)
        elif _DATE_HINT_RE.search(value):
            self.date_candidates.append(value)

    def top_values(self) -> List[Dict[str, Any]]:
        ranked = sorted(self.freq.items(), key=lambda item: -item[1])
        return [{"value": v, "count": c} for v, c in ranked[:MAX_TOP_VALUES]]

    def numeric_stats(self) -> Optional[Dict[str, Any]]:
        if self.numeric_count == 0:
            return None
        return {
            "min": self.numeric_min,
            "max": self.numeric_max,
            "avg": self.numeric_sum / self.numeric_count,
            "sum": self.numeric_sum,
            "count": self.numeric_count,
        }


def _parse_dates(values: List[str]) -> pd.Series:
    """Parsed timestamps for the values that look like dates (NaT dropped)."""
    if not values:
        return pd.Series([], dtype="datetime64[ns, UTC]")
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        parsed = pd.to_datetime(pd.Series(values), errors="coerce", format="mixed", utc=True)
    return parsed.dropna()


def _date_stats(dates: pd.Series) -> Optional[Dict[str, Any]]:
    if dates.empty:
        return None
    return {
        "min": dates.min().isoformat(),
        "max": dates.max().isoformat(),
        "count": int(len(dates)),
    }


def _infer_type(acc: _ColumnAccumulator, date_count: int, config: QAConfig) -> str:
    non_null = acc.non_null_count
    if non_null == 0:
        return "unknown"

    numeric_ratio = acc.numeric_count / non_null
    if numeric_ratio >= config.numeric_threshold:
        return "number"
    if date_count / non_null >= DATE_RATIO:
        return "date"
    if acc.bool_count / non_null >= BOOLEAN_RATIO:
        return "boolean"
    if numeric_ratio > config.categorical_threshold:
        return "mixed"
    return "string"


def build_file_profile(columns: Sequence[str],
                       rows: Sequence[Dict[str, Any]],
                       config: Optional[QAConfig] = None,
                       row_count: Optional[int] = None) -> FileProfile:
    """
    Profile a file from its columns and (a prefix of) its rows.

    Args:
        columns: Column names in file order
        rows: Row records; only the first profile_sample_rows are inspected
        config: Thresholds and sample size
        row_count: Total row count of the file (defaults to len(rows))

    Returns:
        FileProfile with per-column stats and the overview lists
    """
    config = config or QAConfig()
    names = [str(c) for c in (columns or []) if c is not None and str(c)]
    sampled = list(rows[: config.profile_sample_rows])

    accumulators = [_ColumnAccumulator(name) for name in names]
    for row in sampled:
        record = row if isinstance(row, dict) else {}
        for acc in accumulators:
            acc.add(record.get(acc.name))

    column_profiles: List[ColumnProfile] = []
    numeric_columns: List[str] = []
    date_columns: List[str] = []
    categorical_columns: List[str] = []
    high_cardinality_columns: List[str] = []

    for acc in accumulators:
        dates = _parse_dates(acc.date_candidates)
        inferred = _infer_type(acc, len(dates), config)
        non_null = acc.non_null_count

        if inferred == "number":
            numeric_columns.append(acc.name)
        elif inferred == "date":
            date_columns.append(acc.name)
        elif non_null > 0 and acc.numeric_count / non_null <= config.categorical_threshold:
            categorical_columns.append(acc.name)

        distinct_count = len(acc.distinct)
        if non_null >= HIGH_CARDINALITY_MIN_VALUES and distinct_count / non_null >= HIGH_CARDINALITY_RATIO:
            high_cardinality_columns.append(acc.name)

        column_profiles.append(ColumnProfile(
            name=acc.name,
            inferred_type=inferred,
            non_null_count=non_null,
            null_count=acc.null_count,
            distinct_count=distinct_count,
            sample_values=acc.samples,
            top_values=acc.top_values(),
            numeric_stats=acc.numeric_stats(),
            date_stats=_date_stats(dates),
        ))

    profile = FileProfile(
        row_count=row_count if row_count is not None else len(rows),
        column_count=len(names),
        columns=column_profiles,
        numeric_columns=numeric_columns,
        date_columns=date_columns,
        categorical_columns=categorical_columns,
        high_cardinality_columns=high_cardinality_columns,
        generated_at=datetime.now(timezone.utc).isoformat(),
    )

    logger.info(f"[PROFILE] {len(names)} columns over {len(sampled)} sampled rows: "
                f"{len(numeric_columns)} numeric, {len(date_columns)} date, "
                f"{len(categorical_columns)} categorical")
    return profile
