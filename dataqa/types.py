"""
DataQA Types
============

Shared enums and data classes for the question-answering pipeline.

Everything here is ephemeral (rebuilt per request) except FileProfile,
which the row store caches per file.

Author: DataQA Team
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


# =============================================================================
# ENUMS
# =============================================================================

class IntentType(str, Enum):
    """Kinds of question the engine can answer."""
    ROWS = "rows"
    COLUMNS = "columns"
    COUNT = "count"
    DISTINCT = "distinct"
    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"
    TOP = "top"
    COMPARE = "compare"
    SUMMARY = "summary"
    TYPES = "types"

    # Answer-only kinds (never produced by the classifier)
    GROUP = "group"
    UNKNOWN = "unknown"
    UNSUPPORTED = "unsupported"


NUMERIC_INTENTS = frozenset({IntentType.SUM, IntentType.AVG, IntentType.MIN, IntentType.MAX})
CATEGORICAL_INTENTS = frozenset({IntentType.TOP, IntentType.DISTINCT})


class PlanKind(str, Enum):
    """Shapes of work an executor can run for one file."""
    ROWS = "rows"
    COUNT = "count"
    DISTINCT = "distinct"
    TOP = "top"
    NUMERIC = "numeric"            # sum / avg / min / max over one column
    GROUP_COUNT = "group_count"    # rows per group value
    GROUP_METRIC = "group_metric"  # sum / avg / min / max per group value
    COMPARE = "compare"            # two summed measures per group value


class Strategy(str, Enum):
    """Which executor produced a result."""
    PUSHDOWN = "pushdown"
    IN_MEMORY = "in_memory"


# =============================================================================
# QUESTION / SCOPE
# =============================================================================

@dataclass
class Intent:
    """Classified intent plus the requested list size."""
    type: IntentType
    top_n: int = 5


@dataclass
class Scope:
    """One file, or every file in a project."""
    file_id: Optional[int] = None
    project_id: Optional[int] = None

    @property
    def is_project(self) -> bool:
        return self.file_id is None and self.project_id is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scope":
        data = data or {}
        return cls(
            file_id=data.get("fileId", data.get("file_id")),
            project_id=data.get("projectId", data.get("project_id")),
        )


@dataclass
class ColumnMatch:
    """A candidate column and its relevance to the question."""
    column: str
    score: float


@dataclass
class Filter:
    """A `column = value` clause found in the question."""
    column: str
    value: str


# =============================================================================
# FILE PROFILE
# =============================================================================

@dataclass
class ColumnProfile:
    """Per-column statistics from a sampled profile pass."""
    name: str
    inferred_type: str                  # number, date, boolean, string, mixed, unknown
    non_null_count: int = 0
    null_count: int = 0
    distinct_count: int = 0
    sample_values: List[str] = field(default_factory=list)
    top_values: List[Dict[str, Any]] = field(default_factory=list)
    numeric_stats: Optional[Dict[str, Any]] = None
    date_stats: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "inferredType": self.inferred_type,
            "nonNullCount": self.non_null_count,
            "nullCount": self.null_count,
            "distinctCount": self.distinct_count,
            "sampleValues": self.sample_values,
            "topValues": self.top_values,
        }
        if self.numeric_stats is not None:
            data["numericStats"] = self.numeric_stats
        if self.date_stats is not None:
            data["dateStats"] = self.date_stats
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ColumnProfile":
        return cls(
            name=data["name"],
            inferred_type=data.get("inferredType", "unknown"),
            non_null_count=data.get("nonNullCount", 0),
            null_count=data.get("nullCount", 0),
            distinct_count=data.get("distinctCount", 0),
            sample_values=list(data.get("sampleValues", [])),
            top_values=list(data.get("topValues", [])),
            numeric_stats=data.get("numericStats"),
            date_stats=data.get("dateStats"),
        )


@dataclass
class FileProfile:
    """
    Cached column classification for one file.

    The overview lists drive profile-assisted column resolution.
    """
    row_count: int
    column_count: int
    columns: List[ColumnProfile] = field(default_factory=list)
    numeric_columns: List[str] = field(default_factory=list)
    date_columns: List[str] = field(default_factory=list)
    categorical_columns: List[str] = field(default_factory=list)
    high_cardinality_columns: List[str] = field(default_factory=list)
    generated_at: str = ""
    version: int = 1

    def first_column(self) -> Optional[str]:
        return self.columns[0].name if self.columns else None

    def get_column(self, name: str) -> Optional[ColumnProfile]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "generatedAt": self.generated_at,
            "rowCount": self.row_count,
            "columnCount": self.column_count,
            "columns": [c.to_dict() for c in self.columns],
            "overview": {
                "numericColumns": self.numeric_columns,
                "dateColumns": self.date_columns,
                "categoricalColumns": self.categorical_columns,
                "highCardinalityColumns": self.high_cardinality_columns,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileProfile":
        overview = data.get("overview", {})
        return cls(
            version=data.get("version", 1),
            generated_at=data.get("generatedAt", ""),
            row_count=data.get("rowCount", 0),
            column_count=data.get("columnCount", 0),
            columns=[ColumnProfile.from_dict(c) for c in data.get("columns", [])],
            numeric_columns=list(overview.get("numericColumns", [])),
            date_columns=list(overview.get("dateColumns", [])),
            categorical_columns=list(overview.get("categoricalColumns", [])),
            high_cardinality_columns=list(overview.get("highCardinalityColumns", [])),
        )


# =============================================================================
# FILE CONTEXT
# =============================================================================

@dataclass
class FileInfo:
    """A file as listed by the data source."""
    id: int
    name: str


@dataclass
class FileContext:
    """
    Everything the planner needs to know about one file.

    `rows` is loaded on first access through `row_loader`: a small sample
    for the push-down path, the capped materialization for the in-memory path.
    """
    file_id: int
    name: str
    columns: List[str]
    profile: Optional[FileProfile] = None
    row_loader: Optional[Callable[[], List[Dict[str, Any]]]] = None
    _rows: Optional[List[Dict[str, Any]]] = field(default=None, repr=False)

    @property
    def rows(self) -> List[Dict[str, Any]]:
        if self._rows is None:
            self._rows = list(self.row_loader()) if self.row_loader else []
        return self._rows

    @classmethod
    def from_rows(cls, file_id: int, name: str, rows: List[Dict[str, Any]],
                  columns: Optional[List[str]] = None,
                  profile: Optional[FileProfile] = None) -> "FileContext":
        """Context over already materialized rows."""
        if columns is None:
            seen: Dict[str, None] = {}
            for row in rows:
                for key in row:
                    seen.setdefault(key, None)
            columns = list(seen)
        return cls(file_id=file_id, name=name, columns=list(columns), profile=profile, _rows=list(rows))


# =============================================================================
# EXECUTION
# =============================================================================

@dataclass
class ExecutionPlan:
    """
    One unit of aggregation work against one file.

    `limit` of None means "return every item" (used in multi-file scope,
    where lists are limited after merging).
    """
    kind: PlanKind
    file_id: int
    column: Optional[str] = None
    group_by: Optional[str] = None
    compare_column: Optional[str] = None
    metric: Optional[str] = None          # sum / avg / min / max
    filter: Optional[Filter] = None
    limit: Optional[int] = None

    def describe(self) -> str:
        parts = [self.kind.value, f"file={self.file_id}"]
        if self.column:
            parts.append(f"column={self.column}")
        if self.compare_column:
            parts.append(f"compare={self.compare_column}")
        if self.group_by:
            parts.append(f"group_by={self.group_by}")
        if self.metric:
            parts.append(f"metric={self.metric}")
        if self.filter:
            parts.append(f"filter={self.filter.column}={self.filter.value}")
        if self.limit is not None:
            parts.append(f"limit={self.limit}")
        return " ".join(parts)


@dataclass
class AggregationItem:
    """A ranked list entry: group/value key with its metric."""
    value: str
    count: float
    compare: Optional[float] = None
    weight: int = 0                       # numeric values behind an averaged metric

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"value": self.value, "count": self.count}
        if self.compare is not None:
            data["compare"] = self.compare
        return data


@dataclass
class AggregationResult:
    """
    Output of one executor run.

    Scalar kinds fill `value`; numeric kinds also fill `numeric_count` and
    `total` so averages can be merged by weight. List kinds fill `items`.
    """
    kind: PlanKind
    value: Optional[float] = None
    numeric_count: int = 0
    total: float = 0.0
    items: List[AggregationItem] = field(default_factory=list)
    strategy: Optional[Strategy] = None

    @property
    def has_numeric(self) -> bool:
        return self.numeric_count > 0


# =============================================================================
# ANSWER
# =============================================================================

@dataclass
class AnswerResult:
    """Sentence plus structured payload returned by ask()."""
    answer: str
    intent: str
    column: Optional[str] = None
    compare_column: Optional[str] = None
    group_by: Optional[str] = None
    items: Optional[List[AggregationItem]] = None
    value: Any = None
    columns: Optional[List[str]] = None
    filter: Optional[Dict[str, str]] = None
    include_filter: bool = False
    profile: Optional[Dict[str, Any]] = None
    matched_files: int = 0
    strategy: Optional[Strategy] = None

    def to_dict(self) -> Dict[str, Any]:
        """Structured payload: `intent` always, the rest when set."""
        data: Dict[str, Any] = {"answer": self.answer, "intent": self.intent}
        if self.column is not None:
            data["column"] = self.column
        if self.compare_column is not None:
            data["compareColumn"] = self.compare_column
        if self.group_by is not None:
            data["groupBy"] = self.group_by
        if self.items is not None:
            data["items"] = [item.to_dict() for item in self.items]
        if self.value is not None:
            data["value"] = self.value
        if self.columns is not None:
            data["columns"] = self.columns
        if self.include_filter:
            data["filter"] = self.filter
        if self.profile is not None:
            data["profile"] = self.profile
        return data
