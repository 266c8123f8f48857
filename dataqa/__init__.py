"""
DATAQA
======

Natural-language question answering over uploaded tabular files.

    from dataqa import DataQAService, DuckDBRowStore, QAConfig, Scope

    store = DuckDBRowStore()
    file_id = store.add_file(project_id=1, name="sales.csv", rows=[
        {"Service": "A", "Revenue": "10"},
        {"Service": "B", "Revenue": "20"},
    ])
    result = DataQAService(store).ask("Average of Revenue", Scope(file_id=file_id))
    result.answer      # 'The average of "Revenue" is 15.'
    result.to_dict()   # {'answer': ..., 'intent': 'avg', 'column': 'Revenue', 'value': 15.0}

Author: DataQA Team
"""

from .config import QAConfig, configure_logging
from .errors import (
    AnswerFailedError,
    DataQAError,
    ExecutionError,
    QuestionValidationError,
    ScopeNotFoundError,
)
from .intent import IntentClassifier, detect_intent
from .profile import build_file_profile
from .service import DataQAService, ask
from .store import DataSource, DuckDBRowStore
from .types import (
    AggregationItem,
    AggregationResult,
    AnswerResult,
    ExecutionPlan,
    FileContext,
    FileInfo,
    FileProfile,
    Intent,
    IntentType,
    PlanKind,
    Scope,
    Strategy,
)

__version__ = "1.0.0"

__all__ = [
    "AggregationItem",
    "AggregationResult",
    "AnswerFailedError",
    "AnswerResult",
    "DataQAError",
    "DataQAService",
    "DataSource",
    "DuckDBRowStore",
    "ExecutionError",
    "ExecutionPlan",
    "FileContext",
    "FileInfo",
    "FileProfile",
    "Intent",
    "IntentClassifier",
    "IntentType",
    "PlanKind",
    "QAConfig",
    "QuestionValidationError",
    "ScopeNotFoundError",
    "Scope",
    "Strategy",
    "ask",
    "build_file_profile",
    "configure_logging",
    "detect_intent",
]
