"""
DataQA error taxonomy.

Heuristic ambiguity never raises; it becomes a soft AnswerResult.
Only validation, scope and real I/O/execution failures surface here.
"""

from typing import Optional


class DataQAError(Exception):
    """Base class for all engine errors."""


class QuestionValidationError(DataQAError, ValueError):
    """Empty question or a scope without file id / project id."""


class ScopeNotFoundError(DataQAError):
    """The requested file does not exist or the project has no files."""


class ExecutionError(DataQAError):
    """A strategy failed while executing a plan."""

    def __init__(self, message: str, strategy: Optional[str] = None):
        super().__init__(message)
        self.strategy = strategy


class AnswerFailedError(DataQAError):
    """Both execution strategies failed for a question."""
