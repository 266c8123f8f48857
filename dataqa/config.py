"""
DataQA Configuration
====================
Central configuration for the question-answering engine.

Every tunable lives on QAConfig and is passed into the service at
construction. QAConfig.from_env() reads overrides from the environment
(and a local .env file for development).

Author: DataQA Team
"""

import os
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Row limit floor for the in-memory strategy
MIN_ROW_LIMIT = 1000


@dataclass
class QAConfig:
    """Engine tunables with documented defaults."""

    # ============================================================================
    # EXECUTION
    # ============================================================================
    row_limit: int = 25000              # Rows materialized for the in-memory strategy
    duckdb_path: str = ":memory:"       # Row store location

    # ============================================================================
    # PROFILING / TYPE INFERENCE
    # ============================================================================
    profile_sample_rows: int = 800
    numeric_threshold: float = 0.6      # >= this share numeric -> numeric column
    categorical_threshold: float = 0.35 # <= this share numeric -> categorical column
    type_inference_rows: int = 400      # Ad hoc inference when no profile exists

    # ============================================================================
    # COLUMN RESOLUTION
    # ============================================================================
    min_column_score: float = 0.7
    value_scan_rows: int = 500
    value_scan_max_columns: int = 50

    # ============================================================================
    # RESULT SHAPE
    # ============================================================================
    default_top_n: int = 5
    max_top_n: int = 20
    group_limit: int = 12

    def __post_init__(self):
        if self.row_limit < MIN_ROW_LIMIT:
            logger.warning(f"[CONFIG] row_limit {self.row_limit} below floor, using {MIN_ROW_LIMIT}")
            self.row_limit = MIN_ROW_LIMIT

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "QAConfig":
        """
        Build a config from environment variables.

        Args:
            env_file: Optional path to a .env file (defaults to python-dotenv lookup)

        Returns:
            QAConfig with overrides applied
        """
        load_dotenv(env_file)

        overrides: Dict[str, Any] = {}
        _read_env(overrides, "row_limit", "DATA_QA_FALLBACK_ROW_LIMIT", int)
        _read_env(overrides, "profile_sample_rows", "DATA_QA_PROFILE_SAMPLE", int)
        _read_env(overrides, "numeric_threshold", "DATA_QA_NUMERIC_THRESHOLD", float)
        _read_env(overrides, "categorical_threshold", "DATA_QA_CATEGORICAL_THRESHOLD", float)
        _read_env(overrides, "duckdb_path", "DATA_QA_DUCKDB_PATH", str)

        return cls(**overrides)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _read_env(target: Dict[str, Any], field_name: str, env_name: str, cast) -> None:
    raw = os.environ.get(env_name)
    if raw is None or raw.strip() == "":
        return
    try:
        target[field_name] = cast(raw.strip())
    except ValueError:
        logger.warning(f"[CONFIG] Ignoring {env_name}={raw!r}: not a valid {cast.__name__}")


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for host applications.

    Uses DATA_QA_LOG_LEVEL when no level is given.
    """
    level_name = (level or os.environ.get("DATA_QA_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
