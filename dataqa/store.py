"""
Row Store
=========

DataSource is the collaborator interface the engine consumes:
file listing, column listing, batched row reads and the cached FileProfile.

DuckDBRowStore is the reference implementation. Rows are kept as JSON text,
one record per row, so files with different columns share one table and the
push-down strategy can aggregate them with json_extract_string.

Tables:
    files          (id, project_id, name, created_at)
    file_columns   (file_id, position, name)
    file_rows      (file_id, row_index, data JSON)
    file_profiles  (file_id, profile_json, row_count, column_count, generated_at, updated_at)

Thread-safe: every statement runs under a class-level lock.

Author: DataQA Team
"""

import json
import math
import logging
import threading
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

import duckdb
import pandas as pd

from .config import QAConfig
from .errors import ScopeNotFoundError
from .profile import build_file_profile
from .types import FileInfo, FileProfile

logger = logging.getLogger(__name__)

_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1


# =============================================================================
# COLLABORATOR INTERFACE
# =============================================================================

class DataSource(ABC):
    """
    What the engine needs from the host application.

    `conn` is the DuckDB connection holding `file_rows`, or None when the
    source cannot serve push-down queries (the engine then answers from
    materialized rows).
    """

    conn = None
    lock = None

    @abstractmethod
    def list_files_in_project(self, project_id: int) -> List[FileInfo]:
        pass

    @abstractmethod
    def get_file(self, file_id: int) -> Optional[FileInfo]:
        pass

    @abstractmethod
    def list_columns(self, file_id: int) -> List[str]:
        pass

    @abstractmethod
    def list_rows(self, file_id: int, limit: int, offset: int = 0) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def get_or_build_file_profile(self, file_id: int) -> Optional[FileProfile]:
        pass

    def count_rows(self, file_id: int) -> int:
        """Total rows of a file. Sources without a cheap count override this."""
        total = 0
        batch = 5000
        while True:
            rows = self.list_rows(file_id, batch, total)
            total += len(rows)
            if len(rows) < batch:
                return total


# =============================================================================
# VALUE SANITIZING
# =============================================================================

def _to_json_value(value: Any) -> Any:
    """
    Make a cell JSON-serializable; NaN/inf and pandas NA become None.

    Floats (and ints DuckDB cannot hold as BIGINT) are stored as their
    Python text, so json_extract_string reads back exactly what str()
    gives the in-memory strategy.
    """
    if value is None:
        return None
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        try:
            value = value.item()
        except (ValueError, TypeError):
            pass
    if isinstance(value, float):
        return str(value) if math.isfinite(value) else None
    if isinstance(value, int) and not isinstance(value, bool) and not _INT64_MIN <= value <= _INT64_MAX:
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (str, int, bool)):
        return value
    if pd.isna(value) is True:
        return None
    return str(value)


def _columns_from_rows(rows: Iterable[Dict[str, Any]]) -> List[str]:
    """Column names in order of first appearance."""
    seen: Dict[str, None] = {}
    for row in rows:
        if isinstance(row, dict):
            for key in row:
                seen.setdefault(str(key), None)
    return list(seen)


# =============================================================================
# DUCKDB ROW STORE
# =============================================================================

class DuckDBRowStore(DataSource):
    """DuckDB-backed file/row/profile store."""

    _db_lock = threading.RLock()

    def __init__(self, db_path: Optional[str] = None, config: Optional[QAConfig] = None):
        self.config = config or QAConfig()
        self.db_path = db_path or self.config.duckdb_path
        self.conn = duckdb.connect(self.db_path)
        self.lock = self._db_lock
        self._init_tables()
        logger.info(f"[STORE] DuckDBRowStore initialized at {self.db_path}")

    def _init_tables(self):
        with self._db_lock:
            self.conn.execute("CREATE SEQUENCE IF NOT EXISTS files_seq START 1")
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS files (
                    id INTEGER PRIMARY KEY,
                    project_id INTEGER NOT NULL,
                    name VARCHAR NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS file_columns (
                    file_id INTEGER NOT NULL,
                    position INTEGER NOT NULL,
                    name VARCHAR NOT NULL
                )
            """)
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS file_rows (
                    file_id INTEGER NOT NULL,
                    row_index INTEGER NOT NULL,
                    data JSON
                )
            """)
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS file_profiles (
                    file_id INTEGER PRIMARY KEY,
                    profile_json VARCHAR NOT NULL,
                    row_count INTEGER DEFAULT 0,
                    column_count INTEGER DEFAULT 0,
                    generated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

    def close(self):
        with self._db_lock:
            self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # =========================================================================
    # INGESTION
    # =========================================================================

    def add_file(self,
                 project_id: int,
                 name: str,
                 rows: List[Dict[str, Any]],
                 columns: Optional[List[str]] = None) -> int:
        """
        Store a file and its rows.

        Args:
            project_id: Owning project
            name: Display name ("sales.csv")
            rows: Row records (column -> raw value)
            columns: Column order; defaults to keys in order of first appearance

        Returns:
            New file id
        """
        columns = [str(c) for c in columns] if columns is not None else _columns_from_rows(rows)

        with self._db_lock:
            file_id = self.conn.execute("SELECT nextval('files_seq')").fetchone()[0]
            self.conn.execute(
                "INSERT INTO files (id, project_id, name) VALUES (?, ?, ?)",
                [file_id, project_id, name]
            )
            if columns:
                self.conn.executemany(
                    "INSERT INTO file_columns (file_id, position, name) VALUES (?, ?, ?)",
                    [[file_id, pos, col] for pos, col in enumerate(columns)]
                )
            self._insert_rows(file_id, rows)

        logger.info(f"[STORE] Added file {file_id} '{name}': {len(rows)} rows, {len(columns)} columns")
        return int(file_id)

    def add_dataframe(self, project_id: int, name: str, df: pd.DataFrame) -> int:
        """Store a pandas DataFrame as a file (column order preserved)."""
        columns = [str(c) for c in df.columns]
        frame = df.copy()
        frame.columns = columns
        rows = frame.astype(object).to_dict("records")
        return self.add_file(project_id, name, rows, columns=columns)

    def replace_rows(self, file_id: int, rows: List[Dict[str, Any]]) -> None:
        """Swap a file's rows; the cached profile is dropped."""
        self._require_file(file_id)
        with self._db_lock:
            self.conn.execute("DELETE FROM file_rows WHERE file_id = ?", [file_id])
            self._insert_rows(file_id, rows)
        self.invalidate_profile(file_id)
        logger.info(f"[STORE] Replaced rows of file {file_id}: {len(rows)} rows")

    def _insert_rows(self, file_id: int, rows: List[Dict[str, Any]]) -> None:
        if not rows:
            return
        payload = []
        for index, row in enumerate(rows):
            record = {str(k): _to_json_value(v) for k, v in (row or {}).items()}
            payload.append([file_id, index, json.dumps(record)])
        self.conn.executemany(
            "INSERT INTO file_rows (file_id, row_index, data) VALUES (?, ?, ?)",
            payload
        )

    # =========================================================================
    # DATASOURCE
    # =========================================================================

    def list_files_in_project(self, project_id: int) -> List[FileInfo]:
        with self._db_lock:
            rows = self.conn.execute(
                "SELECT id, name FROM files WHERE project_id = ? ORDER BY id",
                [project_id]
            ).fetchall()
        return [FileInfo(id=int(r[0]), name=r[1]) for r in rows]

    def get_file(self, file_id: int) -> Optional[FileInfo]:
        with self._db_lock:
            row = self.conn.execute(
                "SELECT id, name FROM files WHERE id = ?", [file_id]
            ).fetchone()
        return FileInfo(id=int(row[0]), name=row[1]) if row else None

    def list_columns(self, file_id: int) -> List[str]:
        with self._db_lock:
            rows = self.conn.execute(
                "SELECT name FROM file_columns WHERE file_id = ? ORDER BY position",
                [file_id]
            ).fetchall()
        return [r[0] for r in rows if r[0]]

    def list_rows(self, file_id: int, limit: int, offset: int = 0) -> List[Dict[str, Any]]:
        with self._db_lock:
            rows = self.conn.execute(
                "SELECT data FROM file_rows WHERE file_id = ? ORDER BY row_index LIMIT ? OFFSET ?",
                [file_id, limit, offset]
            ).fetchall()
        records = []
        for (data,) in rows:
            parsed = json.loads(data) if data else {}
            records.append(parsed if isinstance(parsed, dict) else {})
        return records

    def count_rows(self, file_id: int) -> int:
        with self._db_lock:
            row = self.conn.execute(
                "SELECT COUNT(*) FROM file_rows WHERE file_id = ?", [file_id]
            ).fetchone()
        return int(row[0]) if row else 0

    # =========================================================================
    # PROFILES
    # =========================================================================

    def load_file_profile(self, file_id: int) -> Optional[FileProfile]:
        with self._db_lock:
            row = self.conn.execute(
                "SELECT profile_json FROM file_profiles WHERE file_id = ?", [file_id]
            ).fetchone()
        if not row or not row[0]:
            return None
        try:
            return FileProfile.from_dict(json.loads(row[0]))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"[STORE] Unreadable profile for file {file_id}, rebuilding: {e}")
            return None

    def save_file_profile(self, file_id: int, profile: FileProfile) -> None:
        with self._db_lock:
            self.conn.execute("DELETE FROM file_profiles WHERE file_id = ?", [file_id])
            self.conn.execute(
                "INSERT INTO file_profiles (file_id, profile_json, row_count, column_count) "
                "VALUES (?, ?, ?, ?)",
                [file_id, json.dumps(profile.to_dict()), profile.row_count, profile.column_count]
            )

    def invalidate_profile(self, file_id: int) -> None:
        with self._db_lock:
            self.conn.execute("DELETE FROM file_profiles WHERE file_id = ?", [file_id])
        logger.debug(f"[STORE] Profile invalidated for file {file_id}")

    def get_or_build_file_profile(self, file_id: int) -> Optional[FileProfile]:
        """Cached profile, or build from the first sampled rows and cache it."""
        cached = self.load_file_profile(file_id)
        if cached is not None:
            return cached

        columns = self.list_columns(file_id)
        if not columns:
            return None

        rows = self.list_rows(file_id, self.config.profile_sample_rows)
        profile = build_file_profile(columns, rows, self.config, row_count=self.count_rows(file_id))
        self.save_file_profile(file_id, profile)
        return profile

    def _require_file(self, file_id: int) -> FileInfo:
        info = self.get_file(file_id)
        if info is None:
            raise ScopeNotFoundError(f"File {file_id} not found")
        return info
