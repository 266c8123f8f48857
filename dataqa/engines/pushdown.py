"""
DATAQA PUSH-DOWN EXECUTOR
=========================

Answers a plan with one DuckDB query over the `file_rows` table.

Cells are read with json_extract_string and a JSON Pointer path, trimmed,
and blank-like values become NULL. Numeric cells must match the same
token pattern the in-memory strategy uses (commas stripped) before they
are cast to DOUBLE, so both strategies agree on what counts as a number.

Ranked lists break ties by first appearance (MIN(row_index)), which is
the order a stable in-memory sort keeps.

Author: DataQA Team
"""

import logging
from contextlib import nullcontext
from typing import Any, Dict, List, Optional

import pandas as pd

from ..text import BLANK_LIKE, NUMERIC_PATTERN
from ..types import (
    AggregationItem,
    AggregationResult,
    ExecutionPlan,
    FileContext,
    PlanKind,
    Strategy,
)
from .base import BaseExecutor, GROUP_METRICS

logger = logging.getLogger(__name__)

BLANK_SQL = ", ".join(f"'{v}'" for v in sorted(BLANK_LIKE))


def json_pointer(column: str) -> str:
    """RFC 6901 pointer to a top-level key."""
    return "/" + column.replace("~", "~0").replace("/", "~1")


def numeric_sql(expr: str) -> str:
    """DOUBLE value of a cell expression, NULL unless it is a finite numeric token."""
    stripped = f"replace({expr}, ',', '')"
    cast = f"TRY_CAST({stripped} AS DOUBLE)"
    return (f"CASE WHEN regexp_full_match({stripped}, '{NUMERIC_PATTERN}') AND isfinite({cast}) "
            f"THEN {cast} END")


def _to_float(value: Any) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def _to_int(value: Any) -> int:
    if value is None or pd.isna(value):
        return 0
    return int(value)


class _Params:
    """Collects positional parameters and hands out $n placeholders."""

    def __init__(self):
        self.values: List[Any] = []

    def add(self, value: Any) -> str:
        self.values.append(value)
        return f"${len(self.values)}"


class PushdownExecutor(BaseExecutor):
    """
    DuckDB implementation of every PlanKind.

    Usage:
        executor = PushdownExecutor(store.conn, store.lock)
        result = executor.execute(plan, context)
    """

    def __init__(self, conn, lock=None):
        """
        Args:
            conn: DuckDB connection holding `file_rows`
            lock: Optional lock serializing access to the connection
        """
        self.conn = conn
        self.lock = lock

    @property
    def strategy(self) -> Strategy:
        return Strategy.PUSHDOWN

    # =========================================================================
    # SQL BUILDING
    # =========================================================================

    def _cell_sql(self, params: _Params, column: str) -> str:
        raw = f"json_extract_string(data, {params.add(json_pointer(column))}::VARCHAR)"
        return f"CASE WHEN lower(trim({raw})) IN ({BLANK_SQL}) THEN NULL ELSE trim({raw}) END"

    def _cells_cte(self, params: _Params, plan: ExecutionPlan, cells: Dict[str, str],
                   apply_filter: bool = True) -> str:
        """WITH clause exposing row_index and one normalized cell per alias."""
        select_parts = ["row_index"]
        for alias, column in cells.items():
            select_parts.append(f"{self._cell_sql(params, column)} AS {alias}")

        where_parts = [f"file_id = {params.add(plan.file_id)}"]
        if apply_filter and plan.filter is not None:
            filter_cell = self._cell_sql(params, plan.filter.column)
            where_parts.append(f"lower({filter_cell}) = {params.add(plan.filter.value.strip().lower())}::VARCHAR")

        return (f"WITH cells AS (\n"
                f"    SELECT {', '.join(select_parts)}\n"
                f"    FROM file_rows\n"
                f"    WHERE {' AND '.join(where_parts)}\n"
                f")")

    def _limit_sql(self, plan: ExecutionPlan) -> str:
        if plan.limit is None:
            return ""
        return f"\nLIMIT {int(plan.limit)}"

    def build_sql(self, plan: ExecutionPlan) -> tuple:
        """
        Build the query for a plan.

        Returns:
            (sql, params) ready for conn.execute
        """
        params = _Params()
        kind = plan.kind

        if kind == PlanKind.ROWS:
            sql = f"SELECT COUNT(*) AS value FROM file_rows WHERE file_id = {params.add(plan.file_id)}"

        elif kind == PlanKind.COUNT:
            sql = self._cells_cte(params, plan, {"val": plan.column})
            sql += "\nSELECT COUNT(val) AS value FROM cells"

        elif kind == PlanKind.DISTINCT:
            sql = self._cells_cte(params, plan, {"val": plan.column})
            sql += "\nSELECT COUNT(DISTINCT val) AS value FROM cells"

        elif kind == PlanKind.TOP:
            sql = self._cells_cte(params, plan, {"val": plan.column})
            sql += ("\nSELECT val AS value, COUNT(*) AS cnt, MIN(row_index) AS first_seen"
                    "\nFROM cells"
                    "\nWHERE val IS NOT NULL"
                    "\nGROUP BY val"
                    "\nORDER BY cnt DESC, first_seen ASC")
            sql += self._limit_sql(plan)

        elif kind == PlanKind.NUMERIC:
            sql = self._cells_cte(params, plan, {"val": plan.column})
            sql += (f"\nSELECT COUNT(num) AS numeric_count, SUM(num) AS total,"
                    f" MIN(num) AS minimum, MAX(num) AS maximum"
                    f"\nFROM (SELECT {numeric_sql('val')} AS num FROM cells) t")

        elif kind == PlanKind.GROUP_COUNT:
            sql = self._cells_cte(params, plan, {"grp": plan.group_by})
            sql += ("\nSELECT grp AS value, COUNT(*) AS cnt, MIN(row_index) AS first_seen"
                    "\nFROM cells"
                    "\nWHERE grp IS NOT NULL"
                    "\nGROUP BY grp"
                    "\nORDER BY cnt DESC, first_seen ASC")
            sql += self._limit_sql(plan)

        elif kind == PlanKind.GROUP_METRIC:
            if plan.metric not in GROUP_METRICS:
                raise ValueError(f"Unknown metric '{plan.metric}'")
            metric_sql = {
                "sum": "SUM(num)",
                "avg": "SUM(num) / COUNT(num)",
                "min": "MIN(num)",
                "max": "MAX(num)",
            }[plan.metric]
            direction = "ASC" if plan.metric == "min" else "DESC"
            sql = self._cells_cte(params, plan, {"grp": plan.group_by, "val": plan.column})
            sql += (f"\nSELECT grp AS value, {metric_sql} AS metric, COUNT(num) AS numeric_count,"
                    f" MIN(row_index) AS first_seen"
                    f"\nFROM (SELECT row_index, grp, {numeric_sql('val')} AS num FROM cells) t"
                    f"\nWHERE grp IS NOT NULL AND num IS NOT NULL"
                    f"\nGROUP BY grp"
                    f"\nORDER BY metric {direction}, first_seen ASC")
            sql += self._limit_sql(plan)

        elif kind == PlanKind.COMPARE:
            cells = {"grp": plan.group_by, "lval": plan.column, "rval": plan.compare_column}
            sql = self._cells_cte(params, plan, cells, apply_filter=False)
            sql += (f"\nSELECT grp AS value, SUM(lnum) AS left_total, SUM(rnum) AS right_total,"
                    f" GREATEST(SUM(lnum), SUM(rnum)) AS peak, MIN(row_index) AS first_seen"
                    f"\nFROM ("
                    f"\n    SELECT row_index, grp,"
                    f"\n        COALESCE({numeric_sql('lval')}, 0) AS lnum,"
                    f"\n        COALESCE({numeric_sql('rval')}, 0) AS rnum"
                    f"\n    FROM cells"
                    f"\n) t"
                    f"\nWHERE grp IS NOT NULL AND NOT (lnum = 0 AND rnum = 0)"
                    f"\nGROUP BY grp"
                    f"\nORDER BY peak DESC, first_seen ASC")
            sql += self._limit_sql(plan)

        else:
            raise ValueError(f"Unsupported plan kind: {kind}")

        return sql, params.values

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def _query(self, sql: str, params: List[Any]) -> List[Dict]:
        """Execute SQL and return results as list of dicts."""
        try:
            with self.lock or nullcontext():
                result = self.conn.execute(sql, params).fetchdf()
            return result.to_dict('records')
        except Exception as e:
            logger.error(f"[PUSHDOWN] SQL error: {e}")
            logger.error(f"SQL: {sql[:500]}")
            raise

    def _execute(self, plan: ExecutionPlan, context: FileContext) -> AggregationResult:
        if self.conn is None:
            raise RuntimeError("No row store connection for push-down execution")

        sql, params = self.build_sql(plan)
        logger.debug(f"[PUSHDOWN] {sql}")
        records = self._query(sql, params)
        kind = plan.kind

        if kind in (PlanKind.ROWS, PlanKind.COUNT, PlanKind.DISTINCT):
            value = _to_int(records[0]["value"]) if records else 0
            return AggregationResult(kind=kind, value=value)

        if kind == PlanKind.NUMERIC:
            record = records[0] if records else {}
            count = _to_int(record.get("numeric_count"))
            total = _to_float(record.get("total")) or 0.0
            if count == 0:
                value = None
            elif plan.metric == "avg":
                value = total / count
            else:
                value = _to_float(record.get({"sum": "total", "min": "minimum", "max": "maximum"}[plan.metric]))
            return AggregationResult(kind=kind, value=value, numeric_count=count, total=total)

        if kind == PlanKind.GROUP_METRIC:
            items = [
                AggregationItem(
                    value=str(r["value"]),
                    count=_to_float(r["metric"]),
                    weight=_to_int(r["numeric_count"]),
                )
                for r in records
            ]
            return AggregationResult(kind=kind, items=items,
                                     numeric_count=sum(item.weight for item in items))

        if kind == PlanKind.COMPARE:
            items = [
                AggregationItem(
                    value=str(r["value"]),
                    count=_to_float(r["left_total"]) or 0.0,
                    compare=_to_float(r["right_total"]) or 0.0,
                )
                for r in records
            ]
            return AggregationResult(kind=kind, items=items)

        items = [AggregationItem(value=str(r["value"]), count=_to_int(r["cnt"])) for r in records]
        return AggregationResult(kind=kind, items=items)
