"""
In-Memory Executor
==================

Fallback strategy: answers a plan by iterating materialized row records.

Rows come from the DataSource, capped at QAConfig.row_limit, and are
cached per file for the lifetime of the executor (one question).

Author: DataQA Team
"""

import logging
from typing import Any, Dict, List, Optional

from ..config import QAConfig
from ..text import normalize_cell_value, parse_numeric_value
from ..types import (
    AggregationItem,
    AggregationResult,
    ExecutionPlan,
    FileContext,
    Filter,
    PlanKind,
    Strategy,
)
from .base import BaseExecutor, metric_value, rank_items

logger = logging.getLogger(__name__)


class InMemoryExecutor(BaseExecutor):
    """Row-iterating implementation of every PlanKind."""

    def __init__(self, source=None, config: Optional[QAConfig] = None):
        """
        Args:
            source: DataSource to materialize rows from; None uses context.rows
            config: Supplies the row limit
        """
        self.source = source
        self.config = config or QAConfig()
        self._rows: Dict[int, List[Dict[str, Any]]] = {}

    @property
    def strategy(self) -> Strategy:
        return Strategy.IN_MEMORY

    def rows_for(self, file_id: int) -> List[Dict[str, Any]]:
        """Materialized rows of a file, at most row_limit."""
        if file_id not in self._rows:
            rows = self.source.list_rows(file_id, self.config.row_limit)
            self._rows[file_id] = rows
            logger.info(f"[FALLBACK] Materialized {len(rows)} rows for file {file_id}")
        return self._rows[file_id]

    def _context_rows(self, context: FileContext) -> List[Dict[str, Any]]:
        if self.source is None:
            return context.rows
        return self.rows_for(context.file_id)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def _execute(self, plan: ExecutionPlan, context: FileContext) -> AggregationResult:
        rows = [row if isinstance(row, dict) else {} for row in self._context_rows(context)]

        if plan.kind == PlanKind.ROWS:
            return AggregationResult(kind=plan.kind, value=len(rows))
        if plan.kind == PlanKind.COMPARE:
            return self._compare(plan, rows)

        rows = self._apply_filter(rows, plan.filter)

        if plan.kind == PlanKind.COUNT:
            return self._count(plan, rows)
        if plan.kind == PlanKind.DISTINCT:
            return self._distinct(plan, rows)
        if plan.kind == PlanKind.TOP:
            return self._top(plan, rows)
        if plan.kind == PlanKind.NUMERIC:
            return self._numeric(plan, rows)
        if plan.kind == PlanKind.GROUP_COUNT:
            return self._group_count(plan, rows)
        if plan.kind == PlanKind.GROUP_METRIC:
            return self._group_metric(plan, rows)

        raise ValueError(f"Unsupported plan kind: {plan.kind}")

    def _apply_filter(self, rows: List[Dict[str, Any]], filter: Optional[Filter]) -> List[Dict[str, Any]]:
        if filter is None:
            return rows
        target = filter.value.strip().lower()
        return [row for row in rows
                if normalize_cell_value(row.get(filter.column)).lower() == target]

    # =========================================================================
    # SCALARS
    # =========================================================================

    def _count(self, plan: ExecutionPlan, rows: List[Dict[str, Any]]) -> AggregationResult:
        count = sum(1 for row in rows if normalize_cell_value(row.get(plan.column)))
        return AggregationResult(kind=plan.kind, value=count)

    def _distinct(self, plan: ExecutionPlan, rows: List[Dict[str, Any]]) -> AggregationResult:
        values = {normalize_cell_value(row.get(plan.column)) for row in rows}
        values.discard("")
        return AggregationResult(kind=plan.kind, value=len(values))

    def _numeric(self, plan: ExecutionPlan, rows: List[Dict[str, Any]]) -> AggregationResult:
        total = 0.0
        count = 0
        minimum: Optional[float] = None
        maximum: Optional[float] = None

        for row in rows:
            number = parse_numeric_value(row.get(plan.column))
            if number is None:
                continue
            count += 1
            total += number
            minimum = number if minimum is None else min(minimum, number)
            maximum = number if maximum is None else max(maximum, number)

        return AggregationResult(
            kind=plan.kind,
            value=metric_value(plan.metric, total, count, minimum, maximum),
            numeric_count=count,
            total=total,
        )

    # =========================================================================
    # LISTS
    # =========================================================================

    def _top(self, plan: ExecutionPlan, rows: List[Dict[str, Any]]) -> AggregationResult:
        freq: Dict[str, int] = {}
        for row in rows:
            value = normalize_cell_value(row.get(plan.column))
            if value:
                freq[value] = freq.get(value, 0) + 1

        items = [AggregationItem(value=v, count=c) for v, c in freq.items()]
        return AggregationResult(kind=plan.kind, items=rank_items(items, plan.kind, limit=plan.limit))

    def _group_count(self, plan: ExecutionPlan, rows: List[Dict[str, Any]]) -> AggregationResult:
        counts: Dict[str, int] = {}
        for row in rows:
            group = normalize_cell_value(row.get(plan.group_by))
            if group:
                counts[group] = counts.get(group, 0) + 1

        items = [AggregationItem(value=g, count=c) for g, c in counts.items()]
        return AggregationResult(kind=plan.kind, items=rank_items(items, plan.kind, limit=plan.limit))

    def _group_metric(self, plan: ExecutionPlan, rows: List[Dict[str, Any]]) -> AggregationResult:
        # group -> [sum, count, min, max]
        groups: Dict[str, List[float]] = {}
        for row in rows:
            group = normalize_cell_value(row.get(plan.group_by))
            if not group:
                continue
            number = parse_numeric_value(row.get(plan.column))
            if number is None:
                continue
            state = groups.get(group)
            if state is None:
                groups[group] = [number, 1, number, number]
            else:
                state[0] += number
                state[1] += 1
                state[2] = min(state[2], number)
                state[3] = max(state[3], number)

        items = [
            AggregationItem(
                value=group,
                count=metric_value(plan.metric, state[0], int(state[1]), state[2], state[3]),
                weight=int(state[1]),
            )
            for group, state in groups.items()
        ]
        ranked = rank_items(items, plan.kind, metric=plan.metric, limit=plan.limit)
        return AggregationResult(
            kind=plan.kind,
            items=ranked,
            numeric_count=sum(item.weight for item in ranked),
        )

    def _compare(self, plan: ExecutionPlan, rows: List[Dict[str, Any]]) -> AggregationResult:
        pairs: Dict[str, List[float]] = {}
        for row in rows:
            group = normalize_cell_value(row.get(plan.group_by))
            if not group:
                continue
            left = parse_numeric_value(row.get(plan.column)) or 0.0
            right = parse_numeric_value(row.get(plan.compare_column)) or 0.0
            if left == 0 and right == 0:
                continue
            pair = pairs.setdefault(group, [0.0, 0.0])
            pair[0] += left
            pair[1] += right

        items = [AggregationItem(value=g, count=p[0], compare=p[1]) for g, p in pairs.items()]
        return AggregationResult(kind=plan.kind, items=rank_items(items, plan.kind, limit=plan.limit))
