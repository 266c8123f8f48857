"""
Multi-Scope Merger
==================

Combines per-file results into one answer payload.

Every file is planned and executed; merging happens afterwards:
- count / distinct / rows / sum : added across files
- avg                           : running sum / running numeric count (weighted)
- min / max                     : smallest / largest file value
- top / group count / compare   : counts summed per value key
- grouped sum                   : summed per key
- grouped avg                   : weighted by each file's per-group numeric count
- grouped min / max             : smallest / largest per key

A file contributes (counts toward matched_files) when it produced a usable
result: a resolved column for count/distinct/top, at least one numeric value
for numeric aggregates, or a non-empty list for group-by and compare.

Author: DataQA Team
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .engines.base import rank_items
from .planner import PlannedQuery
from .types import (
    AggregationItem,
    AggregationResult,
    FileContext,
    Filter,
    IntentType,
    PlanKind,
    Strategy,
)

logger = logging.getLogger(__name__)

FileOutcome = Tuple[FileContext, PlannedQuery, Optional[AggregationResult]]


@dataclass
class MergedResult:
    """Merged numbers and labels for the formatter."""
    intent: IntentType
    kind: Optional[PlanKind] = None
    column: Optional[str] = None
    compare_column: Optional[str] = None
    group_by: Optional[str] = None
    filter: Optional[Filter] = None
    metric: Optional[str] = None
    value: Optional[float] = None
    numeric_count: int = 0
    items: List[AggregationItem] = field(default_factory=list)
    matched_files: int = 0
    total_files: int = 0
    soft: Optional[str] = None
    strategy: Optional[Strategy] = None

    @property
    def is_multi_file(self) -> bool:
        return self.total_files > 1


def _contributes(planned: PlannedQuery, result: Optional[AggregationResult]) -> bool:
    if planned.is_soft or result is None:
        return False
    kind = result.kind
    if kind in (PlanKind.ROWS, PlanKind.COUNT, PlanKind.DISTINCT, PlanKind.TOP):
        return True
    if kind == PlanKind.NUMERIC:
        return result.has_numeric
    return bool(result.items)


def _merge_strategy(current: Optional[Strategy], new: Optional[Strategy]) -> Optional[Strategy]:
    """in_memory wins once any file needed the fallback."""
    if current == Strategy.IN_MEMORY or new is None:
        return current
    return new


class ResultMerger:
    """Merges FileOutcomes for one question."""

    def merge(self, intent: IntentType, outcomes: List[FileOutcome],
              limit: Optional[int] = None) -> MergedResult:
        """
        Args:
            intent: Classified intent
            outcomes: (context, planned, result) per file, in file order
            limit: Final ranked list length

        Returns:
            MergedResult; matched_files == 0 means nothing contributed
        """
        merged = MergedResult(intent=intent, total_files=len(outcomes))
        contributing = [(p, r) for _, p, r in outcomes if _contributes(p, r)]

        # Labels come from the first planned file, contributing or not
        for _, planned, _ in outcomes:
            if not planned.is_soft:
                self._copy_labels(merged, planned)
                break
        else:
            if outcomes:
                first = outcomes[0][1]
                self._copy_labels(merged, first)
                merged.soft = first.soft

        if not contributing:
            return merged

        # Files whose plan took a different shape (e.g. no group-by column) are left out
        lead = contributing[0][0]
        contributing = [(p, r) for p, r in contributing
                        if p.plan.kind == lead.plan.kind and p.metric == lead.metric]

        self._copy_labels(merged, lead)
        merged.matched_files = len(contributing)
        merged.soft = None

        results = [r for _, r in contributing]
        for result in results:
            merged.strategy = _merge_strategy(merged.strategy, result.strategy)

        kind = merged.kind
        if kind in (PlanKind.ROWS, PlanKind.COUNT, PlanKind.DISTINCT):
            merged.value = sum(r.value or 0 for r in results)
        elif kind == PlanKind.NUMERIC:
            self._merge_numeric(merged, results)
        elif kind is not None:
            items = self._merge_items(kind, merged.metric, results)
            merged.items = rank_items(items, kind, metric=merged.metric, limit=limit)
            merged.numeric_count = sum(r.numeric_count for r in results)

        logger.info(f"[MERGE] {kind.value if kind else intent.value}: "
                    f"{merged.matched_files}/{merged.total_files} files contributed")
        return merged

    def _copy_labels(self, merged: MergedResult, planned: PlannedQuery) -> None:
        merged.intent = planned.intent
        merged.kind = planned.plan.kind if planned.plan else None
        merged.column = planned.column
        merged.compare_column = planned.compare_column
        merged.group_by = planned.group_by
        merged.filter = planned.filter
        merged.metric = planned.metric

    def _merge_numeric(self, merged: MergedResult, results: List[AggregationResult]) -> None:
        merged.numeric_count = sum(r.numeric_count for r in results)
        metric = merged.metric
        if metric == "sum":
            merged.value = sum(r.total for r in results)
        elif metric == "avg":
            merged.value = sum(r.total for r in results) / merged.numeric_count
        elif metric == "min":
            merged.value = min(r.value for r in results)
        elif metric == "max":
            merged.value = max(r.value for r in results)

    def _merge_items(self, kind: PlanKind, metric: Optional[str],
                     results: List[AggregationResult]) -> List[AggregationItem]:
        merged: Dict[str, AggregationItem] = {}

        for result in results:
            for item in result.items:
                current = merged.get(item.value)
                if current is None:
                    merged[item.value] = AggregationItem(item.value, item.count, item.compare, item.weight)
                    continue

                if kind == PlanKind.GROUP_METRIC and metric == "avg":
                    weight = current.weight + item.weight
                    if weight:
                        current.count = (current.count * current.weight + item.count * item.weight) / weight
                    current.weight = weight
                elif kind == PlanKind.GROUP_METRIC and metric == "min":
                    current.count = min(current.count, item.count)
                    current.weight += item.weight
                elif kind == PlanKind.GROUP_METRIC and metric == "max":
                    current.count = max(current.count, item.count)
                    current.weight += item.weight
                else:
                    current.count += item.count
                    current.weight += item.weight
                    if item.compare is not None:
                        current.compare = (current.compare or 0) + item.compare

        return list(merged.values())
