"""
Query Planner
=============

Turns (question, intent, FileContext) into one ExecutionPlan, or into a soft
outcome when no column, measure or comparison can be established.

Order of checks for aggregate intents:
1. Group-by clause   -> GROUP_COUNT (count/distinct/top) or GROUP_METRIC
2. Column resolution -> direct match, filter column, typed fallback
3. Value inference   -> COUNT only ("how many Paris" -> City = paris)

Author: DataQA Team
"""

import re
import logging
from dataclasses import dataclass
from typing import Optional

from .clauses import CompareResolver, find_filter, find_group_by_column
from .columns import ColumnResolver
from .config import QAConfig
from .text import normalize_text
from .types import ExecutionPlan, FileContext, Filter, Intent, IntentType, PlanKind, NUMERIC_INTENTS

logger = logging.getLogger(__name__)

# Soft outcomes
SOFT_UNKNOWN = "unknown"
SOFT_CLARIFY = "clarify"
SOFT_COMPARE = "compare"

_MEASURE_SPLIT_RE = re.compile(r"\bby\b|\bper\b")
_TOP_RE = re.compile(r"\btop\b")

_SCALAR_KINDS = {
    IntentType.COUNT: PlanKind.COUNT,
    IntentType.DISTINCT: PlanKind.DISTINCT,
    IntentType.TOP: PlanKind.TOP,
}


@dataclass
class PlannedQuery:
    """A plan for one file plus the labels the answer needs."""
    intent: IntentType                    # answer intent (GROUP for group-by)
    plan: Optional[ExecutionPlan] = None
    column: Optional[str] = None
    compare_column: Optional[str] = None
    group_by: Optional[str] = None
    filter: Optional[Filter] = None
    metric: Optional[str] = None
    soft: Optional[str] = None

    @property
    def is_soft(self) -> bool:
        return self.soft is not None


class QueryPlanner:
    """Builds per-file plans for execution intents."""

    def __init__(self, config: Optional[QAConfig] = None, resolver: Optional[ColumnResolver] = None):
        self.config = config or QAConfig()
        self.resolver = resolver or ColumnResolver(self.config)
        self.compare_resolver = CompareResolver(self.resolver)

    # =========================================================================
    # LIMITS
    # =========================================================================

    def group_limit(self, question: str, intent: Intent) -> int:
        """topN when the question says "top", else the default group limit."""
        wanted = intent.top_n if _TOP_RE.search((question or "").lower()) else self.config.group_limit
        return max(1, min(self.config.max_top_n, wanted))

    def list_limit(self, question: str, intent: Intent, kind: Optional[PlanKind]) -> Optional[int]:
        """Final length of a ranked list answer."""
        if kind == PlanKind.TOP:
            return intent.top_n
        if kind in (PlanKind.GROUP_COUNT, PlanKind.GROUP_METRIC):
            return self.group_limit(question, intent)
        if kind == PlanKind.COMPARE:
            return max(2, intent.top_n)
        return None

    # =========================================================================
    # PLANNING
    # =========================================================================

    def plan(self, question: str, intent: Intent, context: FileContext,
             multi_file: bool = False) -> PlannedQuery:
        """
        Plan one file.

        Args:
            question: Raw question text
            intent: Classified intent
            context: Target file
            multi_file: Leave ranked lists unlimited (they are limited after merging)

        Returns:
            PlannedQuery with a plan, or with `soft` set
        """
        intent_type = intent.type
        file_id = context.file_id

        if intent_type == IntentType.ROWS:
            return PlannedQuery(IntentType.ROWS, ExecutionPlan(PlanKind.ROWS, file_id))

        if intent_type == IntentType.COMPARE:
            return self._plan_compare(question, intent, context, multi_file)

        columns = context.columns
        group_by = find_group_by_column(question, columns)
        filter = find_filter(question, columns)

        if group_by:
            return self._plan_group(question, intent, context, group_by, filter, multi_file)

        question_norm = normalize_text(question)
        column = self.resolver.pick(question_norm, columns)
        if not column and filter:
            column = filter.column
        if not column:
            column = self.resolver.resolve(question_norm, columns, intent_type,
                                           profile=context.profile, rows=context.rows)

        if not column and intent_type == IntentType.COUNT:
            hint = self.resolver.extract_value_hint(question)
            if hint:
                inferred = self.resolver.infer_column_by_value(columns, context.rows, hint)
                if inferred:
                    column, filter = inferred.column, inferred

        if not column:
            logger.info(f"[RESOLVER] No column for {intent_type.value} in file {file_id}")
            return PlannedQuery(intent_type, soft=SOFT_UNKNOWN)

        kind = _SCALAR_KINDS.get(intent_type, PlanKind.NUMERIC)
        metric = intent_type.value if kind == PlanKind.NUMERIC else None
        limit = None if multi_file else self.list_limit(question, intent, kind)

        plan = ExecutionPlan(kind, file_id, column=column, metric=metric, filter=filter, limit=limit)
        return PlannedQuery(intent_type, plan, column=column, filter=filter, metric=metric)

    def _plan_group(self, question: str, intent: Intent, context: FileContext,
                    group_by: str, filter: Optional[Filter], multi_file: bool) -> PlannedQuery:
        limit = None if multi_file else self.group_limit(question, intent)

        if intent.type not in NUMERIC_INTENTS:
            plan = ExecutionPlan(PlanKind.GROUP_COUNT, context.file_id, group_by=group_by,
                                 metric="count", filter=filter, limit=limit)
            return PlannedQuery(IntentType.GROUP, plan, group_by=group_by, filter=filter, metric="count")

        metric = intent.type.value
        measure = self._measure_column(question, context, group_by)
        if not measure:
            logger.info(f"[RESOLVER] No numeric measure to aggregate by '{group_by}'")
            return PlannedQuery(IntentType.GROUP, group_by=group_by, metric=metric, soft=SOFT_CLARIFY)

        plan = ExecutionPlan(PlanKind.GROUP_METRIC, context.file_id, column=measure, group_by=group_by,
                             metric=metric, filter=filter, limit=limit)
        return PlannedQuery(IntentType.GROUP, plan, column=measure, group_by=group_by,
                            filter=filter, metric=metric)

    def _measure_column(self, question: str, context: FileContext, group_by: str) -> Optional[str]:
        """Measure named before "by"/"per", else the first numeric non-group column."""
        measure_question = _MEASURE_SPLIT_RE.split((question or "").lower())[0] or question
        candidates = [c for c in context.columns if c != group_by]

        measure = self.resolver.pick(normalize_text(measure_question), candidates)
        if measure:
            return measure

        numeric, _ = self.resolver.typed_columns(candidates, context.rows, context.profile)
        return numeric[0] if numeric else None

    def _plan_compare(self, question: str, intent: Intent, context: FileContext,
                      multi_file: bool) -> PlannedQuery:
        resolved = self.compare_resolver.resolve(question, context.columns, context.rows, context.profile)
        if not resolved.is_complete:
            logger.info(f"[RESOLVER] Incomplete comparison in file {context.file_id}: {resolved}")
            return PlannedQuery(IntentType.COMPARE, soft=SOFT_COMPARE)

        limit = None if multi_file else self.list_limit(question, intent, PlanKind.COMPARE)
        plan = ExecutionPlan(PlanKind.COMPARE, context.file_id, column=resolved.left,
                             compare_column=resolved.right, group_by=resolved.group_by, limit=limit)
        return PlannedQuery(IntentType.COMPARE, plan, column=resolved.left,
                            compare_column=resolved.right, group_by=resolved.group_by)
