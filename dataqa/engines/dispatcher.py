"""
Strategy dispatcher: push-down first, in-memory on failure.

The two strategies never run concurrently for one plan. The returned
AggregationResult carries the strategy that produced it.
"""

import logging
from typing import Optional

from ..errors import ExecutionError
from ..types import AggregationResult, ExecutionPlan, FileContext
from .base import BaseExecutor

logger = logging.getLogger(__name__)


class ExecutionDispatcher:
    """Runs a plan on the primary executor, falling back when it raises."""

    def __init__(self, primary: Optional[BaseExecutor], fallback: BaseExecutor):
        self.primary = primary
        self.fallback = fallback

    def execute(self, plan: ExecutionPlan, context: FileContext) -> AggregationResult:
        if self.primary is not None:
            try:
                return self.primary.execute(plan, context)
            except ExecutionError as e:
                logger.error(f"[FALLBACK] {e.strategy} failed for {plan.describe()}, "
                             f"recomputing in memory: {e}", exc_info=True)

        return self.fallback.execute(plan, context)
