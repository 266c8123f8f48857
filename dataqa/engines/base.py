"""
DATAQA EXECUTOR BASE CLASS
==========================

Foundation for both aggregation strategies: push-down and in-memory.

Every executor:
- Takes an ExecutionPlan and the FileContext it targets
- Returns an AggregationResult tagged with its strategy
- Holds no per-question state between calls

Author: DataQA Team
"""

import time
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from ..errors import ExecutionError
from ..types import AggregationItem, AggregationResult, ExecutionPlan, FileContext, PlanKind, Strategy

logger = logging.getLogger(__name__)

GROUP_METRICS = ("sum", "avg", "min", "max")


class BaseExecutor(ABC):
    """
    Abstract base class for aggregation strategies.

    Subclasses implement:
    - strategy property
    - _execute()

    Base class handles:
    - Timing
    - Start/finish logging
    - Error wrapping into ExecutionError
    - Strategy tagging
    """

    @property
    @abstractmethod
    def strategy(self) -> Strategy:
        """Return the strategy this executor implements."""
        pass

    @property
    def tag(self) -> str:
        return "PUSHDOWN" if self.strategy == Strategy.PUSHDOWN else "FALLBACK"

    @abstractmethod
    def _execute(self, plan: ExecutionPlan, context: FileContext) -> AggregationResult:
        """
        Run one plan.

        Args:
            plan: What to compute
            context: The file it is computed over

        Returns:
            AggregationResult (strategy is set by execute())
        """
        pass

    def execute(self, plan: ExecutionPlan, context: FileContext) -> AggregationResult:
        """
        Main entry point. Times, logs and wraps failures.

        Raises:
            ExecutionError: anything the strategy raised, chained
        """
        started = time.perf_counter()
        logger.info(f"[{self.tag}] Starting {plan.describe()}")

        try:
            result = self._execute(plan, context)
        except ExecutionError:
            raise
        except Exception as e:
            logger.error(f"[{self.tag}] Execution failed for {plan.describe()}: {e}")
            raise ExecutionError(str(e), strategy=self.strategy.value) from e

        result.strategy = self.strategy
        duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(f"[{self.tag}] Completed {plan.kind.value} in {duration_ms}ms: "
                    f"value={result.value}, items={len(result.items)}")
        return result


# =============================================================================
# HELPERS
# =============================================================================

def metric_value(metric: str, total: float, count: int,
                 minimum: Optional[float], maximum: Optional[float]) -> Optional[float]:
    """Pick sum/avg/min/max from accumulated stats (None without values)."""
    if count == 0:
        return None
    if metric == "sum":
        return total
    if metric == "avg":
        return total / count
    if metric == "min":
        return minimum
    if metric == "max":
        return maximum
    raise ValueError(f"Unknown metric '{metric}'")


def rank_items(items: List[AggregationItem], kind: PlanKind,
               metric: Optional[str] = None, limit: Optional[int] = None) -> List[AggregationItem]:
    """
    Order items the way every strategy and the merger do.

    Compare items rank by the larger side, grouped minimums ascend, everything
    else descends. Python's sort is stable, so ties keep first appearance.
    """
    if kind == PlanKind.COMPARE:
        key = lambda item: -max(item.count, item.compare or 0)
    elif kind == PlanKind.GROUP_METRIC and metric == "min":
        key = lambda item: item.count
    else:
        key = lambda item: -item.count

    ranked = sorted(items, key=key)
    return ranked if limit is None else ranked[:limit]
