"""
DATAQA EXECUTION STRATEGIES
===========================

Two interchangeable aggregation strategies behind one execute(plan, context):

1. PUSHDOWN  - one DuckDB query over the row store
2. IN_MEMORY - iteration over materialized rows (row-limit capped)

ExecutionDispatcher tries push-down first and recomputes in memory when it
raises. Both return an AggregationResult tagged with its strategy.

USAGE
=====

    from dataqa.engines import ExecutionDispatcher, InMemoryExecutor, PushdownExecutor

    dispatcher = ExecutionDispatcher(
        PushdownExecutor(store.conn, store.lock),
        InMemoryExecutor(store, config),
    )
    result = dispatcher.execute(plan, context)
    print(result.strategy)    # Strategy.PUSHDOWN or Strategy.IN_MEMORY

Author: DataQA Team
"""

from .base import BaseExecutor, metric_value, rank_items
from .dispatcher import ExecutionDispatcher
from .in_memory import InMemoryExecutor
from .pushdown import PushdownExecutor

__all__ = [
    "BaseExecutor",
    "ExecutionDispatcher",
    "InMemoryExecutor",
    "PushdownExecutor",
    "metric_value",
    "rank_items",
]
