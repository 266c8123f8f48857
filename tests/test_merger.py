"""
Tests for the Multi-Scope Merger
=================================
"""

import pytest

from dataqa.merger import ResultMerger
from dataqa.planner import SOFT_UNKNOWN, PlannedQuery
from dataqa.types import (
    AggregationItem,
    AggregationResult,
    ExecutionPlan,
    FileContext,
    IntentType,
    PlanKind,
    Strategy,
)


def numeric_outcome(file_id, metric, total, count, value, strategy=Strategy.PUSHDOWN):
    context = FileContext(file_id, f"f{file_id}.csv", ["Revenue"])
    plan = ExecutionPlan(PlanKind.NUMERIC, file_id, column="Revenue", metric=metric)
    planned = PlannedQuery(IntentType(metric), plan, column="Revenue", metric=metric)
    result = AggregationResult(PlanKind.NUMERIC, value=value, numeric_count=count, total=total,
                               strategy=strategy)
    return context, planned, result


def list_outcome(file_id, kind, items, metric=None, intent=IntentType.TOP):
    context = FileContext(file_id, f"f{file_id}.csv", ["Country", "Revenue"])
    plan = ExecutionPlan(kind, file_id, column="Revenue", group_by="Country", metric=metric)
    planned = PlannedQuery(intent, plan, column="Revenue", group_by="Country", metric=metric)
    result = AggregationResult(kind, items=items, numeric_count=sum(i.weight for i in items),
                               strategy=Strategy.PUSHDOWN)
    return context, planned, result


@pytest.fixture
def merger():
    return ResultMerger()


class TestScalarMerge:

    def test_average_is_weighted(self, merger):
        outcomes = [
            numeric_outcome(1, "avg", total=30, count=2, value=15),
            numeric_outcome(2, "avg", total=10, count=1, value=10),
        ]
        merged = merger.merge(IntentType.AVG, outcomes)
        assert merged.value == pytest.approx(40 / 3)
        assert merged.numeric_count == 3
        assert merged.matched_files == 2

    def test_sum_adds(self, merger):
        outcomes = [
            numeric_outcome(1, "sum", total=30, count=2, value=30),
            numeric_outcome(2, "sum", total=12.5, count=1, value=12.5),
        ]
        assert merger.merge(IntentType.SUM, outcomes).value == pytest.approx(42.5)

    def test_min_and_max(self, merger):
        low = [numeric_outcome(1, "min", 30, 2, 10), numeric_outcome(2, "min", 5, 1, 5)]
        high = [numeric_outcome(1, "max", 30, 2, 20), numeric_outcome(2, "max", 5, 1, 5)]
        assert merger.merge(IntentType.MIN, low).value == 5
        assert merger.merge(IntentType.MAX, high).value == 20

    def test_file_without_numbers_does_not_contribute(self, merger):
        outcomes = [
            numeric_outcome(1, "avg", total=30, count=2, value=15),
            numeric_outcome(2, "avg", total=0, count=0, value=None),
        ]
        merged = merger.merge(IntentType.AVG, outcomes)
        assert merged.value == pytest.approx(15)
        assert merged.matched_files == 1
        assert merged.total_files == 2

    def test_in_memory_strategy_sticks(self, merger):
        outcomes = [
            numeric_outcome(1, "sum", 1, 1, 1, strategy=Strategy.IN_MEMORY),
            numeric_outcome(2, "sum", 1, 1, 1, strategy=Strategy.PUSHDOWN),
        ]
        assert merger.merge(IntentType.SUM, outcomes).strategy == Strategy.IN_MEMORY


class TestListMerge:

    def test_top_counts_are_summed_and_limited(self, merger):
        outcomes = [
            list_outcome(1, PlanKind.TOP, [AggregationItem("France", 2), AggregationItem("Italy", 2)]),
            list_outcome(2, PlanKind.TOP, [AggregationItem("Spain", 3), AggregationItem("France", 1)]),
        ]
        merged = merger.merge(IntentType.TOP, outcomes, limit=2)
        assert [(i.value, i.count) for i in merged.items] == [("France", 3), ("Spain", 3)]

    def test_group_average_is_weighted(self, merger):
        outcomes = [
            list_outcome(1, PlanKind.GROUP_METRIC, [AggregationItem("France", 10, weight=1)],
                         metric="avg", intent=IntentType.GROUP),
            list_outcome(2, PlanKind.GROUP_METRIC, [AggregationItem("France", 20, weight=3)],
                         metric="avg", intent=IntentType.GROUP),
        ]
        merged = merger.merge(IntentType.AVG, outcomes)
        assert merged.items[0].count == pytest.approx(17.5)
        assert merged.items[0].weight == 4

    def test_group_min_takes_smallest(self, merger):
        outcomes = [
            list_outcome(1, PlanKind.GROUP_METRIC, [AggregationItem("A", 4, weight=1)],
                         metric="min", intent=IntentType.GROUP),
            list_outcome(2, PlanKind.GROUP_METRIC, [AggregationItem("A", 2, weight=1),
                                                    AggregationItem("B", 3, weight=1)],
                         metric="min", intent=IntentType.GROUP),
        ]
        merged = merger.merge(IntentType.MIN, outcomes)
        assert [(i.value, i.count) for i in merged.items] == [("A", 2), ("B", 3)]

    def test_compare_sums_both_sides(self, merger):
        outcomes = [
            list_outcome(1, PlanKind.COMPARE, [AggregationItem("A", 1, compare=2)], intent=IntentType.COMPARE),
            list_outcome(2, PlanKind.COMPARE, [AggregationItem("A", 3, compare=4)], intent=IntentType.COMPARE),
        ]
        item = merger.merge(IntentType.COMPARE, outcomes).items[0]
        assert (item.count, item.compare) == (4, 6)

    def test_differently_shaped_plans_are_left_out(self, merger):
        grouped = list_outcome(1, PlanKind.GROUP_METRIC, [AggregationItem("A", 4, weight=1)],
                               metric="sum", intent=IntentType.GROUP)
        plain = numeric_outcome(2, "sum", total=100, count=1, value=100)
        merged = merger.merge(IntentType.SUM, [grouped, plain])
        assert merged.kind == PlanKind.GROUP_METRIC
        assert merged.matched_files == 1
        assert [i.value for i in merged.items] == ["A"]


class TestSoftOutcomes:

    def test_all_soft(self, merger):
        context = FileContext(1, "a.csv", ["x"])
        outcomes = [(context, PlannedQuery(IntentType.COUNT, soft=SOFT_UNKNOWN), None)]
        merged = merger.merge(IntentType.COUNT, outcomes)
        assert merged.soft == SOFT_UNKNOWN
        assert merged.matched_files == 0

    def test_soft_file_is_skipped(self, merger):
        context = FileContext(2, "b.csv", ["x"])
        outcomes = [
            (context, PlannedQuery(IntentType.SUM, soft=SOFT_UNKNOWN), None),
            numeric_outcome(1, "sum", total=5, count=1, value=5),
        ]
        merged = merger.merge(IntentType.SUM, outcomes)
        assert merged.soft is None
        assert merged.column == "Revenue"
        assert merged.matched_files == 1
