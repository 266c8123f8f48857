"""
End-to-End Tests for DataQAService
===================================
Real in-memory DuckDB store; failures are injected with patch.
"""

import pytest
from unittest.mock import patch

from dataqa import ask
from dataqa.engines import PushdownExecutor
from dataqa.errors import AnswerFailedError, QuestionValidationError, ScopeNotFoundError
from dataqa.formatter import COMPARE_APOLOGY, UNKNOWN_SINGLE, UNSUPPORTED
from dataqa.profile import build_file_profile
from dataqa.service import DataQAService
from dataqa.store import DataSource
from dataqa.types import FileInfo, IntentType, Scope, Strategy


class ListSource(DataSource):
    """DataSource over plain lists, without a DuckDB connection."""

    def __init__(self, files):
        self.files = files

    def list_files_in_project(self, project_id):
        return [FileInfo(i, name) for i, (name, _) in self.files.items()]

    def get_file(self, file_id):
        if file_id not in self.files:
            return None
        return FileInfo(file_id, self.files[file_id][0])

    def list_columns(self, file_id):
        rows = self.files[file_id][1]
        return list(rows[0]) if rows else []

    def list_rows(self, file_id, limit, offset=0):
        return self.files[file_id][1][offset:offset + limit]

    def get_or_build_file_profile(self, file_id):
        columns = self.list_columns(file_id)
        return build_file_profile(columns, self.files[file_id][1]) if columns else None


@pytest.fixture
def service(store, config):
    return DataQAService(store, config)


# =============================================================================
# BASIC QUESTIONS
# =============================================================================

class TestSingleFile:

    def test_average(self, service, service_file):
        result = service.ask("Average of Revenue", {"fileId": service_file})
        assert result.to_dict() == {
            "answer": 'The average of "Revenue" is 15.',
            "intent": "avg",
            "column": "Revenue",
            "value": 15.0,
        }
        assert result.strategy == Strategy.PUSHDOWN

    def test_top_values(self, service, service_file):
        result = service.ask("top 2 values of Service", Scope(file_id=service_file))
        assert result.intent == "top"
        assert result.to_dict()["items"] == [{"value": "A", "count": 1}, {"value": "B", "count": 1}]

    def test_row_count(self, service, store):
        file_id = store.add_file(5, "three.csv", [{"x": "1"}, {"x": "2"}, {"x": "3"}])
        result = service.ask("how many rows are in this file?", {"fileId": file_id})
        assert (result.intent, result.value) == ("rows", 3)
        assert result.answer == "There are 3 rows in three.csv."

    def test_unknown_column(self, service, service_file):
        result = service.ask("what is the weather like", {"fileId": service_file})
        assert result.intent == "unknown"
        assert result.answer == UNKNOWN_SINGLE

    def test_compare_needs_two_numeric_columns(self, service, service_file):
        result = service.ask("compare Revenue vs Cost by Service", {"fileId": service_file})
        assert (result.intent, result.answer) == ("compare", COMPARE_APOLOGY)

    def test_compare(self, service, sales_file):
        result = service.ask("compare Revenue vs Cost by Country", {"fileId": sales_file})
        assert result.answer == ('Comparison of "Revenue" vs "Cost" by "Country" in sales.csv: '
                                 'France (1,500 vs 900), Spain (500 vs 750), Italy (250.5 vs 0)')
        assert result.to_dict()["compareColumn"] == "Cost"

    def test_count_with_filter(self, service, sales_file):
        result = service.ask("count Status = Active", {"fileId": sales_file})
        assert result.answer == 'There are 4 rows with "active".'
        assert result.to_dict()["filter"] == {"value": "active"}

    def test_count_by_value(self, service, sales_file):
        result = service.ask("How many Paris?", {"fileId": sales_file})
        assert (result.column, result.value) == ("City", 2)

    def test_distinct(self, service, sales_file):
        result = service.ask("how many unique countries", {"fileId": sales_file})
        assert result.intent == "distinct"

    def test_group_metric(self, service, sales_file):
        result = service.ask("total Revenue by Country", {"fileId": sales_file})
        assert result.answer == 'Sum of "Revenue" by "Country": France (1,500), Spain (500), Italy (250.5)'
        assert result.intent == "group"

    def test_group_count(self, service, sales_file):
        result = service.ask("count by Country", {"fileId": sales_file})
        assert result.answer == 'Count by "Country": France (2), Spain (2), Italy (2)'

    def test_group_needs_measure(self, service, store):
        file_id = store.add_file(5, "people.csv", [{"Name": "x", "Team": "a"}])
        result = service.ask("average by Team", {"fileId": file_id})
        assert result.answer == 'Please specify a numeric column to aggregate by "Team".'

    def test_no_numeric_values(self, service, service_file):
        result = service.ask("sum of Service", {"fileId": service_file})
        assert result.answer == 'No numeric values found in "Service".'
        assert (result.intent, result.value) == ("sum", 0)

    def test_forced_intent(self, service, service_file):
        assert service.ask("Revenue", {"fileId": service_file}, force_intent="sum").value == 30

    def test_unsupported_file(self, service, store):
        file_id = store.add_file(5, "notes.pdf", [])
        result = service.ask("how many rows", {"fileId": file_id})
        assert (result.intent, result.answer) == ("unsupported", UNSUPPORTED)


class TestMetadata:

    def test_columns(self, service, sales_file):
        result = service.ask("list the columns", {"fileId": sales_file})
        assert result.answer == "This file has 5 columns: Country, City, Revenue, Cost, Status."
        assert result.columns == ["Country", "City", "Revenue", "Cost", "Status"]

    def test_summary(self, service, sales_file):
        result = service.ask("give me a summary", {"fileId": sales_file})
        assert result.answer.startswith("sales.csv has 7 rows and 5 columns.")

    def test_types(self, service, sales_file):
        result = service.ask("what are the column types?", {"fileId": sales_file})
        assert result.answer == "Numeric: Revenue, Cost. Categorical/String: Country, City, Status"
        assert result.profile == {"numeric": ["Revenue", "Cost"], "dates": [],
                                  "categorical": ["Country", "City", "Status"]}

    def test_project_columns_are_unioned(self, service, store):
        store.add_file(6, "a.csv", [{"x": 1, "y": 2}])
        store.add_file(6, "b.csv", [{"y": 3, "z": 4}])
        result = service.ask("which columns?", {"projectId": 6})
        assert result.columns == ["x", "y", "z"]


# =============================================================================
# PROJECT SCOPE
# =============================================================================

class TestProjectScope:

    def test_sum_is_additive(self, service, sales_project):
        scope = {"projectId": sales_project["project_id"]}
        total = service.ask("total Revenue", scope)
        first = service.ask("total Revenue", {"fileId": sales_project["first"]})
        second = service.ask("total Revenue", {"fileId": sales_project["second"]})

        assert total.value == pytest.approx(first.value + second.value)
        assert total.answer == 'The total of "Revenue" across 2 files is 3,300.5.'

    def test_average_is_weighted(self, service, sales_project):
        result = service.ask("average Revenue", {"projectId": sales_project["project_id"]})
        assert result.value == pytest.approx(3300.5 / 7)

    def test_rows(self, service, sales_project):
        result = service.ask("how many rows are there", {"projectId": sales_project["project_id"]})
        assert result.answer == "There are 10 rows across 2 files."

    def test_top_is_limited_after_merge(self, service, sales_project):
        result = service.ask("top 2 values of Country", {"projectId": sales_project["project_id"]})
        assert result.answer == 'Across 2 files, top values of "Country": France (3), Spain (3)'

    def test_partial_coverage(self, service, store, sales_rows):
        store.add_file(7, "sales.csv", sales_rows)
        store.add_file(7, "teams.csv", [{"Team": "x"}])
        result = service.ask("total Revenue", {"projectId": 7})
        assert result.answer == 'The total of "Revenue" across 1 of 2 files is 2,250.5.'
        assert result.matched_files == 1


# =============================================================================
# VALIDATION / FAILURES
# =============================================================================

class TestValidation:

    def test_empty_question(self, service, service_file):
        with pytest.raises(QuestionValidationError):
            service.ask("   ", {"fileId": service_file})

    def test_empty_scope(self, service):
        with pytest.raises(ValueError):
            service.ask("total revenue", {})

    def test_scope_from_dict(self):
        assert Scope.from_dict({"projectId": 3}).is_project
        assert not Scope.from_dict({"fileId": 1, "projectId": 3}).is_project

    def test_file_id_wins_over_project(self, service, service_file):
        result = service.ask("how many rows", {"fileId": service_file, "projectId": 999})
        assert result.answer == "There are 2 rows in services.csv."

    def test_unknown_file(self, service):
        with pytest.raises(ScopeNotFoundError):
            service.ask("total revenue", {"fileId": 999})

    def test_empty_project(self, service):
        with pytest.raises(ScopeNotFoundError):
            service.ask("total revenue", Scope(project_id=999))


class TestFallback:

    def test_pushdown_failure_falls_back_per_plan(self, service, service_file):
        with patch.object(PushdownExecutor, "_execute", side_effect=RuntimeError("boom")):
            result = service.ask("Average of Revenue", {"fileId": service_file})
        assert result.value == pytest.approx(15)
        assert result.strategy == Strategy.IN_MEMORY

    def test_pipeline_failure_recomputes_from_rows(self, service, store, service_file):
        with patch.object(store, "get_or_build_file_profile",
                          side_effect=[RuntimeError("profile table locked"), None]):
            result = service.ask("Average of Revenue", {"fileId": service_file})
        assert result.answer == 'The average of "Revenue" is 15.'
        assert result.strategy == Strategy.IN_MEMORY

    def test_both_strategies_fail(self, service, store, service_file):
        with patch.object(store, "list_columns", side_effect=RuntimeError("store offline")):
            with pytest.raises(AnswerFailedError) as exc_info:
                service.ask("Average of Revenue", {"fileId": service_file})
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_source_without_connection(self, service_rows):
        source = ListSource({1: ("services.csv", service_rows)})
        result = ask("Average of Revenue", {"fileId": 1}, source)
        assert result.value == pytest.approx(15)
        assert result.strategy == Strategy.IN_MEMORY
        assert source.count_rows(1) == 2

    def test_module_level_ask(self, store, service_file):
        result = ask("top 2 values of Service", {"fileId": service_file}, store,
                     force_intent=IntentType.TOP)
        assert len(result.items) == 2
