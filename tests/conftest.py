"""
Pytest Configuration and Fixtures
==================================
Shared fixtures for the DataQA test suite.
"""

import pytest
import os
import sys
from typing import Any, Dict, List

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dataqa.config import QAConfig
from dataqa.store import DuckDBRowStore


# =============================================================================
# ENVIRONMENT FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep DATA_QA_* overrides from the developer's shell out of tests."""
    for name in list(os.environ):
        if name.startswith("DATA_QA_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config() -> QAConfig:
    """Default engine configuration."""
    return QAConfig()


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def service_rows() -> List[Dict[str, Any]]:
    """Two rows: Service A/10 and Service B/20."""
    return [
        {"Service": "A", "Revenue": "10"},
        {"Service": "B", "Revenue": "20"},
    ]


@pytest.fixture
def sales_rows() -> List[Dict[str, Any]]:
    """Sales rows with blanks, thousands separators and a text outlier."""
    return [
        {"Country": "France", "City": "Paris", "Revenue": "1,200", "Cost": "800", "Status": "Active"},
        {"Country": "France", "City": "Lyon", "Revenue": "300", "Cost": "100", "Status": "Closed"},
        {"Country": "Spain", "City": "Madrid", "Revenue": "500", "Cost": "700", "Status": "Active"},
        {"Country": "Spain", "City": "Paris", "Revenue": "n/a", "Cost": "50", "Status": "Active"},
        {"Country": "Italy", "City": "Rome", "Revenue": "250.5", "Cost": "", "Status": "active"},
        {"Country": "", "City": "Milan", "Revenue": "-", "Cost": "0", "Status": "Closed"},
        {"Country": "Italy", "City": "Rome", "Revenue": "unknown", "Cost": "0", "Status": "null"},
    ]


@pytest.fixture
def second_sales_rows() -> List[Dict[str, Any]]:
    """A second sales file for project-scope questions."""
    return [
        {"Country": "France", "City": "Nice", "Revenue": "100", "Cost": "40", "Status": "Active"},
        {"Country": "Germany", "City": "Berlin", "Revenue": "900", "Cost": "300", "Status": "Active"},
        {"Country": "Spain", "City": "Madrid", "Revenue": "50", "Cost": "20", "Status": "Closed"},
    ]


# =============================================================================
# STORE FIXTURES
# =============================================================================

@pytest.fixture
def store(config):
    """Real in-memory DuckDB row store."""
    s = DuckDBRowStore(":memory:", config)
    yield s
    s.close()


@pytest.fixture
def service_file(store, service_rows) -> int:
    """File id of the two-row Service/Revenue file (project 1)."""
    return store.add_file(1, "services.csv", service_rows)


@pytest.fixture
def sales_file(store, sales_rows) -> int:
    """File id of the sales file (project 2)."""
    return store.add_file(2, "sales.csv", sales_rows)


@pytest.fixture
def sales_project(store, sales_rows, second_sales_rows) -> Dict[str, int]:
    """Project 3 with two sales files."""
    first = store.add_file(3, "sales_q1.csv", sales_rows)
    second = store.add_file(3, "sales_q2.csv", second_sales_rows)
    return {"project_id": 3, "first": first, "second": second}
