"""
Shared test fixtures.

Mock Supabase client, database patch fixtures and API test clients.
"""

import os
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are instantiated at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from datetime import datetime
from typing import Generator

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """
    Mock Supabase query builder with chainable methods.

    Filters are recorded in `calls` but not applied; tests set the rows
    they expect back.
    """

    def __init__(self, data: list = None, count: int = None, calls: list = None):
        self._data = data or []
        self._count = count
        self._is_single = False
        self.calls = calls if calls is not None else []

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        return self

    def select(self, *args, **kwargs):
        return self._record("select", *args, **kwargs)

    def insert(self, data):
        # Simulate insert - add id and timestamps
        if isinstance(data, dict):
            data = [data]
        for item in data:
            item.setdefault("id", "test-uuid-123")
            item["created_at"] = datetime.utcnow().isoformat() + "Z"
            item.setdefault("updated_at", datetime.utcnow().isoformat() + "Z")
        self._data = data
        return self._record("insert", data)

    def upsert(self, data, on_conflict: str = None, **kwargs):
        # Simulate upsert - stored row is echoed back with a database-stamped updated_at
        if isinstance(data, dict):
            data = [data]
        self._data = [
            {**item, "updated_at": datetime.utcnow().isoformat() + "+00:00"}
            for item in data
        ]
        return self._record("upsert", data, on_conflict=on_conflict)

    def update(self, data):
        updated_data = []
        for item in self._data:
            merged = {**item, **data}
            merged["updated_at"] = datetime.utcnow().isoformat() + "Z"
            updated_data.append(merged)
        self._data = updated_data if updated_data else [data]
        return self._record("update", data)

    def delete(self):
        return self._record("delete")

    def eq(self, column, value):
        return self._record("eq", column, value)

    def neq(self, column, value):
        return self._record("neq", column, value)

    def gte(self, column, value):
        return self._record("gte", column, value)

    def in_(self, column, values):
        return self._record("in_", column, values)

    def single(self):
        self._is_single = True
        return self

    def order(self, column, **kwargs):
        return self._record("order", column, **kwargs)

    def range(self, start, end):
        return self

    def limit(self, count):
        return self._record("limit", count)

    def execute(self) -> MockSupabaseResponse:
        if self._is_single:
            data = self._data[0] if self._data else None
            return MockSupabaseResponse(
                data=data,
                count=1 if data else 0
            )
        return MockSupabaseResponse(
            data=self._data,
            count=self._count if self._count is not None else len(self._data)
        )


class FailingSupabaseQuery(MockSupabaseQuery):
    """Query whose execute() raises, for database failure paths."""

    def __init__(self, error: str, calls: list = None):
        super().__init__(calls=calls)
        self._error = error

    def execute(self):
        raise Exception(self._error)


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""

    def __init__(self, data: list = None, count: int = None, error: str = None, calls: list = None):
        self._data = data or []
        self._count = count
        self._error = error
        self.calls = calls if calls is not None else []

    def _query(self) -> MockSupabaseQuery:
        if self._error:
            return FailingSupabaseQuery(self._error, self.calls)
        return MockSupabaseQuery([dict(row) for row in self._data], self._count, self.calls)

    def select(self, *args, **kwargs):
        return self._query().select(*args, **kwargs)

    def insert(self, data):
        return self._query().insert(data)

    def upsert(self, data, on_conflict: str = None, **kwargs):
        return self._query().upsert(data, on_conflict=on_conflict, **kwargs)

    def update(self, data):
        return self._query().update(data)

    def delete(self):
        return self._query().delete()


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables = {}
        self.calls: dict[str, list] = {}

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": data, "count": count, "error": None}

    def set_table_error(self, table_name: str, error: str):
        """Make every query on a table fail."""
        self._tables[table_name] = {"data": [], "count": None, "error": error}

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        config = self._tables.get(name, {"data": [], "count": None, "error": None})
        return MockSupabaseTable(
            config["data"],
            config["count"],
            config["error"],
            self.calls.setdefault(name, [])
        )


PATCHED_SERVICES = [
    "services.card_state_service",
    "services.field_config_service",
    "services.product_label_service",
    "services.store_service",
]


# ===================
# FIXTURES
# ===================

@pytest.fixture(autouse=True)
def reset_service_singletons():
    """Drop cached service singletons so each test gets fresh instances."""
    import services.card_state_service as card_state_module
    import services.field_config_service as field_config_module
    import services.product_label_service as product_label_module
    import services.store_service as store_module
    import services.order_pipeline_service as pipeline_module
    import services.field_resolution_service as resolver_module

    modules = [
        (card_state_module, "_card_state_service"),
        (field_config_module, "_field_config_service"),
        (product_label_module, "_product_label_service"),
        (store_module, "_store_service"),
        (pipeline_module, "_order_pipeline_service"),
        (resolver_module, "_field_resolver"),
    ]
    for module, name in modules:
        setattr(module, name, None)
    yield
    for module, name in modules:
        setattr(module, name, None)


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("order_card_states", [
                {"card_id": "1001-1-0", "status": "assigned", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("order_card_states", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    patches = [patch("config.database.get_supabase_client", return_value=mock_supabase)]
    patches += [
        patch(f"{module}.get_supabase_client", return_value=mock_supabase)
        for module in PATCHED_SERVICES
    ]
    for p in patches:
        p.start()
    yield mock_supabase
    for p in reversed(patches):
        p.stop()


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    Create FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("order_card_configs", [...])
            response = test_client_with_mock_db.get("/api/tenants/t-1/order-card-config")
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
