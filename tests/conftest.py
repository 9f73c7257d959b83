"""
Shared test fixtures.

Services are tested against a mocked Supabase client; nothing here needs
a real database or workflow engine.
"""

import os
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are loaded at import time and require these
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import MagicMock, patch
from datetime import datetime
from typing import Generator
from uuid import uuid4


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

    eq() and in_() filter the configured rows so conditional updates
    behave like the real thing.
    """

    def __init__(self, data: list = None, count: int = None, table: list = None):
        self._data = data or []
        self._count = count
        self._is_single = False
        self._update = None
        self._delete = False
        self._table = table

    def select(self, *args, **kwargs):
        return self

    def insert(self, data):
        # Simulate insert - add id and timestamps
        if isinstance(data, dict):
            data = [data]
        for item in data:
            item.setdefault("id", str(uuid4()))
            item["created_at"] = datetime.utcnow().isoformat() + "Z"
            item["updated_at"] = datetime.utcnow().isoformat() + "Z"
        self._data = data
        return self

    def update(self, data):
        self._update = data
        return self

    def delete(self):
        self._delete = True
        return self

    def eq(self, column, value):
        self._data = [row for row in self._data if row.get(column) == value]
        return self

    def neq(self, column, value):
        self._data = [row for row in self._data if row.get(column) != value]
        return self

    def in_(self, column, values):
        self._data = [row for row in self._data if row.get(column) in values]
        return self

    def gte(self, column, value):
        return self

    def lte(self, column, value):
        return self

    def single(self):
        self._is_single = True
        return self

    def order(self, column, **kwargs):
        return self

    def range(self, start, end):
        return self

    def limit(self, count):
        self._data = self._data[:count]
        return self

    def execute(self) -> MockSupabaseResponse:
        if self._update is not None:
            for row in self._data:
                row.update(self._update)

        if self._delete and self._table is not None:
            for row in self._data:
                self._table.remove(row)

        if self._is_single:
            # Return first item or empty for single()
            data = self._data[0] if self._data else None
            return MockSupabaseResponse(
                data=data,
                count=1 if data else 0
            )
        return MockSupabaseResponse(
            data=self._data,
            count=self._count if self._count is not None else len(self._data)
        )


class MockSupabaseTable:
    """Mock Supabase table backed by a shared list of rows."""

    def __init__(self, data: list, count: int = None):
        self._data = data
        self._count = count

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(list(self._data), self._count)

    def insert(self, data):
        query = MockSupabaseQuery([], None).insert(data)
        self._data.extend(query._data)
        return query

    def update(self, data):
        # Rows are shared, so updates are visible to later queries
        query = MockSupabaseQuery(list(self._data), self._count)
        return query.update(data)

    def delete(self):
        query = MockSupabaseQuery(list(self._data), self._count, table=self._data)
        return query.delete()


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables = {}

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": data, "count": count}

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        config = self._tables.setdefault(name, {"data": [], "count": None})
        return MockSupabaseTable(config["data"], config["count"])


# ===================
# FIXTURES
# ===================

@pytest.fixture
def fake_supabase() -> MockSupabaseClient:
    """
    Create an in-memory Supabase stand-in.

    Usage:
        def test_something(fake_supabase):
            fake_supabase.set_table_data("inventory_table", [
                InventoryLotFactory.create(branch="Adilabad"),
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def fake_db(fake_supabase) -> Generator:
    """
    Patch every service's database client with the in-memory stand-in.

    Singletons are reset so each test builds services against the mock.
    """
    import services.audit_service as audit_module
    import services.inventory_lot_service as inventory_module
    import services.lot_allocator as allocator_module
    import services.sales_service as sales_module

    for module, attr in (
        (audit_module, "_audit_service"),
        (inventory_module, "_inventory_lot_service"),
        (allocator_module, "_lot_allocator"),
        (sales_module, "_sales_service"),
    ):
        setattr(module, attr, None)

    with patch("services.audit_service.get_admin_client", return_value=None), \
            patch("services.audit_service.get_supabase_client", return_value=fake_supabase), \
            patch("services.inventory_lot_service.get_supabase_client", return_value=fake_supabase), \
            patch("services.sales_service.get_supabase_client", return_value=fake_supabase):
        yield fake_supabase

    for module, attr in (
        (audit_module, "_audit_service"),
        (inventory_module, "_inventory_lot_service"),
        (allocator_module, "_lot_allocator"),
        (sales_module, "_sales_service"),
    ):
        setattr(module, attr, None)


@pytest.fixture
def no_audit():
    """Replace the audit writer with a MagicMock."""
    audit = MagicMock()
    audit.record.return_value = True
    with patch("services.do_specification_service.get_audit_service", return_value=audit), \
            patch("services.sales_service.get_audit_service", return_value=audit):
        yield audit


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    The lifespan (database check) only runs inside a `with` block, so
    this client never touches Supabase on its own.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
