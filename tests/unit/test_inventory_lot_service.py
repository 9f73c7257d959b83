"""
Unit tests for InventoryLotService.

Tests cover candidate queries and conditional status transitions.
"""

import pytest
from unittest.mock import MagicMock, patch

from services.inventory_lot_service import InventoryLotService, LOT_SELECT
from models.sales import LotStatus
from exceptions import DatabaseError
from tests.factories import InventoryLotFactory


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase():
    """Mock Supabase client."""
    with patch("services.inventory_lot_service.get_supabase_client") as mock:
        client = MagicMock()
        mock.return_value = client
        yield client


@pytest.fixture
def inventory_service(mock_supabase):
    """Create InventoryLotService with mocked database."""
    return InventoryLotService()


# ===================
# FIND AVAILABLE TESTS
# ===================

class TestFindAvailable:
    """Tests for find_available method."""

    def test_returns_available_lots(self, inventory_service, mock_supabase):
        """find_available queries AVAILABLE lots ordered by created_at."""
        rows = InventoryLotFactory.create_batch(3)
        query = mock_supabase.table.return_value.select.return_value.eq.return_value
        query.order.return_value.execute.return_value = MagicMock(data=rows)

        lots = inventory_service.find_available()

        mock_supabase.table.assert_called_with("inventory_table")
        mock_supabase.table.return_value.select.assert_called_with(LOT_SELECT)
        mock_supabase.table.return_value.select.return_value.eq.assert_called_with("status", "AVAILABLE")
        query.order.assert_called_with("created_at")
        assert [lot.id for lot in lots] == [row["id"] for row in rows]

    def test_filters_by_line_specs(self, inventory_service, mock_supabase):
        """Fibre length and variety are applied as equality filters."""
        base = mock_supabase.table.return_value.select.return_value.eq.return_value
        base.eq.return_value.eq.return_value.order.return_value.execute.return_value = MagicMock(data=[])

        inventory_service.find_available(variety="MCU-5", fibre_length=31.5)

        base.eq.assert_called_with("fibre_length", 31.5)
        base.eq.return_value.eq.assert_called_with("variety", "MCU-5")

    def test_empty_result(self, inventory_service, mock_supabase):
        """No rows gives an empty list."""
        query = mock_supabase.table.return_value.select.return_value.eq.return_value
        query.order.return_value.execute.return_value = MagicMock(data=None)

        assert inventory_service.find_available() == []

    def test_query_failure_raises_database_error(self, inventory_service, mock_supabase):
        """Query errors surface as DatabaseError."""
        mock_supabase.table.return_value.select.side_effect = Exception("timeout")

        with pytest.raises(DatabaseError):
            inventory_service.find_available()


# ===================
# GET BY IDS TESTS
# ===================

class TestGetByIds:
    """Tests for get_by_ids method."""

    def test_empty_ids_skip_query(self, inventory_service, mock_supabase):
        """No ids means no query."""
        assert inventory_service.get_by_ids([]) == []
        mock_supabase.table.assert_not_called()

    def test_status_filter(self, inventory_service, mock_supabase):
        """Status narrows the lookup."""
        row = InventoryLotFactory.create()
        query = mock_supabase.table.return_value.select.return_value.in_.return_value
        query.eq.return_value.execute.return_value = MagicMock(data=[row])

        lots = inventory_service.get_by_ids([row["id"]], status=LotStatus.AVAILABLE)

        mock_supabase.table.return_value.select.return_value.in_.assert_called_with("id", [row["id"]])
        query.eq.assert_called_with("status", "AVAILABLE")
        assert lots[0].id == row["id"]


# ===================
# TRANSITION TESTS
# ===================

class TestTransitionStatus:
    """Tests for transition_status method."""

    def test_conditional_update(self, inventory_service, mock_supabase):
        """Only rows still in from_status are updated."""
        update = mock_supabase.table.return_value.update
        update.return_value.in_.return_value.eq.return_value.execute.return_value = MagicMock(
            data=[{"id": "lot-1"}, {"id": "lot-2"}]
        )

        moved = inventory_service.transition_status(
            ["lot-1", "lot-2", "lot-3"],
            LotStatus.AVAILABLE,
            LotStatus.BLOCKED,
        )

        update.assert_called_with({"status": "BLOCKED"})
        update.return_value.in_.assert_called_with("id", ["lot-1", "lot-2", "lot-3"])
        update.return_value.in_.return_value.eq.assert_called_with("status", "AVAILABLE")
        assert moved == ["lot-1", "lot-2"]

    def test_extra_columns(self, inventory_service, mock_supabase):
        """Extra columns are written with the status."""
        update = mock_supabase.table.return_value.update
        update.return_value.in_.return_value.eq.return_value.execute.return_value = MagicMock(data=[])

        inventory_service.transition_status(
            ["lot-1"], LotStatus.BLOCKED, LotStatus.SOLD, {"sold_by": "user-1"}
        )

        update.assert_called_with({"status": "SOLD", "sold_by": "user-1"})

    def test_update_failure_raises_database_error(self, inventory_service, mock_supabase):
        """Update errors surface as DatabaseError."""
        mock_supabase.table.return_value.update.side_effect = Exception("boom")

        with pytest.raises(DatabaseError):
            inventory_service.transition_status(["lot-1"], LotStatus.AVAILABLE, LotStatus.BLOCKED)
