"""
Unit tests for DOSpecificationService.

Tests cover create (calculate + persist), listing, lookup and history.
"""

import pytest
from unittest.mock import MagicMock, patch
from datetime import date

from services.do_specification_service import (
    CUSTOMER_SELECT,
    DOSpecificationService,
    get_do_specification_service,
)
from models.do_specification import DOSpecificationCreate, Zone
from exceptions import DatabaseError, DOSpecificationNotFoundError, InvalidLotInputError
from tests.factories import LotInputFactory


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase():
    """Mock Supabase client."""
    with patch("services.do_specification_service.get_supabase_client") as mock:
        client = MagicMock()
        mock.return_value = client
        yield client


@pytest.fixture
def spec_service(mock_supabase, no_audit):
    """Create DOSpecificationService with mocked database and audit."""
    return DOSpecificationService()


@pytest.fixture
def create_request():
    """Two-lot South Zone request."""
    return DOSpecificationCreate(
        customer_id="customer-uuid-1",
        total_lots=2,
        bid_price=50000,
        emd_amount=25000,
        cotton_value=100000,
        gst_rate=0.18,
        zone=Zone.SOUTH,
        lots=[
            LotInputFactory.create(actual_weight=180),
            LotInputFactory.create(),
        ],
    )


def _stored_row(request: DOSpecificationCreate, results: dict) -> dict:
    return {
        "id": "spec-uuid-1",
        "user_id": "user-1",
        "customer_id": request.customer_id,
        "total_lots": request.total_lots,
        "bid_price": request.bid_price,
        "emd_amount": request.emd_amount,
        "cotton_value": request.cotton_value,
        "gst_rate": request.gst_rate,
        "zone": request.zone.value,
        "lots": [lot.model_dump(mode="json") for lot in request.lots],
        "calculation_results": results,
        "created_at": "2025-03-01T10:00:00Z",
    }


# ===================
# CREATE TESTS
# ===================

class TestCreate:
    """Tests for create method."""

    def test_create_saves_request_and_results(self, spec_service, mock_supabase, create_request, no_audit):
        """create stores inputs with the calculation snapshot."""
        def echo_insert(data):
            insert = MagicMock()
            insert.execute.return_value = MagicMock(data=[{
                **data,
                "id": "spec-uuid-1",
                "created_at": "2025-03-01T10:00:00Z",
            }])
            return insert

        mock_supabase.table.return_value.insert.side_effect = echo_insert

        spec = spec_service.create(create_request, "user-1")

        inserted = mock_supabase.table.return_value.insert.call_args[0][0]
        assert inserted["user_id"] == "user-1"
        assert inserted["zone"] == "South Zone"
        assert inserted["calculation_results"]["lots"][0]["weight_difference"] == 130800.0
        assert spec.id == "spec-uuid-1"
        assert spec.calculation_results.summary.total_weight_difference == 130800.0

        no_audit.record.assert_called_once()
        assert no_audit.record.call_args.kwargs["action"] == "DO_SPECIFICATION_CREATED"

    def test_invalid_lot_saves_nothing(self, spec_service, mock_supabase, create_request):
        """A calculation error happens before any insert."""
        create_request.lots[1].delivery_dates = []

        with pytest.raises(InvalidLotInputError) as exc_info:
            spec_service.create(create_request, "user-1")

        assert exc_info.value.lot_index == 2
        mock_supabase.table.return_value.insert.assert_not_called()

    def test_insert_failure_raises_database_error(self, spec_service, mock_supabase, create_request, no_audit):
        """Insert errors surface as DatabaseError and nothing is audited."""
        mock_supabase.table.return_value.insert.return_value.execute.side_effect = Exception("insert failed")

        with pytest.raises(DatabaseError):
            spec_service.create(create_request, "user-1")

        no_audit.record.assert_not_called()


# ===================
# READ TESTS
# ===================

class TestGetAll:
    """Tests for get_all method."""

    def test_get_all_paginates_newest_first(self, spec_service, mock_supabase, create_request):
        """get_all filters by user and requests the right range."""
        results = spec_service.calculate(create_request).model_dump(mode="json")
        query = mock_supabase.table.return_value.select.return_value.eq.return_value.order.return_value
        query.range.return_value.execute.return_value = MagicMock(
            data=[_stored_row(create_request, results)],
            count=25
        )

        specs, total = spec_service.get_all("user-1", page=2, page_size=10)

        mock_supabase.table.return_value.select.return_value.eq.assert_called_with("user_id", "user-1")
        mock_supabase.table.return_value.select.return_value.eq.return_value.order.assert_called_with(
            "created_at", desc=True
        )
        query.range.assert_called_with(10, 19)
        assert total == 25
        assert specs[0].zone == Zone.SOUTH

    def test_get_all_failure(self, spec_service, mock_supabase):
        """Query errors surface as DatabaseError."""
        mock_supabase.table.return_value.select.side_effect = Exception("down")

        with pytest.raises(DatabaseError):
            spec_service.get_all("user-1")


class TestGetById:
    """Tests for get_by_id method."""

    def test_get_by_id_returns_spec(self, spec_service, mock_supabase, create_request):
        """Stored results are returned as saved, with the customer join."""
        results = spec_service.calculate(create_request).model_dump(mode="json")
        row = {**_stored_row(create_request, results), "customer": {"company_name": "Sri Lakshmi"}}
        mock_supabase.table.return_value.select.return_value.eq.return_value.eq.return_value.single.return_value.execute.return_value = MagicMock(
            data=row
        )

        spec = spec_service.get_by_id("spec-uuid-1", "user-1")

        mock_supabase.table.return_value.select.assert_called_with(CUSTOMER_SELECT)
        assert spec.customer["company_name"] == "Sri Lakshmi"
        assert spec.calculation_results.lots[0].weight_difference == 130800.0

    def test_get_by_id_not_found(self, spec_service, mock_supabase):
        """Missing row raises DOSpecificationNotFoundError."""
        mock_supabase.table.return_value.select.return_value.eq.return_value.eq.return_value.single.return_value.execute.side_effect = Exception(
            "JSON object requested, multiple (or no) rows returned: 0 rows"
        )

        with pytest.raises(DOSpecificationNotFoundError):
            spec_service.get_by_id("missing", "user-1")


class TestGetHistory:
    """Tests for get_history method."""

    def test_history_filters(self, spec_service, mock_supabase):
        """Date range and zone filters are applied."""
        base = mock_supabase.table.return_value.select.return_value.eq.return_value
        base.gte.return_value.lte.return_value.eq.return_value.order.return_value.execute.return_value = MagicMock(
            data=[]
        )

        history = spec_service.get_history(
            "user-1",
            start_date=date(2025, 1, 1),
            end_date=date(2025, 3, 31),
            zone=Zone.OTHER,
        )

        base.gte.assert_called_with("created_at", "2025-01-01")
        base.gte.return_value.lte.assert_called_with("created_at", "2025-03-31")
        base.gte.return_value.lte.return_value.eq.assert_called_with("zone", "Other Zone")
        assert history == []


class TestSingleton:
    """Tests for get_do_specification_service."""

    def test_same_instance(self, mock_supabase):
        """get_do_specification_service returns the same instance."""
        import services.do_specification_service as module
        module._do_specification_service = None

        assert get_do_specification_service() is get_do_specification_service()

        module._do_specification_service = None
