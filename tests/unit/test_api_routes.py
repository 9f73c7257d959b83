"""
API tests for the DO Specifications and sales routes.

Services are replaced with mocks; these tests cover request parsing,
the X-User-Id requirement and the error envelope.
"""

import pytest
from unittest.mock import MagicMock, patch

from services.do_spec_calculator import DOSpecCalculator
from models.sales import AllocationResult, InventoryLot, SalesConfiguration, SelectionLimits
from exceptions import (
    CustomerNotFoundError,
    InsufficientLotSelectionError,
    LotSelectionConflictError,
    SalesRecordNotFoundError,
)
from tests.factories import InventoryLotFactory, LotInputFactory, SalesConfigurationFactory


HEADERS = {"X-User-Id": "user-1"}


def _calculate_body(lots=None) -> dict:
    return {
        "bid_price": 50000,
        "cotton_value": 100000,
        "gst_rate": 0.18,
        "zone": "South Zone",
        "lots": lots or [LotInputFactory.create(actual_weight=180)],
    }


# ===================
# FIXTURES
# ===================

@pytest.fixture
def spec_service():
    """Mock DOSpecificationService with the real calculator behind calculate."""
    service = MagicMock()
    service.calculate.side_effect = DOSpecCalculator().calculate_request
    with patch("routes.do_specifications.get_do_specification_service", return_value=service):
        yield service


@pytest.fixture
def sales_service():
    """Mock SalesService."""
    service = MagicMock()
    with patch("routes.sales.get_sales_service", return_value=service):
        yield service


# ===================
# APP TESTS
# ===================

class TestApp:
    """Tests for root endpoints."""

    def test_root_lists_endpoints(self, test_client):
        """Root returns API information."""
        response = test_client.get("/")

        assert response.status_code == 200
        assert response.json()["endpoints"]["sales"] == "/api/sales"


# ===================
# DO SPECIFICATION ROUTES
# ===================

class TestCalculateRoute:
    """Tests for POST /api/do-specifications/calculate."""

    def test_calculate(self, test_client, spec_service):
        """Results are computed and returned."""
        response = test_client.post("/api/do-specifications/calculate", json=_calculate_body(), headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["lots"][0]["weight_difference"] == 130800.0
        assert body["lots"][0]["weight_case"] == "customer_pays_us"

    def test_missing_user_header(self, test_client, spec_service):
        """Requests without X-User-Id are rejected."""
        response = test_client.post("/api/do-specifications/calculate", json=_calculate_body())

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHENTICATED"

    def test_malformed_lot_names_index(self, test_client, spec_service):
        """Schema errors inside lots[i] name the 1-based lot."""
        bad = LotInputFactory.create()
        bad["actual_weight"] = "heavy"

        response = test_client.post(
            "/api/do-specifications/calculate",
            json=_calculate_body([LotInputFactory.create(), bad]),
            headers=HEADERS,
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]["lot_index"] == 2
        assert error["message"].startswith("Lot 2:")

    def test_lot_without_deliveries_names_index(self, test_client, spec_service):
        """Business validation errors use the same envelope."""
        bad = LotInputFactory.create()
        bad["delivery_dates"] = []

        response = test_client.post(
            "/api/do-specifications/calculate",
            json=_calculate_body([bad]),
            headers=HEADERS,
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "INVALID_LOT_INPUT"
        assert error["details"]["lot_index"] == 1

    def test_unknown_zone(self, test_client, spec_service):
        """Zones outside the enum are rejected."""
        body = _calculate_body()
        body["zone"] = "North Zone"

        response = test_client.post("/api/do-specifications/calculate", json=body, headers=HEADERS)

        assert response.status_code == 422


class TestListRoute:
    """Tests for GET /api/do-specifications."""

    def test_list_paginates(self, test_client, spec_service):
        """Pagination metadata is computed from the total."""
        spec_service.get_all.return_value = ([], 25)

        response = test_client.get("/api/do-specifications?page=2&page_size=10", headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 25
        assert body["total_pages"] == 3
        assert body["has_next"] is True
        assert body["has_previous"] is True
        spec_service.get_all.assert_called_once_with("user-1", page=2, page_size=10)

    def test_history(self, test_client, spec_service):
        """History passes filters to the service."""
        spec_service.get_history.return_value = []

        response = test_client.get(
            "/api/do-specifications/history?zone=Other%20Zone&start_date=2025-01-01",
            headers=HEADERS,
        )

        assert response.status_code == 200
        assert response.json() == {"history": [], "total_records": 0}
        kwargs = spec_service.get_history.call_args.kwargs
        assert kwargs["zone"].value == "Other Zone"
        assert kwargs["start_date"].isoformat() == "2025-01-01"


# ===================
# SALES ROUTES
# ===================

class TestSalesRoutes:
    """Tests for /api/sales."""

    def test_auto_select(self, test_client, sales_service):
        """Allocation result is returned as-is."""
        lots = [InventoryLot(**row) for row in InventoryLotFactory.create_batch(2)]
        sales_service.auto_select_lots.return_value = {
            **AllocationResult(
                available_lots=lots,
                auto_selected=lots,
                selection_limits=SelectionLimits(
                    requested=2, required_bales=2, max_allowed=2, extra_percentage=20,
                    auto_selected_count=2,
                ),
                total_value=100000,
                priority_branch_used=True,
            ).model_dump(),
            "sales_config": SalesConfigurationFactory.create(),
        }

        response = test_client.post(
            "/api/sales/auto-select-lots",
            json={"sales_config_id": "config-uuid-1", "requested_qty": 2},
            headers=HEADERS,
        )

        assert response.status_code == 200
        assert len(response.json()["auto_selected"]) == 2
        sales_service.auto_select_lots.assert_called_once_with("config-uuid-1", 2)

    def test_auto_select_rejects_zero(self, test_client, sales_service):
        """requested_qty must be at least 1."""
        response = test_client.post(
            "/api/sales/auto-select-lots",
            json={"sales_config_id": "config-uuid-1", "requested_qty": 0},
            headers=HEADERS,
        )

        assert response.status_code == 422
        sales_service.auto_select_lots.assert_not_called()

    def test_manual_selection_insufficient(self, test_client, sales_service):
        """Too few lots is a 422 with the counts."""
        sales_service.validate_manual_selection.side_effect = InsufficientLotSelectionError(5, 2)

        response = test_client.post(
            "/api/sales/manual-lot-selection",
            json={"sales_config_id": "config-uuid-1", "selected_lots": ["a", "b"]},
            headers=HEADERS,
        )

        assert response.status_code == 422
        assert response.json()["error"]["details"] == {"required_minimum": 5, "selected": 2}

    def test_save_draft_conflict(self, test_client, sales_service):
        """A reservation conflict is a 409 listing the taken lots."""
        sales_service.save_draft.side_effect = LotSelectionConflictError(["lot-2"], "AVAILABLE")

        response = test_client.post(
            "/api/sales/save-draft",
            json={"sales_config_id": "config-uuid-1", "selected_lots": ["lot-1", "lot-2"]},
            headers=HEADERS,
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "LOT_SELECTION_CONFLICT"
        sales_service.save_draft.assert_called_once_with("config-uuid-1", ["lot-1", "lot-2"], "user-1", None)

    def test_get_sales_record_not_found(self, test_client, sales_service):
        """Unknown sales id is a 404."""
        sales_service.get_sales_record.side_effect = SalesRecordNotFoundError("nope")

        response = test_client.get("/api/sales/nope", headers=HEADERS)

        assert response.status_code == 404


# ===================
# ORDER ROUTE TESTS
# ===================

class TestOrderRoutes:
    """Order entry and lookup endpoints."""

    def test_pending_orders(self, test_client, sales_service):
        """Pending orders resolve before the sales id route."""
        sales_service.get_pending_orders.return_value = [
            SalesConfiguration(**SalesConfigurationFactory.create())
        ]

        response = test_client.get("/api/sales/pending-orders", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["count"] == 1
        assert response.json()["orders"][0]["id"] == "config-uuid-1"
        sales_service.get_sales_record.assert_not_called()

    def test_create_order(self, test_client, sales_service):
        """New order is a 201 with the created configuration."""
        sales_service.create_order.return_value = SalesConfiguration(
            **SalesConfigurationFactory.create(id="config-uuid-9")
        )

        response = test_client.post(
            "/api/sales/new",
            json={
                "customer_id": "customer-uuid-1",
                "broker_id": "broker-uuid-1",
                "requested_quantity": 4,
                "lifting_period": "30 days",
                "line_items": [{"indent_number": "IND-001", "quantity": 4, "commission_rate": 1.5}],
            },
            headers=HEADERS,
        )

        assert response.status_code == 201
        assert response.json()["id"] == "config-uuid-9"
        order, user_id = sales_service.create_order.call_args[0]
        assert user_id == "user-1"
        assert order.line_items[0].indent_number == "IND-001"

    def test_create_order_without_line_items(self, test_client, sales_service):
        response = test_client.post(
            "/api/sales/new",
            json={
                "customer_id": "customer-uuid-1",
                "broker_id": "broker-uuid-1",
                "requested_quantity": 4,
                "lifting_period": "30 days",
                "line_items": [],
            },
            headers=HEADERS,
        )

        assert response.status_code == 422
        sales_service.create_order.assert_not_called()

    def test_create_order_unknown_customer(self, test_client, sales_service):
        sales_service.create_order.side_effect = CustomerNotFoundError("ghost")

        response = test_client.post(
            "/api/sales/new",
            json={
                "customer_id": "ghost",
                "broker_id": "broker-uuid-1",
                "requested_quantity": 4,
                "lifting_period": "30 days",
                "line_items": [{"indent_number": "IND-001", "quantity": 4, "commission_rate": 1.5}],
            },
            headers=HEADERS,
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "CUSTOMER_NOT_FOUND"

    def test_customer_and_broker_lists(self, test_client, sales_service):
        sales_service.list_customers.return_value = [{"id": "c-1", "customer_name": "Sri Lakshmi Spinning Mills"}]
        sales_service.list_brokers.return_value = [{"id": "b-1", "broker_name": "R. Rao"}]

        customers = test_client.get("/api/sales/customer-info", headers=HEADERS)
        brokers = test_client.get("/api/sales/broker-info", headers=HEADERS)

        assert customers.json()["customers"][0]["customer_name"] == "Sri Lakshmi Spinning Mills"
        assert brokers.json()["brokers"][0]["broker_name"] == "R. Rao"
