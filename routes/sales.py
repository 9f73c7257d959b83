"""
Sales processing API routes.

Order entry, lot auto-selection, manual selection, drafts and confirmation.
"""

from fastapi import APIRouter, Depends
import structlog

from models.sales import (
    AutoSelectRequest,
    AutoSelectResponse,
    BrokerListResponse,
    CustomerListResponse,
    ManualSelectionRequest,
    ManualSelectionResponse,
    PendingOrdersResponse,
    SalesConfiguration,
    SalesConfirmResponse,
    SalesOrderCreate,
    SalesRecordResponse,
    SalesSelectionRequest,
)
from services.sales_service import get_sales_service
from routes.dependencies import get_current_user_id, handle_error

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/pending-orders", response_model=PendingOrdersResponse)
async def list_pending_orders(user_id: str = Depends(get_current_user_id)):
    """Sales orders still waiting for lots, newest first."""
    try:
        service = get_sales_service()
        orders = service.get_pending_orders()
        return PendingOrdersResponse(orders=orders, count=len(orders))
    except Exception as e:
        return handle_error(e)


@router.post("/new", response_model=SalesConfiguration, status_code=201)
async def create_sales_order(
    data: SalesOrderCreate,
    user_id: str = Depends(get_current_user_id),
):
    """
    Create a sales order and request its contract.

    Raises:
        404: Customer or broker not found
        422: Unknown indent numbers
    """
    try:
        service = get_sales_service()
        return service.create_order(data, user_id)
    except Exception as e:
        return handle_error(e)


@router.get("/customer-info", response_model=CustomerListResponse)
async def list_customers(user_id: str = Depends(get_current_user_id)):
    try:
        service = get_sales_service()
        return CustomerListResponse(customers=service.list_customers())
    except Exception as e:
        return handle_error(e)


@router.get("/broker-info", response_model=BrokerListResponse)
async def list_brokers(user_id: str = Depends(get_current_user_id)):
    try:
        service = get_sales_service()
        return BrokerListResponse(brokers=service.list_brokers())
    except Exception as e:
        return handle_error(e)


@router.post("/auto-select-lots", response_model=AutoSelectResponse)
async def auto_select_lots(
    data: AutoSelectRequest,
    user_id: str = Depends(get_current_user_id),
):
    """
    Propose lots for a sales configuration.

    Priority branch first, then oldest stock from any branch. Lots are not
    reserved; check out_of_stock before using auto_selected.

    Raises:
        404: Sales configuration not found
        500: Inventory query failed
    """
    try:
        service = get_sales_service()
        return service.auto_select_lots(data.sales_config_id, data.requested_qty)
    except Exception as e:
        return handle_error(e)


@router.post("/manual-lot-selection", response_model=ManualSelectionResponse)
async def manual_lot_selection(
    data: ManualSelectionRequest,
    user_id: str = Depends(get_current_user_id),
):
    """
    Validate a hand-picked selection.

    Raises:
        422: Fewer available lots than the configuration requires
    """
    try:
        service = get_sales_service()
        return service.validate_manual_selection(data.sales_config_id, data.selected_lots)
    except Exception as e:
        return handle_error(e)


@router.post("/save-draft", response_model=SalesRecordResponse)
async def save_draft(
    data: SalesSelectionRequest,
    user_id: str = Depends(get_current_user_id),
):
    """
    Reserve the selected lots and save a DRAFT sales record.

    Raises:
        409: Some lots were taken by another order; reselect
    """
    try:
        service = get_sales_service()
        return service.save_draft(data.sales_config_id, data.selected_lots, user_id, data.notes)
    except Exception as e:
        return handle_error(e)


@router.post("/confirm", response_model=SalesConfirmResponse)
async def confirm_sales(
    data: SalesSelectionRequest,
    user_id: str = Depends(get_current_user_id),
):
    """
    Confirm a sales order and notify the workflow engine.

    Raises:
        409: Some lots were taken by another order; reselect
    """
    try:
        service = get_sales_service()
        return service.confirm(data.sales_config_id, data.selected_lots, user_id, data.notes)
    except Exception as e:
        return handle_error(e)


@router.get("/{sales_id}", response_model=SalesRecordResponse)
async def get_sales_record(
    sales_id: str,
    user_id: str = Depends(get_current_user_id),
):
    """Get a sales record."""
    try:
        service = get_sales_service()
        return service.get_sales_record(sales_id)
    except Exception as e:
        return handle_error(e)
