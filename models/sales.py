"""
Sales processing schemas.

Covers inventory lots offered for sale, the sales configuration that drives
auto-selection, the allocation proposal, and the draft/confirm records.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional, Union
from pydantic import Field

from models.base import BaseSchema


class LotStatus(str, Enum):
    """Inventory lot status. Transitions are owned by the sales flow."""
    AVAILABLE = "AVAILABLE"
    BLOCKED = "BLOCKED"
    SOLD = "SOLD"


class SalesStatus(str, Enum):
    """Sales record status."""
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"


# ===================
# INVENTORY
# ===================

class InventoryLot(BaseSchema):
    """An inventory lot as stored in inventory_table."""

    id: str
    branch: Optional[str] = None
    created_at: datetime
    bid_price: Optional[float] = None
    fibre_length: Optional[Union[float, str]] = None
    variety: Optional[str] = None
    status: LotStatus = LotStatus.AVAILABLE
    lot_number: Optional[str] = None
    indent_number: Optional[str] = None
    branch_information: Optional[dict] = None
    allocation_details: Optional[dict] = None


# ===================
# SALES CONFIGURATION
# ===================

class LineSpecs(BaseSchema):
    """Quality filters applied to candidate lots."""

    variety: Optional[str] = None
    fibre_length: Optional[Union[float, str]] = None


class SalesConfiguration(BaseSchema):
    """A pending sales order awaiting lot selection."""

    id: str
    customer_id: Optional[str] = None
    broker_id: Optional[str] = None
    requested_quantity: int = Field(0, ge=0)
    priority_branch: Optional[str] = None
    line_specs: Optional[LineSpecs] = None
    lifting_period: Optional[str] = None
    order_date: Optional[date] = None
    status: Optional[str] = None
    customer_info: Optional[dict] = None
    broker_info: Optional[dict] = None
    created_by: Optional[str] = None
    created_user: Optional[dict] = None
    created_at: Optional[datetime] = None


class SalesLineItem(BaseSchema):
    """One indent on a new sales order."""

    indent_number: str
    quantity: int = Field(..., ge=1)
    commission_rate: float = Field(..., ge=0)


class SalesOrderCreate(BaseSchema):
    """Body for creating a sales order (sales configuration)."""

    customer_id: str
    broker_id: str
    order_date: date = Field(default_factory=date.today)
    requested_quantity: int = Field(..., ge=1, description="Requested quantity in lots")
    lifting_period: str = Field(..., min_length=1)
    priority_branch: Optional[str] = None
    line_items: list[SalesLineItem] = Field(..., min_length=1)


class PendingOrdersResponse(BaseSchema):
    """Sales configurations not yet completed."""

    orders: list[SalesConfiguration]
    count: int


class CustomerListResponse(BaseSchema):
    """Rows of customer_info."""

    customers: list[dict]


class BrokerListResponse(BaseSchema):
    """Rows of broker_info."""

    brokers: list[dict]


# ===================
# AUTO SELECTION
# ===================

class AutoSelectRequest(BaseSchema):
    """Request body for lot auto-selection."""

    sales_config_id: str
    requested_qty: int = Field(..., ge=1, description="Requested quantity in lots")


class SelectionLimits(BaseSchema):
    """How many lots the selection must and may contain."""

    requested: int
    required_bales: int
    max_allowed: int
    extra_percentage: int
    auto_selected_count: int = 0


class AllocationResult(BaseSchema):
    """Proposed lot selection. Nothing is reserved until commit."""

    available_lots: list[InventoryLot] = []
    auto_selected: list[InventoryLot] = []
    selection_limits: SelectionLimits
    total_value: float = 0
    out_of_stock: bool = False
    priority_branch_used: bool = False


class AutoSelectResponse(AllocationResult):
    """Allocation result with the configuration it was computed for."""

    sales_config: SalesConfiguration


# ===================
# MANUAL SELECTION / COMMIT
# ===================

class ManualSelectionRequest(BaseSchema):
    """Lots chosen by hand from the available list."""

    sales_config_id: str
    selected_lots: list[str] = Field(..., min_length=1)


class ManualSelectionResponse(BaseSchema):
    """Result of validating a manual selection."""

    selected_lots: list[InventoryLot]
    total_selected: int
    required_minimum: int
    total_value: float
    validation_passed: bool = True


class SalesSelectionRequest(BaseSchema):
    """Body for save-draft and confirm."""

    sales_config_id: str
    selected_lots: list[str] = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=500)


class CommitResult(BaseSchema):
    """Lots moved to a new status by a conditional update."""

    committed_ids: list[str]
    from_status: LotStatus
    to_status: LotStatus


class SalesRecordResponse(BaseSchema):
    """Row of sales_table."""

    id: str
    sales_config_id: str
    indent_numbers: list[str] = []
    total_bales: int = 0
    total_value: float = 0
    broker_commission: float = 0
    status: SalesStatus
    notes: Optional[str] = None
    created_by: Optional[str] = None
    confirmed_by: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class SalesConfirmResponse(BaseSchema):
    """Result of confirming a sales order."""

    sales_record: SalesRecordResponse
    status: SalesStatus
    webhook_sent: bool = False
