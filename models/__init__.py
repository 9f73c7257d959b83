"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
    PaginatedResponse
)
from models.do_specification import (
    Zone,
    WeightCase,
    DOPaymentInstallment,
    DeliveryEvent,
    LotInput,
    DOSpecificationCalculate,
    DOSpecificationCreate,
    LateLiftingBreakdownRow,
    LotResult,
    DOSpecSummary,
    CalculationResults,
    DOSpecificationResponse,
    DOSpecificationListResponse,
    DOSpecificationHistoryItem,
    DOSpecificationHistoryResponse,
)
from models.sales import (
    LotStatus,
    SalesStatus,
    InventoryLot,
    LineSpecs,
    SalesConfiguration,
    SalesLineItem,
    SalesOrderCreate,
    PendingOrdersResponse,
    CustomerListResponse,
    BrokerListResponse,
    AutoSelectRequest,
    SelectionLimits,
    AllocationResult,
    AutoSelectResponse,
    ManualSelectionRequest,
    ManualSelectionResponse,
    SalesSelectionRequest,
    CommitResult,
    SalesRecordResponse,
    SalesConfirmResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",
    "PaginatedResponse",

    # DO Specifications
    "Zone",
    "WeightCase",
    "DOPaymentInstallment",
    "DeliveryEvent",
    "LotInput",
    "DOSpecificationCalculate",
    "DOSpecificationCreate",
    "LateLiftingBreakdownRow",
    "LotResult",
    "DOSpecSummary",
    "CalculationResults",
    "DOSpecificationResponse",
    "DOSpecificationListResponse",
    "DOSpecificationHistoryItem",
    "DOSpecificationHistoryResponse",

    # Sales
    "LotStatus",
    "SalesStatus",
    "InventoryLot",
    "LineSpecs",
    "SalesConfiguration",
    "SalesLineItem",
    "SalesOrderCreate",
    "PendingOrdersResponse",
    "CustomerListResponse",
    "BrokerListResponse",
    "AutoSelectRequest",
    "SelectionLimits",
    "AllocationResult",
    "AutoSelectResponse",
    "ManualSelectionRequest",
    "ManualSelectionResponse",
    "SalesSelectionRequest",
    "CommitResult",
    "SalesRecordResponse",
    "SalesConfirmResponse",
]
