"""
Business logic services.

Each service handles one domain area.
"""

from services.do_spec_calculator import DOSpecCalculator, get_do_spec_calculator
from services.do_specification_service import (
    DOSpecificationService,
    get_do_specification_service,
)
from services.inventory_lot_service import InventoryLotService, get_inventory_lot_service
from services.lot_allocator import LotAllocator, get_lot_allocator
from services.sales_service import SalesService, get_sales_service
from services.audit_service import AuditService, get_audit_service

__all__ = [
    "DOSpecCalculator",
    "get_do_spec_calculator",
    "DOSpecificationService",
    "get_do_specification_service",
    "InventoryLotService",
    "get_inventory_lot_service",
    "LotAllocator",
    "get_lot_allocator",
    "SalesService",
    "get_sales_service",
    "AuditService",
    "get_audit_service",
]
