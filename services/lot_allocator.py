"""
Lot allocator — proposes inventory lots for a sales order.

Algorithm:
1. LIMITS: required = requested lots, max_allowed = required + floor(required * 20%)
2. CANDIDATES: one query for AVAILABLE lots matching the line specs,
   ordered FIFO by (created_at, id)
3. PRIORITY TIER: if the priority branch alone covers the requirement,
   take up to max_allowed lots from it
4. FALLBACK TIER: if all candidates can't cover the requirement, report
   out of stock with an empty selection. Otherwise take the priority branch
   lots first, then fill from other branches FIFO

The allocator only proposes. Reserving the lots (AVAILABLE -> BLOCKED) is a
separate conditional update done by SalesService.commit_selection(); until
then two concurrent orders may be offered the same lots.
"""

from datetime import datetime
from typing import Optional
import structlog

from config import settings
from models.sales import (
    AllocationResult,
    InventoryLot,
    LineSpecs,
    SalesConfiguration,
    SelectionLimits,
)
from services.inventory_lot_service import InventoryLotService, get_inventory_lot_service
from exceptions import ValidationError

logger = structlog.get_logger(__name__)


def calculate_selection_limits(requested_qty: int, surplus_pct: int) -> SelectionLimits:
    """
    Selection bounds for a requested quantity.

    Quantities are already in lots, no bales/tons conversion here.
    """
    required = requested_qty
    extra = (required * surplus_pct) // 100
    return SelectionLimits(
        requested=requested_qty,
        required_bales=required,
        max_allowed=required + extra,
        extra_percentage=surplus_pct,
    )


def fifo_key(lot: InventoryLot) -> tuple[datetime, str]:
    """Oldest stock first; id breaks timestamp ties so ordering is stable."""
    return (lot.created_at, lot.id)


class LotAllocator:
    """Branch-priority, FIFO lot auto-selection."""

    def __init__(
        self,
        inventory: Optional[InventoryLotService] = None,
        surplus_pct: Optional[int] = None,
    ):
        self.inventory = inventory or get_inventory_lot_service()
        self.surplus_pct = (
            surplus_pct if surplus_pct is not None else settings.allocation_surplus_pct
        )

    def auto_select(
        self,
        config: SalesConfiguration,
        requested_qty: int,
    ) -> AllocationResult:
        """
        Propose lots for a sales configuration.

        Args:
            config: Sales configuration (priority branch, line specs)
            requested_qty: Lots requested

        Returns:
            AllocationResult. out_of_stock=True with an empty selection when
            matching stock can't cover the request.

        Raises:
            ValidationError: requested_qty < 1
            DatabaseError: Inventory query failed (nothing is selected)
        """
        if requested_qty < 1:
            raise ValidationError(
                message="Requested quantity must be at least 1 lot",
                details={"requested_qty": requested_qty}
            )

        limits = calculate_selection_limits(requested_qty, self.surplus_pct)
        specs = config.line_specs or LineSpecs()
        priority_branch = config.priority_branch

        logger.info(
            "auto_selecting_lots",
            sales_config_id=config.id,
            required=limits.required_bales,
            max_allowed=limits.max_allowed,
            priority_branch=priority_branch,
        )

        candidates = sorted(
            self.inventory.find_available(
                variety=specs.variety,
                fibre_length=specs.fibre_length,
            ),
            key=fifo_key,
        )

        # Priority tier
        priority_lots: list[InventoryLot] = []
        if priority_branch:
            priority_lots = [lot for lot in candidates if lot.branch == priority_branch]

            if len(priority_lots) >= limits.required_bales:
                selected = priority_lots[:limits.max_allowed]
                logger.info(
                    "lots_selected_from_priority_branch",
                    sales_config_id=config.id,
                    branch=priority_branch,
                    selected=len(selected),
                )
                return self._build_result(candidates, selected, limits, priority_branch_used=True)

        # Fallback tier
        if len(candidates) < limits.required_bales:
            logger.warning(
                "lots_out_of_stock",
                sales_config_id=config.id,
                required=limits.required_bales,
                available=len(candidates),
            )
            return self._build_result(candidates, [], limits, out_of_stock=True)

        if priority_lots:
            others = [lot for lot in candidates if lot.branch != priority_branch]
            needed = max(0, limits.required_bales - len(priority_lots))
            selected = (priority_lots + others[:needed])[:limits.max_allowed]
        else:
            selected = candidates[:limits.max_allowed]

        logger.info(
            "lots_selected_fifo",
            sales_config_id=config.id,
            selected=len(selected),
            from_priority_branch=len(priority_lots),
        )

        return self._build_result(candidates, selected, limits)

    def _build_result(
        self,
        candidates: list[InventoryLot],
        selected: list[InventoryLot],
        limits: SelectionLimits,
        out_of_stock: bool = False,
        priority_branch_used: bool = False,
    ) -> AllocationResult:
        return AllocationResult(
            available_lots=candidates,
            auto_selected=selected,
            selection_limits=limits.model_copy(update={"auto_selected_count": len(selected)}),
            total_value=sum(lot.bid_price or 0 for lot in selected),
            out_of_stock=out_of_stock,
            priority_branch_used=priority_branch_used,
        )


# Singleton instance for convenience
_lot_allocator: Optional[LotAllocator] = None


def get_lot_allocator() -> LotAllocator:
    """Get or create LotAllocator instance."""
    global _lot_allocator
    if _lot_allocator is None:
        _lot_allocator = LotAllocator()
    return _lot_allocator
