"""
Inventory lot data access: candidate queries and status transitions on inventory_table.

The allocator only reads through this service. Status changes go through
transition_status(), a conditional update that only touches rows still in
the expected status, so two orders cannot both take the same lot.
"""

from typing import Optional, Union
import structlog

from config import get_supabase_client
from models.sales import InventoryLot, LotStatus
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


LOT_SELECT = """
    *,
    branch_information:branch_id (
        branch_name,
        zone
    )
"""


class InventoryLotService:
    """
    Inventory lot data access.

    Handles candidate queries and conditional status transitions.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "inventory_table"

    # ===================
    # READ OPERATIONS
    # ===================

    def find_available(
        self,
        variety: Optional[str] = None,
        fibre_length: Optional[Union[float, str]] = None,
        branch: Optional[str] = None,
    ) -> list[InventoryLot]:
        """
        Get AVAILABLE lots matching the line specs, oldest first.

        Args:
            variety: Filter by variety
            fibre_length: Filter by fibre length
            branch: Filter by branch

        Returns:
            Lots ordered by created_at ascending

        Raises:
            DatabaseError: If the query fails
        """
        logger.debug(
            "finding_available_lots",
            variety=variety,
            fibre_length=fibre_length,
            branch=branch,
        )

        try:
            query = (
                self.db.table(self.table)
                .select(LOT_SELECT)
                .eq("status", LotStatus.AVAILABLE.value)
            )

            if fibre_length:
                query = query.eq("fibre_length", fibre_length)
            if variety:
                query = query.eq("variety", variety)
            if branch:
                query = query.eq("branch", branch)

            result = query.order("created_at").execute()

            lots = [InventoryLot(**row) for row in result.data or []]

            logger.info("available_lots_retrieved", count=len(lots))

            return lots

        except Exception as e:
            logger.error("find_available_lots_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_ids(
        self,
        lot_ids: list[str],
        status: Optional[LotStatus] = None,
    ) -> list[InventoryLot]:
        """
        Get lots by id, optionally restricted to a status.

        Args:
            lot_ids: Lot UUIDs
            status: Only return lots currently in this status

        Returns:
            Matching lots (missing ids are simply absent)
        """
        if not lot_ids:
            return []

        try:
            query = self.db.table(self.table).select("*").in_("id", lot_ids)
            if status:
                query = query.eq("status", status.value)
            result = query.execute()

            return [InventoryLot(**row) for row in result.data or []]

        except Exception as e:
            logger.error(
                "get_lots_by_ids_failed",
                count=len(lot_ids),
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    # ===================
    # STATUS TRANSITIONS
    # ===================

    def transition_status(
        self,
        lot_ids: list[str],
        from_status: LotStatus,
        to_status: LotStatus,
        extra: Optional[dict] = None,
    ) -> list[str]:
        """
        Move lots from one status to another, only where still in from_status.

        Args:
            lot_ids: Lot UUIDs to move
            from_status: Status the rows must currently have
            to_status: New status
            extra: Additional columns to set (e.g. sold_by)

        Returns:
            Ids of the rows actually updated
        """
        if not lot_ids:
            return []

        logger.info(
            "transitioning_lot_status",
            count=len(lot_ids),
            from_status=from_status.value,
            to_status=to_status.value,
        )

        try:
            result = (
                self.db.table(self.table)
                .update({"status": to_status.value, **(extra or {})})
                .in_("id", lot_ids)
                .eq("status", from_status.value)
                .execute()
            )

            moved = [row["id"] for row in result.data or []]

            logger.info(
                "lot_status_transitioned",
                requested=len(lot_ids),
                moved=len(moved),
                to_status=to_status.value,
            )

            return moved

        except Exception as e:
            logger.error(
                "transition_lot_status_failed",
                count=len(lot_ids),
                to_status=to_status.value,
                error=str(e)
            )
            raise DatabaseError("update", str(e))


# Singleton instance for convenience
_inventory_lot_service: Optional[InventoryLotService] = None


def get_inventory_lot_service() -> InventoryLotService:
    """Get or create InventoryLotService instance."""
    global _inventory_lot_service
    if _inventory_lot_service is None:
        _inventory_lot_service = InventoryLotService()
    return _inventory_lot_service
