"""
Sales processing service.

Flow for one sales configuration:
0. create_order()                pending configuration from customer, broker, indents
1. auto_select_lots()            propose lots (LotAllocator, read only)
2. validate_manual_selection()   optional manual override
3. save_draft()                  reserve lots AVAILABLE -> BLOCKED, DRAFT record
4. confirm()                     BLOCKED -> SOLD, CONFIRMED record, n8n webhook

Reservation is a conditional update; if another order took any selected lot
in the meantime the whole reservation is undone and LotSelectionConflictError
tells the caller to reselect.
"""

from datetime import datetime
from typing import Optional
import structlog

from config import get_supabase_client
from models.sales import (
    AutoSelectResponse,
    CommitResult,
    InventoryLot,
    LotStatus,
    ManualSelectionResponse,
    SalesConfiguration,
    SalesConfirmResponse,
    SalesOrderCreate,
    SalesRecordResponse,
    SalesStatus,
)
from services.inventory_lot_service import get_inventory_lot_service
from services.lot_allocator import get_lot_allocator
from services.audit_service import get_audit_service
from integrations.webhook import (
    notify_sales_confirmed,
    notify_sales_draft,
    notify_sales_order_created,
)
from exceptions import (
    AppError,
    BrokerNotFoundError,
    CustomerNotFoundError,
    DatabaseError,
    InsufficientLotSelectionError,
    LotSelectionConflictError,
    SalesConfigurationNotFoundError,
    SalesRecordNotFoundError,
    ValidationError,
    WebhookError,
)

logger = structlog.get_logger(__name__)


CONFIG_SELECT = """
    *,
    customer_info:customer_id (*),
    broker_info:broker_id (*)
"""

PENDING_SELECT = CONFIG_SELECT + """,
    created_user:created_by (first_name, last_name)
"""


def _now() -> str:
    return datetime.utcnow().isoformat()


def _unique(ids: list[str]) -> list[str]:
    """De-duplicate while keeping order."""
    return list(dict.fromkeys(ids))


class SalesService:
    """
    Sales order business logic.

    Handles lot selection, reservation, drafts and confirmation.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.inventory = get_inventory_lot_service()
        self.allocator = get_lot_allocator()
        self.config_table = "sales_configuration"
        self.sales_table = "sales_table"
        self.selections_table = "lot_selected_contract"
        self.allocation_table = "allocation"
        self.procurement_table = "procurement_dump"

    # ===================
    # CONFIGURATION
    # ===================

    def get_configuration(self, sales_config_id: str) -> SalesConfiguration:
        """
        Get a sales configuration with customer and broker info.

        Raises:
            SalesConfigurationNotFoundError: If it doesn't exist
        """
        logger.debug("getting_sales_configuration", sales_config_id=sales_config_id)

        try:
            result = (
                self.db.table(self.config_table)
                .select(CONFIG_SELECT)
                .eq("id", sales_config_id)
                .single()
                .execute()
            )

            if not result.data:
                raise SalesConfigurationNotFoundError(sales_config_id)

            return SalesConfiguration(**result.data)

        except AppError:
            raise
        except Exception as e:
            logger.error(
                "get_sales_configuration_failed",
                sales_config_id=sales_config_id,
                error=str(e)
            )
            if "0 rows" in str(e) or "no rows" in str(e).lower():
                raise SalesConfigurationNotFoundError(sales_config_id)
            raise DatabaseError("select", str(e))

    def _set_configuration_status(self, sales_config_id: str, status: str) -> None:
        try:
            (
                self.db.table(self.config_table)
                .update({"status": status, "updated_at": _now()})
                .eq("id", sales_config_id)
                .execute()
            )
        except Exception as e:
            logger.error(
                "update_sales_configuration_status_failed",
                sales_config_id=sales_config_id,
                status=status,
                error=str(e)
            )
            raise DatabaseError("update", str(e))

    # ===================
    # ORDERS
    # ===================

    def get_pending_orders(self) -> list[SalesConfiguration]:
        """Sales configurations not yet completed, newest first."""
        try:
            result = (
                self.db.table(self.config_table)
                .select(PENDING_SELECT)
                .neq("status", "completed")
                .order("created_at", desc=True)
                .execute()
            )
            return [SalesConfiguration(**row) for row in result.data or []]

        except Exception as e:
            logger.error("get_pending_orders_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def _get_party(self, table: str, party_id: str, not_found: type[AppError]) -> dict:
        """Customer or broker row; not_found is raised when it's missing."""
        try:
            result = (
                self.db.table(table)
                .select("*")
                .eq("id", party_id)
                .single()
                .execute()
            )
        except Exception as e:
            logger.error("get_party_failed", table=table, party_id=party_id, error=str(e))
            if "0 rows" in str(e) or "no rows" in str(e).lower():
                raise not_found(party_id)
            raise DatabaseError("select", str(e))

        if not result.data:
            raise not_found(party_id)
        return result.data

    def create_order(self, data: SalesOrderCreate, user_id: str) -> SalesConfiguration:
        """
        Create a sales order (a pending sales configuration).

        Line specs for lot selection are taken from the first indent.

        Raises:
            CustomerNotFoundError: Unknown customer
            BrokerNotFoundError: Unknown broker
            ValidationError: One or more indents don't exist
        """
        customer = self._get_party("customer_info", data.customer_id, CustomerNotFoundError)
        broker = self._get_party("broker_info", data.broker_id, BrokerNotFoundError)

        indent_numbers = _unique([item.indent_number for item in data.line_items])
        try:
            result = (
                self.db.table(self.procurement_table)
                .select("*")
                .in_("indent_number", indent_numbers)
                .execute()
            )
            indents = {row["indent_number"]: row for row in result.data or []}
        except Exception as e:
            logger.error("get_indents_failed", indent_count=len(indent_numbers), error=str(e))
            raise DatabaseError("select", str(e))

        missing = [number for number in indent_numbers if number not in indents]
        if missing:
            raise ValidationError(
                message="One or more indents are invalid",
                code="INVALID_INDENTS",
                details={"indent_numbers": missing}
            )

        first = indents[indent_numbers[0]]
        config_data = {
            "customer_id": data.customer_id,
            "broker_id": data.broker_id,
            "order_date": data.order_date.isoformat(),
            "requested_quantity": data.requested_quantity,
            "lifting_period": data.lifting_period,
            "priority_branch": data.priority_branch,
            "line_specs": {
                "variety": first.get("variety"),
                "fibre_length": first.get("fibre_length"),
            },
            "status": "pending",
            "created_by": user_id,
        }

        logger.info(
            "creating_sales_order",
            customer_id=data.customer_id,
            broker_id=data.broker_id,
            requested_quantity=data.requested_quantity,
            line_items=len(data.line_items)
        )

        try:
            result = self.db.table(self.config_table).insert(config_data).execute()
            config = SalesConfiguration(**result.data[0])
        except Exception as e:
            logger.error("create_sales_order_failed", error=str(e))
            raise DatabaseError("insert", str(e))

        line_items = [item.model_dump() for item in data.line_items]
        audit = get_audit_service()
        audit.record(
            table_name=self.config_table,
            record_id=config.id,
            action="SALES_ORDER_CREATED",
            user_id=user_id,
            new_values={
                "customer_id": data.customer_id,
                "broker_id": data.broker_id,
                "requested_quantity": data.requested_quantity,
                "lifting_period": data.lifting_period,
                "priority_branch": data.priority_branch,
                "line_items": line_items,
            },
        )

        try:
            sent = notify_sales_order_created({
                "sales_config_id": config.id,
                "customer": customer,
                "broker": broker,
                "line_items": line_items,
                "order_date": data.order_date.isoformat(),
                "requested_quantity": data.requested_quantity,
                "lifting_period": data.lifting_period,
                "priority_branch": data.priority_branch,
                "created_by": user_id,
            })
            if sent:
                audit.record(
                    table_name=self.config_table,
                    record_id=config.id,
                    action="CONTRACT_SENT",
                    user_id=user_id,
                    new_values={"customer_id": data.customer_id, "broker_id": data.broker_id},
                )
        except WebhookError as e:
            logger.warning("sales_contract_webhook_failed", sales_config_id=config.id, error=e.message)

        logger.info("sales_order_created", sales_config_id=config.id)

        return config

    def list_customers(self) -> list[dict]:
        """All customers by name."""
        return self._list_parties("customer_info", "customer_name")

    def list_brokers(self) -> list[dict]:
        """All brokers by name."""
        return self._list_parties("broker_info", "broker_name")

    def _list_parties(self, table: str, order_by: str) -> list[dict]:
        try:
            result = self.db.table(table).select("*").order(order_by).execute()
            return result.data or []
        except Exception as e:
            logger.error("list_parties_failed", table=table, error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # SELECTION
    # ===================

    def auto_select_lots(self, sales_config_id: str, requested_qty: int) -> AutoSelectResponse:
        """
        Propose lots for a sales configuration.

        Args:
            sales_config_id: Sales configuration UUID
            requested_qty: Lots requested

        Returns:
            AutoSelectResponse with allocation details attached per lot
        """
        config = self.get_configuration(sales_config_id)
        allocation = self.allocator.auto_select(config, requested_qty)

        details = self._get_allocation_details(allocation.available_lots)

        return AutoSelectResponse(
            sales_config=config,
            available_lots=self._attach_allocation_details(allocation.available_lots, details),
            auto_selected=self._attach_allocation_details(allocation.auto_selected, details),
            selection_limits=allocation.selection_limits,
            total_value=allocation.total_value,
            out_of_stock=allocation.out_of_stock,
            priority_branch_used=allocation.priority_branch_used,
        )

    def _get_allocation_details(self, lots: list[InventoryLot]) -> dict[str, dict]:
        """Allocation rows keyed by indent number. Missing details are not an error."""
        indent_numbers = sorted({lot.indent_number for lot in lots if lot.indent_number})
        if not indent_numbers:
            return {}

        try:
            result = (
                self.db.table(self.allocation_table)
                .select("*")
                .in_("indent_number", indent_numbers)
                .execute()
            )
            return {row["indent_number"]: row for row in result.data or []}

        except Exception as e:
            logger.warning(
                "allocation_details_unavailable",
                indent_count=len(indent_numbers),
                error=str(e)
            )
            return {}

    def _attach_allocation_details(
        self,
        lots: list[InventoryLot],
        details: dict[str, dict],
    ) -> list[InventoryLot]:
        if not details:
            return lots
        return [
            lot.model_copy(update={"allocation_details": details.get(lot.indent_number)})
            for lot in lots
        ]

    def validate_manual_selection(
        self,
        sales_config_id: str,
        lot_ids: list[str],
    ) -> ManualSelectionResponse:
        """
        Check a hand-picked selection against the configuration.

        Only lots still AVAILABLE count toward the minimum.

        Raises:
            InsufficientLotSelectionError: Fewer lots than requested_quantity
        """
        config = self.get_configuration(sales_config_id)
        lots = self.inventory.get_by_ids(_unique(lot_ids), status=LotStatus.AVAILABLE)

        if len(lots) < config.requested_quantity:
            raise InsufficientLotSelectionError(config.requested_quantity, len(lots))

        return ManualSelectionResponse(
            selected_lots=lots,
            total_selected=len(lots),
            required_minimum=config.requested_quantity,
            total_value=sum(lot.bid_price or 0 for lot in lots),
        )

    # ===================
    # COMMIT
    # ===================

    def commit_selection(
        self,
        lot_ids: list[str],
        from_status: LotStatus = LotStatus.AVAILABLE,
        to_status: LotStatus = LotStatus.BLOCKED,
        extra: Optional[dict] = None,
    ) -> CommitResult:
        """
        Move every selected lot, or none of them.

        Raises:
            LotSelectionConflictError: Some lots were no longer in from_status.
                Lots moved by this call are put back first.
        """
        ids = _unique(lot_ids)
        moved = self.inventory.transition_status(ids, from_status, to_status, extra)

        moved_set = set(moved)
        unavailable = [lot_id for lot_id in ids if lot_id not in moved_set]

        if unavailable:
            logger.warning(
                "lot_selection_conflict",
                requested=len(ids),
                unavailable=len(unavailable),
            )
            if moved:
                self.inventory.transition_status(moved, to_status, from_status)
            raise LotSelectionConflictError(unavailable, from_status.value)

        return CommitResult(committed_ids=moved, from_status=from_status, to_status=to_status)

    # ===================
    # DRAFT / CONFIRM
    # ===================

    def get_draft(self, sales_config_id: str) -> Optional[SalesRecordResponse]:
        """Get the DRAFT record for a configuration, if any."""
        try:
            result = (
                self.db.table(self.sales_table)
                .select("*")
                .eq("sales_config_id", sales_config_id)
                .eq("status", SalesStatus.DRAFT.value)
                .limit(1)
                .execute()
            )
            if not result.data:
                return None
            return SalesRecordResponse(**result.data[0])

        except Exception as e:
            logger.error("get_sales_draft_failed", sales_config_id=sales_config_id, error=str(e))
            raise DatabaseError("select", str(e))

    def save_draft(
        self,
        sales_config_id: str,
        lot_ids: list[str],
        user_id: str,
        notes: Optional[str] = None,
    ) -> SalesRecordResponse:
        """
        Reserve the selected lots and create a DRAFT sales record.

        Returns the existing draft unchanged if the configuration has one.

        Raises:
            SalesConfigurationNotFoundError: Unknown configuration
            ValidationError: Unknown lot ids
            LotSelectionConflictError: Lots taken by another order
        """
        existing = self.get_draft(sales_config_id)
        if existing:
            logger.info("sales_draft_exists", sales_id=existing.id)
            return existing

        config = self.get_configuration(sales_config_id)
        ids = _unique(lot_ids)
        lots = self.inventory.get_by_ids(ids)

        found = {lot.id for lot in lots}
        unknown = [lot_id for lot_id in ids if lot_id not in found]
        if unknown:
            raise ValidationError(
                message=f"{len(unknown)} selected lots do not exist",
                code="UNKNOWN_LOTS",
                details={"lot_ids": unknown}
            )

        total_value = sum(lot.bid_price or 0 for lot in lots)
        commission_rate = (config.broker_info or {}).get("commission_rate") or 0
        sales_data = {
            "sales_config_id": sales_config_id,
            "indent_numbers": sorted({lot.indent_number for lot in lots if lot.indent_number}),
            "total_bales": len(lots),
            "total_value": total_value,
            "broker_commission": total_value * commission_rate / 100,
            "status": SalesStatus.DRAFT.value,
            "notes": notes,
            "created_by": user_id,
        }

        logger.info(
            "creating_sales_draft",
            sales_config_id=sales_config_id,
            lot_count=len(lots),
            total_value=total_value
        )

        self.commit_selection(ids, LotStatus.AVAILABLE, LotStatus.BLOCKED, {"updated_at": _now()})

        record: Optional[SalesRecordResponse] = None
        try:
            result = self.db.table(self.sales_table).insert(sales_data).execute()
            record = SalesRecordResponse(**result.data[0])

            self.db.table(self.selections_table).insert([
                {
                    "sales_id": record.id,
                    "inventory_id": lot.id,
                    "lot_number": lot.lot_number,
                    "indent_number": lot.indent_number,
                    "quantity": 1,
                    "price": lot.bid_price or 0,
                    "status": "SELECTED",
                }
                for lot in lots
            ]).execute()

        except Exception as e:
            logger.error(
                "create_sales_draft_failed",
                sales_config_id=sales_config_id,
                error=str(e)
            )
            if record:
                self._discard_draft(record.id)
            self.inventory.transition_status(ids, LotStatus.BLOCKED, LotStatus.AVAILABLE)
            raise DatabaseError("insert", str(e))

        self._set_configuration_status(sales_config_id, "processing")

        get_audit_service().record(
            table_name=self.sales_table,
            record_id=record.id,
            action="SALES_DRAFT_CREATED",
            user_id=user_id,
            new_values={**sales_data, "lots_count": len(lots)},
        )

        try:
            notify_sales_draft({
                "sales_id": record.id,
                "sales_config_id": sales_config_id,
                "total_bales": record.total_bales,
                "total_value": record.total_value,
            })
        except WebhookError as e:
            logger.warning("sales_draft_webhook_failed", sales_id=record.id, error=e.message)

        logger.info("sales_draft_created", sales_id=record.id)

        return record

    def _discard_draft(self, sales_id: str) -> None:
        """Remove a half-written draft so it can't be reused later."""
        try:
            self.db.table(self.selections_table).delete().eq("sales_id", sales_id).execute()
            self.db.table(self.sales_table).delete().eq("id", sales_id).execute()
            logger.info("sales_draft_discarded", sales_id=sales_id)
        except Exception as e:
            logger.error("discard_sales_draft_failed", sales_id=sales_id, error=str(e))

    def get_draft_lot_ids(self, sales_id: str) -> list[str]:
        """Inventory ids reserved by a sales record."""
        try:
            result = (
                self.db.table(self.selections_table)
                .select("inventory_id")
                .eq("sales_id", sales_id)
                .execute()
            )
            return _unique([row["inventory_id"] for row in result.data or []])

        except Exception as e:
            logger.error("get_draft_lots_failed", sales_id=sales_id, error=str(e))
            raise DatabaseError("select", str(e))

    def confirm(
        self,
        sales_config_id: str,
        lot_ids: list[str],
        user_id: str,
        notes: Optional[str] = None,
    ) -> SalesConfirmResponse:
        """
        Confirm a sales order: draft first, then mark sold.

        Only the lots reserved by the draft are sold. The record becomes
        CONFIRMED after every one of them has moved BLOCKED -> SOLD.

        Returns:
            SalesConfirmResponse; webhook_sent is False if the workflow
            engine was unreachable or not configured

        Raises:
            ValidationError: lot_ids differ from the existing draft's lots
            LotSelectionConflictError: Some draft lots are no longer BLOCKED
        """
        draft = self.save_draft(sales_config_id, lot_ids, user_id, notes)
        draft_lots = self.get_draft_lot_ids(draft.id)

        if set(_unique(lot_ids)) != set(draft_lots):
            raise ValidationError(
                message="Selected lots do not match the saved draft",
                code="DRAFT_SELECTION_MISMATCH",
                details={"sales_id": draft.id, "draft_lot_ids": draft_lots}
            )

        logger.info("confirming_sales", sales_id=draft.id, lot_count=len(draft_lots))

        self.commit_selection(
            draft_lots,
            LotStatus.BLOCKED,
            LotStatus.SOLD,
            {"sold_at": _now(), "sold_by": user_id},
        )

        try:
            result = (
                self.db.table(self.sales_table)
                .update({
                    "status": SalesStatus.CONFIRMED.value,
                    "confirmed_by": user_id,
                    "confirmed_at": _now(),
                })
                .eq("id", draft.id)
                .execute()
            )
            confirmed = SalesRecordResponse(**result.data[0])

        except Exception as e:
            logger.error("confirm_sales_failed", sales_id=draft.id, error=str(e))
            self.inventory.transition_status(draft_lots, LotStatus.SOLD, LotStatus.BLOCKED)
            raise DatabaseError("update", str(e))

        self._set_configuration_status(sales_config_id, "completed")

        get_audit_service().record(
            table_name=self.sales_table,
            record_id=confirmed.id,
            action="SALES_CONFIRMED",
            user_id=user_id,
            new_values={"status": SalesStatus.CONFIRMED.value, "notes": notes},
        )

        config = self.get_configuration(sales_config_id)
        webhook_sent = False
        try:
            webhook_sent = notify_sales_confirmed({
                "sales_id": confirmed.id,
                "customer": config.customer_info,
                "broker": config.broker_info,
                "total_bales": confirmed.total_bales,
                "total_value": confirmed.total_value,
                "broker_commission": confirmed.broker_commission,
                "confirmed_by": user_id,
                "confirmed_at": confirmed.confirmed_at.isoformat() if confirmed.confirmed_at else None,
                "notes": notes,
            })
        except WebhookError as e:
            logger.warning("sales_confirmation_webhook_failed", sales_id=confirmed.id, error=e.message)

        logger.info("sales_confirmed", sales_id=confirmed.id, webhook_sent=webhook_sent)

        return SalesConfirmResponse(
            sales_record=confirmed,
            status=SalesStatus.CONFIRMED,
            webhook_sent=webhook_sent,
        )

    # ===================
    # READ
    # ===================

    def get_sales_record(self, sales_id: str) -> SalesRecordResponse:
        """
        Get a sales record.

        Raises:
            SalesRecordNotFoundError: If it doesn't exist
        """
        try:
            result = (
                self.db.table(self.sales_table)
                .select("*")
                .eq("id", sales_id)
                .single()
                .execute()
            )

            if not result.data:
                raise SalesRecordNotFoundError(sales_id)

            return SalesRecordResponse(**result.data)

        except AppError:
            raise
        except Exception as e:
            logger.error("get_sales_record_failed", sales_id=sales_id, error=str(e))
            if "0 rows" in str(e) or "no rows" in str(e).lower():
                raise SalesRecordNotFoundError(sales_id)
            raise DatabaseError("select", str(e))


# Singleton instance for convenience
_sales_service: Optional[SalesService] = None


def get_sales_service() -> SalesService:
    """Get or create SalesService instance."""
    global _sales_service
    if _sales_service is None:
        _sales_service = SalesService()
    return _sales_service
