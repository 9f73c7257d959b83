"""
DO Specification persistence: calculate, save and read back settlements.

Results are stored as an immutable snapshot next to the request that
produced them; they are never recomputed on read.
"""

from datetime import date
from typing import Optional
import structlog

from config import get_supabase_client
from models.do_specification import (
    CalculationResults,
    DOSpecificationCalculate,
    DOSpecificationCreate,
    DOSpecificationHistoryItem,
    DOSpecificationResponse,
    Zone,
)
from services.do_spec_calculator import get_do_spec_calculator
from services.audit_service import get_audit_service
from exceptions import (
    AppError,
    DatabaseError,
    DOSpecificationNotFoundError,
)

logger = structlog.get_logger(__name__)


CUSTOMER_SELECT = """
    *,
    customer:customer_id (
        first_name,
        last_name,
        email,
        company_name
    )
"""

HISTORY_COLUMNS = "id, created_at, total_lots, bid_price, cotton_value, zone, calculation_results"


class DOSpecificationService:
    """
    DO Specification business logic.

    Delegates the math to DOSpecCalculator and handles storage.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.calculator = get_do_spec_calculator()
        self.table = "do_specifications"

    # ===================
    # CALCULATE
    # ===================

    def calculate(self, data: DOSpecificationCalculate) -> CalculationResults:
        """Run the calculation without saving it."""
        return self.calculator.calculate_request(data)

    # ===================
    # CREATE
    # ===================

    def create(self, data: DOSpecificationCreate, user_id: str) -> DOSpecificationResponse:
        """
        Calculate and save a DO Specification.

        Args:
            data: Validated request
            user_id: Acting user

        Returns:
            Saved DOSpecificationResponse with calculation_results

        Raises:
            ValidationError: Bad input, nothing is saved
            DatabaseError: If insert fails
        """
        logger.info(
            "creating_do_specification",
            customer_id=data.customer_id,
            lot_count=len(data.lots),
            zone=data.zone.value
        )

        results = self.calculator.calculate_request(data)

        try:
            insert_data = {
                "user_id": user_id,
                "customer_id": data.customer_id,
                "total_lots": data.total_lots,
                "bid_price": data.bid_price,
                "emd_amount": data.emd_amount,
                "cotton_value": data.cotton_value,
                "gst_rate": data.gst_rate,
                "zone": data.zone.value,
                "lots": [lot.model_dump(mode="json") for lot in data.lots],
                "calculation_results": results.model_dump(mode="json"),
            }

            result = (
                self.db.table(self.table)
                .insert(insert_data)
                .execute()
            )

            row = {**result.data[0], "calculation_results": results}
            specification = DOSpecificationResponse(**row)

        except Exception as e:
            logger.error(
                "create_do_specification_failed",
                customer_id=data.customer_id,
                error=str(e)
            )
            raise DatabaseError("insert", str(e))

        get_audit_service().record(
            table_name=self.table,
            record_id=specification.id,
            action="DO_SPECIFICATION_CREATED",
            user_id=user_id,
            new_values=results.summary.model_dump(),
        )

        logger.info(
            "do_specification_created",
            specification_id=specification.id,
            total_late_lifting_charges=results.summary.total_late_lifting_charges
        )

        return specification

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(
        self,
        user_id: str,
        page: int = 1,
        page_size: int = 10,
    ) -> tuple[list[DOSpecificationResponse], int]:
        """
        Get the user's DO Specifications, newest first.

        Returns:
            Tuple of (specifications list, total count)
        """
        logger.info(
            "getting_do_specifications",
            user_id=user_id,
            page=page,
            page_size=page_size
        )

        try:
            offset = (page - 1) * page_size

            result = (
                self.db.table(self.table)
                .select("*", count="exact")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .range(offset, offset + page_size - 1)
                .execute()
            )

            specifications = [DOSpecificationResponse(**row) for row in result.data]
            total = result.count or 0

            return specifications, total

        except Exception as e:
            logger.error("get_do_specifications_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_id(self, specification_id: str, user_id: str) -> DOSpecificationResponse:
        """
        Get one DO Specification with customer details.

        Raises:
            DOSpecificationNotFoundError: Missing or owned by another user
        """
        logger.debug("getting_do_specification", specification_id=specification_id)

        try:
            result = (
                self.db.table(self.table)
                .select(CUSTOMER_SELECT)
                .eq("id", specification_id)
                .eq("user_id", user_id)
                .single()
                .execute()
            )

            if not result.data:
                raise DOSpecificationNotFoundError(specification_id)

            return DOSpecificationResponse(**result.data)

        except AppError:
            raise
        except Exception as e:
            logger.error(
                "get_do_specification_failed",
                specification_id=specification_id,
                error=str(e)
            )
            if "0 rows" in str(e) or "no rows" in str(e).lower():
                raise DOSpecificationNotFoundError(specification_id)
            raise DatabaseError("select", str(e))

    def get_history(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        zone: Optional[Zone] = None,
    ) -> list[DOSpecificationHistoryItem]:
        """
        Get a compact history of the user's DO Specifications.

        Args:
            user_id: Owner
            start_date: Created on or after
            end_date: Created on or before
            zone: Only this zone

        Returns:
            History rows, newest first
        """
        try:
            query = (
                self.db.table(self.table)
                .select(HISTORY_COLUMNS)
                .eq("user_id", user_id)
            )

            if start_date:
                query = query.gte("created_at", start_date.isoformat())
            if end_date:
                query = query.lte("created_at", end_date.isoformat())
            if zone:
                query = query.eq("zone", zone.value)

            result = query.order("created_at", desc=True).execute()

            return [DOSpecificationHistoryItem(**row) for row in result.data or []]

        except Exception as e:
            logger.error("get_do_specification_history_failed", error=str(e))
            raise DatabaseError("select", str(e))


# Singleton instance for convenience
_do_specification_service: Optional[DOSpecificationService] = None


def get_do_specification_service() -> DOSpecificationService:
    """Get or create DOSpecificationService instance."""
    global _do_specification_service
    if _do_specification_service is None:
        _do_specification_service = DOSpecificationService()
    return _do_specification_service
