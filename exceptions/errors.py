"""
Custom exception classes for the application.

Every error serializes to the same API envelope via to_dict().
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "DO_SPECIFICATION_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource state (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class InfrastructureError(AppError):
    """Backing store or platform unavailable (503). Safe to retry."""

    def __init__(
        self,
        message: str,
        code: str = "INFRASTRUCTURE_ERROR",
        status_code: int = 503,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status_code,
            details=details
        )


class DatabaseError(InfrastructureError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# DO SPECIFICATION ERRORS
# ===================

class InvalidLotInputError(ValidationError):
    """A lot in a DO Specification request is malformed or incomplete."""

    def __init__(self, lot_index: int, reason: str, field: Optional[str] = None):
        details = {"lot_index": lot_index, "reason": reason}
        if field:
            details["field"] = field
        super().__init__(
            code="INVALID_LOT_INPUT",
            message=f"Lot {lot_index}: {reason}",
            details=details
        )
        self.lot_index = lot_index


class InvalidZoneError(ValidationError):
    """Zone is not one of the recognised zones."""

    def __init__(self, zone: str, valid: list[str]):
        super().__init__(
            code="INVALID_ZONE",
            message='Zone must be either "South Zone" or "Other Zone"',
            details={"provided": zone, "valid": valid}
        )


class DOSpecificationNotFoundError(NotFoundError):
    """DO Specification not found (or not owned by the caller)."""

    def __init__(self, specification_id: str):
        super().__init__(
            resource="DO Specification",
            identifier=specification_id,
            code="DO_SPECIFICATION_NOT_FOUND"
        )


# ===================
# SALES ERRORS
# ===================

class SalesConfigurationNotFoundError(NotFoundError):
    """Sales configuration not found."""

    def __init__(self, sales_config_id: str):
        super().__init__(
            resource="Sales configuration",
            identifier=sales_config_id,
            code="SALES_CONFIGURATION_NOT_FOUND"
        )


class SalesRecordNotFoundError(NotFoundError):
    """Sales record not found."""

    def __init__(self, sales_id: str):
        super().__init__(
            resource="Sales record",
            identifier=sales_id,
            code="SALES_RECORD_NOT_FOUND"
        )


class CustomerNotFoundError(NotFoundError):
    """Customer not found in customer_info."""

    def __init__(self, customer_id: str):
        super().__init__(
            resource="Customer",
            identifier=customer_id,
            code="CUSTOMER_NOT_FOUND"
        )


class BrokerNotFoundError(NotFoundError):
    """Broker not found in broker_info."""

    def __init__(self, broker_id: str):
        super().__init__(
            resource="Broker",
            identifier=broker_id,
            code="BROKER_NOT_FOUND"
        )


class InsufficientLotSelectionError(ValidationError):
    """Manual selection has fewer lots than the configuration requires."""

    def __init__(self, required: int, selected: int):
        super().__init__(
            code="INSUFFICIENT_LOT_SELECTION",
            message=f"Please select at least {required} lots. Currently selected: {selected}",
            details={"required_minimum": required, "selected": selected}
        )


class LotSelectionConflictError(ConflictError):
    """Some selected lots were taken by another order before commit."""

    def __init__(self, unavailable_ids: list[str], expected_status: str):
        super().__init__(
            code="LOT_SELECTION_CONFLICT",
            message=f"{len(unavailable_ids)} selected lots are no longer {expected_status}; reselect and retry",
            details={
                "unavailable_lot_ids": unavailable_ids,
                "expected_status": expected_status
            }
        )
        self.unavailable_ids = unavailable_ids


# ===================
# INTEGRATION ERRORS
# ===================

class WebhookError(ExternalServiceError):
    """Workflow webhook call failed."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="webhook",
            message=message,
            details=details
        )
