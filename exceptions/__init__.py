"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,
    InfrastructureError,
    DatabaseError,

    # DO Specifications
    InvalidLotInputError,
    InvalidZoneError,
    DOSpecificationNotFoundError,

    # Sales
    SalesConfigurationNotFoundError,
    SalesRecordNotFoundError,
    CustomerNotFoundError,
    BrokerNotFoundError,
    InsufficientLotSelectionError,
    LotSelectionConflictError,

    # Integrations
    WebhookError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    "InfrastructureError",
    "DatabaseError",

    # DO Specifications
    "InvalidLotInputError",
    "InvalidZoneError",
    "DOSpecificationNotFoundError",

    # Sales
    "SalesConfigurationNotFoundError",
    "SalesRecordNotFoundError",
    "CustomerNotFoundError",
    "BrokerNotFoundError",
    "InsufficientLotSelectionError",
    "LotSelectionConflictError",

    # Integrations
    "WebhookError",
]
