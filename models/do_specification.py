"""
DO Specification schemas.

A DO (delivery order) specification settles a customer's lots after lifting:
weight difference against the zone's assumed weight, interest on DO payments
made after the EMD, and late-lifting charges for slow deliveries.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from pydantic import Field, field_validator

from models.base import BaseSchema, TimestampMixin


class Zone(str, Enum):
    """Procurement zones. Drives the assumed weight of a lot."""
    SOUTH = "South Zone"
    OTHER = "Other Zone"


class WeightCase(str, Enum):
    """Who pays whom for the weight difference."""
    CUSTOMER_PAYS_US = "customer_pays_us"
    WE_PAY_CUSTOMER = "we_pay_customer"
    NO_DIFFERENCE = "no_difference"


# ===================
# REQUEST SCHEMAS
# ===================

def _coerce_date(v):
    """
    Accept plain dates and ISO datetimes (the UI sometimes sends timestamps).

    Timestamps are cut to the calendar date they carry, offset included, so
    day counts ignore the time of day: 23:59 and 00:01 the next morning are
    one day apart.
    """
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, str) and "T" in v:
        return datetime.fromisoformat(v.replace("Z", "+00:00")).date()
    return v


class DOPaymentInstallment(BaseSchema):
    """One tranche of DO payment for a lot."""

    date: date
    amount: float = Field(..., ge=0, description="Amount paid in this tranche")

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v):
        """Parse date from string or datetime."""
        return _coerce_date(v)


class DeliveryEvent(BaseSchema):
    """A partial delivery (lifting) of a lot."""

    date: date
    lots: int = Field(..., ge=1, description="Number of lots lifted")
    additional_carrying_days: int = Field(
        ...,
        ge=0,
        description="Pre-agreed extra carrying days added to this delivery"
    )

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v):
        """Parse date from string or datetime."""
        return _coerce_date(v)


class LotInput(BaseSchema):
    """One lot under the customer's delivery order."""

    emd_paid_date: date
    do_payment_dates: list[DOPaymentInstallment] = Field(
        default_factory=list,
        description="DO payment installments, in input order"
    )
    moisture_percentage: float = Field(..., ge=0, le=100)
    actual_weight: float = Field(..., ge=0, description="Measured weight (kg)")
    delivery_dates: list[DeliveryEvent] = Field(default_factory=list)

    # Accepted and persisted for the UI; not used by the calculation
    carrying_days: list[int] = Field(default_factory=list)
    unlifted_lots: list[int] = Field(default_factory=list)

    @field_validator("emd_paid_date", mode="before")
    @classmethod
    def parse_date(cls, v):
        """Parse date from string or datetime."""
        return _coerce_date(v)


class DOSpecificationCalculate(BaseSchema):
    """Inputs needed to run the calculation without saving it."""

    bid_price: float = Field(..., ge=0)
    cotton_value: float = Field(..., ge=0)
    gst_rate: float = Field(
        ...,
        ge=0,
        le=100,
        description="GST multiplier applied to late-lifting charges (0.18 = 18%)"
    )
    zone: Zone
    lots: list[LotInput] = Field(..., min_length=1)


class DOSpecificationCreate(DOSpecificationCalculate):
    """Schema for saving a DO Specification."""

    customer_id: str = Field(..., description="Customer UUID")
    total_lots: int = Field(..., ge=1)
    emd_amount: float = Field(..., ge=0)


# ===================
# RESULT SCHEMAS
# ===================

class LateLiftingBreakdownRow(BaseSchema):
    """Charge detail for one delivery event."""

    delivery_date: date
    lots: int
    additional_carrying_days: int
    total_carrying_days: int
    rate: float
    rate_label: str
    base_charge: float
    gst: float
    total_charge: float


class LotResult(BaseSchema):
    """Calculation result for a single lot."""

    lot_index: int = Field(..., description="1-based position in the request")
    weight_difference: float
    weight_case: WeightCase
    weight_message: str
    interest: float = Field(..., ge=0)
    late_lifting_charges: float = Field(..., ge=0)
    late_lifting_breakdown: list[LateLiftingBreakdownRow] = []


class DOSpecSummary(BaseSchema):
    """Totals across all lots."""

    total_weight_difference: float
    total_interest: float
    total_late_lifting_charges: float


class CalculationResults(BaseSchema):
    """Per-lot results plus summary, persisted with the request."""

    lots: list[LotResult]
    summary: DOSpecSummary


# ===================
# RESPONSE SCHEMAS
# ===================

class DOSpecificationResponse(TimestampMixin, BaseSchema):
    """Saved DO Specification."""

    id: str
    user_id: str
    customer_id: str
    total_lots: int
    bid_price: float
    emd_amount: float
    cotton_value: float
    gst_rate: float
    zone: Zone
    lots: list[LotInput]
    calculation_results: CalculationResults
    customer: Optional[dict] = None


class DOSpecificationListResponse(BaseSchema):
    """Paginated list of DO Specifications."""

    data: list[DOSpecificationResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class DOSpecificationHistoryItem(BaseSchema):
    """Compact history row."""

    id: str
    created_at: datetime
    total_lots: int
    bid_price: float
    cotton_value: float
    zone: Zone
    calculation_results: CalculationResults


class DOSpecificationHistoryResponse(BaseSchema):
    """History listing."""

    history: list[DOSpecificationHistoryItem]
    total_records: int
