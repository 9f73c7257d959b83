"""
DO Specifications calculator — Core business logic.

Settles each lot of a delivery order in three parts:
1. WEIGHT DIFFERENCE against the zone's assumed weight
2. INTEREST on DO payment installments made after the EMD was paid
3. LATE LIFTING charges for deliveries outside the free window

Pure computation: no database access, safe to call concurrently.
All arithmetic is done in Decimal and converted to float only at the
result boundary.

Policy numbers live in config/trading.py.
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Optional, Union

import pydantic
import structlog

from config.trading import (
    ANNUAL_INTEREST_RATE,
    DAYS_PER_YEAR,
    INTEREST_PLACES,
    LATE_LIFTING_PLACES,
    LATE_LIFTING_TIERS,
    WEIGHT_DIFFERENCE_PLACES,
    WEIGHT_FACTOR,
    ZONE_BASE_KG,
)
from exceptions import InvalidLotInputError, InvalidZoneError, ValidationError
from models.do_specification import (
    CalculationResults,
    DeliveryEvent,
    DOPaymentInstallment,
    DOSpecificationCalculate,
    DOSpecSummary,
    LateLiftingBreakdownRow,
    LotInput,
    LotResult,
    WeightCase,
    Zone,
)

logger = structlog.get_logger(__name__)

Number = Union[int, float, Decimal]

WEIGHT_MESSAGES = {
    WeightCase.CUSTOMER_PAYS_US: "Customer pays us (and we pay CCI) for extra weight.",
    WeightCase.WE_PAY_CUSTOMER: "CCI pays us (and we pay customer) for reduced weight.",
    WeightCase.NO_DIFFERENCE: "No weight difference.",
}


# ===================
# HELPERS
# ===================

def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without picking up binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_amount(value: Decimal, places: int) -> Decimal:
    """Round half away from zero to a fixed number of places."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def days_between(start: date, end: date) -> int:
    """Whole days from start to end, floored at zero."""
    return max(0, (end - start).days)


def resolve_zone(zone: Union[Zone, str]) -> Zone:
    """
    Map a zone value onto the closed Zone enum.

    Raises:
        InvalidZoneError: If the value is not a known zone
    """
    if isinstance(zone, Zone):
        return zone
    try:
        return Zone(zone)
    except ValueError:
        raise InvalidZoneError(str(zone), [z.value for z in Zone])


# ===================
# CALCULATION STEPS
# ===================

def assumed_weight(zone: Union[Zone, str]) -> Decimal:
    """
    Assumed lot weight (kg) for a zone.

    South Zone: 48 / 0.2812, every other zone: 47 / 0.2812. Computed in
    float so the value a client echoes back as actual_weight compares equal.
    """
    base = ZONE_BASE_KG[resolve_zone(zone).value]
    return to_decimal(float(base) / float(WEIGHT_FACTOR))


def calculate_weight_difference(
    actual_weight: Number,
    expected_weight: Number,
    bid_price: Number,
) -> tuple[Decimal, WeightCase]:
    """
    Settlement amount for the weight difference of one lot.

    amount = (actual - assumed) * bid_price * 0.2812, rounded to 2 places.
    The case follows the sign of the unrounded difference, so a shortfall
    that rounds to 0.00 is still WE_PAY_CUSTOMER.

    Returns:
        (rounded amount, weight case)
    """
    diff = (
        (to_decimal(actual_weight) - to_decimal(expected_weight))
        * to_decimal(bid_price)
        * WEIGHT_FACTOR
    )
    amount = round_amount(diff, WEIGHT_DIFFERENCE_PLACES)

    if diff > 0:
        case = WeightCase.CUSTOMER_PAYS_US
    elif diff < 0:
        case = WeightCase.WE_PAY_CUSTOMER
    else:
        case = WeightCase.NO_DIFFERENCE

    if amount.is_zero():
        # Normalise -0.00
        amount = abs(amount)

    return amount, case


def calculate_interest(
    installments: Iterable[DOPaymentInstallment],
    emd_paid_date: date,
) -> Decimal:
    """
    Simple interest on DO installments from the EMD date.

    Per installment: days * 5% / 365 * amount. Installments dated on or
    before the EMD date accrue nothing.
    """
    total = Decimal("0")
    for installment in installments:
        days = days_between(emd_paid_date, installment.date)
        total += (
            Decimal(days) * ANNUAL_INTEREST_RATE / DAYS_PER_YEAR
            * to_decimal(installment.amount)
        )
    return round_amount(total, INTEREST_PLACES)


def late_lifting_rate(total_carrying_days: int) -> tuple[Decimal, str]:
    """
    Tiered late-lifting rate for the total carrying days.

    <=15: 0, 16-45: 0.5%, 46-75: 0.75%, >75: 1%. Applied once, not per day.
    """
    for max_days, rate, label in LATE_LIFTING_TIERS:
        if max_days is None or total_carrying_days <= max_days:
            return rate, label
    # Unreachable while the last tier is open-ended
    raise ValueError("late lifting tiers must end with an open-ended row")


def calculate_late_lifting_charges(
    deliveries: Iterable[DeliveryEvent],
    installments: list[DOPaymentInstallment],
    cotton_value: Number,
    gst_rate: Number,
) -> tuple[Decimal, list[LateLiftingBreakdownRow]]:
    """
    Late-lifting charges for every delivery of one lot.

    The free window is anchored at the FIRST DO installment for all
    deliveries of the lot, not at the installment covering each delivery.

    Returns:
        (total rounded to 3 places, one breakdown row per delivery)
    """
    anchor = installments[0].date
    value = to_decimal(cotton_value)
    gst_multiplier = to_decimal(gst_rate)

    total = Decimal("0")
    breakdown: list[LateLiftingBreakdownRow] = []

    for delivery in deliveries:
        carrying_days = days_between(anchor, delivery.date) + delivery.additional_carrying_days
        rate, label = late_lifting_rate(carrying_days)

        base_charge = Decimal("0")
        if rate > 0:
            base_charge = value * rate * delivery.lots

        gst = base_charge * gst_multiplier
        charge = base_charge + gst
        total += charge

        breakdown.append(LateLiftingBreakdownRow(
            delivery_date=delivery.date,
            lots=delivery.lots,
            additional_carrying_days=delivery.additional_carrying_days,
            total_carrying_days=carrying_days,
            rate=float(rate),
            rate_label=label,
            base_charge=float(base_charge),
            gst=float(gst),
            total_charge=float(charge),
        ))

    return round_amount(total, LATE_LIFTING_PLACES), breakdown


# ===================
# CALCULATOR
# ===================

class DOSpecCalculator:
    """
    Computes DO Specification results for a batch of lots.

    All inputs are validated before any lot is computed; a single bad lot
    fails the whole batch.
    """

    def calculate(
        self,
        lots: list[Union[LotInput, dict[str, Any]]],
        bid_price: Number,
        cotton_value: Number,
        gst_rate: Number,
        zone: Union[Zone, str],
    ) -> CalculationResults:
        """
        Calculate per-lot results and totals.

        Args:
            lots: Lot inputs (models or raw dicts)
            bid_price: Bid price per candy
            cotton_value: Cotton value per lot, base for late-lifting charges
            gst_rate: GST multiplier on late-lifting charges
            zone: "South Zone" or "Other Zone"

        Returns:
            CalculationResults with one LotResult per lot and a summary

        Raises:
            ValidationError: Bad batch-level input
            InvalidLotInputError: A lot is malformed (names the 1-based index)
            InvalidZoneError: Unknown zone
        """
        resolved_zone = resolve_zone(zone)
        self._validate_amounts(bid_price=bid_price, cotton_value=cotton_value, gst_rate=gst_rate)
        parsed_lots = self._parse_lots(lots)

        logger.info(
            "calculating_do_specification",
            lot_count=len(parsed_lots),
            zone=resolved_zone.value,
        )

        expected_weight = assumed_weight(resolved_zone)
        results: list[LotResult] = []
        total_weight_diff = Decimal("0")
        total_interest = Decimal("0")
        total_late_lifting = Decimal("0")

        for index, lot in enumerate(parsed_lots, start=1):
            weight_diff, weight_case = calculate_weight_difference(
                lot.actual_weight, expected_weight, bid_price
            )
            interest = calculate_interest(lot.do_payment_dates, lot.emd_paid_date)
            late_lifting, breakdown = calculate_late_lifting_charges(
                lot.delivery_dates,
                lot.do_payment_dates,
                cotton_value,
                gst_rate,
            )

            logger.debug(
                "lot_calculated",
                lot_index=index,
                weight_case=weight_case.value,
                weight_difference=str(weight_diff),
                interest=str(interest),
                late_lifting=str(late_lifting),
            )

            results.append(LotResult(
                lot_index=index,
                weight_difference=float(weight_diff),
                weight_case=weight_case,
                weight_message=WEIGHT_MESSAGES[weight_case],
                interest=float(interest),
                late_lifting_charges=float(late_lifting),
                late_lifting_breakdown=breakdown,
            ))

            total_weight_diff += weight_diff
            total_interest += interest
            total_late_lifting += late_lifting

        summary = DOSpecSummary(
            total_weight_difference=float(round_amount(total_weight_diff, WEIGHT_DIFFERENCE_PLACES)),
            total_interest=float(round_amount(total_interest, INTEREST_PLACES)),
            total_late_lifting_charges=float(round_amount(total_late_lifting, LATE_LIFTING_PLACES)),
        )

        logger.info(
            "do_specification_calculated",
            lot_count=len(results),
            total_weight_difference=summary.total_weight_difference,
            total_interest=summary.total_interest,
            total_late_lifting_charges=summary.total_late_lifting_charges,
        )

        return CalculationResults(lots=results, summary=summary)

    def calculate_request(self, request: DOSpecificationCalculate) -> CalculationResults:
        """Calculate from a validated API request."""
        return self.calculate(
            lots=request.lots,
            bid_price=request.bid_price,
            cotton_value=request.cotton_value,
            gst_rate=request.gst_rate,
            zone=request.zone,
        )

    # ===================
    # VALIDATION
    # ===================

    def _validate_amounts(self, **amounts: Number) -> None:
        negative = {name: value for name, value in amounts.items() if to_decimal(value) < 0}
        if negative:
            raise ValidationError(
                message="All monetary values must be non-negative",
                details={"fields": sorted(negative)},
            )

    def _parse_lots(self, lots: list[Union[LotInput, dict[str, Any]]]) -> list[LotInput]:
        if not lots:
            raise ValidationError(message="Lots must be a non-empty array")

        parsed: list[LotInput] = []
        for index, raw in enumerate(lots, start=1):
            lot = self._parse_lot(index, raw)
            if not lot.do_payment_dates:
                raise InvalidLotInputError(
                    index, "at least one DO payment installment is required", "do_payment_dates"
                )
            if not lot.delivery_dates:
                raise InvalidLotInputError(
                    index, "at least one delivery is required", "delivery_dates"
                )
            parsed.append(lot)
        return parsed

    def _parse_lot(self, index: int, raw: Union[LotInput, dict[str, Any]]) -> LotInput:
        if isinstance(raw, LotInput):
            return raw
        try:
            return LotInput.model_validate(raw)
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ()))
            raise InvalidLotInputError(index, first.get("msg", "invalid lot"), field or None)


# Singleton instance for convenience
_do_spec_calculator: Optional[DOSpecCalculator] = None


def get_do_spec_calculator() -> DOSpecCalculator:
    """Get or create DOSpecCalculator instance."""
    global _do_spec_calculator
    if _do_spec_calculator is None:
        _do_spec_calculator = DOSpecCalculator()
    return _do_spec_calculator
