"""
Cotton trading policy constants.

Single source for the numbers used by the DO Specifications calculator.
Every call site reads from here; nothing re-declares these inline.
"""

from decimal import Decimal

# =============================================================================
# WEIGHT DIFFERENCE
# =============================================================================

# Candy-to-kg conversion factor used both for the assumed weight and for the
# settlement amount.
WEIGHT_FACTOR = Decimal("0.2812")

# Base kg per zone. assumed_weight = ZONE_BASE_KG[zone] / WEIGHT_FACTOR
#   South Zone: 48 / 0.2812 ~= 170.70 kg
#   Other Zone: 47 / 0.2812 ~= 167.14 kg
ZONE_BASE_KG = {
    "South Zone": Decimal("48"),
    "Other Zone": Decimal("47"),
}


# =============================================================================
# INTEREST ON DO PAYMENTS
# =============================================================================

# Simple interest, 5% per annum, accrued from EMD date to each DO installment
ANNUAL_INTEREST_RATE = Decimal("0.05")
DAYS_PER_YEAR = Decimal("365")


# =============================================================================
# LATE LIFTING
# =============================================================================

# Free window after the first DO payment
FREE_LIFTING_DAYS = 15

# (max total carrying days inclusive, rate applied once, label)
# Last row has no upper bound.
LATE_LIFTING_TIERS = (
    (FREE_LIFTING_DAYS, Decimal("0"), "No charges (within 15 days)"),
    (45, Decimal("0.005"), "0.50% per month (0-30 days after 15-day window)"),
    (75, Decimal("0.0075"), "0.75% per month (31-60 days after 15-day window)"),
    (None, Decimal("0.01"), "1.00% per month (after 60 days after 15-day window)"),
)


# =============================================================================
# ROUNDING
# =============================================================================

WEIGHT_DIFFERENCE_PLACES = 2
INTEREST_PLACES = 2
LATE_LIFTING_PLACES = 3  # finer than the other two amounts on purpose
