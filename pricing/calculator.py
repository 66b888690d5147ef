"""Price/discount arithmetic.

Exposes:
- parse_numeric(value) -> Decimal: locale-tolerant cell cleaning
- parse_discount(raw, unit_price, quantity) -> Decimal: absolute discount amount
- adjust(unit_price, quantity, discount) -> AdjustedPrice

All monetary comparisons in the reconciler use MONEY_TOLERANCE.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union


# =============================================================================
# Configuration
# =============================================================================

MONEY_TOLERANCE = Decimal("0.01")

ZERO = Decimal("0")
HUNDRED = Decimal("100")

_NON_NUMERIC = re.compile(r"[^0-9.\-]")

DiscountInput = Union[Decimal, int, float, str, None]


# =============================================================================
# Parsing
# =============================================================================

def to_decimal(value) -> Optional[Decimal]:
    """Convert value to Decimal."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def parse_numeric(value, default: Decimal = ZERO) -> Decimal:
    """Parse a spreadsheet cell into a Decimal.

    Thousands separators and currency noise are stripped; anything that is
    still not a number coerces to `default`.

    Examples:
        >>> parse_numeric("1,250.50")
        Decimal('1250.50')
        >>> parse_numeric("RM 12")
        Decimal('12')
        >>> parse_numeric("n/a")
        Decimal('0')
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    text = str(value).strip()
    if text == "":
        return default

    negative = text.startswith("(") and text.endswith(")")
    cleaned = _NON_NUMERIC.sub("", text.replace(",", ""))
    if cleaned in ("", "-", ".", "-."):
        return default

    try:
        number = Decimal(cleaned)
    except InvalidOperation:
        return default
    if not number.is_finite():
        return default
    return -number if negative and number > 0 else number


def is_percentage(raw: DiscountInput) -> bool:
    return isinstance(raw, str) and "%" in raw


def parse_discount(raw: DiscountInput, unit_price: Decimal, quantity: Decimal) -> Decimal:
    """Convert a discount cell into an absolute currency amount.

    "10%" means ten percent of unit_price * quantity; anything else is an
    absolute amount.
    """
    if raw is None:
        return ZERO
    if is_percentage(raw):
        percentage = parse_numeric(raw.replace("%", ""))
        return unit_price * quantity * percentage / HUNDRED
    return parse_numeric(raw)


def is_negligible(amount: Optional[Decimal]) -> bool:
    """Discounts below one cent are treated as no discount."""
    return amount is None or abs(amount) < MONEY_TOLERANCE


def amounts_match(
    a: Optional[Decimal],
    b: Optional[Decimal],
    tolerance: Decimal = MONEY_TOLERANCE,
) -> bool:
    """Check if two amounts match within tolerance."""
    if a is None or b is None:
        return False
    return abs(a - b) <= tolerance


# =============================================================================
# Adjustment
# =============================================================================

@dataclass(frozen=True)
class AdjustedPrice:
    """Result of applying a discount to a line."""
    unit_price: Decimal
    line_total: Decimal
    discount_amount: Decimal
    total_before: Decimal
    total_after: Decimal
    discount_applied: bool


def adjust(
    unit_price: Decimal,
    quantity: Decimal,
    discount: DiscountInput = None,
) -> AdjustedPrice:
    """Compute the discount-adjusted unit price and line total.

    Args:
        unit_price: Pre-discount unit price
        quantity: Line quantity
        discount: Absolute amount, numeric string, or percentage string ("20%")

    Returns:
        AdjustedPrice where line_total == quantity * unit_price always holds.
        The adjusted unit price never goes below zero.
    """
    unit_price = to_decimal(unit_price) or ZERO
    quantity = to_decimal(quantity) or ZERO

    discount_amount = parse_discount(discount, unit_price, quantity)
    total_before = unit_price * quantity

    if is_negligible(discount_amount) or quantity <= ZERO:
        return AdjustedPrice(
            unit_price=unit_price,
            line_total=quantity * unit_price,
            discount_amount=ZERO,
            total_before=total_before,
            total_after=total_before,
            discount_applied=False,
        )

    total_after = total_before - discount_amount
    adjusted_unit_price = total_after / quantity
    if adjusted_unit_price < ZERO:
        adjusted_unit_price = ZERO

    return AdjustedPrice(
        unit_price=adjusted_unit_price,
        line_total=quantity * adjusted_unit_price,
        discount_amount=discount_amount,
        total_before=total_before,
        total_after=total_after,
        discount_applied=True,
    )


# =============================================================================
# Formatting
# =============================================================================

def quantize_money(value: Optional[Decimal]) -> Optional[Decimal]:
    """Round to cents for display and payloads."""
    if value is None:
        return None
    return to_decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def format_quantity(quantity: Decimal) -> str:
    """Render a quantity without trailing zeros ("10", "2.5")."""
    quantity = to_decimal(quantity) or ZERO
    if quantity == quantity.to_integral_value():
        return str(int(quantity))
    return format(quantity.normalize(), "f")
