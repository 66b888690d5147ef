"""Price/Discount Calculator.

Usage:
    from pricing import adjust

    price = adjust(Decimal("100"), Decimal("10"), "20%")
    price.unit_price   # Decimal("80")
    price.line_total   # Decimal("800")
"""

from pricing.calculator import (
    MONEY_TOLERANCE,
    AdjustedPrice,
    adjust,
    amounts_match,
    format_quantity,
    is_negligible,
    is_percentage,
    parse_discount,
    parse_numeric,
    quantize_money,
    to_decimal,
)

__all__ = [
    "MONEY_TOLERANCE",
    "AdjustedPrice",
    "adjust",
    "amounts_match",
    "format_quantity",
    "is_negligible",
    "is_percentage",
    "parse_discount",
    "parse_numeric",
    "quantize_money",
    "to_decimal",
]
