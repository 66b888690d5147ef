"""Transaction value objects.

- SourceLineItem: a line parsed from the intake sheet
- ResolvedLine: a priced line with its resolved references
- TransactionDraft: an immutable, validated payload ready for the ERP transport
- PurchaseOrderLine / ExpenseLine: typed lines of an existing ERP transaction
- ExistingTransaction: an ERP transaction decoded at the transport boundary
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from typing_extensions import Annotated

from models.refs import ReferenceEntity, ReferenceKind
from pricing.calculator import parse_numeric


def _coerce_decimal(value):
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    return parse_numeric(value)


# Numeric after locale-aware cleaning; non-numeric input coerces to 0
DecimalValue = Annotated[Decimal, BeforeValidator(_coerce_decimal)]


class TransactionKind(str, Enum):
    PURCHASE_ORDER = "purchase_order"
    VENDOR_BILL = "vendor_bill"
    EXPENSE_REPORT = "expense_report"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class LineType(str, Enum):
    ITEM = "item"
    EXPENSE = "expense"


class LineMatchStrategy(str, Enum):
    """How a line was tied to a reference or to an existing ERP line."""
    POSITIONAL = "positional"
    DESCRIPTION = "description"
    NAME = "name"
    CATALOG_NAME = "catalog_name"
    REFERENCE = "reference"
    ITEM_REFERENCE = "item_reference"    # Catalog item by the line's item number
    ACCOUNT_MAPPING = "account_mapping"  # Catalog item via account -> item table
    GENERIC = "generic"                  # Account-only expense line
    NONE = "none"


# =============================================================================
# Sheet Lines
# =============================================================================

class SourceLineItem(BaseModel):
    """A line item as entered in the intake sheet.

    discount holds the absolute currency amount; discount_raw keeps the
    cell text (e.g. "10%") for reporting.
    """
    model_config = ConfigDict(frozen=True)

    name: str = ""
    quantity: DecimalValue = Decimal("0")
    unit_price: DecimalValue = Decimal("0")
    discount: DecimalValue = Decimal("0")
    discount_raw: Optional[str] = None
    item_reference: Optional[str] = None

    # Per-line coding (bills and expense reports carry these per line)
    subcode: Optional[str] = None
    budget_code: Optional[str] = None
    location: Optional[str] = None
    currency: Optional[str] = None
    category: Optional[str] = None
    memo: Optional[str] = None
    expense_date: Optional[date] = None

    @property
    def total_before_discount(self) -> Decimal:
        return self.quantity * self.unit_price


class ResolvedLine(SourceLineItem):
    """A source line with pricing and resolved references.

    Invariant: line_amount == quantity * adjusted_unit_price.
    """
    matched_reference: Optional[ReferenceEntity] = None
    match_strategy: LineMatchStrategy = LineMatchStrategy.NONE
    adjusted_unit_price: DecimalValue = Decimal("0")
    line_amount: DecimalValue = Decimal("0")

    account_ref: Optional[ReferenceEntity] = None
    department_ref: Optional[ReferenceEntity] = None
    location_ref: Optional[ReferenceEntity] = None
    category_ref: Optional[ReferenceEntity] = None
    description: Optional[str] = Field(default=None, description="Outgoing line memo/description")

    @model_validator(mode="after")
    def _check_line_amount(self) -> "ResolvedLine":
        expected = self.quantity * self.adjusted_unit_price
        if abs(self.line_amount - expected) > Decimal("0.000001"):
            raise ValueError(
                f"line_amount {self.line_amount} != quantity * adjusted_unit_price ({expected})"
            )
        return self

    @property
    def is_catalog(self) -> bool:
        return (
            self.matched_reference is not None
            and self.matched_reference.kind == ReferenceKind.ITEM
        )


# =============================================================================
# Draft
# =============================================================================

class TransactionDraft(BaseModel):
    """Validated payload consumed by the ERP transport. Immutable once built."""
    model_config = ConfigDict(frozen=True)

    kind: TransactionKind
    counterparty_ref: ReferenceEntity
    memo: str = Field(..., description="Source row key (memo-as-key)")
    transaction_date: date
    currency_ref: Optional[ReferenceEntity] = None
    catalog_lines: List[ResolvedLine] = Field(default_factory=list)
    generic_lines: List[ResolvedLine] = Field(default_factory=list)
    external_reference: Optional[str] = Field(default=None, description="Transaction number to request")
    due_date: Optional[date] = None
    warnings: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_lines(self) -> "TransactionDraft":
        if not self.catalog_lines and not self.generic_lines:
            raise ValueError("draft must contain at least one line")
        for line in self.catalog_lines:
            if not line.is_catalog:
                raise ValueError(f"catalog line '{line.name}' has no catalog item reference")
        return self

    @property
    def lines(self) -> List[ResolvedLine]:
        return list(self.catalog_lines) + list(self.generic_lines)

    @property
    def total_amount(self) -> Decimal:
        return sum((line.line_amount for line in self.lines), Decimal("0"))


# =============================================================================
# Existing ERP Lines (decoded at the transport boundary)
# =============================================================================

class ExistingLineBase(BaseModel):
    line_number: Optional[int] = None
    department_id: Optional[str] = None
    location_id: Optional[str] = None


class PurchaseOrderLine(ExistingLineBase):
    """Catalog item line on an existing transaction."""
    line_type: Literal["item"] = "item"
    item_ref_id: Optional[str] = None
    item_name: Optional[str] = None
    item_number: Optional[str] = None
    description: Optional[str] = None
    quantity: DecimalValue = Decimal("0")
    rate: DecimalValue = Decimal("0")

    @property
    def text(self) -> str:
        return self.description or ""

    @property
    def label(self) -> str:
        return self.description or self.item_name or self.item_ref_id or "item"

    @property
    def current_value(self) -> Decimal:
        return self.quantity * self.rate


class ExpenseLine(ExistingLineBase):
    """Account-only expense line on an existing transaction."""
    line_type: Literal["expense"] = "expense"
    account_ref_id: Optional[str] = None
    account_name: Optional[str] = None
    memo: Optional[str] = None
    amount: DecimalValue = Decimal("0")

    @property
    def text(self) -> str:
        return self.memo or ""

    @property
    def label(self) -> str:
        return self.memo or self.account_name or "expense"

    @property
    def current_value(self) -> Decimal:
        return self.amount


ExistingLine = Annotated[
    Union[PurchaseOrderLine, ExpenseLine],
    Field(discriminator="line_type"),
]


class ExistingTransaction(BaseModel):
    """An ERP transaction with its typed lines."""
    kind: TransactionKind
    external_id: str
    transaction_number: Optional[str] = None
    memo: Optional[str] = None
    lines: List[ExistingLine] = Field(default_factory=list)

    @property
    def item_lines(self) -> List[PurchaseOrderLine]:
        return [line for line in self.lines if isinstance(line, PurchaseOrderLine)]

    @property
    def expense_lines(self) -> List[ExpenseLine]:
        return [line for line in self.lines if isinstance(line, ExpenseLine)]

    @property
    def total_amount(self) -> Decimal:
        return sum((line.current_value for line in self.lines), Decimal("0"))
