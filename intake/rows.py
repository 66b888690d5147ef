"""Sheet rows -> source rows and line items.

load_intake() reads the header and line tables of one layout and returns
the rows in sheet order together with the line items grouped by row key.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from connectors.tabular import Table, TabularStore
from core.observability.logging import get_logger
from intake.headers import (
    cell,
    find_column,
    get_first_available,
    pad_row,
    parse_sheet_date,
    require_column,
)
from intake.layouts import SheetLayout
from models.transactions import SourceLineItem, TransactionKind
from pricing.calculator import parse_discount, parse_numeric

logger = get_logger(__name__)


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_LINE_COLUMN_LABELS = {
    "line_key": "Row key",
    "line_name": "Name",
    "line_quantity": "Quantity",
    "line_price": "Unit Price",
    "line_subcode": "Subcode/Account",
    "line_budget_code": "Budget Code",
    "line_category": "Category",
    "line_expense_date": "Expense Date",
}


@dataclass
class SourceRow:
    """One row of the header table."""
    index: int                          # 0-based data row index
    key: str
    values: List[str]
    counterparty: Optional[str] = None
    currency: Optional[str] = None
    transaction_number: Optional[str] = None
    timestamp: Optional[str] = None
    transaction_date: Optional[date] = None
    due_date: Optional[date] = None
    external_reference: Optional[str] = None
    budget_code: Optional[str] = None
    subcode: Optional[str] = None
    location: Optional[str] = None
    name: Optional[str] = None

    @property
    def sheet_row(self) -> int:
        return self.index + 2

    @property
    def is_empty(self) -> bool:
        return not self.key


@dataclass
class IntakeSheet:
    layout: SheetLayout
    headers: List[str]
    rows: List[SourceRow] = field(default_factory=list)
    lines_by_key: Dict[str, List[SourceLineItem]] = field(default_factory=OrderedDict)
    transaction_column: int = 0

    def lines_for(self, key: str) -> List[SourceLineItem]:
        return list(self.lines_by_key.get(key, []))


# =============================================================================
# Header Table
# =============================================================================

def _optional(value: Optional[str]) -> Optional[str]:
    return value or None


def parse_source_rows(table: Table, layout: SheetLayout) -> IntakeSheet:
    """Parse the header table. A missing transaction column is added in memory."""
    headers = [h.strip() for h in table.headers]
    for label, candidates in layout.required_header_columns:
        require_column(headers, candidates, table.name, label)

    key_column = require_column(headers, layout.row_key, table.name, "Row key")
    transaction_column = find_column(headers, layout.transaction_column)
    if transaction_column is None:
        headers.append(layout.transaction_column[0])
        transaction_column = len(headers) - 1

    if find_column(headers, layout.timestamp) is None:
        logger.warning("Timestamp header not found - will use the current date/time for error rows")

    sheet = IntakeSheet(layout=layout, headers=headers, transaction_column=transaction_column)
    for index, raw in enumerate(table.rows):
        values = pad_row(raw, len(headers))

        def first(candidates):
            return get_first_available(values, headers, candidates) if candidates else None

        sheet.rows.append(SourceRow(
            index=index,
            key=cell(values, key_column),
            values=values,
            counterparty=first(layout.counterparty),
            currency=first(layout.currency),
            transaction_number=_optional(cell(values, transaction_column)),
            timestamp=first(layout.timestamp),
            transaction_date=parse_sheet_date(first(layout.transaction_date)),
            due_date=parse_sheet_date(first(layout.due_date)),
            external_reference=first(layout.transaction_reference),
            budget_code=first(layout.budget_code),
            subcode=first(layout.subcode),
            location=first(layout.location),
            name=first(("Name",)),
        ))
    return sheet


# =============================================================================
# Line Table
# =============================================================================

def _discount_column(headers: List[str], layout: SheetLayout) -> Optional[int]:
    """The discount column sits at a fixed position; header names are the fallback."""
    if layout.discount_column_index is not None and len(headers) > layout.discount_column_index:
        return layout.discount_column_index
    if layout.line_discount:
        return find_column(headers, layout.line_discount)
    return None


def parse_line_items(table: Table, layout: SheetLayout) -> Dict[str, List[SourceLineItem]]:
    """Group line items by row key, preserving sheet order."""
    headers = [h.strip() for h in table.headers]

    for attribute in layout.required_line_columns:
        require_column(headers, getattr(layout, attribute), table.name, _LINE_COLUMN_LABELS[attribute])

    key_column = find_column(headers, layout.line_key)
    name_column = find_column(headers, layout.line_name)
    quantity_column = find_column(headers, layout.line_quantity) if layout.line_quantity else None
    price_column = find_column(headers, layout.line_price)
    reference_column = find_column(headers, layout.line_item_reference)
    discount_column = _discount_column(headers, layout)

    columns = {
        "subcode": find_column(headers, layout.line_subcode),
        "budget_code": find_column(headers, layout.line_budget_code),
        "location": find_column(headers, layout.line_location),
        "currency": find_column(headers, layout.line_currency),
        "category": find_column(headers, layout.line_category),
        "memo": find_column(headers, layout.line_memo),
    }

    if discount_column is not None:
        logger.info(f"Using discount column '{headers[discount_column]}'")

    lines_by_key: Dict[str, List[SourceLineItem]] = OrderedDict()
    for raw in table.rows:
        key = cell(raw, key_column)
        if not key:
            continue

        if quantity_column is None:
            quantity = Decimal("1")
        else:
            quantity_raw = cell(raw, quantity_column)
            quantity = parse_numeric(quantity_raw) if quantity_raw else Decimal("1")

        unit_price = parse_numeric(cell(raw, price_column))
        discount_raw = cell(raw, discount_column) or None
        discount = parse_discount(discount_raw, unit_price, quantity)

        coding = {name: (cell(raw, index) or None) for name, index in columns.items()}
        name = cell(raw, name_column)
        if layout.kind == TransactionKind.EXPENSE_REPORT and not name:
            name = coding["category"] or ""

        lines_by_key.setdefault(key, []).append(SourceLineItem(
            name=name,
            quantity=quantity,
            unit_price=unit_price,
            discount=discount,
            discount_raw=discount_raw,
            item_reference=cell(raw, reference_column) or None,
            expense_date=parse_sheet_date(get_first_available(raw, headers, layout.line_expense_date))
            if layout.line_expense_date else None,
            **coding,
        ))
    return lines_by_key


# =============================================================================
# Loading
# =============================================================================

def load_intake(store: TabularStore, layout: SheetLayout) -> IntakeSheet:
    """Read and parse both tables of a layout.

    Raises:
        SetupFailure: If a table or a required column is missing
    """
    sheet = parse_source_rows(store.read_rows(layout.header_table), layout)
    sheet.lines_by_key = parse_line_items(store.read_rows(layout.line_table), layout)
    logger.info(
        f"Read {len(sheet.rows)} row(s) from '{layout.header_table}' and "
        f"{sum(len(v) for v in sheet.lines_by_key.values())} line(s) from '{layout.line_table}'"
    )
    return sheet


def row_timestamp(row: SourceRow, now: Optional[datetime] = None) -> str:
    """Timestamp for an error row: the sheet's own value, else now."""
    if row.timestamp:
        return row.timestamp
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
