"""Sheet intake - header candidates, layouts and row parsing.

Usage:
    from intake import load_intake, layout_for

    sheet = load_intake(CsvWorkbook("workbook/purchase_orders"), layout_for(TransactionKind.PURCHASE_ORDER))
    for row in sheet.rows:
        lines = sheet.lines_for(row.key)
"""

from intake.headers import (
    cell,
    find_column,
    get_first_available,
    parse_sheet_date,
    require_column,
)
from intake.layouts import (
    EXPENSE_REPORT_LAYOUT,
    KIND_ALIASES,
    LAYOUTS,
    PURCHASE_ORDER_LAYOUT,
    SheetLayout,
    VENDOR_BILL_LAYOUT,
    layout_for,
)
from intake.rows import (
    IntakeSheet,
    SourceRow,
    load_intake,
    parse_line_items,
    parse_source_rows,
    row_timestamp,
)

__all__ = [
    "cell",
    "find_column",
    "get_first_available",
    "parse_sheet_date",
    "require_column",
    "EXPENSE_REPORT_LAYOUT",
    "KIND_ALIASES",
    "LAYOUTS",
    "PURCHASE_ORDER_LAYOUT",
    "SheetLayout",
    "VENDOR_BILL_LAYOUT",
    "layout_for",
    "IntakeSheet",
    "SourceRow",
    "load_intake",
    "parse_line_items",
    "parse_source_rows",
    "row_timestamp",
]
