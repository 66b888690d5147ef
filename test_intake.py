"""Tests for reading intake tables: header lookup, dates, rows and line items."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from connectors import Table
from core.errors import SetupFailure
from intake.headers import find_column, get_first_available, parse_sheet_date, require_column
from intake.layouts import (
    EXPENSE_REPORT_LAYOUT,
    PURCHASE_ORDER_LAYOUT,
    VENDOR_BILL_LAYOUT,
    layout_for,
)
from intake.rows import load_intake, parse_line_items, parse_source_rows, row_timestamp
from models.transactions import TransactionKind

from conftest import ITEM_HEADERS, PO_HEADERS, PO_ROW


class TestHeaders:
    """Candidate-based header lookup."""

    def test_find_column_is_case_insensitive(self):
        assert find_column([" qty ", "Name"], ["Quantity", "Qty"]) == 0

    def test_candidate_order_wins(self):
        assert find_column(["Qty", "Quantity"], ["Quantity", "Qty"]) == 1

    def test_require_column_lists_candidates(self):
        with pytest.raises(SetupFailure) as exc_info:
            require_column(["Name"], ["Vendor", "Payee"], "PO", "Vendor")
        assert "Expected one of: Vendor, Payee" in str(exc_info.value)
        assert "Available columns: Name" in str(exc_info.value)

    def test_get_first_available_skips_empty(self):
        headers = ["Payee/Vendor", "Vendor"]
        assert get_first_available(["", "Amazon"], headers, ["Payee/Vendor", "Vendor"]) == "Amazon"
        assert get_first_available(["", ""], headers, ["Payee/Vendor", "Vendor"]) is None


class TestDates:

    @pytest.mark.parametrize("raw,expected", [
        ("2026-01-19", date(2026, 1, 19)),
        ("01/19/2026", date(2026, 1, 19)),
        ("2026-01-19 07:45:33", date(2026, 1, 19)),
        ("2026-01-19T07:45:33-08:00 Asia/Kuala_Lumpur", date(2026, 1, 19)),
        ("19 Jan 2026", date(2026, 1, 19)),
        (datetime(2026, 1, 19, 7, 45), date(2026, 1, 19)),
    ])
    def test_formats(self, raw, expected):
        assert parse_sheet_date(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "soon"])
    def test_unparseable(self, raw):
        assert parse_sheet_date(raw) is None


class TestSourceRows:
    """Header table parsing."""

    def test_purchase_order_row(self):
        sheet = parse_source_rows(Table("PO", PO_HEADERS, [PO_ROW]), PURCHASE_ORDER_LAYOUT)
        row = sheet.rows[0]

        assert row.key == "EPR-0042"
        assert row.counterparty == "Amazon.com (US)"
        assert row.budget_code == "JB-C030-26"
        assert row.subcode == "88000 Teaching Resources"
        assert row.location is None
        assert row.currency == "USD"
        assert row.transaction_number is None
        assert row.transaction_date == date(2026, 1, 19)
        assert row.sheet_row == 2
        assert sheet.transaction_column == PO_HEADERS.index("PO")

    def test_missing_transaction_column_is_added(self):
        headers = PO_HEADERS[:-1]
        sheet = parse_source_rows(Table("PO", headers, [PO_ROW[:-1]]), PURCHASE_ORDER_LAYOUT)
        assert sheet.headers[-1] == "PO"
        assert sheet.transaction_column == len(headers)
        assert len(sheet.rows[0].values) == len(headers) + 1

    def test_missing_required_column(self):
        headers = [h for h in PO_HEADERS if h != "Vendor"]
        with pytest.raises(SetupFailure, match="Vendor column not found"):
            parse_source_rows(Table("PO", headers, []), PURCHASE_ORDER_LAYOUT)

    def test_empty_row(self):
        sheet = parse_source_rows(Table("PO", PO_HEADERS, [[""] * len(PO_HEADERS)]), PURCHASE_ORDER_LAYOUT)
        assert sheet.rows[0].is_empty

    def test_bill_uses_alternate_headers(self):
        table = Table(
            "PR",
            ["PR ID", "Payee/Vendor", "Currency", "Due Date", "Bill Ref"],
            [["PR-0001", "Amazon.com", "USD", "2026-02-15", "INV-778"]],
        )
        row = parse_source_rows(table, VENDOR_BILL_LAYOUT).rows[0]
        assert row.key == "PR-0001"
        assert row.counterparty == "Amazon.com"
        assert row.due_date == date(2026, 2, 15)
        assert row.external_reference == "INV-778"

    def test_row_timestamp(self):
        sheet = parse_source_rows(Table("PO", PO_HEADERS, [PO_ROW]), PURCHASE_ORDER_LAYOUT)
        assert row_timestamp(sheet.rows[0]) == "2026-01-19 07:45:33"

        untimed = sheet.rows[0]
        untimed.timestamp = None
        assert row_timestamp(untimed, now=datetime(2026, 3, 1, 9, 0, 0)) == "2026-03-01 09:00:00"


class TestLineItems:
    """Line table parsing."""

    def test_grouped_by_key_in_sheet_order(self):
        table = Table("Items", ITEM_HEADERS, [
            ["EPR-1", "Books", "10", "5.00", "", "", "10%"],
            ["EPR-2", "Pens", "2", "1.50", "", "", ""],
            ["EPR-1", "Paper", "", "3", "", "", "1"],
            ["", "Orphan", "1", "1", "", "", ""],
        ])
        lines = parse_line_items(table, PURCHASE_ORDER_LAYOUT)

        assert list(lines) == ["EPR-1", "EPR-2"]
        books, paper = lines["EPR-1"]
        assert books.discount == Decimal("5")
        assert books.discount_raw == "10%"
        assert paper.quantity == Decimal("1")
        assert paper.discount == Decimal("1")
        assert lines["EPR-2"][0].discount == Decimal("0")

    def test_discount_column_by_position(self):
        headers = ["EPR", "Name", "Quantity", "Unit Price", "Item Number", "Notes", "Enter discount here"]
        table = Table("Items", headers, [["EPR-1", "Books", "10", "5", "", "", "2.50"]])
        assert parse_line_items(table, PURCHASE_ORDER_LAYOUT)["EPR-1"][0].discount == Decimal("2.50")

    def test_item_reference(self):
        table = Table("Items", ITEM_HEADERS, [["EPR-1", "Hymn book", "2", "12.50", "SM-001", "", ""]])
        assert parse_line_items(table, PURCHASE_ORDER_LAYOUT)["EPR-1"][0].item_reference == "SM-001"

    def test_missing_price_column(self):
        table = Table("Items", ["EPR", "Name", "Quantity"], [])
        with pytest.raises(SetupFailure, match="Unit Price column not found"):
            parse_line_items(table, PURCHASE_ORDER_LAYOUT)

    def test_bill_lines_default_quantity_and_coding(self):
        table = Table(
            "Line Item",
            ["PR ID", "Subcode", "Budget Code", "Location", "Payment Reference", "Price", "Currency"],
            [["PR-0001", "88000", "OPS", "Kuala Lumpur", "Piano tuning", "120.00", "USD"]],
        )
        line = parse_line_items(table, VENDOR_BILL_LAYOUT)["PR-0001"][0]
        assert line.quantity == Decimal("1")
        assert line.unit_price == Decimal("120.00")
        assert (line.subcode, line.budget_code, line.location, line.currency) == ("88000", "OPS", "Kuala Lumpur", "USD")

    def test_expense_line_name_falls_back_to_category(self):
        table = Table(
            "Line Item",
            ["PR ID", "Category", "Amount", "Expense Date", "Memo"],
            [["PR-0002", "Travel", "30", "2026-01-10", ""]],
        )
        line = parse_line_items(table, EXPENSE_REPORT_LAYOUT)["PR-0002"][0]
        assert line.name == "Travel"
        assert line.category == "Travel"
        assert line.expense_date == date(2026, 1, 10)


class TestLayouts:

    def test_layout_for_each_kind(self):
        assert layout_for(TransactionKind.PURCHASE_ORDER) is PURCHASE_ORDER_LAYOUT
        assert layout_for(TransactionKind.VENDOR_BILL).header_table == "PR"
        assert layout_for(TransactionKind.EXPENSE_REPORT).workbook_name == "expenses"

    def test_load_intake(self, po_workbook):
        sheet = load_intake(po_workbook, PURCHASE_ORDER_LAYOUT)
        assert [row.key for row in sheet.rows] == ["EPR-0042"]
        assert [line.name for line in sheet.lines_for("EPR-0042")] == ["Books"]
        assert sheet.lines_for("EPR-9999") == []
