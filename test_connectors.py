"""Tests for the ERP record codec, the local ledger transport and the CSV workbook."""

import json
from datetime import date
from decimal import Decimal

import pytest

from conftest import make_entity
from connectors import (
    CsvWorkbook,
    ERPConfig,
    LocalLedgerTransport,
    create_connector,
    decode_transaction,
    encode_draft,
    list_available_connectors,
)
from core.errors import SetupFailure, TransportFailure
from models.refs import ReferenceKind, Scope
from models.transactions import (
    ExpenseLine,
    PurchaseOrderLine,
    ResolvedLine,
    TransactionDraft,
    TransactionKind,
)


VENDOR = make_entity(ReferenceKind.VENDOR, "101", "Amazon.com")
ACCOUNT = make_entity(ReferenceKind.ACCOUNT, "501", "Teaching Resources", code="88000")
ITEM = make_entity(ReferenceKind.ITEM, "301", "Sheet Music", code="SM-001")


def generic_line(name="Books", amount=Decimal("45")):
    return ResolvedLine(
        name=name,
        quantity=Decimal("10"),
        unit_price=Decimal("5"),
        adjusted_unit_price=amount / Decimal("10"),
        line_amount=amount,
        account_ref=ACCOUNT,
        description=f"10 unit - {name}",
    )


def catalog_line():
    return ResolvedLine(
        name="Hymn book",
        quantity=Decimal("2"),
        unit_price=Decimal("12.50"),
        adjusted_unit_price=Decimal("12.50"),
        line_amount=Decimal("25.00"),
        matched_reference=ITEM,
        description="Hymn book",
    )


def draft(memo="EPR-0042", kind=TransactionKind.PURCHASE_ORDER, external_reference=None, lines=None):
    return TransactionDraft(
        kind=kind,
        counterparty_ref=VENDOR,
        memo=memo,
        transaction_date=date(2026, 1, 19),
        generic_lines=lines if lines is not None else [generic_line()],
        external_reference=external_reference,
    )


def make_ledger(tmp_path, environment="sandbox"):
    return LocalLedgerTransport(ERPConfig(
        connector_type="local_ledger",
        environment=environment,
        custom_settings={"ledger_path": str(tmp_path / "ledger.json")},
    ))


class TestRecordCodec:
    """Record shape normalization at the transport boundary."""

    def test_single_object_list_container(self):
        transaction = decode_transaction({
            "internalId": "9",
            "recordType": "purchaseOrder",
            "tranId": "PO-000009",
            "memo": "EPR-0009",
            "itemList": {"item": {"item": {"internalId": "301"}, "quantity": "2", "rate": "12.5"}},
        })
        assert transaction.kind == TransactionKind.PURCHASE_ORDER
        assert len(transaction.item_lines) == 1
        assert transaction.item_lines[0].current_value == Decimal("25.0")

    def test_missing_rate_falls_back_to_amount(self):
        transaction = decode_transaction({
            "internalId": "9",
            "recordType": "purchaseOrder",
            "itemList": {"item": [{"quantity": "4", "amount": "10"}]},
        })
        assert transaction.item_lines[0].rate == Decimal("2.5")
        assert transaction.item_lines[0].item_ref_id is None

    def test_expense_category_used_as_account(self):
        transaction = decode_transaction({
            "internalId": "3",
            "recordType": "expenseReport",
            "expenseList": {"expense": [{"category": {"internalId": "401", "name": "Travel"}, "amount": "30"}]},
        })
        line = transaction.expense_lines[0]
        assert line.account_ref_id == "401"
        assert line.amount == Decimal("30")

    def test_unknown_record_type(self):
        with pytest.raises(ValueError):
            decode_transaction({"internalId": "1", "recordType": "journalEntry"})

    def test_encode_then_decode_keeps_lines(self):
        record = encode_draft(draft(lines=[generic_line()]).model_copy(update={"catalog_lines": [catalog_line()]}), "5", "PO-000005")

        assert record["itemList"]["item"][0]["itemNumber"] == "SM-001"
        assert record["expenseList"]["expense"][0]["amount"] == "45.00"
        assert record["expenseList"]["expense"][0]["memo"] == "10 unit - Books"

        transaction = decode_transaction(record)
        assert isinstance(transaction.lines[0], PurchaseOrderLine)
        assert isinstance(transaction.lines[1], ExpenseLine)
        assert transaction.total_amount == Decimal("70.00")


class TestLocalLedger:
    """JSON ledger transport."""

    def test_registered(self):
        assert "local_ledger" in list_available_connectors()

    def test_factory(self, tmp_path):
        transport = create_connector(ERPConfig(
            connector_type="LOCAL_LEDGER",
            custom_settings={"ledger_path": str(tmp_path / "l.json")},
        ))
        assert isinstance(transport, LocalLedgerTransport)

    def test_factory_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown connector type"):
            create_connector(ERPConfig(connector_type="carrier_pigeon"))

    def test_requires_ledger_path(self):
        with pytest.raises(ValueError):
            LocalLedgerTransport(ERPConfig(connector_type="local_ledger"))

    def test_create_assigns_sequential_numbers(self, tmp_path):
        ledger = make_ledger(tmp_path)
        first = ledger.create(draft("EPR-1"))
        second = ledger.create(draft("EPR-2"))

        assert first.success and second.success
        assert first.transaction_number == "PO-000001"
        assert second.transaction_number == "PO-000002"
        assert second.external_id == "2"

    def test_find_by_number_and_memo(self, tmp_path):
        ledger = make_ledger(tmp_path)
        ledger.create(draft("EPR-0042"))

        found = ledger.find_by_number(TransactionKind.PURCHASE_ORDER, " PO-000001 ")
        assert found.memo == "EPR-0042"
        assert found.expense_lines[0].amount == Decimal("45.00")
        assert ledger.find_by_memo(TransactionKind.PURCHASE_ORDER, "EPR-0042")
        assert not ledger.find_by_memo(TransactionKind.PURCHASE_ORDER, "EPR-004")
        assert not ledger.find_by_memo(TransactionKind.VENDOR_BILL, "EPR-0042")
        assert ledger.find_by_number(TransactionKind.PURCHASE_ORDER, "") is None

    def test_requested_number_and_duplicates(self, tmp_path):
        ledger = make_ledger(tmp_path)
        bill = draft("PR-0001", kind=TransactionKind.VENDOR_BILL, external_reference="PR-0001")

        assert ledger.create(bill).transaction_number == "PR-0001"
        duplicate = ledger.create(bill)
        assert not duplicate.success
        assert duplicate.raw_response["code"] == "DUP_RCRD"

    def test_scopes_are_separate(self, tmp_path):
        make_ledger(tmp_path, "sandbox").create(draft("EPR-0042"))
        production = make_ledger(tmp_path, "production")

        assert production.scope == Scope.PRODUCTION
        assert not production.find_by_memo(TransactionKind.PURCHASE_ORDER, "EPR-0042")
        assert production.create(draft("EPR-0042")).transaction_number == "PO-000001"

    def test_update_replaces_lines(self, tmp_path):
        ledger = make_ledger(tmp_path)
        created = ledger.create(draft())
        existing = ledger.find_by_number(TransactionKind.PURCHASE_ORDER, created.transaction_number)

        new_lines = [existing.lines[0].model_copy(update={"amount": Decimal("40")})]
        result = ledger.update(TransactionKind.PURCHASE_ORDER, created.external_id, new_lines)

        assert result.success
        refreshed = ledger.find_by_number(TransactionKind.PURCHASE_ORDER, created.transaction_number)
        assert refreshed.expense_lines[0].amount == Decimal("40.00")
        assert refreshed.memo == "EPR-0042"

    def test_update_unknown_record(self, tmp_path):
        result = make_ledger(tmp_path).update(TransactionKind.PURCHASE_ORDER, "404", [])
        assert not result.success
        assert result.raw_response["code"] == "RCRD_DSNT_EXIST"

    def test_corrupt_ledger(self, tmp_path):
        (tmp_path / "ledger.json").write_text("{not json")
        with pytest.raises(TransportFailure):
            make_ledger(tmp_path).find_by_memo(TransactionKind.PURCHASE_ORDER, "EPR-1")

    def test_ledger_file_layout(self, tmp_path):
        make_ledger(tmp_path).create(draft())
        data = json.loads((tmp_path / "ledger.json").read_text())
        assert data["sandbox"]["next_id"] == 2
        assert data["sandbox"]["records"][0]["recordType"] == "purchaseOrder"
        assert not (tmp_path / "ledger.json.tmp").exists()


class TestCsvWorkbook:
    """CSV-directory workbook."""

    def test_write_and_read(self, tmp_path):
        workbook = CsvWorkbook(tmp_path)
        workbook.write_rows("PO", [["EPR-1", "Amazon"]], headers=["ID", "Vendor"])
        workbook.write_rows("PO", [["EPR-2", None]])

        table = workbook.read_rows("PO")
        assert table.headers == ["ID", "Vendor"]
        assert table.rows == [["EPR-1", "Amazon"], ["EPR-2", ""]]
        assert table.records()[1] == {"ID": "EPR-2", "Vendor": ""}
        assert table.column_index("vendor") == 1
        assert len(table) == 2

    def test_missing_table(self, tmp_path):
        workbook = CsvWorkbook(tmp_path)
        assert not workbook.has_table("PO")
        with pytest.raises(SetupFailure):
            workbook.read_rows("PO")
        with pytest.raises(SetupFailure):
            workbook.write_rows("PO", [["x"]])

    def test_update_range_adds_missing_column(self, tmp_path):
        workbook = CsvWorkbook(tmp_path)
        workbook.write_rows("PO", [["EPR-1"], ["EPR-2"]], headers=["ID"])
        workbook.update_range("PO", 1, "PO", "PO-000007")

        table = workbook.read_rows("PO")
        assert table.headers == ["ID", "PO"]
        assert table.rows[1] == ["EPR-2", "PO-000007"]

    def test_delete_rows(self, tmp_path):
        workbook = CsvWorkbook(tmp_path)
        workbook.write_rows("PO", [["1"], ["2"], ["3"]], headers=["ID"])
        workbook.delete_rows("PO", 1)
        assert workbook.read_rows("PO").rows == [["1"], ["3"]]
        with pytest.raises(IndexError):
            workbook.delete_rows("PO", 5)
