"""Shared fixtures: a small reference data set, a tmp ledger and a tmp workbook."""

import pytest

from connectors import CsvWorkbook, ERPConfig, LocalLedgerTransport
from models.refs import ReferenceEntity, ReferenceKind, Scope
from reference_resolver.resolver import ReferenceResolver
from reference_resolver.sources import InMemoryReferenceSource
from transaction_builder.builder import TransactionBuilder


def make_entity(kind, external_id, name, code=None, sandbox=True, **kwargs):
    return ReferenceEntity(
        kind=kind,
        external_id=external_id,
        display_name=name,
        code=code,
        is_sandbox_scope=sandbox,
        **kwargs,
    )


PO_HEADERS = ["Timestamp", "ID", "Vendor", "Budget Code", "Subcode", "Location", "Currency", "PO"]
ITEM_HEADERS = ["EPR", "Name", "Quantity", "Unit Price", "Item Number", "Notes", "Discount"]

PO_ROW = ["2026-01-19 07:45:33", "EPR-0042", "Amazon.com (US)", "JB-C030-26", "88000 Teaching Resources", "", "USD", ""]
BOOKS_LINE = ["EPR-0042", "Books", "10", "5.00", "", "", "10%"]


@pytest.fixture
def reference_entities():
    return [
        make_entity(ReferenceKind.VENDOR, "101", "Amazon.com"),
        make_entity(ReferenceKind.VENDOR, "102", "Yamaha Music (Malaysia) Sdn Bhd", allowed_currencies=["MYR"]),
        make_entity(ReferenceKind.VENDOR, "901", "Amazon.com", sandbox=False),
        make_entity(ReferenceKind.EMPLOYEE, "201", "Jane Tan"),
        make_entity(ReferenceKind.CURRENCY, "1", "US Dollar", code="USD"),
        make_entity(ReferenceKind.CURRENCY, "2", "Malaysian Ringgit", code="MYR"),
        make_entity(ReferenceKind.CURRENCY, "3", "British Pound", code="GBP"),
        make_entity(ReferenceKind.DEPARTMENT, "7", "JB-C030"),
        make_entity(ReferenceKind.DEPARTMENT, "8", "OPS"),
        make_entity(ReferenceKind.LOCATION, "11", "Kuala Lumpur"),
        make_entity(ReferenceKind.ACCOUNT, "501", "Teaching Resources", code="88000"),
        make_entity(ReferenceKind.ACCOUNT, "502", "Music Supplies", code="60100"),
        make_entity(ReferenceKind.ITEM, "301", "Sheet Music", code="SM-001", item_type="NonInventoryPurchaseItem"),
        make_entity(ReferenceKind.ITEM, "302", "Teaching Materials_Sales", code="TM-SALES", item_type="NonInventoryPurchaseItem"),
        make_entity(ReferenceKind.ITEM, "303", "Old Textbook", code="OT-001", is_inactive=True),
        make_entity(ReferenceKind.EXPENSE_CATEGORY, "401", "Travel"),
    ]


@pytest.fixture
def reference_source(reference_entities):
    return InMemoryReferenceSource(reference_entities)


@pytest.fixture
def resolver(reference_source):
    return ReferenceResolver(reference_source, Scope.SANDBOX)


@pytest.fixture
def builder(resolver):
    return TransactionBuilder(resolver)


@pytest.fixture
def ledger(tmp_path):
    return LocalLedgerTransport(ERPConfig(
        connector_type="local_ledger",
        environment="sandbox",
        custom_settings={"ledger_path": str(tmp_path / "ledger.json")},
    ))


@pytest.fixture
def po_workbook(tmp_path):
    workbook = CsvWorkbook(tmp_path / "purchase_orders")
    workbook.write_rows("PO", [PO_ROW], headers=PO_HEADERS)
    workbook.write_rows("Items", [BOOKS_LINE], headers=ITEM_HEADERS)
    return workbook
