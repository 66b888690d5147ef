"""Sheet layouts per transaction kind.

Each kind is entered on a pair of tables: a header table with one row per
transaction and a line table keyed by the same row key. A layout names the
tables and the candidate headers for every column the sync reads.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from models.transactions import TransactionKind


@dataclass(frozen=True)
class SheetLayout:
    kind: TransactionKind
    workbook_name: str
    header_table: str
    line_table: str

    # Header table
    row_key: Sequence[str]
    counterparty: Sequence[str]
    transaction_column: Sequence[str]
    timestamp: Sequence[str]
    currency: Sequence[str]
    transaction_date: Sequence[str]
    budget_code: Sequence[str] = ()
    subcode: Sequence[str] = ()
    location: Sequence[str] = ()
    due_date: Sequence[str] = ()
    transaction_reference: Sequence[str] = ()
    required_header_columns: Sequence[Tuple[str, Sequence[str]]] = ()

    # Line table
    line_key: Sequence[str] = ("EPR", "ID", "EPR ID")
    line_name: Sequence[str] = ()
    line_quantity: Optional[Sequence[str]] = None
    line_price: Sequence[str] = ()
    line_item_reference: Sequence[str] = ("Item Number", "Item", "Reference")
    line_discount: Optional[Sequence[str]] = None
    discount_column_index: Optional[int] = None
    line_subcode: Sequence[str] = ()
    line_budget_code: Sequence[str] = ()
    line_location: Sequence[str] = ()
    line_currency: Sequence[str] = ()
    line_category: Sequence[str] = ()
    line_expense_date: Sequence[str] = ()
    line_memo: Sequence[str] = ()
    required_line_columns: Sequence[str] = ()

    synced_table: str = "Synced"
    errors_table: str = "Errors"


PR_KEY = ("PR ID", "PR", "EPR", "ID")
SUBCODE = ("Subcode", "Account", "Account Number")
BUDGET_CODE = ("Budget Code", "Department", "Dept")
LOCATION = ("Location", "Loc")
LINE_CURRENCY = ("Currency", "Currency Code")
HEADER_CURRENCY = ("Currency", "Currency Code", "Currency ID")
TRANSACTION_DATE = ("Timestamp", "Transaction Date", "Tran Date", "Date", "PR Date")


PURCHASE_ORDER_LAYOUT = SheetLayout(
    kind=TransactionKind.PURCHASE_ORDER,
    workbook_name="purchase_orders",
    header_table="PO",
    line_table="Items",
    row_key=("ID",),
    counterparty=("Vendor",),
    transaction_column=("PO", "Transaction ID", "TranId", "tranId"),
    timestamp=("Timestamp", "Time", "Date", "DateTime", "Created"),
    currency=("Currency",),
    transaction_date=("Timestamp", "Date", "Created"),
    budget_code=("Budget Code",),
    subcode=("Subcode",),
    location=("Location",),
    required_header_columns=(
        ("ID", ("ID",)),
        ("Budget Code", ("Budget Code",)),
        ("Subcode", ("Subcode",)),
        ("Location", ("Location",)),
        ("Vendor", ("Vendor",)),
        ("Currency", ("Currency",)),
    ),
    line_key=("EPR", "ID", "EPR ID"),
    line_name=("Name", "Item Name", "Description"),
    line_quantity=("Quantity", "Qty", "QTY"),
    line_price=("Unit Price", "Price", "Rate", "Unit Cost"),
    line_discount=("Discount", "Enter_Discount_Amount", "Discount Amount"),
    discount_column_index=6,
    required_line_columns=("line_key", "line_name", "line_quantity", "line_price"),
)

VENDOR_BILL_LAYOUT = SheetLayout(
    kind=TransactionKind.VENDOR_BILL,
    workbook_name="bills",
    header_table="PR",
    line_table="Line Item",
    row_key=PR_KEY,
    counterparty=("Payee/Vendor", "Payee", "Vendor"),
    transaction_column=("Bill", "Bill ID", "Bill Number", "NS Bill"),
    timestamp=("Timestamp", "Date", "Created"),
    currency=HEADER_CURRENCY,
    transaction_date=TRANSACTION_DATE,
    due_date=("Due Date", "Payment Due", "Payment Due Date"),
    transaction_reference=("Bill Ref", "Reference", "Reference No", "Tran ID"),
    line_key=PR_KEY,
    line_name=("Payment Reference", "Memo", "Name", "Description", "Item Name"),
    line_price=("Price", "Rate", "Amount", "Unit Price", "Unit Cost"),
    line_subcode=SUBCODE,
    line_budget_code=BUDGET_CODE,
    line_location=LOCATION,
    line_currency=LINE_CURRENCY,
    required_line_columns=("line_key", "line_subcode", "line_budget_code", "line_name", "line_price"),
)

EXPENSE_REPORT_LAYOUT = SheetLayout(
    kind=TransactionKind.EXPENSE_REPORT,
    workbook_name="expenses",
    header_table="PR",
    line_table="Line Item",
    row_key=PR_KEY,
    counterparty=("Employee", "Employee Name", "Employee ID"),
    transaction_column=("Expense Report", "Expense Report ID", "Expense Report Number", "NS Expense Report"),
    timestamp=("Timestamp", "Date", "Created"),
    currency=HEADER_CURRENCY,
    transaction_date=TRANSACTION_DATE,
    transaction_reference=("Expense Report Ref", "Reference", "Reference No", "Tran ID"),
    line_key=PR_KEY,
    line_name=("Memo", "Payment Reference", "Description", "Name"),
    line_price=("Amount", "Price", "Rate"),
    line_subcode=SUBCODE,
    line_budget_code=BUDGET_CODE,
    line_location=LOCATION,
    line_currency=LINE_CURRENCY,
    line_category=("Category", "Expense Category", "Category Name"),
    line_expense_date=("Expense Date", "Date", "Transaction Date"),
    line_memo=("Memo", "Payment Reference", "Description", "Name"),
    required_line_columns=("line_key", "line_category", "line_price", "line_expense_date"),
)


LAYOUTS: Dict[TransactionKind, SheetLayout] = {
    layout.kind: layout
    for layout in (PURCHASE_ORDER_LAYOUT, VENDOR_BILL_LAYOUT, EXPENSE_REPORT_LAYOUT)
}

# CLI short names
KIND_ALIASES = {
    "po": TransactionKind.PURCHASE_ORDER,
    "bill": TransactionKind.VENDOR_BILL,
    "expense": TransactionKind.EXPENSE_REPORT,
}


def layout_for(kind: TransactionKind) -> SheetLayout:
    return LAYOUTS[kind]
