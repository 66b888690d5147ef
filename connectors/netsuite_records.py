"""ERP record shapes.

These map to the transaction records exchanged with the ERP (purchaseOrder,
vendorBill, expenseReport). List containers may hold a single object instead
of a list and nested references may be missing; both are normalized here so
the rest of the reconciler only ever sees ExistingTransaction with typed
PurchaseOrderLine / ExpenseLine entries.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from typing_extensions import Annotated

from models.transactions import (
    ExistingTransaction,
    ExpenseLine,
    PurchaseOrderLine,
    ResolvedLine,
    TransactionDraft,
    TransactionKind,
)
from pricing.calculator import quantize_money


RECORD_TYPES = {
    TransactionKind.PURCHASE_ORDER: "purchaseOrder",
    TransactionKind.VENDOR_BILL: "vendorBill",
    TransactionKind.EXPENSE_REPORT: "expenseReport",
}


def _as_list(value):
    """A list container may hold one object, a list, or nothing."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


# =============================================================================
# Record Models
# =============================================================================

class NSBaseModel(BaseModel):
    """Base model for ERP records."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NSRecordRef(NSBaseModel):
    internalId: Optional[str] = Field(None, alias="internalId")
    name: Optional[str] = Field(None, alias="name")


class NSItemLine(NSBaseModel):
    line: Optional[int] = Field(None, alias="line")
    item: Optional[NSRecordRef] = Field(None, alias="item")
    itemNumber: Optional[str] = Field(None, alias="itemNumber")
    description: Optional[str] = Field(None, alias="description")
    quantity: Optional[Decimal] = Field(None, alias="quantity")
    rate: Optional[Decimal] = Field(None, alias="rate")
    amount: Optional[Decimal] = Field(None, alias="amount")
    department: Optional[NSRecordRef] = Field(None, alias="department")
    location: Optional[NSRecordRef] = Field(None, alias="location")


class NSExpenseLine(NSBaseModel):
    line: Optional[int] = Field(None, alias="line")
    account: Optional[NSRecordRef] = Field(None, alias="account")
    category: Optional[NSRecordRef] = Field(None, alias="category")
    amount: Optional[Decimal] = Field(None, alias="amount")
    memo: Optional[str] = Field(None, alias="memo")
    expenseDate: Optional[date] = Field(None, alias="expenseDate")
    department: Optional[NSRecordRef] = Field(None, alias="department")
    location: Optional[NSRecordRef] = Field(None, alias="location")


class NSItemList(NSBaseModel):
    item: Annotated[List[NSItemLine], BeforeValidator(_as_list)] = Field(default_factory=list, alias="item")


class NSExpenseList(NSBaseModel):
    expense: Annotated[List[NSExpenseLine], BeforeValidator(_as_list)] = Field(default_factory=list, alias="expense")


class NSTransactionRecord(NSBaseModel):
    """A transaction record as stored by the ERP."""
    internalId: str = Field(..., alias="internalId")
    recordType: str = Field(..., alias="recordType")
    tranId: Optional[str] = Field(None, alias="tranId")
    memo: Optional[str] = Field(None, alias="memo")
    tranDate: Optional[date] = Field(None, alias="tranDate")
    dueDate: Optional[date] = Field(None, alias="dueDate")
    entity: Optional[NSRecordRef] = Field(None, alias="entity")
    currency: Optional[NSRecordRef] = Field(None, alias="currency")
    itemList: Optional[NSItemList] = Field(None, alias="itemList")
    expenseList: Optional[NSExpenseList] = Field(None, alias="expenseList")


# =============================================================================
# Decoding
# =============================================================================

def _ref_id(ref: Optional[NSRecordRef]) -> Optional[str]:
    return ref.internalId if ref is not None else None


def _kind_for_record_type(record_type: str) -> TransactionKind:
    for kind, name in RECORD_TYPES.items():
        if name == record_type:
            return kind
    raise ValueError(f"Unknown record type: {record_type}")


def decode_transaction(raw: Dict[str, Any]) -> ExistingTransaction:
    """Decode a raw ERP record into an ExistingTransaction."""
    record = NSTransactionRecord.model_validate(raw)

    lines: List[Any] = []
    for item in (record.itemList.item if record.itemList else []):
        quantity = item.quantity if item.quantity is not None else Decimal("0")
        rate = item.rate
        if rate is None and item.amount is not None and quantity:
            rate = item.amount / quantity
        lines.append(PurchaseOrderLine(
            line_number=item.line,
            item_ref_id=_ref_id(item.item),
            item_name=item.item.name if item.item else None,
            item_number=item.itemNumber,
            description=item.description,
            quantity=quantity,
            rate=rate if rate is not None else Decimal("0"),
            department_id=_ref_id(item.department),
            location_id=_ref_id(item.location),
        ))

    for expense in (record.expenseList.expense if record.expenseList else []):
        account = expense.account or expense.category
        lines.append(ExpenseLine(
            line_number=expense.line,
            account_ref_id=_ref_id(account),
            account_name=account.name if account else None,
            memo=expense.memo,
            amount=expense.amount if expense.amount is not None else Decimal("0"),
            department_id=_ref_id(expense.department),
            location_id=_ref_id(expense.location),
        ))

    return ExistingTransaction(
        kind=_kind_for_record_type(record.recordType),
        external_id=record.internalId,
        transaction_number=record.tranId,
        memo=record.memo,
        lines=lines,
    )


# =============================================================================
# Encoding
# =============================================================================

def _ref(entity) -> Optional[Dict[str, Any]]:
    if entity is None:
        return None
    return {"internalId": entity.external_id, "name": entity.display_name}


def _money(value: Decimal) -> str:
    return str(quantize_money(value))


def _encode_item_line(number: int, line: ResolvedLine) -> Dict[str, Any]:
    return {
        "line": number,
        "item": _ref(line.matched_reference),
        "itemNumber": line.matched_reference.code if line.matched_reference else None,
        "description": line.description or line.name,
        "quantity": str(line.quantity),
        "rate": str(line.adjusted_unit_price),
        "amount": _money(line.line_amount),
        "department": _ref(line.department_ref),
        "location": _ref(line.location_ref),
    }


def _encode_expense_line(number: int, line: ResolvedLine, kind: TransactionKind) -> Dict[str, Any]:
    encoded = {
        "line": number,
        "account": _ref(line.account_ref),
        "amount": _money(line.line_amount),
        "memo": line.description or line.name,
        "department": _ref(line.department_ref),
        "location": _ref(line.location_ref),
    }
    if kind == TransactionKind.EXPENSE_REPORT:
        encoded["category"] = _ref(line.category_ref)
        encoded["expenseDate"] = line.expense_date.isoformat() if line.expense_date else None
    return encoded


def encode_draft(draft: TransactionDraft, internal_id: str, transaction_number: str) -> Dict[str, Any]:
    """Encode a draft as an ERP record."""
    record: Dict[str, Any] = {
        "internalId": internal_id,
        "recordType": RECORD_TYPES[draft.kind],
        "tranId": transaction_number,
        "memo": draft.memo,
        "tranDate": draft.transaction_date.isoformat(),
        "dueDate": draft.due_date.isoformat() if draft.due_date else None,
        "entity": _ref(draft.counterparty_ref),
        "currency": _ref(draft.currency_ref),
    }
    if draft.catalog_lines:
        record["itemList"] = {
            "item": [_encode_item_line(i, line) for i, line in enumerate(draft.catalog_lines, start=1)]
        }
    if draft.generic_lines:
        record["expenseList"] = {
            "expense": [
                _encode_expense_line(i, line, draft.kind)
                for i, line in enumerate(draft.generic_lines, start=1)
            ]
        }
    return record


def encode_existing_lines(lines) -> Dict[str, Any]:
    """Encode typed lines back into item/expense list containers."""
    items = []
    expenses = []
    for line in lines:
        if isinstance(line, PurchaseOrderLine):
            items.append({
                "line": line.line_number,
                "item": {"internalId": line.item_ref_id, "name": line.item_name},
                "itemNumber": line.item_number,
                "description": line.description,
                "quantity": str(line.quantity),
                "rate": str(line.rate),
                "amount": _money(line.current_value),
                "department": {"internalId": line.department_id} if line.department_id else None,
                "location": {"internalId": line.location_id} if line.location_id else None,
            })
        else:
            expenses.append({
                "line": line.line_number,
                "account": {"internalId": line.account_ref_id, "name": line.account_name},
                "amount": _money(line.amount),
                "memo": line.memo,
                "department": {"internalId": line.department_id} if line.department_id else None,
                "location": {"internalId": line.location_id} if line.location_id else None,
            })
    encoded: Dict[str, Any] = {}
    if items:
        encoded["itemList"] = {"item": items}
    if expenses:
        encoded["expenseList"] = {"expense": expenses}
    return encoded
