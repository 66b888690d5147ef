"""Write discount-adjusted prices back to existing transactions.

plan_price_updates() pairs the discounted sheet lines with the live lines
and computes the replacement line list; apply_price_updates() sends it to
the transport unless nothing changed or the run is a dry run.

- Matched item line: quantity and rate from the sheet (rate = adjusted unit price)
- Matched expense line: amount = total after discount
- Unmatched line: kept as is
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence

from connectors.erp_base import TransactionTransport, TransportResult
from core.observability.logging import get_logger
from line_matcher.catalog import CatalogItemCache
from line_matcher.matcher import LineMatcher
from models.transactions import ExistingTransaction, PurchaseOrderLine, SourceLineItem
from pricing.calculator import MONEY_TOLERANCE, adjust
from reconciliation.engine import discounted_lines

logger = get_logger(__name__)


@dataclass(frozen=True)
class PriceChange:
    line_label: str
    line_type: str
    field_name: str
    current: Decimal
    new: Decimal


@dataclass
class PriceUpdatePlan:
    transaction: ExistingTransaction
    lines: List = field(default_factory=list)
    changes: List[PriceChange] = field(default_factory=list)
    unmatched_sheet: List[SourceLineItem] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)


def _changed(current: Decimal, new: Decimal) -> bool:
    return abs(current - new) > MONEY_TOLERANCE


def plan_price_updates(
    transaction: ExistingTransaction,
    sheet_lines: Sequence[SourceLineItem],
    catalog: Optional[CatalogItemCache] = None,
) -> PriceUpdatePlan:
    """Compute the updated line list for one transaction."""
    result = LineMatcher(catalog).match(discounted_lines(sheet_lines), transaction.lines)
    plan = PriceUpdatePlan(transaction=transaction, unmatched_sheet=result.unmatched_sheet)

    for pair in result.pairs:
        existing = pair.existing
        if not pair.matched:
            plan.lines.append(existing)
            continue

        price = adjust(pair.sheet.unit_price, pair.sheet.quantity, pair.sheet.discount)

        if isinstance(existing, PurchaseOrderLine):
            update = {}
            if _changed(existing.rate, price.unit_price):
                plan.changes.append(PriceChange(existing.label, "item", "rate", existing.rate, price.unit_price))
                update["rate"] = price.unit_price
            if _changed(existing.quantity, pair.sheet.quantity):
                plan.changes.append(PriceChange(
                    existing.label, "item", "quantity", existing.quantity, pair.sheet.quantity,
                ))
                update["quantity"] = pair.sheet.quantity
            plan.lines.append(existing.model_copy(update=update) if update else existing)
        else:
            if _changed(existing.amount, price.total_after):
                plan.changes.append(PriceChange(
                    existing.label, "expense", "amount", existing.amount, price.total_after,
                ))
                plan.lines.append(existing.model_copy(update={"amount": price.total_after}))
            else:
                plan.lines.append(existing)

    return plan


def apply_price_updates(
    plan: PriceUpdatePlan,
    transport: TransactionTransport,
    dry_run: bool = False,
) -> Optional[TransportResult]:
    """Send the plan to the ERP. Returns None when nothing was sent."""
    number = plan.transaction.transaction_number
    if not plan.has_changes:
        logger.info(f"No price changes for {number}")
        return None
    if dry_run:
        logger.info(f"[dry run] {len(plan.changes)} change(s) for {number} not sent")
        return None

    result = transport.update(plan.transaction.kind, plan.transaction.external_id, plan.lines)
    if result.success:
        logger.info(f"Updated {len(plan.changes)} value(s) on {number}")
    else:
        logger.error(f"Failed to update {number}: {result.error}")
    return result
