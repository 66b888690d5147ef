"""Discrepancy audit for discounted transactions.

Exposes high-level function:
- audit(transaction, sheet_lines) -> AuditReport

Read-only: recomputes the expected value of every ERP line from the sheet
(same calculator and matcher as creation time) and diffs it against the
live transaction.
"""

from decimal import Decimal
from enum import Enum
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from line_matcher.catalog import CatalogItemCache
from line_matcher.matcher import LinePair, LineMatcher
from models.reports import Discrepancy
from models.transactions import ExistingTransaction, PurchaseOrderLine, SourceLineItem
from pricing.calculator import MONEY_TOLERANCE, ZERO, adjust, is_negligible, quantize_money


# =============================================================================
# Configuration & Data Structures
# =============================================================================

class CheckStatus(str, Enum):
    PASS = "PASS"
    WARN = "WARN"


class AuditReport(BaseModel):
    """Comparison of one ERP transaction against its sheet lines."""
    transaction_number: Optional[str] = None
    memo: Optional[str] = None
    discrepancies: List[Discrepancy] = Field(default_factory=list, description="Every ERP line, matched or not")
    unmatched_sheet: List[SourceLineItem] = Field(default_factory=list)
    skipped_sheet_lines: int = 0
    erp_total: Decimal = ZERO
    sheet_total: Decimal = ZERO
    positional: bool = False

    @property
    def findings(self) -> List[Discrepancy]:
        return [d for d in self.discrepancies if d.is_discrepant]

    @property
    def total_difference(self) -> Decimal:
        return self.erp_total - self.sheet_total

    @property
    def status(self) -> CheckStatus:
        if self.findings or self.unmatched_sheet:
            return CheckStatus.WARN
        return CheckStatus.PASS

    def summary(self) -> dict:
        return {
            "transaction_number": self.transaction_number,
            "status": self.status.value,
            "lines": len(self.discrepancies),
            "discrepancies": len(self.findings),
            "unmatched_sheet": len(self.unmatched_sheet),
            "erp_total": str(quantize_money(self.erp_total)),
            "sheet_total": str(quantize_money(self.sheet_total)),
            "difference": str(quantize_money(self.total_difference)),
        }


# =============================================================================
# Utility Functions
# =============================================================================

def discounted_lines(sheet_lines: Sequence[SourceLineItem]) -> List[SourceLineItem]:
    """Sheet lines that carry a discount of at least one cent."""
    return [line for line in sheet_lines if not is_negligible(line.discount)]


def _compare(pair: LinePair) -> Discrepancy:
    existing = pair.existing
    current_value = existing.current_value
    is_item = isinstance(existing, PurchaseOrderLine)

    if not pair.matched:
        return Discrepancy(
            line_label=existing.label,
            line_type=existing.line_type,
            current_value=current_value,
            matched=False,
            current_quantity=existing.quantity if is_item else None,
            current_rate=existing.rate if is_item else None,
        )

    sheet = pair.sheet
    price = adjust(sheet.unit_price, sheet.quantity, sheet.discount)
    if is_item:
        expected_value = sheet.quantity * price.unit_price
    else:
        expected_value = price.total_after

    return Discrepancy(
        line_label=existing.label,
        line_type=existing.line_type,
        current_value=current_value,
        expected_value=expected_value,
        delta=current_value - expected_value,
        matched=True,
        match_strategy=pair.strategy.value,
        current_quantity=existing.quantity if is_item else None,
        current_rate=existing.rate if is_item else None,
        expected_quantity=sheet.quantity if is_item else None,
        expected_rate=price.unit_price if is_item else None,
    )


# =============================================================================
# Main Audit
# =============================================================================

def audit(
    transaction: ExistingTransaction,
    sheet_lines: Sequence[SourceLineItem],
    catalog: Optional[CatalogItemCache] = None,
) -> AuditReport:
    """Compare a live transaction against its discounted sheet lines.

    Args:
        transaction: Existing transaction as returned by the transport
        sheet_lines: All sheet lines for the transaction's row key
        catalog: Optional catalog cache for the catalog-name matching step

    Returns:
        AuditReport with one Discrepancy per ERP line (matched or not), the
        discounted sheet lines no ERP line consumed, and grand totals
    """
    considered = discounted_lines(sheet_lines)
    result = LineMatcher(catalog).match(considered, transaction.lines)

    discrepancies = [_compare(pair) for pair in result.pairs]
    sheet_total = sum(
        (adjust(line.unit_price, line.quantity, line.discount).total_after for line in sheet_lines),
        ZERO,
    )

    return AuditReport(
        transaction_number=transaction.transaction_number,
        memo=transaction.memo,
        discrepancies=discrepancies,
        unmatched_sheet=result.unmatched_sheet,
        skipped_sheet_lines=len(sheet_lines) - len(considered),
        erp_total=transaction.total_amount,
        sheet_total=sheet_total,
        positional=result.positional,
    )


def format_report(report: AuditReport) -> List[str]:
    """Render an audit report as printable lines."""
    lines = [f"=== {report.transaction_number or '?'} (memo: {report.memo or '-'}) ==="]
    for d in report.discrepancies:
        marker = "!" if d.is_discrepant else " "
        expected = quantize_money(d.expected_value) if d.expected_value is not None else "no match"
        lines.append(
            f" {marker} [{d.line_type}] {d.line_label}: "
            f"current {quantize_money(d.current_value)}, expected {expected}"
        )

    if report.unmatched_sheet:
        lines.append(f"  Sheet lines with discounts not matched in ERP ({len(report.unmatched_sheet)}):")
        for line in report.unmatched_sheet:
            price = adjust(line.unit_price, line.quantity, line.discount)
            lines.append(
                f"    - {line.name}: discount {quantize_money(price.discount_amount)}, "
                f"total after {quantize_money(price.total_after)}"
            )

    difference = report.total_difference
    if abs(difference) <= MONEY_TOLERANCE:
        direction = "match"
    elif difference > 0:
        direction = "ERP is higher"
    else:
        direction = "sheet is higher"
    lines.append(
        f"  ERP total {quantize_money(report.erp_total)}, sheet total "
        f"{quantize_money(report.sheet_total)}, difference {quantize_money(difference)} ({direction})"
    )
    lines.append(f"  Status: {report.status.value}")
    return lines
