"""Discrepancy Check Run.

Read-only batch audit: every synced transaction is compared against its
discounted sheet lines. Nothing is written to the ERP or the workbook.
"""

import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from connectors.erp_base import TransactionTransport
from connectors.tabular import TabularStore
from core.observability.logging import get_logger, log_run_event, with_correlation
from intake.layouts import PURCHASE_ORDER_LAYOUT, SheetLayout
from line_matcher.catalog import CatalogItemCache
from reconciliation.engine import AuditReport, CheckStatus, audit, discounted_lines
from workflows.synced import iter_synced_transactions

logger = get_logger(__name__)


@dataclass
class DiscrepancyCheckResult:
    reports: List[AuditReport] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def checked(self) -> int:
        return len(self.reports)

    @property
    def with_discrepancies(self) -> List[AuditReport]:
        return [r for r in self.reports if r.status == CheckStatus.WARN]

    def summary(self) -> List[str]:
        return [
            f"Transactions checked: {self.checked}",
            f"Transactions with discrepancies: {len(self.with_discrepancies)}",
            f"Skipped (no discounted lines): {len(self.skipped)}",
            f"Not found in ERP: {len(self.missing)}",
            f"Errors: {len(self.errors)}",
        ] + [f"  - {message}" for message in self.errors]


def run_discrepancy_check(
    store: TabularStore,
    transport: TransactionTransport,
    layout: SheetLayout = PURCHASE_ORDER_LAYOUT,
    catalog: Optional[CatalogItemCache] = None,
    transaction_number: Optional[str] = None,
    row_key: Optional[str] = None,
    run_id: Optional[str] = None,
) -> DiscrepancyCheckResult:
    """Audit every synced transaction (or just one) of a layout."""
    result = DiscrepancyCheckResult()
    run_id = run_id or f"audit-{uuid.uuid4().hex[:12]}"

    with with_correlation(run_id=run_id, transaction_kind=layout.kind.value, scope=transport.scope.value):
        log_run_event("Discrepancy check started", transaction_number=transaction_number, row_key=row_key)

        for synced in iter_synced_transactions(store, transport, layout, transaction_number, row_key):
            with with_correlation(source_row_key=synced.row_key, transaction_number=synced.transaction_number):
                if synced.error:
                    result.errors.append(f"{synced.transaction_number}: {synced.error}")
                    continue
                if not synced.found:
                    result.missing.append(synced.transaction_number)
                    continue

                if not discounted_lines(synced.sheet_lines):
                    result.skipped.append(synced.transaction_number)
                    continue

                report = audit(synced.transaction, synced.sheet_lines, catalog)
                result.reports.append(report)
                if report.status == CheckStatus.WARN:
                    logger.warning(
                        f"Discrepancies found on {synced.transaction_number}",
                        extra_fields=report.summary(),
                    )

        log_run_event(
            "Discrepancy check finished",
            checked=result.checked,
            with_discrepancies=len(result.with_discrepancies),
            missing=len(result.missing),
            errors=len(result.errors),
        )
    return result
