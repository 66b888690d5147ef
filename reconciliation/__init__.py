"""Discrepancy Auditor - read-only comparison of live transactions against the sheet.

Usage:
    from reconciliation import audit

    report = audit(transport.find_by_number(kind, "PO-000042"), sheet_lines)
    if report.status == CheckStatus.WARN:
        ...
"""

from reconciliation.engine import (
    AuditReport,
    CheckStatus,
    audit,
    discounted_lines,
    format_report,
)
from reconciliation.price_update import (
    PriceChange,
    PriceUpdatePlan,
    apply_price_updates,
    plan_price_updates,
)

__all__ = [
    "AuditReport",
    "CheckStatus",
    "audit",
    "discounted_lines",
    "format_report",
    "PriceChange",
    "PriceUpdatePlan",
    "apply_price_updates",
    "plan_price_updates",
]
