"""Models Package.

Value objects shared by every component:
- Reference entities (cached ERP master records)
- Sheet lines, resolved lines and transaction drafts
- Existing ERP transactions decoded into typed lines
- Sync records, discrepancies and the run report
"""

from models.refs import (
    Scope,
    ReferenceKind,
    ReferenceEntity,
)

from models.transactions import (
    TransactionKind,
    LineType,
    LineMatchStrategy,
    SourceLineItem,
    ResolvedLine,
    TransactionDraft,
    PurchaseOrderLine,
    ExpenseLine,
    ExistingLine,
    ExistingTransaction,
)

from models.reports import (
    SyncOutcome,
    SyncRecord,
    Discrepancy,
    RunReport,
)

__all__ = [
    # References
    "Scope",
    "ReferenceKind",
    "ReferenceEntity",
    # Transactions
    "TransactionKind",
    "LineType",
    "LineMatchStrategy",
    "SourceLineItem",
    "ResolvedLine",
    "TransactionDraft",
    "PurchaseOrderLine",
    "ExpenseLine",
    "ExistingLine",
    "ExistingTransaction",
    # Reports
    "SyncOutcome",
    "SyncRecord",
    "Discrepancy",
    "RunReport",
]
