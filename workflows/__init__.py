"""Batch drivers.

- SheetSyncRun: intake rows -> ERP transactions (idempotent re-sync)
- run_discrepancy_check: read-only audit of synced transactions
- run_price_update: write discount-adjusted prices back to the ERP
- normalize_subcodes: rewrite legacy subcodes in the workbook
"""

from workflows.discrepancy_check import DiscrepancyCheckResult, run_discrepancy_check
from workflows.price_update import PriceUpdateResult, run_price_update
from workflows.sheet_sync import SheetSyncRun, SyncRunResult
from workflows.subcode_normalization import NormalizationResult, normalize_subcodes

__all__ = [
    "DiscrepancyCheckResult",
    "run_discrepancy_check",
    "PriceUpdateResult",
    "run_price_update",
    "SheetSyncRun",
    "SyncRunResult",
    "NormalizationResult",
    "normalize_subcodes",
]
