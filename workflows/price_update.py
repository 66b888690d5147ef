"""Discount Price Update Run.

For every synced transaction with discounted sheet lines, rewrite the
matched ERP lines to the discount-adjusted values.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from connectors.erp_base import TransactionTransport
from connectors.tabular import TabularStore
from core.errors import ReconcilerError
from core.observability.logging import get_logger, log_run_event, with_correlation
from intake.layouts import PURCHASE_ORDER_LAYOUT, SheetLayout
from line_matcher.catalog import CatalogItemCache
from reconciliation.engine import discounted_lines
from reconciliation.price_update import PriceUpdatePlan, apply_price_updates, plan_price_updates
from workflows.synced import iter_synced_transactions

logger = get_logger(__name__)


@dataclass
class PriceUpdateResult:
    plans: List[PriceUpdatePlan] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def summary(self, dry_run: bool = False) -> List[str]:
        updated_label = "Would update" if dry_run else "Updated"
        return [
            f"{updated_label}: {len(self.updated)}",
            f"Already correct: {len(self.unchanged)}",
            f"Skipped (no discounted lines): {len(self.skipped)}",
            f"Not found in ERP: {len(self.missing)}",
            f"Errors: {len(self.errors)}",
        ] + [f"  - {message}" for message in self.errors]


def run_price_update(
    store: TabularStore,
    transport: TransactionTransport,
    layout: SheetLayout = PURCHASE_ORDER_LAYOUT,
    catalog: Optional[CatalogItemCache] = None,
    dry_run: bool = False,
    transaction_number: Optional[str] = None,
    delay_seconds: float = 0.1,
    sleep: Callable[[float], None] = time.sleep,
    run_id: Optional[str] = None,
) -> PriceUpdateResult:
    """Plan and apply discount-adjusted prices for synced transactions."""
    result = PriceUpdateResult()
    run_id = run_id or f"prices-{uuid.uuid4().hex[:12]}"
    updates_sent = 0

    with with_correlation(run_id=run_id, transaction_kind=layout.kind.value, scope=transport.scope.value):
        log_run_event("Price update started", dry_run=dry_run, transaction_number=transaction_number)

        for synced in iter_synced_transactions(store, transport, layout, transaction_number):
            number = synced.transaction_number
            with with_correlation(source_row_key=synced.row_key, transaction_number=number):
                if synced.error:
                    result.errors.append(f"{number}: {synced.error}")
                    continue
                if not synced.found:
                    result.missing.append(number)
                    continue
                if not discounted_lines(synced.sheet_lines):
                    result.skipped.append(number)
                    continue

                plan = plan_price_updates(synced.transaction, synced.sheet_lines, catalog)
                result.plans.append(plan)
                if not plan.has_changes:
                    result.unchanged.append(number)
                    continue

                if not dry_run and updates_sent > 0 and delay_seconds > 0:
                    sleep(delay_seconds)
                try:
                    outcome = apply_price_updates(plan, transport, dry_run=dry_run)
                except ReconcilerError as e:
                    logger.error(f"Failed to update {number}: {e}")
                    result.errors.append(f"{number}: {e}")
                    continue
                except Exception as e:
                    logger.exception(f"Unexpected error updating {number}")
                    result.errors.append(f"{number}: {e}")
                    continue

                if outcome is None or outcome.success:
                    result.updated.append(number)
                    if outcome is not None:
                        updates_sent += 1
                else:
                    result.errors.append(f"{number}: {outcome.error}")

        log_run_event(
            "Price update finished",
            updated=len(result.updated),
            unchanged=len(result.unchanged),
            errors=len(result.errors),
        )
    return result
