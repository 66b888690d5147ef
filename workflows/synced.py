"""Iteration over already-synced transactions.

The Synced table holds one row per created transaction (row key plus the
transaction number written back at creation). The audit and price-update
drivers walk it, fetch the live transaction and pair it with the row's
current sheet lines.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional

from connectors.erp_base import TransactionTransport
from connectors.tabular import TabularStore
from core.errors import ReconcilerError
from core.observability.logging import get_logger
from intake.headers import cell, require_column
from intake.layouts import SheetLayout
from intake.rows import parse_line_items
from models.transactions import ExistingTransaction, SourceLineItem

logger = get_logger(__name__)


SYNCED_KEY_COLUMNS = ("ID", "EPR", "EPR ID")


@dataclass
class SyncedTransaction:
    row_index: int
    row_key: str
    transaction_number: str
    transaction: Optional[ExistingTransaction]
    sheet_lines: List[SourceLineItem]
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.transaction is not None


def iter_synced_transactions(
    store: TabularStore,
    transport: TransactionTransport,
    layout: SheetLayout,
    transaction_number: Optional[str] = None,
    row_key: Optional[str] = None,
) -> Iterator[SyncedTransaction]:
    """Yield each synced row with its live transaction and sheet lines.

    A failed lookup is reported on the yielded item's `error` instead of
    ending the iteration.

    Args:
        transaction_number: Only this transaction
        row_key: Only this row key

    Raises:
        SetupFailure: If a table or a required column is missing
    """
    synced = store.read_rows(layout.synced_table)
    number_column = require_column(
        synced.headers, layout.transaction_column, layout.synced_table, "Transaction number",
    )
    key_column = require_column(
        synced.headers, tuple(SYNCED_KEY_COLUMNS) + tuple(layout.row_key), layout.synced_table, "Row key",
    )
    lines_by_key = parse_line_items(store.read_rows(layout.line_table), layout)

    for index, row in enumerate(synced.rows):
        number = cell(row, number_column)
        key = cell(row, key_column)
        if not number or not key:
            continue
        if transaction_number and number != transaction_number:
            continue
        if row_key and key != row_key:
            continue

        error = None
        try:
            transaction = transport.find_by_number(layout.kind, number)
        except ReconcilerError as e:
            logger.error(f"Failed to fetch {layout.kind.label} {number}: {e}")
            transaction, error = None, str(e)
        except Exception as e:
            logger.exception(f"Unexpected error fetching {layout.kind.label} {number}")
            transaction, error = None, f"Unexpected error: {e}"
        else:
            if transaction is None:
                logger.warning(f"{layout.kind.label} {number} (row key {key}) not found in ERP")

        yield SyncedTransaction(
            row_index=index,
            row_key=key,
            transaction_number=number,
            transaction=transaction,
            sheet_lines=list(lines_by_key.get(key, [])),
            error=error,
        )
