"""
Sync State Tracker

Decides whether a source row has already been synced and collects the
workbook side effects of a run:
1. Existence check, first hit wins:
   - the transaction number written back to the row
   - the row key itself used as a document number
   - a transaction whose memo equals the row key
2. Outcome records (one SyncRecord per processed row)
3. Deferred workbook writes: synced rows are copied to the Synced table and
   deleted from the source table; failed and already-existing rows are
   appended to the Errors table

Workbook writes are deferred to flush() so a run never shifts row indices
while it is still reading.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

from connectors.erp_base import TransactionTransport
from connectors.tabular import TabularStore
from core.observability.logging import get_logger
from models.reports import SyncOutcome, SyncRecord
from models.transactions import TransactionKind

logger = get_logger(__name__)


ERROR_HEADERS = [
    "Timestamp",
    "PO_ID",
    "Error_Message",
    "NetSuite_Response",
    "ID",
    "Name",
    "Budget Code",
    "Subcode",
    "Location",
    "Vendor",
]

# Source columns copied into an error row, in ERROR_HEADERS order
ERROR_DETAIL_COLUMNS = ERROR_HEADERS[4:]


class FoundBy(str, Enum):
    TRANSACTION_NUMBER = "transaction_number"
    ROW_KEY_NUMBER = "row_key_number"
    MEMO = "memo"


@dataclass(frozen=True)
class ExistingRef:
    """Where an already-synced transaction was found."""
    found_by: FoundBy
    value: str
    scope: str
    external_id: Optional[str] = None
    transaction_number: Optional[str] = None

    @property
    def description(self) -> str:
        if self.found_by == FoundBy.TRANSACTION_NUMBER:
            return f"Transaction ID (document number) '{self.value}' in {self.scope}"
        if self.found_by == FoundBy.ROW_KEY_NUMBER:
            return f"document number '{self.value}' in {self.scope}"
        return f"memo '{self.value}' in {self.scope}"


def build_error_row(
    timestamp: str,
    row_key: str,
    message: str,
    raw_response: Any = None,
    details: Optional[Mapping[str, Any]] = None,
) -> List[str]:
    """Assemble an Errors table row (see ERROR_HEADERS)."""
    details = details or {}
    response = "" if raw_response is None else str(raw_response)
    return [timestamp, row_key, message, response] + [
        "" if details.get(column) is None else str(details.get(column))
        for column in ERROR_DETAIL_COLUMNS
    ]


@dataclass
class FlushResult:
    synced_written: int = 0
    source_deleted: int = 0
    errors_written: int = 0


class SyncStateTracker:
    """
    Tracks per-row sync state for one batch run.

    Usage:
        tracker = SyncStateTracker(transport, TransactionKind.PURCHASE_ORDER)
        existing = tracker.check_existing(row.transaction_number, row.key)
        if existing is None:
            ...create...
            tracker.record(record)
            tracker.queue_synced(row.index, row.values)
        tracker.flush(workbook, "PO", "Synced", "Errors", source_headers)
    """

    def __init__(
        self,
        transport: TransactionTransport,
        kind: TransactionKind,
        force: bool = False,
    ):
        self.transport = transport
        self.kind = kind
        self.force = force

        self.records: List[SyncRecord] = []
        self._synced: List[Tuple[int, List[Any]]] = []
        self._errors: List[List[str]] = []

    # =========================================================================
    # Existence Check
    # =========================================================================

    def check_existing(
        self,
        transaction_number: Optional[str],
        memo_key: str,
    ) -> Optional[ExistingRef]:
        """Return where the row's transaction already exists, or None.

        Always None in force mode.
        """
        if self.force:
            if transaction_number:
                logger.warning(
                    f"Force mode: re-syncing {memo_key} (existing transaction number: {transaction_number})"
                )
            return None

        scope = self.transport.scope.value
        number = (transaction_number or "").strip()
        key = (memo_key or "").strip()

        if number:
            found = self.transport.find_by_number(self.kind, number)
            if found is not None:
                return ExistingRef(
                    FoundBy.TRANSACTION_NUMBER, number, scope,
                    external_id=found.external_id,
                    transaction_number=found.transaction_number,
                )
            logger.debug(f"Transaction number '{number}' not found in {scope}")

        if key:
            found = self.transport.find_by_number(self.kind, key)
            if found is not None:
                return ExistingRef(
                    FoundBy.ROW_KEY_NUMBER, key, scope,
                    external_id=found.external_id,
                    transaction_number=found.transaction_number,
                )

            if self.transport.find_by_memo(self.kind, key):
                return ExistingRef(FoundBy.MEMO, key, scope)

        return None

    def already_exists_message(self, existing: ExistingRef) -> str:
        return f"{self.kind.label} already exists in ERP (found by {existing.description})"

    # =========================================================================
    # Recording
    # =========================================================================

    def record(self, record: SyncRecord) -> SyncRecord:
        self.records.append(record)
        return record

    def record_existing(
        self,
        memo_key: str,
        existing: ExistingRef,
        row_index: Optional[int] = None,
    ) -> SyncRecord:
        return self.record(SyncRecord(
            source_row_key=memo_key,
            outcome=SyncOutcome.ALREADY_EXISTS,
            existing_transaction_ref=existing.description,
            error_message=self.already_exists_message(existing),
            transaction_number=existing.transaction_number,
            external_id=existing.external_id,
            row_index=row_index,
        ))

    def queue_synced(self, row_index: int, row: Sequence[Any]) -> None:
        """Queue a source row (values as read, transaction number filled in)."""
        self._synced.append((row_index, list(row)))

    def queue_error(self, row: Sequence[Any]) -> None:
        self._errors.append([("" if v is None else str(v)) for v in row])

    @property
    def pending_synced(self) -> int:
        return len(self._synced)

    @property
    def pending_errors(self) -> int:
        return len(self._errors)

    def outcomes(self, outcome: SyncOutcome) -> List[SyncRecord]:
        return [r for r in self.records if r.outcome == outcome]

    # =========================================================================
    # Flush
    # =========================================================================

    def flush(
        self,
        store: TabularStore,
        source_table: str,
        synced_table: str,
        errors_table: str,
        source_headers: Sequence[str],
        delay_seconds: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> FlushResult:
        """
        Apply the queued workbook writes.

        Synced rows are appended to the synced table, then deleted from the
        source table in descending index order so earlier deletions never
        shift the rows still to be deleted. Error rows are appended last.
        """
        result = FlushResult()

        if self._synced:
            logger.info(f"Moving {len(self._synced)} synced row(s) to '{synced_table}'")
            ordered = sorted(self._synced, key=lambda item: item[0])
            store.write_rows(synced_table, [row for _, row in ordered], headers=list(source_headers))
            result.synced_written = len(ordered)

            indices = sorted({index for index, _ in self._synced}, reverse=True)
            for i, index in enumerate(indices):
                if i > 0 and delay_seconds > 0:
                    sleep(delay_seconds)
                store.delete_rows(source_table, index, 1)
                logger.debug(f"Deleted sheet row {index + 2} from '{source_table}'")
                result.source_deleted += 1
            self._synced = []

        if self._errors:
            logger.info(f"Writing {len(self._errors)} error row(s) to '{errors_table}'")
            store.write_rows(errors_table, self._errors, headers=ERROR_HEADERS)
            result.errors_written = len(self._errors)
            self._errors = []

        return result
