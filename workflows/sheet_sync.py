"""Sheet Sync Run.

Batch driver that turns intake rows into ERP transactions:
1. Read the header and line tables of the layout
2. For each row: existence check, resolve, price, build, create
3. Record one SyncRecord per row; a failed row never stops the batch
4. Flush: synced rows move to the Synced table, errors go to the Errors table

Rows are processed sequentially with a fixed delay between creates.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional

from connectors.erp_base import TransactionTransport
from connectors.tabular import TabularStore
from core.errors import ReconcilerError, TransportFailure, ValidationFailure
from core.observability.logging import get_logger, log_run_event, with_correlation
from intake.layouts import SheetLayout
from intake.rows import IntakeSheet, SourceRow, load_intake, row_timestamp
from models.reports import RunReport, SyncOutcome, SyncRecord
from models.transactions import SourceLineItem, TransactionDraft, TransactionKind
from sync_state.tracker import FlushResult, SyncStateTracker, build_error_row
from transaction_builder.builder import TransactionBuilder, first_specified
from transaction_builder.mappings import LegacyAccountMap

logger = get_logger(__name__)


@dataclass
class SyncRunResult:
    report: RunReport
    records: List[SyncRecord] = field(default_factory=list)
    flush: Optional[FlushResult] = None

    def summary(self, max_errors: int = 10) -> List[str]:
        return self.report.summary(max_errors=max_errors)


class SheetSyncRun:
    """
    One sync batch for a single layout (purchase orders, bills or expense reports).

    Usage:
        run = SheetSyncRun(workbook, transport, builder, PURCHASE_ORDER_LAYOUT)
        result = run.run()
        print("\\n".join(result.summary()))
    """

    def __init__(
        self,
        store: TabularStore,
        transport: TransactionTransport,
        builder: TransactionBuilder,
        layout: SheetLayout,
        legacy_accounts: Optional[LegacyAccountMap] = None,
        force: bool = False,
        delay_seconds: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
        today: Callable[[], date] = date.today,
        run_id: Optional[str] = None,
    ):
        self.store = store
        self.transport = transport
        self.builder = builder
        self.layout = layout
        self.legacy_accounts = legacy_accounts or LegacyAccountMap()
        self.force = force
        self.delay_seconds = delay_seconds
        self.sleep = sleep
        self.today = today
        self.run_id = run_id or f"sync-{uuid.uuid4().hex[:12]}"

        self.tracker = SyncStateTracker(transport, layout.kind, force=force)
        self._creates = 0

    @property
    def kind(self) -> TransactionKind:
        return self.layout.kind

    # =========================================================================
    # Batch
    # =========================================================================

    def run(self) -> SyncRunResult:
        """Process every row and flush the workbook writes.

        Raises:
            SetupFailure: If a table or required column is missing
        """
        with with_correlation(
            run_id=self.run_id,
            transaction_kind=self.kind.value,
            scope=self.transport.scope.value,
        ):
            sheet = load_intake(self.store, self.layout)
            log_run_event(
                "Sync run started",
                rows=len(sheet.rows),
                force=self.force,
                table=self.layout.header_table,
            )

            report = RunReport()
            for row in sheet.rows:
                if row.is_empty:
                    report = report.merge(RunReport.for_empty_row())
                    continue
                with with_correlation(source_row_key=row.key):
                    record = self.process_row(row, sheet)
                report = report.merge(RunReport.for_record(record))

            flush = self.tracker.flush(
                self.store,
                self.layout.header_table,
                self.layout.synced_table,
                self.layout.errors_table,
                sheet.headers,
                delay_seconds=self.delay_seconds,
                sleep=self.sleep,
            )
            log_run_event(
                "Sync run finished",
                total=report.total,
                created=report.created,
                already_existing=report.already_existing,
                failed=report.failed,
            )

        return SyncRunResult(report=report, records=list(self.tracker.records), flush=flush)

    # =========================================================================
    # Row
    # =========================================================================

    def process_row(self, row: SourceRow, sheet: IntakeSheet) -> SyncRecord:
        """Process one non-empty row. Never raises for row-level problems."""
        lines = sheet.lines_for(row.key)

        raw_response = None
        try:
            existing = self.tracker.check_existing(row.transaction_number, row.key)
            if existing is not None:
                record = self.tracker.record_existing(row.key, existing, row.index)
                logger.warning(f"Skipping {row.key}: {record.error_message}")
                self.tracker.queue_error(self.error_row(row, lines, record.error_message))
                return record

            draft = self.build_draft(row, lines)
            if self._creates > 0 and self.delay_seconds > 0:
                self.sleep(self.delay_seconds)
            self._creates += 1

            result = self.transport.create(draft)
            if not result.success:
                raise TransportFailure(
                    result.error or f"Failed to create {self.kind.label}",
                    raw_response=result.raw_response,
                )
        except ReconcilerError as e:
            if isinstance(e, TransportFailure):
                raw_response = e.raw_response
            logger.error(f"Failed to sync {row.key}: {e}")
            return self._failed(row, lines, str(e), raw_response)
        except Exception as e:
            logger.exception(f"Unexpected error syncing {row.key}")
            return self._failed(row, lines, f"Unexpected error: {e}", raw_response)

        number = result.transaction_number or result.external_id
        values = list(row.values)
        values[sheet.transaction_column] = number
        self.tracker.queue_synced(row.index, values)

        logger.info(
            f"Created {self.kind.label} {number} for {row.key}",
            extra_fields={"external_id": result.external_id, "total": str(draft.total_amount)},
        )
        return self.tracker.record(SyncRecord(
            source_row_key=row.key,
            outcome=SyncOutcome.CREATED,
            transaction_number=result.transaction_number,
            external_id=result.external_id,
            row_index=row.index,
        ))

    def build_draft(self, row: SourceRow, lines: List[SourceLineItem]) -> TransactionDraft:
        """Resolve, price and assemble the draft for one row.

        Raises:
            ValidationFailure, ResolutionFailure
        """
        if not lines:
            raise ValidationFailure(f"No line items found for {row.key}")

        lines = [self._prepare_line(line, row) for line in lines]

        counterparty = self.builder.resolve_counterparty(self.kind, row.counterparty)
        currency = self.builder.resolve_currency(row.currency or first_specified(lines, "currency"))

        external_reference = None
        if self.kind != TransactionKind.PURCHASE_ORDER:
            external_reference = row.external_reference or row.key

        result = self.builder.build(
            self.kind,
            counterparty,
            currency,
            row.key,
            row.transaction_date or self.today(),
            self.builder.price_lines(lines),
            default_budget_code=row.budget_code,
            default_location=row.location,
            external_reference=external_reference,
            due_date=row.due_date,
        )
        return result.draft

    def _prepare_line(self, line: SourceLineItem, row: SourceRow) -> SourceLineItem:
        """Apply the row's subcode to lines without one and rewrite legacy subcodes."""
        subcode = self.legacy_accounts.normalize_or_keep(line.subcode or row.subcode)
        if subcode == line.subcode:
            return line
        return line.model_copy(update={"subcode": subcode})

    # =========================================================================
    # Errors
    # =========================================================================

    def _failed(
        self,
        row: SourceRow,
        lines: List[SourceLineItem],
        message: str,
        raw_response=None,
    ) -> SyncRecord:
        self.tracker.queue_error(self.error_row(row, lines, message, raw_response))
        return self.tracker.record(SyncRecord(
            source_row_key=row.key,
            outcome=SyncOutcome.FAILED,
            error_message=message,
            row_index=row.index,
        ))

    def error_row(
        self,
        row: SourceRow,
        lines: List[SourceLineItem],
        message: str,
        raw_response=None,
    ) -> List[str]:
        details: Dict[str, Optional[str]] = {
            "ID": row.key,
            "Name": row.name or (lines[0].name if lines else None),
            "Budget Code": row.budget_code or first_specified(lines, "budget_code"),
            "Subcode": row.subcode or first_specified(lines, "subcode"),
            "Location": row.location or first_specified(lines, "location"),
            "Vendor": row.counterparty,
        }
        return build_error_row(row_timestamp(row), row.key, message, raw_response, details)
