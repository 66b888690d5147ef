"""Local Ledger Transport.

Implements the TransactionTransport interface on top of a JSON file. Records
are stored in the ERP's own record shape (see connectors/netsuite_records.py)
and partitioned by scope, so sandbox and production runs never see each
other's transactions.

File layout:
    {
      "sandbox":    {"next_id": 3, "records": [{...purchaseOrder...}, ...]},
      "production": {"next_id": 1, "records": []}
    }

Required configuration:
- custom_settings.ledger_path: Path to the ledger file (created on first write)
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from connectors.erp_base import (
    ERPConfig,
    TransactionTransport,
    TransportResult,
    register_connector,
)
from connectors.netsuite_records import (
    RECORD_TYPES,
    decode_transaction,
    encode_draft,
    encode_existing_lines,
)
from core.errors import TransportFailure
from core.observability.logging import get_logger
from models.transactions import ExistingLine, ExistingTransaction, TransactionDraft, TransactionKind

logger = get_logger(__name__)


NUMBER_PREFIXES = {
    TransactionKind.PURCHASE_ORDER: "PO",
    TransactionKind.VENDOR_BILL: "BILL",
    TransactionKind.EXPENSE_REPORT: "ER",
}


@register_connector("local_ledger")
class LocalLedgerTransport(TransactionTransport):
    """JSON-file ledger transport."""

    def __init__(self, config: ERPConfig):
        super().__init__(config)
        ledger_path = config.custom_settings.get("ledger_path")
        if not ledger_path:
            raise ValueError("local_ledger requires custom_settings['ledger_path']")
        self.ledger_path = Path(ledger_path)

    # =========================================================================
    # File Access
    # =========================================================================

    def _load(self) -> Dict[str, Any]:
        if not self.ledger_path.exists():
            return {}
        try:
            return json.loads(self.ledger_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise TransportFailure(f"Cannot read ledger {self.ledger_path}: {e}") from e

    def _save(self, ledger: Dict[str, Any]) -> None:
        self.ledger_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.ledger_path.with_suffix(self.ledger_path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(ledger, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.ledger_path)

    def _partition(self, ledger: Dict[str, Any]) -> Dict[str, Any]:
        return ledger.setdefault(self.scope.value, {"next_id": 1, "records": []})

    def _records(self, kind: TransactionKind) -> List[Dict[str, Any]]:
        partition = self._load().get(self.scope.value, {})
        record_type = RECORD_TYPES[kind]
        return [r for r in partition.get("records", []) if r.get("recordType") == record_type]

    # =========================================================================
    # TransactionTransport
    # =========================================================================

    def create(self, draft: TransactionDraft) -> TransportResult:
        """Append the draft to the ledger as a new record."""
        ledger = self._load()
        partition = self._partition(ledger)
        record_type = RECORD_TYPES[draft.kind]

        internal_id = str(partition["next_id"])
        transaction_number = draft.external_reference or (
            f"{NUMBER_PREFIXES[draft.kind]}-{partition['next_id']:06d}"
        )

        for record in partition["records"]:
            if record.get("recordType") == record_type and record.get("tranId") == transaction_number:
                error = f"A {draft.kind.label} with number {transaction_number} already exists"
                return TransportResult(
                    success=False,
                    error=error,
                    raw_response={"code": "DUP_RCRD", "message": error},
                )

        record = encode_draft(draft, internal_id, transaction_number)
        partition["records"].append(record)
        partition["next_id"] += 1
        self._save(ledger)

        logger.info(
            f"Created {draft.kind.label} {transaction_number}",
            extra_fields={"external_id": internal_id, "memo": draft.memo},
        )
        return TransportResult(
            success=True,
            external_id=internal_id,
            transaction_number=transaction_number,
            raw_response={"internalId": internal_id, "tranId": transaction_number},
        )

    def find_by_number(
        self,
        kind: TransactionKind,
        transaction_number: str,
    ) -> Optional[ExistingTransaction]:
        wanted = (transaction_number or "").strip()
        if not wanted:
            return None
        for record in self._records(kind):
            if record.get("tranId") == wanted:
                return decode_transaction(record)
        return None

    def find_by_memo(self, kind: TransactionKind, memo: str) -> bool:
        wanted = (memo or "").strip()
        if not wanted:
            return False
        return any(record.get("memo") == wanted for record in self._records(kind))

    def update(
        self,
        kind: TransactionKind,
        external_id: str,
        lines: Sequence[ExistingLine],
    ) -> TransportResult:
        """Replace the item/expense lists of a stored record."""
        ledger = self._load()
        partition = self._partition(ledger)
        record_type = RECORD_TYPES[kind]

        for record in partition["records"]:
            if record.get("recordType") == record_type and record.get("internalId") == external_id:
                record.pop("itemList", None)
                record.pop("expenseList", None)
                record.update(encode_existing_lines(lines))
                self._save(ledger)
                logger.info(
                    f"Updated {kind.label} {record.get('tranId')}",
                    extra_fields={"external_id": external_id, "lines": len(lines)},
                )
                return TransportResult(
                    success=True,
                    external_id=external_id,
                    transaction_number=record.get("tranId"),
                )

        error = f"{kind.label} {external_id} not found"
        return TransportResult(success=False, error=error, raw_response={"code": "RCRD_DSNT_EXIST"})
