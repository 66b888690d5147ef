"""Run outcome models: per-row sync records, audit discrepancies and the run report."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from pricing.calculator import MONEY_TOLERANCE


class SyncOutcome(str, Enum):
    ALREADY_EXISTS = "already_exists"
    CREATED = "created"
    FAILED = "failed"


class SyncRecord(BaseModel):
    """Outcome of processing one source row. Created once, never mutated."""
    model_config = ConfigDict(frozen=True)

    source_row_key: str
    outcome: SyncOutcome
    existing_transaction_ref: Optional[str] = None
    error_message: Optional[str] = None
    transaction_number: Optional[str] = None
    external_id: Optional[str] = None
    row_index: Optional[int] = Field(default=None, description="0-based data row index")


class Discrepancy(BaseModel):
    """One row of the audit comparison table.

    expected_value and delta are None when the ERP line had no sheet match.
    """
    model_config = ConfigDict(frozen=True)

    line_label: str
    line_type: str
    current_value: Decimal
    expected_value: Optional[Decimal] = None
    delta: Optional[Decimal] = None
    matched: bool = False
    match_strategy: Optional[str] = None

    current_quantity: Optional[Decimal] = None
    current_rate: Optional[Decimal] = None
    expected_quantity: Optional[Decimal] = None
    expected_rate: Optional[Decimal] = None

    @property
    def is_discrepant(self) -> bool:
        if not self.matched or self.delta is None:
            return True
        return abs(self.delta) > MONEY_TOLERANCE


class RunReport(BaseModel):
    """Count-based summary of a batch run, merged row by row."""
    model_config = ConfigDict(frozen=True)

    total: int = 0
    skipped: int = 0
    processed: int = 0
    created: int = 0
    already_existing: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)

    @classmethod
    def for_record(cls, record: SyncRecord) -> "RunReport":
        if record.outcome == SyncOutcome.CREATED:
            return cls(total=1, processed=1, created=1)
        if record.outcome == SyncOutcome.ALREADY_EXISTS:
            return cls(total=1, already_existing=1)
        return cls(
            total=1,
            processed=1,
            failed=1,
            errors=[f"{record.source_row_key}: {record.error_message}"],
        )

    @classmethod
    def for_empty_row(cls) -> "RunReport":
        return cls(total=1, skipped=1)

    def merge(self, other: "RunReport") -> "RunReport":
        return RunReport(
            total=self.total + other.total,
            skipped=self.skipped + other.skipped,
            processed=self.processed + other.processed,
            created=self.created + other.created,
            already_existing=self.already_existing + other.already_existing,
            failed=self.failed + other.failed,
            errors=self.errors + other.errors,
        )

    def summary(self, max_errors: int = 10) -> List[str]:
        """Render the run summary; at most max_errors detailed messages."""
        lines = [
            f"Total rows: {self.total}",
            f"Skipped (empty): {self.skipped}",
            f"Already existing: {self.already_existing}",
            f"Processed: {self.processed}",
            f"Created: {self.created}",
            f"Errors: {self.failed}",
        ]
        if self.errors:
            lines.append("")
            lines.append("Errors:")
            for message in self.errors[:max_errors]:
                lines.append(f"  - {message}")
            remaining = len(self.errors) - max_errors
            if remaining > 0:
                lines.append(f"  ... and {remaining} more (see the Errors sheet)")
        return lines
