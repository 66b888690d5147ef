"""Subcode Normalization Run.

Rewrites legacy subcodes in the workbook to canonical account numbers.
Purchase orders carry the subcode on the header table; bills and expense
reports carry it per line.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

from connectors.tabular import TabularStore
from core.errors import SetupFailure
from core.observability.logging import get_logger
from intake.headers import cell, find_column
from intake.layouts import SheetLayout
from transaction_builder.mappings import LegacyAccountMap, SubcodeNormalization

logger = get_logger(__name__)


@dataclass
class NormalizationResult:
    table: str
    column: str
    changes: List[Tuple[int, SubcodeNormalization]] = field(default_factory=list)
    unchanged: int = 0
    failures: List[Tuple[int, SubcodeNormalization]] = field(default_factory=list)

    def summary(self, dry_run: bool = False) -> List[str]:
        label = "Would update" if dry_run else "Updated"
        lines = [
            f"{label}: {len(self.changes)}",
            f"Already canonical: {self.unchanged}",
            f"Not normalized: {len(self.failures)}",
        ]
        for index, failure in self.failures:
            lines.append(f"  - row {index + 2}: '{failure.original}' ({failure.error})")
        return lines


def subcode_location(layout: SheetLayout) -> Tuple[str, Tuple[str, ...]]:
    """Table and header candidates that hold the subcode for a layout."""
    if layout.subcode:
        return layout.header_table, tuple(layout.subcode)
    return layout.line_table, tuple(layout.line_subcode)


def normalize_subcodes(
    store: TabularStore,
    layout: SheetLayout,
    accounts: LegacyAccountMap,
    dry_run: bool = False,
) -> NormalizationResult:
    """Normalize every non-empty subcode of a layout in place.

    Raises:
        SetupFailure: If the mapping tables are empty or the column is missing
    """
    if accounts.is_empty:
        raise SetupFailure("Legacy account map is empty; set LEGACY_ACCOUNT_MAP_PATH and CANONICAL_ACCOUNT_MAP_PATH")

    table_name, candidates = subcode_location(layout)
    table = store.read_rows(table_name)
    column = find_column(table.headers, candidates)
    if column is None:
        raise SetupFailure(f"Subcode column not found in {table_name} sheet. Expected one of: {', '.join(candidates)}")

    header = table.headers[column].strip()
    result = NormalizationResult(table=table_name, column=header)

    for index, row in enumerate(table.rows):
        subcode = cell(row, column)
        if not subcode:
            continue

        normalization = accounts.normalize(subcode)
        if normalization.error is not None:
            result.failures.append((index, normalization))
            continue
        if not normalization.changed:
            result.unchanged += 1
            continue

        result.changes.append((index, normalization))
        logger.info(
            f"Row {index + 2}: {normalization.original} -> {normalization.normalized} ({normalization.account_name})"
        )
        if not dry_run:
            store.update_range(table_name, index, header, normalization.normalized)

    return result
