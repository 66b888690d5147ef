"""Line Matcher.

Pairs sheet line items (source of truth) with the lines of an existing ERP
transaction.

- Equal counts: positional pairing by index.
- Otherwise, per ERP line in order, over sheet lines not yet consumed:
  1. description/memo   (exact ignoring case, then containment either way)
  2. item display name  (same)
  3. catalog item name  (looked up by item id, same)
  4. item reference     (exact, then partial)
  No hit: the ERP line is paired with None and keeps its current values.
- Sheet lines never consumed are returned as unmatched_sheet.

Positional pairing trusts that equal counts mean equal order. Nothing
verifies it; the auditor is what catches a wrong pairing.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple, Union

from line_matcher.catalog import CatalogItemCache
from models.transactions import (
    ExpenseLine,
    LineMatchStrategy,
    PurchaseOrderLine,
    SourceLineItem,
)


AnyExistingLine = Union[PurchaseOrderLine, ExpenseLine]

# "10 unit - Books" -> "Books"
_QUANTITY_PREFIX = re.compile(r"^\d+(\.\d+)?\s+unit\s+-\s+", re.IGNORECASE)


@dataclass(frozen=True)
class LinePair:
    existing: AnyExistingLine
    sheet: Optional[SourceLineItem]
    strategy: LineMatchStrategy = LineMatchStrategy.NONE
    sheet_index: Optional[int] = None

    @property
    def matched(self) -> bool:
        return self.sheet is not None


@dataclass
class MatchResult:
    pairs: List[LinePair] = field(default_factory=list)
    unmatched_sheet: List[SourceLineItem] = field(default_factory=list)
    positional: bool = False

    @property
    def matched_pairs(self) -> List[LinePair]:
        return [p for p in self.pairs if p.matched]

    @property
    def unmatched_existing(self) -> List[AnyExistingLine]:
        return [p.existing for p in self.pairs if not p.matched]


def strip_quantity_prefix(memo: Optional[str]) -> str:
    """Remove the "<qty> unit - " prefix written on generic lines."""
    return _QUANTITY_PREFIX.sub("", (memo or "").strip())


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().casefold()


def _values(*values: Optional[str]) -> List[str]:
    result = []
    for value in values:
        normalized = _norm(value)
        if normalized and normalized not in result:
            result.append(normalized)
    return result


class LineMatcher:
    """Matches sheet lines against existing ERP lines.

    Args:
        catalog: Optional catalog item cache used for the catalog-name step
    """

    def __init__(self, catalog: Optional[CatalogItemCache] = None):
        self.catalog = catalog

    def match(
        self,
        sheet_lines: Sequence[SourceLineItem],
        erp_lines: Sequence[AnyExistingLine],
    ) -> MatchResult:
        sheet_lines = list(sheet_lines)
        erp_lines = list(erp_lines)

        if sheet_lines and len(sheet_lines) == len(erp_lines):
            return MatchResult(
                pairs=[
                    LinePair(existing, sheet_lines[i], LineMatchStrategy.POSITIONAL, i)
                    for i, existing in enumerate(erp_lines)
                ],
                unmatched_sheet=[],
                positional=True,
            )

        consumed: set = set()
        pairs: List[LinePair] = []

        for existing in erp_lines:
            remaining = [(i, line) for i, line in enumerate(sheet_lines) if i not in consumed]
            hit = self._match_one(existing, remaining)
            if hit is None:
                pairs.append(LinePair(existing, None))
                continue
            index, strategy = hit
            consumed.add(index)
            pairs.append(LinePair(existing, sheet_lines[index], strategy, index))

        unmatched_sheet = [line for i, line in enumerate(sheet_lines) if i not in consumed]
        return MatchResult(pairs=pairs, unmatched_sheet=unmatched_sheet)

    # =========================================================================
    # Cascade
    # =========================================================================

    def _match_one(
        self,
        existing: AnyExistingLine,
        remaining: List[Tuple[int, SourceLineItem]],
    ) -> Optional[Tuple[int, LineMatchStrategy]]:
        if not remaining:
            return None

        if isinstance(existing, ExpenseLine):
            descriptions = _values(strip_quantity_prefix(existing.memo), existing.memo)
        else:
            descriptions = _values(existing.description)

        index = self._find(remaining, descriptions, lambda line: line.name)
        if index is not None:
            return index, LineMatchStrategy.DESCRIPTION

        if isinstance(existing, ExpenseLine):
            return None

        index = self._find(remaining, _values(existing.item_name), lambda line: line.name)
        if index is not None:
            return index, LineMatchStrategy.NAME

        catalog_item = self.catalog.get(existing.item_ref_id) if self.catalog is not None else None
        if catalog_item is not None:
            index = self._find(remaining, _values(catalog_item.display_name), lambda line: line.name)
            if index is not None:
                return index, LineMatchStrategy.CATALOG_NAME

        references = _values(existing.item_number, catalog_item.code if catalog_item else None)
        index = self._find(remaining, references, lambda line: line.item_reference)
        if index is not None:
            return index, LineMatchStrategy.REFERENCE

        return None

    @staticmethod
    def _find(
        remaining: List[Tuple[int, SourceLineItem]],
        erp_values: List[str],
        sheet_value: Callable[[SourceLineItem], Optional[str]],
    ) -> Optional[int]:
        """Exact pass over all remaining lines, then a containment pass."""
        if not erp_values:
            return None

        for index, line in remaining:
            value = _norm(sheet_value(line))
            if value and value in erp_values:
                return index

        for index, line in remaining:
            value = _norm(sheet_value(line))
            if value and any(value in erp or erp in value for erp in erp_values):
                return index

        return None


def match_lines(
    sheet_lines: Sequence[SourceLineItem],
    erp_lines: Sequence[AnyExistingLine],
    catalog: Optional[CatalogItemCache] = None,
) -> MatchResult:
    """Convenience wrapper around LineMatcher.match()."""
    return LineMatcher(catalog).match(sheet_lines, erp_lines)
