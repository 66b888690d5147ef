"""Line Matcher - pairs sheet line items with existing ERP transaction lines.

Usage:
    from line_matcher import LineMatcher, CatalogItemCache

    matcher = LineMatcher(CatalogItemCache(reference_source, Scope.SANDBOX))
    result = matcher.match(sheet_lines, transaction.lines)

    for pair in result.pairs:
        if pair.matched:
            print(pair.existing.label, "<-", pair.sheet.name, pair.strategy.value)
    for line in result.unmatched_sheet:
        print("not in ERP:", line.name)
"""

from line_matcher.catalog import CatalogItemCache
from line_matcher.matcher import (
    LineMatcher,
    LinePair,
    MatchResult,
    match_lines,
    strip_quantity_prefix,
)

__all__ = [
    "CatalogItemCache",
    "LineMatcher",
    "LinePair",
    "MatchResult",
    "match_lines",
    "strip_quantity_prefix",
]
