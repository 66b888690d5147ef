"""Tests for pairing sheet lines with existing ERP lines."""

from decimal import Decimal
from unittest.mock import patch

from conftest import make_entity
from line_matcher.catalog import CatalogItemCache
from line_matcher.matcher import LineMatcher, match_lines, strip_quantity_prefix
from models.refs import ReferenceKind, Scope
from models.transactions import ExpenseLine, LineMatchStrategy, PurchaseOrderLine, SourceLineItem
from reference_resolver.sources import InMemoryReferenceSource


def sheet(name, item_reference=None):
    return SourceLineItem(name=name, quantity=Decimal("1"), unit_price=Decimal("10"), item_reference=item_reference)


def item(description=None, item_name=None, item_ref_id=None, item_number=None):
    return PurchaseOrderLine(
        description=description,
        item_name=item_name,
        item_ref_id=item_ref_id,
        item_number=item_number,
        quantity=Decimal("1"),
        rate=Decimal("10"),
    )


class TestPositional:
    """Equal counts pair by index."""

    def test_equal_counts_pair_by_position(self):
        sheet_lines = [sheet("Books"), sheet("Pens")]
        erp_lines = [item(description="Something else"), item(description="Books")]
        result = match_lines(sheet_lines, erp_lines)

        assert result.positional is True
        assert [p.sheet.name for p in result.pairs] == ["Books", "Pens"]
        assert all(p.strategy == LineMatchStrategy.POSITIONAL for p in result.pairs)
        assert result.unmatched_sheet == []

    def test_empty_on_both_sides_is_not_positional(self):
        result = match_lines([], [])
        assert result.positional is False
        assert result.pairs == []

    def test_one_extra_line_switches_to_cascade(self):
        sheet_lines = [sheet("Books"), sheet("Pens")]
        erp_lines = [item(description="Pens"), item(description="Books")]

        equal = match_lines(sheet_lines, erp_lines)
        assert equal.positional is True
        assert [p.sheet.name for p in equal.pairs] == ["Books", "Pens"]

        extra_sheet = match_lines(sheet_lines + [sheet("Paper")], erp_lines)
        assert extra_sheet.positional is False
        assert [p.sheet.name for p in extra_sheet.pairs] == ["Pens", "Books"]
        assert [line.name for line in extra_sheet.unmatched_sheet] == ["Paper"]

        extra_erp = match_lines(sheet_lines, erp_lines + [item(description="Ruler")])
        assert extra_erp.positional is False
        assert [p.sheet.name if p.sheet else None for p in extra_erp.pairs] == ["Pens", "Books", None]
        assert extra_erp.unmatched_sheet == []


class TestCascade:
    """Unequal counts use the description/name/reference cascade."""

    def test_exact_beats_containment(self):
        sheet_lines = [sheet("Books and Magazines"), sheet("Books"), sheet("Pens")]
        result = match_lines(sheet_lines, [item(description="books")])

        pair = result.pairs[0]
        assert pair.sheet.name == "Books"
        assert pair.sheet_index == 1
        assert pair.strategy == LineMatchStrategy.DESCRIPTION
        assert [line.name for line in result.unmatched_sheet] == ["Books and Magazines", "Pens"]

    def test_containment_either_way(self):
        sheet_lines = [sheet("Violin Strings (set of 4)"), sheet("Rosin")]
        result = match_lines(sheet_lines, [item(description="Violin Strings")])
        assert result.pairs[0].sheet.name == "Violin Strings (set of 4)"

    def test_each_sheet_line_consumed_once(self):
        sheet_lines = [sheet("Books"), sheet("Pens"), sheet("Paper")]
        erp_lines = [item(description="Books"), item(description="Books")]
        result = match_lines(sheet_lines, erp_lines)

        assert result.pairs[0].matched
        assert not result.pairs[1].matched
        assert len(result.unmatched_existing) == 1

    def test_item_name_step(self):
        sheet_lines = [sheet("Metronome"), sheet("Tuner")]
        result = match_lines(sheet_lines, [item(item_name="Tuner")])
        assert result.pairs[0].strategy == LineMatchStrategy.NAME
        assert result.pairs[0].sheet.name == "Tuner"

    def test_catalog_name_step(self):
        source = InMemoryReferenceSource([
            make_entity(ReferenceKind.ITEM, "301", "Sheet Music", code="SM-001"),
        ])
        catalog = CatalogItemCache(source, Scope.SANDBOX)
        sheet_lines = [sheet("Sheet Music"), sheet("Tuner"), sheet("Stand")]

        result = LineMatcher(catalog).match(sheet_lines, [item(item_ref_id="301")])
        assert result.pairs[0].strategy == LineMatchStrategy.CATALOG_NAME
        assert result.pairs[0].sheet.name == "Sheet Music"

    def test_catalog_code_reaches_reference_step(self):
        source = InMemoryReferenceSource([
            make_entity(ReferenceKind.ITEM, "301", "Sheet Music", code="SM-001"),
        ])
        catalog = CatalogItemCache(source, Scope.SANDBOX)
        sheet_lines = [sheet("Hymnal", item_reference="SM-001"), sheet("Tuner")]

        result = LineMatcher(catalog).match(sheet_lines, [item(item_ref_id="301")])
        assert result.pairs[0].strategy == LineMatchStrategy.REFERENCE
        assert result.pairs[0].sheet.name == "Hymnal"

    def test_catalog_is_consulted_once_per_item(self):
        source = InMemoryReferenceSource([
            make_entity(ReferenceKind.ITEM, "301", "Sheet Music", code="SM-001"),
        ])
        catalog = CatalogItemCache(source, Scope.SANDBOX)
        sheet_lines = [sheet("Sheet Music"), sheet("Tuner"), sheet("Stand")]

        with patch.object(source, "find", wraps=source.find) as find:
            result = LineMatcher(catalog).match(
                sheet_lines, [item(item_ref_id="301"), item(item_ref_id="301")],
            )

        assert result.pairs[0].strategy == LineMatchStrategy.CATALOG_NAME
        assert not result.pairs[1].matched
        assert find.call_count == 1
        assert len(catalog) == 1

    def test_item_reference_step(self):
        sheet_lines = [sheet("Piano book", item_reference="ABC-123"), sheet("Tuner")]
        result = match_lines(sheet_lines, [item(item_number="ABC-123")])
        assert result.pairs[0].strategy == LineMatchStrategy.REFERENCE
        assert result.pairs[0].sheet.item_reference == "ABC-123"

    def test_no_match_preserves_erp_line(self):
        erp_line = item(description="Drum sticks")
        result = match_lines([sheet("Books"), sheet("Pens")], [erp_line])

        assert result.pairs[0].existing is erp_line
        assert result.pairs[0].sheet is None
        assert len(result.unmatched_sheet) == 2


class TestExpenseLines:

    def test_memo_quantity_prefix_is_stripped(self):
        assert strip_quantity_prefix("10 unit - Books") == "Books"
        assert strip_quantity_prefix("2.5 unit - Paint") == "Paint"
        assert strip_quantity_prefix("Books") == "Books"

    def test_expense_memo_matches_sheet_name(self):
        expense = ExpenseLine(memo="10 unit - Books", amount=Decimal("45"))
        result = match_lines([sheet("Pens"), sheet("Books")], [expense])
        assert result.pairs[0].sheet.name == "Books"
        assert result.pairs[0].strategy == LineMatchStrategy.DESCRIPTION

    def test_expense_line_never_uses_item_steps(self):
        expense = ExpenseLine(memo="Bank charges", account_name="Tuner", amount=Decimal("5"))
        result = match_lines([sheet("Tuner"), sheet("Stand")], [expense])
        assert not result.pairs[0].matched
