"""
Transaction Builder

Assembles a validated TransactionDraft from resolved references and priced lines:
1. Price each sheet line (discount-adjusted unit price and amount)
2. Resolve per-line department, location and account (line value or transaction default)
3. Decide catalog item line vs generic expense line
4. Enforce draft invariants (counterparty, at least one line, currency)

Catalog item selection, first that applies:
- the line's item reference names an active catalog item that is not excluded
- the line's account number maps (static table) to an active, non-excluded,
  non-inventory catalog item
Everything else becomes a generic line coded to the resolved account.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

from core.config import DEFAULT_EXCLUDED_CATALOG_ITEMS
from core.errors import ResolutionFailure, ValidationFailure
from core.observability.logging import get_logger
from models.refs import ReferenceEntity, ReferenceKind
from models.transactions import (
    LineMatchStrategy,
    ResolvedLine,
    SourceLineItem,
    TransactionDraft,
    TransactionKind,
)
from pricing.calculator import adjust, format_quantity
from reference_resolver.resolver import ReferenceResolver
from transaction_builder.mappings import AccountItemMap

logger = get_logger(__name__)


COUNTERPARTY_KINDS = {
    TransactionKind.PURCHASE_ORDER: ReferenceKind.VENDOR,
    TransactionKind.VENDOR_BILL: ReferenceKind.VENDOR,
    TransactionKind.EXPENSE_REPORT: ReferenceKind.EMPLOYEE,
}


@dataclass
class BuildResult:
    draft: TransactionDraft
    warnings: List[str] = field(default_factory=list)


def first_specified(lines: Sequence[SourceLineItem], attribute: str) -> Optional[str]:
    """Value of `attribute` on the first line that specifies one."""
    for line in lines:
        value = getattr(line, attribute)
        if value:
            return value
    return None


class TransactionBuilder:
    """
    Builds transaction drafts for purchase orders, vendor bills and expense reports.

    Usage:
        builder = TransactionBuilder(resolver, AccountItemMap.load(path))
        vendor = builder.resolve_counterparty(TransactionKind.PURCHASE_ORDER, "Amazon.com (US)")
        lines = builder.price_lines(sheet_lines)
        result = builder.build(TransactionKind.PURCHASE_ORDER, vendor, None, "EPR-0042", today, lines)
    """

    def __init__(
        self,
        resolver: ReferenceResolver,
        account_items: Optional[AccountItemMap] = None,
        excluded_items: Iterable[str] = DEFAULT_EXCLUDED_CATALOG_ITEMS,
    ):
        """
        Initialize the builder.

        Args:
            resolver: Reference resolver bound to the run's scope
            account_items: Account number -> catalog item table
            excluded_items: Placeholder catalog items that must never be purchased
        """
        self.resolver = resolver
        self.account_items = account_items or AccountItemMap()
        self.excluded_items = {name.strip() for name in excluded_items if name and name.strip()}

    # =========================================================================
    # Header References
    # =========================================================================

    def resolve_counterparty(self, kind: TransactionKind, query: Optional[str]) -> ReferenceEntity:
        """Resolve the vendor (or employee for expense reports).

        Raises:
            ValidationFailure: If no value was entered
            ResolutionFailure: If nothing matched
        """
        reference_kind = COUNTERPARTY_KINDS[kind]
        if not query or not query.strip():
            raise ValidationFailure(f"{reference_kind.value.title()} is required")
        return self.resolver.resolve(query, reference_kind).require()

    def resolve_currency(self, query: Optional[str]) -> Optional[ReferenceEntity]:
        """Resolve a currency if one was entered.

        Raises:
            ResolutionFailure: If a value was entered but nothing matched
        """
        if not query or not query.strip():
            return None
        return self.resolver.resolve(query, ReferenceKind.CURRENCY).require()

    # =========================================================================
    # Pricing
    # =========================================================================

    def price_lines(self, lines: Sequence[SourceLineItem]) -> List[ResolvedLine]:
        """Apply the discount calculator to each sheet line."""
        priced = []
        for line in lines:
            adjusted = adjust(line.unit_price, line.quantity, line.discount)
            priced.append(ResolvedLine(
                **line.model_dump(include=set(SourceLineItem.model_fields)),
                adjusted_unit_price=adjusted.unit_price,
                line_amount=adjusted.line_total,
            ))
        return priced

    # =========================================================================
    # Build
    # =========================================================================

    def build(
        self,
        kind: TransactionKind,
        counterparty: Optional[ReferenceEntity],
        currency: Optional[ReferenceEntity],
        memo: str,
        transaction_date: date,
        lines: Sequence[ResolvedLine],
        default_budget_code: Optional[str] = None,
        default_location: Optional[str] = None,
        external_reference: Optional[str] = None,
        due_date: Optional[date] = None,
    ) -> BuildResult:
        """
        Build a validated draft.

        Args:
            kind: Transaction kind
            counterparty: Resolved vendor or employee
            currency: Resolved currency (None when not specified)
            memo: Source row key, written to the transaction memo
            transaction_date: Transaction date
            lines: Priced lines
            default_budget_code: Used for lines without a budget code
                (defaults to the first line that specifies one)
            default_location: Used for lines without a location (same default)
            external_reference: Transaction number to request, if any
            due_date: Bill due date

        Returns:
            BuildResult with the draft and non-fatal warnings

        Raises:
            ValidationFailure: Missing counterparty, department, lines or currency
            ResolutionFailure: Account or expense category not found
        """
        if counterparty is None:
            raise ValidationFailure(f"{COUNTERPARTY_KINDS[kind].value.title()} is required")
        if not lines:
            raise ValidationFailure(f"No line items found for {memo}")
        if kind == TransactionKind.EXPENSE_REPORT and currency is None:
            raise ValidationFailure("Currency is required for Expense Report")

        warnings: List[str] = []
        if currency is not None and not counterparty.accepts_currency(currency):
            warnings.append(
                f"Currency '{currency.display_name}' is not in the supported currencies "
                f"of '{counterparty.display_name}'"
            )

        default_budget_code = default_budget_code or first_specified(lines, "budget_code")
        default_location = default_location or first_specified(lines, "location")

        catalog_lines: List[ResolvedLine] = []
        generic_lines: List[ResolvedLine] = []

        for line in lines:
            department = self._resolve_department(line.budget_code or default_budget_code, memo)
            location = self._resolve_location(line.location or default_location, memo, warnings)

            if kind == TransactionKind.EXPENSE_REPORT:
                generic_lines.append(self._expense_report_line(
                    line, memo, transaction_date, department, location, warnings,
                ))
                continue

            account = self._resolve_account(line.subcode)
            item, strategy = self._catalog_item(line, account)

            if item is not None:
                catalog_lines.append(line.model_copy(update={
                    "matched_reference": item,
                    "match_strategy": strategy,
                    "account_ref": account,
                    "department_ref": department,
                    "location_ref": location,
                    "description": line.name,
                }))
                continue

            if account is None:
                raise ValidationFailure(f"Subcode is required for line '{line.name}' in {memo}")

            generic_lines.append(line.model_copy(update={
                "matched_reference": None,
                "match_strategy": LineMatchStrategy.GENERIC,
                "account_ref": account,
                "department_ref": department,
                "location_ref": location,
                "description": self._generic_memo(kind, line),
            }))

        if not catalog_lines and not generic_lines:
            raise ValidationFailure(f"No valid item or expense lines for {memo}")

        for warning in warnings:
            logger.warning(warning)

        draft = TransactionDraft(
            kind=kind,
            counterparty_ref=counterparty,
            memo=memo,
            transaction_date=transaction_date,
            currency_ref=currency,
            catalog_lines=catalog_lines,
            generic_lines=generic_lines,
            external_reference=external_reference or None,
            due_date=due_date,
            warnings=warnings,
        )
        logger.info(
            f"Built {kind.label} draft for {memo}",
            extra_fields={
                "catalog_lines": len(catalog_lines),
                "generic_lines": len(generic_lines),
                "total": str(draft.total_amount),
            },
        )
        return BuildResult(draft=draft, warnings=warnings)

    # =========================================================================
    # Line Helpers
    # =========================================================================

    def _resolve_department(self, budget_code: Optional[str], memo: str) -> ReferenceEntity:
        if not budget_code:
            raise ValidationFailure(f"Department/Budget Code not provided for {memo}")
        resolution = self.resolver.resolve(budget_code, ReferenceKind.DEPARTMENT)
        if not resolution.found:
            raise ValidationFailure(
                f"Department/Budget Code not found for {memo}. Budget Code: {budget_code}"
            )
        return resolution.entity

    def _resolve_location(
        self,
        location: Optional[str],
        memo: str,
        warnings: List[str],
    ) -> Optional[ReferenceEntity]:
        if not location:
            return None
        resolution = self.resolver.resolve(location, ReferenceKind.LOCATION)
        if not resolution.found:
            message = f"Location '{location}' not found for {memo}; continuing without location"
            if message not in warnings:
                warnings.append(message)
        return resolution.entity

    def _resolve_account(self, subcode: Optional[str]) -> Optional[ReferenceEntity]:
        if not subcode:
            return None
        return self.resolver.resolve(subcode, ReferenceKind.ACCOUNT).require()

    def is_excluded(self, item: ReferenceEntity) -> bool:
        return item.display_name in self.excluded_items or (item.code or "") in self.excluded_items

    @staticmethod
    def is_non_inventory(item: ReferenceEntity) -> bool:
        return item.item_type is None or "noninventory" in item.item_type.casefold()

    def _catalog_item(
        self,
        line: ResolvedLine,
        account: Optional[ReferenceEntity],
    ) -> Tuple[Optional[ReferenceEntity], LineMatchStrategy]:
        if line.item_reference:
            item = self.resolver.resolve_exact(line.item_reference, ReferenceKind.ITEM).entity
            if item is not None and not self.is_excluded(item):
                return item, LineMatchStrategy.ITEM_REFERENCE

        mapped = self.account_items.get(account.code) if account is not None else None
        if mapped:
            wanted = mapped.casefold()

            def eligible(item: ReferenceEntity) -> bool:
                return not self.is_excluded(item) and self.is_non_inventory(item)

            item = self.resolver.find(
                ReferenceKind.ITEM,
                lambda e: eligible(e) and wanted in (e.code or "").casefold(),
            ) or self.resolver.find(
                ReferenceKind.ITEM,
                lambda e: eligible(e) and wanted in e.display_name.casefold(),
            )
            if item is not None:
                return item, LineMatchStrategy.ACCOUNT_MAPPING

        return None, LineMatchStrategy.GENERIC

    @staticmethod
    def _generic_memo(kind: TransactionKind, line: ResolvedLine) -> str:
        if kind == TransactionKind.PURCHASE_ORDER:
            return f"{format_quantity(line.quantity)} unit - {line.name}"
        return line.name

    def _expense_report_line(
        self,
        line: ResolvedLine,
        memo: str,
        transaction_date: date,
        department: ReferenceEntity,
        location: Optional[ReferenceEntity],
        warnings: List[str],
    ) -> ResolvedLine:
        if not line.category:
            raise ValidationFailure(f"Category is required for line items in {memo}")
        category = self.resolver.resolve(line.category, ReferenceKind.EXPENSE_CATEGORY)
        if not category.found:
            raise ResolutionFailure(
                ReferenceKind.EXPENSE_CATEGORY.value, line.category,
                f"Expense Category '{line.category}' not found for {memo}",
            )
        if line.line_amount <= 0:
            raise ValidationFailure(f"Amount must be greater than 0 for line items in {memo}")

        account = None
        if line.subcode:
            account = self.resolver.resolve(line.subcode, ReferenceKind.ACCOUNT).entity
            if account is None:
                warnings.append(f"Expense account '{line.subcode}' not found for {memo}; using category default")

        return line.model_copy(update={
            "matched_reference": None,
            "match_strategy": LineMatchStrategy.GENERIC,
            "category_ref": category.entity,
            "account_ref": account,
            "department_ref": department,
            "location_ref": location,
            "expense_date": line.expense_date or transaction_date,
            "description": line.memo or memo,
        })
