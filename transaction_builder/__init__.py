"""Transaction Builder - turns priced sheet lines into validated ERP drafts.

Usage:
    from transaction_builder import TransactionBuilder, AccountItemMap

    builder = TransactionBuilder(resolver, AccountItemMap.load("po_items.json"))
    result = builder.build(kind, vendor, currency, "EPR-0042", today, builder.price_lines(lines))
    draft = result.draft
"""

from transaction_builder.builder import (
    BuildResult,
    COUNTERPARTY_KINDS,
    TransactionBuilder,
    first_specified,
)
from transaction_builder.mappings import (
    AccountItemMap,
    LegacyAccountMap,
    SubcodeNormalization,
)

__all__ = [
    "BuildResult",
    "COUNTERPARTY_KINDS",
    "TransactionBuilder",
    "first_specified",
    "AccountItemMap",
    "LegacyAccountMap",
    "SubcodeNormalization",
]
