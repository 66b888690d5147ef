"""Reference Resolver - deterministic fuzzy lookup of cached ERP master data.

This package resolves loosely typed sheet values (vendor names, budget codes,
subcodes, currency codes, item numbers) to cached reference entities:
- Ordered cascade of matching strategies, first hit wins
- Budget-code prefix, account-number and currency-synonym steps per kind
- Scoped by sandbox/production; scopes never cross-match
- SQLite cache of master data refreshed by an external sync

Usage:
    from reference_resolver import ReferenceResolver, SQLiteReferenceCache
    from models import ReferenceKind, Scope

    resolver = ReferenceResolver(SQLiteReferenceCache("reference_cache.db"), Scope.SANDBOX)
    resolution = resolver.resolve("Amazon.com (US)", ReferenceKind.VENDOR)

    if resolution.found:
        vendor_id = resolution.entity.external_id
    else:
        print(resolver.explain(resolution))
"""

from reference_resolver.models import (
    MatchStrategy,
    Resolution,
    ResolverConfig,
    DEFAULT_RESOLVER_CONFIG,
)
from reference_resolver.resolver import ReferenceResolver
from reference_resolver.sources import (
    ReferenceDataSource,
    BaseReferenceSource,
    InMemoryReferenceSource,
)
from reference_resolver.normalize import (
    budget_code_prefix,
    currency_search_terms,
    leading_account_number,
    strip_parenthetical,
    tokenize_query,
)
from reference_resolver.db import (
    SQLiteReferenceCache,
    init_reference_db,
    upsert_entities,
    list_entities,
    delete_entities,
    entity_from_record,
    load_entities_from_json,
)

__all__ = [
    # Models
    "MatchStrategy",
    "Resolution",
    "ResolverConfig",
    "DEFAULT_RESOLVER_CONFIG",
    # Resolver
    "ReferenceResolver",
    # Sources
    "ReferenceDataSource",
    "BaseReferenceSource",
    "InMemoryReferenceSource",
    "SQLiteReferenceCache",
    # Normalization
    "budget_code_prefix",
    "currency_search_terms",
    "leading_account_number",
    "strip_parenthetical",
    "tokenize_query",
    # Database
    "init_reference_db",
    "upsert_entities",
    "list_entities",
    "delete_entities",
    "entity_from_record",
    "load_entities_from_json",
]
