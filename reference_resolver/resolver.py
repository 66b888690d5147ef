"""Reference Resolver Algorithm.

Resolves a human-entered string to a cached master record using an ordered
cascade, first hit wins:
1. Exact code/name (case-sensitive)
2. Case-insensitive code/name
3. Query contained in candidate name
4. Candidate name contained in query
5. Steps 1-4 again with parenthetical suffixes stripped
6. Longest-token containment

Kind-specific steps are spliced in after the exact steps: budget-code prefix
for departments, leading account number for accounts, external id for numeric
locations. Currencies get a synonym fallback at the very end.

Candidates are always filtered by (kind, scope) and kept in source order, so
the same query over the same candidate set always returns the same entity.
"""

from typing import Callable, Dict, List, Optional, Tuple

from core.observability.logging import get_logger
from models.refs import ReferenceEntity, ReferenceKind, Scope
from reference_resolver.models import (
    MatchStrategy,
    Resolution,
    ResolverConfig,
    DEFAULT_RESOLVER_CONFIG,
)
from reference_resolver.normalize import (
    budget_code_prefix,
    clean_query,
    currency_search_terms,
    leading_account_number,
    strip_parenthetical,
    tokenize_query,
)
from reference_resolver.sources import ReferenceDataSource
from reference_resolver.strategies import (
    MatchStep,
    any_term_contained,
    case_insensitive,
    code_equals,
    contains,
    exact,
    external_id_equals,
    first_success,
    primary_steps,
    reverse_contains,
)

logger = get_logger(__name__)


class ReferenceResolver:
    """Resolves sheet values to cached reference entities.

    Candidate lists are loaded lazily per (kind, scope) and kept for the
    resolver's lifetime; reference data is assumed stable for one batch.

    Example:
        resolver = ReferenceResolver(SQLiteReferenceCache(db_path), Scope.SANDBOX)

        resolution = resolver.resolve("JB-C030-26", ReferenceKind.DEPARTMENT)
        if resolution.found:
            department_id = resolution.entity.external_id
    """

    def __init__(
        self,
        source: ReferenceDataSource,
        scope: Scope = Scope.SANDBOX,
        config: ResolverConfig = DEFAULT_RESOLVER_CONFIG,
    ):
        """Initialize the resolver.

        Args:
            source: Reference data source (SQLite cache, in-memory list)
            scope: Default sandbox/production scope for lookups
            config: Cascade configuration
        """
        self.source = source
        self.scope = scope
        self.config = config
        self._cache: Dict[Tuple[ReferenceKind, Scope], List[ReferenceEntity]] = {}

    # =========================================================================
    # Candidates
    # =========================================================================

    def candidates(self, kind: ReferenceKind, scope: Optional[Scope] = None) -> List[ReferenceEntity]:
        """Cached candidate list for (kind, scope)."""
        scope = scope or self.scope
        key = (kind, scope)
        if key not in self._cache:
            active_only = kind in self.config.active_only_kinds
            self._cache[key] = list(
                self.source.list_entities(kind, scope, active_only=active_only)
            )
            logger.debug(
                f"Loaded {len(self._cache[key])} {kind.value} candidate(s)",
                extra_fields={"scope": scope.value},
            )
        return self._cache[key]

    def find(
        self,
        kind: ReferenceKind,
        predicate: Callable[[ReferenceEntity], bool],
        scope: Optional[Scope] = None,
    ) -> Optional[ReferenceEntity]:
        """First cached candidate satisfying the predicate."""
        for entity in self.candidates(kind, scope):
            if predicate(entity):
                return entity
        return None

    # =========================================================================
    # Cascade
    # =========================================================================

    def build_steps(self, query: str, kind: ReferenceKind) -> List[MatchStep]:
        """Ordered cascade for one query and kind."""
        steps = [
            MatchStep(MatchStrategy.EXACT, query, exact(query)),
            MatchStep(MatchStrategy.CASE_INSENSITIVE, query, case_insensitive(query)),
        ]

        if kind == ReferenceKind.LOCATION and query.isdigit():
            steps.append(MatchStep(MatchStrategy.EXTERNAL_ID, query, external_id_equals(query)))

        if kind == ReferenceKind.DEPARTMENT:
            prefix = budget_code_prefix(query)
            if prefix and prefix != query:
                steps.extend(primary_steps(prefix, tag=MatchStrategy.BUDGET_PREFIX))

        if kind == ReferenceKind.ACCOUNT:
            number = leading_account_number(query)
            if number:
                steps.append(MatchStep(MatchStrategy.ACCOUNT_NUMBER, number, code_equals(number)))

        steps.append(MatchStep(MatchStrategy.CONTAINS, query, contains(query)))
        steps.append(MatchStep(MatchStrategy.REVERSE_CONTAINS, query, reverse_contains(query)))

        normalized = strip_parenthetical(query)
        if normalized and normalized != query:
            steps.extend(primary_steps(normalized, tag=MatchStrategy.NORMALIZED))

        if self.config.token_fallback:
            tokens = tokenize_query(normalized or query)
            if tokens:
                steps.append(MatchStep(MatchStrategy.TOKEN, " ".join(tokens), any_term_contained(tokens)))

        if kind == ReferenceKind.CURRENCY:
            terms = currency_search_terms(query)
            if terms:
                steps.append(MatchStep(
                    MatchStrategy.CURRENCY_SYNONYM, ", ".join(terms), any_term_contained(terms)
                ))

        return steps

    def resolve(
        self,
        query: Optional[str],
        kind: ReferenceKind,
        scope: Optional[Scope] = None,
    ) -> Resolution:
        """Resolve a sheet value to a reference entity.

        Args:
            query: Value as entered in the sheet
            kind: Which master table to search
            scope: Sandbox/production scope (defaults to the resolver's)

        Returns:
            Resolution; entity is None when nothing matched
        """
        cleaned = clean_query(query)
        return self._run(cleaned, kind, scope or self.scope, self.build_steps(cleaned, kind) if cleaned else [])

    def resolve_exact(
        self,
        query: Optional[str],
        kind: ReferenceKind,
        scope: Optional[Scope] = None,
    ) -> Resolution:
        """Resolve using only the exact and case-insensitive steps."""
        cleaned = clean_query(query)
        steps = []
        if cleaned:
            steps = [
                MatchStep(MatchStrategy.EXACT, cleaned, exact(cleaned)),
                MatchStep(MatchStrategy.CASE_INSENSITIVE, cleaned, case_insensitive(cleaned)),
            ]
        return self._run(cleaned, kind, scope or self.scope, steps)

    def _run(
        self,
        query: str,
        kind: ReferenceKind,
        scope: Scope,
        steps: List[MatchStep],
    ) -> Resolution:
        if not query:
            return Resolution(query="", kind=kind, scope=scope)

        candidates = self.candidates(kind, scope)
        hit = first_success(steps, candidates)

        if hit is None:
            logger.debug(
                f"No {kind.value} match for '{query}'",
                extra_fields={"candidates": len(candidates)},
            )
            return Resolution(
                query=query,
                kind=kind,
                scope=scope,
                candidates_considered=len(candidates),
            )

        entity, step = hit
        logger.debug(
            f"Resolved {kind.value} '{query}' -> '{entity.display_name}'",
            extra_fields={"strategy": step.strategy.value, "matched_on": step.matched_on},
        )
        return Resolution(
            query=query,
            kind=kind,
            scope=scope,
            entity=entity,
            strategy=step.strategy,
            matched_on=step.matched_on,
            candidates_considered=len(candidates),
        )

    def explain(self, resolution: Resolution) -> str:
        """Generate a human-readable explanation of the resolution.

        Args:
            resolution: The resolution to explain

        Returns:
            Formatted explanation string
        """
        lines = ["=" * 60, "Reference Resolution Explanation", "=" * 60]
        lines.append(f"Kind: {resolution.kind.value}")
        lines.append(f"Query: '{resolution.query}'")
        lines.append(f"Scope: {resolution.scope.value}")
        lines.append(f"Candidates considered: {resolution.candidates_considered}")
        lines.append("")

        if resolution.found:
            entity = resolution.entity
            lines.append(f"✓ MATCHED: {entity.label} [id {entity.external_id}]")
            lines.append(f"  Strategy: {resolution.strategy.value}")
            lines.append(f"  Matched on: '{resolution.matched_on}'")
        else:
            lines.append("✗ NOT FOUND")
            steps = self.build_steps(resolution.query, resolution.kind) if resolution.query else []
            lines.append(f"  Tried {len(steps)} step(s):")
            for step in steps:
                lines.append(f"    - {step.strategy.value}: '{step.matched_on}'")

        lines.append("=" * 60)
        return "\n".join(lines)
