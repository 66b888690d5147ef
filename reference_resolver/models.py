"""Reference Resolver Data Models.

- MatchStrategy: Which cascade step produced the match
- Resolution: The result of resolving one query
- ResolverConfig: Tunables for the cascade
"""

from enum import Enum
from typing import Optional, Set

from pydantic import BaseModel, Field

from core.errors import ResolutionFailure
from models.refs import ReferenceEntity, ReferenceKind, Scope


class MatchStrategy(str, Enum):
    """How the reference was matched."""
    EXACT = "exact"                          # Code or name, case-sensitive
    CASE_INSENSITIVE = "case_insensitive"    # Code or name, ignoring case
    EXTERNAL_ID = "external_id"              # Numeric query equal to the ERP id
    BUDGET_PREFIX = "budget_prefix"          # Budget code with its -NN suffix stripped
    ACCOUNT_NUMBER = "account_number"        # Leading digits of a subcode
    CONTAINS = "contains"                    # Query inside candidate name
    REVERSE_CONTAINS = "reverse_contains"    # Candidate name inside query
    NORMALIZED = "normalized"                # Parenthetical suffix stripped
    TOKEN = "token"                          # Longest-token containment
    CURRENCY_SYNONYM = "currency_synonym"    # Currency keyword -> name terms
    NO_MATCH = "no_match"


class Resolution(BaseModel):
    """Result of a reference lookup.

    entity is None when the cascade is exhausted (NotFound). Callers decide
    whether that is fatal; require() raises ResolutionFailure.
    """
    query: str = Field(..., description="Query as entered in the sheet")
    kind: ReferenceKind
    scope: Scope
    entity: Optional[ReferenceEntity] = None
    strategy: MatchStrategy = Field(default=MatchStrategy.NO_MATCH)
    matched_on: Optional[str] = Field(default=None, description="Key that produced the hit")
    candidates_considered: int = 0

    @property
    def found(self) -> bool:
        return self.entity is not None

    def require(self) -> ReferenceEntity:
        if self.entity is None:
            raise ResolutionFailure(self.kind.value, self.query)
        return self.entity


# =============================================================================
# Resolver Configuration
# =============================================================================

class ResolverConfig(BaseModel):
    """Configuration for the matching cascade."""
    active_only_kinds: Set[ReferenceKind] = Field(
        default_factory=lambda: {
            ReferenceKind.ITEM,
            ReferenceKind.EMPLOYEE,
            ReferenceKind.EXPENSE_CATEGORY,
        },
        description="Kinds whose inactive records never match",
    )
    token_fallback: bool = Field(default=True, description="Enable the longest-token fallback")


DEFAULT_RESOLVER_CONFIG = ResolverConfig()
