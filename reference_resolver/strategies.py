"""Matching strategies and the first-success combinator.

A strategy is a named function from a candidate list to the first matching
entity (or None). The resolver assembles an ordered list of MatchSteps per
query and kind; first_success() walks it and stops at the first hit, so the
cascade order is plain data that can be inspected and tested.
"""

from typing import Callable, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from models.refs import ReferenceEntity
from reference_resolver.models import MatchStrategy


Finder = Callable[[Sequence[ReferenceEntity]], Optional[ReferenceEntity]]


class MatchStep(NamedTuple):
    strategy: MatchStrategy
    matched_on: str
    find: Finder


def _name(entity: ReferenceEntity) -> str:
    return (entity.display_name or "").strip()


def _keys(entity: ReferenceEntity) -> List[str]:
    keys = [_name(entity)]
    if entity.code:
        keys.append(entity.code.strip())
    return [k for k in keys if k]


# =============================================================================
# Strategy Factories
# =============================================================================

def exact(query: str) -> Finder:
    """Code or display name equal to the query (case-sensitive)."""
    def find(candidates):
        for entity in candidates:
            if query in _keys(entity):
                return entity
        return None
    return find


def case_insensitive(query: str) -> Finder:
    """Code or display name equal to the query, ignoring case."""
    wanted = query.casefold()

    def find(candidates):
        for entity in candidates:
            if any(key.casefold() == wanted for key in _keys(entity)):
                return entity
        return None
    return find


def contains(query: str) -> Finder:
    """Query is a substring of the candidate name."""
    wanted = query.casefold()

    def find(candidates):
        if not wanted:
            return None
        for entity in candidates:
            if wanted in _name(entity).casefold():
                return entity
        return None
    return find


def reverse_contains(query: str) -> Finder:
    """Candidate name is a substring of the query."""
    haystack = query.casefold()

    def find(candidates):
        for entity in candidates:
            name = _name(entity).casefold()
            if name and name in haystack:
                return entity
        return None
    return find


def code_equals(code: str) -> Finder:
    """Candidate code equal to the value (account numbers)."""
    def find(candidates):
        for entity in candidates:
            if entity.code and entity.code.strip() == code:
                return entity
        return None
    return find


def external_id_equals(external_id: str) -> Finder:
    def find(candidates):
        for entity in candidates:
            if entity.external_id == external_id:
                return entity
        return None
    return find


def any_term_contained(terms: Sequence[str]) -> Finder:
    """First term (in order) that is a substring of some candidate name."""
    def find(candidates):
        for term in terms:
            hit = contains(term)(candidates)
            if hit is not None:
                return hit
        return None
    return find


# =============================================================================
# Step Builders
# =============================================================================

def primary_steps(query: str, tag: Optional[MatchStrategy] = None) -> List[MatchStep]:
    """Steps 1-4 of the cascade for one query.

    With `tag`, all four steps report that strategy (used for the normalized
    and budget-prefix retries).
    """
    return [
        MatchStep(tag or MatchStrategy.EXACT, query, exact(query)),
        MatchStep(tag or MatchStrategy.CASE_INSENSITIVE, query, case_insensitive(query)),
        MatchStep(tag or MatchStrategy.CONTAINS, query, contains(query)),
        MatchStep(tag or MatchStrategy.REVERSE_CONTAINS, query, reverse_contains(query)),
    ]


def first_success(
    steps: Iterable[MatchStep],
    candidates: Sequence[ReferenceEntity],
) -> Optional[Tuple[ReferenceEntity, MatchStep]]:
    """Run steps in order and return the first hit with the step that produced it."""
    for step in steps:
        entity = step.find(candidates)
        if entity is not None:
            return entity, step
    return None
