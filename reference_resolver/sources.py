"""Reference data sources.

The resolver reads master data through the ReferenceDataSource protocol.
Implementations:
- InMemoryReferenceSource: a fixed list (tests, one-off scripts)
- SQLiteReferenceCache (reference_resolver/db.py): the synced local cache
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional, Protocol

from models.refs import ReferenceEntity, ReferenceKind, Scope


Predicate = Callable[[ReferenceEntity], bool]


class ReferenceDataSource(Protocol):
    """Protocol for cached master data lookups.

    Results must come back in a stable order; the resolver's first-hit rule
    depends on it.
    """

    def list_entities(
        self,
        kind: ReferenceKind,
        scope: Scope,
        active_only: bool = False,
    ) -> List[ReferenceEntity]:
        ...

    def find(
        self,
        kind: ReferenceKind,
        scope: Scope,
        predicate: Predicate,
    ) -> Optional[ReferenceEntity]:
        ...


class BaseReferenceSource(ABC):
    """find() on top of list_entities()."""

    @abstractmethod
    def list_entities(
        self,
        kind: ReferenceKind,
        scope: Scope,
        active_only: bool = False,
    ) -> List[ReferenceEntity]:
        """Entities of one kind and scope, in stable source order."""
        pass

    def find(
        self,
        kind: ReferenceKind,
        scope: Scope,
        predicate: Predicate,
    ) -> Optional[ReferenceEntity]:
        for entity in self.list_entities(kind, scope):
            if predicate(entity):
                return entity
        return None


class InMemoryReferenceSource(BaseReferenceSource):
    """Reference source over an in-memory list, in insertion order."""

    def __init__(self, entities: Iterable[ReferenceEntity] = ()):
        self._entities: List[ReferenceEntity] = list(entities)

    def add(self, *entities: ReferenceEntity) -> None:
        self._entities.extend(entities)

    def list_entities(
        self,
        kind: ReferenceKind,
        scope: Scope,
        active_only: bool = False,
    ) -> List[ReferenceEntity]:
        return [
            e for e in self._entities
            if e.kind == kind
            and e.is_sandbox_scope == scope.is_sandbox
            and not (active_only and e.is_inactive)
        ]
