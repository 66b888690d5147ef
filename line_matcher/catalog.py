"""Lazily populated catalog item detail cache.

Existing ERP item lines carry only an item id and sometimes a display name;
the cache looks the item up in the reference source once per id and keeps
the answer (including "not found") for the rest of the run.
"""

from typing import Dict, Optional

from models.refs import ReferenceEntity, ReferenceKind, Scope
from reference_resolver.sources import ReferenceDataSource


class CatalogItemCache:
    def __init__(self, source: ReferenceDataSource, scope: Scope = Scope.SANDBOX):
        self.source = source
        self.scope = scope
        self._items: Dict[str, Optional[ReferenceEntity]] = {}

    def get(self, item_ref_id: Optional[str]) -> Optional[ReferenceEntity]:
        if not item_ref_id:
            return None
        if item_ref_id not in self._items:
            self._items[item_ref_id] = self.source.find(
                ReferenceKind.ITEM,
                self.scope,
                lambda entity: entity.external_id == item_ref_id,
            )
        return self._items[item_ref_id]

    def __len__(self) -> int:
        return len(self._items)
