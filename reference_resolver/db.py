"""Reference Cache Database Operations.

This module handles the local SQLite copy of ERP master data:
- Schema initialization
- Upserts from an external master-data sync (or a JSON export)
- Scoped listing for the resolver

Every row carries an is_sandbox flag; sandbox and production rows live side
by side and are never returned for the other scope.
"""

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from core.errors import SetupFailure
from core.observability.logging import get_logger
from models.refs import ReferenceEntity, ReferenceKind, Scope
from reference_resolver.sources import BaseReferenceSource

logger = get_logger(__name__)

# Default database path (repository root)
DEFAULT_DB_PATH = Path(__file__).resolve().parents[1] / "reference_cache.db"


def init_reference_db(db_path: Path = DEFAULT_DB_PATH) -> None:
    """Initialize reference cache tables.

    Creates:
    - reference_entity: One row per (kind, external_id, is_sandbox)

    Args:
        db_path: Path to SQLite database file
    """
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS reference_entity (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                kind TEXT NOT NULL,
                external_id TEXT NOT NULL,
                display_name TEXT NOT NULL DEFAULT '',
                code TEXT,
                item_type TEXT,
                allowed_currencies TEXT NOT NULL DEFAULT '[]',
                is_sandbox INTEGER NOT NULL DEFAULT 1,
                is_inactive INTEGER NOT NULL DEFAULT 0,
                synced_at TEXT NOT NULL,
                UNIQUE(kind, external_id, is_sandbox)
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_reference_entity_scope
            ON reference_entity(kind, is_sandbox)
        """)

        conn.commit()
        logger.info("Reference cache tables initialized", extra_fields={"db_path": str(db_path)})

    finally:
        conn.close()


# =============================================================================
# CRUD Operations
# =============================================================================

def upsert_entities(
    entities: Iterable[ReferenceEntity],
    db_path: Path = DEFAULT_DB_PATH,
) -> int:
    """Insert or update reference entities.

    Existing rows keep their id, so listing order stays stable across syncs.

    Returns:
        Number of rows written
    """
    now = datetime.now(timezone.utc).isoformat()
    count = 0

    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        for entity in entities:
            cursor.execute("""
                INSERT INTO reference_entity
                (kind, external_id, display_name, code, item_type,
                 allowed_currencies, is_sandbox, is_inactive, synced_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(kind, external_id, is_sandbox) DO UPDATE SET
                    display_name = excluded.display_name,
                    code = excluded.code,
                    item_type = excluded.item_type,
                    allowed_currencies = excluded.allowed_currencies,
                    is_inactive = excluded.is_inactive,
                    synced_at = excluded.synced_at
            """, (
                entity.kind.value,
                entity.external_id,
                entity.display_name,
                entity.code,
                entity.item_type,
                json.dumps(list(entity.allowed_currencies)),
                1 if entity.is_sandbox_scope else 0,
                1 if entity.is_inactive else 0,
                now,
            ))
            count += 1
        conn.commit()
        return count
    finally:
        conn.close()


def list_entities(
    kind: ReferenceKind,
    scope: Scope,
    active_only: bool = False,
    db_path: Path = DEFAULT_DB_PATH,
) -> List[ReferenceEntity]:
    """List cached entities of one kind within one scope, in insertion order."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        cursor = conn.cursor()
        query = """
            SELECT * FROM reference_entity
            WHERE kind = ? AND is_sandbox = ?
        """
        params: List[Any] = [kind.value, 1 if scope.is_sandbox else 0]
        if active_only:
            query += " AND is_inactive = 0"
        query += " ORDER BY id"

        cursor.execute(query, params)
        return [_row_to_entity(row) for row in cursor.fetchall()]
    finally:
        conn.close()


def delete_entities(
    kind: ReferenceKind,
    scope: Scope,
    db_path: Path = DEFAULT_DB_PATH,
) -> int:
    """Delete all cached entities of one kind within one scope."""
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute(
            "DELETE FROM reference_entity WHERE kind = ? AND is_sandbox = ?",
            (kind.value, 1 if scope.is_sandbox else 0),
        )
        conn.commit()
        return cursor.rowcount
    finally:
        conn.close()


def _row_to_entity(row: sqlite3.Row) -> ReferenceEntity:
    return ReferenceEntity(
        kind=ReferenceKind(row["kind"]),
        external_id=row["external_id"],
        display_name=row["display_name"] or "",
        code=row["code"],
        item_type=row["item_type"],
        allowed_currencies=json.loads(row["allowed_currencies"] or "[]"),
        is_sandbox_scope=bool(row["is_sandbox"]),
        is_inactive=bool(row["is_inactive"]),
    )


# =============================================================================
# JSON Import
# =============================================================================

# Export field name -> ReferenceEntity field
_FIELD_ALIASES = {
    "external_id": ("external_id", "netsuite_id", "internal_id", "internalId", "id"),
    "display_name": ("display_name", "name", "entity_id", "itemId"),
    "code": ("code", "account_number", "acctNumber", "currency_code", "symbol", "item_number"),
    "item_type": ("item_type", "itemType"),
    "allowed_currencies": ("allowed_currencies", "supported_currencies"),
    "is_inactive": ("is_inactive", "isInactive"),
}


def _first_present(record: Dict[str, Any], names) -> Any:
    for name in names:
        value = record.get(name)
        if value is not None and value != "":
            return value
    return None


def entity_from_record(
    record: Dict[str, Any],
    kind: ReferenceKind,
    scope: Scope,
) -> ReferenceEntity:
    """Build a ReferenceEntity from an exported master-data record."""
    external_id = _first_present(record, _FIELD_ALIASES["external_id"])
    if external_id is None:
        raise ValueError(f"{kind.value} record has no external id: {record}")

    currencies = _first_present(record, _FIELD_ALIASES["allowed_currencies"]) or []
    if isinstance(currencies, str):
        currencies = json.loads(currencies) if currencies.strip().startswith("[") else [currencies]

    code = _first_present(record, _FIELD_ALIASES["code"])
    return ReferenceEntity(
        kind=kind,
        external_id=str(external_id),
        display_name=str(_first_present(record, _FIELD_ALIASES["display_name"]) or ""),
        code=str(code) if code is not None else None,
        item_type=_first_present(record, _FIELD_ALIASES["item_type"]),
        allowed_currencies=[str(c) for c in currencies],
        is_sandbox_scope=scope.is_sandbox,
        is_inactive=bool(_first_present(record, _FIELD_ALIASES["is_inactive"]) or False),
    )


def load_entities_from_json(
    path: Path,
    kind: ReferenceKind,
    scope: Scope,
    db_path: Path = DEFAULT_DB_PATH,
) -> int:
    """Load a JSON export (list of records) into the cache.

    Raises:
        SetupFailure: If the file cannot be read or is not a JSON list
    """
    try:
        records = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise SetupFailure(f"Cannot load reference export {path}: {e}") from e
    if not isinstance(records, list):
        raise SetupFailure(f"Reference export {path} must contain a JSON list")

    entities = [entity_from_record(record, kind, scope) for record in records]
    count = upsert_entities(entities, db_path=db_path)
    logger.info(
        f"Loaded {count} {kind.value} record(s) into the reference cache",
        extra_fields={"scope": scope.value, "path": str(path)},
    )
    return count


class SQLiteReferenceCache(BaseReferenceSource):
    """ReferenceDataSource backed by the local SQLite cache."""

    def __init__(self, db_path: Path = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        if not self.db_path.exists():
            raise SetupFailure(
                f"Reference cache {self.db_path} does not exist. "
                "Run scripts/load_reference_data.py first."
            )

    def list_entities(
        self,
        kind: ReferenceKind,
        scope: Scope,
        active_only: bool = False,
    ) -> List[ReferenceEntity]:
        return list_entities(kind, scope, active_only=active_only, db_path=self.db_path)
