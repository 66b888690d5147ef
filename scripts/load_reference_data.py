"""
Load a master-data export into the reference cache.

The export is a JSON list of records (vendors, accounts, departments, ...).
Common field names are recognised (internalId/netsuite_id, name, acctNumber,
isInactive, ...).

Usage:
    python scripts/load_reference_data.py vendors.json --kind vendor --scope sandbox
    python scripts/load_reference_data.py accounts.json --kind account --scope production --db cache.db
"""

import argparse
from pathlib import Path

import sys
sys.path.append(str(Path(__file__).resolve().parents[1]))

from core.config import Settings
from core.errors import SetupFailure
from core.observability.logging import configure_logging
from models.refs import ReferenceKind, Scope
from reference_resolver.db import init_reference_db, load_entities_from_json


def main() -> int:
    parser = argparse.ArgumentParser(description="Load a master-data export into the reference cache")
    parser.add_argument("file", type=Path, help="JSON export file")
    parser.add_argument("--kind", required=True, choices=[k.value for k in ReferenceKind], help="Record kind")
    parser.add_argument("--scope", choices=[s.value for s in Scope], help="Scope (default: SYNC_ENVIRONMENT)")
    parser.add_argument("--db", type=Path, help="Reference cache path (default: REFERENCE_DB_PATH)")
    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level, json_format=settings.log_json)

    db_path = args.db or settings.reference_db_path
    scope = Scope(args.scope) if args.scope else settings.scope

    init_reference_db(db_path)
    try:
        count = load_entities_from_json(args.file, ReferenceKind(args.kind), scope, db_path=db_path)
    except SetupFailure as e:
        print(f"Load failed: {e}")
        return 1

    print(f"Loaded {count} {args.kind} record(s) into {db_path} ({scope.value})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
