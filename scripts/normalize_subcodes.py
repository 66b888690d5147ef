"""
Normalize legacy subcodes to canonical account numbers.

Looks each subcode up in the legacy chart (number -> account name) and
rewrites it with the canonical number for that name.

Usage:
    python scripts/normalize_subcodes.py --kind po --dry-run
    python scripts/normalize_subcodes.py --kind bill
"""

import argparse
from pathlib import Path

import sys
sys.path.append(str(Path(__file__).resolve().parents[1]))

from core.config import Settings
from core.errors import SetupFailure
from core.observability.logging import configure_logging
from intake.layouts import KIND_ALIASES, layout_for
from workflows.runtime import load_legacy_accounts, workbook_for
from workflows.subcode_normalization import normalize_subcodes


def main() -> int:
    parser = argparse.ArgumentParser(description="Normalize legacy subcodes in the intake sheet")
    parser.add_argument("--kind", choices=sorted(KIND_ALIASES), default="po", help="Transaction kind")
    parser.add_argument("--dry-run", action="store_true", help="Show changes without writing them")
    parser.add_argument("--workbook", type=Path, help="Workbook directory")
    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level, json_format=settings.log_json)
    layout = layout_for(KIND_ALIASES[args.kind])

    try:
        result = normalize_subcodes(
            workbook_for(settings, layout, args.workbook),
            layout,
            load_legacy_accounts(settings),
            dry_run=args.dry_run,
        )
    except SetupFailure as e:
        print(f"Setup failed: {e}")
        return 1

    print(f"Table '{result.table}', column '{result.column}'")
    for index, change in result.changes:
        print(f"  row {index + 2}: {change.original} -> {change.normalized} ({change.account_name})")
    for line in result.summary(dry_run=args.dry_run):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
