"""
Sync intake sheet rows to the ERP.

Creates one purchase order, vendor bill or expense report per row of the
intake workbook, skipping rows whose transaction already exists. Created rows
are moved to the Synced sheet; failures and skipped rows go to the Errors sheet.

Usage:
    python scripts/sync_from_sheets.py --kind po
    python scripts/sync_from_sheets.py --kind bill --force
    python scripts/sync_from_sheets.py --kind expense --workbook ./workbook/expenses
"""

import argparse
from pathlib import Path

import sys
sys.path.append(str(Path(__file__).resolve().parents[1]))

from core.config import Settings
from core.errors import SetupFailure
from core.observability.logging import configure_logging
from intake.layouts import KIND_ALIASES, layout_for
from workflows.runtime import (
    build_builder,
    build_resolver,
    build_transport,
    load_legacy_accounts,
    workbook_for,
)
from workflows.sheet_sync import SheetSyncRun


def main() -> int:
    parser = argparse.ArgumentParser(description="Sync intake sheet rows to the ERP")
    parser.add_argument("--kind", choices=sorted(KIND_ALIASES), default="po", help="Transaction kind")
    parser.add_argument("--force", action="store_true", help="Re-sync rows even if the transaction already exists")
    parser.add_argument("--workbook", type=Path, help="Workbook directory (default: WORKBOOK_DIR/<kind>)")
    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level, json_format=settings.log_json)

    layout = layout_for(KIND_ALIASES[args.kind])
    print("=" * 60)
    print(f"SYNC {layout.kind.label.upper()}S ({settings.environment})")
    print("=" * 60)

    try:
        resolver = build_resolver(settings)
        run = SheetSyncRun(
            workbook_for(settings, layout, args.workbook),
            build_transport(settings),
            build_builder(settings, resolver),
            layout,
            legacy_accounts=load_legacy_accounts(settings),
            force=args.force,
            delay_seconds=settings.write_delay_seconds,
        )
        result = run.run()
    except SetupFailure as e:
        print(f"Setup failed: {e}")
        return 1

    print()
    for line in result.summary(max_errors=settings.error_display_limit):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
