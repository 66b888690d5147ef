"""
Update ERP line prices after discount.

Item lines get rate = (unit_price * quantity - discount) / quantity, expense
lines get amount = unit_price * quantity - discount. Sheet lines without a
discount are ignored.

Usage:
    python scripts/update_prices_after_discount.py --dry-run
    python scripts/update_prices_after_discount.py --po PO-000042
"""

import argparse
from pathlib import Path

import sys
sys.path.append(str(Path(__file__).resolve().parents[1]))

from core.config import Settings
from core.errors import SetupFailure
from core.observability.logging import configure_logging
from intake.layouts import PURCHASE_ORDER_LAYOUT
from pricing.calculator import quantize_money
from workflows.price_update import run_price_update
from workflows.runtime import build_catalog, build_transport, workbook_for


def main() -> int:
    parser = argparse.ArgumentParser(description="Update ERP prices after discount")
    parser.add_argument("--dry-run", action="store_true", help="Show what would change without updating")
    parser.add_argument("--po", help="Update one transaction only (by transaction number)")
    parser.add_argument("--workbook", type=Path, help="Workbook directory")
    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level, json_format=settings.log_json)
    layout = PURCHASE_ORDER_LAYOUT

    try:
        result = run_price_update(
            workbook_for(settings, layout, args.workbook),
            build_transport(settings),
            layout,
            catalog=build_catalog(settings),
            dry_run=args.dry_run,
            transaction_number=args.po,
            delay_seconds=settings.write_delay_seconds,
        )
    except SetupFailure as e:
        print(f"Setup failed: {e}")
        return 1

    for plan in result.plans:
        if not plan.has_changes:
            continue
        print(f"\n{plan.transaction.transaction_number}:")
        for change in plan.changes:
            print(
                f"  [{change.line_type}] {change.line_label}: {change.field_name} "
                f"{quantize_money(change.current)} -> {quantize_money(change.new)}"
            )

    print()
    for line in result.summary(dry_run=args.dry_run):
        print(line)
    return 1 if result.errors else 0


if __name__ == "__main__":
    sys.exit(main())
