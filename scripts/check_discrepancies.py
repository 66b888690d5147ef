"""
Check discount discrepancies between the ERP and the Items sheet.

For every synced purchase order (or the one given with --po), compares each
ERP line with its discount-adjusted sheet value and lists the sheet lines
that no ERP line matched. Read-only.

Usage:
    python scripts/check_discrepancies.py
    python scripts/check_discrepancies.py --po PO-000042
    python scripts/check_discrepancies.py --epr EPR-0042 --output audit.json
"""

import argparse
import json
from pathlib import Path

import sys
sys.path.append(str(Path(__file__).resolve().parents[1]))

from core.config import Settings
from core.errors import SetupFailure
from core.observability.logging import configure_logging
from intake.layouts import PURCHASE_ORDER_LAYOUT
from reconciliation.engine import format_report
from workflows.discrepancy_check import run_discrepancy_check
from workflows.runtime import build_catalog, build_transport, workbook_for


def main() -> int:
    parser = argparse.ArgumentParser(description="Check PO discount discrepancies")
    parser.add_argument("--po", help="Check one transaction only (by transaction number)")
    parser.add_argument("--epr", help="Check one row key only")
    parser.add_argument("--workbook", type=Path, help="Workbook directory")
    parser.add_argument("--output", type=Path, help="Output JSON file for results")
    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level, json_format=settings.log_json)
    layout = PURCHASE_ORDER_LAYOUT

    try:
        result = run_discrepancy_check(
            workbook_for(settings, layout, args.workbook),
            build_transport(settings),
            layout,
            catalog=build_catalog(settings),
            transaction_number=args.po,
            row_key=args.epr,
        )
    except SetupFailure as e:
        print(f"Setup failed: {e}")
        return 1

    for report in result.reports:
        print()
        for line in format_report(report):
            print(line)

    print()
    print("Summary:")
    for line in result.summary():
        print(f"  {line}")

    if args.output:
        output_data = [
            {**report.summary(), "lines": [d.model_dump(mode="json") for d in report.discrepancies]}
            for report in result.reports
        ]
        args.output.write_text(json.dumps(output_data, indent=2), encoding="utf-8")
        print(f"\nResults written to {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
