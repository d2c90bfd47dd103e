#!/usr/bin/env python3
"""
Import voucher codes for a purchase order.

Codes come from a CSV / XLSX / ZIP file with a 'code' heading, or from
repeated --code arguments.  The import is all-or-nothing.

Usage:
  python3 scripts/import_vouchers.py --order-id <uuid> --file codes.xlsx
  python3 scripts/import_vouchers.py --order-id <uuid> --code A --code B
"""

from __future__ import annotations

import argparse
import sys
from uuid import UUID

from procurement_config import get_settings
from procurement_kernel.exceptions import ProcurementError
from procurement_kernel.logging_config import configure_logging
from procurement_services.procurement_service import ProcurementService


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import voucher codes for a purchase order")
    parser.add_argument("--config", default=None, help="YAML settings file")
    parser.add_argument("--order-id", required=True, type=UUID, help="Purchase order id")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", help="CSV, XLSX or ZIP file with a 'code' column")
    source.add_argument(
        "--code",
        action="append",
        dest="codes",
        help="Voucher code (repeatable)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging()

    try:
        settings = get_settings(args.config)
        procurement = ProcurementService.from_settings(settings)
        result = procurement.import_vouchers(
            args.order_id, codes=args.codes, file_path=args.file,
        )
    except (ProcurementError, FileNotFoundError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(f"Imported {result.imported_count} voucher codes into order {result.purchase_order_id}")
    for source in result.sources:
        print(f"  from {source}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
