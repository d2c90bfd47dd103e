#!/usr/bin/env python3
"""
Fetch released voucher codes for pending EZ Cards orders.

Runs one reconciliation pass, prints a metric table and any per-order
errors, and exits 1 when any order failed.  With --watch it keeps running
on the configured interval until interrupted.

Usage:
  python3 scripts/reconcile_vouchers.py [--config procurement.yaml]
  python3 scripts/reconcile_vouchers.py --watch [--interval 120]
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TextIO

from procurement_batch.runner import ReconciliationRunner
from procurement_batch.types import ReconciliationSummary
from procurement_config import get_settings
from procurement_kernel.exceptions import ProcurementError
from procurement_kernel.logging_config import configure_logging
from procurement_services.procurement_service import ProcurementService


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Add voucher codes for EZ Cards purchase orders",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML settings file (default: $PROCUREMENT_CONFIG)",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep running, one pass every --interval seconds",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between passes in --watch mode (default: from settings)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log at DEBUG level",
    )
    return parser.parse_args(argv)


def print_summary(summary: ReconciliationSummary, out: TextIO = sys.stdout) -> None:
    rows = [
        ("Total Orders Found", summary.total_orders),
        ("Orders Processed", summary.processed_orders),
        ("Orders Skipped", summary.skipped_orders),
        ("Orders Failed", summary.failed_orders),
        ("Orders Completed", summary.completed_orders),
        ("Total Vouchers Added", summary.total_vouchers_added),
    ]
    width = max(len(name) for name, _ in rows)
    print(f"{'Metric':<{width}}  Count", file=out)
    print(f"{'-' * width}  -----", file=out)
    for name, count in rows:
        print(f"{name:<{width}}  {count}", file=out)

    if summary.errors:
        print("", file=out)
        print("Errors encountered:", file=out)
        for error in summary.errors:
            print(
                f"  Order #{error.order_number} (ID: {error.purchase_order_id}): "
                f"{error.error}",
                file=out,
            )


def run_once(procurement: ProcurementService, out: TextIO = sys.stdout) -> int:
    print("Starting EZ Cards voucher code processing...", file=out)
    summary = procurement.reconcile_all_pending()
    print_summary(summary, out)
    print("", file=out)
    if summary.has_failures:
        print("Processing completed with some errors. Check the logs for details.", file=out)
        return 1
    print("All orders processed successfully!", file=out)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        settings = get_settings(args.config)
        procurement = ProcurementService.from_settings(settings)
    except (ProcurementError, FileNotFoundError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if not args.watch:
        return run_once(procurement)

    interval = args.interval or settings.reconciliation.interval_seconds
    runner = ReconciliationRunner(procurement.reconciliation_job(), interval_seconds=interval)
    runner.start()
    print(f"Reconciling every {interval:g}s; Ctrl-C to stop.")
    try:
        runner.wait()
    except KeyboardInterrupt:
        pass
    finally:
        runner.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
