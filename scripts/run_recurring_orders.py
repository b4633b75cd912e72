#!/usr/bin/env python3
"""
Run the recurring order daily cycle once.

Materializes every active template whose next shipping date falls inside
the execution window, advances it, and prints a summary.  Meant to be
invoked once a day by cron (or any external trigger); running it twice on
the same day creates no duplicate orders.

Usage:
    python3 scripts/run_recurring_orders.py [options]

Examples:
    # Run for today against a local SQLite database, creating tables if needed
    python3 scripts/run_recurring_orders.py --db-url sqlite:///orders.db --create-tables

    # Replay a specific date with a custom configuration set
    python3 scripts/run_recurring_orders.py --run-date 2024-03-01 --config my_set.yaml

    # Load master codes from the configuration, then dump carrier A rows
    python3 scripts/run_recurring_orders.py --seed-master-data --export-csv carrier_a=yamato.csv

    # Dump carrier B rows as a spreadsheet
    python3 scripts/run_recurring_orders.py --export-xlsx carrier_b=sagawa.xlsx
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import date
from pathlib import Path
from uuid import UUID, uuid4

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

DB_URL = os.environ.get("RECURRING_ORDERS_DB_URL", "sqlite:///recurring_orders.db")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the recurring order daily cycle once.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--run-date",
        type=lambda s: date.fromisoformat(s),
        default=None,
        help="Cycle date (YYYY-MM-DD). Default: today.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration YAML (default: bundled default set).",
    )
    parser.add_argument(
        "--db-url",
        default=DB_URL,
        help=f"Database URL (default: RECURRING_ORDERS_DB_URL or {DB_URL!r}).",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before running.",
    )
    parser.add_argument(
        "--seed-master-data",
        action="store_true",
        help="Replace master code tables with the configured seed rows.",
    )
    parser.add_argument(
        "--export-csv",
        action="append",
        default=[],
        metavar="CARRIER=PATH",
        help="After the cycle, write all rows of CARRIER (carrier_a/carrier_b) to PATH. Repeatable.",
    )
    parser.add_argument(
        "--export-xlsx",
        action="append",
        default=[],
        metavar="CARRIER=PATH",
        help="Like --export-csv, but writes an .xlsx workbook. Repeatable.",
    )
    parser.add_argument(
        "--actor-id",
        default=None,
        help="Actor UUID for audit (default: RECURRING_ORDERS_ACTOR_ID env or new UUID).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Debug-level logging.",
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    actor_id = (
        UUID(args.actor_id)
        if args.actor_id
        else UUID(os.environ.get("RECURRING_ORDERS_ACTOR_ID", str(uuid4())))
    )

    exports: list[tuple[str, str, Path]] = []
    for fmt, specs in (("csv", args.export_csv), ("xlsx", args.export_xlsx)):
        for spec in specs:
            carrier, sep, path = spec.partition("=")
            if not sep or carrier not in ("carrier_a", "carrier_b") or not path:
                print(
                    f"ERROR: --export-{fmt} expects carrier_a=PATH or carrier_b=PATH, got {spec!r}",
                    file=sys.stderr,
                )
                return 1
            exports.append((fmt, carrier, Path(path)))

    # Lazy imports so we fail fast on args first
    from orders_config import get_active_config
    from orders_kernel.db.engine import create_tables, get_session, get_session_factory, init_engine_from_url
    from orders_kernel.domain.clock import SystemClock
    from orders_kernel.logging_config import configure_logging
    from orders_recurring.domain.types import CarrierCode
    from orders_recurring.orchestrator import RecurringOrderOrchestrator
    from orders_recurring.services.carriers import CarrierExportWriter

    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = get_active_config(args.config)
    except Exception as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return 1

    try:
        init_engine_from_url(args.db_url)
        if args.create_tables:
            create_tables()
    except Exception as e:
        print(f"ERROR: Database init failed: {e}", file=sys.stderr)
        return 1

    clock = SystemClock()
    run_date = args.run_date or clock.today()

    session = get_session()
    try:
        orchestrator = RecurringOrderOrchestrator.from_session(
            session, config=config, clock=clock, actor_id=actor_id,
        )

        if args.seed_master_data:
            count = orchestrator.seed_master_data()
            session.commit()
            print(f"Seeded {count} master code rows.")

        scheduler = orchestrator.create_scheduler(session_factory=get_session_factory())
        result = scheduler.run_daily_cycle(run_date)

        print(f"Run date: {result.run_date}")
        print(f"  Active templates: {result.total_active}")
        print(f"  Executed: {result.executed}")
        print(f"  Failed:   {result.failed}")
        print(f"  Skipped:  {result.skipped}")
        for outcome in result.outcomes:
            if outcome.order_id:
                print(f"  + {outcome.template_id} -> order {outcome.order_id}, next ship {outcome.next_shipping_date}")
            elif outcome.error_code:
                print(f"  ! {outcome.template_id}: {outcome.error_code} {outcome.error_message}")

        writer = CarrierExportWriter(session, actor_id)
        for fmt, carrier, path in exports:
            if fmt == "xlsx":
                count = writer.dump_xlsx(CarrierCode(carrier), path)
            else:
                with open(path, "w", encoding="utf-8", newline="") as f:
                    count = writer.dump_csv(CarrierCode(carrier), f)
            print(f"Wrote {count} {carrier} rows to {path}")
    finally:
        session.close()

    return 1 if result.failed else 0


if __name__ == "__main__":
    sys.exit(main())
