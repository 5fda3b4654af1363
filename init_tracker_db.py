"""
Tracker database setup

Creates (or migrates) the SQLite database the API serves, optionally loads
sample data, and runs the consistency checks.

Usage:
    python init_tracker_db.py                         # Create tracker.sqlite
    python init_tracker_db.py --db data/tracker.sqlite
    python init_tracker_db.py --seed                  # Load sample records
    python init_tracker_db.py --check                 # Run consistency checks
    python init_tracker_db.py --summary               # Record counts and totals
    python init_tracker_db.py --check --json          # Checks as JSON
"""

import argparse
import json
import logging
import sqlite3
import sys
from pathlib import Path

from store.checks import build_registry
from store.schema import KINDS, SCHEMA_VERSION, create_tracker_db
from store.seed import seed_sample_data
from utils.config import DatabaseConfig
from utils.database import get_table_count
from utils.formatting import format_amount, format_count

logger = logging.getLogger("init_tracker_db")

DEFAULT_DB_PATH = DatabaseConfig().db_path

# Column holding each kind's planned amount, summed by --summary.
_AMOUNT_SQL = {
    "office-requirements": "SUM(price_per_unit * number_of_units)",
    "staffing-requirements": "SUM(annual_salary)",
    "other-expenses": "SUM(amount)",
}


def print_summary(conn: sqlite3.Connection) -> None:
    """Print record counts (and planned totals where a record carries one)."""
    print(f"Schema version: {SCHEMA_VERSION}")
    for kind in KINDS.values():
        line = f"  {kind.label:<24} {format_count(get_table_count(conn, kind.table)):>8}"
        expr = _AMOUNT_SQL.get(kind.slug)
        if expr:
            total = conn.execute(f"SELECT {expr} FROM {kind.table}").fetchone()[0]
            line += f"   {format_amount(total)}"
        print(line)
    uacs = get_table_count(conn, "reference_uacs")
    print(f"  {'UACS codes':<24} {format_count(uacs):>8}")


def main(argv: list[str] | None = None) -> int:
    """Parse CLI arguments, set up the database, and return an exit status."""
    parser = argparse.ArgumentParser(
        description="Create or migrate the program funding tracker database")
    parser.add_argument("--db", type=Path, default=DEFAULT_DB_PATH,
                        help=f"Database path (default: {DEFAULT_DB_PATH})")
    parser.add_argument("--seed", action="store_true",
                        help="Load one sample record of every kind plus UACS codes")
    parser.add_argument("--check", action="store_true",
                        help="Run consistency checks; exit non-zero on errors")
    parser.add_argument("--summary", action="store_true",
                        help="Print record counts and planned totals")
    parser.add_argument("--json", action="store_true",
                        help="With --check, print the results as JSON")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s %(message)s")

    conn = create_tracker_db(args.db)
    logger.info("Database ready at %s (schema version %d)", args.db, SCHEMA_VERSION)
    status = 0
    try:
        if args.seed:
            counts = seed_sample_data(conn)
            logger.info("Seeded %s", ", ".join(f"{t}={n}" for t, n in counts.items()))
        if args.check:
            result = build_registry().run_all(conn)
            if args.json:
                print(json.dumps(result.to_dict(), indent=2))
            else:
                print(result.summary_text())
            status = 0 if result.is_valid() else 1
        if args.summary:
            print_summary(conn)
    finally:
        conn.close()
    return status


if __name__ == "__main__":
    sys.exit(main())
