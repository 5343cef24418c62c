#!/usr/bin/env python
"""Migrate the legacy JSON data files into the database.

Reads foods.json, profiles.json, menus.json, meals.json and shared-menus.json
from the data directory and replaces the database contents with them in a
single transaction. Safe to re-run: every run starts from empty tables.

Usage:
    python scripts/migrate_json_to_db.py --data-dir data/ [--create-schema]
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from kidsmenu.core.config import settings
from kidsmenu.core.logging import configure_logging, get_logger
from kidsmenu.db.base import Base
from kidsmenu.db.session import build_engine
from kidsmenu.domain.errors import MigrationError
from kidsmenu.domain.migration.loader import migrate
from kidsmenu.domain.migration.snapshot import load_snapshot

logger = get_logger("migrate_json_to_db")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=f"Import legacy JSON data files into the {settings.project_name} database")
    parser.add_argument("--data-dir", type=Path, default=None, help="Directory with the legacy JSON files")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy async URL; falls back to DATABASE_URL")
    parser.add_argument("--household-name", default=None, help="Name of the default household")
    parser.add_argument("--create-schema", action="store_true", help="Create missing tables before importing")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.verbose:
        configure_logging(level="DEBUG")

    snapshot = load_snapshot(args.data_dir or settings.resolved_legacy_data_dir)
    engine = build_engine(args.database_url)
    try:
        if args.create_schema:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        report = await migrate(engine, snapshot, household_name=args.household_name)
    except MigrationError as exc:
        print(f"\n✗ Migration FAILED, transaction rolled back: {exc}", file=sys.stderr)
        return 1
    finally:
        await engine.dispose()

    print("\n".join(report.format_lines()))
    print("\n✓ Migration complete!")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
