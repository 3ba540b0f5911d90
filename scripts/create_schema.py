#!/usr/bin/env python
"""Create the caregiver payroll tables.

Usage:
    python scripts/create_schema.py
    python scripts/create_schema.py --database-url postgresql+asyncpg://...
    python scripts/create_schema.py --dry-run
"""

import argparse
import asyncio
import sys

from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateTable

from caregiver_payroll.config import get_settings
from caregiver_payroll.database import create_schema, get_engine
from caregiver_payroll.models import Base


def print_ddl() -> None:
    """Print the CREATE TABLE statements for PostgreSQL."""
    dialect = postgresql.dialect()
    for table in Base.metadata.sorted_tables:
        print(f"{CreateTable(table).compile(dialect=dialect)};")


async def run(database_url: str) -> None:
    engine = get_engine(database_url)
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Create caregiver payroll tables")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (default: DATABASE_URL from the environment)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the DDL without connecting",
    )
    args = parser.parse_args()

    if args.dry_run:
        print_ddl()
        return 0

    database_url = args.database_url or get_settings().database_url
    print(f"Creating tables on {database_url.split('@')[-1]}")
    asyncio.run(run(database_url))
    print("Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
