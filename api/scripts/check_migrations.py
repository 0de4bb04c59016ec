"""Fail if Alembic migrations are out of sync with SQLAlchemy models."""

from __future__ import annotations

import argparse
import asyncio

from alembic.autogenerate import compare_metadata
from alembic.migration import MigrationContext
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from forum_api import models  # noqa: F401  # Ensure models are registered
from forum_api.config import settings
from forum_api.database import Base, migrate_db


def _compare(connection) -> list[object]:
    context = MigrationContext.configure(connection, opts={"compare_type": True})
    return compare_metadata(context, Base.metadata)


async def main(database_url: str, migrate: bool) -> int:
    if migrate:
        await migrate_db("head", database_url)

    engine = create_async_engine(database_url)
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
        diffs = await conn.run_sync(_compare)
    await engine.dispose()

    if diffs:
        print("Detected schema differences between models and database:")
        for diff in diffs:
            print(diff)
        return 1

    print("No schema differences detected.")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="Database to compare (default: DATABASE_URL)",
    )
    parser.add_argument(
        "--migrate",
        action="store_true",
        help="Upgrade the database to head before comparing",
    )
    args = parser.parse_args()
    raise SystemExit(asyncio.run(main(args.database_url, args.migrate)))
