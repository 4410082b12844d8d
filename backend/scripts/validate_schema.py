"""Schema check: report columns the app expects but the database lacks.

Usage:
    cd backend
    python scripts/validate_schema.py [--database-url URL]

Exits 1 when any table or column is missing.
"""

import argparse
import asyncio
import logging
import os
import sys

# Ensure backend/src is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(message)s")
logger = logging.getLogger(__name__)


async def validate(database_url: str | None) -> int:
    from sqlalchemy.ext.asyncio import create_async_engine
    from estateguard.app.config import get_settings
    from estateguard.services.schema_check import EXPECTED_COLUMNS, find_missing_columns

    url = database_url or get_settings().database_url
    engine = create_async_engine(url)
    try:
        missing = await find_missing_columns(engine)
    finally:
        await engine.dispose()

    for table in EXPECTED_COLUMNS:
        if table in missing:
            logger.error("[%s] missing: %s", table, ", ".join(missing[table]))
        else:
            logger.info("[%s] OK", table)

    if missing:
        total = sum(len(cols) for cols in missing.values())
        logger.error("Found %d missing column(s). Apply migrations before starting the API.", total)
        return 1
    logger.info("Schema is in sync with the application.")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Validate the EstateGuard database schema")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    args = parser.parse_args()
    sys.exit(asyncio.run(validate(args.database_url)))


if __name__ == "__main__":
    main()
