#!/usr/bin/env python3
"""Initialize the employee directory store.

Creates the database and containers if needed, seeds the initial departments
and employees when both containers are empty, and backfills ``views`` on legacy
employee documents. Run from the backend/ directory:

    python3 scripts/seed.py [--dry-run] [--verbose]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from app.core.config import Settings  # noqa: E402
from app.core.database import SEED_DEPARTMENTS, SEED_EMPLOYEES, DocumentStore  # noqa: E402

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create, seed and migrate the employee directory containers",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the seed records without connecting to Cosmos DB",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    return parser.parse_args(argv)


async def seed(args: argparse.Namespace, settings: Settings | None = None) -> int:
    settings = settings or Settings()
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")

    if args.dry_run:
        for department in SEED_DEPARTMENTS:
            logger.info("[DRY RUN] department %s (floor %d)", department["name"], department["floor"])
        for employee in SEED_EMPLOYEES:
            logger.info("[DRY RUN] employee %s, %s (%s)", employee["name"], employee["position"], employee["department"])
        return 0

    store = DocumentStore(settings)
    if not store.configured:
        logger.error("COSMOS_DB_ENDPOINT and COSMOS_DB_KEY must be set")
        return 1

    logger.info("Connecting to Cosmos DB...")
    try:
        await store.connect()
        employees = await store.list_employees()
        departments = await store.list_departments()
    except Exception:
        logger.exception("Store initialization failed")
        return 1
    finally:
        await store.close()

    logger.info("Seeded: %s", "yes" if store.seeded else "no (containers not empty)")
    logger.info("Legacy employees migrated: %d", store.migrated)
    logger.info("Total employees: %d, departments: %d", len(employees), len(departments))
    return 0


def main() -> None:
    args = parse_args()
    sys.exit(asyncio.run(seed(args)))


if __name__ == "__main__":
    main()
