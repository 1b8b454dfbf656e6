"""Script to import customers from a CSV file on behalf of a shop."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from components.core.database import DatabaseManager
from components.core.init_db import db_manager
from components.core.logging_config import configure_logging
from components.customer.repository import CustomerRepository
from components.user.repository import UserRepository

logger = logging.getLogger(__name__)


async def import_customers(csv_path: Path, shop_email: str, manager: DatabaseManager = db_manager) -> bool:
    result = None
    async with manager.get_db() as db:
        shop = await UserRepository(db).get_by_email(shop_email)
        if shop is not None:
            with open(csv_path, "rb") as f:
                result = await CustomerRepository(db).import_from_csv(f, shop.id)

    if result is None:
        logger.error("No account found for %s", shop_email)
        return False
    if not result.success:
        logger.error(result.message)
        for error in result.errors or []:
            logger.error("Row %d: %s", error.row, error.message)
        return False
    logger.info("%s: %d created, %d already registered", result.message, result.created, result.existing)
    return True


async def run(csv_path: Path, shop_email: str) -> bool:
    try:
        return await import_customers(csv_path, shop_email)
    finally:
        await db_manager.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("csv_file", type=Path)
    parser.add_argument("shop_email", help="Email of the shop the customers are added to")
    args = parser.parse_args()

    configure_logging()
    if not asyncio.run(run(args.csv_file, args.shop_email)):
        sys.exit(1)


if __name__ == "__main__":
    main()
