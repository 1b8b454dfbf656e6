"""Script to create an approved admin account, or promote an existing one."""

import argparse
import asyncio
import logging

from components.core.init_db import db_manager, get_db
from components.core.logging_config import configure_logging
from components.user.models import AccountStatus, AppRole
from components.user.repository import UserRepository
from components.user.schemas import UserCreate
from components.user.utils import generate_password

logger = logging.getLogger(__name__)


async def create_admin(email: str, full_name: str, shop_name: str, phone: str, password: str) -> None:
    await db_manager.create_tables()
    async for db in get_db():
        repo = UserRepository(db)
        user = await repo.get_by_email(email)
        if user is None:
            user = await repo.create(
                UserCreate(
                    email=email,
                    password=password,
                    full_name=full_name,
                    shop_name=shop_name,
                    phone=phone,
                ),
                status=AccountStatus.APPROVED,
                email_confirmed=True,
            )
            logger.info("Created admin account %s", user.email)
        else:
            await repo.approve(user.id)
            logger.info("Promoting existing account %s", user.email)
        await repo.grant_role(user.id, AppRole.ADMIN)
    await db_manager.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("email")
    parser.add_argument("--full-name", default="Platform Admin")
    parser.add_argument("--shop-name", default="AIADA")
    parser.add_argument("--phone", default="9000000001")
    parser.add_argument("--password", help="Generated and printed when omitted")
    args = parser.parse_args()

    configure_logging()
    password = args.password or generate_password()
    asyncio.run(create_admin(args.email, args.full_name, args.shop_name, args.phone, password))
    if not args.password:
        print(f"Generated password: {password}")


if __name__ == "__main__":
    main()
