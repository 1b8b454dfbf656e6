"""Script to seed demo data into the database."""

import asyncio
import logging
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import delete

from components.core.init_db import db_manager, get_db
from components.core.logging_config import configure_logging
from components.credit.models import Credit, StatusChange
from components.credit.repository import CreditRepository
from components.credit.schemas import CreditCreate, DefaulterUpdate
from components.customer.models import Customer, ShopCustomer
from components.customer.repository import CustomerRepository
from components.customer.schemas import CustomerCreate
from components.payment.models import Payment, PaymentMethod
from components.payment.schemas import PaymentCreate
from components.report.models import CreditCheckLog
from components.user.models import AccountStatus, AppRole, User, UserRole
from components.user.repository import UserRepository
from components.user.schemas import UserCreate

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

SHOPS = [
    UserCreate(
        email="ravi@sharmastores.in",
        password=DEMO_PASSWORD,
        full_name="Ravi Sharma",
        shop_name="Sharma General Stores",
        phone="9876543210",
    ),
    UserCreate(
        email="anita@guptakirana.in",
        password=DEMO_PASSWORD,
        full_name="Anita Gupta",
        shop_name="Gupta Kirana",
        phone="9123456780",
    ),
]

CUSTOMERS = [
    CustomerCreate(name="Suresh Kumar", phone="9811122233", address="12 MG Road, Jaipur", id_proof="123412341234"),
    CustomerCreate(name="Meena Devi", phone="9822233344", address="45 Station Road, Jaipur", id_proof="234523452345"),
    CustomerCreate(name="Arjun Singh", phone="9833344455", address="7 Civil Lines, Jaipur", id_proof="345634563456"),
]


async def seed_data():
    """Seed an admin, two approved shops and a small ledger."""
    await db_manager.create_tables()
    async for db in get_db():
        # Clear existing data
        for model in (CreditCheckLog, Payment, StatusChange, Credit, ShopCustomer, Customer, UserRole, User):
            await db.execute(delete(model))
        await db.commit()

        users = UserRepository(db)
        admin = await users.create(
            UserCreate(
                email="admin@aiada.in",
                password=DEMO_PASSWORD,
                full_name="Platform Admin",
                shop_name="AIADA",
                phone="9000000001",
            ),
            status=AccountStatus.APPROVED,
            email_confirmed=True,
        )
        await users.grant_role(admin.id, AppRole.ADMIN)

        shops = [
            await users.create(shop, status=AccountStatus.APPROVED, email_confirmed=True)
            for shop in SHOPS
        ]
        logger.info("Created admin %s and %d shops", admin.email, len(shops))

        customers = CustomerRepository(db)
        ledger = CreditRepository(db)
        registered = []
        for shop, customer in zip([shops[0], shops[0], shops[1]], CUSTOMERS):
            db_customer, _, _ = await customers.add_or_get(customer, shop.id)
            registered.append(db_customer)

        # Suresh owes both shops
        first = await ledger.issue_credit(
            CreditCreate(customer_id=registered[0].id, amount=Decimal("1000"), description="Groceries"),
            shops[0].id,
        )
        await ledger.record_payment(
            first.id,
            PaymentCreate(amount=Decimal("400"), payment_date=date.today() - timedelta(days=3)),
            shops[0].id,
        )
        await ledger.issue_credit(
            CreditCreate(customer_id=registered[0].id, amount=Decimal("2500"), description="Festival order"),
            shops[1].id,
        )

        # Meena settled in full
        settled = await ledger.issue_credit(
            CreditCreate(customer_id=registered[1].id, amount=Decimal("750"), description="Monthly ration"),
            shops[0].id,
        )
        await ledger.mark_as_paid(settled.id, shops[0].id, payment_method=PaymentMethod.UPI)

        # Arjun is a defaulter at the second shop
        for amount in (Decimal("5000"), Decimal("3200")):
            await ledger.issue_credit(
                CreditCreate(customer_id=registered[2].id, amount=amount, description="Hardware"),
                shops[1].id,
            )
        await ledger.set_defaulter_status(
            registered[2].id, DefaulterUpdate(is_defaulter=True, confirm=True), shops[1].id
        )

        logger.info("Seeded %d customers; demo password is %r", len(registered), DEMO_PASSWORD)
    await db_manager.dispose()


if __name__ == "__main__":
    configure_logging()
    asyncio.run(seed_data())
