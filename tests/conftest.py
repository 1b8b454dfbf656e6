"""Shared fixtures: an in-memory database, seeded accounts and an API client."""

import os

os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CREATE_TABLES", "false")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from components.core.database import Base, DatabaseManager
from components.core.security import create_access_token
from components.core.init_db import get_db
from components.customer.repository import CustomerRepository
from components.customer.schemas import CustomerCreate
from components.report.cache import get_report_cache
from components.user.models import AccountStatus, AppRole
from components.user.repository import UserRepository
from components.user.schemas import UserCreate
from restapi.router import create_app

PASSWORD = "secret123"


def customer_data(**overrides) -> CustomerCreate:
    data = {
        "name": "Suresh Kumar",
        "phone": "9811122233",
        "address": "12 MG Road, Jaipur",
        "id_proof": "123412341234",
    }
    data.update(overrides)
    return CustomerCreate(**data)


async def create_account(
    db_manager: DatabaseManager,
    email: str,
    shop_name: str,
    phone: str,
    approved: bool = True,
    admin: bool = False,
) -> int:
    async with db_manager.get_db() as session:
        repo = UserRepository(session)
        user = await repo.create(
            UserCreate(
                email=email,
                password=PASSWORD,
                full_name="Shop Owner",
                shop_name=shop_name,
                phone=phone,
            ),
            status=AccountStatus.APPROVED if approved else AccountStatus.PENDING,
            email_confirmed=approved,
        )
        if admin:
            await repo.grant_role(user.id, AppRole.ADMIN)
        return user.id


@pytest.fixture(autouse=True)
def report_cache():
    cache = get_report_cache()
    cache.clear()
    yield cache
    cache.clear()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def db_manager(engine):
    return DatabaseManager(engine=engine)


@pytest.fixture
async def session(db_manager):
    async with db_manager.get_db() as session:
        yield session


@pytest.fixture
async def shop_id(db_manager):
    return await create_account(db_manager, "ravi@sharmastores.in", "Sharma General Stores", "9876543210")


@pytest.fixture
async def other_shop_id(db_manager):
    return await create_account(db_manager, "anita@guptakirana.in", "Gupta Kirana", "9123456780")


@pytest.fixture
async def admin_id(db_manager):
    return await create_account(db_manager, "admin@aiada.in", "AIADA", "9000000001", admin=True)


@pytest.fixture
async def customer_id(session, shop_id):
    customer, _, _ = await CustomerRepository(session).add_or_get(customer_data(), shop_id)
    return customer.id


@pytest.fixture
def app(db_manager):
    app = create_app()

    async def override_get_db():
        async with db_manager.get_db() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers():
    """Build bearer headers for an account id."""

    def _headers(user_id: int) -> dict:
        token = create_access_token({"sub": str(user_id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers
