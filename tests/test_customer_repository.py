"""Tests for customer registration, ownership and CSV import."""

import io
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from components.core.exceptions import CustomerConflictError, NotFoundError, PermissionDeniedError
from components.credit.models import Credit
from components.credit.repository import CreditRepository
from components.credit.schemas import CreditCreate
from components.customer.models import Customer, ShopCustomer
from components.customer.repository import CustomerRepository
from components.customer.schemas import CustomerUpdate
from components.payment.models import Payment
from components.payment.schemas import PaymentCreate
from conftest import customer_data


async def count(session, column) -> int:
    result = await session.execute(select(func.count(column)))
    return result.scalar_one()


class TestAddOrGet:

    @pytest.mark.asyncio
    async def test_new_customer(self, session, shop_id):
        customer, is_new, message = await CustomerRepository(session).add_or_get(customer_data(), shop_id)

        assert is_new is True
        assert message == "Customer added successfully"
        assert customer.created_by == shop_id
        assert customer.id_proof == "123412341234"

    @pytest.mark.asyncio
    async def test_duplicate_id_proof_returns_existing(self, session, shop_id, other_shop_id):
        repo = CustomerRepository(session)
        first, _, _ = await repo.add_or_get(customer_data(), shop_id)

        again, is_new, message = await repo.add_or_get(customer_data(name="Another Name"), other_shop_id)

        assert is_new is False
        assert message == "Customer already exists"
        assert again.id == first.id
        assert again.name == "Suresh Kumar"
        assert await count(session, Customer.id) == 1
        assert await count(session, ShopCustomer.id) == 2

    @pytest.mark.asyncio
    async def test_same_shop_twice_links_once(self, session, shop_id):
        repo = CustomerRepository(session)
        await repo.add_or_get(customer_data(), shop_id)
        await repo.add_or_get(customer_data(), shop_id)

        assert await count(session, ShopCustomer.id) == 1


class TestListForShop:

    @pytest.mark.asyncio
    async def test_status_and_search(self, session, shop_id):
        repo = CustomerRepository(session)
        suresh, _, _ = await repo.add_or_get(customer_data(), shop_id)
        meena, _, _ = await repo.add_or_get(
            customer_data(name="Meena Devi", phone="9822233344", id_proof="234523455678"), shop_id
        )
        suresh_id, meena_id = suresh.id, meena.id
        credit = await CreditRepository(session).issue_credit(
            CreditCreate(customer_id=suresh_id, amount=Decimal("500")), shop_id
        )
        await CreditRepository(session).record_payment(credit.id, PaymentCreate(amount=Decimal("100")), shop_id)

        rows = {row["id"]: row for row in await repo.list_for_shop(shop_id)}
        assert rows[suresh_id]["status"] == "partial"
        assert rows[suresh_id]["credit_count"] == 1
        assert rows[meena_id]["status"] == "paid"
        assert rows[meena_id]["credit_count"] == 0

        assert [row["id"] for row in await repo.list_for_shop(shop_id, search="5678")] == [meena_id]
        assert [row["id"] for row in await repo.list_for_shop(shop_id, search="suresh")] == [suresh_id]

    @pytest.mark.asyncio
    async def test_other_shops_customers_hidden(self, session, shop_id, other_shop_id, customer_id):
        assert await CustomerRepository(session).list_for_shop(other_shop_id) == []


class TestOwnership:

    @pytest.mark.asyncio
    async def test_creator_can_update(self, session, shop_id, customer_id):
        customer = await CustomerRepository(session).update(
            customer_id, CustomerUpdate(address="99 New Colony, Jaipur"), shop_id
        )
        assert customer.address == "99 New Colony, Jaipur"

    @pytest.mark.asyncio
    async def test_other_shop_cannot_update(self, session, other_shop_id, customer_id):
        with pytest.raises(PermissionDeniedError):
            await CustomerRepository(session).update(
                customer_id, CustomerUpdate(name="Changed Name"), other_shop_id
            )

    @pytest.mark.asyncio
    async def test_id_proof_collision(self, session, shop_id, customer_id):
        repo = CustomerRepository(session)
        await repo.add_or_get(customer_data(name="Meena Devi", id_proof="999988887777"), shop_id)

        with pytest.raises(CustomerConflictError):
            await repo.update(customer_id, CustomerUpdate(id_proof="999988887777"), shop_id)

    @pytest.mark.asyncio
    async def test_delete_cascades(self, session, shop_id, customer_id):
        ledger = CreditRepository(session)
        credit = await ledger.issue_credit(CreditCreate(customer_id=customer_id, amount=Decimal("500")), shop_id)
        await ledger.record_payment(credit.id, PaymentCreate(amount=Decimal("100")), shop_id)

        await CustomerRepository(session).delete(customer_id, shop_id)

        assert await count(session, Customer.id) == 0
        assert await count(session, Credit.id) == 0
        assert await count(session, Payment.id) == 0
        assert await count(session, ShopCustomer.id) == 0
        with pytest.raises(NotFoundError):
            await CustomerRepository(session).get_or_404(customer_id)

    @pytest.mark.asyncio
    async def test_other_shop_cannot_delete(self, session, other_shop_id, customer_id):
        with pytest.raises(PermissionDeniedError):
            await CustomerRepository(session).delete(customer_id, other_shop_id)
        assert await count(session, Customer.id) == 1


class TestImportFromCsv:

    @pytest.mark.asyncio
    async def test_imports_new_and_existing(self, session, shop_id, customer_id):
        content = (
            "name,phone,address,id_proof\n"
            "Suresh Kumar,9811122233,12 MG Road Jaipur,123412341234\n"
            "Meena Devi,9822233344,45 Station Road Jaipur,234523452345\n"
        )
        result = await CustomerRepository(session).import_from_csv(io.BytesIO(content.encode()), shop_id)

        assert result.success is True
        assert result.created == 1
        assert result.existing == 1
        assert await count(session, Customer.id) == 2

    @pytest.mark.asyncio
    async def test_invalid_rows_abort_import(self, session, shop_id):
        content = (
            "name,phone,address,id_proof\n"
            "Meena Devi,9822233344,45 Station Road Jaipur,234523452345\n"
            "Arjun Singh,12345,7 Civil Lines Jaipur,3456\n"
            "Meena Again,9822233345,45 Station Road Jaipur,234523452345\n"
        )
        result = await CustomerRepository(session).import_from_csv(io.BytesIO(content.encode()), shop_id)

        assert result.success is False
        assert [error.row for error in result.errors] == [3, 4]
        assert "row 2" in result.errors[1].message
        assert await count(session, Customer.id) == 0

    @pytest.mark.asyncio
    async def test_missing_columns(self, session, shop_id):
        content = "name,phone\nMeena Devi,9822233344\n"
        result = await CustomerRepository(session).import_from_csv(io.BytesIO(content.encode()), shop_id)

        assert result.success is False
        assert "id_proof" in result.message
