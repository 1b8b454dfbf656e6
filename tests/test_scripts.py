"""Tests for the command line scripts."""

import logging

import pytest
from sqlalchemy import func, select

from components.customer.models import Customer
from scripts.import_customers import import_customers


def write_csv(tmp_path, content):
    path = tmp_path / "customers.csv"
    path.write_text(content)
    return path


class TestImportCustomersScript:

    @pytest.mark.asyncio
    async def test_imports_for_shop(self, tmp_path, db_manager, session, shop_id):
        path = write_csv(
            tmp_path,
            "name,phone,address,id_proof\n"
            "Meena Devi,9822233344,45 Station Road Jaipur,234523452345\n",
        )

        assert await import_customers(path, "ravi@sharmastores.in", manager=db_manager) is True

        result = await session.execute(select(func.count(Customer.id)))
        assert result.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_missing_columns_fail_cleanly(self, tmp_path, db_manager, shop_id, caplog):
        path = write_csv(tmp_path, "name,phone\nMeena Devi,9822233344\n")

        with caplog.at_level(logging.ERROR):
            ok = await import_customers(path, "ravi@sharmastores.in", manager=db_manager)

        assert ok is False
        assert "must contain 'name', 'phone', 'address' and 'id_proof' columns" in caplog.text

    @pytest.mark.asyncio
    async def test_row_errors_are_logged(self, tmp_path, db_manager, shop_id, caplog):
        path = write_csv(
            tmp_path,
            "name,phone,address,id_proof\n"
            "Meena Devi,12345,45 Station Road Jaipur,234523452345\n",
        )

        with caplog.at_level(logging.ERROR):
            ok = await import_customers(path, "ravi@sharmastores.in", manager=db_manager)

        assert ok is False
        assert "Row 2:" in caplog.text

    @pytest.mark.asyncio
    async def test_unknown_shop(self, tmp_path, db_manager, caplog):
        path = write_csv(tmp_path, "name,phone,address,id_proof\n")

        with caplog.at_level(logging.ERROR):
            ok = await import_customers(path, "nobody@shop.in", manager=db_manager)

        assert ok is False
        assert "No account found for nobody@shop.in" in caplog.text
