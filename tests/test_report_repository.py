"""Tests for dashboard, summaries, global search and the report cache."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from components.core.config import get_settings
from components.core.exceptions import LedgerValidationError, NotFoundError
from components.credit.repository import CreditRepository
from components.credit.schemas import CreditCreate, DefaulterUpdate
from components.customer.repository import CustomerRepository
from components.payment.schemas import PaymentCreate
from components.report import cache as cache_module
from components.report.cache import ReportCache, get_report_cache
from components.report.models import CreditCheckLog
from components.report.repository import ReportRepository, outstanding_range, risk_level
from components.user.repository import UserRepository
from conftest import customer_data


async def issue(session, customer_id, shop_id, amount):
    credit = await CreditRepository(session).issue_credit(
        CreditCreate(customer_id=customer_id, amount=Decimal(amount)), shop_id
    )
    return credit.id


class TestRiskScoring:

    @pytest.mark.parametrize(
        "amount, expected",
        [
            ("0", "0"),
            ("1", "1-10,000"),
            ("10000", "1-10,000"),
            ("10000.01", "10,001-50,000"),
            ("100000", "50,001-1,00,000"),
            ("100001", "Above 1,00,000"),
        ],
    )
    def test_outstanding_range(self, amount, expected):
        assert outstanding_range(Decimal(amount)) == expected

    def test_risk_level(self):
        assert risk_level(Decimal("0"), False) == "No Risk"
        assert risk_level(Decimal("5000"), False) == "Low Risk"
        assert risk_level(Decimal("20000"), False) == "Medium Risk"
        assert risk_level(Decimal("60000"), False) == "High Risk"
        assert risk_level(Decimal("0"), True) == "Very High Risk"


class TestShopReports:

    @pytest.mark.asyncio
    async def test_summaries(self, session, shop_id, customer_id):
        meena, _, _ = await CustomerRepository(session).add_or_get(
            customer_data(name="Meena Devi", phone="9822233344", id_proof="234523452345"), shop_id
        )
        meena_id = meena.id
        first = await issue(session, customer_id, shop_id, "1000")
        await issue(session, customer_id, shop_id, "500")
        await issue(session, meena_id, shop_id, "3000")
        await CreditRepository(session).record_payment(first, PaymentCreate(amount=Decimal("400")), shop_id)

        repo = ReportRepository(session)
        summary = {row.customer_id: row for row in await repo.customer_credits_summary(shop_id)}
        assert summary[customer_id].credit_count == 2
        assert summary[customer_id].total_credit_amount == 1500.0
        assert summary[customer_id].total_payments == 400.0
        assert summary[customer_id].outstanding_amount == 1100.0
        assert summary[customer_id].status == "partial"

        outstanding = await repo.outstanding_summary(shop_id)
        assert [row.customer_id for row in outstanding] == [meena_id, customer_id]
        assert outstanding[0].outstanding == 3000.0

    @pytest.mark.asyncio
    async def test_dashboard(self, session, shop_id, customer_id):
        credit_id = await issue(session, customer_id, shop_id, "1000")
        await CreditRepository(session).record_payment(credit_id, PaymentCreate(amount=Decimal("250")), shop_id)
        await CreditRepository(session).set_defaulter_status(
            customer_id, DefaulterUpdate(is_defaulter=True, confirm=True), shop_id
        )
        user = await UserRepository(session).get_by_id(shop_id)

        stats = await ReportRepository(session).dashboard_stats(user)

        assert stats.totals.total_customers == 1
        assert stats.totals.total_credits == 1
        assert stats.totals.total_payments == 250.0
        assert stats.totals.total_outstanding == 750.0
        assert stats.totals.defaulters_count == 1
        assert [d.customer_id for d in stats.defaulters] == [customer_id]
        assert {entry.kind for entry in stats.recent_activity} == {"credit", "payment"}
        assert stats.user_profile.id == shop_id

    @pytest.mark.asyncio
    async def test_mutations_invalidate_cached_reports(self, session, shop_id, customer_id, report_cache):
        repo = ReportRepository(session)
        credit_id = await issue(session, customer_id, shop_id, "1000")

        before = await repo.outstanding_summary(shop_id)
        assert report_cache.get(shop_id, "outstanding_summary") is not None

        await CreditRepository(session).record_payment(credit_id, PaymentCreate(amount=Decimal("600")), shop_id)
        assert report_cache.get(shop_id, "outstanding_summary") is None

        after = await repo.outstanding_summary(shop_id)
        assert before[0].outstanding == 1000.0
        assert after[0].outstanding == 400.0


class TestGlobalSearch:

    @pytest.mark.asyncio
    async def test_cross_shop_profile(self, session, shop_id, other_shop_id, customer_id):
        await issue(session, customer_id, shop_id, "1000")
        await issue(session, customer_id, other_shop_id, "20000")
        await CreditRepository(session).set_defaulter_status(
            customer_id, DefaulterUpdate(is_defaulter=True, confirm=True), shop_id
        )
        caller = await UserRepository(session).get_by_id(other_shop_id)

        result = await ReportRepository(session).global_search("123412341234", caller)

        assert result.global_customer.id == customer_id
        assert {p.shop_id for p in result.shop_profiles} == {shop_id, other_shop_id}
        assert result.shop_profiles[0].shop_name == "Gupta Kirana"
        assert len(result.defaulter_transactions) == 2
        insights = result.defaulter_insights
        assert insights.is_defaulter is True
        assert insights.defaulter_shop_count == 2
        assert insights.total_outstanding == 21000.0
        assert insights.outstanding_range == "10,001-50,000"
        assert insights.risk_level == "Very High Risk"
        assert insights.total_shops == 2

    @pytest.mark.asyncio
    async def test_insights_cover_credits_beyond_the_result_limit(
        self, session, shop_id, other_shop_id, customer_id, monkeypatch
    ):
        monkeypatch.setattr(get_settings(), "SEARCH_RESULT_LIMIT", 1)
        await issue(session, customer_id, shop_id, "1000")
        newest_defaulted_id = await issue(session, customer_id, shop_id, "500")
        await CreditRepository(session).set_defaulter_status(
            customer_id, DefaulterUpdate(is_defaulter=True, confirm=True), shop_id
        )
        await issue(session, customer_id, other_shop_id, "100")
        caller = await UserRepository(session).get_by_id(other_shop_id)

        result = await ReportRepository(session).global_search("123412341234", caller)

        insights = result.defaulter_insights
        assert insights.is_defaulter is True
        assert insights.defaulter_shop_count == 1
        assert insights.total_defaulted_outstanding == 1500.0
        assert insights.total_outstanding == 1600.0
        assert insights.risk_level == "Very High Risk"
        assert insights.total_shops == 2
        assert [t.credit_id for t in result.defaulter_transactions] == [newest_defaulted_id]

    @pytest.mark.asyncio
    async def test_clean_customer(self, session, shop_id, customer_id):
        await issue(session, customer_id, shop_id, "5000")
        caller = await UserRepository(session).get_by_id(shop_id)

        result = await ReportRepository(session).global_search("123412341234", caller)

        assert result.defaulter_transactions == []
        assert result.defaulter_insights.risk_level == "Low Risk"
        assert result.shop_profiles[0].status == "pending"

    @pytest.mark.asyncio
    async def test_every_search_is_logged(self, session, shop_id):
        caller = await UserRepository(session).get_by_id(shop_id)
        caller_id = caller.id

        with pytest.raises(NotFoundError, match="No customer found with this Aadhar number"):
            await ReportRepository(session).global_search("000011112222", caller)

        result = await session.execute(
            select(func.count(CreditCheckLog.id)).where(CreditCheckLog.checked_by == caller_id)
        )
        assert result.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_malformed_number(self, session, shop_id):
        caller = await UserRepository(session).get_by_id(shop_id)
        with pytest.raises(LedgerValidationError):
            await ReportRepository(session).global_search("1234", caller)


class TestAdminStats:

    @pytest.mark.asyncio
    async def test_counts(self, session, shop_id, other_shop_id, admin_id, customer_id):
        await issue(session, customer_id, shop_id, "100")
        await issue(session, customer_id, other_shop_id, "200")
        await CreditRepository(session).set_defaulter_status(
            customer_id, DefaulterUpdate(is_defaulter=True, confirm=True), shop_id
        )

        stats = await ReportRepository(session).admin_stats()

        assert stats.total_shop_owners == 3
        assert stats.total_credits == 2
        assert stats.total_defaulters == 1


class TestReportCache:

    def test_entries_expire(self):
        now = [0.0]
        cache = ReportCache(ttl_seconds=10, clock=lambda: now[0])
        cache.set(1, "dashboard", "value")

        now[0] = 9.9
        assert cache.get(1, "dashboard") == "value"
        now[0] = 10.0
        assert cache.get(1, "dashboard") is None

    def test_invalidate_is_per_shop(self):
        cache = ReportCache(ttl_seconds=60)
        cache.set(1, "dashboard", "one")
        cache.set(2, "dashboard", "two")

        cache.invalidate(1)

        assert cache.get(1, "dashboard") is None
        assert cache.get(2, "dashboard") == "two"

    def test_zero_ttl_disables_caching(self):
        cache = ReportCache(ttl_seconds=0)
        cache.set(1, "dashboard", "value")
        assert cache.get(1, "dashboard") is None

    @pytest.mark.parametrize("workers, ttl", [(1, 600), (4, 0)])
    def test_cache_is_off_with_several_workers(self, monkeypatch, workers, ttl):
        monkeypatch.setattr(cache_module, "_report_cache", None)
        monkeypatch.setattr(get_settings(), "REPORT_CACHE_TTL_SECONDS", 600)
        monkeypatch.setattr(get_settings(), "WEB_CONCURRENCY", workers)

        cache = get_report_cache()
        cache.set(1, "dashboard", "value")

        assert cache.ttl_seconds == ttl
        assert (cache.get(1, "dashboard") == "value") is (ttl > 0)
