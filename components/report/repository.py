"""Repository computing dashboard, summary and cross-shop reports."""

import logging
import re
from collections import defaultdict
from datetime import datetime, time, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.config import get_settings
from components.core.exceptions import LedgerValidationError, NotFoundError
from components.credit.models import Credit
from components.credit.status import CreditStatus, aggregate_status, outstanding, to_money
from components.customer.models import Customer, ShopCustomer
from components.payment.models import Payment
from components.report import schemas
from components.report.cache import ReportCache, get_report_cache
from components.report.models import CreditCheckLog
from components.user.models import User
from components.user.schemas import AdminStats, User as UserSchema

logger = logging.getLogger(__name__)

AADHAAR_RE = re.compile(r"^\d{12}$")
ZERO = Decimal("0.00")

# Upper bounds (inclusive) of the outstanding ranges shown in global search
OUTSTANDING_RANGES = (
    (Decimal("0"), "0"),
    (Decimal("10000"), "1-10,000"),
    (Decimal("50000"), "10,001-50,000"),
    (Decimal("100000"), "50,001-1,00,000"),
)


def outstanding_range(amount: Decimal) -> str:
    for upper, label in OUTSTANDING_RANGES:
        if amount <= upper:
            return label
    return "Above 1,00,000"


def risk_level(total_outstanding: Decimal, is_defaulter: bool) -> str:
    if is_defaulter:
        return "Very High Risk"
    if total_outstanding <= 0:
        return "No Risk"
    if total_outstanding <= Decimal("10000"):
        return "Low Risk"
    if total_outstanding <= Decimal("50000"):
        return "Medium Risk"
    return "High Risk"


class ReportRepository:
    """Read-side reports over the ledger.

    Per-shop reports are cached in a :class:`ReportCache`; ledger and
    customer repositories invalidate the shop's entries on every mutation.
    """

    def __init__(self, session: AsyncSession, cache: Optional[ReportCache] = None):
        """Initialize repository with database session."""
        self.session = session
        self.cache = cache or get_report_cache()

    async def _paid_totals(self, credit_ids: List[int]) -> Dict[int, Decimal]:
        if not credit_ids:
            return {}
        result = await self.session.execute(
            select(Payment.credit_id, func.sum(Payment.amount))
            .where(Payment.credit_id.in_(credit_ids))
            .group_by(Payment.credit_id)
        )
        return {credit_id: to_money(total) for credit_id, total in result.all()}

    async def _shop_ledger(self, shop_id: int) -> List[Tuple[Credit, Customer, Decimal]]:
        """Every credit issued by the shop with its customer and paid total."""
        result = await self.session.execute(
            select(Credit, Customer)
            .join(Customer, Customer.id == Credit.customer_id)
            .where(Credit.issued_by == shop_id)
            .order_by(Credit.created_at, Credit.id)
        )
        pairs = result.all()
        paid = await self._paid_totals([credit.id for credit, _ in pairs])
        return [(credit, customer, paid.get(credit.id, ZERO)) for credit, customer in pairs]

    async def _customer_rollup(self, shop_id: int) -> List[Dict]:
        """Per-customer totals over the shop's credits."""
        rollup: Dict[int, Dict] = {}
        for credit, customer, paid in await self._shop_ledger(shop_id):
            entry = rollup.setdefault(customer.id, {
                "customer": customer,
                "statuses": [],
                "total_credit": ZERO,
                "total_payments": ZERO,
                "outstanding": ZERO,
                "latest_credit_date": None,
            })
            entry["statuses"].append(credit.status)
            entry["total_credit"] += to_money(credit.amount)
            entry["total_payments"] += paid
            entry["outstanding"] += outstanding(credit.amount, paid)
            entry["latest_credit_date"] = credit.created_at
        return list(rollup.values())

    async def customer_credits_summary(self, shop_id: int) -> List[schemas.CustomerCreditSummary]:
        cached = self.cache.get(shop_id, "customer_credits_summary")
        if cached is not None:
            return cached
        rows = [
            schemas.CustomerCreditSummary(
                customer_id=entry["customer"].id,
                customer_name=entry["customer"].name,
                customer_phone=entry["customer"].phone,
                credit_count=len(entry["statuses"]),
                total_credit_amount=float(entry["total_credit"]),
                total_payments=float(entry["total_payments"]),
                outstanding_amount=float(entry["outstanding"]),
                latest_credit_date=entry["latest_credit_date"],
                status=aggregate_status(entry["statuses"]).value,
            )
            for entry in await self._customer_rollup(shop_id)
        ]
        rows.sort(key=lambda row: (row.latest_credit_date is None, row.latest_credit_date), reverse=True)
        self.cache.set(shop_id, "customer_credits_summary", rows)
        return rows

    async def outstanding_summary(self, shop_id: int) -> List[schemas.CustomerOutstanding]:
        cached = self.cache.get(shop_id, "outstanding_summary")
        if cached is not None:
            return cached
        rollup = sorted(
            await self._customer_rollup(shop_id),
            key=lambda entry: (-entry["outstanding"], entry["customer"].id),
        )
        rows = [
            schemas.CustomerOutstanding(
                customer_id=entry["customer"].id,
                name=entry["customer"].name,
                phone=entry["customer"].phone,
                total_credit=float(entry["total_credit"]),
                total_payments=float(entry["total_payments"]),
                outstanding=float(entry["outstanding"]),
            )
            for entry in rollup
        ]
        self.cache.set(shop_id, "outstanding_summary", rows)
        return rows

    async def _recent_activity(self, shop_id: int, limit: int) -> List[schemas.ActivityEntry]:
        result = await self.session.execute(
            select(Credit, Customer)
            .join(Customer, Customer.id == Credit.customer_id)
            .where(Credit.issued_by == shop_id)
            .order_by(Credit.created_at.desc(), Credit.id.desc())
            .limit(limit)
        )
        activity = [
            schemas.ActivityEntry(
                kind="credit",
                id=credit.id,
                credit_id=credit.id,
                customer_id=customer.id,
                customer_name=customer.name,
                amount=float(credit.amount),
                status=credit.status,
                created_at=credit.created_at,
            )
            for credit, customer in result.all()
        ]
        result = await self.session.execute(
            select(Payment, Credit.customer_id, Customer.name)
            .join(Credit, Credit.id == Payment.credit_id)
            .join(Customer, Customer.id == Credit.customer_id)
            .where(Credit.issued_by == shop_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .limit(limit)
        )
        activity.extend(
            schemas.ActivityEntry(
                kind="payment",
                id=payment.id,
                credit_id=payment.credit_id,
                customer_id=customer_id,
                customer_name=customer_name,
                amount=float(payment.amount),
                created_at=payment.created_at,
            )
            for payment, customer_id, customer_name in result.all()
        )
        activity.sort(key=lambda entry: (entry.created_at, entry.kind == "payment", entry.id), reverse=True)
        return activity[:limit]

    async def dashboard_stats(self, user: User) -> schemas.DashboardStats:
        """Totals, defaulters and recent activity for the user's shop."""
        shop_id = user.id
        cached = self.cache.get(shop_id, "dashboard")
        if cached is None:
            result = await self.session.execute(
                select(func.count(ShopCustomer.id)).where(ShopCustomer.shop_id == shop_id)
            )
            total_customers = result.scalar_one()
            rollup = await self._customer_rollup(shop_id)

            defaulters = [
                schemas.DefaulterEntry(
                    customer_id=entry["customer"].id,
                    customer_name=entry["customer"].name,
                    customer_phone=entry["customer"].phone,
                    outstanding=float(entry["outstanding"]),
                )
                for entry in rollup
                if aggregate_status(entry["statuses"]) == CreditStatus.DEFAULTER
            ]
            totals = schemas.DashboardTotals(
                total_customers=total_customers,
                total_credits=sum(len(entry["statuses"]) for entry in rollup),
                total_credit_amount=float(sum((entry["total_credit"] for entry in rollup), ZERO)),
                total_payments=float(sum((entry["total_payments"] for entry in rollup), ZERO)),
                total_outstanding=float(sum((entry["outstanding"] for entry in rollup), ZERO)),
                defaulters_count=len(defaulters),
            )
            recent = await self._recent_activity(shop_id, get_settings().RECENT_ACTIVITY_LIMIT)
            cached = (totals, defaulters, recent)
            self.cache.set(shop_id, "dashboard", cached)

        totals, defaulters, recent = cached
        return schemas.DashboardStats(
            totals=totals,
            defaulters=defaulters,
            recent_activity=recent,
            user_profile=UserSchema.model_validate(user),
        )

    async def global_search(self, aadhar_no: str, caller: User) -> schemas.GlobalSearchResult:
        """
        Look a customer up by Aadhaar number across every shop.

        Every search is recorded in the credit check log, including searches
        that find nobody. Insights cover all of the customer's credits; only
        the defaulter transactions list is capped.
        """
        aadhar_no = (aadhar_no or "").strip()
        if not AADHAAR_RE.match(aadhar_no):
            raise LedgerValidationError("Aadhar number must be exactly 12 digits")

        self.session.add(CreditCheckLog(checked_aadhar=aadhar_no, checked_by=caller.id, shop_id=caller.id))
        await self.session.commit()
        logger.info("User %s ran a credit check", caller.id)

        result = await self.session.execute(select(Customer).where(Customer.id_proof == aadhar_no))
        customer = result.scalar_one_or_none()
        if customer is None:
            raise NotFoundError("No customer found with this Aadhar number")

        result = await self.session.execute(
            select(Credit)
            .where(Credit.customer_id == customer.id)
            .order_by(Credit.created_at.desc(), Credit.id.desc())
        )
        credits = list(result.scalars().all())
        paid = await self._paid_totals([credit.id for credit in credits])

        shop_ids = {credit.issued_by for credit in credits if credit.issued_by is not None}
        shops: Dict[int, User] = {}
        if shop_ids:
            result = await self.session.execute(select(User).where(User.id.in_(shop_ids)))
            shops = {shop.id: shop for shop in result.scalars().all()}

        by_shop: Dict[int, List[Credit]] = defaultdict(list)
        for credit in credits:
            if credit.issued_by is not None:
                by_shop[credit.issued_by].append(credit)

        profiles = []
        for shop_id, shop_credits in by_shop.items():
            shop = shops.get(shop_id)
            profiles.append(schemas.ShopProfile(
                shop_id=shop_id,
                shop_name=shop.shop_name if shop else None,
                shop_location=shop.shop_location if shop else None,
                phone=shop.phone if shop else None,
                credit_count=len(shop_credits),
                total_credit=float(sum((to_money(c.amount) for c in shop_credits), ZERO)),
                outstanding=float(sum(
                    (outstanding(c.amount, paid.get(c.id, ZERO)) for c in shop_credits), ZERO
                )),
                status=aggregate_status(c.status for c in shop_credits).value,
            ))
        profiles.sort(key=lambda profile: profile.outstanding, reverse=True)

        defaulted = [credit for credit in credits if credit.status == CreditStatus.DEFAULTER.value]
        transactions = [
            schemas.DefaulterTransaction(
                credit_id=credit.id,
                shop_id=credit.issued_by,
                shop_name=shops[credit.issued_by].shop_name if credit.issued_by in shops else None,
                amount=float(credit.amount),
                outstanding=float(outstanding(credit.amount, paid.get(credit.id, ZERO))),
                description=credit.description,
                created_at=credit.created_at,
            )
            for credit in defaulted[:get_settings().SEARCH_RESULT_LIMIT]
            if credit.issued_by is not None
        ]

        total_outstanding = sum(
            (outstanding(credit.amount, paid.get(credit.id, ZERO)) for credit in credits), ZERO
        )
        is_defaulter = bool(defaulted)
        insights = schemas.DefaulterInsights(
            is_defaulter=is_defaulter,
            has_credit=total_outstanding > 0,
            defaulter_shop_count=len({credit.issued_by for credit in defaulted}),
            total_defaulted_outstanding=float(sum(
                (outstanding(credit.amount, paid.get(credit.id, ZERO)) for credit in defaulted), ZERO
            )),
            total_outstanding=float(total_outstanding),
            outstanding_range=outstanding_range(total_outstanding),
            risk_level=risk_level(total_outstanding, is_defaulter),
            total_shops=len(profiles),
        )
        return schemas.GlobalSearchResult(
            global_customer=schemas.GlobalCustomer.model_validate(customer),
            shop_profiles=profiles,
            defaulter_transactions=transactions,
            defaulter_insights=insights,
        )

    async def admin_stats(self) -> AdminStats:
        """Platform-wide counts for the admin dashboard."""
        start_of_day = datetime.combine(datetime.now(timezone.utc).date(), time.min)

        result = await self.session.execute(
            select(func.count(User.id)).where(User.shop_name.is_not(None), User.shop_name != "")
        )
        total_shop_owners = result.scalar_one()
        result = await self.session.execute(
            select(func.count(func.distinct(Credit.issued_by))).where(Credit.created_at >= start_of_day)
        )
        active_shops_today = result.scalar_one()
        result = await self.session.execute(select(func.count(Credit.id)))
        total_credits = result.scalar_one()
        result = await self.session.execute(
            select(func.count(func.distinct(Credit.customer_id)))
            .where(Credit.status == CreditStatus.DEFAULTER.value)
        )
        total_defaulters = result.scalar_one()

        return AdminStats(
            total_shop_owners=total_shop_owners,
            active_shops_today=active_shops_today,
            total_credits=total_credits,
            total_defaulters=total_defaulters,
        )
