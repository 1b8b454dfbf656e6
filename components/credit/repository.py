"""Repository for the credit ledger: issuing credit, settling it, flagging defaulters."""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from components.core.exceptions import (
    AmountBelowPaidError,
    ConcurrentModificationError,
    ConfirmationRequiredError,
    CreditAlreadyPaidError,
    NotFoundError,
    PaymentExceedsOutstandingError,
    PermissionDeniedError,
    ReauthenticationError,
)
from components.core.security import verify_password
from components.credit import schemas
from components.credit.models import Credit, StatusChange
from components.credit.status import (
    CreditStatus,
    TransitionSource,
    authorize_transition,
    outstanding,
    settlement_status,
    to_money,
)
from components.customer.models import Customer
from components.customer.repository import CustomerRepository
from components.payment.models import Payment, PaymentMethod
from components.payment.schemas import PaymentCreate
from components.report.cache import ReportCache, get_report_cache
from components.user.models import User

logger = logging.getLogger(__name__)


class CreditRepository:
    """Repository for credit operations.

    Every mutation runs in a single transaction: payment inserts and the
    status change they cause are committed together or not at all. Status
    writes are conditional on the status read at the start of the
    transaction, so a concurrent change surfaces as a conflict instead of
    being silently overwritten.
    """

    def __init__(self, session: AsyncSession, cache: Optional[ReportCache] = None):
        """Initialize repository with database session."""
        self.session = session
        self.cache = cache or get_report_cache()

    # Reads

    async def get_by_id(self, credit_id: int) -> Optional[Credit]:
        """Get credit by ID."""
        result = await self.session.execute(
            select(Credit).where(Credit.id == credit_id)
        )
        return result.scalar_one_or_none()

    async def _get_owned(self, credit_id: int, shop_id: int, for_update: bool = False) -> Credit:
        query = select(Credit).where(Credit.id == credit_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        credit = result.scalar_one_or_none()
        if credit is None:
            raise NotFoundError("Credit not found")
        if credit.issued_by != shop_id:
            logger.warning("Shop %s tried to access credit %s issued by %s", shop_id, credit_id, credit.issued_by)
            raise PermissionDeniedError("This credit was issued by another shop")
        return credit

    async def total_paid(self, credit_id: int) -> Decimal:
        """Sum of all payments recorded against a credit."""
        totals = await self._paid_totals([credit_id])
        return totals.get(credit_id, Decimal("0.00"))

    async def outstanding(self, credit_id: int) -> Decimal:
        credit = await self.get_by_id(credit_id)
        if credit is None:
            raise NotFoundError("Credit not found")
        return outstanding(credit.amount, await self.total_paid(credit_id))

    async def _paid_totals(self, credit_ids: Iterable[int]) -> Dict[int, Decimal]:
        credit_ids = list(credit_ids)
        if not credit_ids:
            return {}
        result = await self.session.execute(
            select(Payment.credit_id, func.sum(Payment.amount))
            .where(Payment.credit_id.in_(credit_ids))
            .group_by(Payment.credit_id)
        )
        return {credit_id: to_money(total) for credit_id, total in result.all()}

    @staticmethod
    def _balance_row(credit: Credit, total_paid: Decimal, customer: Optional[Customer] = None) -> Dict:
        row = schemas.Credit.model_validate(credit).model_dump()
        row["total_paid"] = float(total_paid)
        row["outstanding"] = float(outstanding(credit.amount, total_paid))
        if customer is not None:
            row["customer_name"] = customer.name
            row["customer_phone"] = customer.phone
        return row

    async def get_with_balance(self, credit_id: int, shop_id: int) -> Dict:
        credit = await self._get_owned(credit_id, shop_id)
        customer = await self.session.get(Customer, credit.customer_id)
        return self._balance_row(credit, await self.total_paid(credit.id), customer)

    async def list_for_shop(
        self,
        shop_id: int,
        search: Optional[str] = None,
        status: Optional[CreditStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Dict]:
        """Credits issued by a shop, newest first, with settlement figures."""
        query = (
            select(Credit, Customer)
            .join(Customer, Customer.id == Credit.customer_id)
            .where(Credit.issued_by == shop_id)
        )
        if search:
            term = f"%{search.strip()}%"
            query = query.where(or_(Customer.name.ilike(term), Credit.description.ilike(term)))
        if status is not None:
            query = query.where(Credit.status == CreditStatus(status).value)
        query = query.order_by(Credit.created_at.desc(), Credit.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        pairs = result.all()
        totals = await self._paid_totals(credit.id for credit, _ in pairs)
        return [
            self._balance_row(credit, totals.get(credit.id, Decimal("0.00")), customer)
            for credit, customer in pairs
        ]

    async def customer_credit_history(self, customer_id: int, shop_id: int) -> List[Dict]:
        """The shop's credits for one customer, each with its payments."""
        customer = await self.session.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")
        result = await self.session.execute(
            select(Credit)
            .where(Credit.customer_id == customer_id, Credit.issued_by == shop_id)
            .order_by(Credit.created_at.desc(), Credit.id.desc())
        )
        credits = list(result.scalars().all())
        if not credits:
            return []
        result = await self.session.execute(
            select(Payment)
            .where(Payment.credit_id.in_([credit.id for credit in credits]))
            .order_by(Payment.payment_date, Payment.id)
        )
        payments_by_credit: Dict[int, List[Payment]] = {}
        for payment in result.scalars().all():
            payments_by_credit.setdefault(payment.credit_id, []).append(payment)

        history = []
        for credit in credits:
            payments = payments_by_credit.get(credit.id, [])
            total = to_money(sum((to_money(p.amount) for p in payments), Decimal("0.00")))
            row = self._balance_row(credit, total, customer)
            row["payments"] = payments
            history.append(row)
        return history

    async def status_history(self, credit_id: int, shop_id: int) -> List[StatusChange]:
        await self._get_owned(credit_id, shop_id)
        result = await self.session.execute(
            select(StatusChange)
            .where(StatusChange.credit_id == credit_id)
            .order_by(StatusChange.created_at, StatusChange.id)
        )
        return list(result.scalars().all())

    # Status transitions

    async def _transition(
        self,
        credit: Credit,
        target: CreditStatus,
        source: TransitionSource,
        actor_id: Optional[int],
        notes: Optional[str] = None,
    ) -> bool:
        """Apply an authorized status change; returns False for a no-op."""
        current = CreditStatus(credit.status)
        if not authorize_transition(current, target, source):
            return False

        result = await self.session.execute(
            update(Credit)
            .where(Credit.id == credit.id, Credit.status == current.value)
            .values(status=target.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "Status of credit %s changed concurrently (expected %s)", credit.id, current.value
            )
            raise ConcurrentModificationError(
                "The credit was changed by another action. Reload and try again."
            )
        set_committed_value(credit, "status", target.value)
        self.session.add(StatusChange(
            credit_id=credit.id,
            previous_status=current.value,
            new_status=target.value,
            source=source.value,
            notes=notes,
            shop_id=credit.issued_by,
            updated_by=actor_id,
        ))
        return True

    async def _insert_payment(
        self,
        credit: Credit,
        amount: Decimal,
        payment_date: date,
        method: PaymentMethod,
        actor_id: int,
    ) -> Payment:
        payment = Payment(
            credit_id=credit.id,
            amount=amount,
            payment_date=payment_date,
            payment_method=PaymentMethod(method).value,
            created_by=actor_id,
        )
        self.session.add(payment)
        await self.session.flush()
        return payment

    # Mutations

    async def issue_credit(self, data: schemas.CreditCreate, shop_id: int) -> Credit:
        """Issue a new pending credit to an existing customer."""
        customer = await self.session.get(Customer, data.customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")

        credit = Credit(
            customer_id=customer.id,
            issued_by=shop_id,
            amount=to_money(data.amount),
            description=data.description or None,
            status=CreditStatus.PENDING.value,
        )
        try:
            self.session.add(credit)
            await self.session.flush()
            self.session.add(StatusChange(
                credit_id=credit.id,
                previous_status=None,
                new_status=CreditStatus.PENDING.value,
                source=TransitionSource.OPERATOR.value,
                notes="Credit issued",
                shop_id=shop_id,
                updated_by=shop_id,
            ))
            await CustomerRepository(self.session, self.cache).link_to_shop(customer.id, shop_id)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(credit)
        self.cache.invalidate(shop_id)
        logger.info("Shop %s issued credit %s of %s to customer %s", shop_id, credit.id, credit.amount, customer.id)
        return credit

    async def record_payment(self, credit_id: int, data: PaymentCreate, shop_id: int) -> Payment:
        """
        Record a payment against one credit.

        The payment may not exceed the outstanding balance. The credit moves
        to ``paid`` once payments cover its amount and to ``partial`` before
        that.
        """
        amount = to_money(data.amount)
        try:
            credit = await self._get_owned(credit_id, shop_id, for_update=True)
            paid = await self.total_paid(credit.id)
            remaining = outstanding(credit.amount, paid)
            if amount > remaining:
                raise PaymentExceedsOutstandingError(
                    f"Payment of {amount} exceeds the outstanding balance of {remaining}"
                )
            payment = await self._insert_payment(
                credit, amount, data.payment_date, data.payment_method, shop_id
            )
            target = settlement_status(credit.amount, paid + amount, credit.status)
            await self._transition(
                credit, target, TransitionSource.SETTLEMENT, shop_id,
                notes=f"Payment #{payment.id} of {amount}",
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(payment)
        self.cache.invalidate(shop_id)
        logger.info("Shop %s recorded payment of %s on credit %s (now %s)", shop_id, amount, credit_id, target.value)
        return payment

    async def record_customer_payment(
        self, customer_id: int, data: PaymentCreate, shop_id: int
    ) -> Tuple[List[Payment], List[Credit]]:
        """
        Record a payment against a customer's balance with the shop.

        The amount may not exceed the customer's total outstanding and is
        applied to the oldest credits with a balance left first, one payment
        row per credit touched. A paid credit whose amount was raised later
        counts like any other.
        """
        amount = to_money(data.amount)
        payments: List[Payment] = []
        touched: List[Credit] = []
        try:
            customer = await self.session.get(Customer, customer_id)
            if customer is None:
                raise NotFoundError("Customer not found")
            result = await self.session.execute(
                select(Credit)
                .where(
                    Credit.customer_id == customer_id,
                    Credit.issued_by == shop_id,
                )
                .order_by(Credit.created_at, Credit.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            credits = list(result.scalars().all())
            paid = await self._paid_totals(credit.id for credit in credits)
            balances = [
                (credit, paid.get(credit.id, Decimal("0.00"))) for credit in credits
            ]
            total_remaining = sum(
                (outstanding(credit.amount, credit_paid) for credit, credit_paid in balances),
                Decimal("0.00"),
            )
            if total_remaining <= 0:
                raise NotFoundError("No outstanding credit found for this customer")
            if amount > total_remaining:
                raise PaymentExceedsOutstandingError(
                    f"Payment of {amount} exceeds the outstanding balance of {total_remaining}"
                )

            left = amount
            for credit, credit_paid in balances:
                if left <= 0:
                    break
                remaining = outstanding(credit.amount, credit_paid)
                if remaining <= 0:
                    continue
                portion = min(left, remaining)
                payment = await self._insert_payment(
                    credit, portion, data.payment_date, data.payment_method, shop_id
                )
                target = settlement_status(credit.amount, credit_paid + portion, credit.status)
                await self._transition(
                    credit, target, TransitionSource.SETTLEMENT, shop_id,
                    notes=f"Payment #{payment.id} of {portion}",
                )
                payments.append(payment)
                touched.append(credit)
                left -= portion
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        for payment in payments:
            await self.session.refresh(payment)
        self.cache.invalidate(shop_id)
        logger.info(
            "Shop %s recorded payment of %s for customer %s across %d credits",
            shop_id, amount, customer_id, len(payments),
        )
        return payments, touched

    async def mark_as_paid(
        self,
        credit_id: int,
        shop_id: int,
        payment_method: PaymentMethod = PaymentMethod.CASH,
    ) -> Tuple[Credit, Decimal]:
        """
        Settle a credit in full.

        Inserts one payment for exactly the remaining outstanding amount and
        marks the credit paid, in one transaction. Returns the credit and the
        amount paid.
        """
        try:
            credit = await self._get_owned(credit_id, shop_id, for_update=True)
            if credit.status == CreditStatus.PAID.value:
                raise CreditAlreadyPaidError("Credit is already marked as paid")
            remaining = outstanding(credit.amount, await self.total_paid(credit.id))
            if remaining > 0:
                await self._insert_payment(credit, remaining, date.today(), payment_method, shop_id)
            await self._transition(
                credit, CreditStatus.PAID, TransitionSource.SETTLEMENT, shop_id,
                notes=f"Marked as paid with final payment of {remaining}",
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(credit)
        self.cache.invalidate(shop_id)
        logger.info("Shop %s marked credit %s as paid (final payment %s)", shop_id, credit_id, remaining)
        return credit, remaining

    async def edit_credit(self, credit_id: int, data: schemas.CreditEdit, user: User) -> Credit:
        """
        Change a credit's amount or description after re-checking the password.

        The amount may not drop below what has already been paid. The status
        is left as it is.
        """
        if not verify_password(data.password, user.password):
            logger.warning("Password confirmation failed for user %s editing credit %s", user.id, credit_id)
            raise ReauthenticationError("Incorrect password")
        try:
            credit = await self._get_owned(credit_id, user.id, for_update=True)
            if data.amount is not None:
                amount = to_money(data.amount)
                paid = await self.total_paid(credit.id)
                if amount < paid:
                    raise AmountBelowPaidError(
                        f"Amount {amount} is below the {paid} already paid on this credit"
                    )
                credit.amount = amount
            if data.description is not None:
                credit.description = data.description or None
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(credit)
        self.cache.invalidate(user.id)
        logger.info("User %s edited credit %s", user.id, credit_id)
        return credit

    async def set_defaulter_status(
        self, customer_id: int, data: schemas.DefaulterUpdate, shop_id: int
    ) -> List[Credit]:
        """
        Flag a customer as defaulter, or clear the flag.

        Applies to every credit of the customer: flagging sets them all to
        ``defaulter``, clearing sets them all back to ``pending``. Only the
        shop that registered the customer may do this, and the request must
        be explicitly confirmed.
        """
        if not data.confirm:
            raise ConfirmationRequiredError(
                "Changing defaulter status is visible to every shop and must be confirmed"
            )
        target = CreditStatus.DEFAULTER if data.is_defaulter else CreditStatus.PENDING
        try:
            customer = await self.session.get(Customer, customer_id)
            if customer is None:
                raise NotFoundError("Customer not found")
            if customer.created_by != shop_id:
                logger.warning("Shop %s tried to change defaulter status of customer %s", shop_id, customer_id)
                raise PermissionDeniedError(
                    "Only the shop that registered this customer can change its defaulter status"
                )
            result = await self.session.execute(
                select(Credit)
                .where(Credit.customer_id == customer_id)
                .order_by(Credit.created_at, Credit.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            credits = list(result.scalars().all())
            note = "Customer flagged as defaulter" if data.is_defaulter else "Defaulter flag cleared"
            for credit in credits:
                await self._transition(credit, target, TransitionSource.OPERATOR, shop_id, notes=note)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        # Defaulter status is visible to every shop's reports
        self.cache.clear()
        logger.info(
            "Shop %s set defaulter=%s for customer %s (%d credits)",
            shop_id, data.is_defaulter, customer_id, len(credits),
        )
        return credits
