"""Repository for payment operations."""

from typing import Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from components.credit.models import Credit
from components.customer.models import Customer
from components.payment import schemas
from components.payment.models import Payment


class PaymentRepository:
    """Repository for payment operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_credit(self, credit_id: int) -> List[Payment]:
        """Get all payments for a credit, oldest first."""
        result = await self.session.execute(
            select(Payment)
            .where(Payment.credit_id == credit_id)
            .order_by(Payment.payment_date, Payment.id)
        )
        return list(result.scalars().all())

    async def list_for_shop(
        self,
        shop_id: int,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Dict]:
        """Payments on a shop's credits, newest first, with credit and customer details."""
        query = (
            select(Payment, Credit, Customer)
            .join(Credit, Credit.id == Payment.credit_id)
            .join(Customer, Customer.id == Credit.customer_id)
            .where(Credit.issued_by == shop_id)
        )
        if search:
            term = f"%{search.strip()}%"
            query = query.where(
                or_(
                    Customer.name.ilike(term),
                    Customer.phone.ilike(term),
                    Credit.description.ilike(term),
                )
            )
        query = query.order_by(Payment.payment_date.desc(), Payment.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)

        rows = []
        for payment, credit, customer in result.all():
            row = schemas.Payment.model_validate(payment).model_dump()
            row.update(
                credit_amount=float(credit.amount),
                credit_description=credit.description,
                customer_id=customer.id,
                customer_name=customer.name,
                customer_phone=customer.phone,
                customer_id_proof=customer.id_proof,
            )
            rows.append(row)
        return rows
