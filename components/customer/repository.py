"""Repository for customer operations."""

import logging
from typing import BinaryIO, Dict, List, Optional, Tuple

import pandas as pd
from pydantic import ValidationError
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.config import get_settings
from components.core.exceptions import CustomerConflictError, NotFoundError, PermissionDeniedError
from components.credit.models import Credit, StatusChange
from components.credit.status import aggregate_status
from components.customer import schemas
from components.customer.models import Customer, ShopCustomer
from components.payment.models import Payment
from components.report.cache import ReportCache, get_report_cache

logger = logging.getLogger(__name__)

IMPORT_COLUMNS = ("name", "phone", "address", "id_proof")


class CustomerRepository:
    """Repository for customer operations."""

    def __init__(self, session: AsyncSession, cache: Optional[ReportCache] = None):
        """Initialize repository with database session."""
        self.session = session
        self.cache = cache or get_report_cache()

    async def get_by_id(self, customer_id: int) -> Optional[Customer]:
        """Get customer by ID."""
        result = await self.session.execute(
            select(Customer).where(Customer.id == customer_id)
        )
        return result.scalar_one_or_none()

    async def get_or_404(self, customer_id: int) -> Customer:
        customer = await self.get_by_id(customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")
        return customer

    async def get_by_id_proof(self, id_proof: str) -> Optional[Customer]:
        """Get customer by Aadhaar number."""
        result = await self.session.execute(
            select(Customer).where(Customer.id_proof == id_proof)
        )
        return result.scalar_one_or_none()

    async def link_to_shop(self, customer_id: int, shop_id: int) -> None:
        """Attach a customer to a shop's list. Does not commit."""
        result = await self.session.execute(
            select(ShopCustomer.id).where(
                ShopCustomer.customer_id == customer_id,
                ShopCustomer.shop_id == shop_id,
            )
        )
        if result.scalar_one_or_none() is None:
            self.session.add(ShopCustomer(customer_id=customer_id, shop_id=shop_id))
            await self.session.flush()

    async def add_or_get(self, data: schemas.CustomerCreate, shop_id: int) -> Tuple[Customer, bool, str]:
        """
        Register a customer, or return the existing one with the same Aadhaar.

        Either way the customer ends up linked to the calling shop.
        """
        existing = await self.get_by_id_proof(data.id_proof)
        if existing is None:
            customer = Customer(
                id_proof=data.id_proof,
                name=data.name,
                phone=data.phone,
                address=data.address,
                created_by=shop_id,
            )
            self.session.add(customer)
            try:
                await self.session.flush()
            except IntegrityError:
                # Another shop registered the same Aadhaar in the meantime
                await self.session.rollback()
                existing = await self.get_by_id_proof(data.id_proof)
                if existing is None:
                    raise
            else:
                await self.link_to_shop(customer.id, shop_id)
                await self.session.commit()
                await self.session.refresh(customer)
                self.cache.invalidate(shop_id)
                logger.info("Shop %s registered customer %s", shop_id, customer.id)
                return customer, True, "Customer added successfully"

        await self.link_to_shop(existing.id, shop_id)
        await self.session.commit()
        await self.session.refresh(existing)
        self.cache.invalidate(shop_id)
        logger.info("Shop %s linked existing customer %s", shop_id, existing.id)
        return existing, False, "Customer already exists"

    async def list_for_shop(
        self,
        shop_id: int,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Dict]:
        """Customers linked to a shop, with their status over the shop's credits."""
        query = (
            select(Customer)
            .join(ShopCustomer, ShopCustomer.customer_id == Customer.id)
            .where(ShopCustomer.shop_id == shop_id)
        )
        if search:
            term = f"%{search.strip()}%"
            query = query.where(
                or_(
                    Customer.name.ilike(term),
                    Customer.phone.ilike(term),
                    func.substr(Customer.id_proof, 9, 4).like(term),
                )
            )
        query = query.order_by(Customer.created_at.desc(), Customer.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        customers = list(result.scalars().all())
        if not customers:
            return []

        result = await self.session.execute(
            select(Credit.customer_id, Credit.status).where(
                Credit.issued_by == shop_id,
                Credit.customer_id.in_([customer.id for customer in customers]),
            )
        )
        statuses: Dict[int, List[str]] = {}
        for customer_id, status in result.all():
            statuses.setdefault(customer_id, []).append(status)

        rows = []
        for customer in customers:
            customer_statuses = statuses.get(customer.id, [])
            row = schemas.Customer.model_validate(customer).model_dump()
            row["status"] = aggregate_status(customer_statuses).value
            row["credit_count"] = len(customer_statuses)
            rows.append(row)
        return rows

    async def _get_owned(self, customer_id: int, shop_id: int) -> Customer:
        customer = await self.get_or_404(customer_id)
        if customer.created_by != shop_id:
            logger.warning("Shop %s tried to modify customer %s it did not create", shop_id, customer_id)
            raise PermissionDeniedError("Only the shop that registered this customer can change it")
        return customer

    async def update(self, customer_id: int, data: schemas.CustomerUpdate, shop_id: int) -> Customer:
        """Update a customer; only its creating shop may do so."""
        customer = await self._get_owned(customer_id, shop_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        new_id_proof = changes.get("id_proof")
        if new_id_proof and new_id_proof != customer.id_proof:
            other = await self.get_by_id_proof(new_id_proof)
            if other is not None:
                raise CustomerConflictError("Another customer already uses this Aadhaar number")

        for field, value in changes.items():
            setattr(customer, field, value)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise CustomerConflictError("Another customer already uses this Aadhaar number")
        await self.session.refresh(customer)
        self.cache.clear()
        logger.info("Shop %s updated customer %s", shop_id, customer_id)
        return customer

    async def delete(self, customer_id: int, shop_id: int) -> None:
        """Delete a customer with its credits, payments and history."""
        await self._get_owned(customer_id, shop_id)
        credit_ids = select(Credit.id).where(Credit.customer_id == customer_id)
        try:
            await self.session.execute(delete(Payment).where(Payment.credit_id.in_(credit_ids)))
            await self.session.execute(delete(StatusChange).where(StatusChange.credit_id.in_(credit_ids)))
            await self.session.execute(delete(Credit).where(Credit.customer_id == customer_id))
            await self.session.execute(delete(ShopCustomer).where(ShopCustomer.customer_id == customer_id))
            await self.session.execute(delete(Customer).where(Customer.id == customer_id))
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        self.cache.clear()
        logger.info("Shop %s deleted customer %s", shop_id, customer_id)

    async def import_from_csv(self, file_content: BinaryIO, shop_id: int) -> schemas.CustomerImportResponse:
        """
        Register customers from a CSV file.

        The file must have the columns name, phone, address and id_proof.
        Every row is validated before anything is written; if any row is
        invalid, nothing is imported and the row errors are returned.
        """
        try:
            frame = pd.read_csv(file_content, dtype=str, keep_default_na=False)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
            return schemas.CustomerImportResponse(success=False, message=f"Error processing file: {exc}")

        frame.columns = [str(column).strip().lower() for column in frame.columns]
        if not set(IMPORT_COLUMNS).issubset(frame.columns):
            return schemas.CustomerImportResponse(
                success=False,
                message="CSV file must contain 'name', 'phone', 'address' and 'id_proof' columns",
            )

        limit = get_settings().CUSTOMER_IMPORT_MAX_ROWS
        if len(frame) > limit:
            return schemas.CustomerImportResponse(
                success=False, message=f"CSV file has more than {limit} rows"
            )

        rows: List[schemas.CustomerCreate] = []
        errors: List[schemas.CustomerImportError] = []
        seen: Dict[str, int] = {}
        # Start at 2 to account for header row
        for row_num, record in enumerate(frame[list(IMPORT_COLUMNS)].to_dict(orient="records"), start=2):
            try:
                customer = schemas.CustomerCreate(**record)
            except ValidationError as exc:
                message = "; ".join(
                    f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                    for error in exc.errors()
                )
                errors.append(schemas.CustomerImportError(row=row_num, message=message))
                continue
            if customer.id_proof in seen:
                errors.append(schemas.CustomerImportError(
                    row=row_num,
                    message=f"Duplicate id_proof, already listed on row {seen[customer.id_proof]}",
                ))
                continue
            seen[customer.id_proof] = row_num
            rows.append(customer)

        if errors:
            return schemas.CustomerImportResponse(
                success=False, message="Validation errors occurred", errors=errors
            )

        created = existing = 0
        for customer in rows:
            _, is_new, _ = await self.add_or_get(customer, shop_id)
            if is_new:
                created += 1
            else:
                existing += 1
        logger.info("Shop %s imported %d customers (%d already existed)", shop_id, created, existing)
        return schemas.CustomerImportResponse(
            success=True,
            message="Customers imported successfully",
            created=created,
            existing=existing,
        )
