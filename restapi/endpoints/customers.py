"""Customer endpoints: registration, listing, import and customer-level ledger actions."""

import io
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.credit import schemas as credit_schemas
from components.credit.repository import CreditRepository
from components.customer import schemas
from components.customer.repository import CustomerRepository
from components.payment import schemas as payment_schemas
from components.user.models import User
from components.user.schemas import ActionResult
from restapi.endpoints.auth import get_approved_user

router = APIRouter(
    prefix="/customers",
    tags=["customers"],
    responses={404: {"description": "Not found"}},
)


@router.post("/", response_model=schemas.CustomerRegistration)
async def add_customer(
    customer: schemas.CustomerCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Register a customer, or link the existing one with the same Aadhaar."""
    db_customer, is_new, message = await CustomerRepository(db).add_or_get(customer, current_user.id)
    return schemas.CustomerRegistration(
        customer=schemas.Customer.model_validate(db_customer), is_new=is_new, message=message
    )


@router.get("/", response_model=List[schemas.CustomerWithStatus])
async def list_customers(
    search: Optional[str] = Query(None, description="Name, phone or last four Aadhaar digits"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=500, description="Number of records to return"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """List the shop's customers with their credit status."""
    return await CustomerRepository(db).list_for_shop(current_user.id, search=search, skip=skip, limit=limit)


@router.post("/import", response_model=schemas.CustomerImportResponse)
async def import_customers(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """
    Import customers from a CSV file.

    The CSV file should have the following columns:
    - name: customer name, letters and spaces
    - phone: 10-digit mobile number
    - address: postal address
    - id_proof: 12-digit Aadhaar number
    """
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed",
        )
    content = await file.read()
    result = await CustomerRepository(db).import_from_csv(io.BytesIO(content), current_user.id)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result.model_dump(),
        )
    return result


@router.get("/{customer_id}", response_model=schemas.Customer)
async def read_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Get a customer by ID."""
    return await CustomerRepository(db).get_or_404(customer_id)


@router.put("/{customer_id}", response_model=schemas.Customer)
async def update_customer(
    customer_id: int,
    customer: schemas.CustomerUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Update a customer registered by the caller's shop."""
    return await CustomerRepository(db).update(customer_id, customer, current_user.id)


@router.delete("/{customer_id}", response_model=ActionResult)
async def delete_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Delete a customer registered by the caller's shop, with its credits."""
    await CustomerRepository(db).delete(customer_id, current_user.id)
    return ActionResult(success=True, message="Customer deleted successfully")


@router.get("/{customer_id}/credits", response_model=List[credit_schemas.CreditHistoryItem])
async def customer_credit_history(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """The shop's credits for a customer, each with its payments."""
    return await CreditRepository(db).customer_credit_history(customer_id, current_user.id)


@router.post(
    "/{customer_id}/payments",
    response_model=credit_schemas.CustomerPaymentResult,
    status_code=status.HTTP_201_CREATED,
)
async def record_customer_payment(
    customer_id: int,
    payment: payment_schemas.PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Apply a payment to the customer's oldest open credits first."""
    payments, credits = await CreditRepository(db).record_customer_payment(
        customer_id, payment, current_user.id
    )
    return credit_schemas.CustomerPaymentResult(
        amount=float(payment.amount),
        payments=[payment_schemas.Payment.model_validate(p) for p in payments],
        credits=[credit_schemas.Credit.model_validate(c) for c in credits],
    )


@router.put("/{customer_id}/defaulter", response_model=List[credit_schemas.Credit])
async def set_defaulter_status(
    customer_id: int,
    update: credit_schemas.DefaulterUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Flag the customer as defaulter on every credit, or clear the flag."""
    return await CreditRepository(db).set_defaulter_status(customer_id, update, current_user.id)
