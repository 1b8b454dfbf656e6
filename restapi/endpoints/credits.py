"""Credit endpoints: issuing, settling and editing credits."""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.credit import schemas
from components.credit.repository import CreditRepository
from components.credit.status import CreditStatus
from components.payment import schemas as payment_schemas
from components.payment.models import PaymentMethod
from components.user.models import User
from restapi.endpoints.auth import get_approved_user

router = APIRouter(
    prefix="/credits",
    tags=["credits"],
    responses={404: {"description": "Not found"}},
)


@router.post("/", response_model=schemas.Credit, status_code=status.HTTP_201_CREATED)
async def issue_credit(
    credit: schemas.CreditCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Issue a new credit to a customer."""
    return await CreditRepository(db).issue_credit(credit, current_user.id)


@router.get("/", response_model=List[schemas.CreditWithBalance])
async def list_credits(
    search: Optional[str] = Query(None, description="Customer name or description"),
    credit_status: Optional[CreditStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=500, description="Number of records to return"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """List the shop's credits with paid and outstanding totals."""
    return await CreditRepository(db).list_for_shop(
        current_user.id, search=search, status=credit_status, skip=skip, limit=limit
    )


@router.get("/{credit_id}", response_model=schemas.CreditWithBalance)
async def read_credit(
    credit_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Get one of the shop's credits with its balance."""
    return await CreditRepository(db).get_with_balance(credit_id, current_user.id)


@router.patch("/{credit_id}", response_model=schemas.Credit)
async def edit_credit(
    credit_id: int,
    edit: schemas.CreditEdit,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Edit amount or description; the account password must be re-entered."""
    return await CreditRepository(db).edit_credit(credit_id, edit, current_user)


@router.post(
    "/{credit_id}/payments",
    response_model=payment_schemas.Payment,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    credit_id: int,
    payment: payment_schemas.PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Record a payment against a credit."""
    return await CreditRepository(db).record_payment(credit_id, payment, current_user.id)


@router.post("/{credit_id}/mark-paid", response_model=schemas.MarkPaidResult)
async def mark_as_paid(
    credit_id: int,
    payment_method: PaymentMethod = Body(PaymentMethod.CASH, embed=True),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Settle the credit in full with one final payment."""
    credit, amount_paid = await CreditRepository(db).mark_as_paid(
        credit_id, current_user.id, payment_method=payment_method
    )
    return schemas.MarkPaidResult(
        success=True,
        amount_paid=float(amount_paid),
        message="Credit marked as paid successfully",
        credit=schemas.Credit.model_validate(credit),
    )


@router.get("/{credit_id}/history", response_model=List[schemas.StatusChange])
async def credit_status_history(
    credit_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Every status change of the credit, oldest first."""
    return await CreditRepository(db).status_history(credit_id, current_user.id)
