"""Payment listing endpoint."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.payment import schemas
from components.payment.repository import PaymentRepository
from components.user.models import User
from restapi.endpoints.auth import get_approved_user

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/", response_model=List[schemas.PaymentWithDetails])
async def list_payments(
    search: Optional[str] = Query(None, description="Customer name, phone or credit description"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=500, description="Number of records to return"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Payments received by the shop, newest first."""
    return await PaymentRepository(db).list_for_shop(current_user.id, search=search, skip=skip, limit=limit)
