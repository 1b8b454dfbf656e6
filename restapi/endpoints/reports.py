"""Report endpoints: dashboard, summaries and the cross-shop credit check."""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.report import schemas
from components.report.repository import ReportRepository
from components.user.models import User
from restapi.endpoints.auth import get_approved_user

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/dashboard", response_model=schemas.DashboardStats)
async def dashboard(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    return await ReportRepository(db).dashboard_stats(current_user)


@router.get("/customers-summary", response_model=List[schemas.CustomerCreditSummary])
async def customer_credits_summary(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Per-customer credit totals for the shop."""
    return await ReportRepository(db).customer_credits_summary(current_user.id)


@router.get("/outstanding", response_model=List[schemas.CustomerOutstanding])
async def outstanding_summary(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Customers ordered by what they still owe the shop."""
    return await ReportRepository(db).outstanding_summary(current_user.id)


@router.get("/global-search", response_model=schemas.GlobalSearchResult)
async def global_search(
    aadhar_no: str = Query(..., description="12-digit Aadhaar number"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_approved_user)
):
    """Check a customer's credit standing across every shop."""
    return await ReportRepository(db).global_search(aadhar_no, current_user)
