"""Admin endpoints: account approval, roles and platform stats."""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.report.repository import ReportRepository
from components.user import schemas
from components.user.models import AccountStatus, User
from components.user.repository import UserRepository
from restapi.endpoints.auth import get_admin_user

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    responses={403: {"description": "Admin privileges required"}},
)


@router.get("/users", response_model=List[schemas.UserWithRoles])
async def list_users(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=500, description="Number of records to return"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """All accounts with their roles, newest first."""
    repo = UserRepository(db)
    users = await repo.get_all(skip=skip, limit=limit)
    roles = await repo.get_roles_by_user()
    return [
        schemas.UserWithRoles(**schemas.User.model_validate(user).model_dump(), roles=roles.get(user.id, []))
        for user in users
    ]


@router.post("/users/{user_id}/approve", response_model=schemas.User)
async def approve_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Confirm the account's email and approve it."""
    return await UserRepository(db).approve(user_id)


@router.post("/users/{user_id}/reject", response_model=schemas.User)
async def reject_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return await UserRepository(db).set_status(user_id, AccountStatus.REJECTED)


@router.post("/users/{user_id}/confirm-email", response_model=schemas.User)
async def confirm_email(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return await UserRepository(db).confirm_email(user_id)


@router.post("/users/{user_id}/toggle-admin", response_model=schemas.ActionResult)
async def toggle_admin(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Grant the admin role, or revoke it if already held."""
    is_admin = await UserRepository(db).toggle_admin_role(user_id, granted_by=admin.id)
    message = "Admin role granted" if is_admin else "Admin role revoked"
    return schemas.ActionResult(success=True, message=message)


@router.get("/stats", response_model=schemas.AdminStats)
async def admin_stats(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return await ReportRepository(db).admin_stats()
