"""Profile endpoints for the signed-in shop."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.report.cache import get_report_cache
from components.user import schemas
from components.user.models import User
from components.user.repository import UserRepository
from restapi.endpoints.auth import get_current_user

router = APIRouter(
    prefix="/users",
    tags=["users"],
    responses={404: {"description": "Not found"}},
)


@router.get("/me", response_model=schemas.UserWithRoles)
async def read_profile(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get the caller's profile and roles."""
    roles = await UserRepository(db).get_roles(current_user.id)
    return schemas.UserWithRoles(**schemas.User.model_validate(current_user).model_dump(), roles=roles)


@router.put("/me", response_model=schemas.User)
async def update_profile(
    profile: schemas.ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update the caller's profile."""
    user = await UserRepository(db).update_profile(current_user.id, profile)
    get_report_cache().invalidate(current_user.id)
    return user
