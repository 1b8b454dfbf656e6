"""Authentication endpoints and the session dependencies every router uses."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.exceptions import PermissionDeniedError
from components.core.init_db import get_db
from components.core.security import verify_token
from components.user.models import AccountStatus, AppRole, User
from components.user.repository import UserRepository
from components.user.schemas import SessionState, User as UserSchema, UserCreate, UserWithToken
from components.user.utils import create_token_for_user

router = APIRouter(prefix="/auth", tags=["authentication"])
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    token: str = Depends(oauth2_scheme)
) -> User:
    """Get current user from JWT token."""
    payload = verify_token(token)
    if payload is None or payload.get("sub") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        user_id = None
    user = await UserRepository(db).get_by_id(user_id) if user_id is not None else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def is_approved(user: User) -> bool:
    return user.status == AccountStatus.APPROVED.value and bool(user.email_confirmed)


async def get_approved_user(current_user: User = Depends(get_current_user)) -> User:
    """Current user, provided an admin has approved the account."""
    if not is_approved(current_user):
        raise PermissionDeniedError("Your account is awaiting admin approval.", title="Access Denied")
    return current_user


async def get_admin_user(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> User:
    """Current user, provided it holds the admin role."""
    if not await UserRepository(db).has_role(current_user.id, AppRole.ADMIN):
        raise PermissionDeniedError("Admin privileges are required", title="Access Denied")
    return current_user


@router.post("/register", response_model=UserSchema, status_code=status.HTTP_201_CREATED)
async def register(
    user_in: UserCreate,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Create a shop account; it can sign in once an admin approves it."""
    repo = UserRepository(db)
    if await repo.exists(user_in.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )
    return await repo.create(user_in)


@router.post("/login", response_model=UserWithToken)
async def login(
    db: AsyncSession = Depends(get_db),
    form_data: OAuth2PasswordRequestForm = Depends()
) -> Any:
    """Login with email and password and return a JWT token."""
    user = await UserRepository(db).authenticate(form_data.username, form_data.password)
    return UserWithToken(
        **UserSchema.model_validate(user).model_dump(),
        access_token=create_token_for_user(user),
    )


@router.get("/session", response_model=SessionState)
async def session_state(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Consolidated auth, approval and role state of the caller."""
    roles = await UserRepository(db).get_roles(current_user.id)
    return SessionState(
        user=UserSchema.model_validate(current_user),
        roles=roles,
        is_approved=is_approved(current_user),
        is_admin=AppRole.ADMIN.value in roles,
    )
