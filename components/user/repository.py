"""Repository for user operations."""

import logging
from typing import Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.exceptions import AuthenticationError, NotFoundError, PermissionDeniedError
from components.core.security import get_password_hash, verify_password
from components.user.models import AccountStatus, AppRole, User, UserRole
from components.user.schemas import ProfileUpdate, UserCreate

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(
        self,
        user: UserCreate,
        status: AccountStatus = AccountStatus.PENDING,
        email_confirmed: bool = False,
    ) -> User:
        """Create a new shop account and grant it the shop owner role."""
        db_user = User(
            email=user.email.lower(),
            password=get_password_hash(user.password),
            full_name=user.full_name,
            shop_name=user.shop_name,
            phone=user.phone,
            status=status.value,
            email_confirmed=email_confirmed,
        )
        self.session.add(db_user)
        await self.session.flush()
        self.session.add(UserRole(user_id=db_user.id, role=AppRole.SHOP_OWNER.value))
        await self.session.commit()
        await self.session.refresh(db_user)
        logger.info("Registered account %s (%s)", db_user.id, db_user.email)
        return db_user

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        result = await self.session.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_or_404(self, user_id: int) -> User:
        user = await self.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        result = await self.session.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def exists(self, email: str) -> bool:
        """Check if user with given email exists."""
        result = await self.session.execute(
            select(User.id).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none() is not None

    async def authenticate(self, email: str, password: str) -> User:
        """Return the account for valid credentials, refusing unapproved ones."""
        user = await self.get_by_email(email)
        if user is None or not verify_password(password, user.password):
            raise AuthenticationError("Incorrect email or password")
        if user.status != AccountStatus.APPROVED.value or not user.email_confirmed:
            logger.warning("Refused login for unapproved account %s", user.id)
            raise PermissionDeniedError(
                "Your account is awaiting admin approval.", title="Access Denied"
            )
        return user

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[User]:
        """Get all users ordered by sign-up time."""
        result = await self.session.execute(
            select(User).order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all())

    async def get_roles(self, user_id: int) -> List[str]:
        result = await self.session.execute(
            select(UserRole.role).where(UserRole.user_id == user_id).order_by(UserRole.role)
        )
        return list(result.scalars().all())

    async def get_roles_by_user(self) -> Dict[int, List[str]]:
        """Map every user id to its granted roles."""
        result = await self.session.execute(select(UserRole.user_id, UserRole.role))
        roles: Dict[int, List[str]] = {}
        for user_id, role in result.all():
            roles.setdefault(user_id, []).append(role)
        return roles

    async def has_role(self, user_id: int, role: AppRole) -> bool:
        result = await self.session.execute(
            select(UserRole.id).where(UserRole.user_id == user_id, UserRole.role == role.value)
        )
        return result.scalar_one_or_none() is not None

    async def grant_role(self, user_id: int, role: AppRole, granted_by: Optional[int] = None) -> None:
        if await self.has_role(user_id, role):
            return
        self.session.add(UserRole(user_id=user_id, role=role.value, granted_by=granted_by))
        await self.session.commit()
        logger.info("Granted role %s to user %s (by %s)", role.value, user_id, granted_by)

    async def revoke_role(self, user_id: int, role: AppRole) -> None:
        await self.session.execute(
            delete(UserRole).where(UserRole.user_id == user_id, UserRole.role == role.value)
        )
        await self.session.commit()
        logger.info("Revoked role %s from user %s", role.value, user_id)

    async def toggle_admin_role(self, user_id: int, granted_by: int) -> bool:
        """Flip the admin role; returns whether the user is now an admin."""
        await self.get_or_404(user_id)
        if await self.has_role(user_id, AppRole.ADMIN):
            await self.revoke_role(user_id, AppRole.ADMIN)
            return False
        await self.grant_role(user_id, AppRole.ADMIN, granted_by=granted_by)
        return True

    async def update_profile(self, user_id: int, profile: ProfileUpdate) -> User:
        """Update the provided profile fields."""
        db_user = await self.get_or_404(user_id)
        for field, value in profile.model_dump(exclude_unset=True).items():
            setattr(db_user, field, value)
        await self.session.commit()
        await self.session.refresh(db_user)
        return db_user

    async def confirm_email(self, user_id: int) -> User:
        db_user = await self.get_or_404(user_id)
        db_user.email_confirmed = True
        await self.session.commit()
        await self.session.refresh(db_user)
        logger.info("Confirmed email for user %s", user_id)
        return db_user

    async def set_status(self, user_id: int, status: AccountStatus) -> User:
        db_user = await self.get_or_404(user_id)
        db_user.status = status.value
        await self.session.commit()
        await self.session.refresh(db_user)
        logger.info("Set account status of user %s to %s", user_id, status.value)
        return db_user

    async def approve(self, user_id: int) -> User:
        """Confirm the email first, then mark the account approved."""
        await self.confirm_email(user_id)
        return await self.set_status(user_id, AccountStatus.APPROVED)
