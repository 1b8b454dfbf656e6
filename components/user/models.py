"""User (shop profile) and role models for the database."""

import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from components.core.database import Base


class AccountStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AppRole(str, enum.Enum):
    ADMIN = "admin"
    SHOP_OWNER = "shop_owner"
    USER = "user"


class User(Base):
    """User model representing a shop account in the system."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False)
    password = Column(String(255), nullable=False)  # Hashed password
    full_name = Column(String(100), nullable=True)
    shop_name = Column(String(200), nullable=True)
    phone = Column(String(20), nullable=True)
    address = Column(String(500), nullable=True)
    shop_location = Column(String(500), nullable=True)
    business_type = Column(String(100), nullable=True)
    license_number = Column(String(50), nullable=True)
    shop_owner = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default=AccountStatus.PENDING.value)
    email_confirmed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    roles = relationship("UserRole", back_populates="user", foreign_keys="UserRole.user_id")


class UserRole(Base):
    """Role granted to a user."""
    __tablename__ = "user_roles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False)
    granted_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    granted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="roles", foreign_keys=[user_id])

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
    )
