"""Pydantic schemas for accounts, profiles and roles."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
MOBILE_PATTERN = r"^[6-9]\d{9}$"


class UserCreate(BaseModel):
    """Schema for shop sign-up."""
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6, max_length=100)
    full_name: str = Field(..., min_length=2, max_length=100)
    shop_name: str = Field(..., min_length=2, max_length=200)
    phone: str = Field(..., pattern=MOBILE_PATTERN)

    class Config:
        str_strip_whitespace = True


class ProfileUpdate(BaseModel):
    """Schema for profile edits; omitted fields are left unchanged."""
    full_name: Optional[str] = Field(None, min_length=2, max_length=100)
    shop_name: Optional[str] = Field(None, min_length=2, max_length=200)
    phone: Optional[str] = Field(None, pattern=MOBILE_PATTERN)
    address: Optional[str] = Field(None, max_length=500)
    shop_location: Optional[str] = Field(None, max_length=500)
    business_type: Optional[str] = Field(None, max_length=100)
    license_number: Optional[str] = Field(None, max_length=50)
    shop_owner: Optional[str] = Field(None, max_length=100)

    class Config:
        str_strip_whitespace = True


class User(BaseModel):
    """Schema for user response."""
    id: int
    email: str
    full_name: Optional[str] = None
    shop_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    shop_location: Optional[str] = None
    business_type: Optional[str] = None
    license_number: Optional[str] = None
    shop_owner: Optional[str] = None
    status: str
    email_confirmed: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserWithToken(User):
    access_token: str
    token_type: str = "bearer"


class UserWithRoles(User):
    roles: List[str] = []


class SessionState(BaseModel):
    """Everything a client needs to guard its views."""
    user: User
    roles: List[str]
    is_approved: bool
    is_admin: bool


class AdminStats(BaseModel):
    total_shop_owners: int
    active_shops_today: int
    total_credits: int
    total_defaulters: int


class ActionResult(BaseModel):
    success: bool
    message: str
