"""Pydantic schemas for customer data validation."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

NAME_PATTERN = r"^[a-zA-Z\s]+$"
MOBILE_PATTERN = r"^[6-9]\d{9}$"
AADHAAR_PATTERN = r"^\d{12}$"


class CustomerBase(BaseModel):
    """Base customer schema."""
    name: str = Field(..., min_length=5, max_length=100, pattern=NAME_PATTERN)
    phone: str = Field(..., pattern=MOBILE_PATTERN)
    address: str = Field(..., min_length=10, max_length=500)
    id_proof: str = Field(..., pattern=AADHAAR_PATTERN)

    class Config:
        str_strip_whitespace = True


class CustomerCreate(CustomerBase):
    """Schema for customer registration."""
    pass


class CustomerUpdate(BaseModel):
    """Schema for customer edits; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=5, max_length=100, pattern=NAME_PATTERN)
    phone: Optional[str] = Field(None, pattern=MOBILE_PATTERN)
    address: Optional[str] = Field(None, min_length=10, max_length=500)
    id_proof: Optional[str] = Field(None, pattern=AADHAAR_PATTERN)

    class Config:
        str_strip_whitespace = True


class Customer(BaseModel):
    """Schema for customer response."""
    id: int
    id_proof: str
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomerWithStatus(Customer):
    status: str
    credit_count: int = 0


class CustomerRegistration(BaseModel):
    """Result of registering a customer that may already exist."""
    customer: Customer
    is_new: bool
    message: str


class CustomerImportError(BaseModel):
    row: int
    message: str


class CustomerImportResponse(BaseModel):
    success: bool
    message: str
    created: int = 0
    existing: int = 0
    errors: Optional[List[CustomerImportError]] = None
