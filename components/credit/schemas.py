"""Pydantic schemas for credits and their lifecycle."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from components.core.config import get_settings
from components.payment import schemas as payment_schemas

MAX_AMOUNT = get_settings().MAX_TRANSACTION_AMOUNT


class CreditCreate(BaseModel):
    """Schema for issuing a credit."""
    customer_id: int = Field(..., gt=0)
    amount: Decimal = Field(..., gt=0, le=MAX_AMOUNT, decimal_places=2)
    description: Optional[str] = Field(None, max_length=500)

    class Config:
        str_strip_whitespace = True


class CreditEdit(BaseModel):
    """Schema for editing a credit; the account password must be re-entered."""
    amount: Optional[Decimal] = Field(None, gt=0, le=MAX_AMOUNT, decimal_places=2)
    description: Optional[str] = Field(None, max_length=500)
    password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_has_changes(self) -> "CreditEdit":
        if self.amount is None and self.description is None:
            raise ValueError("Provide an amount or a description to change")
        return self


class DefaulterUpdate(BaseModel):
    """Schema for flagging or clearing a customer as defaulter."""
    is_defaulter: bool
    confirm: bool = False


class Credit(BaseModel):
    """Schema for credit response."""
    id: int
    customer_id: int
    issued_by: Optional[int] = None
    amount: float
    description: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CreditWithBalance(Credit):
    """Credit with its settlement figures."""
    total_paid: float
    outstanding: float
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None


class CreditHistoryItem(CreditWithBalance):
    payments: List[payment_schemas.Payment] = []


class MarkPaidResult(BaseModel):
    success: bool
    amount_paid: float
    message: str
    credit: Credit


class CustomerPaymentResult(BaseModel):
    """Outcome of a customer-level payment spread over several credits."""
    amount: float
    payments: List[payment_schemas.Payment]
    credits: List[Credit]


class StatusChange(BaseModel):
    id: int
    credit_id: int
    previous_status: Optional[str] = None
    new_status: str
    source: str
    notes: Optional[str] = None
    shop_id: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
