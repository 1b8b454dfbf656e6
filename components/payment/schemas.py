"""Pydantic schemas for payments."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from components.core.config import get_settings
from components.payment.models import PaymentMethod

MAX_AMOUNT = get_settings().MAX_TRANSACTION_AMOUNT


class PaymentCreate(BaseModel):
    """Schema for recording a payment."""
    amount: Decimal = Field(..., gt=0, le=MAX_AMOUNT, decimal_places=2)
    payment_date: date = Field(default_factory=date.today)
    payment_method: PaymentMethod = PaymentMethod.CASH


class Payment(BaseModel):
    """Schema for payment response."""
    id: int
    credit_id: int
    amount: float
    payment_date: date
    payment_method: str
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentWithDetails(Payment):
    """Payment joined with its credit and customer."""
    credit_amount: float
    credit_description: Optional[str] = None
    customer_id: int
    customer_name: str
    customer_phone: Optional[str] = None
    customer_id_proof: str
