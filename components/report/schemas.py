"""Pydantic schemas for dashboard and cross-shop reports."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from components.user.schemas import User


class DashboardTotals(BaseModel):
    total_customers: int
    total_credits: int
    total_credit_amount: float
    total_payments: float
    total_outstanding: float
    defaulters_count: int


class DefaulterEntry(BaseModel):
    customer_id: int
    customer_name: str
    customer_phone: Optional[str] = None
    outstanding: float


class ActivityEntry(BaseModel):
    """A credit issued or a payment received, for the activity feed."""
    kind: str
    id: int
    credit_id: int
    customer_id: int
    customer_name: str
    amount: float
    status: Optional[str] = None
    created_at: Optional[datetime] = None


class DashboardStats(BaseModel):
    totals: DashboardTotals
    defaulters: List[DefaulterEntry]
    recent_activity: List[ActivityEntry]
    user_profile: User


class CustomerCreditSummary(BaseModel):
    customer_id: int
    customer_name: str
    customer_phone: Optional[str] = None
    credit_count: int
    total_credit_amount: float
    total_payments: float
    outstanding_amount: float
    latest_credit_date: Optional[datetime] = None
    status: str


class CustomerOutstanding(BaseModel):
    customer_id: int
    name: str
    phone: Optional[str] = None
    total_credit: float
    total_payments: float
    outstanding: float


class GlobalCustomer(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    id_proof: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ShopProfile(BaseModel):
    """One issuing shop's standing with the searched customer."""
    shop_id: int
    shop_name: Optional[str] = None
    shop_location: Optional[str] = None
    phone: Optional[str] = None
    credit_count: int
    total_credit: float
    outstanding: float
    status: str


class DefaulterTransaction(BaseModel):
    credit_id: int
    shop_id: int
    shop_name: Optional[str] = None
    amount: float
    outstanding: float
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class DefaulterInsights(BaseModel):
    is_defaulter: bool
    has_credit: bool
    defaulter_shop_count: int
    total_defaulted_outstanding: float
    total_outstanding: float
    outstanding_range: str
    risk_level: str
    total_shops: int


class GlobalSearchResult(BaseModel):
    global_customer: GlobalCustomer
    shop_profiles: List[ShopProfile]
    defaulter_transactions: List[DefaulterTransaction]
    defaulter_insights: DefaulterInsights
