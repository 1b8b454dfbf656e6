"""Models backing the cross-shop reports."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from components.core.database import Base


class CreditCheckLog(Base):
    """One row per global search, for auditing who looked up whom."""
    __tablename__ = "credit_check_logs"

    id = Column(Integer, primary_key=True, index=True)
    checked_aadhar = Column(String(12), nullable=False, index=True)
    checked_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    shop_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    checked_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
