"""Credit models for the database."""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from components.core.database import Base
from components.credit.status import CreditStatus


class Credit(Base):
    """Credit model representing an amount a customer owes a shop."""
    __tablename__ = "credits"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    issued_by = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=CreditStatus.PENDING.value, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    customer = relationship("Customer", back_populates="credits")
    payments = relationship("Payment", back_populates="credit", passive_deletes=True)
    status_changes = relationship("StatusChange", back_populates="credit", passive_deletes=True)


class StatusChange(Base):
    """Audit row written for every credit status transition."""
    __tablename__ = "transaction_history"

    id = Column(Integer, primary_key=True, index=True)
    credit_id = Column(Integer, ForeignKey("credits.id", ondelete="CASCADE"), nullable=False, index=True)
    previous_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=False)
    source = Column(String(20), nullable=False)
    notes = Column(String(500), nullable=True)
    shop_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    credit = relationship("Credit", back_populates="status_changes")
