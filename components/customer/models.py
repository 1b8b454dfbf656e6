"""Customer models for the database."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from components.core.database import Base


class Customer(Base):
    """Customer shared by every shop, identified by the Aadhaar number."""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    id_proof = Column(String(12), unique=True, nullable=False)
    name = Column(String(100), nullable=False, index=True)
    phone = Column(String(20), nullable=True)
    address = Column(String(500), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    credits = relationship("Credit", back_populates="customer", passive_deletes=True)
    shop_links = relationship("ShopCustomer", back_populates="customer", passive_deletes=True)


class ShopCustomer(Base):
    """Link between a shop and a customer it works with."""
    __tablename__ = "shop_customers"

    id = Column(Integer, primary_key=True, index=True)
    shop_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    added_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    customer = relationship("Customer", back_populates="shop_links")

    __table_args__ = (
        UniqueConstraint("shop_id", "customer_id", name="uq_shop_customers_shop_customer"),
    )
