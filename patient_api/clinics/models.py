"""
Clinic Models - Tenant brands and their running balance with the platform.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Numeric, Text, Enum, func
from sqlalchemy.orm import relationship
import enum
from ..database import Base

class ClinicBalanceType(str, enum.Enum):
    REFUND_DEBT = "refund_debt"
    PAYMENT = "payment"
    ADJUSTMENT = "adjustment"

class ClinicBalanceStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"

class Clinic(Base):
    """
    Clinic Model - A brand reselling products through the platform

    Fields:
    - id: Primary key
    - name: Display name of the brand
    - slug: Unique URL slug used by the storefront
    - stripe_account_id: Connected payment account receiving the brand's share
    - is_active: Whether the storefront is live
    """
    __tablename__ = "clinics"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    stripe_account_id = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    balances = relationship("ClinicBalance", back_populates="clinic", order_by="ClinicBalance.id")

    def __repr__(self):
        return f"<Clinic(id={self.id}, slug='{self.slug}')>"

class ClinicBalance(Base):
    """
    ClinicBalance Model - One ledger line between a brand and the platform

    A negative amount means the brand owes the platform money, e.g. a refund
    the platform covered and could not recover by transfer.
    """
    __tablename__ = "clinic_balances"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    type = Column(Enum(ClinicBalanceType), nullable=False, default=ClinicBalanceType.REFUND_DEBT)
    status = Column(Enum(ClinicBalanceStatus), nullable=False, default=ClinicBalanceStatus.PENDING)
    stripe_transfer_id = Column(String, nullable=True)
    stripe_refund_id = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    clinic = relationship("Clinic", back_populates="balances")
    order = relationship("Order")

    def __repr__(self):
        return f"<ClinicBalance(id={self.id}, clinic_id={self.clinic_id}, amount={self.amount}, status='{self.status}')>"
