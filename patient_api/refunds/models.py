"""
RefundRequest Model - A brand's request to refund an order, reviewed by an admin.
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, Numeric, Text, Enum, func
from sqlalchemy.orm import relationship
import enum
from ..database import Base

class RefundRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"

class RefundRequest(Base):
    """
    RefundRequest Model

    Fields:
    - order_id / clinic_id: Order to refund and the brand it belongs to
    - requested_by_id: Brand user who asked for the refund
    - amount: Total amount to refund to the patient
    - brand_coverage_amount: Portion the brand absorbs, since pharmacy and
      doctor payouts cannot be reversed
    - reviewed_by_id / review_notes / reviewed_at: Admin decision
    """
    __tablename__ = "refund_requests"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True)
    requested_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Numeric(10, 2), nullable=False)
    brand_coverage_amount = Column(Numeric(10, 2), nullable=False, default=0)
    reason = Column(Text, nullable=True)
    status = Column(Enum(RefundRequestStatus), nullable=False, default=RefundRequestStatus.PENDING)
    reviewed_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    review_notes = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order")
    clinic = relationship("Clinic")
    requested_by = relationship("User", foreign_keys=[requested_by_id])
    reviewed_by = relationship("User", foreign_keys=[reviewed_by_id])

    def __repr__(self):
        return f"<RefundRequest(id={self.id}, order_id={self.order_id}, status='{self.status}')>"
