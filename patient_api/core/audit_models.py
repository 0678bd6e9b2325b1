from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from ..database import Base

class AuditAction(str, enum.Enum):
    """Actions recorded in the audit trail"""
    IMPERSONATE_START = "IMPERSONATE_START"
    IMPERSONATE_END = "IMPERSONATE_END"
    REFUND_CREATED = "REFUND_CREATED"
    REFUND_REQUEST_CREATED = "REFUND_REQUEST_CREATED"
    REFUND_REQUEST_APPROVED = "REFUND_REQUEST_APPROVED"
    REFUND_REQUEST_DENIED = "REFUND_REQUEST_DENIED"
    PRESCRIPTION_EXPIRED = "PRESCRIPTION_EXPIRED"
    TICKET_AUTO_CLOSED = "TICKET_AUTO_CLOSED"

class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String, nullable=False, index=True)
    resource_type = Column(String, nullable=True)
    resource_id = Column(String, nullable=True)
    details = Column(JSON, nullable=True)  # Additional context, never PHI
    ip_address = Column(String, nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user = relationship("User")

    def __repr__(self):
        return f"<AuditLog(id={self.id}, user_id={self.user_id}, action='{self.action}', timestamp='{self.timestamp}')>"
