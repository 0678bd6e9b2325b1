"""
Imports every model module so that Base.metadata knows all tables
before create_all runs.
"""
from .database import Base
from .auth.models import User, UserRole, UserRoleAssignment
from .clinics.models import Clinic, ClinicBalance, ClinicBalanceStatus, ClinicBalanceType
from .orders.models import Order, OrderStatus, Payment, PaymentStatus
from .refunds.models import RefundRequest, RefundRequestStatus
from .support.models import SupportTicket, TicketMessage, TicketStatus, MessageSender
from .prescriptions.models import Prescription
from .core.audit_models import AuditLog, AuditAction

__all__ = [
    "Base",
    "User", "UserRole", "UserRoleAssignment",
    "Clinic", "ClinicBalance", "ClinicBalanceStatus", "ClinicBalanceType",
    "Order", "OrderStatus", "Payment", "PaymentStatus",
    "RefundRequest", "RefundRequestStatus",
    "SupportTicket", "TicketMessage", "TicketStatus", "MessageSender",
    "Prescription",
    "AuditLog", "AuditAction",
]
