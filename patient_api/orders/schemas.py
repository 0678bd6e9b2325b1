"""
Order Schemas - Pydantic models for order responses.
"""
from pydantic import BaseModel
from typing import Optional
from decimal import Decimal
from datetime import datetime, date
from .models import OrderStatus, PaymentStatus

class OrderPatient(BaseModel):
    """Patient contact details shown with an order (PHI)"""
    id: int
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str] = None
    dob: Optional[date] = None
    address: Optional[str] = None

    class Config:
        from_attributes = True

class PaymentResponse(BaseModel):
    id: int
    amount: Decimal
    status: PaymentStatus
    stripe_payment_intent_id: Optional[str] = None
    refunded_amount: Optional[Decimal] = None
    refunded_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class OrderSummary(BaseModel):
    """Order row as listed"""
    id: int
    order_number: str
    clinic_id: Optional[int] = None
    user_id: Optional[int] = None
    status: OrderStatus
    total_amount: Decimal
    brand_amount: Decimal
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class OrderDetail(OrderSummary):
    patient: Optional[OrderPatient] = None
    payment: Optional[PaymentResponse] = None
