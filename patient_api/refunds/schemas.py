"""
Refund Schemas - Pydantic models for refunds and refund requests.
"""
from pydantic import BaseModel
from typing import Optional
from decimal import Decimal
from datetime import datetime
from .models import RefundRequestStatus

class RefundCreate(BaseModel):
    """
    Refund Create Schema

    order_id is optional here so a missing id is reported as a 400 with
    the usual message instead of a validation error.
    """
    order_id: Optional[int] = None
    amount: Optional[Decimal] = None
    reason: Optional[str] = None

class RefundDetails(BaseModel):
    id: str
    amount: Decimal
    status: str

class BrandCoverage(BaseModel):
    amount: Decimal
    paid: bool
    transfer_id: Optional[str] = None
    balance_record_id: Optional[int] = None

class RefundOutcome(BaseModel):
    refund: RefundDetails
    brand_coverage: BrandCoverage

class RefundRequestCreate(BaseModel):
    order_id: Optional[int] = None
    reason: Optional[str] = None

class RefundRequestReview(BaseModel):
    review_notes: Optional[str] = None

class RefundRequestResponse(BaseModel):
    """Refund Request Response Schema"""
    id: int
    order_id: int
    clinic_id: int
    requested_by_id: Optional[int] = None
    amount: Decimal
    brand_coverage_amount: Decimal
    reason: Optional[str] = None
    status: RefundRequestStatus
    reviewed_by_id: Optional[int] = None
    review_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RefundRequestApproval(BaseModel):
    refund_request: RefundRequestResponse
    refund: RefundOutcome
