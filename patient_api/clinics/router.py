"""
Clinic routes: the brand's ledger with the platform.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List, Optional
from decimal import Decimal
from datetime import datetime

from ..database import get_db
from ..exceptions import NotFoundException
from ..core.pagination import ApiResponse
from ..core.permissions import Permission, ensure_permission, ensure_clinic_access
from ..auth.models import User
from ..auth.dependencies import get_current_user
from .models import Clinic, ClinicBalance, ClinicBalanceStatus, ClinicBalanceType

router = APIRouter(prefix="/api/v1/clinics", tags=["Clinics"])

class ClinicBalanceResponse(BaseModel):
    id: int
    clinic_id: int
    order_id: Optional[int] = None
    amount: Decimal
    type: ClinicBalanceType
    status: ClinicBalanceStatus
    stripe_transfer_id: Optional[str] = None
    stripe_refund_id: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ClinicBalancesResponse(BaseModel):
    balances: List[ClinicBalanceResponse]
    outstanding_debt: Decimal

def outstanding_debt(balances: List[ClinicBalance]) -> Decimal:
    """What the brand still owes: pending negative rows, as a positive sum."""
    owed = sum(
        (-Decimal(balance.amount) for balance in balances
         if balance.status == ClinicBalanceStatus.PENDING and Decimal(balance.amount) < 0),
        Decimal("0"),
    )
    return owed

@router.get(
    "/{clinic_id}/balances",
    response_model=ApiResponse[ClinicBalancesResponse],
    summary="Clinic ledger rows and outstanding debt",
)
async def clinic_balances_route(
    clinic_id: int,
    status: Optional[ClinicBalanceStatus] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_permission(current_user, Permission.VIEW_CLINIC_BALANCES)
    ensure_clinic_access(current_user, clinic_id)

    clinic = db.query(Clinic).filter(Clinic.id == clinic_id).first()
    if not clinic:
        raise NotFoundException("Clinic not found")

    all_balances = (
        db.query(ClinicBalance)
        .filter(ClinicBalance.clinic_id == clinic_id)
        .order_by(ClinicBalance.created_at.desc(), ClinicBalance.id.desc())
        .all()
    )
    listed = [b for b in all_balances if status is None or b.status == status]

    return ApiResponse(
        data=ClinicBalancesResponse(
            balances=[ClinicBalanceResponse.model_validate(b) for b in listed],
            outstanding_debt=outstanding_debt(all_balances),
        )
    )
