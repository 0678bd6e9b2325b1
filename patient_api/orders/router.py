"""
Order routes.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from ..database import get_db
from ..core.pagination import ApiResponse, PageParams, PageResponse, build_page
from ..auth.models import User
from ..auth.dependencies import get_current_user
from .models import OrderStatus
from .schemas import OrderDetail, OrderSummary
from .service import get_order_for_user, list_orders_for_user

router = APIRouter(prefix="/api/v1/orders", tags=["Orders"])

@router.get("", response_model=ApiResponse[PageResponse[OrderSummary]], summary="List visible orders")
async def list_orders_route(
    clinic_id: Optional[int] = Query(None),
    status: Optional[OrderStatus] = Query(None),
    page_params: PageParams = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items, total = list_orders_for_user(
        db, current_user, page_params.offset, page_params.size, clinic_id=clinic_id, status=status
    )
    return ApiResponse(
        data=build_page([OrderSummary.model_validate(item) for item in items], total, page_params)
    )

@router.get("/{order_id}", response_model=ApiResponse[OrderDetail], summary="Order with patient and payment")
async def get_order_route(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Order details including the patient's contact information.

    Contact fields are masked when the caller is an impersonation session.
    """
    order = get_order_for_user(db, order_id, current_user)
    return ApiResponse(data=OrderDetail.model_validate(order))
