"""
Order lookups scoped to what the caller may see.
"""
from sqlalchemy.orm import Session
from typing import List, Optional, Tuple
import logging

from ..exceptions import NotFoundException, ForbiddenException
from ..core.permissions import Permission, has_permission, can_access_clinic, ensure_clinic_access
from ..auth.models import User
from .models import Order, OrderStatus

# Set up logging
logger = logging.getLogger(__name__)

def can_view_order(user: User, order: Order) -> bool:
    """Admins, the order clinic's brand staff, and the ordering patient."""
    if has_permission(user, Permission.VIEW_ORDERS) and can_access_clinic(user, order.clinic_id):
        return True
    return has_permission(user, Permission.VIEW_OWN_ORDERS) and order.user_id == user.id

def get_order_for_user(db: Session, order_id: int, user: User) -> Order:
    """
    Load an order the user may view.

    Raises:
        NotFoundException: If the order does not exist
        ForbiddenException: If the user may not view it
    """
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise NotFoundException("Order not found")
    if not can_view_order(user, order):
        raise ForbiddenException("Access denied: you do not have access to this order")
    return order

def list_orders_for_user(
    db: Session,
    user: User,
    offset: int,
    limit: int,
    clinic_id: Optional[int] = None,
    status: Optional[OrderStatus] = None,
) -> Tuple[List[Order], int]:
    """
    Page of orders visible to the user, newest first.

    Admins see every clinic, brand staff their own clinic, everyone else
    only the orders they placed.
    """
    query = db.query(Order)

    if user.is_admin:
        if clinic_id is not None:
            query = query.filter(Order.clinic_id == clinic_id)
    elif has_permission(user, Permission.VIEW_ORDERS):
        target_clinic_id = clinic_id if clinic_id is not None else user.clinic_id
        ensure_clinic_access(user, target_clinic_id)
        query = query.filter(Order.clinic_id == target_clinic_id)
    elif has_permission(user, Permission.VIEW_OWN_ORDERS):
        query = query.filter(Order.user_id == user.id)
        if clinic_id is not None:
            query = query.filter(Order.clinic_id == clinic_id)
    else:
        raise ForbiddenException("Access denied")

    if status is not None:
        query = query.filter(Order.status == status)

    total = query.count()
    items = query.order_by(Order.created_at.desc(), Order.id.desc()).offset(offset).limit(limit).all()
    return items, total
