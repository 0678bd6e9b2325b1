"""
Core permissions utilities for role-based access control.
"""
from enum import Enum
from typing import Dict, List, Set, Optional
from ..auth.models import User, UserRole
from ..exceptions import ForbiddenException

class Permission(str, Enum):
    """
    Permission types for role-based access control.
    """
    # Order permissions
    VIEW_ORDERS = "view_orders"
    VIEW_OWN_ORDERS = "view_own_orders"

    # Refund permissions
    REFUND_ORDERS = "refund_orders"
    REQUEST_REFUNDS = "request_refunds"
    REVIEW_REFUNDS = "review_refunds"

    # Clinic permissions
    VIEW_CLINIC_BALANCES = "view_clinic_balances"

    # Admin permissions
    VIEW_AUDIT_LOGS = "view_audit_logs"
    MANAGE_CRON_JOBS = "manage_cron_jobs"
    IMPERSONATE_USERS = "impersonate_users"


# Role-based permission mapping
ROLE_PERMISSIONS: Dict[UserRole, List[Permission]] = {
    UserRole.SUPER_ADMIN: [
        # Super admin has all permissions
        Permission.VIEW_ORDERS,
        Permission.VIEW_OWN_ORDERS,
        Permission.REFUND_ORDERS,
        Permission.REQUEST_REFUNDS,
        Permission.REVIEW_REFUNDS,
        Permission.VIEW_CLINIC_BALANCES,
        Permission.VIEW_AUDIT_LOGS,
        Permission.MANAGE_CRON_JOBS,
        Permission.IMPERSONATE_USERS,
    ],
    UserRole.ADMIN: [
        Permission.VIEW_ORDERS,
        Permission.REFUND_ORDERS,
        Permission.REQUEST_REFUNDS,
        Permission.REVIEW_REFUNDS,
        Permission.VIEW_CLINIC_BALANCES,
        Permission.VIEW_AUDIT_LOGS,
        Permission.MANAGE_CRON_JOBS,
    ],
    UserRole.BRAND: [
        # Brand staff act on their own clinic only
        Permission.VIEW_ORDERS,
        Permission.REFUND_ORDERS,
        Permission.REQUEST_REFUNDS,
        Permission.VIEW_CLINIC_BALANCES,
    ],
    UserRole.DOCTOR: [
        Permission.VIEW_OWN_ORDERS,
    ],
    UserRole.AFFILIATE: [],
    UserRole.PATIENT: [
        Permission.VIEW_OWN_ORDERS,
    ],
}


def get_permissions_for_roles(roles: List[UserRole]) -> Set[Permission]:
    """
    Get the union of permissions for a set of roles.

    Args:
        roles: User roles

    Returns:
        Set[Permission]: Set of permissions granted by any of the roles
    """
    permissions: Set[Permission] = set()
    for role in roles:
        permissions.update(ROLE_PERMISSIONS.get(role, []))
    return permissions


def has_permission(user: User, permission: Permission) -> bool:
    """
    Check if a user has a specific permission through any of their roles.

    Args:
        user: User to check
        permission: Permission to check

    Returns:
        bool: True if the user has the permission
    """
    return permission in get_permissions_for_roles(user.roles)


def can_access_clinic(user: User, clinic_id: Optional[int]) -> bool:
    """
    Whether a user may act on a clinic's data.

    Admins reach every clinic; brand staff only the clinic they belong to.
    """
    if user.is_admin:
        return True
    return (
        clinic_id is not None
        and user.has_role(UserRole.BRAND)
        and user.clinic_id == clinic_id
    )


def ensure_permission(user: User, permission: Permission) -> None:
    """Raise 403 unless the user holds the permission."""
    if not has_permission(user, permission):
        raise ForbiddenException("Access denied")


def ensure_clinic_access(user: User, clinic_id: Optional[int]) -> None:
    """Raise 403 unless the user may act on the clinic."""
    if not can_access_clinic(user, clinic_id):
        raise ForbiddenException("Access denied: you do not have access to this clinic")
