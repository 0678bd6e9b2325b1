"""
Authentication service layer for business logic.
"""
import logging
from typing import Dict, Any, Optional
from sqlalchemy.orm import Session
from fastapi import Request

from ..core.security import verify_password, create_user_token, create_impersonation_token
from ..core.audit_service import create_audit_log
from ..core.audit_models import AuditAction
from ..exceptions import BadRequestException, NotFoundException
from .models import User
from .exceptions import InvalidCredentialsException, AccountDisabledException

# Set up logging
logger = logging.getLogger(__name__)

async def authenticate_user(db: Session, email: str, password: str) -> Dict[str, Any]:
    """
    Authenticate a user and issue a session token.

    Args:
        db: Database session
        email: User's email address
        password: Plain text password

    Returns:
        Dict with the token and the authenticated user

    Raises:
        InvalidCredentialsException: If email or password is wrong
        AccountDisabledException: If the account is deactivated
    """
    user = db.query(User).filter(User.email == email.lower()).first()
    if not user or not verify_password(password, user.password_hash):
        logger.warning("Sign-in failed: invalid credentials")
        raise InvalidCredentialsException()

    if not user.is_active:
        logger.warning(f"Sign-in refused for disabled user {user.id}")
        raise AccountDisabledException()

    logger.info(f"✅ User {user.id} signed in")
    return {"token": create_user_token(user), "user": user}

async def start_impersonation(
    db: Session,
    admin: User,
    target_user_id: Optional[int],
    request: Optional[Request] = None,
) -> Dict[str, Any]:
    """
    Issue a short-lived token acting as another user.

    Args:
        db: Database session
        admin: Super admin starting the session
        target_user_id: User to impersonate
        request: Request for the audit trail

    Returns:
        Dict with token, impersonated user and their clinic

    Raises:
        BadRequestException: If no target id was given
        NotFoundException: If the target does not exist
    """
    if not target_user_id:
        raise BadRequestException("User ID is required")

    target = db.query(User).filter(User.id == target_user_id).first()
    if not target:
        raise NotFoundException("User not found")

    token = create_impersonation_token(target, admin.id)

    create_audit_log(
        db,
        action=AuditAction.IMPERSONATE_START,
        user_id=admin.id,
        request=request,
        resource_type="user",
        resource_id=target.id,
        details={"impersonatedUserId": target.id, "clinicId": target.clinic_id},
    )
    logger.info(f"🎭 Admin {admin.id} started impersonating user {target.id}")

    return {"token": token, "impersonated_user": target, "clinic": target.clinic}

async def exit_impersonation(
    db: Session,
    current_user: User,
    impersonated_by: Optional[int],
    request: Optional[Request] = None,
) -> Dict[str, Any]:
    """
    End an impersonation session and return a token for the original admin.

    Args:
        db: Database session
        current_user: The impersonated user the session acts as
        impersonated_by: Admin id carried in the impersonation token
        request: Request for the audit trail

    Raises:
        BadRequestException: If the session is not an impersonation session
        NotFoundException: If the original admin no longer exists
    """
    if not impersonated_by:
        raise BadRequestException("Not currently impersonating")

    admin = db.query(User).filter(User.id == impersonated_by).first()
    if not admin:
        raise NotFoundException("Original admin user not found")

    create_audit_log(
        db,
        action=AuditAction.IMPERSONATE_END,
        user_id=admin.id,
        request=request,
        resource_type="user",
        resource_id=current_user.id,
        details={"impersonatedUserId": current_user.id},
    )
    logger.info(f"🎭 Admin {admin.id} stopped impersonating user {current_user.id}")

    return {"token": create_user_token(admin), "user": admin}
