"""
FastAPI dependencies for authentication and authorization.

get_current_user also records whether the bearer token belongs to an
impersonation session on request.state, where the PHI masking middleware
picks it up once the handler has produced its response.
"""
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from typing import Any, Dict
from ..database import get_db
from ..core.security import verify_token
from ..core.permissions import Permission, ensure_permission
from .models import User
from .exceptions import InvalidTokenException, AccountDisabledException

# OAuth2 scheme for JWT token authentication
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/signin")

def get_token_payload(token: str = Depends(oauth2_scheme)) -> Dict[str, Any]:
    """
    Decode the bearer token.

    Raises:
        InvalidTokenException: If the token is invalid or expired
    """
    payload = verify_token(token)
    if not payload or not payload.get("id"):
        raise InvalidTokenException()
    return payload

def get_current_user(
    request: Request,
    payload: Dict[str, Any] = Depends(get_token_payload),
    db: Session = Depends(get_db),
) -> User:
    """
    Get current authenticated user from JWT token with database verification.

    Args:
        request: Current request, used to flag impersonation sessions
        payload: Decoded token
        db: Database session

    Returns:
        User: Current authenticated user

    Raises:
        InvalidTokenException: If the user no longer exists
        AccountDisabledException: If the account is deactivated
    """
    impersonating = bool(payload.get("impersonating"))
    request.state.impersonating = impersonating
    request.state.impersonated_by = payload.get("impersonatedBy") if impersonating else None

    user = db.query(User).filter(User.id == payload["id"]).first()
    if not user:
        raise InvalidTokenException("User not found")
    if not user.is_active:
        raise AccountDisabledException()

    return user

def require_permission(permission: Permission):
    """
    Dependency factory to require a permission granted by any of the user's roles.

    Args:
        permission: Permission required for access

    Returns:
        Function that checks the current user holds the permission
    """
    def permission_checker(current_user: User = Depends(get_current_user)) -> User:
        ensure_permission(current_user, permission)
        return current_user
    return permission_checker
