"""
Core security utilities for authentication and password handling.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import jwt, JWTError
from passlib.context import CryptContext
import logging

from ..config import settings
from ..auth.models import User

# Set up logging
logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        str: Hashed password
    """
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against a hash.

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password to compare against

    Returns:
        bool: True if password matches hash
    """
    return pwd_context.verify(plain_password, hashed_password)

def build_token_claims(user: User) -> Dict[str, Any]:
    """
    Claims identifying a user inside an access token.

    Only identifiers and roles go in the token, never PHI.
    """
    return {
        "id": user.id,
        "email": user.email,
        "roles": [role.value for role in user.roles],
        "clinicId": user.clinic_id,
    }

def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Data to encode in the token
        expires_delta: Token expiration time

    Returns:
        str: Encoded JWT token
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.access_token_expire_minutes
        )

    to_encode.update({"exp": expire})

    encoded_jwt = jwt.encode(
        to_encode, settings.secret_key, algorithm=settings.algorithm
    )

    return encoded_jwt

def create_user_token(user: User) -> str:
    """Standard session token for a user."""
    return create_access_token(build_token_claims(user))

def create_impersonation_token(target: User, admin_id: int) -> str:
    """
    Create a token that lets an admin act as another user.

    The token carries the target's identity plus the impersonation flag,
    which switches on PHI masking for every response it authorises.

    Args:
        target: User being impersonated
        admin_id: ID of the admin starting the session

    Returns:
        str: Encoded JWT token
    """
    claims = build_token_claims(target)
    claims.update({"impersonating": True, "impersonatedBy": admin_id})
    return create_access_token(
        claims,
        expires_delta=timedelta(minutes=settings.impersonation_token_expire_minutes),
    )

def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token string

    Returns:
        Dict containing token payload if valid, None if invalid
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        return payload
    except JWTError:
        return None
