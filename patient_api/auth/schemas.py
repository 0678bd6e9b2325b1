"""
Auth Schemas - Pydantic models for sign-in and impersonation.
"""
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field
from datetime import date
from .models import UserRole

class SignInRequest(BaseModel):
    """Credentials posted to /auth/signin"""
    email: EmailStr
    password: str = Field(..., min_length=1)

class UserResponse(BaseModel):
    """
    User Response Schema - Profile returned to the portals

    Contains PHI; responses to impersonation sessions are masked.
    """
    id: int
    email: str
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    dob: Optional[date] = None
    address: Optional[str] = None
    clinic_id: Optional[int] = None
    roles: List[UserRole] = []
    is_active: bool = True

    class Config:
        """Configuration for Pydantic model to enable ORM mode"""
        from_attributes = True

class SessionResponse(BaseModel):
    """Token plus the user it was issued for"""
    token: str
    token_type: str = "bearer"
    user: UserResponse

class MeResponse(UserResponse):
    impersonating: bool = False
    impersonated_by: Optional[int] = None

class ImpersonationRequest(BaseModel):
    user_id: Optional[int] = None

class ClinicSummary(BaseModel):
    id: int
    name: str
    slug: str

    class Config:
        from_attributes = True

class ImpersonatedUser(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str

    class Config:
        from_attributes = True

class ImpersonationResponse(BaseModel):
    token: str
    impersonated_user: ImpersonatedUser
    clinic: Optional[ClinicSummary] = None

class TokenResponse(BaseModel):
    token: str
