"""
Authentication routes: sign-in, current profile and admin impersonation.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
import logging

from ..database import get_db
from ..core.pagination import ApiResponse
from ..core.rate_limit import auth_limiter, client_key
from .models import User
from .schemas import (
    SignInRequest, SessionResponse, UserResponse, MeResponse,
    ImpersonationRequest, ImpersonationResponse, ImpersonatedUser, ClinicSummary,
)
from ..core.permissions import Permission
from .dependencies import get_current_user, require_permission
from .service import authenticate_user, start_impersonation, exit_impersonation

# Set up logging
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])

@router.post(
    "/signin",
    response_model=ApiResponse[SessionResponse],
    summary="Sign in with email and password",
    dependencies=[Depends(auth_limiter)],
)
async def signin_route(
    credentials: SignInRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Exchange credentials for a bearer token.

    Failed attempts count against the per-IP auth limit; a successful
    sign-in clears the counter.
    """
    result = await authenticate_user(db, credentials.email, credentials.password)
    auth_limiter.reset(client_key(request))

    return ApiResponse(
        data=SessionResponse(
            token=result["token"],
            user=UserResponse.model_validate(result["user"]),
        ),
        message="Signed in successfully",
    )

@router.get("/me", response_model=ApiResponse[MeResponse], summary="Current user profile")
async def me_route(request: Request, current_user: User = Depends(get_current_user)):
    profile = MeResponse(
        **UserResponse.model_validate(current_user).model_dump(),
        impersonating=request.state.impersonating,
        impersonated_by=request.state.impersonated_by,
    )
    return ApiResponse(data=profile)

@router.post(
    "/impersonate",
    response_model=ApiResponse[ImpersonationResponse],
    summary="Start impersonating a user (super admin only)",
)
async def impersonate_route(
    body: ImpersonationRequest,
    request: Request,
    admin: User = Depends(require_permission(Permission.IMPERSONATE_USERS)),
    db: Session = Depends(get_db),
):
    result = await start_impersonation(db, admin, body.user_id, request=request)
    clinic = result["clinic"]

    return ApiResponse(
        data=ImpersonationResponse(
            token=result["token"],
            impersonated_user=ImpersonatedUser.model_validate(result["impersonated_user"]),
            clinic=ClinicSummary.model_validate(clinic) if clinic else None,
        ),
        message="Impersonation started",
    )

@router.post(
    "/impersonate/exit",
    response_model=ApiResponse[SessionResponse],
    summary="Stop impersonating and return to the admin session",
)
async def exit_impersonation_route(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = await exit_impersonation(
        db, current_user, request.state.impersonated_by, request=request
    )

    return ApiResponse(
        data=SessionResponse(
            token=result["token"],
            user=UserResponse.model_validate(result["user"]),
        ),
        message="Impersonation ended",
    )
