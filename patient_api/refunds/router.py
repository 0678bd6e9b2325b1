"""
Refund routes: direct refunds and the brand refund-request workflow.
"""
from fastapi import APIRouter, Depends, Request, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ..database import get_db
from ..exceptions import BadRequestException, ForbiddenException, error_response
from ..core.pagination import ApiResponse
from ..core.rate_limit import write_limiter
from ..core.permissions import Permission, ensure_permission, ensure_clinic_access
from ..core.audit_service import create_audit_log
from ..core.audit_models import AuditAction
from ..core.logging_config import log_exception
from ..config import settings
from ..auth.models import User
from ..auth.dependencies import get_current_user, require_permission
from ..payments.gateway import PaymentGatewayError, StripeGateway, get_payment_gateway
from .models import RefundRequestStatus
from .schemas import (
    RefundCreate, RefundOutcome, RefundRequestCreate, RefundRequestReview,
    RefundRequestResponse, RefundRequestApproval,
)
from . import service

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Refunds"])


def _processor_failure(message: str, exc: PaymentGatewayError):
    """500 envelope for a processor failure; the processor text only in development."""
    log_exception(logger, f"❌ {message}", exc)
    if settings.is_development:
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message, error=exc.message)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message)


@router.post(
    "/refunds",
    response_model=ApiResponse[RefundOutcome],
    dependencies=[Depends(write_limiter)],
    summary="Refund an order and reconcile the brand balance",
)
async def create_refund_route(
    body: RefundCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    """
    Refund an order through the payment processor.

    Admins may refund any order; brand users only orders of their own clinic.
    """
    if not body.order_id:
        raise BadRequestException("Order ID is required")

    order = service.get_order(db, body.order_id)
    ensure_permission(current_user, Permission.REFUND_ORDERS)
    ensure_clinic_access(current_user, order.clinic_id)
    service.validate_refund_amount(order, body.amount)

    try:
        result = await service.process_refund(db, gateway, order, amount=body.amount)
    except PaymentGatewayError as e:
        db.rollback()
        return _processor_failure("Failed to process refund", e)

    create_audit_log(
        db,
        action=AuditAction.REFUND_CREATED,
        user_id=current_user.id,
        request=request,
        resource_type="order",
        resource_id=order.id,
        details={
            "refundId": result["refund"]["id"],
            "amount": str(result["refund"]["amount"]),
            "reason": body.reason,
        },
    )

    return ApiResponse(data=RefundOutcome(**result), message="Refund processed successfully")


@router.post(
    "/refund-requests",
    response_model=ApiResponse[RefundRequestResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(write_limiter)],
    summary="Ask an admin to refund an order",
)
async def create_refund_request_route(
    body: RefundRequestCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not body.order_id:
        raise BadRequestException("Order ID is required")

    order = service.get_order(db, body.order_id)
    ensure_permission(current_user, Permission.REQUEST_REFUNDS)
    ensure_clinic_access(current_user, order.clinic_id)

    refund_request = service.create_refund_request(db, order, current_user.id, reason=body.reason)
    create_audit_log(
        db,
        action=AuditAction.REFUND_REQUEST_CREATED,
        user_id=current_user.id,
        request=request,
        resource_type="refund_request",
        resource_id=refund_request.id,
        details={"orderId": order.id},
    )

    return ApiResponse(
        data=RefundRequestResponse.model_validate(refund_request),
        message="Refund request submitted successfully. It will be reviewed before processing.",
    )


@router.get(
    "/refund-requests/clinic/{clinic_id}",
    response_model=ApiResponse[List[RefundRequestResponse]],
    summary="List a clinic's refund requests",
)
async def list_clinic_refund_requests_route(
    clinic_id: str,
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    List refund requests for a clinic, newest first.

    clinic_id "all" lists every clinic and is reserved for admins.
    """
    if clinic_id == "all":
        if not current_user.is_admin:
            raise ForbiddenException("Access denied: only admins can list all refund requests")
        target_clinic_id = None
    else:
        try:
            target_clinic_id = int(clinic_id)
        except ValueError:
            raise BadRequestException("Invalid clinic ID")
        ensure_clinic_access(current_user, target_clinic_id)

    request_status = None
    if status_filter and status_filter != "all":
        try:
            request_status = RefundRequestStatus(status_filter)
        except ValueError:
            raise BadRequestException(f"Invalid status: {status_filter}")

    refund_requests = service.list_clinic_refund_requests(db, target_clinic_id, request_status)
    return ApiResponse(data=[RefundRequestResponse.model_validate(item) for item in refund_requests])


@router.get(
    "/refund-requests/order/{order_id}",
    response_model=ApiResponse[Optional[RefundRequestResponse]],
    summary="Latest refund request for an order",
)
async def order_refund_request_route(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order = service.get_order(db, order_id)
    ensure_clinic_access(current_user, order.clinic_id)

    refund_request = service.latest_refund_request_for_order(db, order.id)
    return ApiResponse(
        data=RefundRequestResponse.model_validate(refund_request) if refund_request else None
    )


@router.post(
    "/refund-requests/{refund_request_id}/approve",
    response_model=ApiResponse[RefundRequestApproval],
    dependencies=[Depends(write_limiter)],
    summary="Approve a refund request and process the refund",
)
async def approve_refund_request_route(
    refund_request_id: int,
    request: Request,
    body: Optional[RefundRequestReview] = None,
    admin: User = Depends(require_permission(Permission.REVIEW_REFUNDS)),
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    refund_request = service.get_pending_refund_request(db, refund_request_id)
    review_notes = body.review_notes if body else None

    try:
        refund_request, result = await service.approve_refund_request(
            db, gateway, refund_request, admin.id, review_notes
        )
    except PaymentGatewayError as e:
        db.rollback()
        return _processor_failure("Failed to approve refund request", e)

    create_audit_log(
        db,
        action=AuditAction.REFUND_REQUEST_APPROVED,
        user_id=admin.id,
        request=request,
        resource_type="refund_request",
        resource_id=refund_request.id,
        details={"orderId": refund_request.order_id, "refundId": result["refund"]["id"]},
    )

    return ApiResponse(
        data=RefundRequestApproval(
            refund_request=RefundRequestResponse.model_validate(refund_request),
            refund=RefundOutcome(**result),
        ),
        message="Refund request approved and refund processed successfully",
    )


@router.post(
    "/refund-requests/{refund_request_id}/deny",
    response_model=ApiResponse[RefundRequestResponse],
    dependencies=[Depends(write_limiter)],
    summary="Deny a refund request",
)
async def deny_refund_request_route(
    refund_request_id: int,
    request: Request,
    body: Optional[RefundRequestReview] = None,
    admin: User = Depends(require_permission(Permission.REVIEW_REFUNDS)),
    db: Session = Depends(get_db),
):
    refund_request = service.get_pending_refund_request(db, refund_request_id)
    refund_request = service.deny_refund_request(
        db, refund_request, admin.id, body.review_notes if body else None
    )

    create_audit_log(
        db,
        action=AuditAction.REFUND_REQUEST_DENIED,
        user_id=admin.id,
        request=request,
        resource_type="refund_request",
        resource_id=refund_request.id,
        details={"orderId": refund_request.order_id},
    )

    return ApiResponse(
        data=RefundRequestResponse.model_validate(refund_request),
        message="Refund request denied",
    )
