"""
Refund service layer.

A refund goes back to the patient through the processor with
reverse_transfer, which pulls the brand's share back from its connected
account. Whatever the platform covered beyond that share is then recovered
from the brand by transfer; when the transfer fails the amount is recorded
as pending debt on the brand's balance.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..config import settings
from ..exceptions import BadRequestException, NotFoundException
from ..payments.gateway import PaymentGatewayError, StripeGateway, TransferResult, to_cents
from ..orders.models import Order, OrderStatus
from ..clinics.models import ClinicBalance, ClinicBalanceType, ClinicBalanceStatus
from .models import RefundRequest, RefundRequestStatus

# Set up logging
logger = logging.getLogger(__name__)

NO_ASSOCIATED_TRANSFER = "does not have an associated transfer"
CENT = Decimal("0.01")


@dataclass
class CoverageOutcome:
    """Result of trying to recover the platform's share of a refund."""
    amount: Decimal
    transfer: Optional[TransferResult] = None
    balance: Optional[ClinicBalance] = None

    @property
    def paid(self) -> bool:
        return self.transfer is not None


def get_order(db: Session, order_id: int) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise NotFoundException("Order not found")
    return order


def _payment_intent_for(order: Order) -> str:
    payment = order.payment
    if not payment or not payment.stripe_payment_intent_id:
        raise BadRequestException("No payment found for this order")
    return payment.stripe_payment_intent_id


async def recover_brand_coverage(
    db: Session,
    gateway: StripeGateway,
    order: Order,
    coverage: Decimal,
    metadata: Dict[str, Any],
    description: str,
    refund_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> CoverageOutcome:
    """
    Recover the platform-covered part of a refund from the order's brand.

    Nothing happens when coverage is not positive or the brand has no
    connected account. A failed transfer is recorded as a negative pending
    balance row. The caller commits.

    Args:
        db: Database session
        gateway: Payment processor client
        order: Refunded order
        coverage: Amount the platform covered
        metadata: Transfer metadata
        description: Ledger and transfer description
        refund_id: Processor refund id, when known
        notes: Extra ledger notes
    """
    outcome = CoverageOutcome(amount=coverage)
    clinic = order.clinic
    if coverage <= 0 or not clinic or not clinic.stripe_account_id:
        return outcome

    try:
        transfer = await gateway.create_transfer(
            amount_cents=to_cents(coverage),
            currency="usd",
            destination=settings.stripe_platform_account_id,
            metadata=metadata,
            description=description,
            stripe_account=clinic.stripe_account_id,
        )
    except PaymentGatewayError as e:
        logger.warning(f"⚠️ Brand transfer failed for order {order.order_number}, recording pending debt: {e.message}")
        failure_notes = f"Transfer failed: {e.message}"
        if notes:
            failure_notes = f"{failure_notes}. {notes}"
        outcome.balance = ClinicBalance(
            clinic_id=order.clinic_id,
            order_id=order.id,
            amount=-coverage,
            type=ClinicBalanceType.REFUND_DEBT,
            status=ClinicBalanceStatus.PENDING,
            stripe_refund_id=refund_id,
            description=f"Pending {description[0].lower()}{description[1:]}",
            notes=failure_notes,
        )
    else:
        logger.info(f"✅ Brand paid refund coverage via transfer {transfer.id}")
        outcome.transfer = transfer
        outcome.balance = ClinicBalance(
            clinic_id=order.clinic_id,
            order_id=order.id,
            amount=coverage,
            type=ClinicBalanceType.REFUND_DEBT,
            status=ClinicBalanceStatus.PAID,
            stripe_transfer_id=transfer.id,
            stripe_refund_id=refund_id,
            description=description,
            notes=notes,
            paid_at=datetime.now(timezone.utc),
        )

    db.add(outcome.balance)
    db.flush()
    return outcome


async def _create_refund_with_fallback(
    gateway: StripeGateway,
    order: Order,
    payment_intent: str,
    amount_cents: Optional[int],
):
    try:
        return await gateway.create_refund(payment_intent, amount_cents=amount_cents, reverse_transfer=True)
    except PaymentGatewayError as e:
        if NO_ASSOCIATED_TRANSFER not in e.message:
            raise
        logger.warning(f"⚠️ No associated transfer found, issuing regular refund for order {order.order_number}")
        return await gateway.create_refund(payment_intent, amount_cents=amount_cents, reverse_transfer=False)


async def process_refund(
    db: Session,
    gateway: StripeGateway,
    order: Order,
    amount: Optional[Decimal] = None,
    refund_request: Optional[RefundRequest] = None,
) -> Dict[str, Any]:
    """
    Refund an order and reconcile the brand's ledger.

    Args:
        db: Database session
        gateway: Payment processor client
        order: Order to refund
        amount: Partial amount; the order total when omitted
        refund_request: Approved request driving this refund, if any

    Returns:
        Dict describing the processor refund and the brand coverage outcome

    Raises:
        BadRequestException: If the order has no processor payment
        PaymentGatewayError: If the processor rejects the refund itself
    """
    payment_intent = _payment_intent_for(order)
    refund_amount = Decimal(amount) if amount is not None else Decimal(order.total_amount)

    logger.info(
        f"🔄 Processing refund for order {order.order_number}: "
        f"total={order.total_amount} brand={order.brand_amount} refund={refund_amount}"
    )

    amount_cents = to_cents(refund_amount) if amount is not None else None
    refund = await _create_refund_with_fallback(gateway, order, payment_intent, amount_cents)
    logger.info(f"✅ Refund created: {refund.id}")

    coverage = refund_amount - Decimal(order.brand_amount or 0)
    logger.info(f"💰 Platform coverage: ${coverage:.2f}")

    metadata = {
        "orderId": order.id,
        "orderNumber": order.order_number,
        "refundId": refund.id,
        "type": "refund_coverage",
    }
    if refund_request is not None:
        metadata["refundRequestId"] = refund_request.id

    outcome = await recover_brand_coverage(
        db,
        gateway,
        order,
        coverage,
        metadata=metadata,
        description=f"Refund coverage for order {order.order_number}",
        refund_id=refund.id,
    )

    order.payment.mark_refunded(refund_amount)
    order.update_status(OrderStatus.REFUNDED)
    db.commit()

    return {
        "refund": {"id": refund.id, "amount": refund_amount, "status": refund.status},
        "brand_coverage": {
            "amount": coverage,
            "paid": outcome.paid,
            "transfer_id": outcome.transfer.id if outcome.transfer else None,
            "balance_record_id": outcome.balance.id if outcome.balance else None,
        },
    }


def validate_refund_amount(order: Order, amount: Optional[Decimal]) -> None:
    """Reject refunds of already-refunded orders and out-of-range amounts."""
    if order.status == OrderStatus.REFUNDED:
        raise BadRequestException("This order has already been refunded")
    if amount is None:
        return
    if amount <= 0:
        raise BadRequestException("Refund amount must be greater than zero")
    if amount != amount.quantize(CENT):
        raise BadRequestException("Refund amount cannot have more than two decimal places")
    if amount > Decimal(order.total_amount):
        raise BadRequestException("Refund amount cannot exceed the order total")


# ============================================================================
# REFUND REQUESTS
# ============================================================================

def create_refund_request(
    db: Session,
    order: Order,
    requested_by_id: int,
    reason: Optional[str] = None,
) -> RefundRequest:
    """
    Record a brand's request to refund an order in full.

    The brand absorbs the whole amount since pharmacy and doctor payouts
    have already gone out.
    """
    _payment_intent_for(order)
    if order.clinic_id is None:
        raise BadRequestException("Order is not associated with a clinic")
    if order.status == OrderStatus.REFUNDED:
        raise BadRequestException("This order has already been refunded")

    pending = (
        db.query(RefundRequest)
        .filter(
            RefundRequest.order_id == order.id,
            RefundRequest.status == RefundRequestStatus.PENDING,
        )
        .first()
    )
    if pending:
        raise BadRequestException("A refund request is already pending for this order")

    refund_amount = Decimal(order.total_amount)
    refund_request = RefundRequest(
        order_id=order.id,
        clinic_id=order.clinic_id,
        requested_by_id=requested_by_id,
        amount=refund_amount,
        brand_coverage_amount=refund_amount,
        reason=reason,
        status=RefundRequestStatus.PENDING,
    )
    db.add(refund_request)
    db.commit()
    db.refresh(refund_request)

    logger.info(f"📝 Refund request {refund_request.id} created for order {order.order_number}")
    return refund_request


def list_clinic_refund_requests(
    db: Session,
    clinic_id: Optional[int],
    status: Optional[RefundRequestStatus] = None,
) -> List[RefundRequest]:
    """Newest-first refund requests; clinic_id None means every clinic."""
    query = db.query(RefundRequest)
    if clinic_id is not None:
        query = query.filter(RefundRequest.clinic_id == clinic_id)
    if status is not None:
        query = query.filter(RefundRequest.status == status)
    return query.order_by(RefundRequest.created_at.desc(), RefundRequest.id.desc()).all()


def latest_refund_request_for_order(db: Session, order_id: int) -> Optional[RefundRequest]:
    return (
        db.query(RefundRequest)
        .filter(RefundRequest.order_id == order_id)
        .order_by(RefundRequest.created_at.desc(), RefundRequest.id.desc())
        .first()
    )


def get_pending_refund_request(db: Session, refund_request_id: int) -> RefundRequest:
    """Load a refund request that is still awaiting review."""
    refund_request = db.query(RefundRequest).filter(RefundRequest.id == refund_request_id).first()
    if not refund_request:
        raise NotFoundException("Refund request not found")
    if refund_request.status != RefundRequestStatus.PENDING:
        raise BadRequestException(f"Refund request has already been {refund_request.status.value}")
    return refund_request


async def approve_refund_request(
    db: Session,
    gateway: StripeGateway,
    refund_request: RefundRequest,
    reviewer_id: int,
    review_notes: Optional[str] = None,
) -> Tuple[RefundRequest, Dict[str, Any]]:
    """Run the refund for a pending request and mark it approved."""
    order = refund_request.order
    result = await process_refund(
        db,
        gateway,
        order,
        amount=Decimal(refund_request.amount),
        refund_request=refund_request,
    )
    _mark_reviewed(refund_request, RefundRequestStatus.APPROVED, reviewer_id, review_notes)
    db.commit()
    db.refresh(refund_request)

    logger.info(f"✅ Refund request {refund_request.id} approved by user {reviewer_id}")
    return refund_request, result


def deny_refund_request(
    db: Session,
    refund_request: RefundRequest,
    reviewer_id: int,
    review_notes: Optional[str] = None,
) -> RefundRequest:
    _mark_reviewed(refund_request, RefundRequestStatus.DENIED, reviewer_id, review_notes)
    db.commit()
    db.refresh(refund_request)

    logger.info(f"🚫 Refund request {refund_request.id} denied by user {reviewer_id}")
    return refund_request


def _mark_reviewed(
    refund_request: RefundRequest,
    status: RefundRequestStatus,
    reviewer_id: int,
    review_notes: Optional[str],
) -> None:
    refund_request.status = status
    refund_request.reviewed_by_id = reviewer_id
    refund_request.review_notes = review_notes
    refund_request.reviewed_at = datetime.now(timezone.utc)
