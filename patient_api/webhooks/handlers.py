"""
Payment processor event handlers.

process_stripe_event dispatches a verified event to the handler for its
type. Handlers commit their own changes and raise on failure so the caller
can ask the processor to retry.
"""
import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy.orm import Session

from ..orders.models import Order, OrderStatus, Payment, PaymentStatus
from ..clinics.models import ClinicBalance, ClinicBalanceType
from ..payments.gateway import StripeGateway
from ..refunds.service import recover_brand_coverage

# Set up logging
logger = logging.getLogger(__name__)


def _payment_for_intent(db: Session, payment_intent_id: Optional[str]) -> Optional[Payment]:
    if not payment_intent_id:
        return None
    return db.query(Payment).filter(Payment.stripe_payment_intent_id == payment_intent_id).first()


async def handle_payment_intent_succeeded(db: Session, gateway: StripeGateway, intent: Dict[str, Any]) -> None:
    payment = _payment_for_intent(db, intent.get("id"))
    if not payment:
        logger.info(f"ℹ️ No payment found for payment intent {intent.get('id')}")
        return

    payment.status = PaymentStatus.SUCCEEDED
    charge_id = intent.get("latest_charge")
    if charge_id:
        payment.stripe_charge_id = charge_id
    if payment.order and payment.order.status == OrderStatus.PENDING:
        payment.order.update_status(OrderStatus.PAID)
    db.commit()
    logger.info(f"✅ Payment {payment.id} succeeded for intent {intent.get('id')}")


async def handle_payment_intent_failed(db: Session, gateway: StripeGateway, intent: Dict[str, Any]) -> None:
    await _close_unpaid(db, intent, PaymentStatus.FAILED)


async def handle_payment_intent_canceled(db: Session, gateway: StripeGateway, intent: Dict[str, Any]) -> None:
    await _close_unpaid(db, intent, PaymentStatus.CANCELLED)


async def _close_unpaid(db: Session, intent: Dict[str, Any], payment_status: PaymentStatus) -> None:
    payment = _payment_for_intent(db, intent.get("id"))
    if not payment:
        logger.info(f"ℹ️ No payment found for payment intent {intent.get('id')}")
        return

    payment.status = payment_status
    if payment.order:
        payment.order.update_status(OrderStatus.CANCELLED)
    db.commit()
    logger.info(f"❌ Payment {payment.id} marked {payment_status.value}")


async def handle_charge_refunded(db: Session, gateway: StripeGateway, charge: Dict[str, Any]) -> None:
    """
    Reconcile a refund issued outside the refund endpoint.

    Refunds made from the processor dashboard or through a chargeback arrive
    only as this event. Orders the refund endpoint already reconciled have
    a refund_debt ledger row and are skipped.
    """
    charge_id = charge.get("id")
    logger.info(f"💸 Charge refunded: {charge_id}")

    payment = db.query(Payment).filter(Payment.stripe_charge_id == charge_id).first()
    if not payment or not payment.order:
        logger.info(f"⚠️ No order found for refunded charge: {charge_id}")
        return

    order: Order = payment.order
    existing_debt = (
        db.query(ClinicBalance)
        .filter(
            ClinicBalance.order_id == order.id,
            ClinicBalance.type == ClinicBalanceType.REFUND_DEBT,
        )
        .first()
    )
    if existing_debt:
        logger.info(f"ℹ️ Refund already processed for order {order.order_number}")
        return

    refund_amount = Decimal(charge.get("amount_refunded") or 0) / 100
    coverage = refund_amount - Decimal(order.brand_amount or 0)
    logger.info(
        f"💰 Refund breakdown (webhook) for order {order.order_number}: "
        f"refund={refund_amount} brand={order.brand_amount} coverage={coverage}"
    )

    payment.mark_refunded(refund_amount)
    order.update_status(OrderStatus.REFUNDED)

    await recover_brand_coverage(
        db,
        gateway,
        order,
        coverage,
        metadata={
            "orderId": order.id,
            "orderNumber": order.order_number,
            "chargeId": charge_id,
            "type": "refund_coverage_webhook",
        },
        description=f"Refund coverage for order {order.order_number} (via webhook)",
        notes=f"Charge ID: {charge_id}",
    )
    db.commit()


async def handle_account_updated(db: Session, gateway: StripeGateway, account: Dict[str, Any]) -> None:
    logger.info(
        f"🏦 Connected account updated: {account.get('id')} "
        f"charges_enabled={account.get('charges_enabled')} payouts_enabled={account.get('payouts_enabled')}"
    )


EventHandler = Callable[[Session, StripeGateway, Dict[str, Any]], Awaitable[None]]

EVENT_HANDLERS: Dict[str, EventHandler] = {
    "payment_intent.succeeded": handle_payment_intent_succeeded,
    "payment_intent.payment_failed": handle_payment_intent_failed,
    "payment_intent.canceled": handle_payment_intent_canceled,
    "charge.refunded": handle_charge_refunded,
    "account.updated": handle_account_updated,
}


async def process_stripe_event(db: Session, gateway: StripeGateway, event: Dict[str, Any]) -> bool:
    """
    Dispatch an event to its handler.

    Returns:
        bool: False when the event type has no handler
    """
    event_type = event.get("type")
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info(f"🔍 Unhandled event type {event_type}")
        return False

    data_object = event.get("data", {}).get("object", {})
    await handler(db, gateway, data_object)
    return True
