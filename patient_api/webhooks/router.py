"""
Payment processor webhook endpoint.
"""
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import logging

from ..config import settings
from ..database import get_db
from ..exceptions import error_response
from ..core.rate_limit import webhook_limiter
from ..core.logging_config import log_exception
from ..payments.gateway import StripeGateway, get_payment_gateway
from .dedup import WebhookEventCache
from .handlers import process_stripe_event
from .security import WebhookSignatureError, construct_event

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["Webhooks"])

# Ids of events already handled by this process
processed_events = WebhookEventCache(max_size=settings.webhook_dedup_size)


@router.post("/stripe", dependencies=[Depends(webhook_limiter)], summary="Payment processor events")
async def stripe_webhook_route(
    request: Request,
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    """
    Receive a processor event.

    The raw body is verified against the Stripe-Signature header before it
    is parsed. Replayed event ids are acknowledged without reprocessing. When
    a handler fails the id is forgotten again and a 500 asks the processor
    to retry.
    """
    if not settings.stripe_webhook_secret:
        logger.error("❌ Webhook secret not configured")
        return error_response(status.HTTP_400_BAD_REQUEST, "Webhook secret not configured")

    payload = await request.body()
    signature = request.headers.get("stripe-signature", "")

    try:
        event = construct_event(
            payload,
            signature,
            settings.stripe_webhook_secret,
            tolerance=settings.webhook_tolerance_seconds,
        )
    except WebhookSignatureError as e:
        if settings.is_development:
            logger.warning(f"🚫 Webhook signature verification failed: {e}")
        else:
            logger.warning("🚫 Webhook signature verification failed")
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request")

    event_id = event["id"]
    if not processed_events.add(event_id):
        logger.info(f"🔁 Duplicate webhook event {event_id} ignored")
        return {"received": True, "duplicate": True}

    logger.info(f"📥 Webhook event {event_id} received: {event['type']}")

    try:
        await process_stripe_event(db, gateway, event)
    except Exception as e:
        db.rollback()
        processed_events.discard(event_id)
        log_exception(logger, f"❌ Webhook event {event_id} processing failed", e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Webhook processing failed"},
        )

    return {"received": True}
