"""
Payment processor client.

A thin httpx wrapper over the two processor calls the refund flow needs.
Requests are form-encoded with the secret key as bearer token; calls made
on behalf of a brand's connected account carry the Stripe-Account header.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

import httpx

from ..config import settings

# Set up logging
logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """
    Error reported by the payment processor, or a failure to reach it.

    Attributes:
        message: Processor error message
        error_type: Processor error type (e.g. invalid_request_error)
        code: Processor error code, when given
        status_code: HTTP status of the processor response
    """
    def __init__(
        self,
        message: str,
        error_type: Optional[str] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.code = code
        self.status_code = status_code


@dataclass
class RefundResult:
    id: str
    status: str
    amount: int


@dataclass
class TransferResult:
    id: str
    amount: int


def to_cents(amount: Decimal) -> int:
    """Convert a dollar amount to integer cents, rounding half up."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _form_fields(data: Dict[str, Any]) -> Dict[str, str]:
    """Flatten nested dicts to the processor's bracket notation."""
    fields: Dict[str, str] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                if sub_value is not None:
                    fields[f"{key}[{sub_key}]"] = str(sub_value)
        elif isinstance(value, bool):
            fields[key] = "true" if value else "false"
        else:
            fields[key] = str(value)
    return fields


class StripeGateway:
    """
    Client for the processor's REST API.

    Args:
        api_key: Secret key
        base_url: API root
        timeout: Request timeout in seconds
        transport: Optional httpx transport, used by tests
    """
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.stripe.com/v1",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _post(
        self,
        path: str,
        data: Dict[str, Any],
        stripe_account: Optional[str] = None,
    ) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if stripe_account:
            headers["Stripe-Account"] = stripe_account

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as http_client:
                response = await http_client.post(
                    f"{self.base_url}{path}",
                    data=_form_fields(data),
                    headers=headers,
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Payment processor unreachable on {path}: {type(e).__name__}")
            raise PaymentGatewayError(f"Payment processor request failed: {e}") from e

        if response.status_code >= 400:
            try:
                error = response.json().get("error", {})
            except ValueError:
                error = {}
            message = error.get("message") or f"Payment processor returned {response.status_code}"
            logger.warning(f"⚠️ Payment processor error on {path}: {response.status_code} {error.get('type')}")
            raise PaymentGatewayError(
                message,
                error_type=error.get("type"),
                code=error.get("code"),
                status_code=response.status_code,
            )

        return response.json()

    async def create_refund(
        self,
        payment_intent: str,
        amount_cents: Optional[int] = None,
        reverse_transfer: bool = True,
    ) -> RefundResult:
        """
        Refund a payment intent, fully when no amount is given.

        reverse_transfer pulls the brand's share of the charge back from
        their connected account.
        """
        payload = {
            "payment_intent": payment_intent,
            "amount": amount_cents,
            "reverse_transfer": reverse_transfer or None,
        }
        body = await self._post("/refunds", payload)
        return RefundResult(id=body["id"], status=body.get("status", "pending"), amount=body.get("amount", 0))

    async def create_transfer(
        self,
        amount_cents: int,
        currency: str,
        destination: str,
        metadata: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
        stripe_account: Optional[str] = None,
    ) -> TransferResult:
        """Move funds to another account, optionally acting as a connected account."""
        payload = {
            "amount": amount_cents,
            "currency": currency,
            "destination": destination,
            "description": description,
            "metadata": metadata or {},
        }
        body = await self._post("/transfers", payload, stripe_account=stripe_account)
        return TransferResult(id=body["id"], amount=body.get("amount", amount_cents))


def get_payment_gateway() -> StripeGateway:
    """FastAPI dependency returning the configured processor client."""
    return StripeGateway(
        api_key=settings.stripe_secret_key,
        base_url=settings.stripe_api_base,
        timeout=settings.stripe_timeout_seconds,
    )
