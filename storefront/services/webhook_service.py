# storefront/services/webhook_service.py
from dataclasses import dataclass, field
from typing import Any, Dict

from redis.exceptions import RedisError
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError

from storefront.domain.enums import FulfillmentStatus
from storefront.exceptions import CartBusyError, ConcurrentModificationError
from storefront.services.fulfillment_service import CART_OWNER_MISMATCH, FulfillmentService
from storefront.services.payment_gateway import SignatureError, StripeGateway
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# checkout.session.completed fires for delayed payment methods too (payment_status
# "unpaid"); those are fulfilled on async_payment_succeeded instead
SUCCESS_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")

# worth a retry from the provider: nothing was committed and the cause is ours
TRANSIENT_ERRORS = (
    OperationalError,
    PoolTimeoutError,
    RedisError,
    CartBusyError,
    ConcurrentModificationError,
)


@dataclass(frozen=True)
class WebhookResponse:
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)


class PaymentEventReceiver:
    """
    Entry point for provider webhooks.

    Anything that fails signature verification is dropped with a 400 before
    the payload is looked at. Verified success events are handed to the
    fulfillment service; the provider gets a 200 whenever retrying would not
    change the outcome (including redeliveries of an already fulfilled
    payment) and a 503 only for transient failures.
    """

    def __init__(self, gateway: StripeGateway, fulfillment: FulfillmentService):
        self.gateway = gateway
        self.fulfillment = fulfillment

    def handle(self, raw_body: bytes, signature_header: str | None) -> WebhookResponse:
        try:
            event = self.gateway.verify_event(raw_body, signature_header)
        except SignatureError as e:
            logger.warning(f"Webhook rejected, signature verification failed: {e}")
            return WebhookResponse(400, {"error": "Invalid signature"})

        event_type = event.get("type")
        event_id = event.get("id", "unknown")

        if event_type not in SUCCESS_EVENTS:
            logger.info(f"Webhook {event_id}: ignoring event type {event_type}")
            return WebhookResponse(200, {"received": True})

        session = (event.get("data") or {}).get("object") or {}

        if event_type == "checkout.session.completed" and session.get("payment_status") == "unpaid":
            logger.info(f"Webhook {event_id}: session {session.get('id')} completed but not paid yet")
            return WebhookResponse(200, {"received": True})

        metadata = session.get("metadata") or {}
        user_id_raw = metadata.get("userId")
        cart_id = metadata.get("cartId")

        if not user_id_raw or not cart_id:
            logger.error(f"Webhook {event_id}: session {session.get('id')} has no userId/cartId metadata")
            return WebhookResponse(400, {"error": "Missing metadata"})

        try:
            user_id = int(user_id_raw)
            cart_version = int(metadata["cartVersion"]) if metadata.get("cartVersion") else None
        except (TypeError, ValueError):
            logger.error(f"Webhook {event_id}: malformed metadata {metadata}")
            return WebhookResponse(400, {"error": "Invalid metadata"})

        payment_reference = session.get("payment_intent") or session.get("id")
        if isinstance(payment_reference, dict):
            payment_reference = payment_reference.get("id")
        if not payment_reference:
            logger.error(f"Webhook {event_id}: no payment reference in session")
            return WebhookResponse(400, {"error": "Missing payment reference"})

        logger.info(f"Webhook {event_id}: payment {payment_reference} verified for cart {cart_id}")

        try:
            result = self.fulfillment.fulfill(user_id, cart_id, payment_reference, cart_version)
        except TRANSIENT_ERRORS as e:
            logger.error(f"Webhook {event_id}: transient failure, asking provider to retry: {type(e).__name__}: {e}")
            return WebhookResponse(503, {"error": "Temporarily unavailable"})

        if result.status is FulfillmentStatus.FAILED and result.reason == CART_OWNER_MISMATCH:
            return WebhookResponse(400, {"error": "Cart owner mismatch"})

        body: Dict[str, Any] = {"received": True, "status": result.status.value}
        if result.order_id:
            body["order_id"] = result.order_id
        if result.reason:
            body["reason"] = result.reason
        return WebhookResponse(200, body)
