# storefront/services/payment_gateway.py
import json
from typing import Any, Dict, List

import stripe

from storefront.utils.retry import stripe_retry
from storefront.utils.settings import (
    STRIPE_SECRET_KEY,
    STRIPE_WEBHOOK_SECRET,
    STRIPE_WEBHOOK_TOLERANCE,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class SignatureError(Exception):
    """Webhook payload is not signed with our secret (or is not JSON at all)."""


class StripeGateway:
    """
    Thin wrapper over the Stripe SDK: hosted checkout sessions out,
    signed webhook events in.
    """

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        tolerance: int = STRIPE_WEBHOOK_TOLERANCE,
    ):
        self.api_key = api_key or STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or STRIPE_WEBHOOK_SECRET
        self.tolerance = tolerance

    @stripe_retry()
    def create_checkout_session(
        self,
        line_items: List[Dict[str, Any]],
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        idempotency_key: str | None = None,
    ) -> str:
        options = {"api_key": self.api_key}
        if idempotency_key:
            options["idempotency_key"] = idempotency_key

        logger.info(f"Creating Stripe checkout session ({len(line_items)} line items)")
        session = stripe.checkout.Session.create(
            mode="payment",
            payment_method_types=["card"],
            line_items=line_items,
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            **options,
        )
        logger.info(f"Stripe checkout session {session.id} created")
        return session.url

    def verify_event(self, payload: bytes, signature_header: str | None) -> Dict[str, Any]:
        """Check the Stripe-Signature header and return the decoded event."""
        if not signature_header:
            raise SignatureError("Missing signature header")
        if not self.webhook_secret:
            raise SignatureError("Webhook secret is not configured")

        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                signature_header,
                self.webhook_secret,
                self.tolerance,
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            raise SignatureError(str(e)) from e

        try:
            return json.loads(payload)
        except ValueError as e:
            raise SignatureError("Signed payload is not valid JSON") from e
