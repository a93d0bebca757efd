# storefront/services/checkout_service.py
import hashlib
import json
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict

import stripe
from sqlalchemy.orm import Session

from storefront.exceptions import EmptyCartError, NotAuthenticatedError, PaymentProviderError
from storefront.repos.cart_repo import CartRepo
from storefront.services.payment_gateway import StripeGateway
from storefront.utils.settings import APP_URL, CHECKOUT_CURRENCY
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class CheckoutService:
    """
    Turns the user's cart into a hosted payment session.

    Nothing is stored locally: the (userId, cartId) pair rides along as
    session metadata and comes back on the completion webhook.
    """

    def __init__(self, db: Session, gateway: StripeGateway):
        self.carts = CartRepo(db)
        self.gateway = gateway

    def initiate(self, user_id: int | None) -> Dict[str, str]:
        if user_id is None:
            raise NotAuthenticatedError()

        cart = self.carts.get_cart_by_user(user_id)
        lines = self.carts.get_lines_with_products(cart.id) if cart else []
        if not lines:
            raise EmptyCartError()

        line_items = [
            {
                "price_data": {
                    "currency": CHECKOUT_CURRENCY,
                    "product_data": {"name": product.name},
                    "unit_amount": to_minor_units(product.price),
                },
                "quantity": item.quantity,
            }
            for item, product in lines
        ]

        metadata = {
            "userId": str(user_id),
            "cartId": cart.id,
            # lets fulfillment notice that the cart changed after checkout
            "cartVersion": str(cart.version),
        }

        try:
            url = self.gateway.create_checkout_session(
                line_items=line_items,
                success_url=f"{APP_URL}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{APP_URL}/cart",
                metadata=metadata,
                idempotency_key=self._idempotency_key(cart.id, cart.version, line_items),
            )
        except stripe.StripeError as e:
            logger.error(f"Checkout session for cart {cart.id} failed: {type(e).__name__}: {e}")
            raise PaymentProviderError() from e

        logger.info(f"Checkout started for user {user_id}, cart {cart.id} v{cart.version}")
        return {"url": url}

    @staticmethod
    def _idempotency_key(cart_id: str, version: int, line_items: list) -> str:
        # same cart, same version, same prices -> Stripe hands back the same session
        digest = hashlib.sha256(json.dumps(line_items, sort_keys=True).encode()).hexdigest()[:16]
        return f"checkout:{cart_id}:{version}:{digest}"
