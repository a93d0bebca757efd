"""
Shared fixtures.

Settings are read from the environment at import time, so the test
environment is set up here before anything from ``storefront`` is imported.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_storefront"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_storefronttestsecret"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["CART_LOCK_WAIT_SECONDS"] = "0.2"

import hashlib
import hmac
import json
import time
from decimal import Decimal

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.data.database import init_db
from storefront.data.models.product import ProductModel
from storefront.data.models.user import UserModel
from storefront.domain.enums import Role
from storefront.services.cart_service import CartService
from storefront.services.fulfillment_service import FulfillmentService
from storefront.services.lock_service import LockService
from storefront.services.payment_gateway import StripeGateway

WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]


class RecordingNotifier:
    """Stands in for the Celery-backed NotificationService."""

    def __init__(self):
        self.sent = []

    def send_order_notification(self, user_id, order_id):
        self.sent.append((user_id, order_id))


class FakeGateway(StripeGateway):
    """Records checkout requests instead of calling Stripe."""

    def __init__(self, error: Exception | None = None):
        super().__init__(api_key="sk_test_storefront", webhook_secret=WEBHOOK_SECRET)
        self.error = error
        self.calls = []

    def create_checkout_session(self, line_items, success_url, cancel_url, metadata, idempotency_key=None):
        self.calls.append(
            {
                "line_items": line_items,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": metadata,
                "idempotency_key": idempotency_key,
            }
        )
        if self.error:
            raise self.error
        return "https://checkout.stripe.test/c/pay/cs_test_123"


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Stripe-Signature header value using Stripe's t=...,v1=... scheme."""
    ts = timestamp if timestamp is not None else int(time.time())
    signed = f"{ts}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def checkout_completed_event(
    user_id,
    cart_id,
    payment_intent="pi_test_1",
    event_type="checkout.session.completed",
    payment_status="paid",
    cart_version=None,
) -> bytes:
    metadata = {}
    if user_id is not None:
        metadata["userId"] = str(user_id)
    if cart_id is not None:
        metadata["cartId"] = cart_id
    if cart_version is not None:
        metadata["cartVersion"] = str(cart_version)

    event = {
        "id": "evt_test_1",
        "type": event_type,
        "data": {
            "object": {
                "id": "cs_test_1",
                "object": "checkout.session",
                "payment_intent": payment_intent,
                "payment_status": payment_status,
                "metadata": metadata,
            }
        },
    }
    return json.dumps(event).encode()


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    def _make(user_id: int, role: Role = Role.CUSTOMER, name: str | None = None) -> UserModel:
        user = UserModel(id=user_id, name=name or f"user-{user_id}", role=role.value)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_product(db):
    def _make(product_id: int, price: str, stock: int, name: str | None = None) -> ProductModel:
        product = ProductModel(id=product_id, name=name or f"product-{product_id}", price=Decimal(price), stock=stock)
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def customer(make_user):
    return make_user(1)


@pytest.fixture
def products(make_product):
    """Product A: $10, 5 in stock. Product B: $25, 3 in stock."""
    return make_product(1, "10.00", 5, name="Product A"), make_product(2, "25.00", 3, name="Product B")


@pytest.fixture
def set_stock(db):
    def _set(product: ProductModel, stock: int) -> None:
        product.stock = stock
        db.commit()

    return _set


# ============================================================================
# Services
# ============================================================================

@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def lock_service(redis_client):
    return LockService(client=redis_client)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def cart_service(db, lock_service):
    return CartService(db, lock_service)


@pytest.fixture
def fulfillment(db, lock_service, notifier):
    return FulfillmentService(db, lock_service, notifier)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def filled_cart(cart_service, customer, products):
    """Customer cart holding 2 x A and 1 x B."""
    product_a, product_b = products
    cart = cart_service.get_or_create(customer.id)
    cart_service.add_line(cart, product_a.id, 2)
    cart_service.add_line(cart, product_b.id, 1)
    return cart
