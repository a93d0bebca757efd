# storefront/services/fulfillment_service.py
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from kombu.exceptions import KombuError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.domain.enums import FulfillmentStatus, OrderStatus
from storefront.exceptions import InsufficientStockError
from storefront.repos.cart_repo import CartRepo
from storefront.repos.order_repo import OrderRepo
from storefront.services.cart_service import CartService, DrainedLine
from storefront.services.inventory_service import InventoryLedger
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CENT = Decimal("0.01")

INSUFFICIENT_STOCK = "insufficient_stock"
CART_OWNER_MISMATCH = "cart_owner_mismatch"


@dataclass(frozen=True)
class FulfillmentResult:
    status: FulfillmentStatus
    order_id: str | None = None
    reason: str | None = None

    @classmethod
    def complete(cls, order_id: str) -> "FulfillmentResult":
        return cls(FulfillmentStatus.COMPLETE, order_id=order_id)

    @classmethod
    def already_fulfilled(cls, order_id: str | None = None) -> "FulfillmentResult":
        return cls(FulfillmentStatus.ALREADY_FULFILLED, order_id=order_id)

    @classmethod
    def failed(cls, reason: str) -> "FulfillmentResult":
        return cls(FulfillmentStatus.FAILED, reason=reason)


class FulfillmentService:
    """
    Turns a verified "payment succeeded" event into an order.

    1. idempotency guard on the payment reference
    2. load the cart (missing or empty -> already fulfilled)
    3. one transaction: drain the cart at live prices, create the order
       with its lines, decrement stock for every line
    4. commit, then queue the order notification

    Nothing is written before the single commit in step 4, so any failure
    (including a stock decrement refused halfway through the lines) leaves
    the order table, the stock and the cart exactly as they were and the
    provider can safely redeliver the event.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService,
        notification_service: NotificationService | None = None,
    ):
        self.db = db
        self.orders = OrderRepo(db)
        self.carts = CartRepo(db)
        self.cart_service = CartService(db, lock_service)
        self.ledger = InventoryLedger(db)
        self.lock_service = lock_service
        self.notification_service = notification_service or NotificationService()

    def fulfill(
        self,
        user_id: int,
        cart_id: str,
        payment_reference: str,
        cart_version: int | None = None,
    ) -> FulfillmentResult:
        # same lock as cart mutations: no add/remove can interleave with the drain
        with self.lock_service.cart_lock(cart_id):
            result = self._fulfill_locked(user_id, cart_id, payment_reference, cart_version)

        if result.status is FulfillmentStatus.COMPLETE:
            self._notify(user_id, result.order_id)
        return result

    def _fulfill_locked(
        self,
        user_id: int,
        cart_id: str,
        payment_reference: str,
        cart_version: int | None,
    ) -> FulfillmentResult:
        existing = self.orders.get_by_payment_reference(payment_reference)
        if existing:
            logger.info(f"Payment {payment_reference} already fulfilled by order {existing.id}")
            return FulfillmentResult.already_fulfilled(existing.id)

        cart = self.carts.get_cart(cart_id, for_update=True)
        if cart is None:
            self.db.rollback()
            logger.warning(f"Payment {payment_reference}: cart {cart_id} not found, nothing to fulfill")
            return FulfillmentResult.already_fulfilled()

        if cart.user_id != user_id:
            self.db.rollback()
            logger.error(
                f"Payment {payment_reference}: cart {cart_id} belongs to user {cart.user_id}, "
                f"metadata says {user_id}"
            )
            return FulfillmentResult.failed(CART_OWNER_MISMATCH)

        if cart_version is not None and cart.version != cart_version:
            logger.warning(
                f"Payment {payment_reference}: cart {cart_id} changed since checkout "
                f"(v{cart_version} -> v{cart.version}), fulfilling current contents"
            )

        try:
            lines = self.cart_service.drain(cart)
            if not lines:
                self.db.rollback()
                logger.info(f"Payment {payment_reference}: cart {cart_id} is empty, treating as fulfilled")
                return FulfillmentResult.already_fulfilled()

            order = self.orders.add_order(self._build_order(user_id, payment_reference, lines))

            for line in lines:
                self.ledger.decrement(line.product_id, line.quantity)

            self.db.commit()

        except InsufficientStockError as e:
            self.db.rollback()
            logger.error(
                f"Payment {payment_reference}: product {e.product_id} cannot cover {e.requested} units, "
                f"fulfillment of cart {cart_id} rolled back, needs manual reconciliation"
            )
            return FulfillmentResult.failed(INSUFFICIENT_STOCK)

        except IntegrityError:
            self.db.rollback()
            # concurrent delivery won the race on the unique payment reference
            winner = self.orders.get_by_payment_reference(payment_reference)
            if winner is None:
                raise
            logger.warning(f"Payment {payment_reference}: concurrent delivery already created order {winner.id}")
            return FulfillmentResult.already_fulfilled(winner.id)

        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Order {order.id} created for user {user_id} from cart {cart_id}: "
            f"{len(lines)} lines, total {order.total}, payment {payment_reference}"
        )
        return FulfillmentResult.complete(order.id)

    @staticmethod
    def _build_order(user_id: int, payment_reference: str, lines: List[DrainedLine]) -> OrderModel:
        total = sum((line.unit_price * line.quantity for line in lines), Decimal("0.00"))

        return OrderModel(
            user_id=user_id,
            status=OrderStatus.PROCESSING.value,
            total=total.quantize(CENT, rounding=ROUND_HALF_UP),
            payment_reference=payment_reference,
            items=[
                OrderItemModel(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price=line.unit_price,
                )
                for line in lines
            ],
        )

    def _notify(self, user_id: int, order_id: str) -> None:
        try:
            self.notification_service.send_order_notification(user_id, order_id)
        except KombuError as e:
            # the order is committed; a lost notification is not worth failing the webhook
            logger.warning(f"Could not queue notification for order {order_id}: {e}")
