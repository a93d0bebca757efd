from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Any, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.exceptions import (
    CartItemNotFoundError,
    ConcurrentModificationError,
    InvalidQuantityError,
    ProductUnavailableError,
)
from storefront.repos.cart_repo import CartRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.lock_service import LockService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DrainedLine:
    product_id: int
    quantity: int
    unit_price: Decimal


class CartService:
    """
    Cart aggregate: one reusable cart per user.

    commands (add/update/remove/clear/drain) run under the per-cart lock and
    bump the cart version, queries (get_cart) only read
    """

    def __init__(self, db: Session, lock_service: LockService):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)
        self.lock_service = lock_service

    #query
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        cart = self.find(user_id)
        if cart is None:
            # nothing is persisted until the first add_line
            return {"cart_id": None, "user_id": user_id, "version": 0, "items": [], "total": Decimal("0.00")}

        lines = self.repo.get_lines_with_products(cart.id)

        total = sum((product.price * item.quantity for item, product in lines), Decimal("0.00"))

        return {
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "version": cart.version,
            "items": [
                {
                    "id": item.id,
                    "product_id": item.product_id,
                    "quantity": item.quantity,
                    "product": {
                        "id": product.id,
                        "name": product.name,
                        "price": product.price,
                        "stock": product.stock,
                    },
                }
                for item, product in lines
            ],
            "total": total,
        }

    def find(self, user_id: int) -> CartModel | None:
        return self.repo.get_cart_by_user(user_id)

    #commands
    def get_or_create(self, user_id: int) -> CartModel:
        existing = self.repo.get_cart_by_user(user_id)
        if existing:
            return existing

        try:
            created = self.repo.create_cart(CartModel(user_id=user_id, version=1))
        except IntegrityError:
            # another request created it first (carts.user_id is unique)
            self.repo.rollback()
            return self.repo.get_cart_by_user(user_id)

        logger.info(f"Created cart {created.id} for user {user_id}")
        return created

    def add_line(self, cart: CartModel, product_id: int, quantity: int) -> None:
        if quantity <= 0:
            raise InvalidQuantityError()

        with self.lock_service.cart_lock(cart.id):
            self.repo.refresh(cart)

            product = self.products.get_product(product_id)
            existing_item = self.repo.get_cart_item(cart.id, product_id)
            requested = quantity + (existing_item.quantity if existing_item else 0)

            if not product or product.stock < requested:
                logger.info(f"Product {product_id} not available in quantity {requested} for cart {cart.id}")
                raise ProductUnavailableError()

            if existing_item:
                logger.info(
                    f"Product {product_id} already in cart {cart.id}, "
                    f"quantity {existing_item.quantity} -> {requested}"
                )
                existing_item.quantity = requested
            else:
                logger.info(f"Adding product {product_id} x{quantity} to cart {cart.id}")
                self.repo.add_cart_item(
                    CartItemModel(cart_id=cart.id, product_id=product_id, quantity=quantity)
                )

            self._bump_version(cart)
            self.repo.commit()

    def update_line(self, cart: CartModel, line_id: int, quantity: int) -> None:
        with self.lock_service.cart_lock(cart.id):
            self.repo.refresh(cart)
            item = self._owned_line(cart, line_id)

            if quantity <= 0:
                logger.info(f"Quantity {quantity} for line {line_id}, removing it from cart {cart.id}")
                self.repo.delete_cart_item(item)
            else:
                item.quantity = quantity

            self._bump_version(cart)
            self.repo.commit()

    def remove_line(self, cart: CartModel, line_id: int) -> None:
        with self.lock_service.cart_lock(cart.id):
            self.repo.refresh(cart)
            item = self._owned_line(cart, line_id)

            logger.info(f"Removing line {line_id} (product {item.product_id}) from cart {cart.id}")
            self.repo.delete_cart_item(item)

            self._bump_version(cart)
            self.repo.commit()

    def clear(self, cart: CartModel) -> None:
        with self.lock_service.cart_lock(cart.id):
            self.repo.refresh(cart)
            removed = self.repo.delete_cart_items(cart.id)
            self._bump_version(cart)
            self.repo.commit()

        logger.info(f"Cleared cart {cart.id} ({removed} lines)")

    def drain(self, cart: CartModel) -> List[DrainedLine]:
        """
        Read every line with the product's current price, then delete them.

        Runs inside the caller's transaction and never commits, so a failure
        later in the same unit of work restores the lines on rollback. The
        caller is expected to hold the cart lock.
        """
        lines = [
            DrainedLine(product_id=item.product_id, quantity=item.quantity, unit_price=product.price)
            for item, product in self.repo.get_lines_with_products(cart.id)
        ]
        if not lines:
            return []

        self.repo.delete_cart_items(cart.id)
        self._bump_version(cart)

        logger.info(f"Drained {len(lines)} lines from cart {cart.id}")
        return lines

    def _owned_line(self, cart: CartModel, line_id: int) -> CartItemModel:
        item = self.repo.get_cart_item_by_id(line_id)
        if not item or item.cart_id != cart.id:
            raise CartItemNotFoundError()
        return item

    def _bump_version(self, cart: CartModel) -> None:
        # optimistic locking on version, catches writers that skipped the lock
        old_version = cart.version
        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=old_version,
            new_data={"version": old_version + 1},
        )

        if rowcount == 0:
            self.repo.rollback()
            raise ConcurrentModificationError()

        self.repo.expire(cart, ["version"])
