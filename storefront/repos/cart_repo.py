# storefront/repos/cart_repo.py
from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.product import ProductModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart(self, cart_id: str, for_update: bool = False) -> CartModel | None:
        stmt = select(CartModel).where(CartModel.id == cart_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def get_cart_by_user(self, user_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id)
        ).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.commit()
        self.db.refresh(cart)
        return cart

    def get_cart_items(self, cart_id: str) -> list[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .where(CartItemModel.cart_id == cart_id)
                .order_by(CartItemModel.id)
            ).scalars()
        )

    def get_lines_with_products(self, cart_id: str) -> list[tuple[CartItemModel, ProductModel]]:
        rows = self.db.execute(
            select(CartItemModel, ProductModel)
            .join(ProductModel, ProductModel.id == CartItemModel.product_id)
            .where(CartItemModel.cart_id == cart_id)
            .order_by(CartItemModel.id)
            # live price and stock, not whatever the session saw earlier
            .execution_options(populate_existing=True)
        ).all()
        return [(item, product) for item, product in rows]

    def get_cart_item(self, cart_id: str, product_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def get_cart_item_by_id(self, item_id: int) -> CartItemModel | None:
        return self.db.get(CartItemModel, item_id)

    def add_cart_item(self, item: CartItemModel) -> None:
        self.db.add(item)

    def delete_cart_item(self, item: CartItemModel) -> None:
        self.db.delete(item)

    def delete_cart_items(self, cart_id: str) -> int:
        result = self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id == cart_id)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount

    def update_cart_version(self, cart_id: str, old_version: int, new_data: dict) -> int:
        # UPDATE carts SET version = old + 1 WHERE id = :id AND version = :old
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(**new_data)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def refresh(self, obj) -> None:
        self.db.refresh(obj)

    def expire(self, obj, attrs: list[str] | None = None) -> None:
        self.db.expire(obj, attrs)

    def flush(self) -> None:
        self.db.flush()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
