# storefront/repos/order_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        # no commit: fulfillment owns the transaction
        self.db.add(order)
        return order

    def get_order(self, order_id: str) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_by_payment_reference(self, payment_reference: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.payment_reference == payment_reference)
        ).scalar_one_or_none()

    def list_orders(self, user_id: int | None = None) -> list[OrderModel]:
        stmt = select(OrderModel).order_by(OrderModel.created_at.desc())
        if user_id is not None:
            stmt = stmt.where(OrderModel.user_id == user_id)
        return list(self.db.execute(stmt).scalars())

    def update_order_status(self, order: OrderModel, status: str) -> OrderModel:
        order.status = status
        self.db.commit()
        self.db.refresh(order)
        return order
