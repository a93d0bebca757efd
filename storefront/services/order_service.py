# storefront/services/order_service.py
from typing import Dict, FrozenSet, List

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.user import UserModel
from storefront.domain.enums import OrderStatus
from storefront.exceptions import InvalidStatusTransitionError, OrderNotFoundError, UnauthorizedError
from storefront.repos.order_repo import OrderRepo
from storefront.services.policy import Action, can
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# CANCELLED reachable from every non-terminal state; DELIVERED and CANCELLED are final
ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class OrderService:
    """
    Read side of orders plus the administrative status change.
    Orders themselves are only ever created by fulfillment.
    """

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)

    def get_orders(self, user: UserModel, customer_id: int | None = None) -> List[OrderModel]:
        if can(user, Action.LIST_ALL_ORDERS):
            return self.repo.list_orders(customer_id)

        if customer_id is not None and customer_id != user.id:
            raise UnauthorizedError()

        return self.repo.list_orders(user.id)

    def get_order(self, user: UserModel, order_id: str) -> OrderModel:
        order = self.repo.get_order(order_id)

        # someone else's order looks exactly like a missing one
        if not order or not can(user, Action.VIEW_ORDER, order):
            raise OrderNotFoundError()

        return order

    def update_order_status(self, user: UserModel, order_id: str, status: OrderStatus) -> OrderModel:
        if not can(user, Action.UPDATE_ORDER_STATUS):
            logger.warning(f"User {user.id} ({user.role}) tried to change status of order {order_id}")
            raise UnauthorizedError()

        order = self.repo.get_order(order_id)
        if not order:
            raise OrderNotFoundError()

        status = OrderStatus(status)
        current = OrderStatus(order.status)
        if current is status:
            return order

        if not can_transition(current, status):
            raise InvalidStatusTransitionError(current.value, status.value)

        updated = self.repo.update_order_status(order, status.value)
        logger.info(f"Order {order_id} status {current.value} -> {status.value} by user {user.id}")
        return updated
