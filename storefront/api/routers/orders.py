# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import OrderOut, OrderStatusUpdate
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.get("", response_model=List[OrderOut])
def get_orders(
    customer_id: int | None = Query(None),
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Caller's own orders, newest first. Staff with order management rights
    see every order, optionally filtered by customer.
    """
    return get_service(db).get_orders(user, customer_id)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: str,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).get_order(user, order_id)


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).update_order_status(user, order_id, payload.status)
