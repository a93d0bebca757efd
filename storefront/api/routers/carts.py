#storefront/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, get_lock_service
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import ActionResult, CartOut, ItemIn, ItemUpdate
from storefront.exceptions import CartItemNotFoundError
from storefront.services.cart_service import CartService
from storefront.services.lock_service import LockService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session, lock_service: LockService):
    return CartService(db=db, lock_service=lock_service)


def _existing_cart(svc: CartService, user_id: int):
    # no cart yet means no line can belong to the caller
    cart = svc.find(user_id)
    if cart is None:
        raise CartItemNotFoundError()
    return cart


@router.get("", response_model=CartOut)
def get_cart(
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    svc = get_service(db, lock_service)
    return svc.get_cart(user.id)


@router.post("/items", response_model=ActionResult)
def add_to_cart(
    payload: ItemIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    svc = get_service(db, lock_service)
    cart = svc.get_or_create(user.id)
    svc.add_line(cart, payload.product_id, payload.quantity)
    return {"success": True}


@router.patch("/items/{line_id}", response_model=ActionResult)
def update_cart_item(
    line_id: int,
    payload: ItemUpdate,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    svc = get_service(db, lock_service)
    cart = _existing_cart(svc, user.id)
    svc.update_line(cart, line_id, payload.quantity)
    return {"success": True}


@router.delete("/items/{line_id}", response_model=ActionResult)
def remove_from_cart(
    line_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    svc = get_service(db, lock_service)
    cart = _existing_cart(svc, user.id)
    svc.remove_line(cart, line_id)
    return {"success": True}


@router.delete("", response_model=ActionResult)
def clear_cart(
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    svc = get_service(db, lock_service)
    cart = svc.find(user.id)
    if cart:
        svc.clear(cart)
    return {"success": True}
