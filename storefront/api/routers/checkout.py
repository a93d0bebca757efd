# storefront/api/routers/checkout.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, get_payment_gateway
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import CheckoutSessionOut
from storefront.services.checkout_service import CheckoutService
from storefront.services.payment_gateway import StripeGateway

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("/session", response_model=CheckoutSessionOut)
def create_checkout_session(
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    """
    Starts a hosted payment session for the caller's cart and returns the
    URL to redirect the browser to.
    """
    return CheckoutService(db, gateway).initiate(user.id)
