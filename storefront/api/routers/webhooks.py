# storefront/api/routers/webhooks.py
from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront.api.deps import get_lock_service, get_notification_service, get_payment_gateway
from storefront.data.database import get_db
from storefront.services.fulfillment_service import FulfillmentService
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import StripeGateway
from storefront.services.webhook_service import PaymentEventReceiver

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None),
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
    gateway: StripeGateway = Depends(get_payment_gateway),
    notification_service: NotificationService = Depends(get_notification_service),
):
    """
    Stripe webhook. The signature is computed over the exact bytes received,
    so the body is read raw and never parsed by FastAPI first.
    """
    raw_body = await request.body()

    receiver = PaymentEventReceiver(
        gateway=gateway,
        fulfillment=FulfillmentService(db, lock_service, notification_service),
    )
    # fulfillment is blocking DB/Redis work, keep it off the event loop
    response = await run_in_threadpool(receiver.handle, raw_body, stripe_signature)

    return JSONResponse(status_code=response.status_code, content=response.body)
