# storefront/api/deps.py
from functools import lru_cache

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import StripeGateway
from storefront.services.user_service import UserService


@lru_cache
def get_lock_service() -> LockService:
    # one Redis connection pool per process
    return LockService()


def get_payment_gateway() -> StripeGateway:
    return StripeGateway()


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_current_user(
    user_id: int | None = Query(None),
    db: Session = Depends(get_db),
) -> UserModel:
    """Caller identity as supplied by the auth layer in front of this service."""
    return UserService(db).authenticate(user_id)
