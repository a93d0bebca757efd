# storefront/services/user_service.py
from sqlalchemy.orm import Session

from storefront.data.models.user import UserModel
from storefront.domain.schemas import UserCreate, UserRead
from storefront.exceptions import NotAuthenticatedError, UserNotFoundError
from storefront.repos.user_repo import UserRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class UserService:
    """
    Local mirror of the accounts known to the auth layer. Users are
    registered with a role, which the order policy reads.
    """

    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        # registering the same id twice is a no-op, the first role wins
        existing = self.repo.get_user(payload.id)
        if existing:
            return UserRead.model_validate(existing)

        created = self.repo.create_user(
            UserModel(id=payload.id, name=payload.name, role=payload.role.value)
        )
        logger.info(f"Registered user {created.id} with role {created.role}")
        return UserRead.model_validate(created)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise UserNotFoundError()
        return UserRead.model_validate(user)

    def authenticate(self, user_id: int | None) -> UserModel:
        user = self.repo.get_user(user_id) if user_id is not None else None
        if not user:
            raise NotAuthenticatedError()
        return user
