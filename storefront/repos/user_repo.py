# storefront/repos/user_repo.py
from sqlalchemy.orm import Session

from storefront.data.models.user import UserModel


class UserRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def create_user(self, user: UserModel) -> UserModel:
        self.db.add(user)
        self.db.commit()
        return user

    def add_user(self, user: UserModel) -> UserModel:
        # no commit: used by the seed script inside its own transaction
        self.db.add(user)
        return user
