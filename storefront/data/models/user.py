from sqlalchemy import Column, Integer, String

from storefront.data.database import Base
from storefront.domain.enums import Role


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    role = Column(String(20), nullable=False, default=Role.CUSTOMER.value)
