# storefront/data/seed.py
from decimal import Decimal

from storefront.data.database import SessionLocal, init_db
from storefront.data.models.product import ProductModel
from storefront.data.models.user import UserModel
from storefront.domain.enums import Role
from storefront.repos.product_repo import ProductRepo
from storefront.repos.user_repo import UserRepo
from storefront.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

PRODUCTS = [
    {"id": 1, "name": "Keyboard", "price": Decimal("199.99"), "stock": 25},
    {"id": 2, "name": "Mouse", "price": Decimal("49.50"), "stock": 100},
    {"id": 3, "name": "Monitor", "price": Decimal("899.00"), "stock": 10},
]

USERS = [
    {"id": 1, "name": "Admin", "role": Role.ADMIN.value},
    {"id": 2, "name": "Customer", "role": Role.CUSTOMER.value},
]


def seed():
    init_db()
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        repo = ProductRepo(db)
        users = UserRepo(db)
        if repo.count():
            logger.info("Catalog already seeded, skipping")
            return

        for data in PRODUCTS:
            repo.add_product(ProductModel(**data))
        for data in USERS:
            if not users.get_user(data["id"]):
                users.add_user(UserModel(**data))
        db.commit()
        logger.info(f"Seeded {len(PRODUCTS)} products and {len(USERS)} users")
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging()
    seed()
