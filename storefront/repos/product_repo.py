# storefront/repos/product_repo.py
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        # populate_existing: stock may have moved since the row was first loaded
        return self.db.get(ProductModel, product_id, populate_existing=True)

    def get_stock(self, product_id: int) -> int | None:
        # column query, never served from the identity map
        return self.db.execute(
            select(ProductModel.stock).where(ProductModel.id == product_id)
        ).scalar_one_or_none()

    def decrement_stock(self, product_id: int, quantity: int) -> int:
        # conditional update: the row only changes if enough stock is left
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
            .values(stock=ProductModel.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def count(self) -> int:
        return self.db.execute(select(func.count()).select_from(ProductModel)).scalar_one()

    def add_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        return product
