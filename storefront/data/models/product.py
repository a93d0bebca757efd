from sqlalchemy import CheckConstraint, Column, Integer, Numeric, String

from storefront.data.database import Base


class ProductModel(Base):
    """Catalog entry; `stock` is the inventory ledger row for the product."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)

    __table_args__ = (CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),)
