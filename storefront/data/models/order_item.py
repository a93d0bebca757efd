from sqlalchemy import Column, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    quantity = Column(Integer, nullable=False)
    # unit price as charged; later catalog price changes must not touch it
    price = Column(Numeric(10, 2), nullable=False)

    order = relationship("OrderModel", back_populates="items")
    product = relationship("ProductModel", lazy="selectin")
