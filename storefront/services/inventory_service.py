from sqlalchemy.orm import Session

from storefront.exceptions import InsufficientStockError, InvalidQuantityError
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class InventoryLedger:
    """
    Per-product available stock.

    decrement() is a single conditional UPDATE checked through the affected
    row count, so two concurrent decrements on the same product can never
    drive stock below zero or silently lose one of the writes. It does not
    commit: it runs inside the caller's unit of work and is rolled back with
    it.
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def get_stock(self, product_id: int) -> int | None:
        return self.repo.get_stock(product_id)

    def decrement(self, product_id: int, quantity: int) -> None:
        if quantity <= 0:
            raise InvalidQuantityError()

        rowcount = self.repo.decrement_stock(product_id, quantity)
        if rowcount == 0:
            logger.warning(f"Stock decrement refused for product {product_id} (requested {quantity})")
            raise InsufficientStockError(product_id, quantity)

        logger.info(f"Stock of product {product_id} decremented by {quantity}")
