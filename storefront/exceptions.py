"""
Domain exceptions.

Each carries the HTTP status and the user-facing message the API layer
renders as ``{"error": message}``.
"""


class StorefrontError(Exception):
    status_code = 400
    message = "Request could not be processed"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class NotAuthenticatedError(StorefrontError):
    status_code = 401
    message = "Please sign in"


class UnauthorizedError(StorefrontError):
    status_code = 403
    message = "Unauthorized"


class ProductUnavailableError(StorefrontError):
    message = "Product not available"


class InsufficientStockError(ProductUnavailableError):
    def __init__(self, product_id: int, requested: int):
        self.product_id = product_id
        self.requested = requested
        super().__init__()


class InvalidQuantityError(StorefrontError):
    message = "Quantity must be greater than 0"


class EmptyCartError(StorefrontError):
    message = "Cart is empty"


class CartItemNotFoundError(StorefrontError):
    status_code = 404
    message = "Cart item not found"


class OrderNotFoundError(StorefrontError):
    status_code = 404
    message = "Order not found"


class InvalidStatusTransitionError(StorefrontError):
    status_code = 409

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change order status from {current} to {requested}")


class CartBusyError(StorefrontError):
    """Per-cart lock could not be obtained in time. Retryable."""

    status_code = 409
    message = "Cart is being updated, please try again"


class ConcurrentModificationError(StorefrontError):
    """Cart version moved under us. Retryable."""

    status_code = 409
    message = "Cart was modified by another operation, please try again"


class PaymentProviderError(StorefrontError):
    status_code = 502
    message = "Payment provider unavailable, please try again"


class UserNotFoundError(StorefrontError):
    status_code = 404
    message = "User not found"
