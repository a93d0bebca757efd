# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List
from decimal import Decimal
from datetime import datetime

from storefront.domain.enums import OrderStatus, Role


class ItemIn(BaseModel):
    """Product line to add to the cart."""

    product_id: int = Field(..., gt=0, description="Product ID (must be > 0)")
    quantity: int = Field(1, gt=0, description="Quantity to add (must be > 0)")


class ItemUpdate(BaseModel):
    """New quantity for a cart line; zero or less removes the line."""

    quantity: int


class CartProductOut(BaseModel):
    id: int
    name: str
    price: Decimal
    stock: int


class CartItemOut(BaseModel):
    id: int
    product_id: int
    quantity: int
    product: CartProductOut


class CartOut(BaseModel):
    cart_id: str | None
    user_id: int
    version: int
    items: List[CartItemOut]
    total: Decimal


class ActionResult(BaseModel):
    success: bool = True


class CheckoutSessionOut(BaseModel):
    url: str


class UserCreate(BaseModel):
    id: int = Field(..., gt=0, description="User ID (must be > 0)")
    name: str = Field(..., min_length=1, max_length=100, description="User name")
    role: Role = Role.CUSTOMER


class UserRead(BaseModel):
    id: int
    name: str
    role: Role

    model_config = ConfigDict(from_attributes=True)


class OrderProductOut(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class OrderCustomerOut(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class OrderItemOut(BaseModel):
    product_id: int
    product: OrderProductOut
    quantity: int
    price: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: str
    user_id: int
    user: OrderCustomerOut
    status: OrderStatus
    total: Decimal
    payment_reference: str | None = None
    created_at: datetime
    items: List[OrderItemOut]

    model_config = ConfigDict(from_attributes=True)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
