# storefront/domain/enums.py
from enum import Enum


class Role(str, Enum):
    CUSTOMER = "CUSTOMER"
    MODERATOR = "MODERATOR"
    STORE_MANAGER = "STORE_MANAGER"
    ADMIN = "ADMIN"


class Permission(str, Enum):
    VIEW_DASHBOARD = "view_dashboard"
    MANAGE_PRODUCTS = "manage_products"
    MANAGE_CATEGORIES = "manage_categories"
    MANAGE_ORDERS = "manage_orders"
    MANAGE_USERS = "manage_users"
    VIEW_ANALYTICS = "view_analytics"
    MANAGE_REVIEWS = "manage_reviews"
    MANAGE_SETTINGS = "manage_settings"
    FULL_ACCESS = "full_access"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class FulfillmentStatus(str, Enum):
    COMPLETE = "COMPLETE"
    ALREADY_FULFILLED = "ALREADY_FULFILLED"
    FAILED = "FAILED"
