"""
Single authorization policy.

Every handler asks ``can(user, action, resource)`` instead of checking roles
inline. Roles map to permissions the same way the admin panel does; an
ADMIN holds every permission.
"""
from enum import Enum
from typing import Any, Dict, FrozenSet

from storefront.data.models.user import UserModel
from storefront.domain.enums import Permission, Role


class Action(str, Enum):
    VIEW_ORDER = "view_order"
    LIST_ALL_ORDERS = "list_all_orders"
    UPDATE_ORDER_STATUS = "update_order_status"


ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.CUSTOMER: frozenset({
        Permission.VIEW_DASHBOARD,
    }),
    Role.MODERATOR: frozenset({
        Permission.VIEW_DASHBOARD,
        Permission.MANAGE_REVIEWS,
        Permission.VIEW_ANALYTICS,
    }),
    Role.STORE_MANAGER: frozenset({
        Permission.VIEW_DASHBOARD,
        Permission.MANAGE_PRODUCTS,
        Permission.MANAGE_CATEGORIES,
        Permission.MANAGE_ORDERS,
        Permission.VIEW_ANALYTICS,
        Permission.MANAGE_REVIEWS,
    }),
    Role.ADMIN: frozenset(Permission),
}


def has_permission(role: Role, permission: Permission) -> bool:
    if role is Role.ADMIN:
        return True
    granted = ROLE_PERMISSIONS.get(role, frozenset())
    return permission in granted or Permission.FULL_ACCESS in granted


def can(user: UserModel | None, action: Action, resource: Any = None) -> bool:
    if user is None:
        return False

    try:
        role = Role(user.role)
    except ValueError:
        return False

    manages_orders = has_permission(role, Permission.MANAGE_ORDERS)

    if action is Action.VIEW_ORDER:
        if resource is None:
            return False
        return resource.user_id == user.id or manages_orders

    if action in (Action.LIST_ALL_ORDERS, Action.UPDATE_ORDER_STATUS):
        return manages_orders

    return False
