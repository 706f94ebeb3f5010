"""
Authorization policy for the floor core.

Pure decision logic: ``authorize(caller, operation, order)`` looks only at its
arguments and returns a ``Decision``. It never touches the database, so the
same rules apply whatever store sits underneath.

Rules:
- Unverified employees may do nothing except read their own profile.
- Employees create orders, advance the status of any order, and edit only
  their own orders while they are not yet delivered. They never settle.
- Admins may do everything, including editing any order up to ``paid``.
- Nobody mutates a paid order.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from teahouse.errors import AuthorizationError, StateError

ROLE_ADMIN = "admin"
ROLE_EMPLOYEE = "employee"
ROLES = (ROLE_ADMIN, ROLE_EMPLOYEE)


@dataclass(frozen=True)
class Caller:
    """Identity and role of whoever invokes a core operation."""

    user_id: int
    role: str
    verified: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class Operation(str, Enum):
    VIEW_OWN_PROFILE = "view_own_profile"
    VIEW_FLOOR = "view_floor"  # orders, tables, active menu
    CREATE_ORDER = "create_order"
    ADVANCE_STATUS = "advance_status"
    EDIT_ORDER = "edit_order"
    SETTLE_PAYMENT = "settle_payment"
    VIEW_REVENUE = "view_revenue"
    MANAGE_EMPLOYEES = "manage_employees"
    MANAGE_MENU = "manage_menu"
    MANAGE_TABLES = "manage_tables"
    MANAGE_EXPENSES = "manage_expenses"


ADMIN_ONLY = frozenset({
    Operation.SETTLE_PAYMENT,
    Operation.VIEW_REVENUE,
    Operation.MANAGE_EMPLOYEES,
    Operation.MANAGE_MENU,
    Operation.MANAGE_TABLES,
    Operation.MANAGE_EXPENSES,
})

# Operations that change an order's items, total or status.
ORDER_MUTATIONS = frozenset({Operation.ADVANCE_STATUS, Operation.EDIT_ORDER})


@dataclass(frozen=True)
class Decision:
    allowed: bool
    code: Optional[str] = None
    reason: Optional[str] = None

    def raise_for_denial(self) -> None:
        if self.allowed:
            return
        if self.code == "OrderFinalized":
            raise StateError(self.code, self.reason)
        raise AuthorizationError(self.code, self.reason)


ALLOW = Decision(True)


def _deny(code: str, reason: str) -> Decision:
    return Decision(False, code, reason)


def authorize(caller: Caller, operation: Operation, order: Optional[Any] = None) -> Decision:
    """
    Decide whether ``caller`` may perform ``operation``.

    Args:
        caller: identity, role and verified flag of the requester
        operation: requested operation
        order: snapshot of the target order for order-scoped operations;
            anything exposing ``status`` and ``created_by_user_id``

    Returns:
        Decision; first failing rule wins
    """
    if operation == Operation.VIEW_OWN_PROFILE:
        return ALLOW

    if caller.role not in ROLES:
        return _deny("AccountNotVerified", f"Unknown role '{caller.role}'")

    if not caller.is_admin and not caller.verified:
        return _deny("AccountNotVerified", "Account is awaiting admin verification")

    if operation in ADMIN_ONLY and not caller.is_admin:
        return _deny("AdminOnly", f"Only admins can {operation.value.replace('_', ' ')}")

    if order is None or operation not in ORDER_MUTATIONS:
        return ALLOW

    if order.status == "paid":
        return _deny("OrderFinalized", "Paid orders cannot be modified")

    if operation == Operation.EDIT_ORDER and not caller.is_admin:
        if order.created_by_user_id != caller.user_id:
            return _deny("NotOwner", "You can only edit your own orders")
        if order.status == "delivered":
            return _deny("TooLateToEdit", "Delivered orders can only be edited by an admin")

    return ALLOW


def ensure_allowed(caller: Caller, operation: Operation, order: Optional[Any] = None) -> None:
    """Raise the matching domain error when the policy denies the operation."""
    authorize(caller, operation, order).raise_for_denial()
