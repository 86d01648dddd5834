"""
Role permission table (``procurement_kernel.domain.permissions``).

Responsibility
--------------
Static mapping from each ``Role`` to the purchase order actions it may
perform and its approval ceiling.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Every ``Role`` member has an entry in ``ROLE_PERMISSIONS``.
* Lookups fail closed: an unknown role yields ``NO_ACCESS``.
* No identity is ever special-cased; privileges come from the table only.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from procurement_kernel.logging_config import get_logger

logger = get_logger("domain.permissions")


class Role(str, Enum):
    """Roles supplied by the identity provider."""

    ADMIN = "admin"
    MANAGER = "manager"
    CASHIER = "cashier"
    ACCOUNTANT = "accountant"
    EMPLOYEE = "employee"


class PurchaseOrderAction(str, Enum):
    """Actions that can be authorized on a purchase order."""

    CREATE = "create"
    VIEW = "view"
    EDIT = "edit"
    APPROVE = "approve"
    RECEIVE = "receive"
    CANCEL = "cancel"
    VIEW_HISTORY = "view_history"
    VIEW_AUDIT_TRAIL = "view_audit_trail"


@dataclass(frozen=True)
class RolePermissionSet:
    """What a role may do with purchase orders.

    ``max_approval_amount`` of None means approvals are not capped.
    """

    can_create: bool = False
    can_view: bool = False
    can_edit: bool = False
    can_approve: bool = False
    can_receive: bool = False
    can_cancel: bool = False
    can_view_history: bool = False
    can_view_audit_trail: bool = False
    max_approval_amount: Decimal | None = None

    def allows(self, action: PurchaseOrderAction) -> bool:
        return bool(getattr(self, f"can_{PurchaseOrderAction(action).value}"))

    def granted_actions(self) -> frozenset[PurchaseOrderAction]:
        return frozenset(a for a in PurchaseOrderAction if self.allows(a))


NO_ACCESS = RolePermissionSet()

ROLE_PERMISSIONS: dict[Role, RolePermissionSet] = {
    Role.ADMIN: RolePermissionSet(
        can_create=True,
        can_view=True,
        can_edit=True,
        can_approve=True,
        can_receive=True,
        can_cancel=True,
        can_view_history=True,
        can_view_audit_trail=True,
        max_approval_amount=None,
    ),
    Role.MANAGER: RolePermissionSet(
        can_create=True,
        can_view=True,
        can_edit=True,
        can_approve=True,
        can_receive=True,
        can_cancel=True,
        can_view_history=True,
        can_view_audit_trail=True,
        max_approval_amount=Decimal("100000"),
    ),
    Role.CASHIER: RolePermissionSet(
        can_view=True,
    ),
    Role.ACCOUNTANT: RolePermissionSet(
        can_view=True,
        can_view_history=True,
        can_view_audit_trail=True,
    ),
    Role.EMPLOYEE: NO_ACCESS,
}


def coerce_role(role: Role | str | None) -> Role | None:
    """Return the matching ``Role`` or None when the value is not a known role."""
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None


def permissions_for(role: Role | str | None) -> RolePermissionSet:
    """Look up the permission set for ``role``.  Unknown roles get ``NO_ACCESS``."""
    resolved = coerce_role(role)
    if resolved is None:
        logger.warning("po_permissions_unknown_role", extra={"role": str(role)})
        return NO_ACCESS
    return ROLE_PERMISSIONS[resolved]
