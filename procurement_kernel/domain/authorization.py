"""
Authorization engine (``procurement_kernel.domain.authorization``).

Responsibility
--------------
Decide whether a role may perform an action on a purchase order.  The
verdict is the conjunction of two independent axes:

* the *role* axis -- ``ROLE_PERMISSIONS`` booleans plus the approval
  ceiling, and
* the *status* axis -- ``STATUS_ALLOWED_ACTIONS`` for the order's
  current status.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.  Never raises for a
denial; every call returns an ``AuthorizationDecision``.

Invariants enforced
-------------------
* Every ``POStatus`` has an entry in ``STATUS_ALLOWED_ACTIONS``.
* Terminal and fully received orders only allow view, view_history and
  view_audit_trail, whatever the role.
* The approval ceiling is inclusive: ``amount == max_approval_amount``
  is allowed.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from procurement_kernel.domain.permissions import (
    PurchaseOrderAction,
    Role,
    coerce_role,
    permissions_for,
)
from procurement_kernel.domain.purchase_order import POStatus, PurchaseOrder

_A = PurchaseOrderAction

STATUS_ALLOWED_ACTIONS: dict[POStatus, frozenset[PurchaseOrderAction]] = {
    POStatus.DRAFT: frozenset({_A.VIEW, _A.EDIT, _A.APPROVE, _A.CANCEL}),
    POStatus.PENDING_APPROVAL: frozenset({_A.VIEW, _A.EDIT, _A.APPROVE, _A.CANCEL}),
    POStatus.APPROVED: frozenset({_A.VIEW, _A.RECEIVE, _A.CANCEL, _A.VIEW_HISTORY}),
    POStatus.SENT_TO_SUPPLIER: frozenset({_A.VIEW, _A.RECEIVE, _A.CANCEL, _A.VIEW_HISTORY}),
    POStatus.PARTIALLY_RECEIVED: frozenset({_A.VIEW, _A.RECEIVE, _A.VIEW_HISTORY}),
    POStatus.FULLY_RECEIVED: frozenset({_A.VIEW, _A.VIEW_HISTORY, _A.VIEW_AUDIT_TRAIL}),
    POStatus.CANCELLED: frozenset({_A.VIEW, _A.VIEW_HISTORY, _A.VIEW_AUDIT_TRAIL}),
    POStatus.CLOSED: frozenset({_A.VIEW, _A.VIEW_HISTORY, _A.VIEW_AUDIT_TRAIL}),
}

# Denial codes
CODE_UNKNOWN_ACTION = "UNKNOWN_ACTION"
CODE_INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
CODE_EXCEEDS_APPROVAL_LIMIT = "EXCEEDS_APPROVAL_LIMIT"
CODE_ACTION_NOT_PERMITTED_IN_STATUS = "ACTION_NOT_PERMITTED_IN_STATUS"


@dataclass(frozen=True)
class AuthorizationDecision:
    """Allow/deny verdict.  ``reason`` and ``code`` are empty when allowed."""

    allowed: bool
    reason: str = ""
    code: str = ""


_ALLOW = AuthorizationDecision(allowed=True)


def _role_label(role: Role | str | None) -> str:
    resolved = coerce_role(role)
    return resolved.value if resolved is not None else str(role)


def _format_amount(amount: Decimal) -> str:
    return f"{amount:,}"


def allowed_actions_for_status(status: POStatus | str) -> frozenset[PurchaseOrderAction]:
    """Actions the status axis permits; empty for an unknown status."""
    resolved = POStatus.coerce(status)
    if resolved is None:
        return frozenset()
    return STATUS_ALLOWED_ACTIONS[resolved]


def can_perform_action_on_status(
    action: PurchaseOrderAction | str,
    status: POStatus | str,
) -> bool:
    try:
        resolved = PurchaseOrderAction(action)
    except ValueError:
        return False
    return resolved in allowed_actions_for_status(status)


def authorize(
    role: Role | str | None,
    action: PurchaseOrderAction | str,
    order: PurchaseOrder | None = None,
    amount: Decimal | int | None = None,
) -> AuthorizationDecision:
    """Evaluate whether ``role`` may perform ``action``.

    Steps, first failing one wins:
        1. role permission boolean for the action
        2. approval ceiling, when approving with an amount
        3. status-action table, when an order is supplied
    """
    try:
        resolved_action = PurchaseOrderAction(action)
    except ValueError:
        return AuthorizationDecision(
            allowed=False,
            reason=f"unknown action '{action}'",
            code=CODE_UNKNOWN_ACTION,
        )

    permissions = permissions_for(role)
    if not permissions.allows(resolved_action):
        return AuthorizationDecision(
            allowed=False,
            reason=(
                f"role '{_role_label(role)}' does not have permission "
                f"for action '{resolved_action.value}'"
            ),
            code=CODE_INSUFFICIENT_PERMISSIONS,
        )

    ceiling = permissions.max_approval_amount
    if resolved_action is PurchaseOrderAction.APPROVE and amount is not None and ceiling is not None:
        requested = Decimal(amount)
        if requested > ceiling:
            return AuthorizationDecision(
                allowed=False,
                reason=(
                    f"approval amount {_format_amount(requested)} exceeds limit "
                    f"{_format_amount(ceiling)} for role '{_role_label(role)}'"
                ),
                code=CODE_EXCEEDS_APPROVAL_LIMIT,
            )

    if order is not None and resolved_action not in allowed_actions_for_status(order.status):
        status = POStatus.coerce(order.status)
        status_label = status.value if status is not None else str(order.status)
        return AuthorizationDecision(
            allowed=False,
            reason=(
                f"action '{resolved_action.value}' not permitted in "
                f"current status '{status_label}'"
            ),
            code=CODE_ACTION_NOT_PERMITTED_IN_STATUS,
        )

    return _ALLOW


def available_actions(
    role: Role | str | None,
    order: PurchaseOrder,
) -> frozenset[PurchaseOrderAction]:
    """Every action ``authorize`` allows for this role on this order."""
    return frozenset(
        action
        for action in PurchaseOrderAction
        if authorize(
            role,
            action,
            order,
            order.total if action is PurchaseOrderAction.APPROVE else None,
        ).allowed
    )
