"""
Pure domain layer.

Value objects and pure functions with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

Time is read only through an injected ``Clock``.
"""

from procurement_kernel.domain.authorization import (
    STATUS_ALLOWED_ACTIONS,
    AuthorizationDecision,
    allowed_actions_for_status,
    authorize,
    available_actions,
    can_perform_action_on_status,
)
from procurement_kernel.domain.clock import Clock, DeterministicClock, SystemClock, start_of_day
from procurement_kernel.domain.permissions import (
    NO_ACCESS,
    ROLE_PERMISSIONS,
    PurchaseOrderAction,
    Role,
    RolePermissionSet,
    permissions_for,
)
from procurement_kernel.domain.ports import AuditSink, OrderLoader, TransitionApplier, UnitOfWork
from procurement_kernel.domain.purchase_order import (
    APPROVABLE_STATUSES,
    POStatus,
    PurchaseOrder,
    PurchaseOrderLine,
)
from procurement_kernel.domain.state_machine import (
    PURCHASE_ORDER_STATE_MACHINE,
    PurchaseOrderStateMachine,
    can_transition,
    is_terminal,
    valid_transitions,
)
from procurement_kernel.domain.transition import (
    Denial,
    TransitionContext,
    TransitionOutcome,
)
from procurement_kernel.domain.workflow import (
    PURCHASE_ORDER_WORKFLOW,
    Guard,
    Transition,
    Workflow,
    action_for_target,
    describe_transition,
    guards_for_target,
)

__all__ = [
    # Time
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "start_of_day",
    # Orders
    "APPROVABLE_STATUSES",
    "POStatus",
    "PurchaseOrder",
    "PurchaseOrderLine",
    # Permissions / authorization
    "NO_ACCESS",
    "ROLE_PERMISSIONS",
    "STATUS_ALLOWED_ACTIONS",
    "AuthorizationDecision",
    "PurchaseOrderAction",
    "Role",
    "RolePermissionSet",
    "allowed_actions_for_status",
    "authorize",
    "available_actions",
    "can_perform_action_on_status",
    "permissions_for",
    # Workflow / state machine
    "PURCHASE_ORDER_STATE_MACHINE",
    "PURCHASE_ORDER_WORKFLOW",
    "Guard",
    "PurchaseOrderStateMachine",
    "Transition",
    "Workflow",
    "action_for_target",
    "describe_transition",
    "guards_for_target",
    "can_transition",
    "is_terminal",
    "valid_transitions",
    # Transitions
    "Denial",
    "TransitionContext",
    "TransitionOutcome",
    # Collaborators
    "AuditSink",
    "OrderLoader",
    "TransitionApplier",
    "UnitOfWork",
]
