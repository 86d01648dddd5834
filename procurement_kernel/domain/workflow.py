"""
Canonical workflow types (``procurement_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the purchase order state machine and the single
declarative definition of its graph, ``PURCHASE_ORDER_WORKFLOW``.  Each
transition carries the authorization action that gates it and, where a
business precondition applies, the guard the coordinator evaluates.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* ``terminal_states`` have no outgoing transitions.
(checked by ``PurchaseOrderStateMachine`` at construction)
"""

from __future__ import annotations

from dataclasses import dataclass

from procurement_kernel.domain.permissions import PurchaseOrderAction
from procurement_kernel.domain.purchase_order import POStatus


@dataclass(frozen=True)
class Guard:
    """A business precondition that must hold before a transition is applied.

    Contract: frozen, descriptive only.  The transition coordinator owns the
    evaluation logic, keyed by ``name``.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A legal state transition.

    ``action`` is the authorization action checked for this transition.
    ``requires_reason`` marks transitions that need a non-empty reason.
    """
    from_state: POStatus
    to_state: POStatus
    action: PurchaseOrderAction
    guards: tuple[Guard, ...] = ()
    requires_reason: bool = False
    triggers_inventory: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle."""
    name: str
    description: str
    initial_state: POStatus
    states: tuple[POStatus, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[POStatus, ...] = ()


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

HAS_LINE_ITEMS = Guard(
    name="has_line_items",
    description="Purchase order has at least one line item",
)

POSITIVE_TOTAL = Guard(
    name="positive_total",
    description="Purchase order total is greater than zero",
)

SUPPLIER_SELECTED = Guard(
    name="supplier_selected",
    description="A supplier is referenced",
)

APPROVER_IDENTIFIED = Guard(
    name="approver_identified",
    description="The approving actor is identified",
)

SUBMISSION_GUARDS = (HAS_LINE_ITEMS, POSITIVE_TOTAL, SUPPLIER_SELECTED)
APPROVAL_GUARDS = SUBMISSION_GUARDS + (APPROVER_IDENTIFIED,)


def action_for_target(target: POStatus) -> PurchaseOrderAction:
    """Authorization action that gates a move into ``target``."""
    if target is POStatus.APPROVED:
        return PurchaseOrderAction.APPROVE
    if target in (
        POStatus.SENT_TO_SUPPLIER,
        POStatus.PARTIALLY_RECEIVED,
        POStatus.FULLY_RECEIVED,
    ):
        return PurchaseOrderAction.RECEIVE
    if target is POStatus.CANCELLED:
        return PurchaseOrderAction.CANCEL
    return PurchaseOrderAction.EDIT


def guards_for_target(target: POStatus) -> tuple[Guard, ...]:
    """Preconditions an order must meet to enter ``target``."""
    if target is POStatus.APPROVED:
        return APPROVAL_GUARDS
    if target is POStatus.PENDING_APPROVAL:
        return SUBMISSION_GUARDS
    return ()


def describe_transition(from_state: POStatus, to_state: POStatus) -> Transition:
    """The transition the lifecycle would use to move from ``from_state`` to ``to_state``.

    Built whether or not the move is legal, so a refused request can still
    be checked for its action, guards and reason requirement.
    """
    return Transition(
        from_state=from_state,
        to_state=to_state,
        action=action_for_target(to_state),
        guards=guards_for_target(to_state),
        requires_reason=to_state in (POStatus.CANCELLED, POStatus.CLOSED),
        triggers_inventory=to_state in (POStatus.PARTIALLY_RECEIVED, POStatus.FULLY_RECEIVED),
    )


_S = POStatus

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="purchase_order",
    description="Purchase order lifecycle",
    initial_state=_S.DRAFT,
    states=tuple(POStatus),
    transitions=(
        describe_transition(_S.DRAFT, _S.PENDING_APPROVAL),
        describe_transition(_S.DRAFT, _S.APPROVED),
        describe_transition(_S.DRAFT, _S.CANCELLED),
        describe_transition(_S.PENDING_APPROVAL, _S.APPROVED),
        describe_transition(_S.PENDING_APPROVAL, _S.CANCELLED),
        describe_transition(_S.PENDING_APPROVAL, _S.DRAFT),  # revert
        describe_transition(_S.APPROVED, _S.SENT_TO_SUPPLIER),
        describe_transition(_S.APPROVED, _S.CANCELLED),
        describe_transition(_S.SENT_TO_SUPPLIER, _S.PARTIALLY_RECEIVED),
        describe_transition(_S.SENT_TO_SUPPLIER, _S.FULLY_RECEIVED),
        describe_transition(_S.SENT_TO_SUPPLIER, _S.CANCELLED),
        describe_transition(_S.PARTIALLY_RECEIVED, _S.FULLY_RECEIVED),
        describe_transition(_S.PARTIALLY_RECEIVED, _S.CANCELLED),
        describe_transition(_S.FULLY_RECEIVED, _S.CLOSED),
    ),
    terminal_states=(_S.CANCELLED, _S.CLOSED),
)
