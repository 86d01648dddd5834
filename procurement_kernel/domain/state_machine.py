"""
Purchase order state machine (``procurement_kernel.domain.state_machine``).

Responsibility
--------------
Answer "is ``to`` reachable from ``from`` in one step?" and "what can
this status move to?" for the purchase order lifecycle.  The graph comes
from a ``Workflow`` definition; one validated, stateless instance is
shared process-wide as ``PURCHASE_ORDER_STATE_MACHINE``.

Architecture position
---------------------
**Kernel domain layer** -- pure.  ZERO I/O.

Invariants enforced
-------------------
* Total over ``POStatus``: every status has a (possibly empty) set of
  successors.
* No self-loops.
* Terminal statuses (``cancelled``, ``closed``) have no successors.
* Unknown status values are never legal sources or targets.

Failure modes
-------------
* ``WorkflowDefinitionError`` at construction for a malformed workflow.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from uuid import UUID

from procurement_kernel.domain.purchase_order import POStatus, PurchaseOrder
from procurement_kernel.domain.workflow import (
    PURCHASE_ORDER_WORKFLOW,
    Transition,
    Workflow,
)
from procurement_kernel.exceptions import WorkflowDefinitionError
from procurement_kernel.logging_config import get_logger

logger = get_logger("domain.state_machine")


class PurchaseOrderStateMachine:
    """Stateless transition validator built from a ``Workflow``."""

    def __init__(self, workflow: Workflow = PURCHASE_ORDER_WORKFLOW) -> None:
        self._workflow = workflow
        self._validate(workflow)

        successors: dict[POStatus, list[POStatus]] = {s: [] for s in workflow.states}
        by_edge: dict[tuple[POStatus, POStatus], Transition] = {}
        for transition in workflow.transitions:
            successors[transition.from_state].append(transition.to_state)
            by_edge[(transition.from_state, transition.to_state)] = transition

        self._successors: dict[POStatus, tuple[POStatus, ...]] = {
            state: tuple(targets) for state, targets in successors.items()
        }
        self._by_edge = by_edge

        logger.debug(
            "po_state_machine_built",
            extra={
                "workflow_name": workflow.name,
                "state_count": len(workflow.states),
                "transition_count": len(workflow.transitions),
                "initial_state": workflow.initial_state.value,
            },
        )

    @staticmethod
    def _validate(workflow: Workflow) -> None:
        states = set(workflow.states)
        if set(POStatus) - states:
            missing = sorted(s.value for s in set(POStatus) - states)
            raise WorkflowDefinitionError(workflow.name, f"statuses not declared: {missing}")
        if workflow.initial_state not in states:
            raise WorkflowDefinitionError(
                workflow.name, f"initial state {workflow.initial_state} is not declared"
            )
        seen: set[tuple[POStatus, POStatus]] = set()
        for t in workflow.transitions:
            if t.from_state not in states or t.to_state not in states:
                raise WorkflowDefinitionError(
                    workflow.name, f"transition {t.from_state} -> {t.to_state} references an undeclared state"
                )
            if t.from_state == t.to_state:
                raise WorkflowDefinitionError(workflow.name, f"self-loop on {t.from_state}")
            if (t.from_state, t.to_state) in seen:
                raise WorkflowDefinitionError(
                    workflow.name, f"duplicate transition {t.from_state} -> {t.to_state}"
                )
            if t.from_state in workflow.terminal_states:
                raise WorkflowDefinitionError(
                    workflow.name, f"terminal state {t.from_state} has an outgoing transition"
                )
            seen.add((t.from_state, t.to_state))

    @property
    def workflow(self) -> Workflow:
        return self._workflow

    def can_transition(self, from_status: POStatus | str, to_status: POStatus | str) -> bool:
        source = POStatus.coerce(from_status)
        target = POStatus.coerce(to_status)
        if source is None or target is None:
            return False
        return target in self._successors[source]

    def valid_transitions(self, from_status: POStatus | str) -> tuple[POStatus, ...]:
        source = POStatus.coerce(from_status)
        if source is None:
            return ()
        return self._successors[source]

    def is_terminal(self, status: POStatus | str) -> bool:
        return not self.valid_transitions(status)

    def transition_for(
        self, from_status: POStatus | str, to_status: POStatus | str
    ) -> Transition | None:
        source = POStatus.coerce(from_status)
        target = POStatus.coerce(to_status)
        if source is None or target is None:
            return None
        return self._by_edge.get((source, target))

    def next_logical_status(
        self,
        order: PurchaseOrder,
        received_quantities: Mapping[UUID, Decimal | int] | None = None,
    ) -> POStatus | None:
        """Suggest the forward status an order would normally move to next.

        While receiving, ``received_quantities`` (keyed by product id) decides
        between a partial and a full receipt.  Returns None for terminal
        orders and for a partial receipt that is still incomplete.
        """
        status = order.status
        if status is POStatus.DRAFT:
            return POStatus.PENDING_APPROVAL
        if status is POStatus.PENDING_APPROVAL:
            return POStatus.APPROVED
        if status is POStatus.APPROVED:
            return POStatus.SENT_TO_SUPPLIER
        if status in (POStatus.SENT_TO_SUPPLIER, POStatus.PARTIALLY_RECEIVED):
            if received_quantities is not None and _fully_received(order, received_quantities):
                return POStatus.FULLY_RECEIVED
            return POStatus.PARTIALLY_RECEIVED if status is POStatus.SENT_TO_SUPPLIER else None
        if status is POStatus.FULLY_RECEIVED:
            return POStatus.CLOSED
        return None


def _fully_received(
    order: PurchaseOrder,
    received_quantities: Mapping[UUID, Decimal | int],
) -> bool:
    return all(
        Decimal(received_quantities.get(line.product_id, 0)) >= line.quantity
        for line in order.lines
    )


PURCHASE_ORDER_STATE_MACHINE = PurchaseOrderStateMachine()


def can_transition(from_status: POStatus | str, to_status: POStatus | str) -> bool:
    """True when ``to_status`` is a legal single step from ``from_status``."""
    return PURCHASE_ORDER_STATE_MACHINE.can_transition(from_status, to_status)


def valid_transitions(from_status: POStatus | str) -> tuple[POStatus, ...]:
    """Legal successors of ``from_status`` in declaration order."""
    return PURCHASE_ORDER_STATE_MACHINE.valid_transitions(from_status)


def is_terminal(status: POStatus | str) -> bool:
    return PURCHASE_ORDER_STATE_MACHINE.is_terminal(status)
