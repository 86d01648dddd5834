"""
procurement_services.transition_executor -- Apply validated transitions.

Responsibility:
    Runs the full write path for one purchase order status change: fresh
    read, validation by the ``TransitionCoordinator``, compare-and-swap
    apply through the ``TransitionApplier``, and audit through the
    ``AuditSink``.

Architecture position:
    Services layer.  Talks to persistence only through the protocols in
    ``procurement_kernel.domain.ports``.

Invariants enforced:
    - Nothing is applied for a denied outcome.
    - The apply step receives the status the outcome was validated
      against, so a concurrent change surfaces as ``StatusConflictError``.
    - The audit sink is called only after a successful apply.
    - When the applier is a ``UnitOfWork``, apply and audit run in its
      ``transaction()``: a failure in either leaves no write behind.

Failure modes:
    - OrderNotFoundError: the loader has no order for the id.
    - StatusConflictError / TransitionApplyError (or any applier error):
      propagates unchanged; the audit sink is not called.
    - Audit sink errors propagate after the applied status is undone
      (``UnitOfWork`` appliers only).
"""

from __future__ import annotations

from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from procurement_kernel.domain.permissions import Role
from procurement_kernel.domain.ports import AuditSink, OrderLoader, TransitionApplier, UnitOfWork
from procurement_kernel.domain.purchase_order import POStatus, PurchaseOrder
from procurement_kernel.domain.transition import TransitionOutcome
from procurement_kernel.exceptions import OrderNotFoundError
from procurement_kernel.logging_config import LogContext, get_logger
from procurement_services.transition_coordinator import TransitionCoordinator

logger = get_logger("services.transition_executor")


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one executed request and the order as it now stands."""

    outcome: TransitionOutcome
    order: PurchaseOrder

    @property
    def applied(self) -> bool:
        return self.outcome.is_allowed


class TransitionExecutor:
    """Validates, applies and audits purchase order transitions."""

    def __init__(
        self,
        loader: OrderLoader,
        applier: TransitionApplier,
        coordinator: TransitionCoordinator | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self._loader = loader
        self._applier = applier
        self._coordinator = coordinator or TransitionCoordinator()
        self._audit_sink = audit_sink

    @property
    def coordinator(self) -> TransitionCoordinator:
        return self._coordinator

    def _unit_of_work(self) -> AbstractContextManager[Any]:
        if isinstance(self._applier, UnitOfWork):
            return self._applier.transaction()
        return nullcontext()

    def execute(
        self,
        order_id: UUID,
        target: POStatus | str,
        role: Role | str | None,
        actor_id: UUID | str | None,
        reason: str | None = None,
    ) -> ExecutionResult:
        """Re-read the order and run the transition against that snapshot.

        Raises:
            OrderNotFoundError: If the loader has no such order.
        """
        order = self._loader.get_order(order_id)
        if order is None:
            logger.warning("po_transition_order_not_found", extra={"order_id": str(order_id)})
            raise OrderNotFoundError(str(order_id))
        return self.execute_for_order(order, target, role, actor_id, reason)

    def execute_for_order(
        self,
        order: PurchaseOrder,
        target: POStatus | str,
        role: Role | str | None,
        actor_id: UUID | str | None,
        reason: str | None = None,
    ) -> ExecutionResult:
        """Run the transition against an already-loaded snapshot.

        The apply step's compare-and-swap still guards against the snapshot
        being stale.
        """
        with LogContext.bind(
            order_id=str(order.id),
            actor_id=str(actor_id) if actor_id is not None else None,
        ):
            outcome = self._coordinator.request_transition(order, target, role, actor_id, reason)
            if not outcome.is_allowed:
                return ExecutionResult(outcome=outcome, order=order)

            context = outcome.context
            with self._unit_of_work():
                updated = self._applier.apply_transition(
                    order.id,
                    order.status,
                    context.to_status,
                    context,
                )
                if self._audit_sink is not None:
                    self._audit_sink.record(context)

            logger.info(
                "po_transition_executed",
                extra={
                    "po_number": order.po_number,
                    "from_status": order.status.value,
                    "to_status": updated.status.value,
                    "transition_id": str(context.transition_id),
                },
            )
            return ExecutionResult(outcome=outcome, order=updated)
