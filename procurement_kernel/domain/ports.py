"""
Collaborator interfaces (``procurement_kernel.domain.ports``).

The kernel validates and assembles; loading orders, applying a status
change and durably recording the audit context belong to collaborators
that satisfy these protocols.  An applier that also satisfies
``UnitOfWork`` lets the executor undo a half-finished transition.
``procurement_kernel.services.order_store`` ships SQLAlchemy
implementations.
"""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import AbstractContextManager
from typing import Protocol, runtime_checkable
from uuid import UUID

from procurement_kernel.domain.purchase_order import POStatus, PurchaseOrder
from procurement_kernel.domain.transition import TransitionContext


@runtime_checkable
class OrderLoader(Protocol):
    """Supplies purchase order snapshots."""

    def load_orders_for_approval(self) -> Sequence[PurchaseOrder]:
        """Orders in draft or pending_approval."""
        ...

    def load_orders_by_status(self, status: POStatus) -> Sequence[PurchaseOrder]:
        ...

    def get_order(self, order_id: UUID) -> PurchaseOrder | None:
        """Freshly read one order, or None when it does not exist."""
        ...


@runtime_checkable
class TransitionApplier(Protocol):
    """Persists a validated status change."""

    def apply_transition(
        self,
        order_id: UUID,
        expected_status: POStatus,
        new_status: POStatus,
        context: TransitionContext,
    ) -> PurchaseOrder:
        """Move the order from ``expected_status`` to ``new_status``.

        Must compare-and-swap on status and raise ``StatusConflictError``
        when the stored status is not ``expected_status``.  Any other
        failure raises; the status is then left unchanged.
        """
        ...


@runtime_checkable
class AuditSink(Protocol):
    """Durable destination for transition audit contexts."""

    def record(self, context: TransitionContext) -> None:
        ...


@runtime_checkable
class UnitOfWork(Protocol):
    """Optional capability of an applier: undo a transition's writes together.

    When the applier offers it, the executor runs the apply step and the
    audit record inside ``transaction()``.  Any exception raised inside the
    scope must leave neither write behind.  The audit sink has to write
    through the same transaction for this to hold.
    """

    def transaction(self) -> AbstractContextManager[None]:
        ...
