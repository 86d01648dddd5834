"""
SQLAlchemy order store and audit sink.

Responsibility:
    Reference implementations of the ``OrderLoader``, ``TransitionApplier``
    and ``AuditSink`` collaborator protocols on top of the purchase order
    ORM models.

Architecture position:
    Kernel > Services -- imperative shell.  Called by
    ``TransitionExecutor`` and ``ApprovalQueue`` through the protocols in
    ``procurement_kernel.domain.ports``.

Invariants enforced:
    - Compare-and-swap on status: a transition is applied with
      ``UPDATE ... WHERE id = :id AND status = :expected``.  Zero rows
      updated means the order moved (``StatusConflictError``) or does not
      exist (``OrderNotFoundError``).
    - Flush only; the caller owns commit.
    - ``transaction()`` scopes one transition in a SAVEPOINT; the audit
      sink must share the session for its row to roll back with the status.
    - Transition records are append-only (enforced by the model).

Failure modes:
    - StatusConflictError: stored status differs from the expected one.
    - OrderNotFoundError: no row for the order id.
    - TransitionApplyError: the database rejected the update.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from procurement_kernel.domain.purchase_order import (
    APPROVABLE_STATUSES,
    POStatus,
    PurchaseOrder,
)
from procurement_kernel.domain.transition import TransitionContext
from procurement_kernel.exceptions import (
    OrderNotFoundError,
    StatusConflictError,
    TransitionApplyError,
)
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.purchase_order import (
    POTransitionRecordModel,
    PurchaseOrderModel,
)
from procurement_kernel.services.base import BaseService

logger = get_logger("services.order_store")


class SqlAlchemyOrderStore(BaseService[PurchaseOrderModel]):
    """
    Loads purchase order snapshots and applies validated status changes.

    Satisfies ``OrderLoader``, ``TransitionApplier`` and ``UnitOfWork``.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load_orders_for_approval(self) -> Sequence[PurchaseOrder]:
        """Orders in draft or pending_approval, oldest first."""
        statuses = sorted(s.value for s in APPROVABLE_STATUSES)
        return self._load(PurchaseOrderModel.status.in_(statuses))

    def load_orders_by_status(self, status: POStatus) -> Sequence[PurchaseOrder]:
        return self._load(PurchaseOrderModel.status == POStatus(status).value)

    def get_order(self, order_id: UUID) -> PurchaseOrder | None:
        model = self.session.get(
            PurchaseOrderModel, order_id, populate_existing=True,
        )
        return model.to_dto() if model is not None else None

    def _load(self, criterion) -> tuple[PurchaseOrder, ...]:
        stmt = (
            select(PurchaseOrderModel)
            .where(criterion)
            .order_by(PurchaseOrderModel.created_at, PurchaseOrderModel.po_number)
            .execution_options(populate_existing=True)
        )
        models = self.session.execute(stmt).scalars().all()
        return tuple(m.to_dto() for m in models)

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """SAVEPOINT around one transition's writes.

        Any exception inside the block rolls back to the savepoint, so the
        status change and its audit row are undone together and the session
        stays usable for the next order.  Commit is still the caller's.
        """
        savepoint = self.session.begin_nested()
        try:
            yield
        except Exception as exc:
            savepoint.rollback()
            logger.warning(
                "po_transition_rolled_back",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            raise
        savepoint.commit()

    def save(self, order: PurchaseOrder, created_by_id: UUID) -> PurchaseOrder:
        """Insert a new purchase order with its lines."""
        model = PurchaseOrderModel.from_dto(order, created_by_id)
        self.session.add(model)
        self.session.flush()

        logger.info(
            "po_saved",
            extra={
                "order_id": str(order.id),
                "po_number": order.po_number,
                "status": order.status.value,
                "line_count": order.item_count,
            },
        )
        return model.to_dto()

    def apply_transition(
        self,
        order_id: UUID,
        expected_status: POStatus,
        new_status: POStatus,
        context: TransitionContext,
    ) -> PurchaseOrder:
        """
        Move the order from ``expected_status`` to ``new_status``.

        Raises:
            StatusConflictError: The stored status is not ``expected_status``.
            OrderNotFoundError: The order does not exist.
            TransitionApplyError: The update failed in the database.
        """
        expected = POStatus(expected_status)
        target = POStatus(new_status)

        values = {
            "status": target.value,
            "updated_at": context.timestamp,
        }
        if isinstance(context.actor_id, UUID):
            values["updated_by_id"] = context.actor_id

        stmt = (
            update(PurchaseOrderModel)
            .where(
                PurchaseOrderModel.id == order_id,
                PurchaseOrderModel.status == expected.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        try:
            result = self.session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.error(
                "po_transition_apply_failed",
                extra={
                    "order_id": str(order_id),
                    "from_status": expected.value,
                    "to_status": target.value,
                    "error": str(exc),
                },
            )
            raise TransitionApplyError(str(order_id), str(exc)) from exc

        if result.rowcount == 0:
            actual = self.session.execute(
                select(PurchaseOrderModel.status).where(PurchaseOrderModel.id == order_id)
            ).scalar_one_or_none()
            if actual is None:
                raise OrderNotFoundError(str(order_id))
            logger.warning(
                "po_transition_status_conflict",
                extra={
                    "order_id": str(order_id),
                    "expected_status": expected.value,
                    "actual_status": actual,
                },
            )
            raise StatusConflictError(str(order_id), expected.value, actual)

        self.session.flush()
        logger.info(
            "po_transition_applied",
            extra={
                "order_id": str(order_id),
                "from_status": expected.value,
                "to_status": target.value,
                "transition_id": str(context.transition_id),
            },
        )

        updated = self.get_order(order_id)
        if updated is None:
            raise OrderNotFoundError(str(order_id))
        return updated


class SqlAlchemyAuditSink(BaseService[POTransitionRecordModel]):
    """Persists transition contexts as append-only ``POTransitionRecordModel`` rows."""

    def record(self, context: TransitionContext) -> None:
        self.session.add(POTransitionRecordModel.from_dto(context))
        self.session.flush()

        logger.info(
            "po_transition_recorded",
            extra={
                "order_id": str(context.order_id),
                "transition_id": str(context.transition_id),
                "from_status": context.metadata.get("from_status"),
                "to_status": context.metadata.get("to_status"),
            },
        )

    def history(self, order_id: UUID) -> tuple[TransitionContext, ...]:
        """Recorded transitions for one order, oldest first."""
        stmt = (
            select(POTransitionRecordModel)
            .where(POTransitionRecordModel.order_id == order_id)
            .order_by(POTransitionRecordModel.occurred_at)
        )
        return tuple(m.to_dto() for m in self.session.execute(stmt).scalars().all())
