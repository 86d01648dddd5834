"""
SQLAlchemy ORM persistence models for purchase orders.

Responsibility
--------------
Provide database-backed persistence for the purchase order snapshot, its
line items, and the append-only record of every applied status transition.

Architecture position
---------------------
**Kernel > Models** -- consumed by ``SqlAlchemyOrderStore`` and
``SqlAlchemyAuditSink``.  Inherits from ``TrackedBase`` / ``Base`` (kernel db
layer).  Domain DTOs are imported lazily inside ``to_dto``.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* ``status`` is stored as String(50) and constrained to the eight
  lifecycle values.
* ``po_number`` is unique.
* Transition records are append-only: UPDATE and DELETE raise
  ``ImmutabilityViolationError``.

Audit relevance
---------------
* ``POTransitionRecordModel`` is the durable audit trail of who moved an
  order between which statuses, when, and why.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procurement_kernel.db.base import Base, TrackedBase, UUIDString
from procurement_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from procurement_kernel.domain.purchase_order import (
        PurchaseOrder,
        PurchaseOrderLine,
    )
    from procurement_kernel.domain.transition import TransitionContext


# ---------------------------------------------------------------------------
# PurchaseOrderModel
# ---------------------------------------------------------------------------


class PurchaseOrderModel(TrackedBase):
    """
    A purchase order header.

    Maps to the ``PurchaseOrder`` DTO in
    ``procurement_kernel.domain.purchase_order``.

    Guarantees:
        - ``po_number`` is unique.
        - ``status`` is one of the eight lifecycle values.
        - Lines are loaded eagerly and ordered by ``line_number``.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("po_number", name="uq_purchase_order_number"),
        CheckConstraint(
            "status IN ('draft', 'pending_approval', 'approved', "
            "'sent_to_supplier', 'partially_received', 'fully_received', "
            "'cancelled', 'closed')",
            name="valid_status",
        ),
        Index("idx_purchase_order_status", "status"),
        Index("idx_purchase_order_supplier", "supplier_id"),
    )

    po_number: Mapped[str] = mapped_column(String(50), nullable=False)
    supplier_id: Mapped[UUID | None]
    supplier_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="draft")
    subtotal: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    expected_delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    lines: Mapped[list["PurchaseOrderLineModel"]] = relationship(
        "PurchaseOrderLineModel",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderLineModel.line_number",
        lazy="selectin",
    )

    def to_dto(self) -> PurchaseOrder:
        from procurement_kernel.domain.purchase_order import POStatus, PurchaseOrder

        return PurchaseOrder(
            id=self.id,
            po_number=self.po_number,
            supplier_id=self.supplier_id,
            supplier_name=self.supplier_name,
            created_at=self.created_at,
            lines=tuple(line.to_dto() for line in self.lines),
            subtotal=self.subtotal,
            tax=self.tax,
            total=self.total,
            status=POStatus(self.status),
            updated_at=self.updated_at,
            expected_delivery_date=self.expected_delivery_date,
            created_by=self.created_by_id,
        )

    @classmethod
    def from_dto(cls, dto: PurchaseOrder, created_by_id: UUID) -> PurchaseOrderModel:
        model = cls(
            id=dto.id,
            po_number=dto.po_number,
            supplier_id=dto.supplier_id,
            supplier_name=dto.supplier_name,
            status=dto.status.value,
            subtotal=dto.subtotal,
            tax=dto.tax,
            total=dto.total,
            expected_delivery_date=dto.expected_delivery_date,
            created_at=dto.created_at,
            created_by_id=dto.created_by or created_by_id,
        )
        if dto.updated_at is not None:
            model.updated_at = dto.updated_at
        model.lines = [
            PurchaseOrderLineModel.from_dto(line, line_number, created_by_id)
            for line_number, line in enumerate(dto.lines, start=1)
        ]
        return model

    def __repr__(self) -> str:
        return f"<PurchaseOrderModel {self.po_number} [{self.status}]>"


# ---------------------------------------------------------------------------
# PurchaseOrderLineModel
# ---------------------------------------------------------------------------


class PurchaseOrderLineModel(TrackedBase):
    """
    A line item on a purchase order.

    Guarantees:
        - Belongs to exactly one ``PurchaseOrderModel``.
        - (purchase_order_id, line_number) is unique.
    """

    __tablename__ = "purchase_order_lines"

    __table_args__ = (
        UniqueConstraint(
            "purchase_order_id", "line_number",
            name="uq_purchase_order_line_number",
        ),
        Index("idx_po_line_order", "purchase_order_id"),
    )

    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=False,
    )
    line_number: Mapped[int]
    product_id: Mapped[UUID]
    product_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    sku: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    quantity: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    unit_cost: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    line_total: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    purchase_order: Mapped["PurchaseOrderModel"] = relationship(
        "PurchaseOrderModel",
        back_populates="lines",
    )

    def to_dto(self) -> PurchaseOrderLine:
        from procurement_kernel.domain.purchase_order import PurchaseOrderLine

        return PurchaseOrderLine(
            product_id=self.product_id,
            product_name=self.product_name,
            sku=self.sku,
            quantity=self.quantity,
            unit_cost=self.unit_cost,
            line_total=self.line_total,
        )

    @classmethod
    def from_dto(
        cls,
        dto: PurchaseOrderLine,
        line_number: int,
        created_by_id: UUID,
    ) -> PurchaseOrderLineModel:
        return cls(
            line_number=line_number,
            product_id=dto.product_id,
            product_name=dto.product_name,
            sku=dto.sku,
            quantity=dto.quantity,
            unit_cost=dto.unit_cost,
            line_total=dto.line_total,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<PurchaseOrderLineModel {self.line_number}: {self.sku}>"


# ---------------------------------------------------------------------------
# POTransitionRecordModel
# ---------------------------------------------------------------------------


class POTransitionRecordModel(Base):
    """Persistent record of an applied status transition. Append-only.

    Contract:
        Records are immutable once created -- no UPDATE, no DELETE.
    """

    __tablename__ = "purchase_order_transitions"

    __table_args__ = (
        UniqueConstraint("transition_id", name="uq_po_transition_id"),
        Index("idx_po_transition_order", "order_id", "occurred_at"),
    )

    transition_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=False,
    )
    actor_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    from_status: Mapped[str] = mapped_column(String(50), nullable=False)
    to_status: Mapped[str] = mapped_column(String(50), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    context_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def to_dto(self) -> TransitionContext:
        """Convert ORM model to frozen domain DTO."""
        from procurement_kernel.domain.transition import TransitionContext

        return TransitionContext(
            order_id=self.order_id,
            actor_id=_parse_actor(self.actor_id),
            timestamp=self.occurred_at,
            reason=self.reason,
            metadata=dict(self.context_data or {}),
            transition_id=self.transition_id,
        )

    @classmethod
    def from_dto(cls, dto: TransitionContext) -> POTransitionRecordModel:
        """Create ORM model from domain DTO."""
        return cls(
            transition_id=dto.transition_id,
            order_id=dto.order_id,
            actor_id=str(dto.actor_id) if dto.actor_id is not None else None,
            role=dto.metadata.get("role"),
            from_status=dto.metadata["from_status"],
            to_status=dto.metadata["to_status"],
            reason=dto.reason,
            occurred_at=dto.timestamp,
            context_data=dict(dto.metadata),
        )


def _parse_actor(value: str | None) -> UUID | str | None:
    if value is None:
        return None
    try:
        return UUID(value)
    except ValueError:
        return value


@event.listens_for(POTransitionRecordModel, "before_update")
def prevent_transition_record_update(mapper, connection, target):
    """Prevent updates to transition audit records."""
    raise ImmutabilityViolationError(
        entity_type="POTransitionRecord",
        entity_id=str(target.transition_id),
        reason="Transition records are immutable -- cannot modify",
    )


@event.listens_for(POTransitionRecordModel, "before_delete")
def prevent_transition_record_delete(mapper, connection, target):
    """Prevent deletion of transition audit records."""
    raise ImmutabilityViolationError(
        entity_type="POTransitionRecord",
        entity_id=str(target.transition_id),
        reason="Transition records are immutable -- cannot delete",
    )
