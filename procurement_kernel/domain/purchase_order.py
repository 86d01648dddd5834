"""
Purchase order domain models (``procurement_kernel.domain.purchase_order``).

The nouns of the workflow: the purchase order, its lines, and the closed
set of lifecycle statuses.  Orders are immutable snapshots; a status change
produces a new snapshot and only ever happens through a validated
transition applied by an external store.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from procurement_kernel.logging_config import get_logger

logger = get_logger("domain.purchase_order")


class POStatus(str, Enum):
    """Purchase order lifecycle states."""

    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    SENT_TO_SUPPLIER = "sent_to_supplier"
    PARTIALLY_RECEIVED = "partially_received"
    FULLY_RECEIVED = "fully_received"
    CANCELLED = "cancelled"
    CLOSED = "closed"

    @classmethod
    def coerce(cls, value: "POStatus | str | None") -> "POStatus | None":
        """Return the matching status, or None for anything outside the enum."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


# Statuses that make an order a candidate for the approval queue.
APPROVABLE_STATUSES: frozenset[POStatus] = frozenset({
    POStatus.DRAFT,
    POStatus.PENDING_APPROVAL,
})


@dataclass(frozen=True)
class PurchaseOrderLine:
    """A line item on a purchase order."""

    product_id: UUID
    product_name: str
    sku: str
    quantity: Decimal = Decimal("0")
    unit_cost: Decimal = Decimal("0")
    line_total: Decimal = Decimal("0")

    def __post_init__(self):
        if self.quantity < 0:
            logger.warning(
                "po_line_negative_quantity",
                extra={"product_id": str(self.product_id), "quantity": str(self.quantity)},
            )
            raise ValueError(f"quantity ({self.quantity}) cannot be negative")


@dataclass(frozen=True)
class PurchaseOrder:
    """
    A purchase order snapshot.

    total = subtotal + tax and subtotal = sum of line totals are maintained
    by upstream order editing and assumed true here.
    """

    id: UUID
    po_number: str
    supplier_id: UUID | None
    supplier_name: str
    created_at: datetime
    lines: tuple[PurchaseOrderLine, ...] = field(default_factory=tuple)
    subtotal: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    status: POStatus = POStatus.DRAFT
    updated_at: datetime | None = None
    expected_delivery_date: date | None = None
    created_by: UUID | None = None

    @property
    def item_count(self) -> int:
        return len(self.lines)

    def with_status(self, status: POStatus, updated_at: datetime | None = None) -> "PurchaseOrder":
        """Copy of this order in ``status``.  For apply adapters only."""
        return replace(self, status=status, updated_at=updated_at or self.updated_at)
