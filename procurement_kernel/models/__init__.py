"""SQLAlchemy ORM models for the reference persistence adapters."""

from procurement_kernel.models.purchase_order import (
    POTransitionRecordModel,
    PurchaseOrderLineModel,
    PurchaseOrderModel,
)

__all__ = [
    "PurchaseOrderModel",
    "PurchaseOrderLineModel",
    "POTransitionRecordModel",
]
