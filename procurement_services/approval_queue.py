"""
procurement_services.approval_queue -- Approval queue view and bulk decisions.

Responsibility:
    Builds the prioritized, filtered and sorted view of purchase orders a
    role can approve, with summary statistics, and runs bulk approve/reject
    through the same transition path as a single decision.

Architecture position:
    Services layer.  ``build_view`` and ``compute_priority`` are pure;
    ``ApprovalQueue`` adds a read-through cache over an ``OrderLoader`` and
    delegates every decision to the ``TransitionCoordinator`` (or, when
    configured, the ``TransitionExecutor``).

Invariants enforced:
    - Only draft/pending_approval orders the role may approve at their
      total are ever listed.
    - ``build_view`` is deterministic for the same inputs and ``now``.
    - Sorting is stable.
    - Bulk operations process every selected order independently; one
      failure never aborts the batch.

Failure modes:
    - None raised from bulk operations; every per-order failure is
      reported in ``BulkTransitionResult``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID

from procurement_config.schema import DEFAULT_QUEUE_SETTINGS, QueueSettings
from procurement_kernel.domain.authorization import authorize
from procurement_kernel.domain.clock import Clock, SystemClock, start_of_day
from procurement_kernel.domain.permissions import PurchaseOrderAction, Role
from procurement_kernel.domain.ports import OrderLoader
from procurement_kernel.domain.purchase_order import (
    APPROVABLE_STATUSES,
    POStatus,
    PurchaseOrder,
)
from procurement_kernel.domain.transition import CODE_ORDER_NOT_FOUND, TransitionOutcome
from procurement_kernel.logging_config import get_logger
from procurement_services.transition_coordinator import TransitionCoordinator
from procurement_services.transition_executor import TransitionExecutor

logger = get_logger("services.approval_queue")


class DateRange(str, Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


class AmountRange(str, Enum):
    ALL = "all"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SortKey(str, Enum):
    DATE = "date"
    AMOUNT = "amount"
    SUPPLIER = "supplier"
    ITEMS = "items"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class Priority(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class QueueFilters:
    """Narrowing criteria.  The defaults match everything."""

    search: str = ""
    date_range: DateRange = DateRange.ALL
    amount_range: AmountRange = AmountRange.ALL
    supplier: str | None = None


@dataclass(frozen=True)
class SortSpec:
    key: SortKey = SortKey.DATE
    direction: SortDirection = SortDirection.DESC


@dataclass(frozen=True)
class ApprovalQueueEntry:
    """An order as shown in the queue."""

    order: PurchaseOrder
    priority: Priority
    days_since_created: int

    @property
    def order_id(self) -> UUID:
        return self.order.id

    @property
    def po_number(self) -> str:
        return self.order.po_number

    @property
    def total(self) -> Decimal:
        return self.order.total


@dataclass(frozen=True)
class QueueStats:
    count: int = 0
    total_value: Decimal = Decimal("0")
    overdue: int = 0
    high_value: int = 0


@dataclass(frozen=True)
class QueueView:
    entries: tuple[ApprovalQueueEntry, ...] = ()
    stats: QueueStats = field(default_factory=QueueStats)
    suppliers: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Pure view construction
# ---------------------------------------------------------------------------


def age_in_days(created_at: datetime, now: datetime) -> int:
    """Whole days elapsed since ``created_at`` (floor)."""
    return (now - created_at).days


def compute_priority(
    order: PurchaseOrder,
    now: datetime,
    settings: QueueSettings = DEFAULT_QUEUE_SETTINGS,
) -> Priority:
    age = age_in_days(order.created_at, now)
    if age > settings.urgent_age_days or order.total > settings.urgent_amount:
        return Priority.URGENT
    if age > settings.high_age_days or order.total > settings.high_amount:
        return Priority.HIGH
    if order.total > settings.medium_amount:
        return Priority.MEDIUM
    return Priority.LOW


def _matches_search(order: PurchaseOrder, search: str) -> bool:
    needle = search.strip().lower()
    if not needle:
        return True
    if needle in order.po_number.lower() or needle in order.supplier_name.lower():
        return True
    return any(
        needle in line.product_name.lower() or needle in line.sku.lower()
        for line in order.lines
    )


def _matches_date_range(
    order: PurchaseOrder,
    date_range: DateRange,
    now: datetime,
    settings: QueueSettings,
) -> bool:
    if date_range is DateRange.ALL:
        return True
    midnight = start_of_day(now)
    if date_range is DateRange.TODAY:
        cutoff = midnight
    elif date_range is DateRange.WEEK:
        cutoff = midnight - timedelta(days=settings.week_days)
    else:
        cutoff = midnight - timedelta(days=settings.month_days)
    return order.created_at >= cutoff


def _matches_amount_range(
    order: PurchaseOrder,
    amount_range: AmountRange,
    settings: QueueSettings,
) -> bool:
    if amount_range is AmountRange.LOW:
        return order.total <= settings.low_bucket_max
    if amount_range is AmountRange.MEDIUM:
        return settings.low_bucket_max < order.total <= settings.medium_bucket_max
    if amount_range is AmountRange.HIGH:
        return order.total > settings.medium_bucket_max
    return True


_SORT_KEYS = {
    SortKey.DATE: lambda e: e.order.created_at,
    SortKey.AMOUNT: lambda e: e.order.total,
    SortKey.SUPPLIER: lambda e: e.order.supplier_name.lower(),
    SortKey.ITEMS: lambda e: e.order.item_count,
}


def is_approvable_by(order: PurchaseOrder, role: Role | str | None) -> bool:
    """True when the order awaits approval and ``role`` may approve its total."""
    return (
        order.status in APPROVABLE_STATUSES
        and authorize(role, PurchaseOrderAction.APPROVE, order, order.total).allowed
    )


def build_view(
    orders: Iterable[PurchaseOrder],
    role: Role | str | None,
    filters: QueueFilters | None = None,
    sort: SortSpec | None = None,
    *,
    now: datetime,
    settings: QueueSettings | None = None,
) -> QueueView:
    """Filter, prioritize and sort the orders ``role`` can approve."""
    filters = filters or QueueFilters()
    sort = sort or SortSpec()
    settings = settings or DEFAULT_QUEUE_SETTINGS

    date_range = DateRange(filters.date_range)
    amount_range = AmountRange(filters.amount_range)
    supplier = filters.supplier or None

    entries = [
        ApprovalQueueEntry(
            order=order,
            priority=compute_priority(order, now, settings),
            days_since_created=age_in_days(order.created_at, now),
        )
        for order in orders
        if is_approvable_by(order, role)
        and _matches_search(order, filters.search or "")
        and _matches_date_range(order, date_range, now, settings)
        and _matches_amount_range(order, amount_range, settings)
        and (supplier is None or order.supplier_name == supplier)
    ]

    entries.sort(
        key=_SORT_KEYS[SortKey(sort.key)],
        reverse=SortDirection(sort.direction) is SortDirection.DESC,
    )

    stats = QueueStats(
        count=len(entries),
        total_value=sum((e.order.total for e in entries), Decimal("0")),
        overdue=sum(1 for e in entries if e.days_since_created > settings.overdue_age_days),
        high_value=sum(1 for e in entries if e.order.total > settings.high_value_amount),
    )

    return QueueView(
        entries=tuple(entries),
        stats=stats,
        suppliers=tuple(sorted({e.order.supplier_name for e in entries})),
    )


# ---------------------------------------------------------------------------
# Bulk results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BulkItemResult:
    """What happened to one selected order."""

    order_id: UUID
    po_number: str
    outcome: TransitionOutcome | None = None
    error: str | None = None
    error_code: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.outcome is not None and self.outcome.is_allowed


@dataclass(frozen=True)
class BulkTransitionResult:
    items: tuple[BulkItemResult, ...] = ()

    @property
    def success_count(self) -> int:
        return sum(1 for item in self.items if item.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.items) - self.success_count

    @property
    def errors(self) -> tuple[str, ...]:
        return tuple(
            f"{item.po_number}: {item.error}"
            for item in self.items
            if not item.succeeded
        )


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------


class ApprovalQueue:
    """Read-through cache of approvable orders with bulk decisions.

    Without an executor, bulk operations only validate; the caller applies
    the allowed outcomes.  With one, allowed transitions are applied and
    audited per order.
    """

    def __init__(
        self,
        loader: OrderLoader,
        coordinator: TransitionCoordinator | None = None,
        executor: TransitionExecutor | None = None,
        clock: Clock | None = None,
        settings: QueueSettings | None = None,
    ) -> None:
        self._loader = loader
        self._clock = clock or SystemClock()
        if coordinator is None:
            coordinator = executor.coordinator if executor is not None else TransitionCoordinator(clock=self._clock)
        self._coordinator = coordinator
        self._executor = executor
        self._settings = settings or DEFAULT_QUEUE_SETTINGS
        self._orders: tuple[PurchaseOrder, ...] | None = None

    def refresh(self) -> tuple[PurchaseOrder, ...]:
        self._orders = tuple(self._loader.load_orders_for_approval())
        logger.debug("approval_queue_refreshed", extra={"order_count": len(self._orders)})
        return self._orders

    @property
    def orders(self) -> tuple[PurchaseOrder, ...]:
        if self._orders is None:
            return self.refresh()
        return self._orders

    def view(
        self,
        role: Role | str | None,
        filters: QueueFilters | None = None,
        sort: SortSpec | None = None,
    ) -> QueueView:
        return build_view(
            self.orders,
            role,
            filters,
            sort,
            now=self._clock.now(),
            settings=self._settings,
        )

    def entry(self, order_id: UUID) -> ApprovalQueueEntry | None:
        for order in self.orders:
            if order.id == order_id:
                now = self._clock.now()
                return ApprovalQueueEntry(
                    order=order,
                    priority=compute_priority(order, now, self._settings),
                    days_since_created=age_in_days(order.created_at, now),
                )
        return None

    def bulk_approve(
        self,
        selected_ids: Sequence[UUID],
        role: Role | str | None,
        actor_id: UUID | str | None,
        reason: str | None = None,
    ) -> BulkTransitionResult:
        return self._bulk_transition(selected_ids, POStatus.APPROVED, role, actor_id, reason)

    def bulk_reject(
        self,
        selected_ids: Sequence[UUID],
        role: Role | str | None,
        actor_id: UUID | str | None,
        reason: str | None,
    ) -> BulkTransitionResult:
        """Cancel the selected orders.  A non-blank reason is required."""
        return self._bulk_transition(selected_ids, POStatus.CANCELLED, role, actor_id, reason)

    def _bulk_transition(
        self,
        selected_ids: Sequence[UUID],
        target: POStatus,
        role: Role | str | None,
        actor_id: UUID | str | None,
        reason: str | None,
    ) -> BulkTransitionResult:
        cached = {order.id: order for order in self.orders}
        items: list[BulkItemResult] = []
        total_amount = Decimal("0")

        for order_id in dict.fromkeys(selected_ids):
            order = cached.get(order_id) or self._loader.get_order(order_id)
            if order is None:
                items.append(BulkItemResult(
                    order_id=order_id,
                    po_number=str(order_id),
                    error="purchase order not found",
                    error_code=CODE_ORDER_NOT_FOUND,
                ))
                continue

            item = self._transition_one(order, target, role, actor_id, reason)
            if item.succeeded:
                total_amount += order.total
            items.append(item)

        result = BulkTransitionResult(items=tuple(items))
        if self._executor is not None and result.success_count:
            self.refresh()

        logger.info(
            "po_bulk_transition_completed",
            extra={
                "to_status": target.value,
                "requested": len(items),
                "success_count": result.success_count,
                "failure_count": result.failure_count,
                "total_amount": str(total_amount),
                "applied": self._executor is not None,
            },
        )
        return result

    def _transition_one(
        self,
        order: PurchaseOrder,
        target: POStatus,
        role: Role | str | None,
        actor_id: UUID | str | None,
        reason: str | None,
    ) -> BulkItemResult:
        if self._executor is None:
            outcome = self._coordinator.request_transition(order, target, role, actor_id, reason)
        else:
            try:
                outcome = self._executor.execute_for_order(order, target, role, actor_id, reason).outcome
            except Exception as e:  # noqa: BLE001
                logger.warning(
                    "po_bulk_item_failed",
                    extra={
                        "order_id": str(order.id),
                        "po_number": order.po_number,
                        "error": str(e),
                        "error_code": getattr(e, "code", type(e).__name__),
                    },
                )
                return BulkItemResult(
                    order_id=order.id,
                    po_number=order.po_number,
                    error=str(e),
                    error_code=getattr(e, "code", type(e).__name__),
                )

        if outcome.is_allowed:
            return BulkItemResult(order_id=order.id, po_number=order.po_number, outcome=outcome)
        return BulkItemResult(
            order_id=order.id,
            po_number=order.po_number,
            outcome=outcome,
            error="; ".join(outcome.reasons),
            error_code=outcome.denial_codes[0],
        )
