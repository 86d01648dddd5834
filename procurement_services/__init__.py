"""
Purchase order workflow services.

Coordinates the pure kernel domain (state machine, authorization, guards)
into the transition, execution and approval queue operations callers use.
"""

from procurement_services.approval_queue import (
    AmountRange,
    ApprovalQueue,
    ApprovalQueueEntry,
    BulkItemResult,
    BulkTransitionResult,
    DateRange,
    Priority,
    QueueFilters,
    QueueStats,
    QueueView,
    SortDirection,
    SortKey,
    SortSpec,
    build_view,
    compute_priority,
)
from procurement_services.transition_coordinator import (
    GuardExecutor,
    TransitionCoordinator,
    default_guard_executor,
)
from procurement_services.transition_executor import ExecutionResult, TransitionExecutor

__all__ = [
    # Transitions
    "TransitionCoordinator",
    "GuardExecutor",
    "default_guard_executor",
    "TransitionExecutor",
    "ExecutionResult",
    # Approval queue
    "ApprovalQueue",
    "ApprovalQueueEntry",
    "AmountRange",
    "BulkItemResult",
    "BulkTransitionResult",
    "DateRange",
    "Priority",
    "QueueFilters",
    "QueueStats",
    "QueueView",
    "SortDirection",
    "SortKey",
    "SortSpec",
    "build_view",
    "compute_priority",
]
