"""
Typed Exception Hierarchy for the Procurement Kernel.

===============================================================================
WHAT RAISES AND WHAT DOES NOT
===============================================================================

Authorization denials, illegal transitions and missing preconditions are NOT
exceptions.  They are returned as data (``Denial`` records on a
``TransitionOutcome``) so a caller can render every problem at once.

Exceptions are reserved for conditions outside the validator's contract:
  1. The external apply step failed after validation passed
  2. The stored status changed between read and apply (optimistic conflict)
  3. An order id could not be resolved by the loader
  4. Static definitions (workflow graph, queue settings) are malformed

Every exception has a CODE attribute (machine-readable) and carries its
structured data as attributes, so callers catch by type, not by message:

    try:
        executor.execute(order_id, POStatus.APPROVED, role, actor_id)
    except StatusConflictError as e:
        log.warning("conflict", extra={"actual": e.actual_status})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ProcurementKernelError (base)
    |
    +-- OrderError
    |   +-- OrderNotFoundError
    |
    +-- TransitionError
    |   +-- TransitionApplyError
    |
    +-- ConcurrencyError
    |   +-- StatusConflictError
    |
    +-- ImmutabilityViolationError
    |
    +-- WorkflowDefinitionError
    |
    +-- ConfigurationError
        +-- InvalidQueueSettingsError
"""

from __future__ import annotations


class ProcurementKernelError(Exception):
    """
    Base exception for all procurement kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PROCUREMENT_KERNEL_ERROR"


# Order-related exceptions


class OrderError(ProcurementKernelError):
    """Base exception for purchase order lookup errors."""

    code: str = "ORDER_ERROR"


class OrderNotFoundError(OrderError):
    """Purchase order with given ID was not found."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Purchase order not found: {order_id}")


# Transition-related exceptions


class TransitionError(ProcurementKernelError):
    """Base exception for errors applying a validated transition."""

    code: str = "TRANSITION_ERROR"


class TransitionApplyError(TransitionError):
    """The external apply step failed after validation passed."""

    code: str = "TRANSITION_APPLY_FAILED"

    def __init__(self, order_id: str, detail: str):
        self.order_id = order_id
        self.detail = detail
        super().__init__(f"Failed to apply transition for purchase order {order_id}: {detail}")


# Concurrency-related exceptions


class ConcurrencyError(ProcurementKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class StatusConflictError(ConcurrencyError):
    """Stored status no longer matches the status the transition was validated against."""

    code: str = "STATUS_CONFLICT"

    def __init__(self, order_id: str, expected_status: str, actual_status: str):
        self.order_id = order_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        super().__init__(
            f"Status conflict on purchase order {order_id}: "
            f"expected {expected_status}, found {actual_status}"
        )


# Audit-related exceptions


class ImmutabilityViolationError(ProcurementKernelError):
    """Attempted to modify or delete an append-only audit record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Definition / configuration exceptions


class WorkflowDefinitionError(ProcurementKernelError):
    """A workflow definition is structurally invalid."""

    code: str = "WORKFLOW_DEFINITION_INVALID"

    def __init__(self, workflow_name: str, detail: str):
        self.workflow_name = workflow_name
        self.detail = detail
        super().__init__(f"Invalid workflow '{workflow_name}': {detail}")


class ConfigurationError(ProcurementKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class InvalidQueueSettingsError(ConfigurationError):
    """Approval queue settings failed validation."""

    code: str = "INVALID_QUEUE_SETTINGS"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Invalid approval queue settings: {detail}")
