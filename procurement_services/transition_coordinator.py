"""
procurement_services.transition_coordinator -- Purchase order transition validation.

Responsibility:
    Decides whether a requested status change may be applied.  Thin
    coordinator -- delegates graph legality to the state machine, role and
    status checks to the authorization engine, and business preconditions
    to a ``GuardExecutor`` keyed by guard name.

Architecture position:
    Services layer.  May import from procurement_kernel/ (domain only).
    Never touches persistence; applying an allowed transition is the
    ``TransitionExecutor``'s job.

Invariants enforced:
    - Every check runs on every request.  Denials are accumulated, never
      short-circuited, so a caller sees all problems at once.
    - The order snapshot is never mutated.
    - Denials are returned as data; nothing here raises for a refusal.
    - An allowed outcome always carries a ``TransitionContext`` whose
      metadata holds role, from_status and to_status.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable
from uuid import UUID

from procurement_kernel.domain.authorization import authorize
from procurement_kernel.domain.clock import Clock, SystemClock
from procurement_kernel.domain.permissions import PurchaseOrderAction, Role, coerce_role
from procurement_kernel.domain.purchase_order import POStatus, PurchaseOrder
from procurement_kernel.domain.state_machine import (
    PURCHASE_ORDER_STATE_MACHINE,
    PurchaseOrderStateMachine,
)
from procurement_kernel.domain.transition import (
    CODE_ILLEGAL_TRANSITION,
    CODE_INVALID_TOTAL,
    CODE_NO_APPROVER,
    CODE_NO_ITEMS,
    CODE_NO_SUPPLIER,
    CODE_REASON_REQUIRED,
    Denial,
    TransitionContext,
    TransitionOutcome,
)
from procurement_kernel.domain.workflow import (
    APPROVER_IDENTIFIED,
    HAS_LINE_ITEMS,
    POSITIVE_TOTAL,
    SUPPLIER_SELECTED,
    Guard,
    Transition,
    describe_transition,
)
from procurement_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.transition_coordinator")

TRACE_TYPE_PO_TRANSITION = "PO_TRANSITION"

WARNING_INVENTORY = "this action will trigger inventory updates"
WARNING_CANCEL_FINAL = "cancelled purchase orders cannot be restored"
WARNING_CLOSE_FINAL = "closed purchase orders are finalized and cannot be modified"

MESSAGE_REASON_REQUIRED = "reason is required for this status change"


# ---------------------------------------------------------------------------
# Guard evaluation (business preconditions on transitions)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GuardContext:
    """What a guard evaluator may look at."""

    order: PurchaseOrder
    role: Role | str | None
    actor_id: UUID | str | None


@dataclass(frozen=True)
class GuardFailure:
    """The denial raised when a named guard does not hold."""

    code: str
    message: str
    field: str


GUARD_FAILURES: dict[str, GuardFailure] = {
    HAS_LINE_ITEMS.name: GuardFailure(
        CODE_NO_ITEMS, "cannot approve purchase order without items", "lines",
    ),
    POSITIVE_TOTAL.name: GuardFailure(
        CODE_INVALID_TOTAL, "cannot approve purchase order with zero total", "total",
    ),
    SUPPLIER_SELECTED.name: GuardFailure(
        CODE_NO_SUPPLIER, "cannot approve purchase order without supplier", "supplier_id",
    ),
    APPROVER_IDENTIFIED.name: GuardFailure(
        CODE_NO_APPROVER, "approver information is required", "actor_id",
    ),
}

# Entering pending_approval checks the same preconditions with submission wording.
SUBMISSION_GUARD_FAILURES: dict[str, GuardFailure] = {
    HAS_LINE_ITEMS.name: GuardFailure(
        CODE_NO_ITEMS, "purchase order must have at least one item before submitting for approval", "lines",
    ),
    POSITIVE_TOTAL.name: GuardFailure(
        CODE_INVALID_TOTAL, "purchase order total must be greater than zero", "total",
    ),
    SUPPLIER_SELECTED.name: GuardFailure(
        CODE_NO_SUPPLIER, "supplier must be selected before submitting for approval", "supplier_id",
    ),
}


def _has_line_items(context: GuardContext) -> bool:
    return context.order.item_count > 0


def _positive_total(context: GuardContext) -> bool:
    return context.order.total > 0


def _supplier_selected(context: GuardContext) -> bool:
    return bool(context.order.supplier_id)


def _approver_identified(context: GuardContext) -> bool:
    return context.actor_id is not None and bool(str(context.actor_id).strip())


class GuardExecutor:
    """Evaluates transition guards against a ``GuardContext``.

    Guards are declared on transitions (name + description).  This executor
    holds the evaluation logic per guard name.
    """

    def __init__(self) -> None:
        self._evaluators: dict[str, Callable[[GuardContext], bool]] = {}

    def register(self, guard_name: str, evaluator: Callable[[GuardContext], bool]) -> None:
        """Register an evaluator for a guard by name."""
        self._evaluators[guard_name] = evaluator

    def evaluate(self, guard: Guard, context: GuardContext) -> bool:
        """Evaluate a guard against context. Returns True if guard passes."""
        fn = self._evaluators.get(guard.name)
        if fn is None:
            logger.warning(
                "guard_no_evaluator",
                extra={"guard_name": guard.name},
            )
            return False
        try:
            return bool(fn(context))
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "guard_evaluation_error",
                extra={"guard_name": guard.name, "error": str(e)},
            )
            return False


def default_guard_executor() -> GuardExecutor:
    """Return a GuardExecutor with the purchase order evaluators registered."""
    ex = GuardExecutor()
    ex.register(HAS_LINE_ITEMS.name, _has_line_items)
    ex.register(POSITIVE_TOTAL.name, _positive_total)
    ex.register(SUPPLIER_SELECTED.name, _supplier_selected)
    ex.register(APPROVER_IDENTIFIED.name, _approver_identified)
    return ex


def _role_label(role: Role | str | None) -> str | None:
    resolved = coerce_role(role)
    if resolved is not None:
        return resolved.value
    return None if role is None else str(role)


def _emit_transition_trace(
    order: PurchaseOrder,
    target: POStatus | str,
    role: Role | str | None,
    outcome: TransitionOutcome,
    duration_ms: float,
) -> None:
    """Emit one structured record per evaluated transition request."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_PO_TRANSITION,
        "order_id": str(order.id),
        "po_number": order.po_number,
        "from_status": order.status.value,
        "to_status": target.value if isinstance(target, POStatus) else str(target),
        "role": _role_label(role),
        "allowed": outcome.is_allowed,
        "denial_codes": list(outcome.denial_codes),
        "warning_count": len(outcome.warnings),
        "duration_ms": round(duration_ms, 3),
    }
    if outcome.context is not None:
        record["transition_id"] = str(outcome.context.transition_id)
    for key, value in LogContext.get_all().items():
        record.setdefault(key, value)
    logger.info("po_transition_evaluated", extra=record)


class TransitionCoordinator:
    """Validates purchase order transition requests.

    Thin coordinator -- delegates legality to the state machine,
    authorization to the authorization engine and business preconditions
    to the GuardExecutor.
    """

    def __init__(
        self,
        state_machine: PurchaseOrderStateMachine = PURCHASE_ORDER_STATE_MACHINE,
        clock: Clock | None = None,
        guard_executor: GuardExecutor | None = None,
    ) -> None:
        self._state_machine = state_machine
        self._clock = clock or SystemClock()
        self._guard_executor = guard_executor or default_guard_executor()

    @property
    def state_machine(self) -> PurchaseOrderStateMachine:
        return self._state_machine

    def request_transition(
        self,
        order: PurchaseOrder,
        target: POStatus | str,
        role: Role | str | None,
        actor_id: UUID | str | None,
        reason: str | None = None,
    ) -> TransitionOutcome:
        """Evaluate moving ``order`` to ``target``.

        Steps (all run, denials accumulated):
            1. graph legality
            2. role/status authorization for the transition's action
            3. business guards, reason requirement and warnings
            4. audit context when nothing was denied
        """
        t0 = time.monotonic()
        resolved_target = POStatus.coerce(target)
        target_label = resolved_target.value if resolved_target is not None else str(target)

        denials: list[Denial] = []
        warnings: list[str] = []

        # 1. Legality
        if not self._state_machine.can_transition(order.status, target):
            denials.append(Denial(
                code=CODE_ILLEGAL_TRANSITION,
                message=f"illegal transition from {order.status.value} to {target_label}",
                field="status",
            ))

        transition = self._describe(order, resolved_target)

        # 2. Authorization
        action = transition.action if transition is not None else PurchaseOrderAction.EDIT
        decision = authorize(
            role,
            action,
            order,
            order.total if action is PurchaseOrderAction.APPROVE else None,
        )
        if not decision.allowed:
            denials.append(Denial(code=decision.code, message=decision.reason, field="role"))

        # 3. Business guards
        stripped_reason = reason.strip() if reason is not None else ""
        if transition is not None:
            guard_context = GuardContext(order=order, role=role, actor_id=actor_id)
            failures = (
                SUBMISSION_GUARD_FAILURES
                if resolved_target is POStatus.PENDING_APPROVAL
                else GUARD_FAILURES
            )
            for guard in transition.guards:
                if not self._guard_executor.evaluate(guard, guard_context):
                    failure = failures.get(guard.name)
                    if failure is None:
                        failure = GuardFailure("GUARD_FAILED", f"guard not satisfied: {guard.name}", "status")
                    denials.append(Denial(code=failure.code, message=failure.message, field=failure.field))

            if transition.triggers_inventory:
                warnings.append(WARNING_INVENTORY)
            if transition.requires_reason and not stripped_reason:
                denials.append(Denial(
                    code=CODE_REASON_REQUIRED,
                    message=MESSAGE_REASON_REQUIRED,
                    field="reason",
                ))
            if resolved_target is POStatus.CANCELLED:
                warnings.append(WARNING_CANCEL_FINAL)
            elif resolved_target is POStatus.CLOSED:
                warnings.append(WARNING_CLOSE_FINAL)

        # 4. Context
        context = None
        if not denials:
            context = TransitionContext(
                order_id=order.id,
                actor_id=actor_id,
                timestamp=self._clock.now(),
                reason=stripped_reason or None,
                metadata={
                    "role": _role_label(role),
                    "from_status": order.status.value,
                    "to_status": target_label,
                },
            )

        outcome = TransitionOutcome(
            order_id=order.id,
            from_status=order.status,
            to_status=resolved_target if resolved_target is not None else str(target),
            context=context,
            denials=tuple(denials),
            warnings=tuple(warnings),
        )
        _emit_transition_trace(order, target, role, outcome, (time.monotonic() - t0) * 1000)
        return outcome

    def available_transitions(
        self,
        order: PurchaseOrder,
        role: Role | str | None,
    ) -> tuple[POStatus, ...]:
        """Legal targets whose action the role may perform in the order's status.

        Business guards and reasons are not considered.
        """
        result = []
        for target in self._state_machine.valid_transitions(order.status):
            transition = self._state_machine.transition_for(order.status, target)
            action = transition.action if transition is not None else PurchaseOrderAction.EDIT
            amount = order.total if action is PurchaseOrderAction.APPROVE else None
            if authorize(role, action, order, amount).allowed:
                result.append(target)
        return tuple(result)

    def _describe(self, order: PurchaseOrder, target: POStatus | None) -> Transition | None:
        if target is None:
            return None
        declared = self._state_machine.transition_for(order.status, target)
        if declared is not None:
            return declared
        return describe_transition(order.status, target)
