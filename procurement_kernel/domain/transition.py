"""
Transition result types (``procurement_kernel.domain.transition``).

Responsibility
--------------
Pure value objects produced by the transition coordinator: the audit
context attached to an allowed transition, the structured ``Denial``
records accumulated for a refused one, and the ``TransitionOutcome`` that
carries either.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from procurement_kernel.domain.purchase_order import POStatus

# Denial codes raised by the coordinator itself.  Authorization codes live
# in ``procurement_kernel.domain.authorization``.
CODE_ILLEGAL_TRANSITION = "ILLEGAL_TRANSITION"
CODE_NO_ITEMS = "NO_ITEMS"
CODE_INVALID_TOTAL = "INVALID_TOTAL"
CODE_NO_SUPPLIER = "NO_SUPPLIER"
CODE_NO_APPROVER = "NO_APPROVER"
CODE_REASON_REQUIRED = "REASON_REQUIRED"
CODE_ORDER_NOT_FOUND = "ORDER_NOT_FOUND"


@dataclass(frozen=True)
class Denial:
    """One reason a transition cannot proceed."""

    code: str
    message: str
    field: str = "status"


@dataclass(frozen=True)
class TransitionContext:
    """Audit record for a transition that passed every check.

    ``metadata`` always holds ``role``, ``from_status`` and ``to_status``.
    """

    order_id: UUID
    actor_id: UUID | str | None
    timestamp: datetime
    reason: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    transition_id: UUID = field(default_factory=uuid4)

    @property
    def from_status(self) -> POStatus:
        return POStatus(self.metadata["from_status"])

    @property
    def to_status(self) -> POStatus:
        return POStatus(self.metadata["to_status"])


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of evaluating one transition request.

    Exactly one of ``context`` (allowed) or a non-empty ``denials`` tuple
    (refused) is populated.  ``warnings`` never block.
    """

    order_id: UUID
    from_status: POStatus
    to_status: POStatus | str
    context: TransitionContext | None = None
    denials: tuple[Denial, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_allowed(self) -> bool:
        return not self.denials and self.context is not None

    @property
    def reasons(self) -> tuple[str, ...]:
        return tuple(d.message for d in self.denials)

    @property
    def denial_codes(self) -> tuple[str, ...]:
        return tuple(d.code for d in self.denials)
