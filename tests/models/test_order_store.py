"""
Tests for the SQLAlchemy persistence adapters (``procurement_kernel.services.order_store``).

Invariants tested:
- Orders round-trip through the ORM with their lines.
- apply_transition compare-and-swaps on status.
- Transition records are append-only.
- Executor + store + audit sink commit or roll back together.
- A failed bulk item rolls back to its savepoint; later items still apply.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from factories import FIXED_NOW, TEST_ACTOR_ID, make_line, make_order
from procurement_kernel.db.engine import session_scope
from procurement_kernel.domain.permissions import Role
from procurement_kernel.domain.ports import AuditSink, OrderLoader, TransitionApplier, UnitOfWork
from procurement_kernel.domain.purchase_order import POStatus
from procurement_kernel.domain.transition import TransitionContext
from procurement_kernel.exceptions import (
    ImmutabilityViolationError,
    OrderNotFoundError,
    StatusConflictError,
)
from procurement_kernel.models.purchase_order import POTransitionRecordModel
from procurement_kernel.services.order_store import SqlAlchemyAuditSink, SqlAlchemyOrderStore
from procurement_services.approval_queue import ApprovalQueue
from procurement_services.transition_coordinator import TransitionCoordinator
from procurement_services.transition_executor import TransitionExecutor


def _context(order, to_status, reason=None):
    return TransitionContext(
        order_id=order.id,
        actor_id=TEST_ACTOR_ID,
        timestamp=FIXED_NOW,
        reason=reason,
        metadata={"role": "admin", "from_status": order.status.value, "to_status": to_status.value},
    )


class FlakyAuditSink:
    """Delegates to a real sink; fails for the orders in ``fail_for``."""

    def __init__(self, sink, fail_for=(), duplicate_for=()):
        self._sink = sink
        self._fail_for = set(fail_for)
        self._duplicate_for = set(duplicate_for)

    def record(self, context):
        if context.order_id in self._fail_for:
            raise RuntimeError("audit sink down")
        self._sink.record(context)
        if context.order_id in self._duplicate_for:
            # Same transition_id twice violates uq_po_transition_id.
            self._sink.record(context)


@pytest.fixture
def store(session):
    return SqlAlchemyOrderStore(session)


@pytest.fixture
def audit_sink(session):
    return SqlAlchemyAuditSink(session)


class TestProtocols:

    def test_adapters_satisfy_protocols(self, store, audit_sink):
        assert isinstance(store, OrderLoader)
        assert isinstance(store, TransitionApplier)
        assert isinstance(store, UnitOfWork)
        assert isinstance(audit_sink, AuditSink)


class TestLoading:

    def test_save_and_get_round_trip(self, store):
        lines = (make_line(quantity=2, unit_cost="12.50", sku="A-1"), make_line(quantity=1, unit_cost="5", sku="B-2"))
        order = make_order(total="30", lines=lines, supplier_name="Globex")
        store.save(order, TEST_ACTOR_ID)

        loaded = store.get_order(order.id)

        assert loaded.po_number == order.po_number
        assert loaded.supplier_id == order.supplier_id
        assert loaded.supplier_name == "Globex"
        assert loaded.total == Decimal("30")
        assert loaded.status is POStatus.PENDING_APPROVAL
        assert loaded.created_at == order.created_at
        assert [line.sku for line in loaded.lines] == ["A-1", "B-2"]
        assert loaded.lines[0].line_total == Decimal("25")
        assert loaded.created_by == TEST_ACTOR_ID

    def test_get_missing_returns_none(self, store):
        assert store.get_order(uuid4()) is None

    def test_load_orders_for_approval(self, store):
        draft = make_order(status=POStatus.DRAFT, age_days=2)
        pending = make_order(status=POStatus.PENDING_APPROVAL, age_days=1)
        approved = make_order(status=POStatus.APPROVED)
        for order in (draft, pending, approved):
            store.save(order, TEST_ACTOR_ID)

        loaded = store.load_orders_for_approval()

        assert [o.id for o in loaded] == [draft.id, pending.id]

    def test_load_orders_by_status(self, store):
        approved = make_order(status=POStatus.APPROVED)
        store.save(approved, TEST_ACTOR_ID)
        store.save(make_order(status=POStatus.DRAFT), TEST_ACTOR_ID)
        assert [o.id for o in store.load_orders_by_status(POStatus.APPROVED)] == [approved.id]


class TestApplyTransition:

    def test_compare_and_swap_succeeds(self, store):
        order = make_order(status=POStatus.PENDING_APPROVAL)
        store.save(order, TEST_ACTOR_ID)

        updated = store.apply_transition(
            order.id, POStatus.PENDING_APPROVAL, POStatus.APPROVED, _context(order, POStatus.APPROVED),
        )

        assert updated.status is POStatus.APPROVED
        assert store.get_order(order.id).status is POStatus.APPROVED

    def test_stale_expected_status_conflicts(self, store):
        order = make_order(status=POStatus.PENDING_APPROVAL)
        store.save(order, TEST_ACTOR_ID)
        store.apply_transition(order.id, POStatus.PENDING_APPROVAL, POStatus.CANCELLED, _context(order, POStatus.CANCELLED, "dup"))

        with pytest.raises(StatusConflictError) as exc_info:
            store.apply_transition(order.id, POStatus.PENDING_APPROVAL, POStatus.APPROVED, _context(order, POStatus.APPROVED))

        assert exc_info.value.actual_status == "cancelled"
        assert store.get_order(order.id).status is POStatus.CANCELLED

    def test_missing_order(self, store):
        order = make_order()
        with pytest.raises(OrderNotFoundError):
            store.apply_transition(order.id, POStatus.PENDING_APPROVAL, POStatus.APPROVED, _context(order, POStatus.APPROVED))


class TestAuditSink:

    def test_record_and_history(self, store, audit_sink):
        order = make_order()
        store.save(order, TEST_ACTOR_ID)
        context = _context(order, POStatus.APPROVED)

        audit_sink.record(context)

        history = audit_sink.history(order.id)
        assert len(history) == 1
        assert history[0].transition_id == context.transition_id
        assert history[0].actor_id == TEST_ACTOR_ID
        assert history[0].metadata == context.metadata
        assert history[0].timestamp == FIXED_NOW

    def test_records_are_immutable(self, session, store, audit_sink):
        order = make_order()
        store.save(order, TEST_ACTOR_ID)
        audit_sink.record(_context(order, POStatus.APPROVED))

        record = session.execute(select(POTransitionRecordModel)).scalar_one()
        record.reason = "rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestEndToEnd:

    def test_bulk_approve_through_database(self, store, audit_sink, deterministic_clock):
        orders = [make_order(total="5000"), make_order(total="150000")]
        for order in orders:
            store.save(order, TEST_ACTOR_ID)

        coordinator = TransitionCoordinator(clock=deterministic_clock)
        executor = TransitionExecutor(store, store, coordinator, audit_sink)
        queue = ApprovalQueue(store, executor=executor, clock=deterministic_clock)

        result = queue.bulk_approve([o.id for o in orders], Role.MANAGER, TEST_ACTOR_ID)

        assert result.success_count == 1
        assert store.get_order(orders[0].id).status is POStatus.APPROVED
        assert store.get_order(orders[1].id).status is POStatus.PENDING_APPROVAL
        assert len(audit_sink.history(orders[0].id)) == 1
        assert [o.id for o in queue.orders] == [orders[1].id]

    def test_session_scope_rolls_back_on_error(self, db_engine):
        order = make_order()
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                SqlAlchemyOrderStore(session).save(order, TEST_ACTOR_ID)
                raise RuntimeError("abort")

        with session_scope() as session:
            assert SqlAlchemyOrderStore(session).get_order(order.id) is None

    def test_session_scope_commits(self, db_engine):
        order = make_order()
        with session_scope() as session:
            SqlAlchemyOrderStore(session).save(order, TEST_ACTOR_ID)

        with session_scope() as session:
            assert SqlAlchemyOrderStore(session).get_order(order.id).po_number == order.po_number


class TestTransactionScope:

    def test_exception_inside_transaction_undoes_apply(self, store):
        order = make_order(status=POStatus.PENDING_APPROVAL)
        store.save(order, TEST_ACTOR_ID)

        with pytest.raises(RuntimeError):
            with store.transaction():
                store.apply_transition(
                    order.id, POStatus.PENDING_APPROVAL, POStatus.APPROVED, _context(order, POStatus.APPROVED),
                )
                raise RuntimeError("abort")

        assert store.get_order(order.id).status is POStatus.PENDING_APPROVAL

    def test_completed_transaction_keeps_apply(self, store):
        order = make_order(status=POStatus.PENDING_APPROVAL)
        store.save(order, TEST_ACTOR_ID)

        with store.transaction():
            store.apply_transition(
                order.id, POStatus.PENDING_APPROVAL, POStatus.APPROVED, _context(order, POStatus.APPROVED),
            )

        assert store.get_order(order.id).status is POStatus.APPROVED

    def test_audit_failure_in_bulk_leaves_order_pending(self, store, audit_sink, deterministic_clock):
        failing, passing = make_order(total="5000"), make_order(total="6000")
        for order in (failing, passing):
            store.save(order, TEST_ACTOR_ID)

        sink = FlakyAuditSink(audit_sink, fail_for=[failing.id])
        executor = TransitionExecutor(store, store, TransitionCoordinator(clock=deterministic_clock), sink)
        queue = ApprovalQueue(store, executor=executor, clock=deterministic_clock)

        result = queue.bulk_approve([failing.id, passing.id], Role.MANAGER, TEST_ACTOR_ID)

        assert result.success_count == 1
        assert result.failure_count == 1
        assert result.items[0].error_code == "RuntimeError"
        assert store.get_order(failing.id).status is POStatus.PENDING_APPROVAL
        assert audit_sink.history(failing.id) == ()
        assert store.get_order(passing.id).status is POStatus.APPROVED
        assert len(audit_sink.history(passing.id)) == 1

    def test_database_error_does_not_poison_later_items(self, store, audit_sink, deterministic_clock):
        broken, later = make_order(total="5000"), make_order(total="6000")
        for order in (broken, later):
            store.save(order, TEST_ACTOR_ID)

        sink = FlakyAuditSink(audit_sink, duplicate_for=[broken.id])
        executor = TransitionExecutor(store, store, TransitionCoordinator(clock=deterministic_clock), sink)
        queue = ApprovalQueue(store, executor=executor, clock=deterministic_clock)

        result = queue.bulk_approve([broken.id, later.id], Role.MANAGER, TEST_ACTOR_ID)

        assert [item.succeeded for item in result.items] == [False, True]
        assert "UNIQUE constraint failed" in result.items[0].error
        assert store.get_order(broken.id).status is POStatus.PENDING_APPROVAL
        assert audit_sink.history(broken.id) == ()
        assert store.get_order(later.id).status is POStatus.APPROVED
        assert len(audit_sink.history(later.id)) == 1

    def test_rollback_is_logged(self, store, captured_logs):
        with pytest.raises(RuntimeError):
            with store.transaction():
                raise RuntimeError("abort")

        records = [r for r in captured_logs() if r["message"] == "po_transition_rolled_back"]
        assert len(records) == 1
        assert records[0]["error_type"] == "RuntimeError"
