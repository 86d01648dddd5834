"""
BaseService -- abstract base for the SQLAlchemy persistence adapters.

Responsibility:
    Provides the common constructor and session-handling contract for
    every session-backed adapter in the kernel.  Adapters receive a
    SQLAlchemy ``Session`` that they use via ``session.flush()`` -- never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: adapters flush within the caller's transaction
    and never commit or rollback themselves.  The caller (``session_scope``
    or the test harness) owns commit/rollback, so an applied status change
    and its audit record commit or roll back together.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from procurement_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for session-backed adapters.

    Guarantees:
        - The adapter never calls ``session.commit()`` or
          ``session.rollback()``.
    """

    def __init__(self, session: Session):
        """
        Args:
            session: SQLAlchemy session for database operations.
        """
        self.session = session
