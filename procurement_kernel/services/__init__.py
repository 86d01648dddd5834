"""Session-backed reference adapters for the collaborator protocols."""

from procurement_kernel.services.base import BaseService
from procurement_kernel.services.order_store import (
    SqlAlchemyAuditSink,
    SqlAlchemyOrderStore,
)

__all__ = [
    "BaseService",
    "SqlAlchemyAuditSink",
    "SqlAlchemyOrderStore",
]
