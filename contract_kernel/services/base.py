"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write-side service in the kernel.  Services receive a SQLAlchemy
    ``Session`` that they use via ``session.flush()`` -- never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction (or a SAVEPOINT they open) and never commit or roll back
      the outer transaction.  The caller (WorkflowExecutor, session_scope,
      or a test harness) owns commit/rollback.
    - Database errors from collaborator writes surface as PersistenceError.
"""

from abc import ABC
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from contract_kernel.db.base import Base
from contract_kernel.exceptions import PersistenceError

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()`` on the outer transaction.

    Non-goals:
        - Does NOT provide query-only (read) methods -- those belong
          in ``contract_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _persistence(self, operation: str) -> Iterator[None]:
        """Translate SQLAlchemy failures inside the block into PersistenceError."""
        try:
            yield
        except SQLAlchemyError as exc:
            raise PersistenceError(operation, str(exc).splitlines()[0]) from exc
