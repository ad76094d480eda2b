"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer.  Concrete services receive a
    SQLAlchemy ``Session`` and a ``Clock``; they flush, never commit.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or rollback themselves.  The caller
      (EngagementOrchestrator or a test harness) owns commit/rollback.
    - Lost optimistic-lock races surface as OptimisticLockError, never as
      SQLAlchemy's StaleDataError.

Failure modes:
    - OptimisticLockError from ``_flush()`` when a versioned row changed
      under the caller.
"""

from abc import ABC
from datetime import datetime
from typing import Generic, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from marketplace_kernel.db.base import Base
from marketplace_kernel.domain.clock import Clock, SystemClock
from marketplace_kernel.exceptions import OptimisticLockError

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read models -- those belong in
          ``marketplace_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def _now(self) -> datetime:
        return self.clock.now_utc()

    def _touch(self, row: Base, now: datetime | None = None) -> None:
        """
        Stamp ``updated_at`` and force the row into the next flush.

        The versioned UPDATE then runs even when only child rows changed or
        the clock has not moved, so concurrent edits of one engagement
        always collide on its version.
        """
        row.updated_at = now or self._now()
        flag_modified(row, "updated_at")

    def _flush(self, entity_type: str = "Engagement", entity_id: object = None) -> None:
        """Flush pending changes, translating version conflicts."""
        try:
            self.session.flush()
        except StaleDataError as exc:
            raise OptimisticLockError(entity_type, str(entity_id)) from exc
