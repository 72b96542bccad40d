"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write-side service in the kernel.  Concrete services receive a
    SQLAlchemy ``Session`` that they use via ``session.flush()``, never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or roll back themselves.  The caller
      (the rollover orchestrator, ``session_scope()`` or a test) owns
      commit/rollback, which is what makes a rollover all-or-nothing.

Failure modes:
    - A subclass that commits breaks the atomicity of the rollover unit
      of work: a failure in a later stage could no longer roll back the
      earlier ones.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from esg_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide query-only (read) methods -- those belong
          in ``esg_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
