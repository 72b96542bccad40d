"""
SequenceService -- gapless, monotonic counters for the audit chain.

Responsibility:
    Hands out the ``seq`` of every AuditEvent from a named counter row.
    The row is read ``FOR UPDATE`` so two writers can never draw the same
    value, and the value only becomes visible when the caller commits.

Architecture position:
    Kernel > Services.  Used only by AuditorService.

Invariants enforced:
    - Values of one counter strictly increase.
    - The counter row, never ``max(seq) + 1``, decides the next value.

Failure modes:
    - IntegrityError when two sessions create the same counter at once is
      absorbed: the loser rolls back its savepoint and increments the
      winner's row.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from esg_kernel.db.base import Base
from esg_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """Current value of one named sequence."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SequenceService:
    """
    Draws values from named counters inside the caller's transaction.

    Non-goals:
        - Does NOT commit.  A rolled back transaction gives its values back.
    """

    AUDIT_EVENT = "audit_event"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, name: str) -> SequenceCounter | None:
        stmt = (
            select(SequenceCounter)
            .where(SequenceCounter.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def _create(self, name: str) -> SequenceCounter | None:
        """Insert a fresh counter at 0; None when another session won the race."""
        savepoint = self._session.begin_nested()
        counter = SequenceCounter(name=name, current_value=0)
        self._session.add(counter)
        try:
            self._session.flush()
        except IntegrityError:
            savepoint.rollback()
            logger.debug("sequence_counter_race_retry", extra={"sequence_name": name})
            return None
        savepoint.commit()
        return counter

    def next_value(self, sequence_name: str) -> int:
        """
        Increment ``sequence_name`` and return the new value (first is 1).

        The counter row stays locked until the caller's transaction ends.
        """
        counter = self._locked_counter(sequence_name)
        if counter is None:
            counter = self._create(sequence_name) or self._locked_counter(sequence_name)
        if counter is None:
            raise RuntimeError(f"sequence counter {sequence_name!r} could not be created")

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value
