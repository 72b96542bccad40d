"""
AuditorService -- the hash-chained audit trail of the ESG kernel.

Responsibility:
    Appends one ``AuditEvent`` per auditable state change (period created
    or locked, rollover completed, gap status moved, rollover rule saved or
    deleted) and lets an auditor verify the whole chain or read the events
    of a single entity.

Architecture position:
    Kernel > Services.  Called by PeriodService, RolloverRuleService,
    GapStatusService and the rollover ReconciliationReporter, always inside
    the caller's transaction.

Invariants enforced:
    - ``seq`` comes from SequenceService's locked counter row.
    - Each event's ``prev_hash`` is the ``hash`` of the event before it;
      the first event has no predecessor.
    - Events are append-only (ORM listener on ``AuditEvent``).

Failure modes:
    - AuditChainBrokenError from ``validate_chain()`` naming the first
      event whose payload hash, event hash or predecessor link is wrong.

Audit relevance:
    Every rollover, rule change and gap transition is provable from this
    chain alone.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from esg_kernel.domain.clock import Clock, SystemClock
from esg_kernel.exceptions import AuditChainBrokenError
from esg_kernel.logging_config import get_logger
from esg_kernel.models.audit_event import AuditAction, AuditEvent
from esg_kernel.services.sequence_service import SequenceService
from esg_kernel.utils.hashing import hash_audit_event, hash_payload

logger = get_logger("services.auditor")

# Entity types written into the chain
PERIOD_ENTITY = "ReportingPeriod"
ROLLOVER_ENTITY = "Rollover"
DATA_POINT_ENTITY = "DataPoint"
RULE_ENTITY = "RolloverRule"


@dataclass(frozen=True)
class AuditTraceEntry:
    """One event of an entity's trace."""

    seq: int
    action: AuditAction
    occurred_at: datetime
    actor_id: str
    payload: dict[str, Any]
    hash: str

    @classmethod
    def from_event(cls, event: AuditEvent) -> "AuditTraceEntry":
        return cls(
            seq=event.seq,
            action=event.action,
            occurred_at=event.occurred_at,
            actor_id=event.actor_id,
            payload=event.payload or {},
            hash=event.hash,
        )


@dataclass(frozen=True)
class AuditTrace:
    """Every audit event of one entity, oldest first."""

    entity_type: str
    entity_id: UUID
    entries: tuple[AuditTraceEntry, ...]

    @property
    def is_empty(self) -> bool:
        return not self.entries

    @property
    def actions(self) -> tuple[AuditAction, ...]:
        return tuple(entry.action for entry in self.entries)

    @property
    def last_action(self) -> AuditAction | None:
        return self.entries[-1].action if self.entries else None


def _expected_hash(event: AuditEvent) -> str:
    return hash_audit_event(
        entity_type=event.entity_type,
        entity_id=str(event.entity_id),
        action=event.action.value,
        payload_hash=event.payload_hash,
        prev_hash=event.prev_hash,
    )


def _first_break(events: Sequence[AuditEvent]) -> tuple[AuditEvent, str, str] | None:
    """(event, expected, actual) for the first broken link, or None."""
    predecessor_hash: str | None = None
    for event in events:
        if event.prev_hash != predecessor_hash:
            return event, predecessor_hash or "None", event.prev_hash or "None"
        payload_hash = hash_payload(event.payload or {})
        if event.payload_hash != payload_hash:
            return event, payload_hash, event.payload_hash
        event_hash = _expected_hash(event)
        if event.hash != event_hash:
            return event, event_hash, event.hash
        predecessor_hash = event.hash
    return None


class AuditorService:
    """
    Appends and verifies hash-chained audit events.

    Contract:
        Each ``record_*`` method flushes exactly one ``AuditEvent`` linked
        to the current chain head.

    Guarantees:
        - ``hash`` covers entity type, entity id, action, payload hash and
          the predecessor's hash, so editing any stored field is caught by
          ``validate_chain()``.

    Non-goals:
        - Does NOT call ``session.commit()``; the caller owns the
          transaction.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequences = SequenceService(session)

    def _chain_head(self) -> str | None:
        return self._session.execute(
            select(AuditEvent.hash).order_by(AuditEvent.seq.desc()).limit(1)
        ).scalar_one_or_none()

    def _append(
        self,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        actor_id: str,
        payload: dict[str, Any],
    ) -> AuditEvent:
        # Taking the sequence first locks the counter row, which keeps the
        # chain head stable until this transaction ends.
        seq = self._sequences.next_value(SequenceService.AUDIT_EVENT)
        prev_hash = self._chain_head()
        payload_hash = hash_payload(payload)

        event = AuditEvent(
            seq=seq,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            occurred_at=self._clock.now(),
            payload=payload,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
        )
        event.hash = _expected_hash(event)
        self._session.add(event)
        self._session.flush()

        logger.info(
            "audit_event_created",
            extra={
                "seq": seq,
                "action": action.value,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
            },
        )
        return event

    # Periods

    def record_period_created(
        self,
        period_id: UUID,
        name: str,
        organization_id: str,
        actor_id: str,
        rolled_over_from_id: UUID | None = None,
    ) -> AuditEvent:
        """Record a new reporting period, manual or produced by a rollover."""
        payload: dict[str, Any] = {"name": name, "organization_id": organization_id}
        if rolled_over_from_id is not None:
            payload["rolled_over_from_id"] = str(rolled_over_from_id)
        return self._append(
            PERIOD_ENTITY, period_id, AuditAction.PERIOD_CREATED, actor_id, payload
        )

    def record_period_locked(
        self,
        period_id: UUID,
        name: str,
        integrity_hash: str,
        actor_id: str,
    ) -> AuditEvent:
        return self._append(
            PERIOD_ENTITY,
            period_id,
            AuditAction.PERIOD_LOCKED,
            actor_id,
            {"name": name, "integrity_hash": integrity_hash},
        )

    # Rollovers

    def record_rollover_completed(
        self,
        rollover_id: UUID,
        source_period_id: UUID,
        target_period_id: UUID,
        counts: dict[str, int],
        actor_id: str,
    ) -> AuditEvent:
        """
        Record a completed rollover.

        ``rollover_id`` is the id of the RolloverAuditLog written in the
        same transaction, so the event and the log row join on it.
        """
        return self._append(
            ROLLOVER_ENTITY,
            rollover_id,
            AuditAction.ROLLOVER_COMPLETED,
            actor_id,
            {
                "source_period_id": str(source_period_id),
                "target_period_id": str(target_period_id),
                "counts": dict(counts),
            },
        )

    # Gap status

    def record_gap_status_transition(
        self,
        data_point_id: UUID,
        from_status: str | None,
        to_status: str,
        actor_id: str,
        change_note: str | None = None,
    ) -> AuditEvent:
        return self._append(
            DATA_POINT_ENTITY,
            data_point_id,
            AuditAction.GAP_STATUS_TRANSITIONED,
            actor_id,
            {"from_status": from_status, "to_status": to_status, "change_note": change_note},
        )

    # Rule registry

    def record_rollover_rule_saved(
        self,
        rule_id: UUID,
        data_type: str,
        rule_type: str,
        version: int,
        actor_id: str,
    ) -> AuditEvent:
        return self._append(
            RULE_ENTITY,
            rule_id,
            AuditAction.ROLLOVER_RULE_SAVED,
            actor_id,
            {"data_type": data_type, "rule_type": rule_type, "version": version},
        )

    def record_rollover_rule_deleted(
        self,
        rule_id: UUID,
        data_type: str,
        version: int,
        actor_id: str,
    ) -> AuditEvent:
        return self._append(
            RULE_ENTITY,
            rule_id,
            AuditAction.ROLLOVER_RULE_DELETED,
            actor_id,
            {"data_type": data_type, "version": version},
        )

    # Verification

    def validate_chain(self) -> bool:
        """
        Walk the chain in ``seq`` order and recompute every link.

        Returns:
            True when the chain is intact (an empty chain is intact).

        Raises:
            AuditChainBrokenError: At the first event whose predecessor
                link, payload hash or event hash does not match.
        """
        events = self._session.execute(
            select(AuditEvent).order_by(AuditEvent.seq)
        ).scalars().all()

        broken = _first_break(events)
        if broken is not None:
            event, expected, actual = broken
            logger.critical(
                "audit_chain_broken",
                extra={"seq": event.seq, "audit_event_id": str(event.id)},
            )
            raise AuditChainBrokenError(str(event.id), expected, actual)

        logger.info("audit_chain_valid", extra={"event_count": len(events)})
        return True

    def get_trace(self, entity_type: str, entity_id: UUID) -> AuditTrace:
        """All events recorded for one entity, in ``seq`` order."""
        events = self._session.execute(
            select(AuditEvent)
            .where(
                AuditEvent.entity_type == entity_type,
                AuditEvent.entity_id == entity_id,
            )
            .order_by(AuditEvent.seq)
        ).scalars().all()
        return AuditTrace(
            entity_type=entity_type,
            entity_id=entity_id,
            entries=tuple(AuditTraceEntry.from_event(e) for e in events),
        )
