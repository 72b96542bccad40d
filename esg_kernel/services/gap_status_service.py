"""
GapStatusService -- executes gap-status transitions on data points.

Responsibility:
    Moves a data point through the gap-status lifecycle declared in
    ``esg_kernel.domain.gap_status``: validates the request, applies the
    transition's side effects to the data point, appends the history entry
    and records the audit event.

Architecture position:
    Kernel > Services -- imperative shell around the pure transition table.

Invariants enforced:
    - Per-data-point serialization: an in-process keyed lock plus
      ``SELECT ... FOR UPDATE`` on the data point row.
    - Optimistic check: the caller's ``expected_from_status`` must equal the
      stored status.
    - Exactly one GapStatusHistoryEntry and one audit event per executed
      transition; none for a rejected request.
    - Data points of a LOCKED period never transition.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - DataPointNotFoundError: unknown data point id.
    - PeriodLockedError: the data point's period is locked.
    - GapStatusConflictError: expected from-status is stale.
    - InvalidGapStatusTransitionError: pair not in the table.
    - GapTransitionValidationError: required field blank.

Audit relevance:
    The history entry carries the actor, the actor's display name at the
    time of the change, the change note and, for ``estimated -> provided``,
    the estimate that was replaced.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from esg_kernel.domain.clock import Clock, SystemClock
from esg_kernel.domain.collaborators import StaticUserRegistry, UserRegistry
from esg_kernel.domain.dtos import DataPointInfo, GapStatusHistoryInfo
from esg_kernel.domain.gap_status import (
    APPLY_ESTIMATE,
    APPLY_VALUE,
    CLEAR_ESTIMATE,
    CLEAR_VALUE,
    FLAG_MISSING,
    SNAPSHOT_ESTIMATE,
    GapStatus,
    GapTransitionRequest,
    validate_request,
)
from esg_kernel.domain.values import CompletenessStatus, EstimateFields, InformationType
from esg_kernel.exceptions import (
    DataPointNotFoundError,
    GapStatusConflictError,
    PeriodLockedError,
)
from esg_kernel.logging_config import LogContext, get_logger
from esg_kernel.models.data_point import DataPoint, GapStatusHistoryEntry
from esg_kernel.services.auditor_service import AuditorService
from esg_kernel.services.base import BaseService
from esg_kernel.utils.concurrency import KeyedLockRegistry

logger = get_logger("services.gap_status")

# Shared by every GapStatusService in the process unless one is injected
_DEFAULT_LOCKS = KeyedLockRegistry()


class GapStatusService(BaseService[DataPoint]):
    """
    Service for gap-status transitions.

    Contract:
        ``transition()`` either applies the whole transition (data point
        fields, history entry, audit event) within the caller's transaction
        or raises a typed error having changed nothing.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT check who may transition (authorization is external).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auditor: AuditorService | None = None,
        user_registry: UserRegistry | None = None,
        locks: KeyedLockRegistry | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._auditor = auditor or AuditorService(session, self._clock)
        self._users = user_registry or StaticUserRegistry()
        self._locks = locks or _DEFAULT_LOCKS

    def transition(
        self,
        data_point_id: UUID,
        expected_from_status: GapStatus | None,
        target_status: GapStatus,
        transitioned_by: str,
        change_note: str | None = None,
        estimate: EstimateFields | None = None,
        value: str | None = None,
    ) -> DataPointInfo:
        """
        Move a data point to ``target_status``.

        Args:
            data_point_id: Data point to transition.
            expected_from_status: The status the caller believes is stored
                (None for a never-flagged data point).
            target_status: Requested status.
            transitioned_by: Acting user id.
            change_note: Free-text reason; required when reopening.
            estimate: Estimate fields; required for ``missing -> estimated``.
            value: The verified value; required for ``-> provided``.

        Returns:
            The updated data point.
        """
        request = GapTransitionRequest(
            data_point_id=data_point_id,
            expected_from_status=(
                GapStatus(expected_from_status) if expected_from_status else None
            ),
            target_status=GapStatus(target_status),
            transitioned_by=transitioned_by,
            change_note=change_note,
            estimate=estimate,
            value=value,
        )

        with LogContext.bind(data_point_id=str(data_point_id), actor_id=transitioned_by):
            with self._locks.hold(data_point_id):
                return self._execute(request)

    def _execute(self, request: GapTransitionRequest) -> DataPointInfo:
        data_point = self._get_for_update(request.data_point_id)

        if data_point.section.period.is_locked:
            raise PeriodLockedError(
                str(data_point.section.period_id), "transition gap status"
            )

        current = data_point.gap_status
        if current != request.expected_from_status:
            logger.warning(
                "gap_status_conflict",
                extra={
                    "expected_status": (
                        request.expected_from_status.value
                        if request.expected_from_status else None
                    ),
                    "actual_status": current.value if current else None,
                },
            )
            raise GapStatusConflictError(
                str(data_point.id),
                request.expected_from_status.value if request.expected_from_status else None,
                current.value if current else None,
            )

        transition = validate_request(request, current)

        estimate_snapshot = None
        for effect in transition.side_effects:
            if effect == SNAPSHOT_ESTIMATE:
                estimate_snapshot = data_point.estimate.snapshot()
            self._apply_effect(data_point, effect, request, estimate_snapshot)

        data_point.gap_status = request.target_status
        data_point.updated_by = request.transitioned_by
        self.session.flush()

        self.session.add(
            GapStatusHistoryEntry(
                data_point_id=data_point.id,
                from_status=current,
                to_status=request.target_status,
                transitioned_by=request.transitioned_by,
                transitioned_by_name=self._users.get_name(request.transitioned_by),
                transitioned_at=self._clock.now(),
                change_note=request.change_note,
                estimate_snapshot=estimate_snapshot,
                sequence=self._next_sequence(data_point.id),
            )
        )
        self.session.flush()

        self._auditor.record_gap_status_transition(
            data_point_id=data_point.id,
            from_status=current.value if current else None,
            to_status=request.target_status.value,
            actor_id=request.transitioned_by,
            change_note=request.change_note,
        )

        logger.info(
            "gap_status_transitioned",
            extra={
                "from_status": current.value if current else None,
                "to_status": request.target_status.value,
                "action": transition.action,
            },
        )

        return DataPointInfo.from_model(data_point)

    @staticmethod
    def _apply_effect(
        data_point: DataPoint,
        effect: str,
        request: GapTransitionRequest,
        estimate_snapshot: dict | None,
    ) -> None:
        if effect == FLAG_MISSING:
            data_point.is_missing = True
            data_point.completeness_status = CompletenessStatus.MISSING
            if request.change_note:
                data_point.missing_reason = request.change_note
        elif effect == APPLY_ESTIMATE:
            data_point.apply_estimate(request.estimate)
            data_point.information_type = InformationType.ESTIMATE
            data_point.completeness_status = CompletenessStatus.INCOMPLETE
            data_point.is_missing = False
        elif effect == SNAPSHOT_ESTIMATE:
            data_point.previous_estimate_snapshot = estimate_snapshot
        elif effect == CLEAR_ESTIMATE:
            data_point.clear_estimate()
        elif effect == APPLY_VALUE:
            data_point.value = request.value
            data_point.information_type = InformationType.FACT
            data_point.completeness_status = CompletenessStatus.COMPLETE
            data_point.is_missing = False
            data_point.missing_reason = None
        elif effect == CLEAR_VALUE:
            data_point.value = None
        else:
            raise ValueError(f"Unknown gap-status side effect: {effect}")

    def get_history(self, data_point_id: UUID) -> list[GapStatusHistoryInfo]:
        """Executed transitions of a data point, oldest first."""
        rows = self.session.execute(
            select(GapStatusHistoryEntry)
            .where(GapStatusHistoryEntry.data_point_id == data_point_id)
            .order_by(GapStatusHistoryEntry.sequence)
        ).scalars().all()
        return [GapStatusHistoryInfo.from_model(r) for r in rows]

    def _next_sequence(self, data_point_id: UUID) -> int:
        current = self.session.execute(
            select(func.max(GapStatusHistoryEntry.sequence))
            .where(GapStatusHistoryEntry.data_point_id == data_point_id)
        ).scalar()
        return 0 if current is None else current + 1

    def _get_for_update(self, data_point_id: UUID) -> DataPoint:
        data_point = self.session.execute(
            select(DataPoint)
            .where(DataPoint.id == data_point_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if data_point is None:
            raise DataPointNotFoundError(str(data_point_id))
        return data_point
