"""
esg_services.rollover.orchestrator -- Period rollover unit of work.

Responsibility:
    Carry a reporting period forward into a new period as one atomic
    operation: validate the request, take the per-source-period lock,
    stage the target period, map sections, copy content, record the
    reconciliation, and publish the target by activating it.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes PeriodService, RolloverRuleService and AuditorService from
    the kernel, CatalogMapper and RuleResolver from esg_engines, and the
    ContentCopier, OwnershipValidator and ReconciliationReporter beside it.

Rollover flow:
    rollover(request)
      1. Validate options, target period, source period and manual mapping
         targets (nothing written yet)
      2. Acquire the source period lock (lock_timeout_seconds)
      3. Check the target name inside the lock
      4. SAVEPOINT
           create target period in STAGING, seed sections from catalog
           map sections (CatalogMapper), resolve rules (RuleResolver)
           copy content (ContentCopier)
           write audit log + reconciliation (ReconciliationReporter)
           activate target period (last write)
      5. Release the savepoint, commit when auto_commit=True
      6. Release the lock

Invariants enforced:
    - Success is never partial: any failure rolls the savepoint back, so
      no staged period, section, data point or record survives.
    - The target period is invisible (STAGING) until the final write.
    - Rollovers of the same source period are serialized; rollovers of
      different sources run concurrently.
    - A second rollover to the same target name is rejected, never
      duplicated.
    - No automatic retries.

Failure modes:
    - REJECTED: a RolloverValidationError before any write, a name
      collision, or lock timeout (ROLLOVER_IN_PROGRESS).
    - CANCELLED: the cancellation token fired or the deadline passed.
    - FAILED: anything else; the exception code (or type name) is
      reported as ``error_code``.

Audit relevance:
    Every invocation is logged with correlation_id, rollover_id, actor_id
    and timing.  A completed rollover leaves a RolloverAuditLog, a
    RolloverReconciliationRecord and a ROLLOVER_COMPLETED audit event.
"""

from __future__ import annotations

import time
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from esg_config.schema import RolloverSettings
from esg_engines.rollover import (
    CatalogMapper,
    CatalogMappingResult,
    RuleResolver,
    SourceSectionRef,
    TargetSectionRef,
)
from esg_kernel.domain.clock import Clock, SystemClock
from esg_kernel.domain.collaborators import (
    CatalogRegistry,
    StaticUserRegistry,
    UserRegistry,
)
from esg_kernel.domain.dtos import CatalogItemInfo
from esg_kernel.domain.values import PeriodStatus
from esg_kernel.exceptions import (
    ManualMappingTargetNotFoundError,
    PeriodNameCollisionError,
    RolloverCancelledError,
    RolloverInProgressError,
    RolloverValidationError,
    SourcePeriodNotFoundError,
    SourcePeriodNotReadyError,
    TargetPeriodNameCollisionError,
)
from esg_kernel.logging_config import LogContext, get_logger
from esg_kernel.models.data_point import DataPoint
from esg_kernel.models.reporting_period import ReportingPeriod
from esg_kernel.models.section import ReportSection
from esg_kernel.selectors.catalog_selector import SqlCatalogRegistry
from esg_kernel.services.auditor_service import AuditorService
from esg_kernel.services.period_service import PeriodService
from esg_kernel.services.rollover_rule_service import RolloverRuleService
from esg_kernel.utils.concurrency import CancellationToken, KeyedLockRegistry
from esg_services.rollover._rollover_types import (
    RolloverRequest,
    RolloverResult,
    RolloverStatus,
)
from esg_services.rollover.content_copier import ContentCopier
from esg_services.rollover.ownership_validator import OwnershipValidator
from esg_services.rollover.reconciliation_reporter import ReconciliationReporter

logger = get_logger("services.rollover")

# Shared by every orchestrator in the process unless one is injected
_SOURCE_LOCKS = KeyedLockRegistry()


def _error_details(exc: Exception) -> dict[str, Any]:
    details: dict[str, Any] = {}
    for key, value in vars(exc).items():
        if isinstance(value, (tuple, list)):
            details[key] = [str(v) for v in value]
        elif value is None or isinstance(value, (str, int, float, bool)):
            details[key] = value
        else:
            details[key] = str(value)
    return details


class RolloverOrchestrator:
    """
    Runs period rollovers.

    Contract:
        ``rollover()`` returns a RolloverResult for every expected outcome;
        it raises only when logging or the final commit itself fails.

    Guarantees:
        - Transaction safety: commit on success, rollback on failure (when
          auto_commit=True).  With auto_commit=False only the rollover's
          savepoint is rolled back and the caller owns the transaction.
        - Deterministic: the same source, request and clock produce the
          same target content.

    Non-goals:
        - Does NOT retry.
        - Does NOT check whether the performer may roll over
          (authorization is external).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        user_registry: UserRegistry | None = None,
        catalog_registry: CatalogRegistry | None = None,
        settings: RolloverSettings | None = None,
        locks: KeyedLockRegistry | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._users = user_registry or StaticUserRegistry()
        self._catalog = catalog_registry or SqlCatalogRegistry(session)
        self._settings = settings or RolloverSettings()
        self._locks = locks or _SOURCE_LOCKS
        self._auto_commit = auto_commit

        self._auditor = AuditorService(session, self._clock)
        self._periods = PeriodService(session, self._clock, self._auditor)
        self._rules = RolloverRuleService(session, clock=self._clock, auditor=self._auditor)
        self._mapper = CatalogMapper()
        self._reporter = ReconciliationReporter(session, self._clock, self._auditor)

    def rollover(self, request: RolloverRequest) -> RolloverResult:
        """
        Roll ``request.source_period_id`` over into a new period.

        Postconditions:
            - COMPLETED: the target period is ACTIVE and, when
              auto_commit=True, committed together with all carried
              content, the audit log and the reconciliation.
            - Any other status: nothing the rollover wrote remains.
        """
        rollover_id = uuid4()

        with LogContext.bind(
            correlation_id=str(uuid4()),
            rollover_id=str(rollover_id),
            actor_id=request.performed_by,
            period_id=str(request.source_period_id),
        ):
            logger.info(
                "rollover_started",
                extra={
                    "target_name": request.target.name,
                    "options": request.options.to_dict(),
                    "rule_overrides": len(request.rule_overrides),
                    "manual_mappings": len(request.manual_mappings),
                },
            )
            t0 = time.monotonic()

            result = self._do_rollover(request, rollover_id)

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            if result.success:
                logger.info(
                    "rollover_completed",
                    extra={
                        "status": result.status.value,
                        "duration_ms": duration_ms,
                        "target_period_id": str(result.target_period.id),
                        "counts": result.audit_log.counts.as_dict(),
                        "unmapped_sections": result.reconciliation.unmapped_sections,
                        "warnings": len(result.inactive_owner_warnings),
                    },
                )
            elif result.status == RolloverStatus.REJECTED:
                logger.warning(
                    "rollover_rejected",
                    extra={
                        "status": result.status.value,
                        "duration_ms": duration_ms,
                        "error_code": result.error_code,
                        "error_msg": result.error_message,
                    },
                )
            else:
                logger.warning(
                    "rollover_cancelled"
                    if result.status == RolloverStatus.CANCELLED
                    else "rollover_failed",
                    extra={
                        "status": result.status.value,
                        "duration_ms": duration_ms,
                        "error_code": result.error_code,
                        "error_msg": result.error_message,
                    },
                )
            return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _do_rollover(self, request: RolloverRequest, rollover_id: UUID) -> RolloverResult:
        try:
            source, catalog_items = self._validate(request)
        except RolloverValidationError as exc:
            return self._rejected(rollover_id, exc)

        cancel_token = request.cancel_token or CancellationToken(
            request.timeout_seconds
            if request.timeout_seconds is not None
            else self._settings.default_timeout_seconds
        )

        lock_timeout = self._settings.lock_timeout_seconds
        try:
            with self._locks.hold(source.id, timeout=lock_timeout):
                return self._execute_locked(
                    request, rollover_id, source, catalog_items, cancel_token
                )
        except TimeoutError:
            # _execute_locked returns every outcome, so this is the lock wait
            return self._rejected(
                rollover_id,
                RolloverInProgressError(str(source.id), lock_timeout),
            )

    def _validate(
        self,
        request: RolloverRequest,
    ) -> tuple[ReportingPeriod, list[CatalogItemInfo]]:
        request.options.validate()
        request.target.validate()

        source = self._session.get(ReportingPeriod, request.source_period_id)
        if source is None or not source.is_visible:
            raise SourcePeriodNotFoundError(str(request.source_period_id))
        if source.status == PeriodStatus.DRAFT:
            raise SourcePeriodNotReadyError(str(source.id), source.status.value)

        catalog_items = list(self._catalog.active_items(source.organization_id))
        catalog_codes = {item.code for item in catalog_items}
        for mapping in request.manual_mappings:
            if mapping.target_catalog_code not in catalog_codes:
                raise ManualMappingTargetNotFoundError(
                    mapping.source_catalog_code, mapping.target_catalog_code
                )

        return source, catalog_items

    def _execute_locked(
        self,
        request: RolloverRequest,
        rollover_id: UUID,
        source: ReportingPeriod,
        catalog_items: list[CatalogItemInfo],
        cancel_token: CancellationToken,
    ) -> RolloverResult:
        existing = self._periods.find_by_name(request.target.name, source.organization_id)
        if existing is not None:
            return self._rejected(
                rollover_id,
                TargetPeriodNameCollisionError(request.target.name, str(existing.id)),
            )

        savepoint = self._session.begin_nested()
        try:
            result = self._stage_and_copy(
                request, rollover_id, source, catalog_items, cancel_token
            )
            savepoint.commit()
        except RolloverCancelledError as exc:
            self._rollback(savepoint)
            return RolloverResult.failure(
                RolloverStatus.CANCELLED,
                rollover_id,
                exc.code,
                str(exc),
                _error_details(exc),
            )
        except PeriodNameCollisionError as exc:
            # Lost the unique constraint race to another process
            self._rollback(savepoint)
            return self._rejected(
                rollover_id,
                TargetPeriodNameCollisionError(exc.name, "unknown"),
            )
        except Exception as exc:
            self._rollback(savepoint)
            logger.error(
                "rollover_error",
                extra={"error_code": getattr(exc, "code", type(exc).__name__)},
                exc_info=True,
            )
            return RolloverResult.failure(
                RolloverStatus.FAILED,
                rollover_id,
                getattr(exc, "code", type(exc).__name__),
                str(exc),
                _error_details(exc),
            )

        if self._auto_commit:
            self._session.commit()
        return result

    def _rollback(self, savepoint) -> None:
        if savepoint.is_active:
            savepoint.rollback()
        if self._auto_commit:
            self._session.rollback()

    def _stage_and_copy(
        self,
        request: RolloverRequest,
        rollover_id: UUID,
        source: ReportingPeriod,
        catalog_items: list[CatalogItemInfo],
        cancel_token: CancellationToken,
    ) -> RolloverResult:
        actor = request.performed_by
        requested = request.target

        target_info = self._periods.create_period(
            name=requested.name,
            start_date=requested.start_date,
            end_date=requested.end_date,
            actor_id=actor,
            organization_id=source.organization_id,
            reporting_mode=requested.reporting_mode or source.reporting_mode,
            report_scope=requested.report_scope or source.report_scope,
            owner_id=source.owner_id,
            status=PeriodStatus.STAGING,
            rolled_over_from_id=source.id,
        )
        self._periods.seed_sections_from_catalog(target_info.id, catalog_items, actor)
        target = self._session.get(ReportingPeriod, target_info.id)

        mapping = self._map_sections(source, target, request)

        performed_by_name = self._users.get_name(actor)
        ownership = OwnershipValidator(
            self._users, self._settings.inactive_owner_entity_types
        )
        copier = ContentCopier(
            self._session,
            source_period=source,
            target_period=target,
            mapping=mapping,
            options=request.options,
            resolver=RuleResolver(self._rules.active_rules(), request.rule_overrides),
            ownership=ownership,
            clock=self._clock,
            rollover_id=rollover_id,
            performed_by=actor,
            performed_by_name=performed_by_name,
            draft_marker=self._settings.draft_marker,
            cancel_token=cancel_token,
        )
        copy_report = copier.copy()

        audit_log, reconciliation = self._reporter.record(
            rollover_id=rollover_id,
            source_period=source,
            target_period=target,
            options=request.options,
            rule_overrides=request.rule_overrides,
            performed_by=actor,
            performed_by_name=performed_by_name,
            mapping=mapping,
            copy_report=copy_report,
            warnings=ownership.warnings,
        )

        # Publishing the target is the last write
        activated = self._periods.activate_period(target.id, actor)

        return RolloverResult(
            status=RolloverStatus.COMPLETED,
            rollover_id=rollover_id,
            target_period=activated,
            audit_log=audit_log,
            reconciliation=reconciliation,
            inactive_owner_warnings=ownership.warnings,
        )

    def _map_sections(
        self,
        source: ReportingPeriod,
        target: ReportingPeriod,
        request: RolloverRequest,
    ) -> CatalogMappingResult:
        data_point_counts = dict(
            self._session.execute(
                select(DataPoint.section_id, func.count(DataPoint.id))
                .join(ReportSection, DataPoint.section_id == ReportSection.id)
                .where(ReportSection.period_id == source.id)
                .group_by(DataPoint.section_id)
            ).all()
        )

        source_sections = self._session.execute(
            select(ReportSection)
            .where(ReportSection.period_id == source.id)
            .order_by(ReportSection.sort_order, ReportSection.title, ReportSection.id)
        ).scalars().all()

        target_sections = self._session.execute(
            select(ReportSection)
            .where(ReportSection.period_id == target.id)
            .order_by(ReportSection.sort_order, ReportSection.catalog_code, ReportSection.id)
        ).scalars().all()

        return self._mapper.map_sections(
            sources=[
                SourceSectionRef(
                    section_id=s.id,
                    title=s.title,
                    catalog_code=s.catalog_code,
                    data_point_count=data_point_counts.get(s.id, 0),
                )
                for s in source_sections
            ],
            target_sections=[
                TargetSectionRef(
                    section_id=t.id,
                    title=t.title,
                    catalog_code=t.catalog_code,
                )
                for t in target_sections
            ],
            manual_mappings=request.manual_mappings,
        )

    def _rejected(self, rollover_id: UUID, exc: Exception) -> RolloverResult:
        return RolloverResult.failure(
            RolloverStatus.REJECTED,
            rollover_id,
            getattr(exc, "code", type(exc).__name__),
            str(exc),
            _error_details(exc),
        )
