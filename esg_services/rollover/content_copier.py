"""
esg_services.rollover.content_copier -- Stage-by-stage rollover writes.

Responsibility:
    Perform every write a rollover makes into the staged target period:
    section structure, disclosures (gaps, assumptions, remediation plans
    and actions), data values under their rollover rules, and evidence
    references.  Stamps lineage on each carried row and counts what it
    created.

Architecture position:
    Services -- called by the rollover orchestrator inside its savepoint.
    Consumes the pure CatalogMappingResult and RuleResolver from
    esg_engines; writes ORM rows through the caller's session.

Invariants enforced:
    - Stages run strictly in order: structure, disclosures, data values,
      attachments.  A stage whose option flag is false is skipped.
    - Cancellation is checked before each per-section unit of every stage.
    - Only mapped sections are carried; the copier never creates sections.
    - Source rows are read, never modified.  Gap-status history is never
      copied or rewritten.
    - A disclosure that referenced a source data point is relinked to that
      point's successor, or left unlinked when the point was not carried.
    - Evidence bytes are never copied: a carried evidence row references
      the same file_url and checksum.

Failure modes:
    - RolloverCancelledError from the cancellation token.
    - SQLAlchemy errors propagate to the orchestrator, which rolls back.

Audit relevance:
    Every carried data point records its source period, source data point,
    rollover id, timestamp and performer.  Every carried section and
    disclosure records the prior-period row it came from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from esg_engines.rollover import CatalogMappingResult, RuleResolver
from esg_kernel.domain.clock import Clock
from esg_kernel.domain.gap_status import GapStatus
from esg_kernel.domain.rollover import RolloverOptions, RolloverRuleType
from esg_kernel.domain.values import CompletenessStatus, ReviewStatus
from esg_kernel.logging_config import get_logger
from esg_kernel.models.data_point import DataPoint
from esg_kernel.models.disclosure import (
    Assumption,
    Gap,
    RemediationAction,
    RemediationPlan,
)
from esg_kernel.models.evidence import Evidence
from esg_kernel.models.reporting_period import ReportingPeriod
from esg_kernel.models.section import ReportSection
from esg_kernel.utils.concurrency import CancellationToken
from esg_services.rollover._rollover_types import RolloverCounts
from esg_services.rollover.ownership_validator import (
    DATA_POINT,
    REMEDIATION_ACTION,
    REMEDIATION_PLAN,
    SECTION,
    OwnershipValidator,
)

logger = get_logger("services.rollover.copier")

EXPIRED_LIMITATION = "[EXPIRED - Requires Review]"


@dataclass(frozen=True)
class CopyReport:
    """What the copier created, in total and per source section."""

    counts: RolloverCounts
    data_points_by_section: dict[UUID, int] = field(default_factory=dict)

    def data_points_for(self, source_section_id: UUID) -> int:
        return self.data_points_by_section.get(source_section_id, 0)


class ContentCopier:
    """
    Copies one source period's content into a staged target period.

    Contract:
        ``copy()`` runs once per instance and flushes, never commits.

    Non-goals:
        - Does NOT decide the mapping (CatalogMapper) or the rules
          (RuleResolver); both are handed in.
        - Does NOT block on inactive owners; OwnershipValidator only warns.
    """

    def __init__(
        self,
        session: Session,
        *,
        source_period: ReportingPeriod,
        target_period: ReportingPeriod,
        mapping: CatalogMappingResult,
        options: RolloverOptions,
        resolver: RuleResolver,
        ownership: OwnershipValidator,
        clock: Clock,
        rollover_id: UUID,
        performed_by: str,
        performed_by_name: str | None,
        draft_marker: str,
        cancel_token: CancellationToken | None = None,
    ):
        self._session = session
        self._source_period = source_period
        self._target_period = target_period
        self._mapping = mapping
        self._options = options
        self._resolver = resolver
        self._ownership = ownership
        self._clock = clock
        self._rollover_id = rollover_id
        self._performed_by = performed_by
        self._performed_by_name = performed_by_name
        self._draft_marker = draft_marker
        self._cancel_token = cancel_token

        self._counts = {key: 0 for key in RolloverCounts().as_dict()}
        self._data_points_by_section: dict[UUID, int] = {}
        self._sections_processed = 0

        # source data point id -> successor
        self._successors: dict[UUID, DataPoint] = {}
        # (carried record, source data point id) awaiting the successor id
        self._relink_queue: list[tuple[Any, UUID]] = []

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def copy(self) -> CopyReport:
        pairs = self._load_pairs()

        if self._options.copy_structure:
            self._run_stage("structure", pairs, self._copy_structure)
        if self._options.copy_disclosures:
            self._run_stage("disclosures", pairs, self._copy_disclosures)
        if self._options.copy_data_values:
            self._run_stage("data_values", pairs, self._copy_data_values)
            self._relink()
        if self._options.copy_attachments:
            self._run_stage("attachments", pairs, self._copy_attachments)

        return CopyReport(
            counts=RolloverCounts(**self._counts),
            data_points_by_section=dict(self._data_points_by_section),
        )

    def _load_pairs(self) -> list[tuple[ReportSection, ReportSection]]:
        pairs = []
        for item in self._mapping.mapped:
            source = self._session.get(ReportSection, item.source.section_id)
            target = self._session.get(ReportSection, item.target.section_id)
            pairs.append((source, target))
        return pairs

    def _run_stage(self, stage, pairs, unit) -> None:
        before = dict(self._counts)
        for source, target in pairs:
            if self._cancel_token is not None:
                self._cancel_token.raise_if_cancelled(self._sections_processed)
            unit(source, target)
            self._sections_processed += 1
        self._session.flush()

        logger.info(
            "rollover_stage_completed",
            extra={
                "stage": stage,
                "sections": len(pairs),
                "rows_created": {
                    key: self._counts[key] - before[key]
                    for key in self._counts
                    if self._counts[key] != before[key]
                },
            },
        )

    def _rows(self, model, section_id: UUID) -> list:
        return list(
            self._session.execute(
                select(model)
                .where(model.section_id == section_id)
                .order_by(model.created_at, model.id)
            ).scalars().all()
        )

    # ------------------------------------------------------------------
    # Stage 1: structure
    # ------------------------------------------------------------------

    def _copy_structure(self, source: ReportSection, target: ReportSection) -> None:
        target.description = source.description
        target.owner_id = source.owner_id
        target.sort_order = source.sort_order
        target.source_section_id = source.id
        target.updated_by = self._performed_by
        self._counts["sections"] += 1

        self._ownership.check(SECTION, target.id, target.title, target.owner_id)

    # ------------------------------------------------------------------
    # Stage 2: disclosures
    # ------------------------------------------------------------------

    def _copy_disclosures(self, source: ReportSection, target: ReportSection) -> None:
        new_gap_ids: dict[UUID, UUID] = {}
        new_assumption_ids: dict[UUID, UUID] = {}

        if self._options.carry_forward_gaps_and_assumptions:
            for gap in self._rows(Gap, source.id):
                new_gap_ids[gap.id] = self._copy_gap(gap, target).id
            for assumption in self._rows(Assumption, source.id):
                new_assumption_ids[assumption.id] = self._copy_assumption(
                    assumption, target
                ).id

        for plan in self._rows(RemediationPlan, source.id):
            self._copy_plan(plan, target, new_gap_ids, new_assumption_ids)

    def _queue_relink(self, record: Any, source_data_point_id: UUID | None) -> None:
        if source_data_point_id is not None:
            self._relink_queue.append((record, source_data_point_id))

    def _copy_gap(self, gap: Gap, target: ReportSection) -> Gap:
        new_gap = Gap(
            section_id=target.id,
            title=gap.title,
            description=gap.description,
            impact=gap.impact,
            improvement_plan=gap.improvement_plan,
            target_date=gap.target_date,
            resolved=gap.resolved,
            source_gap_id=gap.id,
            created_by=self._performed_by,
        )
        self._session.add(new_gap)
        self._session.flush()
        self._queue_relink(new_gap, gap.data_point_id)
        self._counts["gaps"] += 1
        return new_gap

    def _copy_assumption(self, assumption: Assumption, target: ReportSection) -> Assumption:
        description = assumption.description
        limitations = assumption.limitations

        target_start = self._target_period.start_date
        if assumption.is_expired_on(target_start):
            warning = (
                f"WARNING: This assumption expired on "
                f"{assumption.validity_end_date.isoformat()}, before "
                f"{self._target_period.name} starts. Review before reuse."
            )
            description = f"{description}\n\n{warning}" if description else warning
            limitations = (
                f"{limitations}\n{EXPIRED_LIMITATION}" if limitations else EXPIRED_LIMITATION
            )
            logger.warning(
                "expired_assumption_flagged",
                extra={
                    "assumption_id": str(assumption.id),
                    "validity_end_date": str(assumption.validity_end_date),
                },
            )

        new_assumption = Assumption(
            section_id=target.id,
            title=assumption.title,
            description=description,
            scope=assumption.scope,
            validity_start_date=assumption.validity_start_date,
            validity_end_date=assumption.validity_end_date,
            methodology=assumption.methodology,
            limitations=limitations,
            status=assumption.status,
            version=assumption.version,
            source_assumption_id=assumption.id,
            created_by=self._performed_by,
        )
        self._session.add(new_assumption)
        self._session.flush()
        self._queue_relink(new_assumption, assumption.data_point_id)
        self._counts["assumptions"] += 1
        return new_assumption

    def _copy_plan(
        self,
        plan: RemediationPlan,
        target: ReportSection,
        new_gap_ids: dict[UUID, UUID],
        new_assumption_ids: dict[UUID, UUID],
    ) -> None:
        new_plan = RemediationPlan(
            section_id=target.id,
            title=plan.title,
            description=plan.description,
            target_period=plan.target_period,
            owner_id=plan.owner_id,
            priority=plan.priority,
            status=plan.status,
            gap_id=new_gap_ids.get(plan.gap_id) if plan.gap_id else None,
            assumption_id=(
                new_assumption_ids.get(plan.assumption_id) if plan.assumption_id else None
            ),
            source_plan_id=plan.id,
            created_by=self._performed_by,
        )
        self._session.add(new_plan)
        self._session.flush()
        self._queue_relink(new_plan, plan.data_point_id)
        self._counts["remediation_plans"] += 1
        self._ownership.check(REMEDIATION_PLAN, new_plan.id, new_plan.title, new_plan.owner_id)

        shift = timedelta(days=self._options.due_date_shift_days)
        for action in plan.actions:
            new_action = RemediationAction(
                plan_id=new_plan.id,
                title=action.title,
                description=action.description,
                owner_id=action.owner_id,
                due_date=action.due_date + shift if action.due_date else None,
                status=action.status,
                source_action_id=action.id,
                created_by=self._performed_by,
            )
            self._session.add(new_action)
            self._session.flush()
            self._counts["remediation_actions"] += 1
            self._ownership.check(
                REMEDIATION_ACTION, new_action.id, new_action.title, new_action.owner_id
            )

    # ------------------------------------------------------------------
    # Stage 3: data values
    # ------------------------------------------------------------------

    def _copy_data_values(self, source: ReportSection, target: ReportSection) -> None:
        copied = 0
        for data_point in self._rows(DataPoint, source.id):
            rule = self._resolver.resolve(data_point.data_type)
            if rule == RolloverRuleType.RESET:
                successor = self._reset(data_point, target)
            elif rule == RolloverRuleType.COPY_AS_DRAFT:
                successor = self._copy_as_draft(data_point, target)
            else:
                successor = self._copy_verbatim(data_point, target)

            self._session.add(successor)
            self._session.flush()
            self._successors[data_point.id] = successor
            copied += 1

            self._ownership.check(DATA_POINT, successor.id, successor.title, successor.owner_id)

        self._data_points_by_section[source.id] = copied
        self._counts["data_points"] += copied

    def _lineage(self, data_point: DataPoint) -> dict[str, Any]:
        return {
            "source_period_id": self._source_period.id,
            "source_period_name": self._source_period.name,
            "source_data_point_id": data_point.id,
            "rollover_timestamp": self._clock.now(),
            "rollover_performed_by": self._performed_by,
            "rollover_performed_by_name": self._performed_by_name,
            "rollover_id": self._rollover_id,
            "created_by": self._performed_by,
        }

    def _copy_verbatim(self, data_point: DataPoint, target: ReportSection) -> DataPoint:
        return DataPoint(
            section_id=target.id,
            data_type=data_point.data_type,
            classification=data_point.classification,
            title=data_point.title,
            content=data_point.content,
            value=data_point.value,
            unit=data_point.unit,
            owner_id=data_point.owner_id,
            source=data_point.source,
            information_type=data_point.information_type,
            review_status=data_point.review_status,
            completeness_status=data_point.completeness_status,
            is_missing=data_point.is_missing,
            missing_reason=data_point.missing_reason,
            gap_status=data_point.gap_status,
            estimate_type=data_point.estimate_type,
            estimate_method=data_point.estimate_method,
            confidence_level=data_point.confidence_level,
            previous_estimate_snapshot=(
                dict(data_point.previous_estimate_snapshot)
                if data_point.previous_estimate_snapshot is not None else None
            ),
            **self._lineage(data_point),
        )

    def _copy_as_draft(self, data_point: DataPoint, target: ReportSection) -> DataPoint:
        successor = self._copy_verbatim(data_point, target)
        successor.content = (
            f"{self._draft_marker}\n\n{data_point.content}"
            if data_point.content else self._draft_marker
        )
        successor.review_status = ReviewStatus.DRAFT
        successor.completeness_status = CompletenessStatus.INCOMPLETE
        return successor

    def _reset(self, data_point: DataPoint, target: ReportSection) -> DataPoint:
        return DataPoint(
            section_id=target.id,
            data_type=data_point.data_type,
            classification=data_point.classification,
            title=data_point.title,
            content=None,
            value=None,
            unit=data_point.unit,
            owner_id=data_point.owner_id,
            review_status=ReviewStatus.DRAFT,
            completeness_status=CompletenessStatus.MISSING,
            is_missing=True,
            gap_status=GapStatus.MISSING,
            **self._lineage(data_point),
        )

    def _relink(self) -> None:
        unlinked = 0
        for record, source_data_point_id in self._relink_queue:
            successor = self._successors.get(source_data_point_id)
            if successor is None:
                unlinked += 1
                continue
            record.data_point_id = successor.id
        self._session.flush()

        logger.info(
            "rollover_records_relinked",
            extra={
                "relinked": len(self._relink_queue) - unlinked,
                "unlinked": unlinked,
            },
        )

    # ------------------------------------------------------------------
    # Stage 4: attachments
    # ------------------------------------------------------------------

    def _copy_attachments(self, source: ReportSection, target: ReportSection) -> None:
        for evidence in self._rows(Evidence, source.id):
            reference = Evidence(
                section_id=target.id,
                title=evidence.title,
                description=evidence.description,
                file_url=evidence.file_url,
                file_name=evidence.file_name,
                checksum=evidence.checksum,
                file_size=evidence.file_size,
                content_type=evidence.content_type,
                uploaded_by=evidence.uploaded_by,
                source_evidence_id=evidence.id,
                is_reference=True,
                created_by=self._performed_by,
            )
            reference.data_points = [
                self._successors[dp.id]
                for dp in evidence.data_points
                if dp.id in self._successors
            ]
            self._session.add(reference)
            self._counts["evidence"] += 1
