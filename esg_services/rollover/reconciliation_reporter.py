"""
esg_services.rollover.reconciliation_reporter -- Rollover audit artifacts.

Responsibility:
    Turn the mapping result, the copy report and the ownership warnings of
    one rollover into its three artifacts: the RolloverAuditLog row, the
    RolloverReconciliationRecord row, and the RolloverReconciliation DTO
    returned to the caller.  Records the ROLLOVER_COMPLETED audit event.

Architecture position:
    Services -- the last step of the rollover orchestrator, inside its
    savepoint.  Read-only over the accumulated results; writes only its
    own rows.

Invariants enforced:
    - Both rows are keyed by the rollover id.
    - mapped + unmapped == total source sections.
    - Itemized results are stored as canonical JSON (sorted keys), so the
      same rollover always serializes identically.

Audit relevance:
    The reconciliation is what a reviewer reads to learn which sections
    were NOT carried and how to fix that before the next rollover.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from esg_engines.rollover import CatalogMappingResult
from esg_kernel.domain.clock import Clock
from esg_kernel.domain.rollover import RolloverOptions, RolloverRuleOverride
from esg_kernel.logging_config import get_logger
from esg_kernel.models.reporting_period import ReportingPeriod
from esg_kernel.models.rollover_record import (
    RolloverAuditLog,
    RolloverReconciliationRecord,
)
from esg_kernel.services.auditor_service import AuditorService
from esg_kernel.utils.hashing import canonicalize_json
from esg_services.rollover._rollover_types import (
    InactiveOwnerWarning,
    MappedSectionItem,
    RolloverAuditLogInfo,
    RolloverReconciliation,
    UnmappedSectionItem,
)
from esg_services.rollover.content_copier import CopyReport

logger = get_logger("services.rollover.reconciliation")


class ReconciliationReporter:
    """Writes the audit log and reconciliation of one completed rollover."""

    def __init__(self, session: Session, clock: Clock, auditor: AuditorService):
        self._session = session
        self._clock = clock
        self._auditor = auditor

    def build_reconciliation(
        self,
        rollover_id: UUID,
        mapping: CatalogMappingResult,
        copy_report: CopyReport,
        warnings: tuple[InactiveOwnerWarning, ...] = (),
    ) -> RolloverReconciliation:
        """Itemize the mapping outcome.  Pure; writes nothing."""
        mapped = tuple(
            MappedSectionItem(
                source_section_id=item.source.section_id,
                source_title=item.source.title,
                target_section_id=item.target.section_id,
                mapping_type=item.mapping_type,
                source_catalog_code=item.source.catalog_code,
                target_catalog_code=item.target.catalog_code,
                data_points_copied=copy_report.data_points_for(item.source.section_id),
            )
            for item in mapping.mapped
        )
        unmapped = tuple(
            UnmappedSectionItem(
                source_section_id=item.source.section_id,
                title=item.source.title,
                catalog_code=item.source.catalog_code,
                reason=item.reason,
                suggested_actions=item.suggested_actions,
                affected_data_points=item.source.data_point_count,
            )
            for item in mapping.unmapped
        )
        return RolloverReconciliation(
            rollover_id=rollover_id,
            total_source_sections=mapping.total_sources,
            mapped_items=mapped,
            unmapped_items=unmapped,
            configuration_issues=mapping.configuration_issues,
            warnings=warnings,
        )

    def record(
        self,
        *,
        rollover_id: UUID,
        source_period: ReportingPeriod,
        target_period: ReportingPeriod,
        options: RolloverOptions,
        rule_overrides: tuple[RolloverRuleOverride, ...],
        performed_by: str,
        performed_by_name: str | None,
        mapping: CatalogMappingResult,
        copy_report: CopyReport,
        warnings: tuple[InactiveOwnerWarning, ...],
    ) -> tuple[RolloverAuditLogInfo, RolloverReconciliation]:
        """
        Persist both rows and the audit event.

        Postconditions:
            - One RolloverAuditLog with ``id == rollover_id`` and one
              RolloverReconciliationRecord referencing it are flushed.
        """
        counts = copy_report.counts
        now = self._clock.now()

        audit_log = RolloverAuditLog(
            id=rollover_id,
            source_period_id=source_period.id,
            source_period_name=source_period.name,
            target_period_id=target_period.id,
            target_period_name=target_period.name,
            performed_by=performed_by,
            performed_by_name=performed_by_name,
            performed_at=now,
            options=options.to_dict(),
            rule_overrides=[
                {"data_type": o.data_type, "rule_type": o.rule_type.value}
                for o in rule_overrides
            ] or None,
            sections_copied=counts.sections,
            data_points_copied=counts.data_points,
            gaps_copied=counts.gaps,
            assumptions_copied=counts.assumptions,
            remediation_plans_copied=counts.remediation_plans,
            remediation_actions_copied=counts.remediation_actions,
            evidence_copied=counts.evidence,
        )
        # The reconciliation row references the log
        self._session.add(audit_log)
        self._session.flush()

        reconciliation = self.build_reconciliation(rollover_id, mapping, copy_report, warnings)

        self._session.add(
            RolloverReconciliationRecord(
                rollover_id=rollover_id,
                total_source_sections=reconciliation.total_source_sections,
                mapped_sections=reconciliation.mapped_sections,
                unmapped_sections=reconciliation.unmapped_sections,
                mapped_items=canonicalize_json(
                    [item.to_dict() for item in reconciliation.mapped_items]
                ),
                unmapped_items=canonicalize_json(
                    [item.to_dict() for item in reconciliation.unmapped_items]
                ),
                configuration_issues=list(reconciliation.configuration_issues) or None,
                created_at=now,
            )
        )
        self._session.flush()

        self._auditor.record_rollover_completed(
            rollover_id=rollover_id,
            source_period_id=source_period.id,
            target_period_id=target_period.id,
            counts=counts.as_dict(),
            actor_id=performed_by,
        )

        logger.info(
            "rollover_reconciliation_recorded",
            extra={
                "total_source_sections": reconciliation.total_source_sections,
                "mapped_sections": reconciliation.mapped_sections,
                "unmapped_sections": reconciliation.unmapped_sections,
                "configuration_issues": len(reconciliation.configuration_issues),
                "warnings": len(warnings),
            },
        )

        return RolloverAuditLogInfo.from_model(audit_log), reconciliation
