"""
esg_services.rollover._rollover_types -- DTOs for the rollover orchestrator.

Responsibility:
    Define frozen dataclasses for one rollover call: the request, the copy
    counts accumulated stage by stage, the itemized reconciliation, the
    inactive-owner warnings and the top-level RolloverResult.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    These types live in esg_services/ because the orchestrator that
    produces and consumes them lives here.  They depend only on kernel
    domain values and kernel DTOs.

Invariants enforced:
    - All DTOs are frozen dataclasses (immutable).
    - ``RolloverResult.success`` is True only for COMPLETED; a failure
      result never carries a target period, audit log or reconciliation.

Audit relevance:
    ``RolloverReconciliation`` is the in-memory twin of the persisted
    ``RolloverReconciliationRecord``; ``RolloverAuditLogInfo`` mirrors the
    persisted ``RolloverAuditLog`` row.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping
from uuid import UUID

from esg_kernel.domain.dtos import ReportingPeriodInfo
from esg_kernel.domain.rollover import (
    ManualSectionMapping,
    MappingType,
    RolloverOptions,
    RolloverRuleOverride,
    TargetPeriodSpec,
)
from esg_kernel.utils.concurrency import CancellationToken

if TYPE_CHECKING:
    from esg_kernel.models.rollover_record import (
        RolloverAuditLog as RolloverAuditLogModel,
    )


class RolloverStatus(str, Enum):
    """Outcome of a rollover call."""

    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class RolloverRequest:
    """
    Everything a rollover needs from its caller.

    ``timeout_seconds`` and ``cancel_token`` are both optional.  When a
    token is given its own deadline applies and ``timeout_seconds`` is
    ignored.
    """

    source_period_id: UUID
    target: TargetPeriodSpec
    performed_by: str
    options: RolloverOptions = field(default_factory=RolloverOptions)
    rule_overrides: tuple[RolloverRuleOverride, ...] = ()
    manual_mappings: tuple[ManualSectionMapping, ...] = ()
    timeout_seconds: float | None = None
    cancel_token: CancellationToken | None = None


@dataclass(frozen=True)
class RolloverCounts:
    """Rows created per entity kind."""

    sections: int = 0
    data_points: int = 0
    gaps: int = 0
    assumptions: int = 0
    remediation_plans: int = 0
    remediation_actions: int = 0
    evidence: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "sections": self.sections,
            "data_points": self.data_points,
            "gaps": self.gaps,
            "assumptions": self.assumptions,
            "remediation_plans": self.remediation_plans,
            "remediation_actions": self.remediation_actions,
            "evidence": self.evidence,
        }


@dataclass(frozen=True)
class InactiveOwnerWarning:
    """A carried entity whose owner is no longer an active user."""

    entity_type: str
    entity_id: UUID
    entity_title: str
    owner_id: str
    owner_name: str | None = None


@dataclass(frozen=True)
class MappedSectionItem:
    """One source section that found its target."""

    source_section_id: UUID
    source_title: str
    target_section_id: UUID
    mapping_type: MappingType
    source_catalog_code: str | None
    target_catalog_code: str | None
    data_points_copied: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_section_id": str(self.source_section_id),
            "source_title": self.source_title,
            "target_section_id": str(self.target_section_id),
            "mapping_type": self.mapping_type.value,
            "source_catalog_code": self.source_catalog_code,
            "target_catalog_code": self.target_catalog_code,
            "data_points_copied": self.data_points_copied,
        }


@dataclass(frozen=True)
class UnmappedSectionItem:
    """One source section left behind, with the actions that would fix it."""

    source_section_id: UUID
    title: str
    catalog_code: str | None
    reason: str
    suggested_actions: tuple[str, ...]
    affected_data_points: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_section_id": str(self.source_section_id),
            "title": self.title,
            "catalog_code": self.catalog_code,
            "reason": self.reason,
            "suggested_actions": list(self.suggested_actions),
            "affected_data_points": self.affected_data_points,
        }


@dataclass(frozen=True)
class RolloverReconciliation:
    """Itemized mapping outcome of one rollover."""

    rollover_id: UUID
    total_source_sections: int
    mapped_items: tuple[MappedSectionItem, ...]
    unmapped_items: tuple[UnmappedSectionItem, ...]
    configuration_issues: tuple[str, ...] = ()
    warnings: tuple[InactiveOwnerWarning, ...] = ()

    @property
    def mapped_sections(self) -> int:
        return len(self.mapped_items)

    @property
    def unmapped_sections(self) -> int:
        return len(self.unmapped_items)

    @property
    def is_fully_mapped(self) -> bool:
        return not self.unmapped_items


@dataclass(frozen=True)
class RolloverAuditLogInfo:
    """Immutable view of a persisted rollover audit log row."""

    id: UUID
    source_period_id: UUID
    source_period_name: str
    target_period_id: UUID
    target_period_name: str
    performed_by: str
    performed_at: datetime
    counts: RolloverCounts
    options: Mapping[str, Any]
    rule_overrides: tuple[Mapping[str, Any], ...] = ()
    performed_by_name: str | None = None

    @classmethod
    def from_model(cls, model: RolloverAuditLogModel) -> RolloverAuditLogInfo:
        return cls(
            id=model.id,
            source_period_id=model.source_period_id,
            source_period_name=model.source_period_name,
            target_period_id=model.target_period_id,
            target_period_name=model.target_period_name,
            performed_by=model.performed_by,
            performed_at=model.performed_at,
            counts=RolloverCounts(
                sections=model.sections_copied,
                data_points=model.data_points_copied,
                gaps=model.gaps_copied,
                assumptions=model.assumptions_copied,
                remediation_plans=model.remediation_plans_copied,
                remediation_actions=model.remediation_actions_copied,
                evidence=model.evidence_copied,
            ),
            options=dict(model.options),
            rule_overrides=tuple(dict(o) for o in model.rule_overrides or ()),
            performed_by_name=model.performed_by_name,
        )


@dataclass(frozen=True)
class RolloverResult:
    """
    Result of a rollover call.

    Exactly one of two shapes:
        - COMPLETED: ``target_period``, ``audit_log`` and ``reconciliation``
          are set; ``error_code`` is None.
        - REJECTED / FAILED / CANCELLED: the three artifacts are None and
          ``error_code`` / ``error_message`` / ``details`` explain why.
    """

    status: RolloverStatus
    rollover_id: UUID
    target_period: ReportingPeriodInfo | None = None
    audit_log: RolloverAuditLogInfo | None = None
    reconciliation: RolloverReconciliation | None = None
    inactive_owner_warnings: tuple[InactiveOwnerWarning, ...] = ()
    error_code: str | None = None
    error_message: str | None = None
    details: Mapping[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == RolloverStatus.COMPLETED

    @classmethod
    def failure(
        cls,
        status: RolloverStatus,
        rollover_id: UUID,
        error_code: str,
        error_message: str,
        details: Mapping[str, Any] | None = None,
    ) -> RolloverResult:
        return cls(
            status=status,
            rollover_id=rollover_id,
            error_code=error_code,
            error_message=error_message,
            details=dict(details or {}),
        )
