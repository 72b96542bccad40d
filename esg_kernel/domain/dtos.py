"""
DTOs -- Pure domain data transfer objects for the read side.

Responsibility:
    Immutable snapshots of periods, sections, data points, gap-status
    history and rollover rules, returned by services and selectors so that
    callers never hold live ORM entities.

Architecture position:
    Kernel > Domain -- zero I/O.  ``from_model()`` class methods exist as
    boundary converters but are only invoked from the service and selector
    layers (never from domain logic).

Invariants enforced:
    - Every DTO is frozen; JSON-valued fields are exposed as read-only
      mappings.
    - ``SectionSummary`` is composition, not inheritance: the section record
      and its derived metrics are two separate values.  No completeness
      percentage is computed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping
from uuid import UUID

from esg_kernel.domain.gap_status import GapStatus
from esg_kernel.domain.rollover import RolloverRuleType
from esg_kernel.domain.values import (
    CompletenessStatus,
    EstimateFields,
    InformationType,
    PeriodStatus,
    ReportingMode,
    ReportScope,
    ReviewStatus,
    SectionStatus,
)

if TYPE_CHECKING:
    from esg_kernel.models.data_point import DataPoint as DataPointModel
    from esg_kernel.models.data_point import (
        GapStatusHistoryEntry as GapStatusHistoryEntryModel,
    )
    from esg_kernel.models.reporting_period import (
        ReportingPeriod as ReportingPeriodModel,
    )
    from esg_kernel.models.rollover_rule import (
        DataTypeRolloverRule as DataTypeRolloverRuleModel,
    )
    from esg_kernel.models.rollover_rule import (
        RolloverRuleHistory as RolloverRuleHistoryModel,
    )
    from esg_kernel.models.section import ReportSection as ReportSectionModel


def _freeze(data: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
    if data is None:
        return None
    return MappingProxyType(dict(data))


@dataclass(frozen=True)
class ReportingPeriodInfo:
    """Immutable view of a reporting period."""

    id: UUID
    name: str
    organization_id: str
    start_date: date
    end_date: date
    reporting_mode: ReportingMode
    report_scope: ReportScope
    status: PeriodStatus
    owner_id: str | None = None
    rolled_over_from_id: UUID | None = None
    integrity_hash: str | None = None
    locked_at: datetime | None = None
    locked_by: str | None = None

    @property
    def is_locked(self) -> bool:
        return self.status == PeriodStatus.LOCKED

    @classmethod
    def from_model(cls, model: ReportingPeriodModel) -> ReportingPeriodInfo:
        return cls(
            id=model.id,
            name=model.name,
            organization_id=model.organization_id,
            start_date=model.start_date,
            end_date=model.end_date,
            reporting_mode=model.reporting_mode,
            report_scope=model.report_scope,
            status=model.status,
            owner_id=model.owner_id,
            rolled_over_from_id=model.rolled_over_from_id,
            integrity_hash=model.integrity_hash,
            locked_at=model.locked_at,
            locked_by=model.locked_by,
        )


@dataclass(frozen=True)
class SectionInfo:
    """Immutable view of a report section record."""

    id: UUID
    period_id: UUID
    title: str
    category: str
    status: SectionStatus
    sort_order: int
    description: str | None = None
    owner_id: str | None = None
    catalog_code: str | None = None
    catalog_item_id: UUID | None = None
    source_section_id: UUID | None = None

    @classmethod
    def from_model(cls, model: ReportSectionModel) -> SectionInfo:
        return cls(
            id=model.id,
            period_id=model.period_id,
            title=model.title,
            category=model.category,
            status=model.status,
            sort_order=model.sort_order,
            description=model.description,
            owner_id=model.owner_id,
            catalog_code=model.catalog_code,
            catalog_item_id=model.catalog_item_id,
            source_section_id=model.source_section_id,
        )


@dataclass(frozen=True)
class SectionMetrics:
    """
    Derived counts for one section, computed on read.

    ``by_completeness`` always carries every CompletenessStatus key.
    """

    data_point_count: int
    by_completeness: Mapping[CompletenessStatus, int]
    missing_gap_status_count: int
    gap_count: int
    open_gap_count: int
    evidence_count: int

    def count_for(self, status: CompletenessStatus) -> int:
        return self.by_completeness.get(status, 0)


@dataclass(frozen=True)
class SectionSummary:
    """A section record composed with its derived metrics."""

    section: SectionInfo
    metrics: SectionMetrics

    @property
    def title(self) -> str:
        return self.section.title

    @property
    def catalog_code(self) -> str | None:
        return self.section.catalog_code


@dataclass(frozen=True)
class DataPointInfo:
    """Immutable view of a data point, lineage included."""

    id: UUID
    section_id: UUID
    data_type: str
    title: str
    information_type: InformationType
    review_status: ReviewStatus
    completeness_status: CompletenessStatus
    is_missing: bool
    gap_status: GapStatus | None
    estimate: EstimateFields = field(default_factory=EstimateFields)
    previous_estimate_snapshot: Mapping[str, Any] | None = None
    content: str | None = None
    value: str | None = None
    unit: str | None = None
    owner_id: str | None = None
    classification: str | None = None
    source: str | None = None
    missing_reason: str | None = None
    source_period_id: UUID | None = None
    source_period_name: str | None = None
    source_data_point_id: UUID | None = None
    rollover_timestamp: datetime | None = None
    rollover_performed_by: str | None = None
    rollover_performed_by_name: str | None = None
    rollover_id: UUID | None = None

    @property
    def is_rolled_over(self) -> bool:
        return self.source_data_point_id is not None

    @classmethod
    def from_model(cls, model: DataPointModel) -> DataPointInfo:
        return cls(
            id=model.id,
            section_id=model.section_id,
            data_type=model.data_type,
            title=model.title,
            information_type=model.information_type,
            review_status=model.review_status,
            completeness_status=model.completeness_status,
            is_missing=model.is_missing,
            gap_status=model.gap_status,
            estimate=model.estimate,
            previous_estimate_snapshot=_freeze(model.previous_estimate_snapshot),
            content=model.content,
            value=model.value,
            unit=model.unit,
            owner_id=model.owner_id,
            classification=model.classification,
            source=model.source,
            missing_reason=model.missing_reason,
            source_period_id=model.source_period_id,
            source_period_name=model.source_period_name,
            source_data_point_id=model.source_data_point_id,
            rollover_timestamp=model.rollover_timestamp,
            rollover_performed_by=model.rollover_performed_by,
            rollover_performed_by_name=model.rollover_performed_by_name,
            rollover_id=model.rollover_id,
        )


@dataclass(frozen=True)
class GapStatusHistoryInfo:
    """One executed gap-status transition."""

    id: UUID
    data_point_id: UUID
    from_status: GapStatus | None
    to_status: GapStatus
    transitioned_by: str
    transitioned_at: datetime
    transitioned_by_name: str | None = None
    change_note: str | None = None
    estimate_snapshot: Mapping[str, Any] | None = None

    @classmethod
    def from_model(cls, model: GapStatusHistoryEntryModel) -> GapStatusHistoryInfo:
        return cls(
            id=model.id,
            data_point_id=model.data_point_id,
            from_status=model.from_status,
            to_status=model.to_status,
            transitioned_by=model.transitioned_by,
            transitioned_at=model.transitioned_at,
            transitioned_by_name=model.transitioned_by_name,
            change_note=model.change_note,
            estimate_snapshot=_freeze(model.estimate_snapshot),
        )


@dataclass(frozen=True)
class CrossPeriodLineage:
    """
    A data point and its ancestors, newest first.

    ``previous_versions[0]`` is the direct source of ``current_version``.
    ``has_more_history`` is True when the walk stopped at the depth limit
    while an older ancestor still exists.
    """

    current_version: DataPointInfo
    previous_versions: tuple[DataPointInfo, ...]
    has_more_history: bool

    @property
    def total_periods(self) -> int:
        return 1 + len(self.previous_versions)

    @property
    def is_rolled_over(self) -> bool:
        return self.current_version.is_rolled_over


@dataclass(frozen=True)
class RolloverRuleInfo:
    """Immutable view of a data type rollover rule."""

    id: UUID
    data_type: str
    rule_type: RolloverRuleType
    version: int
    is_active: bool
    description: str | None = None

    @classmethod
    def from_model(cls, model: DataTypeRolloverRuleModel) -> RolloverRuleInfo:
        return cls(
            id=model.id,
            data_type=model.data_type,
            rule_type=model.rule_type,
            version=model.version,
            is_active=model.is_active,
            description=model.description,
        )


@dataclass(frozen=True)
class RolloverRuleHistoryInfo:
    """One change to a rollover rule."""

    rule_id: UUID
    data_type: str
    rule_type: RolloverRuleType
    version: int
    change_type: str
    changed_by: str
    changed_at: datetime
    description: str | None = None

    @classmethod
    def from_model(cls, model: RolloverRuleHistoryModel) -> RolloverRuleHistoryInfo:
        return cls(
            rule_id=model.rule_id,
            data_type=model.data_type,
            rule_type=model.rule_type,
            version=model.version,
            change_type=model.change_type.value,
            changed_by=model.changed_by,
            changed_at=model.changed_at,
            description=model.description,
        )


@dataclass(frozen=True)
class CatalogItemInfo:
    """An active section catalog item, as handed to period seeding."""

    id: UUID
    code: str
    title: str
    category: str
    organization_id: str = "default"
    description: str | None = None
    sort_order: int = 0


@dataclass(frozen=True)
class MetricPeriodValue:
    """One period's side of a metric comparison."""

    data_point_id: UUID
    period_id: UUID
    period_name: str
    value: str | None
    numeric_value: Decimal | None
    unit: str | None


@dataclass(frozen=True)
class ComparisonBaseline:
    """A prior period the current value can be compared against."""

    period_id: UUID
    period_name: str
    label: str
    has_data: bool


@dataclass(frozen=True)
class MetricComparison:
    """
    A data point set against one of its prior-period versions.

    ``unavailable_reason`` is None exactly when ``is_comparison_available``.
    ``percentage_change`` is also None when the prior value is zero.
    """

    data_point_id: UUID
    title: str
    current_period: MetricPeriodValue
    prior_period: MetricPeriodValue | None
    available_baselines: tuple[ComparisonBaseline, ...]
    units_compatible: bool
    unit_warning: str | None = None
    unavailable_reason: str | None = None
    absolute_change: Decimal | None = None
    percentage_change: Decimal | None = None

    @property
    def is_comparison_available(self) -> bool:
        return self.unavailable_reason is None
