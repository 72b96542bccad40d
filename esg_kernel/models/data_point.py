"""
Module: esg_kernel.models.data_point
Responsibility: ORM persistence for data points and their append-only
    gap-status history.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - A data point has at most one lineage source (``source_data_point_id``)
      and the source is a committed row of an earlier period.  Lineage is
      a singly linked ancestry chain; the lineage selector rejects cycles.
    - ``gap_status`` is only changed through GapStatusService, which
      appends exactly one GapStatusHistoryEntry per executed transition.
    - GapStatusHistoryEntry rows are append-only (ORM listener).
    - Data points of a LOCKED period are frozen (ORM listener).

Failure modes:
    - ImmutabilityViolationError on UPDATE/DELETE of a history entry.
    - ImmutabilityViolationError on UPDATE of a data point in a locked period.

Audit relevance:
    The lineage columns answer "where did this number come from": source
    period, source data point, when it was carried and by whom.  The
    history table answers "who moved this gap and why".
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from esg_kernel.db.base import Base, TrackedBase, UUIDString, enum_column_type
from esg_kernel.domain.gap_status import GapStatus
from esg_kernel.domain.values import (
    CompletenessStatus,
    EstimateFields,
    InformationType,
    ReviewStatus,
)


class DataPoint(TrackedBase):
    """
    One reported value or narrative inside a section.

    Contract:
        Content fields are edited freely while the period is open.  Gap
        status fields move only through the gap-status lifecycle.  Lineage
        fields are written once, by the rollover content copier.

    Guarantees:
        - section_id is required.
        - lineage fields are either all empty (original data point) or
          source_period_id, source_data_point_id, rollover_id and
          rollover_timestamp are all set (carried-forward data point).
    """

    __tablename__ = "data_points"

    __table_args__ = (
        Index("idx_data_point_section", "section_id"),
        Index("idx_data_point_source", "source_data_point_id"),
        Index("idx_data_point_rollover", "rollover_id"),
    )

    section_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("report_sections.id"),
        nullable=False,
    )

    # Key into the rollover rule registry ("kpi", "narrative", ...)
    data_type: Mapped[str] = mapped_column(String(50), nullable=False)

    classification: Mapped[str | None] = mapped_column(String(100), nullable=True)

    title: Mapped[str] = mapped_column(String(500), nullable=False)

    content: Mapped[str | None] = mapped_column(Text, nullable=True)

    value: Mapped[str | None] = mapped_column(String(500), nullable=True)

    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)

    owner_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    source: Mapped[str | None] = mapped_column(String(500), nullable=True)

    information_type: Mapped[InformationType] = mapped_column(
        enum_column_type(InformationType),
        default=InformationType.FACT,
        nullable=False,
    )

    review_status: Mapped[ReviewStatus] = mapped_column(
        enum_column_type(ReviewStatus),
        default=ReviewStatus.DRAFT,
        nullable=False,
    )

    completeness_status: Mapped[CompletenessStatus] = mapped_column(
        enum_column_type(CompletenessStatus),
        default=CompletenessStatus.INCOMPLETE,
        nullable=False,
    )

    # Gap fields
    is_missing: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    missing_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # None: never flagged
    gap_status: Mapped[GapStatus | None] = mapped_column(
        enum_column_type(GapStatus, 20),
        nullable=True,
    )

    # Estimate fields
    estimate_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    estimate_method: Mapped[str | None] = mapped_column(Text, nullable=True)
    confidence_level: Mapped[str | None] = mapped_column(String(50), nullable=True)

    previous_estimate_snapshot: Mapped[dict | None] = mapped_column(
        JSON,
        nullable=True,
    )

    # Lineage
    source_period_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("reporting_periods.id"),
        nullable=True,
    )

    source_period_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    source_data_point_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("data_points.id"),
        nullable=True,
    )

    rollover_timestamp: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    rollover_performed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    rollover_performed_by_name: Mapped[str | None] = mapped_column(
        String(200),
        nullable=True,
    )

    rollover_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    section: Mapped["ReportSection"] = relationship(  # noqa: F821
        back_populates="data_points",
    )

    evidence: Mapped[list["Evidence"]] = relationship(  # noqa: F821
        secondary="data_point_evidence",
        back_populates="data_points",
    )

    def __repr__(self) -> str:
        status = self.gap_status.value if self.gap_status else "none"
        return f"<DataPoint {self.data_type}: {self.title} [{status}]>"

    @property
    def estimate(self) -> EstimateFields:
        return EstimateFields(
            estimate_type=self.estimate_type,
            estimate_method=self.estimate_method,
            confidence_level=self.confidence_level,
        )

    def apply_estimate(self, estimate: EstimateFields) -> None:
        self.estimate_type = estimate.estimate_type
        self.estimate_method = estimate.estimate_method
        self.confidence_level = estimate.confidence_level

    def clear_estimate(self) -> None:
        self.apply_estimate(EstimateFields())

    @property
    def is_rolled_over(self) -> bool:
        return self.source_data_point_id is not None


class GapStatusHistoryEntry(Base):
    """
    One executed gap-status transition.

    Contract:
        Append-only.  Written by GapStatusService in the same flush as the
        data point change it records.

    Guarantees:
        - from_status is None only for the initial ``none -> missing`` flag.
        - estimate_snapshot holds the estimate fields as they were before an
          ``estimated -> provided`` transition, None otherwise.
    """

    __tablename__ = "gap_status_history"

    __table_args__ = (
        Index("idx_gap_history_data_point", "data_point_id", "transitioned_at"),
    )

    data_point_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("data_points.id"),
        nullable=False,
    )

    from_status: Mapped[GapStatus | None] = mapped_column(
        enum_column_type(GapStatus, 20),
        nullable=True,
    )

    to_status: Mapped[GapStatus] = mapped_column(
        enum_column_type(GapStatus, 20),
        nullable=False,
    )

    transitioned_by: Mapped[str] = mapped_column(String(100), nullable=False)

    transitioned_by_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    transitioned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    change_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    estimate_snapshot: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Insertion order within a data point; timestamps can tie under a fixed clock
    sequence: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        from_value = self.from_status.value if self.from_status else "none"
        return f"<GapStatusHistoryEntry {from_value} -> {self.to_status.value}>"
