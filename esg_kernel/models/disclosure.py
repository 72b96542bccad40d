"""
Module: esg_kernel.models.disclosure
Responsibility: ORM persistence for the disclosure records attached to a
    section: gaps, assumptions, remediation plans and their actions.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Every disclosure belongs to exactly one section, and therefore to
      exactly one period.
    - The optional ``data_point_id`` link points into the same period.  A
      carried-forward record is relinked to the successor data point by
      the rollover, or left unlinked when data values are not carried.
    - ``source_*_id`` columns record the prior-period row a record was
      carried from and are written once.

Audit relevance:
    Gaps and assumptions explain why a figure is missing or estimated.
    Remediation plans and actions are the organization's commitment to fix
    it, so their due dates and owners are carried into the next period.
"""

from datetime import date
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from esg_kernel.db.base import TrackedBase, UUIDString, enum_column_type


class AssumptionStatus(str, Enum):
    ACTIVE = "active"
    DEPRECATED = "deprecated"
    INVALID = "invalid"


class RemediationStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ActionStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Gap(TrackedBase):
    """A known gap in the reported information of a section."""

    __tablename__ = "gaps"

    __table_args__ = (
        Index("idx_gap_section", "section_id"),
    )

    section_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("report_sections.id"),
        nullable=False,
    )

    data_point_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("data_points.id"),
        nullable=True,
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    impact: Mapped[str | None] = mapped_column(String(50), nullable=True)

    improvement_plan: Mapped[str | None] = mapped_column(Text, nullable=True)

    target_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    resolved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    source_gap_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("gaps.id"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Gap {self.title}>"


class Assumption(TrackedBase):
    """
    A stated assumption behind an estimate.

    Guarantees:
        - validity_end_date >= validity_start_date when both are set
          (not enforced at the database level).
    """

    __tablename__ = "assumptions"

    __table_args__ = (
        Index("idx_assumption_section", "section_id"),
    )

    section_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("report_sections.id"),
        nullable=False,
    )

    data_point_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("data_points.id"),
        nullable=True,
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    scope: Mapped[str | None] = mapped_column(String(200), nullable=True)

    validity_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    validity_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    methodology: Mapped[str | None] = mapped_column(Text, nullable=True)

    limitations: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[AssumptionStatus] = mapped_column(
        enum_column_type(AssumptionStatus, 20),
        default=AssumptionStatus.ACTIVE,
        nullable=False,
    )

    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    source_assumption_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("assumptions.id"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Assumption {self.title} v{self.version}>"

    def is_expired_on(self, as_of: date) -> bool:
        return self.validity_end_date is not None and self.validity_end_date < as_of


class RemediationPlan(TrackedBase):
    """A plan to close a gap or replace an assumption with real data."""

    __tablename__ = "remediation_plans"

    __table_args__ = (
        Index("idx_remediation_plan_section", "section_id"),
    )

    section_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("report_sections.id"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Free text such as "FY2026"; copied verbatim by rollover
    target_period: Mapped[str | None] = mapped_column(String(100), nullable=True)

    owner_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    priority: Mapped[Priority] = mapped_column(
        enum_column_type(Priority, 20),
        default=Priority.MEDIUM,
        nullable=False,
    )

    status: Mapped[RemediationStatus] = mapped_column(
        enum_column_type(RemediationStatus, 20),
        default=RemediationStatus.PLANNED,
        nullable=False,
    )

    gap_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("gaps.id"),
        nullable=True,
    )

    assumption_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("assumptions.id"),
        nullable=True,
    )

    data_point_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("data_points.id"),
        nullable=True,
    )

    source_plan_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("remediation_plans.id"),
        nullable=True,
    )

    actions: Mapped[list["RemediationAction"]] = relationship(
        back_populates="plan",
        order_by="RemediationAction.created_at",
    )

    def __repr__(self) -> str:
        return f"<RemediationPlan {self.title}: {self.status.value}>"


class RemediationAction(TrackedBase):
    """One step of a remediation plan."""

    __tablename__ = "remediation_actions"

    __table_args__ = (
        Index("idx_remediation_action_plan", "plan_id"),
    )

    plan_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("remediation_plans.id"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    owner_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    status: Mapped[ActionStatus] = mapped_column(
        enum_column_type(ActionStatus, 20),
        default=ActionStatus.PENDING,
        nullable=False,
    )

    source_action_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("remediation_actions.id"),
        nullable=True,
    )

    plan: Mapped[RemediationPlan] = relationship(back_populates="actions")

    def __repr__(self) -> str:
        return f"<RemediationAction {self.title}: {self.status.value}>"
