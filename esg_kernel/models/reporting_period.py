"""
Module: esg_kernel.models.reporting_period
Responsibility: ORM persistence for reporting periods -- the time-boxed
    containers that hold a report's sections, data points and disclosures.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - Period names are unique per organization (uq_period_org_name).
    - Periods are never deleted, only superseded (ORM listener).
    - A LOCKED period is frozen: no field changes (ORM listener).
    - A period produced by rollover records its source in
      ``rolled_over_from_id`` and is invisible (STAGING) until the rollover
      commits.

Failure modes:
    - IntegrityError on duplicate (organization_id, name).
    - ImmutabilityViolationError on delete, or on update of a LOCKED period.

Audit relevance:
    Period creation and lock produce PERIOD_CREATED / PERIOD_LOCKED audit
    events.  ``integrity_hash`` seals the data point content at lock time.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from esg_kernel.db.base import TrackedBase, UUIDString, enum_column_type
from esg_kernel.domain.values import PeriodStatus, ReportingMode, ReportScope

# Allowed status transitions (from -> set of valid targets)
VALID_PERIOD_TRANSITIONS: dict[PeriodStatus, frozenset[PeriodStatus]] = {
    PeriodStatus.DRAFT: frozenset({PeriodStatus.ACTIVE}),
    PeriodStatus.STAGING: frozenset({PeriodStatus.ACTIVE}),
    PeriodStatus.ACTIVE: frozenset({PeriodStatus.LOCKED}),
    # Terminal
    PeriodStatus.LOCKED: frozenset(),
}


class ReportingPeriod(TrackedBase):
    """
    A reporting period and the root of its report graph.

    Contract:
        Created by PeriodService (manual) or by the rollover orchestrator.
        Mutable until locked; never deleted.

    Guarantees:
        - (organization_id, name) is unique.
        - start_date < end_date (enforced by the service layer).
    """

    __tablename__ = "reporting_periods"

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_period_org_name"),
        Index("idx_reporting_period_status", "status"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    organization_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="default",
    )

    # Period boundaries (inclusive)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    reporting_mode: Mapped[ReportingMode] = mapped_column(
        enum_column_type(ReportingMode),
        default=ReportingMode.SIMPLIFIED,
        nullable=False,
    )

    report_scope: Mapped[ReportScope] = mapped_column(
        enum_column_type(ReportScope),
        default=ReportScope.SINGLE_COMPANY,
        nullable=False,
    )

    status: Mapped[PeriodStatus] = mapped_column(
        enum_column_type(PeriodStatus),
        default=PeriodStatus.DRAFT,
        nullable=False,
    )

    owner_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # SHA-256 over the period's data points, set when the period is locked
    integrity_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    locked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    locked_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Source period when this period was produced by a rollover
    rolled_over_from_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("reporting_periods.id"),
        nullable=True,
    )

    sections: Mapped[list["ReportSection"]] = relationship(  # noqa: F821
        back_populates="period",
        order_by="ReportSection.sort_order",
    )

    def __repr__(self) -> str:
        return f"<ReportingPeriod {self.name}: {self.status.value}>"

    @property
    def is_locked(self) -> bool:
        return self.status == PeriodStatus.LOCKED

    @property
    def is_visible(self) -> bool:
        """Staging periods belong to an uncommitted rollover."""
        return self.status != PeriodStatus.STAGING

    def can_transition_to(self, target: PeriodStatus) -> bool:
        return target in VALID_PERIOD_TRANSITIONS.get(self.status, frozenset())
