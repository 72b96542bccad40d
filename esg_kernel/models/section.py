"""
Module: esg_kernel.models.section
Responsibility: ORM persistence for the section catalog and for the report
    sections instantiated from it inside each period.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - A ReportSection belongs to exactly one period.
    - ``catalog_code`` is the only stable identity of a section across
      periods.  It is optional; sections without it cannot be matched
      automatically by a rollover.
    - Catalog codes are NOT unique at the database level: a duplicated code
      is a configuration error that the catalog mapper reports rather than a
      write that fails.

Audit relevance:
    ``source_section_id`` records which prior-period section a rolled-over
    section was carried from.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from esg_kernel.db.base import TrackedBase, UUIDString, enum_column_type
from esg_kernel.domain.values import SectionStatus


class SectionCatalogItem(TrackedBase):
    """
    Organization-level definition of a section that periods instantiate.

    Contract:
        Deprecated items stay in the table for history but are excluded from
        the active catalog that seeds new periods.
    """

    __tablename__ = "section_catalog_items"

    __table_args__ = (
        Index("idx_catalog_org_code", "organization_id", "code"),
    )

    organization_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="default",
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    # environmental / social / governance
    category: Mapped[str] = mapped_column(String(50), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    is_deprecated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    deprecated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<SectionCatalogItem {self.code}>"


class ReportSection(TrackedBase):
    """
    A section of one period's report.

    Guarantees:
        - period_id is required.
        - catalog_code, when present, is copied from the catalog item the
          section was seeded from.
    """

    __tablename__ = "report_sections"

    __table_args__ = (
        Index("idx_section_period", "period_id"),
        Index("idx_section_period_code", "period_id", "catalog_code"),
    )

    period_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("reporting_periods.id"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)

    category: Mapped[str] = mapped_column(String(50), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    owner_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[SectionStatus] = mapped_column(
        enum_column_type(SectionStatus),
        default=SectionStatus.DRAFT,
        nullable=False,
    )

    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    catalog_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    catalog_item_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("section_catalog_items.id"),
        nullable=True,
    )

    # Lineage: the prior-period section this one was carried from
    source_section_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("report_sections.id"),
        nullable=True,
    )

    period: Mapped["ReportingPeriod"] = relationship(  # noqa: F821
        back_populates="sections",
    )

    data_points: Mapped[list["DataPoint"]] = relationship(  # noqa: F821
        back_populates="section",
        order_by="DataPoint.created_at",
    )

    def __repr__(self) -> str:
        return f"<ReportSection {self.catalog_code or '-'}: {self.title}>"
