"""
Module: esg_kernel.models.evidence
Responsibility: ORM persistence for evidence files attached to a section and
    the many-to-many link between evidence and data points.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Evidence bytes live outside the database; a row only references a
      file by ``file_url`` and ``checksum``.
    - A carried-forward evidence row is a reference to the same file: same
      ``file_url`` and ``checksum``, ``is_reference=True`` and
      ``source_evidence_id`` pointing at the prior-period row.
"""

from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from esg_kernel.db.base import Base, TrackedBase, UUIDString

data_point_evidence = Table(
    "data_point_evidence",
    Base.metadata,
    Column("data_point_id", UUIDString(), ForeignKey("data_points.id"), primary_key=True),
    Column("evidence_id", UUIDString(), ForeignKey("evidence.id"), primary_key=True),
)


class Evidence(TrackedBase):
    """An evidence file supporting the content of a section."""

    __tablename__ = "evidence"

    __table_args__ = (
        Index("idx_evidence_section", "section_id"),
    )

    section_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("report_sections.id"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    file_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    file_name: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # SHA-256 of the file content
    checksum: Mapped[str | None] = mapped_column(String(64), nullable=True)

    file_size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    content_type: Mapped[str | None] = mapped_column(String(100), nullable=True)

    uploaded_by: Mapped[str] = mapped_column(String(100), nullable=False)

    source_evidence_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("evidence.id"),
        nullable=True,
    )

    is_reference: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    data_points: Mapped[list["DataPoint"]] = relationship(  # noqa: F821
        secondary=data_point_evidence,
        back_populates="evidence",
    )

    def __repr__(self) -> str:
        marker = " (ref)" if self.is_reference else ""
        return f"<Evidence {self.file_name or self.title}{marker}>"
