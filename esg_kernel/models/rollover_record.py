"""
Module: esg_kernel.models.rollover_record
Responsibility: ORM persistence for the two records a rollover leaves
    behind: the audit log entry with copy counts and the reconciliation
    record with itemized mapping results.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Both rows are keyed by the rollover operation id; one of each per
      completed rollover.
    - Both are immutable once flushed (ORM listener).
    - Neither exists for a rejected, failed or cancelled rollover: they are
      written inside the rollover savepoint.

Audit relevance:
    The audit log answers "what was carried, by whom, with which options";
    the reconciliation answers "what was NOT carried and what to do about it".
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from esg_kernel.db.base import Base, UUIDString


class RolloverAuditLog(Base):
    """
    One completed rollover.

    ``id`` is the rollover operation id, stamped on every carried data point
    as ``rollover_id``.
    """

    __tablename__ = "rollover_audit_logs"

    source_period_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("reporting_periods.id"),
        nullable=False,
    )

    source_period_name: Mapped[str] = mapped_column(String(200), nullable=False)

    target_period_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("reporting_periods.id"),
        nullable=False,
    )

    target_period_name: Mapped[str] = mapped_column(String(200), nullable=False)

    performed_by: Mapped[str] = mapped_column(String(100), nullable=False)

    performed_by_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    performed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    options: Mapped[dict] = mapped_column(JSON, nullable=False)

    rule_overrides: Mapped[list | None] = mapped_column(JSON, nullable=True)

    # Copy counts
    sections_copied: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    data_points_copied: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    gaps_copied: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    assumptions_copied: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    remediation_plans_copied: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    remediation_actions_copied: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    evidence_copied: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<RolloverAuditLog {self.source_period_name} -> "
            f"{self.target_period_name}>"
        )


class RolloverReconciliationRecord(Base):
    """Itemized mapping outcome of one rollover."""

    __tablename__ = "rollover_reconciliations"

    rollover_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("rollover_audit_logs.id"),
        nullable=False,
        unique=True,
    )

    total_source_sections: Mapped[int] = mapped_column(Integer, nullable=False)
    mapped_sections: Mapped[int] = mapped_column(Integer, nullable=False)
    unmapped_sections: Mapped[int] = mapped_column(Integer, nullable=False)

    # Canonical JSON (sorted keys) of the itemized results
    mapped_items: Mapped[str] = mapped_column(Text, nullable=False)
    unmapped_items: Mapped[str] = mapped_column(Text, nullable=False)

    configuration_issues: Mapped[list | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<RolloverReconciliationRecord {self.mapped_sections}/"
            f"{self.total_source_sections} mapped>"
        )
