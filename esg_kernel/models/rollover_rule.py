"""
Module: esg_kernel.models.rollover_rule
Responsibility: ORM persistence for the versioned registry of per-data-type
    rollover rules and its append-only change history.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - At most one rule row per data type (uq_rollover_rule_data_type).
    - ``version`` increases by one on every save; deletes deactivate the
      row instead of removing it.
    - RolloverRuleHistory rows are append-only (ORM listener).

Audit relevance:
    The history table reconstructs which rule governed a data type at the
    time of any past rollover.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from esg_kernel.db.base import Base, TrackedBase, UUIDString, enum_column_type
from esg_kernel.domain.rollover import RolloverRuleType


class RuleChangeType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class DataTypeRolloverRule(TrackedBase):
    """
    The current rollover rule for one data type.

    Contract:
        Written only by RolloverRuleService.  Inactive rows are ignored by
        ``RolloverRuleService.active_rules()``.
    """

    __tablename__ = "rollover_rules"

    __table_args__ = (
        UniqueConstraint("data_type", name="uq_rollover_rule_data_type"),
    )

    data_type: Mapped[str] = mapped_column(String(50), nullable=False)

    rule_type: Mapped[RolloverRuleType] = mapped_column(
        enum_column_type(RolloverRuleType, 20),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<DataTypeRolloverRule {self.data_type}={self.rule_type.value} v{self.version}>"


class RolloverRuleHistory(Base):
    """One change to a rollover rule, as it was after the change."""

    __tablename__ = "rollover_rule_history"

    __table_args__ = (
        Index("idx_rule_history_rule", "rule_id", "version"),
    )

    rule_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("rollover_rules.id"),
        nullable=False,
    )

    data_type: Mapped[str] = mapped_column(String(50), nullable=False)

    rule_type: Mapped[RolloverRuleType] = mapped_column(
        enum_column_type(RolloverRuleType, 20),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    change_type: Mapped[RuleChangeType] = mapped_column(
        enum_column_type(RuleChangeType, 20),
        nullable=False,
    )

    changed_by: Mapped[str] = mapped_column(String(100), nullable=False)

    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<RolloverRuleHistory {self.data_type} v{self.version} "
            f"{self.change_type.value}>"
        )
