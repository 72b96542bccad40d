"""
Rollover request values (``esg_kernel.domain.rollover``).

Responsibility:
    Frozen inputs of a period rollover: the option flags with their
    dependency chain, per-call rule overrides, manual section mappings and
    the target period definition.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.  Consumed by the rule
    resolver and catalog mapper engines and by the rollover orchestrator.

Invariants enforced:
    - Option dependency chain:
      copy_attachments => copy_data_values => copy_disclosures => copy_structure.
      ``RolloverOptions.validate()`` reports every broken link at once and
      never downgrades a flag on the caller's behalf.
    - ``due_date_adjustment_days`` is only applied when positive.

Failure modes:
    - InvalidRolloverOptionsError from ``RolloverOptions.validate()``.
    - InvalidTargetPeriodError from ``TargetPeriodSpec.validate()``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from typing import Any

from esg_kernel.domain.values import ReportingMode, ReportScope
from esg_kernel.exceptions import InvalidRolloverOptionsError, InvalidTargetPeriodError


class RolloverRuleType(str, Enum):
    """How a data point of a given data type is carried into the next period."""

    COPY = "copy"
    RESET = "reset"
    COPY_AS_DRAFT = "copy-as-draft"


class MappingType(str, Enum):
    """How a source section was matched to its target section."""

    AUTOMATIC = "automatic"
    MANUAL = "manual"


# (dependent flag, flag it requires)
OPTION_DEPENDENCIES: tuple[tuple[str, str], ...] = (
    ("copy_attachments", "copy_data_values"),
    ("copy_data_values", "copy_disclosures"),
    ("copy_disclosures", "copy_structure"),
)


@dataclass(frozen=True)
class RolloverOptions:
    """
    What a rollover copies.

    Contract:
        Each flag enables one copy stage.  A stage may only be enabled when
        the stage it depends on is enabled too.
    """

    copy_structure: bool = True
    copy_disclosures: bool = False
    copy_data_values: bool = False
    copy_attachments: bool = False
    carry_forward_gaps_and_assumptions: bool = True
    due_date_adjustment_days: int | None = None

    def violations(self) -> tuple[str, ...]:
        found = []
        for dependent, required in OPTION_DEPENDENCIES:
            if getattr(self, dependent) and not getattr(self, required):
                found.append(f"{dependent} requires {required}")
        if self.due_date_adjustment_days is not None and self.due_date_adjustment_days < 0:
            found.append("due_date_adjustment_days must not be negative")
        return tuple(found)

    def validate(self) -> None:
        """Raise InvalidRolloverOptionsError listing every violation."""
        found = self.violations()
        if found:
            raise InvalidRolloverOptionsError(found)

    @property
    def due_date_shift_days(self) -> int:
        if self.due_date_adjustment_days and self.due_date_adjustment_days > 0:
            return self.due_date_adjustment_days
        return 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RolloverRuleOverride:
    """A rule that applies to one data type for one rollover call only."""

    data_type: str
    rule_type: RolloverRuleType


@dataclass(frozen=True)
class ManualSectionMapping:
    """Explicit source catalog code -> target catalog code pairing."""

    source_catalog_code: str
    target_catalog_code: str


@dataclass(frozen=True)
class TargetPeriodSpec:
    """
    The period a rollover creates.

    ``reporting_mode`` and ``report_scope`` default to the source period's
    values when omitted.
    """

    name: str
    start_date: date
    end_date: date
    reporting_mode: ReportingMode | None = None
    report_scope: ReportScope | None = None

    def validate(self) -> None:
        if not self.name or not self.name.strip():
            raise InvalidTargetPeriodError("name must not be empty")
        if self.start_date >= self.end_date:
            raise InvalidTargetPeriodError(
                f"start date {self.start_date} must be before end date {self.end_date}"
            )
