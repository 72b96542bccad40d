"""
Value objects and closed vocabularies for ESG report content.

Responsibility:
    Closed enumerations for the string-valued attributes of periods,
    sections and data points, plus the ``EstimateFields`` value object that
    travels with gap-status transitions and estimate snapshots.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.  Imported by models,
    engines and services alike.

Invariants enforced:
    - Every status-like attribute is a ``str`` Enum: unknown values fail at
      construction, never at comparison time.
    - ``EstimateFields.snapshot()`` is deterministic (fixed key set), so an
      estimate snapshot hashes identically on every run.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class PeriodStatus(str, Enum):
    """Lifecycle status of a reporting period.

    Contract: DRAFT -> ACTIVE -> LOCKED for manually created periods;
    STAGING -> ACTIVE for a period being built by a rollover.  LOCKED is
    terminal.
    """

    DRAFT = "draft"
    STAGING = "staging"
    ACTIVE = "active"
    LOCKED = "locked"


class ReportingMode(str, Enum):
    """Depth of the report a period produces."""

    SIMPLIFIED = "simplified"
    EXTENDED = "extended"


class ReportScope(str, Enum):
    """Organizational scope a period reports on."""

    SINGLE_COMPANY = "single-company"
    GROUP = "group"


class SectionStatus(str, Enum):
    """Editorial state of a report section."""

    DRAFT = "draft"
    IN_PROGRESS = "in-progress"
    SUBMITTED = "submitted"
    APPROVED = "approved"


class ReviewStatus(str, Enum):
    """Review state of a data point."""

    DRAFT = "draft"
    READY_FOR_REVIEW = "ready-for-review"
    APPROVED = "approved"
    CHANGES_REQUESTED = "changes-requested"


class CompletenessStatus(str, Enum):
    """How complete the content of a data point is."""

    MISSING = "missing"
    INCOMPLETE = "incomplete"
    COMPLETE = "complete"
    NOT_APPLICABLE = "not-applicable"


class InformationType(str, Enum):
    """Nature of the information a data point carries."""

    FACT = "fact"
    ESTIMATE = "estimate"
    DECLARATION = "declaration"
    PLAN = "plan"


@dataclass(frozen=True)
class EstimateFields:
    """
    The three fields that describe an estimate.

    Contract:
        Carried by ``missing -> estimated`` requests and frozen into
        ``PreviousEstimateSnapshot`` on ``estimated -> provided``.
    """

    estimate_type: str | None = None
    estimate_method: str | None = None
    confidence_level: str | None = None

    FIELD_NAMES = ("estimate_type", "estimate_method", "confidence_level")

    def first_missing(self) -> str | None:
        """Name of the first blank field, or None if all are present."""
        for name in self.FIELD_NAMES:
            value = getattr(self, name)
            if value is None or not str(value).strip():
                return name
        return None

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, name) in (None, "") for name in self.FIELD_NAMES)

    def snapshot(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.FIELD_NAMES}

    @classmethod
    def from_snapshot(cls, data: dict[str, Any] | None) -> EstimateFields:
        data = data or {}
        return cls(**{name: data.get(name) for name in cls.FIELD_NAMES})
