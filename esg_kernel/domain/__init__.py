"""
Pure domain layer.

This module contains value objects, the gap-status state machine and the
rollover request values, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock
- I/O

All domain objects are immutable and deterministic.
"""

from esg_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from esg_kernel.domain.collaborators import (
    CatalogRegistry,
    StaticUserRegistry,
    UserRegistry,
)
from esg_kernel.domain.gap_status import (
    GAP_STATUS_WORKFLOW,
    VALID_GAP_TRANSITIONS,
    GapStatus,
    GapTransitionRequest,
    is_valid_transition,
    validate_request,
)
from esg_kernel.domain.rollover import (
    ManualSectionMapping,
    MappingType,
    RolloverOptions,
    RolloverRuleOverride,
    RolloverRuleType,
    TargetPeriodSpec,
)
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

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CatalogRegistry",
    "StaticUserRegistry",
    "UserRegistry",
    "GAP_STATUS_WORKFLOW",
    "VALID_GAP_TRANSITIONS",
    "GapStatus",
    "GapTransitionRequest",
    "is_valid_transition",
    "validate_request",
    "ManualSectionMapping",
    "MappingType",
    "RolloverOptions",
    "RolloverRuleOverride",
    "RolloverRuleType",
    "TargetPeriodSpec",
    "CompletenessStatus",
    "EstimateFields",
    "InformationType",
    "PeriodStatus",
    "ReportingMode",
    "ReportScope",
    "ReviewStatus",
    "SectionStatus",
]
