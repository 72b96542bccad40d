"""Domain models for the ESG kernel."""

from esg_kernel.models.audit_event import AuditAction, AuditEvent
from esg_kernel.models.data_point import DataPoint, GapStatusHistoryEntry
from esg_kernel.models.disclosure import (
    ActionStatus,
    Assumption,
    AssumptionStatus,
    Gap,
    Priority,
    RemediationAction,
    RemediationPlan,
    RemediationStatus,
)
from esg_kernel.models.evidence import Evidence, data_point_evidence
from esg_kernel.models.reporting_period import (
    VALID_PERIOD_TRANSITIONS,
    ReportingPeriod,
)
from esg_kernel.models.rollover_record import (
    RolloverAuditLog,
    RolloverReconciliationRecord,
)
from esg_kernel.models.rollover_rule import (
    DataTypeRolloverRule,
    RolloverRuleHistory,
    RuleChangeType,
)
from esg_kernel.models.section import ReportSection, SectionCatalogItem

__all__ = [
    "AuditAction",
    "AuditEvent",
    "ReportingPeriod",
    "VALID_PERIOD_TRANSITIONS",
    "SectionCatalogItem",
    "ReportSection",
    "DataPoint",
    "GapStatusHistoryEntry",
    "Gap",
    "Assumption",
    "AssumptionStatus",
    "RemediationPlan",
    "RemediationStatus",
    "RemediationAction",
    "ActionStatus",
    "Priority",
    "Evidence",
    "data_point_evidence",
    "DataTypeRolloverRule",
    "RolloverRuleHistory",
    "RuleChangeType",
    "RolloverAuditLog",
    "RolloverReconciliationRecord",
]
