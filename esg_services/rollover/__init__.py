"""Period rollover: orchestrator, content copier, ownership and reconciliation."""

from esg_services.rollover._rollover_types import (
    InactiveOwnerWarning,
    MappedSectionItem,
    RolloverAuditLogInfo,
    RolloverCounts,
    RolloverReconciliation,
    RolloverRequest,
    RolloverResult,
    RolloverStatus,
    UnmappedSectionItem,
)
from esg_services.rollover.content_copier import ContentCopier, CopyReport
from esg_services.rollover.orchestrator import RolloverOrchestrator
from esg_services.rollover.ownership_validator import OwnershipValidator
from esg_services.rollover.reconciliation_reporter import ReconciliationReporter

__all__ = [
    "ContentCopier",
    "CopyReport",
    "InactiveOwnerWarning",
    "MappedSectionItem",
    "OwnershipValidator",
    "ReconciliationReporter",
    "RolloverAuditLogInfo",
    "RolloverCounts",
    "RolloverOrchestrator",
    "RolloverReconciliation",
    "RolloverRequest",
    "RolloverResult",
    "RolloverStatus",
    "UnmappedSectionItem",
]
