"""Services for the ESG kernel (write side)."""

from esg_kernel.services.auditor_service import AuditorService, AuditTrace, AuditTraceEntry
from esg_kernel.services.gap_status_service import GapStatusService
from esg_kernel.services.period_service import PeriodService
from esg_kernel.services.rollover_rule_service import RolloverRuleService
from esg_kernel.services.sequence_service import SequenceService

__all__ = [
    "AuditorService",
    "AuditTrace",
    "AuditTraceEntry",
    "GapStatusService",
    "PeriodService",
    "RolloverRuleService",
    "SequenceService",
]
