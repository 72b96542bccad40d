"""
Typed Exception Hierarchy for the ESG Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Rollover and gap-status failures are reported back to people who have to fix
a root cause and re-run the operation. Callers must never parse message
strings to decide what happened:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        service.transition(dp_id, GapStatus.MISSING, GapStatus.ESTIMATED, "U1")
    except GapTransitionValidationError as e:
        api_response(code=e.code, field=e.field_name)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from EsgKernelError:

    EsgKernelError (base)
    |
    +-- PeriodError
    |   +-- PeriodNotFoundError
    |   +-- PeriodNameCollisionError
    |   +-- InvalidPeriodDatesError
    |   +-- PeriodLockedError
    |
    +-- RolloverError
    |   +-- RolloverValidationError
    |   |   +-- InvalidRolloverOptionsError
    |   |   +-- SourcePeriodNotFoundError
    |   |   +-- SourcePeriodNotReadyError
    |   |   +-- TargetPeriodNameCollisionError
    |   |   +-- InvalidTargetPeriodError
    |   |   +-- ManualMappingTargetNotFoundError
    |   +-- RolloverInProgressError
    |   +-- RolloverCancelledError
    |
    +-- GapStatusError
    |   +-- DataPointNotFoundError
    |   +-- InvalidGapStatusTransitionError
    |   +-- GapTransitionValidationError
    |
    +-- RolloverRuleError
    |   +-- RolloverRuleNotFoundError
    |   +-- InvalidRolloverRuleError
    |
    +-- LineageError
    |   +-- LineageCycleError
    |
    +-- AuditError
    |   +-- AuditChainBrokenError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |       +-- GapStatusConflictError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                             | When Raised
----------------|----------------------------------|-----------------------------------
Period          | PERIOD_NOT_FOUND                 | Period ID doesn't exist
                | PERIOD_NAME_COLLISION            | Name already used in organization
                | INVALID_PERIOD_DATES             | start_date not before end_date
                | PERIOD_LOCKED                    | Period is locked
----------------|----------------------------------|-----------------------------------
Rollover        | INVALID_ROLLOVER_OPTIONS         | Option dependency chain violated
                | SOURCE_PERIOD_NOT_FOUND          | Source period doesn't exist
                | SOURCE_PERIOD_NOT_READY          | Source period is still draft
                | TARGET_PERIOD_NAME_COLLISION     | Target name already exists
                | INVALID_TARGET_PERIOD            | Target dates or name invalid
                | MANUAL_MAPPING_TARGET_NOT_FOUND  | Manual mapping names unknown code
                | ROLLOVER_IN_PROGRESS             | Same source already rolling over
                | ROLLOVER_CANCELLED               | Cancelled or timed out
----------------|----------------------------------|-----------------------------------
Gap status      | DATA_POINT_NOT_FOUND             | Data point ID doesn't exist
                | INVALID_GAP_STATUS_TRANSITION    | Pair not in transition table
                | GAP_TRANSITION_VALIDATION        | Required field missing
                | GAP_STATUS_CONFLICT              | Expected from-status is stale
----------------|----------------------------------|-----------------------------------
Rules           | ROLLOVER_RULE_NOT_FOUND          | No rule for data type
                | INVALID_ROLLOVER_RULE            | Rule payload is malformed
----------------|----------------------------------|-----------------------------------
Lineage         | LINEAGE_CYCLE                    | Ancestry chain revisits a node
----------------|----------------------------------|-----------------------------------
Audit           | AUDIT_CHAIN_BROKEN               | Hash chain validation failed
----------------|----------------------------------|-----------------------------------
Immutability    | IMMUTABILITY_VIOLATION           | Modifying an append-only record

===============================================================================
DESIGN DECISIONS
===============================================================================

1. WHY A RolloverValidationError CATEGORY?
   The rollover orchestrator turns every validation error into a REJECTED
   result before any write happens. One category keeps that mapping to a
   single ``except`` clause.

2. WHY IS GapStatusConflictError AN OptimisticLockError?
   It is the per-data-point optimistic check: the caller's view of the
   current status is stale. Middleware that retries optimistic conflicts
   after a re-read handles it without special casing.
"""


class EsgKernelError(Exception):
    """
    Base exception for all ESG kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "ESG_KERNEL_ERROR"


# Period-related exceptions


class PeriodError(EsgKernelError):
    """Base exception for reporting period errors."""

    code: str = "PERIOD_ERROR"


class PeriodNotFoundError(PeriodError):
    """Reporting period was not found."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, period_id: str):
        self.period_id = period_id
        super().__init__(f"Reporting period not found: {period_id}")


class PeriodNameCollisionError(PeriodError):
    """A period with the same name already exists in the organization."""

    code: str = "PERIOD_NAME_COLLISION"

    def __init__(self, name: str, organization_id: str | None):
        self.name = name
        self.organization_id = organization_id
        super().__init__(
            f"A reporting period named '{name}' already exists"
            + (f" for organization {organization_id}" if organization_id else "")
        )


class InvalidPeriodDatesError(PeriodError):
    """Period start date is not before its end date."""

    code: str = "INVALID_PERIOD_DATES"

    def __init__(self, start_date: str, end_date: str):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"Period start date {start_date} must be before end date {end_date}"
        )


class PeriodLockedError(PeriodError):
    """Attempted to change a locked period."""

    code: str = "PERIOD_LOCKED"

    def __init__(self, period_id: str, operation: str):
        self.period_id = period_id
        self.operation = operation
        super().__init__(f"Cannot {operation}: period {period_id} is locked")


# Rollover-related exceptions


class RolloverError(EsgKernelError):
    """Base exception for rollover errors."""

    code: str = "ROLLOVER_ERROR"


class RolloverValidationError(RolloverError):
    """Base for rollover errors detected before any write."""

    code: str = "ROLLOVER_VALIDATION_ERROR"


class InvalidRolloverOptionsError(RolloverValidationError):
    """
    Rollover options violate the dependency chain.

    CopyAttachments => CopyDataValues => CopyDisclosures => CopyStructure.
    """

    code: str = "INVALID_ROLLOVER_OPTIONS"

    def __init__(self, violations: tuple[str, ...]):
        self.violations = violations
        super().__init__("Invalid rollover options: " + "; ".join(violations))


class SourcePeriodNotFoundError(RolloverValidationError):
    """Rollover source period does not exist."""

    code: str = "SOURCE_PERIOD_NOT_FOUND"

    def __init__(self, period_id: str):
        self.period_id = period_id
        super().__init__(f"Source period not found: {period_id}")


class SourcePeriodNotReadyError(RolloverValidationError):
    """Rollover source period is not in a state that can be rolled over."""

    code: str = "SOURCE_PERIOD_NOT_READY"

    def __init__(self, period_id: str, status: str):
        self.period_id = period_id
        self.status = status
        super().__init__(
            f"Cannot roll over period {period_id} in '{status}' status"
        )


class TargetPeriodNameCollisionError(RolloverValidationError):
    """Target period name is already used in the organization."""

    code: str = "TARGET_PERIOD_NAME_COLLISION"

    def __init__(self, name: str, existing_period_id: str):
        self.name = name
        self.existing_period_id = existing_period_id
        super().__init__(
            f"Target period name '{name}' is already used by period "
            f"{existing_period_id}"
        )


class InvalidTargetPeriodError(RolloverValidationError):
    """Target period definition is malformed."""

    code: str = "INVALID_TARGET_PERIOD"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid target period: {reason}")


class ManualMappingTargetNotFoundError(RolloverValidationError):
    """A manual section mapping names a catalog code absent from the target."""

    code: str = "MANUAL_MAPPING_TARGET_NOT_FOUND"

    def __init__(self, source_catalog_code: str, target_catalog_code: str):
        self.source_catalog_code = source_catalog_code
        self.target_catalog_code = target_catalog_code
        super().__init__(
            f"Manual mapping {source_catalog_code} -> {target_catalog_code}: "
            f"no target section with catalog code '{target_catalog_code}'"
        )


class RolloverInProgressError(RolloverError):
    """Another rollover of the same source period holds the lock."""

    code: str = "ROLLOVER_IN_PROGRESS"

    def __init__(self, source_period_id: str, waited_seconds: float):
        self.source_period_id = source_period_id
        self.waited_seconds = waited_seconds
        super().__init__(
            f"Rollover of period {source_period_id} already in progress "
            f"(waited {waited_seconds}s)"
        )


class RolloverCancelledError(RolloverError):
    """Rollover was cancelled or exceeded its deadline."""

    code: str = "ROLLOVER_CANCELLED"

    def __init__(self, reason: str, sections_processed: int):
        self.reason = reason
        self.sections_processed = sections_processed
        super().__init__(
            f"Rollover cancelled after {sections_processed} section(s): {reason}"
        )


# Gap-status exceptions


class GapStatusError(EsgKernelError):
    """Base exception for gap-status lifecycle errors."""

    code: str = "GAP_STATUS_ERROR"


class DataPointNotFoundError(GapStatusError):
    """Data point was not found."""

    code: str = "DATA_POINT_NOT_FOUND"

    def __init__(self, data_point_id: str):
        self.data_point_id = data_point_id
        super().__init__(f"Data point not found: {data_point_id}")


class InvalidGapStatusTransitionError(GapStatusError):
    """Requested transition is not in the gap-status transition table."""

    code: str = "INVALID_GAP_STATUS_TRANSITION"

    def __init__(
        self,
        data_point_id: str,
        from_status: str | None,
        to_status: str,
        allowed: tuple[str, ...] = (),
    ):
        self.data_point_id = data_point_id
        self.from_status = from_status
        self.to_status = to_status
        self.allowed = allowed
        if from_status == to_status:
            message = f"Data point {data_point_id} is already in '{to_status}' status"
        else:
            message = (
                f"Cannot transition data point {data_point_id} from "
                f"'{from_status or 'none'}' to '{to_status}'"
            )
            if allowed:
                message += f"; allowed targets: {', '.join(allowed)}"
        super().__init__(message)


class GapTransitionValidationError(GapStatusError):
    """A field required by the requested transition is missing."""

    code: str = "GAP_TRANSITION_VALIDATION"

    def __init__(self, data_point_id: str, to_status: str, field_name: str):
        self.data_point_id = data_point_id
        self.to_status = to_status
        self.field_name = field_name
        super().__init__(
            f"{field_name} is required when transitioning to '{to_status}'"
        )


# Rollover rule exceptions


class RolloverRuleError(EsgKernelError):
    """Base exception for rollover rule registry errors."""

    code: str = "ROLLOVER_RULE_ERROR"


class RolloverRuleNotFoundError(RolloverRuleError):
    """No rule is registered for the data type."""

    code: str = "ROLLOVER_RULE_NOT_FOUND"

    def __init__(self, data_type: str):
        self.data_type = data_type
        super().__init__(f"No rollover rule registered for data type '{data_type}'")


class InvalidRolloverRuleError(RolloverRuleError):
    """Rule payload is malformed."""

    code: str = "INVALID_ROLLOVER_RULE"

    def __init__(self, data_type: str, reason: str):
        self.data_type = data_type
        self.reason = reason
        super().__init__(f"Invalid rollover rule for '{data_type}': {reason}")


# Lineage exceptions


class LineageError(EsgKernelError):
    """Base exception for cross-period lineage errors."""

    code: str = "LINEAGE_ERROR"


class LineageCycleError(LineageError):
    """Lineage walk revisited a data point."""

    code: str = "LINEAGE_CYCLE"

    def __init__(self, data_point_id: str):
        self.data_point_id = data_point_id
        super().__init__(f"Lineage cycle detected at data point {data_point_id}")


# Audit-related exceptions


class AuditError(EsgKernelError):
    """Base exception for audit-related errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """Audit hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, audit_event_id: str, expected_hash: str, actual_hash: str):
        self.audit_event_id = audit_event_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at {audit_event_id}: "
            f"expected {expected_hash}, found {actual_hash}"
        )


# Concurrency-related exceptions


class ConcurrencyError(EsgKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


class GapStatusConflictError(OptimisticLockError):
    """The caller's expected from-status no longer matches the stored status."""

    code: str = "GAP_STATUS_CONFLICT"

    def __init__(
        self,
        data_point_id: str,
        expected_status: str | None,
        actual_status: str | None,
    ):
        self.entity_type = "DataPoint"
        self.entity_id = data_point_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        ConcurrencyError.__init__(
            self,
            f"Gap status conflict on data point {data_point_id}: expected "
            f"'{expected_status or 'none'}', found '{actual_status or 'none'}'",
        )


# Immutability-related exceptions


class ImmutabilityError(EsgKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    GapStatusHistoryEntry, AuditEvent, RolloverAuditLog,
    RolloverReconciliationRecord and RolloverRuleHistory are append-only.
    Reporting periods are never deleted; locked periods are frozen.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
