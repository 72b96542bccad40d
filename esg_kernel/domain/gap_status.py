"""
Gap-status lifecycle (``esg_kernel.domain.gap_status``).

Responsibility
--------------
Declares the data point gap-status state machine and the pure validation
of a transition request against it.  Execution (locking, persistence,
history, audit) belongs to ``GapStatusService``.

Architecture position
---------------------
**Kernel domain layer** -- pure functions over frozen values.  ZERO I/O.

Transition table
----------------
=========  =========  ==================================================  ==========================
From       To         Required                                            Side effect
=========  =========  ==================================================  ==========================
none       missing    --                                                  flag as missing
missing    estimated  estimate_type, estimate_method, confidence_level    apply estimate
estimated  provided   value                                               snapshot estimate, clear
missing    provided   value                                               direct verification
estimated  missing    change_note                                         snapshot estimate, reopen
provided   missing    change_note                                         clear value (reopen)
=========  =========  ==================================================  ==========================

Every other pair, including a same-status request, is invalid.  Direct
``missing -> provided`` does not demand an evidence reference.

Invariants enforced
-------------------
* Validation never mutates anything; a rejected request leaves no trace.
* ``validate_request`` checks the pair before the fields, so an invalid
  pair is always reported as an invalid transition, never as a missing
  field.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from esg_kernel.domain.values import EstimateFields
from esg_kernel.domain.workflow import Guard, Transition, Workflow
from esg_kernel.exceptions import (
    GapTransitionValidationError,
    InvalidGapStatusTransitionError,
)


class GapStatus(str, Enum):
    """Where a data point stands between missing data and verified data."""

    MISSING = "missing"
    ESTIMATED = "estimated"
    PROVIDED = "provided"


# Workflow state used for data points that were never flagged.
UNFLAGGED = "none"

# Side-effect names interpreted by GapStatusService.
FLAG_MISSING = "flag_missing"
APPLY_ESTIMATE = "apply_estimate"
SNAPSHOT_ESTIMATE = "snapshot_estimate"
CLEAR_ESTIMATE = "clear_estimate"
APPLY_VALUE = "apply_value"
CLEAR_VALUE = "clear_value"

_REOPEN_GUARD = Guard(
    name="reason_for_reopening",
    description="Reopening verified or estimated data needs a change note",
)

GAP_STATUS_WORKFLOW = Workflow(
    name="gap_status",
    description="Data point progression from missing data to verified data",
    initial_state=UNFLAGGED,
    states=(
        UNFLAGGED,
        GapStatus.MISSING.value,
        GapStatus.ESTIMATED.value,
        GapStatus.PROVIDED.value,
    ),
    transitions=(
        Transition(
            from_state=UNFLAGGED,
            to_state=GapStatus.MISSING.value,
            action="flag_missing",
            side_effects=(FLAG_MISSING,),
        ),
        Transition(
            from_state=GapStatus.MISSING.value,
            to_state=GapStatus.ESTIMATED.value,
            action="estimate",
            required_fields=EstimateFields.FIELD_NAMES,
            side_effects=(APPLY_ESTIMATE,),
        ),
        Transition(
            from_state=GapStatus.ESTIMATED.value,
            to_state=GapStatus.PROVIDED.value,
            action="provide",
            required_fields=("value",),
            side_effects=(SNAPSHOT_ESTIMATE, CLEAR_ESTIMATE, APPLY_VALUE),
        ),
        Transition(
            from_state=GapStatus.MISSING.value,
            to_state=GapStatus.PROVIDED.value,
            action="verify_directly",
            required_fields=("value",),
            side_effects=(APPLY_VALUE,),
        ),
        Transition(
            from_state=GapStatus.ESTIMATED.value,
            to_state=GapStatus.MISSING.value,
            action="reopen",
            required_fields=("change_note",),
            side_effects=(SNAPSHOT_ESTIMATE, CLEAR_VALUE, CLEAR_ESTIMATE, FLAG_MISSING),
            guard=_REOPEN_GUARD,
        ),
        Transition(
            from_state=GapStatus.PROVIDED.value,
            to_state=GapStatus.MISSING.value,
            action="reopen",
            required_fields=("change_note",),
            side_effects=(CLEAR_VALUE, CLEAR_ESTIMATE, FLAG_MISSING),
            guard=_REOPEN_GUARD,
        ),
    ),
)


def _state(status: GapStatus | None) -> str:
    return status.value if status is not None else UNFLAGGED


# Allowed targets per current status (None = never flagged), read off the table.
VALID_GAP_TRANSITIONS: dict[GapStatus | None, frozenset[GapStatus]] = {
    status: frozenset(
        GapStatus(target) for target in GAP_STATUS_WORKFLOW.targets_from(_state(status))
    )
    for status in (None, *GapStatus)
}


def is_valid_transition(current: GapStatus | None, target: GapStatus) -> bool:
    """Check if a gap-status transition is in the table."""
    return GAP_STATUS_WORKFLOW.find(_state(current), target.value) is not None


@dataclass(frozen=True)
class GapTransitionRequest:
    """
    A request to move one data point to a new gap status.

    ``expected_from_status`` is the caller's view of the current status;
    it drives the optimistic concurrency check.
    """

    data_point_id: UUID
    expected_from_status: GapStatus | None
    target_status: GapStatus
    transitioned_by: str
    change_note: str | None = None
    estimate: EstimateFields | None = None
    value: str | None = None

    def field_value(self, name: str) -> str | None:
        if name in EstimateFields.FIELD_NAMES:
            return getattr(self.estimate, name) if self.estimate else None
        return getattr(self, name)


def validate_request(
    request: GapTransitionRequest,
    current: GapStatus | None,
) -> Transition:
    """
    Validate a request against the workflow from the stored status.

    Postconditions:
        Returns the matching ``Transition``.

    Raises:
        InvalidGapStatusTransitionError: Pair not in the table.
        GapTransitionValidationError: A required field is blank.
    """
    transition = GAP_STATUS_WORKFLOW.find(_state(current), request.target_status.value)
    if transition is None:
        raise InvalidGapStatusTransitionError(
            data_point_id=str(request.data_point_id),
            from_status=current.value if current else None,
            to_status=request.target_status.value,
            allowed=tuple(
                s.value for s in GapStatus
                if s in VALID_GAP_TRANSITIONS.get(current, frozenset())
            ),
        )

    for name in transition.required_fields:
        value = request.field_value(name)
        if value is None or not str(value).strip():
            raise GapTransitionValidationError(
                data_point_id=str(request.data_point_id),
                to_status=request.target_status.value,
                field_name=name,
            )

    return transition
