"""
Gap-status transition table and pure request validation.
"""

from uuid import uuid4

import pytest

from esg_kernel.domain.gap_status import (
    APPLY_ESTIMATE,
    APPLY_VALUE,
    CLEAR_ESTIMATE,
    CLEAR_VALUE,
    FLAG_MISSING,
    SNAPSHOT_ESTIMATE,
    VALID_GAP_TRANSITIONS,
    GapStatus,
    GapTransitionRequest,
    is_valid_transition,
    validate_request,
)
from esg_kernel.domain.values import EstimateFields
from esg_kernel.exceptions import (
    GapTransitionValidationError,
    InvalidGapStatusTransitionError,
)

FULL_ESTIMATE = EstimateFields(
    estimate_type="extrapolation",
    estimate_method="Q1-Q3 actuals scaled to 12 months",
    confidence_level="medium",
)


def _request(target, current=None, **fields):
    return GapTransitionRequest(
        data_point_id=uuid4(),
        expected_from_status=current,
        target_status=target,
        transitioned_by="U-ALICE",
        **fields,
    )


class TestTransitionTable:
    @pytest.mark.parametrize(
        "current, target",
        [
            (None, GapStatus.MISSING),
            (GapStatus.MISSING, GapStatus.ESTIMATED),
            (GapStatus.ESTIMATED, GapStatus.PROVIDED),
            (GapStatus.MISSING, GapStatus.PROVIDED),
            (GapStatus.ESTIMATED, GapStatus.MISSING),
            (GapStatus.PROVIDED, GapStatus.MISSING),
        ],
    )
    def test_declared_transitions_are_valid(self, current, target):
        assert is_valid_transition(current, target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (None, GapStatus.ESTIMATED),
            (None, GapStatus.PROVIDED),
            (GapStatus.PROVIDED, GapStatus.ESTIMATED),
            (GapStatus.MISSING, GapStatus.MISSING),
            (GapStatus.ESTIMATED, GapStatus.ESTIMATED),
            (GapStatus.PROVIDED, GapStatus.PROVIDED),
        ],
    )
    def test_undeclared_transitions_are_invalid(self, current, target):
        assert not is_valid_transition(current, target)

    def test_table_and_workflow_agree(self):
        for current, targets in VALID_GAP_TRANSITIONS.items():
            for target in GapStatus:
                assert is_valid_transition(current, target) == (target in targets)

    def test_allowed_targets_per_status(self):
        assert VALID_GAP_TRANSITIONS == {
            None: {GapStatus.MISSING},
            GapStatus.MISSING: {GapStatus.ESTIMATED, GapStatus.PROVIDED},
            GapStatus.ESTIMATED: {GapStatus.PROVIDED, GapStatus.MISSING},
            GapStatus.PROVIDED: {GapStatus.MISSING},
        }


class TestValidateRequest:
    def test_estimate_requires_every_estimate_field(self):
        request = _request(
            GapStatus.ESTIMATED,
            GapStatus.MISSING,
            estimate=EstimateFields(estimate_type="proxy", estimate_method="industry average"),
        )
        with pytest.raises(GapTransitionValidationError) as exc_info:
            validate_request(request, GapStatus.MISSING)
        assert exc_info.value.field_name == "confidence_level"

    def test_whitespace_value_counts_as_missing(self):
        request = _request(GapStatus.PROVIDED, GapStatus.MISSING, value="   ")
        with pytest.raises(GapTransitionValidationError) as exc_info:
            validate_request(request, GapStatus.MISSING)
        assert exc_info.value.field_name == "value"

    def test_reopen_requires_change_note(self):
        request = _request(GapStatus.MISSING, GapStatus.PROVIDED)
        with pytest.raises(GapTransitionValidationError) as exc_info:
            validate_request(request, GapStatus.PROVIDED)
        assert exc_info.value.field_name == "change_note"

    def test_invalid_pair_reported_before_missing_fields(self):
        request = _request(GapStatus.ESTIMATED, None)
        with pytest.raises(InvalidGapStatusTransitionError) as exc_info:
            validate_request(request, None)
        assert exc_info.value.allowed == ("missing",)

    def test_same_status_message(self):
        request = _request(GapStatus.MISSING, GapStatus.MISSING)
        with pytest.raises(InvalidGapStatusTransitionError, match="already in 'missing'"):
            validate_request(request, GapStatus.MISSING)

    def test_side_effects_per_transition(self):
        flag = validate_request(_request(GapStatus.MISSING), None)
        assert flag.side_effects == (FLAG_MISSING,)

        estimate = validate_request(
            _request(GapStatus.ESTIMATED, GapStatus.MISSING, estimate=FULL_ESTIMATE),
            GapStatus.MISSING,
        )
        assert estimate.side_effects == (APPLY_ESTIMATE,)

        provide = validate_request(
            _request(GapStatus.PROVIDED, GapStatus.ESTIMATED, value="1200"),
            GapStatus.ESTIMATED,
        )
        assert provide.side_effects == (SNAPSHOT_ESTIMATE, CLEAR_ESTIMATE, APPLY_VALUE)

        reopen_estimate = validate_request(
            _request(GapStatus.MISSING, GapStatus.ESTIMATED, change_note="Restated"),
            GapStatus.ESTIMATED,
        )
        assert reopen_estimate.side_effects == (
            SNAPSHOT_ESTIMATE, CLEAR_VALUE, CLEAR_ESTIMATE, FLAG_MISSING
        )

        reopen_value = validate_request(
            _request(GapStatus.MISSING, GapStatus.PROVIDED, change_note="Restated"),
            GapStatus.PROVIDED,
        )
        assert SNAPSHOT_ESTIMATE not in reopen_value.side_effects


class TestEstimateFields:
    def test_snapshot_round_trip(self):
        assert EstimateFields.from_snapshot(FULL_ESTIMATE.snapshot()) == FULL_ESTIMATE

    def test_first_missing(self):
        assert FULL_ESTIMATE.first_missing() is None
        assert EstimateFields(estimate_type="x").first_missing() == "estimate_method"
