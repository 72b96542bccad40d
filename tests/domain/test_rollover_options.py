"""
Rollover request values: option dependency chain and target period definition.

The chain CopyAttachments => CopyDataValues => CopyDisclosures =>
CopyStructure is reported in full and never downgraded.
"""

from datetime import date

import pytest

from esg_kernel.domain.rollover import (
    RolloverOptions,
    RolloverRuleType,
    TargetPeriodSpec,
)
from esg_kernel.exceptions import (
    InvalidRolloverOptionsError,
    InvalidTargetPeriodError,
    RolloverValidationError,
)


class TestOptionChain:
    def test_defaults_copy_structure_only(self):
        options = RolloverOptions()
        assert options.copy_structure
        assert not options.copy_disclosures
        assert not options.copy_data_values
        assert not options.copy_attachments
        assert options.carry_forward_gaps_and_assumptions
        options.validate()

    def test_full_chain_is_valid(self):
        RolloverOptions(
            copy_structure=True,
            copy_disclosures=True,
            copy_data_values=True,
            copy_attachments=True,
        ).validate()

    def test_attachments_without_data_values_rejected(self):
        options = RolloverOptions(copy_disclosures=True, copy_attachments=True)
        with pytest.raises(InvalidRolloverOptionsError) as exc_info:
            options.validate()
        assert exc_info.value.violations == (
            "copy_attachments requires copy_data_values",
        )

    def test_every_broken_link_is_reported(self):
        options = RolloverOptions(
            copy_structure=False,
            copy_disclosures=False,
            copy_data_values=True,
            copy_attachments=True,
        )
        violations = options.violations()
        assert "copy_data_values requires copy_disclosures" in violations
        assert "copy_attachments requires copy_data_values" not in violations

    def test_disclosures_without_structure_rejected(self):
        options = RolloverOptions(copy_structure=False, copy_disclosures=True)
        assert options.violations() == ("copy_disclosures requires copy_structure",)

    def test_validation_never_downgrades_flags(self):
        options = RolloverOptions(copy_structure=False, copy_disclosures=True)
        with pytest.raises(InvalidRolloverOptionsError):
            options.validate()
        assert options.copy_disclosures is True

    def test_options_error_is_a_rollover_validation_error(self):
        assert issubclass(InvalidRolloverOptionsError, RolloverValidationError)
        assert InvalidRolloverOptionsError.code == "INVALID_ROLLOVER_OPTIONS"

    def test_negative_due_date_adjustment_rejected(self):
        options = RolloverOptions(due_date_adjustment_days=-5)
        assert "due_date_adjustment_days must not be negative" in options.violations()


class TestDueDateShift:
    @pytest.mark.parametrize(
        "days, expected",
        [(None, 0), (0, 0), (30, 30)],
    )
    def test_shift_only_applies_when_positive(self, days, expected):
        assert RolloverOptions(due_date_adjustment_days=days).due_date_shift_days == expected

    def test_to_dict_round_trips_every_flag(self):
        options = RolloverOptions(copy_disclosures=True, due_date_adjustment_days=7)
        data = options.to_dict()
        assert data["copy_disclosures"] is True
        assert data["due_date_adjustment_days"] == 7
        assert RolloverOptions(**data) == options


class TestTargetPeriodSpec:
    def test_valid_spec(self):
        TargetPeriodSpec("FY2025", date(2025, 1, 1), date(2025, 12, 31)).validate()

    def test_blank_name_rejected(self):
        with pytest.raises(InvalidTargetPeriodError, match="name"):
            TargetPeriodSpec("  ", date(2025, 1, 1), date(2025, 12, 31)).validate()

    @pytest.mark.parametrize(
        "start, end",
        [
            (date(2025, 12, 31), date(2025, 1, 1)),
            (date(2025, 1, 1), date(2025, 1, 1)),
        ],
    )
    def test_dates_must_be_ordered(self, start, end):
        with pytest.raises(InvalidTargetPeriodError):
            TargetPeriodSpec("FY2025", start, end).validate()


def test_rule_type_values_match_registry_vocabulary():
    assert RolloverRuleType("copy") is RolloverRuleType.COPY
    assert RolloverRuleType("reset") is RolloverRuleType.RESET
    assert RolloverRuleType("copy-as-draft") is RolloverRuleType.COPY_AS_DRAFT
