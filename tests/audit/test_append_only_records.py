"""
ORM-level immutability: append-only records, locked periods and the
data points they contain.
"""

from datetime import date

import pytest
from sqlalchemy import select

from esg_kernel.domain.gap_status import GapStatus
from esg_kernel.domain.rollover import RolloverRuleType, TargetPeriodSpec
from esg_kernel.exceptions import ImmutabilityViolationError
from esg_kernel.models.audit_event import AuditEvent
from esg_kernel.models.data_point import DataPoint, GapStatusHistoryEntry
from esg_kernel.models.reporting_period import ReportingPeriod
from esg_kernel.models.rollover_record import (
    RolloverAuditLog,
    RolloverReconciliationRecord,
)
from esg_kernel.models.rollover_rule import RolloverRuleHistory
from esg_kernel.services.gap_status_service import GapStatusService
from esg_kernel.services.rollover_rule_service import RolloverRuleService
from esg_services.rollover import RolloverRequest


@pytest.fixture
def records(
    orchestrator, source_period, sections_of, make_data_point, session,
    deterministic_clock, user_registry,
):
    """One committed row of every append-only model."""
    RolloverRuleService(session, deterministic_clock).save_rule(
        "narrative", RolloverRuleType.COPY, "U-ADMIN"
    )
    env = sections_of(source_period.id)["ENV-001"]
    data_point = make_data_point(env.id)
    GapStatusService(session, deterministic_clock, user_registry=user_registry).transition(
        data_point.id, None, GapStatus.MISSING, "U-ALICE"
    )
    session.commit()
    result = orchestrator.rollover(
        RolloverRequest(
            source_period_id=source_period.id,
            target=TargetPeriodSpec("FY2025", date(2025, 1, 1), date(2025, 12, 31)),
            performed_by="U-ALICE",
        )
    )
    assert result.success
    return result


def _first(session, model):
    return session.execute(select(model).limit(1)).scalar_one()


APPEND_ONLY = [
    pytest.param(AuditEvent, "actor_id", "U-MALLORY", id="audit_event"),
    pytest.param(GapStatusHistoryEntry, "change_note", "rewritten", id="gap_history"),
    pytest.param(RolloverAuditLog, "performed_by", "U-MALLORY", id="rollover_audit_log"),
    pytest.param(RolloverReconciliationRecord, "mapped_sections", 99, id="reconciliation"),
    pytest.param(RolloverRuleHistory, "changed_by", "U-MALLORY", id="rule_history"),
]


class TestAppendOnlyRecords:
    @pytest.mark.parametrize("model, field, value", APPEND_ONLY)
    def test_update_is_blocked(self, records, session, model, field, value):
        row = _first(session, model)
        setattr(row, field, value)
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == model.__name__
        session.rollback()

    @pytest.mark.parametrize("model, field, value", APPEND_ONLY)
    def test_delete_is_blocked(self, records, session, model, field, value):
        session.delete(_first(session, model))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_violation_is_logged(self, records, session, captured_logs):
        row = _first(session, AuditEvent)
        row.actor_id = "U-MALLORY"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        blocked = [
            r for r in captured_logs()
            if r["message"] == "immutability_violation_blocked"
        ]
        assert blocked[-1]["entity_type"] == "AuditEvent"
        assert blocked[-1]["operation"] == "UPDATE"


class TestReportingPeriods:
    def test_open_period_can_be_edited(self, source_period, session):
        period = session.get(ReportingPeriod, source_period.id)
        period.owner_id = "U-ALICE"
        session.flush()

    def test_no_period_can_be_deleted(self, source_period, session):
        session.delete(session.get(ReportingPeriod, source_period.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_period_without_sections_cannot_be_deleted(
        self, make_period, session, captured_logs
    ):
        period = make_period(name="FY2023")
        session.commit()

        session.delete(session.get(ReportingPeriod, period.id))
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "ReportingPeriod"
        session.rollback()

        assert session.get(ReportingPeriod, period.id) is not None
        assert any(
            r["message"] == "immutability_violation_blocked" and r["operation"] == "DELETE"
            for r in captured_logs()
        )

    def test_locked_period_is_frozen(self, source_period, period_service, session):
        period_service.lock_period(source_period.id, "U-ADMIN")
        session.commit()

        period = session.get(ReportingPeriod, source_period.id)
        period.name = "FY2024-restated"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert "name" in exc_info.value.reason
        session.rollback()

    def test_audit_metadata_may_change_on_locked_period(
        self, source_period, period_service, session
    ):
        period_service.lock_period(source_period.id, "U-ADMIN")
        session.commit()

        session.get(ReportingPeriod, source_period.id).updated_by = "U-SYSTEM"
        session.flush()


class TestDataPointsOfLockedPeriods:
    @pytest.fixture
    def locked_data_point(self, source_period, sections_of, make_data_point,
                          period_service, session):
        env = sections_of(source_period.id)["ENV-001"]
        data_point = make_data_point(env.id, value="42")
        period_service.lock_period(source_period.id, "U-ADMIN")
        session.commit()
        return data_point

    def test_value_change_is_blocked(self, locked_data_point, session):
        session.get(DataPoint, locked_data_point.id).value = "43"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_delete_is_blocked(self, locked_data_point, session):
        session.delete(session.get(DataPoint, locked_data_point.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_data_points_of_open_periods_are_editable(
        self, source_period, sections_of, make_data_point, session
    ):
        env = sections_of(source_period.id)["ENV-001"]
        data_point = make_data_point(env.id, value="42")
        data_point.value = "43"
        session.flush()
        assert session.get(DataPoint, data_point.id).value == "43"
