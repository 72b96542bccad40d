"""
Rollover content stages: disclosures, data values and attachments.
"""

from datetime import date

import pytest
from sqlalchemy import select

from esg_config.schema import DEFAULT_DRAFT_MARKER
from esg_kernel.domain.rollover import (
    RolloverOptions,
    RolloverRuleType,
    TargetPeriodSpec,
)
from esg_kernel.domain.values import CompletenessStatus, ReviewStatus
from esg_kernel.models.disclosure import (
    Assumption,
    Gap,
    RemediationAction,
    RemediationPlan,
)
from esg_kernel.models.evidence import Evidence
from esg_kernel.services.rollover_rule_service import RolloverRuleService
from esg_services.rollover import RolloverRequest
from esg_services.rollover.content_copier import EXPIRED_LIMITATION

FY2025 = TargetPeriodSpec("FY2025", date(2025, 1, 1), date(2025, 12, 31))

DISCLOSURES = RolloverOptions(copy_disclosures=True)
DATA_VALUES = RolloverOptions(copy_disclosures=True, copy_data_values=True)
EVERYTHING = RolloverOptions(
    copy_disclosures=True, copy_data_values=True, copy_attachments=True
)


@pytest.fixture
def env_section(source_period, sections_of):
    return sections_of(source_period.id)["ENV-001"]


@pytest.fixture
def roll(orchestrator, source_period):
    def _roll(options, **kwargs):
        result = orchestrator.rollover(
            RolloverRequest(
                source_period_id=source_period.id,
                target=FY2025,
                performed_by="U-ALICE",
                options=options,
                **kwargs,
            )
        )
        assert result.success, result.error_message
        return result

    return _roll


@pytest.fixture
def rows_in(session, sections_of):
    """Rows of ``model`` in the target section with the given catalog code."""

    def _rows(model, period_id, code="ENV-001"):
        section = sections_of(period_id)[code]
        return session.execute(
            select(model).where(model.section_id == section.id)
        ).scalars().all()

    return _rows


def add(session, *rows):
    session.add_all(rows)
    session.flush()
    return rows


class TestDisclosures:
    def test_remediation_due_dates_shift(self, roll, env_section, session, rows_in):
        (plan,) = add(
            session,
            RemediationPlan(
                section_id=env_section.id,
                title="Meter all sites",
                owner_id="U-BOB",
                created_by="U-ADMIN",
            ),
        )
        add(
            session,
            RemediationAction(
                plan_id=plan.id,
                title="Install meters",
                due_date=date(2025, 1, 10),
                created_by="U-ADMIN",
            ),
            RemediationAction(plan_id=plan.id, title="Undated", created_by="U-ADMIN"),
        )
        session.commit()

        result = roll(
            RolloverOptions(copy_disclosures=True, due_date_adjustment_days=30)
        )

        (new_plan,) = rows_in(RemediationPlan, result.target_period.id)
        assert new_plan.source_plan_id == plan.id
        dates = {a.title: a.due_date for a in new_plan.actions}
        assert dates == {"Install meters": date(2025, 2, 9), "Undated": None}
        assert result.audit_log.counts.remediation_actions == 2

    def test_due_dates_unchanged_without_adjustment(
        self, roll, env_section, session, rows_in
    ):
        (plan,) = add(
            session,
            RemediationPlan(section_id=env_section.id, title="Plan", created_by="U-ADMIN"),
        )
        add(
            session,
            RemediationAction(
                plan_id=plan.id, title="Step", due_date=date(2025, 1, 10),
                created_by="U-ADMIN",
            ),
        )
        session.commit()

        result = roll(DISCLOSURES)

        (new_plan,) = rows_in(RemediationPlan, result.target_period.id)
        assert new_plan.actions[0].due_date == date(2025, 1, 10)

    def test_plan_links_follow_carried_gap_and_assumption(
        self, roll, env_section, session, rows_in
    ):
        gap, assumption = add(
            session,
            Gap(section_id=env_section.id, title="No Scope 3 data", created_by="U-ADMIN"),
            Assumption(
                section_id=env_section.id, title="Grid factor", created_by="U-ADMIN"
            ),
        )
        add(
            session,
            RemediationPlan(
                section_id=env_section.id,
                title="Collect supplier data",
                gap_id=gap.id,
                assumption_id=assumption.id,
                created_by="U-ADMIN",
            ),
        )
        session.commit()

        result = roll(DISCLOSURES)
        target_id = result.target_period.id

        (new_gap,) = rows_in(Gap, target_id)
        (new_assumption,) = rows_in(Assumption, target_id)
        (new_plan,) = rows_in(RemediationPlan, target_id)
        assert new_gap.source_gap_id == gap.id
        assert new_plan.gap_id == new_gap.id
        assert new_plan.assumption_id == new_assumption.id

    def test_gaps_and_assumptions_can_stay_behind(
        self, roll, env_section, session, rows_in
    ):
        (gap,) = add(
            session,
            Gap(section_id=env_section.id, title="No Scope 3 data", created_by="U-ADMIN"),
        )
        add(
            session,
            RemediationPlan(
                section_id=env_section.id, title="Plan", gap_id=gap.id,
                created_by="U-ADMIN",
            ),
        )
        session.commit()

        result = roll(
            RolloverOptions(
                copy_disclosures=True, carry_forward_gaps_and_assumptions=False
            )
        )
        target_id = result.target_period.id

        assert rows_in(Gap, target_id) == []
        (new_plan,) = rows_in(RemediationPlan, target_id)
        assert new_plan.gap_id is None
        assert result.audit_log.counts.gaps == 0

    def test_expired_assumption_is_flagged(self, roll, env_section, session, rows_in):
        add(
            session,
            Assumption(
                section_id=env_section.id,
                title="2023 grid factor",
                description="Uses the 2023 national grid mix.",
                limitations="National average only",
                validity_end_date=date(2024, 6, 30),
                created_by="U-ADMIN",
            ),
            Assumption(
                section_id=env_section.id,
                title="Current grid factor",
                validity_end_date=date(2025, 12, 31),
                created_by="U-ADMIN",
            ),
        )
        session.commit()

        result = roll(DISCLOSURES)

        carried = {a.title: a for a in rows_in(Assumption, result.target_period.id)}
        expired = carried["2023 grid factor"]
        assert expired.description.startswith("Uses the 2023 national grid mix.")
        assert "WARNING: This assumption expired on 2024-06-30" in expired.description
        assert expired.limitations.endswith(EXPIRED_LIMITATION)
        assert expired.limitations.startswith("National average only")

        current = carried["Current grid factor"]
        assert current.description is None
        assert current.limitations is None

    def test_disclosures_not_copied_by_default(self, roll, env_section, session, rows_in):
        add(session, Gap(section_id=env_section.id, title="Gap", created_by="U-ADMIN"))
        session.commit()

        result = roll(RolloverOptions())

        assert rows_in(Gap, result.target_period.id) == []


class TestDataValues:
    def test_copy_as_draft_marks_content(
        self, roll, env_section, make_data_point, data_points_of, session,
        deterministic_clock,
    ):
        RolloverRuleService(session, deterministic_clock).save_rule(
            "narrative", RolloverRuleType.COPY_AS_DRAFT, "U-ADMIN"
        )
        make_data_point(
            env_section.id, "narrative", "Energy policy",
            content="We buy renewable power.",
            review_status=ReviewStatus.APPROVED,
            completeness_status=CompletenessStatus.COMPLETE,
        )
        make_data_point(env_section.id, "narrative", "Empty narrative")
        session.commit()

        result = roll(DATA_VALUES)

        carried = {dp.title: dp for dp in data_points_of(result.target_period.id)}
        policy = carried["Energy policy"]
        assert policy.content == f"{DEFAULT_DRAFT_MARKER}\n\nWe buy renewable power."
        assert policy.review_status is ReviewStatus.DRAFT
        assert policy.completeness_status is CompletenessStatus.INCOMPLETE
        assert carried["Empty narrative"].content == DEFAULT_DRAFT_MARKER

    def test_records_relink_to_successor(
        self, roll, env_section, make_data_point, data_points_of, session, rows_in
    ):
        data_point = make_data_point(env_section.id, "kpi", "Scope 3")
        add(
            session,
            Gap(
                section_id=env_section.id,
                data_point_id=data_point.id,
                title="Supplier data missing",
                created_by="U-ADMIN",
            ),
        )
        session.commit()

        result = roll(DATA_VALUES)
        target_id = result.target_period.id

        (successor,) = data_points_of(target_id)
        (new_gap,) = rows_in(Gap, target_id)
        assert new_gap.data_point_id == successor.id

    def test_records_unlinked_without_data_values(
        self, roll, env_section, make_data_point, session, rows_in
    ):
        data_point = make_data_point(env_section.id, "kpi", "Scope 3")
        add(
            session,
            Gap(
                section_id=env_section.id,
                data_point_id=data_point.id,
                title="Supplier data missing",
                created_by="U-ADMIN",
            ),
        )
        session.commit()

        result = roll(DISCLOSURES)

        (new_gap,) = rows_in(Gap, result.target_period.id)
        assert new_gap.data_point_id is None

    def test_reconciliation_counts_data_points_per_section(
        self, roll, env_section, make_data_point, session
    ):
        make_data_point(env_section.id, "kpi", "One")
        make_data_point(env_section.id, "kpi", "Two")
        session.commit()

        result = roll(DATA_VALUES)

        copied = {
            item.source_catalog_code: item.data_points_copied
            for item in result.reconciliation.mapped_items
        }
        assert copied == {"ENV-001": 2, "SOC-002": 0}


class TestAttachments:
    def test_evidence_carried_as_reference(
        self, roll, env_section, make_data_point, data_points_of, session, rows_in
    ):
        data_point = make_data_point(env_section.id, "kpi", "Energy use", value="120")
        evidence = Evidence(
            section_id=env_section.id,
            title="Utility invoices",
            file_url="s3://evidence/invoices-2024.pdf",
            file_name="invoices-2024.pdf",
            checksum="ab" * 32,
            uploaded_by="U-BOB",
            created_by="U-BOB",
        )
        evidence.data_points = [data_point]
        add(session, evidence)
        session.commit()

        result = roll(EVERYTHING)
        target_id = result.target_period.id

        (reference,) = rows_in(Evidence, target_id)
        (successor,) = data_points_of(target_id)
        assert reference.is_reference
        assert reference.source_evidence_id == evidence.id
        assert reference.file_url == evidence.file_url
        assert reference.checksum == evidence.checksum
        assert reference.uploaded_by == "U-BOB"
        assert reference.created_by == "U-ALICE"
        assert [dp.id for dp in reference.data_points] == [successor.id]
        assert result.audit_log.counts.evidence == 1
