"""
PeriodService: creation, catalog seeding and the period lifecycle.
"""

from datetime import date

import pytest
from sqlalchemy import select

from esg_kernel.domain.values import PeriodStatus
from esg_kernel.exceptions import (
    InvalidPeriodDatesError,
    PeriodLockedError,
    PeriodNameCollisionError,
    PeriodNotFoundError,
)
from esg_kernel.models.audit_event import AuditAction, AuditEvent
from esg_kernel.selectors.catalog_selector import SqlCatalogRegistry

TEST_ACTOR_ID = "U-ADMIN"


class TestCreatePeriod:
    def test_new_period_is_draft(self, period_service):
        period = period_service.create_period(
            "FY2024", date(2024, 1, 1), date(2024, 12, 31), TEST_ACTOR_ID
        )
        assert period.status == PeriodStatus.DRAFT
        assert period.organization_id == "default"
        assert period.rolled_over_from_id is None

    def test_period_created_is_audited(self, period_service, session):
        period = period_service.create_period(
            "FY2024", date(2024, 1, 1), date(2024, 12, 31), TEST_ACTOR_ID
        )
        events = session.execute(
            select(AuditEvent).where(AuditEvent.entity_id == period.id)
        ).scalars().all()
        assert [e.action for e in events] == [AuditAction.PERIOD_CREATED]

    def test_dates_must_be_ordered(self, period_service):
        with pytest.raises(InvalidPeriodDatesError):
            period_service.create_period(
                "FY2024", date(2024, 12, 31), date(2024, 1, 1), TEST_ACTOR_ID
            )

    def test_name_unique_per_organization(self, period_service):
        period_service.create_period(
            "FY2024", date(2024, 1, 1), date(2024, 12, 31), TEST_ACTOR_ID
        )
        with pytest.raises(PeriodNameCollisionError):
            period_service.create_period(
                "FY2024", date(2024, 1, 1), date(2024, 12, 31), TEST_ACTOR_ID
            )

    def test_same_name_in_other_organization_allowed(self, period_service):
        period_service.create_period(
            "FY2024", date(2024, 1, 1), date(2024, 12, 31), TEST_ACTOR_ID
        )
        other = period_service.create_period(
            "FY2024",
            date(2024, 1, 1),
            date(2024, 12, 31),
            TEST_ACTOR_ID,
            organization_id="subsidiary",
        )
        assert other.organization_id == "subsidiary"

    def test_cannot_create_directly_active(self, period_service):
        with pytest.raises(ValueError):
            period_service.create_period(
                "FY2024",
                date(2024, 1, 1),
                date(2024, 12, 31),
                TEST_ACTOR_ID,
                status=PeriodStatus.ACTIVE,
            )


class TestSeedSections:
    def test_sections_follow_catalog(self, period_service, standard_catalog, session):
        period = period_service.create_period(
            "FY2025", date(2025, 1, 1), date(2025, 12, 31), TEST_ACTOR_ID
        )
        sections = period_service.seed_sections_from_catalog(
            period.id,
            SqlCatalogRegistry(session).active_items("default"),
            TEST_ACTOR_ID,
        )
        assert [s.catalog_code for s in sections] == ["ENV-001", "SOC-002"]
        assert all(s.period_id == period.id for s in sections)
        assert sections[0].catalog_item_id == standard_catalog[0].id

    def test_deprecated_items_are_not_seeded(
        self, period_service, standard_catalog, make_catalog_item, session
    ):
        make_catalog_item("GOV-003", sort_order=3, is_deprecated=True)
        codes = [i.code for i in SqlCatalogRegistry(session).active_items("default")]
        assert codes == ["ENV-001", "SOC-002"]


class TestLifecycle:
    def test_draft_to_active_to_locked(self, period_service, make_period):
        period = make_period(status=PeriodStatus.DRAFT)
        assert period.status == PeriodStatus.DRAFT

        active = period_service.activate_period(period.id, TEST_ACTOR_ID)
        assert active.status == PeriodStatus.ACTIVE

        locked = period_service.lock_period(period.id, TEST_ACTOR_ID)
        assert locked.status == PeriodStatus.LOCKED
        assert locked.integrity_hash
        assert locked.locked_by == TEST_ACTOR_ID

    def test_draft_period_cannot_be_locked(self, period_service, make_period):
        period = make_period(status=PeriodStatus.DRAFT)
        with pytest.raises(ValueError):
            period_service.lock_period(period.id, TEST_ACTOR_ID)

    def test_locked_period_cannot_be_relocked(self, period_service, make_period):
        period = make_period()
        period_service.lock_period(period.id, TEST_ACTOR_ID)
        with pytest.raises(PeriodLockedError):
            period_service.lock_period(period.id, TEST_ACTOR_ID)

    def test_integrity_hash_ignores_row_order(
        self, period_service, make_period, make_section, make_data_point
    ):
        period = make_period()
        section = make_section(period.id, "Energy", "ENV-001")
        make_data_point(section.id, title="B", value="2")
        make_data_point(section.id, title="A", value="1")
        first = period_service.compute_integrity_hash(period.id)
        assert first == period_service.compute_integrity_hash(period.id)
        assert len(first) == 64

    def test_unknown_period(self, period_service):
        from uuid import uuid4

        with pytest.raises(PeriodNotFoundError):
            period_service.get_period(uuid4())


class TestQueries:
    def test_find_by_name(self, period_service, make_period):
        period = make_period()
        assert period_service.find_by_name("FY2024").id == period.id
        assert period_service.find_by_name("FY2099") is None

    def test_staging_periods_are_not_listed(self, period_service, make_period):
        make_period()
        period_service.create_period(
            "FY2025",
            date(2025, 1, 1),
            date(2025, 12, 31),
            TEST_ACTOR_ID,
            status=PeriodStatus.STAGING,
        )
        assert [p.name for p in period_service.list_periods()] == ["FY2024"]
