"""
Pytest fixtures for the ESG rollover test suite.

Provides:
- A fresh in-memory SQLite database per test
- Deterministic clock and user registry collaborators
- Builders for catalog items, periods, sections and data points
- Structured log capture

Concurrency tests build their own file-backed SQLite database
(see tests/concurrency/conftest.py); an in-memory database is a single
shared connection and cannot show real races.
"""

import json
import logging
from datetime import date
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from esg_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from esg_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from esg_kernel.domain.clock import DeterministicClock
from esg_kernel.domain.collaborators import StaticUserRegistry
from esg_kernel.domain.values import PeriodStatus
from esg_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from esg_kernel.models.data_point import DataPoint
from esg_kernel.models.section import ReportSection, SectionCatalogItem
from esg_kernel.services.period_service import PeriodService
from esg_kernel.utils.concurrency import KeyedLockRegistry
from esg_services.rollover import RolloverOrchestrator

# Test actor for all setup writes
TEST_ACTOR_ID = "U-ADMIN"

ACTIVE_USERS = {
    "U-ADMIN": "Ada Admin",
    "U-ALICE": "Alice Analyst",
    "U-BOB": "Bob Builder",
    "U1": "Former Owner",
}


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture esg_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, orchestrator):
            result = orchestrator.rollover(...)
            logs = captured_logs()
            assert any(r["message"] == "rollover_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("esg_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _immutability_listeners():
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()


@pytest.fixture
def db_engine():
    """A fresh in-memory database per test."""
    engine = init_engine_from_url("sqlite://")
    create_tables()
    yield engine
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    s = get_session()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock()


@pytest.fixture
def user_registry():
    return StaticUserRegistry(active=ACTIVE_USERS.keys(), names=ACTIVE_USERS)


@pytest.fixture
def period_service(session, deterministic_clock):
    return PeriodService(session, deterministic_clock)


@pytest.fixture
def make_orchestrator(session, deterministic_clock, user_registry):
    """Factory for orchestrators with an isolated lock registry."""

    def _make(**kwargs) -> RolloverOrchestrator:
        kwargs.setdefault("clock", deterministic_clock)
        kwargs.setdefault("user_registry", user_registry)
        kwargs.setdefault("locks", KeyedLockRegistry())
        return RolloverOrchestrator(session, **kwargs)

    return _make


@pytest.fixture
def orchestrator(make_orchestrator):
    return make_orchestrator()


# =============================================================================
# Builders
# =============================================================================


@pytest.fixture
def make_catalog_item(session):
    def _make(
        code: str,
        title: str | None = None,
        category: str = "environmental",
        sort_order: int = 0,
        organization_id: str = "default",
        is_deprecated: bool = False,
    ) -> SectionCatalogItem:
        item = SectionCatalogItem(
            organization_id=organization_id,
            code=code,
            title=title or f"Section {code}",
            category=category,
            sort_order=sort_order,
            is_deprecated=is_deprecated,
            created_by=TEST_ACTOR_ID,
        )
        session.add(item)
        session.flush()
        return item

    return _make


@pytest.fixture
def standard_catalog(make_catalog_item, session):
    """ENV-001 and SOC-002, the active catalog of most rollover tests."""
    items = [
        make_catalog_item("ENV-001", "Energy consumption", "environmental", 1),
        make_catalog_item("SOC-002", "Workforce", "social", 2),
    ]
    session.commit()
    return items


@pytest.fixture
def make_period(session, period_service):
    def _make(
        name: str = "FY2024",
        start_date: date = date(2024, 1, 1),
        end_date: date = date(2024, 12, 31),
        status: PeriodStatus = PeriodStatus.ACTIVE,
        organization_id: str = "default",
    ):
        period = period_service.create_period(
            name=name,
            start_date=start_date,
            end_date=end_date,
            actor_id=TEST_ACTOR_ID,
            organization_id=organization_id,
        )
        if status == PeriodStatus.ACTIVE:
            period = period_service.activate_period(period.id, TEST_ACTOR_ID)
        session.flush()
        return period

    return _make


@pytest.fixture
def make_section(session):
    def _make(
        period_id,
        title: str,
        catalog_code: str | None = None,
        sort_order: int = 0,
        owner_id: str | None = None,
        description: str | None = None,
        category: str = "environmental",
    ) -> ReportSection:
        section = ReportSection(
            period_id=period_id,
            title=title,
            category=category,
            catalog_code=catalog_code,
            sort_order=sort_order,
            owner_id=owner_id,
            description=description,
            created_by=TEST_ACTOR_ID,
        )
        session.add(section)
        session.flush()
        return section

    return _make


@pytest.fixture
def make_data_point(session):
    def _make(section_id, data_type: str = "kpi", title: str = "Metric", **fields) -> DataPoint:
        data_point = DataPoint(
            section_id=section_id,
            data_type=data_type,
            title=title,
            created_by=TEST_ACTOR_ID,
            **fields,
        )
        session.add(data_point)
        session.flush()
        return data_point

    return _make


@pytest.fixture
def source_period(make_period, make_section, standard_catalog, session):
    """
    FY2024, active, with the three sections of the canonical scenario:
    ENV-001, SOC-002 and an uncoded "Ad-hoc" section.
    """
    period = make_period()
    make_section(period.id, "Energy consumption", "ENV-001", sort_order=1)
    make_section(period.id, "Workforce", "SOC-002", sort_order=2, category="social")
    make_section(period.id, "Ad-hoc", None, sort_order=3, category="governance")
    session.commit()
    return period


@pytest.fixture
def sections_of(session):
    """Sections of a period keyed by catalog code (title when uncoded)."""

    def _get(period_id) -> dict[str, ReportSection]:
        rows = session.execute(
            select(ReportSection).where(ReportSection.period_id == period_id)
        ).scalars().all()
        return {s.catalog_code or s.title: s for s in rows}

    return _get


@pytest.fixture
def data_points_of(session):
    """Data points of a period ordered by title."""

    def _get(period_id) -> list[DataPoint]:
        return list(
            session.execute(
                select(DataPoint)
                .join(ReportSection, DataPoint.section_id == ReportSection.id)
                .where(ReportSection.period_id == period_id)
                .order_by(DataPoint.title)
            ).scalars().all()
        )

    return _get
