"""
PeriodService -- reporting period lifecycle.

Responsibility:
    Creates reporting periods, seeds their sections from the section
    catalog, and drives the DRAFT/STAGING -> ACTIVE -> LOCKED lifecycle,
    sealing an integrity hash over the period's data points on lock.

Architecture position:
    Kernel > Services -- imperative shell.
    Called directly by callers managing periods, and by the rollover
    orchestrator to create and activate the staged target period.

Invariants enforced:
    - Period names are unique per organization.
    - start_date must be strictly before end_date.
    - Lifecycle transitions follow VALID_PERIOD_TRANSITIONS; LOCKED is
      terminal.
    - STAGING periods are excluded from ``list_periods()``.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - InvalidPeriodDatesError: start_date >= end_date.
    - PeriodNameCollisionError: name already used in the organization.
    - PeriodNotFoundError: unknown period id.
    - PeriodLockedError: lock or activation of an already-locked period.

Audit relevance:
    Period creation and lock produce PERIOD_CREATED and PERIOD_LOCKED audit
    events.  The lock's integrity hash lets an auditor prove that published
    figures were not altered afterwards.
"""

from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from esg_kernel.domain.clock import Clock, SystemClock
from esg_kernel.domain.dtos import CatalogItemInfo, ReportingPeriodInfo, SectionInfo
from esg_kernel.domain.values import PeriodStatus, ReportingMode, ReportScope
from esg_kernel.exceptions import (
    InvalidPeriodDatesError,
    PeriodLockedError,
    PeriodNameCollisionError,
    PeriodNotFoundError,
)
from esg_kernel.logging_config import get_logger
from esg_kernel.models.data_point import DataPoint
from esg_kernel.models.reporting_period import ReportingPeriod
from esg_kernel.models.section import ReportSection
from esg_kernel.services.auditor_service import AuditorService
from esg_kernel.services.base import BaseService
from esg_kernel.utils.hashing import hash_period_content

logger = get_logger("services.period")


class PeriodService(BaseService[ReportingPeriod]):
    """
    Service for managing the reporting period lifecycle.

    Contract:
        Lifecycle methods flush within the caller's transaction and return
        frozen ``ReportingPeriodInfo`` DTOs.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT copy content between periods (that is the rollover
          orchestrator in esg_services/).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auditor: AuditorService | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._auditor = auditor or AuditorService(session, self._clock)

    def _to_dto(self, period: ReportingPeriod) -> ReportingPeriodInfo:
        return ReportingPeriodInfo.from_model(period)

    def create_period(
        self,
        name: str,
        start_date: date,
        end_date: date,
        actor_id: str,
        organization_id: str = "default",
        reporting_mode: ReportingMode = ReportingMode.SIMPLIFIED,
        report_scope: ReportScope = ReportScope.SINGLE_COMPANY,
        owner_id: str | None = None,
        status: PeriodStatus = PeriodStatus.DRAFT,
        rolled_over_from_id: UUID | None = None,
    ) -> ReportingPeriodInfo:
        """
        Create a new reporting period.

        ``status`` is DRAFT for manually created periods and STAGING for a
        period being built by a rollover.

        Raises:
            InvalidPeriodDatesError: If start_date >= end_date.
            PeriodNameCollisionError: If the name is taken in the organization.
        """
        if start_date >= end_date:
            raise InvalidPeriodDatesError(str(start_date), str(end_date))

        if status not in (PeriodStatus.DRAFT, PeriodStatus.STAGING):
            raise ValueError(f"A new period cannot start in '{status.value}' status")

        if self._find_by_name(name, organization_id) is not None:
            raise PeriodNameCollisionError(name, organization_id)

        period = ReportingPeriod(
            name=name,
            organization_id=organization_id,
            start_date=start_date,
            end_date=end_date,
            reporting_mode=reporting_mode,
            report_scope=report_scope,
            status=status,
            owner_id=owner_id,
            rolled_over_from_id=rolled_over_from_id,
            created_by=actor_id,
        )

        # A concurrent insert can still win the unique constraint
        savepoint = self.session.begin_nested()
        try:
            self.session.add(period)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            raise PeriodNameCollisionError(name, organization_id) from None

        self._auditor.record_period_created(
            period_id=period.id,
            name=name,
            organization_id=organization_id,
            actor_id=actor_id,
            rolled_over_from_id=rolled_over_from_id,
        )

        logger.info(
            "period_created",
            extra={
                "period_id": str(period.id),
                "period_name": name,
                "status": status.value,
                "start_date": str(start_date),
                "end_date": str(end_date),
            },
        )

        return self._to_dto(period)

    def seed_sections_from_catalog(
        self,
        period_id: UUID,
        catalog_items: Sequence[CatalogItemInfo],
        actor_id: str,
    ) -> list[SectionInfo]:
        """
        Create one section per catalog item, in catalog order.

        Each section carries the item's code as its ``catalog_code``.
        """
        period = self._get_period_orm(period_id)
        if period.is_locked:
            raise PeriodLockedError(str(period_id), "seed sections")

        sections = []
        for item in catalog_items:
            section = ReportSection(
                period_id=period.id,
                title=item.title,
                category=item.category,
                description=item.description,
                sort_order=item.sort_order,
                catalog_code=item.code,
                catalog_item_id=item.id,
                created_by=actor_id,
            )
            self.session.add(section)
            sections.append(section)

        self.session.flush()

        logger.info(
            "period_sections_seeded",
            extra={"period_id": str(period_id), "section_count": len(sections)},
        )

        return [SectionInfo.from_model(s) for s in sections]

    def activate_period(self, period_id: UUID, actor_id: str) -> ReportingPeriodInfo:
        """
        Make a DRAFT or STAGING period ACTIVE.

        For a rollover target this is the last write of the unit of work.
        """
        period = self._get_period_for_update(period_id)

        if period.is_locked:
            raise PeriodLockedError(str(period_id), "activate")
        if not period.can_transition_to(PeriodStatus.ACTIVE):
            raise ValueError(
                f"Period {period.name} cannot be activated from "
                f"'{period.status.value}'"
            )

        previous = period.status
        period.status = PeriodStatus.ACTIVE
        period.updated_by = actor_id
        self.session.flush()

        logger.info(
            "period_activated",
            extra={
                "period_id": str(period_id),
                "from_status": previous.value,
            },
        )

        return self._to_dto(period)

    def lock_period(self, period_id: UUID, actor_id: str) -> ReportingPeriodInfo:
        """
        Permanently lock an ACTIVE period.

        Computes the integrity hash over the period's data points in the
        same flush that sets the status, then records PERIOD_LOCKED.

        Raises:
            PeriodNotFoundError: If period doesn't exist.
            PeriodLockedError: If the period is already locked.
            ValueError: If the period is not ACTIVE.
        """
        period = self._get_period_for_update(period_id)

        if period.is_locked:
            raise PeriodLockedError(str(period_id), "lock")
        if not period.can_transition_to(PeriodStatus.LOCKED):
            raise ValueError(
                f"Period {period.name} must be ACTIVE to lock "
                f"(current: {period.status.value})"
            )

        integrity_hash = self.compute_integrity_hash(period_id)

        period.status = PeriodStatus.LOCKED
        period.integrity_hash = integrity_hash
        period.locked_at = self._clock.now()
        period.locked_by = actor_id
        period.updated_by = actor_id
        self.session.flush()

        self._auditor.record_period_locked(
            period_id=period.id,
            name=period.name,
            integrity_hash=integrity_hash,
            actor_id=actor_id,
        )

        logger.info(
            "period_locked",
            extra={"period_id": str(period_id), "integrity_hash": integrity_hash},
        )

        return self._to_dto(period)

    def compute_integrity_hash(self, period_id: UUID) -> str:
        """Hash of the period's data point content, independent of row order."""
        rows = self.session.execute(
            select(DataPoint)
            .join(ReportSection, DataPoint.section_id == ReportSection.id)
            .where(ReportSection.period_id == period_id)
        ).scalars().all()

        return hash_period_content(
            str(period_id),
            [
                {
                    "id": str(dp.id),
                    "data_type": dp.data_type,
                    "value": dp.value,
                    "content": dp.content,
                    "gap_status": dp.gap_status.value if dp.gap_status else None,
                    "completeness_status": dp.completeness_status.value,
                }
                for dp in rows
            ],
        )

    def get_period(self, period_id: UUID) -> ReportingPeriodInfo:
        """
        Raises:
            PeriodNotFoundError: If period doesn't exist.
        """
        return self._to_dto(self._get_period_orm(period_id))

    def find_by_name(
        self,
        name: str,
        organization_id: str = "default",
    ) -> ReportingPeriodInfo | None:
        period = self._find_by_name(name, organization_id)
        return self._to_dto(period) if period else None

    def list_periods(self, organization_id: str | None = None) -> list[ReportingPeriodInfo]:
        """Visible periods ordered by start date; STAGING periods are excluded."""
        stmt = (
            select(ReportingPeriod)
            .where(ReportingPeriod.status != PeriodStatus.STAGING)
            .order_by(ReportingPeriod.start_date, ReportingPeriod.name)
        )
        if organization_id is not None:
            stmt = stmt.where(ReportingPeriod.organization_id == organization_id)

        return [self._to_dto(p) for p in self.session.execute(stmt).scalars().all()]

    def _find_by_name(self, name: str, organization_id: str) -> ReportingPeriod | None:
        return self.session.execute(
            select(ReportingPeriod).where(
                ReportingPeriod.organization_id == organization_id,
                ReportingPeriod.name == name,
            )
        ).scalar_one_or_none()

    def _get_period_orm(self, period_id: UUID) -> ReportingPeriod:
        period = self.session.get(ReportingPeriod, period_id)
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        return period

    def _get_period_for_update(self, period_id: UUID) -> ReportingPeriod:
        """Get ORM ReportingPeriod with row lock for concurrent mutation."""
        period = self.session.execute(
            select(ReportingPeriod)
            .where(ReportingPeriod.id == period_id)
            .with_for_update()
        ).scalar_one_or_none()
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        return period
