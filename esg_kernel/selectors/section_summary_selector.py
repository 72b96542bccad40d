"""
Module: esg_kernel.selectors.section_summary_selector
Responsibility: Read-only per-section metrics for a reporting period.  Each
    result composes the section record with counts derived at query time;
    nothing is stored.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.

Invariants enforced:
    - Staging periods are invisible: asking for one raises
      PeriodNotFoundError exactly as for an unknown id.
    - Every CompletenessStatus appears in ``by_completeness``, zero or not.
    - No completeness percentage is computed.

Failure modes:
    - PeriodNotFoundError for an unknown or staging period.
"""

from collections import defaultdict
from uuid import UUID

from sqlalchemy import func, select

from esg_kernel.domain.dtos import SectionInfo, SectionMetrics, SectionSummary
from esg_kernel.domain.gap_status import GapStatus
from esg_kernel.domain.values import CompletenessStatus
from esg_kernel.exceptions import PeriodNotFoundError
from esg_kernel.models.data_point import DataPoint
from esg_kernel.models.disclosure import Gap
from esg_kernel.models.evidence import Evidence
from esg_kernel.models.reporting_period import ReportingPeriod
from esg_kernel.models.section import ReportSection
from esg_kernel.selectors.base import BaseSelector


class SectionSummarySelector(BaseSelector[ReportSection]):
    """Section records composed with their derived metrics."""

    def summaries(self, period_id: UUID) -> list[SectionSummary]:
        """
        One summary per section of the period, in section sort order.

        Raises:
            PeriodNotFoundError: If the period does not exist or is staging.
        """
        period = self.session.get(ReportingPeriod, period_id)
        if period is None or not period.is_visible:
            raise PeriodNotFoundError(str(period_id))

        sections = self.session.execute(
            select(ReportSection)
            .where(ReportSection.period_id == period_id)
            .order_by(ReportSection.sort_order, ReportSection.title)
        ).scalars().all()

        section_ids = [s.id for s in sections]
        completeness = self._completeness_counts(section_ids)
        missing_gaps = self._count_by_section(
            DataPoint.section_id,
            DataPoint.gap_status == GapStatus.MISSING,
            section_ids,
        )
        gaps = self._count_by_section(Gap.section_id, None, section_ids)
        open_gaps = self._count_by_section(
            Gap.section_id, Gap.resolved.is_(False), section_ids
        )
        evidence = self._count_by_section(Evidence.section_id, None, section_ids)

        results = []
        for section in sections:
            by_status = {status: 0 for status in CompletenessStatus}
            by_status.update(completeness.get(section.id, {}))
            metrics = SectionMetrics(
                data_point_count=sum(by_status.values()),
                by_completeness=by_status,
                missing_gap_status_count=missing_gaps.get(section.id, 0),
                gap_count=gaps.get(section.id, 0),
                open_gap_count=open_gaps.get(section.id, 0),
                evidence_count=evidence.get(section.id, 0),
            )
            results.append(
                SectionSummary(section=SectionInfo.from_model(section), metrics=metrics)
            )
        return results

    def _completeness_counts(
        self,
        section_ids: list[UUID],
    ) -> dict[UUID, dict[CompletenessStatus, int]]:
        if not section_ids:
            return {}
        rows = self.session.execute(
            select(
                DataPoint.section_id,
                DataPoint.completeness_status,
                func.count(DataPoint.id),
            )
            .where(DataPoint.section_id.in_(section_ids))
            .group_by(DataPoint.section_id, DataPoint.completeness_status)
        ).all()

        counts: dict[UUID, dict[CompletenessStatus, int]] = defaultdict(dict)
        for section_id, status, count in rows:
            counts[section_id][status] = count
        return counts

    def _count_by_section(self, column, condition, section_ids: list[UUID]) -> dict[UUID, int]:
        if not section_ids:
            return {}
        stmt = (
            select(column, func.count())
            .where(column.in_(section_ids))
            .group_by(column)
        )
        if condition is not None:
            stmt = stmt.where(condition)
        return {section_id: count for section_id, count in self.session.execute(stmt).all()}
