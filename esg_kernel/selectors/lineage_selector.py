"""
Module: esg_kernel.selectors.lineage_selector
Responsibility: Cross-period lineage of a data point.  Walks the
    ``source_data_point_id`` chain from a data point back through the
    periods it was carried from.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.

Invariants enforced:
    - The walk visits each data point at most once; a revisit is a
      corrupted chain and raises LineageCycleError instead of looping.
    - At most ``max_depth`` ancestors are returned.  ``has_more_history``
      tells the caller the chain continues past the limit.

Failure modes:
    - DataPointNotFoundError for an unknown data point or one in a staging
      period.
    - LineageCycleError if the chain loops.

Audit relevance:
    Answers "where did this number come from" across any number of
    rollovers without reading the rollover audit logs.
"""

from uuid import UUID

from sqlalchemy import select

from esg_kernel.domain.dtos import CrossPeriodLineage, DataPointInfo
from esg_kernel.domain.values import PeriodStatus
from esg_kernel.exceptions import DataPointNotFoundError, LineageCycleError
from esg_kernel.logging_config import get_logger
from esg_kernel.models.data_point import DataPoint
from esg_kernel.models.reporting_period import ReportingPeriod
from esg_kernel.models.section import ReportSection
from esg_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.lineage")

DEFAULT_MAX_DEPTH = 10


class LineageSelector(BaseSelector[DataPoint]):
    """Read-only walk of the data point ancestry chain."""

    def get_cross_period_lineage(
        self,
        data_point_id: UUID,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> CrossPeriodLineage:
        """
        Return the data point and up to ``max_depth`` ancestors, newest first.

        Raises:
            DataPointNotFoundError: If the data point is unknown or staged.
            LineageCycleError: If an ancestor repeats.
            ValueError: If max_depth is negative.
        """
        if max_depth < 0:
            raise ValueError("max_depth must not be negative")

        current = self._get_visible(data_point_id)
        visited = {current.id}
        ancestors: list[DataPoint] = []

        node = current
        while node.source_data_point_id is not None and len(ancestors) < max_depth:
            if node.source_data_point_id in visited:
                logger.error(
                    "lineage_cycle_detected",
                    extra={
                        "data_point_id": str(data_point_id),
                        "repeated_id": str(node.source_data_point_id),
                    },
                )
                raise LineageCycleError(str(node.source_data_point_id))
            parent = self.session.get(DataPoint, node.source_data_point_id)
            if parent is None:
                break
            visited.add(parent.id)
            ancestors.append(parent)
            node = parent

        return CrossPeriodLineage(
            current_version=DataPointInfo.from_model(current),
            previous_versions=tuple(DataPointInfo.from_model(dp) for dp in ancestors),
            has_more_history=node.source_data_point_id is not None,
        )

    def _get_visible(self, data_point_id: UUID) -> DataPoint:
        row = self.session.execute(
            select(DataPoint, ReportingPeriod.status)
            .join(ReportSection, DataPoint.section_id == ReportSection.id)
            .join(ReportingPeriod, ReportSection.period_id == ReportingPeriod.id)
            .where(DataPoint.id == data_point_id)
        ).one_or_none()
        if row is None:
            raise DataPointNotFoundError(str(data_point_id))
        data_point, status = row
        if status == PeriodStatus.STAGING:
            raise DataPointNotFoundError(str(data_point_id))
        return data_point
