"""
Module: esg_kernel.selectors.metric_comparison_selector
Responsibility: Year-over-year comparison of a numeric data point with its
    own earlier versions, found by walking the cross-period lineage.
Architecture position: Kernel > Selectors.  Built on LineageSelector; may
    import from models/, domain/ and selectors/.

Invariants enforced:
    - Only ancestors on the lineage chain are baselines.  Data points that
      merely share a title in an older period are never compared.
    - Baselines are newest first: "Previous Year", then "2 Years Back",
      "3 Years Back" and so on.
    - Changes are computed only when both values parse as finite numbers
      and both units are identical.  Otherwise the comparison carries a
      reason instead of numbers.

Failure modes:
    - DataPointNotFoundError / LineageCycleError from the lineage walk.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy import select

from esg_kernel.domain.dtos import (
    ComparisonBaseline,
    DataPointInfo,
    MetricComparison,
    MetricPeriodValue,
)
from esg_kernel.logging_config import get_logger
from esg_kernel.models.data_point import DataPoint
from esg_kernel.models.reporting_period import ReportingPeriod
from esg_kernel.models.section import ReportSection
from esg_kernel.selectors.base import BaseSelector
from esg_kernel.selectors.lineage_selector import DEFAULT_MAX_DEPTH, LineageSelector

logger = get_logger("selectors.metric_comparison")

NO_PRIOR_DATA = "No prior period data available"
UNIT_MISMATCH = "Unit mismatch"
NON_NUMERIC = "Non-numeric values"

_PERCENT_PLACES = Decimal("0.01")


def parse_numeric(value: str | None) -> Decimal | None:
    """Finite decimal value of ``value``, or None.  Thousands commas are ignored."""
    if value is None or not value.strip():
        return None
    try:
        number = Decimal(value.strip().replace(",", ""))
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def baseline_label(years_back: int) -> str:
    return "Previous Year" if years_back == 1 else f"{years_back} Years Back"


def _has_data(data_point: DataPointInfo) -> bool:
    return data_point.value is not None and data_point.value.strip() != ""


class MetricComparisonSelector(BaseSelector[DataPoint]):
    """Compares a metric with the same metric in earlier periods."""

    def compare(
        self,
        data_point_id: UUID,
        baseline_period_id: UUID | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> MetricComparison:
        """
        Compare a data point with one of its prior-period versions.

        Args:
            data_point_id: The current-period data point.
            baseline_period_id: Period to compare against.  Defaults to the
                direct source (the previous year).  A period that is not on
                the lineage chain yields NO_PRIOR_DATA.
            max_depth: How many prior periods to offer as baselines.

        Raises:
            DataPointNotFoundError: If the data point is unknown or staged.
            LineageCycleError: If the lineage chain loops.
        """
        lineage = LineageSelector(self.session).get_cross_period_lineage(
            data_point_id, max_depth=max_depth
        )
        current = lineage.current_version
        ancestors = lineage.previous_versions
        periods = self._periods_of([current, *ancestors])

        baselines = tuple(
            ComparisonBaseline(
                period_id=periods[dp.section_id][0],
                period_name=periods[dp.section_id][1],
                label=baseline_label(years_back),
                has_data=_has_data(dp),
            )
            for years_back, dp in enumerate(ancestors, start=1)
        )

        prior = self._pick_prior(ancestors, periods, baseline_period_id)
        current_value = self._period_value(current, periods)
        prior_value = self._period_value(prior, periods) if prior is not None else None

        comparison = self._compare_values(
            current, current_value, prior, prior_value, baselines
        )
        logger.debug(
            "metric_comparison_computed",
            extra={
                "data_point_id": str(data_point_id),
                "baselines": len(baselines),
                "unavailable_reason": comparison.unavailable_reason,
            },
        )
        return comparison

    @staticmethod
    def _compare_values(current, current_value, prior, prior_value, baselines):
        fields = dict(
            data_point_id=current.id,
            title=current.title,
            current_period=current_value,
            prior_period=prior_value,
            available_baselines=baselines,
        )
        if prior is None or not _has_data(prior):
            return MetricComparison(
                units_compatible=True, unavailable_reason=NO_PRIOR_DATA, **fields
            )

        if (current.unit or None) != (prior.unit or None):
            return MetricComparison(
                units_compatible=False,
                unit_warning=(
                    f"Current unit '{current.unit}' differs from prior unit "
                    f"'{prior.unit}'; values are not directly comparable"
                ),
                unavailable_reason=UNIT_MISMATCH,
                **fields,
            )

        if current_value.numeric_value is None or prior_value.numeric_value is None:
            return MetricComparison(
                units_compatible=True, unavailable_reason=NON_NUMERIC, **fields
            )

        absolute = current_value.numeric_value - prior_value.numeric_value
        percentage = None
        if prior_value.numeric_value != 0:
            percentage = (absolute / abs(prior_value.numeric_value) * 100).quantize(
                _PERCENT_PLACES, rounding=ROUND_HALF_UP
            )
        return MetricComparison(
            units_compatible=True,
            absolute_change=absolute,
            percentage_change=percentage,
            **fields,
        )

    @staticmethod
    def _pick_prior(ancestors, periods, baseline_period_id):
        if not ancestors:
            return None
        if baseline_period_id is None:
            return ancestors[0]
        for dp in ancestors:
            if periods[dp.section_id][0] == baseline_period_id:
                return dp
        return None

    @staticmethod
    def _period_value(data_point: DataPointInfo, periods) -> MetricPeriodValue:
        period_id, period_name = periods[data_point.section_id]
        return MetricPeriodValue(
            data_point_id=data_point.id,
            period_id=period_id,
            period_name=period_name,
            value=data_point.value,
            numeric_value=parse_numeric(data_point.value),
            unit=data_point.unit,
        )

    def _periods_of(self, data_points) -> dict[UUID, tuple[UUID, str]]:
        """section id -> (period id, period name) for every given data point."""
        section_ids = {dp.section_id for dp in data_points}
        rows = self.session.execute(
            select(ReportSection.id, ReportingPeriod.id, ReportingPeriod.name)
            .join(ReportingPeriod, ReportSection.period_id == ReportingPeriod.id)
            .where(ReportSection.id.in_(section_ids))
        ).all()
        return {section_id: (period_id, name) for section_id, period_id, name in rows}
