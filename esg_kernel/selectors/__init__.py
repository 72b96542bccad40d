"""Selectors for the ESG kernel (read side)."""

from esg_kernel.selectors.catalog_selector import SqlCatalogRegistry
from esg_kernel.selectors.lineage_selector import DEFAULT_MAX_DEPTH, LineageSelector
from esg_kernel.selectors.metric_comparison_selector import MetricComparisonSelector
from esg_kernel.selectors.section_summary_selector import SectionSummarySelector

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "LineageSelector",
    "MetricComparisonSelector",
    "SectionSummarySelector",
    "SqlCatalogRegistry",
]
