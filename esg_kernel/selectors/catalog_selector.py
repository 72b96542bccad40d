"""
Module: esg_kernel.selectors.catalog_selector
Responsibility: The active section catalog, read from the
    ``section_catalog_items`` table.
Architecture position: Kernel > Selectors.  Default CatalogRegistry
    implementation consumed by period seeding and the rollover orchestrator.

Invariants enforced:
    - Deprecated items are never active.
    - Results are ordered by sort_order, then code, so seeding is
      deterministic.
    - Duplicate codes are returned as-is; the catalog mapper reports them.
"""

from sqlalchemy import select

from esg_kernel.domain.dtos import CatalogItemInfo
from esg_kernel.models.section import SectionCatalogItem
from esg_kernel.selectors.base import BaseSelector


class SqlCatalogRegistry(BaseSelector[SectionCatalogItem]):
    """CatalogRegistry backed by the section catalog table."""

    def active_items(self, organization_id: str) -> list[CatalogItemInfo]:
        rows = self.session.execute(
            select(SectionCatalogItem)
            .where(
                SectionCatalogItem.organization_id == organization_id,
                SectionCatalogItem.is_deprecated.is_(False),
            )
            .order_by(SectionCatalogItem.sort_order, SectionCatalogItem.code)
        ).scalars().all()

        return [
            CatalogItemInfo(
                id=item.id,
                code=item.code,
                title=item.title,
                category=item.category,
                organization_id=item.organization_id,
                description=item.description,
                sort_order=item.sort_order,
            )
            for item in rows
        ]
