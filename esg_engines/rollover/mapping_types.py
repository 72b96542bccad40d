"""
Section mapping value objects.

Responsibility:
    Frozen inputs and outputs of the catalog mapper: lightweight references
    to source and target sections, and the mapping result with its
    unmapped items and configuration issues.

Architecture position:
    Engines -- pure data, zero I/O.  Built from ORM rows by the rollover
    orchestrator; the engine never sees a session.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from esg_kernel.domain.rollover import ManualSectionMapping, MappingType

REASON_MANUAL_TARGET_NOT_FOUND = "manual target not found"
REASON_NO_STABLE_IDENTIFIER = "no stable identifier"
REASON_CODE_NOT_IN_TARGET = "catalog code not found in target period"
REASON_TARGET_ALREADY_MAPPED = "target section already mapped"


@dataclass(frozen=True)
class SourceSectionRef:
    """A section of the source period, as seen by the mapper."""

    section_id: UUID
    title: str
    catalog_code: str | None
    data_point_count: int = 0


@dataclass(frozen=True)
class TargetSectionRef:
    """A pre-seeded section of the target period."""

    section_id: UUID
    title: str
    catalog_code: str | None


@dataclass(frozen=True)
class MappedSection:
    source: SourceSectionRef
    target: TargetSectionRef
    mapping_type: MappingType


@dataclass(frozen=True)
class UnmappedSection:
    source: SourceSectionRef
    reason: str
    suggested_actions: tuple[str, ...]


@dataclass(frozen=True)
class CatalogMappingResult:
    """
    Outcome of mapping every source section.

    ``mapped`` and ``unmapped`` are in source order and together cover
    every source section exactly once.  No target section appears in
    ``mapped`` twice.
    """

    mapped: tuple[MappedSection, ...]
    unmapped: tuple[UnmappedSection, ...]
    configuration_issues: tuple[str, ...] = ()
    missing_manual_targets: tuple[ManualSectionMapping, ...] = ()

    @property
    def total_sources(self) -> int:
        return len(self.mapped) + len(self.unmapped)

    def target_for(self, source_section_id: UUID) -> TargetSectionRef | None:
        for item in self.mapped:
            if item.source.section_id == source_section_id:
                return item.target
        return None
