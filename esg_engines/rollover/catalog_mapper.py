"""
esg_engines.rollover.catalog_mapper -- Cross-period section matching.

Responsibility:
    Map each source-period section to at most one pre-seeded target-period
    section: manual mappings first, then exact catalog-code matching.
    Everything that cannot be mapped is reported with a reason and the
    actions that would fix it.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import esg_kernel/domain values and sibling engine modules.

Invariants enforced:
    - Deterministic: identical inputs produce identical outputs; results
      follow source order.
    - Injective: a target section is claimed at most once.  Manual mappings
      claim their targets before any automatic matching runs.
    - The mapper never invents target sections.
    - A target catalog code held by more than one target section is a
      configuration error, reported once; the first such section in target
      order is the match.

Failure modes:
    - None raised.  A manual mapping naming an absent target code is
      reported both as an unmapped item and in ``missing_manual_targets``;
      the orchestrator decides whether that is fatal.

Audit relevance:
    The result is the basis of the persisted rollover reconciliation
    record.  All invocations are traced via ``@traced_engine``.
"""

from __future__ import annotations

from collections.abc import Sequence

from esg_engines.rollover.mapping_types import (
    REASON_CODE_NOT_IN_TARGET,
    REASON_MANUAL_TARGET_NOT_FOUND,
    REASON_NO_STABLE_IDENTIFIER,
    REASON_TARGET_ALREADY_MAPPED,
    CatalogMappingResult,
    MappedSection,
    SourceSectionRef,
    TargetSectionRef,
    UnmappedSection,
)
from esg_engines.tracer import traced_engine
from esg_kernel.domain.rollover import ManualSectionMapping, MappingType
from esg_kernel.logging_config import get_logger

logger = get_logger("engines.catalog_mapper")


def _suggestions_for(
    reason: str,
    source: SourceSectionRef,
    target_code: str | None = None,
) -> tuple[str, ...]:
    if reason == REASON_NO_STABLE_IDENTIFIER:
        return ("create manual mapping or add catalog code before rollover",)
    if reason == REASON_CODE_NOT_IN_TARGET:
        return (
            f"add catalog item '{source.catalog_code}' to the active catalog",
            "create manual mapping to an existing target section",
        )
    if reason == REASON_MANUAL_TARGET_NOT_FOUND:
        return (
            f"add catalog item '{target_code}' to the active catalog",
            "correct the manual mapping target code",
        )
    if reason == REASON_TARGET_ALREADY_MAPPED:
        return ("resolve duplicate catalog codes in the source period",)
    return ()


class CatalogMapper:
    """
    Maps source sections onto target sections by catalog code.

    Contract:
        ``map_sections`` returns one entry per source section, either in
        ``mapped`` or in ``unmapped``.
    """

    @traced_engine(
        "catalog_mapper",
        "1.0",
        fingerprint_fields=("sources", "target_sections", "manual_mappings"),
    )
    def map_sections(
        self,
        *,
        sources: Sequence[SourceSectionRef],
        target_sections: Sequence[TargetSectionRef],
        manual_mappings: Sequence[ManualSectionMapping] = (),
    ) -> CatalogMappingResult:
        by_code: dict[str, list[TargetSectionRef]] = {}
        for target in target_sections:
            if target.catalog_code:
                by_code.setdefault(target.catalog_code, []).append(target)

        issues = tuple(
            f"catalog code '{code}' is used by {len(targets)} target sections"
            for code, targets in by_code.items()
            if len(targets) > 1
        )
        for issue in issues:
            logger.warning("catalog_configuration_issue", extra={"issue": issue})

        manual = {m.source_catalog_code: m for m in manual_mappings}
        claimed: set = set()
        outcomes: dict[int, MappedSection | UnmappedSection] = {}
        missing_targets: list[ManualSectionMapping] = []

        def claim(
            index: int,
            source: SourceSectionRef,
            target: TargetSectionRef,
            mapping_type: MappingType,
        ) -> None:
            if target.section_id in claimed:
                outcomes[index] = UnmappedSection(
                    source=source,
                    reason=REASON_TARGET_ALREADY_MAPPED,
                    suggested_actions=_suggestions_for(REASON_TARGET_ALREADY_MAPPED, source),
                )
                return
            claimed.add(target.section_id)
            outcomes[index] = MappedSection(
                source=source, target=target, mapping_type=mapping_type
            )

        # Manual mappings claim their targets first
        for index, source in enumerate(sources):
            mapping = manual.get(source.catalog_code) if source.catalog_code else None
            if mapping is None:
                continue
            candidates = by_code.get(mapping.target_catalog_code)
            if not candidates:
                outcomes[index] = UnmappedSection(
                    source=source,
                    reason=REASON_MANUAL_TARGET_NOT_FOUND,
                    suggested_actions=_suggestions_for(
                        REASON_MANUAL_TARGET_NOT_FOUND, source, mapping.target_catalog_code
                    ),
                )
                if mapping not in missing_targets:
                    missing_targets.append(mapping)
                continue
            claim(index, source, candidates[0], MappingType.MANUAL)

        for index, source in enumerate(sources):
            if index in outcomes:
                continue
            if not source.catalog_code:
                reason = REASON_NO_STABLE_IDENTIFIER
            elif source.catalog_code not in by_code:
                reason = REASON_CODE_NOT_IN_TARGET
            else:
                claim(index, source, by_code[source.catalog_code][0], MappingType.AUTOMATIC)
                continue
            outcomes[index] = UnmappedSection(
                source=source,
                reason=reason,
                suggested_actions=_suggestions_for(reason, source),
            )

        ordered = [outcomes[i] for i in range(len(sources))]
        return CatalogMappingResult(
            mapped=tuple(o for o in ordered if isinstance(o, MappedSection)),
            unmapped=tuple(o for o in ordered if isinstance(o, UnmappedSection)),
            configuration_issues=issues,
            missing_manual_targets=tuple(missing_targets),
        )
