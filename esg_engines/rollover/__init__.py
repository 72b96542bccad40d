"""Pure rollover engines: rule resolution and cross-period section mapping."""

from esg_engines.rollover.catalog_mapper import CatalogMapper
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
from esg_engines.rollover.rule_resolver import DEFAULT_RULE, RuleResolver

__all__ = [
    "CatalogMapper",
    "CatalogMappingResult",
    "DEFAULT_RULE",
    "MappedSection",
    "REASON_CODE_NOT_IN_TARGET",
    "REASON_MANUAL_TARGET_NOT_FOUND",
    "REASON_NO_STABLE_IDENTIFIER",
    "REASON_TARGET_ALREADY_MAPPED",
    "RuleResolver",
    "SourceSectionRef",
    "TargetSectionRef",
    "UnmappedSection",
]
