"""
Module: esg_engines
Responsibility:
    Package entrypoint for the pure rollover engines.  This is the
    canonical import surface for esg_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import esg_kernel/domain (and sibling engine modules).
    MUST NOT import esg_services or touch a database session.

Invariants enforced:
    - Purity: engines NEVER read the clock.  Timestamps and dates are
      passed in by the calling services.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via the ``@traced_engine`` decorator
    (see ``esg_engines.tracer``), emitting ESG_ENGINE_TRACE log records.

Usage:
    from esg_engines.rollover import CatalogMapper, RuleResolver
"""

from esg_engines.rollover import (
    CatalogMapper,
    CatalogMappingResult,
    MappedSection,
    RuleResolver,
    SourceSectionRef,
    TargetSectionRef,
    UnmappedSection,
)
from esg_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "CatalogMapper",
    "CatalogMappingResult",
    "MappedSection",
    "RuleResolver",
    "SourceSectionRef",
    "TargetSectionRef",
    "UnmappedSection",
    "compute_input_fingerprint",
    "traced_engine",
]
