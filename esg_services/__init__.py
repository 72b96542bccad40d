"""
esg_services -- Package init and public API.

Responsibility:
    Stateful orchestration that composes the pure rollover engines
    (esg_engines/) with database sessions and kernel services.  This is
    the layer that owns the rollover unit of work.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction:
        esg_services/ -> esg_engines/  (allowed)
        esg_services/ -> esg_kernel/   (allowed)
        esg_services/ -> esg_config/   (allowed, settings types only)
        esg_engines/  -> esg_services/ (FORBIDDEN)
        esg_kernel/   -> esg_services/ (FORBIDDEN)

Invariants enforced:
    - Layer isolation: esg_kernel and esg_engines never import from this
      package.

Audit relevance:
    - This package is the canonical import surface for external consumers.
      Changes to __all__ must be reviewed for backwards-compatibility.
"""

from esg_services.rollover import (
    InactiveOwnerWarning,
    RolloverCounts,
    RolloverOrchestrator,
    RolloverReconciliation,
    RolloverRequest,
    RolloverResult,
    RolloverStatus,
)

__all__ = [
    "InactiveOwnerWarning",
    "RolloverCounts",
    "RolloverOrchestrator",
    "RolloverReconciliation",
    "RolloverRequest",
    "RolloverResult",
    "RolloverStatus",
]
