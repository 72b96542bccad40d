"""
esg_services.rollover.ownership_validator -- Inactive owner detection.

Responsibility:
    Check the owner of every entity a rollover carries forward against the
    user registry and collect a warning for each inactive one.

Architecture position:
    Services -- consulted by the content copier once per carried entity.

Invariants enforced:
    - Never blocks: an inactive owner is kept on the carried entity and
      reported, never cleared or reassigned.
    - Empty owners are not checked.
    - Entity types outside the configured set are not checked.
    - Warnings are returned in encounter order.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from esg_kernel.domain.collaborators import UserRegistry
from esg_kernel.logging_config import get_logger
from esg_services.rollover._rollover_types import InactiveOwnerWarning

logger = get_logger("services.rollover.ownership")

SECTION = "Section"
DATA_POINT = "DataPoint"
REMEDIATION_PLAN = "RemediationPlan"
REMEDIATION_ACTION = "RemediationAction"

ALL_ENTITY_TYPES = (SECTION, DATA_POINT, REMEDIATION_PLAN, REMEDIATION_ACTION)


class OwnershipValidator:
    """Collects InactiveOwnerWarning values for one rollover."""

    def __init__(
        self,
        user_registry: UserRegistry,
        entity_types: Iterable[str] = ALL_ENTITY_TYPES,
    ):
        self._users = user_registry
        self._entity_types = frozenset(entity_types)
        self._warnings: list[InactiveOwnerWarning] = []

    def check(
        self,
        entity_type: str,
        entity_id: UUID,
        entity_title: str,
        owner_id: str | None,
    ) -> InactiveOwnerWarning | None:
        """Record and return a warning when ``owner_id`` is inactive."""
        if not owner_id or entity_type not in self._entity_types:
            return None
        if self._users.is_active(owner_id):
            return None

        warning = InactiveOwnerWarning(
            entity_type=entity_type,
            entity_id=entity_id,
            entity_title=entity_title,
            owner_id=owner_id,
            owner_name=self._users.get_name(owner_id),
        )
        self._warnings.append(warning)

        logger.warning(
            "inactive_owner_detected",
            extra={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "owner_id": owner_id,
            },
        )
        return warning

    @property
    def warnings(self) -> tuple[InactiveOwnerWarning, ...]:
        return tuple(self._warnings)
