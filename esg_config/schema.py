"""
EsgConfigurationSet schema.

Defines the human-authored, reviewable rollover configuration.  YAML is
parsed into these types by the loader and checked by the validator before
``get_active_settings()`` hands the set to callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from esg_kernel.domain.rollover import RolloverRuleType

DEFAULT_DRAFT_MARKER = "[Carried forward - Requires Review]"

# Entity types the ownership validator knows how to report
KNOWN_OWNER_ENTITY_TYPES = (
    "Section",
    "DataPoint",
    "RemediationPlan",
    "RemediationAction",
)


@dataclass(frozen=True)
class RuleSeed:
    """A rollover rule installed into the registry by ``seed_rollover_rules``."""

    data_type: str
    rule_type: RolloverRuleType
    description: str | None = None


@dataclass(frozen=True)
class RolloverSettings:
    """Tunable rollover behavior.

    Attributes:
        draft_marker: Prefix put on content carried by the CopyAsDraft rule.
        lock_timeout_seconds: How long a rollover waits for another rollover
            of the same source period to finish.
        default_timeout_seconds: Deadline for a rollover when the caller
            passes none.  None disables the deadline.
        lineage_max_depth: Ancestors returned by the lineage selector.
        inactive_owner_entity_types: Entity types whose owners are checked.
        rule_seeds: Rules installed into an empty registry.
    """

    draft_marker: str = DEFAULT_DRAFT_MARKER
    lock_timeout_seconds: float = 30.0
    default_timeout_seconds: float | None = None
    lineage_max_depth: int = 10
    inactive_owner_entity_types: tuple[str, ...] = KNOWN_OWNER_ENTITY_TYPES
    rule_seeds: tuple[RuleSeed, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class EsgConfigurationSet:
    """A versioned configuration set loaded from one ``root.yaml``.

    Attributes:
        config_id: Unique identifier (e.g., "ESG-DEFAULT").
        version: Configuration version number.
        checksum: SHA-256 of the canonical serialization of the source YAML.
        organization_id: Organization the set applies to, "*" for all.
        settings: The rollover settings.
    """

    config_id: str
    version: int
    checksum: str
    organization_id: str
    settings: RolloverSettings
