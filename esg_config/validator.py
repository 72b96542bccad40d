"""
Configuration Validator (``esg_config.validator``).

Responsibility
--------------
Checks an ``EsgConfigurationSet`` before it is handed to callers.

Invariants enforced
-------------------
* The draft marker is non-empty.
* Timeouts are positive; lineage depth is at least one.
* Owner entity types are ones the ownership validator knows.
* Each data type is seeded at most once.

Failure modes
-------------
* Validation errors (``ConfigValidationResult.errors``) -> the set MUST
  NOT be used.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from esg_config.schema import KNOWN_OWNER_ENTITY_TYPES, EsgConfigurationSet


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: EsgConfigurationSet) -> ConfigValidationResult:
    """Validate a configuration set."""
    result = ConfigValidationResult()
    settings = config.settings

    if not settings.draft_marker or not settings.draft_marker.strip():
        result.add_error("settings.draft_marker must not be empty")

    if settings.lock_timeout_seconds <= 0:
        result.add_error("settings.lock_timeout_seconds must be positive")

    if settings.default_timeout_seconds is not None and settings.default_timeout_seconds <= 0:
        result.add_error("settings.default_timeout_seconds must be positive when set")

    if settings.lineage_max_depth < 1:
        result.add_error("settings.lineage_max_depth must be at least 1")

    for entity_type in settings.inactive_owner_entity_types:
        if entity_type not in KNOWN_OWNER_ENTITY_TYPES:
            result.add_error(f"Unknown owner entity type: {entity_type!r}")

    if not settings.inactive_owner_entity_types:
        result.add_warning("No entity types are checked for inactive owners")

    seen: set[str] = set()
    for seed in settings.rule_seeds:
        if not seed.data_type.strip():
            result.add_error("Rollover rule seed with empty data_type")
        elif seed.data_type in seen:
            result.add_error(f"Duplicate rollover rule seed for {seed.data_type!r}")
        seen.add(seed.data_type)

    return result
