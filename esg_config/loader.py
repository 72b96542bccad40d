"""
Configuration Loader (``esg_config.loader``).

Responsibility
--------------
Loads a configuration set's ``root.yaml`` and parses it into the frozen
``esg_config.schema`` dataclasses.  The single public entry point for
runtime config is ``esg_config.get_active_settings()``.

Invariants enforced
-------------------
* Required keys (``config_id``, ``version``) raise ``KeyError`` when
  absent; optional settings fall back to the schema defaults.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown rule type  -> ``ValueError`` from ``RolloverRuleType``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from esg_config.schema import (
    DEFAULT_DRAFT_MARKER,
    KNOWN_OWNER_ENTITY_TYPES,
    EsgConfigurationSet,
    RolloverSettings,
    RuleSeed,
)
from esg_kernel.domain.rollover import RolloverRuleType


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_rule_seed(data: dict[str, Any]) -> RuleSeed:
    return RuleSeed(
        data_type=data["data_type"],
        rule_type=RolloverRuleType(data["rule_type"]),
        description=data.get("description"),
    )


def parse_settings(data: dict[str, Any]) -> RolloverSettings:
    """Parse the ``settings`` and ``rollover_rules`` blocks."""
    settings = data.get("settings") or {}
    default_timeout = settings.get("default_timeout_seconds")
    return RolloverSettings(
        draft_marker=settings.get("draft_marker", DEFAULT_DRAFT_MARKER),
        lock_timeout_seconds=float(settings.get("lock_timeout_seconds", 30.0)),
        default_timeout_seconds=(
            float(default_timeout) if default_timeout is not None else None
        ),
        lineage_max_depth=int(settings.get("lineage_max_depth", 10)),
        inactive_owner_entity_types=tuple(
            settings.get("inactive_owner_entity_types", KNOWN_OWNER_ENTITY_TYPES)
        ),
        rule_seeds=tuple(
            parse_rule_seed(r) for r in data.get("rollover_rules") or ()
        ),
    )


def load_configuration_set(set_dir: Path) -> EsgConfigurationSet:
    """
    Load the configuration set in ``set_dir``.

    Raises:
        FileNotFoundError: if ``set_dir/root.yaml`` does not exist.
        KeyError: if ``config_id`` or ``version`` is missing.
    """
    data = load_yaml_file(set_dir / "root.yaml")
    return EsgConfigurationSet(
        config_id=data["config_id"],
        version=int(data["version"]),
        checksum=compute_checksum(data),
        organization_id=str(data.get("organization_id", "*")),
        settings=parse_settings(data),
    )
