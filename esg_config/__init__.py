"""
esg_config -- single public entrypoint for rollover configuration.

Responsibility:
    Provides the ONLY way to obtain rollover configuration at runtime
    through ``get_active_settings()``.  No other component reads
    configuration files directly.

Architecture position:
    Configuration -- YAML-driven settings.  This package sits above
    ``esg_kernel`` and beside ``esg_services``.  The kernel MUST NEVER
    import from ``esg_config``; ``esg_config.bridges`` translates settings
    into kernel state.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_settings()``.
    - A set is only returned after it passes validation.
    - Deterministic identity: the same YAML always produces the same
      checksum.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set found.
    - ``ValueError`` -- validation failures.

Audit relevance:
    Every successful ``get_active_settings()`` call emits an
    ``ESG_CONFIG_TRACE`` log entry with the config_id, version and
    checksum, tying each rollover to the configuration that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from esg_config.loader import load_configuration_set
from esg_config.schema import EsgConfigurationSet, RolloverSettings, RuleSeed
from esg_config.validator import validate_configuration

_logger = logging.getLogger("esg_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_settings(
    config_dir: Path | None = None,
    organization_id: str | None = None,
) -> EsgConfigurationSet:
    """The ONLY public configuration entrypoint.

    Scans every subdirectory of ``config_dir`` holding a ``root.yaml``.
    Sets scoped to ``organization_id`` win over wildcard ("*") sets; among
    the remaining candidates the highest version wins.

    Args:
        config_dir: Override path to the configuration sets directory.
            Defaults to esg_config/sets/.
        organization_id: Organization to select a set for.  None accepts
            every set.

    Raises:
        FileNotFoundError: If no configuration set is found.
        ValueError: If the selected set fails validation.
    """
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    config = _find_matching_config(sets_dir, organization_id)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("config_validation_warning", extra={"warning": warning})

    _logger.info(
        "ESG_CONFIG_TRACE",
        extra={
            "trace_type": "ESG_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "organization_id": config.organization_id,
            "rule_seed_count": len(config.settings.rule_seeds),
        },
    )
    return config


def _find_matching_config(
    sets_dir: Path,
    organization_id: str | None,
) -> EsgConfigurationSet:
    if not sets_dir.is_dir():
        raise FileNotFoundError(f"Configuration sets directory not found: {sets_dir}")

    candidates: list[EsgConfigurationSet] = []
    for subdir in sorted(sets_dir.iterdir()):
        if subdir.is_dir() and (subdir / "root.yaml").exists():
            candidates.append(load_configuration_set(subdir))

    if organization_id is not None:
        exact = [c for c in candidates if c.organization_id == organization_id]
        candidates = exact or [c for c in candidates if c.organization_id == "*"]

    if not candidates:
        raise FileNotFoundError(
            f"No configuration set found for organization_id={organization_id!r} "
            f"in {sets_dir}"
        )

    return max(candidates, key=lambda c: c.version)


__all__ = [
    "EsgConfigurationSet",
    "RolloverSettings",
    "RuleSeed",
    "get_active_settings",
]
