"""
Config -> Kernel Bridges.

Functions that turn loaded configuration into kernel state.  These live in
esg_config (the producer) because the kernel must NEVER import esg_config.

Usage:
    from esg_config import get_active_settings
    from esg_config.bridges import seed_rollover_rules

    config = get_active_settings()
    seed_rollover_rules(session, config.settings, actor_id="SYSTEM")
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from esg_config.schema import RolloverSettings
from esg_kernel.domain.clock import Clock
from esg_kernel.domain.dtos import RolloverRuleInfo
from esg_kernel.logging_config import get_logger
from esg_kernel.services.rollover_rule_service import RolloverRuleService

logger = get_logger("config.bridges")


def seed_rollover_rules(
    session: Session,
    settings: RolloverSettings,
    actor_id: str,
    clock: Clock | None = None,
) -> list[RolloverRuleInfo]:
    """Install the configured rule seeds into the rollover rule registry.

    Only data types the registry has never seen are installed, so seeding
    is idempotent and never overrides (or revives) a rule an administrator
    changed or deleted.  Flushes only.

    Returns:
        The rules created by this call.
    """
    service = RolloverRuleService(session, clock=clock)
    known = {rule.data_type for rule in service.list_rules(include_inactive=True)}

    created = []
    for seed in settings.rule_seeds:
        if seed.data_type in known:
            continue
        created.append(
            service.save_rule(
                data_type=seed.data_type,
                rule_type=seed.rule_type,
                actor_id=actor_id,
                description=seed.description,
            )
        )
        known.add(seed.data_type)

    logger.info(
        "rollover_rules_seeded",
        extra={"rules_created": len(created), "configured": len(settings.rule_seeds)},
    )
    return created
