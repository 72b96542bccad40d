"""
Rule resolver -- which rollover rule applies to a data type.

Responsibility:
    Resolves Copy / Reset / CopyAsDraft for a data type from, in order:
    the per-call overrides, the active global rule, the COPY default.

Architecture position:
    Engines -- pure, zero I/O.  The global rules are queried from
    ``RolloverRuleService.active_rules()`` by the orchestrator and passed in
    as a plain mapping.

Invariants enforced:
    - Overrides apply to one rollover call only and are never persisted.
    - When overrides repeat a data type, the last one wins.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from esg_kernel.domain.rollover import RolloverRuleOverride, RolloverRuleType

DEFAULT_RULE = RolloverRuleType.COPY


class RuleResolver:
    """Resolve the rollover rule per data type."""

    def __init__(
        self,
        rules: Mapping[str, RolloverRuleType],
        overrides: Sequence[RolloverRuleOverride] = (),
    ):
        self._rules = dict(rules)
        self._overrides = {o.data_type: RolloverRuleType(o.rule_type) for o in overrides}

    def resolve(self, data_type: str) -> RolloverRuleType:
        if data_type in self._overrides:
            return self._overrides[data_type]
        return self._rules.get(data_type, DEFAULT_RULE)

    def is_overridden(self, data_type: str) -> bool:
        return data_type in self._overrides
