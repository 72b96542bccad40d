"""
RolloverRuleService -- versioned registry of per-data-type rollover rules.

Responsibility:
    Owns the one active rollover rule per data type (Copy, Reset or
    CopyAsDraft).  Every save bumps the version and appends a history row;
    deletes deactivate the rule instead of removing it.

Architecture position:
    Kernel > Services -- imperative shell.
    ``active_rules()`` is queried by the rollover orchestrator at call time
    and injected into the pure RuleResolver as a plain mapping.

Invariants enforced:
    - At most one rule row per data type; ``version`` starts at 1 and
      increases by exactly one per change.
    - Every change appends exactly one RolloverRuleHistory row and one
      audit event in the same flush.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - InvalidRolloverRuleError: blank data type.
    - RolloverRuleNotFoundError: get/delete of an unknown or inactive rule.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from esg_kernel.domain.clock import Clock, SystemClock
from esg_kernel.domain.dtos import RolloverRuleHistoryInfo, RolloverRuleInfo
from esg_kernel.domain.rollover import RolloverRuleType
from esg_kernel.exceptions import InvalidRolloverRuleError, RolloverRuleNotFoundError
from esg_kernel.logging_config import get_logger
from esg_kernel.models.rollover_rule import (
    DataTypeRolloverRule,
    RolloverRuleHistory,
    RuleChangeType,
)
from esg_kernel.services.auditor_service import AuditorService
from esg_kernel.services.base import BaseService

logger = get_logger("services.rollover_rule")


class RolloverRuleService(BaseService[DataTypeRolloverRule]):
    """
    Service for the rollover rule registry.

    Non-goals:
        - Does NOT resolve per-call overrides (that is RuleResolver).
        - Does NOT call ``session.commit()``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auditor: AuditorService | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._auditor = auditor or AuditorService(session, self._clock)

    def save_rule(
        self,
        data_type: str,
        rule_type: RolloverRuleType,
        actor_id: str,
        description: str | None = None,
    ) -> RolloverRuleInfo:
        """
        Create or update the rule for a data type.

        A new data type starts at version 1.  Saving an existing or
        previously deleted data type bumps its version and reactivates it.
        """
        data_type = (data_type or "").strip()
        if not data_type:
            raise InvalidRolloverRuleError(data_type, "data type must not be empty")
        rule_type = RolloverRuleType(rule_type)

        rule = self._get_for_update(data_type)
        if rule is None:
            rule = DataTypeRolloverRule(
                data_type=data_type,
                rule_type=rule_type,
                description=description,
                version=1,
                is_active=True,
                created_by=actor_id,
            )
            self.session.add(rule)
            change_type = RuleChangeType.CREATED
        else:
            rule.rule_type = rule_type
            rule.description = description
            rule.version += 1
            rule.is_active = True
            rule.updated_by = actor_id
            change_type = RuleChangeType.UPDATED

        self.session.flush()
        self._append_history(rule, change_type, actor_id)

        self._auditor.record_rollover_rule_saved(
            rule_id=rule.id,
            data_type=data_type,
            rule_type=rule_type.value,
            version=rule.version,
            actor_id=actor_id,
        )

        logger.info(
            "rollover_rule_saved",
            extra={
                "data_type": data_type,
                "rule_type": rule_type.value,
                "version": rule.version,
                "change_type": change_type.value,
            },
        )

        return RolloverRuleInfo.from_model(rule)

    def delete_rule(self, data_type: str, actor_id: str) -> RolloverRuleInfo:
        """
        Deactivate the rule for a data type.

        The data type falls back to the default Copy rule afterwards.

        Raises:
            RolloverRuleNotFoundError: If no active rule exists.
        """
        rule = self._get_for_update(data_type)
        if rule is None or not rule.is_active:
            raise RolloverRuleNotFoundError(data_type)

        rule.is_active = False
        rule.version += 1
        rule.updated_by = actor_id
        self.session.flush()
        self._append_history(rule, RuleChangeType.DELETED, actor_id)

        self._auditor.record_rollover_rule_deleted(
            rule_id=rule.id,
            data_type=data_type,
            version=rule.version,
            actor_id=actor_id,
        )

        logger.info(
            "rollover_rule_deleted",
            extra={"data_type": data_type, "version": rule.version},
        )

        return RolloverRuleInfo.from_model(rule)

    def get_rule(self, data_type: str) -> RolloverRuleInfo:
        """
        Raises:
            RolloverRuleNotFoundError: If no active rule exists.
        """
        rule = self._get(data_type)
        if rule is None or not rule.is_active:
            raise RolloverRuleNotFoundError(data_type)
        return RolloverRuleInfo.from_model(rule)

    def list_rules(self, include_inactive: bool = False) -> list[RolloverRuleInfo]:
        stmt = select(DataTypeRolloverRule).order_by(DataTypeRolloverRule.data_type)
        if not include_inactive:
            stmt = stmt.where(DataTypeRolloverRule.is_active.is_(True))
        return [
            RolloverRuleInfo.from_model(r)
            for r in self.session.execute(stmt).scalars().all()
        ]

    def active_rules(self) -> dict[str, RolloverRuleType]:
        """The active rule per data type, as a plain mapping for the resolver."""
        return {rule.data_type: rule.rule_type for rule in self.list_rules()}

    def get_history(self, data_type: str) -> list[RolloverRuleHistoryInfo]:
        """Every change to the data type's rule, oldest first."""
        rows = self.session.execute(
            select(RolloverRuleHistory)
            .where(RolloverRuleHistory.data_type == data_type)
            .order_by(RolloverRuleHistory.version)
        ).scalars().all()
        return [RolloverRuleHistoryInfo.from_model(r) for r in rows]

    def _append_history(
        self,
        rule: DataTypeRolloverRule,
        change_type: RuleChangeType,
        actor_id: str,
    ) -> None:
        self.session.add(
            RolloverRuleHistory(
                rule_id=rule.id,
                data_type=rule.data_type,
                rule_type=rule.rule_type,
                description=rule.description,
                version=rule.version,
                change_type=change_type,
                changed_by=actor_id,
                changed_at=self._clock.now(),
            )
        )
        self.session.flush()

    def _get(self, data_type: str) -> DataTypeRolloverRule | None:
        return self.session.execute(
            select(DataTypeRolloverRule)
            .where(DataTypeRolloverRule.data_type == data_type)
        ).scalar_one_or_none()

    def _get_for_update(self, data_type: str) -> DataTypeRolloverRule | None:
        return self.session.execute(
            select(DataTypeRolloverRule)
            .where(DataTypeRolloverRule.data_type == data_type)
            .with_for_update()
        ).scalar_one_or_none()
