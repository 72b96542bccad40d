"""
RolloverRuleService: versioned global rules with an append-only history.
"""

import pytest

from esg_kernel.domain.rollover import RolloverRuleType
from esg_kernel.exceptions import InvalidRolloverRuleError, RolloverRuleNotFoundError
from esg_kernel.services.rollover_rule_service import RolloverRuleService

ACTOR = "U-ADMIN"


@pytest.fixture
def rules(session, deterministic_clock):
    return RolloverRuleService(session, deterministic_clock)


class TestSaveRule:
    def test_new_rule_starts_at_version_one(self, rules):
        rule = rules.save_rule("kpi", RolloverRuleType.RESET, ACTOR, "Figures restart")
        assert rule.version == 1
        assert rule.is_active
        assert rule.rule_type is RolloverRuleType.RESET

    def test_update_bumps_version(self, rules):
        rules.save_rule("kpi", RolloverRuleType.RESET, ACTOR)
        rule = rules.save_rule("kpi", RolloverRuleType.COPY_AS_DRAFT, ACTOR)
        assert rule.version == 2
        assert rules.get_rule("kpi").rule_type is RolloverRuleType.COPY_AS_DRAFT

    def test_data_type_is_trimmed(self, rules):
        rules.save_rule("  narrative ", "copy-as-draft", ACTOR)
        assert rules.get_rule("narrative").rule_type is RolloverRuleType.COPY_AS_DRAFT

    def test_blank_data_type_rejected(self, rules):
        with pytest.raises(InvalidRolloverRuleError):
            rules.save_rule("   ", RolloverRuleType.COPY, ACTOR)

    def test_unknown_rule_type_rejected(self, rules):
        with pytest.raises(ValueError):
            rules.save_rule("kpi", "archive", ACTOR)


class TestDeleteRule:
    def test_delete_deactivates_and_falls_back(self, rules):
        rules.save_rule("kpi", RolloverRuleType.RESET, ACTOR)
        deleted = rules.delete_rule("kpi", ACTOR)
        assert not deleted.is_active
        assert deleted.version == 2
        assert rules.active_rules() == {}
        with pytest.raises(RolloverRuleNotFoundError):
            rules.get_rule("kpi")

    def test_delete_unknown_rule(self, rules):
        with pytest.raises(RolloverRuleNotFoundError):
            rules.delete_rule("kpi", ACTOR)

    def test_saving_deleted_rule_reactivates_it(self, rules):
        rules.save_rule("kpi", RolloverRuleType.RESET, ACTOR)
        rules.delete_rule("kpi", ACTOR)
        restored = rules.save_rule("kpi", RolloverRuleType.COPY, ACTOR)
        assert restored.is_active
        assert restored.version == 3

    def test_inactive_rules_listed_on_request(self, rules):
        rules.save_rule("kpi", RolloverRuleType.RESET, ACTOR)
        rules.save_rule("narrative", RolloverRuleType.COPY_AS_DRAFT, ACTOR)
        rules.delete_rule("kpi", ACTOR)
        assert [r.data_type for r in rules.list_rules()] == ["narrative"]
        assert [r.data_type for r in rules.list_rules(include_inactive=True)] == [
            "kpi",
            "narrative",
        ]


class TestHistory:
    def test_every_change_is_recorded(self, rules, deterministic_clock):
        rules.save_rule("kpi", RolloverRuleType.RESET, ACTOR)
        deterministic_clock.advance(60)
        rules.save_rule("kpi", RolloverRuleType.COPY, "U-ALICE")
        deterministic_clock.advance(60)
        rules.delete_rule("kpi", "U-BOB")

        history = rules.get_history("kpi")

        assert [h.version for h in history] == [1, 2, 3]
        assert [h.change_type for h in history] == ["created", "updated", "deleted"]
        assert [h.changed_by for h in history] == [ACTOR, "U-ALICE", "U-BOB"]
        assert history[0].rule_type is RolloverRuleType.RESET
        assert history[0].changed_at < history[2].changed_at

    def test_active_rules_mapping(self, rules):
        rules.save_rule("kpi", RolloverRuleType.RESET, ACTOR)
        rules.save_rule("narrative", RolloverRuleType.COPY_AS_DRAFT, ACTOR)
        assert rules.active_rules() == {
            "kpi": RolloverRuleType.RESET,
            "narrative": RolloverRuleType.COPY_AS_DRAFT,
        }
