"""
Catalog mapper: manual-first, exact-code matching with reasons for every
section left behind.
"""

from uuid import uuid4

import pytest

from esg_engines.rollover import (
    REASON_CODE_NOT_IN_TARGET,
    REASON_MANUAL_TARGET_NOT_FOUND,
    REASON_NO_STABLE_IDENTIFIER,
    REASON_TARGET_ALREADY_MAPPED,
    CatalogMapper,
    SourceSectionRef,
    TargetSectionRef,
)
from esg_kernel.domain.rollover import ManualSectionMapping, MappingType


def source(code, title=None, data_points=0):
    return SourceSectionRef(uuid4(), title or f"Source {code}", code, data_points)


def target(code, title=None):
    return TargetSectionRef(uuid4(), title or f"Target {code}", code)


@pytest.fixture
def mapper():
    return CatalogMapper()


class TestAutomaticMapping:
    def test_canonical_scenario(self, mapper):
        sources = [source("ENV-001"), source("SOC-002"), source(None, "Ad-hoc", 4)]
        targets = [target("ENV-001"), target("SOC-002")]

        result = mapper.map_sections(sources=sources, target_sections=targets)

        assert [m.source.catalog_code for m in result.mapped] == ["ENV-001", "SOC-002"]
        assert all(m.mapping_type is MappingType.AUTOMATIC for m in result.mapped)
        assert len(result.unmapped) == 1
        unmapped = result.unmapped[0]
        assert unmapped.source.title == "Ad-hoc"
        assert unmapped.reason == REASON_NO_STABLE_IDENTIFIER
        assert unmapped.suggested_actions == (
            "create manual mapping or add catalog code before rollover",
        )
        assert result.total_sources == 3

    def test_code_absent_from_target(self, mapper):
        result = mapper.map_sections(
            sources=[source("GOV-009")], target_sections=[target("ENV-001")]
        )
        assert result.mapped == ()
        assert result.unmapped[0].reason == REASON_CODE_NOT_IN_TARGET
        assert "add catalog item 'GOV-009' to the active catalog" in (
            result.unmapped[0].suggested_actions
        )

    def test_target_for_returns_matched_target(self, mapper):
        env = source("ENV-001")
        env_target = target("ENV-001")
        result = mapper.map_sections(sources=[env], target_sections=[env_target])
        assert result.target_for(env.section_id) == env_target
        assert result.target_for(uuid4()) is None

    def test_duplicate_source_codes_claim_target_once(self, mapper):
        first, second = source("ENV-001", "First"), source("ENV-001", "Second")
        result = mapper.map_sections(
            sources=[first, second], target_sections=[target("ENV-001")]
        )
        assert [m.source.title for m in result.mapped] == ["First"]
        assert result.unmapped[0].source.title == "Second"
        assert result.unmapped[0].reason == REASON_TARGET_ALREADY_MAPPED

    def test_duplicate_target_codes_reported_and_first_used(self, mapper):
        first_target, second_target = target("ENV-001", "A"), target("ENV-001", "B")
        result = mapper.map_sections(
            sources=[source("ENV-001")],
            target_sections=[first_target, second_target],
        )
        assert result.mapped[0].target == first_target
        assert result.configuration_issues == (
            "catalog code 'ENV-001' is used by 2 target sections",
        )

    def test_mapper_never_invents_targets(self, mapper):
        result = mapper.map_sections(sources=[source("ENV-001")], target_sections=[])
        assert result.mapped == ()
        assert len(result.unmapped) == 1


class TestManualMapping:
    def test_manual_mapping_wins_over_code_match(self, mapper):
        old = source("ENV-OLD")
        targets = [target("ENV-OLD"), target("ENV-NEW")]
        result = mapper.map_sections(
            sources=[old],
            target_sections=targets,
            manual_mappings=[ManualSectionMapping("ENV-OLD", "ENV-NEW")],
        )
        assert result.mapped[0].target == targets[1]
        assert result.mapped[0].mapping_type is MappingType.MANUAL

    def test_manual_claim_happens_before_automatic(self, mapper):
        # The later source is manually mapped onto the code the earlier
        # source would match automatically.
        auto = source("ENV-001", "Automatic")
        manual = source("ENV-LEGACY", "Manual")
        env_target = target("ENV-001")
        result = mapper.map_sections(
            sources=[auto, manual],
            target_sections=[env_target],
            manual_mappings=[ManualSectionMapping("ENV-LEGACY", "ENV-001")],
        )
        assert [m.source.title for m in result.mapped] == ["Manual"]
        assert result.unmapped[0].source.title == "Automatic"
        assert result.unmapped[0].reason == REASON_TARGET_ALREADY_MAPPED

    def test_missing_manual_target_reported(self, mapper):
        mapping = ManualSectionMapping("ENV-OLD", "ENV-GONE")
        result = mapper.map_sections(
            sources=[source("ENV-OLD")],
            target_sections=[target("ENV-001")],
            manual_mappings=[mapping],
        )
        assert result.unmapped[0].reason == REASON_MANUAL_TARGET_NOT_FOUND
        assert result.missing_manual_targets == (mapping,)

    def test_results_follow_source_order(self, mapper):
        sources = [source("C"), source("A"), source("B")]
        targets = [target("A"), target("B"), target("C")]
        result = mapper.map_sections(
            sources=sources,
            target_sections=targets,
            manual_mappings=[ManualSectionMapping("B", "B")],
        )
        assert [m.source.catalog_code for m in result.mapped] == ["C", "A", "B"]


def test_mapper_emits_engine_trace(mapper, captured_logs):
    mapper.map_sections(sources=[source("ENV-001")], target_sections=[target("ENV-001")])
    traces = [r for r in captured_logs() if r["message"] == "ESG_ENGINE_TRACE"]
    assert traces and traces[0]["engine_name"] == "catalog_mapper"
    assert len(traces[0]["input_fingerprint"]) == 16
