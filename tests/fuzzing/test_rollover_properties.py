"""
Property-based tests for the pure rollover and gap-status rules.

Boundaries fuzzed here:
- Rollover options: every combination of flags and adjustment days
- Catalog mapping: arbitrary source/target code lists, with and without
  manual mappings
- Gap-status requests: every (current, target) pair with complete fields

Database-backed behavior is covered by tests/services.
"""

from uuid import uuid4

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from esg_engines.rollover import CatalogMapper, SourceSectionRef, TargetSectionRef
from esg_kernel.domain.gap_status import (
    VALID_GAP_TRANSITIONS,
    GapStatus,
    GapTransitionRequest,
    validate_request,
)
from esg_kernel.domain.rollover import ManualSectionMapping, RolloverOptions
from esg_kernel.domain.values import EstimateFields
from esg_kernel.exceptions import (
    InvalidGapStatusTransitionError,
    InvalidRolloverOptionsError,
)

CODES = st.sampled_from(["ENV-001", "ENV-002", "SOC-001", "SOC-002", "GOV-001"])
OPTIONAL_CODES = st.one_of(st.none(), CODES)


@st.composite
def rollover_options(draw):
    return RolloverOptions(
        copy_structure=draw(st.booleans()),
        copy_disclosures=draw(st.booleans()),
        copy_data_values=draw(st.booleans()),
        copy_attachments=draw(st.booleans()),
        carry_forward_gaps_and_assumptions=draw(st.booleans()),
        due_date_adjustment_days=draw(st.one_of(st.none(), st.integers(-400, 400))),
    )


def _chain_holds(options: RolloverOptions) -> bool:
    if options.copy_attachments and not options.copy_data_values:
        return False
    if options.copy_data_values and not options.copy_disclosures:
        return False
    if options.copy_disclosures and not options.copy_structure:
        return False
    return options.due_date_adjustment_days is None or options.due_date_adjustment_days >= 0


class TestOptionsProperties:
    @given(options=rollover_options())
    @settings(max_examples=300)
    def test_validate_accepts_exactly_the_consistent_chains(self, options):
        if _chain_holds(options):
            options.validate()
        else:
            with pytest.raises(InvalidRolloverOptionsError):
                options.validate()

    @given(options=rollover_options())
    def test_shift_is_never_negative(self, options):
        assert options.due_date_shift_days >= 0


@st.composite
def mapping_inputs(draw):
    sources = [
        SourceSectionRef(uuid4(), f"Source {i}", code, draw(st.integers(0, 5)))
        for i, code in enumerate(draw(st.lists(OPTIONAL_CODES, max_size=12)))
    ]
    targets = [
        TargetSectionRef(uuid4(), f"Target {i}", code)
        for i, code in enumerate(draw(st.lists(CODES, max_size=8)))
    ]
    manual = [
        ManualSectionMapping(source_code, target_code)
        for source_code, target_code in draw(
            st.lists(st.tuples(CODES, CODES), max_size=3)
        )
    ]
    return sources, targets, manual


class TestMappingProperties:
    @given(inputs=mapping_inputs())
    @settings(max_examples=300, suppress_health_check=[HealthCheck.too_slow])
    def test_every_source_is_accounted_for_once(self, inputs):
        sources, targets, manual = inputs
        result = CatalogMapper().map_sections(
            sources=sources, target_sections=targets, manual_mappings=manual
        )

        seen = [m.source.section_id for m in result.mapped] + [
            u.source.section_id for u in result.unmapped
        ]
        assert sorted(seen, key=str) == sorted((s.section_id for s in sources), key=str)

    @given(inputs=mapping_inputs())
    @settings(max_examples=300, suppress_health_check=[HealthCheck.too_slow])
    def test_no_target_is_mapped_twice(self, inputs):
        sources, targets, manual = inputs
        result = CatalogMapper().map_sections(
            sources=sources, target_sections=targets, manual_mappings=manual
        )

        target_ids = [m.target.section_id for m in result.mapped]
        assert len(target_ids) == len(set(target_ids))
        known = {t.section_id for t in targets}
        assert set(target_ids) <= known

    @given(inputs=mapping_inputs())
    def test_mapping_is_deterministic(self, inputs):
        sources, targets, manual = inputs
        mapper = CatalogMapper()
        first = mapper.map_sections(
            sources=sources, target_sections=targets, manual_mappings=manual
        )
        second = mapper.map_sections(
            sources=sources, target_sections=targets, manual_mappings=manual
        )
        assert first == second

    @given(inputs=mapping_inputs())
    def test_uncoded_sources_are_never_mapped(self, inputs):
        sources, targets, _ = inputs
        result = CatalogMapper().map_sections(sources=sources, target_sections=targets)
        assert all(m.source.catalog_code is not None for m in result.mapped)


STATUSES = st.one_of(st.none(), st.sampled_from(list(GapStatus)))

COMPLETE_ESTIMATE = EstimateFields(
    estimate_type="proxy",
    estimate_method="industry average",
    confidence_level="low",
)


class TestGapStatusProperties:
    @given(current=STATUSES, target=st.sampled_from(list(GapStatus)))
    def test_complete_requests_pass_iff_pair_is_in_table(self, current, target):
        request = GapTransitionRequest(
            data_point_id=uuid4(),
            expected_from_status=current,
            target_status=target,
            transitioned_by="U-ALICE",
            change_note="note",
            estimate=COMPLETE_ESTIMATE,
            value="12.5",
        )
        if target in VALID_GAP_TRANSITIONS.get(current, frozenset()):
            assert validate_request(request, current).to_state == target.value
        else:
            with pytest.raises(InvalidGapStatusTransitionError):
                validate_request(request, current)
