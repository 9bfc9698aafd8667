import pytest
from samplehub.credits.pricing import (
    DEFAULT_PRICE_TABLE,
    PriceTable,
    SampleType,
    compute_sample_cost,
    compute_total_cost,
    cost_range,
    default_cost,
    premium_cost,
    stems_bundle_cost,
)

def test_table_prices_without_override():
    assert compute_sample_cost(SampleType.ONE_SHOT, False, None) == 2
    assert compute_sample_cost(SampleType.LOOP, False, None) == 3
    assert compute_sample_cost(SampleType.ONE_SHOT, True, None) == 8
    assert compute_sample_cost(SampleType.LOOP, True, None) == 10

def test_string_types_are_accepted():
    assert compute_sample_cost("Loop", True) == 10
    assert compute_sample_cost("One-shot", False) == 2

def test_manual_override_wins_regardless_of_tier():
    assert compute_sample_cost(SampleType.ONE_SHOT, True, 99) == 99
    assert compute_sample_cost(SampleType.LOOP, False, 1) == 1

@pytest.mark.parametrize("override", [0, -5, None, True, "7"])
def test_non_positive_or_non_integer_override_falls_back_to_table(override):
    assert compute_sample_cost(SampleType.ONE_SHOT, False, override) == 2

def test_unknown_type_priced_as_standard_one_shot():
    assert compute_sample_cost("Composition", True, None) == 2

def test_stems_are_additive():
    assert compute_total_cost(SampleType.LOOP, False, True, None) == 8
    assert compute_total_cost(SampleType.LOOP, False, False, None) == 3

def test_override_replaces_base_but_not_stems():
    assert compute_total_cost(SampleType.LOOP, True, True, 20) == 25
    assert compute_total_cost(SampleType.LOOP, True, False, 20) == 20

def test_supporting_queries():
    assert stems_bundle_cost() == 5
    assert default_cost(SampleType.LOOP) == 3
    assert premium_cost(SampleType.ONE_SHOT) == 8
    assert cost_range(False) == (2, 3)
    assert cost_range(True) == (8, 10)

def test_alternate_table_is_injected_not_global():
    table = PriceTable(
        standard={SampleType.ONE_SHOT: 1, SampleType.LOOP: 2},
        premium={SampleType.ONE_SHOT: 4, SampleType.LOOP: 6},
        stems_bundle_cost=3,
    )
    assert compute_total_cost(SampleType.LOOP, True, True, table=table) == 9
    assert cost_range(True, table) == (4, 6)
    # Default table untouched
    assert compute_total_cost(SampleType.LOOP, True, True) == 15
    assert DEFAULT_PRICE_TABLE.standard[SampleType.LOOP] == 3

def test_table_rejects_missing_or_non_positive_costs():
    with pytest.raises(ValueError):
        PriceTable(standard={SampleType.ONE_SHOT: 2}, premium={SampleType.ONE_SHOT: 8, SampleType.LOOP: 10})
    with pytest.raises(ValueError):
        PriceTable(
            standard={SampleType.ONE_SHOT: 0, SampleType.LOOP: 3},
            premium={SampleType.ONE_SHOT: 8, SampleType.LOOP: 10},
        )
    with pytest.raises(ValueError):
        PriceTable(
            standard={SampleType.ONE_SHOT: 2, SampleType.LOOP: 3},
            premium={SampleType.ONE_SHOT: 8, SampleType.LOOP: 10},
            stems_bundle_cost=-1,
        )

@pytest.mark.parametrize("stems", [True, False, 2.5, "5"])
def test_table_rejects_non_integer_stems_cost(stems):
    with pytest.raises(ValueError):
        PriceTable(
            standard={SampleType.ONE_SHOT: 2, SampleType.LOOP: 3},
            premium={SampleType.ONE_SHOT: 8, SampleType.LOOP: 10},
            stems_bundle_cost=stems,
        )

def test_table_is_read_only():
    with pytest.raises(TypeError):
        DEFAULT_PRICE_TABLE.standard[SampleType.LOOP] = 100
