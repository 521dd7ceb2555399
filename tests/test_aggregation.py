"""Tests for the monthly and annual roll-ups of displacement results."""

from __future__ import annotations

import importlib

import pytest

np = pytest.importorskip("numpy")
pd = pytest.importorskip("pandas")

from eere_engine.aggregation import (
    AnnualChange,
    aggregate_field,
    emission_rates,
    percent_change,
    state_changes,
)
from eere_engine.displacement import UnitDisplacementCalculator
from eere_engine.eere import calculate_eere_profile
from eere_engine.inputs import EereInputs

fixtures = importlib.import_module("tests.fixtures.regional")


@pytest.fixture(scope="module")
def aggregates():
    dataset = fixtures.multi_state_dataset()
    profile = calculate_eere_profile(
        EereInputs(constant_mwh=10.0),
        dataset.hourly_loads,
        line_loss=dataset.line_loss,
        max_ee_percent=dataset.max_ee_percent,
    )
    calculator = UnitDisplacementCalculator(dataset, profile)
    return {
        item.field: aggregate_field(item, dataset.units) for item in calculator.iter_fields()
    }


def test_annual_generation_totals(aggregates):
    annual = aggregates["generation"].annual
    assert annual.original == pytest.approx(600.0)
    assert annual.post == pytest.approx(560.0)
    assert annual.impact == pytest.approx(-40.0)


def test_annual_pollutant_totals(aggregates):
    annual = aggregates["so2"].annual
    assert annual.original == pytest.approx(316.0)
    assert annual.impact == pytest.approx(-22.5)


def test_region_months_are_complete(aggregates):
    region = aggregates["generation"].region
    assert region.index.tolist() == list(range(1, 13))
    assert region.loc[1, "impact"] == pytest.approx(-20.0)
    assert region.loc[2, "impact"] == pytest.approx(-10.0)
    assert region.loc[7, "impact"] == pytest.approx(-10.0)
    assert region.loc[3, "original"] == 0.0


def test_state_and_county_breakdowns(aggregates):
    state = aggregates["generation"].state
    assert sorted(state.index.get_level_values("state").unique()) == ["CT", "MA"]
    assert state.loc[("MA", 1), "impact"] == pytest.approx(-16.0)
    assert state.loc[("CT", 7), "impact"] == pytest.approx(-6.0)

    county = aggregates["generation"].county
    assert county.loc[("MA", "Suffolk", 1), "original"] == pytest.approx(100.0)
    assert county.loc[("MA", "Suffolk", 1), "impact"] == pytest.approx(-10.0)


def test_county_totals_resum_to_state_totals(aggregates):
    for aggregate in aggregates.values():
        resummed = aggregate.county.groupby(level=["state", "month"]).sum()
        for column in ("original", "post", "impact"):
            assert resummed[column].to_numpy() == pytest.approx(
                aggregate.state[column].to_numpy(), rel=1e-6
            )


def test_percentages_use_zero_guard(aggregates):
    percentages = aggregates["generation"].percentages("region")
    assert percentages.loc[1] == pytest.approx(-10.0)
    assert percentages.loc[3] == 0.0


def test_post_equals_original_scaled_by_percentage(aggregates):
    state = aggregates["so2"].state
    nonzero = state[state["original"] != 0.0]
    pct = aggregates["so2"].percentages("state").loc[nonzero.index]
    assert (nonzero["original"] * (1.0 + pct / 100.0)).to_numpy() == pytest.approx(
        nonzero["post"].to_numpy()
    )


def test_nested_mapping_structure(aggregates):
    tree = aggregates["generation"].to_dict()

    assert set(tree) == {"emissions", "percentages"}
    emissions = tree["emissions"]
    assert set(emissions) == {"region", "state", "county"}
    assert sorted(emissions["region"]) == list(range(1, 13))
    assert emissions["region"][1] == pytest.approx(-20.0)
    assert emissions["state"]["MA"][2] == pytest.approx(-7.5)
    assert emissions["county"]["CT"]["Hartford"][7] == pytest.approx(-6.0)
    assert tree["percentages"]["region"][1] == pytest.approx(-10.0)


def test_emission_rates_and_zero_generation():
    annual = {
        "generation": AnnualChange.from_totals(600.0, 560.0),
        "so2": AnnualChange.from_totals(316.0, 293.5),
    }
    rates = emission_rates(annual)
    assert rates["so2"].original == pytest.approx(316.0 / 600.0)
    assert rates["so2"].post == pytest.approx(293.5 / 560.0)
    assert rates["so2"].impact == pytest.approx(293.5 / 560.0 - 316.0 / 600.0)

    idle = emission_rates(
        {"generation": AnnualChange.from_totals(0.0, 0.0), "nox": AnnualChange.from_totals(0.0, 0.0)}
    )
    assert idle["nox"].to_dict() == {"original": 0.0, "post": 0.0, "impact": 0.0}


def test_state_changes(aggregates):
    frame = state_changes(aggregates.values())
    assert frame.index.tolist() == ["CT", "MA"]
    assert frame.loc["MA", "generation"] == pytest.approx(-27.5)
    assert frame.loc["CT", "generation"] == pytest.approx(-12.5)
    assert frame["generation"].sum() == pytest.approx(aggregates["generation"].annual.impact)


def test_percent_change_scalar_and_array():
    assert percent_change(-5.0, 50.0) == pytest.approx(-10.0)
    assert percent_change(-5.0, 0.0) == 0.0
    assert percent_change(np.array([-1.0, 2.0]), np.array([10.0, 0.0])).tolist() == [-10.0, 0.0]
