"""End-to-end tests for :mod:`eere_engine.orchestrate`."""

from __future__ import annotations

import importlib
import logging
import warnings

import pytest

pd = pytest.importorskip("pandas")

from eere_engine.errors import HardLimitExceeded, InvalidInputError, MissingDatasetError
from eere_engine.inputs import EereInputs
from eere_engine.orchestrate import run_displacement, run_region

fixtures = importlib.import_module("tests.fixtures.regional")


def test_single_unit_scenario_annual_impacts():
    dataset = fixtures.single_unit_dataset()

    result = run_displacement("NE", {"constantMwh": 10}, dataset)

    assert result.region_id == "NE"
    assert result.year == 2023
    assert result.annual["generation"].impact == pytest.approx(-20.0)
    assert result.annual["so2"].impact == pytest.approx(-40.0)
    assert result.annual["so2"].original == pytest.approx(200.0)
    assert result.emission_rates["so2"].original == pytest.approx(2.0)
    assert result.emission_rates["so2"].post == pytest.approx(2.0)
    assert not result.hard_limit_exceeded
    assert result.warnings == ()


def test_monthly_changes_cover_every_field():
    result = run_displacement("NE", EereInputs(constant_mwh=10.0), fixtures.multi_state_dataset())

    monthly = result.monthly_changes()

    assert list(monthly) == ["generation", "so2", "nox", "co2", "pm25"]
    assert monthly["generation"]["emissions"]["region"][1] == pytest.approx(-20.0)
    assert monthly["pm25"]["emissions"]["region"][1] == 0.0
    assert all(section["passed"] for section in result.audits.values())


def test_region_aliases_are_accepted():
    result = run_displacement("New England", {"constant_mwh": 10}, fixtures.single_unit_dataset())
    assert result.region_id == "NE"


def test_missing_dataset():
    with pytest.raises(MissingDatasetError):
        run_displacement("NE", {"constant_mwh": 10}, None)


def test_dataset_for_another_region_is_missing():
    dataset = fixtures.build_dataset(
        [100.0],
        [{"unit_id": "U1", "state": "NY", "county": "Kings", "generation": [50.0]}],
        region_id="NY",
    )
    with pytest.raises(MissingDatasetError):
        run_displacement("NE", {"constant_mwh": 10}, dataset)


def test_renewables_without_defaults_are_missing_data():
    with pytest.raises(MissingDatasetError) as excinfo:
        run_displacement("NE", {"onshore_wind": 100}, fixtures.single_unit_dataset())
    assert excinfo.value.kind == "renewable defaults"


def test_renewables_with_defaults():
    dataset = fixtures.single_unit_dataset()
    defaults = fixtures.renewable_defaults(dataset.hour_count, onshore_wind=0.5, rooftop_pv=0.0)

    result = run_displacement("NE", {"onshore_wind": 20}, dataset, defaults)

    assert result.profile.hourly_eere.tolist() == pytest.approx([-10.0, -10.0])
    assert result.annual["generation"].impact == pytest.approx(-20.0)


def test_offshore_wind_rejected_in_landlocked_region():
    dataset = fixtures.build_dataset(
        [100.0],
        [{"unit_id": "U1", "state": "TN", "county": "Shelby", "generation": [50.0]}],
        region_id="TN",
    )
    defaults = fixtures.renewable_defaults(1, region_id="TN")
    with pytest.raises(InvalidInputError):
        run_displacement("TN", {"offshore_wind": 10}, dataset, defaults)


def test_empty_and_contradictory_inputs_are_invalid():
    dataset = fixtures.single_unit_dataset()
    with pytest.raises(InvalidInputError):
        run_displacement("NE", {}, dataset)
    with pytest.raises(InvalidInputError):
        run_displacement("NE", {"annual_gwh": 1, "constant_mwh": 1}, dataset)


def test_hard_limit_completes_with_warning(caplog):
    dataset = fixtures.single_unit_dataset()

    with caplog.at_level(logging.WARNING, logger="eere_engine.orchestrate"):
        with pytest.warns(HardLimitExceeded):
            result = run_displacement("NE", {"constant_mwh": 40}, dataset)

    assert result.hard_limit_exceeded
    assert result.soft_limit_exceeded
    assert result.validation["hard"]["valid"] is False
    assert result.annual["generation"].impact == pytest.approx(-80.0)
    assert any("hard limit" in message for message in result.warnings)
    assert any("hard limit" in record.message for record in caplog.records)


def test_soft_limit_only_does_not_warn():
    dataset = fixtures.single_unit_dataset()

    with warnings.catch_warnings():
        warnings.simplefilter("error", HardLimitExceeded)
        result = run_displacement("NE", {"constant_mwh": 20}, dataset)

    assert result.soft_limit_exceeded
    assert not result.hard_limit_exceeded


def test_infrequent_emitters_are_reported():
    dataset = fixtures.build_dataset(
        [100.0],
        [
            {
                "unit_id": "U1",
                "state": "MA",
                "county": "Suffolk",
                "generation": [50.0],
                "rates": {"so2": [2.0]},
                "infreq_emissions_flag": 1,
            }
        ],
    )

    result = run_displacement("NE", {"constant_mwh": 10}, dataset)

    assert result.emissions_flags["so2"] == ("U1",)
    assert "generation" not in result.emissions_flags
    assert result.annual["so2"].impact == 0.0


def test_load_bin_method_end_to_end():
    dataset = fixtures.build_dataset(
        [150.0, 150.0],
        [{"unit_id": "U1", "state": "MA", "county": "Suffolk", "generation": [50.0, 50.0]}],
        months=[1, 6],
        load_bins={
            "edges": fixtures.LOAD_BIN_EDGES,
            "ozone": {
                field: {"U1": [0.0, 50.0, 150.0]}
                for field in ("generation", "so2", "nox", "co2", "pm25")
            },
        },
    )

    result = run_displacement("NE", {"constant_mwh": 10}, dataset, method="load_bins")

    assert result.method == "load_bins"
    assert result.annual["generation"].original == pytest.approx(200.0)
    assert result.annual["generation"].impact == pytest.approx(-20.0)


def test_result_views():
    result = run_displacement("NE", {"constant_mwh": 10}, fixtures.multi_state_dataset())

    frame = result.annual_frame()
    assert list(frame.columns) == ["field", "measure", "original", "post", "impact"]
    assert len(frame.index) == 9

    payload = result.to_dict()
    assert payload["region"] == "NE"
    assert payload["validation"]["soft"]["limitType"] == "soft"
    assert payload["stateChanges"]["MA"]["generation"] == pytest.approx(-27.5)
    assert set(payload["monthly"]) == {"generation", "so2", "nox", "co2", "pm25"}


def test_run_region_loads_files(tmp_path):
    fixtures.write_rdf(tmp_path, fixtures.rdf_payload())
    fixtures.write_eere_defaults(tmp_path, 2)

    result = run_region("NE", {"constant_mwh": 10, "onshore_wind": 0}, base_path=tmp_path)
    assert result.annual["generation"].impact == pytest.approx(-20.0)

    with_wind = run_region("NE", {"onshore_wind": 20}, base_path=tmp_path)
    assert with_wind.annual["generation"].impact == pytest.approx(-20.0)


def test_run_region_missing_files(tmp_path):
    with pytest.raises(MissingDatasetError):
        run_region("NE", {"constant_mwh": 10}, base_path=tmp_path)


def test_top_hours_without_a_reduction_is_rejected():
    with pytest.raises(InvalidInputError):
        run_displacement("NE", {"top_hours": 10}, fixtures.single_unit_dataset())


def test_reduction_without_fossil_output_is_reported():
    dataset = fixtures.build_dataset(
        [100.0, 100.0],
        [{"unit_id": "U1", "state": "MA", "county": "Suffolk", "generation": [50.0, 0.0]}],
    )

    result = run_displacement("NE", {"constant_mwh": 10}, dataset)

    assert result.annual["generation"].impact == pytest.approx(-10.0)
    assert result.profile.hourly_eere.sum() == pytest.approx(-20.0)
    assert any("exceeds fossil generation in 1 hours" in message for message in result.warnings)


def test_field_flags_are_reported_per_field():
    dataset = fixtures.build_dataset(
        [100.0],
        [
            {
                "unit_id": "U1",
                "state": "MA",
                "county": "Suffolk",
                "generation": [50.0],
                "rates": {"so2": [2.0], "nox": [1.0]},
            }
        ],
        emissions_flags={"nox": ["U1"]},
    )

    result = run_displacement("NE", {"constant_mwh": 10}, dataset)

    assert result.emissions_flags == {"nox": ("U1",)}
    assert result.annual["nox"].impact == 0.0
    assert result.annual["so2"].impact == pytest.approx(-20.0)
