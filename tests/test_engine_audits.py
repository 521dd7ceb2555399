from __future__ import annotations

import dataclasses
import importlib

import pytest

pd = pytest.importorskip("pandas")

from eere_engine.audits import audit_field, failed_checks, run_audits
from eere_engine.orchestrate import run_displacement

fixtures = importlib.import_module("tests.fixtures.regional")


@pytest.fixture(scope="module")
def result():
    return run_displacement("NE", {"constant_mwh": 10}, fixtures.multi_state_dataset())


def test_consistent_aggregates_pass(result):
    report = run_audits(result.monthly.values())

    assert set(report) == {"generation", "so2", "nox", "co2", "pm25"}
    assert all(section["passed"] for section in report.values())
    assert report["generation"]["max_gap"] == pytest.approx(0.0, abs=1e-9)
    assert failed_checks(report) == []


def test_county_mismatch_is_reported(result):
    aggregate = result.monthly["generation"]
    county = aggregate.county.copy()
    county.loc[("MA", "Suffolk", 1), "original"] += 5.0
    tampered = dataclasses.replace(aggregate, county=county)

    section = audit_field(tampered)

    assert not section["passed"]
    assert "county_state_original_mismatch" in section["issues"]
    assert section["max_gap"] == pytest.approx(5.0)


def test_annual_mismatch_is_reported(result):
    aggregate = result.monthly["so2"]
    annual = dataclasses.replace(aggregate.annual, impact=aggregate.annual.impact + 1.0)
    tampered = dataclasses.replace(aggregate, annual=annual)

    report = run_audits([tampered])

    assert failed_checks(report) == ["so2:monthly_annual_impact_mismatch"]


def test_tolerance_is_relative(result):
    aggregate = result.monthly["co2"]
    region = aggregate.region.copy()
    region.loc[1, "post"] *= 1.0 + 1e-9
    tampered = dataclasses.replace(aggregate, region=region)

    assert audit_field(tampered)["passed"]
