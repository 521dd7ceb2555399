from __future__ import annotations

import importlib
import json

import pytest

pytest.importorskip("pandas")
typer_testing = pytest.importorskip("typer.testing")

from eere_engine import data_loaders
from eere_engine.settings import configure_data_root

run_module = importlib.import_module("cli.run")
fixtures = importlib.import_module("tests.fixtures.regional")

runner = typer_testing.CliRunner()


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    # Root logging is left to pytest while the command runs.
    monkeypatch.setattr(run_module, "configure_logging", lambda debug=False: None)
    data_loaders.clear_cache()
    yield
    data_loaders.clear_cache()
    configure_data_root(None)


def _invoke(tmp_path, *args):
    return runner.invoke(run_module.app, ["--region", "NE", "--data-root", str(tmp_path), *args])


def test_cli_prints_annual_summary(tmp_path):
    fixtures.write_rdf(tmp_path, fixtures.rdf_payload())

    result = _invoke(tmp_path, "--constant-mw", "10")

    assert result.exit_code == 0, result.output
    assert "Soft limit: valid" in result.output
    assert "Annual displacement for NE (2023)" in result.output
    assert "generation" in result.output


def test_cli_writes_json(tmp_path):
    fixtures.write_rdf(tmp_path, fixtures.rdf_payload())
    out_path = tmp_path / "out" / "result.json"

    result = _invoke(tmp_path, "--constant-mw", "10", "--json", str(out_path))

    assert result.exit_code == 0, result.output
    payload = json.loads(out_path.read_text(encoding="utf-8"))
    assert payload["region"] == "NE"
    assert payload["annual"]["generation"]["impact"] == pytest.approx(-20.0)
    assert payload["monthly"]["so2"]["emissions"]["region"]["1"] == pytest.approx(-40.0)


def test_cli_missing_dataset_exit_code(tmp_path):
    result = _invoke(tmp_path, "--constant-mw", "10")
    assert result.exit_code == run_module.EXIT_MISSING_DATASET


def test_cli_invalid_input_exit_code(tmp_path):
    fixtures.write_rdf(tmp_path, fixtures.rdf_payload())

    result = _invoke(tmp_path, "--constant-mw", "10", "--annual-gwh", "5")

    assert result.exit_code == run_module.EXIT_INVALID_INPUT


def test_cli_unknown_region_exit_code(tmp_path):
    result = runner.invoke(run_module.app, ["--region", "Atlantis", "--constant-mw", "10"])
    assert result.exit_code == run_module.EXIT_INVALID_INPUT


def test_cli_hard_limit(tmp_path):
    fixtures.write_rdf(tmp_path, fixtures.rdf_payload())

    relaxed = _invoke(tmp_path, "--constant-mw", "40")
    assert relaxed.exit_code == 0, relaxed.output
    assert "Hard limit: exceeded" in relaxed.output

    strict = _invoke(tmp_path, "--constant-mw", "40", "--fail-on-hard-limit")
    assert strict.exit_code == run_module.EXIT_HARD_LIMIT


def test_cli_runs_through_run_region(tmp_path, monkeypatch):
    fixtures.write_rdf(tmp_path, fixtures.rdf_payload(), name="rdf_NE_2022.json")
    calls = []
    original = run_module.run_region

    def _recording(region_id, inputs, **kwargs):
        calls.append((region_id, kwargs))
        return original(region_id, inputs, **kwargs)

    monkeypatch.setattr(run_module, "run_region", _recording)

    result = _invoke(tmp_path, "--constant-mw", "10", "--year", "2022")

    assert result.exit_code == 0, result.output
    assert calls == [("NE", {"year": 2022, "method": "proportional"})]
