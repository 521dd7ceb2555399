"""Loader for regional baseline dataset (RDF) JSON files."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import pandas as pd

from eere_engine import settings as engine_settings
from eere_engine.constants import POLLUTANTS
from eere_engine.dataset import RegionalDataset
from eere_engine.errors import DatasetValidationError, MissingDatasetError
from eere_engine.regions import get_region, normalize_region_id

LOG = logging.getLogger(__name__)

UNIT_DESCRIPTORS = ("orispl_code", "unit_code", "full_name", "fuel_type")


def _base_path(base_path: str | Path | None) -> Path:
    if base_path is None:
        return engine_settings.data_root()
    return Path(base_path).expanduser()


def read_json(path: Path) -> Any:
    """Return the decoded JSON payload at ``path``."""

    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise DatasetValidationError(path, f"invalid JSON: {exc.msg} (line {exc.lineno})") from exc
    except OSError as exc:
        raise DatasetValidationError(path, f"unable to read file: {exc}") from exc


def rdf_path(region_id: str, base_path: str | Path | None = None, year: int | None = None) -> Path:
    """Return the RDF file for ``region_id`` or raise :class:`MissingDatasetError`.

    ``rdf_<REGION>_<YEAR>.json`` is preferred when ``year`` is given.  Without a
    year the unversioned ``rdf_<REGION>.json`` is used, falling back to the most
    recent year-stamped file.
    """

    region = normalize_region_id(region_id)
    root = _base_path(base_path)

    if year is not None:
        candidate = root / f"rdf_{region}_{int(year)}.json"
        if candidate.exists():
            return candidate
        raise MissingDatasetError(region, "baseline dataset", candidate)

    candidate = root / f"rdf_{region}.json"
    if candidate.exists():
        return candidate

    stamped = sorted(root.glob(f"rdf_{region}_*.json"))
    if stamped:
        return stamped[-1]
    raise MissingDatasetError(region, "baseline dataset", candidate)


def _expand(value: Any, hours: int) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return [float(value)] * hours
    return value


def _unit_tables(
    records: Any, hours: int, path: Path
) -> tuple[pd.DataFrame, dict[str, Any], dict[str, dict[str, Any]], dict[str, list[str]]]:
    if not isinstance(records, list) or not records:
        raise DatasetValidationError(path, "'units' must be a non-empty list")

    unit_rows: list[dict[str, Any]] = []
    generation: dict[str, Any] = {}
    rates: dict[str, dict[str, Any]] = {pollutant: {} for pollutant in POLLUTANTS}
    field_flags: dict[str, list[str]] = {}

    for position, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise DatasetValidationError(path, f"unit record {position} is not an object")
        unit_id = str(record.get("unit_id", "")).strip()
        if not unit_id:
            raise DatasetValidationError(path, f"unit record {position} is missing 'unit_id'")
        if "generation" not in record:
            raise DatasetValidationError(path, f"unit {unit_id} is missing 'generation'")

        row = {
            "unit_id": unit_id,
            "state": record.get("state"),
            "county": record.get("county"),
            "infreq_emissions_flag": record.get("infreq_emissions_flag", 0),
        }
        for descriptor in UNIT_DESCRIPTORS:
            if descriptor in record:
                row[descriptor] = record[descriptor]
        unit_rows.append(row)

        series = record["generation"]
        if not isinstance(series, list) or len(series) != hours:
            raise DatasetValidationError(
                path, f"unit {unit_id} generation must list {hours} hourly values"
            )
        generation[unit_id] = series

        unit_rates = record.get("emission_rates") or {}
        if not isinstance(unit_rates, Mapping):
            raise DatasetValidationError(path, f"unit {unit_id} 'emission_rates' must be an object")
        for pollutant, values in unit_rates.items():
            key = str(pollutant).lower()
            if key not in rates:
                LOG.debug("Ignoring unsupported pollutant %s for unit %s", pollutant, unit_id)
                continue
            rates[key][unit_id] = _expand(values, hours)

        per_field = record.get("infreq_emissions_flags") or {}
        if not isinstance(per_field, Mapping):
            raise DatasetValidationError(
                path, f"unit {unit_id} 'infreq_emissions_flags' must be an object"
            )
        for name, flag in per_field.items():
            if flag == 1:
                field_flags.setdefault(str(name).lower(), []).append(unit_id)

    units = pd.DataFrame(unit_rows)
    if units["state"].isna().any() or units["county"].isna().any():
        raise DatasetValidationError(path, "every unit requires 'state' and 'county'")

    present: dict[str, dict[str, Any]] = {}
    for pollutant, by_unit in rates.items():
        if not by_unit:
            continue
        # Units without a rate for a reported pollutant emit nothing.
        present[pollutant] = {
            unit: by_unit.get(unit, [0.0] * hours) for unit in generation
        }
    return units, generation, present, field_flags


def parse_regional_dataset(payload: Any, path: Path, region_id: str) -> RegionalDataset:
    """Validate a decoded RDF payload and build a :class:`RegionalDataset`."""

    if not isinstance(payload, Mapping):
        raise DatasetValidationError(path, "top-level JSON value must be an object")

    region_block = payload.get("region") or {}
    declared = region_block.get("region_abbv")
    region = normalize_region_id(region_id)
    if declared is not None:
        try:
            declared_id = normalize_region_id(str(declared))
        except ValueError as exc:
            raise DatasetValidationError(path, f"unknown region_abbv {declared!r}") from exc
        if declared_id != region:
            raise DatasetValidationError(
                path, f"file describes region {declared_id}, expected {region}"
            )

    load_records = payload.get("regional_load")
    if not isinstance(load_records, list) or not load_records:
        raise DatasetValidationError(path, "'regional_load' must be a non-empty list")
    regional_load = pd.DataFrame(load_records)
    hours = len(regional_load.index)

    units, generation, rates, field_flags = _unit_tables(payload.get("units"), hours, path)

    record = get_region(region)
    line_loss = region_block.get("line_loss", record.line_loss)
    limits = payload.get("limits") or {}
    run_block = payload.get("run") or {}

    try:
        return RegionalDataset.from_frames(
            region_id=region,
            region_name=region_block.get("region_name") or record.name,
            regional_load=regional_load,
            units=units,
            generation=generation,
            emission_rates=rates,
            line_loss=line_loss,
            max_ee_percent=limits.get("max_ee_percent"),
            year=run_block.get("year"),
            load_bins=payload.get("load_bins"),
            emissions_flags=field_flags,
        )
    except DatasetValidationError as exc:
        raise DatasetValidationError(path, exc.reason) from exc
    except (TypeError, ValueError) as exc:
        raise DatasetValidationError(path, str(exc)) from exc


@lru_cache(maxsize=8)
def _load_cached(path: str, region: str) -> RegionalDataset:
    file_path = Path(path)
    LOG.debug("Reading regional dataset for %s from %s", region, file_path)
    return parse_regional_dataset(read_json(file_path), file_path, region)


def load_regional_dataset(
    region_id: str, base_path: str | Path | None = None, year: int | None = None
) -> RegionalDataset:
    """Return the baseline dataset for ``region_id``.

    Raises :class:`MissingDatasetError` when no file exists and
    :class:`DatasetValidationError` when the file is malformed.
    """

    region = normalize_region_id(region_id)
    path = rdf_path(region, base_path, year)
    return _load_cached(str(path.resolve()), region)


def clear_cache() -> None:
    _load_cached.cache_clear()


__all__ = [
    "clear_cache",
    "load_regional_dataset",
    "parse_regional_dataset",
    "rdf_path",
    "read_json",
]
