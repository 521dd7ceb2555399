"""Immutable containers for a region's baseline and renewable default data."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import numpy as np
import pandas as pd

from eere_engine.constants import (
    DEFAULT_MAX_EE_PERCENT,
    DISPLACEMENT_FIELDS,
    GENERATION_FIELD,
    HOURS_PER_LEAP_YEAR,
    HOURS_PER_YEAR,
    POLLUTANTS,
)
from eere_engine.errors import DatasetValidationError

LOGGER = logging.getLogger(__name__)

UNIT_COLUMNS = ("state", "county")
RENEWABLE_PROFILE_COLUMNS = ("onshore_wind", "offshore_wind", "utility_pv", "rooftop_pv")


def _invalid(reason: str) -> DatasetValidationError:
    return DatasetValidationError(None, reason)


def _coerce_hourly_frame(
    frame: pd.DataFrame | Mapping[str, Any],
    unit_ids: pd.Index,
    hours: int,
    label: str,
    *,
    fill_missing: bool = False,
) -> pd.DataFrame:
    """Return ``frame`` as an ``hour x unit`` float frame aligned to ``unit_ids``.

    With ``fill_missing`` units absent from ``frame`` get zero columns instead
    of failing validation.
    """

    working = pd.DataFrame(frame).copy()
    working.columns = working.columns.astype(str)
    missing = [unit for unit in unit_ids if unit not in working.columns]
    if missing and fill_missing:
        if working.empty and working.columns.empty:
            working = pd.DataFrame(index=pd.RangeIndex(hours))
        LOGGER.debug("%s has no values for %d units; treating them as zero", label, len(missing))
        for unit in missing:
            working[unit] = 0.0
    elif missing:
        raise _invalid(f"{label} is missing hourly data for units: {', '.join(missing[:5])}")
    if len(working.index) != hours:
        raise _invalid(f"{label} has {len(working.index)} hours; expected {hours}")

    working = working.loc[:, list(unit_ids)].apply(pd.to_numeric, errors="coerce")
    working = working.fillna(0.0).astype(float)
    working.index = pd.RangeIndex(hours, name="hour_index")
    working.columns.name = "unit_id"
    return working


@dataclass(frozen=True)
class LoadBinCurves:
    """Per-unit median curves tabulated against ascending regional-load edges.

    ``ozone`` holds one ``unit x bin`` frame per field for the ozone season and
    ``non_ozone`` the optional counterparts for the remaining months.
    """

    edges: np.ndarray
    ozone: Mapping[str, pd.DataFrame]
    non_ozone: Mapping[str, pd.DataFrame] = field(default_factory=dict)

    def curves_for(self, field_name: str, *, ozone_season: bool) -> pd.DataFrame:
        if not ozone_season and field_name in self.non_ozone:
            return self.non_ozone[field_name]
        try:
            return self.ozone[field_name]
        except KeyError as exc:
            raise _invalid(f"load bins do not include curves for '{field_name}'") from exc

    @classmethod
    def from_mappings(
        cls,
        edges: Any,
        ozone: Mapping[str, Any],
        non_ozone: Mapping[str, Any] | None,
        unit_ids: pd.Index,
    ) -> "LoadBinCurves":
        edge_array = np.asarray(edges, dtype=float)
        if edge_array.ndim != 1 or edge_array.size < 2:
            raise _invalid("load bins require at least two edges")
        if np.any(np.diff(edge_array) <= 0):
            raise _invalid("load bin edges must be strictly increasing")

        def _curves(payload: Mapping[str, Any]) -> dict[str, pd.DataFrame]:
            result: dict[str, pd.DataFrame] = {}
            for name, medians in payload.items():
                frame = pd.DataFrame(medians).T if isinstance(medians, Mapping) else pd.DataFrame(medians)
                frame.index = frame.index.astype(str)
                missing = [unit for unit in unit_ids if unit not in frame.index]
                if missing:
                    raise _invalid(f"load bin curves for '{name}' are missing units: {', '.join(missing[:5])}")
                frame = frame.loc[list(unit_ids)].apply(pd.to_numeric, errors="coerce").fillna(0.0)
                if frame.shape[1] != edge_array.size:
                    raise _invalid(
                        f"load bin curves for '{name}' have {frame.shape[1]} bins; "
                        f"expected {edge_array.size}"
                    )
                frame.columns = pd.RangeIndex(edge_array.size)
                result[str(name)] = frame.astype(float)
            return result

        ozone_curves = _curves(ozone)
        if "generation" not in ozone_curves:
            raise _invalid("load bins must include generation curves")
        return cls(edges=edge_array, ozone=ozone_curves, non_ozone=_curves(non_ozone or {}))


@dataclass(frozen=True)
class RegionalDataset:
    """Baseline hourly load, unit generation, and emission rates for one region.

    The frames are treated as read-only once constructed; every run derives its
    own intermediate data rather than modifying them.
    """

    region_id: str
    region_name: str
    regional_load: pd.DataFrame
    units: pd.DataFrame
    generation: pd.DataFrame
    emission_rates: Mapping[str, pd.DataFrame]
    line_loss: float
    max_ee_percent: float = DEFAULT_MAX_EE_PERCENT
    year: int | None = None
    load_bins: LoadBinCurves | None = None
    emissions_flags: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def hour_count(self) -> int:
        return int(len(self.regional_load.index))

    @property
    def hourly_loads(self) -> np.ndarray:
        return self.regional_load["regional_load_mw"].to_numpy(dtype=float)

    @property
    def months(self) -> pd.Series:
        """Calendar month (1-12) of every hour, aligned with the load series."""
        return self.regional_load["month"]

    @property
    def unit_ids(self) -> pd.Index:
        return self.units.index

    def emission_rate(self, pollutant: str) -> pd.DataFrame:
        return self.emission_rates[pollutant]

    def held_units(self, field_name: str) -> pd.Index:
        """Units whose post-EERE ``field_name`` values stay at their original level.

        The unit-level ``infreq_emissions_flag`` covers every pollutant; entries
        in ``emissions_flags`` add units for individual fields, generation
        included.
        """

        held = set(self.emissions_flags.get(field_name, ()))
        if field_name != GENERATION_FIELD:
            held.update(self.units.index[self.units["infreq_emissions_flag"].astype(bool)])
        return pd.Index([unit for unit in self.unit_ids if unit in held], name="unit_id")

    @classmethod
    def from_frames(
        cls,
        *,
        region_id: str,
        regional_load: pd.DataFrame,
        units: pd.DataFrame,
        generation: pd.DataFrame | Mapping[str, Any],
        emission_rates: Mapping[str, pd.DataFrame | Mapping[str, Any]],
        line_loss: float,
        region_name: str | None = None,
        max_ee_percent: float | None = None,
        year: int | None = None,
        load_bins: LoadBinCurves | Mapping[str, Any] | None = None,
        emissions_flags: Mapping[str, Iterable[str]] | None = None,
    ) -> "RegionalDataset":
        """Validate and normalise raw frames into a :class:`RegionalDataset`.

        ``emissions_flags`` maps a displacement field to the units whose values
        for that field are held at their original level.
        """

        load = pd.DataFrame(regional_load).copy()
        if "regional_load_mw" not in load.columns:
            raise _invalid("regional load is missing the 'regional_load_mw' column")
        if "month" not in load.columns:
            raise _invalid("regional load is missing the hour-to-month mapping ('month')")
        hours = len(load.index)
        if hours == 0:
            raise _invalid("regional load contains no hours")
        if hours not in (HOURS_PER_YEAR, HOURS_PER_LEAP_YEAR):
            LOGGER.debug("Region %s covers %d hours rather than a full year", region_id, hours)

        load["regional_load_mw"] = pd.to_numeric(load["regional_load_mw"], errors="coerce")
        if load["regional_load_mw"].isna().any():
            raise _invalid("regional load values must be numeric")
        months = pd.to_numeric(load["month"], errors="coerce")
        if months.isna().any() or not months.between(1, 12).all():
            raise _invalid("regional load months must be integers between 1 and 12")
        load["month"] = months.astype(int)
        if "hour_of_year" not in load.columns:
            load["hour_of_year"] = np.arange(1, hours + 1)
        load = load.reset_index(drop=True)

        unit_frame = pd.DataFrame(units).copy()
        if "unit_id" in unit_frame.columns:
            unit_frame = unit_frame.set_index("unit_id")
        unit_frame.index = unit_frame.index.astype(str)
        unit_frame.index.name = "unit_id"
        if unit_frame.index.duplicated().any():
            raise _invalid("unit_id values must be unique")
        missing_columns = [column for column in UNIT_COLUMNS if column not in unit_frame.columns]
        if missing_columns:
            raise _invalid(f"units are missing location columns: {', '.join(missing_columns)}")
        unit_frame["state"] = unit_frame["state"].astype(str).str.strip().str.upper()
        unit_frame["county"] = unit_frame["county"].astype(str).str.strip()
        if "infreq_emissions_flag" in unit_frame.columns:
            unit_frame["infreq_emissions_flag"] = (
                pd.to_numeric(unit_frame["infreq_emissions_flag"], errors="coerce").fillna(0) == 1
            )
        else:
            unit_frame["infreq_emissions_flag"] = False

        unit_ids = unit_frame.index
        generation_frame = _coerce_hourly_frame(generation, unit_ids, hours, "generation")

        rates: dict[str, pd.DataFrame] = {}
        for pollutant in POLLUTANTS:
            raw = emission_rates.get(pollutant)
            if raw is None:
                LOGGER.debug("Region %s has no %s rates; treating them as zero", region_id, pollutant)
                rates[pollutant] = pd.DataFrame(
                    0.0, index=generation_frame.index, columns=generation_frame.columns
                )
                continue
            rates[pollutant] = _coerce_hourly_frame(
                raw, unit_ids, hours, f"{pollutant} rates", fill_missing=True
            )

        line_loss_value = float(line_loss)
        if not 0.0 <= line_loss_value < 1.0:
            raise _invalid("line loss must lie in the interval [0, 1)")

        bins: LoadBinCurves | None
        if load_bins is None or isinstance(load_bins, LoadBinCurves):
            bins = load_bins
        else:
            bins = LoadBinCurves.from_mappings(
                load_bins.get("edges"),
                load_bins.get("ozone", {}),
                load_bins.get("non_ozone"),
                unit_ids,
            )
        if bins is not None:
            unknown = sorted(set(bins.ozone) - set(DISPLACEMENT_FIELDS))
            if unknown:
                raise _invalid(f"load bins include unknown fields: {', '.join(unknown)}")

        flags: dict[str, tuple[str, ...]] = {}
        for name, flagged in (emissions_flags or {}).items():
            if name not in DISPLACEMENT_FIELDS:
                raise _invalid(f"emissions flags name an unknown field: {name}")
            listed = tuple(dict.fromkeys(str(unit) for unit in flagged))
            unknown_units = [unit for unit in listed if unit not in unit_ids]
            if unknown_units:
                raise _invalid(
                    f"emissions flags for '{name}' name unknown units: {', '.join(unknown_units[:5])}"
                )
            if listed:
                flags[str(name)] = listed

        return cls(
            region_id=str(region_id),
            region_name=str(region_name or region_id),
            regional_load=load,
            units=unit_frame,
            generation=generation_frame,
            emission_rates=rates,
            line_loss=line_loss_value,
            max_ee_percent=float(
                DEFAULT_MAX_EE_PERCENT if max_ee_percent is None else max_ee_percent
            ),
            year=None if year is None else int(year),
            load_bins=bins,
            emissions_flags=flags,
        )


@dataclass(frozen=True)
class RenewableDefaults:
    """Hourly capacity factors for the renewable resources of one region."""

    region_id: str
    data: pd.DataFrame

    @property
    def hour_count(self) -> int:
        return int(len(self.data.index))

    @classmethod
    def from_records(cls, region_id: str, records: Any) -> "RenewableDefaults":
        frame = pd.DataFrame(records).copy()
        if "offshore_wind" not in frame.columns:
            frame["offshore_wind"] = 0.0
        missing = [column for column in RENEWABLE_PROFILE_COLUMNS if column not in frame.columns]
        if missing:
            raise _invalid(f"renewable defaults are missing columns: {', '.join(missing)}")
        frame = frame.loc[:, list(RENEWABLE_PROFILE_COLUMNS)]
        frame = frame.apply(pd.to_numeric, errors="coerce").fillna(0.0).astype(float)
        return cls(region_id=str(region_id), data=frame.reset_index(drop=True))


__all__ = [
    "LoadBinCurves",
    "RENEWABLE_PROFILE_COLUMNS",
    "RegionalDataset",
    "RenewableDefaults",
]
