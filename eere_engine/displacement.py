"""Per-unit hourly displacement of generation and pollutant mass."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Iterable, Iterator

import numpy as np
import pandas as pd

from eere_engine.constants import (
    DISPLACEMENT_FIELDS,
    GENERATION_FIELD,
    GENERATION_TOL,
    OZONE_SEASON_MONTHS,
)
from eere_engine.dataset import RegionalDataset
from eere_engine.eere import HourlyEereProfile
from eere_engine.errors import InvalidInputError

LOGGER = logging.getLogger(__name__)

PROPORTIONAL = "proportional"
LOAD_BINS = "load_bins"
APPORTIONMENT_METHODS: tuple[str, ...] = (PROPORTIONAL, LOAD_BINS)


@dataclass(frozen=True, eq=False)
class UnitHourlyDisplacement:
    """Original and post-EERE values of one field for every unit and hour.

    ``original`` and ``post`` are ``hour x unit`` frames sharing the same
    index; ``months`` maps each of those hours to its calendar month.
    """

    field: str
    original: pd.DataFrame
    post: pd.DataFrame
    months: pd.Series

    @property
    def delta(self) -> pd.DataFrame:
        """Signed change per unit-hour (negative values are displaced)."""
        return self.post - self.original


def generation_shortfall(generation: pd.DataFrame, hourly_eere: np.ndarray) -> np.ndarray:
    """Boolean mask of hours whose reduction exceeds the fossil output available.

    Hours with no fossil output at all count whenever any reduction is entered.
    """

    totals = np.clip(generation.to_numpy(dtype=float), 0.0, None).sum(axis=1)
    return -np.asarray(hourly_eere, dtype=float) > totals + GENERATION_TOL


def apportion_proportionally(generation: pd.DataFrame, hourly_eere: np.ndarray) -> pd.DataFrame:
    """Split each hour's regional change across units by their share of output.

    Units with no output in an hour receive no change, and no unit is driven
    below zero output.
    """

    output = np.clip(generation.to_numpy(dtype=float), 0.0, None)
    totals = output.sum(axis=1)
    producing = totals > GENERATION_TOL
    shares = np.divide(
        output,
        totals[:, None],
        out=np.zeros_like(output),
        where=producing[:, None],
    )
    change = shares * np.asarray(hourly_eere, dtype=float)[:, None]

    short_hours = generation_shortfall(generation, hourly_eere)
    if short_hours.any():
        LOGGER.warning(
            "Hourly reduction exceeds fossil generation in %d hours; the excess is not displaced",
            int(short_hours.sum()),
        )
    change = np.maximum(change, -output)
    return pd.DataFrame(change, index=generation.index, columns=generation.columns)


def interpolate_load_bins(
    curves: pd.DataFrame, edges: np.ndarray, loads: np.ndarray
) -> np.ndarray:
    """Return ``hour x unit`` values read off ``curves`` at each regional load.

    Each load uses the bin whose lower edge precedes it (the last bin for the
    top edge) and is interpolated linearly between that bin's two edges.
    """

    medians = curves.to_numpy(dtype=float)
    lower = np.searchsorted(edges, loads, side="right") - 1
    lower = np.clip(lower, 0, edges.size - 2)
    upper = lower + 1

    edge_a = edges[lower]
    edge_b = edges[upper]
    gen_a = medians[:, lower].T
    gen_b = medians[:, upper].T
    slope = (gen_a - gen_b) / (edge_a - edge_b)[:, None]
    intercept = gen_a - slope * edge_a[:, None]
    return loads[:, None] * slope + intercept


class UnitDisplacementCalculator:
    """Apply an hourly EERE profile to every generating unit of a region.

    ``method`` selects how the regional change reaches individual units:

    ``"proportional"``
        Each unit takes its share of the hour's fossil generation.  Pollutant
        mass changes are the generation change times the unit's hourly rate.
    ``"load_bins"``
        Original and post values are read from each unit's median curves at
        the original and post regional load.  Hours outside the curve edges
        are excluded.
    """

    def __init__(
        self,
        dataset: RegionalDataset,
        profile: HourlyEereProfile,
        *,
        method: str = PROPORTIONAL,
    ) -> None:
        if method not in APPORTIONMENT_METHODS:
            raise InvalidInputError(
                f"Unknown apportionment method {method!r}; expected one of "
                f"{', '.join(APPORTIONMENT_METHODS)}",
                ("method",),
            )
        if method == LOAD_BINS and dataset.load_bins is None:
            raise InvalidInputError(
                f"Region {dataset.region_id} has no load bin curves", ("method",)
            )
        if profile.hour_count != dataset.hour_count:
            raise InvalidInputError(
                f"EERE profile covers {profile.hour_count} hours; "
                f"the {dataset.region_id} dataset has {dataset.hour_count}",
                ("profile",),
            )
        self.dataset = dataset
        self.profile = profile
        self.method = method

    @cached_property
    def included_hours(self) -> np.ndarray:
        """Boolean mask of hours that contribute to the results."""

        if self.method == PROPORTIONAL:
            return np.ones(self.dataset.hour_count, dtype=bool)

        edges = self.dataset.load_bins.edges  # type: ignore[union-attr]
        low, high = edges[0], edges[-1]
        original = self.profile.original_load
        post = self.profile.post_load
        mask = (original >= low) & (original <= high) & (post >= low) & (post <= high)
        excluded = int((~mask).sum())
        if excluded:
            LOGGER.info(
                "Excluding %d hours outside the %s load bins (%.1f-%.1f MW)",
                excluded,
                self.dataset.region_id,
                low,
                high,
            )
        return mask

    @cached_property
    def months(self) -> pd.Series:
        return self.dataset.months[self.included_hours]

    @cached_property
    def generation_change(self) -> pd.DataFrame:
        """Per unit-hour generation change under proportional apportionment."""

        return apportion_proportionally(self.dataset.generation, self.profile.hourly_eere)

    @cached_property
    def shortfall_hours(self) -> np.ndarray:
        """Hours whose reduction could not be fully displaced from fossil units."""

        if self.method != PROPORTIONAL:
            return np.zeros(self.dataset.hour_count, dtype=bool)
        return generation_shortfall(self.dataset.generation, self.profile.hourly_eere)

    @cached_property
    def flagged_units(self) -> pd.Index:
        """Units whose pollutant mass is held at its original value."""

        units = self.dataset.units
        return units.index[units["infreq_emissions_flag"].astype(bool)]

    def held_units(self, field: str) -> pd.Index:
        return self.dataset.held_units(field)

    def calculate(self, field: str) -> UnitHourlyDisplacement:
        """Return the per-unit hourly original and post values for ``field``."""

        if field not in DISPLACEMENT_FIELDS:
            raise InvalidInputError(f"Unknown displacement field {field!r}", ("field",))

        if self.method == PROPORTIONAL:
            original, post = self._proportional(field)
        else:
            original, post = self._from_load_bins(field)

        held = self.held_units(field)
        if len(held):
            post = post.copy()
            post.loc[:, held] = original.loc[:, held]

        return UnitHourlyDisplacement(field=field, original=original, post=post, months=self.months)

    def iter_fields(
        self, fields: Iterable[str] = DISPLACEMENT_FIELDS
    ) -> Iterator[UnitHourlyDisplacement]:
        """Yield one :class:`UnitHourlyDisplacement` per field, computed lazily."""

        for field in fields:
            yield self.calculate(field)

    def _proportional(self, field: str) -> tuple[pd.DataFrame, pd.DataFrame]:
        generation = self.dataset.generation
        if field == GENERATION_FIELD:
            return generation, generation + self.generation_change

        rates = self.dataset.emission_rate(field)
        original = generation * rates
        post = (generation + self.generation_change) * rates
        return original, post

    def _from_load_bins(self, field: str) -> tuple[pd.DataFrame, pd.DataFrame]:
        bins = self.dataset.load_bins
        if bins is None:
            raise InvalidInputError(
                f"Region {self.dataset.region_id} has no load bin curves", ("method",)
            )
        mask = self.included_hours
        index = self.dataset.generation.index[mask]
        columns = self.dataset.unit_ids
        original_load = self.profile.original_load[mask]
        post_load = self.profile.post_load[mask]

        ozone = self.months.isin(OZONE_SEASON_MONTHS).to_numpy()
        original = np.empty((index.size, columns.size))
        post = np.empty((index.size, columns.size))
        for in_season in (True, False):
            rows = ozone if in_season else ~ozone
            if not rows.any():
                continue
            curves = bins.curves_for(field, ozone_season=in_season)
            original[rows] = interpolate_load_bins(curves, bins.edges, original_load[rows])
            post[rows] = interpolate_load_bins(curves, bins.edges, post_load[rows])

        return (
            pd.DataFrame(original, index=index, columns=columns),
            pd.DataFrame(post, index=index, columns=columns),
        )


def calculate_unit_displacement(
    dataset: RegionalDataset,
    profile: HourlyEereProfile,
    field: str,
    *,
    method: str = PROPORTIONAL,
) -> UnitHourlyDisplacement:
    """Convenience wrapper computing a single field."""

    return UnitDisplacementCalculator(dataset, profile, method=method).calculate(field)


__all__ = [
    "APPORTIONMENT_METHODS",
    "LOAD_BINS",
    "PROPORTIONAL",
    "UnitDisplacementCalculator",
    "UnitHourlyDisplacement",
    "apportion_proportionally",
    "calculate_unit_displacement",
    "generation_shortfall",
    "interpolate_load_bins",
]
