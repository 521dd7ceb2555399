"""Roll per-unit hourly displacement into annual and monthly totals."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import numpy as np
import pandas as pd

from eere_engine.constants import GENERATION_FIELD, MONTHS, POLLUTANTS
from eere_engine.displacement import UnitHourlyDisplacement

VALUE_COLUMNS = ("original", "post", "impact")
STATE_KEYS = ["state"]
COUNTY_KEYS = ["state", "county"]


@dataclass(frozen=True)
class AnnualChange:
    """Original, post-program and impact (post minus original) totals."""

    original: float
    post: float
    impact: float

    @classmethod
    def from_totals(cls, original: float, post: float) -> "AnnualChange":
        return cls(float(original), float(post), float(post) - float(original))

    def to_dict(self) -> dict[str, float]:
        return {"original": self.original, "post": self.post, "impact": self.impact}


def percent_change(impact: Any, original: Any) -> Any:
    """Return ``impact / original * 100`` with zero wherever ``original`` is zero.

    Scalars return a ``float``; arrays and pandas objects keep their shape.
    """

    if np.ndim(impact) == 0 and np.ndim(original) == 0:
        original_value = float(original)
        if original_value == 0.0:
            return 0.0
        return float(impact) / original_value * 100.0

    impact_values = np.asarray(impact, dtype=float)
    original_values = np.asarray(original, dtype=float)
    result = np.divide(
        impact_values * 100.0,
        original_values,
        out=np.zeros(np.broadcast(impact_values, original_values).shape),
        where=original_values != 0.0,
    )
    if isinstance(impact, pd.Series):
        return pd.Series(result, index=impact.index, name=impact.name)
    return result


def _unit_monthly(frame: pd.DataFrame, months: pd.Series) -> pd.DataFrame:
    """Sum an ``hour x unit`` frame into a ``unit x month`` frame covering all months."""

    monthly = frame.groupby(months.to_numpy()).sum()
    monthly = monthly.reindex(list(MONTHS), fill_value=0.0)
    monthly.index.name = "month"
    return monthly.T


def _level_frame(
    original: pd.DataFrame, post: pd.DataFrame, units: pd.DataFrame, keys: list[str]
) -> pd.DataFrame:
    columns: dict[str, pd.Series] = {}
    for name, monthly in (("original", original), ("post", post)):
        grouped = monthly.groupby([units.loc[monthly.index, key] for key in keys]).sum()
        long = grouped.reset_index().melt(id_vars=keys, var_name="month", value_name=name)
        long["month"] = long["month"].astype(int)
        columns[name] = long.set_index(keys + ["month"])[name]
    frame = pd.DataFrame(columns).sort_index()
    frame["impact"] = frame["post"] - frame["original"]
    return frame


@dataclass(frozen=True, eq=False)
class FieldAggregate:
    """Annual and monthly totals of one displacement field.

    ``region`` is indexed by month; ``state`` by ``(state, month)`` and
    ``county`` by ``(state, county, month)``.  Every frame carries the
    ``original``, ``post`` and ``impact`` columns.
    """

    field: str
    annual: AnnualChange
    region: pd.DataFrame
    state: pd.DataFrame
    county: pd.DataFrame

    def percentages(self, level: str = "region") -> pd.Series:
        frame = getattr(self, level)
        return percent_change(frame["impact"], frame["original"])

    def emissions_tree(self) -> dict[str, Any]:
        return _tree(self.region["impact"], self.state["impact"], self.county["impact"])

    def percentages_tree(self) -> dict[str, Any]:
        return _tree(
            self.percentages("region"), self.percentages("state"), self.percentages("county")
        )

    def to_dict(self) -> dict[str, Any]:
        return {"emissions": self.emissions_tree(), "percentages": self.percentages_tree()}


def _tree(region: pd.Series, state: pd.Series, county: pd.Series) -> dict[str, Any]:
    state_tree: dict[str, dict[int, float]] = {}
    for (state_id, month), value in state.items():
        state_tree.setdefault(str(state_id), {})[int(month)] = float(value)

    county_tree: dict[str, dict[str, dict[int, float]]] = {}
    for (state_id, county_id, month), value in county.items():
        county_tree.setdefault(str(state_id), {}).setdefault(str(county_id), {})[int(month)] = float(
            value
        )

    return {
        "region": {int(month): float(value) for month, value in region.items()},
        "state": state_tree,
        "county": county_tree,
    }


def aggregate_field(displacement: UnitHourlyDisplacement, units: pd.DataFrame) -> FieldAggregate:
    """Aggregate one field's per-unit hourly values by month, state and county."""

    original = _unit_monthly(displacement.original, displacement.months)
    post = _unit_monthly(displacement.post, displacement.months)

    region = pd.DataFrame({"original": original.sum(axis=0), "post": post.sum(axis=0)})
    region.index = region.index.astype(int)
    region.index.name = "month"
    region["impact"] = region["post"] - region["original"]

    return FieldAggregate(
        field=displacement.field,
        annual=AnnualChange.from_totals(region["original"].sum(), region["post"].sum()),
        region=region,
        state=_level_frame(original, post, units, STATE_KEYS),
        county=_level_frame(original, post, units, COUNTY_KEYS),
    )


def emission_rates(annual: Mapping[str, AnnualChange]) -> dict[str, AnnualChange]:
    """Return pollutant mass per unit of generation for the original and post cases.

    A zero generation total yields a zero rate.
    """

    generation = annual[GENERATION_FIELD]

    def _rate(mass: float, energy: float) -> float:
        return 0.0 if energy == 0.0 else mass / energy

    rates: dict[str, AnnualChange] = {}
    for pollutant in POLLUTANTS:
        if pollutant not in annual:
            continue
        totals = annual[pollutant]
        rates[pollutant] = AnnualChange.from_totals(
            _rate(totals.original, generation.original),
            _rate(totals.post, generation.post),
        )
    return rates


def state_changes(aggregates: Iterable[FieldAggregate]) -> pd.DataFrame:
    """Return annual impact per state (rows) and field (columns)."""

    columns = {
        aggregate.field: aggregate.state["impact"].groupby(level="state").sum()
        for aggregate in aggregates
    }
    frame = pd.DataFrame(columns).fillna(0.0)
    frame.index.name = "state"
    return frame.sort_index()


__all__ = [
    "AnnualChange",
    "FieldAggregate",
    "VALUE_COLUMNS",
    "aggregate_field",
    "emission_rates",
    "percent_change",
    "state_changes",
]
