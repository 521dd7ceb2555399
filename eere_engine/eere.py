"""Conversion of EERE program inputs into an hourly regional load change.

The calculation follows the regional "CalculateEERE" worksheet:

* annual and constant reductions are spread across every hour and grossed up
  for transmission and distribution losses;
* percentage reductions apply either to every hour (broad programs) or to the
  hours whose load sits above the ``1 - top_hours/100`` percentile;
* wind and solar capacity offsets load using the region's hourly capacity
  factors.

Each hour is then scored against the soft (region ``max_ee_percent``) and hard
(30%) displacement limits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, Sequence

import numpy as np
import pandas as pd

from eere_engine.constants import (
    HARD_LIMIT_PERCENT,
    HARD_LIMIT_SCALE,
    SOFT_LIMIT_SCALE,
)
from eere_engine.dataset import RENEWABLE_PROFILE_COLUMNS, RenewableDefaults
from eere_engine.errors import DegenerateSeriesError, InvalidInputError
from eere_engine.exceedance import calculate_exceedances
from eere_engine.inputs import EereInputs

LOGGER = logging.getLogger(__name__)

LimitType = Literal["soft", "hard"]


@dataclass(frozen=True)
class LimitValidation:
    """Outcome of checking an hourly profile against one displacement limit."""

    limit_type: LimitType
    valid: bool
    top_exceedance_value: float
    top_exceedance_index: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "limitType": self.limit_type,
            "topExceedanceValue": self.top_exceedance_value,
            "topExceedanceIndex": self.top_exceedance_index,
        }


@dataclass(frozen=True, eq=False)
class HourlyEereProfile:
    """Hourly regional load change produced by an EERE input set."""

    hourly_eere: np.ndarray
    original_load: np.ndarray
    soft_exceedances: np.ndarray
    hard_exceedances: np.ndarray
    soft: LimitValidation
    hard: LimitValidation

    def __post_init__(self) -> None:
        for array in (
            self.hourly_eere,
            self.original_load,
            self.soft_exceedances,
            self.hard_exceedances,
        ):
            array.setflags(write=False)

    @property
    def hour_count(self) -> int:
        return int(self.hourly_eere.size)

    @property
    def post_load(self) -> np.ndarray:
        """Regional load after the EERE change is applied."""
        return self.original_load + self.hourly_eere

    @property
    def percent_change(self) -> np.ndarray:
        """Hourly change as a percentage of the original load."""
        return np.divide(
            self.hourly_eere * 100.0,
            self.original_load,
            out=np.zeros_like(self.hourly_eere),
            where=self.original_load != 0.0,
        )

    @property
    def soft_valid(self) -> bool:
        return self.soft.valid

    @property
    def hard_valid(self) -> bool:
        return self.hard.valid

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "original_load_mw": self.original_load,
                "hourly_eere_mw": self.hourly_eere,
                "post_load_mw": self.post_load,
                "percent_change": self.percent_change,
                "soft_exceedance": self.soft_exceedances,
                "hard_exceedance": self.hard_exceedances,
            }
        )


def top_percentile_threshold(hourly_loads: np.ndarray, top_hours: float) -> float:
    """Return the load above which an hour belongs to the top ``top_hours`` percent.

    Uses the midpoint-rank (Hazen) estimator: the ``p`` percentile of ``n``
    sorted values sits at zero-based position ``n * p - 0.5``, interpolated
    linearly and clamped to the first and last values.
    """

    percentile = (1.0 - float(top_hours) / 100.0) * 100.0
    return float(np.percentile(hourly_loads, percentile, method="hazen"))


def _validate_limit(exceedances: np.ndarray, limit_type: LimitType) -> LimitValidation:
    valid = float(exceedances.sum()) == 0.0
    if valid:
        return LimitValidation(limit_type, True, 0.0, 0)
    index = int(np.argmax(exceedances))
    return LimitValidation(limit_type, False, float(exceedances[index]), index)


def _as_load_array(hourly_loads: Sequence[float] | np.ndarray | pd.Series) -> np.ndarray:
    try:
        loads = np.asarray(hourly_loads, dtype=float)
    except (TypeError, ValueError) as exc:
        raise DegenerateSeriesError("Hourly loads must be numeric") from exc
    if loads.ndim != 1 or loads.size == 0:
        raise DegenerateSeriesError("Hourly load series is empty")
    if not np.all(np.isfinite(loads)):
        raise DegenerateSeriesError("Hourly load series contains non-finite values")
    if np.any(loads <= 0.0):
        raise DegenerateSeriesError("Hourly loads must be positive to evaluate displacement limits")
    return loads


def _renewable_profile(
    eere_defaults: RenewableDefaults | pd.DataFrame | None, hours: int
) -> pd.DataFrame:
    if eere_defaults is None:
        return pd.DataFrame(0.0, index=pd.RangeIndex(hours), columns=list(RENEWABLE_PROFILE_COLUMNS))
    frame = eere_defaults.data if isinstance(eere_defaults, RenewableDefaults) else eere_defaults
    if len(frame.index) != hours:
        raise InvalidInputError(
            f"Renewable defaults cover {len(frame.index)} hours; the load series has {hours}",
            ("eere_defaults",),
        )
    return frame.reset_index(drop=True)


def calculate_eere_profile(
    inputs: EereInputs,
    hourly_loads: Sequence[float] | np.ndarray | pd.Series,
    eere_defaults: RenewableDefaults | pd.DataFrame | None = None,
    *,
    line_loss: float,
    max_ee_percent: float,
) -> HourlyEereProfile:
    """Return the hourly load change and limit validation for ``inputs``.

    ``eere_defaults`` may be omitted only when no renewable capacity is
    entered.  ``line_loss`` is the region's transmission and distribution loss
    factor and ``max_ee_percent`` its soft displacement limit.
    """

    inputs.validate()
    loads = _as_load_array(hourly_loads)
    hours = loads.size

    if not 0.0 <= float(line_loss) < 1.0:
        raise InvalidInputError("Region line loss must lie in the interval [0, 1)", ("line_loss",))
    if float(max_ee_percent) <= 0.0:
        raise InvalidInputError("Region max EE percent must be positive", ("max_ee_percent",))
    if eere_defaults is None and inputs.has_renewables:
        raise InvalidInputError(
            "Renewable capacity was entered but no renewable defaults were supplied",
            ("eere_defaults",),
        )

    loss_factor = 1.0 / (1.0 - float(line_loss))
    hourly_mw_reduction = (inputs.annual_gwh * 1000.0 / hours) * loss_factor
    percent_reduction = -inputs.active_percent_reduction / 100.0 * loss_factor

    if inputs.broad_program:
        targeted = np.ones(hours, dtype=bool)
    else:
        targeted = loads > top_percentile_threshold(loads, inputs.top_hours)

    defaults = _renewable_profile(eere_defaults, hours)
    renewable = (
        inputs.onshore_wind * defaults["onshore_wind"].to_numpy(dtype=float)
        + inputs.offshore_wind * defaults["offshore_wind"].to_numpy(dtype=float)
        + inputs.utility_solar * defaults["utility_pv"].to_numpy(dtype=float)
        + inputs.rooftop_solar * defaults["rooftop_pv"].to_numpy(dtype=float) * loss_factor
    )

    initial = np.where(targeted, loads * percent_reduction, 0.0)
    calculated = initial - renewable - hourly_mw_reduction - inputs.constant_mwh * loss_factor

    soft_exceedances = calculate_exceedances(
        calculated, loads * -float(max_ee_percent) / 100.0, SOFT_LIMIT_SCALE
    )
    hard_exceedances = calculate_exceedances(
        calculated, loads * -HARD_LIMIT_PERCENT / 100.0, HARD_LIMIT_SCALE
    )

    profile = HourlyEereProfile(
        hourly_eere=calculated,
        original_load=loads.copy(),
        soft_exceedances=soft_exceedances,
        hard_exceedances=hard_exceedances,
        soft=_validate_limit(soft_exceedances, "soft"),
        hard=_validate_limit(hard_exceedances, "hard"),
    )
    LOGGER.debug(
        "EERE profile: %d hours, %d targeted, total change %.3f MWh",
        hours,
        int(targeted.sum()) if inputs.active_percent_reduction else 0,
        float(calculated.sum()),
    )
    return profile


__all__ = [
    "HourlyEereProfile",
    "LimitType",
    "LimitValidation",
    "calculate_eere_profile",
    "top_percentile_threshold",
]
