"""Displacement engine public API."""

from __future__ import annotations

from eere_engine.aggregation import AnnualChange, FieldAggregate, percent_change
from eere_engine.dataset import LoadBinCurves, RegionalDataset, RenewableDefaults
from eere_engine.displacement import UnitDisplacementCalculator, UnitHourlyDisplacement
from eere_engine.eere import HourlyEereProfile, LimitValidation, calculate_eere_profile
from eere_engine.errors import (
    DatasetValidationError,
    DegenerateSeriesError,
    HardLimitExceeded,
    InvalidInputError,
    MissingDatasetError,
)
from eere_engine.exceedance import calculate_exceedance
from eere_engine.inputs import EereInputs
from eere_engine.orchestrate import run_displacement, run_region
from eere_engine.outputs import DisplacementResult

__all__ = [
    "AnnualChange",
    "DatasetValidationError",
    "DegenerateSeriesError",
    "DisplacementResult",
    "EereInputs",
    "FieldAggregate",
    "HardLimitExceeded",
    "HourlyEereProfile",
    "InvalidInputError",
    "LimitValidation",
    "LoadBinCurves",
    "MissingDatasetError",
    "RegionalDataset",
    "RenewableDefaults",
    "UnitDisplacementCalculator",
    "UnitHourlyDisplacement",
    "calculate_eere_profile",
    "calculate_exceedance",
    "percent_change",
    "run_displacement",
    "run_region",
]
