"""Run the EERE displacement pipeline for one region."""
from __future__ import annotations

import logging
import warnings
from pathlib import Path
from typing import Any, Mapping

from eere_engine.aggregation import (
    AnnualChange,
    FieldAggregate,
    aggregate_field,
    emission_rates,
    state_changes,
)
from eere_engine.audits import failed_checks, run_audits
from eere_engine.constants import DISPLACEMENT_FIELDS, GENERATION_FIELD, HARD_LIMIT_PERCENT
from eere_engine.dataset import RegionalDataset, RenewableDefaults
from eere_engine.displacement import PROPORTIONAL, UnitDisplacementCalculator
from eere_engine.eere import calculate_eere_profile
from eere_engine.errors import HardLimitExceeded, InvalidInputError, MissingDatasetError
from eere_engine.inputs import EereInputs
from eere_engine.outputs import DisplacementResult
from eere_engine.regions import REGION_MAP, normalize_region_id

LOGGER = logging.getLogger(__name__)


def _coerce_inputs(inputs: EereInputs | Mapping[str, Any] | None) -> EereInputs:
    if isinstance(inputs, EereInputs):
        return inputs
    return EereInputs.from_mapping(inputs)


def _same_region(candidate: str, region_id: str) -> bool:
    try:
        return normalize_region_id(candidate) == region_id
    except ValueError:
        return False


def _validate_inputs(
    region_id: str,
    inputs: EereInputs,
    dataset: RegionalDataset | None,
    eere_defaults: RenewableDefaults | None,
) -> RegionalDataset:
    if dataset is None:
        raise MissingDatasetError(region_id)
    if not _same_region(dataset.region_id, region_id):
        raise MissingDatasetError(region_id, f"baseline dataset (received {dataset.region_id})")

    if inputs.is_empty:
        raise InvalidInputError("At least one EERE program or renewable capacity must be entered")

    region = REGION_MAP.get(region_id)
    inputs.validate(offshore_wind_allowed=region.offshore_wind if region else True)

    if inputs.has_renewables:
        if eere_defaults is None:
            raise MissingDatasetError(region_id, "renewable defaults")
        if not _same_region(eere_defaults.region_id, region_id):
            raise MissingDatasetError(
                region_id, f"renewable defaults (received {eere_defaults.region_id})"
            )
    return dataset


def run_displacement(
    region_id: str,
    inputs: EereInputs | Mapping[str, Any] | None,
    dataset: RegionalDataset | None,
    eere_defaults: RenewableDefaults | None = None,
    *,
    method: str = PROPORTIONAL,
) -> DisplacementResult:
    """Return the displacement result for ``inputs`` applied to ``dataset``.

    A hard-limit exceedance does not stop the run: the result is flagged and a
    :class:`~eere_engine.errors.HardLimitExceeded` warning is issued.  Soft-limit
    exceedances are only logged.
    """

    region = normalize_region_id(region_id)
    program = _coerce_inputs(inputs)
    baseline = _validate_inputs(region, program, dataset, eere_defaults)

    LOGGER.info("Starting displacement run for %s (%s apportionment)", region, method)

    profile = calculate_eere_profile(
        program,
        baseline.hourly_loads,
        eere_defaults if program.has_renewables else None,
        line_loss=baseline.line_loss,
        max_ee_percent=baseline.max_ee_percent,
    )

    messages: list[str] = []
    if not profile.soft_valid:
        message = (
            f"EERE profile exceeds the {baseline.max_ee_percent:g}% soft limit "
            f"(worst hour {profile.soft.top_exceedance_index})"
        )
        LOGGER.info(message)
        messages.append(message)
    if not profile.hard_valid:
        message = (
            f"EERE profile exceeds the {HARD_LIMIT_PERCENT:g}% hard limit "
            f"(worst hour {profile.hard.top_exceedance_index})"
        )
        LOGGER.warning(message)
        warnings.warn(message, HardLimitExceeded, stacklevel=2)
        messages.append(message)

    calculator = UnitDisplacementCalculator(baseline, profile, method=method)
    monthly: dict[str, FieldAggregate] = {}
    for displacement in calculator.iter_fields(DISPLACEMENT_FIELDS):
        monthly[displacement.field] = aggregate_field(displacement, baseline.units)

    annual: dict[str, AnnualChange] = {name: aggregate.annual for name, aggregate in monthly.items()}
    emissions_flags: dict[str, tuple[str, ...]] = {}
    for name in DISPLACEMENT_FIELDS:
        held = calculator.held_units(name)
        if len(held):
            emissions_flags[name] = tuple(held)

    shortfall = int(calculator.shortfall_hours.sum())
    if shortfall:
        messages.append(
            f"Hourly reduction exceeds fossil generation in {shortfall} hours; "
            "the excess is not displaced"
        )

    audits = run_audits(monthly.values())
    failures = failed_checks(audits)
    if failures:
        message = f"Aggregation audits failed: {', '.join(failures)}"
        LOGGER.warning(message)
        messages.append(message)

    result = DisplacementResult(
        region_id=region,
        profile=profile,
        annual=annual,
        emission_rates=emission_rates(annual),
        monthly=monthly,
        state_changes=state_changes(monthly.values()),
        year=baseline.year,
        method=method,
        emissions_flags=emissions_flags,
        audits=audits,
        warnings=tuple(messages),
    )
    LOGGER.info(
        "Finished displacement run for %s: generation impact %.3f MWh",
        region,
        annual[GENERATION_FIELD].impact,
    )
    return result


def run_region(
    region_id: str,
    inputs: EereInputs | Mapping[str, Any] | None,
    *,
    base_path: str | Path | None = None,
    year: int | None = None,
    method: str = PROPORTIONAL,
) -> DisplacementResult:
    """Load the region's dataset files and run :func:`run_displacement`."""

    from eere_engine.data_loaders import load_eere_defaults, load_regional_dataset

    region = normalize_region_id(region_id)
    program = _coerce_inputs(inputs)
    dataset = load_regional_dataset(region, base_path, year)
    defaults = load_eere_defaults(region, base_path) if program.has_renewables else None
    return run_displacement(region, program, dataset, defaults, method=method)


__all__ = ["run_displacement", "run_region"]
