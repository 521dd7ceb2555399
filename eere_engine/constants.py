"""Authoritative constants shared across the displacement engine."""

from __future__ import annotations

from pathlib import Path

from .constants_overrides import get_constant, parse_int_tuple


_PACKAGE_ROOT = Path(__file__).resolve().parent
REPO_ROOT = _PACKAGE_ROOT.parent

DATASET_SUBDIR = "avert"

# Output fields of the displacement pipeline in reporting order.
GENERATION_FIELD = "generation"
POLLUTANTS: tuple[str, ...] = ("so2", "nox", "co2", "pm25")
DISPLACEMENT_FIELDS: tuple[str, ...] = (GENERATION_FIELD, *POLLUTANTS)
MONTHS: tuple[int, ...] = tuple(range(1, 13))

# Regulatory limits on the share of hourly load an EERE profile may offset.
DEFAULT_MAX_EE_PERCENT: float = get_constant("DEFAULT_MAX_EE_PERCENT", 15.0, float)
HARD_LIMIT_PERCENT: float = get_constant("HARD_LIMIT_PERCENT", 30.0, float)
SOFT_LIMIT_SCALE: float = get_constant("SOFT_LIMIT_SCALE", 15.0, float)
HARD_LIMIT_SCALE: float = get_constant("HARD_LIMIT_SCALE", 30.0, float)

OZONE_SEASON_MONTHS: tuple[int, ...] = get_constant(
    "OZONE_SEASON_MONTHS", (5, 6, 7, 8, 9), parse_int_tuple
)

HOURS_PER_YEAR: int = get_constant("HOURS_PER_YEAR", 8760, int)
HOURS_PER_LEAP_YEAR: int = get_constant("HOURS_PER_LEAP_YEAR", 8784, int)

GENERATION_TOL: float = get_constant("GENERATION_TOL", 1e-9, float)
AUDIT_REL_TOL: float = get_constant("AUDIT_REL_TOL", 1e-6, float)
AUDIT_ABS_TOL: float = get_constant("AUDIT_ABS_TOL", 1e-6, float)


__all__ = [
    "REPO_ROOT",
    "DATASET_SUBDIR",
    "GENERATION_FIELD",
    "POLLUTANTS",
    "DISPLACEMENT_FIELDS",
    "MONTHS",
    "DEFAULT_MAX_EE_PERCENT",
    "HARD_LIMIT_PERCENT",
    "SOFT_LIMIT_SCALE",
    "HARD_LIMIT_SCALE",
    "OZONE_SEASON_MONTHS",
    "HOURS_PER_YEAR",
    "HOURS_PER_LEAP_YEAR",
    "GENERATION_TOL",
    "AUDIT_REL_TOL",
    "AUDIT_ABS_TOL",
]
