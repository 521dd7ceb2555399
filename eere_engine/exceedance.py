"""Severity scoring for hourly loads that exceed a displacement limit."""

from __future__ import annotations

import numpy as np


def calculate_exceedance(calculated: float, limit: float, scale: float) -> float:
    """Return the severity of ``calculated`` relative to ``limit``.

    Both values are compared by magnitude.  Within the limit the severity is
    zero; beyond it the score is ``(|calculated| / |limit| - 1) * scale +
    scale`` so that a result only just over the limit scores ``scale``.  Soft
    (scale 15) and hard (scale 30) scores are therefore comparable without
    re-normalising.

    Raises
    ------
    ValueError
        If ``limit`` is zero while ``calculated`` is not; callers must reject
        zero-load hours before scoring them.
    """

    load = abs(float(calculated))
    bound = abs(float(limit))
    if load <= bound:
        return 0.0
    if bound == 0.0:
        raise ValueError("Exceedance limit must be non-zero when the calculated load is non-zero")
    return (load / bound - 1.0) * scale + scale


def calculate_exceedances(
    calculated: np.ndarray, limits: np.ndarray, scale: float
) -> np.ndarray:
    """Vectorised :func:`calculate_exceedance` over aligned hourly arrays."""

    loads = np.abs(np.asarray(calculated, dtype=float))
    bounds = np.abs(np.asarray(limits, dtype=float))
    if loads.shape != bounds.shape:
        raise ValueError("Calculated loads and limits must have the same length")

    over = loads > bounds
    if np.any(over & (bounds == 0.0)):
        raise ValueError("Exceedance limit must be non-zero when the calculated load is non-zero")

    result = np.zeros_like(loads)
    result[over] = (loads[over] / bounds[over] - 1.0) * scale + scale
    return result


__all__ = ["calculate_exceedance", "calculate_exceedances"]
