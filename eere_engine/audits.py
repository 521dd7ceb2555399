"""Post-run reconciliation checks for displacement aggregates."""
from __future__ import annotations

from typing import Any, Iterable

import pandas as pd

from eere_engine.aggregation import VALUE_COLUMNS, FieldAggregate
from eere_engine.constants import AUDIT_ABS_TOL, AUDIT_REL_TOL


def _max_abs_difference(a: pd.Series, b: pd.Series) -> float:
    if a.empty and b.empty:
        return 0.0
    combined_index = a.index.union(b.index)
    aligned_a = a.reindex(combined_index, fill_value=0.0)
    aligned_b = b.reindex(combined_index, fill_value=0.0)
    return float((aligned_a - aligned_b).abs().max())


def _allowed_gap(reference: pd.Series, rel_tol: float, abs_tol: float) -> float:
    scale = float(reference.abs().max()) if not reference.empty else 0.0
    return max(abs_tol, rel_tol * scale)


def _check(
    section: dict[str, Any],
    name: str,
    lhs: pd.Series,
    rhs: pd.Series,
    rel_tol: float,
    abs_tol: float,
) -> None:
    gap = _max_abs_difference(lhs, rhs)
    section["max_gap"] = max(section["max_gap"], gap)
    if gap > _allowed_gap(rhs, rel_tol, abs_tol):
        section["passed"] = False
        section["issues"].append(name)


def audit_field(
    aggregate: FieldAggregate,
    *,
    rel_tol: float = AUDIT_REL_TOL,
    abs_tol: float = AUDIT_ABS_TOL,
) -> dict[str, Any]:
    """Return the reconciliation report for one field's aggregates."""

    section: dict[str, Any] = {"passed": True, "max_gap": 0.0, "issues": []}

    for column in VALUE_COLUMNS:
        county_by_state = aggregate.county[column].groupby(level=["state", "month"]).sum()
        _check(
            section,
            f"county_state_{column}_mismatch",
            county_by_state,
            aggregate.state[column],
            rel_tol,
            abs_tol,
        )

        state_by_month = aggregate.state[column].groupby(level="month").sum()
        _check(
            section,
            f"state_region_{column}_mismatch",
            state_by_month,
            aggregate.region[column],
            rel_tol,
            abs_tol,
        )

        annual_value = getattr(aggregate.annual, column)
        _check(
            section,
            f"monthly_annual_{column}_mismatch",
            pd.Series([float(aggregate.region[column].sum())]),
            pd.Series([annual_value]),
            rel_tol,
            abs_tol,
        )

    return section


def run_audits(
    aggregates: Iterable[FieldAggregate],
    *,
    rel_tol: float = AUDIT_REL_TOL,
    abs_tol: float = AUDIT_ABS_TOL,
) -> dict[str, Any]:
    """Return a structured audit report keyed by field name."""

    report: dict[str, Any] = {}
    for aggregate in aggregates:
        report[aggregate.field] = audit_field(aggregate, rel_tol=rel_tol, abs_tol=abs_tol)
    return report


def failed_checks(report: dict[str, Any]) -> list[str]:
    """Return ``field:issue`` labels for every failed check in ``report``."""

    return [
        f"{field}:{issue}"
        for field, section in report.items()
        if not section.get("passed", True)
        for issue in section.get("issues", [])
    ]


__all__ = ["audit_field", "failed_checks", "run_audits"]
