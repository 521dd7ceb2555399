"""Structured container for the results of one displacement run."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import pandas as pd

from eere_engine.aggregation import AnnualChange, FieldAggregate
from eere_engine.constants import DISPLACEMENT_FIELDS
from eere_engine.eere import HourlyEereProfile


@dataclass(frozen=True, eq=False)
class DisplacementResult:
    """Container bundling the outputs of :func:`eere_engine.orchestrate.run_displacement`."""

    region_id: str
    profile: HourlyEereProfile
    annual: Mapping[str, AnnualChange]
    emission_rates: Mapping[str, AnnualChange]
    monthly: Mapping[str, FieldAggregate]
    state_changes: pd.DataFrame
    year: int | None = None
    method: str = "proportional"
    emissions_flags: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    audits: Mapping[str, Any] = field(default_factory=dict)
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def hard_limit_exceeded(self) -> bool:
        return not self.profile.hard_valid

    @property
    def soft_limit_exceeded(self) -> bool:
        return not self.profile.soft_valid

    @property
    def validation(self) -> dict[str, dict[str, Any]]:
        """Soft and hard limit validation records keyed by limit type."""

        return {"soft": self.profile.soft.to_dict(), "hard": self.profile.hard.to_dict()}

    def monthly_changes(self) -> dict[str, dict[str, Any]]:
        """Return the nested monthly emissions and percentages mapping per field."""

        return {name: self.monthly[name].to_dict() for name in DISPLACEMENT_FIELDS if name in self.monthly}

    def annual_frame(self) -> pd.DataFrame:
        """Return annual totals and emission rates as a tidy table."""

        rows: list[dict[str, Any]] = []
        for name in DISPLACEMENT_FIELDS:
            if name in self.annual:
                rows.append({"field": name, "measure": "total", **self.annual[name].to_dict()})
        for name in DISPLACEMENT_FIELDS:
            if name in self.emission_rates:
                rows.append({"field": name, "measure": "rate", **self.emission_rates[name].to_dict()})
        return pd.DataFrame(rows, columns=["field", "measure", "original", "post", "impact"])

    def to_dict(self) -> dict[str, Any]:
        return {
            "region": self.region_id,
            "year": self.year,
            "method": self.method,
            "validation": self.validation,
            "annual": {name: value.to_dict() for name, value in self.annual.items()},
            "emissionRates": {name: value.to_dict() for name, value in self.emission_rates.items()},
            "monthly": self.monthly_changes(),
            "stateChanges": {
                str(state): {str(col): float(value) for col, value in row.items()}
                for state, row in self.state_changes.iterrows()
            },
            "emissionsFlags": {name: list(units) for name, units in self.emissions_flags.items()},
            "audits": dict(self.audits),
            "warnings": list(self.warnings),
        }


__all__ = ["DisplacementResult"]
