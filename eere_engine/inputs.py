"""EERE program inputs and their validation."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields
from typing import Any, Mapping

from eere_engine.errors import InvalidInputError

# camelCase keys used by the web client map onto the snake_case attributes.
_FIELD_ALIASES: dict[str, str] = {
    "annualGwh": "annual_gwh",
    "constantMwh": "constant_mwh",
    "constantMw": "constant_mwh",
    "broadProgram": "broad_program",
    "topHours": "top_hours",
    "onshoreWind": "onshore_wind",
    "windCapacity": "onshore_wind",
    "offshoreWind": "offshore_wind",
    "utilitySolar": "utility_solar",
    "rooftopSolar": "rooftop_solar",
}

_PERCENT_FIELDS = ("broad_program", "reduction", "top_hours")
RENEWABLE_FIELDS = ("onshore_wind", "offshore_wind", "utility_solar", "rooftop_solar")


@dataclass(frozen=True)
class EereInputs:
    """User-supplied EERE program parameters for one region.

    Attributes
    ----------
    annual_gwh:
        Annual energy reduction spread evenly over every hour (GWh).
    constant_mwh:
        Constant reduction applied in every hour (MW).
    broad_program:
        Percentage reduction applied to the load in all hours.
    reduction:
        Percentage reduction applied only to the ``top_hours`` percent of hours
        with the highest load.
    top_hours:
        Percentile cutoff (0-100) selecting the hours targeted by ``reduction``.
    onshore_wind, offshore_wind, utility_solar, rooftop_solar:
        Installed renewable capacity in megawatts.
    """

    annual_gwh: float = 0.0
    constant_mwh: float = 0.0
    broad_program: float = 0.0
    reduction: float = 0.0
    top_hours: float = 0.0
    onshore_wind: float = 0.0
    offshore_wind: float = 0.0
    utility_solar: float = 0.0
    rooftop_solar: float = 0.0

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None) -> "EereInputs":
        """Build inputs from ``values`` treating absent or blank entries as zero."""

        if values is None:
            return cls()
        if not isinstance(values, Mapping):
            raise InvalidInputError("EERE inputs must be provided as a mapping")

        known = {item.name for item in fields(cls)}
        parsed: dict[str, float] = {}
        for raw_key, raw_value in values.items():
            key = _FIELD_ALIASES.get(str(raw_key), str(raw_key))
            if key not in known:
                raise InvalidInputError("Unknown EERE input field", (str(raw_key),))
            parsed[key] = _coerce_number(key, raw_value)
        return cls(**parsed)

    @property
    def is_empty(self) -> bool:
        """Return ``True`` when no program or capacity is entered.

        ``top_hours`` alone does not count: it only selects hours for ``reduction``.
        """

        return all(
            value == 0.0 for name, value in asdict(self).items() if name != "top_hours"
        )

    @property
    def has_renewables(self) -> bool:
        return any(getattr(self, name) != 0.0 for name in RENEWABLE_FIELDS)

    @property
    def active_percent_reduction(self) -> float:
        """Return whichever of the broad or targeted percentages is in use."""

        return self.broad_program or self.reduction

    def validate(self, *, offshore_wind_allowed: bool = True) -> "EereInputs":
        """Raise :class:`InvalidInputError` for contradictory or out-of-range values."""

        for item in fields(self):
            value = getattr(self, item.name)
            if not math.isfinite(value):
                raise InvalidInputError("EERE inputs must be finite numbers", (item.name,))
            if value < 0:
                raise InvalidInputError("EERE inputs must not be negative", (item.name,))

        for name in _PERCENT_FIELDS:
            if getattr(self, name) > 100:
                raise InvalidInputError("Percentages must lie between 0 and 100", (name,))

        if self.annual_gwh and self.constant_mwh:
            raise InvalidInputError(
                "Annual and constant reductions cannot both be entered",
                ("annual_gwh", "constant_mwh"),
            )
        if self.broad_program and self.reduction:
            raise InvalidInputError(
                "Broad and targeted percentage programs cannot both be entered",
                ("broad_program", "reduction"),
            )
        if self.reduction and not self.top_hours:
            raise InvalidInputError(
                "A targeted reduction requires the percentage of top hours",
                ("reduction", "top_hours"),
            )
        if self.offshore_wind and not offshore_wind_allowed:
            raise InvalidInputError(
                "Offshore wind is not available in the selected region",
                ("offshore_wind",),
            )
        return self

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


def _coerce_number(name: str, value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise InvalidInputError("EERE inputs must be numeric", (name,))
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return 0.0
        value = text
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"EERE input {value!r} is not a number", (name,)) from exc


__all__ = ["EereInputs", "RENEWABLE_FIELDS"]
