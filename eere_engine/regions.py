"""Canonical AVERT region definitions and identifier normalization."""

from __future__ import annotations

import re
from collections import OrderedDict
from dataclasses import dataclass
from functools import lru_cache

# Transmission and distribution loss factors by interconnection.
_LINE_LOSS = {
    "texas": 0.0495352907853342,
    "eastern": 0.0750240831578937,
    "western": 0.0838715063900653,
}


@dataclass(frozen=True)
class RegionRecord:
    """Static metadata describing one AVERT region."""

    id: str
    name: str
    line_loss: float
    offshore_wind: bool


# Ordered records provide deterministic iteration for reports and the CLI.
REGION_RECORDS: tuple[RegionRecord, ...] = (
    RegionRecord("CA", "California", _LINE_LOSS["western"], True),
    RegionRecord("NCSC", "Carolinas", _LINE_LOSS["eastern"], True),
    RegionRecord("CENT", "Central", _LINE_LOSS["eastern"], False),
    RegionRecord("FL", "Florida", _LINE_LOSS["eastern"], False),
    RegionRecord("MIDA", "Mid-Atlantic", _LINE_LOSS["eastern"], True),
    RegionRecord("MIDW", "Midwest", _LINE_LOSS["eastern"], False),
    RegionRecord("NE", "New England", _LINE_LOSS["eastern"], True),
    RegionRecord("NY", "New York", _LINE_LOSS["eastern"], True),
    RegionRecord("NW", "Northwest", _LINE_LOSS["western"], True),
    RegionRecord("RM", "Rocky Mountains", _LINE_LOSS["western"], False),
    RegionRecord("SE", "Southeast", _LINE_LOSS["eastern"], False),
    RegionRecord("SW", "Southwest", _LINE_LOSS["western"], False),
    RegionRecord("TN", "Tennessee", _LINE_LOSS["eastern"], False),
    RegionRecord("TE", "Texas", _LINE_LOSS["texas"], False),
)

REGION_MAP: "OrderedDict[str, RegionRecord]" = OrderedDict(
    (record.id, record) for record in REGION_RECORDS
)

_MANUAL_ALIASES = {
    "carolinas": "NCSC",
    "car": "NCSC",
    "midatlantic": "MIDA",
    "midwest": "MIDW",
    "rockies": "RM",
    "tx": "TE",
    "ercot": "TE",
    "tva": "TN",
}


def _sanitize(value: str | None) -> str:
    """Return a normalized lowercase token with non-alphanumerics replaced."""
    return re.sub(r"[^a-z0-9]+", "_", str(value or "").strip().lower()).strip("_")


@lru_cache(maxsize=None)
def _region_alias_map() -> dict[str, str]:
    """Build mapping from normalized tokens to canonical region IDs."""
    alias_map: dict[str, str] = {}

    def _record_alias(token: str | None, canonical: str) -> None:
        norm = _sanitize(token)
        if not norm:
            return
        alias_map.setdefault(norm, canonical)
        compact = norm.replace("_", "")
        if compact:
            alias_map.setdefault(compact, canonical)

    for record in REGION_RECORDS:
        _record_alias(record.id, record.id)
        _record_alias(record.name, record.id)

    for token, canonical in _MANUAL_ALIASES.items():
        _record_alias(token, canonical)

    return alias_map


def normalize_region_id(value: str | None) -> str:
    """Return the canonical region id for ``value`` or raise ``ValueError``."""

    token = _sanitize(value)
    if not token:
        raise ValueError("A region identifier is required.")

    alias_map = _region_alias_map()
    for candidate in (token, token.replace("_", "")):
        match = alias_map.get(candidate)
        if match:
            return match

    known = ", ".join(REGION_MAP)
    raise ValueError(f"Unknown region identifier: {value!r}. Known regions: {known}.")


def get_region(value: str | None) -> RegionRecord:
    """Return the :class:`RegionRecord` for ``value`` (any recognised alias)."""

    return REGION_MAP[normalize_region_id(value)]


__all__ = [
    "REGION_MAP",
    "REGION_RECORDS",
    "RegionRecord",
    "get_region",
    "normalize_region_id",
]
