"""Loader for per-region renewable capacity factor profiles."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from eere_engine import settings as engine_settings
from eere_engine.data_loaders.rdf import read_json
from eere_engine.dataset import RenewableDefaults
from eere_engine.errors import DatasetValidationError, MissingDatasetError
from eere_engine.regions import normalize_region_id

LOG = logging.getLogger(__name__)


def eere_defaults_path(region_id: str, base_path: str | Path | None = None) -> Path:
    region = normalize_region_id(region_id)
    root = engine_settings.data_root() if base_path is None else Path(base_path).expanduser()
    return root / f"eere_defaults_{region}.json"


def parse_eere_defaults(payload: Any, path: Path, region_id: str) -> RenewableDefaults:
    records = payload.get("data") if isinstance(payload, Mapping) else payload
    if not isinstance(records, list) or not records:
        raise DatasetValidationError(path, "'data' must be a non-empty list of hourly records")
    try:
        return RenewableDefaults.from_records(region_id, records)
    except DatasetValidationError as exc:
        raise DatasetValidationError(path, exc.reason) from exc


@lru_cache(maxsize=8)
def _load_cached(path: str, region: str) -> RenewableDefaults:
    file_path = Path(path)
    LOG.debug("Reading renewable defaults for %s from %s", region, file_path)
    return parse_eere_defaults(read_json(file_path), file_path, region)


def load_eere_defaults(region_id: str, base_path: str | Path | None = None) -> RenewableDefaults:
    """Return the renewable defaults for ``region_id`` or raise :class:`MissingDatasetError`."""

    region = normalize_region_id(region_id)
    path = eere_defaults_path(region, base_path)
    if not path.exists():
        raise MissingDatasetError(region, "renewable defaults", path)
    return _load_cached(str(path.resolve()), region)


def clear_cache() -> None:
    _load_cached.cache_clear()


__all__ = ["clear_cache", "eere_defaults_path", "load_eere_defaults", "parse_eere_defaults"]
