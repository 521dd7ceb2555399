"""Environment and ``run_config.toml`` overrides for engine constants.

Lookups run in order: an ``EERE_ENGINE_<NAME>`` environment variable, the file
named by ``EERE_ENGINE_RUN_CONFIG``, then ``run_config.toml`` at the repository
root.  Within a file the ``[engine.constants]`` table wins over a top-level
``[constants]`` table.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Mapping, TypeVar

try:  # pragma: no cover - Python < 3.11 fallback
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - dependency fallback
    import tomli as tomllib  # type: ignore[import-not-found]


LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "EERE_ENGINE_"
RUN_CONFIG_ENV = "EERE_ENGINE_RUN_CONFIG"
_TABLE_PATHS: tuple[tuple[str, ...], ...] = (("constants",), ("engine", "constants"))

T = TypeVar("T")


def default_run_config() -> Path:
    return Path(__file__).resolve().parents[1] / "run_config.toml"


def _read_table(path: Path) -> dict[str, Any]:
    """Return the upper-cased constants tables of ``path`` merged together."""

    try:
        with path.open("rb") as handle:
            document = tomllib.load(handle)
    except FileNotFoundError:
        return {}
    except (OSError, tomllib.TOMLDecodeError) as exc:
        LOGGER.warning("Ignoring unreadable run configuration %s: %s", path, exc)
        return {}

    merged: dict[str, Any] = {}
    for keys in _TABLE_PATHS:
        node: Any = document
        for key in keys:
            node = node.get(key) if isinstance(node, Mapping) else None
        if isinstance(node, Mapping):
            merged.update({str(name).upper(): value for name, value in node.items()})
    return merged


@lru_cache(maxsize=1)
def file_overrides() -> dict[str, Any]:
    """Constants declared in the run configuration files, explicit file last."""

    overrides = _read_table(default_run_config())
    explicit = os.environ.get(RUN_CONFIG_ENV)
    if explicit:
        overrides.update(_read_table(Path(explicit).expanduser()))
    return overrides


def get_constant(name: str, default: T, cast_func: Callable[[Any], T] | None = None) -> T:
    """Return the override for ``name`` converted with ``cast_func``, else ``default``.

    Unconvertible overrides are logged and the default is kept.
    """

    key = name.upper()
    raw = os.environ.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        raw = file_overrides().get(key)
    if raw is None:
        return default

    convert = cast_func if cast_func is not None else type(default)
    try:
        return convert(raw)
    except (TypeError, ValueError) as exc:
        LOGGER.warning("Invalid override for %s=%r: %s", key, raw, exc)
        return default


def parse_int_tuple(raw: Any) -> tuple[int, ...]:
    """Convert ``"5,6,7"`` or ``[5, 6, 7]`` into a tuple of integers."""

    if isinstance(raw, str):
        return tuple(int(part) for part in raw.replace(";", ",").split(",") if part.strip())
    if isinstance(raw, (list, tuple)):
        return tuple(int(part) for part in raw)
    raise TypeError(f"Expected a comma separated string or list, got {type(raw).__name__}")


def clear_cache() -> None:
    file_overrides.cache_clear()


__all__ = [
    "ENV_PREFIX",
    "RUN_CONFIG_ENV",
    "clear_cache",
    "file_overrides",
    "get_constant",
    "parse_int_tuple",
]
