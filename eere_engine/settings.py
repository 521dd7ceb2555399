"""Shared engine configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from eere_engine.constants import DATASET_SUBDIR, REPO_ROOT

DATA_ROOT_ENV = "EERE_ENGINE_DATA_ROOT"

_CONFIGURED_DATA_ROOT: Path | None = None


def _coerce_data_root(base: Path) -> Path:
    """Return ``base`` or the ``avert`` dataset directory nested beneath it.

    A path to a dataset file maps to its directory, and a repository or
    ``input`` root maps to the ``input/avert`` tree inside it.
    """

    candidate = base.parent if base.suffix.lower() == ".json" else base
    if candidate.name.lower() != DATASET_SUBDIR:
        for nested in (
            candidate / "input" / DATASET_SUBDIR,
            candidate / "inputs" / DATASET_SUBDIR,
            candidate / DATASET_SUBDIR,
        ):
            if nested.is_dir():
                candidate = nested
                break
    try:
        return candidate.resolve()
    except OSError:
        return candidate


@lru_cache(maxsize=1)
def data_root() -> Path:
    """Return the directory containing regional baseline and EERE default files.

    Resolution order:

    1. A path registered through :func:`configure_data_root`.
    2. ``EERE_ENGINE_DATA_ROOT`` environment variable.
    3. Repository-style ``input/avert`` layout when running from source.
    4. Current working directory fallback.
    """

    if _CONFIGURED_DATA_ROOT is not None:
        return _CONFIGURED_DATA_ROOT

    env = os.getenv(DATA_ROOT_ENV)
    if env:
        return _coerce_data_root(Path(env).expanduser())

    repo_default = _coerce_data_root(REPO_ROOT)
    if repo_default.name.lower() == DATASET_SUBDIR:
        return repo_default

    return _coerce_data_root(Path.cwd())


def configure_data_root(path: os.PathLike[str] | str | None) -> None:
    """Register the dataset directory; ``None`` reverts to automatic discovery."""

    global _CONFIGURED_DATA_ROOT

    if path is None:
        _CONFIGURED_DATA_ROOT = None
        data_root.cache_clear()
        return

    _CONFIGURED_DATA_ROOT = _coerce_data_root(Path(path).expanduser())
    data_root.cache_clear()


__all__ = ["DATA_ROOT_ENV", "configure_data_root", "data_root"]
