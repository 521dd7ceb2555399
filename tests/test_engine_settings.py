"""Tests for ``eere_engine.settings`` helpers."""

from __future__ import annotations

from pathlib import Path

from eere_engine import settings


def test_data_root_env_nested_directory(tmp_path, monkeypatch):
    """Environment overrides pointing at the repository root find ``input/avert``."""

    nested = tmp_path / "input" / "avert"
    nested.mkdir(parents=True)

    monkeypatch.setenv(settings.DATA_ROOT_ENV, str(tmp_path))
    settings.configure_data_root(None)
    try:
        discovered = settings.data_root()
    finally:
        settings.data_root.cache_clear()

    assert discovered == nested.resolve()


def test_configured_root_takes_precedence(tmp_path, monkeypatch):
    env_root = tmp_path / "env"
    env_root.mkdir()
    configured = tmp_path / "configured"
    configured.mkdir()

    monkeypatch.setenv(settings.DATA_ROOT_ENV, str(env_root))
    settings.configure_data_root(configured)
    try:
        assert settings.data_root() == configured.resolve()
    finally:
        settings.configure_data_root(None)

    assert settings.data_root() == env_root.resolve()
    settings.data_root.cache_clear()


def test_json_file_maps_to_parent(tmp_path):
    file_path = tmp_path / "rdf_NE.json"
    file_path.write_text("{}", encoding="utf-8")

    settings.configure_data_root(file_path)
    try:
        assert settings.data_root() == Path(tmp_path).resolve()
    finally:
        settings.configure_data_root(None)
