from . import eere_defaults as eere_defaults_module
from . import rdf as rdf_module
from .eere_defaults import eere_defaults_path, load_eere_defaults
from .rdf import load_regional_dataset, rdf_path


def clear_cache() -> None:
    """Drop every cached dataset so the next load re-reads the files."""

    rdf_module.clear_cache()
    eere_defaults_module.clear_cache()


__all__ = [
    "clear_cache",
    "eere_defaults_path",
    "load_eere_defaults",
    "load_regional_dataset",
    "rdf_path",
]
