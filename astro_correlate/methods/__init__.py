"""Correlation backends and the registry that resolves them by name."""

from astro_correlate.methods.base import MatchBackend, MatchInputs
from astro_correlate.methods.findoff import FindoffBackend, FindoffParams
from astro_correlate.methods.registry import BackendRegistry
from astro_correlate.methods.ritmatch import RITMatchBackend, RITMatchParams

default_registry = BackendRegistry()
default_registry.register(FindoffBackend)
default_registry.register(RITMatchBackend)

__all__ = [
    "BackendRegistry",
    "FindoffBackend",
    "FindoffParams",
    "MatchBackend",
    "MatchInputs",
    "RITMatchBackend",
    "RITMatchParams",
    "default_registry",
]
