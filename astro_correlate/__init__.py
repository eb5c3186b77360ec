"""
Cross-correlation of astronomical source catalogues.

- catalog: Entry and Catalogue models
- correlator: Correlator orchestrator and ``correlate`` shortcut
- methods: matcher backends (FINDOFF, RIT match) and their registry
- offsets: positional offsets between correlated catalogues
- formats: exchange tables and catalogue files
"""

from astro_correlate.catalog import Catalogue, Entry
from astro_correlate.correlator import Correlator, correlate
from astro_correlate.exceptions import (
    ConfigurationError,
    CorrelationError,
    ExternalToolError,
    InvalidInputError,
    MethodNotFoundError,
)
from astro_correlate.methods import BackendRegistry, MatchBackend, default_registry
from astro_correlate.offsets import MatchOffsets, calculate_match_offsets
from astro_correlate.options import CorrelationOptions

__version__ = "0.1.0"

__all__ = [
    "BackendRegistry",
    "Catalogue",
    "ConfigurationError",
    "CorrelationError",
    "CorrelationOptions",
    "Correlator",
    "Entry",
    "ExternalToolError",
    "InvalidInputError",
    "MatchBackend",
    "MatchOffsets",
    "MethodNotFoundError",
    "calculate_match_offsets",
    "correlate",
    "default_registry",
]
