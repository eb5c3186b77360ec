"""
Correlation session options.

Usage:
    from astro_correlate.options import CorrelationOptions

    options = CorrelationOptions(cat1_mag_type="mag_iso", keep_temps=True)
    custom = options.with_overrides(timeout=120.0)

These are pass-through settings for one backend call, not persistent state.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from astro_correlate.exceptions import ConfigurationError

DEFAULT_MAG_TYPE = "mag"
DEFAULT_TIMEOUT_S = 60.0


@dataclass
class CorrelationOptions:
    """Options consumed by a single backend ``correlate`` call.

    Attributes
    ----------
    cat1_mag_type, cat2_mag_type : str
        Magnitude type written for each catalogue, for backends that use one.
    temp_dir : Path or None
        Directory for intermediate files. ``None`` allocates a fresh
        directory per call.
    keep_temps : bool
        Leave intermediate files in place after the call.
    verbose : bool
        Log progress and tool output at INFO instead of DEBUG.
    timeout : float
        Seconds to wait for the external matcher before giving up.
    method_params : dict
        Overrides for the backend's tuning parameters.
    """

    cat1_mag_type: str = DEFAULT_MAG_TYPE
    cat2_mag_type: str = DEFAULT_MAG_TYPE
    temp_dir: Path | None = None
    keep_temps: bool = False
    verbose: bool = False
    timeout: float = DEFAULT_TIMEOUT_S
    method_params: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.temp_dir is not None:
            self.temp_dir = Path(self.temp_dir)
        # Each options object owns its own method_params dict.
        self.method_params = dict(self.method_params or {})
        if not self.cat1_mag_type or not self.cat2_mag_type:
            raise ConfigurationError("Magnitude types must be non-empty strings")
        if self.timeout is None or self.timeout <= 0:
            raise ConfigurationError(
                f"timeout must be positive, got {self.timeout}", timeout=self.timeout
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary, skipping unset values."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                result[f.name] = value
        return result

    def with_overrides(self, **kwargs: Any) -> CorrelationOptions:
        """Return a copy with the given options replaced.

        Raises
        ------
        ConfigurationError
            If an unknown option name is given.
        """
        known = {f.name for f in fields(self)}
        unknown = set(kwargs) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown correlation options: {', '.join(sorted(unknown))}",
                unknown=sorted(unknown),
            )
        return replace(self, **kwargs)


def apply_param_overrides(params: Any, overrides: dict[str, Any]) -> Any:
    """Apply ``overrides`` to a backend parameter dataclass.

    Raises
    ------
    ConfigurationError
        If an override names a parameter the dataclass does not have, or the
        dataclass rejects the new value.
    """
    if not overrides:
        return params
    known = {f.name for f in fields(params)}
    unknown = set(overrides) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown {type(params).__name__} parameters: {', '.join(sorted(unknown))}",
            unknown=sorted(unknown),
        )
    try:
        return replace(params, **overrides)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Invalid {type(params).__name__} override: {e}", overrides=overrides
        ) from e
