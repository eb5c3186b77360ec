"""
Cross-correlation of two astronomical catalogues.

Usage:
    from astro_correlate import Correlator

    corr = Correlator(catalog1=cat1, catalog2=cat2, method="ritmatch")
    matched1, matched2 = corr.correlate()

``matched1[i]`` and ``matched2[i]`` are the same physical source and share
identifier ``i + 1``. Each matched entry is a copy of the input entry with
every attribute intact except the identifier.

The correlator makes no matching decisions itself: it resolves the requested
backend and hands it the catalogues and session options.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from astro_correlate.catalog import Catalogue
from astro_correlate.exceptions import ConfigurationError, InvalidInputError
from astro_correlate.methods import default_registry
from astro_correlate.methods.base import MatchBackend
from astro_correlate.methods.registry import BackendRegistry
from astro_correlate.options import CorrelationOptions

logger = logging.getLogger(__name__)


def _check_catalogue(value: Any, label: str) -> Catalogue:
    if not isinstance(value, Catalogue):
        raise InvalidInputError(
            f"{label} must be a Catalogue, got {type(value).__name__}",
            argument=label,
        )
    return value


class Correlator:
    """Holds two catalogues and session settings, and correlates them.

    Parameters
    ----------
    catalog1, catalog2 : Catalogue
        Catalogues to correlate. They are never modified.
    method : str, optional
        Correlation method name (case-insensitive). May also be given to
        ``correlate``.
    temp_dir : path, optional
        Directory for intermediate files. By default each call gets a fresh
        temporary directory.
    keep_temps : bool, optional
        Keep intermediate files after the call. Defaults to False.
    verbose : bool, optional
        Log progress at INFO level. Defaults to False.
    timeout : float, optional
        Seconds to wait for the external matcher. Defaults to 60.
    options : CorrelationOptions, optional
        Extra backend options such as per-catalogue magnitude types and
        method parameters. The settings above take precedence over the same
        fields in ``options`` when both are given.
    registry : BackendRegistry, optional
        Registry used to resolve methods. Defaults to the built-in registry.

    Raises
    ------
    InvalidInputError
        If either catalogue is not a Catalogue.
    """

    def __init__(
        self,
        catalog1: Catalogue,
        catalog2: Catalogue,
        method: str | None = None,
        *,
        temp_dir: str | Path | None = None,
        keep_temps: bool | None = None,
        verbose: bool | None = None,
        timeout: float | None = None,
        options: CorrelationOptions | None = None,
        registry: BackendRegistry | None = None,
    ) -> None:
        self._catalog1 = _check_catalogue(catalog1, "catalog1")
        self._catalog2 = _check_catalogue(catalog2, "catalog2")
        self.method = method
        self.options = options or CorrelationOptions()
        self.registry = registry or default_registry
        self._backends: dict[str, MatchBackend] = {}

        overrides = {
            "temp_dir": temp_dir,
            "keep_temps": keep_temps,
            "verbose": verbose,
            "timeout": timeout,
        }
        overrides = {key: value for key, value in overrides.items() if value is not None}
        if overrides:
            self.options = self.options.with_overrides(**overrides)

    # -- catalogues -----------------------------------------------------------

    @property
    def catalog1(self) -> Catalogue:
        """First catalogue used for correlation."""
        return self._catalog1

    @catalog1.setter
    def catalog1(self, value: Catalogue) -> None:
        self._catalog1 = _check_catalogue(value, "catalog1")

    @property
    def catalog2(self) -> Catalogue:
        """Second catalogue used for correlation."""
        return self._catalog2

    @catalog2.setter
    def catalog2(self, value: Catalogue) -> None:
        self._catalog2 = _check_catalogue(value, "catalog2")

    # -- session settings -----------------------------------------------------

    @property
    def options(self) -> CorrelationOptions:
        return self._options

    @options.setter
    def options(self, value: CorrelationOptions) -> None:
        if not isinstance(value, CorrelationOptions):
            raise ConfigurationError(
                f"options must be CorrelationOptions, got {type(value).__name__}"
            )
        self._options = value

    @property
    def temp_dir(self) -> Path | None:
        """Directory for intermediate files; None means a fresh one per call."""
        return self._options.temp_dir

    @temp_dir.setter
    def temp_dir(self, value: str | Path | None) -> None:
        self._options = self._options.with_overrides(temp_dir=value)

    @property
    def keep_temps(self) -> bool:
        """Whether intermediate files are kept after correlation."""
        return self._options.keep_temps

    @keep_temps.setter
    def keep_temps(self, value: bool) -> None:
        self._options = self._options.with_overrides(keep_temps=bool(value))

    @property
    def verbose(self) -> bool:
        return self._options.verbose

    @verbose.setter
    def verbose(self, value: bool) -> None:
        self._options = self._options.with_overrides(verbose=bool(value))

    @property
    def timeout(self) -> float:
        """Seconds to wait for the external matcher."""
        return self._options.timeout

    @timeout.setter
    def timeout(self, value: float) -> None:
        self._options = self._options.with_overrides(timeout=value)

    # -- correlation ----------------------------------------------------------

    def _backend(self, method: str) -> MatchBackend:
        """Backend instance for ``method``, kept for this correlator's lifetime."""
        key = self.registry.get_class(method).name
        if key not in self._backends:
            self._backends[key] = self.registry.resolve(method)
        return self._backends[key]

    def correlate(self, method: str | None = None) -> tuple[Catalogue, Catalogue]:
        """Cross-correlate the two catalogues.

        Parameters
        ----------
        method : str, optional
            Method to use for this call; defaults to the ``method`` property.

        Returns
        -------
        tuple of Catalogue
            Matched entries from catalog1 and catalog2, index-aligned and
            sharing identifiers.

        Raises
        ------
        ConfigurationError
            If no method has been set.
        MethodNotFoundError
            If the method does not resolve to a usable backend.
        InvalidInputError
            If the catalogues cannot be compared.
        ExternalToolError
            If the external matcher fails.
        """
        method = method or self.method
        if not method:
            raise ConfigurationError("Must supply a cross-correlation method")

        backend = self._backend(method)
        logger.debug(f"Resolved correlation method '{method}' to {type(backend).__name__}")
        return backend.correlate(self._catalog1, self._catalog2, self._options)


def correlate(
    catalog1: Catalogue,
    catalog2: Catalogue,
    method: str,
    **kwargs: Any,
) -> tuple[Catalogue, Catalogue]:
    """Correlate two catalogues in one call; ``kwargs`` go to ``Correlator``."""
    return Correlator(catalog1, catalog2, method, **kwargs).correlate()
