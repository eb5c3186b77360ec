"""
Registry of correlation backends.

Examples
--------
>>> from astro_correlate.methods import default_registry
>>> backend = default_registry.resolve("RITMatch")
>>> backend.name
'ritmatch'
"""

from __future__ import annotations

import logging

from astro_correlate.exceptions import ConfigurationError, MethodNotFoundError
from astro_correlate.methods.base import MatchBackend

logger = logging.getLogger(__name__)


class BackendRegistry:
    """Maps case-insensitive method names and aliases to backend classes."""

    def __init__(self) -> None:
        self._backends: dict[str, type[MatchBackend]] = {}
        self._lookup: dict[str, str] = {}

    def register(self, backend_cls: type[MatchBackend]) -> type[MatchBackend]:
        """Register a backend class; usable as a class decorator.

        Raises
        ------
        ConfigurationError
            If the name or one of the aliases is already taken.
        """
        canonical = backend_cls.name.lower()
        keys = [canonical, *(alias.lower() for alias in backend_cls.aliases)]
        taken = [key for key in keys if key in self._lookup]
        if taken:
            raise ConfigurationError(
                f"Correlation method name(s) already registered: {', '.join(taken)}",
                backend=backend_cls.__name__,
            )
        self._backends[canonical] = backend_cls
        for key in keys:
            self._lookup[key] = canonical
        logger.debug(f"Registered correlation method {canonical} ({backend_cls.__name__})")
        return backend_cls

    def names(self) -> list[str]:
        """Canonical names of all registered backends."""
        return sorted(self._backends)

    def __contains__(self, method: str) -> bool:
        return isinstance(method, str) and method.lower() in self._lookup

    def get_class(self, method: str) -> type[MatchBackend]:
        """Return the backend class for ``method``.

        Raises
        ------
        MethodNotFoundError
            If no backend has that name or alias.
        """
        if not isinstance(method, str) or method.lower() not in self._lookup:
            raise MethodNotFoundError(str(method), available=self.names())
        return self._backends[self._lookup[method.lower()]]

    def resolve(self, method: str) -> MatchBackend:
        """Return a new backend instance for ``method``.

        Raises
        ------
        MethodNotFoundError
            If no backend has that name, or the backend cannot run in this
            environment.
        """
        backend_cls = self.get_class(method)
        if not backend_cls.is_supported():
            raise MethodNotFoundError(
                method,
                available=[n for n in self.names() if self._backends[n].is_supported()],
                reason="backend not supported in this environment",
            )
        return backend_cls()
