"""
Shared contract for matcher backends.

A backend wraps one external point-matching program. Subclasses provide the
executable details and ``_match``, which writes the tool's input tables, runs
it and returns the ordered (tag1, tag2) pairs it reported. Everything else
(validation, working copies, scratch storage, reconciliation) is common and
lives in ``MatchBackend.correlate``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar

import numpy as np

from astro_correlate.catalog import Catalogue, is_set
from astro_correlate.exceptions import InvalidInputError
from astro_correlate.options import CorrelationOptions, apply_param_overrides
from astro_correlate.projection import common_coordinate_system, planar_positions
from astro_correlate.reconcile import WorkingCatalogue, reconcile
from astro_correlate.tools import ScratchSpace, ToolSession, find_executable

logger = logging.getLogger(__name__)


@dataclass
class MatchInputs:
    """Everything a backend needs to run its tool for one call."""

    working1: WorkingCatalogue
    working2: WorkingCatalogue
    positions1: np.ndarray
    positions2: np.ndarray
    coordinate_system: str
    options: CorrelationOptions
    params: Any


class MatchBackend(ABC):
    """Base class for correlation backends.

    Attributes
    ----------
    name : str
        Canonical method name.
    aliases : tuple of str
        Other names the registry resolves to this backend.
    executable : str
        File name of the external program.
    env_var : str or None
        Environment variable naming the directory that holds ``executable``.
    fallback_dirs : tuple of str
        Directories searched after ``PATH``.
    params_class : type
        Dataclass holding the backend's tuning parameters.
    """

    name: ClassVar[str]
    aliases: ClassVar[tuple[str, ...]] = ()
    executable: ClassVar[str]
    env_var: ClassVar[str | None] = None
    fallback_dirs: ClassVar[tuple[str, ...]] = ()
    params_class: ClassVar[type]

    def __init__(self, params: Any = None) -> None:
        self.params = params if params is not None else self.params_class()
        self._session: ToolSession | None = None

    @classmethod
    def is_supported(cls) -> bool:
        """Whether this backend can run in the current Python environment."""
        return True

    def session(self) -> ToolSession:
        """Return the tool session, re-resolving the executable on every call.

        The session object is kept while the executable path is unchanged.
        """
        path = find_executable(self.executable, self.env_var, self.fallback_dirs)
        if self._session is None or self._session.executable != path:
            self._session = ToolSession(name=self.executable, executable=path)
        return self._session

    def correlate(
        self,
        catalog1: Catalogue,
        catalog2: Catalogue,
        options: CorrelationOptions | None = None,
    ) -> tuple[Catalogue, Catalogue]:
        """Cross-correlate two catalogues.

        Parameters
        ----------
        catalog1, catalog2 : Catalogue
            Input catalogues. They are never modified.
        options : CorrelationOptions, optional
            Session options; defaults apply when omitted.

        Returns
        -------
        tuple of Catalogue
            Matched entries from each input, in tool output order. The entry
            at index ``i`` of both catalogues has identifier ``i + 1``.

        Raises
        ------
        InvalidInputError
            If the catalogues are empty or not comparable.
        ExternalToolError
            If the external matcher is missing, fails or times out.
        """
        options = options or CorrelationOptions()
        system = common_coordinate_system(catalog1, catalog2)
        params = apply_param_overrides(self.params, options.method_params)
        self.validate(catalog1, catalog2, options)

        session = self.session()

        log = logger.info if options.verbose else logger.debug
        log(
            f"Correlating '{catalog1.name}' ({len(catalog1)} entries) with "
            f"'{catalog2.name}' ({len(catalog2)} entries) using {self.name} "
            f"in {system} coordinates"
        )

        working1 = WorkingCatalogue(catalog1)
        working2 = WorkingCatalogue(catalog2)
        positions1, positions2 = planar_positions(
            working1.entries(), working2.entries(), system
        )
        inputs = MatchInputs(
            working1=working1,
            working2=working2,
            positions1=positions1,
            positions2=positions2,
            coordinate_system=system,
            options=options,
            params=params,
        )

        with ScratchSpace(options.temp_dir, keep=options.keep_temps, prefix=self.name) as scratch:
            pairs = self._match(session, inputs, scratch)

        matched1, matched2 = reconcile(working1, working2, pairs)
        log(f"{self.name} matched {len(matched1)} sources")
        return matched1, matched2

    def validate(
        self,
        catalog1: Catalogue,
        catalog2: Catalogue,
        options: CorrelationOptions,
    ) -> None:
        """Backend-specific input checks; raise InvalidInputError on failure."""

    @abstractmethod
    def _match(
        self,
        session: ToolSession,
        inputs: MatchInputs,
        scratch: ScratchSpace,
    ) -> list[tuple[int, int]]:
        """Run the tool and return (tag1, tag2) pairs in output order."""


def require_magnitudes(catalogue: Catalogue, mag_type: str) -> None:
    """Raise InvalidInputError if no entry has a usable ``mag_type`` magnitude.

    NaN counts as missing.
    """
    if not any(is_set(entry.magnitude(mag_type)) for entry in catalogue):
        raise InvalidInputError(
            f"No entries in catalogue '{catalogue.name}' have a '{mag_type}' magnitude",
            catalogue=catalogue.name,
            mag_type=mag_type,
        )


def output_path(base: Path, suffix: str) -> Path:
    """``base`` with ``suffix`` appended to the full file name."""
    return base.with_name(base.name + suffix)
