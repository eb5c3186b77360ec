"""
Correlation using the RIT ``match`` program (triangle pattern matching).

``match`` reads two lists of (id, x, y, mag), finds the transformation
between them from similar triangles formed by the brightest objects, and
writes the matched items of each list, row-aligned, to ``<outfile>.mtA`` and
``<outfile>.mtB``. Unmatched items go to ``.unA``/``.unB``.

The executable is looked up in ``$MATCH_DIR`` first, then on ``PATH``.

Reference: http://spiff.rit.edu/match/
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields

import numpy as np

from astro_correlate.catalog import Catalogue, is_set
from astro_correlate.exceptions import ExternalToolError
from astro_correlate.formats import column_as_tags, read_exchange_table, write_exchange_table
from astro_correlate.methods.base import MatchBackend, MatchInputs, output_path, require_magnitudes
from astro_correlate.options import CorrelationOptions
from astro_correlate.reconcile import WorkingCatalogue
from astro_correlate.tools import ScratchSpace, ToolSession

logger = logging.getLogger(__name__)

# Written for entries without the requested magnitude so they rank faintest.
MISSING_MAGNITUDE = 99.0

# Zero-based column numbers in the exchange table (tag x y mag).
ID_COLUMN = 0
X_COLUMN = 1
Y_COLUMN = 2
MAG_COLUMN = 3

_FLAGS = ("transonly", "recalc", "identity")


@dataclass
class RITMatchParams:
    """Tuning parameters passed to ``match`` as key=value tokens.

    ``None`` leaves the program's own default in place. Boolean flags are
    passed as bare words when true.
    """

    nobj: int = 30  # brightest objects used to build triangles
    trirad: float | None = None  # triangle-space matching radius
    matchrad: float | None = None  # object matching radius, in table units
    max_iter: int | None = None
    halt_sigma: float | None = None
    scale: float | None = None
    min_scale: float | None = None
    max_scale: float | None = None
    rotangle: float | None = None
    rottol: float | None = None
    transonly: bool = False
    recalc: bool = False
    identity: bool = False

    def __post_init__(self):
        if self.nobj < 3:
            raise ValueError(f"nobj must be at least 3 to form triangles, got {self.nobj}")
        for name in ("trirad", "matchrad", "halt_sigma"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

    def to_args(self) -> list[str]:
        args = []
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in _FLAGS:
                if value:
                    args.append(f.name)
            elif value is not None:
                args.append(f"{f.name}={value}")
        return args


class RITMatchBackend(MatchBackend):
    """Pattern-matching backend built on RIT ``match``."""

    name = "ritmatch"
    aliases = ("match", "pattern-match", "rit")
    executable = "match"
    env_var = "MATCH_DIR"
    params_class = RITMatchParams

    def validate(
        self,
        catalog1: Catalogue,
        catalog2: Catalogue,
        options: CorrelationOptions,
    ) -> None:
        require_magnitudes(catalog1, options.cat1_mag_type)
        require_magnitudes(catalog2, options.cat2_mag_type)

    def _write_input(
        self,
        working: WorkingCatalogue,
        positions: np.ndarray,
        mag_type: str,
        scratch: ScratchSpace,
        label: str,
    ):
        entries = working.entries()
        mags = [entry.magnitude(mag_type) for entry in entries]
        missing = sum(not is_set(m) for m in mags)
        if missing:
            logger.warning(
                f"{missing} of {len(entries)} entries in '{working.name}' have no "
                f"'{mag_type}' magnitude; writing {MISSING_MAGNITUDE}"
            )
        path = scratch.new_file(suffix=".cat")
        write_exchange_table(
            path,
            [entry.origin for entry in entries],
            positions,
            extra_columns={
                "mag": [m if is_set(m) else MISSING_MAGNITUDE for m in mags],
            },
            header=f"{label} '{working.name}' using {mag_type} magnitude",
        )
        return path

    def _match(
        self,
        session: ToolSession,
        inputs: MatchInputs,
        scratch: ScratchSpace,
    ) -> list[tuple[int, int]]:
        options = inputs.options
        catfile1 = self._write_input(
            inputs.working1, inputs.positions1, options.cat1_mag_type, scratch, "catalogue 1"
        )
        catfile2 = self._write_input(
            inputs.working2, inputs.positions2, options.cat2_mag_type, scratch, "catalogue 2"
        )

        outbase = scratch.new_name()
        out_a = output_path(outbase, ".mtA")
        out_b = output_path(outbase, ".mtB")
        scratch.register(out_a, out_b, output_path(outbase, ".unA"), output_path(outbase, ".unB"))

        columns = [str(X_COLUMN), str(Y_COLUMN), str(MAG_COLUMN)]
        args = [
            str(catfile1),
            *columns,
            str(catfile2),
            *columns,
            f"outfile={outbase}",
            f"id1={ID_COLUMN}",
            f"id2={ID_COLUMN}",
            *inputs.params.to_args(),
        ]
        session.run(args, timeout=options.timeout, cwd=scratch.path, verbose=options.verbose)

        table_a = read_exchange_table(out_a, self.executable)
        table_b = read_exchange_table(out_b, self.executable)
        tags_a = column_as_tags(table_a, ID_COLUMN, self.executable, out_a)
        tags_b = column_as_tags(table_b, ID_COLUMN, self.executable, out_b)
        if len(tags_a) != len(tags_b):
            raise ExternalToolError(
                f"match wrote {len(tags_a)} rows to {out_a.name} but {len(tags_b)} "
                f"rows to {out_b.name}",
                tool=self.executable,
            )
        return list(zip(tags_a, tags_b))
