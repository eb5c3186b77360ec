"""
Correlation using Starlink CCDPACK FINDOFF.

FINDOFF determines the offset between position lists by searching a grid of
trial displacements, then writes one output list per input containing only
the matched positions. Matched positions are renumbered so the same
identifier appears in every output list. Columns after x and y are copied
through untouched, which is how the origin tag survives the round trip.

The executable is looked up in ``$CCDPACK_DIR`` first, then on ``PATH``,
then in ``/star/bin/ccdpack``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from astro_correlate.formats import column_as_tags, read_exchange_table, write_exchange_table
from astro_correlate.methods.base import MatchBackend, MatchInputs, output_path
from astro_correlate.tools import ScratchSpace, ToolSession

logger = logging.getLogger(__name__)

# Zero-based columns in FINDOFF output lists: new id, x, y, then our tag.
NEW_ID_COLUMN = 0
TAG_COLUMN = 3

OUTPUT_SUFFIX = ".off"


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


@dataclass
class FindoffParams:
    """FINDOFF tuning parameters.

    ``maxdisp=None`` means no limit on the displacement (``!``).
    """

    error: float = 5.0  # positional error of the lists, in table units
    maxdisp: float | None = None
    minsep: float = 5.0
    fast: bool = True
    failsafe: bool = True
    complete: float = 0.15

    def __post_init__(self):
        if self.error <= 0:
            raise ValueError(f"error must be positive, got {self.error}")
        if self.minsep < 0:
            raise ValueError(f"minsep must be non-negative, got {self.minsep}")
        if not 0.0 <= self.complete <= 1.0:
            raise ValueError(f"complete must be between 0 and 1, got {self.complete}")

    def to_args(self) -> list[str]:
        return [
            "ndfnames=false",
            f"error={self.error}",
            f"maxdisp={'!' if self.maxdisp is None else self.maxdisp}",
            f"minsep={self.minsep}",
            f"fast={_yes_no(self.fast)}",
            f"failsafe={_yes_no(self.failsafe)}",
            "logto=terminal",
            "namelist=!",
            f"complete={self.complete}",
        ]


class FindoffBackend(MatchBackend):
    """Grid-offset backend built on CCDPACK FINDOFF."""

    name = "findoff"
    aliases = ("grid-offset", "ccdpack")
    executable = "findoff"
    env_var = "CCDPACK_DIR"
    fallback_dirs = ("/star/bin/ccdpack",)
    params_class = FindoffParams

    def _match(
        self,
        session: ToolSession,
        inputs: MatchInputs,
        scratch: ScratchSpace,
    ) -> list[tuple[int, int]]:
        # FINDOFF matches on position only, so magnitude types are not written.
        options = inputs.options
        catfiles = []
        for working, positions in (
            (inputs.working1, inputs.positions1),
            (inputs.working2, inputs.positions2),
        ):
            path = scratch.new_file(suffix=".lis")
            tags = [entry.origin for entry in working.entries()]
            write_exchange_table(
                path,
                tags,
                positions,
                extra_columns={"origin": tags},
                header=f"position list for '{working.name}'",
            )
            catfiles.append(path)

        inlist = scratch.new_file(suffix=".inlist")
        inlist.write_text("".join(f"{path}\n" for path in catfiles))

        outfiles = [output_path(path, OUTPUT_SUFFIX) for path in catfiles]
        scratch.register(*outfiles)

        args = [
            *inputs.params.to_args(),
            f"inlist=^{inlist}",
            f"outlist=*{OUTPUT_SUFFIX}",
            "accept",
        ]
        session.run(args, timeout=options.timeout, cwd=scratch.path, verbose=options.verbose)

        tables = [read_exchange_table(path, self.executable) for path in outfiles]
        ids_a = column_as_tags(tables[0], NEW_ID_COLUMN, self.executable, outfiles[0])
        tags_a = column_as_tags(tables[0], TAG_COLUMN, self.executable, outfiles[0])
        ids_b = column_as_tags(tables[1], NEW_ID_COLUMN, self.executable, outfiles[1])
        tags_b = column_as_tags(tables[1], TAG_COLUMN, self.executable, outfiles[1])

        by_id_b: dict[int, int] = {}
        for new_id, tag in zip(ids_b, tags_b):
            by_id_b.setdefault(new_id, tag)

        pairs = [(tag, by_id_b[new_id]) for new_id, tag in zip(ids_a, tags_a) if new_id in by_id_b]
        if len(pairs) != len(ids_a):
            logger.debug(f"{len(ids_a) - len(pairs)} FINDOFF rows had no counterpart identifier")
        return pairs
