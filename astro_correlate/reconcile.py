"""
Working copies and identifier reconciliation shared by all backends.

A ``WorkingCatalogue`` is a private deep copy of an input catalogue, keyed by
origin tag (1..n in input order). Tags are what backends hand to external
tools in place of the caller's identifiers, which need not be unique.

``reconcile`` turns the ordered tag pairs a tool reported into two output
catalogues of fully attributed original entries with synchronized
identifiers.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from astro_correlate.catalog import Catalogue, Entry

logger = logging.getLogger(__name__)

FIRST_MATCH_ID = 1


class WorkingCatalogue:
    """Arena of deep-copied entries keyed by origin tag.

    The source catalogue is never modified.
    """

    def __init__(self, catalogue: Catalogue) -> None:
        self.name = catalogue.name
        self._entries: dict[int, Entry] = {}
        for tag, entry in enumerate(catalogue.copy(), start=1):
            entry.origin = tag
            self._entries[tag] = entry

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, tag: int) -> bool:
        return tag in self._entries

    def tags(self) -> list[int]:
        return list(self._entries)

    def entries(self) -> list[Entry]:
        """Remaining entries in input order."""
        return list(self._entries.values())

    def pop(self, tag: int) -> Entry | None:
        """Remove and return the entry tagged ``tag``, or None if absent."""
        return self._entries.pop(tag, None)


def reconcile(
    working1: WorkingCatalogue,
    working2: WorkingCatalogue,
    pairs: Iterable[tuple[int, int]],
) -> tuple[Catalogue, Catalogue]:
    """Build matched output catalogues from ordered tag pairs.

    Pairs are taken in the order given. A pair is dropped when either tag is
    unknown or was already consumed by an earlier pair, so outputs stay
    one-to-one even if the tool reports duplicate or out-of-range
    identifiers. The k-th kept pair gets identifier ``FIRST_MATCH_ID + k`` in
    both outputs.

    Parameters
    ----------
    working1, working2 : WorkingCatalogue
        Working copies; matched entries are popped from them.
    pairs : iterable of (int, int)
        (tag in catalogue 1, tag in catalogue 2) in tool output order.

    Returns
    -------
    tuple of Catalogue
        Matched entries from catalogue 1 and catalogue 2.
    """
    matched1 = Catalogue(name=working1.name)
    matched2 = Catalogue(name=working2.name)
    dropped = 0

    for tag1, tag2 in pairs:
        if tag1 not in working1 or tag2 not in working2:
            logger.debug(f"Skipping unmatched pair ({tag1}, {tag2})")
            dropped += 1
            continue

        new_id = FIRST_MATCH_ID + len(matched1)
        for working, matched, tag in ((working1, matched1, tag1), (working2, matched2, tag2)):
            entry = working.pop(tag)
            entry.identifier = new_id
            entry.origin = None
            matched.push(entry)

    if dropped:
        logger.info(f"Dropped {dropped} tool-reported pairs that did not resolve to input entries")
    logger.debug(f"Reconciled {len(matched1)} matched pairs")
    return matched1, matched2
