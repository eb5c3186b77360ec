"""
In-memory source catalogues.

A ``Catalogue`` is an ordered collection of ``Entry`` records. Each entry has
a pixel position, a sky position, or both, plus any number of magnitudes keyed
by magnitude type (``"mag"``, ``"mag_iso"``, ...).

Examples
--------
>>> cat = Catalogue(name="frame1")
>>> cat.push(Entry(identifier=1, x=10.0, y=10.0, magnitudes={"mag": 5.0}))
>>> cat.pop_by_id(1)
[Entry(identifier=1, x=10.0, y=10.0, ra_deg=None, dec_deg=None, magnitudes={'mag': 5.0}, annotation='', origin=None)]
"""

from __future__ import annotations

import copy
import logging
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

import pandas as pd

from astro_correlate.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

PIXEL = "pixel"
SKY = "sky"

# Columns with fixed meaning in to_dataframe(); everything else numeric is a magnitude.
_BASE_COLUMNS = ("id", "x", "y", "ra", "dec", "annotation")


def is_set(value: float | None) -> bool:
    return value is not None and not math.isnan(value)


@dataclass
class Entry:
    """A catalogued source.

    Attributes
    ----------
    identifier : int or None
        Identifier, meaningful only within one catalogue.
    x, y : float or None
        Pixel position.
    ra_deg, dec_deg : float or None
        Sky position in degrees.
    magnitudes : dict
        Magnitudes keyed by magnitude type.
    annotation : str
        Free-text side-channel metadata. Correlation never alters it.
    origin : int or None
        Origin tag used while the entry travels through an external matcher.
        Always ``None`` on entries handed back to callers.
    """

    identifier: int | None = None
    x: float | None = None
    y: float | None = None
    ra_deg: float | None = None
    dec_deg: float | None = None
    magnitudes: dict[str, float] = field(default_factory=dict)
    annotation: str = ""
    origin: int | None = None

    def coordinate_systems(self) -> set[str]:
        """Coordinate systems this entry has a full position in."""
        systems = set()
        if is_set(self.x) and is_set(self.y):
            systems.add(PIXEL)
        if is_set(self.ra_deg) and is_set(self.dec_deg):
            systems.add(SKY)
        return systems

    def position(self, system: str) -> tuple[float, float]:
        """Return the (x, y) or (ra, dec) pair for ``system``."""
        if system == PIXEL:
            return float(self.x), float(self.y)
        if system == SKY:
            return float(self.ra_deg), float(self.dec_deg)
        raise ValueError(f"Unknown coordinate system: {system}")

    def magnitude(self, mag_type: str = "mag") -> float | None:
        return self.magnitudes.get(mag_type)

    def same_source(self, other: Entry) -> bool:
        """True if both entries carry identical positions, magnitudes and annotation."""
        return (
            self.x == other.x
            and self.y == other.y
            and self.ra_deg == other.ra_deg
            and self.dec_deg == other.dec_deg
            and self.magnitudes == other.magnitudes
            and self.annotation == other.annotation
        )


@dataclass
class Catalogue:
    """Ordered collection of entries.

    Identifiers are not required to be unique on construction; correlation
    always assigns fresh, unique identifiers to the catalogues it returns.
    """

    name: str = ""
    entries: list[Entry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> Entry:
        return self.entries[index]

    def push(self, entry: Entry) -> None:
        """Append an entry."""
        if not isinstance(entry, Entry):
            raise InvalidInputError(
                f"Catalogue entries must be Entry objects, got {type(entry).__name__}",
                catalogue=self.name,
            )
        self.entries.append(entry)

    def extend(self, entries: Iterable[Entry]) -> None:
        for entry in entries:
            self.push(entry)

    def identifiers(self) -> list[int | None]:
        return [entry.identifier for entry in self.entries]

    def has_duplicate_identifiers(self) -> bool:
        ids = [i for i in self.identifiers() if i is not None]
        return len(ids) != len(set(ids))

    def pop_by_id(self, identifier: int) -> list[Entry]:
        """Remove and return every entry with ``identifier``.

        Returns an empty list if no entry has that identifier.
        """
        popped = [e for e in self.entries if e.identifier == identifier]
        if popped:
            self.entries = [e for e in self.entries if e.identifier != identifier]
        return popped

    def copy(self) -> Catalogue:
        """Deep copy; the copy shares no entries with this catalogue."""
        return copy.deepcopy(self)

    def coordinate_system(self) -> str:
        """Return the coordinate system shared by every entry.

        Pixel positions are preferred when every entry has them.

        Raises
        ------
        InvalidInputError
            If the catalogue is empty or no single system covers every entry.
        """
        if not self.entries:
            raise InvalidInputError(f"Catalogue '{self.name}' is empty", catalogue=self.name)
        common = set.intersection(*(entry.coordinate_systems() for entry in self.entries))
        if PIXEL in common:
            return PIXEL
        if SKY in common:
            return SKY
        raise InvalidInputError(
            f"Catalogue '{self.name}' mixes entries without a common coordinate system",
            catalogue=self.name,
        )

    def magnitude_types(self) -> set[str]:
        types: set[str] = set()
        for entry in self.entries:
            types.update(entry.magnitudes)
        return types

    def to_dataframe(self) -> pd.DataFrame:
        """One row per entry; magnitude columns are named by magnitude type."""
        mag_types = sorted(self.magnitude_types())
        rows = []
        for entry in self.entries:
            row = {
                "id": entry.identifier,
                "x": entry.x,
                "y": entry.y,
                "ra": entry.ra_deg,
                "dec": entry.dec_deg,
                "annotation": entry.annotation,
            }
            for mag_type in mag_types:
                row[mag_type] = entry.magnitudes.get(mag_type)
            rows.append(row)
        return pd.DataFrame(rows, columns=list(_BASE_COLUMNS) + mag_types)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, name: str = "") -> Catalogue:
        """Build a catalogue from a DataFrame laid out like ``to_dataframe()``.

        Missing base columns are treated as unset. Any other numeric column is
        read as a magnitude type.
        """
        mag_columns = [
            col
            for col in df.columns
            if col not in _BASE_COLUMNS and pd.api.types.is_numeric_dtype(df[col])
        ]

        def _value(row: pd.Series, column: str) -> float | None:
            if column not in row.index or pd.isna(row[column]):
                return None
            return float(row[column])

        catalogue = cls(name=name)
        for _, row in df.iterrows():
            identifier = _value(row, "id")
            annotation = row["annotation"] if "annotation" in row.index else ""
            catalogue.push(
                Entry(
                    identifier=int(identifier) if identifier is not None else None,
                    x=_value(row, "x"),
                    y=_value(row, "y"),
                    ra_deg=_value(row, "ra"),
                    dec_deg=_value(row, "dec"),
                    magnitudes={
                        col: float(row[col]) for col in mag_columns if not pd.isna(row[col])
                    },
                    annotation="" if pd.isna(annotation) else str(annotation),
                )
            )
        logger.debug(f"Built catalogue '{name}' with {len(catalogue)} entries from DataFrame")
        return catalogue
