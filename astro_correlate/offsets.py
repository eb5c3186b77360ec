"""Positional offsets between correlated catalogues.

Used after ``Correlator.correlate`` to measure the shift between two frames
or to check a correlation by eye.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import astropy.units as u
import numpy as np
import pandas as pd
from astropy.coordinates import SkyCoord
from astropy.stats import mad_std

from astro_correlate.catalog import PIXEL, Catalogue
from astro_correlate.exceptions import InvalidInputError
from astro_correlate.projection import common_coordinate_system

logger = logging.getLogger(__name__)


@dataclass
class MatchOffsets:
    """Median offset and robust scatter of catalogue 2 relative to catalogue 1.

    Pixel catalogues report offsets in pixels; sky catalogues in arcsec
    (RA offsets include the cos(Dec) factor).
    """

    n_pairs: int
    coordinate_system: str
    unit: str
    median_d1: float
    median_d2: float
    mad_d1: float
    mad_d2: float


def matched_pairs_frame(matched1: Catalogue, matched2: Catalogue) -> pd.DataFrame:
    """One row per matched pair with both positions and their offsets.

    Columns are ``id``, ``pos1_a``, ``pos1_b``, ``pos2_a``, ``pos2_b``,
    ``d1``, ``d2`` where ``a``/``b`` are x/y or RA/Dec.

    Raises
    ------
    InvalidInputError
        If the catalogues are not index-aligned correlation outputs.
    """
    if len(matched1) != len(matched2):
        raise InvalidInputError(
            f"Matched catalogues differ in length ({len(matched1)} vs {len(matched2)})"
        )
    if matched1.identifiers() != matched2.identifiers():
        raise InvalidInputError("Matched catalogues do not share identifiers")
    columns = ["id", "pos1_a", "pos1_b", "pos2_a", "pos2_b", "d1", "d2"]
    if len(matched1) == 0:
        return pd.DataFrame(columns=columns)

    system = common_coordinate_system(matched1, matched2)
    pos1 = np.array([e.position(system) for e in matched1], dtype=np.float64)
    pos2 = np.array([e.position(system) for e in matched2], dtype=np.float64)

    if system == PIXEL:
        d1 = pos2[:, 0] - pos1[:, 0]
        d2 = pos2[:, 1] - pos1[:, 1]
    else:
        coords1 = SkyCoord(pos1[:, 0] * u.deg, pos1[:, 1] * u.deg)
        coords2 = SkyCoord(pos2[:, 0] * u.deg, pos2[:, 1] * u.deg)
        dra, ddec = coords1.spherical_offsets_to(coords2)
        d1 = dra.to(u.arcsec).value
        d2 = ddec.to(u.arcsec).value

    return pd.DataFrame(
        {
            "id": matched1.identifiers(),
            "pos1_a": pos1[:, 0],
            "pos1_b": pos1[:, 1],
            "pos2_a": pos2[:, 0],
            "pos2_b": pos2[:, 1],
            "d1": d1,
            "d2": d2,
        },
        columns=columns,
    )


def calculate_match_offsets(matched1: Catalogue, matched2: Catalogue) -> MatchOffsets:
    """Median offsets and MAD-based scatter between matched pairs.

    Raises
    ------
    InvalidInputError
        If there are no pairs or the catalogues are not index-aligned.
    """
    if len(matched1) == 0 or len(matched2) == 0:
        raise InvalidInputError("No matched pairs to compute offsets from")
    df = matched_pairs_frame(matched1, matched2)
    system = common_coordinate_system(matched1, matched2)
    offsets = MatchOffsets(
        n_pairs=len(df),
        coordinate_system=system,
        unit="pix" if system == PIXEL else "arcsec",
        median_d1=float(np.median(df["d1"])),
        median_d2=float(np.median(df["d2"])),
        mad_d1=float(mad_std(df["d1"].to_numpy())),
        mad_d2=float(mad_std(df["d2"].to_numpy())),
    )
    logger.debug(f"Offsets from {offsets.n_pairs} pairs: {offsets}")
    return offsets
