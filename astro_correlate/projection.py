"""Comparable coordinates for a pair of catalogues.

External matchers work on planar (x, y) positions. Pixel catalogues are
handed over unchanged; sky catalogues are projected to offsets in arcsec
about a common tangent point so that both catalogues share one plane.
"""

from __future__ import annotations

import logging

import astropy.units as u
import numpy as np
from astropy.coordinates import CartesianRepresentation, SkyCoord, UnitSphericalRepresentation

from astro_correlate.catalog import PIXEL, SKY, Catalogue, Entry
from astro_correlate.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


def common_coordinate_system(catalog1: Catalogue, catalog2: Catalogue) -> str:
    """Pick the coordinate system both catalogues can be compared in.

    Raises
    ------
    InvalidInputError
        If either catalogue is empty or they share no coordinate system.
    """
    for catalogue in (catalog1, catalog2):
        if not isinstance(catalogue, Catalogue):
            raise InvalidInputError(
                f"Expected a Catalogue, got {type(catalogue).__name__}"
            )
        if len(catalogue) == 0:
            raise InvalidInputError(
                f"Catalogue '{catalogue.name}' is empty", catalogue=catalogue.name
            )

    systems1 = set.intersection(*(e.coordinate_systems() for e in catalog1))
    systems2 = set.intersection(*(e.coordinate_systems() for e in catalog2))
    shared = systems1 & systems2
    if PIXEL in shared:
        return PIXEL
    if SKY in shared:
        return SKY
    raise InvalidInputError(
        f"Catalogues '{catalog1.name}' and '{catalog2.name}' have no common coordinate "
        f"system (catalogue 1: {sorted(systems1) or 'mixed'}, "
        f"catalogue 2: {sorted(systems2) or 'mixed'})",
        catalog1=catalog1.name,
        catalog2=catalog2.name,
    )


def _skycoord(entries: list[Entry]) -> SkyCoord:
    ra = np.array([e.ra_deg for e in entries], dtype=np.float64)
    dec = np.array([e.dec_deg for e in entries], dtype=np.float64)
    return SkyCoord(ra * u.deg, dec * u.deg)


def tangent_point(entries: list[Entry]) -> SkyCoord:
    """Mean position of ``entries`` on the sphere."""
    coords = _skycoord(entries)
    mean = CartesianRepresentation(coords.cartesian.xyz.mean(axis=1))
    center = mean.represent_as(UnitSphericalRepresentation)
    return SkyCoord(center.lon, center.lat)


def planar_positions(
    entries1: list[Entry],
    entries2: list[Entry],
    system: str,
) -> tuple[np.ndarray, np.ndarray]:
    """Return (N, 2) planar position arrays for both entry lists.

    Sky positions become (dRA cos Dec, dDec) offsets in arcsec about the mean
    position of the first list.
    """
    if system == PIXEL:
        pos1 = np.array([e.position(PIXEL) for e in entries1], dtype=np.float64)
        pos2 = np.array([e.position(PIXEL) for e in entries2], dtype=np.float64)
        return pos1.reshape(-1, 2), pos2.reshape(-1, 2)

    if system != SKY:
        raise ValueError(f"Unknown coordinate system: {system}")

    center = tangent_point(entries1)
    logger.debug(f"Projecting sky positions about RA={center.ra.deg:.6f} Dec={center.dec.deg:.6f}")
    result = []
    for entries in (entries1, entries2):
        dra, ddec = center.spherical_offsets_to(_skycoord(entries))
        result.append(
            np.column_stack([dra.to(u.arcsec).value, ddec.to(u.arcsec).value]).reshape(-1, 2)
        )
    return result[0], result[1]
