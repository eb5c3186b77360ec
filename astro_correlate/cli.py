#!/usr/bin/env python
"""
Command-line catalogue correlation.

Usage:
    # Correlate two pixel catalogues with RIT match
    python -m astro_correlate frame1.cat frame2.cat --method ritmatch

    # Use isophotal magnitudes for the second catalogue and a tighter radius
    python -m astro_correlate frame1.cat frame2.cat --method ritmatch \
        --mag-type2 mag_iso --param matchrad=2.0

    # FINDOFF, keeping intermediate files for inspection
    python -m astro_correlate frame1.cat frame2.cat --method findoff \
        --temp-dir /tmp/corr --keep-temps
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from astro_correlate.correlator import Correlator
from astro_correlate.exceptions import CorrelationError
from astro_correlate.formats import read_catalogue, write_catalogue
from astro_correlate.methods import default_registry
from astro_correlate.offsets import calculate_match_offsets
from astro_correlate.options import CorrelationOptions

logger = logging.getLogger("astro_correlate.cli")


def _parse_value(text: str) -> Any:
    lowered = text.lower()
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no"):
        return False
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            continue
    return text


def _parse_params(items: list[str]) -> dict[str, Any]:
    params = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected key=value, got '{item}'")
        params[key.strip()] = _parse_value(value.strip())
    return params


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="astro-correlate",
        description="Cross-correlate two source catalogues with an external matcher",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Available methods: {', '.join(default_registry.names())}",
    )
    ap.add_argument("catalog1", type=Path, help="First catalogue file")
    ap.add_argument("catalog2", type=Path, help="Second catalogue file")
    ap.add_argument("--method", "-m", required=True, help="Correlation method (case-insensitive)")
    ap.add_argument(
        "--out-dir",
        type=Path,
        default=Path.cwd(),
        help="Directory for the correlated catalogues (default: current directory)",
    )
    ap.add_argument("--mag-type1", default="mag", help="Magnitude type for catalogue 1")
    ap.add_argument("--mag-type2", default="mag", help="Magnitude type for catalogue 2")
    ap.add_argument("--temp-dir", type=Path, help="Directory for intermediate files")
    ap.add_argument("--keep-temps", action="store_true", help="Keep intermediate files")
    ap.add_argument(
        "--timeout", type=float, default=60.0, help="Seconds to wait for the matcher (default: 60)"
    )
    ap.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Method tuning parameter (repeatable), e.g. --param matchrad=2.0",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return ap


def main(argv: list[str] | None = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        method_params = _parse_params(args.param)
    except argparse.ArgumentTypeError as exc:
        ap.error(str(exc))

    try:
        catalog1 = read_catalogue(args.catalog1)
        catalog2 = read_catalogue(args.catalog2)
        options = CorrelationOptions(
            cat1_mag_type=args.mag_type1,
            cat2_mag_type=args.mag_type2,
            temp_dir=args.temp_dir,
            keep_temps=args.keep_temps,
            verbose=args.verbose,
            timeout=args.timeout,
            method_params=method_params,
        )
        corr = Correlator(catalog1, catalog2, method=args.method, options=options)
        matched1, matched2 = corr.correlate()
    except CorrelationError as exc:
        logger.error(f"Correlation failed: {exc}")
        return 1

    out1 = write_catalogue(matched1, args.out_dir / f"{args.catalog1.stem}_correlated.txt")
    out2 = write_catalogue(matched2, args.out_dir / f"{args.catalog2.stem}_correlated.txt")

    print(f"Matched {len(matched1)} sources using {args.method}")
    print(f"  {out1}")
    print(f"  {out2}")
    if len(matched1):
        offsets = calculate_match_offsets(matched1, matched2)
        print(
            f"  Median offset: {offsets.median_d1:+.3f}, {offsets.median_d2:+.3f} {offsets.unit} "
            f"(MAD {offsets.mad_d1:.3f}, {offsets.mad_d2:.3f})"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
