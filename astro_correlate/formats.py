"""
Text tables exchanged with external matchers, plus plain catalogue files.

Exchange tables are whitespace-separated with one row per entry and ``#``
comment lines. Column layout is fixed per backend; every layout carries the
entry's origin tag in a known column so the full entry can be recovered after
the round trip:

======== =====================  ===============================
Backend  Input columns          Origin tag in tool output
======== =====================  ===============================
findoff  tag x y tag            first column after x y
ritmatch tag x y mag            first column (echoed as id)
======== =====================  ===============================

Catalogue files (used by the CLI) start with a ``#`` header naming their
columns, e.g. ``# id x y mag mag_iso`` or ``# id ra dec mag``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

import numpy as np
import pandas as pd

from astro_correlate.catalog import Catalogue
from astro_correlate.exceptions import ExternalToolError, InvalidInputError

logger = logging.getLogger(__name__)

DEFAULT_CATALOGUE_COLUMNS = ["id", "x", "y", "mag"]
EMPTY_ANNOTATION = "-"


# =============================================================================
# Exchange tables
# =============================================================================


def write_exchange_table(
    path: Path,
    tags: Sequence[int],
    positions: np.ndarray,
    extra_columns: Mapping[str, Sequence] | None = None,
    header: str = "",
) -> None:
    """Write an exchange table: tag, x, y, then any extra columns in order.

    Parameters
    ----------
    path : Path
        Output file.
    tags : sequence of int
        Origin tags, written as the first column.
    positions : ndarray
        (N, 2) planar positions.
    extra_columns : mapping, optional
        Additional columns appended after x and y.
    header : str
        Comment written as the first line.
    """
    df = pd.DataFrame(
        {
            "tag": np.asarray(tags, dtype=np.int64),
            "x": positions[:, 0],
            "y": positions[:, 1],
        }
    )
    for name, values in (extra_columns or {}).items():
        df[name] = values

    with open(path, "w") as fh:
        if header:
            fh.write(f"# {header}\n")
        fh.write("# " + " ".join(df.columns) + "\n")
        df.to_csv(fh, sep=" ", header=False, index=False, float_format="%.6f")
    logger.debug(f"Wrote {len(df)} rows to {path}")


def read_exchange_table(path: Path, tool: str) -> pd.DataFrame:
    """Read a result table written by an external matcher.

    Columns are numbered from 0. An empty file yields an empty DataFrame.

    Raises
    ------
    ExternalToolError
        If the file does not exist or cannot be parsed.
    """
    path = Path(path)
    if not path.exists():
        raise ExternalToolError(
            f"{tool} did not produce expected output file {path}",
            tool=tool,
            path=str(path),
        )
    try:
        df = pd.read_csv(path, sep=r"\s+", comment="#", header=None)
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ExternalToolError(
            f"Could not parse {tool} output {path}: {e}",
            tool=tool,
            path=str(path),
        ) from e
    logger.debug(f"Read {len(df)} rows from {path}")
    return df


def column_as_tags(df: pd.DataFrame, column: int, tool: str, path: Path) -> list[int]:
    """Return ``df[column]`` as a list of integer origin tags.

    Raises
    ------
    ExternalToolError
        If the column is missing or holds non-integer values.
    """
    if df.empty:
        return []
    if column not in df.columns:
        raise ExternalToolError(
            f"{tool} output {path} has no column {column}",
            tool=tool,
            path=str(path),
        )
    values = pd.to_numeric(df[column], errors="coerce")
    if values.isna().any() or not np.all(np.mod(values, 1) == 0):
        raise ExternalToolError(
            f"{tool} output {path} column {column} does not hold integer identifiers",
            tool=tool,
            path=str(path),
        )
    return [int(v) for v in values]


# =============================================================================
# Catalogue files
# =============================================================================


def _header_columns(path: Path) -> list[str] | None:
    with open(path) as fh:
        for line in fh:
            stripped = line.strip()
            if not stripped:
                continue
            if stripped.startswith("#"):
                tokens = stripped.lstrip("#").split()
                if tokens and tokens[0].lower() == "id":
                    return [t.lower() if t.lower() in ("id", "x", "y", "ra", "dec") else t for t in tokens]
                continue
            return None
    return None


def _check_row_widths(path: Path, columns: list[str]) -> None:
    """Raise InvalidInputError on the first data row whose field count differs from ``columns``."""
    with open(path) as fh:
        for lineno, line in enumerate(fh, start=1):
            fields = line.split("#", 1)[0].split()
            if fields and len(fields) != len(columns):
                raise InvalidInputError(
                    f"Catalogue {path} line {lineno} has {len(fields)} fields, "
                    f"expected {len(columns)} ({' '.join(columns)})",
                    path=str(path),
                    line=lineno,
                )


def read_catalogue(path: str | Path, name: str | None = None) -> Catalogue:
    """Read a whitespace-separated catalogue file.

    The column layout comes from a ``# id ...`` header line; without one the
    file is read as ``id x y mag``.

    Raises
    ------
    InvalidInputError
        If the file is missing, empty or its rows do not fit the header.
    """
    path = Path(path)
    if not path.exists():
        raise InvalidInputError(f"Catalogue file not found: {path}", path=str(path))

    columns = _header_columns(path) or DEFAULT_CATALOGUE_COLUMNS
    _check_row_widths(path, columns)
    try:
        df = pd.read_csv(
            path, sep=r"\s+", comment="#", header=None, names=columns, index_col=False
        )
    except pd.errors.EmptyDataError as e:
        raise InvalidInputError(f"Catalogue file is empty: {path}", path=str(path)) from e
    except pd.errors.ParserError as e:
        raise InvalidInputError(f"Could not parse catalogue {path}: {e}", path=str(path)) from e

    if df.empty:
        raise InvalidInputError(f"Catalogue file is empty: {path}", path=str(path))
    if "annotation" in df.columns:
        df["annotation"] = df["annotation"].astype(str).replace(EMPTY_ANNOTATION, "")
    return Catalogue.from_dataframe(df, name=name or path.stem)


def write_catalogue(catalogue: Catalogue, path: str | Path) -> Path:
    """Write ``catalogue`` in the format read by ``read_catalogue``.

    Annotations are written as one whitespace-free field: spaces become
    underscores and an empty annotation is written as ``-``. Reading the file
    back restores empty annotations but keeps the underscores.
    """
    path = Path(path)
    df = catalogue.to_dataframe()
    for column in ("x", "y", "ra", "dec"):
        if df[column].isna().all():
            df = df.drop(columns=column)
    annotations = df.pop("annotation")
    if annotations.astype(bool).any():
        # Free text may contain spaces, so it goes last with spaces escaped.
        df["annotation"] = annotations.str.replace(" ", "_", regex=False).replace("", EMPTY_ANNOTATION)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as fh:
        fh.write("# " + " ".join(df.columns) + "\n")
        df.to_csv(fh, sep=" ", header=False, index=False, na_rep="nan")
    logger.info(f"Wrote {len(df)} entries to {path}")
    return path
