"""Shared fixtures: sample catalogues and stand-in matcher executables.

The stand-ins are small Python scripts written into ``tmp_path`` that honour
the I/O contract of RIT ``match`` and CCDPACK ``findoff``: they read the
exchange tables, pair each row of the first table with the nearest unused row
of the second within a radius, and write the result files. Every invocation
appends its argument list to ``$FAKE_TOOL_LOG``.
"""

import os
import stat
import sys
import textwrap
from pathlib import Path

import pytest

from astro_correlate.catalog import Catalogue, Entry

_COMMON = '''
import json
import math
import os
import sys
import time


def log_args():
    log = os.environ.get("FAKE_TOOL_LOG")
    if log:
        with open(log, "a") as fh:
            fh.write(json.dumps(sys.argv[1:]) + "\\n")


def read_rows(path):
    rows = []
    with open(path) as fh:
        for line in fh:
            if not line.strip() or line.lstrip().startswith("#"):
                continue
            rows.append(line.split())
    return rows


def pair_rows(rows_a, rows_b, radius):
    used = set()
    pairs = []
    for row_a in rows_a:
        xa, ya = float(row_a[1]), float(row_a[2])
        best, best_d = None, None
        for j, row_b in enumerate(rows_b):
            if j in used:
                continue
            d = math.hypot(float(row_b[1]) - xa, float(row_b[2]) - ya)
            if d <= radius and (best_d is None or d < best_d):
                best, best_d = j, d
        if best is not None:
            used.add(best)
            pairs.append((row_a, rows_b[best]))
    return pairs


def options(argv):
    opts = {}
    for arg in argv:
        if "=" in arg:
            key, value = arg.split("=", 1)
            opts[key] = value
    return opts


def behave(opts):
    mode = os.environ.get("FAKE_TOOL_MODE", "")
    if mode == "fail":
        sys.stderr.write("fake tool: no match found\\n")
        sys.exit(3)
    if mode == "hang":
        time.sleep(30)
    return mode
'''

_MATCH = '''
log_args()
argv = sys.argv[1:]
opts = options(argv)
mode = behave(opts)
file_a, file_b = argv[0], argv[4]
radius = float(opts.get("matchrad", 5.0))
pairs = pair_rows(read_rows(file_a), read_rows(file_b), radius)
if mode == "duplicate" and pairs:
    pairs = pairs + [pairs[0]]
if mode == "unknown":
    pairs = [(["999", "0", "0", "0"], ["998", "0", "0", "0"])] + pairs
base = opts["outfile"]
if mode != "no-output":
    with open(base + ".mtA", "w") as fa, open(base + ".mtB", "w") as fb:
        for row_a, row_b in pairs:
            fa.write(" ".join(row_a[:4]) + "\\n")
            fb.write(" ".join(row_b[:4]) + "\\n")
    for suffix in (".unA", ".unB"):
        open(base + suffix, "w").close()
'''

_FINDOFF = '''
log_args()
argv = sys.argv[1:]
opts = options(argv)
mode = behave(opts)
with open(opts["inlist"].lstrip("^")) as fh:
    file_a, file_b = [line.strip() for line in fh if line.strip()]
radius = float(opts.get("error", 5.0))
pairs = pair_rows(read_rows(file_a), read_rows(file_b), radius)
suffix = opts["outlist"].lstrip("*")
with open(file_a + suffix, "w") as fa, open(file_b + suffix, "w") as fb:
    fa.write("# matched positions\\n")
    fb.write("# matched positions\\n")
    numbered = list(enumerate(pairs, start=1))
    for new_id, (row_a, row_b) in numbered:
        fa.write(" ".join([str(new_id)] + row_a[1:]) + "\\n")
    # FINDOFF lists need not share row order; only identifiers correspond.
    for new_id, (row_a, row_b) in reversed(numbered):
        fb.write(" ".join([str(new_id)] + row_b[1:]) + "\\n")
'''


def _install_tool(directory: Path, name: str, body: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    script = f"#!{sys.executable}\n" + textwrap.dedent(_COMMON) + textwrap.dedent(body)
    path.write_text(script)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def tool_log(tmp_path, monkeypatch):
    """Path that records the argument list of every stand-in invocation."""
    log = tmp_path / "tool_calls.jsonl"
    monkeypatch.setenv("FAKE_TOOL_LOG", str(log))
    monkeypatch.delenv("FAKE_TOOL_MODE", raising=False)
    return log


@pytest.fixture
def fake_match(tmp_path, monkeypatch, tool_log):
    """Stand-in RIT match executable exposed through $MATCH_DIR."""
    bin_dir = tmp_path / "match_bin"
    path = _install_tool(bin_dir, "match", _MATCH)
    monkeypatch.setenv("MATCH_DIR", str(bin_dir))
    return path


@pytest.fixture
def fake_findoff(tmp_path, monkeypatch, tool_log):
    """Stand-in CCDPACK findoff executable exposed through $CCDPACK_DIR."""
    bin_dir = tmp_path / "ccdpack_bin"
    path = _install_tool(bin_dir, "findoff", _FINDOFF)
    monkeypatch.setenv("CCDPACK_DIR", str(bin_dir))
    return path


@pytest.fixture
def no_tools(monkeypatch, tmp_path):
    """Environment where no matcher executable can be found."""
    empty = tmp_path / "empty_bin"
    empty.mkdir()
    monkeypatch.setenv("PATH", str(empty))
    monkeypatch.delenv("MATCH_DIR", raising=False)
    monkeypatch.delenv("CCDPACK_DIR", raising=False)


@pytest.fixture
def scratch_root(tmp_path, monkeypatch):
    """Redirect default temporary directories so leftovers can be inspected."""
    root = tmp_path / "tmp"
    root.mkdir()
    monkeypatch.setenv("TMPDIR", str(root))
    import tempfile

    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


def make_catalogue(name, rows, mag_type="mag"):
    """Build a pixel catalogue from (id, x, y, mag) tuples."""
    catalogue = Catalogue(name=name)
    for identifier, x, y, mag in rows:
        catalogue.push(
            Entry(identifier=identifier, x=x, y=y, magnitudes={mag_type: mag})
        )
    return catalogue


@pytest.fixture
def scenario_catalogues():
    cat1 = make_catalogue("A", [(1, 10.0, 10.0, 5.0), (2, 50.0, 50.0, 6.0)])
    cat2 = make_catalogue("B", [(7, 10.2, 9.9, 5.1), (9, 200.0, 200.0, 9.0)])
    return cat1, cat2


@pytest.fixture
def field_catalogues():
    """Two overlapping frames: catalogue 2 is catalogue 1 shifted by (+3, -2)
    with reversed order, two extra sources each side, and new identifiers."""
    base = [
        (12.0, 40.0, 14.1),
        (80.5, 22.3, 15.2),
        (140.0, 150.0, 13.7),
        (33.3, 190.2, 16.0),
        (250.1, 75.9, 12.9),
        (199.0, 230.4, 17.3),
    ]
    rows1 = [(i + 1, x, y, m) for i, (x, y, m) in enumerate(base)]
    rows1 += [(7, 500.0, 500.0, 18.0), (8, 600.0, 20.0, 18.5)]
    rows2 = [(100 + i, x + 3.0, y - 2.0, m + 0.1) for i, (x, y, m) in enumerate(reversed(base))]
    rows2 += [(200, 900.0, 900.0, 19.0), (201, 950.0, 10.0, 19.5)]
    return make_catalogue("frame1", rows1), make_catalogue("frame2", rows2)
