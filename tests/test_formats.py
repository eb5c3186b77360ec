"""Tests for exchange tables and catalogue files."""

import numpy as np
import pytest

from astro_correlate.catalog import Catalogue, Entry
from astro_correlate.exceptions import ExternalToolError, InvalidInputError
from astro_correlate.formats import (
    column_as_tags,
    read_catalogue,
    read_exchange_table,
    write_catalogue,
    write_exchange_table,
)


class TestExchangeTables:
    def test_write_layout(self, tmp_path):
        path = tmp_path / "in.cat"
        positions = np.array([[1.0, 2.0], [3.25, 4.5]])
        write_exchange_table(path, [1, 2], positions, {"mag": [14.0, 15.5]}, header="test")

        lines = path.read_text().splitlines()
        assert lines[0] == "# test"
        assert lines[1] == "# tag x y mag"
        assert lines[2].split() == ["1", "1.000000", "2.000000", "14.000000"]
        assert lines[3].split()[0] == "2"

    def test_read_skips_comments(self, tmp_path):
        path = tmp_path / "out.mtA"
        path.write_text("# comment\n3 1.0 2.0 14.0\n1 5.0 6.0 15.0\n")
        df = read_exchange_table(path, "match")
        assert column_as_tags(df, 0, "match", path) == [3, 1]

    def test_empty_output_is_empty_table(self, tmp_path):
        path = tmp_path / "out.mtA"
        path.write_text("")
        df = read_exchange_table(path, "match")
        assert df.empty
        assert column_as_tags(df, 0, "match", path) == []

    def test_missing_output_raises(self, tmp_path):
        with pytest.raises(ExternalToolError, match="did not produce"):
            read_exchange_table(tmp_path / "nope.mtA", "match")

    def test_non_integer_tags_raise(self, tmp_path):
        path = tmp_path / "out.off"
        path.write_text("1 1.0 2.0 abc\n2 3.0 4.0 1.5\n")
        df = read_exchange_table(path, "findoff")
        with pytest.raises(ExternalToolError, match="integer"):
            column_as_tags(df, 3, "findoff", path)

    def test_missing_column_raises(self, tmp_path):
        path = tmp_path / "out.off"
        path.write_text("1 1.0 2.0\n")
        df = read_exchange_table(path, "findoff")
        with pytest.raises(ExternalToolError, match="no column"):
            column_as_tags(df, 3, "findoff", path)


class TestCatalogueFiles:
    def test_read_with_header(self, tmp_path):
        path = tmp_path / "frame.cat"
        path.write_text("# id x y mag mag_iso\n1 10.0 10.0 5.0 5.2\n2 50.0 50.0 6.0 6.1\n")
        cat = read_catalogue(path)
        assert cat.name == "frame"
        assert len(cat) == 2
        assert cat[0] == Entry(identifier=1, x=10.0, y=10.0, magnitudes={"mag": 5.0, "mag_iso": 5.2})

    def test_read_without_header_defaults_to_pixel_layout(self, tmp_path):
        path = tmp_path / "plain.cat"
        path.write_text("4 1.0 2.0 13.0\n")
        cat = read_catalogue(path, name="plain")
        assert cat[0].identifier == 4
        assert cat[0].position("pixel") == (1.0, 2.0)
        assert cat[0].magnitude() == 13.0

    def test_read_sky_catalogue(self, tmp_path):
        path = tmp_path / "sky.cat"
        path.write_text("# id RA Dec mag\n1 150.1 2.2 18.0\n")
        cat = read_catalogue(path)
        assert cat.coordinate_system() == "sky"
        assert cat[0].ra_deg == 150.1

    def test_read_missing_or_empty(self, tmp_path):
        with pytest.raises(InvalidInputError):
            read_catalogue(tmp_path / "missing.cat")
        empty = tmp_path / "empty.cat"
        empty.write_text("# id x y mag\n")
        with pytest.raises(InvalidInputError):
            read_catalogue(empty)

    def test_write_then_read(self, tmp_path):
        cat = Catalogue(
            name="out",
            entries=[
                Entry(identifier=1, x=1.0, y=2.0, magnitudes={"mag": 14.0}),
                Entry(identifier=2, x=3.0, y=4.0, magnitudes={"mag": 15.0}),
            ],
        )
        path = write_catalogue(cat, tmp_path / "sub" / "out.txt")
        assert path.read_text().splitlines()[0] == "# id x y mag"
        assert read_catalogue(path, name="out") == cat

    def test_row_wider_than_header_is_invalid(self, tmp_path):
        path = tmp_path / "frame.cat"
        path.write_text("# id x y mag\n1 10.0 20.0 5.0 starA\n")
        with pytest.raises(InvalidInputError, match="line 2 has 5 fields"):
            read_catalogue(path)

    def test_row_narrower_than_header_is_invalid(self, tmp_path):
        path = tmp_path / "frame.cat"
        path.write_text("# id x y mag\n1 10.0 20.0 5.0\n2 11.0 21.0\n")
        with pytest.raises(InvalidInputError, match="expected 4"):
            read_catalogue(path)

    def test_annotations_written_as_single_field(self, tmp_path):
        cat = Catalogue(
            name="out",
            entries=[
                Entry(identifier=1, x=1.0, y=2.0, magnitudes={"mag": 14.0}, annotation="galaxy pair"),
                Entry(identifier=2, x=3.0, y=4.0, magnitudes={"mag": 15.0}),
            ],
        )
        path = write_catalogue(cat, tmp_path / "out.txt")
        lines = path.read_text().splitlines()
        assert lines[0] == "# id x y mag annotation"
        assert lines[1].split()[-1] == "galaxy_pair"
        assert lines[2].split()[-1] == "-"

        back = read_catalogue(path)
        assert [e.annotation for e in back] == ["galaxy_pair", ""]
