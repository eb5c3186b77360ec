"""Tests for the Entry and Catalogue models."""

import math

import pandas as pd
import pytest

from astro_correlate.catalog import PIXEL, SKY, Catalogue, Entry
from astro_correlate.exceptions import InvalidInputError


class TestEntry:
    def test_coordinate_systems(self):
        assert Entry(x=1.0, y=2.0).coordinate_systems() == {PIXEL}
        assert Entry(ra_deg=10.0, dec_deg=-5.0).coordinate_systems() == {SKY}
        assert Entry(x=1.0, y=2.0, ra_deg=10.0, dec_deg=-5.0).coordinate_systems() == {PIXEL, SKY}
        assert Entry(x=1.0).coordinate_systems() == set()
        assert Entry(x=math.nan, y=1.0).coordinate_systems() == set()

    def test_magnitude_lookup(self):
        entry = Entry(magnitudes={"mag": 5.0, "mag_iso": 5.3})
        assert entry.magnitude() == 5.0
        assert entry.magnitude("mag_iso") == 5.3
        assert entry.magnitude("mag_auto") is None

    def test_same_source_ignores_identifier_and_origin(self):
        a = Entry(identifier=1, x=1.0, y=2.0, magnitudes={"mag": 5.0}, annotation="star")
        b = Entry(identifier=9, x=1.0, y=2.0, magnitudes={"mag": 5.0}, annotation="star", origin=3)
        assert a.same_source(b)
        b.magnitudes["mag"] = 5.1
        assert not a.same_source(b)


class TestCatalogue:
    def test_push_and_iterate(self):
        cat = Catalogue(name="c")
        cat.push(Entry(identifier=1, x=0.0, y=0.0))
        cat.extend([Entry(identifier=2, x=1.0, y=1.0)])
        assert len(cat) == 2
        assert [e.identifier for e in cat] == [1, 2]
        assert cat[1].identifier == 2

    def test_push_rejects_non_entries(self):
        with pytest.raises(InvalidInputError):
            Catalogue().push((1, 2.0, 3.0))

    def test_pop_by_id_removes_all_duplicates(self):
        cat = Catalogue(
            entries=[
                Entry(identifier=1, x=0.0, y=0.0),
                Entry(identifier=2, x=1.0, y=1.0),
                Entry(identifier=1, x=2.0, y=2.0),
            ]
        )
        assert cat.has_duplicate_identifiers()
        popped = cat.pop_by_id(1)
        assert [e.x for e in popped] == [0.0, 2.0]
        assert cat.identifiers() == [2]
        assert not cat.has_duplicate_identifiers()

    def test_pop_by_unknown_id_returns_empty(self):
        cat = Catalogue(entries=[Entry(identifier=1, x=0.0, y=0.0)])
        assert cat.pop_by_id(42) == []
        assert len(cat) == 1

    def test_copy_is_deep(self):
        cat = Catalogue(name="c", entries=[Entry(identifier=1, x=0.0, y=0.0, magnitudes={"mag": 1.0})])
        clone = cat.copy()
        clone[0].identifier = 5
        clone[0].magnitudes["mag"] = 2.0
        assert cat[0].identifier == 1
        assert cat[0].magnitudes["mag"] == 1.0
        assert clone != cat

    def test_coordinate_system(self):
        pixel = Catalogue(entries=[Entry(x=0.0, y=0.0, ra_deg=1.0, dec_deg=1.0), Entry(x=1.0, y=1.0)])
        assert pixel.coordinate_system() == PIXEL
        sky = Catalogue(entries=[Entry(ra_deg=1.0, dec_deg=1.0), Entry(x=1.0, y=1.0, ra_deg=2.0, dec_deg=2.0)])
        assert sky.coordinate_system() == SKY

    def test_coordinate_system_mixed_or_empty(self):
        with pytest.raises(InvalidInputError):
            Catalogue(entries=[Entry(x=0.0, y=0.0), Entry(ra_deg=1.0, dec_deg=1.0)]).coordinate_system()
        with pytest.raises(InvalidInputError):
            Catalogue(name="empty").coordinate_system()

    def test_dataframe_round_trip(self):
        cat = Catalogue(
            name="c",
            entries=[
                Entry(identifier=1, x=1.5, y=2.5, magnitudes={"mag": 14.0, "mag_iso": 14.2}),
                Entry(identifier=2, x=3.5, y=4.5, magnitudes={"mag": 15.0}, annotation="blend"),
            ],
        )
        df = cat.to_dataframe()
        assert list(df.columns) == ["id", "x", "y", "ra", "dec", "annotation", "mag", "mag_iso"]
        assert pd.isna(df.loc[1, "mag_iso"])

        back = Catalogue.from_dataframe(df, name="c")
        assert back == cat
