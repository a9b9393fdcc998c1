"""Tests for the summary statistics reducers."""

from app.catalog.schemas import Work
from app.catalog.stats import (
    average_rating,
    catalogue_overview,
    composer_stats,
    count_by_category,
    count_by_decade,
    count_by_platform,
    period_options,
    unique_performer_count,
)


def dated_works(*years):
    return [
        Work(catalog_id=f"X {i}", title=f"Work {i}", category="misc", year_composed=y)
        for i, y in enumerate(years)
    ]


class TestReducers:
    def test_average_rating(self, recordings):
        # 4.8, 4.5 and 4.6; the unrated recording is ignored.
        assert average_rating(recordings) == 4.63

    def test_average_rating_of_nothing(self, recordings):
        assert average_rating([]) == 0.0
        assert average_rating(recordings[3:]) == 0.0

    def test_count_by_decade(self, recordings):
        assert count_by_decade(recordings[:3]) == {1980: 1, 1970: 1, 2020: 1}

    def test_count_by_category(self, works):
        assert count_by_category(works) == {"cantatas": 2, "masses": 1, "orchestral": 1, "keyboard": 1}

    def test_count_by_platform(self, recordings):
        assert count_by_platform(recordings) == {"Spotify": 2, "YouTube": 1, "Tidal": 1}

    def test_unique_performers_skip_soloists_list(self, recordings):
        # Gardiner, Monteverdi Choir, Karajan, Berlin Phil, Pinnock,
        # English Concert and Gould; Argenta, Chance and Baltsa are not counted.
        assert unique_performer_count(recordings) == 7

    def test_inputs_untouched(self, recordings):
        before = list(recordings)
        average_rating(recordings)
        count_by_decade(recordings)
        assert recordings == before


class TestPeriodOptions:
    def test_no_dates(self):
        assert period_options([]) == []

    def test_short_span_lists_years(self):
        options = period_options(dated_works(1721, 1725))
        assert [o["value"] for o in options] == ["1721", "1722", "1723", "1724", "1725"]

    def test_medium_span_uses_five_year_buckets(self, works):
        options = period_options(works)
        assert options[0] == {"value": "1720-1724", "label": "1720-1724"}
        assert options[-1]["value"] == "1745-1749"
        assert len(options) == 6

    def test_boundary_year_gets_its_bucket(self):
        options = period_options(dated_works(1720, 1750))
        assert options[-1]["value"] == "1750-1754"

    def test_long_span_uses_decades(self):
        options = period_options(dated_works(1700, 1760))
        assert options[0] == {"value": "1700-1709", "label": "1700s"}
        assert options[-1]["label"] == "1760s"
        assert len(options) == 7


class TestOverview:
    def test_catalogue_overview(self, cache):
        overview = catalogue_overview(cache.snapshot())
        assert overview["composers"] == 2
        assert overview["works"] == 6
        assert overview["recordings"] == 4
        assert overview["categories"] == 5
        assert overview["streamingPlatforms"] == 3
        assert overview["uniquePerformers"] == 7
        assert overview["averageRating"] == 4.63
        assert overview["worksByCategory"]["sacred"] == 1
        assert overview["recordingsByDecade"] == {1980: 1, 1970: 1, 2020: 1, 1950: 1}

    def test_composer_stats(self, cache):
        snapshot = cache.snapshot()
        stats = composer_stats(snapshot.catalogue("bach"), snapshot.recordings)
        assert stats["composer"] == "bach"
        assert stats["catalogSystem"] == "BWV"
        assert stats["works"] == 5
        assert stats["recordings"] == 3
        assert stats["averageRating"] == 4.7
        assert stats["earliestWork"] == 1721
        assert stats["latestWork"] == 1749
