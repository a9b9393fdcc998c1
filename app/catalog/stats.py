"""
Summary statistics over catalogue collections.

Every function here is a pure reducer: it reads the collection it is
given (whole or already filtered, the caller decides) and returns a
new value without touching its input.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, Iterable, List, Sequence

from .loader import CatalogSnapshot
from .query import recordings_for_composer
from .schemas import ComposerCatalogue, Recording, Work


def average_rating(recordings: Iterable[Recording]) -> float:
    """Mean critical rating rounded to two decimals, 0 when nothing is rated."""
    ratings = [r.rating for r in recordings if r.rating is not None]
    if not ratings:
        return 0.0
    return round(sum(ratings) / len(ratings), 2)


def count_by_category(works: Iterable[Work]) -> Dict[str, int]:
    """Number of works per category code. Empty categories are absent."""
    return dict(Counter(w.category for w in works))


def count_by_decade(recordings: Iterable[Recording]) -> Dict[int, int]:
    """Number of recordings per decade, keyed by the decade's first year."""
    return dict(Counter(r.recording_info.year // 10 * 10 for r in recordings))


def count_by_platform(recordings: Iterable[Recording]) -> Dict[str, int]:
    """Number of recordings available on each streaming platform."""
    counts: Counter = Counter()
    for recording in recordings:
        counts.update({link.platform for link in recording.streaming_links})
    return dict(counts)


def unique_performer_count(recordings: Iterable[Recording]) -> int:
    """Distinct soloist, conductor and ensemble names.

    Entries of the ``soloists`` list are not counted, only the three
    primary performer fields.
    """
    performers = set()
    for recording in recordings:
        p = recording.performers
        for name in (p.soloist, p.conductor, p.ensemble):
            if name:
                performers.add(name)
    return len(performers)


def period_options(works: Iterable[Work]) -> List[Dict[str, str]]:
    """Year filter options sized to the span of composition years.

    Spans of up to 10 years list single years, up to 50 years use
    five-year buckets and anything longer uses decades. Each option's
    ``value`` is accepted by the ``period`` work filter.
    """
    years = sorted({w.year_composed for w in works if w.year_composed})
    if not years:
        return []
    low, high = years[0], years[-1]
    span = high - low
    if span <= 10:
        return [{"value": str(y), "label": str(y)} for y in range(low, high + 1)]
    step = 5 if span <= 50 else 10
    start = low // step * step
    # Round the end up to the next bucket boundary; a year sitting exactly on
    # a boundary still gets its own bucket.
    end = -(-high // step) * step
    if end == high:
        end += step
    options = []
    for bucket in range(start, end, step):
        label = f"{bucket}s" if step == 10 else f"{bucket}-{bucket + step - 1}"
        options.append({"value": f"{bucket}-{bucket + step - 1}", "label": label})
    return options


def catalogue_overview(snapshot: CatalogSnapshot) -> Dict[str, Any]:
    """Headline numbers for the whole catalogue."""
    works = snapshot.works
    recordings = snapshot.recordings
    return {
        "composers": len(snapshot.catalogues),
        "works": len(works),
        "recordings": len(recordings),
        "categories": sum(len(c.categories) for c in snapshot.catalogues.values()),
        "streamingPlatforms": len(snapshot.platforms) or len(count_by_platform(recordings)),
        "uniquePerformers": unique_performer_count(recordings),
        "averageRating": average_rating(recordings),
        "worksByCategory": count_by_category(works),
        "recordingsByDecade": count_by_decade(recordings),
    }


def composer_stats(catalogue: ComposerCatalogue, recordings: Sequence[Recording]) -> Dict[str, Any]:
    """Numbers for one composer's catalogue and the recordings of it."""
    works = catalogue.works
    own_recordings = recordings_for_composer(recordings, catalogue.composer)
    dated = [w.year_composed for w in works if w.year_composed]
    return {
        "composer": catalogue.composer.id,
        "catalogSystem": catalogue.catalog_system.abbreviation,
        "works": len(works),
        "categories": len(catalogue.categories),
        "recordings": len(own_recordings),
        "averageRating": average_rating(own_recordings),
        "uniquePerformers": unique_performer_count(own_recordings),
        "worksByCategory": count_by_category(works),
        "recordingsByDecade": count_by_decade(own_recordings),
        "earliestWork": min(dated) if dated else None,
        "latestWork": max(dated) if dated else None,
        "periods": period_options(works),
    }
