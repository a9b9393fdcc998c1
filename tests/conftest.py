"""Pytest configuration and fixtures."""

import copy
import json

import pytest
from fastapi.testclient import TestClient

from app.catalog.cache import CatalogCache
from app.catalog.loader import JsonCatalogSource
from app.catalog.router import get_catalog_cache
from app.catalog.schemas import Recording, Work
from app.main import app


BACH_CATALOGUE = {
    "composer": {
        "id": "bach",
        "fullName": "Johann Sebastian Bach",
        "lastName": "Bach",
        "birthDate": "1685-03-31",
        "deathDate": "1750-07-28",
        "nationality": "German",
        "period": "Baroque",
        "catalogPrefix": "BWV",
        "totalWorks": 1128,
    },
    "catalogSystem": {"name": "Bach-Werke-Verzeichnis", "abbreviation": "BWV"},
    "categories": {
        "cantatas": {"name": "Cantatas", "bwvRange": "1-224", "count": 200},
        "masses": {"name": "Masses"},
        "keyboard": {"name": "Keyboard Works", "bwvRange": "772-994"},
        "orchestral": {"name": "Orchestral Works", "bwvRange": "1046-1071"},
    },
    "works": [
        {
            "bwv": "BWV 1",
            "title": "Wie schön leuchtet der Morgenstern",
            "germanTitle": "Wie schön leuchtet der Morgenstern",
            "category": "cantatas",
            "key": "F major",
            "yearComposed": 1725,
            "instrumentation": "Choir, Orchestra",
            "movements": 6,
            "duration": 25,
        },
        {
            "bwv": "BWV 232",
            "title": "Mass in B minor",
            "germanTitle": "Messe in h-Moll",
            "category": "masses",
            "key": "B minor",
            "yearComposed": 1749,
            "instrumentation": "SATB choir, soloists, orchestra",
            "movements": 27,
            "duration": 108,
        },
        {
            "bwv": "BWV 1046",
            "title": "Brandenburg Concerto No. 1",
            "category": "orchestral",
            "key": "F major",
            "yearComposed": 1721,
            "instrumentation": "2 horns, 3 oboes, bassoon, strings, continuo",
            "movements": 4,
            "duration": 22,
        },
        {
            "bwv": "BWV 988",
            "title": "Goldberg Variations",
            "category": "keyboard",
            "key": "G major",
            "yearComposed": 1741,
            "instrumentation": "Harpsichord",
            "movements": 30,
            "duration": 45,
            "movementList": ["Aria", "Variatio 1"],
        },
        {
            "bwv": "BWV 140",
            "title": "Wachet auf",
            "category": "cantatas",
            "key": "E-flat major",
        },
    ],
}

MOZART_CATALOGUE = {
    "composer": {
        "id": "mozart",
        "fullName": "Wolfgang Amadeus Mozart",
        "lastName": "Mozart",
        "birthDate": "1756-01-27",
        "deathDate": "1791-12-05",
        "nationality": "Austrian",
        "period": "Classical",
    },
    "catalogSystem": {"name": "Köchel Catalogue", "abbreviation": "K"},
    "categories": {"sacred": {"name": "Sacred Music"}},
    "works": [
        {
            "catalogId": "K. 626",
            "title": "Requiem in D minor",
            "category": "sacred",
            "key": "D minor",
            "yearComposed": 1791,
        }
    ],
}

RECORDINGS = {
    "recordings": [
        {
            "id": "rec_001",
            "workId": "BWV 232",
            "composer": "Bach",
            "workTitle": "Mass in B minor",
            "performers": {
                "conductor": "John Eliot Gardiner",
                "ensemble": "Monteverdi Choir & English Baroque Soloists",
                "soloists": ["Nancy Argenta", "Michael Chance"],
            },
            "recordingInfo": {
                "year": 1985,
                "label": "Archiv Produktion",
                "format": ["CD", "Digital"],
                "duration": 108,
            },
            "audioQuality": {"format": "DDD"},
            "streamingLinks": [
                {"platform": "Spotify", "url": "https://open.spotify.com/album/1", "subscription": True},
                {"platform": "YouTube", "url": "https://www.youtube.com/1", "subscription": False},
            ],
            "criticalReception": {
                "rating": 4.8,
                "reviews": [{"source": "Gramophone", "rating": "5/5", "excerpt": "A landmark."}],
            },
        },
        {
            "id": "rec_002",
            "workId": "K. 626",
            "composer": "Mozart",
            "workTitle": "Requiem in D minor",
            "performers": {
                "conductor": "Herbert von Karajan",
                "ensemble": "Berlin Philharmonic Orchestra",
                "soloists": ["Agnes Baltsa"],
            },
            "recordingInfo": {
                "year": 1975,
                "label": "Deutsche Grammophon",
                "format": ["CD"],
                "duration": 56,
            },
            "audioQuality": {"format": "ADD", "remastered": True, "remasterYear": 2001},
            "streamingLinks": [
                {"platform": "Spotify", "url": "https://open.spotify.com/album/2", "subscription": True}
            ],
            "criticalReception": {"rating": 4.5},
        },
        {
            "id": "rec_003",
            "workId": "BWV 1046",
            "composer": "Bach",
            "workTitle": "Brandenburg Concerto No. 1",
            "performers": {"conductor": "Trevor Pinnock", "ensemble": "The English Concert"},
            "recordingInfo": {
                "year": 2020,
                "label": "Avie Records",
                "format": ["Digital"],
                "duration": 22,
            },
            "audioQuality": {"format": "DDD"},
            "streamingLinks": [
                {"platform": "Tidal", "url": "https://tidal.com/album/3", "subscription": True}
            ],
            "criticalReception": {"rating": 4.6},
        },
        {
            "id": "rec_004",
            "workId": "BWV 988",
            "composer": "Bach",
            "workTitle": "Goldberg Variations",
            "performers": {"soloist": "Glenn Gould"},
            "recordingInfo": {
                "year": 1955,
                "label": "Columbia Masterworks",
                "format": ["LP"],
                "duration": 38,
            },
            "audioQuality": {"format": "ADD"},
            "streamingLinks": [],
        },
    ],
    "platforms": {"Spotify": {}, "YouTube": {}, "Tidal": {}},
}


class FakeClock:
    """Manually advanced stand-in for ``time.monotonic``."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")


@pytest.fixture
def bach_data():
    return copy.deepcopy(BACH_CATALOGUE)


@pytest.fixture
def recordings_data():
    return copy.deepcopy(RECORDINGS)


@pytest.fixture
def data_dir(tmp_path, bach_data, recordings_data):
    """A data directory holding two catalogues and the recordings file."""
    write_json(tmp_path / "bach-bwv-catalogue.json", bach_data)
    write_json(tmp_path / "mozart-k-catalogue.json", copy.deepcopy(MOZART_CATALOGUE))
    write_json(tmp_path / "recordings-database.json", recordings_data)
    return tmp_path


@pytest.fixture
def source(data_dir):
    return JsonCatalogSource(data_dir)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(source, clock):
    return CatalogCache(source, ttl_seconds=300, clock=clock)


@pytest.fixture
def works():
    """Bach works as loaded models, in file order."""
    return [
        Work.model_validate({**w, "composer": "bach"}) for w in BACH_CATALOGUE["works"]
    ]


@pytest.fixture
def recordings():
    return [Recording.model_validate(r) for r in RECORDINGS["recordings"]]


@pytest.fixture
def client(cache):
    """Test client with the catalogue cache dependency overridden."""
    app.dependency_overrides[get_catalog_cache] = lambda: cache
    with_client = TestClient(app)
    yield with_client
    app.dependency_overrides.clear()
