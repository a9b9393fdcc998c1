"""
Pydantic schema definitions for the catalogue module.

The source JSON files use camelCase keys and a few legacy names (the
Bach catalogue stores its catalogue number under ``bwv`` and the
German title under ``germanTitle``). Every model accepts both the
legacy and the canonical key and always serialises with the canonical
camelCase alias, so API clients only ever see one spelling.

All entity models are frozen: a snapshot loaded by the cache is shared
between requests and must never be changed in place.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel
from typing_extensions import Literal


Period = Literal["Renaissance", "Baroque", "Classical", "Early Romantic", "Romantic"]

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
VARIOUS_ARTISTS = "Various Artists"


class CatalogModel(BaseModel):
    """Base for frozen entity models with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


def _alias(*names: str) -> Dict[str, Any]:
    # First name is the canonical (serialised) key; the rest are accepted on input.
    return {
        "validation_alias": AliasChoices(*names),
        "serialization_alias": names[0],
    }


# ---------------------------------------------------------------------------
# Composer catalogue


class Composer(CatalogModel):
    id: str
    full_name: str = Field(min_length=1)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birth_date: str = Field(pattern=DATE_PATTERN)
    birth_place: Optional[str] = None
    death_date: str = Field(pattern=DATE_PATTERN)
    death_place: Optional[str] = None
    nationality: str
    period: Period
    catalog_prefix: Optional[str] = None
    total_works: Optional[int] = Field(default=None, ge=0)
    biography: Optional[str] = None

    @property
    def birth_year(self) -> int:
        return int(self.birth_date[:4])

    @property
    def death_year(self) -> int:
        return int(self.death_date[:4])

    @model_validator(mode="after")
    def check_lifespan(self) -> "Composer":
        if self.birth_year >= self.death_year:
            raise ValueError(
                f"birth year {self.birth_year} must precede death year {self.death_year}"
            )
        return self


class CatalogSystem(CatalogModel):
    name: str
    abbreviation: str
    author: Optional[str] = None
    publication_year: Optional[int] = None
    revision_year: Optional[int] = None
    description: Optional[str] = None


class Category(CatalogModel):
    """A category of works, keyed by its short code in the catalogue file."""

    name: str
    catalog_range: Optional[str] = Field(
        default=None, **_alias("catalogRange", "bwvRange", "catalog_range")
    )
    description: Optional[str] = None
    count: Optional[int] = None


class Work(CatalogModel):
    """A single catalogued work.

    ``composer`` is not present in the source files; the loader fills it
    with the id of the composer whose catalogue the work came from.
    """

    catalog_id: str = Field(**_alias("catalogId", "bwv", "catalog_id"))
    title: str = Field(min_length=1)
    localized_title: Optional[str] = Field(
        default=None, **_alias("localizedTitle", "germanTitle", "localized_title")
    )
    category: str
    key: Optional[str] = None
    year_composed: Optional[int] = None
    instrumentation: Optional[str] = None
    movement_count: Optional[int] = Field(
        default=None, ge=1, **_alias("movementCount", "movements", "movement_count")
    )
    duration_minutes: Optional[float] = Field(
        default=None, **_alias("durationMinutes", "duration", "duration_minutes")
    )
    description: Optional[str] = None
    movement_names: Optional[List[str]] = Field(
        default=None, **_alias("movementNames", "movementList", "movement_names")
    )
    composer: Optional[str] = None


class ComposerCatalogue(CatalogModel):
    """One composer catalogue file: ``{composer, catalogSystem, categories, works}``."""

    composer: Composer
    catalog_system: CatalogSystem
    categories: Dict[str, Category] = Field(default_factory=dict)
    works: List[Work] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_catalog_ids(self) -> "ComposerCatalogue":
        seen = set()
        for work in self.works:
            if work.catalog_id in seen:
                raise ValueError(f"duplicate catalogue id {work.catalog_id!r}")
            seen.add(work.catalog_id)
        return self


# ---------------------------------------------------------------------------
# Recordings


class Performers(CatalogModel):
    conductor: Optional[str] = None
    soloist: Optional[str] = None
    soloists: Optional[List[str]] = None
    ensemble: Optional[str] = None

    @computed_field(alias="displayName")
    @property
    def display_name(self) -> str:
        """Main performer shown on cards: soloist, conductor, then ensemble."""
        return self.soloist or self.conductor or self.ensemble or VARIOUS_ARTISTS

    def names(self) -> List[str]:
        """Every performer name on the recording, soloists list included."""
        names = [n for n in (self.conductor, self.soloist, self.ensemble) if n]
        names.extend(self.soloists or [])
        return names


class RecordingInfo(CatalogModel):
    year: int = Field(ge=1900, le=2030)
    venue: Optional[str] = None
    label: str
    catalog_number: Optional[str] = None
    format: List[str] = Field(default_factory=list)
    duration_minutes: float = Field(
        **_alias("durationMinutes", "duration", "duration_minutes")
    )
    recording_type: Optional[str] = None


class AudioQuality(CatalogModel):
    format: str
    bitrate: Optional[str] = None
    remastered: bool = False
    remaster_year: Optional[int] = None


class StreamingLink(CatalogModel):
    platform: str
    url: str
    availability: Optional[str] = None
    subscription: Optional[bool] = None


class Review(CatalogModel):
    source: str
    rating_text: Optional[str] = Field(
        default=None, **_alias("ratingText", "rating", "rating_text")
    )
    excerpt: Optional[str] = None


class CriticalReception(CatalogModel):
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    reviews: Optional[List[Review]] = None


class Recording(CatalogModel):
    id: str
    work_id: str
    composer: str
    work_title: str
    performers: Performers = Field(default_factory=Performers)
    recording_info: RecordingInfo
    audio_quality: AudioQuality
    streaming_links: List[StreamingLink] = Field(default_factory=list)
    critical_reception: Optional[CriticalReception] = None
    historical_significance: Optional[str] = None

    @property
    def rating(self) -> Optional[float]:
        if self.critical_reception is None:
            return None
        return self.critical_reception.rating


class RecordingsDatabase(CatalogModel):
    """The recordings file: ``{recordings, platforms}``."""

    recordings: List[Recording] = Field(default_factory=list)
    platforms: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_unique_ids(self) -> "RecordingsDatabase":
        seen = set()
        for recording in self.recordings:
            if recording.id in seen:
                raise ValueError(f"duplicate recording id {recording.id!r}")
            seen.add(recording.id)
        return self


# ---------------------------------------------------------------------------
# API envelopes


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ComposerSummary(ApiModel):
    id: str
    full_name: str
    birth_date: str
    death_date: str
    nationality: str
    period: Period
    total_works: int
    catalog_system: str


class ComposerDetail(Composer):
    catalog_system: CatalogSystem
    categories: Dict[str, Category]


class ListResponse(ApiModel):
    """Pagination metadata shared by the list envelopes."""

    success: bool = True
    count: int
    total: int
    page: int
    total_pages: int


class WorkList(ListResponse):
    data: List[Work]


class RecordingList(ListResponse):
    data: List[Recording]


class ComposerList(ApiModel):
    success: bool = True
    count: int
    data: List[ComposerSummary]


class SearchResults(ApiModel):
    works: List[Work] = Field(default_factory=list)
    recordings: List[Recording] = Field(default_factory=list)
    composers: List[Composer] = Field(default_factory=list)


class SearchResponse(ApiModel):
    success: bool = True
    query: str
    total_results: int
    data: SearchResults


class WorkSearchResponse(ApiModel):
    success: bool = True
    query: str
    count: int
    data: List[Work]


class ErrorResponse(ApiModel):
    success: bool = False
    error: str
    message: str


class ComposerResponse(ApiModel):
    success: bool = True
    data: ComposerDetail


class WorkResponse(ApiModel):
    success: bool = True
    data: Work


class RecordingResponse(ApiModel):
    success: bool = True
    data: Recording


class AdvancedSearchResponse(WorkList):
    criteria: Dict[str, Any]


class StatsResponse(ApiModel):
    success: bool = True
    data: Dict[str, Any]
