"""
Query and pagination engine shared by every list and search endpoint.

A query runs in three stages over an immutable collection:

1. filters narrow the collection left to right (AND semantics); an
   absent parameter lets everything through its stage,
2. the survivors are sorted once with a stable sort,
3. one page is sliced out and returned together with the totals.

Every stage builds a new list; the cached snapshot is never touched.

Parameters arrive as typed query structs (``WorkQuery``,
``RecordingQuery`` and ``SearchQuery``). ``parse_query`` turns an
untyped mapping such as a query string into one of them, rejecting
unknown keys and values that cannot be coerced.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import (
    Any, Callable, Dict, Generic, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Type, TypeVar,
)

from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator,
)
from typing_extensions import Literal

from .errors import InvalidQuery, NotFound
from .schemas import Composer, ComposerCatalogue, Recording, Work


T = TypeVar("T")
Q = TypeVar("Q", bound=BaseModel)

WorkSort = Literal["catalog", "year", "title"]
RecordingSort = Literal["none", "year", "rating", "title"]
RecordingEra = Literal["historical", "1980s", "1990s", "2000s", "2010s", "2020s"]

# Inclusive year bounds per era; None means unbounded.
ERA_RANGES: Dict[str, Tuple[Optional[int], Optional[int]]] = {
    "historical": (None, 1979),
    "1980s": (1980, 1989),
    "1990s": (1990, 1999),
    "2000s": (2000, 2009),
    "2010s": (2010, 2019),
    "2020s": (2020, None),
}


def _norm(s: Optional[str]) -> str:
    """Normalize a string for case-insensitive comparison."""
    return (s or "").strip().lower()


def _choices(*names: str) -> AliasChoices:
    return AliasChoices(*names)


def _drop_blank(data: Any) -> Any:
    # Empty form fields mean "no filter".
    if isinstance(data, Mapping):
        return {
            k: v for k, v in data.items()
            if not (v is None or (isinstance(v, str) and not v.strip()))
        }
    return data


# ---------------------------------------------------------------------------
# Query structs


class BaseQuery(BaseModel):
    """Common pagination fields. Unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    q: Optional[str] = Field(default=None, validation_alias=_choices("q", "search"))
    page: int = 1
    page_size: Optional[int] = Field(
        default=None, gt=0, validation_alias=_choices("limit", "pageSize", "page_size")
    )
    year: Optional[int] = None
    year_from: Optional[int] = Field(default=None, validation_alias=_choices("yearFrom", "year_from"))
    year_to: Optional[int] = Field(default=None, validation_alias=_choices("yearTo", "year_to"))

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        return _drop_blank(data)

    @field_validator("page")
    @classmethod
    def clamp_page(cls, v: int) -> int:
        return max(1, v)


class WorkQuery(BaseQuery):
    composer: Optional[str] = None
    category: Optional[str] = Field(default=None, validation_alias=_choices("category", "genre"))
    key: Optional[str] = None
    instrumentation: Optional[str] = None
    period: Optional[str] = None
    sort: WorkSort = "catalog"

    @field_validator("period")
    @classmethod
    def validate_period(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            parse_period(v)
        return v


class RecordingQuery(BaseQuery):
    composer: Optional[str] = None
    work: Optional[str] = Field(default=None, validation_alias=_choices("work", "workId"))
    performer: Optional[str] = None
    era: Optional[RecordingEra] = None
    platform: Optional[str] = None
    sort: RecordingSort = "none"


class SearchQuery(BaseModel):
    """Parameters of the keyword search endpoints. Unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    q: Optional[str] = Field(default=None, validation_alias=_choices("q", "search"))
    limit: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        return _drop_blank(data)


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ())) or "query"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def parse_query(model: Type[Q], params: Mapping[str, Any], max_page_size: Optional[int] = None) -> Q:
    """Coerce untyped parameters into a query struct.

    Raises
    ------
    InvalidQuery
        For unknown keys, values that do not coerce, or a page size
        above ``max_page_size``.
    """
    try:
        query = model.model_validate(dict(params))
    except ValidationError as exc:
        raise InvalidQuery(f"Invalid query parameters: {_describe(exc)}") from exc
    page_size = getattr(query, "page_size", None)
    if max_page_size is not None and page_size is not None and page_size > max_page_size:
        raise InvalidQuery(f"page size must not exceed {max_page_size}")
    return query


def parse_period(value: str) -> Tuple[int, int]:
    """Parse ``"1720"`` or ``"1720-1729"`` into inclusive year bounds."""
    parts = value.strip().split("-")
    try:
        if len(parts) == 1:
            year = int(parts[0])
            return year, year
        if len(parts) == 2:
            return int(parts[0]), int(parts[1])
    except ValueError:
        pass
    raise ValueError(f"period must look like 1720 or 1720-1729, got {value!r}")


# ---------------------------------------------------------------------------
# Matching


def work_matches(work: Work, needle: str) -> bool:
    """Case-insensitive substring test over the searchable work fields."""
    fields = (work.title, work.localized_title, work.catalog_id, work.category)
    return any(needle in _norm(f) for f in fields if f)


def recording_matches(recording: Recording, needle: str) -> bool:
    """Case-insensitive substring test over work title and performer names."""
    if needle in _norm(recording.work_title):
        return True
    return performer_matches(recording, needle)


def performer_matches(recording: Recording, needle: str) -> bool:
    return any(needle in _norm(name) for name in recording.performers.names())


def _in_range(year: Optional[int], low: Optional[int], high: Optional[int]) -> bool:
    if year is None:
        return False
    if low is not None and year < low:
        return False
    if high is not None and year > high:
        return False
    return True


# ---------------------------------------------------------------------------
# Filters


def filter_works(works: Iterable[Work], query: WorkQuery) -> List[Work]:
    """Apply every filter of ``query`` to ``works``.

    Works without ``yearComposed`` never match a year, range or period
    filter. An out-of-order range (``yearFrom > yearTo``) simply matches
    nothing.
    """
    items = list(works)
    if query.composer:
        composer = _norm(query.composer)
        items = [w for w in items if _norm(w.composer) == composer]
    if query.category:
        category = _norm(query.category)
        items = [w for w in items if _norm(w.category) == category]
    if query.key:
        key = _norm(query.key)
        items = [w for w in items if _norm(w.key) == key]
    if query.year is not None:
        items = [w for w in items if w.year_composed == query.year]
    if query.year_from is not None or query.year_to is not None:
        items = [w for w in items if _in_range(w.year_composed, query.year_from, query.year_to)]
    if query.period:
        low, high = parse_period(query.period)
        items = [w for w in items if _in_range(w.year_composed, low, high)]
    if query.instrumentation:
        instrumentation = _norm(query.instrumentation)
        items = [w for w in items if instrumentation in _norm(w.instrumentation)]
    needle = _norm(query.q)
    if needle:
        items = [w for w in items if work_matches(w, needle)]
    return items


def composer_aliases(composer: Composer) -> Set[str]:
    """Normalized names a recording may use for ``composer``."""
    names = {_norm(composer.id), _norm(composer.full_name)}
    if composer.last_name:
        names.add(_norm(composer.last_name))
    return names


def _composer_names(value: str, composers: Iterable[Composer]) -> Set[str]:
    # A value naming a known composer by id, last name or full name matches
    # every alias of that composer.
    wanted = _norm(value)
    names = {wanted}
    for composer in composers:
        aliases = composer_aliases(composer)
        if wanted in aliases:
            names |= aliases
    return names


def filter_recordings(
    recordings: Iterable[Recording], query: RecordingQuery, composers: Iterable[Composer] = ()
) -> List[Recording]:
    """Apply every filter of ``query`` to ``recordings``.

    ``composers`` resolves the ``composer`` filter: a recording matches
    when its composer name is any alias of the composer the filter names.
    """
    items = list(recordings)
    if query.composer:
        names = _composer_names(query.composer, composers)
        items = [r for r in items if _norm(r.composer) in names]
    if query.work:
        work = _norm(query.work)
        items = [r for r in items if _norm(r.work_id) == work]
    if query.performer:
        performer = _norm(query.performer)
        items = [r for r in items if performer_matches(r, performer)]
    if query.year is not None:
        items = [r for r in items if r.recording_info.year == query.year]
    if query.year_from is not None or query.year_to is not None:
        items = [
            r for r in items
            if _in_range(r.recording_info.year, query.year_from, query.year_to)
        ]
    if query.era:
        low, high = ERA_RANGES[query.era]
        items = [r for r in items if _in_range(r.recording_info.year, low, high)]
    if query.platform:
        platform = _norm(query.platform)
        items = [
            r for r in items
            if any(_norm(link.platform) == platform for link in r.streaming_links)
        ]
    needle = _norm(query.q)
    if needle:
        items = [r for r in items if recording_matches(r, needle)]
    return items


# ---------------------------------------------------------------------------
# Sorting


WORK_SORT_KEYS: Dict[str, Callable[[Work], Any]] = {
    "catalog": lambda w: w.catalog_id.casefold(),
    "year": lambda w: w.year_composed or 0,
    "title": lambda w: w.title.casefold(),
}

RECORDING_SORT_KEYS: Dict[str, Callable[[Recording], Any]] = {
    "year": lambda r: r.recording_info.year,
    # Highest rated first; unrated sorts as 0.
    "rating": lambda r: -(r.rating or 0.0),
    "title": lambda r: r.work_title.casefold(),
}


def sort_works(works: Iterable[Work], sort: str = "catalog") -> List[Work]:
    try:
        key = WORK_SORT_KEYS[sort]
    except KeyError:
        raise InvalidQuery(f"Unknown work sort {sort!r}") from None
    return sorted(works, key=key)


def sort_recordings(recordings: Iterable[Recording], sort: str = "none") -> List[Recording]:
    if sort == "none":
        return list(recordings)
    try:
        key = RECORDING_SORT_KEYS[sort]
    except KeyError:
        raise InvalidQuery(f"Unknown recording sort {sort!r}") from None
    return sorted(recordings, key=key)


# ---------------------------------------------------------------------------
# Pagination


@dataclass(frozen=True)
class Page(Generic[T]):
    items: List[T]
    total_matched: int
    page: int
    page_size: int
    total_pages: int


def paginate(items: Sequence[T], page: int = 1, page_size: int = 50) -> Page[T]:
    """Slice one page out of ``items``.

    ``page`` below 1 is treated as 1. A page past the end yields an empty
    ``items`` list, not an error.

    Raises
    ------
    InvalidQuery
        When ``page_size`` is not positive.
    """
    if page_size <= 0:
        raise InvalidQuery("page size must be positive")
    page = max(1, page)
    total = len(items)
    total_pages = -(-total // page_size)
    start = (page - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        total_matched=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
    )


def _page_size(query: BaseQuery, default: Optional[int], total: int) -> int:
    if query.page_size is not None:
        return query.page_size
    if default is not None:
        return default
    # No page size at all: everything on a single page.
    return max(total, 1)


def query_works(works: Iterable[Work], query: WorkQuery, default_page_size: Optional[int] = 50) -> Page[Work]:
    """Filter, sort and paginate works."""
    matched = sort_works(filter_works(works, query), query.sort)
    return paginate(matched, query.page, _page_size(query, default_page_size, len(matched)))


def query_recordings(
    recordings: Iterable[Recording],
    query: RecordingQuery,
    default_page_size: Optional[int] = 20,
    composers: Iterable[Composer] = (),
) -> Page[Recording]:
    """Filter, sort and paginate recordings."""
    matched = sort_recordings(filter_recordings(recordings, query, composers), query.sort)
    return paginate(matched, query.page, _page_size(query, default_page_size, len(matched)))


# ---------------------------------------------------------------------------
# Keyword search and lookups


def require_search_term(text: Optional[str]) -> str:
    """Search endpoints need a term; an empty one is a request error."""
    term = (text or "").strip()
    if not term:
        raise InvalidQuery("Search query required")
    return term


def search_works(works: Iterable[Work], text: str, limit: Optional[int] = None) -> List[Work]:
    needle = _norm(text)
    results = [w for w in works if work_matches(w, needle)]
    return results if limit is None else results[:limit]


def search_recordings(recordings: Iterable[Recording], text: str, limit: Optional[int] = None) -> List[Recording]:
    needle = _norm(text)
    results = [r for r in recordings if recording_matches(r, needle)]
    return results if limit is None else results[:limit]


def search_composers(catalogues: Iterable[ComposerCatalogue], text: str) -> List[Composer]:
    needle = _norm(text)
    return [c.composer for c in catalogues if needle in _norm(c.composer.full_name)]


def find_work(works: Iterable[Work], catalog_id: str) -> Work:
    """Look a work up by catalogue id, ignoring case."""
    wanted = _norm(catalog_id)
    for work in works:
        if _norm(work.catalog_id) == wanted:
            return work
    raise NotFound(f"Work {catalog_id!r} not found")


def find_recording(recordings: Iterable[Recording], recording_id: str) -> Recording:
    for recording in recordings:
        if recording.id == recording_id:
            return recording
    raise NotFound(f"Recording {recording_id!r} not found")


def recordings_for_composer(recordings: Iterable[Recording], composer: Composer) -> List[Recording]:
    """Recordings whose denormalised composer name refers to ``composer``.

    Recording files name the composer loosely ("Bach"), so the id, last
    name and full name all count as a match.
    """
    names = composer_aliases(composer)
    return [r for r in recordings if _norm(r.composer) in names]
