"""
Route definitions for the catalogue API.

Endpoints under /api:
- GET  /api                                : endpoint index
- GET  /api/composers[/{id}[/works|/recordings]]
- GET  /api/works, /api/works/search, /api/works/{catalog_id}
- GET  /api/works/composer|genre|year/{value}
- GET  /api/recordings, /api/recordings/{id}
- GET  /api/recordings/work|performer/{value}
- GET  /api/search, POST /api/search/advanced
- GET  /api/stats, /api/stats/composer/{id}

Handlers are thin: they coerce parameters into query structs, take the
current snapshot from the injected cache and hand both to the query
engine. Catalogue errors propagate to the handlers in ``app.main``.
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Request

from ..settings import Settings, get_settings
from .cache import CatalogCache
from .loader import CatalogSnapshot
from .query import (
    Page,
    RecordingQuery,
    SearchQuery,
    WorkQuery,
    find_recording,
    find_work,
    parse_query,
    query_recordings,
    query_works,
    require_search_term,
    search_composers,
    search_recordings,
    search_works,
)
from .schemas import (
    AdvancedSearchResponse,
    Composer,
    ComposerDetail,
    ComposerList,
    ComposerResponse,
    ComposerSummary,
    RecordingList,
    RecordingResponse,
    SearchResponse,
    SearchResults,
    StatsResponse,
    WorkList,
    WorkResponse,
    WorkSearchResponse,
)
from .stats import catalogue_overview, composer_stats


router = APIRouter(prefix="/api", tags=["catalog"])


def get_catalog_cache(request: Request) -> CatalogCache:
    """The process-wide cache created in the application lifespan."""
    return request.app.state.catalog_cache


def get_snapshot(cache: CatalogCache = Depends(get_catalog_cache)) -> CatalogSnapshot:
    return cache.snapshot()


def work_query(request: Request, settings: Settings = Depends(get_settings)) -> WorkQuery:
    return parse_query(WorkQuery, request.query_params, settings.max_page_size)


def recording_query(request: Request, settings: Settings = Depends(get_settings)) -> RecordingQuery:
    return parse_query(RecordingQuery, request.query_params, settings.max_page_size)


def search_query(request: Request) -> SearchQuery:
    return parse_query(SearchQuery, request.query_params)


def _composers(snapshot: CatalogSnapshot) -> List[Composer]:
    return [c.composer for c in snapshot.composers]


def _work_list(page: Page) -> WorkList:
    return WorkList(
        count=len(page.items),
        total=page.total_matched,
        page=page.page,
        total_pages=page.total_pages,
        data=page.items,
    )


def _recording_list(page: Page) -> RecordingList:
    return RecordingList(
        count=len(page.items),
        total=page.total_matched,
        page=page.page,
        total_pages=page.total_pages,
        data=page.items,
    )


@router.get("")
def api_index() -> Dict[str, Any]:
    """Endpoint index."""
    return {
        "name": "Early Composers Musical Catalogue API",
        "version": "1.0.0",
        "endpoints": {
            "composers": {
                "list": "GET /api/composers",
                "detail": "GET /api/composers/:id",
                "works": "GET /api/composers/:id/works",
                "recordings": "GET /api/composers/:id/recordings",
            },
            "works": {
                "list": "GET /api/works",
                "detail": "GET /api/works/:id",
                "search": "GET /api/works/search?q=query",
                "byComposer": "GET /api/works/composer/:composerId",
                "byGenre": "GET /api/works/genre/:genre",
                "byYear": "GET /api/works/year/:year",
            },
            "recordings": {
                "list": "GET /api/recordings",
                "detail": "GET /api/recordings/:id",
                "byWork": "GET /api/recordings/work/:workId",
                "byPerformer": "GET /api/recordings/performer/:name",
            },
            "search": {
                "global": "GET /api/search?q=query",
                "advanced": "POST /api/search/advanced",
            },
            "stats": {
                "overview": "GET /api/stats",
                "composer": "GET /api/stats/composer/:id",
            },
        },
        "documentation": "/docs",
    }


# ---------------------------------------------------------------------------
# Composers


@router.get("/composers", response_model=ComposerList)
def list_composers(snapshot: CatalogSnapshot = Depends(get_snapshot)) -> ComposerList:
    composers = [
        ComposerSummary(
            id=c.composer.id,
            full_name=c.composer.full_name,
            birth_date=c.composer.birth_date,
            death_date=c.composer.death_date,
            nationality=c.composer.nationality,
            period=c.composer.period,
            total_works=len(c.works),
            catalog_system=c.catalog_system.abbreviation,
        )
        for c in snapshot.composers
    ]
    return ComposerList(count=len(composers), data=composers)


@router.get("/composers/{composer_id}", response_model=ComposerResponse)
def get_composer(composer_id: str, snapshot: CatalogSnapshot = Depends(get_snapshot)) -> ComposerResponse:
    catalogue = snapshot.catalogue(composer_id)
    detail = ComposerDetail.model_validate(
        {
            **catalogue.composer.model_dump(),
            "total_works": len(catalogue.works),
            "catalog_system": catalogue.catalog_system,
            "categories": catalogue.categories,
        }
    )
    return ComposerResponse(data=detail)


@router.get("/composers/{composer_id}/works", response_model=WorkList)
def list_composer_works(
    composer_id: str,
    query: WorkQuery = Depends(work_query),
    snapshot: CatalogSnapshot = Depends(get_snapshot),
    settings: Settings = Depends(get_settings),
) -> WorkList:
    catalogue = snapshot.catalogue(composer_id)
    scoped = query.model_copy(update={"composer": catalogue.composer.id})
    page = query_works(catalogue.works, scoped, settings.works_page_size)
    return _work_list(page)


@router.get("/composers/{composer_id}/recordings", response_model=RecordingList)
def list_composer_recordings(
    composer_id: str,
    query: RecordingQuery = Depends(recording_query),
    snapshot: CatalogSnapshot = Depends(get_snapshot),
    settings: Settings = Depends(get_settings),
) -> RecordingList:
    catalogue = snapshot.catalogue(composer_id)
    scoped = query.model_copy(update={"composer": catalogue.composer.id})
    page = query_recordings(
        snapshot.recordings, scoped, settings.recordings_page_size, _composers(snapshot)
    )
    return _recording_list(page)


# ---------------------------------------------------------------------------
# Works


@router.get("/works", response_model=WorkList)
def list_works(
    query: WorkQuery = Depends(work_query),
    snapshot: CatalogSnapshot = Depends(get_snapshot),
    settings: Settings = Depends(get_settings),
) -> WorkList:
    """Paginated works with equality, range and text filters."""
    page = query_works(snapshot.works, query, settings.works_page_size)
    return _work_list(page)


@router.get("/works/search", response_model=WorkSearchResponse)
def search_works_endpoint(
    query: SearchQuery = Depends(search_query),
    snapshot: CatalogSnapshot = Depends(get_snapshot),
    settings: Settings = Depends(get_settings),
) -> WorkSearchResponse:
    term = require_search_term(query.q)
    results = search_works(snapshot.works, term, query.limit or settings.works_search_limit)
    return WorkSearchResponse(query=term, count=len(results), data=results)


@router.get("/works/composer/{composer_id}", response_model=WorkList)
def list_works_by_composer(
    composer_id: str,
    query: WorkQuery = Depends(work_query),
    snapshot: CatalogSnapshot = Depends(get_snapshot),
    settings: Settings = Depends(get_settings),
) -> WorkList:
    scoped = query.model_copy(update={"composer": composer_id})
    return _work_list(query_works(snapshot.works, scoped, settings.works_page_size))


@router.get("/works/genre/{genre}", response_model=WorkList)
def list_works_by_genre(
    genre: str,
    query: WorkQuery = Depends(work_query),
    snapshot: CatalogSnapshot = Depends(get_snapshot),
    settings: Settings = Depends(get_settings),
) -> WorkList:
    scoped = query.model_copy(update={"category": genre})
    return _work_list(query_works(snapshot.works, scoped, settings.works_page_size))


@router.get("/works/year/{year}", response_model=WorkList)
def list_works_by_year(
    year: int,
    query: WorkQuery = Depends(work_query),
    snapshot: CatalogSnapshot = Depends(get_snapshot),
    settings: Settings = Depends(get_settings),
) -> WorkList:
    scoped = query.model_copy(update={"year": year})
    return _work_list(query_works(snapshot.works, scoped, settings.works_page_size))


@router.get("/works/{catalog_id}", response_model=WorkResponse)
def get_work(catalog_id: str, snapshot: CatalogSnapshot = Depends(get_snapshot)) -> WorkResponse:
    return WorkResponse(data=find_work(snapshot.works, catalog_id))


# ---------------------------------------------------------------------------
# Recordings


@router.get("/recordings", response_model=RecordingList)
def list_recordings(
    query: RecordingQuery = Depends(recording_query),
    snapshot: CatalogSnapshot = Depends(get_snapshot),
    settings: Settings = Depends(get_settings),
) -> RecordingList:
    """Paginated recordings filtered by work, performer, year and platform."""
    page = query_recordings(
        snapshot.recordings, query, settings.recordings_page_size, _composers(snapshot)
    )
    return _recording_list(page)


@router.get("/recordings/work/{work_id}", response_model=RecordingList)
def list_recordings_by_work(
    work_id: str,
    query: RecordingQuery = Depends(recording_query),
    snapshot: CatalogSnapshot = Depends(get_snapshot),
    settings: Settings = Depends(get_settings),
) -> RecordingList:
    scoped = query.model_copy(update={"work": work_id})
    return _recording_list(
        query_recordings(snapshot.recordings, scoped, settings.recordings_page_size, _composers(snapshot))
    )


@router.get("/recordings/performer/{name}", response_model=RecordingList)
def list_recordings_by_performer(
    name: str,
    query: RecordingQuery = Depends(recording_query),
    snapshot: CatalogSnapshot = Depends(get_snapshot),
    settings: Settings = Depends(get_settings),
) -> RecordingList:
    scoped = query.model_copy(update={"performer": name})
    return _recording_list(
        query_recordings(snapshot.recordings, scoped, settings.recordings_page_size, _composers(snapshot))
    )


@router.get("/recordings/{recording_id}", response_model=RecordingResponse)
def get_recording(recording_id: str, snapshot: CatalogSnapshot = Depends(get_snapshot)) -> RecordingResponse:
    return RecordingResponse(data=find_recording(snapshot.recordings, recording_id))


# ---------------------------------------------------------------------------
# Search


@router.get("/search", response_model=SearchResponse)
def global_search(
    query: SearchQuery = Depends(search_query),
    snapshot: CatalogSnapshot = Depends(get_snapshot),
    settings: Settings = Depends(get_settings),
) -> SearchResponse:
    """Search works, recordings and composers at once.

    ``limit`` caps the works and recordings sections separately.
    """
    term = require_search_term(query.q)
    limit = query.limit or settings.search_section_limit
    results = SearchResults(
        works=search_works(snapshot.works, term, limit),
        recordings=search_recordings(snapshot.recordings, term, limit),
        composers=search_composers(snapshot.composers, term),
    )
    total = len(results.works) + len(results.recordings) + len(results.composers)
    return SearchResponse(query=term, total_results=total, data=results)


@router.post("/search/advanced", response_model=AdvancedSearchResponse)
def advanced_search(
    criteria: Dict[str, Any] = Body(...),
    snapshot: CatalogSnapshot = Depends(get_snapshot),
    settings: Settings = Depends(get_settings),
) -> AdvancedSearchResponse:
    """Works matching every criterion in the JSON body.

    Without ``page`` or ``limit`` in the body all matches come back on a
    single page.
    """
    query = parse_query(WorkQuery, criteria, settings.max_page_size)
    page = query_works(snapshot.works, query, default_page_size=None)
    return AdvancedSearchResponse(
        count=len(page.items),
        total=page.total_matched,
        page=page.page,
        total_pages=page.total_pages,
        criteria=criteria,
        data=page.items,
    )


# ---------------------------------------------------------------------------
# Statistics


@router.get("/stats", response_model=StatsResponse)
def catalogue_stats(snapshot: CatalogSnapshot = Depends(get_snapshot)) -> StatsResponse:
    return StatsResponse(data=catalogue_overview(snapshot))


@router.get("/stats/composer/{composer_id}", response_model=StatsResponse)
def composer_statistics(composer_id: str, snapshot: CatalogSnapshot = Depends(get_snapshot)) -> StatsResponse:
    catalogue = snapshot.catalogue(composer_id)
    return StatsResponse(data=composer_stats(catalogue, snapshot.recordings))
