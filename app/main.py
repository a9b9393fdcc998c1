# app/main.py
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .catalog import catalog_router
from .catalog.cache import CatalogCache
from .catalog.errors import CatalogError, InvalidQuery, NotFound, SourceUnavailable
from .catalog.loader import JsonCatalogSource
from .settings import Settings, get_settings


logger = logging.getLogger("app")

ERROR_STATUS = {
    InvalidQuery: 400,
    NotFound: 404,
    SourceUnavailable: 500,
}


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        level=getattr(logging, settings.log_level),
    )


def build_cache(settings: Settings) -> CatalogCache:
    source = JsonCatalogSource(
        settings.data_dir,
        catalogue_pattern=settings.catalogue_pattern,
        recordings_file=settings.recordings_file,
    )
    return CatalogCache(source, ttl_seconds=settings.cache_ttl_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    cache = build_cache(settings)
    # A failed first load leaves the cache empty; the next request retries.
    if not cache.warm():
        logger.warning("Starting with an empty catalogue cache")
    app.state.catalog_cache = cache
    yield


settings = get_settings()
configure_logging(settings)

app = FastAPI(
    title="Early Composers Catalogue",
    description=(
        "Read-only API over composer catalogues and a recordings database, "
        "with filtering, search, pagination and statistics."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    level = logging.INFO if response.status_code < 400 else logging.WARNING
    logger.log(
        level,
        "%s %s -> %s (%.1f ms)",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": code, "message": message},
    )


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    status_code = ERROR_STATUS.get(type(exc), 500)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error(status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return _error(400, InvalidQuery.code, f"Invalid request: {details}")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return _error(404, "ENDPOINT_NOT_FOUND", f"No endpoint at {request.url.path}; see /api")
    return _error(exc.status_code, "HTTP_ERROR", str(exc.detail))


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "INTERNAL_ERROR", "Internal server error")


# Liveness check
@app.get("/")
def health_check():
    return {"status": "ok", "service": "early-composers-catalogue", "version": "1.0.0"}


app.include_router(catalog_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, log_level=settings.log_level.lower())
