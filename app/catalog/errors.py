"""
Error taxonomy for the catalogue.

Each error carries a stable ``code`` string that ends up in the JSON
error body. HTTP status codes are not decided here; ``app.main`` maps
each class to a status when it turns the exception into a response.
"""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for all catalogue errors."""

    code = "CATALOG_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SourceUnavailable(CatalogError):
    """A source file could not be read, parsed or validated."""

    code = "SOURCE_UNAVAILABLE"


class InvalidQuery(CatalogError):
    """A required parameter is missing or a parameter is malformed."""

    code = "INVALID_QUERY"


class NotFound(CatalogError):
    """A lookup by identifier yielded no match."""

    code = "NOT_FOUND"
