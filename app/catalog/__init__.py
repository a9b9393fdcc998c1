"""
Catalog package for the early composers catalogue API.

This package loads composer catalogues and the recordings database
from JSON files, keeps them in a time-boxed in-memory cache and
exposes them through a read-only REST API that supports filtering,
keyword search, sorting, pagination and summary statistics. The data
source is pluggable: anything with a ``load()`` method returning a
``CatalogSnapshot`` can stand in for the JSON files.
"""

from .router import router as catalog_router  # noqa: F401
