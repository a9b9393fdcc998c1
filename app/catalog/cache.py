"""
Time-boxed cache in front of the catalogue data source.

``CatalogCache`` owns the current ``CatalogSnapshot``. Readers get the
snapshot reference and keep using it for the rest of their request; a
refresh builds a complete new snapshot and swaps the reference, so a
reader never observes a partially loaded catalogue.

When a refresh fails the previous snapshot stays current. Readers that
only need *some* data keep being served from it; only when nothing has
ever been loaded does ``SourceUnavailable`` reach the caller.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Tuple

from typing_extensions import Protocol

from .errors import SourceUnavailable
from .loader import CatalogSnapshot


logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60


class CatalogSource(Protocol):
    def load(self) -> CatalogSnapshot:
        ...


class CatalogCache:
    """Serve catalogue snapshots, reloading them once they go stale.

    Parameters
    ----------
    source : CatalogSource
        Anything with a ``load()`` method returning a ``CatalogSnapshot``.
    ttl_seconds : float
        Freshness window. A snapshot older than this is reloaded on the
        next read.
    clock : Callable[[], float]
        Monotonic time source; tests pass a fake one.
    """

    def __init__(
        self,
        source: CatalogSource,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        # (snapshot, refreshed_at), replaced as one value on refresh.
        self._current: Optional[Tuple[CatalogSnapshot, float]] = None
        self.last_error: Optional[SourceUnavailable] = None

    @property
    def loaded(self) -> bool:
        return self._current is not None

    @property
    def age(self) -> Optional[float]:
        """Seconds since the last successful refresh, ``None`` if never loaded."""
        current = self._current
        if current is None:
            return None
        return self._clock() - current[1]

    @property
    def is_fresh(self) -> bool:
        age = self.age
        return age is not None and age < self.ttl_seconds

    def refresh(self) -> CatalogSnapshot:
        """Reload every collection from the source.

        Raises
        ------
        SourceUnavailable
            When the source fails. The previous snapshot is left in place.
        """
        try:
            snapshot = self.source.load()
        except SourceUnavailable as exc:
            self.last_error = exc
            if self._current is not None:
                logger.error("Catalogue refresh failed, keeping stale snapshot: %s", exc)
            else:
                logger.error("Catalogue refresh failed, no data loaded: %s", exc)
            raise
        self._current = (snapshot, self._clock())
        self.last_error = None
        logger.info(
            "Catalogue refreshed: %d composers, %d works, %d recordings",
            len(snapshot.catalogues),
            len(snapshot.works),
            len(snapshot.recordings),
        )
        return snapshot

    def warm(self) -> bool:
        """Initial load at start-up. Returns ``False`` instead of raising."""
        try:
            self.refresh()
        except SourceUnavailable:
            return False
        return True

    def snapshot(self) -> CatalogSnapshot:
        """Return the current snapshot, refreshing it first when stale."""
        current = self._current
        if current is not None and self._clock() - current[1] < self.ttl_seconds:
            return current[0]
        try:
            return self.refresh()
        except SourceUnavailable:
            if current is None:
                raise
            return current[0]

    def get(self, collection_name: str) -> Any:
        """Return one collection of the current snapshot by name."""
        return self.snapshot().collection(collection_name)
