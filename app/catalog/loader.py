"""
JSON data source for the catalogue.

Each composer has one catalogue file (``bach-bwv-catalogue.json`` and
so on) holding ``{composer, catalogSystem, categories, works}``; all
recordings live in a single ``recordings-database.json`` holding
``{recordings, platforms}``. ``JsonCatalogSource.load()`` reads every
file and returns a ``CatalogSnapshot``. Any unreadable or invalid file
fails the whole load with ``SourceUnavailable`` so that the cache never
sees a half-loaded catalogue.

Referential problems (a work pointing at an unknown category, a
recording pointing at an unknown work) are reported as warnings only.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

from pydantic import ValidationError

from .errors import NotFound, SourceUnavailable
from .schemas import ComposerCatalogue, Recording, RecordingsDatabase, Work


logger = logging.getLogger(__name__)

COLLECTIONS = ("composers", "works", "recordings", "categories")


@dataclass(frozen=True)
class CatalogSnapshot:
    """An immutable, fully loaded copy of every collection."""

    catalogues: Dict[str, ComposerCatalogue] = field(default_factory=dict)
    recordings: Tuple[Recording, ...] = ()
    platforms: Dict[str, Any] = field(default_factory=dict)

    @property
    def works(self) -> Tuple[Work, ...]:
        return tuple(w for c in self.catalogues.values() for w in c.works)

    @property
    def composers(self) -> Tuple[ComposerCatalogue, ...]:
        return tuple(self.catalogues.values())

    def collection(self, name: str) -> Any:
        """Return a collection by name (see ``COLLECTIONS``)."""
        if name == "composers":
            return self.composers
        if name == "works":
            return self.works
        if name == "recordings":
            return self.recordings
        if name == "categories":
            return {cid: c.categories for cid, c in self.catalogues.items()}
        raise KeyError(f"unknown collection {name!r}")

    def catalogue(self, composer_id: str) -> ComposerCatalogue:
        try:
            return self.catalogues[composer_id.strip().lower()]
        except KeyError:
            raise NotFound(f"Composer {composer_id!r} not found") from None


def _read_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as exc:
        raise SourceUnavailable(f"Cannot read {path.name}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SourceUnavailable(f"Invalid JSON in {path.name}: {exc}") from exc


def load_catalogue(path: Path) -> ComposerCatalogue:
    """Load one composer catalogue file.

    Works are stamped with the composer id so the flattened works
    collection can still be filtered by composer.

    Raises
    ------
    SourceUnavailable
        When the file is missing, is not JSON or does not validate.
    """
    raw = _read_json(path)
    try:
        catalogue = ComposerCatalogue.model_validate(raw)
    except ValidationError as exc:
        raise SourceUnavailable(f"Invalid catalogue {path.name}: {exc}") from exc
    composer_id = catalogue.composer.id.strip().lower()
    works = [w.model_copy(update={"composer": composer_id}) for w in catalogue.works]
    return catalogue.model_copy(update={"works": works})


def load_recordings(path: Path) -> RecordingsDatabase:
    """Load the recordings database file.

    Raises
    ------
    SourceUnavailable
        When the file is missing, is not JSON or does not validate.
    """
    raw = _read_json(path)
    try:
        return RecordingsDatabase.model_validate(raw)
    except ValidationError as exc:
        raise SourceUnavailable(f"Invalid recordings file {path.name}: {exc}") from exc


def check_references(
    catalogues: Iterable[ComposerCatalogue], recordings: Iterable[Recording]
) -> List[str]:
    """Return human readable warnings for dangling references.

    Three checks are made: each work's category exists in its
    catalogue, each ``yearComposed`` falls within the composer's life,
    and each recording's ``workId`` names a known work.
    """
    warnings: List[str] = []
    known_works = set()
    for catalogue in catalogues:
        composer = catalogue.composer
        for work in catalogue.works:
            known_works.add(work.catalog_id.lower())
            if work.category not in catalogue.categories:
                warnings.append(
                    f"{composer.id}: work {work.catalog_id} has unknown category {work.category!r}"
                )
            year = work.year_composed
            if year is not None and not (composer.birth_year <= year <= composer.death_year):
                warnings.append(
                    f"{composer.id}: work {work.catalog_id} composed in {year}, "
                    f"outside {composer.birth_year}-{composer.death_year}"
                )
    for recording in recordings:
        if recording.work_id.lower() not in known_works:
            warnings.append(
                f"recording {recording.id} references unknown work {recording.work_id!r}"
            )
    return warnings


class JsonCatalogSource:
    """Reads catalogue and recordings files from a data directory."""

    def __init__(
        self,
        data_dir: Path,
        catalogue_pattern: str = "*-catalogue.json",
        recordings_file: str = "recordings-database.json",
    ) -> None:
        self.data_dir = Path(data_dir)
        self.catalogue_pattern = catalogue_pattern
        self.recordings_file = recordings_file

    def catalogue_paths(self) -> List[Path]:
        return sorted(self.data_dir.glob(self.catalogue_pattern))

    def load(self) -> CatalogSnapshot:
        paths = self.catalogue_paths()
        if not paths:
            raise SourceUnavailable(
                f"No catalogue files matching {self.catalogue_pattern!r} in {self.data_dir}"
            )
        catalogues: Dict[str, ComposerCatalogue] = {}
        for path in paths:
            catalogue = load_catalogue(path)
            composer_id = catalogue.composer.id.strip().lower()
            if composer_id in catalogues:
                raise SourceUnavailable(
                    f"Composer {composer_id!r} defined twice (second in {path.name})"
                )
            catalogues[composer_id] = catalogue

        database = load_recordings(self.data_dir / self.recordings_file)

        for warning in check_references(catalogues.values(), database.recordings):
            logger.warning("Catalogue reference check: %s", warning)

        return CatalogSnapshot(
            catalogues=catalogues,
            recordings=tuple(database.recordings),
            platforms=dict(database.platforms),
        )
