"""Read-only lookup over the bundled reference dataset of documented plants."""
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Optional

from plant_tracker.config import get_settings
from plant_tracker.schemas import ReferenceEntry

logger = logging.getLogger("plant_tracker.reference")

BUNDLED_CATALOG = Path(__file__).resolve().parent.parent / "data" / "reference_plants.json"


class ReferenceCatalog:
    """Documented plants keyed by lowercase latin name.

    The first entry wins when the dataset lists a latin name twice.
    """

    def __init__(self, entries: Iterable[ReferenceEntry]):
        self._entries: tuple[ReferenceEntry, ...] = tuple(entries)
        self._by_latin: dict[str, ReferenceEntry] = {}
        for entry in self._entries:
            key = entry.latin_name.strip().lower()
            if key and key not in self._by_latin:
                self._by_latin[key] = entry

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def lookup(self, latin_name: Optional[str]) -> Optional[ReferenceEntry]:
        if not latin_name:
            return None
        return self._by_latin.get(latin_name.strip().lower())

    @classmethod
    def from_file(cls, path: Path) -> "ReferenceCatalog":
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        catalog = cls(ReferenceEntry.model_validate(item) for item in raw)
        logger.info("Loaded %d reference plants from %s", len(catalog), path)
        return catalog


@lru_cache(maxsize=1)
def get_reference_catalog() -> ReferenceCatalog:
    """Load the reference catalog once per process."""
    settings = get_settings()
    path = Path(settings.reference_catalog_path) if settings.reference_catalog_path else BUNDLED_CATALOG
    return ReferenceCatalog.from_file(path)
