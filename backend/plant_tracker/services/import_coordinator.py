"""
Observation import pipeline.

fetch -> deduplicate -> match -> (selection) -> classify -> merge

The inventory is passed in as a snapshot and never modified; the result
partitions are fresh records the caller persists.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Set

from plant_tracker.config import Settings, get_settings
from plant_tracker.errors import FetchFailed, NoSelection, PartialImportError
from plant_tracker.schemas import PlantRecord
from plant_tracker.schemas.inaturalist import Observation, PlaceFilter
from plant_tracker.services.deduplication import deduplicate
from plant_tracker.services.inaturalist_client import INaturalistClient, LocationFilterType
from plant_tracker.services.matching import InventoryIndex, match_observations, match_plant, match_reference
from plant_tracker.services.merging import apply_reference, merge_into_existing, plant_from_observation
from plant_tracker.services.reference_catalog import ReferenceCatalog

logger = logging.getLogger("plant_tracker.import")


@dataclass
class ImportOutcome:
    """New and updated records produced by one import run."""
    new_plants: List[PlantRecord] = field(default_factory=list)
    updated_plants: List[PlantRecord] = field(default_factory=list)
    errors: List[PartialImportError] = field(default_factory=list)
    cancelled: bool = False


@dataclass
class _Lookups:
    means: Dict[int, Optional[str]] = field(default_factory=dict)
    unresolved: Set[int] = field(default_factory=set)
    errors: List[PartialImportError] = field(default_factory=list)
    cancelled: bool = False


class ImportCoordinator:
    def __init__(
        self,
        client: INaturalistClient,
        catalog: ReferenceCatalog,
        settings: Optional[Settings] = None,
    ):
        self.client = client
        self.catalog = catalog
        self.settings = settings or get_settings()

    async def preview(
        self,
        user: Optional[str],
        location: Optional[LocationFilterType],
        inventory: Sequence[PlantRecord],
        refresh: bool = False,
    ) -> List[Observation]:
        """Fetch, de-duplicate and match observations without importing anything."""
        fetched = await self.client.fetch_observations(user, location, refresh=refresh)
        unique = deduplicate(fetched, inventory)
        matched = match_observations(unique, inventory)
        updatable = sum(1 for obs in matched if obs.can_update_existing)
        logger.info(
            f"Preview for {user}: fetched={len(fetched)} unique={len(unique)} "
            f"updatable={updatable} new={len(matched) - updatable}"
        )
        return matched

    async def import_observations(
        self,
        user: Optional[str],
        location: Optional[LocationFilterType],
        selected_ids: Iterable[str],
        inventory: Sequence[PlantRecord],
        cancel: Optional[asyncio.Event] = None,
    ) -> ImportOutcome:
        """Import the selected observations into new and updated records.

        A failed or timed-out establishment-means lookup only downgrades
        the affected observations to default classification. Setting
        ``cancel`` stops outstanding lookups; observations still waiting
        on one are left out and the outcome is marked cancelled.
        """
        selected = {str(i) for i in selected_ids}
        if not selected:
            raise NoSelection("Please select at least one observation to import.")

        observations = await self.preview(user, location, inventory)
        chosen = [obs for obs in observations if obs.id in selected and obs.taxon is not None]

        place_id = location.id if isinstance(location, PlaceFilter) else None
        taxa: Dict[int, List[str]] = {}
        for obs in chosen:
            if not obs.can_update_existing and obs.taxon.id is not None:
                taxa.setdefault(obs.taxon.id, []).append(obs.id)

        lookups = await self._lookup_establishment_means(taxa, place_id, cancel)
        outcome = self._merge(chosen, inventory, lookups)
        logger.info(
            f"Import for {user}: selected={len(selected)} new={len(outcome.new_plants)} "
            f"updated={len(outcome.updated_plants)} lookup_failures={len(outcome.errors)} "
            f"cancelled={outcome.cancelled}"
        )
        return outcome

    async def _lookup_establishment_means(
        self,
        taxa: Dict[int, List[str]],
        place_id: Optional[int],
        cancel: Optional[asyncio.Event],
    ) -> _Lookups:
        lookups = _Lookups()
        if not place_id or not taxa:
            return lookups

        sem = asyncio.Semaphore(self.settings.taxon_lookup_concurrency)
        timeout = self.settings.taxon_lookup_timeout_seconds

        async def one(taxon_id: int) -> Optional[str]:
            async with sem:
                return await asyncio.wait_for(
                    self.client.fetch_establishment_means(taxon_id, place_id),
                    timeout=timeout,
                )

        tasks = {taxon_id: asyncio.ensure_future(one(taxon_id)) for taxon_id in taxa}
        pending = set(tasks.values())

        if cancel is None:
            await asyncio.wait(pending)
            pending = set()
        else:
            waiter = asyncio.ensure_future(cancel.wait())
            try:
                while pending and not cancel.is_set():
                    _, pending = await asyncio.wait(pending | {waiter}, return_when=asyncio.FIRST_COMPLETED)
                    pending.discard(waiter)
            finally:
                waiter.cancel()

        if pending:
            lookups.cancelled = True
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        for taxon_id, task in tasks.items():
            if task.cancelled():
                lookups.unresolved.add(taxon_id)
                continue
            exc = task.exception()
            if exc is None:
                lookups.means[taxon_id] = task.result()
            elif isinstance(exc, (FetchFailed, asyncio.TimeoutError)):
                cause = str(exc) or "timed out"
                logger.warning(f"Establishment means lookup failed for taxon {taxon_id}: {cause}")
                lookups.means[taxon_id] = None
                lookups.errors.append(PartialImportError(taxon_id, taxa[taxon_id], cause))
            else:
                raise exc
        return lookups

    def _merge(
        self,
        chosen: Sequence[Observation],
        inventory: Sequence[PlantRecord],
        lookups: _Lookups,
    ) -> ImportOutcome:
        index = InventoryIndex(inventory)
        now = datetime.now(timezone.utc)
        today = date.today()

        # Updates accumulate per record so two observations of one plant merge together.
        updates: Dict[str, PlantRecord] = {}
        new_plants: List[PlantRecord] = []

        def update(existing: PlantRecord, incoming: PlantRecord, obs: Observation) -> None:
            key = existing.id or f"{existing.name}|{existing.latin_name}"
            base = updates.get(key, existing)
            updates[key] = merge_into_existing(base, incoming, obs, now=now)

        for obs in chosen:
            if obs.can_update_existing and obs.matched_plant is not None:
                update(obs.matched_plant, plant_from_observation(obs, None, today), obs)
                continue

            taxon_id = obs.taxon.id
            if taxon_id in lookups.unresolved:
                continue

            plant = plant_from_observation(obs, lookups.means.get(taxon_id), today)
            existing, _ = match_plant(plant, index)
            if existing is not None:
                update(existing, plant, obs)
                continue

            new_plants.append(apply_reference(plant, match_reference(plant, self.catalog)))

        return ImportOutcome(
            new_plants=new_plants,
            updated_plants=list(updates.values()),
            errors=list(lookups.errors),
            cancelled=lookups.cancelled,
        )
