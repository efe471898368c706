"""
Observation de-duplication.

Two passes over a fetched page of observations:
- drop observations already imported into the inventory (by id)
- keep only the most recent observation of each scientific name

Observations without a scientific name are never collapsed.
"""
from datetime import date, datetime
from typing import Iterable, List, Sequence

from plant_tracker.schemas import PlantRecord
from plant_tracker.schemas.inaturalist import Observation

EPOCH = datetime(1970, 1, 1)


def known_observation_ids(inventory: Iterable[PlantRecord]) -> set[str]:
    """Every id under which an observation may already live in the inventory."""
    ids: set[str] = set()
    for plant in inventory:
        if plant.id:
            ids.add(str(plant.id))
        if plant.external_id:
            ids.add(str(plant.external_id))
        ids.update(str(i) for i in plant.inat_observation_ids)
    return ids


def parse_observed_on(value) -> datetime:
    """Parse an observation date; missing or unparsable dates sort as the epoch."""
    if not value:
        return EPOCH
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return datetime.fromisoformat(str(value).strip()).replace(tzinfo=None)
    except ValueError:
        return EPOCH


def drop_imported(observations: Sequence[Observation], inventory: Sequence[PlantRecord]) -> List[Observation]:
    existing = known_observation_ids(inventory)
    return [obs for obs in observations if obs.id not in existing]


def collapse_species(observations: Sequence[Observation]) -> List[Observation]:
    """Keep the most recent observation per lowercase scientific name.

    The sort is stable, so observations sharing a date keep fetch order.
    """
    ordered = sorted(observations, key=lambda obs: parse_observed_on(obs.observed_on), reverse=True)

    seen: set[str] = set()
    unique: List[Observation] = []
    for obs in ordered:
        name = (obs.scientific_name or "").lower()
        if not name:
            unique.append(obs)
            continue
        if name not in seen:
            seen.add(name)
            unique.append(obs)
    return unique


def deduplicate(observations: Sequence[Observation], inventory: Sequence[PlantRecord]) -> List[Observation]:
    return collapse_species(drop_imported(observations, inventory))
