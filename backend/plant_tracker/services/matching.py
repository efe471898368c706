"""
Matching of observations and freshly built plant entries against the
inventory and the reference catalog.

Priority is always latin name first, then common names. All comparisons
are case-insensitive and exact.
"""
from typing import Dict, List, Optional, Sequence, Tuple

from plant_tracker.schemas import PlantRecord, ReferenceEntry
from plant_tracker.schemas.inaturalist import MatchType, Observation
from plant_tracker.services.reference_catalog import ReferenceCatalog


def _key(value: Optional[str]) -> str:
    return (value or "").strip().lower()


class InventoryIndex:
    """Lookup tables over an inventory snapshot.

    When two records share a latin or common name the later one wins.
    """

    def __init__(self, inventory: Sequence[PlantRecord]):
        self.by_latin: Dict[str, PlantRecord] = {}
        self.by_name: Dict[str, PlantRecord] = {}
        for plant in inventory:
            if plant.latin_name:
                self.by_latin[_key(plant.latin_name)] = plant
            if plant.name:
                self.by_name[_key(plant.name)] = plant

    def latin(self, value: Optional[str]) -> Optional[PlantRecord]:
        return self.by_latin.get(_key(value)) if _key(value) else None

    def common(self, value: Optional[str]) -> Optional[PlantRecord]:
        return self.by_name.get(_key(value)) if _key(value) else None


def find_match(obs: Observation, index: InventoryIndex) -> Tuple[Optional[PlantRecord], MatchType]:
    plant = index.latin(obs.scientific_name)
    if plant is not None:
        return plant, "latin"
    plant = index.common(obs.common_name)
    if plant is not None:
        return plant, "common"
    plant = index.common(obs.species_guess)
    if plant is not None:
        return plant, "species_guess"
    return None, "none"


def match_observations(observations: Sequence[Observation], inventory: Sequence[PlantRecord]) -> List[Observation]:
    """Annotate each observation with the inventory record it corresponds to.

    Returns copies; the input observations are left untouched.
    """
    index = InventoryIndex(inventory)
    matched = []
    for obs in observations:
        plant, match_type = find_match(obs, index)
        matched.append(obs.model_copy(update={
            "matched_plant": plant,
            "match_type": match_type,
            "can_update_existing": plant is not None,
        }))
    return matched


def match_plant(plant: PlantRecord, index: InventoryIndex) -> Tuple[Optional[PlantRecord], MatchType]:
    """Match a plant entry built from an observation against the inventory."""
    existing = index.latin(plant.latin_name)
    if existing is not None:
        return existing, "latin"
    existing = index.common(plant.name)
    if existing is not None:
        return existing, "common"
    return None, "none"


def match_reference(plant: PlantRecord, catalog: ReferenceCatalog) -> Optional[ReferenceEntry]:
    """Look a plant up in the reference catalog by latin name only."""
    return catalog.lookup(plant.latin_name)


def search_observations(observations: Sequence[Observation], term: Optional[str]) -> List[Observation]:
    """Filter observations by a free-text term over names, place, date and description."""
    if not term or not term.strip():
        return list(observations)
    needle = term.strip().lower()

    def hit(obs: Observation) -> bool:
        fields = (
            obs.common_name or obs.species_guess,
            obs.scientific_name,
            obs.place_guess,
            obs.observed_on,
            obs.description,
        )
        return any(needle in (f or "").lower() for f in fields)

    return [obs for obs in observations if hit(obs)]
