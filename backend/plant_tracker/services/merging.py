"""
Record merging and classification for imported observations.

Update rules (existing inventory record + observation):
- latin name, image and type are only filled when currently empty
- found is always set
- a new location is appended with "; " unless unknown or already present
- observation notes are appended to iNatNotes, once per observation date
- the observation id is recorded and the import timestamp refreshed

New plants are classified from iNaturalist establishment means, then the
reference catalog overrides rank/type/invasiveness when it documents the
plant.
"""
from datetime import date, datetime, timezone
from typing import Optional
from uuid import uuid4

from plant_tracker.schemas import UNKNOWN_LOCATION, PlantRecord, ReferenceEntry
from plant_tracker.schemas.inaturalist import Observation

# Establishment means -> local invasiveness rank
ESTABLISHMENT_RANKS = {
    "invasive": "A",
    "naturalised": "C",
    "introduced": "D",
    "native": "N",
}

INVASIVE_NOTE = "This plant is flagged as invasive in this area by iNaturalist."


def determine_rank(establishment_means: Optional[str]) -> str:
    return ESTABLISHMENT_RANKS.get(establishment_means or "", "")


def is_invasive_means(establishment_means: Optional[str]) -> bool:
    # Unknown means resolve to non-invasive even though nothing rules it out.
    return establishment_means == "invasive"


def medium_image_url(obs: Observation) -> str:
    if not obs.photos or not obs.photos[0].url:
        return ""
    return obs.photos[0].url.replace("/square.", "/medium.")


def observed_marker(observed_on: Optional[str]) -> str:
    return f"Observed on {observed_on}." if observed_on else ""


def observation_note(obs: Observation, invasive: bool) -> str:
    summary = obs.taxon.wikipedia_summary if obs.taxon else None
    parts = [
        (summary or "").strip(),
        "Imported from iNaturalist.",
        observed_marker(obs.observed_on) or "Observation date unknown.",
        (obs.description or "").strip(),
    ]
    note = " ".join(p for p in parts if p)
    if invasive:
        note = f"{note}\n\n{INVASIVE_NOTE}"
    return note


def plant_from_observation(
    obs: Observation,
    establishment_means: Optional[str] = None,
    today: Optional[date] = None,
) -> PlantRecord:
    """Build a fresh inventory entry from an observation.

    The record gets its own id; the observation id is kept as externalId.
    """
    today = today or date.today()
    taxon = obs.taxon
    scientific = (taxon.name if taxon else None) or ""
    invasive = is_invasive_means(establishment_means)
    return PlantRecord(
        id=uuid4().hex,
        name=obs.species_guess or (taxon.preferred_common_name if taxon else None) or scientific,
        latin_name=scientific,
        location=obs.place_guess or UNKNOWN_LOCATION,
        image_url=medium_image_url(obs),
        rank=determine_rank(establishment_means),
        inat_notes=observation_note(obs, invasive),
        is_invasive=invasive,
        needs_removal=invasive,
        found=True,
        date_added=obs.observed_on or today.isoformat(),
        external_id=obs.id,
        inat_observation_ids=[obs.id],
    )


def merge_into_existing(
    existing: PlantRecord,
    incoming: PlantRecord,
    obs: Observation,
    now: Optional[datetime] = None,
) -> PlantRecord:
    """Fill gaps in an existing record from an imported observation.

    Populated fields are never cleared or overwritten.
    """
    now = now or datetime.now(timezone.utc)
    updated = existing.model_copy(deep=True)

    if not updated.latin_name and incoming.latin_name:
        updated.latin_name = incoming.latin_name
    if not updated.image_url and incoming.image_url:
        updated.image_url = incoming.image_url
    if not updated.type and incoming.type:
        updated.type = incoming.type

    updated.found = True

    location = incoming.location
    if location and location != UNKNOWN_LOCATION:
        if not updated.location:
            updated.location = location
        elif location not in updated.location:
            updated.location = f"{updated.location}; {location}"

    note = incoming.inat_notes.strip()
    marker = observed_marker(obs.observed_on)
    if note:
        if not updated.inat_notes:
            updated.inat_notes = note
        elif note not in updated.inat_notes and not (marker and marker in updated.inat_notes):
            updated.inat_notes = f"{updated.inat_notes}\n\n{note}"

    updated.last_updated_from_inat = now.isoformat()
    if obs.id not in updated.inat_observation_ids:
        updated.inat_observation_ids = [*updated.inat_observation_ids, obs.id]

    return updated


def apply_reference(plant: PlantRecord, entry: Optional[ReferenceEntry]) -> PlantRecord:
    """Let a documented reference entry override inferred classification.

    Plants missing from the catalog are kept as-is and flagged as not
    document-matched.
    """
    if entry is None:
        return plant.model_copy(update={"is_matched": False, "is_document_matched": False})

    return plant.model_copy(update={
        "rank": entry.rank or plant.rank,
        "type": entry.type or plant.type,
        "is_invasive": entry.is_invasive if entry.is_invasive is not None else False,
        "needs_removal": entry.needs_removal if entry.needs_removal is not None else False,
        "is_matched": False,
        "is_document_matched": True,
    })
