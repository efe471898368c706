"""iNaturalist endpoints: account check, place search, observation preview and import."""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from plant_tracker.config import get_settings
from plant_tracker.database import get_db
from plant_tracker.dependencies import get_coordinator, get_inat_client
from plant_tracker.errors import FetchFailed, MissingInput, NoSelection, PlantTrackerError
from plant_tracker.rate_limit import limiter
from plant_tracker.schemas.inaturalist import (
    ImportFailure, ImportRequest, ImportResult, Observation, ObservationPreview,
    PlaceOut, PreviewRequest, UserLookupResponse,
)
from plant_tracker.services.import_coordinator import ImportCoordinator
from plant_tracker.services.inaturalist_client import INaturalistClient
from plant_tracker.services.inventory import add_records, list_records, save_records
from plant_tracker.services.matching import search_observations
from plant_tracker.services.merging import medium_image_url

logger = logging.getLogger("plant_tracker.inaturalist")
settings = get_settings()

router = APIRouter(prefix="/inaturalist", tags=["inaturalist"])


def _to_http(exc: PlantTrackerError) -> HTTPException:
    if isinstance(exc, (MissingInput, NoSelection)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, FetchFailed):
        return HTTPException(status_code=502, detail="Failed to fetch observations. Please try again.")
    return HTTPException(status_code=400, detail=str(exc))


def _preview_item(obs: Observation) -> ObservationPreview:
    return ObservationPreview(
        id=obs.id,
        common_name=obs.common_name or obs.species_guess,
        scientific_name=obs.scientific_name,
        place_guess=obs.place_guess,
        observed_on=obs.observed_on,
        image_url=medium_image_url(obs) or None,
        match_type=obs.match_type,
        can_update_existing=obs.can_update_existing,
        matched_plant_id=obs.matched_plant.id if obs.matched_plant else None,
    )


@router.get("/users/{login}", response_model=UserLookupResponse)
@limiter.limit(settings.inat_rate_limit)
async def lookup_user(request: Request, login: str, client: INaturalistClient = Depends(get_inat_client)):
    """Confirm an iNaturalist login exists before connecting it."""
    try:
        exists = await client.user_exists(login)
    except PlantTrackerError as exc:
        raise _to_http(exc)
    if not exists:
        raise HTTPException(status_code=404, detail="Username not found on iNaturalist")
    return UserLookupResponse(login=login, exists=True)


@router.get("/places", response_model=List[PlaceOut])
@limiter.limit(settings.inat_rate_limit)
async def search_places(
    request: Request,
    q: str = Query(..., min_length=1),
    client: INaturalistClient = Depends(get_inat_client),
):
    try:
        return await client.search_places(q)
    except PlantTrackerError as exc:
        raise _to_http(exc)


@router.post("/observations/preview", response_model=List[ObservationPreview])
@limiter.limit(settings.inat_rate_limit)
async def preview_observations(
    request: Request,
    payload: PreviewRequest,
    db: Session = Depends(get_db),
    coordinator: ImportCoordinator = Depends(get_coordinator),
):
    """List importable observations, flagged as new or as updates to existing plants."""
    inventory = list_records(db)
    try:
        observations = await coordinator.preview(payload.user, payload.location, inventory, refresh=payload.refresh)
    except PlantTrackerError as exc:
        raise _to_http(exc)
    return [_preview_item(obs) for obs in search_observations(observations, payload.q)]


@router.post("/observations/import", response_model=ImportResult)
@limiter.limit(settings.inat_rate_limit)
async def import_observations(
    request: Request,
    payload: ImportRequest,
    db: Session = Depends(get_db),
    coordinator: ImportCoordinator = Depends(get_coordinator),
):
    """Import the selected observations and persist both partitions."""
    inventory = list_records(db)
    try:
        outcome = await coordinator.import_observations(
            payload.user, payload.location, payload.selected_ids, inventory,
        )
    except PlantTrackerError as exc:
        raise _to_http(exc)

    try:
        save_records(db, outcome.updated_plants, source="inaturalist")
        add_records(db, outcome.new_plants, source="inaturalist")
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Persisting imported plants failed")
        raise HTTPException(status_code=500, detail="Error importing observations. Please try again.")

    return ImportResult(
        new_plants=outcome.new_plants,
        updated_plants=outcome.updated_plants,
        failures=[
            ImportFailure(taxon_id=err.taxon_id, observation_ids=err.observation_ids, reason=err.cause)
            for err in outcome.errors
        ],
        cancelled=outcome.cancelled,
    )
