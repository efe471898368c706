"""FastAPI dependencies wiring the import pipeline to the running app."""
from fastapi import Depends, Request

from plant_tracker.services.import_coordinator import ImportCoordinator
from plant_tracker.services.inaturalist_client import INaturalistClient
from plant_tracker.services.reference_catalog import ReferenceCatalog, get_reference_catalog


def get_inat_client(request: Request) -> INaturalistClient:
    """The process-wide client; it holds the observation cache."""
    return request.app.state.inat_client


def get_catalog() -> ReferenceCatalog:
    return get_reference_catalog()


def get_coordinator(
    client: INaturalistClient = Depends(get_inat_client),
    catalog: ReferenceCatalog = Depends(get_catalog),
) -> ImportCoordinator:
    return ImportCoordinator(client, catalog)
