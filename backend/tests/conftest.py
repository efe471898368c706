"""Test fixtures: a fake iNaturalist API, an in-memory inventory database and an API client."""
from __future__ import annotations

import asyncio
import os
from typing import Any, Dict, List, Optional

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from plant_tracker.config import Settings
from plant_tracker.database import Base, get_db
from plant_tracker.dependencies import get_catalog, get_inat_client
from plant_tracker.main import app
from plant_tracker.schemas import PlantRecord, ReferenceEntry
from plant_tracker.services.inaturalist_client import INaturalistClient
from plant_tracker.services.reference_catalog import ReferenceCatalog

API_BASE = "https://api.inaturalist.org/v1"


def make_observation(
    obs_id: int,
    name: Optional[str] = None,
    common: Optional[str] = None,
    taxon_id: Optional[int] = None,
    species_guess: Optional[str] = None,
    place_guess: Optional[str] = None,
    observed_on: Optional[str] = None,
    photo: Optional[str] = None,
    with_taxon: bool = True,
    **extra: Any,
) -> Dict[str, Any]:
    """Build an observation in the shape the iNaturalist API returns."""
    obs: Dict[str, Any] = {
        "id": obs_id,
        "species_guess": species_guess,
        "place_guess": place_guess,
        "observed_on": observed_on,
        "photos": [{"url": photo}] if photo else [],
        "description": extra.pop("description", None),
    }
    if with_taxon:
        obs["taxon"] = {
            "id": taxon_id if taxon_id is not None else obs_id + 1000,
            "name": name,
            "preferred_common_name": common,
            "wikipedia_summary": extra.pop("summary", None),
        }
    obs.update(extra)
    return obs


class FakeINaturalist:
    """Routes requests the client makes to canned responses and records them."""

    def __init__(self) -> None:
        self.observations: List[Dict[str, Any]] = []
        self.taxa: Dict[int, Dict[str, Any]] = {}
        self.taxon_status: Dict[int, int] = {}
        self.taxon_delay: Dict[int, float] = {}
        self.users: List[str] = []
        self.places: List[Dict[str, Any]] = []
        self.observations_status = 200
        self.requests: List[httpx.Request] = []

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/v1")

        if path == "/observations":
            if self.observations_status != 200:
                return httpx.Response(self.observations_status, json={"error": "boom"})
            return httpx.Response(200, json={"results": self.observations})

        if path.startswith("/taxa/"):
            taxon_id = int(path.rsplit("/", 1)[1])
            if taxon_id in self.taxon_delay:
                await asyncio.sleep(self.taxon_delay[taxon_id])
            status = self.taxon_status.get(taxon_id, 200)
            if status != 200:
                return httpx.Response(status, json={"error": "boom"})
            taxon = self.taxa.get(taxon_id)
            return httpx.Response(200, json={"results": [taxon] if taxon else []})

        if path == "/users/autocomplete":
            q = request.url.params.get("q", "")
            hits = [{"login": u} for u in self.users if u.startswith(q)]
            return httpx.Response(200, json={"results": hits})

        if path == "/places/autocomplete":
            return httpx.Response(200, json={"results": self.places})

        return httpx.Response(404, json={"error": "not found"})


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        taxon_lookup_concurrency=2,
        taxon_lookup_timeout_seconds=0.5,
        rate_limit_enabled=False,
    )


@pytest.fixture
def fake_inat() -> FakeINaturalist:
    return FakeINaturalist()


@pytest.fixture
def inat_client(settings: Settings, fake_inat: FakeINaturalist) -> INaturalistClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_inat.handler), base_url=API_BASE)
    return INaturalistClient(settings, http=http)


@pytest.fixture
def catalog() -> ReferenceCatalog:
    return ReferenceCatalog([
        ReferenceEntry(latin_name="Rubus armeniacus", type="Shrub", rank="B", is_invasive=True, needs_removal=True),
        ReferenceEntry(latin_name="Acer macrophyllum", type="Tree", rank="N", is_invasive=False, needs_removal=False),
        ReferenceEntry(latin_name="Digitalis purpurea", type="Herbaceous", rank="D"),
    ])


@pytest.fixture
def inventory() -> List[PlantRecord]:
    return [
        PlantRecord(id="1", name="Ivy", latin_name="Hedera helix", location="Back yard", date_added="2023-05-01"),
        PlantRecord(id="2", name="Sword Fern", location="North slope", date_added="2023-05-02"),
    ]


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def api_client(db_session, inat_client: INaturalistClient, catalog: ReferenceCatalog):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_inat_client] = lambda: inat_client
    app.dependency_overrides[get_catalog] = lambda: catalog
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
