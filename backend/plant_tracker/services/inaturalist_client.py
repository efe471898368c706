"""
iNaturalist API client.

Fetches a user's plant observations for a place or a coordinate circle,
looks up per-place establishment means for a taxon, and backs the
account/place pickers. The client performs no retries; callers decide
whether a failure is fatal.
"""
import logging
import time
from typing import Callable, Optional, Union

import httpx
from cachetools import TTLCache
from pydantic import ValidationError

from plant_tracker.config import Settings, get_settings
from plant_tracker.errors import FetchFailed, MissingInput
from plant_tracker.schemas.inaturalist import CoordinatesFilter, Observation, PlaceFilter, PlaceOut, Taxon

logger = logging.getLogger("plant_tracker.inaturalist")

LocationFilterType = Union[PlaceFilter, CoordinatesFilter]


def _cache_key(user: str, location: LocationFilterType) -> tuple[str, str]:
    return user.strip().lower(), location.model_dump_json()


class INaturalistClient:
    """Thin async wrapper over the public iNaturalist v1 API.

    Successful observation fetches are memoised per (user, location) so a
    repeated preview does not hit the network; pass ``refresh=True`` to
    force a new request. The cache holds at most ``inat_cache_max_entries``
    results, each for ``inat_cache_ttl_seconds``.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http: Optional[httpx.AsyncClient] = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or get_settings()
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(
            base_url=self.settings.inat_api_base,
            headers={"User-Agent": self.settings.inat_user_agent},
            timeout=self.settings.inat_timeout_seconds,
        )
        self._observation_cache: TTLCache = TTLCache(
            maxsize=self.settings.inat_cache_max_entries,
            ttl=self.settings.inat_cache_ttl_seconds,
            timer=timer,
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def _get_json(self, path: str, params: dict) -> dict:
        try:
            resp = await self.http.get(path, params=params)
        except httpx.HTTPError as exc:
            raise FetchFailed(f"request to {path} failed: {exc}") from exc
        if resp.status_code != 200:
            raise FetchFailed(f"HTTP Error: {resp.status_code}", status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise FetchFailed(f"invalid JSON from {path}") from exc

    # ── Observations ─────────────────────────────────────────────

    async def fetch_observations(
        self,
        user: Optional[str],
        location: Optional[LocationFilterType],
        refresh: bool = False,
    ) -> list[Observation]:
        """Fetch up to one page of the user's Plantae observations.

        Results keep the order the service returned them in.
        """
        if not user or not user.strip():
            raise MissingInput("Please connect your iNaturalist account first")
        if location is None:
            raise MissingInput("Please select a location first")

        key = _cache_key(user, location)
        cached = None if refresh else self._observation_cache.get(key)
        if cached:
            logger.debug("Observation cache hit for %s", key[0])
            return list(cached)

        params: dict = {
            "user_login": user.strip(),
            "per_page": self.settings.inat_per_page,
            "iconic_taxa": "Plantae",
        }
        if isinstance(location, PlaceFilter):
            params["place_id"] = location.id
        else:
            params.update({"lat": location.lat, "lng": location.lng, "radius": location.radius_km})

        try:
            data = await self._get_json("/observations", params)
        except FetchFailed:
            logger.exception("Fetching observations for %s failed", user)
            raise

        try:
            observations = [Observation.model_validate(item) for item in data.get("results") or []]
        except ValidationError as exc:
            logger.exception("Malformed observation in response for %s", user)
            raise FetchFailed("invalid observation data from /observations") from exc
        logger.info("Fetched %d observations for %s", len(observations), user)
        if observations:
            self._observation_cache[key] = observations
        return list(observations)

    # ── Taxa ─────────────────────────────────────────────────────

    async def fetch_establishment_means(self, taxon_id: Optional[int], place_id: Optional[int]) -> Optional[str]:
        """Return how a taxon is established in a place, or None if unknown.

        Without a place there is nothing to scope the lookup to, so no
        request is made.
        """
        if not place_id or taxon_id is None:
            return None

        data = await self._get_json(f"/taxa/{taxon_id}", {"place_id": place_id})
        results = data.get("results") or []
        if not results:
            return None

        try:
            taxon = Taxon.model_validate(results[0])
        except ValidationError as exc:
            raise FetchFailed(f"invalid taxon data from /taxa/{taxon_id}") from exc
        return taxon.establishment_means_value

    # ── Users & places ───────────────────────────────────────────

    async def user_exists(self, login: str) -> bool:
        if not login or not login.strip():
            raise MissingInput("login must not be empty")
        data = await self._get_json("/users/autocomplete", {"q": login.strip()})
        return len(data.get("results") or []) > 0

    async def search_places(self, query: str) -> list[PlaceOut]:
        if not query or not query.strip():
            return []
        data = await self._get_json("/places/autocomplete", {"q": query.strip()})
        places = []
        for item in data.get("results") or []:
            if item.get("id") is None:
                continue
            places.append(PlaceOut(id=item["id"], display_name=item.get("display_name") or item.get("name") or ""))
        return places
