"""Schemas for iNaturalist observations, location filters and import payloads."""
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from plant_tracker.schemas import CamelModel, PlantRecord

MatchType = Literal["latin", "common", "species_guess", "none"]


# === Observation Schemas ===
class Photo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str = ""


class Taxon(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    name: Optional[str] = None
    preferred_common_name: Optional[str] = None
    introduced: Optional[bool] = None
    establishment_means: Optional[dict[str, Any]] = None
    wikipedia_summary: Optional[str] = None

    @field_validator("establishment_means", mode="before")
    @classmethod
    def wrap_plain_means(cls, value):
        if isinstance(value, str):
            return {"establishment_means": value}
        return value

    @property
    def establishment_means_value(self) -> Optional[str]:
        if self.introduced is True:
            return "introduced"
        if self.establishment_means:
            return self.establishment_means.get("establishment_means") or None
        return None


class Observation(BaseModel):
    """One iNaturalist observation plus the match computed against the inventory."""

    model_config = ConfigDict(extra="ignore")

    id: str
    taxon: Optional[Taxon] = None
    species_guess: Optional[str] = None
    place_guess: Optional[str] = None
    observed_on: Optional[str] = None
    photos: list[Photo] = Field(default_factory=list)
    description: Optional[str] = None

    matched_plant: Optional[PlantRecord] = None
    match_type: MatchType = "none"
    can_update_existing: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return str(value)

    @field_validator("photos", mode="before")
    @classmethod
    def coerce_photos(cls, value):
        if value is None:
            return []
        return [{"url": p} if isinstance(p, str) else p for p in value]

    @property
    def scientific_name(self) -> Optional[str]:
        return self.taxon.name if self.taxon else None

    @property
    def common_name(self) -> Optional[str]:
        return self.taxon.preferred_common_name if self.taxon else None


# === Location Filter Schemas ===
class PlaceFilter(BaseModel):
    type: Literal["place"] = "place"
    id: int
    name: Optional[str] = None


class CoordinatesFilter(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["coordinates"] = "coordinates"
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    radius_km: float = Field(
        10,
        gt=0,
        validation_alias=AliasChoices("radiusKm", "radius_km", "radius"),
        serialization_alias="radiusKm",
    )


LocationFilter = Annotated[Union[PlaceFilter, CoordinatesFilter], Field(discriminator="type")]


# === API Schemas ===
class PreviewRequest(CamelModel):
    user: Optional[str] = None
    location: Optional[LocationFilter] = None
    refresh: bool = False
    q: Optional[str] = None


class ObservationPreview(CamelModel):
    id: str
    common_name: Optional[str] = None
    scientific_name: Optional[str] = None
    place_guess: Optional[str] = None
    observed_on: Optional[str] = None
    image_url: Optional[str] = None
    match_type: MatchType = "none"
    can_update_existing: bool = False
    matched_plant_id: Optional[str] = None


class ImportRequest(CamelModel):
    user: Optional[str] = None
    location: Optional[LocationFilter] = None
    selected_ids: list[str] = Field(default_factory=list)

    @field_validator("selected_ids", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        if value is None:
            return []
        return [str(v) for v in value]


class ImportFailure(CamelModel):
    taxon_id: Optional[int] = None
    observation_ids: list[str] = Field(default_factory=list)
    reason: str


class ImportResult(CamelModel):
    new_plants: list[PlantRecord] = Field(default_factory=list)
    updated_plants: list[PlantRecord] = Field(default_factory=list)
    failures: list[ImportFailure] = Field(default_factory=list)
    cancelled: bool = False


class UserLookupResponse(BaseModel):
    login: str
    exists: bool


class PlaceOut(BaseModel):
    id: int
    display_name: str
