"""Pydantic schemas for plant records, the reference catalog and API payloads.

Field names are snake_case in Python and camelCase on the wire, matching
the JSON layout of exported inventories.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

RANKS = ("N", "A", "B", "C", "D", "W", "")
PLANT_TYPES = ("Tree", "Shrub", "Herbaceous", "Aquatic", "Tree/Shrub", "")

UNKNOWN_LOCATION = "Unknown Location"

# Record fields that are omitted from exports while unset.
OPTIONAL_FIELDS = ("last_updated_from_inat", "external_id", "is_matched", "is_document_matched")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Plant Schemas ===
class PlantRecord(CamelModel):
    """One plant known to the property owner.

    Unknown keys are kept so that records written by newer or older
    versions of the inventory survive an export/import cycle untouched.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str = ""
    name: str = ""
    latin_name: str = ""
    location: str = ""
    image_url: str = ""
    rank: str = ""
    type: str = ""
    is_invasive: bool = False
    needs_removal: bool = False
    found: bool = False
    is_edible: bool = False
    notes: str = ""
    inat_notes: str = Field("", alias="iNatNotes")
    date_added: str = ""
    last_updated_from_inat: Optional[str] = Field(None, alias="lastUpdatedFromINat")
    external_id: Optional[str] = None
    inat_observation_ids: list[str] = Field(default_factory=list, alias="iNatObservationIds")
    is_matched: Optional[bool] = None
    is_document_matched: Optional[bool] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        # Locally created records historically used numeric timestamps.
        if value is None:
            return ""
        return str(value)

    @field_validator(
        "name", "latin_name", "location", "image_url", "rank", "type",
        "notes", "inat_notes", "date_added",
        mode="before",
    )
    @classmethod
    def none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("is_invasive", "needs_removal", "found", "is_edible", mode="before")
    @classmethod
    def none_to_false(cls, value):
        return False if value is None else value

    @field_validator("inat_observation_ids", mode="before")
    @classmethod
    def coerce_observation_ids(cls, value):
        if value is None:
            return []
        return [str(v) for v in value]

    def to_json_dict(self) -> dict:
        # Unset optional fields are left out; unknown keys are kept even when null.
        unset = {name for name in OPTIONAL_FIELDS if getattr(self, name) is None}
        return self.model_dump(by_alias=True, exclude=unset)


class PlantCreate(CamelModel):
    """Schema for creating a plant by hand."""
    name: str
    latin_name: str = ""
    location: str = ""
    image_url: str = ""
    rank: str = ""
    type: str = ""
    is_invasive: bool = False
    needs_removal: bool = False
    found: bool = False
    is_edible: bool = False
    notes: str = ""

    @field_validator("rank")
    @classmethod
    def validate_rank(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in RANKS:
            raise ValueError(f"rank must be one of {', '.join(r for r in RANKS if r)} or empty")
        return value

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: str) -> str:
        if value not in PLANT_TYPES:
            raise ValueError(f"type must be one of {', '.join(t for t in PLANT_TYPES if t)} or empty")
        return value


class PlantUpdate(CamelModel):
    """Schema for editing a plant. Only supplied fields change."""
    name: Optional[str] = None
    latin_name: Optional[str] = None
    location: Optional[str] = None
    image_url: Optional[str] = None
    rank: Optional[str] = None
    type: Optional[str] = None
    is_invasive: Optional[bool] = None
    needs_removal: Optional[bool] = None
    found: Optional[bool] = None
    is_edible: Optional[bool] = None
    notes: Optional[str] = None

    @field_validator("rank")
    @classmethod
    def validate_rank(cls, value):
        if value is None:
            return value
        value = value.strip().upper()
        if value not in RANKS:
            raise ValueError(f"rank must be one of {', '.join(r for r in RANKS if r)} or empty")
        return value

    @field_validator("type")
    @classmethod
    def validate_type(cls, value):
        if value is not None and value not in PLANT_TYPES:
            raise ValueError(f"type must be one of {', '.join(t for t in PLANT_TYPES if t)} or empty")
        return value


# === Reference Catalog Schemas ===
class ReferenceEntry(CamelModel):
    """A documented plant from the bundled reference dataset."""
    latin_name: str
    name: str = ""
    type: str = ""
    rank: str = ""
    is_invasive: Optional[bool] = None
    needs_removal: Optional[bool] = None


# === Backup Schemas ===
class BackupImportResponse(BaseModel):
    imported: int
