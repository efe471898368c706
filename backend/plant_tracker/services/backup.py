"""Backup export and restore of the plant inventory as a JSON array."""
import json
from datetime import date
from typing import Any, List, Optional, Sequence, Union
from uuid import uuid4

from pydantic import ValidationError

from plant_tracker.errors import InvalidImportData
from plant_tracker.schemas import PlantRecord

# Fields every restored record is guaranteed to carry.
EXPECTED_FIELDS = {
    "name": "",
    "latinName": "",
    "location": "",
    "imageUrl": "",
    "rank": "",
    "type": "",
    "isInvasive": False,
    "needsRemoval": False,
    "found": False,
    "notes": "",
    "isEdible": False,
}


def backup_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"plants-backup-{today.isoformat()}.json"


def export_backup(records: Sequence[PlantRecord]) -> str:
    return json.dumps([r.to_json_dict() for r in records], indent=2, ensure_ascii=False)


def parse_backup(payload: Union[str, bytes, List[Any]], today: Optional[date] = None) -> List[PlantRecord]:
    """Validate a backup and fill in missing fields.

    Raises InvalidImportData without returning anything partial when the
    payload is not JSON, not an array, or holds a non-object entry.
    """
    today = today or date.today()
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as exc:
            raise InvalidImportData("The selected file contains invalid data") from exc

    if not isinstance(payload, list):
        raise InvalidImportData("Invalid data format: expected a list of plants")

    records = []
    for i, item in enumerate(payload):
        if not isinstance(item, dict):
            raise InvalidImportData(f"Invalid data format: entry {i} is not an object")
        data = {**EXPECTED_FIELDS, **item}
        if data.get("id") in (None, ""):
            data["id"] = uuid4().hex
        if not data.get("dateAdded"):
            data["dateAdded"] = today.isoformat()
        try:
            records.append(PlantRecord.model_validate(data))
        except ValidationError as exc:
            raise InvalidImportData(f"Invalid plant at entry {i}: {exc.errors()[0]['msg']}") from exc

    ids = [r.id for r in records]
    if len(set(ids)) != len(ids):
        raise InvalidImportData("Invalid data format: duplicate plant ids")
    return records
