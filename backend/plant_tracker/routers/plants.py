"""Inventory endpoints: list, create, edit, toggle and delete plants."""
from datetime import date
from typing import List, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from plant_tracker.config import get_settings
from plant_tracker.database import get_db
from plant_tracker.models import Plant
from plant_tracker.schemas import PlantCreate, PlantRecord, PlantUpdate
from plant_tracker.services.inventory import (
    add_records, delete_record, get_row, list_records, row_to_record, update_record,
)

router = APIRouter(prefix="/plants", tags=["plants"])


def normalize_text(value: Optional[str]) -> Optional[str]:
    """Trim incoming string data and return None for None values."""
    if value is None:
        return None
    return value.strip()


def _get_or_404(db: Session, plant_id: str) -> Plant:
    row = get_row(db, plant_id)
    if not row:
        raise HTTPException(status_code=404, detail="Plant not found")
    return row


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Plant with this id already exists")
    except Exception:
        db.rollback()
        raise


@router.get("", response_model=List[PlantRecord])
def list_plants(db: Session = Depends(get_db)):
    """List the whole inventory in the order plants were added."""
    return list_records(db)


@router.post("", response_model=PlantRecord, status_code=201)
def create_plant(data: PlantCreate, db: Session = Depends(get_db)):
    """Add a plant by hand."""
    name = normalize_text(data.name) or ""
    location = normalize_text(data.location) or ""

    if not name:
        raise HTTPException(status_code=400, detail="name must not be empty")
    if get_settings().require_location and not location:
        raise HTTPException(status_code=400, detail="location must not be empty")

    record = PlantRecord(
        **data.model_dump(exclude={"name", "location", "latin_name"}),
        id=uuid4().hex,
        name=name,
        location=location,
        latin_name=normalize_text(data.latin_name) or "",
        date_added=date.today().isoformat(),
    )
    add_records(db, [record])
    _commit(db)
    return record


@router.get("/{plant_id}", response_model=PlantRecord)
def get_plant(plant_id: str, db: Session = Depends(get_db)):
    return row_to_record(_get_or_404(db, plant_id))


@router.put("/{plant_id}", response_model=PlantRecord)
def update_plant(plant_id: str, data: PlantUpdate, db: Session = Depends(get_db)):
    """Edit a plant. Fields left out of the body keep their value."""
    row = _get_or_404(db, plant_id)
    changes = data.model_dump(exclude_unset=True)

    for key in ("name", "latin_name", "location"):
        if key in changes and changes[key] is not None:
            changes[key] = normalize_text(changes[key])

    if "name" in changes and not changes["name"]:
        raise HTTPException(status_code=400, detail="name must not be empty")
    if get_settings().require_location and "location" in changes and not changes["location"]:
        raise HTTPException(status_code=400, detail="location must not be empty")

    changes = {k: v for k, v in changes.items() if v is not None}
    record = row_to_record(row).model_copy(update=changes)
    update_record(db, row, record)
    _commit(db)
    return record


@router.post("/{plant_id}/toggle-found", response_model=PlantRecord)
def toggle_found(plant_id: str, db: Session = Depends(get_db)):
    row = _get_or_404(db, plant_id)
    current = row_to_record(row)
    record = update_record(db, row, current.model_copy(update={"found": not current.found}))
    _commit(db)
    return record


@router.post("/{plant_id}/toggle-removal", response_model=PlantRecord)
def toggle_removal(plant_id: str, db: Session = Depends(get_db)):
    row = _get_or_404(db, plant_id)
    current = row_to_record(row)
    record = update_record(db, row, current.model_copy(update={"needs_removal": not current.needs_removal}))
    _commit(db)
    return record


@router.delete("/{plant_id}", status_code=204)
def delete_plant(plant_id: str, db: Session = Depends(get_db)):
    row = _get_or_404(db, plant_id)
    delete_record(db, row)
    _commit(db)
    return None
