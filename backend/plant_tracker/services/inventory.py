"""
Inventory persistence.

Owns the mapping between stored plant rows and PlantRecord snapshots.
Functions flush but never commit; the router owning the request commits
or rolls back.
"""
import logging
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from plant_tracker.audit import log_change, record_to_dict
from plant_tracker.models import Plant
from plant_tracker.schemas import PlantRecord

logger = logging.getLogger("plant_tracker.inventory")

RECORD_FIELDS = tuple(PlantRecord.model_fields)


def row_to_record(row: Plant) -> PlantRecord:
    data = dict(row.extra or {})
    data.update({name: getattr(row, name) for name in RECORD_FIELDS})
    return PlantRecord.model_validate(data)


def _apply(row: Plant, record: PlantRecord) -> None:
    for name in RECORD_FIELDS:
        if name == "id":
            continue
        value = getattr(record, name)
        setattr(row, name, list(value) if isinstance(value, list) else value)
    row.extra = dict(record.model_extra or {})


def _next_position(db: Session) -> int:
    current = db.query(func.max(Plant.position)).scalar()
    return 0 if current is None else current + 1


def list_records(db: Session) -> List[PlantRecord]:
    """Snapshot of the whole inventory in list order."""
    rows = db.query(Plant).order_by(Plant.position).all()
    return [row_to_record(row) for row in rows]


def get_row(db: Session, plant_id: str) -> Optional[Plant]:
    return db.query(Plant).filter(Plant.id == plant_id).first()


def add_records(db: Session, records: Iterable[PlantRecord], source: str = "manual") -> List[PlantRecord]:
    position = _next_position(db)
    added = []
    for record in records:
        row = Plant(id=record.id, position=position)
        _apply(row, record)
        db.add(row)
        db.flush()
        log_change(db, record.id, "CREATE", None, record_to_dict(record), source=source)
        added.append(record)
        position += 1
    return added


def update_record(db: Session, row: Plant, record: PlantRecord, source: str = "manual") -> PlantRecord:
    before = row_to_record(row)
    _apply(row, record)
    db.flush()
    log_change(db, row.id, "UPDATE", record_to_dict(before), record_to_dict(record), source=source)
    return record


def save_records(db: Session, records: Iterable[PlantRecord], source: str) -> List[PlantRecord]:
    """Replace stored records by id, appending any that no longer exist."""
    saved = []
    for record in records:
        row = get_row(db, record.id) if record.id else None
        if row is None:
            logger.warning(f"Plant {record.id!r} vanished before update; re-adding it")
            saved.extend(add_records(db, [record], source=source))
        else:
            saved.append(update_record(db, row, record, source=source))
    return saved


def delete_record(db: Session, row: Plant) -> None:
    before = row_to_record(row)
    db.delete(row)
    db.flush()
    log_change(db, before.id, "DELETE", record_to_dict(before), None)


def replace_inventory(db: Session, records: List[PlantRecord]) -> List[PlantRecord]:
    """Swap the whole inventory for a restored backup."""
    before_count = db.query(Plant).count()
    db.query(Plant).delete()
    db.flush()
    for position, record in enumerate(records):
        row = Plant(id=record.id, position=position)
        _apply(row, record)
        db.add(row)
    db.flush()
    log_change(
        db, None, "RESTORE",
        {"count": before_count}, {"count": len(records), "ids": [r.id for r in records]},
        source="backup",
    )
    return records
