"""Backup endpoints: download the inventory as JSON and restore it from a file."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from plant_tracker.database import get_db
from plant_tracker.errors import InvalidImportData
from plant_tracker.schemas import BackupImportResponse
from plant_tracker.services.backup import backup_filename, export_backup, parse_backup
from plant_tracker.services.inventory import list_records, replace_inventory

logger = logging.getLogger("plant_tracker.backup")

router = APIRouter(prefix="/backup", tags=["backup"])


@router.get("/export")
def export_plants(db: Session = Depends(get_db)):
    records = list_records(db)
    if not records:
        raise HTTPException(status_code=404, detail="No plant data to export")

    return Response(
        content=export_backup(records),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{backup_filename()}"'},
    )


@router.post("/import", response_model=BackupImportResponse)
async def import_plants(request: Request, db: Session = Depends(get_db)):
    """Replace the inventory with the plants in the uploaded JSON array."""
    body = await request.body()
    try:
        records = parse_backup(body)
    except InvalidImportData as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        replace_inventory(db, records)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Backup restore failed")
        raise HTTPException(status_code=500, detail="Failed to import data")

    logger.info(f"Restored {len(records)} plants from backup")
    return BackupImportResponse(imported=len(records))
