"""Audit logging utilities."""
from typing import Optional

from sqlalchemy.orm import Session

from plant_tracker.models import AuditLog
from plant_tracker.schemas import PlantRecord


def log_change(
    db: Session,
    plant_id: Optional[str],
    action: str,
    before: Optional[dict] = None,
    after: Optional[dict] = None,
    source: str = "manual",
) -> AuditLog:
    """Log a change to the audit log.

    Args:
        db: Database session
        plant_id: Id of the affected plant (None for whole-inventory actions)
        action: 'CREATE', 'UPDATE', 'DELETE' or 'RESTORE'
        before: State before change (None for CREATE)
        after: State after change (None for DELETE)
        source: 'manual', 'backup' or 'inaturalist'
    """
    log = AuditLog(
        plant_id=plant_id,
        action=action,
        source=source,
        diff_json={"before": before, "after": after},
    )
    db.add(log)
    db.flush()
    return log


def record_to_dict(record: Optional[PlantRecord]) -> Optional[dict]:
    """Convert a plant record to a JSON-safe dict for logging."""
    if record is None:
        return None
    return record.to_json_dict()
