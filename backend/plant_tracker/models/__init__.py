"""All SQLAlchemy models – re-exported for app use."""

from plant_tracker.models.plant import Plant
from plant_tracker.models.audit_log import AuditLog

__all__ = ["Plant", "AuditLog"]
