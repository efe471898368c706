"""Audit log model for tracking inventory changes."""
from sqlalchemy import Column, DateTime, Integer, JSON, String
from sqlalchemy.sql import func

from plant_tracker.database import Base


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    plant_id = Column(String(64), nullable=True, index=True)
    action = Column(String, nullable=False)  # 'CREATE', 'UPDATE', 'DELETE', 'RESTORE'
    source = Column(String, nullable=False, default="manual")  # 'manual', 'backup', 'inaturalist'
    diff_json = Column(JSON, nullable=False)  # {before: {...}, after: {...}}
