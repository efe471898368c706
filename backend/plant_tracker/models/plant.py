from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text
from sqlalchemy.sql import func

from plant_tracker.database import Base


class Plant(Base):
    """A plant record in the property inventory."""

    __tablename__ = "plant"

    id = Column(String(64), primary_key=True)
    position = Column(Integer, nullable=False, index=True)  # insertion order of the list
    name = Column(String(200), nullable=False)
    latin_name = Column(String(200), nullable=False, default="", index=True)
    location = Column(Text, nullable=False, default="")
    image_url = Column(Text, nullable=False, default="")
    rank = Column(String(4), nullable=False, default="")
    type = Column(String(20), nullable=False, default="")
    is_invasive = Column(Boolean, nullable=False, default=False)
    needs_removal = Column(Boolean, nullable=False, default=False)
    found = Column(Boolean, nullable=False, default=False)
    is_edible = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=False, default="")
    inat_notes = Column(Text, nullable=False, default="")
    date_added = Column(String(40), nullable=False, default="")
    last_updated_from_inat = Column(String(40), nullable=True)
    external_id = Column(String(64), nullable=True, index=True)
    inat_observation_ids = Column(JSON, nullable=False, default=list)
    is_matched = Column(Boolean, nullable=True)
    is_document_matched = Column(Boolean, nullable=True)
    extra = Column(JSON, nullable=False, default=dict)  # keys from other inventory versions
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Plant(id={self.id}, name='{self.name}')>"
