# backend/models/master_data.py
from __future__ import annotations
from typing import Dict, Optional

from sqlalchemy import (
    Column, Integer, String, DateTime, func, Index, ForeignKey, JSON
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from config.database import Base

# JSONB on Postgres, plain JSON elsewhere (sqlite in tests/local dev)
NameJSON = JSON().with_variant(JSONB(), "postgresql")

LANGUAGES = ("en", "th", "zh")
LOCATION_LEVELS = ("province", "district", "subdistrict")


def empty_name() -> Dict[str, str]:
    return {"en": "", "th": "", "zh": ""}


def name_record(raw: Optional[dict]) -> Dict[str, str]:
    """Coerce a stored name JSON into a full {en, th, zh} record."""
    raw = raw or {}
    return {lang: (raw.get(lang) or "") for lang in LANGUAGES}


class MasterType(Base):
    __tablename__ = "master_types"

    id = Column(Integer, primary_key=True)
    name = Column(NameJSON, nullable=False)     # {"en": "...", "th": "...", "zh": "..."}

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def to_option(self) -> dict:
        return _option_of(self.id, self.name)


class MasterStatus(Base):
    __tablename__ = "master_statuses"

    id = Column(Integer, primary_key=True)
    name = Column(NameJSON, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def to_option(self) -> dict:
        return _option_of(self.id, self.name)


class MasterLocation(Base):
    __tablename__ = "master_locations"

    id = Column(Integer, primary_key=True)
    level = Column(String(20), nullable=False)  # province | district | subdistrict
    name = Column(NameJSON, nullable=False)
    parent_id = Column(Integer, ForeignKey("master_locations.id", ondelete="CASCADE"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    parent = relationship("MasterLocation", remote_side=[id], lazy="select")

    __table_args__ = (
        Index("ix_master_locations_level_parent", "level", "parent_id"),
    )

    def to_option(self) -> dict:
        return _option_of(self.id, self.name)


def _option_of(row_id: int, raw_name: Optional[dict]) -> dict:
    name = name_record(raw_name)
    return {
        "id": row_id,
        "name_en": name["en"],
        "name_th": name["th"],
        "name_zh": name["zh"],
        "name": name,
    }
