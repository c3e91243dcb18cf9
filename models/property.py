# backend/models/property.py
from __future__ import annotations
from typing import Optional

from sqlalchemy import (
    Column, Integer, String, Text, Float, DateTime, func, Index, ForeignKey
)
from sqlalchemy.orm import Session

from config.database import Base


class Property(Base):
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True)
    property_id = Column(String(32), nullable=True, unique=True, index=True)   # external code, e.g. "AT42R"

    # Denormalized free text kept for legacy rows
    type = Column(String(120), nullable=True)
    status = Column(String(120), nullable=True)
    province = Column(String(120), nullable=True)
    district = Column(String(120), nullable=True)
    sub_district = Column(String(120), nullable=True)

    type_id = Column(Integer, ForeignKey("master_types.id", ondelete="SET NULL"), nullable=True, index=True)
    status_id = Column(Integer, ForeignKey("master_statuses.id", ondelete="SET NULL"), nullable=True, index=True)
    subdistrict_id = Column(Integer, ForeignKey("master_locations.id", ondelete="SET NULL"), nullable=True, index=True)

    size = Column(Float, nullable=True)             # sqm
    size_prefix = Column(String(20), nullable=True)
    price = Column(Float, nullable=True)
    price_postfix = Column(String(20), nullable=True)
    location = Column(Text, nullable=True)
    remarks = Column(Text, nullable=True)

    # JSON array of strings stored as text, e.g. '["Parking","Free-trade zone"]'
    features = Column(Text, nullable=True)
    labels = Column(Text, nullable=True)

    # Cached display titles, always re-derivable from the categorical ids + size
    title = Column(String(500), nullable=True)
    title_en = Column(String(500), nullable=True)
    title_th = Column(String(500), nullable=True)
    title_zh = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_properties_type_status", "type_id", "status_id"),
        Index("ix_properties_created", "created_at"),
    )

    # ---------- Convenience helpers ----------
    @staticmethod
    def find_by_ref(db: Session, ref) -> Optional["Property"]:
        """
        Look up by external property code, then by numeric primary key.

        Codes may be all digits, so a matching code always wins over a pk.
        """
        ref = str(ref).strip()
        prop = db.query(Property).filter(Property.property_id == ref).one_or_none()
        if prop is None and ref.isdigit():
            prop = db.get(Property, int(ref))
        return prop

    def title_input(self) -> dict:
        """The attribute set title generation reads from this listing."""
        return {
            "type_id": self.type_id,
            "status_id": self.status_id,
            "subdistrict_id": self.subdistrict_id,
            "size": self.size,
            "property_id": self.property_id,
            "type": self.type,
            "status": self.status,
            "province": self.province,
            "district": self.district,
            "sub_district": self.sub_district,
        }
