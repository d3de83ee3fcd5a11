from __future__ import annotations
from datetime import datetime
from typing import Dict
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, JSON, DateTime, ForeignKey

from .base import Base
from fleetdesk.utils.clock import utcnow


class Inspection(Base):
    __tablename__ = 'inspections'
    SIDES = ('front', 'back', 'left', 'right')
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    vehicle_id: Mapped[str] = mapped_column(ForeignKey('vehicles.id'), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default='')
    # side -> opaque image reference (storage is handled outside this service)
    images: Mapped[Dict[str, str]] = mapped_column(JSON, default=dict)
    inspected_by: Mapped[str] = mapped_column(String(64), nullable=True)
