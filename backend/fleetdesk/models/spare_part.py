from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, DateTime

from .base import Base
from fleetdesk.utils.clock import utcnow


class SparePart(Base):
    __tablename__ = 'spare_parts'
    sap_code: Mapped[str] = mapped_column(String(64), primary_key=True)
    material_description: Mapped[str] = mapped_column(String(255), nullable=False)
    description_ar: Mapped[str] = mapped_column(String(255), nullable=True)
    location: Mapped[str] = mapped_column(String(32), nullable=False, default='')
    dept: Mapped[str] = mapped_column(String(64), nullable=False, default='')
    uom: Mapped[str] = mapped_column(String(16), nullable=False, default='PCS')
    balance_on_sap: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
