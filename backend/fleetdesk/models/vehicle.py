from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String

from .base import Base


class Vehicle(Base):
    __tablename__ = 'vehicles'
    # Fleet prefixes in display order; unknown prefixes sort last
    PREFIX_ORDER = {'HD': 1, 'TP': 2, 'FB': 3, 'SL': 4}
    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    current_kilometers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_engine_service_km: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_transmission_service_km: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def sort_key(self):
        prefix, _, number = self.id.partition('-')
        return (self.PREFIX_ORDER.get(prefix, 99), int(number) if number.isdigit() else 0, self.id)
