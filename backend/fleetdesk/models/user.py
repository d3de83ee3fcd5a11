from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String

from .base import Base


class User(Base):
    __tablename__ = 'users'
    # Role tags (values match what the JWT carries in its ``role`` claim)
    ROLE_OPERATIONS = 'Operations'
    ROLE_MAINTENANCE = 'Maintenance'
    ROLE_INSPECTION = 'Inspection'
    ROLE_SPARES_ADMIN = 'Spares Admin'
    ROLE_WAREHOUSE = 'Warehouse'
    ROLE_ADMIN = 'Admin'
    ROLE_SUPER_ADMIN = 'Super Admin'
    ALL_ROLES = (
        ROLE_OPERATIONS, ROLE_MAINTENANCE, ROLE_INSPECTION, ROLE_SPARES_ADMIN,
        ROLE_WAREHOUSE, ROLE_ADMIN, ROLE_SUPER_ADMIN,
    )
    # employee id, e.g. 'ops01'
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
