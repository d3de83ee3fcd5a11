from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Optional
from uuid import uuid4
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from sqlalchemy import Integer, String, Text, JSON, DateTime, ForeignKey, UniqueConstraint

from .base import Base
from fleetdesk.utils.clock import utcnow


class PartRequest(Base):
    __tablename__ = 'part_requests'
    # Status constants
    STATUS_PENDING = 'pending'
    STATUS_ADMIN_APPROVED = 'admin_approved'
    STATUS_ISSUED = 'issued'
    STATUS_WAREHOUSE_COMPLETED = 'warehouse_completed'
    STATUS_REJECTED = 'rejected'
    STATUS_NONE = 'none'
    ALL_STATUSES = (
        STATUS_PENDING, STATUS_ADMIN_APPROVED, STATUS_ISSUED,
        STATUS_WAREHOUSE_COMPLETED, STATUS_REJECTED, STATUS_NONE,
    )
    # Requests still waiting on spares admin or warehouse
    OPEN_STATUSES = (STATUS_PENDING, STATUS_ADMIN_APPROVED, STATUS_ISSUED)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[str] = mapped_column(ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False, index=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    serial: Mapped[str] = mapped_column(String(96), nullable=False, unique=True)
    # sap_code -> requested quantity
    parts: Mapped[Dict[str, int]] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_PENDING, index=True)
    requested_by: Mapped[str] = mapped_column(String(64), nullable=True)
    requested_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    admin_resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    warehouse_resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    warehouse_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    ticket = relationship('Ticket', back_populates='part_requests')

    __table_args__ = (UniqueConstraint('ticket_id', 'sequence', name='uq_part_request_sequence'),)

    @validates('parts')
    def _freeze_parts(self, key, value):
        if self.id is not None or self.parts:
            raise ValueError('parts are immutable once submitted')
        return dict(value or {})

    @property
    def total_quantity(self) -> int:
        return sum(self.parts.values()) if self.parts else 0


# Status flow: Open -> InProgress -> [AwaitingParts -> AwaitingWarehouse ->] InProgress
#              -> PendingConfirmation -> Closed
# The status is never stored: it is projected from the lifecycle stamps and the
# latest part request (see derive_status).
class Ticket(Base):
    __tablename__ = 'tickets'
    # Status constants
    STATUS_OPEN = 'Open'
    STATUS_IN_PROGRESS = 'InProgress'
    STATUS_AWAITING_PARTS = 'AwaitingParts'
    STATUS_AWAITING_WAREHOUSE = 'AwaitingWarehouse'
    STATUS_PENDING_CONFIRMATION = 'PendingConfirmation'
    STATUS_CLOSED = 'Closed'
    ALL_STATUSES = (
        STATUS_OPEN, STATUS_IN_PROGRESS, STATUS_AWAITING_PARTS,
        STATUS_AWAITING_WAREHOUSE, STATUS_PENDING_CONFIRMATION, STATUS_CLOSED,
    )
    SECTION_MECHANICAL = 'Mechanical'
    SECTION_SHEET_METAL = 'SheetMetal'
    SECTION_TIRES = 'Tires'
    SECTION_CLEANING = 'Cleaning'
    ALL_SECTIONS = (SECTION_MECHANICAL, SECTION_SHEET_METAL, SECTION_TIRES, SECTION_CLEANING)
    PRIORITY_LOW = 'Low'
    PRIORITY_MEDIUM = 'Medium'
    PRIORITY_HIGH = 'High'
    ALL_PRIORITIES = (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH)
    HISTORICAL_PREFIX = 'HISTORICAL: '

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: uuid4().hex)
    serial: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    vehicle_id: Mapped[str] = mapped_column(ForeignKey('vehicles.id'), nullable=False, index=True)
    issue: Mapped[str] = mapped_column(Text, nullable=False)
    reported_by: Mapped[str] = mapped_column(String(128), nullable=False)
    section: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default=PRIORITY_MEDIUM)
    kilometers: Mapped[int] = mapped_column(Integer, nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    assigned_to: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    work_done_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    part_requests = relationship(
        'PartRequest',
        back_populates='ticket',
        order_by='PartRequest.sequence',
        cascade='all, delete-orphan',
        lazy='selectin',
    )

    @property
    def part_request(self) -> Optional[PartRequest]:
        return self.part_requests[-1] if self.part_requests else None

    @property
    def status(self) -> str:
        pr = self.part_request
        return derive_status(self.started_at, self.closed_at, self.confirmed_at, pr.status if pr else None)

    @property
    def is_historical(self) -> bool:
        return self.issue.startswith(self.HISTORICAL_PREFIX)


def derive_status(
    started_at: Optional[datetime],
    closed_at: Optional[datetime],
    confirmed_at: Optional[datetime],
    request_status: Optional[str],
) -> str:
    """Project the ticket status from its lifecycle stamps and latest part request."""
    if confirmed_at is not None:
        return Ticket.STATUS_CLOSED
    if closed_at is not None:
        return Ticket.STATUS_PENDING_CONFIRMATION
    if started_at is None:
        return Ticket.STATUS_OPEN
    if request_status == PartRequest.STATUS_PENDING:
        return Ticket.STATUS_AWAITING_PARTS
    if request_status in (PartRequest.STATUS_ADMIN_APPROVED, PartRequest.STATUS_ISSUED):
        return Ticket.STATUS_AWAITING_WAREHOUSE
    return Ticket.STATUS_IN_PROGRESS
