"""Vehicle registry and inspection records.

The inspection freshness gate used by ``start_work`` lives here: a ticket may
only start once its vehicle has an inspection recorded at or after the
ticket's creation.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select

from fleetdesk.errors import EntityNotFound, ValidationError
from fleetdesk.models.inspection import Inspection
from fleetdesk.models.ticket import Ticket
from fleetdesk.models.vehicle import Vehicle
from fleetdesk.utils.clock import utcnow

logger = logging.getLogger(__name__)


class FleetService:
    def __init__(self, session, clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.clock = clock

    def get_vehicle(self, vehicle_id: str) -> Vehicle:
        v = self.session.get(Vehicle, vehicle_id) if vehicle_id else None
        if v is None:
            raise EntityNotFound(f'Vehicle {vehicle_id} not found')
        return v

    def list_vehicles(self) -> List[Vehicle]:
        return sorted(self.session.execute(select(Vehicle)).scalars(), key=lambda v: v.sort_key)

    def record_inspection(
        self,
        vehicle_id: str,
        notes: str = '',
        images: Optional[Dict[str, Any]] = None,
        inspected_by: Optional[str] = None,
    ) -> Inspection:
        vehicle = self.get_vehicle(vehicle_id)
        images = dict(images or {})
        unknown = sorted(set(images) - set(Inspection.SIDES))
        if unknown:
            raise ValidationError(f"unknown image sides: {', '.join(unknown)}")
        ins = Inspection(
            vehicle_id=vehicle.id,
            created_at=self.clock(),
            notes=(notes or '').strip(),
            images=images,
            inspected_by=inspected_by,
        )
        self.session.add(ins)
        logger.info('inspection recorded for %s by %s', vehicle.id, inspected_by)
        return ins

    def list_inspections(self, vehicle_id: Optional[str] = None) -> List[Inspection]:
        q = self.session.query(Inspection)
        if vehicle_id:
            q = q.filter(Inspection.vehicle_id == vehicle_id)
        return q.order_by(Inspection.created_at.desc(), Inspection.id.desc()).all()

    def latest_inspection(self, vehicle_id: str) -> Optional[Inspection]:
        return (
            self.session.query(Inspection)
            .filter(Inspection.vehicle_id == vehicle_id)
            .order_by(Inspection.created_at.desc(), Inspection.id.desc())
            .first()
        )

    def has_fresh_inspection(self, ticket: Ticket) -> bool:
        return (
            self.session.query(Inspection.id)
            .filter(Inspection.vehicle_id == ticket.vehicle_id, Inspection.created_at >= ticket.created_at)
            .first()
            is not None
        )


__all__ = ['FleetService']
