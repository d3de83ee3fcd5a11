"""JSON shapes shared by the blueprints."""
from __future__ import annotations
from typing import Any, Dict, Optional

from fleetdesk.models.inspection import Inspection
from fleetdesk.models.notification import Notification
from fleetdesk.models.spare_part import SparePart
from fleetdesk.models.ticket import PartRequest, Ticket
from fleetdesk.models.vehicle import Vehicle
from fleetdesk.utils.clock import isoformat_z


def part_request_json(pr: Optional[PartRequest]) -> Optional[Dict[str, Any]]:
    if pr is None:
        return None
    return {
        'serial': pr.serial,
        'sequence': pr.sequence,
        'parts': dict(pr.parts or {}),
        'status': pr.status,
        'requested_by': pr.requested_by,
        'requested_at': isoformat_z(pr.requested_at),
        'admin_resolved_at': isoformat_z(pr.admin_resolved_at),
        'warehouse_resolved_at': isoformat_z(pr.warehouse_resolved_at),
        'warehouse_completed_at': isoformat_z(pr.warehouse_completed_at),
    }


def ticket_json(t: Ticket, history: bool = False) -> Dict[str, Any]:
    out = {
        'id': t.id,
        'serial': t.serial,
        'vehicle_id': t.vehicle_id,
        'issue': t.issue,
        'reported_by': t.reported_by,
        'section': t.section,
        'priority': t.priority,
        'kilometers': t.kilometers,
        'location': t.location,
        'status': t.status,
        'created_at': isoformat_z(t.created_at),
        'started_at': isoformat_z(t.started_at),
        'closed_at': isoformat_z(t.closed_at),
        'confirmed_at': isoformat_z(t.confirmed_at),
        'assigned_to': list(t.assigned_to or []),
        'work_done_notes': t.work_done_notes,
        'part_request': part_request_json(t.part_request),
    }
    if history:
        out['part_requests'] = [part_request_json(pr) for pr in t.part_requests]
    return out


def spare_part_json(p: SparePart) -> Dict[str, Any]:
    return {
        'sap_code': p.sap_code,
        'material_description': p.material_description,
        'description_ar': p.description_ar,
        'location': p.location,
        'dept': p.dept,
        'uom': p.uom,
        'balance_on_sap': p.balance_on_sap,
        'updated_at': isoformat_z(p.updated_at),
    }


def vehicle_json(v: Vehicle) -> Dict[str, Any]:
    return {
        'id': v.id,
        'current_kilometers': v.current_kilometers,
        'last_engine_service_km': v.last_engine_service_km,
        'last_transmission_service_km': v.last_transmission_service_km,
    }


def inspection_json(i: Inspection) -> Dict[str, Any]:
    return {
        'id': i.id,
        'vehicle_id': i.vehicle_id,
        'created_at': isoformat_z(i.created_at),
        'notes': i.notes,
        'images': dict(i.images or {}),
        'inspected_by': i.inspected_by,
    }


def notification_json(n: Notification) -> Dict[str, Any]:
    return {
        'id': n.id,
        'ticket_id': n.ticket_id,
        'ticket_serial': n.ticket_serial,
        'event': n.event,
        'message': n.message,
        'created_at': isoformat_z(n.created_at),
        'read': n.read,
    }
