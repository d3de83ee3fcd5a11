from flask import Blueprint, request
from fleetdesk import get_db
from fleetdesk.constants import permissions as P
from fleetdesk.decorators.auth import require_operation, current_actor
from fleetdesk.serializers import vehicle_json, inspection_json
from fleetdesk.services.audit import add_audit
from fleetdesk.services.fleet import FleetService
from fleetdesk.utils.db import transaction
from fleetdesk.utils.listing import list_response

fleet_bp = Blueprint('fleet', __name__)


@fleet_bp.get('/vehicles')
@require_operation(P.FLEET_READ)
def list_vehicles():
    return list_response(FleetService(get_db()).list_vehicles(), vehicle_json)


@fleet_bp.get('/vehicles/<vehicle_id>')
@require_operation(P.FLEET_READ)
def get_vehicle(vehicle_id: str):
    svc = FleetService(get_db())
    v = svc.get_vehicle(vehicle_id)
    latest = svc.latest_inspection(v.id)
    out = vehicle_json(v)
    out['latest_inspection'] = inspection_json(latest) if latest else None
    return out


@fleet_bp.get('/inspections')
@require_operation(P.FLEET_READ)
def list_inspections():
    svc = FleetService(get_db())
    vehicle_id = request.args.get('vehicle_id')
    if vehicle_id:
        svc.get_vehicle(vehicle_id)
    return list_response(svc.list_inspections(vehicle_id), inspection_json)


@fleet_bp.post('/inspections')
@require_operation(P.INSPECTION_CREATE)
def record_inspection():
    session = get_db()
    data = request.json or {}
    actor = current_actor()
    with transaction(session):
        ins = FleetService(session).record_inspection(
            data.get('vehicle_id'),
            notes=data.get('notes') or '',
            images=data.get('images'),
            inspected_by=actor.user_id,
        )
        session.flush()
        add_audit(session, actor.user_id, P.INSPECTION_CREATE, 'Inspection', ins.id, {'vehicle_id': ins.vehicle_id})
    return inspection_json(ins), 201
