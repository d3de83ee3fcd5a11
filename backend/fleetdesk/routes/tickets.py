from __future__ import annotations
from flask import Blueprint, request
from fleetdesk import get_db
from fleetdesk.constants import permissions as P
from fleetdesk.decorators.auth import require_operation, current_actor
from fleetdesk.errors import ValidationError
from fleetdesk.models.ticket import Ticket
from fleetdesk.serializers import ticket_json
from fleetdesk.services.audit import audit_trail
from fleetdesk.services.lifecycle import TicketLifecycle
from fleetdesk.services.policy import available_actions
from fleetdesk.utils.clock import isoformat_z, parse_timestamp
from fleetdesk.utils.listing import list_response
from fleetdesk.utils.validation import validate_choice

tickets_bp = Blueprint('tickets', __name__)


def _lifecycle() -> TicketLifecycle:
    return TicketLifecycle(get_db())


@tickets_bp.get('')
@require_operation(P.TICKET_READ)
def list_tickets():
    session = get_db()
    q = session.query(Ticket)
    vehicle_id = request.args.get('vehicle_id')
    section = request.args.get('section')
    priority = request.args.get('priority')
    status = request.args.get('status')
    if vehicle_id:
        q = q.filter(Ticket.vehicle_id == vehicle_id)
    if section:
        q = q.filter(Ticket.section == section)
    if priority:
        q = q.filter(Ticket.priority == priority)
    rows = q.order_by(Ticket.created_at.desc()).all()
    if status:
        # status is derived, filter after loading
        validate_choice(status, Ticket.ALL_STATUSES, 'status')
        rows = [t for t in rows if t.status == status]
    return list_response(rows, ticket_json)


@tickets_bp.post('')
@require_operation(P.TICKET_CREATE)
def create_ticket():
    data = request.json or {}
    t = _lifecycle().create_ticket(
        current_actor(),
        vehicle_id=data.get('vehicle_id'),
        issue=data.get('issue'),
        section=data.get('section'),
        reported_by=data.get('reported_by'),
        kilometers=data.get('kilometers'),
        priority=data.get('priority', Ticket.PRIORITY_MEDIUM),
        location=data.get('location'),
    )
    return ticket_json(t), 201


@tickets_bp.post('/historical')
@require_operation(P.TICKET_HISTORICAL)
def add_historical_ticket():
    data = request.json or {}
    raw_date = data.get('repair_date')
    if not isinstance(raw_date, str) or not raw_date.strip():
        raise ValidationError('repair_date required')
    try:
        repair_date = parse_timestamp(raw_date)
    except ValueError:
        raise ValidationError('repair_date must be an ISO 8601 date')
    t = _lifecycle().add_historical_ticket(
        current_actor(),
        vehicle_id=data.get('vehicle_id'),
        issue=data.get('issue'),
        work_done_notes=data.get('work_done_notes'),
        section=data.get('section'),
        repair_date=repair_date,
        kilometers=data.get('kilometers'),
    )
    return ticket_json(t), 201


@tickets_bp.get('/<ticket_id>')
@require_operation(P.TICKET_READ)
def get_ticket(ticket_id: str):
    t = _lifecycle().load_ticket(ticket_id)
    return ticket_json(t, history=True)


@tickets_bp.get('/<ticket_id>/actions')
@require_operation(P.TICKET_READ)
def ticket_actions(ticket_id: str):
    t = _lifecycle().load_ticket(ticket_id)
    return {'id': t.id, 'status': t.status, 'actions': available_actions(current_actor(), t)}


@tickets_bp.get('/<ticket_id>/audit')
@require_operation(P.TICKET_READ)
def ticket_audit(ticket_id: str):
    session = get_db()
    t = _lifecycle().load_ticket(ticket_id)
    return {'data': [
        {
            'id': a.id,
            'actor_user_id': a.actor_user_id,
            'action': a.action,
            'meta': a.meta,
            'created_at': isoformat_z(a.created_at),
        }
        for a in audit_trail(session, 'Ticket', t.id)
    ]}


@tickets_bp.post('/<ticket_id>/assign')
@require_operation(P.TICKET_ASSIGN)
def assign_technicians(ticket_id: str):
    data = request.json or {}
    t = _lifecycle().assign_technicians(current_actor(), ticket_id, data.get('technician_ids'))
    return ticket_json(t)


@tickets_bp.post('/<ticket_id>/start')
@require_operation(P.TICKET_START)
def start_work(ticket_id: str):
    t = _lifecycle().start_work(current_actor(), ticket_id)
    return ticket_json(t)


@tickets_bp.post('/<ticket_id>/request-parts')
@require_operation(P.TICKET_REQUEST_PARTS)
def request_parts(ticket_id: str):
    data = request.json or {}
    t = _lifecycle().request_parts(current_actor(), ticket_id, data.get('parts'))
    return ticket_json(t)


@tickets_bp.post('/<ticket_id>/no-parts')
@require_operation(P.TICKET_NO_PARTS)
def no_parts_required(ticket_id: str):
    t = _lifecycle().no_parts_required(current_actor(), ticket_id)
    return ticket_json(t)


@tickets_bp.post('/<ticket_id>/finish')
@require_operation(P.TICKET_FINISH)
def finish_work(ticket_id: str):
    data = request.json or {}
    t = _lifecycle().finish_work(current_actor(), ticket_id, data.get('work_done_notes'))
    return ticket_json(t)


@tickets_bp.post('/<ticket_id>/confirm')
@require_operation(P.TICKET_CONFIRM)
def confirm_ticket(ticket_id: str):
    t = _lifecycle().confirm_ticket(current_actor(), ticket_id)
    return ticket_json(t)
