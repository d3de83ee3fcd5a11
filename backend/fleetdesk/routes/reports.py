from datetime import date
from flask import Blueprint, request, abort
from fleetdesk import get_db
from fleetdesk.constants import permissions as P
from fleetdesk.decorators.auth import require_operation
from fleetdesk.errors import ValidationError
from fleetdesk.serializers import ticket_json
from fleetdesk.services import reports as R

rpt_bp = Blueprint('reports', __name__)


@rpt_bp.get('/analytics')
@require_operation(P.RPT_READ)
def analytics():
    return R.analytics(get_db())


@rpt_bp.get('/queues/<name>')
@require_operation(P.RPT_READ)
def queue(name: str):
    session = get_db()
    if name == 'maintenance':
        q = R.maintenance_queue(session, status=request.args.get('status') or None, sort_by=request.args.get('sort', R.SORT_DATE))
        return {
            'active': [ticket_json(t) for t in q['active']],
            'closed': [ticket_json(t) for t in q['closed']],
            'stats': q['stats'],
        }
    if name == 'spares':
        q = R.spares_queue(session)
    elif name == 'warehouse':
        q = R.warehouse_queue(session)
    else:
        abort(404)
    return {'tickets': [ticket_json(t) for t in q['tickets']], 'stats': q['stats']}


@rpt_bp.get('/history')
@require_operation(P.RPT_READ)
def history():
    raw_date = request.args.get('date')
    on_date = None
    if raw_date:
        try:
            on_date = date.fromisoformat(raw_date)
        except ValueError:
            raise ValidationError('date must be YYYY-MM-DD')
    rows = R.history_search(
        get_db(),
        vehicle_id=request.args.get('vehicle_id'),
        technician=request.args.get('technician'),
        reported_by=request.args.get('reported_by'),
        section=request.args.get('section'),
        on_date=on_date,
    )
    return {'data': [ticket_json(t) for t in rows], 'total': len(rows)}
