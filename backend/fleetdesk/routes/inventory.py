from __future__ import annotations
import re
from flask import Blueprint, request, current_app
from fleetdesk import get_db
from fleetdesk.constants import permissions as P
from fleetdesk.decorators.auth import require_operation, current_actor
from fleetdesk.errors import ValidationError
from fleetdesk.serializers import spare_part_json
from fleetdesk.services.audit import add_audit
from fleetdesk.services.inventory import InventoryService
from fleetdesk.utils.db import transaction
from fleetdesk.utils.listing import list_response

inv_bp = Blueprint('inventory', __name__)

_MONTH_RE = re.compile(r'^(\d{4})-(\d{2})$')


@inv_bp.get('/parts')
@require_operation(P.INV_READ)
def list_parts():
    svc = InventoryService(get_db())
    if request.args.get('low_stock') in ('1', 'true'):
        rows = svc.low_stock(current_app.config['LOW_STOCK_THRESHOLD'])
    else:
        rows = svc.list_parts(request.args.get('search'))
    return list_response(rows, spare_part_json)


@inv_bp.get('/parts/<sap_code>')
@require_operation(P.INV_READ)
def get_part(sap_code: str):
    return spare_part_json(InventoryService(get_db()).get_part(sap_code))


@inv_bp.post('/parts')
@require_operation(P.INV_MANAGE)
def add_part():
    session = get_db()
    data = request.json or {}
    with transaction(session):
        p = InventoryService(session).add_part(data)
        add_audit(session, current_actor().user_id, 'INV.PART.CREATE', 'SparePart', p.sap_code,
                  {'balance_on_sap': p.balance_on_sap})
    return spare_part_json(p), 201


@inv_bp.put('/parts/<sap_code>')
@require_operation(P.INV_MANAGE)
def update_part(sap_code: str):
    session = get_db()
    data = request.json or {}
    with transaction(session):
        svc = InventoryService(session)
        before = svc.get_part(sap_code).balance_on_sap
        p = svc.update_part(sap_code, data)
        add_audit(session, current_actor().user_id, 'INV.PART.UPDATE', 'SparePart', p.sap_code,
                  {'balance_before': before, 'balance_after': p.balance_on_sap, 'fields': sorted(data)})
    return spare_part_json(p)


@inv_bp.post('/parts/import')
@require_operation(P.INV_MANAGE)
def import_parts():
    session = get_db()
    data = request.json
    rows = data.get('rows') if isinstance(data, dict) else data
    if not isinstance(rows, list) or not rows:
        raise ValidationError('rows must be a non-empty list')
    with transaction(session):
        result = InventoryService(session).import_parts(rows)
        add_audit(session, current_actor().user_id, 'INV.PART.IMPORT', 'SparePart', None, result)
    return result


@inv_bp.get('/replenishment')
@require_operation(P.INV_READ)
def replenishment():
    raw = request.args.get('month') or ''
    m = _MONTH_RE.match(raw)
    if not m:
        raise ValidationError('month must be YYYY-MM')
    year, month = int(m.group(1)), int(m.group(2))
    rows = InventoryService(get_db()).replenishment_report(year, month)
    return {'month': raw, 'data': rows}
