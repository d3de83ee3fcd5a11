from flask import Blueprint, request
from flask_jwt_extended import jwt_required, get_jwt_identity
from fleetdesk import get_db
from fleetdesk.serializers import notification_json
from fleetdesk.services import notifications as N
from fleetdesk.utils.db import transaction
from fleetdesk.utils.listing import paginate_items, build_list_payload

ntf_bp = Blueprint('notifications', __name__)


@ntf_bp.get('')
@jwt_required()
def list_notifications():
    session = get_db()
    user_id = get_jwt_identity()
    unread_only = request.args.get('unread') in ('1', 'true')
    rows, total, limit, offset = paginate_items(N.list_notifications(session, user_id, unread_only=unread_only))
    payload = build_list_payload([notification_json(n) for n in rows], total, limit, offset)
    payload['unread_count'] = N.unread_count(session, user_id)
    return payload


@ntf_bp.post('/<int:notification_id>/read')
@jwt_required()
def mark_read(notification_id: int):
    session = get_db()
    data = request.get_json(silent=True) or {}
    with transaction(session):
        n = N.mark_read(session, notification_id, get_jwt_identity(), read=bool(data.get('read', True)))
    return notification_json(n)


@ntf_bp.post('/read-all')
@jwt_required()
def mark_all_read():
    session = get_db()
    with transaction(session):
        updated = N.mark_all_read(session, get_jwt_identity())
    return {'updated': updated}
