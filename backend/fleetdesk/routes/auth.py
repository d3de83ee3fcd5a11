from flask import Blueprint, request, abort
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity
from fleetdesk import get_db
from fleetdesk.models.user import User
from fleetdesk.services.policy import operations_for_role

auth_bp = Blueprint('auth', __name__)


@auth_bp.post('/token')
def issue_token():
    data = request.json or {}
    user_id = data.get('user_id')
    if not user_id or not isinstance(user_id, str):
        abort(400, description='user_id required')
    session = get_db()
    user = session.get(User, user_id.strip())
    if not user:
        abort(401, description='Unknown user')
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=user.id, additional_claims={'role': user.role, 'name': user.name})
    return {'access_token': token, 'role': user.role}


@auth_bp.get('/me')
@jwt_required()
def me():
    session = get_db()
    user = session.get(User, get_jwt_identity())
    if not user:
        abort(404)
    return {
        'id': user.id,
        'name': user.name,
        'role': user.role,
        'operations': sorted(operations_for_role(user.role)),
    }
