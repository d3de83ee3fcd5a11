from functools import wraps
from flask_jwt_extended import verify_jwt_in_request, get_jwt, get_jwt_identity
from fleetdesk.errors import PermissionDenied
from fleetdesk.services.policy import Actor, can_perform


def current_actor() -> Actor:
    claims = get_jwt()
    return Actor(user_id=str(get_jwt_identity()), role=claims.get('role', ''))


def require_operation(*codes: str):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            role = get_jwt().get('role', '')
            if not all(can_perform(role, c) for c in codes):
                raise PermissionDenied('Missing permission')
            return fn(*args, **kwargs)
        return wrapper
    return outer
