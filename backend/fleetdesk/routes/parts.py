from flask import Blueprint
from fleetdesk import get_db
from fleetdesk.constants import permissions as P
from fleetdesk.decorators.auth import require_operation, current_actor
from fleetdesk.serializers import ticket_json
from fleetdesk.services.parts import PartsWorkflow

parts_bp = Blueprint('parts', __name__)


def _workflow() -> PartsWorkflow:
    return PartsWorkflow(get_db())


@parts_bp.post('/<ticket_id>/part-request/approve')
@require_operation(P.PARTS_APPROVE)
def approve_request(ticket_id: str):
    return ticket_json(_workflow().approve_request(current_actor(), ticket_id))


@parts_bp.post('/<ticket_id>/part-request/reject')
@require_operation(P.PARTS_REJECT)
def reject_request(ticket_id: str):
    return ticket_json(_workflow().reject_request(current_actor(), ticket_id))


@parts_bp.post('/<ticket_id>/part-request/issue')
@require_operation(P.PARTS_ISSUE)
def issue_parts(ticket_id: str):
    return ticket_json(_workflow().issue_parts(current_actor(), ticket_id))


@parts_bp.post('/<ticket_id>/part-request/warehouse-reject')
@require_operation(P.PARTS_WAREHOUSE_REJECT)
def reject_parts_by_warehouse(ticket_id: str):
    return ticket_json(_workflow().reject_parts_by_warehouse(current_actor(), ticket_id))


@parts_bp.post('/<ticket_id>/part-request/handover')
@require_operation(P.PARTS_HANDOVER)
def complete_handover(ticket_id: str):
    return ticket_json(_workflow().complete_handover(current_actor(), ticket_id))
