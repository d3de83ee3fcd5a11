import pytest
from fleetdesk.errors import InsufficientStock, InvalidTransition, PermissionDenied, ValidationError
from fleetdesk.models import AuditLog, Notification, PartRequest, SparePart, Ticket
from tests.test_utils_seed import seed_reference_data, set_stock
from tests.test_lifecycle_helpers import (
    MAINT, SPARES, WH, ADMIN, SUPER, StepClock, services, open_ticket, started_ticket, approved_request,
)


@pytest.fixture()
def svc(session):
    seed_reference_data()
    return services(StepClock())


def _stock(session, code):
    return session.get(SparePart, code).balance_on_sap


def _recipients(session, ticket_id, event):
    return [n.user_id for n in session.query(Notification).filter_by(ticket_id=ticket_id, event=event)]


def test_oil_filter_happy_path(svc, session):
    lc, pw = svc
    t = started_ticket(lc)
    t = lc.request_parts(MAINT, t.id, {'OF-002': 2})
    assert t.status == Ticket.STATUS_AWAITING_PARTS
    assert t.part_request.status == PartRequest.STATUS_PENDING
    assert t.part_request.serial == f'REQ-{t.serial}'
    assert _recipients(session, t.id, 'parts_requested') == ['spares01']

    t = pw.approve_request(SPARES, t.id)
    assert t.status == Ticket.STATUS_AWAITING_WAREHOUSE
    assert t.part_request.status == PartRequest.STATUS_ADMIN_APPROVED
    assert _recipients(session, t.id, 'request_approved') == ['wh01']

    t = pw.issue_parts(WH, t.id)
    assert _stock(session, 'OF-002') == 48
    assert t.part_request.status == PartRequest.STATUS_ISSUED
    assert t.status == Ticket.STATUS_AWAITING_WAREHOUSE

    t = pw.complete_handover(WH, t.id)
    assert t.status == Ticket.STATUS_IN_PROGRESS
    pr = t.part_request
    assert pr.status == PartRequest.STATUS_WAREHOUSE_COMPLETED
    assert pr.requested_at < pr.admin_resolved_at < pr.warehouse_resolved_at < pr.warehouse_completed_at
    assert _recipients(session, t.id, 'handover_completed') == ['maint01']

    t = lc.finish_work(MAINT, t.id, 'Oil and filter changed')
    assert t.closed_at > pr.warehouse_completed_at


def test_shortage_leaves_everything_untouched(svc, session):
    lc, pw = svc
    set_stock('OF-002', 8)
    t = approved_request(lc, pw, {'OF-002': 10})
    with pytest.raises(InsufficientStock) as exc:
        pw.issue_parts(WH, t.id)
    assert exc.value.shortages == [{'sap_code': 'OF-002', 'requested': 10, 'on_hand': 8}]
    assert _stock(session, 'OF-002') == 8
    assert t.part_request.status == PartRequest.STATUS_ADMIN_APPROVED
    assert t.part_request.warehouse_resolved_at is None
    assert t.status == Ticket.STATUS_AWAITING_WAREHOUSE
    assert session.query(AuditLog).filter_by(action='PARTS.ISSUE').count() == 0


def test_issue_is_all_or_nothing_across_lines(svc, session):
    lc, pw = svc
    t = approved_request(lc, pw, {'OF-002': 2, 'ALT-010': 9})
    with pytest.raises(InsufficientStock) as exc:
        pw.issue_parts(WH, t.id)
    assert [s['sap_code'] for s in exc.value.shortages] == ['ALT-010']
    assert _stock(session, 'OF-002') == 50
    assert _stock(session, 'ALT-010') == 8
    set_stock('ALT-010', 9)
    pw.issue_parts(WH, t.id)
    assert _stock(session, 'OF-002') == 48
    assert _stock(session, 'ALT-010') == 0


def test_reject_then_resubmit_creates_new_request(svc, session):
    lc, pw = svc
    t = started_ticket(lc)
    lc.request_parts(MAINT, t.id, {'BP-001': 4})
    t = pw.reject_request(SPARES, t.id)
    assert t.status == Ticket.STATUS_IN_PROGRESS
    first = t.part_request
    assert first.status == PartRequest.STATUS_REJECTED
    assert _recipients(session, t.id, 'request_rejected') == ['maint01']

    t = lc.request_parts(MAINT, t.id, {'BP-001': 2})
    second = t.part_request
    assert second is not first
    assert second.sequence == 2
    assert second.serial == f'REQ-{t.serial}-2'
    assert second.requested_at > first.requested_at
    assert second.requested_at > first.admin_resolved_at
    assert second.status == PartRequest.STATUS_PENDING
    # the rejected request keeps its own quantities
    assert first.parts == {'BP-001': 4}
    assert second.parts == {'BP-001': 2}
    assert [pr.status for pr in t.part_requests] == ['rejected', 'pending']


def test_warehouse_rejection(svc, session):
    lc, pw = svc
    t = approved_request(lc, pw, {'TR-006': 4})
    t = pw.reject_parts_by_warehouse(WH, t.id)
    assert t.status == Ticket.STATUS_IN_PROGRESS
    assert t.part_request.status == PartRequest.STATUS_REJECTED
    assert t.part_request.warehouse_resolved_at is not None
    assert _stock(session, 'TR-006') == 40
    assert _recipients(session, t.id, 'warehouse_rejected') == ['maint01']
    # spares admin cannot reject an approved request
    t2 = approved_request(lc, pw, {'TR-006': 1}, vehicle_id='HD-106')
    with pytest.raises(InvalidTransition):
        pw.reject_request(SPARES, t2.id)


@pytest.mark.parametrize('parts', [{}, {'OF-002': 0}, {'OF-002': -3}, {'OF-002': 1.5}])
def test_request_parts_validation(svc, session, parts):
    lc, _ = svc
    t = started_ticket(lc)
    with pytest.raises(ValidationError):
        lc.request_parts(MAINT, t.id, parts)
    assert t.part_request is None
    assert session.query(PartRequest).count() == 0


def test_request_parts_unknown_code(svc):
    lc, _ = svc
    t = started_ticket(lc)
    with pytest.raises(ValidationError) as exc:
        lc.request_parts(MAINT, t.id, {'OF-002': 1, 'NOPE-1': 1})
    assert exc.value.extra['unknown_codes'] == ['NOPE-1']


def test_request_parts_preconditions(svc):
    lc, _ = svc
    t = open_ticket(lc)
    with pytest.raises(InvalidTransition):
        lc.request_parts(MAINT, t.id, {'OF-002': 1})
    t = started_ticket(lc, 'HD-106')
    lc.request_parts(MAINT, t.id, {'OF-002': 1})
    with pytest.raises(InvalidTransition):
        lc.request_parts(MAINT, t.id, {'OF-002': 1})
    assert len(t.part_requests) == 1


def test_finish_blocked_while_parts_outstanding(svc):
    lc, pw = svc
    t = started_ticket(lc)
    lc.request_parts(MAINT, t.id, {'OF-002': 1})
    with pytest.raises(InvalidTransition):
        lc.finish_work(MAINT, t.id, 'done')
    pw.approve_request(SPARES, t.id)
    with pytest.raises(InvalidTransition):
        lc.finish_work(MAINT, t.id, 'done')
    pw.issue_parts(WH, t.id)
    with pytest.raises(InvalidTransition):
        lc.finish_work(MAINT, t.id, 'done')


def test_no_parts_required_is_idempotent(svc, session):
    lc, _ = svc
    t = started_ticket(lc)
    t = lc.no_parts_required(MAINT, t.id)
    assert t.status == Ticket.STATUS_IN_PROGRESS
    assert t.part_request.status == PartRequest.STATUS_NONE
    assert t.part_request.parts == {}
    lc.no_parts_required(MAINT, t.id)
    assert len(t.part_requests) == 1
    assert session.query(AuditLog).filter_by(action='TICKET.NO_PARTS').count() == 1
    with pytest.raises(InvalidTransition):
        lc.request_parts(MAINT, t.id, {'OF-002': 1})
    t = lc.finish_work(MAINT, t.id, 'Cleaned and inspected')
    assert t.status == Ticket.STATUS_PENDING_CONFIRMATION


def test_no_parts_requires_in_progress(svc):
    lc, _ = svc
    t = open_ticket(lc)
    with pytest.raises(InvalidTransition):
        lc.no_parts_required(MAINT, t.id)


def test_out_of_order_parts_actions(svc):
    lc, pw = svc
    t = started_ticket(lc)
    with pytest.raises(InvalidTransition):
        pw.approve_request(SPARES, t.id)
    lc.request_parts(MAINT, t.id, {'OF-002': 1})
    with pytest.raises(InvalidTransition):
        pw.issue_parts(WH, t.id)
    with pytest.raises(InvalidTransition):
        pw.complete_handover(WH, t.id)
    pw.approve_request(SPARES, t.id)
    with pytest.raises(InvalidTransition):
        pw.approve_request(SPARES, t.id)
    with pytest.raises(InvalidTransition):
        pw.complete_handover(WH, t.id)


def test_completed_request_blocks_another(svc):
    lc, pw = svc
    t = approved_request(lc, pw, {'OF-002': 1})
    pw.issue_parts(WH, t.id)
    pw.complete_handover(WH, t.id)
    with pytest.raises(InvalidTransition):
        lc.request_parts(MAINT, t.id, {'OF-002': 1})


def test_parts_roles(svc):
    lc, pw = svc
    t = started_ticket(lc)
    lc.request_parts(MAINT, t.id, {'OF-002': 1})
    with pytest.raises(PermissionDenied):
        pw.approve_request(MAINT, t.id)
    with pytest.raises(PermissionDenied):
        pw.approve_request(WH, t.id)
    pw.approve_request(ADMIN, t.id)
    with pytest.raises(PermissionDenied):
        pw.issue_parts(SPARES, t.id)
    t = pw.issue_parts(SUPER, t.id)
    assert t.part_request.status == PartRequest.STATUS_ISSUED


def test_issue_audit_records_stock_movement(svc, session):
    lc, pw = svc
    t = approved_request(lc, pw, {'OF-002': 2})
    pw.issue_parts(WH, t.id)
    row = session.query(AuditLog).filter_by(action='PARTS.ISSUE').one()
    assert row.meta['stock'] == [{'sap_code': 'OF-002', 'quantity': 2, 'before': 50, 'after': 48}]
    assert row.meta['part_request_status'] == 'issued'
