import logging
from datetime import datetime, timedelta
import pytest
from fleetdesk.errors import (
    EntityNotFound, InspectionRequired, InvalidTransition, PermissionDenied, ValidationError,
)
from fleetdesk.models import AuditLog, Inspection, Notification, Ticket, Vehicle
from tests.test_utils_seed import seed_reference_data
from tests.test_lifecycle_helpers import (
    OPS, MAINT, INSP, ADMIN, SUPER, StepClock, services, open_ticket, inspect, started_ticket,
)


@pytest.fixture()
def clock():
    return StepClock()


@pytest.fixture()
def lc(session, clock):
    seed_reference_data()
    lifecycle, _ = services(clock)
    return lifecycle


def test_create_ticket_defaults(lc, session):
    t = open_ticket(lc)
    assert t.serial == 'TICKET-20250301-T001'
    assert t.status == Ticket.STATUS_OPEN
    assert t.reported_by == 'Fleet Operations User'
    assert t.priority == Ticket.PRIORITY_MEDIUM
    assert t.assigned_to == []
    assert t.started_at is None and t.closed_at is None and t.confirmed_at is None
    t2 = open_ticket(lc, 'HD-106', issue='Flat tyre', section='Tires', priority='High')
    assert t2.serial == 'TICKET-20250301-T002'
    # creation notifies the maintenance group
    notes = session.query(Notification).filter_by(ticket_id=t.id).all()
    assert [n.user_id for n in notes] == ['maint01']


def test_create_ticket_kilometers_track_vehicle(lc, session):
    session.get(Vehicle, 'HD-105').current_kilometers = 150000
    session.commit()
    t = lc.create_ticket(INSP, vehicle_id='HD-105', issue='Noise from gearbox', section='Mechanical')
    assert t.kilometers == 150000
    lc.create_ticket(OPS, vehicle_id='HD-105', issue='Oil leak', section='Mechanical', kilometers=152345)
    assert session.get(Vehicle, 'HD-105').current_kilometers == 152345
    # lower readings never wind the odometer back
    lc.create_ticket(OPS, vehicle_id='HD-105', issue='Mirror', section='SheetMetal', kilometers=10)
    assert session.get(Vehicle, 'HD-105').current_kilometers == 152345


@pytest.mark.parametrize('overrides, error', [
    ({'issue': '   '}, ValidationError),
    ({'section': 'Paint'}, ValidationError),
    ({'priority': 'Urgent'}, ValidationError),
    ({'kilometers': -5}, ValidationError),
    ({'vehicle_id': 'XX-999'}, EntityNotFound),
])
def test_create_ticket_rejects_bad_input(lc, session, overrides, error):
    with pytest.raises(error):
        open_ticket(lc, **overrides)
    assert session.query(Ticket).count() == 0


def test_create_ticket_requires_reporting_role(lc, session):
    with pytest.raises(PermissionDenied):
        lc.create_ticket(MAINT, vehicle_id='HD-105', issue='x', section='Mechanical')
    assert session.query(Ticket).count() == 0


def test_start_work_needs_fresh_inspection(lc):
    t = open_ticket(lc, kilometers=152345)
    assert t.status == Ticket.STATUS_OPEN
    with pytest.raises(InspectionRequired):
        lc.start_work(MAINT, t.id)
    assert t.started_at is None
    ins = inspect(lc)
    assert ins.created_at >= t.created_at
    t = lc.start_work(MAINT, t.id)
    assert t.status == Ticket.STATUS_IN_PROGRESS
    assert t.started_at is not None and t.started_at >= t.created_at


def test_inspection_before_ticket_does_not_count(lc, session):
    session.add(Inspection(vehicle_id='HD-105', created_at=datetime(2025, 1, 1), notes='old'))
    session.commit()
    inspect(lc, 'HD-106')  # other vehicle
    t = open_ticket(lc)
    with pytest.raises(InspectionRequired) as exc:
        lc.start_work(MAINT, t.id)
    assert exc.value.code == 409
    assert exc.value.extra == {'vehicle_id': 'HD-105'}


def test_start_twice_is_invalid(lc):
    t = started_ticket(lc)
    started = t.started_at
    with pytest.raises(InvalidTransition):
        lc.start_work(MAINT, t.id)
    assert t.started_at == started


def test_assign_replaces_wholesale(lc):
    t = open_ticket(lc)
    t = lc.assign_technicians(MAINT, t.id, ['Ahmed', 'Saleh', 'Ahmed'])
    assert t.assigned_to == ['Ahmed', 'Saleh']
    inspect(lc)
    lc.start_work(MAINT, t.id)
    t = lc.assign_technicians(MAINT, t.id, ['Khalid'])
    assert t.assigned_to == ['Khalid']
    assert t.status == Ticket.STATUS_IN_PROGRESS


def test_assign_rejected_after_finish(lc):
    t = started_ticket(lc)
    lc.finish_work(MAINT, t.id, 'Replaced thermostat')
    with pytest.raises(InvalidTransition):
        lc.assign_technicians(MAINT, t.id, ['Khalid'])
    with pytest.raises(ValidationError):
        lc.assign_technicians(MAINT, t.id, 'Khalid')


def test_finish_and_confirm(lc, session):
    t = started_ticket(lc)
    with pytest.raises(ValidationError):
        lc.finish_work(MAINT, t.id, '  ')
    t = lc.finish_work(MAINT, t.id, 'Replaced thermostat')
    assert t.status == Ticket.STATUS_PENDING_CONFIRMATION
    assert t.work_done_notes == 'Replaced thermostat'
    finished = session.query(Notification).filter_by(ticket_id=t.id, event='work_finished').all()
    assert [n.user_id for n in finished] == ['ops01']
    with pytest.raises(PermissionDenied):
        lc.confirm_ticket(MAINT, t.id)
    t = lc.confirm_ticket(OPS, t.id)
    assert t.status == Ticket.STATUS_CLOSED
    assert t.created_at < t.started_at < t.closed_at < t.confirmed_at
    with pytest.raises(InvalidTransition):
        lc.confirm_ticket(OPS, t.id)


def test_finish_from_open_is_invalid(lc):
    t = open_ticket(lc)
    with pytest.raises(InvalidTransition):
        lc.finish_work(MAINT, t.id, 'done')
    assert t.closed_at is None and t.work_done_notes is None


def test_stamps_stay_ordered_when_clock_stalls(lc, clock):
    t = open_ticket(lc)
    inspect(lc)
    clock.freeze()
    lc.start_work(MAINT, t.id)
    lc.finish_work(MAINT, t.id, 'done')
    t = lc.confirm_ticket(OPS, t.id)
    assert t.created_at < t.started_at < t.closed_at < t.confirmed_at


def test_clock_moving_backwards(lc, clock):
    t = open_ticket(lc)
    inspect(lc)
    clock.now -= timedelta(days=1)
    t = lc.start_work(MAINT, t.id)
    assert t.started_at > t.created_at


def test_unknown_ticket(lc):
    with pytest.raises(EntityNotFound):
        lc.start_work(MAINT, 'missing')


def test_historical_ticket(lc, session):
    repaired = datetime(2023, 6, 14, 10, 30)
    with pytest.raises(PermissionDenied):
        lc.add_historical_ticket(ADMIN, vehicle_id='TP-419', issue='Clutch', work_done_notes='New clutch',
                                 section='Mechanical', repair_date=repaired, kilometers=90000)
    t = lc.add_historical_ticket(SUPER, vehicle_id='TP-419', issue='Clutch', work_done_notes='New clutch',
                                 section='Mechanical', repair_date=repaired, kilometers=90000)
    assert t.issue == 'HISTORICAL: Clutch'
    assert t.is_historical
    assert t.reported_by == 'Historical Data'
    assert t.priority == Ticket.PRIORITY_LOW
    assert t.status == Ticket.STATUS_CLOSED
    assert t.created_at == t.started_at == t.closed_at == t.confirmed_at == repaired
    assert t.serial == 'TICKET-20230614-T001'
    # backfilled history notifies nobody
    assert session.query(Notification).filter_by(ticket_id=t.id).count() == 0


def test_historical_ticket_requires_date(lc):
    with pytest.raises(ValidationError):
        lc.add_historical_ticket(SUPER, vehicle_id='TP-419', issue='Clutch', work_done_notes='x',
                                 section='Mechanical', repair_date='2023-06-14', kilometers=1)


def test_transitions_are_audited_and_logged(lc, session, caplog):
    logger = logging.getLogger('fleetdesk')
    logger.addHandler(caplog.handler)
    try:
        t = started_ticket(lc)
    finally:
        logger.removeHandler(caplog.handler)
    rows = session.query(AuditLog).filter_by(entity='Ticket', entity_id=t.id).order_by(AuditLog.id).all()
    assert [r.action for r in rows] == ['TICKET.CREATE', 'TICKET.START']
    assert rows[1].meta['status_before'] == 'Open'
    assert rows[1].meta['status_after'] == 'InProgress'
    assert rows[1].actor_user_id == 'maint01'
    assert f'ticket {t.serial} TICKET.START: Open -> InProgress' in caplog.text


def test_refusals_leave_no_audit(lc, session):
    t = open_ticket(lc)
    with pytest.raises(InspectionRequired):
        lc.start_work(MAINT, t.id)
    assert session.query(AuditLog).filter_by(action='TICKET.START').count() == 0
