from datetime import datetime, timedelta
import pytest
from fleetdesk.models import Ticket, PartRequest, derive_status

T0 = datetime(2025, 3, 1, 8, 0, 0)
T1 = T0 + timedelta(hours=1)
T2 = T0 + timedelta(hours=2)
T3 = T0 + timedelta(hours=3)


@pytest.mark.parametrize('started, closed, confirmed, req, expected', [
    (None, None, None, None, Ticket.STATUS_OPEN),
    (T1, None, None, None, Ticket.STATUS_IN_PROGRESS),
    (T1, None, None, PartRequest.STATUS_PENDING, Ticket.STATUS_AWAITING_PARTS),
    (T1, None, None, PartRequest.STATUS_ADMIN_APPROVED, Ticket.STATUS_AWAITING_WAREHOUSE),
    (T1, None, None, PartRequest.STATUS_ISSUED, Ticket.STATUS_AWAITING_WAREHOUSE),
    (T1, None, None, PartRequest.STATUS_REJECTED, Ticket.STATUS_IN_PROGRESS),
    (T1, None, None, PartRequest.STATUS_NONE, Ticket.STATUS_IN_PROGRESS),
    (T1, None, None, PartRequest.STATUS_WAREHOUSE_COMPLETED, Ticket.STATUS_IN_PROGRESS),
    (T1, T2, None, PartRequest.STATUS_WAREHOUSE_COMPLETED, Ticket.STATUS_PENDING_CONFIRMATION),
    (T1, T2, T3, None, Ticket.STATUS_CLOSED),
])
def test_derive_status(started, closed, confirmed, req, expected):
    assert derive_status(started, closed, confirmed, req) == expected


def test_status_follows_latest_part_request():
    t = Ticket(serial='TICKET-20250301-T001', vehicle_id='HD-105', issue='x', reported_by='ops',
               section='Mechanical', kilometers=0, created_at=T0, started_at=T1, assigned_to=[])
    t.part_requests.append(PartRequest(sequence=1, serial='REQ-TICKET-20250301-T001', parts={'OF-002': 1},
                                       status=PartRequest.STATUS_REJECTED, requested_at=T1))
    assert t.status == Ticket.STATUS_IN_PROGRESS
    t.part_requests.append(PartRequest(sequence=2, serial='REQ-TICKET-20250301-T001-2', parts={'OF-002': 2},
                                       status=PartRequest.STATUS_PENDING, requested_at=T2))
    assert t.part_request.sequence == 2
    assert t.status == Ticket.STATUS_AWAITING_PARTS


def test_historical_flag():
    t = Ticket(issue=Ticket.HISTORICAL_PREFIX + 'brake job')
    assert t.is_historical
    assert not Ticket(issue='brake job').is_historical
