"""Read-side projections: analytics, per-role work queues, history search.

All of these work on the derived ticket status, so they load tickets and
filter in Python rather than in SQL.
"""
from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from fleetdesk.errors import ValidationError
from fleetdesk.models.ticket import PartRequest, Ticket

# Maintenance board ordering: work in hand first, untouched tickets last
STATUS_RANK = {
    Ticket.STATUS_IN_PROGRESS: 1,
    Ticket.STATUS_AWAITING_PARTS: 2,
    Ticket.STATUS_AWAITING_WAREHOUSE: 3,
    Ticket.STATUS_PENDING_CONFIRMATION: 4,
    Ticket.STATUS_OPEN: 5,
}
PRIORITY_RANK = {Ticket.PRIORITY_HIGH: 1, Ticket.PRIORITY_MEDIUM: 2, Ticket.PRIORITY_LOW: 3}
SORT_DATE = 'date'
SORT_PRIORITY = 'priority'


def format_duration(seconds: float) -> str:
    if seconds < 0:
        return 'N/A'
    total = int(seconds)
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    parts = [f'{v}{u}' for v, u in ((days, 'd'), (hours, 'h'), (minutes, 'm'), (secs, 's')) if v > 0]
    return ' '.join(parts) or '0s'


def _all_tickets(session) -> List[Ticket]:
    return session.query(Ticket).order_by(Ticket.created_at.desc()).all()


def analytics(session) -> Dict[str, Any]:
    tickets = _all_tickets(session)
    closed = [t for t in tickets if t.status == Ticket.STATUS_CLOSED and t.started_at and t.closed_at]
    total = sum((t.closed_at - t.started_at).total_seconds() for t in closed)
    mttr = total / len(closed) if closed else 0.0
    # Counter.most_common keeps first-seen order on ties
    sections = Counter(t.section for t in tickets).most_common(3)
    vehicles = Counter(t.vehicle_id for t in tickets).most_common(3)
    return {
        'mean_time_to_repair_seconds': mttr,
        'mean_time_to_repair': format_duration(mttr),
        'total_tickets': len(tickets),
        'open_tickets': sum(1 for t in tickets if t.status != Ticket.STATUS_CLOSED),
        'top_sections': [{'section': s, 'count': c} for s, c in sections],
        'top_vehicles': [{'vehicle_id': v, 'count': c} for v, c in vehicles],
    }


def maintenance_queue(session, status: Optional[str] = None, sort_by: str = SORT_DATE) -> Dict[str, Any]:
    if status is not None and status not in STATUS_RANK:
        raise ValidationError(f"status must be one of {', '.join(STATUS_RANK)}")
    if sort_by not in (SORT_DATE, SORT_PRIORITY):
        raise ValidationError('sort must be date or priority')
    active: List[Ticket] = []
    closed: List[Ticket] = []
    stats = {s: 0 for s in STATUS_RANK}
    for t in _all_tickets(session):
        s = t.status
        if s == Ticket.STATUS_CLOSED:
            closed.append(t)
            continue
        active.append(t)
        stats[s] += 1
    if status is not None:
        active = [t for t in active if t.status == status]

    def key(t: Ticket):
        prio = PRIORITY_RANK[t.priority] if sort_by == SORT_PRIORITY else 0
        return (STATUS_RANK[t.status], prio)

    # newest first within each rank; sort is stable
    active.sort(key=lambda t: t.created_at, reverse=True)
    active.sort(key=key)
    return {'active': active, 'closed': closed, 'stats': stats}


def spares_queue(session) -> Dict[str, Any]:
    queue = [
        t for t in _all_tickets(session)
        if t.status == Ticket.STATUS_AWAITING_PARTS and t.part_request.status == PartRequest.STATUS_PENDING
    ]
    return {'tickets': queue, 'stats': {'pending_approval': len(queue)}}


def warehouse_queue(session) -> Dict[str, Any]:
    queue = [
        t for t in _all_tickets(session)
        if t.part_request is not None
        and t.part_request.status in (PartRequest.STATUS_ADMIN_APPROVED, PartRequest.STATUS_ISSUED)
    ]
    return {
        'tickets': queue,
        'stats': {
            'to_issue': sum(1 for t in queue if t.part_request.status == PartRequest.STATUS_ADMIN_APPROVED),
            'to_handover': sum(1 for t in queue if t.part_request.status == PartRequest.STATUS_ISSUED),
        },
    }


def history_search(
    session,
    vehicle_id: Optional[str] = None,
    technician: Optional[str] = None,
    reported_by: Optional[str] = None,
    section: Optional[str] = None,
    on_date: Optional[date] = None,
) -> List[Ticket]:
    q = session.query(Ticket)
    if vehicle_id:
        q = q.filter(Ticket.vehicle_id == vehicle_id)
    if reported_by:
        q = q.filter(Ticket.reported_by == reported_by)
    if section:
        q = q.filter(Ticket.section == section)
    if on_date is not None:
        start = datetime(on_date.year, on_date.month, on_date.day)
        q = q.filter(Ticket.created_at >= start, Ticket.created_at < start + timedelta(days=1))
    results = q.order_by(Ticket.created_at.desc()).all()
    if technician:
        # assigned_to is a JSON list; membership is checked in Python
        results = [t for t in results if technician in (t.assigned_to or [])]
    return results


__all__ = [
    'format_duration', 'analytics', 'maintenance_queue', 'spares_queue', 'warehouse_queue',
    'history_search', 'STATUS_RANK', 'PRIORITY_RANK',
]
