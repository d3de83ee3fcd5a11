"""Notification emitter and recipient-side queries.

``build_notification`` is a pure function of (event, ticket, recipient, now).
``NotificationEmitter.emit`` only stages rows on the session of the triggering
transition, so a notification is committed exactly when its transition is.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, List

from sqlalchemy import select, update

from fleetdesk.errors import EntityNotFound
from fleetdesk.models.notification import Notification
from fleetdesk.models.ticket import Ticket
from fleetdesk.models.user import User
from fleetdesk.utils.clock import utcnow

logger = logging.getLogger(__name__)

EVENT_TICKET_CREATED = 'ticket_created'
EVENT_PARTS_REQUESTED = 'parts_requested'
EVENT_REQUEST_APPROVED = 'request_approved'
EVENT_REQUEST_REJECTED = 'request_rejected'
EVENT_PARTS_ISSUED = 'parts_issued'
EVENT_WAREHOUSE_REJECTED = 'warehouse_rejected'
EVENT_HANDOVER_COMPLETED = 'handover_completed'
EVENT_WORK_FINISHED = 'work_finished'

# Role group that owns the next step after each event
EVENT_RECIPIENT_ROLES: Dict[str, str] = {
    EVENT_TICKET_CREATED: User.ROLE_MAINTENANCE,
    EVENT_PARTS_REQUESTED: User.ROLE_SPARES_ADMIN,
    EVENT_REQUEST_APPROVED: User.ROLE_WAREHOUSE,
    EVENT_REQUEST_REJECTED: User.ROLE_MAINTENANCE,
    EVENT_PARTS_ISSUED: User.ROLE_MAINTENANCE,
    EVENT_WAREHOUSE_REJECTED: User.ROLE_MAINTENANCE,
    EVENT_HANDOVER_COMPLETED: User.ROLE_MAINTENANCE,
    EVENT_WORK_FINISHED: User.ROLE_OPERATIONS,
}

_TEMPLATES: Dict[str, str] = {
    EVENT_TICKET_CREATED: 'New {priority} priority ticket {serial} for {vehicle}: {issue}',
    EVENT_PARTS_REQUESTED: 'Part request for {serial} ({vehicle}) awaits approval',
    EVENT_REQUEST_APPROVED: 'Part request for {serial} approved, ready to issue',
    EVENT_REQUEST_REJECTED: 'Part request for {serial} was rejected by spares admin',
    EVENT_PARTS_ISSUED: 'Parts for {serial} issued, collect them from the warehouse',
    EVENT_WAREHOUSE_REJECTED: 'Warehouse could not fulfil the part request for {serial}',
    EVENT_HANDOVER_COMPLETED: 'Parts for {serial} handed over, work can resume',
    EVENT_WORK_FINISHED: 'Work on {serial} ({vehicle}) finished, please confirm',
}

_ISSUE_PREVIEW = 60


def build_notification(event: str, ticket: Ticket, recipient_id: str, now: datetime) -> Notification:
    issue = ticket.issue if len(ticket.issue) <= _ISSUE_PREVIEW else ticket.issue[:_ISSUE_PREVIEW - 3] + '...'
    message = _TEMPLATES[event].format(
        serial=ticket.serial, vehicle=ticket.vehicle_id, priority=ticket.priority, issue=issue,
    )
    return Notification(
        user_id=recipient_id,
        ticket_id=ticket.id,
        ticket_serial=ticket.serial,
        event=event,
        message=message,
        created_at=now,
        read=False,
    )


class NotificationEmitter:
    def __init__(self, session, clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.clock = clock

    def recipients_for(self, event: str) -> List[str]:
        role = EVENT_RECIPIENT_ROLES[event]
        return list(self.session.execute(select(User.id).where(User.role == role).order_by(User.id)).scalars())

    def emit(self, event: str, ticket: Ticket) -> List[Notification]:
        now = self.clock()
        out = [build_notification(event, ticket, uid, now) for uid in self.recipients_for(event)]
        self.session.add_all(out)
        if not out:
            logger.debug('no recipients for %s on %s', event, ticket.serial)
        return out


def list_notifications(session, user_id: str, unread_only: bool = False) -> List[Notification]:
    q = session.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        q = q.filter(Notification.read.is_(False))
    return q.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def unread_count(session, user_id: str) -> int:
    return session.query(Notification).filter(Notification.user_id == user_id, Notification.read.is_(False)).count()


def mark_read(session, notification_id: int, user_id: str, read: bool = True) -> Notification:
    n = session.get(Notification, notification_id)
    # other users' notifications are reported as missing
    if n is None or n.user_id != user_id:
        raise EntityNotFound(f'Notification {notification_id} not found')
    n.read = read
    return n


def mark_all_read(session, user_id: str) -> int:
    result = session.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session='fetch')
    )
    return result.rowcount or 0
