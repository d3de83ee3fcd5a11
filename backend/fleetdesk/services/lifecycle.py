"""Ticket lifecycle engine.

Open -> InProgress -> [parts sub-flow] -> PendingConfirmation -> Closed.

Every operation checks the actor's capability first, then validates input,
then checks the ticket's derived status inside the write transaction. A
refusal at any step raises before anything is mutated; the transaction rolls
back whatever was staged.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Mapping, Optional

from sqlalchemy import func

from fleetdesk.constants import permissions as P
from fleetdesk.errors import InspectionRequired, InvalidTransition, ValidationError
from fleetdesk.models.ticket import PartRequest, Ticket
from fleetdesk.models.user import User
from fleetdesk.services import notifications as N
from fleetdesk.services.policy import Actor
from fleetdesk.services.workflow import TICKET_FSM, WorkflowService
from fleetdesk.utils.clock import not_before, to_naive_utc
from fleetdesk.utils.db import transaction
from fleetdesk.utils.validation import (
    validate_choice, validate_non_blank, validate_non_negative_int, validate_parts_mapping,
)

logger = logging.getLogger(__name__)

HISTORICAL_REPORTER = 'Historical Data'


def part_request_serial(ticket_serial: str, sequence: int) -> str:
    if sequence == 1:
        return f'REQ-{ticket_serial}'
    return f'REQ-{ticket_serial}-{sequence}'


class TicketLifecycle(WorkflowService):

    def _next_serial(self, day: datetime) -> str:
        prefix = f'TICKET-{day:%Y%m%d}-T'
        taken = self.session.query(func.count(Ticket.id)).filter(Ticket.serial.like(prefix + '%')).scalar() or 0
        return f'{prefix}{taken + 1:03d}'

    def _reporter_name(self, actor: Actor) -> str:
        user = self.session.get(User, actor.user_id)
        return user.name if user is not None else actor.user_id

    def create_ticket(
        self,
        actor: Actor,
        *,
        vehicle_id: str,
        issue: str,
        section: str,
        reported_by: Optional[str] = None,
        kilometers: Optional[int] = None,
        priority: str = Ticket.PRIORITY_MEDIUM,
        location: Optional[str] = None,
    ) -> Ticket:
        self._authorize(actor, P.TICKET_CREATE)
        issue = validate_non_blank(issue, 'issue')
        validate_choice(section, Ticket.ALL_SECTIONS, 'section')
        validate_choice(priority, Ticket.ALL_PRIORITIES, 'priority')
        if kilometers is not None:
            validate_non_negative_int(kilometers, 'kilometers')
        if reported_by is not None:
            reported_by = validate_non_blank(reported_by, 'reported_by')
        if location is not None and not isinstance(location, str):
            raise ValidationError('location must be a string')
        with transaction(self.session):
            vehicle = self.fleet.get_vehicle(vehicle_id)
            if kilometers is None:
                kilometers = vehicle.current_kilometers
            now = self.clock()
            t = Ticket(
                serial=self._next_serial(now),
                vehicle_id=vehicle.id,
                issue=issue,
                reported_by=reported_by or self._reporter_name(actor),
                section=section,
                priority=priority,
                kilometers=kilometers,
                location=(location or '').strip() or None,
                created_at=now,
                assigned_to=[],
            )
            self.session.add(t)
            if kilometers > vehicle.current_kilometers:
                vehicle.current_kilometers = kilometers
            self.session.flush()
            self.emitter.emit(N.EVENT_TICKET_CREATED, t)
            self._record(actor, t, P.TICKET_CREATE, None, {'vehicle_id': vehicle.id, 'kilometers': kilometers})
        return t

    def assign_technicians(self, actor: Actor, ticket_id: str, technician_ids: Iterable[str]) -> Ticket:
        self._authorize(actor, P.TICKET_ASSIGN)
        if isinstance(technician_ids, str) or not isinstance(technician_ids, (list, tuple)):
            raise ValidationError('technician_ids must be a list')
        cleaned: List[str] = []
        for tech in technician_ids:
            tech = validate_non_blank(tech, 'technician id')
            if tech not in cleaned:
                cleaned.append(tech)
        with transaction(self.session):
            t = self.load_ticket(ticket_id)
            before = t.status
            self._guard(lambda: TICKET_FSM.assert_in(before, (Ticket.STATUS_OPEN, Ticket.STATUS_IN_PROGRESS), 'assign'), t, 'assign')
            previous = list(t.assigned_to or [])
            t.assigned_to = cleaned
            self._record(actor, t, P.TICKET_ASSIGN, before, {'previous': previous, 'assigned_to': cleaned})
        return t

    def start_work(self, actor: Actor, ticket_id: str) -> Ticket:
        self._authorize(actor, P.TICKET_START)
        with transaction(self.session):
            t = self.load_ticket(ticket_id)
            before = t.status
            self._guard(lambda: TICKET_FSM.assert_can_transition(before, Ticket.STATUS_IN_PROGRESS), t, 'start')
            if not self.fleet.has_fresh_inspection(t):
                logger.warning('ticket %s start refused: no inspection of %s since creation', t.serial, t.vehicle_id)
                raise InspectionRequired(
                    f"Vehicle {t.vehicle_id} needs an inspection recorded after ticket {t.serial} was opened",
                    vehicle_id=t.vehicle_id,
                )
            t.started_at = not_before(self.clock(), t.created_at)
            self._record(actor, t, P.TICKET_START, before)
        return t

    def request_parts(self, actor: Actor, ticket_id: str, parts: Mapping[str, int]) -> Ticket:
        self._authorize(actor, P.TICKET_REQUEST_PARTS)
        parts = validate_parts_mapping(parts)
        with transaction(self.session):
            t = self.load_ticket(ticket_id)
            before = t.status
            self._guard(lambda: TICKET_FSM.assert_can_transition(before, Ticket.STATUS_AWAITING_PARTS), t, 'request parts')
            latest = t.part_request
            if latest is not None and latest.status != PartRequest.STATUS_REJECTED:
                logger.warning('ticket %s request parts refused: latest request is %s', t.serial, latest.status)
                raise InvalidTransition(
                    f'Cannot request parts: latest part request is {latest.status}, expected none or rejected'
                )
            unknown = self.inventory.unknown_codes(parts)
            if unknown:
                raise ValidationError(f"unknown part codes: {', '.join(unknown)}", unknown_codes=unknown)
            stamps = [t.started_at]
            if latest is not None:
                stamps += [latest.requested_at, latest.admin_resolved_at, latest.warehouse_resolved_at]
            pr = self._new_request(t, actor, parts, PartRequest.STATUS_PENDING, not_before(self.clock(), *stamps))
            self.emitter.emit(N.EVENT_PARTS_REQUESTED, t)
            self._record(actor, t, P.TICKET_REQUEST_PARTS, before, {'parts': dict(parts), 'quantity': pr.total_quantity})
        return t

    def _new_request(self, t: Ticket, actor: Actor, parts, status: str, requested_at: datetime) -> PartRequest:
        sequence = len(t.part_requests) + 1
        pr = PartRequest(
            sequence=sequence,
            serial=part_request_serial(t.serial, sequence),
            parts=parts,
            status=status,
            requested_by=actor.user_id,
            requested_at=requested_at,
        )
        t.part_requests.append(pr)
        self.session.flush()
        return pr

    def no_parts_required(self, actor: Actor, ticket_id: str) -> Ticket:
        self._authorize(actor, P.TICKET_NO_PARTS)
        with transaction(self.session):
            t = self.load_ticket(ticket_id)
            before = t.status
            self._guard(lambda: TICKET_FSM.assert_in(before, (Ticket.STATUS_IN_PROGRESS,), 'mark no parts required'), t, 'no parts')
            latest = t.part_request
            if latest is not None and latest.status == PartRequest.STATUS_NONE:
                return t
            stamps = [t.started_at]
            if latest is not None:
                stamps += [latest.requested_at, latest.admin_resolved_at, latest.warehouse_resolved_at,
                           latest.warehouse_completed_at]
            self._new_request(t, actor, {}, PartRequest.STATUS_NONE, not_before(self.clock(), *stamps))
            self._record(actor, t, P.TICKET_NO_PARTS, before)
        return t

    def finish_work(self, actor: Actor, ticket_id: str, work_done_notes: str) -> Ticket:
        self._authorize(actor, P.TICKET_FINISH)
        notes = validate_non_blank(work_done_notes, 'work_done_notes')
        with transaction(self.session):
            t = self.load_ticket(ticket_id)
            before = t.status
            self._guard(lambda: TICKET_FSM.assert_can_transition(before, Ticket.STATUS_PENDING_CONFIRMATION), t, 'finish')
            stamps = [t.started_at]
            for pr in t.part_requests:
                stamps += [pr.requested_at, pr.admin_resolved_at, pr.warehouse_resolved_at, pr.warehouse_completed_at]
            t.closed_at = not_before(self.clock(), *stamps)
            t.work_done_notes = notes
            self.emitter.emit(N.EVENT_WORK_FINISHED, t)
            self._record(actor, t, P.TICKET_FINISH, before)
        return t

    def confirm_ticket(self, actor: Actor, ticket_id: str) -> Ticket:
        self._authorize(actor, P.TICKET_CONFIRM)
        with transaction(self.session):
            t = self.load_ticket(ticket_id)
            before = t.status
            self._guard(lambda: TICKET_FSM.assert_can_transition(before, Ticket.STATUS_CLOSED), t, 'confirm')
            t.confirmed_at = not_before(self.clock(), t.closed_at)
            self._record(actor, t, P.TICKET_CONFIRM, before)
        return t

    def add_historical_ticket(
        self,
        actor: Actor,
        *,
        vehicle_id: str,
        issue: str,
        work_done_notes: str,
        section: str,
        repair_date: datetime,
        kilometers: int,
    ) -> Ticket:
        """Insert an already-closed ticket for a past repair, bypassing the state gates."""
        self._authorize(actor, P.TICKET_HISTORICAL)
        issue = validate_non_blank(issue, 'issue')
        notes = validate_non_blank(work_done_notes, 'work_done_notes')
        validate_choice(section, Ticket.ALL_SECTIONS, 'section')
        validate_non_negative_int(kilometers, 'kilometers')
        if not isinstance(repair_date, datetime):
            raise ValidationError('repair_date must be a datetime')
        repaired = to_naive_utc(repair_date)
        with transaction(self.session):
            vehicle = self.fleet.get_vehicle(vehicle_id)
            t = Ticket(
                serial=self._next_serial(repaired),
                vehicle_id=vehicle.id,
                issue=Ticket.HISTORICAL_PREFIX + issue,
                reported_by=HISTORICAL_REPORTER,
                section=section,
                priority=Ticket.PRIORITY_LOW,
                kilometers=kilometers,
                created_at=repaired,
                started_at=repaired,
                closed_at=repaired,
                confirmed_at=repaired,
                assigned_to=[],
                work_done_notes=notes,
            )
            self.session.add(t)
            self.session.flush()
            self._record(actor, t, P.TICKET_HISTORICAL, None, {'repair_date': repaired.isoformat()})
        return t


__all__ = ['TicketLifecycle', 'part_request_serial', 'HISTORICAL_REPORTER']
