"""Plumbing shared by the ticket lifecycle and the parts sub-flow."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fleetdesk.errors import EntityNotFound, InvalidTransition, PermissionDenied
from fleetdesk.models.ticket import PartRequest, Ticket
from fleetdesk.services.audit import add_audit
from fleetdesk.services.fleet import FleetService
from fleetdesk.services.inventory import InventoryService
from fleetdesk.services.notifications import NotificationEmitter
from fleetdesk.services.policy import Actor, assert_can_perform
from fleetdesk.utils.clock import utcnow
from fleetdesk.utils.fsm import TransitionValidator

logger = logging.getLogger(__name__)

# Derived ticket status graph (see derive_status)
TICKET_FSM = TransitionValidator({
    Ticket.STATUS_OPEN: {Ticket.STATUS_IN_PROGRESS},
    Ticket.STATUS_IN_PROGRESS: {Ticket.STATUS_AWAITING_PARTS, Ticket.STATUS_PENDING_CONFIRMATION},
    Ticket.STATUS_AWAITING_PARTS: {Ticket.STATUS_AWAITING_WAREHOUSE, Ticket.STATUS_IN_PROGRESS},
    Ticket.STATUS_AWAITING_WAREHOUSE: {Ticket.STATUS_IN_PROGRESS},
    Ticket.STATUS_PENDING_CONFIRMATION: {Ticket.STATUS_CLOSED},
    Ticket.STATUS_CLOSED: set(),
}, field_name='ticket status')

PARTS_FSM = TransitionValidator({
    PartRequest.STATUS_PENDING: {PartRequest.STATUS_ADMIN_APPROVED, PartRequest.STATUS_REJECTED},
    PartRequest.STATUS_ADMIN_APPROVED: {PartRequest.STATUS_ISSUED, PartRequest.STATUS_REJECTED},
    PartRequest.STATUS_ISSUED: {PartRequest.STATUS_WAREHOUSE_COMPLETED},
    PartRequest.STATUS_WAREHOUSE_COMPLETED: set(),
    PartRequest.STATUS_REJECTED: set(),
    PartRequest.STATUS_NONE: set(),
}, field_name='part request status')


class WorkflowService:
    def __init__(self, session, clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.clock = clock
        self.fleet = FleetService(session, clock)
        self.inventory = InventoryService(session, clock)
        self.emitter = NotificationEmitter(session, clock)

    def load_ticket(self, ticket_id: str) -> Ticket:
        t = self.session.get(Ticket, ticket_id) if ticket_id else None
        if t is None:
            raise EntityNotFound(f'Ticket {ticket_id} not found')
        return t

    def _authorize(self, actor: Actor, operation: str) -> None:
        try:
            assert_can_perform(actor, operation)
        except PermissionDenied:
            logger.warning('%s refused for %s (%s)', operation, actor.user_id, actor.role)
            raise

    def _guard(self, check: Callable[[], Any], ticket: Ticket, action: str) -> None:
        """Run a state check, logging refusals before re-raising."""
        try:
            check()
        except InvalidTransition as e:
            logger.warning('ticket %s %s refused: %s', ticket.serial, action, e.description)
            raise

    def _record(self, actor: Actor, ticket: Ticket, action: str, before: Optional[str], meta: Optional[Dict[str, Any]] = None) -> None:
        after = ticket.status
        if before is not None and before != after and not TICKET_FSM.can_transition(before, after):
            raise InvalidTransition(f'{action} would move {ticket.serial} from {before} to {after}')
        payload = {'serial': ticket.serial, 'status_before': before, 'status_after': after}
        pr = ticket.part_request
        if pr is not None:
            payload['part_request'] = pr.serial
            payload['part_request_status'] = pr.status
        if meta:
            payload.update(meta)
        add_audit(self.session, actor.user_id, action, 'Ticket', ticket.id, payload)
        logger.info('ticket %s %s: %s -> %s', ticket.serial, action, before, after)


__all__ = ['TICKET_FSM', 'PARTS_FSM', 'WorkflowService']
