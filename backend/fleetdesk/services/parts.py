"""Part request sub-flow: spares admin approval and warehouse fulfilment.

pending -> admin_approved | rejected
admin_approved -> issued | rejected
issued -> warehouse_completed

Only the ticket's latest request is ever acted on. Stock leaves inventory at
issue time, all lines or none.
"""
from __future__ import annotations

import logging

from fleetdesk.constants import permissions as P
from fleetdesk.errors import InsufficientStock, InvalidTransition
from fleetdesk.models.ticket import PartRequest, Ticket
from fleetdesk.services import notifications as N
from fleetdesk.services.policy import Actor
from fleetdesk.services.workflow import PARTS_FSM, WorkflowService
from fleetdesk.utils.clock import not_before
from fleetdesk.utils.db import transaction

logger = logging.getLogger(__name__)


class PartsWorkflow(WorkflowService):

    def _active_request(self, t: Ticket, target: str, action: str) -> PartRequest:
        pr = t.part_request
        if pr is None:
            logger.warning('ticket %s %s refused: no part request', t.serial, action)
            raise InvalidTransition(f'Cannot {action}: ticket {t.serial} has no part request')
        self._guard(lambda: PARTS_FSM.assert_can_transition(pr.status, target), t, action)
        return pr

    def approve_request(self, actor: Actor, ticket_id: str) -> Ticket:
        self._authorize(actor, P.PARTS_APPROVE)
        with transaction(self.session):
            t = self.load_ticket(ticket_id)
            before = t.status
            pr = self._active_request(t, PartRequest.STATUS_ADMIN_APPROVED, 'approve')
            pr.status = PartRequest.STATUS_ADMIN_APPROVED
            pr.admin_resolved_at = not_before(self.clock(), pr.requested_at)
            self.emitter.emit(N.EVENT_REQUEST_APPROVED, t)
            self._record(actor, t, P.PARTS_APPROVE, before)
        return t

    def reject_request(self, actor: Actor, ticket_id: str) -> Ticket:
        self._authorize(actor, P.PARTS_REJECT)
        with transaction(self.session):
            t = self.load_ticket(ticket_id)
            before = t.status
            pr = self._active_request(t, PartRequest.STATUS_REJECTED, 'reject')
            # admin rejection only applies before approval
            self._guard(lambda: PARTS_FSM.assert_in(pr.status, (PartRequest.STATUS_PENDING,), 'reject'), t, 'reject')
            pr.status = PartRequest.STATUS_REJECTED
            pr.admin_resolved_at = not_before(self.clock(), pr.requested_at)
            self.emitter.emit(N.EVENT_REQUEST_REJECTED, t)
            self._record(actor, t, P.PARTS_REJECT, before)
        return t

    def issue_parts(self, actor: Actor, ticket_id: str) -> Ticket:
        self._authorize(actor, P.PARTS_ISSUE)
        with transaction(self.session):
            t = self.load_ticket(ticket_id)
            before = t.status
            pr = self._active_request(t, PartRequest.STATUS_ISSUED, 'issue')
            try:
                changes = self.inventory.consume(pr.parts)
            except InsufficientStock as e:
                logger.warning('ticket %s issue refused: %s', t.serial, e.description)
                raise
            pr.status = PartRequest.STATUS_ISSUED
            pr.warehouse_resolved_at = not_before(self.clock(), pr.requested_at, pr.admin_resolved_at)
            self.emitter.emit(N.EVENT_PARTS_ISSUED, t)
            self._record(actor, t, P.PARTS_ISSUE, before, {'stock': changes})
        return t

    def reject_parts_by_warehouse(self, actor: Actor, ticket_id: str) -> Ticket:
        self._authorize(actor, P.PARTS_WAREHOUSE_REJECT)
        with transaction(self.session):
            t = self.load_ticket(ticket_id)
            before = t.status
            pr = self._active_request(t, PartRequest.STATUS_REJECTED, 'reject at warehouse')
            self._guard(
                lambda: PARTS_FSM.assert_in(pr.status, (PartRequest.STATUS_ADMIN_APPROVED,), 'reject at warehouse'),
                t, 'reject at warehouse',
            )
            pr.status = PartRequest.STATUS_REJECTED
            pr.warehouse_resolved_at = not_before(self.clock(), pr.requested_at, pr.admin_resolved_at)
            self.emitter.emit(N.EVENT_WAREHOUSE_REJECTED, t)
            self._record(actor, t, P.PARTS_WAREHOUSE_REJECT, before)
        return t

    def complete_handover(self, actor: Actor, ticket_id: str) -> Ticket:
        self._authorize(actor, P.PARTS_HANDOVER)
        with transaction(self.session):
            t = self.load_ticket(ticket_id)
            before = t.status
            pr = self._active_request(t, PartRequest.STATUS_WAREHOUSE_COMPLETED, 'complete handover')
            pr.status = PartRequest.STATUS_WAREHOUSE_COMPLETED
            pr.warehouse_completed_at = not_before(
                self.clock(), pr.requested_at, pr.admin_resolved_at, pr.warehouse_resolved_at,
            )
            self.emitter.emit(N.EVENT_HANDOVER_COMPLETED, t)
            self._record(actor, t, P.PARTS_HANDOVER, before)
        return t


__all__ = ['PartsWorkflow']
