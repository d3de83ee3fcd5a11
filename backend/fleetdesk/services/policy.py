"""Capability checks shared by every lifecycle operation.

``can_perform`` is the single predicate: routes use it to refuse early, the
services call ``assert_can_perform`` again so the rule holds for non-HTTP
callers too. Passing a ticket additionally answers "is this action offered
for the ticket right now", which is what ``/tickets/<id>/actions`` lists.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Set

from fleetdesk.constants import permissions as P
from fleetdesk.errors import PermissionDenied
from fleetdesk.models.ticket import Ticket, PartRequest


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: str


def operations_for_role(role: str) -> Set[str]:
    codes = P.ROLE_PRESETS.get(role, [])
    if '*' in codes:
        return set(P.ALL_OPERATIONS)
    return set(codes)


def is_operation_available(operation: str, ticket: Ticket) -> bool:
    """Whether the ticket's current state admits ``operation``."""
    status = ticket.status
    pr = ticket.part_request
    pr_status = pr.status if pr else None
    if operation == P.TICKET_ASSIGN:
        return status in (Ticket.STATUS_OPEN, Ticket.STATUS_IN_PROGRESS)
    if operation == P.TICKET_START:
        return status == Ticket.STATUS_OPEN
    if operation == P.TICKET_REQUEST_PARTS:
        return status == Ticket.STATUS_IN_PROGRESS and pr_status in (None, PartRequest.STATUS_REJECTED)
    if operation in (P.TICKET_NO_PARTS, P.TICKET_FINISH):
        return status == Ticket.STATUS_IN_PROGRESS
    if operation == P.TICKET_CONFIRM:
        return status == Ticket.STATUS_PENDING_CONFIRMATION
    if operation in (P.PARTS_APPROVE, P.PARTS_REJECT):
        return pr_status == PartRequest.STATUS_PENDING
    if operation in (P.PARTS_ISSUE, P.PARTS_WAREHOUSE_REJECT):
        return pr_status == PartRequest.STATUS_ADMIN_APPROVED
    if operation == P.PARTS_HANDOVER:
        return pr_status == PartRequest.STATUS_ISSUED
    return False


def can_perform(role: str, operation: str, ticket: Optional[Ticket] = None) -> bool:
    if operation not in operations_for_role(role):
        return False
    if ticket is None:
        return True
    return is_operation_available(operation, ticket)


def assert_can_perform(actor: Actor, operation: str) -> None:
    if not can_perform(actor.role, operation):
        raise PermissionDenied(f'Role {actor.role!r} may not perform {operation}')


def available_actions(actor: Actor, ticket: Ticket) -> List[str]:
    return [op for op in P.LIFECYCLE_OPERATIONS if can_perform(actor.role, op, ticket)]


__all__ = ['Actor', 'operations_for_role', 'is_operation_available', 'can_perform', 'assert_can_perform', 'available_actions']
