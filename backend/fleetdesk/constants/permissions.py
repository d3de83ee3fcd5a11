"""Central operation codes and role presets.

Every lifecycle operation has one code here; routes and services refer to the
constants rather than raw strings. Never rename a code silently: role presets
and audit rows reference them.
"""
from __future__ import annotations
from typing import Dict, List

from fleetdesk.models.user import User

# Ticket lifecycle
TICKET_CREATE = 'TICKET.CREATE'
TICKET_ASSIGN = 'TICKET.ASSIGN'
TICKET_START = 'TICKET.START'
TICKET_REQUEST_PARTS = 'TICKET.REQUEST_PARTS'
TICKET_NO_PARTS = 'TICKET.NO_PARTS'
TICKET_FINISH = 'TICKET.FINISH'
TICKET_CONFIRM = 'TICKET.CONFIRM'
TICKET_HISTORICAL = 'TICKET.HISTORICAL'
TICKET_READ = 'TICKET.READ'

# Parts sub-flow
PARTS_APPROVE = 'PARTS.APPROVE'
PARTS_REJECT = 'PARTS.REJECT'
PARTS_ISSUE = 'PARTS.ISSUE'
PARTS_WAREHOUSE_REJECT = 'PARTS.WAREHOUSE_REJECT'
PARTS_HANDOVER = 'PARTS.HANDOVER'

# Supporting data
INV_READ = 'INV.READ'
INV_MANAGE = 'INV.MANAGE'
FLEET_READ = 'FLEET.READ'
INSPECTION_CREATE = 'INSPECTION.CREATE'
RPT_READ = 'RPT.READ'

LIFECYCLE_OPERATIONS = [
    TICKET_CREATE, TICKET_ASSIGN, TICKET_START, TICKET_REQUEST_PARTS, TICKET_NO_PARTS,
    TICKET_FINISH, TICKET_CONFIRM, PARTS_APPROVE, PARTS_REJECT, PARTS_ISSUE,
    PARTS_WAREHOUSE_REJECT, PARTS_HANDOVER,
]

ALL_OPERATIONS = LIFECYCLE_OPERATIONS + [
    TICKET_HISTORICAL, TICKET_READ, INV_READ, INV_MANAGE, FLEET_READ, INSPECTION_CREATE, RPT_READ,
]

_READS = [TICKET_READ, INV_READ, FLEET_READ, RPT_READ]

ROLE_PRESETS: Dict[str, List[str]] = {
    User.ROLE_OPERATIONS: _READS + [TICKET_CREATE, TICKET_CONFIRM, INSPECTION_CREATE],
    User.ROLE_INSPECTION: _READS + [TICKET_CREATE, INSPECTION_CREATE],
    User.ROLE_MAINTENANCE: _READS + [
        TICKET_ASSIGN, TICKET_START, TICKET_REQUEST_PARTS, TICKET_NO_PARTS, TICKET_FINISH,
    ],
    User.ROLE_SPARES_ADMIN: _READS + [PARTS_APPROVE, PARTS_REJECT],
    User.ROLE_WAREHOUSE: _READS + [PARTS_ISSUE, PARTS_WAREHOUSE_REJECT, PARTS_HANDOVER, INV_MANAGE],
    # Admin: every operation except the backdated history import
    User.ROLE_ADMIN: [op for op in ALL_OPERATIONS if op != TICKET_HISTORICAL],
    User.ROLE_SUPER_ADMIN: ['*'],
}
