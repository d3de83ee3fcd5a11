from __future__ import annotations
from typing import Any, Dict, Optional
from fleetdesk.models.audit import AuditLog


def add_audit(session, actor_user_id: str, action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
    """Stage an audit log entry within the given DB session.

    Parameters:
      actor_user_id: employee id of whoever triggered the change
      action: operation code e.g. TICKET.START, PARTS.ISSUE
      entity: optional entity name (Ticket, SparePart, etc.)
      entity_id: optional primary key string
      meta: additional JSON-safe dictionary (will be shallow copied)
    """
    log = AuditLog(
        actor_user_id=actor_user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log


def audit_trail(session, entity: str, entity_id: str):
    return (
        session.query(AuditLog)
        .filter(AuditLog.entity == entity, AuditLog.entity_id == str(entity_id))
        .order_by(AuditLog.id.asc())
        .all()
    )
