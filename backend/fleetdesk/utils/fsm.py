from __future__ import annotations
"""Simple finite state machine utility for enforcing allowed status transitions.

Used by the part request sub-flow, whose status is stored, and by the ticket
engine to check the derived ticket status before acting.
Usage:
    from fleetdesk.utils.fsm import TransitionValidator
    PARTS_FSM = TransitionValidator({
        'pending': {'admin_approved', 'rejected'},
        'admin_approved': {'issued', 'rejected'},
        'issued': {'warehouse_completed'},
    }, field_name='part request status')
    PARTS_FSM.assert_can_transition(current_status, target_status)

Raises InvalidTransition if the edge is missing.
"""
from typing import Dict, Iterable, Optional, Set
from fleetdesk.errors import InvalidTransition


class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    def can_transition(self, current: Optional[str], target: str) -> bool:
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current: Optional[str], target: str):
        if not self.can_transition(current, target):
            raise InvalidTransition(f"Invalid {self.field_name} transition {current} -> {target}")
        return True

    def assert_in(self, current: Optional[str], allowed: Iterable[str], action: str):
        """Guard for actions that keep the state (self loops) or need one of several states."""
        allowed = tuple(allowed)
        if current not in allowed:
            raise InvalidTransition(
                f"Cannot {action}: {self.field_name} is {current}, expected {' or '.join(str(a) for a in allowed)}"
            )
        return True

    def terminal_states(self) -> Set[str]:
        return {state for state, targets in self.graph.items() if not targets}

__all__ = ['TransitionValidator']
