from __future__ import annotations
"""Reusable input validation helpers.

Each helper returns the normalized value (to enable inline usage) or raises
ValidationError before anything is mutated.
"""
from typing import Any, Dict, Iterable, Mapping
from fleetdesk.errors import ValidationError


def validate_choice(value: Any, allowed: Iterable[str], field_name: str) -> str:
    allowed = tuple(allowed)
    if value not in allowed:
        raise ValidationError(f"{field_name} must be one of {', '.join(allowed)}")
    return value


def validate_non_negative_int(value: Any, field_name: str) -> int:
    # bool is an int subclass; True is not a kilometer reading
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{field_name} must be an integer')
    if value < 0:
        raise ValidationError(f'{field_name} must be >= 0')
    return value


def validate_non_blank(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field_name} required')
    return value.strip()


def validate_parts_mapping(parts: Any) -> Dict[str, int]:
    """Validate a sap_code -> quantity mapping for a part request."""
    if not isinstance(parts, Mapping) or not parts:
        raise ValidationError('parts must be a non-empty mapping of sap code to quantity')
    cleaned: Dict[str, int] = {}
    for code, qty in parts.items():
        if not isinstance(code, str) or not code.strip():
            raise ValidationError('part codes must be non-empty strings')
        key = code.strip()
        if key in cleaned:
            raise ValidationError(f'duplicate part code {key}')
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise ValidationError(f'quantity for {key} must be a positive integer')
        cleaned[key] = qty
    return cleaned

__all__ = ['validate_choice', 'validate_non_negative_int', 'validate_non_blank', 'validate_parts_mapping']
