"""Workflow error taxonomy.

Every error is a werkzeug ``HTTPException`` so the unified handler in
``create_app`` renders it without route code having to translate it. Service
code raises these before touching any entity, so a raised error always means
nothing was mutated.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional
from werkzeug.exceptions import HTTPException


class WorkflowError(HTTPException):
    code = 400
    error_code = 'WorkflowError'

    def __init__(self, description: Optional[str] = None, **extra: Any):
        super().__init__(description=description)
        self.extra: Dict[str, Any] = extra


class ValidationError(WorkflowError):
    code = 400
    error_code = 'ValidationError'


class PermissionDenied(WorkflowError):
    code = 403
    error_code = 'PermissionDenied'


class EntityNotFound(WorkflowError):
    code = 404
    error_code = 'EntityNotFound'


class InvalidTransition(WorkflowError):
    code = 409
    error_code = 'InvalidTransition'


class InspectionRequired(WorkflowError):
    code = 409
    error_code = 'InspectionRequired'


class InsufficientStock(WorkflowError):
    code = 409
    error_code = 'InsufficientStock'

    def __init__(self, shortages: List[Dict[str, Any]]):
        codes = ', '.join(s['sap_code'] for s in shortages)
        super().__init__(description=f'Insufficient stock for {codes}', shortages=shortages)
        self.shortages = shortages


__all__ = [
    'WorkflowError', 'ValidationError', 'PermissionDenied', 'EntityNotFound',
    'InvalidTransition', 'InspectionRequired', 'InsufficientStock',
]
