"""
Application error taxonomy.

Every error carries a `kind` discriminant, the HTTP status it maps to and,
for the field-level kinds, a `{field: [messages]}` detail map. The Flask
handlers in api/errors.py serialize them into the uniform error envelope.
"""
from __future__ import annotations

from typing import Dict, List, Optional


class AppError(Exception):
    kind = "INTERNAL_ERROR"
    status = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def details(self) -> Optional[Dict[str, List[str]]]:
        return None


class FieldError(AppError):
    """Base for kinds whose payload is a field map."""

    def __init__(self, fields: Dict[str, List[str]], message: Optional[str] = None):
        super().__init__(message)
        self.fields = fields

    @property
    def details(self) -> Dict[str, List[str]]:
        return self.fields


class ValidationFailed(FieldError):
    kind = "VALIDATION_ERROR"
    status = 400
    default_message = "Invalid input"


class Conflict(FieldError):
    kind = "CONFLICT"
    status = 400
    default_message = "Conflict"


class Unauthorized(AppError):
    kind = "UNAUTHORIZED"
    status = 401
    default_message = "Unauthorized"


class NotFound(AppError):
    kind = "NOT_FOUND"
    status = 404
    default_message = "Resource not found"


class InternalError(AppError):
    pass
