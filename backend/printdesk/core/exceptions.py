# printdesk/core/exceptions.py
# Error taxonomy shared by all modules. Each error carries a machine readable
# `kind` and the HTTP status the API layer renders it with.

from typing import Any, List, Optional


class AppError(Exception):
    """Base exception for domain and infrastructure errors."""
    kind: str = "Error"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundError(AppError):
    kind = "NotFound"
    status_code = 404


class InputValidationError(AppError):
    kind = "ValidationError"
    status_code = 400


class ConflictError(AppError):
    kind = "ConflictError"
    status_code = 400


class IneligibleStateError(AppError):
    kind = "IneligibleState"
    status_code = 400


class ForbiddenError(IneligibleStateError):
    kind = "Forbidden"
    status_code = 403


class RepositoryError(AppError):
    """Document store unreachable or misconfigured. Never retried by the core."""
    kind = "InfrastructureError"
    status_code = 503
