"""
Domain errors raised by services and translated to JSON responses in main.py.

Every error body has the shape ``{"error": message}`` plus an optional
``details`` list of ``{"field": ..., "message": ...}`` entries.
"""
from typing import Any, Dict, List, Optional


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[List[Dict[str, Any]]] = None):
        self.message = message or self.default_message
        self.details = details or []
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(AppError):
    status_code = 403
    default_message = "Insufficient permissions"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    # Client-correctable conflicts keep the 400 convention rather than 409
    status_code = 400
    default_message = "Conflict"


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"
