"""
Domain errors raised by the transactional core.

Each error carries a stable ``code`` (e.g. ``AlreadyPaid``) and belongs to one
of four categories. The category decides the HTTP status the API layer uses;
the core itself never retries on any of them.
"""

from typing import Any, Dict


class TeahouseError(Exception):
    """Base class for all domain errors."""

    status_code = 400
    category = "error"

    def __init__(self, code: str, message: str, **details: Any):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code, "category": self.category, **self.details}


class AuthorizationError(TeahouseError):
    """Caller lacks the role, verification or ownership for the operation."""

    status_code = 403
    category = "authorization"


class StateError(TeahouseError):
    """Order or table is in the wrong state; caller must re-fetch before retrying."""

    status_code = 409
    category = "state"


class ValidationError(TeahouseError):
    """Rejected input value (amounts, item lists, methods)."""

    status_code = 422
    category = "validation"


class NotFoundError(TeahouseError):
    """Referenced entity does not exist (stale client reference)."""

    status_code = 404
    category = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__("NotFound", f"{entity} {entity_id} not found", entity=entity, entity_id=entity_id)
