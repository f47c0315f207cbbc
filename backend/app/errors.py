"""
Engine exceptions.

Every failure the engine reports carries a human message, a machine-checkable
``reason`` code and the HTTP status it maps to. Routes let these propagate;
the handler registered in ``main.py`` renders them.

Usage:
    from app.errors import NotFoundError

    if not test:
        raise NotFoundError("Test not found", reason="test_not_found")
"""

from typing import Optional, Any, Dict, List


class CBTError(Exception):
    """Base exception for all engine errors"""

    status_code = 500

    def __init__(
        self,
        message: str,
        reason: str = "internal_error",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.reason = reason
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"detail": self.message, "reason": self.reason}
        if self.details:
            body.update(self.details)
        return body


class ValidationError(CBTError):
    """Malformed or inconsistent input"""

    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None, reason: str = "validation_failed"):
        self.errors = errors or [{"field": None, "message": message}]
        super().__init__(message, reason=reason, details={"errors": self.errors})


class AuthorizationError(CBTError):
    """Caller lacks the role or subject/class assignment"""

    status_code = 403

    def __init__(self, message: str = "Access restricted", reason: str = "access_restricted"):
        super().__init__(message, reason=reason)


class NotFoundError(CBTError):
    """Unknown test, question or result id"""

    status_code = 404

    def __init__(self, message: str, reason: str = "not_found"):
        super().__init__(message, reason=reason)


class ConflictError(CBTError):
    """Request is well-formed but not allowed in the current state"""

    status_code = 409

    def __init__(self, message: str, reason: str = "conflict"):
        super().__init__(message, reason=reason)


class InternalError(CBTError):
    """Storage failure or malformed persisted data"""

    status_code = 500

    def __init__(self, message: str = "Server error", reason: str = "internal_error"):
        super().__init__(message, reason=reason)
