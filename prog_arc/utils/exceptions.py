"""
Custom exceptions for the session engine with user-friendly error messages.

Services raise these; the SessionActions facade turns them into
structured results so nothing crosses the public boundary as an exception.
"""

class ProgArcError(Exception):
    """Base exception for session engine errors."""
    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message

class ValidationError(ProgArcError):
    """Raised when input is malformed or insufficient."""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            f"Validation failed: {reason}",
            f"❌ {reason}"
        )

class AuthorizationError(ProgArcError):
    """Raised when a caller lacks privilege for a mutating operation."""
    def __init__(self, caller_id: int, operation: str):
        super().__init__(
            f"Caller {caller_id} is not authorized for {operation}",
            "❌ Admin access required"
        )

class StateConflictError(ProgArcError):
    """Raised when an operation would violate a one-time transition."""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            f"State conflict: {reason}",
            f"❌ {reason}"
        )

class NotFoundError(ProgArcError):
    """Raised when a session, player or breakdown does not exist."""
    def __init__(self, entity: str, entity_id=None):
        detail = f"{entity} {entity_id}" if entity_id is not None else entity
        super().__init__(
            f"{detail} not found",
            f"❌ {entity} not found"
        )

class ExternalDependencyError(ProgArcError):
    """Raised when notification delivery fails. Never fails the triggering operation."""
    def __init__(self, dependency: str, details: str = None):
        super().__init__(
            f"External dependency {dependency} failed: {details}",
            "⚠️ Notification could not be delivered"
        )
