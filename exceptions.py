"""
Domain exceptions for the innovation hub API.

Workflows raise these; the handlers registered in ``main`` turn them into
the ``{"success": false, "error": ..., "code": ...}`` envelope with the
matching HTTP status.

Usage:
    from exceptions import EventNotFoundError

    if not event:
        raise EventNotFoundError()
"""

from typing import Any, Dict, Optional


class HubError(Exception):
    """Base exception for all hub errors"""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "SERVER_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


# ============================================
# 400 - Validation
# ============================================

class ValidationError(HubError):
    """Input failed a validation rule"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class InvalidIdError(ValidationError):
    """Path id is not a valid ObjectId"""

    def __init__(self, resource_type: str):
        super().__init__(f"Invalid {resource_type.lower()} id")
        self.code = "INVALID_INPUT"


# ============================================
# 401 - Authentication
# ============================================

class UnauthorizedError(HubError):
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="UNAUTHORIZED")


class InvalidCredentialsError(UnauthorizedError):
    def __init__(self, message: str = "Invalid password"):
        super().__init__(message)
        self.code = "INVALID_CREDENTIALS"


# ============================================
# 404 - Not found
# ============================================

class NotFoundError(HubError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, code: Optional[str] = None):
        super().__init__(
            f"{resource_type} not found",
            code=code or "NOT_FOUND",
            details={"resource_type": resource_type},
        )


class EventNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("Event", code="EVENT_NOT_FOUND")


class RegistrationNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("Registration", code="REGISTRATION_NOT_FOUND")


class ParticipantNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("Participant")


class StartupNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("Startup")


class ApplicationNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("Application")


# ============================================
# 409 - Conflicts
# ============================================

class ConflictError(HubError):
    """Uniqueness rule violated"""

    status_code = 409

    def __init__(self, message: str, code: str = "DUPLICATE", fields: Optional[list] = None):
        details = {"fields": fields} if fields else {}
        super().__init__(message, code=code, details=details)


class AlreadyRegisteredError(ConflictError):
    def __init__(self):
        super().__init__(
            "This email is already registered for this event",
            code="ALREADY_REGISTERED",
            fields=["eventId", "leaderEmail"],
        )


class DuplicateApplicationError(ConflictError):
    def __init__(self):
        super().__init__(
            "You already have a pending application. Please wait for our response.",
            code="DUPLICATE_APPLICATION",
            fields=["founderEmail"],
        )


# ============================================
# 5xx - Server side
# ============================================

class PartialFailureError(HubError):
    """A multi-step workflow failed after its first write.

    ``rolled_back`` tells whether the compensating actions restored the
    records touched before the failure.
    """

    status_code = 500

    def __init__(self, operation: str, step: str, rolled_back: bool, cause: Exception):
        state = "changes were rolled back" if rolled_back else "rollback failed, data may be inconsistent"
        super().__init__(
            f"{operation} failed while {step}; {state}",
            code="PARTIAL_FAILURE",
            details={"operation": operation, "step": step, "rolledBack": rolled_back},
        )
        self.rolled_back = rolled_back
        self.cause = cause


class DatabaseUnavailableError(HubError):
    status_code = 503

    def __init__(self):
        super().__init__(
            "Database not available. Set DATABASE_URL and DATABASE_NAME.",
            code="DATABASE_UNAVAILABLE",
        )


class ConfigError(HubError):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message, code="CONFIG_ERROR")
