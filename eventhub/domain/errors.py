"""Domain error codes for events and users."""

from enum import Enum


class ErrorCode(str, Enum):
    """Stable error kinds reported to API clients."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    FORBIDDEN = "FORBIDDEN"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    ROLE_NOT_PERMITTED = "ROLE_NOT_PERMITTED"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    EVENT_NOT_ACTIVE = "EVENT_NOT_ACTIVE"
    SOLD_OUT = "SOLD_OUT"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    NOT_REGISTERED = "NOT_REGISTERED"
    DEADLINE_PASSED = "DEADLINE_PASSED"
    ORGANIZER_CANNOT_REGISTER = "ORGANIZER_CANNOT_REGISTER"
    CONCURRENCY_CONFLICT = "CONCURRENCY_CONFLICT"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode = ErrorCode.VALIDATION_ERROR
    default_message = "Request could not be processed"

    def __init__(self, message: str = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(DomainError):
    code = ErrorCode.VALIDATION_ERROR
    default_message = "Invalid event data"

    def __init__(self, message: str = None, field_errors: dict = None) -> None:
        super().__init__(message)
        self.field_errors = field_errors or {}


class ForbiddenError(DomainError):
    code = ErrorCode.FORBIDDEN
    default_message = "Not authorized to modify this event"


class AuthenticationError(DomainError):
    code = ErrorCode.AUTHENTICATION_FAILED
    default_message = "Invalid credentials"


class RoleNotPermittedError(DomainError):
    code = ErrorCode.ROLE_NOT_PERMITTED
    default_message = "Your role is not allowed to perform this action"


class EventNotFoundError(DomainError):
    code = ErrorCode.EVENT_NOT_FOUND
    default_message = "Event not found"


class UserNotFoundError(DomainError):
    code = ErrorCode.USER_NOT_FOUND
    default_message = "User not found"


class EventNotActiveError(DomainError):
    code = ErrorCode.EVENT_NOT_ACTIVE
    default_message = "Event is not available for registration"


class SoldOutError(DomainError):
    code = ErrorCode.SOLD_OUT
    default_message = "Event is sold out"


class AlreadyRegisteredError(DomainError):
    code = ErrorCode.ALREADY_REGISTERED
    default_message = "You are already registered for this event"


class NotRegisteredError(DomainError):
    code = ErrorCode.NOT_REGISTERED
    default_message = "You are not registered for this event"


class DeadlinePassedError(DomainError):
    code = ErrorCode.DEADLINE_PASSED
    default_message = "Registration deadline has passed"


class OrganizerCannotRegisterError(DomainError):
    code = ErrorCode.ORGANIZER_CANNOT_REGISTER
    default_message = "Organizers cannot register for their own events"


class ConcurrencyConflictError(DomainError):
    code = ErrorCode.CONCURRENCY_CONFLICT
    default_message = "Event was modified concurrently, please retry"


class StoreUnavailableError(DomainError):
    code = ErrorCode.STORE_UNAVAILABLE
    default_message = "Event storage is temporarily unavailable"
