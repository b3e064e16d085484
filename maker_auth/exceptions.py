"""Exceptions."""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Closed set of directory failure kinds."""

    UNAVAILABLE = 'unavailable'
    TIMEOUT = 'timeout'
    INVALID_CREDENTIALS = 'invalid_credentials'
    INSUFFICIENT_ACCESS = 'insufficient_access'
    NO_SUCH_OBJECT = 'no_such_object'
    NO_SUCH_ATTRIBUTE = 'no_such_attribute'
    ALREADY_EXISTS = 'already_exists'
    ATTRIBUTE_OR_VALUE_EXISTS = 'attribute_or_value_exists'
    CONSTRAINT_VIOLATION = 'constraint_violation'
    OTHER = 'other'


class GatewayError(RuntimeError):
    """Base class for errors raised by this package."""


class DirectoryError(GatewayError):
    """A directory operation failed."""

    def __init__(self, kind: ErrorKind, message: str = '') -> None:
        super().__init__(message or kind.value)
        self.kind = kind


class DirectoryUnavailable(DirectoryError):
    """Could not connect or bind to the directory."""

    def __init__(self, message: str = '',
                 kind: ErrorKind = ErrorKind.UNAVAILABLE) -> None:
        super().__init__(kind, message)


class ValidationError(GatewayError):
    """Request input is missing or malformed."""


class LookupFailed(GatewayError):
    """A lookup did not return exactly one record."""


class NotFound(LookupFailed):
    """No record matched."""


class AmbiguousResult(LookupFailed):
    """More than one record matched."""


class CounterUnreadable(GatewayError):
    """The uid counter record does not hold exactly one numeric value."""


class RetriesExhausted(GatewayError):
    """An optimistic update kept conflicting until it ran out of tries."""


class ProvisionError(GatewayError):
    """Failed to provision a new account."""


class NameUnavailable(ProvisionError):
    """The username is taken by an account or a group."""


class AllocationExhausted(ProvisionError):
    """Could not claim a uid before running out of tries."""


class ProvisionFailed(ProvisionError):
    """The account record could not be written."""


class ProvisionPartialFailure(ProvisionError):
    """The group record could not be written after the account was added."""

    def __init__(self, message: str, cause: DirectoryError,
                 compensation_error: Optional[DirectoryError] = None) -> None:
        super().__init__(message)
        self.cause = cause
        self.compensation_error = compensation_error

    @property
    def rolled_back(self) -> bool:
        """Whether the account record was removed again."""
        return self.compensation_error is None


class RollbackFailed(ProvisionPartialFailure):
    """The account record could not be removed after the group add failed."""

    def __init__(self, message: str, cause: DirectoryError,
                 compensation_error: DirectoryError, orphan_dn: str) -> None:
        super().__init__(message, cause, compensation_error)
        self.orphan_dn = orphan_dn
