"""
Bootstrap error taxonomy.

Driver exceptions from pymongo are translated here, in one place, into the
kinds the bootstrap routine reports on. Fatal kinds stop the run; the others
are recorded against the step that raised them.
"""

from typing import Optional

from pymongo.errors import (
    AutoReconnect,
    CollectionInvalid,
    ConfigurationError,
    ConnectionFailure,
    ExecutionTimeout,
    OperationFailure,
    PyMongoError,
    WTimeoutError,
)

# MongoDB server error codes
BAD_VALUE = 2
FAILED_TO_PARSE = 9
UNAUTHORIZED = 13
AUTHENTICATION_FAILED = 18
NAMESPACE_EXISTS = 48
CANNOT_CREATE_INDEX = 67
INVALID_OPTIONS = 72
INDEX_OPTIONS_CONFLICT = 85
INDEX_KEY_SPECS_CONFLICT = 86
INVALID_INDEX_SPECIFICATION_OPTION = 197
DUPLICATE_KEY = 11000


class BootstrapError(Exception):
    """Base class for every error the bootstrap routine reports."""

    kind = "BootstrapError"
    fatal = False

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.step = step


class DatabaseConnectionError(BootstrapError):
    """Database unreachable or a request timed out. Safe to retry the whole run."""

    kind = "ConnectionError"
    fatal = True


class PermissionDenied(BootstrapError):
    """The connecting identity may not create collections or indexes."""

    kind = "PermissionDenied"
    fatal = True


class ConfigurationConflict(BootstrapError):
    """An existing collection or index is incompatible with its declaration."""

    kind = "ConfigurationConflict"


class ValidationDefinitionError(BootstrapError):
    """The server rejected a validator or index definition as malformed."""

    kind = "ValidationDefinitionError"


class DatabaseOperationError(BootstrapError):
    """Any other driver or server error raised by a single step."""

    kind = "OperationFailure"


def is_namespace_exists(exc: Exception) -> bool:
    """True when ``exc`` only says the collection is already there."""
    if isinstance(exc, CollectionInvalid):
        return True
    return isinstance(exc, OperationFailure) and exc.code == NAMESPACE_EXISTS


def classify_error(exc: Exception, step: Optional[str] = None) -> Optional[BootstrapError]:
    """Map a pymongo exception to a BootstrapError.

    Driver errors without a more specific kind become DatabaseOperationError.
    Returns None for non-driver exceptions; callers re-raise those.
    """
    if isinstance(exc, BootstrapError):
        if exc.step is None:
            exc.step = step
        return exc

    message = str(exc)

    if isinstance(exc, (ConnectionFailure, AutoReconnect, ExecutionTimeout, WTimeoutError, ConfigurationError)):
        return DatabaseConnectionError(message, step=step)

    if isinstance(exc, OperationFailure):
        if exc.code in (UNAUTHORIZED, AUTHENTICATION_FAILED):
            return PermissionDenied(message, step=step)
        # Existing index, options or data incompatible with the declaration
        if exc.code in (
            NAMESPACE_EXISTS,
            INVALID_OPTIONS,
            INDEX_OPTIONS_CONFLICT,
            INDEX_KEY_SPECS_CONFLICT,
            INVALID_INDEX_SPECIFICATION_OPTION,
            DUPLICATE_KEY,
        ):
            return ConfigurationConflict(message, step=step)
        if exc.code in (BAD_VALUE, FAILED_TO_PARSE, CANNOT_CREATE_INDEX):
            return ValidationDefinitionError(message, step=step)

    if isinstance(exc, PyMongoError):
        return DatabaseOperationError(f"{type(exc).__name__}: {message}", step=step)

    return None
