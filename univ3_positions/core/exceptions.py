"""Error taxonomy for position management"""

import logging
from contextlib import contextmanager


logger = logging.getLogger(__name__)


class PositionManagerError(Exception):
    """Base exception for all position manager errors"""

    kind = "PositionManagerError"

    def __init__(self, message, operation=None, params=None, cause=None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.params = dict(params) if params else {}
        self.cause = cause

    def with_context(self, operation, params=None):
        """Attach operation name and in-flight params (first writer wins)"""
        if self.operation is None:
            self.operation = operation
        for key, value in (params or {}).items():
            self.params.setdefault(key, value)
        return self

    def __str__(self):
        if self.operation:
            return f"{self.message} (operation={self.operation})"
        return self.message


class InvalidInputError(PositionManagerError):
    """A supplied value fails a basic precondition"""
    kind = "InvalidInput"


class InvalidRangeError(PositionManagerError):
    """Price or tick bounds are inverted or otherwise structurally wrong"""
    kind = "InvalidRange"


class InvalidTickAlignmentError(PositionManagerError):
    """A tick is not a multiple of the pool's tick spacing"""
    kind = "InvalidTickAlignment"


class OutOfRangeError(PositionManagerError):
    """A tick or price falls outside the protocol's global bounds"""
    kind = "OutOfRange"


class InvalidPositionError(PositionManagerError):
    """The requested operation is impossible given position/pool state"""
    kind = "InvalidPosition"


class NotFoundError(PositionManagerError):
    """A referenced position token ID does not exist"""
    kind = "NotFound"


class NetworkError(PositionManagerError):
    """The node could not be reached or connection settings are missing"""
    kind = "NetworkError"


class ConfigError(NetworkError):
    """Configuration-related errors"""
    kind = "ConfigError"


class TransactionRevertedError(PositionManagerError):
    """A submitted transaction was rejected by the ledger"""
    kind = "TransactionReverted"


class UnknownError(PositionManagerError):
    """Any failure not classified above; keeps the original message"""
    kind = "UnknownError"


# Raised synchronously before any external call is attempted
VALIDATION_ERRORS = (
    InvalidInputError,
    InvalidRangeError,
    InvalidTickAlignmentError,
    OutOfRangeError,
    InvalidPositionError,
)


@contextmanager
def error_context(operation, params=None):
    """
    Run a block with standardized error handling.

    Classified errors get the operation name and params attached and are
    re-raised. Anything else is wrapped in UnknownError with the original
    message preserved.

    Args:
        operation: Name of the operation being performed
        params: Dict of in-flight parameters. The caller may keep mutating it
                (e.g. a "stage" key); the values at failure time are reported.
    """
    params = params if params is not None else {}
    try:
        yield params
    except PositionManagerError as e:
        e.with_context(operation, params)
        logger.error("%s failed [%s]: %s | params=%s", operation, e.kind, e.message, e.params)
        raise
    except Exception as e:
        logger.error("%s failed [UnknownError]: %s | params=%s", operation, e, params)
        raise UnknownError(
            f"Unknown error in {operation}: {e}",
            operation=operation,
            params=params,
            cause=e,
        ) from e
