"""Exception hierarchy shared by all adapters.

Adapters raise these internally and convert them into ``AdapterError``
values at the ``execute``/``connect`` boundary, so callers only ever see the
structured form. ``shutdown``/``disconnect`` let them propagate.
"""

from typing import Any

from ..models.api import AdapterError


class AdapterException(Exception):
    """Base exception for adapter failures."""

    code = "ADAPTER_ERROR"
    retryable = False
    # Set when the failure was already added to the adapter error count
    counted = False

    def __init__(
        self,
        message: str,
        code: str | None = None,
        retryable: bool | None = None,
        details: Any = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable
        self.details = details
        self.cause = cause

    def to_error(self) -> AdapterError:
        """Convert to the structured error returned to callers."""
        return AdapterError(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )


class ConfigurationError(AdapterException):
    """Structurally invalid adapter configuration."""

    code = "INVALID_CONFIG"


class AdapterStateError(AdapterException):
    """Lifecycle call made in a state that does not allow it."""

    code = "INVALID_STATE"


class NotConnectedError(AdapterException):
    """Operation attempted without an open session."""

    code = "NOT_CONNECTED"


class UnsupportedOperationError(AdapterException):
    """Operation verb the adapter does not implement."""

    code = "UNSUPPORTED_OPERATION"


class InvalidOperationError(AdapterException):
    """Operation parameters do not match the verb's parameter model."""

    code = "INVALID_OPERATION"


class OperationTimeoutError(AdapterException):
    """Operation exceeded its own timeout."""

    code = "TIMEOUT"
    retryable = True


class PathSecurityError(AdapterException):
    """Path rejected by the base path jail."""

    code = "INVALID_PATH"


class PermissionDeniedError(AdapterException):
    """Configured permissions do not allow the operation."""

    code = "PERMISSION_DENIED"


class ExtensionNotAllowedError(AdapterException):
    """File extension outside the configured allow-list."""

    code = "EXTENSION_NOT_ALLOWED"


class FileTooLargeError(AdapterException):
    """File or content larger than the configured ceiling."""

    code = "FILE_TOO_LARGE"


class RateLimitExceeded(AdapterException):
    """Request rejected by the adapter's rate limiter."""

    code = "RATE_LIMIT"
    retryable = True


class TransactionAborted(AdapterException):
    """A transaction stopped at a failed operation.

    Carries the failed operation's error so it can be surfaced unchanged.
    """

    counted = True

    def __init__(self, error: AdapterError, index: int) -> None:
        super().__init__(
            f"Transaction failed at operation {index}: {error.message}",
            code=error.code,
            retryable=error.retryable,
            details=error.details,
        )
        self.error = error
        self.index = index

    def to_error(self) -> AdapterError:
        return self.error


class IntegrationError(AdapterException):
    """Integration definition or execution problem at the hub level."""

    code = "INTEGRATION_ERROR"
