"""Exception hierarchy for typedtrail.

All exceptions inherit from :class:`TypedTrailError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`typedtrail.exit_codes`.
The CLI entry point in :func:`typedtrail.app.main` catches
``TypedTrailError`` and exits with the appropriate code; library callers
catch the specific subclasses.

Exceptions raised by request interceptors are never wrapped -- they reach
the caller of :meth:`~typedtrail.request.RequestBuilder.execute` unchanged.

Subclass hierarchy::

    TypedTrailError (exit 1)
    +-- InvalidUsageError        (exit 2)
    +-- RouteNotFoundError       (exit 4)
    +-- TransportError           (exit 6)
    +-- RouteTableError          (exit 7)
    +-- RequestCancelledError    (exit 8)
    +-- ResponseDecodeError      (exit 9)
    |   +-- ResponseValidationError
    +-- ConfigError              (exit 1)
"""

from typedtrail.exit_codes import (
    EXIT_CANCELLED,
    EXIT_CONNECTION_ERROR,
    EXIT_DECODE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_ROUTE_TABLE_ERROR,
)


class TypedTrailError(Exception):
    """Base exception for all typedtrail errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`typedtrail.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(TypedTrailError):
    """Raised for invalid CLI arguments or parameter names a route does not declare."""

    exit_code = EXIT_INVALID_USAGE


class RouteNotFoundError(TypedTrailError):
    """Raised when a path or verb is missing from the dispatcher's route table."""

    exit_code = EXIT_NOT_FOUND


class TransportError(TypedTrailError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    The same instance is delivered to every caller sharing a coalesced
    execution. The underlying :class:`httpx.TransportError` is available as
    ``__cause__``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class RouteTableError(TypedTrailError):
    """Raised when a route table file cannot be read, parsed, or validated."""

    exit_code = EXIT_ROUTE_TABLE_ERROR


class RequestCancelledError(TypedTrailError):
    """Raised to the caller whose request descriptor was aborted."""

    exit_code = EXIT_CANCELLED


class ResponseDecodeError(TypedTrailError):
    """Raised when JSON decoding was requested and the response body is not valid JSON."""

    exit_code = EXIT_DECODE_ERROR


class ResponseValidationError(ResponseDecodeError):
    """Raised when a decoded JSON body does not match the route's declared response type."""


class ConfigError(TypedTrailError):
    """Raised for configuration problems (invalid project file, bad environment values)."""

    exit_code = EXIT_GENERIC_FAILURE
