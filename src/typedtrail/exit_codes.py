"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~typedtrail.exceptions.TypedTrailError` subclass.
Shell wrappers can inspect the exit code of ``typedtrail request`` to
determine the failure class without parsing stderr.

Example::

    $ typedtrail request routes.yaml /users/:id --param id=42
    $ echo $?
    6   # EXIT_CONNECTION_ERROR -- the API could not be reached
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or undeclared parameter names."""

EXIT_NOT_FOUND = 4
"""The requested path or verb is not declared in the route table."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_ROUTE_TABLE_ERROR = 7
"""The route table file could not be loaded or validated."""

EXIT_CANCELLED = 8
"""The request was aborted before it completed."""

EXIT_DECODE_ERROR = 9
"""The response body could not be decoded or did not match its declared type."""
