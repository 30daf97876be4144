"""Response formatting bridge -- maps an execution result to the CLI output system.

See Also:
    :mod:`typedtrail.output` -- the output manager that renders data.
"""

from __future__ import annotations

from typing import Any

from pydantic_core import to_jsonable_python

from typedtrail.output import get_output
from typedtrail.request import ExecutionResult


def format_execution_result(result: ExecutionResult[Any]) -> None:
    """Print the status line to stderr and the decoded body to stdout.

    Args:
        result: The value returned by
            :meth:`~typedtrail.request.RequestBuilder.execute`.
    """
    output = get_output()
    response = result.native_response

    output.status(f"HTTP {response.status_code} {response.reason_phrase or ''}".rstrip())
    for key, value in result.headers.items():
        output.debug(f"{key}: {value}")

    if result.body is None or result.body == "":
        return
    content_type = result.headers.get("content-type", "application/json")
    output.print_body(to_jsonable_python(result.body), content_type)
