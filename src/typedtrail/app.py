"""Typer application and CLI entry point for typedtrail.

Two commands drive the SDK from a shell:

* ``typedtrail routes ROUTES_FILE`` -- list the path/verb pairs of a route
  table.
* ``typedtrail request ROUTES_FILE PATH`` -- build one request from flags,
  run it through the execution pipeline, and print the response body.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. :class:`~typedtrail.exceptions.TypedTrailError`
instances exit with their ``exit_code``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

import typer

from typedtrail import __version__
from typedtrail.exceptions import InvalidUsageError, TypedTrailError
from typedtrail.exit_codes import EXIT_GENERIC_FAILURE
from typedtrail.models import ClientConfig, RouteTable
from typedtrail.output import OutputFormat, OutputManager, get_output, set_output
from typedtrail.request import ExecutionResult
from typedtrail.transport import HttpxTransport, Transport


app = typer.Typer(
    name="typedtrail",
    help="Build and send requests described by a typed route table.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

_make_transport: Callable[[ClientConfig], Transport] = HttpxTransport
"""Factory for the transport used by ``typedtrail request``."""


def _version_callback(value: bool) -> None:
    """Handle --version."""
    if value:
        typer.echo(f"typedtrail {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="Print bodies and listings as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print tab-separated plain text."),
    no_color: bool = typer.Option(False, "--no-color", help="Never use colour."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Hide the status line."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show request debug lines and library logs."
    ),
) -> None:
    """Initialise the global :class:`~typedtrail.output.OutputManager` from CLI flags."""
    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@app.command("routes")
def routes_command(
    routes_file: str = typer.Argument(
        ..., help="Route table file (JSON or YAML), or '-' for stdin."
    ),
) -> None:
    """List every path/verb pair declared in a route table."""
    from typedtrail.config import load_route_table

    output = get_output()
    with _exit_on_error():
        table = load_route_table(routes_file)

    rows = [
        [verb.value, path, ", ".join(shape.route_params or []), shape.description or ""]
        for path, verb, shape in table.iter_routes()
    ]
    output.print_rows(["Method", "Path", "Route params", "Description"], rows, title="Routes")


@app.command("request")
def request_command(
    routes_file: str = typer.Argument(
        ..., help="Route table file (JSON or YAML), or '-' for stdin."
    ),
    path: str = typer.Argument(..., help="Route path as declared, e.g. /users/:id."),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP verb."),
    root_url: Optional[str] = typer.Option(
        None, "--root-url", help="Root URL prefixed to the path."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Request timeout in seconds."
    ),
    param: Optional[list[str]] = typer.Option(
        None, "--param", help="Route param NAME=VALUE (repeatable)."
    ),
    query: Optional[list[str]] = typer.Option(
        None, "--query", help="Query param NAME=VALUE (repeatable)."
    ),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Header NAME=VALUE (repeatable)."
    ),
    body: Optional[str] = typer.Option(
        None, "--body", "-d", help="Request body; parsed as JSON when possible."
    ),
    as_text: bool = typer.Option(False, "--text", help="Print the body as raw text."),
) -> None:
    """Send one request through the pipeline and print the response."""
    from typedtrail.config import load_route_table, resolve_config
    from typedtrail.response import format_execution_result

    output = get_output()
    with _exit_on_error():
        config = resolve_config(cli_root_url=root_url, cli_timeout=timeout)
        table = load_route_table(routes_file)
        output.debug(f"{method.upper()} {config.root_url}{path}")
        result = asyncio.run(
            _send(
                config,
                table,
                path,
                method,
                route_params=_parse_pairs(param, "--param"),
                query_params=_parse_pairs(query, "--query"),
                headers=_parse_pairs(header, "--header"),
                body=_parse_body(body),
                as_text=as_text,
            )
        )
    format_execution_result(result)


async def _send(
    config: ClientConfig,
    table: RouteTable,
    path: str,
    method: str,
    route_params: list[tuple[str, str]],
    query_params: list[tuple[str, str]],
    headers: list[tuple[str, str]],
    body: Any,
    as_text: bool,
) -> ExecutionResult[Any]:
    from typedtrail.client import TypedTrail

    transport = _make_transport(config)
    try:
        api = TypedTrail(routes=table, config=config, transport=transport)
        request = api.create_request(path, method)
        request.set_route_params(dict(route_params))
        for key, value in query_params:
            request.add_query_param(key, value)
        request.set_headers(dict(headers))
        if body is not None:
            request.set_body(body)
        return await request.execute(as_text=as_text)
    finally:
        if isinstance(transport, HttpxTransport):
            await transport.aclose()


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


@contextmanager
def _exit_on_error() -> Iterator[None]:
    """Turn a :class:`TypedTrailError` into an error message and exit code."""
    try:
        yield
    except TypedTrailError as exc:
        get_output().error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _parse_pairs(values: Optional[list[str]], flag: str) -> list[tuple[str, str]]:
    """Split ``NAME=VALUE`` flag values."""
    pairs: list[tuple[str, str]] = []
    for value in values or []:
        name, sep, rest = value.partition("=")
        if not sep or not name:
            raise InvalidUsageError(f"{flag} expects NAME=VALUE, got {value!r}")
        pairs.append((name, rest))
    return pairs


def _parse_body(body: Optional[str]) -> Any:  # noqa: ANN401
    """Parse *body* as JSON if possible, returning the raw string on failure."""
    if body is None:
        return None
    try:
        return json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return body


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``typedtrail`` console script."""
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except TypedTrailError as exc:
        get_output().error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        get_output().error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
