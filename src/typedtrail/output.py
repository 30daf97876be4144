"""Terminal rendering for the ``typedtrail`` CLI.

Response bodies and route listings are written to stdout; status lines,
warnings, errors, and debug messages go to stderr so that
``typedtrail request ... | jq`` always receives clean data.

Three renderings are available (see :class:`OutputFormat`): indented JSON,
tab-separated plain text, and Rich (syntax-highlighted bodies and boxed
tables). ``AUTO`` chooses Rich only for a colour-capable interactive
stdout. ``NO_COLOR`` (any value) and ``TERM=dumb`` turn colour off.

The CLI callback builds one :class:`OutputManager` and installs it with
:func:`set_output`; the library modules never write to the terminal.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Iterator, Optional, Sequence

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How bodies and listings are rendered."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Writes CLI results to stdout and diagnostics to stderr.

    Args:
        format: Rendering for stdout. ``AUTO`` resolves once, at construction.
        no_color: Never emit colour or markup.
        quiet: Drop status lines (warnings and errors are still shown).
        verbose: Show debug lines.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _color_disabled_by_env()
        self._quiet = quiet
        self._verbose = verbose

        if format != OutputFormat.AUTO:
            self._format = format
        elif _stdout_is_tty() and not self._no_color:
            self._format = OutputFormat.RICH
        else:
            self._format = OutputFormat.PLAIN

        rich = self._format == OutputFormat.RICH
        self._out = Console(file=sys.stdout, no_color=self._no_color, force_terminal=rich)
        self._err = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # stdout
    # ------------------------------------------------------------------ #

    def print_body(self, body: Any, content_type: str = "application/json") -> None:
        """Render a decoded response body.

        *body* must already be JSON-compatible (dicts, lists, scalars) or a
        string. In JSON mode a string that parses as JSON is re-indented.
        """
        if self._format == OutputFormat.JSON:
            if isinstance(body, str):
                try:
                    body = json.loads(body)
                except ValueError:
                    self.write_line(body)
                    return
            self.write_line(_dump(body))
            return

        if self._format == OutputFormat.RICH and not isinstance(body, str):
            lexer = "json" if "json" in content_type else "text"
            self._out.print(Syntax(_dump(body), lexer, word_wrap=True))
            return

        for line in _plain_lines(body):
            self.write_line(line)

    def print_rows(
        self,
        columns: Sequence[str],
        rows: Sequence[Sequence[str]],
        title: Optional[str] = None,
    ) -> None:
        """Render a listing: JSON records, tab-separated lines, or a Rich table."""
        if self._format == OutputFormat.JSON:
            self.write_line(_dump([dict(zip(columns, row)) for row in rows]))
        elif self._format == OutputFormat.PLAIN:
            for row in [columns, *rows]:
                self.write_line("\t".join(row))
        else:
            table = Table(*columns, title=title, header_style="bold cyan")
            for row in rows:
                table.add_row(*row)
            self._out.print(table)

    def write_line(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    # ------------------------------------------------------------------ #
    # stderr
    # ------------------------------------------------------------------ #

    def status(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, message)

    def warning(self, message: str) -> None:
        self._diagnostic(f"Warning: {message}", f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        self._diagnostic(f"Error: {message}", f"[bold red]Error:[/bold red] {message}")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic(f"[debug] {message}", f"[dim]\\[debug] {message}[/dim]")

    def _diagnostic(self, plain: str, markup: str) -> None:
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._err.print(markup)


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _plain_lines(body: Any) -> Iterator[str]:
    """Yield tab-separated lines: ``key<TAB>value`` for objects, one row per list item."""
    if isinstance(body, dict):
        for key, value in body.items():
            yield f"{key}\t{value}"
    elif isinstance(body, list):
        for item in body:
            yield "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
    else:
        yield str(body)


def _stdout_is_tty() -> bool:
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _color_disabled_by_env() -> bool:
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Process-wide instance, installed by the CLI callback
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None
