"""Tests for CLI rendering: format resolution, stream discipline, and result printing."""

from __future__ import annotations

import json

import httpx
import pytest
from pydantic import BaseModel

from typedtrail.output import (
    OutputFormat,
    OutputManager,
    _color_disabled_by_env,
    get_output,
    reset_output,
    set_output,
)
from typedtrail.request import ExecutionResult
from typedtrail.response import format_execution_result


@pytest.fixture()
def piped(monkeypatch):
    """Pretend stdout is redirected to a pipe."""
    monkeypatch.setattr("typedtrail.output._stdout_is_tty", lambda: False)


@pytest.fixture()
def terminal(monkeypatch):
    """Pretend stdout is an interactive terminal with colour allowed."""
    monkeypatch.setattr("typedtrail.output._stdout_is_tty", lambda: True)
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("TERM", "xterm-256color")


def _manager(fmt: OutputFormat, **kwargs) -> OutputManager:
    return OutputManager(format=fmt, no_color=True, **kwargs)


# ------------------------------------------------------------------ #
# Format resolution and colour
# ------------------------------------------------------------------ #


class TestFormatResolution:
    def test_auto_is_plain_when_piped(self, piped):
        assert OutputManager().format == OutputFormat.PLAIN

    def test_auto_is_rich_on_terminal(self, terminal):
        assert OutputManager().format == OutputFormat.RICH

    def test_auto_is_plain_on_terminal_without_colour(self, terminal):
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_format_wins(self, terminal):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON

    @pytest.mark.parametrize(
        "env, expected",
        [
            ({"NO_COLOR": ""}, True),
            ({"TERM": "dumb"}, True),
            ({"TERM": "xterm"}, False),
        ],
    )
    def test_colour_env(self, monkeypatch, env, expected):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        assert _color_disabled_by_env() is expected


# ------------------------------------------------------------------ #
# Streams
# ------------------------------------------------------------------ #


class TestStreams:
    def test_body_on_stdout_only(self, capfd, piped):
        _manager(OutputFormat.JSON).print_body({"id": 1})
        captured = capfd.readouterr()
        assert json.loads(captured.out) == {"id": 1}
        assert captured.err == ""

    def test_diagnostics_on_stderr_only(self, capfd, piped):
        mgr = _manager(OutputFormat.PLAIN, verbose=True)
        mgr.status("HTTP 200 OK")
        mgr.warning("slow")
        mgr.error("refused")
        mgr.debug("GET /x")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert captured.err.splitlines() == [
            "HTTP 200 OK",
            "Warning: slow",
            "Error: refused",
            "[debug] GET /x",
        ]

    def test_quiet_drops_status_but_not_errors(self, capfd, piped):
        mgr = _manager(OutputFormat.PLAIN, quiet=True)
        mgr.status("HTTP 200 OK")
        mgr.error("refused")
        assert capfd.readouterr().err == "Error: refused\n"

    def test_debug_needs_verbose(self, capfd, piped):
        mgr = _manager(OutputFormat.PLAIN)
        assert not mgr.is_verbose
        mgr.debug("hidden")
        assert capfd.readouterr().err == ""


# ------------------------------------------------------------------ #
# Bodies and listings
# ------------------------------------------------------------------ #


class TestPrintBody:
    def test_json_reindents_json_text(self, capfd, piped):
        _manager(OutputFormat.JSON).print_body('{"a":[1,2]}')
        assert capfd.readouterr().out == '{\n  "a": [\n    1,\n    2\n  ]\n}\n'

    def test_json_passes_other_text_through(self, capfd, piped):
        _manager(OutputFormat.JSON).print_body("<html></html>")
        assert capfd.readouterr().out == "<html></html>\n"

    def test_plain_object(self, capfd, piped):
        _manager(OutputFormat.PLAIN).print_body({"id": 7, "name": "crate"})
        assert capfd.readouterr().out.splitlines() == ["id\t7", "name\tcrate"]

    def test_plain_list(self, capfd, piped):
        _manager(OutputFormat.PLAIN).print_body([{"id": 1, "name": "a"}, "loose"])
        assert capfd.readouterr().out.splitlines() == ["1\ta", "loose"]

    def test_rich_highlights_json(self, capfd, piped):
        _manager(OutputFormat.RICH).print_body({"owner": "ops"})
        out = capfd.readouterr().out
        assert "owner" in out
        assert "ops" in out


class TestPrintRows:
    COLUMNS = ["Method", "Path"]
    ROWS = [["GET", "/resources"], ["DELETE", "/resources/:id"]]

    def test_json_records(self, capfd, piped):
        _manager(OutputFormat.JSON).print_rows(self.COLUMNS, self.ROWS)
        assert json.loads(capfd.readouterr().out) == [
            {"Method": "GET", "Path": "/resources"},
            {"Method": "DELETE", "Path": "/resources/:id"},
        ]

    def test_plain_lines_with_header(self, capfd, piped):
        _manager(OutputFormat.PLAIN).print_rows(self.COLUMNS, self.ROWS, title="ignored")
        assert capfd.readouterr().out.splitlines() == [
            "Method\tPath",
            "GET\t/resources",
            "DELETE\t/resources/:id",
        ]

    def test_rich_table(self, capfd, piped):
        _manager(OutputFormat.RICH).print_rows(self.COLUMNS, self.ROWS, title="Routes")
        out = capfd.readouterr().out
        assert "Routes" in out
        assert "/resources/:id" in out


class TestInstalledManager:
    def test_default_created_once(self):
        reset_output()
        assert get_output() is get_output()

    def test_install_and_reset(self):
        installed = _manager(OutputFormat.JSON)
        set_output(installed)
        assert get_output() is installed
        reset_output()
        assert get_output() is not installed


# ------------------------------------------------------------------ #
# format_execution_result
# ------------------------------------------------------------------ #


class Resource(BaseModel):
    id: int


def _result(body, content_type="application/json") -> ExecutionResult:
    headers = {"content-type": content_type}
    return ExecutionResult(body=body, headers=headers, native_response=httpx.Response(200, headers=headers))


class TestFormatExecutionResult:
    def test_status_line_and_body(self, capfd, piped):
        set_output(_manager(OutputFormat.JSON))
        format_execution_result(_result({"ok": True}))
        captured = capfd.readouterr()
        assert json.loads(captured.out) == {"ok": True}
        assert captured.err == "HTTP 200 OK\n"

    def test_validated_models_are_dumped(self, capfd, piped):
        set_output(_manager(OutputFormat.JSON, quiet=True))
        format_execution_result(_result([Resource(id=1), Resource(id=2)]))
        assert json.loads(capfd.readouterr().out) == [{"id": 1}, {"id": 2}]

    def test_empty_body_prints_nothing(self, capfd, piped):
        set_output(_manager(OutputFormat.PLAIN, quiet=True))
        format_execution_result(_result("", content_type="text/plain"))
        assert capfd.readouterr().out == ""

    def test_verbose_lists_headers(self, capfd, piped):
        set_output(_manager(OutputFormat.PLAIN, verbose=True))
        format_execution_result(_result("text", content_type="text/plain"))
        captured = capfd.readouterr()
        assert "[debug] content-type: text/plain" in captured.err
        assert captured.out == "text\n"
