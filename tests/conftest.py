"""Shared test fixtures for typedtrail.

Provides a recording fake transport, an isolated in-flight registry, config
isolation, and output/registry resets. These fixtures are automatically
discovered by pytest and available to all test modules without explicit
imports.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from typedtrail.output import reset_output
from typedtrail.registry import InFlightRegistry, reset_registry


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_globals_between_tests() -> None:
    """Reset the global OutputManager and the process-wide registry.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time, and registry entries hold tasks bound to the test's
    event loop; neither may leak into the next test.
    """
    yield
    reset_output()
    reset_registry()


# ---------------------------------------------------------------------------
# Transport fixtures
# ---------------------------------------------------------------------------


class FakeTransport:
    """Transport double that records every call.

    ``gate`` (when set) holds every call open until the event is set, so
    tests can line up concurrent executions. ``handler`` builds the response
    and may raise to simulate network failures.
    """

    def __init__(
        self,
        handler: Optional[Callable[[str, str, httpx.Headers, Any], httpx.Response]] = None,
    ) -> None:
        self.calls: list[tuple[str, str, httpx.Headers, Any]] = []
        self.gate: Optional[asyncio.Event] = None
        self.cancelled = False
        self._handler = handler or (
            lambda method, url, headers, body: httpx.Response(
                200,
                json={"success": True},
                headers={"x-request-id": "abc"},
            )
        )

    async def send(self, method: str, url: str, headers: httpx.Headers, body: Any) -> httpx.Response:
        self.calls.append((method, url, headers, body))
        if self.gate is not None:
            try:
                await self.gate.wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        return self._handler(method, url, headers, body)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_transport() -> type[FakeTransport]:
    """The FakeTransport class, for tests that need a custom handler."""
    return FakeTransport


@pytest.fixture
def registry() -> InFlightRegistry:
    """A registry private to one test."""
    return InFlightRegistry()


@pytest.fixture
def drain() -> Callable[..., Any]:
    """Coroutine function yielding to the event loop so scheduled callbacks run."""

    async def _drain(steps: int = 5) -> None:
        for _ in range(steps):
            await asyncio.sleep(0)

    return _drain


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run the test from an empty directory with no TYPEDTRAIL_* variables set.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    for var in [
        "TYPEDTRAIL_ROOT_URL",
        "TYPEDTRAIL_TIMEOUT",
        "TYPEDTRAIL_VERIFY_SSL",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
