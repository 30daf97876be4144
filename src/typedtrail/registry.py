"""In-flight request registry -- coalesces concurrent identical requests.

:class:`InFlightRegistry` maps a request fingerprint (see
:func:`~typedtrail.pipeline.fingerprint`) to the one transport call
currently running for it. Callers that compute a fingerprint already present
in the registry wait on the existing call instead of starting another, so
any number of concurrent identical requests produce exactly one network
round-trip and observe the same outcome -- the same
:class:`httpx.Response`, or the same exception instance.

Entry lifecycle:

1. :meth:`InFlightRegistry.join` -- on a miss, starts the call as an
   :class:`asyncio.Task` and inserts it; on a hit, counts one more waiter.
   Lookup and insert happen without an ``await`` in between.
2. :meth:`InFlightRegistry.wait` -- waits for the shared call on behalf of
   one caller, or raises :class:`~typedtrail.exceptions.RequestCancelledError`
   as soon as that caller's cancellation token fires.
3. The entry is removed exactly once: when its task finishes (success,
   failure, or cancellation), or earlier, when its last waiter detaches.
   A finished task is never joined; the next caller starts a fresh call.

A cancelled caller only detaches itself. The shared task is cancelled when
its last waiter has left.

A process-wide default instance is available via :func:`get_registry`;
:class:`~typedtrail.client.TypedTrail` accepts an explicit registry for
callers that want isolation.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import httpx

from typedtrail.cancellation import CancellationToken
from typedtrail.exceptions import RequestCancelledError

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class InFlight:
    """A pending transport call and the number of callers waiting on it."""

    key: str
    task: asyncio.Future[httpx.Response]
    waiters: int = 0


class InFlightRegistry:
    """Fingerprint -> pending transport call mapping."""

    def __init__(self) -> None:
        self._pending: dict[str, InFlight] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, key: object) -> bool:
        return key in self._pending

    def get(self, key: str) -> Optional[InFlight]:
        return self._pending.get(key)

    def join(
        self,
        key: str,
        start: Callable[[], Awaitable[httpx.Response]],
    ) -> tuple[InFlight, bool]:
        """Attach the caller to the call registered under *key*.

        Must be called from a running event loop. On a miss, *start* is
        invoked and its awaitable scheduled as a task.

        Args:
            key: The request fingerprint.
            start: Factory producing the transport call. Only invoked on a
                miss.

        Returns:
            ``(entry, started)`` where ``started`` is ``True`` when this call
            created the entry.
        """
        with self._lock:
            entry = self._pending.get(key)
            if entry is not None and not entry.task.done():
                entry.waiters += 1
                logger.debug(
                    "Coalesced request onto in-flight call (%d waiters): %s",
                    entry.waiters, key,
                )
                return entry, False

            task = asyncio.ensure_future(start())
            entry = InFlight(key=key, task=task, waiters=1)
            self._pending[key] = entry

        task.add_done_callback(lambda _task: self._settle(entry))
        logger.debug("Started in-flight call: %s", key)
        return entry, True

    async def wait(
        self,
        entry: InFlight,
        token: Optional[CancellationToken] = None,
    ) -> httpx.Response:
        """Wait for *entry* on behalf of one caller.

        Args:
            entry: An entry returned by :meth:`join`.
            token: The caller's cancellation token, if any.

        Returns:
            The shared :class:`httpx.Response`.

        Raises:
            RequestCancelledError: If *token* fires before the call settles,
                or the shared call itself was cancelled.
            Exception: Whatever the shared call raised, unchanged.
        """
        loop = asyncio.get_running_loop()
        outcome: asyncio.Future[httpx.Response] = loop.create_future()

        def _relay(task: asyncio.Future[httpx.Response]) -> None:
            if outcome.done():
                return
            if task.cancelled():
                outcome.set_exception(RequestCancelledError("Request was cancelled"))
            elif task.exception() is not None:
                outcome.set_exception(task.exception())
            else:
                outcome.set_result(task.result())

        def _on_cancel() -> None:
            if not outcome.done():
                outcome.set_exception(RequestCancelledError("Request was aborted"))

        entry.task.add_done_callback(_relay)
        remove_callback = token.add_callback(_on_cancel) if token is not None else None
        try:
            return await outcome
        finally:
            entry.task.remove_done_callback(_relay)
            if remove_callback is not None:
                remove_callback()
            self._leave(entry)

    def clear(self) -> None:
        """Cancel every pending call and empty the registry."""
        with self._lock:
            entries = list(self._pending.values())
            self._pending.clear()
        for entry in entries:
            entry.task.cancel()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _leave(self, entry: InFlight) -> None:
        with self._lock:
            entry.waiters -= 1
            orphaned = entry.waiters <= 0 and not entry.task.done()
            if orphaned and self._pending.get(entry.key) is entry:
                # later callers start a fresh call
                del self._pending[entry.key]
        if orphaned:
            logger.debug("Last waiter detached, cancelling in-flight call: %s", entry.key)
            entry.task.cancel()

    def _settle(self, entry: InFlight) -> None:
        with self._lock:
            if self._pending.get(entry.key) is entry:
                del self._pending[entry.key]
                logger.debug("Settled in-flight call: %s", entry.key)


# ------------------------------------------------------------------ #
# Process-wide default registry
# ------------------------------------------------------------------ #

_registry: Optional[InFlightRegistry] = None


def get_registry() -> InFlightRegistry:
    """Return the process-wide :class:`InFlightRegistry`, creating it lazily."""
    global _registry
    if _registry is None:
        _registry = InFlightRegistry()
    return _registry


def set_registry(registry: InFlightRegistry) -> None:
    """Install *registry* as the process-wide default."""
    global _registry
    _registry = registry


def reset_registry() -> None:
    """Drop the process-wide registry. Primarily useful in test suites."""
    global _registry
    _registry = None
