"""Transport boundary -- the single point where requests leave the process.

The pipeline talks to a :class:`Transport`: anything with an async
``send(method, url, headers, body)`` returning an :class:`httpx.Response`.
:class:`HttpxTransport` is the default implementation, backed by
:class:`httpx.AsyncClient`. Tests plug an :class:`httpx.MockTransport` into
it to serve canned responses without network I/O.

Cancellation is not part of this boundary: the pipeline cancels the
:class:`asyncio.Task` running :meth:`Transport.send`, and
:class:`httpx.AsyncClient` aborts the in-progress exchange.
"""

from __future__ import annotations

from typing import Optional, Protocol, Union

import httpx

from typedtrail.form import FormData
from typedtrail.models import ClientConfig


class Transport(Protocol):
    """Structural interface of a request transport."""

    async def send(
        self,
        method: str,
        url: str,
        headers: httpx.Headers,
        body: Optional[Union[str, FormData]],
    ) -> httpx.Response:
        ...


class HttpxTransport:
    """Default transport backed by :class:`httpx.AsyncClient`.

    The underlying client is created on first use (or on entering the async
    context manager) from the :class:`~typedtrail.models.ClientConfig`
    settings, and closed by :meth:`aclose`.

    Args:
        config: Timeout, SSL verification, and redirect settings.
        transport: Optional :mod:`httpx` transport, e.g.
            :class:`httpx.MockTransport` in tests.

    Example::

        async with HttpxTransport(ClientConfig(timeout=5)) as transport:
            response = await transport.send("GET", url, httpx.Headers(), None)
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> HttpxTransport:
        self._ensure_client()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    async def send(
        self,
        method: str,
        url: str,
        headers: httpx.Headers,
        body: Optional[Union[str, FormData]],
    ) -> httpx.Response:
        """Send one request and return the fully read response.

        A :class:`~typedtrail.form.FormData` body is encoded by :mod:`httpx`,
        which also sets the ``Content-Type`` (including the multipart
        boundary); any ``Content-Type`` carried in *headers* is dropped for
        such bodies. String bodies are sent verbatim.
        """
        client = self._ensure_client()
        headers = httpx.Headers(headers)
        kwargs: dict = {"method": method, "url": url}

        if isinstance(body, FormData):
            if "content-type" in headers:
                del headers["content-type"]
            kwargs.update(body.to_httpx())
        elif body is not None:
            kwargs["content"] = body

        kwargs["headers"] = headers
        return await client.request(**kwargs)

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                follow_redirects=self._config.follow_redirects,
                transport=self._transport,
            )
        return self._client
