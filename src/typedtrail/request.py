"""Request descriptor -- fluent request state plus the execution pipeline.

A :class:`RequestBuilder` is normally obtained from
:class:`~typedtrail.client.TypedTrail`, which fills in the full URL
template, the verb, the route shape, the shared interceptors, the
transport, and the in-flight registry. Setters mutate the descriptor and
return it so calls can be chained::

    result = await (
        api.create_get_request("/resources/:id")
        .set_route_param("id", 42)
        .set_query_param("expand", "owner")
        .execute()
    )
    result.body, result.headers, result.native_response

See Also:
    :mod:`typedtrail.pipeline` for the individual steps of :meth:`execute`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Generic, Mapping, Optional, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from typedtrail.cancellation import CancellationToken
from typedtrail.exceptions import InvalidUsageError, RequestCancelledError
from typedtrail.interceptors import Interceptor, RequestDraft, RequestOptions, apply_interceptors
from typedtrail.models import HttpVerb, RouteShape
from typedtrail.pipeline import decode_response, fingerprint, send_draft, serialize_body
from typedtrail.registry import InFlightRegistry, get_registry
from typedtrail.transport import HttpxTransport, Transport
from typedtrail.url import compile_url

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


@dataclass
class ExecutionResult(Generic[T]):
    """Outcome of :meth:`RequestBuilder.execute`.

    Attributes:
        body: Parsed JSON (validated into the route's response type when one
            is declared), or the raw text when ``as_text=True``.
        headers: Flattened response headers.
        native_response: The underlying :class:`httpx.Response`.
    """

    body: T
    headers: dict[str, str]
    native_response: httpx.Response


class RequestBuilder:
    """Mutable description of one HTTP request.

    Args:
        url: URL template with ``:name`` placeholders.
        method: HTTP verb.
        shape: Optional declared route shape. When it lists
            ``route_params``, ``query_params`` or ``headers`` names, the
            setters reject other names (header names case-insensitively).
            A declared ``body`` type is checked by :meth:`set_body`; a
            declared ``response`` type is used to validate decoded JSON
            bodies.
        transport: Transport used by :meth:`execute`. Without one, each
            transport call opens and closes its own
            :class:`~typedtrail.transport.HttpxTransport`.
        registry: In-flight registry. Defaults to the process-wide one.
    """

    def __init__(
        self,
        url: str,
        method: HttpVerb | str,
        shape: Optional[RouteShape] = None,
        transport: Optional[Transport] = None,
        registry: Optional[InFlightRegistry] = None,
    ) -> None:
        self.url = url
        self.method: str = HttpVerb(method.upper()).value
        self.shape = shape
        self.route_params: dict[str, Any] = {}
        self.query_params = httpx.QueryParams()
        self.headers = httpx.Headers(DEFAULT_HEADERS)
        self.body: Any = None
        self.response: Optional[httpx.Response] = None
        self.request_interceptors: list[Interceptor] = []
        self._transport = transport
        self._registry = registry
        self._cancel_token: Optional[CancellationToken] = CancellationToken()

    # ------------------------------------------------------------------ #
    # Setters
    # ------------------------------------------------------------------ #

    def set_route_param(self, key: str, value: Any) -> RequestBuilder:
        self._check_declared("route_params", key)
        self.route_params[key] = value
        return self

    def set_route_params(self, params: Mapping[str, Any]) -> RequestBuilder:
        for key in params:
            self._check_declared("route_params", key)
        self.route_params = {**self.route_params, **params}
        return self

    def set_query_param(self, key: str, value: Any) -> RequestBuilder:
        """Set *key* to a single value, keeping its position if already present."""
        self._check_declared("query_params", key)
        self.query_params = self.query_params.set(str(key), value)
        return self

    def add_query_param(self, key: str, value: Any) -> RequestBuilder:
        """Append another value for *key*."""
        self._check_declared("query_params", key)
        self.query_params = self.query_params.add(str(key), value)
        return self

    def set_query_params(self, params: Mapping[str, Any]) -> RequestBuilder:
        for key, value in params.items():
            self.set_query_param(key, value)
        return self

    def set_header(self, key: str, value: Any) -> RequestBuilder:
        """Set a header; ``None`` removes it."""
        if value is None:
            if key in self.headers:
                del self.headers[key]
        else:
            self._check_declared("headers", key)
            self.headers[key] = str(value)
        return self

    def set_headers(self, headers: Mapping[str, Any]) -> RequestBuilder:
        for key, value in headers.items():
            self.set_header(key, value)
        return self

    def set_body(self, body: Any) -> RequestBuilder:
        """Set the request body, checking it against a declared ``body`` type."""
        if body is not None and self.shape is not None and self.shape.body is not None:
            try:
                TypeAdapter(self.shape.body).validate_python(body)
            except ValidationError as exc:
                raise InvalidUsageError(
                    f"{self.method} {self.url} body does not match the declared type: {exc}"
                ) from exc
        self.body = body
        return self

    def add_request_interceptor(self, interceptor: Interceptor) -> RequestBuilder:
        self.request_interceptors.append(interceptor)
        return self

    # ------------------------------------------------------------------ #
    # Compilation
    # ------------------------------------------------------------------ #

    def compile_url(self) -> str:
        return compile_url(self.url, self.route_params, self.query_params)

    def get_serialized_body(self) -> Any:
        return serialize_body(self.body)

    async def apply_request_interceptors(self, draft: RequestDraft) -> RequestDraft:
        return await apply_interceptors(self.request_interceptors, draft)

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    async def execute(self, as_text: bool = False) -> ExecutionResult[Any]:
        """Compile, intercept, send (or join an identical in-flight call), and decode.

        Interceptors run for every call, before the registry is consulted. A
        call that joins an in-flight request shares its response and does
        not reach the transport.

        Args:
            as_text: Return the body as text instead of parsed JSON.

        Returns:
            An :class:`ExecutionResult`.

        Raises:
            RequestCancelledError: If :meth:`abort` is called before the
                response arrives.
            TransportError: On network failure (shared by coalesced callers).
            ResponseDecodeError: If JSON decoding was requested and failed.
            ResponseValidationError: If the body does not match the declared
                response type.
            Exception: Anything an interceptor raises, unchanged.
        """
        token = self._cancel_token
        body = None if self.method == HttpVerb.GET.value else self.get_serialized_body()

        draft = await self.apply_request_interceptors(
            RequestDraft(
                url=self.compile_url(),
                options=RequestOptions(
                    method=self.method,
                    headers=httpx.Headers(self.headers),
                    body=body,
                ),
            )
        )

        if token is not None and token.cancelled:
            raise RequestCancelledError(f"{self.method} {draft.url} was aborted")

        key = fingerprint(draft.options.method, draft.url, draft.options.headers, draft.options.body)
        registry = self._registry if self._registry is not None else get_registry()
        transport = self._transport
        entry, started = registry.join(
            key,
            lambda: send_draft(transport, draft)
            if transport is not None
            else send_with_own_transport(draft),
        )
        if not started:
            logger.debug("Joined in-flight request: %s %s", draft.options.method, draft.url)

        self.response = await registry.wait(entry, token)

        response_type = self.shape.response if self.shape is not None else None
        return ExecutionResult(
            body=decode_response(self.response, as_text, None if as_text else response_type),
            headers=self.get_response_headers() or {},
            native_response=self.response,
        )

    def get_response_headers(self) -> Optional[dict[str, str]]:
        """Return the last response's headers as a plain dict, or ``None``.

        Repeated header names keep the last value seen.
        """
        if self.response is None:
            return None
        return {key: value for key, value in self.response.headers.multi_items()}

    def abort(self) -> bool:
        """Cancel this descriptor's pending execution, if any.

        The token is single-use: the first call returns ``True`` and every
        later call returns ``False``. Executions started afterwards run
        without a cancellation token.
        """
        if self._cancel_token is None:
            return False
        logger.debug("Aborting %s %s", self.method, self.url)
        self._cancel_token.cancel()
        self._cancel_token = None
        return True

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _check_declared(self, kind: str, key: str) -> None:
        if self.shape is None:
            return
        declared = getattr(self.shape, kind)
        if declared is None:
            return
        if kind == "headers":
            found = key.lower() in {name.lower() for name in declared}
        else:
            found = key in declared
        if not found:
            raise InvalidUsageError(
                f"{self.method} {self.url} does not declare {kind[:-1].replace('_', ' ')} "
                f"{key!r} (declared: {', '.join(declared) or 'none'})"
            )

    def __repr__(self) -> str:
        return f"RequestBuilder({self.method} {self.url})"


async def send_with_own_transport(draft: RequestDraft) -> httpx.Response:
    """Send *draft* over a short-lived :class:`HttpxTransport`.

    Used when a descriptor has no transport. The client is opened inside
    the shared call and closed when that call finishes or is cancelled, so
    no connection outlives the event loop that created it.
    """
    async with HttpxTransport() as transport:
        return await send_draft(transport, draft)
