"""Route dispatcher -- creates request descriptors from a route table.

:class:`TypedTrail` is the entry point of the SDK. It holds the root URL,
an optional :class:`~typedtrail.models.RouteTable`, the interceptors shared
by every request it creates, the transport, and the in-flight registry.

Example::

    api = TypedTrail("https://api.example.com", routes={
        "/resources": {"GET": {"query_params": ["search", "page"]}},
        "/resources/:id": {"GET": {"response": Resource}, "DELETE": {}},
    })
    api.add_request_interceptor(add_auth)

    async with api:
        result = await api.create_get_request("/resources/:id").set_route_param("id", 1).execute()
        resource: Resource = result.body
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from typedtrail.exceptions import InvalidUsageError, RouteNotFoundError, RouteTableError
from typedtrail.interceptors import Interceptor
from typedtrail.models import ClientConfig, HttpVerb, RouteTable
from typedtrail.registry import InFlightRegistry, get_registry
from typedtrail.request import RequestBuilder
from typedtrail.transport import HttpxTransport, Transport

logger = logging.getLogger(__name__)


class TypedTrail:
    """Factory for :class:`~typedtrail.request.RequestBuilder` objects.

    Args:
        root_url: Prefix prepended to every route path. Overrides
            ``config.root_url`` when given.
        routes: Optional route table (a :class:`RouteTable` or a plain
            mapping validated into one). When given, requests can only be
            created for declared path/verb pairs.
        config: Connection settings; also supplies default headers.
        transport: Transport shared by all created requests. Defaults to an
            :class:`~typedtrail.transport.HttpxTransport` built from
            *config* and closed with this instance.
        registry: In-flight registry. Defaults to the process-wide one.

    Raises:
        RouteTableError: If *routes* fails validation.
    """

    def __init__(
        self,
        root_url: Optional[str] = None,
        routes: Optional[Union[RouteTable, Mapping[str, Any]]] = None,
        config: Optional[ClientConfig] = None,
        transport: Optional[Transport] = None,
        registry: Optional[InFlightRegistry] = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.root_url = root_url if root_url is not None else self.config.root_url
        self.routes = _coerce_routes(routes)
        self.request_interceptors: list[Interceptor] = []
        self.registry = registry if registry is not None else get_registry()
        self._owns_transport = transport is None
        self._transport = transport

    @property
    def transport(self) -> Transport:
        if self._transport is None:
            self._transport = HttpxTransport(self.config)
        return self._transport

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> TypedTrail:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the transport if this instance created it."""
        if self._owns_transport and isinstance(self._transport, HttpxTransport):
            await self._transport.aclose()

    # ------------------------------------------------------------------ #
    # Request factories
    # ------------------------------------------------------------------ #

    def get_full_url(self, path: str) -> str:
        return self.root_url + path

    def create_request(self, path: str, method: HttpVerb | str) -> RequestBuilder:
        """Create a descriptor for *method* on *path*.

        Interceptors registered so far are copied onto the new descriptor;
        interceptors added to the dispatcher later do not reach it.

        Raises:
            RouteNotFoundError: If a route table is set and does not declare
                *method* on *path*.
        """
        try:
            verb = HttpVerb(method.upper())
        except ValueError as exc:
            raise InvalidUsageError(f"Unsupported HTTP verb: {method}") from exc

        shape = None
        if self.routes is not None:
            shape = self.routes.shape(path, verb)
            if shape is None:
                raise RouteNotFoundError(f"No route declared for {verb.value} {path}")

        request = RequestBuilder(
            self.get_full_url(path),
            verb,
            shape=shape,
            transport=self.transport,
            registry=self.registry,
        )
        # dispatcher-wide headers are not subject to the declared names
        request.headers.update(self.config.headers)
        for interceptor in self.request_interceptors:
            request.add_request_interceptor(interceptor)

        logger.debug("Created request %s %s", verb.value, request.url)
        return request

    def create_get_request(self, path: str) -> RequestBuilder:
        return self.create_request(path, HttpVerb.GET)

    def create_post_request(self, path: str) -> RequestBuilder:
        return self.create_request(path, HttpVerb.POST)

    def create_put_request(self, path: str) -> RequestBuilder:
        return self.create_request(path, HttpVerb.PUT)

    def create_patch_request(self, path: str) -> RequestBuilder:
        return self.create_request(path, HttpVerb.PATCH)

    def create_delete_request(self, path: str) -> RequestBuilder:
        return self.create_request(path, HttpVerb.DELETE)

    def add_request_interceptor(
        self, interceptor: Interceptor, prepend: bool = False
    ) -> TypedTrail:
        """Register an interceptor for requests created from now on.

        Args:
            interceptor: The request transform.
            prepend: Run it before the interceptors already registered.
        """
        if prepend:
            self.request_interceptors.insert(0, interceptor)
        else:
            self.request_interceptors.append(interceptor)
        return self


def _coerce_routes(routes: Optional[Union[RouteTable, Mapping[str, Any]]]) -> Optional[RouteTable]:
    if routes is None or isinstance(routes, RouteTable):
        return routes
    try:
        return RouteTable.model_validate(dict(routes))
    except ValidationError as exc:
        raise RouteTableError(f"Invalid route table: {exc}") from exc
