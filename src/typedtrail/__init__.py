"""typedtrail -- typed HTTP request builder and lightweight API-client SDK.

Describe an API as a route table (path -> verb -> shape), then create
request descriptors from it, chain setters, and execute them::

    from typedtrail import TypedTrail

    api = TypedTrail("https://api.example.com", routes={
        "/resources/:id": {"GET": {"route_params": ["id"]}},
    })

    async with api:
        result = await api.create_get_request("/resources/:id").set_route_param("id", 7).execute()

Execution compiles the URL, runs the request interceptors in order, and
coalesces concurrent identical requests into a single transport call.

Modules:
    client: :class:`TypedTrail` dispatcher.
    request: :class:`RequestBuilder` descriptor and ``execute``.
    pipeline: Body serialisation, fingerprinting, sending, decoding.
    registry: In-flight registry used for coalescing.
    interceptors: Request drafts and the interceptor chain.
    url: Route template compilation.
    models: Pydantic models (config and route table).
    config: Config precedence resolution and route table loading.
    app: Typer CLI entry point.
"""

__version__ = "0.3.0"

from typedtrail.cancellation import CancellationToken
from typedtrail.client import TypedTrail
from typedtrail.exceptions import (
    ConfigError,
    InvalidUsageError,
    RequestCancelledError,
    ResponseDecodeError,
    ResponseValidationError,
    RouteNotFoundError,
    RouteTableError,
    TransportError,
    TypedTrailError,
)
from typedtrail.form import FormData
from typedtrail.interceptors import Interceptor, RequestDraft, RequestOptions
from typedtrail.models import ClientConfig, HttpVerb, RouteShape, RouteTable
from typedtrail.registry import InFlightRegistry
from typedtrail.request import ExecutionResult, RequestBuilder
from typedtrail.transport import HttpxTransport, Transport
from typedtrail.url import compile_url

__all__ = [
    "CancellationToken",
    "ClientConfig",
    "ConfigError",
    "ExecutionResult",
    "FormData",
    "HttpVerb",
    "HttpxTransport",
    "InFlightRegistry",
    "Interceptor",
    "InvalidUsageError",
    "RequestBuilder",
    "RequestCancelledError",
    "RequestDraft",
    "RequestOptions",
    "ResponseDecodeError",
    "ResponseValidationError",
    "RouteNotFoundError",
    "RouteShape",
    "RouteTable",
    "RouteTableError",
    "Transport",
    "TransportError",
    "TypedTrail",
    "TypedTrailError",
    "compile_url",
]
