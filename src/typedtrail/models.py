"""Canonical Pydantic models shared across all typedtrail modules.

The models fall into two groups:

**Configuration models** -- read from the project file and environment:
    :class:`ClientConfig`.

**Route table models** -- describe which verbs a path accepts and the shape
of each verb's request and response:
    :class:`HttpVerb`, :class:`RouteShape`, and :class:`RouteTable`.

A route table is validated once, when it is handed to
:class:`~typedtrail.client.TypedTrail`; the request pipeline itself never
consults it beyond the shape attached to each
:class:`~typedtrail.request.RequestBuilder`.
"""

from __future__ import annotations

import enum
from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator


# --- Config ---


class ClientConfig(BaseModel):
    """Connection settings for a :class:`~typedtrail.client.TypedTrail` instance.

    Loaded and merged by :func:`~typedtrail.config.resolve_config`. The
    transport settings (``timeout``, ``verify_ssl``, ``follow_redirects``)
    are passed straight to :class:`httpx.AsyncClient`.

    Example::

        ClientConfig(root_url="https://api.example.com", timeout=10)
    """

    root_url: str = Field(default="", description="Prefix prepended to every route path")
    timeout: float = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    follow_redirects: bool = Field(default=True, description="Follow HTTP redirects")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra headers set on every new request"
    )


# --- Route table ---


class HttpVerb(str, enum.Enum):
    """HTTP verbs a route may declare."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class RouteShape(BaseModel):
    """Declared shape of one verb on one route.

    Every field is optional. Name lists left as ``None`` accept any name;
    when a list is given, the request setters reject names outside it.
    Header names are compared case-insensitively. ``body`` and ``response``
    may hold any type :class:`pydantic.TypeAdapter` accepts (a model class,
    ``list[Model]``, a ``TypedDict`` ...); request bodies are checked against
    ``body`` and decoded JSON bodies are validated into ``response``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    description: Optional[str] = None
    route_params: Optional[list[str]] = None
    query_params: Optional[list[str]] = None
    headers: Optional[list[str]] = None
    body: Any = Field(default=None, description="Declared request body type")
    response: Any = Field(default=None, description="Declared response body type")

    @field_validator("body", "response")
    @classmethod
    def _reject_type_names(cls, value: Any) -> Any:
        if isinstance(value, str):
            raise ValueError(
                "body/response must be a Python type, not a type name; "
                "omit it in route table files"
            )
        return value


class RouteTable(RootModel[dict[str, dict[HttpVerb, RouteShape]]]):
    """Mapping of route path templates to the verbs they accept.

    Paths must start with ``/`` and may contain ``:name`` placeholders.
    Verb keys are case-insensitive on input.

    Example::

        RouteTable.model_validate({
            "/resources": {"GET": {"query_params": ["search", "page"]}},
            "/resources/:id": {"GET": {}, "DELETE": {}},
        })
    """

    @field_validator("root", mode="before")
    @classmethod
    def _normalise(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        normalised: dict[str, Any] = {}
        for path, verbs in value.items():
            if not isinstance(path, str) or not path.startswith("/"):
                raise ValueError(f"Route path must start with '/': {path!r}")
            if isinstance(verbs, dict):
                verbs = {
                    (k.upper() if isinstance(k, str) else k): (v if v is not None else {})
                    for k, v in verbs.items()
                }
            normalised[path] = verbs
        return normalised

    def has_route(self, path: str, verb: HttpVerb | str) -> bool:
        """Return ``True`` when *path* declares *verb*."""
        return self.shape(path, verb) is not None

    def shape(self, path: str, verb: HttpVerb | str) -> Optional[RouteShape]:
        """Return the declared shape of *verb* on *path*, or ``None``."""
        verbs = self.root.get(path)
        if verbs is None:
            return None
        try:
            return verbs.get(HttpVerb(verb.upper()))
        except ValueError:
            return None

    def iter_routes(self) -> Iterator[tuple[str, HttpVerb, RouteShape]]:
        """Yield ``(path, verb, shape)`` triples in declaration order."""
        for path, verbs in self.root.items():
            for verb, shape in verbs.items():
                yield path, verb, shape
