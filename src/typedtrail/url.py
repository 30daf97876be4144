"""Route template compilation.

Route templates use ``:name`` placeholders, one per path segment::

    /resources/:id/comments/:comment_id

:func:`compile_url` substitutes placeholders from a route-param mapping and
appends the serialised query string. A placeholder whose value is missing
or falsy (``""``, ``0``, ``False``, ``None``) is dropped together with its
leading ``/``, so ``/api/:id`` without an ``id`` compiles to ``/api``.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional

import httpx

_PLACEHOLDER_RE = re.compile(r"/:([a-zA-Z0-9_]+)")


def substitute_route_params(template: str, route_params: Mapping[str, Any]) -> str:
    """Fill the ``/:name`` segments of *template* from *route_params*."""

    def _replace(match: re.Match[str]) -> str:
        value = route_params.get(match.group(1))
        return f"/{value}" if value else ""

    return _PLACEHOLDER_RE.sub(_replace, template)


def compile_url(
    template: str,
    route_params: Mapping[str, Any],
    query_params: Optional[httpx.QueryParams | Mapping[str, Any]] = None,
) -> str:
    """Compile *template* into a concrete URL.

    Args:
        template: URL or path containing ``:name`` placeholders.
        route_params: Values for the placeholders.
        query_params: Query parameters in insertion order. A plain mapping
            is converted with :class:`httpx.QueryParams`.

    Returns:
        The compiled URL, with ``?<query>`` appended only when at least one
        query parameter is set.

    Example::

        >>> compile_url("/api/:id", {"id": "789"}, {"search": "hello"})
        '/api/789?search=hello'
    """
    url = substitute_route_params(template, route_params)

    if query_params is not None and not isinstance(query_params, httpx.QueryParams):
        query_params = httpx.QueryParams(query_params)

    query = str(query_params) if query_params is not None else ""
    if query:
        url += f"?{query}"
    return url
