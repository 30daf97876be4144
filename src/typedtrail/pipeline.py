"""Pure steps of the request execution pipeline.

:meth:`~typedtrail.request.RequestBuilder.execute` runs, in order:

1. URL compilation (:func:`~typedtrail.url.compile_url`).
2. Body serialisation (:func:`serialize_body`) -- skipped for GET.
3. The interceptor chain (:func:`~typedtrail.interceptors.apply_interceptors`).
4. Fingerprinting (:func:`fingerprint`) and coalescing through the
   :class:`~typedtrail.registry.InFlightRegistry`.
5. The transport call (:func:`send_draft`), shared by every coalesced caller.
6. Response decoding (:func:`decode_response`), once per caller.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Mapping, Optional, Union

import httpx
from pydantic import TypeAdapter, ValidationError
from pydantic_core import to_jsonable_python

from typedtrail.exceptions import ResponseDecodeError, ResponseValidationError, TransportError
from typedtrail.form import FormData
from typedtrail.interceptors import RequestDraft
from typedtrail.transport import Transport


def serialize_body(body: Any) -> Union[str, FormData]:
    """Serialise a request body for the transport.

    :class:`~typedtrail.form.FormData` is returned as-is. Anything else is
    JSON-encoded compactly; pydantic models, dataclasses, and other values
    pydantic knows how to dump are converted first.
    """
    if isinstance(body, FormData):
        return body
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False, default=to_jsonable_python)


def _serialize_pairs(pairs: Iterable[tuple[str, Any]]) -> str:
    parts = []
    for key, value in pairs:
        if isinstance(value, tuple):
            value = value[0]  # file fields contribute their filename
        parts.append(f"{key}={value}")
    return "".join(parts)


def fingerprint(
    method: str,
    url: str,
    headers: Optional[Union[httpx.Headers, Mapping[str, str]]],
    body: Any,
) -> str:
    """Return the coalescing key of a request.

    The key is ``"<method> <url> <headers> <body>"`` where ``<headers>`` is
    every ``name=value`` pair in iteration order with no separator, and
    ``<body>`` is the same serialisation for a form, the string itself for a
    string body, and empty for anything else. Nothing is sorted or hashed:
    the same headers set in a different order yield a different key.
    """
    header_key = ""
    if headers is not None:
        header_key = _serialize_pairs(httpx.Headers(headers).multi_items())

    body_key = ""
    if isinstance(body, FormData):
        body_key = _serialize_pairs(body.entries())
    elif isinstance(body, str):
        body_key = body

    return f"{method} {url} {header_key} {body_key}"


async def send_draft(transport: Transport, draft: RequestDraft) -> httpx.Response:
    """Issue the transport call for a finished draft.

    Raises:
        TransportError: On any :class:`httpx.TransportError` (connection
            failures, timeouts, protocol errors).
    """
    options = draft.options
    try:
        return await transport.send(options.method, draft.url, options.headers, options.body)
    except httpx.TransportError as exc:
        raise TransportError(f"{options.method} {draft.url} failed: {exc}") from exc


def decode_response(
    response: httpx.Response,
    as_text: bool = False,
    response_type: Any = None,
) -> Any:
    """Decode a response body.

    Args:
        response: A fully read response.
        as_text: Return ``response.text`` instead of parsed JSON.
        response_type: Optional type the parsed JSON is validated into.

    Raises:
        ResponseDecodeError: If the body is not valid JSON.
        ResponseValidationError: If the JSON does not match *response_type*.
    """
    if as_text:
        return response.text

    try:
        data = response.json()
    except ValueError as exc:
        raise ResponseDecodeError(
            f"HTTP {response.status_code} response body is not valid JSON: {exc}"
        ) from exc

    if response_type is None:
        return data
    try:
        return TypeAdapter(response_type).validate_python(data)
    except ValidationError as exc:
        raise ResponseValidationError(
            f"Response does not match {getattr(response_type, '__name__', response_type)}: {exc}"
        ) from exc
