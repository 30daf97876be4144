"""Request drafts and the interceptor chain.

This module provides two core components:

* :class:`RequestDraft` -- the ``url`` + :class:`RequestOptions` value
  threaded through the chain. Built by
  :meth:`~typedtrail.request.RequestBuilder.execute` from the compiled URL,
  the descriptor's headers, and the serialised body.
* :func:`apply_interceptors` -- runs interceptors one after another in
  registration order.

The chain follows a pipeline pattern: each interceptor receives the draft
returned by the previous one, so later interceptors see every earlier
rewrite (URL, method, headers, or body). An interceptor may be a plain
function or a coroutine function.

Example::

    def add_auth(draft: RequestDraft) -> RequestDraft:
        draft.options.headers["Authorization"] = f"Bearer {token}"
        return draft

    async def sign(draft: RequestDraft) -> RequestDraft:
        draft.options.headers["X-Signature"] = await signer.sign(draft.url)
        return draft
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence, Union

import httpx

from typedtrail.form import FormData

logger = logging.getLogger(__name__)


@dataclass
class RequestOptions:
    """Transport options carried by a :class:`RequestDraft`.

    Attributes:
        method: HTTP verb (e.g. ``"POST"``).
        headers: Case-insensitive request headers (mutable).
        body: Serialised body -- a JSON string, a :class:`FormData`, or
            ``None`` when nothing is sent.
    """

    method: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: Optional[Union[str, FormData]] = None


@dataclass
class RequestDraft:
    """The ``{url, options}`` value passed through the interceptor chain."""

    url: str
    options: RequestOptions


Interceptor = Callable[[RequestDraft], Union[RequestDraft, Awaitable[RequestDraft]]]
"""A request transform, sync or async."""


async def apply_interceptors(
    interceptors: Sequence[Interceptor], draft: RequestDraft
) -> RequestDraft:
    """Run *interceptors* over *draft* strictly in order.

    Awaitable results are awaited before the next interceptor starts. An
    exception raised by any interceptor propagates unchanged and stops the
    chain.

    Args:
        interceptors: Interceptors in registration order.
        draft: The initial draft.

    Returns:
        The draft returned by the last interceptor, or *draft* itself when
        there are none.
    """
    for interceptor in list(interceptors):
        result = interceptor(draft)
        if inspect.isawaitable(result):
            result = await result
        draft = result
    if interceptors:
        logger.debug(
            "Applied %d request interceptor(s): %s %s",
            len(interceptors), draft.options.method, draft.url,
        )
    return draft
