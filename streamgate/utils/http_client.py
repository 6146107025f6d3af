from __future__ import annotations

from typing import Awaitable, Callable, Sequence

import httpx
from loguru import logger

RequestHook = Callable[[httpx.Request], Awaitable[None]]

# Media bytes are relayed as-is; a compressed body would no longer match the
# forwarded Content-Length/Content-Range.
_IDENTITY_HEADERS = {"Accept-Encoding": "identity"}


def build_origin_client(
    *,
    timeout: httpx.Timeout | float,
    request_hooks: Sequence[RequestHook] = (),
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Build an AsyncClient for origin traffic.

    Redirects are followed, environment proxies are ignored and no retry
    policy is installed: a stalled range is re-issued by the player itself.
    `request_hooks` run before every request, redirect hops included.
    """
    logger.trace("Building origin AsyncClient (timeout={})", timeout)
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        trust_env=False,
        headers=_IDENTITY_HEADERS,
        event_hooks={"request": list(request_hooks)},
        transport=transport,
    )
