from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Mapping, Optional

import anyio
import httpx
from loguru import logger

from streamgate.config import (
    MEDIA_API_KEY_HEADER,
    MEDIA_ORIGIN_URL,
    STREAM_CACHE_CONTROL,
    STREAM_CONNECT_TIMEOUT_SECONDS,
    STREAM_READ_TIMEOUT_SECONDS,
)
from streamgate.utils.http_client import build_origin_client
from streamgate.utils.logger import mask_secret
from .auth import require_api_key, strip_foreign_credential
from .errors import OriginError, OriginTransportError
from .urls import redact_url

DEFAULT_MEDIA_TYPE = "video/mp4"
_ERROR_DETAIL_LIMIT = 200

# Forwarded from the origin response, in this casing.
_FORWARDED_HEADERS = {
    "content-type": "Content-Type",
    "content-length": "Content-Length",
    "content-range": "Content-Range",
    "accept-ranges": "Accept-Ranges",
    "content-encoding": "Content-Encoding",
}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, HEAD, OPTIONS",
    "Access-Control-Allow-Headers": "Range, Content-Range, Content-Type",
    "Access-Control-Expose-Headers": "Content-Range, Content-Length, Accept-Ranges",
}
PREFLIGHT_HEADERS = {**CORS_HEADERS, "Access-Control-Max-Age": "86400"}


@dataclass(frozen=True)
class ProxyStreamRequest:
    """
    One client exchange: origin URL, optional Range, and the method to forward.
    """

    origin_url: str
    range_header: Optional[str] = None
    method: str = "GET"

    def upstream_headers(
        self, api_key: str, *, header_name: str = MEDIA_API_KEY_HEADER
    ) -> dict[str, str]:
        headers = {header_name: api_key}
        if self.range_header:
            # Passed through byte-for-byte; the player owns range sizing.
            headers["Range"] = self.range_header
        return headers


def _build_async_client() -> httpx.AsyncClient:
    """
    Build an AsyncClient for one proxied origin exchange.
    """
    timeout = httpx.Timeout(
        STREAM_READ_TIMEOUT_SECONDS,
        connect=STREAM_CONNECT_TIMEOUT_SECONDS,
        read=STREAM_READ_TIMEOUT_SECONDS,
        write=STREAM_CONNECT_TIMEOUT_SECONDS,
        pool=STREAM_CONNECT_TIMEOUT_SECONDS,
    )
    return build_origin_client(
        timeout=timeout,
        request_hooks=[
            strip_foreign_credential(
                origin=MEDIA_ORIGIN_URL, header_name=MEDIA_API_KEY_HEADER
            )
        ],
    )


def response_status(origin_status: int, range_requested: bool) -> int:
    """
    Status for the client: 206 only when the client asked for a range and the
    origin honored it, otherwise 200.
    """
    if origin_status == 206 and range_requested:
        return 206
    return 200


def response_headers(origin_headers: Mapping[str, str]) -> dict[str, str]:
    """
    Build client response headers from the origin's response headers.
    """
    out: dict[str, str] = {}
    for k, v in origin_headers.items():
        name = _FORWARDED_HEADERS.get(k.lower())
        if name:
            out[name] = v
    out.setdefault("Content-Type", DEFAULT_MEDIA_TYPE)
    out.setdefault("Accept-Ranges", "bytes")
    if STREAM_CACHE_CONTROL:
        out["Cache-Control"] = STREAM_CACHE_CONTROL
    out.update(CORS_HEADERS)
    return out


async def _close(response: httpx.Response, client: httpx.AsyncClient) -> None:
    # Runs during cancellation too (client went away mid-stream).
    with anyio.CancelScope(shield=True):
        await response.aclose()
        await client.aclose()


async def _read_diagnostic(response: httpx.Response, api_key: str) -> str:
    buf = b""
    try:
        async for chunk in response.aiter_bytes():
            buf += chunk
            if len(buf) >= _ERROR_DETAIL_LIMIT:
                break
    except httpx.HTTPError as exc:
        logger.debug("Could not read origin error body: {}", exc)
    text = buf[:_ERROR_DETAIL_LIMIT].decode("utf-8", errors="replace")
    return mask_secret(text, api_key)


async def open_origin(
    request: ProxyStreamRequest, *, api_key: Optional[str] = None
) -> tuple[httpx.Response, httpx.AsyncClient]:
    """
    Open a streamed origin response for `request`.

    The caller owns the returned response and client and must close both.

    Raises:
        ConfigurationError: If no origin credential is configured.
        OriginTransportError: If the origin cannot be reached or times out.
        OriginError: If the origin answers with a non-2xx status.
    """
    key = require_api_key(api_key)
    target = redact_url(request.origin_url)
    logger.trace("Opening origin {} {}", request.method, target)
    client = _build_async_client()
    try:
        upstream = client.build_request(
            request.method, request.origin_url, headers=request.upstream_headers(key)
        )
        response = await client.send(upstream, stream=True)
    except httpx.HTTPError as exc:
        await client.aclose()
        logger.error("Origin request failed for {}: {}", target, exc)
        raise OriginTransportError("Failed to stream video") from exc
    except BaseException:
        with anyio.CancelScope(shield=True):
            await client.aclose()
        raise

    if not response.is_success:
        details = await _read_diagnostic(response, key)
        await _close(response, client)
        logger.error(
            "Origin returned error {} {} for {}",
            response.status_code,
            response.reason_phrase,
            target,
        )
        raise OriginError(
            response.status_code,
            f"Failed to fetch video: {response.reason_phrase}",
            details=details or None,
        )
    return response, client


def _log_delivery(response: httpx.Response) -> None:
    raw = response.headers.get("content-length")
    if not raw or not raw.isdigit():
        logger.debug("Serving origin stream (status={})", response.status_code)
        return
    size_kb = int(raw) / 1024
    if size_kb >= 1024:
        logger.debug(
            "Serving {:.2f}MB chunk (status={})", size_kb / 1024, response.status_code
        )
    else:
        logger.debug("Serving {:.0f}KB chunk (status={})", size_kb, response.status_code)


def streaming_body(
    response: httpx.Response, client: httpx.AsyncClient
) -> AsyncIterator[bytes]:
    """
    Relay origin bytes as they arrive and close resources when done.

    Chunks are yielded exactly as received: no buffering to a fixed size, so
    the client sees the first bytes as soon as the origin sends them.
    """
    _log_delivery(response)

    async def _gen():
        try:
            async for chunk in response.aiter_raw():
                yield chunk
        finally:
            await _close(response, client)

    return _gen()


def _total_from_content_range(value: str | None) -> str | None:
    # "bytes 0-0/1000" -> "1000"
    if not value or "/" not in value:
        return None
    total = value.rsplit("/", 1)[1].strip()
    return total if total.isdigit() else None


async def head_origin(
    request: ProxyStreamRequest, *, api_key: Optional[str] = None
) -> tuple[int, dict[str, str]]:
    """
    Fetch only the headers of an origin resource.

    Origins that refuse HEAD (405/501) are asked for a one-byte range instead;
    when the client did not send a Range itself, the probe range is hidden and
    Content-Length reports the full size from Content-Range.

    Returns:
        tuple[int, dict[str, str]]: Client status and client response headers.
    """
    range_requested = bool(request.range_header)
    head_request = ProxyStreamRequest(
        origin_url=request.origin_url, range_header=request.range_header, method="HEAD"
    )
    probed_range = False
    try:
        response, client = await open_origin(head_request, api_key=api_key)
    except OriginError as exc:
        if exc.status_code not in (405, 501):
            raise
        logger.debug("Origin refused HEAD; falling back to ranged GET")
        fallback = ProxyStreamRequest(
            origin_url=request.origin_url,
            range_header=request.range_header or "bytes=0-0",
        )
        response, client = await open_origin(fallback, api_key=api_key)
        probed_range = not range_requested
    await _close(response, client)

    headers = response_headers(response.headers)
    if probed_range:
        total = _total_from_content_range(headers.pop("Content-Range", None))
        if total:
            headers["Content-Length"] = total
        else:
            headers.pop("Content-Length", None)
    return response_status(response.status_code, range_requested), headers
